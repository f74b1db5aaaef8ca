from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class AccountStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ProfileVisibility(str, Enum):
    public = "public"
    private = "private"


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered alumnus: credentials, profile and privacy settings."""

    account_id: str
    email: str
    password_hash: str = field(repr=False)
    status: AccountStatus = AccountStatus.pending
    is_admin: bool = False
    name: str | None = None
    phone: str | None = None
    dob: date | None = None
    institution: str | None = None
    course: str | None = None
    year: str | None = None
    favourite_teacher: str = ""
    social_media: str = ""
    profile_image: str | None = None
    cover_image: str | None = None
    privacy_settings: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def profile_visibility(self) -> ProfileVisibility:
        """Effective visibility; anything other than ``private`` reads as public."""
        raw = (self.privacy_settings or {}).get("profile_visibility")
        if raw == ProfileVisibility.private.value:
            return ProfileVisibility.private
        return ProfileVisibility.public


def is_login_permitted(account: Account) -> bool:
    """Moderation gate: only approved accounts may sign in."""
    return account.status == AccountStatus.approved


def is_profile_visible(account: Account) -> bool:
    """Privacy gate for the by-id profile path.

    Private profiles are hidden from every caller, the owner included.
    """
    return account.profile_visibility is ProfileVisibility.public
