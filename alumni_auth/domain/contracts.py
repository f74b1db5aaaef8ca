"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .account import AccountStatus, ProfileVisibility

# Tried in order; the first layout that parses wins.
DOB_LAYOUTS = ("%Y-%m-%d", "%d-%m-%Y")


def normalize_email(email: str | None) -> str:
    """Trim and lowercase an email address; this is the uniqueness key."""
    return (email or "").strip().lower()


def parse_date_of_birth(raw: str | date | None) -> date | None:
    """Parse a date of birth written as year-month-day or day-month-year.

    ISO timestamps (``1990-03-15T00:00:00Z``) are accepted too. Unparseable
    input yields ``None`` instead of an error.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    for layout in DOB_LAYOUTS:
        try:
            return datetime.strptime(text, layout).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


@dataclass(slots=True)
class RegistrationInput:
    """Raw inputs accepted when an alumnus signs up."""

    email: str
    password: str
    name: str | None = None
    phone: str | None = None
    dob: str | None = None
    institution: str | None = None
    course: str | None = None
    year: str | None = None
    favourite_teacher: str | None = None
    social_media: str | None = None


@dataclass(slots=True)
class NewAccount:
    """Validated, hashed record handed to the repository for insertion."""

    email: str
    password_hash: str
    name: str | None
    phone: str | None
    dob: date | None
    institution: str | None
    course: str | None
    year: str | None
    favourite_teacher: str = ""
    social_media: str = ""
    status: AccountStatus = AccountStatus.pending


class ProfileUpdate(BaseModel):
    """Allow-list of profile fields an owner may edit.

    Anything not declared here (email, status, admin flag, password, ids,
    image URLs) is dropped before validation.
    """

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str | None = Field(default=None, min_length=1, max_length=120)
    phone: str | None = Field(default=None, max_length=32)
    dob: date | None = None
    institution: str | None = Field(default=None, max_length=200)
    course: str | None = Field(default=None, max_length=200)
    year: str | None = Field(default=None, max_length=16)
    favourite_teacher: str | None = Field(default=None, max_length=200)
    social_media: str | None = Field(default=None, max_length=500)

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("dob", mode="before")
    @classmethod
    def _tolerant_dob(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        parsed = parse_date_of_birth(value)
        if parsed is None:
            raise ValueError("dob must be YYYY-MM-DD or DD-MM-YYYY")
        return parsed

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller actually supplied."""
        return self.model_dump(exclude_unset=True)


class PrivacySettings(BaseModel):
    """Owner-controlled privacy flags; unknown keys are kept as supplied."""

    model_config = ConfigDict(
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    profile_visibility: ProfileVisibility = ProfileVisibility.public

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: dict[str, Any] | None) -> "PrivacySettings":
        return cls.model_validate(record or {})
