"""Account service orchestrating credentials, tokens, profiles and privacy."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, BinaryIO, Mapping, Protocol

import pydantic

from .account import Account, is_login_permitted, is_profile_visible
from .contracts import (
    NewAccount,
    PrivacySettings,
    ProfileUpdate,
    RegistrationInput,
    normalize_email,
    parse_date_of_birth,
)
from .errors import (
    DuplicateAccount,
    InvalidCredentials,
    MissingCredentials,
    NotApproved,
    NotFound,
    ProfileForbidden,
    ValidationError,
)
from ..repository import AccountRepository
from ..security.passwords import PasswordHasher
from ..security.tokens import TokenIssuer

logger = logging.getLogger(__name__)


class ImageSink(Protocol):
    def save(self, stream: BinaryIO, *, filename: str | None, content_type: str | None) -> str: ...


@dataclass(slots=True)
class AuthResult:
    """Account plus the bearer token handed back after register or login."""

    account: Account
    token: str


def _describe_validation_error(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts) or "Invalid input"


class AccountService:
    """Account workflows backed by the credential store."""

    def __init__(
        self,
        repository: AccountRepository,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        images: ImageSink | None = None,
    ) -> None:
        """Store dependencies used to orchestrate persistence, hashing and token issuance."""
        self._repository = repository
        self._hasher = hasher
        self._tokens = tokens
        self._images = images

    # -- authentication -------------------------------------------------

    def register(self, payload: RegistrationInput) -> AuthResult:
        """Create a pending account and issue its first token.

        An unparseable date of birth is stored as ``None`` rather than
        rejected. A concurrent registration for the same email surfaces as
        :class:`DuplicateAccount` from the repository.
        """
        email = normalize_email(payload.email)
        if not email or not payload.password:
            raise MissingCredentials()
        if self._repository.find_by_email(email) is not None:
            raise DuplicateAccount()

        account = self._repository.create(
            NewAccount(
                email=email,
                password_hash=self._hasher.hash(payload.password),
                name=payload.name,
                phone=payload.phone,
                dob=parse_date_of_birth(payload.dob),
                institution=payload.institution,
                course=payload.course,
                year=payload.year,
                favourite_teacher=payload.favourite_teacher or "",
                social_media=payload.social_media or "",
            )
        )
        logger.info("account %s registered (status=%s)", account.account_id, account.status.value)
        return AuthResult(account=account, token=self._tokens.issue(account.account_id))

    def login(self, email: str | None, password: str | None) -> AuthResult:
        """Verify credentials and the moderation gate, then issue a token."""
        if not email or not email.strip() or not password:
            raise MissingCredentials()

        account = self._repository.find_by_email(normalize_email(email))
        if account is None:
            self._hasher.burn(password)
            logger.warning("login rejected: unknown email")
            raise InvalidCredentials()
        if not self._hasher.verify(password, account.password_hash):
            logger.warning("login rejected: bad password for account %s", account.account_id)
            raise InvalidCredentials()
        if not is_login_permitted(account):
            logger.info("login refused for account %s (status=%s)", account.account_id, account.status.value)
            raise NotApproved()

        logger.info("account %s logged in", account.account_id)
        return AuthResult(account=account, token=self._tokens.issue(account.account_id))

    def authenticate(self, token: str) -> str:
        """Return the account id carried by a bearer token."""
        return self._tokens.verify(token)

    # -- profiles -------------------------------------------------------

    def get_own_profile(self, caller_id: str) -> Account:
        account = self._repository.find_by_id(caller_id)
        if account is None:
            raise NotFound()
        return account

    def get_public_profile(self, target_id: str, caller_id: str | None = None) -> Account:
        """Return another user's profile unless it is private.

        ``caller_id`` is accepted for symmetry but does not grant access:
        private profiles are forbidden to every caller on this path.
        """
        try:
            canonical_id = str(uuid.UUID(target_id))
        except (TypeError, ValueError) as exc:
            raise ValidationError("Invalid user ID") from exc

        account = self._repository.find_by_id(canonical_id)
        if account is None:
            raise NotFound()
        if not is_profile_visible(account):
            raise ProfileForbidden()
        return account

    def update_own_profile(self, caller_id: str, fields: Mapping[str, Any]) -> Account:
        """Apply the permitted subset of ``fields`` to the caller's profile."""
        try:
            update = ProfileUpdate.model_validate(dict(fields))
        except pydantic.ValidationError as exc:
            raise ValidationError(_describe_validation_error(exc)) from exc

        account = self._repository.update_by_id(caller_id, update.changes())
        if account is None:
            raise NotFound()
        return account

    def update_privacy_settings(self, caller_id: str, settings: Mapping[str, Any]) -> Account:
        """Replace, not merge, the caller's privacy settings."""
        try:
            privacy = PrivacySettings.model_validate(dict(settings))
        except pydantic.ValidationError as exc:
            raise ValidationError(_describe_validation_error(exc)) from exc

        account = self._repository.update_by_id(caller_id, {"privacy_settings": privacy.to_record()})
        if account is None:
            raise NotFound()
        return account

    def set_image(
        self,
        caller_id: str,
        slot: str,
        stream: BinaryIO,
        *,
        filename: str | None,
        content_type: str | None,
    ) -> Account:
        """Store an uploaded image and point the account's ``slot`` field at it."""
        if slot not in {"profile_image", "cover_image"}:
            raise ValueError(f"unknown image slot {slot!r}")
        if self._images is None:
            raise RuntimeError("image storage is not configured")
        if self._repository.find_by_id(caller_id) is None:
            raise NotFound()

        url = self._images.save(stream, filename=filename, content_type=content_type)
        account = self._repository.update_by_id(caller_id, {slot: url})
        if account is None:
            raise NotFound()
        return account

    def list_approved(
        self,
        *,
        year: str | None = None,
        institution: str | None = None,
        course: str | None = None,
        q: str | None = None,
    ) -> list[Account]:
        """Directory of approved alumni, newest first."""
        return self._repository.list_approved(year=year, institution=institution, course=course, q=q)

    # -- passwords ------------------------------------------------------

    def change_password(self, caller_id: str, current: str | None, new: str | None) -> None:
        """Rotate the caller's password after re-verifying the current one."""
        if not current or not new:
            raise MissingCredentials("Current password and new password are required")

        account = self._repository.find_by_id(caller_id)
        if account is None:
            raise NotFound()
        if not self._hasher.verify(current, account.password_hash):
            raise InvalidCredentials("Current password is incorrect")

        self._repository.update_by_id(caller_id, {"password_hash": self._hasher.hash(new)})
        logger.info("account %s changed its password", caller_id)

    def reset_password_by_email(self, email: str | None, new: str | None) -> None:
        """Set a new password for whoever owns ``email``.

        Knowing the address is the only proof required; no reset token or
        mailbox confirmation is involved.
        """
        if not email or not email.strip() or not new:
            raise MissingCredentials("Email and new password are required")

        account = self._repository.find_by_email(normalize_email(email))
        if account is None:
            raise NotFound("Email not found")

        self._repository.update_by_id(account.account_id, {"password_hash": self._hasher.hash(new)})
        logger.warning("password for account %s reset by email without identity proof", account.account_id)
