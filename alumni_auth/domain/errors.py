"""Typed failures raised by the account workflows.

Every failure carries an :class:`ErrorKind`, a short human-readable message
and the HTTP status the API layer answers with. Nothing here is retried.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    duplicate_account = "DuplicateAccount"
    missing_credentials = "MissingCredentials"
    invalid_credentials = "InvalidCredentials"
    not_approved = "NotApproved"
    validation_error = "ValidationError"
    profile_forbidden = "ProfileForbidden"
    invalid_token = "InvalidToken"
    expired_token = "ExpiredToken"
    corrupt_credential = "CorruptCredential"
    not_found = "NotFound"
    server_error = "ServerError"


class AccountError(Exception):
    """Base class for failures surfaced to API consumers."""

    kind: ErrorKind = ErrorKind.server_error
    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateAccount(AccountError):
    kind = ErrorKind.duplicate_account
    status_code = 409
    default_message = "User already exists"


class MissingCredentials(AccountError):
    kind = ErrorKind.missing_credentials
    status_code = 400
    default_message = "Email and password are required"


class InvalidCredentials(AccountError):
    """Raised for both unknown emails and wrong passwords so callers cannot tell them apart."""

    kind = ErrorKind.invalid_credentials
    status_code = 401
    default_message = "Invalid credentials"


class NotApproved(AccountError):
    kind = ErrorKind.not_approved
    status_code = 403
    default_message = "Account not approved yet"


class ValidationError(AccountError):
    kind = ErrorKind.validation_error
    status_code = 400
    default_message = "Invalid input"


class ProfileForbidden(AccountError):
    kind = ErrorKind.profile_forbidden
    status_code = 403
    default_message = "Profile is private"


class InvalidToken(AccountError):
    kind = ErrorKind.invalid_token
    status_code = 401
    default_message = "Invalid token"


class ExpiredToken(AccountError):
    kind = ErrorKind.expired_token
    status_code = 401
    default_message = "Token expired"


class CorruptCredential(AccountError):
    kind = ErrorKind.corrupt_credential
    status_code = 500
    default_message = "Stored credential is unreadable"


class NotFound(AccountError):
    kind = ErrorKind.not_found
    status_code = 404
    default_message = "User not found"


class ServerError(AccountError):
    pass
