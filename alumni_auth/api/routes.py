"""HTTP route definitions for the alumni identity service."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, Request, UploadFile, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from ..domain.account import Account
from ..domain.contracts import PrivacySettings, RegistrationInput
from ..domain.errors import AccountError, InvalidToken, ValidationError
from ..domain.service import AccountService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

bearer_scheme = HTTPBearer(auto_error=False)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProfileResponse(CamelModel):
    """Serialised representation of an `Account`; the password hash never leaves the service."""

    id: str
    email: str
    status: str
    is_admin: bool
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
    privacy_settings: dict[str, Any]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, account: Account) -> "ProfileResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            id=account.account_id,
            email=account.email,
            status=account.status.value,
            is_admin=account.is_admin,
            name=account.name,
            phone=account.phone,
            dob=account.dob,
            institution=account.institution,
            course=account.course,
            year=account.year,
            favourite_teacher=account.favourite_teacher,
            social_media=account.social_media,
            profile_image=account.profile_image,
            cover_image=account.cover_image,
            privacy_settings=_privacy_payload(account),
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class DirectoryEntry(CamelModel):
    """Reduced profile listed in the approved-alumni directory."""

    id: str
    name: str | None = None
    email: str
    phone: str | None = None
    institution: str | None = None
    course: str | None = None
    year: str | None = None
    created_at: datetime | None = None


class AuthResponse(BaseModel):
    """Identity summary and bearer token returned by register and login."""

    id: str
    email: str
    status: str
    token: str


class MessageResponse(BaseModel):
    message: str


class PrivacySettingsResponse(CamelModel):
    message: str
    privacy_settings: dict[str, Any]


class ImageUploadResponse(BaseModel):
    message: str
    user: ProfileResponse


class RegisterRequest(CamelModel):
    """Payload accepted when an alumnus signs up."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    name: str | None = None
    phone: str | None = None
    dob: str | None = None
    institution: str | None = None
    course: str | None = None
    year: str | None = None
    favourite_teacher: str | None = Field(
        default=None,
        validation_alias=AliasChoices("favTeacher", "favouriteTeacher", "favourite_teacher"),
    )
    social_media: str | None = None

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class LoginRequest(BaseModel):
    """Credentials; blanks are reported by the service rather than by schema validation."""

    email: str | None = None
    password: str | None = None


class ChangePasswordRequest(CamelModel):
    current_password: str | None = None
    new_password: str | None = None


class ResetPasswordRequest(CamelModel):
    email: str | None = None
    new_password: str | None = None


def _privacy_payload(account: Account) -> dict[str, Any]:
    return PrivacySettings.from_record(account.privacy_settings).model_dump(mode="json", by_alias=True)


def _http_error(exc: AccountError) -> HTTPException:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=exc.status_code, detail=exc.message, headers=headers)


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def get_current_account_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    service: AccountService = Depends(get_service),
) -> str:
    """Require a valid bearer token and return the account id it carries."""
    try:
        if credentials is None or not credentials.credentials:
            raise InvalidToken("Not authorized, no token")
        return service.authenticate(credentials.credentials)
    except AccountError as exc:
        logger.debug("bearer token rejected: %s", exc.kind.value)
        raise _http_error(exc) from exc


@router.post("/auth/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
) -> AuthResponse:
    """Create a pending account and return its first token."""
    try:
        result = service.register(
            RegistrationInput(
                email=payload.email,
                password=payload.password,
                name=payload.name,
                phone=payload.phone,
                dob=payload.dob,
                institution=payload.institution,
                course=payload.course,
                year=payload.year,
                favourite_teacher=payload.favourite_teacher,
                social_media=payload.social_media,
            )
        )
    except AccountError as exc:
        raise _http_error(exc) from exc
    return _auth_response(result.account, result.token)


@router.post("/auth/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> AuthResponse:
    """Exchange email and password for a token; only approved accounts may sign in."""
    try:
        result = service.login(payload.email, payload.password)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return _auth_response(result.account, result.token)


@router.post("/auth/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    """Reset a password knowing only the account email."""
    try:
        service.reset_password_by_email(payload.email, payload.new_password)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return MessageResponse(message="Password reset successfully")


# Static /users/* paths must be registered before /users/{account_id}.


@router.get("/users/approved", response_model=list[DirectoryEntry])
def list_approved_alumni(
    year: str | None = Query(default=None),
    institution: str | None = Query(default=None),
    course: str | None = Query(default=None),
    q: str | None = Query(default=None),
    service: AccountService = Depends(get_service),
) -> list[DirectoryEntry]:
    """Public directory of approved alumni."""
    accounts = service.list_approved(year=year, institution=institution, course=course, q=q)
    return [
        DirectoryEntry(
            id=account.account_id,
            name=account.name,
            email=account.email,
            phone=account.phone,
            institution=account.institution,
            course=account.course,
            year=account.year,
            created_at=account.created_at,
        )
        for account in accounts
    ]


@router.get("/users/profile", response_model=ProfileResponse)
def get_profile(
    account_id: str = Depends(get_current_account_id),
    service: AccountService = Depends(get_service),
) -> ProfileResponse:
    try:
        account = service.get_own_profile(account_id)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return ProfileResponse.from_domain(account)


@router.put("/users/profile", response_model=ProfileResponse)
def update_profile(
    payload: dict[str, Any] = Body(...),
    account_id: str = Depends(get_current_account_id),
    service: AccountService = Depends(get_service),
) -> ProfileResponse:
    """Update editable profile fields; protected fields in the body are ignored."""
    try:
        account = service.update_own_profile(account_id, payload)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return ProfileResponse.from_domain(account)


@router.put("/users/privacy-settings", response_model=PrivacySettingsResponse)
def update_privacy_settings(
    payload: dict[str, Any] = Body(...),
    account_id: str = Depends(get_current_account_id),
    service: AccountService = Depends(get_service),
) -> PrivacySettingsResponse:
    try:
        account = service.update_privacy_settings(account_id, payload)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return PrivacySettingsResponse(
        message="Privacy settings updated successfully",
        privacy_settings=_privacy_payload(account),
    )


@router.put("/users/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    account_id: str = Depends(get_current_account_id),
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    try:
        service.change_password(account_id, payload.current_password, payload.new_password)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return MessageResponse(message="Password changed successfully")


@router.put("/users/profile-image", response_model=ImageUploadResponse)
def upload_profile_image(
    image: UploadFile | None = File(default=None),
    account_id: str = Depends(get_current_account_id),
    service: AccountService = Depends(get_service),
) -> ImageUploadResponse:
    account = _store_image(service, account_id, "profile_image", image)
    return ImageUploadResponse(message="Profile image updated", user=ProfileResponse.from_domain(account))


@router.put("/users/cover-image", response_model=ImageUploadResponse)
def upload_cover_image(
    image: UploadFile | None = File(default=None),
    account_id: str = Depends(get_current_account_id),
    service: AccountService = Depends(get_service),
) -> ImageUploadResponse:
    account = _store_image(service, account_id, "cover_image", image)
    return ImageUploadResponse(message="Cover image updated", user=ProfileResponse.from_domain(account))


@router.get("/users/{account_id}", response_model=ProfileResponse)
def get_user_by_id(
    account_id: str,
    service: AccountService = Depends(get_service),
) -> ProfileResponse:
    """Public profile lookup honouring the owner's visibility setting."""
    try:
        account = service.get_public_profile(account_id)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return ProfileResponse.from_domain(account)


def _store_image(service: AccountService, account_id: str, slot: str, image: UploadFile | None) -> Account:
    try:
        if image is None or not image.filename:
            raise ValidationError("No image uploaded")
        return service.set_image(
            account_id,
            slot,
            image.file,
            filename=image.filename,
            content_type=image.content_type,
        )
    except AccountError as exc:
        raise _http_error(exc) from exc


def _auth_response(account: Account, token: str) -> AuthResponse:
    return AuthResponse(id=account.account_id, email=account.email, status=account.status.value, token=token)
