from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from alumni_auth.api import routes
from alumni_auth.api.errors import install_error_handlers
from alumni_auth.config import Settings
from alumni_auth.domain.account import Account, AccountStatus
from alumni_auth.domain.contracts import NewAccount
from alumni_auth.domain.errors import DuplicateAccount
from alumni_auth.domain.service import AccountService
from alumni_auth.repository import UPDATABLE_COLUMNS
from alumni_auth.security.passwords import PasswordHasher
from alumni_auth.security.tokens import TokenIssuer
from alumni_auth.storage import ImageStore


class FakeRepository:
    """In-memory repository mimicking Postgres-backed behaviors."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.updates: list[tuple[str, dict[str, Any]]] = []

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def find_by_email(self, email: str) -> Account | None:
        for account in self._accounts.values():
            if account.email == email:
                return replace(account)
        return None

    def find_by_id(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        return replace(account) if account else None

    def create(self, payload: NewAccount) -> Account:
        # unique index on email
        if any(account.email == payload.email for account in self._accounts.values()):
            raise DuplicateAccount()
        now = self._tick()
        account = Account(
            account_id=str(uuid.uuid4()),
            email=payload.email,
            password_hash=payload.password_hash,
            status=payload.status,
            name=payload.name,
            phone=payload.phone,
            dob=payload.dob,
            institution=payload.institution,
            course=payload.course,
            year=payload.year,
            favourite_teacher=payload.favourite_teacher,
            social_media=payload.social_media,
            created_at=now,
            updated_at=now,
        )
        self._accounts[account.account_id] = account
        return replace(account)

    def update_by_id(self, account_id: str, fields: dict[str, Any]) -> Account | None:
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"columns not updatable: {sorted(unknown)}")
        account = self._accounts.get(account_id)
        if account is None:
            return None
        self.updates.append((account_id, dict(fields)))
        for column, value in fields.items():
            setattr(account, column, value)
        account.updated_at = self._tick()
        return replace(account)

    def list_approved(
        self,
        *,
        year: str | None = None,
        institution: str | None = None,
        course: str | None = None,
        q: str | None = None,
        limit: int = 200,
    ) -> list[Account]:
        def contains(haystack: str | None, needle: str) -> bool:
            return needle.lower() in (haystack or "").lower()

        results = [a for a in self._accounts.values() if a.status == AccountStatus.approved]
        if year:
            results = [a for a in results if a.year == year]
        if institution:
            results = [a for a in results if contains(a.institution, institution)]
        if course:
            results = [a for a in results if contains(a.course, course)]
        if q:
            results = [a for a in results if contains(a.name, q) or contains(a.email, q)]
        results.sort(key=lambda a: a.created_at, reverse=True)
        return [replace(a) for a in results[:limit]]

    # Moderation is external to the service; tests drive it directly.
    def set_status(self, account_id: str, status: AccountStatus) -> None:
        self._accounts[account_id].status = status

    def stored_hash(self, account_id: str) -> str:
        return self._accounts[account_id].password_hash


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        jwt_secret="test-secret-with-enough-length-1234",
        jwt_issuer="alumni.test",
        jwt_ttl_seconds=3600,
        bcrypt_rounds=4,
        upload_dir=str(tmp_path / "uploads"),
        max_upload_bytes=1024,
    )


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def hasher(settings) -> PasswordHasher:
    return PasswordHasher.from_settings(settings)


@pytest.fixture
def tokens(settings) -> TokenIssuer:
    return TokenIssuer.from_settings(settings)


@pytest.fixture
def image_store(settings) -> ImageStore:
    return ImageStore(settings.upload_dir, max_bytes=settings.max_upload_bytes)


@pytest.fixture
def service(repository, hasher, tokens, image_store) -> AccountService:
    return AccountService(repository, hasher, tokens, image_store)


@pytest.fixture
def api_client(service, settings):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    app.include_router(routes.router)
    install_error_handlers(app, settings)
    app.state.account_service = service

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, service
