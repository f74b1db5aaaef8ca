"""Database repository for alumni account data."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from psycopg import errors, sql
from psycopg.rows import tuple_row
from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from .domain.account import Account, AccountStatus
from .domain.contracts import NewAccount
from .domain.errors import DuplicateAccount

SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id        UUID PRIMARY KEY,
    email             TEXT NOT NULL UNIQUE CHECK (email = lower(btrim(email))),
    password_hash     TEXT NOT NULL,
    status            TEXT NOT NULL DEFAULT 'pending'
                      CHECK (status IN ('pending', 'approved', 'rejected')),
    is_admin          BOOLEAN NOT NULL DEFAULT FALSE,
    name              TEXT,
    phone             TEXT,
    dob               DATE,
    institution       TEXT,
    course            TEXT,
    year              TEXT,
    favourite_teacher TEXT NOT NULL DEFAULT '',
    social_media      TEXT NOT NULL DEFAULT '',
    profile_image     TEXT,
    cover_image       TEXT,
    privacy_settings  JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at        TIMESTAMPTZ NOT NULL,
    updated_at        TIMESTAMPTZ NOT NULL
);
CREATE INDEX IF NOT EXISTS accounts_status_created_idx ON accounts (status, created_at DESC);
"""

_COLUMNS = (
    "account_id",
    "email",
    "password_hash",
    "status",
    "is_admin",
    "name",
    "phone",
    "dob",
    "institution",
    "course",
    "year",
    "favourite_teacher",
    "social_media",
    "profile_image",
    "cover_image",
    "privacy_settings",
    "created_at",
    "updated_at",
)

# Columns update_by_id may touch; identity, email, status and admin flag are absent.
UPDATABLE_COLUMNS = frozenset(
    {
        "password_hash",
        "name",
        "phone",
        "dob",
        "institution",
        "course",
        "year",
        "favourite_teacher",
        "social_media",
        "profile_image",
        "cover_image",
        "privacy_settings",
    }
)

DIRECTORY_LIMIT = 200

_SELECT = sql.SQL("SELECT {columns} FROM accounts").format(
    columns=sql.SQL(", ").join(sql.Identifier(column) for column in _COLUMNS)
)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class AccountRepository:
    """Postgres-backed account persistence."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def ensure_schema(self) -> None:
        """Create the accounts table and its indexes when missing."""
        with self._pool.connection() as conn:
            conn.execute(SCHEMA)
            conn.commit()

    def find_by_email(self, email: str) -> Account | None:
        """Fetch an account by its normalized email or return ``None``."""
        return self._fetch_one(sql.SQL("WHERE email = %s"), (email,))

    def find_by_id(self, account_id: str) -> Account | None:
        """Fetch an account by identifier or return ``None``."""
        return self._fetch_one(sql.SQL("WHERE account_id = %s"), (account_id,))

    def create(self, payload: NewAccount) -> Account:
        """Insert a new account.

        Raises
        ------
        DuplicateAccount
            When the email is already taken, including when a concurrent
            registration wins the race on the unique constraint.
        """
        account_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        query = sql.SQL(
            """
            INSERT INTO accounts (
                account_id, email, password_hash, status, is_admin, name, phone, dob,
                institution, course, year, favourite_teacher, social_media,
                privacy_settings, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, FALSE, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {columns}
            """
        ).format(columns=sql.SQL(", ").join(sql.Identifier(column) for column in _COLUMNS))
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        query,
                        (
                            account_id,
                            payload.email,
                            payload.password_hash,
                            payload.status.value,
                            payload.name,
                            payload.phone,
                            payload.dob,
                            payload.institution,
                            payload.course,
                            payload.year,
                            payload.favourite_teacher,
                            payload.social_media,
                            Json({}),
                            now,
                            now,
                        ),
                    )
                    record = cur.fetchone()
                conn.commit()
        except errors.UniqueViolation as exc:
            raise DuplicateAccount() from exc
        return self._map_record(record)

    def update_by_id(self, account_id: str, fields: dict[str, Any]) -> Account | None:
        """Apply a partial update and return the refreshed account, or ``None`` if absent."""
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"columns not updatable: {sorted(unknown)}")
        if not fields:
            return self.find_by_id(account_id)

        values: list[Any] = []
        assignments = []
        for column, value in fields.items():
            assignments.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
            values.append(Json(value) if column == "privacy_settings" else value)
        assignments.append(sql.SQL("updated_at = %s"))
        values.append(datetime.now(timezone.utc))
        values.append(account_id)

        query = sql.SQL("UPDATE accounts SET {assignments} WHERE account_id = %s RETURNING {columns}").format(
            assignments=sql.SQL(", ").join(assignments),
            columns=sql.SQL(", ").join(sql.Identifier(column) for column in _COLUMNS),
        )
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, values)
                row = cur.fetchone()
            conn.commit()
        if not row:
            return None
        return self._map_record(row)

    def list_approved(
        self,
        *,
        year: str | None = None,
        institution: str | None = None,
        course: str | None = None,
        q: str | None = None,
        limit: int = DIRECTORY_LIMIT,
    ) -> list[Account]:
        """Return approved accounts, newest first, filtered for the alumni directory."""
        clauses = [sql.SQL("status = %s")]
        params: list[Any] = [AccountStatus.approved.value]

        if year:
            clauses.append(sql.SQL("year = %s"))
            params.append(year)
        if institution:
            clauses.append(sql.SQL("institution ILIKE %s"))
            params.append(f"%{_escape_like(institution)}%")
        if course:
            clauses.append(sql.SQL("course ILIKE %s"))
            params.append(f"%{_escape_like(course)}%")
        if q:
            clauses.append(sql.SQL("(name ILIKE %s OR email ILIKE %s)"))
            pattern = f"%{_escape_like(q)}%"
            params.extend([pattern, pattern])

        query = sql.SQL("{select} WHERE {where} ORDER BY created_at DESC LIMIT %s").format(
            select=_SELECT,
            where=sql.SQL(" AND ").join(clauses),
        )
        params.append(max(1, min(limit, DIRECTORY_LIMIT)))

        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, params)
                return [self._map_record(row) for row in cur.fetchall()]

    def _fetch_one(self, where: sql.Composable, params: tuple[Any, ...]) -> Account | None:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(sql.SQL("{} {}").format(_SELECT, where), params)
                row = cur.fetchone()
                if not row:
                    return None
        return self._map_record(row)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        data = dict(zip(_COLUMNS, row))
        data["account_id"] = str(data["account_id"])
        data["status"] = AccountStatus(data["status"])
        data["privacy_settings"] = data["privacy_settings"] or {}
        data["favourite_teacher"] = data["favourite_teacher"] or ""
        data["social_media"] = data["social_media"] or ""
        return Account(**data)
