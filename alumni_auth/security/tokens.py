"""Utilities for issuing and validating application JWTs."""

from __future__ import annotations

import time
from typing import Any

import jwt

from ..config import Settings
from ..domain.errors import ExpiredToken, InvalidToken

ALGORITHM = "HS256"


class TokenIssuer:
    """Stateless HS256 token mint and check bound to one signing key.

    Tokens embed only the account identifier and an expiry; verification
    never consults the account store, so a token outlives password or
    status changes until it expires.
    """

    def __init__(self, *, secret: str, issuer: str, ttl_seconds: int) -> None:
        self._secret = secret
        self._issuer = issuer
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.jwt_secret,
            issuer=settings.jwt_issuer,
            ttl_seconds=settings.jwt_ttl_seconds,
        )

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, account_id: str) -> str:
        """Create a signed JWT for ``account_id``.

        Parameters
        ----------
        account_id:
            Account identifier to embed in the token ``sub`` claim.

        Returns
        -------
        str
            The encoded JWT.
        """
        now = int(time.time())
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "sub": account_id,
            "iat": now,
            "exp": now + self._ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> str:
        """Check signature, issuer and expiry and return the embedded account id.

        Raises
        ------
        ExpiredToken
            The signature is valid but ``exp`` has passed.
        InvalidToken
            Anything else: bad signature, malformed token, foreign issuer,
            missing subject.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredToken() from exc
        except jwt.PyJWTError as exc:
            raise InvalidToken() from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidToken()
        return subject
