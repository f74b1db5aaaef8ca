"""bcrypt password hashing.

bcrypt embeds a random per-call salt and its cost factor in the output, so a
stored hash is self-describing and ``verify`` needs no extra state.
"""

from __future__ import annotations

import bcrypt

from ..config import Settings
from ..domain.errors import CorruptCredential, ValidationError

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted one-way hashing with a configurable work factor."""

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds
        self._dummy_hash: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(rounds=settings.bcrypt_rounds)

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt hash of ``plaintext`` using a fresh salt."""
        encoded = plaintext.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return ``True`` when ``plaintext`` matches ``hashed``.

        Raises
        ------
        CorruptCredential
            When ``hashed`` is not a readable bcrypt hash.
        """
        encoded = plaintext.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            # Never produced by hash(), so it cannot match.
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
        except ValueError as exc:
            raise CorruptCredential() from exc

    def burn(self, plaintext: str) -> None:
        """Run one verification against a throwaway hash.

        Used when no account matched, so a failed login costs the same
        whether or not the email is registered.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("alumni-timing-dummy")
        self.verify(plaintext, self._dummy_hash)
