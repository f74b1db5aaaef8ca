from __future__ import annotations

import time

import jwt
import pytest

from alumni_auth.domain.errors import CorruptCredential, ExpiredToken, InvalidToken, ValidationError
from alumni_auth.security.passwords import PasswordHasher
from alumni_auth.security.tokens import TokenIssuer


def test_hash_verifies_only_the_original_password(hasher):
    hashed = hasher.hash("correct horse")
    assert hasher.verify("correct horse", hashed)
    assert not hasher.verify("correct horsE", hashed)
    assert not hasher.verify("", hashed)


def test_hash_is_salted_per_call(hasher):
    first = hasher.hash("same-password")
    second = hasher.hash("same-password")
    assert first != second
    assert hasher.verify("same-password", first)
    assert hasher.verify("same-password", second)


def test_hash_embeds_configured_work_factor():
    hashed = PasswordHasher(rounds=5).hash("pw")
    assert hashed.startswith("$2b$05$")


def test_verify_rejects_malformed_hash(hasher):
    with pytest.raises(CorruptCredential):
        hasher.verify("anything", "not-a-bcrypt-hash")


def test_hash_rejects_passwords_beyond_bcrypt_limit(hasher):
    with pytest.raises(ValidationError):
        hasher.hash("x" * 73)
    assert not hasher.verify("x" * 73, hasher.hash("x" * 72))


def test_burn_runs_without_a_stored_hash(hasher):
    hasher.burn("whatever")
    hasher.burn("again")


def test_token_round_trip_recovers_account_id(tokens):
    token = tokens.issue("acct-123")
    assert tokens.verify(token) == "acct-123"


def test_token_with_tampered_signature_is_invalid(tokens):
    token = tokens.issue("acct-123")
    header, payload, signature = token.split(".")
    flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
    with pytest.raises(InvalidToken):
        tokens.verify(".".join([header, payload, flipped]))


def test_token_signed_with_other_key_is_invalid(tokens):
    other = TokenIssuer(secret="another-secret-of-decent-length-xx", issuer="alumni.test", ttl_seconds=60)
    with pytest.raises(InvalidToken):
        tokens.verify(other.issue("acct-123"))


def test_token_from_other_issuer_is_invalid(settings, tokens):
    foreign = TokenIssuer(secret=settings.jwt_secret, issuer="someone.else", ttl_seconds=60)
    with pytest.raises(InvalidToken):
        tokens.verify(foreign.issue("acct-123"))


def test_garbage_token_is_invalid(tokens):
    with pytest.raises(InvalidToken):
        tokens.verify("not.a.jwt")


def test_token_past_expiry_is_expired(settings):
    issuer = TokenIssuer(secret=settings.jwt_secret, issuer=settings.jwt_issuer, ttl_seconds=-10)
    with pytest.raises(ExpiredToken):
        issuer.verify(issuer.issue("acct-123"))


def test_token_without_subject_is_invalid(settings, tokens):
    now = int(time.time())
    token = jwt.encode(
        {"iss": settings.jwt_issuer, "iat": now, "exp": now + 60},
        settings.jwt_secret,
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        tokens.verify(token)


def test_issuer_uses_configured_ttl(settings, tokens):
    claims = jwt.decode(
        tokens.issue("acct-1"),
        settings.jwt_secret,
        algorithms=["HS256"],
        issuer=settings.jwt_issuer,
    )
    assert claims["exp"] - claims["iat"] == settings.jwt_ttl_seconds
    assert claims["sub"] == "acct-1"
