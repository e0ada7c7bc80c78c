"""
Notekeep Backend: Token Service Unit Tests
============================================

What we test:
    ✅ Issued token validates and carries the identity
    ✅ Expiry boundary with an injected clock
    ✅ Tampered signature, wrong secret and garbage are rejected
    ✅ Tokens missing required claims are rejected
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from jose import jwt

from notekeep.exceptions import ErrorKind, InvalidTokenError
from notekeep.services.token_service import TokenService

SECRET = "unit-test-secret"
ISSUED_AT = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class TestIssueAndValidate:

    def setup_method(self):
        self.clock = FakeClock(ISSUED_AT)
        self.service = TokenService(SECRET, clock=self.clock)
        self.user_id = uuid4()

    def test_round_trip_returns_identity(self):
        token = self.service.issue(self.user_id, "alice@example.com")
        claims = self.service.validate(token)

        assert claims.user_id == self.user_id
        assert claims.email == "alice@example.com"
        assert claims.issued_at == ISSUED_AT
        assert claims.expires_at == ISSUED_AT + timedelta(hours=24)

    def test_payload_uses_hs256_and_expected_claims(self):
        token = self.service.issue(self.user_id, "alice@example.com")

        assert jwt.get_unverified_header(token)["alg"] == "HS256"
        payload = jwt.get_unverified_claims(token)
        assert set(payload) == {"user_id", "email", "iat", "exp"}
        assert payload["exp"] - payload["iat"] == 24 * 3600

    def test_accepted_just_before_expiry(self):
        token = self.service.issue(self.user_id, "alice@example.com")
        self.clock.now = ISSUED_AT + timedelta(hours=23, minutes=59)

        assert self.service.validate(token).user_id == self.user_id

    def test_rejected_just_after_expiry(self):
        token = self.service.issue(self.user_id, "alice@example.com")
        self.clock.now = ISSUED_AT + timedelta(hours=24, minutes=1)

        with pytest.raises(InvalidTokenError) as exc_info:
            self.service.validate(token)
        assert exc_info.value.kind is ErrorKind.AUTHENTICATION


class TestRejectedTokens:

    def setup_method(self):
        self.service = TokenService(SECRET, clock=lambda: ISSUED_AT)

    def test_tampered_signature(self):
        token = self.service.issue(uuid4(), "alice@example.com")
        header, payload, signature = token.split(".")
        flipped = ("A" if signature[0] != "A" else "B") + signature[1:]

        with pytest.raises(InvalidTokenError):
            self.service.validate(f"{header}.{payload}.{flipped}")

    def test_signed_with_other_secret(self):
        other = TokenService("another-secret", clock=lambda: ISSUED_AT)
        token = other.issue(uuid4(), "alice@example.com")

        with pytest.raises(InvalidTokenError):
            self.service.validate(token)

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_malformed(self, token):
        with pytest.raises(InvalidTokenError):
            self.service.validate(token)

    def test_missing_user_id_claim(self):
        now = int(ISSUED_AT.timestamp())
        token = jwt.encode(
            {"email": "alice@example.com", "iat": now, "exp": now + 3600},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            self.service.validate(token)

    def test_non_uuid_user_id_claim(self):
        now = int(ISSUED_AT.timestamp())
        token = jwt.encode(
            {"user_id": "42", "email": "alice@example.com", "iat": now, "exp": now + 3600},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            self.service.validate(token)
