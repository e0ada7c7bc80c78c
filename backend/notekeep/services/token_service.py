"""
Notekeep Backend: Session Token Service
=========================================

What:  Issues and validates signed, time-limited session tokens (JWT, HS256).
Why:   Login and registration hand the client a bearer token; every protected
       request proves its identity with it. Nothing is stored server-side.
How:   python-jose signs `{user_id, email, iat, exp}` with the configured
       secret. Expiry is checked here against an injectable clock rather
       than by the library, so tests can move time.
Who:   AuthService (issue on register/login, validate on authenticate).

Tokens cannot be revoked or refreshed. A token is good until `exp`.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import JWTError, jwt
from jose.exceptions import JOSEError

from notekeep.exceptions import InvalidTokenError, SigningError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a validated token."""

    user_id: uuid.UUID
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """
    Signs and verifies session tokens with one process-wide secret.

    Args:
        secret:    HMAC key; built once at startup from settings
        algorithm: JWT algorithm (HS256)
        ttl:       Token lifetime (24 hours)
        clock:     Returns the current UTC time; replaced in tests
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=24),
        clock: Optional[Clock] = None,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl
        self._clock = clock or utc_now

    def issue(self, user_id: uuid.UUID, email: str) -> str:
        """
        Sign a new token for `user_id`.

        Raises:
            SigningError: The signing primitive failed
        """
        now = self._clock()
        claims = {
            "user_id": str(user_id),
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        try:
            return jwt.encode(claims, self._secret, algorithm=self._algorithm)
        except JOSEError as e:
            logger.error("Token signing failed: %s", e)
            raise SigningError(context={"error": str(e)}) from e

    def validate(self, token: str) -> TokenClaims:
        """
        Verify signature, structure and expiry.

        Raises:
            InvalidTokenError: Bad signature, malformed token or claims, or
                the clock is past `exp`
        """
        try:
            # Expiry is checked below against self._clock
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as e:
            raise InvalidTokenError(context={"reason": str(e)}) from e

        try:
            user_id = uuid.UUID(str(payload["user_id"]))
            email = payload["email"]
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError(context={"reason": "malformed claims"}) from e

        if not isinstance(email, str):
            raise InvalidTokenError(context={"reason": "malformed claims"})

        if self._clock() > expires_at:
            raise InvalidTokenError(
                message="Token has expired",
                context={"expired_at": expires_at.isoformat()},
            )

        return TokenClaims(
            user_id=user_id,
            email=email,
            issued_at=issued_at,
            expires_at=expires_at,
        )
