"""
Notekeep Backend: Auth Flow Service
=====================================

What:  Registration, login, bearer-token authentication and profile lookup.
Why:   Keeps credential handling in one place: routes never see a password
       hash, and every failure maps to a tagged error.
How:   Passwords are hashed with bcrypt on a worker thread so the event loop
       keeps serving other requests during the deliberately slow hash.
       Tokens come from TokenService.
Who:   /register, /login and /me routes, plus the `get_current_user`
       dependency that guards every protected route.

Security properties:
    - Unknown email and wrong password raise the same InvalidCredentialsError.
      For unknown emails a comparison against a dummy hash still runs, so
      response time does not reveal whether the account exists.
    - Duplicate emails are detected from the unique constraint violation on
      insert. There is no read-before-write check to race against.
    - bcrypt only reads the first 72 bytes of its input. Longer passwords are
      pre-hashed with SHA-256 so every byte counts.
"""

import asyncio
import hashlib
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notekeep.exceptions import (
    DuplicateEmailError,
    HashingError,
    InvalidCredentialsError,
    InvalidTokenError,
    PersistenceError,
    SigningError,
    TokenIssuanceError,
    UnauthorizedError,
)
from notekeep.models.user import User
from notekeep.schemas.auth import AuthResponse, UserResponse
from notekeep.services.token_service import TokenService

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity attached to `request.state.user` for protected routes."""

    user_id: uuid.UUID
    email: str


def _password_bytes(password: str) -> bytes:
    raw = password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        return hashlib.sha256(raw).hexdigest().encode("utf-8")
    return raw


class AuthService:
    """
    Args:
        token_service: Issues and validates session tokens
        bcrypt_rounds: bcrypt cost factor, fixed for the process
    """

    def __init__(self, token_service: TokenService, bcrypt_rounds: int = 12):
        self._tokens = token_service
        self._rounds = bcrypt_rounds
        # Compared against when the email is unknown
        self._dummy_hash = bcrypt.hashpw(b"notekeep-dummy-password", bcrypt.gensalt(rounds=bcrypt_rounds))

    # ── Password hashing ──────────────────────────────────────────────────

    async def hash_password(self, password: str) -> str:
        try:
            hashed = await asyncio.to_thread(
                bcrypt.hashpw, _password_bytes(password), bcrypt.gensalt(rounds=self._rounds)
            )
        except (ValueError, TypeError) as e:
            logger.error("Password hashing failed: %s", e)
            raise HashingError(context={"error": str(e)}) from e
        return hashed.decode("utf-8")

    async def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return await asyncio.to_thread(
                bcrypt.checkpw, _password_bytes(password), password_hash.encode("utf-8")
            )
        except ValueError:
            # Stored hash is not a bcrypt string
            logger.warning("Stored password hash could not be parsed")
            return False

    def _issue_token(self, user: User) -> str:
        try:
            return self._tokens.issue(user.id, user.email)
        except SigningError as e:
            raise TokenIssuanceError(context=e.context) from e

    # ── Flows ─────────────────────────────────────────────────────────────

    async def register(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """
        Create an account and log it in.

        Raises:
            DuplicateEmailError: The email is already registered
            HashingError, PersistenceError, TokenIssuanceError: Internal faults
        """
        password_hash = await self.hash_password(password)

        user = User(email=email, password_hash=password_hash)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.info("Registration rejected: email already exists")
            raise DuplicateEmailError(context={"constraint": str(e.orig)}) from e
        except SQLAlchemyError as e:
            logger.error("Failed to create user: %s", e)
            raise PersistenceError(context={"operation": "register", "error": str(e)}) from e

        await db.refresh(user)
        token = self._issue_token(user)

        logger.info("User registered: %s", user.id)
        return AuthResponse(token=token, user=UserResponse.model_validate(user))

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """
        Exchange credentials for a token.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password (indistinguishable)
        """
        try:
            result = await db.execute(select(User).where(User.email == email))
            user: Optional[User] = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to look up user: %s", e)
            raise PersistenceError(context={"operation": "login", "error": str(e)}) from e

        if user is None:
            await self.verify_password(password, self._dummy_hash.decode("utf-8"))
            raise InvalidCredentialsError()

        if not await self.verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        token = self._issue_token(user)
        logger.debug("User logged in: %s", user.id)
        return AuthResponse(token=token, user=UserResponse.model_validate(user))

    def authenticate(self, authorization: Optional[str]) -> AuthenticatedUser:
        """
        Resolve an `Authorization` header value to the caller's identity.

        The header must be exactly `Bearer <token>`: two parts separated by a
        single space.

        Raises:
            UnauthorizedError: Header missing, malformed, or token invalid
        """
        if not authorization:
            raise UnauthorizedError("Authorization header required")

        parts = authorization.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
            raise UnauthorizedError("Invalid authorization header format")

        try:
            claims = self._tokens.validate(parts[1])
        except InvalidTokenError as e:
            raise UnauthorizedError("Invalid or expired token", context=e.context) from e

        return AuthenticatedUser(user_id=claims.user_id, email=claims.email)

    async def get_profile(self, db: AsyncSession, user_id: uuid.UUID) -> UserResponse:
        """
        Raises:
            UnauthorizedError: The token's user no longer exists
        """
        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load user %s: %s", user_id, e)
            raise PersistenceError(context={"operation": "get_profile", "error": str(e)}) from e

        if user is None:
            raise UnauthorizedError("User not found")
        return UserResponse.model_validate(user)
