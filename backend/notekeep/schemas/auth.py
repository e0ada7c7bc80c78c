"""
Notekeep Backend: Auth Schemas
================================

What:  Request and response bodies for /register, /login and /me.
Why:   The password only ever appears in request models; responses carry the
       user's public fields and the session token.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """
    Email format is checked loosely (non-empty, contains "@"); the address
    is stored exactly as sent.
    """
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6, max_length=1024)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1024)


class UserResponse(BaseModel):
    id: uuid.UUID = Field(description="User identifier")
    email: str = Field(description="Login email")
    created_at: datetime = Field(description="Registration time (UTC)")

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by both /register (201) and /login (200)."""
    token: str = Field(description="Bearer token, valid for 24 hours")
    user: UserResponse
