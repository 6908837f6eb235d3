"""Pydantic schemas for signup, verification, login and the current user.

Learn: UserRead is built from auth.store.PublicAccount (or a User via
from_attributes); it has no field for the password hash or OTP columns,
so they can't leak into a response even by accident.
"""

import uuid
from typing import Annotated

from pydantic import EmailStr, Field, StringConstraints

from notekeeper.schemas.common import CamelModel

# Passwords are taken byte for byte; surrounding spaces are part of the secret.
Password = Annotated[str, StringConstraints(strip_whitespace=False)]


# ─── Requests ────────────────────────────────────────────


class SignupRequest(CamelModel):
    email: EmailStr
    password: Password = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)


class VerifyOtpRequest(CamelModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6)


class LoginRequest(CamelModel):
    email: EmailStr
    password: Password = Field(..., min_length=1)


class FederatedLoginRequest(CamelModel):
    token: str = Field(..., min_length=1)


class ResendOtpRequest(CamelModel):
    email: EmailStr


# ─── Responses ───────────────────────────────────────────


class UserRead(CamelModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    profile_picture: str = ""
    is_email_verified: bool


class SignupResponse(CamelModel):
    message: str
    user: UserRead


class AuthResponse(CamelModel):
    """Session token plus the profile it belongs to."""
    message: str
    token: str
    user: UserRead


class MeResponse(CamelModel):
    user: UserRead
