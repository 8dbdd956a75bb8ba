# Request/response schemas for the reference API.

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(CamelModel):
    email: str = ""
    password: str = ""


class SetupRequest(CamelModel):
    email: str = ""
    password: str = ""
    name: str = ""


class TokenRequest(CamelModel):
    token: str = ""


class PasswordResetRequest(CamelModel):
    email: str = ""


class ResetPasswordRequest(CamelModel):
    token: str = ""
    password: str = ""


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(default="", alias="currentPassword")
    new_password: str = Field(default="", alias="newPassword")


class UserOut(CamelModel):
    id: int
    email: str
    name: str
    role: str
    email_verified: bool = Field(alias="emailVerified")


class LoginResponse(CamelModel):
    user: UserOut
    expires_at: str = Field(alias="expiresAt")


class TeamIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=120)
    age_group: str | None = Field(default=None, alias="ageGroup")


class SuccessResponse(BaseModel):
    success: bool = True
    message: str | None = None
