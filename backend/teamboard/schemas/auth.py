from __future__ import annotations

from pydantic import EmailStr, field_validator
from sqlmodel import Field, SQLModel

from teamboard.schemas.users import UserRead, check_password_strength


class RegisterRequest(SQLModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return check_password_strength(value)


class LoginRequest(SQLModel):
    email: EmailStr
    password: str = Field(min_length=1)


class PasswordUpdate(SQLModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)

    @field_validator("new_password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return check_password_strength(value)


class AuthResult(SQLModel):
    user: UserRead
    access_token: str
    token_type: str = "bearer"


class TokenCheck(SQLModel):
    valid: bool
    user_id: int
    role: str
