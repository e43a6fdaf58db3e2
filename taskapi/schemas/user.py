from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

# Profile fields a user may change through PATCH /users/me
ALLOWED_USER_UPDATES = ("name", "email", "password", "age")

MIN_PASSWORD_LENGTH = 7


def _clean_name(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValueError("name cannot be empty")
    return value.strip()


def _clean_password(value: Optional[str]) -> str:
    """Passwords are trimmed, at least 7 characters, and may not contain "password"."""
    if value is None:
        raise ValueError("password is required")
    value = value.strip()
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if "password" in value.lower():
        raise ValueError('password cannot contain "password"')
    return value


def _clean_email(value: Optional[str]) -> str:
    if value is None:
        raise ValueError("email is required")
    return value.strip().lower()


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    age: int = Field(default=0, ge=0)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v):
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return _clean_email(v)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v):
        return _clean_password(v)


class UserUpdate(BaseModel):
    """Partial profile update; fields that are sent may not be null."""
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0)

    class Config:
        extra = "forbid"

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v):
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return _clean_email(v)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v):
        return _clean_password(v)

    @field_validator("age")
    @classmethod
    def age_not_null(cls, v):
        if v is None:
            raise ValueError("age must be a non-negative integer")
        return v


class UserLogin(BaseModel):
    email: str
    password: str


class User(BaseModel):
    """Public profile; never carries password, tokens or avatar."""
    id: str
    name: str
    email: str
    age: int
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    user: User
    token: str
