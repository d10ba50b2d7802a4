# Pydantic schemas for login, registration and password requests

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class LoginRequest(BaseModel):
    name: str
    password: str


class RegisterRequest(BaseModel):
    name: str
    password: str
    display_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("displayName", "display_name", "name_jp")
    )

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("password")
    @classmethod
    def _password_required(cls, v: str) -> str:
        if not v:
            raise ValueError("field is required")
        return v


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(validation_alias=AliasChoices("oldPassword", "old_password"))
    new_password: str = Field(validation_alias=AliasChoices("newPassword", "new_password"))


class PasswordReset(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def _required(cls, v: str) -> str:
        if not v:
            raise ValueError("field is required")
        return v
