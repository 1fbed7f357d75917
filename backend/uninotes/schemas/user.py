"""
User request/response schemas. No passwords: sessions are identified by a registered email.
"""
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["user", "admin"]


class UserRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_name: str
    email: str
    faculty: str
    prodi: str
    role: Role = "user"
    is_super_admin: bool = False
    profile_picture: str | None = None

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RegisterRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_name: str
    email: EmailStr
    faculty: str
    prodi: str

    @field_validator("full_name")
    @classmethod
    def full_name_length(cls, v: str) -> str:
        v = (v or "").strip()
        if len(v) < 3:
            raise ValueError("Full name must be at least 3 characters")
        return v

    @field_validator("faculty", "prodi")
    @classmethod
    def required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Faculty and program of study are required")
        return v


class LoginRequest(BaseModel):
    email: EmailStr


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_name: str | None = None
    faculty: str | None = None
    prodi: str | None = None
    profile_picture: str | None = None


class UserListResponse(BaseModel):
    items: list[dict]
    total: int
