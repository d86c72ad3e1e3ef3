from typing import Optional

from pydantic import BaseModel, Field, field_validator

from storefront_auth.schemas.auth import CamelModel


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip().lower()
        if cleaned and "@" not in cleaned:
            raise ValueError("Email address is invalid")
        return cleaned


class ProfileResponse(CamelModel):
    id: int
    phone: str
    name: str
    email: str
    location: str
    is_admin: bool
    profile_complete: bool


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class UserListResponse(BaseModel):
    items: list[ProfileResponse]
    pagination: Pagination
