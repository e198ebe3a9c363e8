from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exchanging camelCase keys on the wire"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# Users

class RegisterRequest(CamelModel):
    """Request model to register a new user"""
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=6, description="Plaintext password (min 6 chars)")
    first_name: Optional[str] = Field(None, description="Given name")
    last_name: Optional[str] = Field(None, description="Family name")


class LoginRequest(CamelModel):
    """Request model to log in with email and password"""
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=1, description="Plaintext password")


class UpdateProfileRequest(CamelModel):
    """Partial profile update; omitted fields are left unchanged"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class UserResponse(CamelModel):
    """User response without sensitive fields"""
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AuthResponse(CamelModel):
    """Returned by register and login"""
    message: str
    user: UserResponse
    token: str = Field(..., description="JWT bearer token")


# Notes

class NoteCreateRequest(CamelModel):
    """Create note request"""
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: int = Field(..., ge=1, le=5, strict=True, description="1 (lowest) to 5 (highest)")


class NoteUpdateRequest(CamelModel):
    """Update note request (partial)"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    priority: Optional[int] = Field(None, ge=1, le=5, strict=True)

    @field_validator("title", "description", "priority", mode="before")
    @classmethod
    def reject_null(cls, value):
        # omit a field to keep it; null is not a value for any of them
        if value is None:
            raise ValueError("Field may be omitted but not null")
        return value


class NoteResponse(CamelModel):
    """Note response model"""
    id: str
    user_id: str
    title: str
    description: str
    priority: int
    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseModel):
    message: str
