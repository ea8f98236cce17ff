"""
API models and schemas for the FastAPI application.

Wire names are camelCase (``coverImage``, ``bookId``); the models accept
either the camelCase alias or the Python attribute name.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field, StringConstraints, validator
from pydantic.alias_generators import to_camel

# Passwords keep surrounding whitespace
Password = Annotated[str, StringConstraints(strip_whitespace=False)]


class UserRole(str, Enum):
    """User role enumeration."""
    USER = "user"
    ADMIN = "admin"


class RequestModel(BaseModel):
    """Base for request bodies."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }


def normalize_email(v: Optional[str]) -> Optional[str]:
    """Lower-case an already validated email address."""
    if v is None:
        return v
    return v.lower()


class RegisterRequest(RequestModel):
    """Registration payload."""
    username: str = Field(..., min_length=1, max_length=50, description="Unique username")
    email: EmailStr = Field(..., description="Unique email address")
    password: Password = Field(..., min_length=1, description="Plain text password, hashed before storage")
    name: str = Field(..., min_length=1, description="Display name")
    role: Optional[str] = Field(None, description="Requested role; ignored unless user or admin")

    @validator('email')
    def validate_email(cls, v):
        """Store addresses in lower case."""
        return normalize_email(v)

    def resolved_role(self) -> UserRole:
        """Requested role if it is a known one, otherwise the default."""
        if self.role in (UserRole.USER.value, UserRole.ADMIN.value):
            return UserRole(self.role)
        return UserRole.USER


class LoginRequest(RequestModel):
    """Login payload; missing fields are reported by the auth service."""
    email: Optional[str] = None
    password: Optional[Password] = None


class BookCreate(RequestModel):
    """Payload for creating a book. Ownership fields are set by the server."""
    title: str = Field(..., min_length=1, max_length=100, description="Book title")
    description: str = Field(..., min_length=1, description="Book description")
    cover_image: str = Field(..., min_length=1, description="Cover image URL")
    genre: str = Field(..., min_length=1, description="Genre")
    published_date: str = Field(..., min_length=1, description="Publication date")
    featured: bool = Field(False, description="Whether the book is featured")


class BookUpdate(RequestModel):
    """Partial book update. Derived and ownership fields are dropped."""
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    cover_image: Optional[str] = Field(None, min_length=1)
    genre: Optional[str] = Field(None, min_length=1)
    published_date: Optional[str] = Field(None, min_length=1)
    featured: Optional[bool] = None


class ReviewCreate(RequestModel):
    """Payload for submitting a review."""
    book_id: str = Field(..., min_length=1, description="Reviewed book")
    rating: int = Field(..., ge=1, le=5, description="Rating (1-5)")
    comment: str = Field(..., min_length=1, description="Review text")


class ReviewUpdate(RequestModel):
    """Partial review update."""
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=1)


class UserUpdate(RequestModel):
    """Allow-listed profile fields."""
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = None
    preferences: Optional[Dict[str, Any]] = None

    @validator('email')
    def validate_email(cls, v):
        """Store addresses in lower case."""
        return normalize_email(v)


class ReadingListRequest(RequestModel):
    """Book to add to a reading list."""
    book_id: str = Field(..., min_length=1)


class CurrentUser(BaseModel):
    """Identity attached to an authenticated request."""
    id: str
    username: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class ErrorResponse(BaseModel):
    """Error envelope."""
    success: bool = Field(False, description="Always false for errors")
    error: str = Field(..., description="User-safe error message")
    detail: Optional[str] = Field(None, description="Additional error details (debug only)")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
