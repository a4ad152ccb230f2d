"""
Pydantic v2 schemas for managed user accounts and their monthly activity.

``User`` is the stored shape (with the bcrypt hash); ``UserResponse`` is
what the admin endpoints return and never includes the hash.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["admin", "user"]
Status = Literal["active", "pending", "suspended"]


class User(BaseModel):
    """A managed user account as kept in the key-value store."""

    id: str
    username: str
    email: str
    password_hash: str
    budget_user_id: str = ""
    treasury: str = ""
    role: Role = "user"
    status: Status = "active"
    created_at: datetime
    last_login: datetime | None = None
    pdf_display_name: str = ""


class UserCreate(BaseModel):
    """Payload of ``POST /api/admin/users``."""

    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    budget_user_id: str = ""
    treasury: str = ""
    role: Role = "user"
    status: Status = "active"
    pdf_display_name: str = ""
    send_welcome_email: bool = True

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "username": "mmarkovic",
                "email": "m.markovic@example.com",
                "password": "Secret123",
                "budget_user_id": "01234",
                "treasury": "604",
                "role": "user",
                "status": "active",
                "pdf_display_name": "Marko Markovic",
            }
        }
    )


class UserUpdate(BaseModel):
    """Partial update of a managed user; omitted fields are left unchanged."""

    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)
    budget_user_id: str | None = None
    treasury: str | None = None
    role: Role | None = None
    status: Status | None = None
    pdf_display_name: str | None = None


class UserResponse(BaseModel):
    """User account as returned by the admin endpoints."""

    id: str
    username: str
    email: str
    budget_user_id: str
    treasury: str
    role: Role
    status: Status
    created_at: datetime
    last_login: datetime | None = None
    pdf_display_name: str = ""

    model_config = ConfigDict(from_attributes=True)


class MonthlyActivity(BaseModel):
    """Accumulated record activity of one user in one calendar month."""

    id: str
    user_id: str
    username: str
    month: int = Field(..., ge=1, le=12)
    year: int
    records_created: int = 0
    records_modified: int = 0
    total_amount: float = 0
    last_activity: datetime


class GeneratedPassword(BaseModel):
    password: str
    is_strong: bool
