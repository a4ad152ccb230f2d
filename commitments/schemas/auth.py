"""
Pydantic v2 schemas for the authentication endpoints.

Covers both login payloads, the bearer token response, the admin
credential update and the session context returned by ``GET /api/auth/me``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Payload accepted by ``POST /api/auth/login`` and ``/admin/login``."""

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=128)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "username": "mmarkovic",
                "password": "Secret123",
            }
        }
    )


class TokenResponse(BaseModel):
    """Response body returned after a successful login.

    Attributes:
        access_token: Signed JWT for the ``Authorization: Bearer`` header.
        token_type: Always ``"bearer"``.
        username: Login name of the session owner.
        is_admin: Whether the session was opened through the admin login.
    """

    access_token: str
    token_type: str = "bearer"
    username: str
    is_admin: bool = False


class AdminCredentials(BaseModel):
    """New admin pair submitted to ``PUT /api/admin/credentials``."""

    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=8, max_length=128)


class SessionResponse(BaseModel):
    """Public view of the caller's session context."""

    user_id: str
    username: str
    is_admin: bool
    session_id: str
    budget_user_id: str = ""
    treasury: str = ""
    pdf_display_name: str = ""
