"""
Shared Pydantic v2 schemas reused across routers.
"""

from __future__ import annotations

from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Generic message envelope for operations that do not return a resource.

    Attributes:
        message: Short human-readable result summary.
        detail: Optional extended information.
    """

    message: str
    detail: str | None = None
