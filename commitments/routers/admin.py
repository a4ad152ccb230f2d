"""
Administration router (admin sessions only).

Mounts under ``/api/admin``.

Endpoints
---------
GET    /users               List managed users
POST   /users               Create a user (sends the welcome email)
GET    /users/{user_id}     One user
PUT    /users/{user_id}     Update a user
DELETE /users/{user_id}     Delete a user
PUT    /credentials         Replace the admin username / password
GET    /activities          Monthly activity log
GET    /generate-password   Random strong password
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from commitments.schemas.auth import AdminCredentials
from commitments.schemas.common import MessageResponse
from commitments.schemas.user import (
    GeneratedPassword,
    MonthlyActivity,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from commitments.services import activity_service, auth_service, user_service
from commitments.services.auth_service import SessionContext, get_store, require_admin
from commitments.storage import KeyValueStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"], dependencies=[Depends(require_admin)])


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=list[UserResponse], summary="List users")
def list_users(
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> list[UserResponse]:
    return [UserResponse.model_validate(u) for u in user_service.list_users(store)]


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    responses={
        409: {"description": "Username already exists."},
        422: {"description": "Invalid email or weak password."},
    },
)
def create_user(
    data: UserCreate,
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> UserResponse:
    return UserResponse.model_validate(user_service.create_user(store, data))


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Get a user",
    responses={404: {"description": "Unknown user id."}},
)
def get_user(
    user_id: str,
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> UserResponse:
    user = user_service.get_user(store, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{user_id}' not found",
        )
    return UserResponse.model_validate(user)


@router.put(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Update a user",
    responses={404: {"description": "Unknown user id."}},
)
def update_user(
    user_id: str,
    updates: UserUpdate,
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> UserResponse:
    return UserResponse.model_validate(user_service.update_user(store, user_id, updates))


@router.delete(
    "/users/{user_id}",
    response_model=MessageResponse,
    summary="Delete a user",
    responses={404: {"description": "Unknown user id."}},
)
def delete_user(
    user_id: str,
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> MessageResponse:
    user_service.delete_user(store, user_id)
    return MessageResponse(message=f"User {user_id} deleted")


# ---------------------------------------------------------------------------
# Admin pair, activity, passwords
# ---------------------------------------------------------------------------


@router.put("/credentials", response_model=MessageResponse, summary="Change admin credentials")
def update_credentials(
    credentials: AdminCredentials,
    admin: Annotated[SessionContext, Depends(require_admin)],
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> MessageResponse:
    """Replace the admin pair. Open admin sessions stay valid."""
    auth_service.update_admin_credentials(store, credentials)
    logger.info("Admin credentials changed by '%s'", admin.username)
    return MessageResponse(message="Admin credentials updated")


@router.get("/activities", response_model=list[MonthlyActivity], summary="Monthly activity log")
def list_activities(
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> list[MonthlyActivity]:
    return activity_service.list_activities(store)


@router.get("/generate-password", response_model=GeneratedPassword, summary="Generate a password")
def generate_password(
    length: Annotated[int, Query(ge=8, le=64)] = 12,
) -> GeneratedPassword:
    password = user_service.generate_password(length)
    strong, _ = user_service.is_password_strong(password)
    return GeneratedPassword(password=password, is_strong=strong)
