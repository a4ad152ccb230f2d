"""
Authentication router.

Mounts under ``/api/auth`` (prefix set in ``main.py``).

Endpoints:
    POST /login        Managed-user login (OAuth2 form), returns a JWT.
    POST /admin/login  Admin login with the admin pair, returns a JWT.
    POST /logout       Close the caller's session.
    GET  /me           Session context of the caller.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from commitments.schemas.auth import LoginRequest, SessionResponse, TokenResponse
from commitments.schemas.common import MessageResponse
from commitments.services import auth_service
from commitments.services.auth_service import SessionContext, get_current_session, get_store
from commitments.storage import KeyValueStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

_LOGIN_FAILED = "Invalid username or password, or the account is not active"
_ADMIN_LOGIN_FAILED = "Invalid admin credentials"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ---------------------------------------------------------------------------
# POST /login
# ---------------------------------------------------------------------------


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="User login",
    responses={
        200: {"description": "Authenticated; the body carries the JWT."},
        401: {"description": "Wrong credentials or inactive account."},
    },
)
def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> TokenResponse:
    """Authenticate a managed user and open a session.

    Only ``active`` accounts can log in; ``pending`` and ``suspended``
    accounts get the same 401 as a wrong password.
    """
    credentials = LoginRequest(username=form_data.username, password=form_data.password)
    user = auth_service.authenticate_user(store, credentials)
    if user is None:
        logger.warning("Failed login attempt for username='%s'", form_data.username)
        raise _unauthorized(_LOGIN_FAILED)

    context, token = auth_service.open_session(store, user)
    logger.info("Successful login for username='%s'", user.username)
    return TokenResponse(access_token=token, username=context.username, is_admin=context.is_admin)


# ---------------------------------------------------------------------------
# POST /admin/login
# ---------------------------------------------------------------------------


@router.post(
    "/admin/login",
    response_model=TokenResponse,
    summary="Admin login",
    responses={
        200: {"description": "Authenticated as administrator."},
        401: {"description": "Wrong admin credentials."},
    },
)
def admin_login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> TokenResponse:
    credentials = LoginRequest(username=form_data.username, password=form_data.password)
    if not auth_service.authenticate_admin(store, credentials):
        logger.warning("Failed admin login attempt for username='%s'", form_data.username)
        raise _unauthorized(_ADMIN_LOGIN_FAILED)

    context, token = auth_service.open_session(store)
    logger.info("Successful admin login for username='%s'", context.username)
    return TokenResponse(access_token=token, username=context.username, is_admin=True)


# ---------------------------------------------------------------------------
# POST /logout
# ---------------------------------------------------------------------------


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
)
def logout(
    session: Annotated[SessionContext, Depends(get_current_session)],
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> MessageResponse:
    """Close the caller's session; its token stops working immediately."""
    auth_service.close_session(store, session.session_id)
    logger.info("Logout for username='%s'", session.username)
    return MessageResponse(message="Logged out")


# ---------------------------------------------------------------------------
# GET /me
# ---------------------------------------------------------------------------


@router.get(
    "/me",
    response_model=SessionResponse,
    summary="Current session",
    responses={401: {"description": "Token missing, invalid or expired."}},
)
def get_me(
    session: Annotated[SessionContext, Depends(get_current_session)],
) -> SessionResponse:
    return SessionResponse(
        user_id=session.user_id,
        username=session.username,
        is_admin=session.is_admin,
        session_id=session.session_id,
        budget_user_id=session.budget_user_id,
        treasury=session.treasury,
        pdf_display_name=session.pdf_display_name,
    )
