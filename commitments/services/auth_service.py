"""
Authentication and session handling.

Provides:
- ``initialize_auth`` that bootstraps the admin pair and the user list.
- ``authenticate_admin`` / ``authenticate_user`` that verify credentials.
- ``open_session`` / ``close_session`` that manage the active-session map.
- ``get_current_session`` FastAPI dependency that resolves the bearer
  token into a ``SessionContext``.
- ``require_admin`` dependency that restricts an endpoint to admin sessions.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from commitments.config import get_settings
from commitments.schemas.auth import AdminCredentials, LoginRequest
from commitments.schemas.user import User
from commitments.services import user_service
from commitments.storage import KeyValueStore, get_kv_store
from commitments.utils.constants import (
    KEY_ADMIN_CREDENTIALS,
    KEY_CURRENT_SESSIONS,
    KEY_USERS,
)
from commitments.utils.security import (
    create_access_token,
    hash_password,
    verify_password,
    verify_token,
)

logger = logging.getLogger(__name__)

ADMIN_USER_ID = "admin"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


@dataclass(frozen=True)
class SessionContext:
    """Who is acting; passed explicitly to every record operation."""

    user_id: str
    username: str
    is_admin: bool
    session_id: str
    budget_user_id: str = ""
    treasury: str = ""
    pdf_display_name: str = ""


def get_store() -> KeyValueStore:
    """FastAPI dependency returning the global key-value store."""
    return get_kv_store()


# ---------------------------------------------------------------------------
# Bootstrap and credentials
# ---------------------------------------------------------------------------


def initialize_auth(store: KeyValueStore) -> None:
    """Write the default admin pair and an empty user list when absent."""
    if store.get(KEY_ADMIN_CREDENTIALS) is None:
        settings = get_settings()
        store.set(
            KEY_ADMIN_CREDENTIALS,
            {
                "username": settings.DEFAULT_ADMIN_USERNAME,
                "password_hash": hash_password(settings.DEFAULT_ADMIN_PASSWORD),
            },
        )
        logger.info("Default admin credentials initialised for '%s'", settings.DEFAULT_ADMIN_USERNAME)
    if store.get(KEY_USERS) is None:
        store.set(KEY_USERS, [])


def authenticate_admin(store: KeyValueStore, credentials: LoginRequest) -> bool:
    stored = store.get(KEY_ADMIN_CREDENTIALS) or {}
    return credentials.username == stored.get("username") and verify_password(
        credentials.password, stored.get("password_hash", "")
    )


def update_admin_credentials(store: KeyValueStore, credentials: AdminCredentials) -> None:
    store.set(
        KEY_ADMIN_CREDENTIALS,
        {
            "username": credentials.username,
            "password_hash": hash_password(credentials.password),
        },
    )
    logger.info("Admin credentials updated; new username='%s'", credentials.username)


def authenticate_user(store: KeyValueStore, credentials: LoginRequest) -> User | None:
    """Verify a managed user's credentials.

    Only ``active`` accounts may log in. On success ``last_login`` is
    updated. Returns ``None`` for unknown users, inactive accounts and
    wrong passwords alike so the caller can render one fixed message.
    """
    user = user_service.find_by_username(store, credentials.username)
    if user is None or user.status != "active":
        logger.debug("authenticate_user: unknown or inactive user '%s'", credentials.username)
        return None
    if not verify_password(credentials.password, user.password_hash):
        logger.debug("authenticate_user: wrong password for user '%s'", credentials.username)
        return None

    user_service.touch_last_login(store, user.id)
    return user


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def _prune_expired(sessions: dict, now: datetime) -> dict:
    """Keep only sessions opened within the token lifetime."""
    cutoff = now - timedelta(minutes=get_settings().JWT_EXPIRATION_MINUTES)
    kept = {}
    for session_id, entry in sessions.items():
        try:
            created_at = datetime.fromisoformat(entry.get("created_at", ""))
        except (AttributeError, TypeError, ValueError):
            continue
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if created_at >= cutoff:
            kept[session_id] = entry
    return kept


def open_session(store: KeyValueStore, user: User | None = None) -> tuple[SessionContext, str]:
    """Register a new session and sign its bearer token.

    Args:
        store: Global key-value store.
        user: The managed user; ``None`` opens an admin session.

    Returns:
        The session context and its signed token.
    """
    session_id = uuid.uuid4().hex
    if user is None:
        admin_name = (store.get(KEY_ADMIN_CREDENTIALS) or {}).get("username", ADMIN_USER_ID)
        context = SessionContext(
            user_id=ADMIN_USER_ID,
            username=admin_name,
            is_admin=True,
            session_id=session_id,
        )
    else:
        context = SessionContext(
            user_id=user.id,
            username=user.username,
            is_admin=user.role == "admin",
            session_id=session_id,
            budget_user_id=user.budget_user_id,
            treasury=user.treasury,
            pdf_display_name=user.pdf_display_name,
        )

    now = datetime.now(timezone.utc)
    sessions = _prune_expired(store.get(KEY_CURRENT_SESSIONS, {}) or {}, now)
    sessions[session_id] = {
        "user_id": context.user_id,
        "username": context.username,
        "is_admin": context.is_admin,
        "created_at": now.isoformat(),
    }
    store.set(KEY_CURRENT_SESSIONS, sessions)

    token = create_access_token(
        {
            "sub": context.user_id,
            "username": context.username,
            "role": "admin" if context.is_admin else "user",
            "sid": session_id,
        }
    )
    return context, token


def close_session(store: KeyValueStore, session_id: str) -> None:
    sessions = store.get(KEY_CURRENT_SESSIONS, {}) or {}
    if sessions.pop(session_id, None) is not None:
        store.set(KEY_CURRENT_SESSIONS, sessions)


def resolve_session(store: KeyValueStore, token: str) -> SessionContext | None:
    """Turn a bearer token into its live session context, or ``None``."""
    try:
        payload = verify_token(token)
    except ValueError:
        return None

    user_id = payload.get("sub")
    session_id = payload.get("sid")
    if not user_id or not session_id:
        return None

    sessions = store.get(KEY_CURRENT_SESSIONS, {}) or {}
    stored = sessions.get(session_id)
    if stored is None or stored.get("user_id") != user_id:
        return None

    if user_id == ADMIN_USER_ID:
        return SessionContext(
            user_id=user_id,
            username=stored.get("username", ADMIN_USER_ID),
            is_admin=True,
            session_id=session_id,
        )

    user = user_service.get_user(store, user_id)
    if user is None or user.status != "active":
        return None
    return SessionContext(
        user_id=user.id,
        username=user.username,
        is_admin=user.role == "admin",
        session_id=session_id,
        budget_user_id=user.budget_user_id,
        treasury=user.treasury,
        pdf_display_name=user.pdf_display_name,
    )


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------


def get_current_session(
    token: Annotated[str, Depends(oauth2_scheme)],
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> SessionContext:
    """Resolve the caller's session from the ``Authorization`` header.

    Raises:
        HTTPException 401: Token missing, invalid, expired, logged out, or
            the account is no longer active.
    """
    context = resolve_session(store, token)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return context


def require_admin(
    session: Annotated[SessionContext, Depends(get_current_session)],
) -> SessionContext:
    """Dependency that only lets admin sessions through.

    Raises:
        HTTPException 403: The session is not an admin session.
    """
    if not session.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return session
