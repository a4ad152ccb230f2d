"""
Managed user accounts.

Users live as one JSON list under ``KEY_USERS`` in the global namespace of
the key-value store. Passwords are kept as bcrypt hashes only; the plain
value exists just long enough to go out in the welcome email.
"""

from __future__ import annotations

import logging
import re
import secrets
import string
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from pydantic import ValidationError

from commitments.schemas.user import User, UserCreate, UserUpdate
from commitments.services import email_service
from commitments.storage import KeyValueStore
from commitments.utils.constants import KEY_USERS
from commitments.utils.security import hash_password

logger = logging.getLogger(__name__)

_UPPER = string.ascii_uppercase
_LOWER = string.ascii_lowercase
_DIGITS = string.digits
_SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


def generate_password(length: int = 12) -> str:
    """Return a random password with at least one upper, lower, digit and symbol.

    Raises:
        ValueError: If *length* is smaller than 4.
    """
    if length < 4:
        raise ValueError("Password length must be at least 4")
    rng = secrets.SystemRandom()
    chars = [
        rng.choice(_UPPER),
        rng.choice(_LOWER),
        rng.choice(_DIGITS),
        rng.choice(_SYMBOLS),
    ]
    alphabet = _UPPER + _LOWER + _DIGITS + _SYMBOLS
    chars.extend(rng.choice(alphabet) for _ in range(length - len(chars)))
    rng.shuffle(chars)
    return "".join(chars)


def is_password_strong(password: str) -> tuple[bool, list[str]]:
    """Check the minimum password policy.

    Returns:
        ``(valid, errors)`` where *errors* lists every failed rule.
    """
    errors: list[str] = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one digit")
    return not errors, errors


# ---------------------------------------------------------------------------
# Storage helpers
# ---------------------------------------------------------------------------


def list_users(store: KeyValueStore) -> list[User]:
    raw = store.get(KEY_USERS, [])
    try:
        return [User.model_validate(entry) for entry in raw or []]
    except ValidationError as exc:
        logger.error("Stored user list is invalid: %s", exc)
        return []


def save_users(store: KeyValueStore, users: list[User]) -> None:
    store.set(KEY_USERS, [u.model_dump(mode="json") for u in users])


def get_user(store: KeyValueStore, user_id: str) -> User | None:
    return next((u for u in list_users(store) if u.id == user_id), None)


def find_by_username(store: KeyValueStore, username: str) -> User | None:
    return next((u for u in list_users(store) if u.username == username), None)


def _get_or_404(users: list[User], user_id: str) -> int:
    for index, user in enumerate(users):
        if user.id == user_id:
            return index
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"User '{user_id}' not found",
    )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def create_user(store: KeyValueStore, data: UserCreate) -> User:
    """Create a managed user and send the welcome email.

    Raises:
        HTTPException 409: If the username is already taken.
        HTTPException 422: If the password fails the strength policy.
    """
    users = list_users(store)
    if any(u.username == data.username for u in users):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Username '{data.username}' already exists",
        )
    strong, errors = is_password_strong(data.password)
    if not strong:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="; ".join(errors),
        )

    user = User(
        id=uuid.uuid4().hex,
        username=data.username,
        email=str(data.email),
        password_hash=hash_password(data.password),
        budget_user_id=data.budget_user_id,
        treasury=data.treasury,
        role=data.role,
        status=data.status,
        created_at=datetime.now(timezone.utc),
        pdf_display_name=data.pdf_display_name,
    )
    users.append(user)
    save_users(store, users)
    logger.info("User created: username='%s' role='%s'", user.username, user.role)

    if data.send_welcome_email:
        email_service.send_user_welcome_email(
            to_email=user.email,
            username=user.username,
            password=data.password,
            recipient_name=user.pdf_display_name,
        )
    return user


def update_user(store: KeyValueStore, user_id: str, updates: UserUpdate) -> User:
    """Apply the fields present in *updates* to one user.

    Raises:
        HTTPException 404: Unknown user id.
        HTTPException 422: New password fails the strength policy.
    """
    users = list_users(store)
    index = _get_or_404(users, user_id)
    changes = updates.model_dump(exclude_unset=True, exclude_none=True)

    password = changes.pop("password", None)
    if password is not None:
        strong, errors = is_password_strong(password)
        if not strong:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="; ".join(errors),
            )
        changes["password_hash"] = hash_password(password)
    if "email" in changes:
        changes["email"] = str(changes["email"])

    users[index] = users[index].model_copy(update=changes)
    save_users(store, users)
    logger.info("User updated: id=%s fields=%s", user_id, sorted(changes))
    return users[index]


def delete_user(store: KeyValueStore, user_id: str) -> None:
    """Remove a user account. Its records are left in storage."""
    users = list_users(store)
    index = _get_or_404(users, user_id)
    removed = users.pop(index)
    save_users(store, users)
    logger.info("User deleted: username='%s'", removed.username)


def touch_last_login(store: KeyValueStore, user_id: str) -> None:
    users = list_users(store)
    for index, user in enumerate(users):
        if user.id == user_id:
            users[index] = user.model_copy(update={"last_login": datetime.now(timezone.utc)})
            save_users(store, users)
            return
