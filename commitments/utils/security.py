"""
Credential and session-token primitives used by ``services.auth_service``.

Admin and managed-user passwords are kept only as bcrypt hashes in the
key-value store. A login produces a python-jose JWT whose claims point at
an entry of the active-session map: ``sub`` is the user id (``"admin"`` for
the admin pair), ``sid`` is the session key, and ``username`` and ``role``
are informational. A token is only honoured while its ``sid`` is still
present in that map, so logging out or suspending a user revokes it before
``exp``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from commitments.config import get_settings

logger = logging.getLogger(__name__)

# Claims every session token must carry
SESSION_CLAIMS: tuple[str, ...] = ("sub", "sid")

# bcrypt only looks at the first 72 bytes and recent releases refuse more
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Check *plain* against a stored hash; a blank or foreign hash never matches."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict[str, Any]) -> str:
    """Sign the bearer token handed out by ``open_session``.

    Args:
        data: Session claims. ``sub`` and ``sid`` are mandatory;
            ``open_session`` also passes ``username`` and ``role``.

    Returns:
        The compact JWT, valid for ``JWT_EXPIRATION_MINUTES``.

    Raises:
        ValueError: If a mandatory session claim is missing.
    """
    missing = [claim for claim in SESSION_CLAIMS if not data.get(claim)]
    if missing:
        raise ValueError(f"Session token needs claims: {', '.join(missing)}")

    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    claims = {
        **data,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> dict[str, Any]:
    """Return the claims of a session token signed by ``create_access_token``.

    Only the signature, ``exp`` and the session claims are checked here;
    whether the session is still open is decided by ``resolve_session``.

    Raises:
        ValueError: If the token is invalid, expired or lacks ``sub``/``sid``.
    """
    settings = get_settings()
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as exc:
        logger.debug("Session token rejected: %s", exc)
        raise ValueError("Invalid or expired token") from exc

    if any(not claims.get(claim) for claim in SESSION_CLAIMS):
        logger.debug("Session token without session claims")
        raise ValueError("Invalid or expired token")
    return claims
