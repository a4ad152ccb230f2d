"""
Monthly activity log.

One entry per (user, month, year) accumulating how many records the user
created and modified and the total amount of the records involved. Only
managed users are tracked; activity of an unknown user id is ignored.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from pydantic import ValidationError

from commitments.schemas.user import MonthlyActivity
from commitments.storage import KeyValueStore
from commitments.utils.constants import KEY_MONTHLY_ACTIVITIES, KEY_USERS

logger = logging.getLogger(__name__)


def list_activities(store: KeyValueStore) -> list[MonthlyActivity]:
    """Return every stored activity entry, newest month first."""
    raw = store.get(KEY_MONTHLY_ACTIVITIES, [])
    try:
        activities = [MonthlyActivity.model_validate(entry) for entry in raw or []]
    except ValidationError as exc:
        logger.error("Stored activity log is invalid: %s", exc)
        return []
    return sorted(activities, key=lambda a: (a.year, a.month, a.username), reverse=True)


def log_activity(
    store: KeyValueStore,
    user_id: str,
    records_created: int = 0,
    records_modified: int = 0,
    total_amount: float = 0,
    now: datetime | None = None,
) -> MonthlyActivity | None:
    """Add the given counts to the user's entry for the current month.

    Returns:
        The updated entry, or ``None`` when *user_id* is not a managed user.
    """
    users = store.get(KEY_USERS, [])
    user = next((u for u in users or [] if u.get("id") == user_id), None)
    if user is None:
        return None

    now = now or datetime.now(timezone.utc)
    activities = store.get(KEY_MONTHLY_ACTIVITIES, []) or []
    entry = next(
        (
            a
            for a in activities
            if a.get("user_id") == user_id and a.get("month") == now.month and a.get("year") == now.year
        ),
        None,
    )
    if entry is None:
        entry = {
            "id": uuid.uuid4().hex,
            "user_id": user_id,
            "username": user.get("username", ""),
            "month": now.month,
            "year": now.year,
            "records_created": 0,
            "records_modified": 0,
            "total_amount": 0,
        }
        activities.append(entry)

    entry["records_created"] += records_created
    entry["records_modified"] += records_modified
    entry["total_amount"] = round(entry["total_amount"] + total_amount, 2)
    entry["last_activity"] = now.isoformat()

    store.set(KEY_MONTHLY_ACTIVITIES, activities)
    return MonthlyActivity.model_validate(entry)
