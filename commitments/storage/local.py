"""Local backend: the user's data as JSON blobs under fixed keys."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from commitments.schemas.records import Header, Record
from commitments.storage.base import EMPTY_RECORDS, StoragePort
from commitments.storage.kv_store import KeyValueStore
from commitments.utils.constants import (
    KEY_HEADER,
    KEY_PREFILL_ENABLED,
    KEY_RECORDS,
    USER_DATA_KEYS,
)

logger = logging.getLogger(__name__)


class LocalStorage(StoragePort):
    """``StoragePort`` over a per-user namespace of a ``KeyValueStore``.

    Also keeps the user's prefill preference, which only exists locally.
    """

    def __init__(
        self,
        store: KeyValueStore,
        user_id: str,
        header_defaults: Header | None = None,
    ) -> None:
        super().__init__(user_id, header_defaults)
        self._store = store.scoped(user_id)

    def load_header(self) -> Header:
        saved = self._store.get(KEY_HEADER)
        if saved is None:
            return self.default_header()
        try:
            return Header.model_validate(saved)
        except ValidationError as exc:
            logger.error("Stored header for user=%s is invalid: %s", self.user_id, exc)
            return self.default_header()

    def save_header(self, header: Header) -> None:
        self._store.set(KEY_HEADER, header.model_dump(mode="json"))

    def load_records(self) -> list[Record]:
        saved = self._store.get(KEY_RECORDS)
        if not isinstance(saved, list):
            return list(EMPTY_RECORDS)
        try:
            return [Record.model_validate(raw) for raw in saved]
        except ValidationError as exc:
            logger.error("Stored records for user=%s are invalid: %s", self.user_id, exc)
            return list(EMPTY_RECORDS)

    def save_records(self, records: list[Record]) -> None:
        self._store.set(KEY_RECORDS, [r.model_dump(mode="json") for r in records])

    def clear_all(self) -> None:
        for key in USER_DATA_KEYS:
            self._store.delete(key)
        logger.info("Local data cleared for user=%s", self.user_id)

    # ------------------------------------------------------------------
    # Prefill preference
    # ------------------------------------------------------------------

    def load_prefill_enabled(self) -> bool:
        saved = self._store.get(KEY_PREFILL_ENABLED)
        return saved if isinstance(saved, bool) else True

    def save_prefill_enabled(self, enabled: bool) -> None:
        self._store.set(KEY_PREFILL_ENABLED, enabled)
