"""
Remote backend: relational tables accessed through SQLAlchemy.

Layout
------
- ``headers``: one row per user (upsert on ``user_id``).
- ``records``: one row per commitment, FK to the user's header.
- ``record_items``: exactly one row per record, inserted after its parent.

``save_records`` replaces the user's record set: rows whose id is no longer
present are deleted, existing ids are updated in place and new ids are
inserted. Every write commits once; any ``SQLAlchemyError`` rolls the
session back and surfaces as ``PersistenceError``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from commitments.exceptions import PersistenceError
from commitments.models import Commitment, CommitmentHeader, CommitmentItem
from commitments.schemas.records import Header, Record, RecordItem
from commitments.storage.base import EMPTY_RECORDS, StoragePort
from commitments.utils.constants import COMMITMENT_ATTRIBUTES, HEADER_FIELDS, ITEM_ELEMENTS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Row <-> schema conversion
# ---------------------------------------------------------------------------


def _naive_utc(value: datetime | None) -> datetime | None:
    """Strip tzinfo after converting to UTC; the ``DateTime`` columns are naive."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _row_to_record(row: Commitment) -> Record:
    data = {name: getattr(row, name) or "" for name in COMMITMENT_ATTRIBUTES}
    item_row = row.items[0] if row.items else None
    if item_row is None:
        item = RecordItem()
    else:
        item_data = {
            name: getattr(item_row, name) or ""
            for name in ITEM_ELEMENTS
            if name not in ("amount", "urgent_payment")
        }
        item = RecordItem(
            **item_data,
            amount=float(item_row.amount or 0),
            urgent_payment=bool(item_row.urgent_payment),
        )
    created_at = row.created_at
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return Record(
        id=row.id,
        sequence_number=row.sequence_number,
        item=item,
        created_at=created_at,
        **data,
    )


def _apply_record(row: Commitment, record: Record) -> None:
    row.sequence_number = record.sequence_number
    for name in COMMITMENT_ATTRIBUTES:
        setattr(row, name, getattr(record, name))
    if record.created_at is not None:
        row.created_at = _naive_utc(record.created_at)


def _apply_item(item_row: CommitmentItem, item: RecordItem) -> None:
    for name in ITEM_ELEMENTS:
        setattr(item_row, name, getattr(item, name))


class RemoteStorage(StoragePort):
    """``StoragePort`` over the ``headers`` / ``records`` / ``record_items`` tables.

    Args:
        db: Active SQLAlchemy session; the caller owns its lifetime.
        user_id: Opaque owner identifier.
        header_defaults: See ``StoragePort``.
    """

    def __init__(
        self,
        db: Session,
        user_id: str,
        header_defaults: Header | None = None,
    ) -> None:
        super().__init__(user_id, header_defaults)
        self.db = db

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------

    def _header_row(self) -> CommitmentHeader | None:
        return (
            self.db.query(CommitmentHeader)
            .filter(CommitmentHeader.user_id == self.user_id)
            .first()
        )

    def load_header(self) -> Header:
        try:
            row = self._header_row()
        except SQLAlchemyError as exc:
            logger.error("Error loading header for user=%s: %s", self.user_id, exc)
            raise PersistenceError(f"Could not load header: {exc}") from exc
        if row is None:
            return self.default_header()
        return Header(**{name: getattr(row, name) or "" for name in HEADER_FIELDS})

    def save_header(self, header: Header) -> None:
        try:
            row = self._header_row()
            if row is None:
                row = CommitmentHeader(user_id=self.user_id)
                self.db.add(row)
            for name in HEADER_FIELDS:
                setattr(row, name, getattr(header, name))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error saving header for user=%s: %s", self.user_id, exc)
            raise PersistenceError(f"Could not save header: {exc}") from exc

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def load_records(self) -> list[Record]:
        try:
            rows = (
                self.db.query(Commitment)
                .filter(Commitment.user_id == self.user_id)
                .order_by(
                    Commitment.sequence_number.is_(None),
                    Commitment.sequence_number,
                    Commitment.created_at,
                )
                .all()
            )
        except SQLAlchemyError as exc:
            logger.error("Error loading records for user=%s: %s", self.user_id, exc)
            raise PersistenceError(f"Could not load records: {exc}") from exc
        if not rows:
            return list(EMPTY_RECORDS)
        return [_row_to_record(row) for row in rows]

    def save_records(self, records: list[Record]) -> None:
        try:
            header = self._header_row()
            if header is None:
                header = CommitmentHeader(user_id=self.user_id)
                for name in HEADER_FIELDS:
                    setattr(header, name, getattr(self.default_header(), name))
                self.db.add(header)
                self.db.flush()

            existing = {
                row.id: row
                for row in self.db.query(Commitment)
                .filter(Commitment.user_id == self.user_id)
                .all()
            }
            wanted = {record.id for record in records}

            for record_id, row in existing.items():
                if record_id not in wanted:
                    self.db.delete(row)

            for record in records:
                row = existing.get(record.id)
                if row is None:
                    row = Commitment(id=record.id, user_id=self.user_id, header_id=header.id)
                    _apply_record(row, record)
                    self.db.add(row)
                    # parent row must exist before its item
                    self.db.flush()
                    item_row = CommitmentItem(record_id=row.id)
                    _apply_item(item_row, record.item)
                    self.db.add(item_row)
                else:
                    _apply_record(row, record)
                    row.header_id = header.id
                    if row.items:
                        _apply_item(row.items[0], record.item)
                    else:
                        item_row = CommitmentItem(record_id=row.id)
                        _apply_item(item_row, record.item)
                        self.db.add(item_row)

            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error saving records for user=%s: %s", self.user_id, exc)
            raise PersistenceError(f"Could not save records: {exc}") from exc
        logger.debug("Saved %d records for user=%s", len(records), self.user_id)

    def clear_all(self) -> None:
        try:
            rows = self.db.query(Commitment).filter(Commitment.user_id == self.user_id).all()
            for row in rows:
                self.db.delete(row)
            self.db.flush()
            self.db.query(CommitmentHeader).filter(
                CommitmentHeader.user_id == self.user_id
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error clearing data for user=%s: %s", self.user_id, exc)
            raise PersistenceError(f"Could not clear data: {exc}") from exc
        logger.info("Remote data cleared for user=%s", self.user_id)
