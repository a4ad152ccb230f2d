"""
Storage port shared by the local and remote backends.

Every backend is bound to one opaque user id and exposes the same five
operations. Absent data is never an error: ``load_header`` returns the
documented default header and ``load_records`` returns ``EMPTY_RECORDS``
(as a fresh list).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Final

from commitments.schemas.records import Header, Record, default_header

EMPTY_RECORDS: Final[tuple[Record, ...]] = ()


class StoragePort(ABC):
    """Load / save contract for one user's header and record set.

    Args:
        user_id: Opaque owner identifier.
        header_defaults: Header returned when nothing is stored yet; when
            omitted, ``default_header()`` is used.
    """

    def __init__(self, user_id: str, header_defaults: Header | None = None) -> None:
        self.user_id = user_id
        self._header_defaults = header_defaults

    def default_header(self) -> Header:
        """The header returned by ``load_header`` when none is stored."""
        if self._header_defaults is not None:
            return self._header_defaults.model_copy()
        return default_header()

    @abstractmethod
    def load_header(self) -> Header:
        """Return the stored header or ``default_header()``."""

    @abstractmethod
    def save_header(self, header: Header) -> None:
        """Overwrite the stored header wholesale."""

    @abstractmethod
    def load_records(self) -> list[Record]:
        """Return the stored records, or an empty list."""

    @abstractmethod
    def save_records(self, records: list[Record]) -> None:
        """Replace the stored record set with *records*."""

    @abstractmethod
    def clear_all(self) -> None:
        """Delete the header and every record of this user."""
