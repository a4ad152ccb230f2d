"""Parser for the commitments XML wire format.

Reverses ``exporters.xml_exporter.generate_xml``. The parser is lenient about
missing attributes and item fields (they default to empty / zero) but strict
about structure: a malformed document, a missing ``<commitments>`` element or
a ``<commitment>`` without ``<item>`` aborts the whole parse with
``XmlParseError`` so that a failed import never commits partial state.
"""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import BinaryIO

from commitments.exceptions import XmlParseError
from commitments.schemas.records import Header, Record, RecordItem
from commitments.utils.constants import COMMITMENT_ATTRIBUTES, HEADER_FIELDS

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

_TEXT_ITEM_FIELDS: tuple[str, ...] = (
    "budget_user_id",
    "program_code",
    "project_code",
    "economic_classification_code",
    "source_of_funding_code",
    "function_code",
    "recording_account",
    "expected_payment_date",
    "posting_account",
)


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass
class ParsedXml:
    """Header and records recovered from one XML document.

    Attributes:
        header: Root-level attributes.
        records: One ``Record`` per ``<commitment>``, in document order, each
            with a freshly generated ``id``.
    """

    header: Header
    records: list[Record] = field(default_factory=list)

    @property
    def record_count(self) -> int:
        return len(self.records)

    def summary(self) -> str:
        """One-line human-readable summary of the parse run."""
        return (
            f"budget_user_id={self.header.budget_user_id or '-'} "
            f"records={self.record_count}"
        )


# ---------------------------------------------------------------------------
# Value helpers (mirror the loose numeric parsing of the receiving system)
# ---------------------------------------------------------------------------


def parse_leading_int(raw: str | None) -> int | None:
    """Parse the leading integer of *raw*; ``None`` if blank or not numeric."""
    if not raw:
        return None
    match = _LEADING_INT.match(raw)
    return int(match.group(1)) if match else None


def parse_leading_float(raw: str | None) -> float:
    """Parse the leading decimal of *raw*; ``0`` unless it starts with a finite number."""
    if not raw:
        return 0
    match = _LEADING_FLOAT.match(raw)
    if not match:
        return 0
    value = float(match.group(1))
    if not math.isfinite(value):
        return 0
    return value or 0


def _text(parent: ET.Element, tag: str) -> str:
    element = parent.find(f".//{tag}")
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def read_xml_upload(source: str | bytes | BinaryIO | Path) -> str:
    """Normalise an upload (bytes, path, text or file object) to a string."""
    if isinstance(source, Path):
        source = source.read_bytes()
    elif not isinstance(source, (str, bytes)):
        source = source.read()
    if isinstance(source, bytes):
        try:
            return source.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise XmlParseError("Failed to read file") from exc
    return source


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_item(item: ET.Element) -> RecordItem:
    values: dict[str, object] = {name: _text(item, name) for name in _TEXT_ITEM_FIELDS}
    values["amount"] = parse_leading_float(_text(item, "amount"))
    values["urgent_payment"] = _text(item, "urgent_payment").lower() == "true"
    return RecordItem(**values)


def parse_xml(content: str | bytes) -> ParsedXml:
    """Parse a commitments XML document.

    Args:
        content: The document as text or raw bytes.

    Returns:
        A ``ParsedXml`` with the header and the parsed records.

    Raises:
        XmlParseError: If the document is malformed, has no
            ``<commitments>`` element, or a ``<commitment>`` lacks ``<item>``.
    """
    if isinstance(content, bytes):
        content = read_xml_upload(content)
    try:
        document = ET.fromstring(content)
    except ET.ParseError as exc:
        logger.debug("parse_xml: malformed document: %s", exc)
        raise XmlParseError("Invalid XML format") from exc

    root = document if document.tag == "commitments" else document.find(".//commitments")
    if root is None:
        raise XmlParseError("Invalid XML structure - missing commitments element")

    header = Header(**{name: root.get(name, "") for name in HEADER_FIELDS})

    parsed_at = datetime.now(timezone.utc)
    records: list[Record] = []
    for index, commitment in enumerate(document.iter("commitment")):
        item = commitment.find(".//item")
        if item is None:
            raise XmlParseError(f"Missing item element in commitment {index + 1}")

        records.append(
            Record(
                sequence_number=parse_leading_int(commitment.get("sequence_number")),
                item=_parse_item(item),
                # keep document order when records are later renumbered
                created_at=parsed_at + timedelta(microseconds=index),
                **{name: commitment.get(name, "") for name in COMMITMENT_ATTRIBUTES},
            )
        )

    result = ParsedXml(header=header, records=records)
    logger.info("parse_xml: %s", result.summary())
    return result
