"""
XML export for the external financial system.

Produces the attribute-based ``<commitments>`` document::

    <?xml version="1.0" encoding="UTF-8"?>
    <commitments cumulative_reason_code="PO07" budget_year="2026" ...>
      <commitment sequence_number="1" reason_code="..." external_id="1-INV-7" ...>
        <item>
          <budget_user_id>...</budget_user_id>
          ...
          <amount>1500.5</amount>
          ...
          <urgent_payment>false</urgent_payment>
          <posting_account>...</posting_account>
        </item>
      </commitment>
    </commitments>

The document is built by templating rather than through a DOM so that
attribute order, indentation and the ``&apos;`` entity match what the
receiving system expects byte for byte. No schema validation is performed.
"""

from __future__ import annotations

import logging
from datetime import date
from xml.sax.saxutils import escape

from commitments.schemas.records import Header, Record
from commitments.utils.constants import (
    COMMITMENT_ATTRIBUTES,
    HEADER_FIELDS,
    ITEM_ELEMENTS,
)

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

# ``escape`` already handles & < >; quotes are added for attribute values
_QUOTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(value: str) -> str:
    """Escape ``& < > " '`` as XML entities."""
    return escape(value, _QUOTE_ENTITIES)


def format_amount(value: float) -> str:
    """Render an amount the way it is typed: ``1500`` rather than ``1500.0``."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def composite_external_id(record: Record, index: int) -> str:
    """Return the external id written for the record at 0-based *index*.

    A blank ``external_id`` falls back to the 1-based row position; a
    non-blank invoice number is appended as ``"{id}-{invoice_number}"``.
    """
    external_id = record.external_id.strip() or str(index + 1)
    invoice_number = (record.invoice_number or "").strip()
    if invoice_number:
        external_id = f"{external_id}-{invoice_number}"
    return external_id


def _item_value(record: Record, element: str) -> str:
    value = getattr(record.item, element)
    if element == "amount":
        return format_amount(value)
    if element == "urgent_payment":
        return "true" if value else "false"
    return escape_xml(value)


def _commitment_xml(record: Record, index: int) -> str:
    attributes: list[str] = []
    if record.sequence_number is not None:
        attributes.append(f'sequence_number="{record.sequence_number}"')
    for name in COMMITMENT_ATTRIBUTES:
        value = (
            composite_external_id(record, index)
            if name == "external_id"
            else getattr(record, name)
        )
        attributes.append(f'{name}="{escape_xml(value)}"')

    lines = [f"  <commitment {' '.join(attributes)}>", "    <item>"]
    for element in ITEM_ELEMENTS:
        lines.append(f"      <{element}>{_item_value(record, element)}</{element}>")
    lines.append("    </item>")
    lines.append("  </commitment>")
    return "\n".join(lines)


def generate_xml(header: Header, records: list[Record]) -> str:
    """Serialise *header* and *records* into the commitments XML document.

    Args:
        header: Batch header written as root attributes.
        records: Records in export order; row positions are 1-based.

    Returns:
        The XML document as a string (no trailing newline).
    """
    root_attributes = " ".join(
        f'{name}="{escape_xml(getattr(header, name))}"' for name in HEADER_FIELDS
    )
    parts = [XML_DECLARATION, f"<commitments {root_attributes}>"]
    parts.extend(_commitment_xml(record, index) for index, record in enumerate(records))
    parts.append("</commitments>")

    logger.debug("generate_xml: %d commitments", len(records))
    return "\n".join(parts)


def export_filename(today: date | None = None) -> str:
    """Download filename, e.g. ``commitments_2026-10-17.xml``."""
    return f"commitments_{(today or date.today()).isoformat()}.xml"
