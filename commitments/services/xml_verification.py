"""
Verification of an XML file, alone or against the stored record set.

Records are matched by key ``external_id or invoice_number or id``. For an
exported file the external id is the composite written by the exporter, so
comparing a fresh export with the set it came from only matches records
whose stored external id already had that form.
"""

from __future__ import annotations

from collections import Counter

from commitments.parsers.xml_parser import ParsedXml
from commitments.schemas.integrity import SequenceMismatch, XmlComparison, XmlSummary
from commitments.schemas.records import Header, Record
from commitments.services.validation import validate_all


def record_key(record: Record) -> str:
    return record.external_id or record.invoice_number or record.id


def has_sequence_gaps(records: list[Record]) -> bool:
    """True when the sorted sequence numbers are not consecutive.

    Unlike the integrity checker, a repeated value counts as a break here.
    """
    numbers = sorted(r.sequence_number for r in records if r.sequence_number is not None)
    return any(b != a + 1 for a, b in zip(numbers, numbers[1:]))


def summarize(parsed: ParsedXml) -> XmlSummary:
    counts = Counter(record_key(r) for r in parsed.records)
    return XmlSummary(
        total=parsed.record_count,
        urgent_count=sum(1 for r in parsed.records if r.item.urgent_payment),
        duplicates=[key for key, count in counts.items() if key and count > 1],
        sequence_gaps=has_sequence_gaps(parsed.records),
        validation_errors=validate_all(parsed.header, parsed.records),
    )


def compare_with_app(
    parsed: ParsedXml,
    app_header: Header,
    app_records: list[Record],
) -> XmlComparison:
    """Diff a parsed document against the caller's stored header and records.

    Returns:
        Counts on both sides, keys only present on one side, records whose
        sequence number differs between the file and storage, and whether
        the headers are equal.
    """
    parsed_keys = list(dict.fromkeys(record_key(r) for r in parsed.records))
    app_by_key: dict[str, Record] = {}
    for record in app_records:
        app_by_key.setdefault(record_key(record), record)
    parsed_set = set(parsed_keys)

    mismatches: list[SequenceMismatch] = []
    for record in parsed.records:
        match = app_by_key.get(record_key(record))
        if match is not None and match.sequence_number != record.sequence_number:
            mismatches.append(
                SequenceMismatch(
                    key=record_key(record),
                    parsed_sequence=record.sequence_number,
                    app_sequence=match.sequence_number,
                )
            )

    return XmlComparison(
        parsed_count=parsed.record_count,
        app_count=len(app_records),
        missing_in_app=[k for k in parsed_keys if k and k not in app_by_key],
        extra_in_app=[k for k in app_by_key if k and k not in parsed_set],
        sequence_mismatches=mismatches,
        header_match=parsed.header == app_header,
    )
