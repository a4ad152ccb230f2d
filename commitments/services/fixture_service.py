"""
Synthetic data sets for exercising the XML codec end to end.

``build_scenarios`` replays a fixed sequence of bulk operations (mark all
urgent, reset, bulk change, delete and renumber, add and renumber) on a
generated record set, using the same services as the API. The results are
written through ``generate_xml`` and checked back with ``validate_fixture``.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from commitments.exporters.xml_exporter import generate_xml
from commitments.parsers.xml_parser import parse_xml, read_xml_upload
from commitments.schemas.records import BulkEditData, Header, Record, RecordItem
from commitments.services.record_service import apply_bulk_edit
from commitments.services.sequence_service import renumber
from commitments.services.xml_verification import has_sequence_gaps

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_INVOICE_TYPES = ("Invoice", "Urgent invoice", "Correction", "Proforma")
_PAYMENT_BASIS = (
    "Completed works",
    "Service fees",
    "Repairs",
    "Consulting services",
    "Material procurement",
)
_RECIPIENTS = ("Elektro Servis d.o.o.", "Gradnja Plus", "Info Tech", "Komunalac", "Papirus")
_PLACES = ("Beograd", "Novi Sad", "Nis", "Kragujevac", "Subotica")

DELETED_SEQUENCES: frozenset[int] = frozenset({1, 5, 10, *range(40, 51)})

SCENARIO_FILES: tuple[str, ...] = (
    "TEST_001_initial_300.xml",
    "TEST_002_all_urgent.xml",
    "TEST_003_urgent_reset.xml",
    "TEST_004_bulk_changed.xml",
    "TEST_005_after_delete.xml",
    "TEST_006_after_add.xml",
)


@dataclass
class FixtureReport:
    """Checks run on one generated file."""

    file: str
    total: int
    urgent: int
    missing_fields: int
    duplicates: int
    invalid_amounts: int
    invalid_dates: int
    sequence_gaps: bool

    def as_dict(self) -> dict:
        return asdict(self)


def fixture_header() -> Header:
    return Header(
        cumulative_reason_code="PO07",
        budget_year="2024",
        budget_user_id="01234",
        currency_code="RSD",
        treasury="604",
    )


def generate_records(
    count: int,
    start_index: int = 1,
    rng: random.Random | None = None,
    base_time: datetime | None = None,
) -> list[Record]:
    """Build *count* export-valid records numbered from *start_index*.

    Records with index 101..200 are flagged urgent. ``created_at`` grows
    with the index so renumbering keeps generation order.
    """
    rng = rng or random.Random(0)
    base_time = base_time or datetime(2024, 12, 1, tzinfo=timezone.utc)
    records = []
    for idx in range(start_index, start_index + count):
        records.append(
            Record(
                sequence_number=idx,
                reason_code="PO07",
                recipient=rng.choice(_RECIPIENTS),
                recipient_place=rng.choice(_PLACES),
                account_number=f"160-{idx:010d}-{idx % 97:02d}",
                invoice_number=f"INV-{idx:04d}",
                invoice_type=rng.choice(_INVOICE_TYPES),
                invoice_date="2024-12-01",
                due_date="2024-12-31",
                contract_number=f"CON-{idx:04d}",
                payment_basis=rng.choice(_PAYMENT_BASIS),
                item=RecordItem(
                    budget_user_id="01234",
                    program_code="0101",
                    project_code="4001",
                    economic_classification_code="423911",
                    source_of_funding_code="01",
                    function_code="130",
                    amount=float(rng.randint(1000, 200999)),
                    recording_account="423911",
                    expected_payment_date="2024-12-25",
                    urgent_payment=100 < idx <= 200,
                ),
                created_at=base_time + timedelta(seconds=idx),
            )
        )
    return records


def build_scenarios(count: int = 300, added: int = 50, seed: int = 0) -> list[tuple[str, list[Record]]]:
    """Return ``(filename, records)`` for each of the six scenarios."""
    rng = random.Random(seed)
    initial = generate_records(count, rng=rng)

    all_urgent, _ = apply_bulk_edit(initial, BulkEditData(urgent_payment=True))
    reset, _ = apply_bulk_edit(all_urgent, BulkEditData(reset_urgent_payment=True))
    changed, _ = apply_bulk_edit(
        reset,
        BulkEditData(invoice_number="INV-TEST-2024", payment_basis="Test Payment Basis"),
    )

    kept = [r for r in changed if r.sequence_number not in DELETED_SEQUENCES]
    after_delete, _ = renumber(kept)

    base_time = max(r.created_at for r in after_delete if r.created_at is not None)
    new_records = generate_records(added, len(after_delete) + 1, rng=rng, base_time=base_time)
    after_add, _ = renumber(after_delete + new_records)

    sets = (initial, all_urgent, reset, changed, after_delete, after_add)
    return list(zip(SCENARIO_FILES, sets))


def write_fixtures(out_dir: Path, count: int = 300, added: int = 50, seed: int = 0) -> list[str]:
    """Write the six XML files and ``TEST_RESULTS.txt`` into *out_dir*.

    Returns:
        The summary lines written to ``TEST_RESULTS.txt``.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    header = fixture_header()
    lines = []
    for filename, records in build_scenarios(count, added, seed):
        (out_dir / filename).write_text(generate_xml(header, records), encoding="utf-8")
        urgent = sum(1 for r in records if r.item.urgent_payment)
        lines.append(f"{filename} -> {len(records)} records ({urgent} urgent)")
        logger.info("Wrote %s (%d records)", filename, len(records))
    (out_dir / "TEST_RESULTS.txt").write_text("\n".join(lines), encoding="utf-8")
    return lines


def validate_fixture(path: Path) -> FixtureReport:
    """Re-parse *path* with the codec and count anomalies.

    Raises:
        XmlParseError: If the file is not a commitments document.
    """
    parsed = parse_xml(read_xml_upload(path))
    records = parsed.records

    missing = 0
    for r in records:
        missing += sum(1 for value in (r.invoice_number, r.contract_number) if not value.strip())
        missing += 1 if r.item.amount == 0 else 0
    external_ids = [r.external_id for r in records if r.external_id]

    return FixtureReport(
        file=path.name,
        total=len(records),
        urgent=sum(1 for r in records if r.item.urgent_payment),
        missing_fields=missing,
        duplicates=len(external_ids) - len(set(external_ids)),
        invalid_amounts=sum(1 for r in records if r.item.amount <= 0),
        invalid_dates=sum(1 for r in records if r.invoice_date and not _ISO_DATE.match(r.invoice_date)),
        sequence_gaps=has_sequence_gaps(records),
    )
