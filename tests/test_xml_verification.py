import pytest

from commitments.exporters.xml_exporter import generate_xml
from commitments.parsers.xml_parser import ParsedXml, parse_xml
from commitments.services import fixture_service
from commitments.services.xml_verification import (
    compare_with_app,
    has_sequence_gaps,
    record_key,
    summarize,
)
from tests.factories import make_header, make_record


def test_record_key_fallbacks():
    record = make_record(external_id="EXT", invoice_number="INV")
    assert record_key(record) == "EXT"
    assert record_key(record.model_copy(update={"external_id": ""})) == "INV"
    bare = make_record(external_id="", invoice_number="")
    assert record_key(bare) == bare.id


@pytest.mark.parametrize(
    "numbers, expected",
    [([1, 2, 3], False), ([3, 1, 2], False), ([1, 3], True), ([1, 2, 2, 3], True), ([], False)],
)
def test_has_sequence_gaps(numbers, expected):
    assert has_sequence_gaps([make_record(sequence_number=n) for n in numbers]) is expected


def test_summarize_counts_urgent_duplicates_and_errors():
    parsed = ParsedXml(
        header=make_header(treasury=""),
        records=[
            make_record(sequence_number=1, external_id="A", item={"urgent_payment": True}),
            make_record(sequence_number=2, external_id="A"),
            make_record(sequence_number=4, external_id="B", item={"amount": 0}),
        ],
    )
    summary = summarize(parsed)
    assert summary.total == 3
    assert summary.urgent_count == 1
    assert summary.duplicates == ["A"]
    assert summary.sequence_gaps is True
    assert [i.field for i in summary.validation_errors] == ["treasury", "record_2_item_amount"]


def test_compare_with_app():
    header = make_header()
    app_records = [
        make_record(sequence_number=1, external_id="A"),
        make_record(sequence_number=2, external_id="B"),
        make_record(sequence_number=3, external_id="C"),
    ]
    parsed = ParsedXml(
        header=make_header(treasury="999"),
        records=[
            make_record(sequence_number=1, external_id="A"),
            make_record(sequence_number=5, external_id="B"),
            make_record(sequence_number=6, external_id="D"),
        ],
    )

    comparison = compare_with_app(parsed, header, app_records)

    assert comparison.parsed_count == 3
    assert comparison.app_count == 3
    assert comparison.missing_in_app == ["D"]
    assert comparison.extra_in_app == ["C"]
    assert [(m.key, m.parsed_sequence, m.app_sequence) for m in comparison.sequence_mismatches] == [("B", 5, 2)]
    assert comparison.header_match is False


def test_compare_export_with_itself_matches_headers():
    header = make_header()
    records = [make_record(sequence_number=1, external_id="X", invoice_number="")]
    comparison = compare_with_app(parse_xml(generate_xml(header, records)), header, records)
    assert comparison.header_match is True
    assert comparison.missing_in_app == []
    assert comparison.sequence_mismatches == []


# ---------------------------------------------------------------------------
# Generated fixture files
# ---------------------------------------------------------------------------


def test_scenarios_follow_the_bulk_operation_sequence():
    scenarios = dict(fixture_service.build_scenarios())

    assert list(scenarios) == list(fixture_service.SCENARIO_FILES)
    counts = [len(records) for records in scenarios.values()]
    assert counts == [300, 300, 300, 300, 286, 336]

    urgent = {name: sum(r.item.urgent_payment for r in records) for name, records in scenarios.items()}
    assert urgent["TEST_001_initial_300.xml"] == 100
    assert urgent["TEST_002_all_urgent.xml"] == 300
    assert urgent["TEST_003_urgent_reset.xml"] == 0

    changed = scenarios["TEST_004_bulk_changed.xml"]
    assert {r.invoice_number for r in changed} == {"INV-TEST-2024"}

    for name in ("TEST_005_after_delete.xml", "TEST_006_after_add.xml"):
        numbers = [r.sequence_number for r in scenarios[name]]
        assert numbers == list(range(1, len(numbers) + 1))


def test_written_fixtures_validate_cleanly(tmp_path):
    lines = fixture_service.write_fixtures(tmp_path, count=30, added=5)
    assert len(lines) == 6
    assert (tmp_path / "TEST_RESULTS.txt").read_text(encoding="utf-8").splitlines() == lines

    for name in fixture_service.SCENARIO_FILES:
        report = fixture_service.validate_fixture(tmp_path / name)
        assert report.missing_fields == 0
        assert report.duplicates == 0
        assert report.invalid_amounts == 0
        assert report.invalid_dates == 0
        assert report.sequence_gaps is False
        assert report.as_dict()["file"] == name
