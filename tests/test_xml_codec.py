from datetime import date

import pytest

from commitments.exceptions import XmlParseError
from commitments.exporters.xml_exporter import (
    composite_external_id,
    escape_xml,
    export_filename,
    format_amount,
    generate_xml,
)
from commitments.parsers.xml_parser import (
    parse_leading_float,
    parse_leading_int,
    parse_xml,
    read_xml_upload,
)
from commitments.schemas.records import Record
from tests.factories import make_header, make_record


def test_escape_xml_covers_all_entities():
    assert escape_xml("a & b < c > d \" e ' f") == "a &amp; b &lt; c &gt; d &quot; e &apos; f"


@pytest.mark.parametrize(
    "value, expected",
    [(1500, "1500"), (1500.0, "1500"), (1500.5, "1500.5"), (0.1, "0.1"), (12.34, "12.34")],
)
def test_format_amount(value, expected):
    assert format_amount(value) == expected


def test_composite_external_id():
    assert composite_external_id(Record(invoice_number="INV-7"), 0) == "1-INV-7"
    assert composite_external_id(Record(external_id="EXT", invoice_number=" INV-7 "), 4) == "EXT-INV-7"
    assert composite_external_id(Record(external_id="EXT"), 4) == "EXT"
    assert composite_external_id(Record(), 2) == "3"


def test_generate_xml_layout():
    record = make_record(sequence_number=1, recipient="A & B")
    xml = generate_xml(make_header(), [record])
    lines = xml.split("\n")

    assert lines[0] == '<?xml version="1.0" encoding="UTF-8"?>'
    assert lines[1] == (
        '<commitments cumulative_reason_code="PO07" budget_year="2026" '
        'budget_user_id="01234" currency_code="RSD" treasury="604">'
    )
    assert lines[2].startswith('  <commitment sequence_number="1" reason_code="PO07" external_id="1-INV-7"')
    assert 'recipient="A &amp; B"' in lines[2]
    assert "      <amount>1500</amount>" in lines
    assert "      <urgent_payment>false</urgent_payment>" in lines
    assert lines[-1] == "</commitments>"


def test_sequence_attribute_omitted_when_unset():
    xml = generate_xml(make_header(), [make_record(sequence_number=None)])
    assert "sequence_number" not in xml


def test_round_trip_preserves_content():
    header = make_header()
    records = [
        make_record(sequence_number=1, recipient="O'Neil & Sons <Ltd>"),
        make_record(
            sequence_number=2,
            external_id="EXT-2",
            invoice_number="",
            item={"amount": 99.95, "urgent_payment": True, "posting_account": "P-1"},
        ),
    ]

    parsed = parse_xml(generate_xml(header, records))

    assert parsed.header == header
    assert parsed.record_count == 2
    first, second = parsed.records
    assert first.recipient == "O'Neil & Sons <Ltd>"
    assert first.external_id == "1-INV-7"
    assert first.sequence_number == 1
    assert first.item == records[0].item
    assert second.external_id == "EXT-2"
    assert second.item.amount == 99.95
    assert second.item.urgent_payment is True
    assert second.item.posting_account == "P-1"
    assert first.id != records[0].id


def test_parsed_records_keep_document_order_in_created_at():
    xml = generate_xml(make_header(), [make_record(), make_record(), make_record()])
    stamps = [r.created_at for r in parse_xml(xml).records]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == 3


def test_parse_is_lenient_about_missing_fields():
    parsed = parse_xml(
        "<commitments budget_year='2026'>"
        "<commitment sequence_number='7abc'><item><amount>12.5 RSD</amount></item></commitment>"
        "<commitment><item/></commitment>"
        "</commitments>"
    )
    assert parsed.header.budget_year == "2026"
    assert parsed.header.treasury == ""
    first, second = parsed.records
    assert first.sequence_number == 7
    assert first.item.amount == 12.5
    assert first.recipient == ""
    assert second.sequence_number is None
    assert second.item.amount == 0
    assert second.item.urgent_payment is False


def test_commitments_element_may_be_nested():
    parsed = parse_xml("<envelope><commitments treasury='604'><commitment><item/></commitment></commitments></envelope>")
    assert parsed.header.treasury == "604"
    assert parsed.record_count == 1


def test_malformed_document_is_rejected():
    with pytest.raises(XmlParseError, match="Invalid XML format"):
        parse_xml("<commitments><commitment>")


def test_missing_root_is_rejected():
    with pytest.raises(XmlParseError, match="missing commitments element"):
        parse_xml("<other/>")


def test_missing_item_names_the_commitment():
    with pytest.raises(XmlParseError, match="Missing item element in commitment 2"):
        parse_xml("<commitments><commitment><item/></commitment><commitment/></commitments>")


def test_read_xml_upload_handles_bom_and_bad_encoding():
    assert read_xml_upload(b"\xef\xbb\xbf<a/>") == "<a/>"
    with pytest.raises(XmlParseError, match="Failed to read file"):
        read_xml_upload(b"\xff\xfe\xfa")


def test_leading_number_helpers():
    assert parse_leading_int(" 42x") == 42
    assert parse_leading_int("x42") is None
    assert parse_leading_int("") is None
    assert parse_leading_float("3.5e2kg") == 350.0
    assert parse_leading_float("abc") == 0
    assert parse_leading_float("1e400") == 0
    assert parse_leading_float("-1e400") == 0


def test_export_filename():
    assert export_filename(date(2026, 3, 1)) == "commitments_2026-03-01.xml"
