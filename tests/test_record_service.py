import pytest
from fastapi import HTTPException

from commitments.exceptions import PersistenceError
from commitments.parsers.xml_parser import ParsedXml
from commitments.schemas.records import BulkEditData, Record, RecordInput
from commitments.services import activity_service, record_service
from commitments.services.record_service import (
    apply_bulk_edit,
    new_record,
    paginate,
    search_records,
)
from commitments.storage import LocalStorage, RemoteStorage
from commitments.utils.constants import KEY_USERS
from tests.factories import make_header, make_record


def _input(**overrides) -> RecordInput:
    return RecordInput.model_validate(make_record(**overrides).model_dump())


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def test_new_record_copies_everything_but_identity():
    previous = make_record(sequence_number=4, external_id="EXT-4")
    draft = new_record(previous)
    assert draft.id != previous.id
    assert draft.sequence_number is None
    assert draft.external_id == ""
    assert draft.recipient == previous.recipient
    assert draft.item == previous.item
    assert draft.item is not previous.item


def test_new_record_without_prefill_is_blank():
    assert new_record(make_record(), prefill=False).recipient == ""
    assert new_record(None).item.amount == 0


def test_search_is_case_insensitive_over_search_fields():
    records = [
        make_record(recipient="Gradnja Plus"),
        make_record(recipient="Papirus", contract_number="GRAD-1"),
        make_record(recipient="Komunalac", recipient_place="Gradiste"),
    ]
    assert len(search_records(records, "  grad ")) == 2
    assert search_records(records, "") == records
    assert search_records(records, "nothing") == []


def test_paginate_clamps_to_last_page():
    records = [make_record() for _ in range(45)]
    page = paginate(records, page=9, page_size=20)
    assert page.page == 3
    assert page.total_pages == 3
    assert len(page.items) == 5
    assert page.total == 45


def test_paginate_empty_has_one_page():
    page = paginate([], page=2)
    assert page.page == 1
    assert page.total_pages == 1
    assert page.items == []


def test_bulk_edit_sets_and_resets_urgent_flag():
    records = [make_record(item={"urgent_payment": i % 2 == 0}) for i in range(5)]

    urgent, modified = apply_bulk_edit(records, BulkEditData(urgent_payment=True))
    assert modified == 5
    assert all(r.item.urgent_payment for r in urgent)

    reset, _ = apply_bulk_edit(urgent, BulkEditData(reset_urgent_payment=True))
    assert not any(r.item.urgent_payment for r in reset)


def test_bulk_edit_skips_empty_values_and_keeps_other_fields():
    records = [make_record(invoice_number="A"), make_record(invoice_number="B")]
    edited, _ = apply_bulk_edit(
        records,
        BulkEditData(invoice_number="", payment_basis="Repairs", expected_payment_date="2026-05-01"),
    )
    assert [r.invoice_number for r in edited] == ["A", "B"]
    assert all(r.payment_basis == "Repairs" for r in edited)
    assert all(r.item.expected_payment_date == "2026-05-01" for r in edited)
    assert [r.id for r in edited] == [r.id for r in records]
    assert records[0].payment_basis == "Service fees"


def test_bulk_edit_can_target_selected_records():
    records = [make_record() for _ in range(3)]
    edited, modified = apply_bulk_edit(
        records,
        BulkEditData(contract_number="NEW", record_ids=[records[1].id]),
    )
    assert modified == 1
    assert [r.contract_number for r in edited] == ["CON-1", "NEW", "CON-1"]


def test_bulk_edit_without_updates_is_rejected():
    with pytest.raises(ValueError, match="No updates to apply"):
        apply_bulk_edit([make_record()], BulkEditData(invoice_number="", urgent_payment=False))


def test_bulk_edit_treats_whitespace_as_no_change():
    with pytest.raises(ValueError, match="No updates to apply"):
        apply_bulk_edit([make_record()], BulkEditData(invoice_number="   ", expected_payment_date="\t"))

    edited, _ = apply_bulk_edit(
        [make_record()],
        BulkEditData(invoice_number="  ", expected_payment_date=" ", contract_number="CON-9"),
    )
    assert edited[0].invoice_number == "INV-7"
    assert edited[0].item.expected_payment_date == "2026-03-15"
    assert edited[0].contract_number == "CON-9"


# ---------------------------------------------------------------------------
# Storage-backed operations
# ---------------------------------------------------------------------------


def test_add_record_assigns_next_sequence(local_storage):
    first = record_service.add_record(local_storage, _input())
    second = record_service.add_record(local_storage, _input(recipient="Other"))
    assert (first.sequence_number, second.sequence_number) == (1, 2)
    assert [r.id for r in local_storage.load_records()] == [first.id, second.id]


def test_create_blank_record_uses_prefill_preference(local_storage):
    first = record_service.add_record(local_storage, _input(recipient="Copied"))

    prefilled = record_service.create_blank_record(local_storage)
    assert prefilled.recipient == "Copied"
    assert prefilled.external_id == ""
    assert prefilled.sequence_number == first.sequence_number + 1

    record_service.save_prefill_enabled(local_storage, False)
    blank = record_service.create_blank_record(local_storage)
    assert blank.recipient == ""
    assert blank.sequence_number == 3


def test_update_record_keeps_identity(local_storage):
    original = record_service.add_record(local_storage, _input())
    updated = record_service.update_record(local_storage, original.id, _input(recipient="Renamed"))
    assert updated.id == original.id
    assert updated.sequence_number == original.sequence_number
    assert updated.created_at == original.created_at
    assert record_service.get_record(local_storage, original.id).recipient == "Renamed"


def test_unknown_record_is_404(local_storage):
    with pytest.raises(HTTPException) as exc_info:
        record_service.get_record(local_storage, "missing")
    assert exc_info.value.status_code == 404
    with pytest.raises(HTTPException):
        record_service.delete_record(local_storage, "missing")


def test_delete_records_ignores_unknown_ids(local_storage):
    kept = record_service.add_record(local_storage, _input())
    gone = record_service.add_record(local_storage, _input())
    result = record_service.delete_records(local_storage, [gone.id, "missing"])
    assert (result.affected, result.remaining) == (1, 1)
    assert [r.id for r in local_storage.load_records()] == [kept.id]


def test_clear_records_keeps_header_unless_asked(local_storage):
    local_storage.save_header(make_header(treasury="777"))
    record_service.add_record(local_storage, _input())

    assert record_service.clear_records(local_storage) == 1
    assert local_storage.load_header().treasury == "777"

    record_service.add_record(local_storage, _input())
    record_service.clear_records(local_storage, include_header=True)
    assert local_storage.load_records() == []
    assert local_storage.load_header().treasury == ""


def test_bulk_edit_service_maps_no_updates_to_422(local_storage):
    with pytest.raises(HTTPException) as exc_info:
        record_service.bulk_edit(local_storage, BulkEditData())
    assert exc_info.value.status_code == 422


def test_import_replace_and_append(local_storage):
    record_service.add_record(local_storage, _input())
    parsed = ParsedXml(
        header=make_header(treasury="321"),
        records=[make_record(sequence_number=1), make_record(sequence_number=None)],
    )

    records = record_service.import_parsed(local_storage, parsed, mode="replace")
    assert len(records) == 2
    assert local_storage.load_header().treasury == "321"

    local_storage.save_header(make_header(treasury="654"))
    appended = record_service.import_parsed(
        local_storage,
        ParsedXml(header=make_header(), records=[Record(sequence_number=None)]),
        mode="append",
    )
    assert len(appended) == 3
    assert appended[-1].sequence_number == 2
    assert local_storage.load_header().treasury == "654"


class _FailingRecordsStorage(LocalStorage):
    def save_records(self, records):
        raise PersistenceError("disk full")


def test_failed_replace_import_restores_the_header(store):
    storage = _FailingRecordsStorage(store, "user-1")
    storage.save_header(make_header(treasury="111"))
    parsed = ParsedXml(header=make_header(treasury="999"), records=[make_record(sequence_number=1)])

    with pytest.raises(PersistenceError):
        record_service.import_parsed(storage, parsed, mode="replace")

    assert storage.load_header().treasury == "111"
    assert storage.load_records() == []


def test_list_page_filters_then_paginates(local_storage):
    for name in ("Alpha", "Beta", "Alphabet"):
        record_service.add_record(local_storage, _input(recipient=name))
    page = record_service.list_page(local_storage, "alpha", page=1, page_size=1)
    assert page.total == 2
    assert page.total_pages == 2
    assert page.query == "alpha"


def test_activity_is_logged_for_managed_users(store, local_storage):
    store.set(KEY_USERS, [{"id": "user-1", "username": "mm"}])
    record = record_service.add_record(local_storage, _input(item={"amount": 100}), store)
    record_service.update_record(local_storage, record.id, _input(item={"amount": 50}), store)

    (entry,) = activity_service.list_activities(store)
    assert entry.records_created == 1
    assert entry.records_modified == 1
    assert entry.total_amount == 150


def test_prefill_preference_for_remote_backend_lives_in_store(store, db_session):
    remote = RemoteStorage(db_session, "user-9")
    assert record_service.load_prefill_enabled(remote, store) is True
    record_service.save_prefill_enabled(remote, False, store)
    assert record_service.load_prefill_enabled(remote, store) is False
