from datetime import datetime, timezone

import pytest

from commitments.exceptions import PersistenceError
from commitments.schemas.records import Header
from commitments.storage import KeyValueStore, LocalStorage, RemoteStorage, get_storage
from tests.factories import make_header, make_record


@pytest.fixture
def remote_storage(db_session) -> RemoteStorage:
    return RemoteStorage(db_session, "user-1")


@pytest.fixture(params=["local", "remote"])
def storage(request, local_storage, db_session):
    if request.param == "local":
        return local_storage
    return RemoteStorage(db_session, "user-1")


# ---------------------------------------------------------------------------
# Key-value store
# ---------------------------------------------------------------------------


def test_kv_store_round_trip_and_delete(tmp_path):
    kv = KeyValueStore(tmp_path)
    assert kv.get("missing", "fallback") == "fallback"
    kv.set("answer", {"value": [1, 2]})
    assert kv.get("answer") == {"value": [1, 2]}
    kv.delete("answer")
    kv.delete("answer")
    assert kv.get("answer") is None


def test_kv_store_namespaces_are_isolated(tmp_path):
    kv = KeyValueStore(tmp_path)
    kv.scoped("alice").set("records", [1])
    kv.scoped("bob").set("records", [2])
    assert kv.scoped("alice").get("records") == [1]
    assert kv.get("records") is None
    assert kv.namespaces() == ["alice", "bob"]


def test_kv_store_corrupt_blob_returns_default(tmp_path):
    kv = KeyValueStore(tmp_path)
    kv.set("records", [])
    (tmp_path / "_global" / "records.json").write_text("{not json", encoding="utf-8")
    assert kv.get("records", []) == []


def test_kv_store_unserialisable_value_raises(tmp_path):
    with pytest.raises(PersistenceError):
        KeyValueStore(tmp_path).set("bad", object())


def test_kv_store_sanitises_key_names(tmp_path):
    kv = KeyValueStore(tmp_path).scoped("../escape")
    kv.set("a/b", 1)
    assert kv.get("a/b") == 1
    assert not (tmp_path.parent / "escape").exists()


# ---------------------------------------------------------------------------
# Storage port contract, both backends
# ---------------------------------------------------------------------------


def test_absent_data_returns_defaults(storage):
    header = storage.load_header()
    assert header.cumulative_reason_code == "PO07"
    assert header.currency_code == "RSD"
    assert header.budget_year == str(datetime.now().year)
    assert header.budget_user_id == ""
    assert storage.load_records() == []


def test_header_defaults_are_used_when_given(store):
    defaults = make_header(budget_user_id="99999")
    storage = LocalStorage(store, "user-2", header_defaults=defaults)
    assert storage.load_header().budget_user_id == "99999"


def test_header_round_trip(storage):
    header = make_header(treasury="700")
    storage.save_header(header)
    assert storage.load_header() == header
    storage.save_header(make_header(treasury="701"))
    assert storage.load_header().treasury == "701"


def test_records_round_trip(storage):
    records = [
        make_record(sequence_number=1, item={"amount": 10.25, "urgent_payment": True}),
        make_record(sequence_number=2, recipient="Second"),
    ]
    storage.save_records(records)

    loaded = storage.load_records()
    assert [r.id for r in loaded] == [r.id for r in records]
    assert loaded[0].item.amount == 10.25
    assert loaded[0].item.urgent_payment is True
    assert loaded[1].recipient == "Second"
    assert loaded[0].created_at.tzinfo is not None


def test_amounts_load_identically_from_both_backends(storage):
    record = make_record(sequence_number=1, item={"amount": 1234.567})
    storage.save_records([record])

    assert storage.load_records()[0].item.amount == 1234.57


def test_save_records_replaces_the_set(storage):
    first, second, third = (make_record(sequence_number=n) for n in (1, 2, 3))
    storage.save_records([first, second, third])

    edited = second.model_copy(update={"recipient": "Changed", "item": second.item.model_copy(update={"amount": 5})})
    storage.save_records([first, edited])

    loaded = storage.load_records()
    assert [r.id for r in loaded] == [first.id, second.id]
    assert loaded[1].recipient == "Changed"
    assert loaded[1].item.amount == 5


def test_clear_all_drops_header_and_records(storage):
    storage.save_header(make_header(treasury="999"))
    storage.save_records([make_record(sequence_number=1)])
    storage.clear_all()
    assert storage.load_records() == []
    assert storage.load_header().treasury == ""


def test_users_do_not_see_each_other(store, db_session):
    for build in (
        lambda uid: LocalStorage(store, uid),
        lambda uid: RemoteStorage(db_session, uid),
    ):
        alice, bob = build("alice"), build("bob")
        alice.save_records([make_record(sequence_number=1)])
        assert bob.load_records() == []
        assert len(alice.load_records()) == 1


def test_remote_orders_by_sequence_with_missing_last(remote_storage):
    created = datetime(2026, 1, 1, tzinfo=timezone.utc)
    records = [
        make_record(sequence_number=None, created_at=created),
        make_record(sequence_number=2, created_at=created),
        make_record(sequence_number=1, created_at=created),
    ]
    remote_storage.save_records(records)
    assert [r.sequence_number for r in remote_storage.load_records()] == [1, 2, None]


def test_remote_save_creates_header_row(remote_storage):
    remote_storage.save_records([make_record(sequence_number=1)])
    assert remote_storage.load_header() == remote_storage.default_header()


def test_local_prefill_preference(local_storage):
    assert local_storage.load_prefill_enabled() is True
    local_storage.save_prefill_enabled(False)
    assert local_storage.load_prefill_enabled() is False


def test_get_storage_selects_backend(store, db_session):
    assert isinstance(get_storage("u", kv_store=store, backend="local"), LocalStorage)
    assert isinstance(get_storage("u", db=db_session, backend="remote"), RemoteStorage)
    with pytest.raises(ValueError):
        get_storage("u", backend="remote")
    with pytest.raises(ValueError):
        get_storage("u", kv_store=store, backend="ftp")


def test_default_header_is_a_copy(store):
    defaults = Header(treasury="1")
    storage = LocalStorage(store, "user-3", header_defaults=defaults)
    storage.load_header().treasury = "2"
    assert defaults.treasury == "1"
