from tests.factories import make_header, make_record


def _record_payload(**overrides) -> dict:
    data = make_record(**overrides).model_dump(
        mode="json", exclude={"id", "sequence_number", "created_at"}
    )
    return data


def _fill(client, headers, count=2):
    client.put("/api/header", json=make_header().model_dump(), headers=headers)
    return [
        client.post("/api/records", json=_record_payload(invoice_number=f"INV-{n}"), headers=headers).json()
        for n in range(1, count + 1)
    ]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_protected_endpoints_require_a_token(client):
    assert client.get("/api/records").status_code == 401
    assert client.get("/api/records", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_wrong_credentials_are_401(client):
    response = client.post("/api/auth/login", data={"username": "nobody", "password": "x"})
    assert response.status_code == 401
    response = client.post("/api/auth/admin/login", data={"username": "admin", "password": "x"})
    assert response.status_code == 401


def test_me_and_logout(client, user_headers):
    me = client.get("/api/auth/me", headers=user_headers)
    assert me.status_code == 200
    assert me.json()["username"] == "mmarkovic"
    assert me.json()["budget_user_id"] == "01234"
    assert me.json()["is_admin"] is False

    assert client.post("/api/auth/logout", headers=user_headers).status_code == 200
    assert client.get("/api/auth/me", headers=user_headers).status_code == 401


def test_admin_endpoints_reject_users(client, user_headers):
    assert client.get("/api/admin/users", headers=user_headers).status_code == 403
    assert client.get("/api/integrity/admin", headers=user_headers).status_code == 403


# ---------------------------------------------------------------------------
# Header and records
# ---------------------------------------------------------------------------


def test_default_header_comes_from_the_account(client, user_headers):
    header = client.get("/api/header", headers=user_headers).json()
    assert header["budget_user_id"] == "01234"
    assert header["treasury"] == "604"
    assert header["cumulative_reason_code"] == "PO07"


def test_record_lifecycle(client, user_headers):
    created = client.post("/api/records", json=_record_payload(), headers=user_headers)
    assert created.status_code == 201
    record = created.json()
    assert record["sequence_number"] == 1

    blank = client.post("/api/records", params={"prefill": "false"}, headers=user_headers)
    assert blank.status_code == 201
    assert blank.json()["recipient"] == ""
    assert blank.json()["sequence_number"] == 2

    payload = _record_payload(recipient="Renamed")
    updated = client.put(f"/api/records/{record['id']}", json=payload, headers=user_headers)
    assert updated.json()["recipient"] == "Renamed"
    assert updated.json()["sequence_number"] == 1

    page = client.get("/api/records", params={"q": "renamed"}, headers=user_headers).json()
    assert page["total"] == 1

    assert client.delete(f"/api/records/{record['id']}", headers=user_headers).status_code == 200
    assert client.get(f"/api/records/{record['id']}", headers=user_headers).status_code == 404


def test_prefill_preference(client, user_headers):
    assert client.get("/api/records/prefill", headers=user_headers).json() == {"enabled": True}
    client.put("/api/records/prefill", json={"enabled": False}, headers=user_headers)
    assert client.get("/api/records/prefill", headers=user_headers).json() == {"enabled": False}


def test_bulk_edit_and_delete(client, user_headers):
    records = _fill(client, user_headers, count=3)

    edited = client.post("/api/records/bulk-edit", json={"urgent_payment": True}, headers=user_headers)
    assert edited.json() == {"affected": 3, "remaining": 3}
    page = client.get("/api/records", headers=user_headers).json()
    assert all(r["item"]["urgent_payment"] for r in page["items"])

    assert client.post("/api/records/bulk-edit", json={}, headers=user_headers).status_code == 422

    deleted = client.post(
        "/api/records/bulk-delete",
        json={"record_ids": [records[0]["id"]]},
        headers=user_headers,
    )
    assert deleted.json() == {"affected": 1, "remaining": 2}

    cleared = client.delete("/api/records", headers=user_headers)
    assert cleared.json() == {"affected": 2, "remaining": 0}


def test_users_only_see_their_own_records(client, admin_headers, user_headers):
    _fill(client, user_headers, count=2)
    assert client.get("/api/records", headers=admin_headers).json()["total"] == 0
    assert client.get("/api/records", headers=user_headers).json()["total"] == 2


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------


def test_export_is_blocked_by_validation(client, user_headers):
    client.post("/api/records", json=_record_payload(item={"amount": 0}), headers=user_headers)
    client.put("/api/header", json=make_header().model_dump(), headers=user_headers)

    response = client.get("/api/xml/export", headers=user_headers)
    assert response.status_code == 422
    body = response.json()
    assert body["detail"] == "Validation failed"
    assert [i["field"] for i in body["issues"]] == ["record_0_item_amount"]


def test_export_then_import(client, user_headers):
    _fill(client, user_headers, count=2)

    exported = client.get("/api/xml/export", headers=user_headers)
    assert exported.status_code == 200
    assert exported.headers["content-type"].startswith("application/xml")
    assert "commitments_" in exported.headers["content-disposition"]
    assert exported.text.startswith('<?xml version="1.0" encoding="UTF-8"?>')

    summary = client.post(
        "/api/xml/verify",
        files={"file": ("batch.xml", exported.content, "application/xml")},
        headers=user_headers,
    ).json()
    assert summary["total"] == 2
    assert summary["validation_errors"] == []
    assert summary["sequence_gaps"] is False

    imported = client.post(
        "/api/xml/import",
        params={"mode": "append"},
        files={"file": ("batch.xml", exported.content, "application/xml")},
        headers=user_headers,
    )
    assert imported.status_code == 200
    assert imported.json()["imported"] == 2
    assert imported.json()["total"] == 4


def test_bad_import_leaves_records_unchanged(client, user_headers):
    _fill(client, user_headers, count=2)
    before = client.get("/api/records", headers=user_headers).json()

    response = client.post(
        "/api/xml/import",
        files={"file": ("bad.xml", b"<commitments><commitment></commitments>", "application/xml")},
        headers=user_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid XML format"

    response = client.post(
        "/api/xml/import",
        files={"file": ("empty.xml", b"", "application/xml")},
        headers=user_headers,
    )
    assert response.status_code == 400

    assert client.get("/api/records", headers=user_headers).json() == before


def test_overflowing_amount_imports_as_zero(client, user_headers):
    _fill(client, user_headers, count=1)
    exported = client.get("/api/xml/export", headers=user_headers).text
    document = exported.replace("<amount>1500</amount>", "<amount>1e400</amount>")
    assert "1e400" in document

    imported = client.post(
        "/api/xml/import",
        files={"file": ("huge.xml", document.encode(), "application/xml")},
        headers=user_headers,
    )
    assert imported.status_code == 200

    page = client.get("/api/records", headers=user_headers).json()
    assert [r["item"]["amount"] for r in page["items"]] == [0]

    response = client.get("/api/xml/export", headers=user_headers)
    assert response.status_code == 422
    assert [i["field"] for i in response.json()["issues"]] == ["record_0_item_amount"]


def test_compare_reports_missing_records(client, user_headers):
    _fill(client, user_headers, count=1)
    document = (
        '<commitments cumulative_reason_code="PO07">'
        '<commitment sequence_number="1" external_id="NEW"><item/></commitment>'
        "</commitments>"
    )
    comparison = client.post(
        "/api/xml/compare",
        files={"file": ("other.xml", document.encode(), "application/xml")},
        headers=user_headers,
    ).json()
    assert comparison["missing_in_app"] == ["NEW"]
    assert comparison["app_count"] == 1
    assert comparison["header_match"] is False


# ---------------------------------------------------------------------------
# Integrity, print, admin
# ---------------------------------------------------------------------------


def test_integrity_and_renumber(client, user_headers):
    records = _fill(client, user_headers, count=3)
    client.delete(f"/api/records/{records[0]['id']}", headers=user_headers)

    report = client.get("/api/integrity", headers=user_headers).json()
    assert report["integrity"]["status"] == "CORRUPTED"
    assert [i["issue_type"] for i in report["issues"]] == ["GAPS_DETECTED"]

    assert client.post("/api/integrity/renumber", headers=user_headers).status_code == 409

    result = client.post("/api/integrity/renumber", params={"confirm": "true"}, headers=user_headers)
    assert result.json()["records_renumbered"] == 2
    report = client.get("/api/integrity", headers=user_headers).json()
    assert report["integrity"]["status"] == "HEALTHY"


def test_admin_integrity_sweep(client, admin_headers, user_headers):
    _fill(client, user_headers, count=1)
    reports = client.get("/api/integrity/admin", headers=admin_headers).json()
    assert {r["integrity"]["username"] for r in reports} == {"mmarkovic", "admin"}


def test_print_pdf(client, user_headers):
    _fill(client, user_headers, count=2)
    response = client.get("/api/print/pdf", headers=user_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_admin_user_management(client, admin_headers, user_headers):
    users = client.get("/api/admin/users", headers=admin_headers).json()
    assert [u["username"] for u in users] == ["mmarkovic"]
    assert "password_hash" not in users[0]

    user_id = users[0]["id"]
    response = client.put(
        f"/api/admin/users/{user_id}",
        json={"status": "suspended"},
        headers=admin_headers,
    )
    assert response.json()["status"] == "suspended"
    assert client.get("/api/records", headers=user_headers).status_code == 401

    duplicate = client.post(
        "/api/admin/users",
        json={"username": "mmarkovic", "email": "x@example.com", "password": "Secret123"},
        headers=admin_headers,
    )
    assert duplicate.status_code == 409

    invalid_email = client.post(
        "/api/admin/users",
        json={"username": "other", "email": "not-an-email", "password": "Secret123"},
        headers=admin_headers,
    )
    assert invalid_email.status_code == 422

    assert client.delete(f"/api/admin/users/{user_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/admin/users/{user_id}", headers=admin_headers).status_code == 404


def test_activity_log_and_password_generator(client, admin_headers, user_headers):
    _fill(client, user_headers, count=2)
    activities = client.get("/api/admin/activities", headers=admin_headers).json()
    assert activities[0]["username"] == "mmarkovic"
    assert activities[0]["records_created"] == 2

    generated = client.get("/api/admin/generate-password", params={"length": 16}, headers=admin_headers).json()
    assert len(generated["password"]) == 16
    assert generated["is_strong"] is True


def test_admin_credentials_change(client, admin_headers):
    response = client.put(
        "/api/admin/credentials",
        json={"username": "boss", "password": "NewPass123"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    login = client.post("/api/auth/admin/login", data={"username": "boss", "password": "NewPass123"})
    assert login.status_code == 200
    assert login.json()["is_admin"] is True
