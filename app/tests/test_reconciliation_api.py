from datetime import datetime

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def _auth_headers(company_id: int, role=None) -> dict:
    body = {"user_id": "test", "company_id": company_id}
    if role is not None:
        body["role"] = role
    resp = client.post("/auth/token", json=body)
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    data = resp.json()
    assert "access_token" in data, f"token response missing access_token: {data}"
    return {"X-Company-Id": str(company_id), "Authorization": f"Bearer {data['access_token']}"}


def _create_expense(headers, amount, on, vendor="Jewson", vat_amount=None):
    resp = client.post(
        "/expenses",
        headers=headers,
        json={"vendor": vendor, "amount": amount, "expense_date": on, "vat_amount": vat_amount},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["id"]


def _create_transaction(headers, amount, on):
    resp = client.post(
        "/bank_transactions",
        headers=headers,
        json={"amount": amount, "transaction_date": on, "description": "BANK LINE"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["id"]


def test_suggest_accept_summarise_unreconcile(subscribe):
    subscribe(91001)
    headers = _auth_headers(91001)
    expense_id = _create_expense(headers, 100, "2026-01-10")
    tx_id = _create_transaction(headers, -120, "2026-01-09")

    suggestions = client.get("/reconciliation/suggestions", headers=headers).json()
    assert len(suggestions) == 1
    assert suggestions[0]["transaction"]["id"] == tx_id
    assert suggestions[0]["expense"]["id"] == expense_id
    assert suggestions[0]["confidence"] == "medium"

    accept = client.post(f"/reconciliation/{tx_id}/accept", headers=headers, json={"expense_id": expense_id})
    assert accept.status_code == 200, accept.text
    assert accept.json()["is_reconciled"] is True

    stats = client.get("/reconciliation/stats", headers=headers).json()
    assert stats == {"total": 1, "reconciled": 1, "pending": 0, "suggested_count": 0}

    summary = client.get(f"/reconciliation/{tx_id}/summary", headers=headers).json()
    assert summary["link_count"] == 1
    assert summary["total_matched"] == 100
    assert summary["unmatched_amount"] == 20

    reconciled = client.get("/bank_transactions", headers=headers, params={"status": "reconciled"}).json()
    assert [row["id"] for row in reconciled] == [tx_id]
    assert reconciled[0]["reconciled_expense_id"] == expense_id

    undo = client.post(f"/reconciliation/{tx_id}/unreconcile", headers=headers)
    assert undo.status_code == 200
    assert undo.json()["links_removed"] == 1

    assert client.get(f"/expenses/{expense_id}", headers=headers).json()["is_reconciled"] is False
    open_rows = client.get("/bank_transactions", headers=headers, params={"status": "unreconciled"}).json()
    assert [row["id"] for row in open_rows] == [tx_id]


def test_incoming_payment_suggests_paid_invoice(subscribe):
    subscribe(91002)
    headers = _auth_headers(91002)
    quote = client.post(
        "/quotes",
        headers=headers,
        json={
            "type": "invoice",
            "sections": [{"items": [{"total_price": 500}]}],
            "tax_percent": 0,
        },
    ).json()
    client.post(f"/quotes/{quote['id']}/mark_paid", headers=headers)
    tx_id = _create_transaction(headers, 500, datetime.utcnow().date().isoformat())

    suggestions = client.get("/reconciliation/suggestions", headers=headers).json()

    assert len(suggestions) == 1
    assert suggestions[0]["invoice"]["id"] == quote["id"]
    assert suggestions[0]["confidence"] == "high"

    multi = client.post(
        f"/reconciliation/{tx_id}/multi",
        headers=headers,
        json={"invoice_ids": [quote["id"]]},
    )
    assert multi.status_code == 200
    assert multi.json()["link_count"] == 1


def test_multi_reconcile_many_expenses(subscribe):
    subscribe(91003)
    headers = _auth_headers(91003)
    e1 = _create_expense(headers, 40, "2026-01-05")
    e2 = _create_expense(headers, 60, "2026-01-06")
    tx_id = _create_transaction(headers, -100, "2026-01-07")

    resp = client.post(f"/reconciliation/{tx_id}/multi", headers=headers, json={"expense_ids": [e1, e2]})

    assert resp.status_code == 200
    summary = client.get(f"/reconciliation/{tx_id}/summary", headers=headers).json()
    assert sorted(summary["linked_items"]) == sorted([f"expense:{e1}", f"expense:{e2}"])
    assert summary["unmatched_amount"] == 0


def test_deleting_expense_removes_its_link(subscribe):
    subscribe(91004)
    headers = _auth_headers(91004)
    expense_id = _create_expense(headers, 25, "2026-01-05")
    tx_id = _create_transaction(headers, -25, "2026-01-05")
    client.post(f"/reconciliation/{tx_id}/accept", headers=headers, json={"expense_id": expense_id})

    assert client.delete(f"/expenses/{expense_id}", headers=headers).status_code == 204

    summary = client.get(f"/reconciliation/{tx_id}/summary", headers=headers).json()
    assert summary["link_count"] == 0
    tx = client.get(f"/bank_transactions/{tx_id}", headers=headers).json()
    assert tx["reconciled_expense_id"] is None
    assert tx["is_reconciled"] is False
    assert summary["is_reconciled"] is False

    open_rows = client.get("/bank_transactions", headers=headers, params={"status": "unreconciled"}).json()
    assert [row["id"] for row in open_rows] == [tx_id]


def test_deleting_transaction_releases_expense(subscribe):
    subscribe(91005)
    headers = _auth_headers(91005)
    expense_id = _create_expense(headers, 25, "2026-01-05")
    tx_id = _create_transaction(headers, -25, "2026-01-05")
    client.post(f"/reconciliation/{tx_id}/accept", headers=headers, json={"expense_id": expense_id})

    assert client.delete(f"/bank_transactions/{tx_id}", headers=headers).status_code == 204

    expense = client.get(f"/expenses/{expense_id}", headers=headers).json()
    assert expense["is_reconciled"] is False
    assert expense["reconciled_transaction_id"] is None


def test_error_statuses(subscribe):
    subscribe(91006)
    headers = _auth_headers(91006)
    expense_id = _create_expense(headers, 25, "2026-01-05")
    tx_id = _create_transaction(headers, -25, "2026-01-05")

    both = client.post(
        f"/reconciliation/{tx_id}/accept",
        headers=headers,
        json={"expense_id": expense_id, "invoice_id": "x"},
    )
    assert both.status_code == 400

    missing_tx = client.post("/reconciliation/nope/multi", headers=headers, json={"expense_ids": [expense_id]})
    assert missing_tx.status_code == 404

    missing_expense = client.post(
        f"/reconciliation/{tx_id}/multi", headers=headers, json={"expense_ids": ["nope"]}
    )
    assert missing_expense.status_code == 404
    assert client.get(f"/bank_transactions/{tx_id}", headers=headers).json()["is_reconciled"] is False

    assert client.post("/reconciliation/nope/unreconcile", headers=headers).status_code == 404
    assert client.get("/reconciliation/nope/summary", headers=headers).status_code == 404


def test_viewer_cannot_reconcile(subscribe):
    subscribe(91007)
    owner = _auth_headers(91007)
    viewer = _auth_headers(91007, role="VIEWER")
    tx_id = _create_transaction(owner, -25, "2026-01-05")

    assert client.get("/reconciliation/suggestions", headers=viewer).status_code == 200
    assert client.post(f"/reconciliation/{tx_id}/unreconcile", headers=viewer).status_code == 403


def _create_paid_invoice(headers, total):
    invoice = client.post(
        "/quotes",
        headers=headers,
        json={"type": "invoice", "sections": [{"items": [{"total_price": total}]}], "tax_percent": 0},
    ).json()
    assert client.post(f"/quotes/{invoice['id']}/mark_paid", headers=headers).status_code == 200
    return invoice["id"]


def test_deleting_linked_invoice_unreconciles_transaction(subscribe):
    subscribe(91008)
    headers = _auth_headers(91008)
    invoice_id = _create_paid_invoice(headers, 300)
    tx_id = _create_transaction(headers, 300, "2026-01-05")
    accept = client.post(f"/reconciliation/{tx_id}/accept", headers=headers, json={"invoice_id": invoice_id})
    assert accept.json()["is_reconciled"] is True

    assert client.delete(f"/quotes/{invoice_id}", headers=headers).status_code == 204

    tx = client.get(f"/bank_transactions/{tx_id}", headers=headers).json()
    assert tx["is_reconciled"] is False
    assert tx["reconciled_invoice_id"] is None


def test_empty_multi_reconcile_leaves_transaction_open(subscribe):
    subscribe(91009)
    headers = _auth_headers(91009)
    tx_id = _create_transaction(headers, -25, "2026-01-05")

    resp = client.post(f"/reconciliation/{tx_id}/multi", headers=headers, json={"expense_ids": [], "invoice_ids": []})

    assert resp.status_code == 200
    assert resp.json()["is_reconciled"] is False
    assert resp.json()["link_count"] == 0


def test_only_invoices_can_be_linked(subscribe):
    subscribe(91010)
    headers = _auth_headers(91010)
    draft = client.post(
        "/quotes",
        headers=headers,
        json={"sections": [{"items": [{"total_price": 80}]}], "tax_percent": 0},
    ).json()
    assert draft["type"] == "quote"
    tx_id = _create_transaction(headers, 80, "2026-01-05")

    accept = client.post(f"/reconciliation/{tx_id}/accept", headers=headers, json={"invoice_id": draft["id"]})
    assert accept.status_code == 404
    assert "Invoice not found" in accept.text

    multi = client.post(f"/reconciliation/{tx_id}/multi", headers=headers, json={"invoice_ids": [draft["id"]]})
    assert multi.status_code == 404
    assert client.get(f"/reconciliation/{tx_id}/summary", headers=headers).json()["link_count"] == 0
