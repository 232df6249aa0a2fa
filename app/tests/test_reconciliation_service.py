from datetime import date, datetime

import pytest

from app.core.errors import NotFoundError
from app.database import SessionLocal
from app.models.bank_transaction import BankTransaction
from app.models.expense import Expense
from app.models.quote import Quote
from app.models.reconciliation_link import ReconciliationLink
from app.services import reconciliation_service

COMPANY_ID = 71001


def _db():
    return SessionLocal()


def _seed(company_id: int = COMPANY_ID):
    db = _db()
    try:
        tx = BankTransaction(
            company_id=company_id,
            transaction_date=date(2026, 2, 3),
            description="CARD PAYMENT TOOLSTATION",
            amount=-150,
            is_reconciled=False,
        )
        e1 = Expense(
            company_id=company_id,
            vendor="Toolstation",
            amount=100,
            vat_amount=20,
            expense_date=date(2026, 2, 2),
            is_reconciled=False,
        )
        e2 = Expense(
            company_id=company_id,
            vendor="Screwfix",
            amount=30,
            vat_amount=5,
            expense_date=date(2026, 2, 3),
            is_reconciled=False,
        )
        invoice = Quote(
            company_id=company_id,
            reference_number=1,
            type="invoice",
            status="paid",
            sections=[],
            total=45,
            updated_at=datetime(2026, 2, 1, 9, 0),
        )
        db.add_all([tx, e1, e2, invoice])
        db.commit()
        return tx.id, e1.id, e2.id, invoice.id
    finally:
        db.close()


def _links(tx_id: str):
    db = _db()
    try:
        return (
            db.query(ReconciliationLink)
            .filter(ReconciliationLink.bank_transaction_id == tx_id)
            .all()
        )
    finally:
        db.close()


def _get(model, row_id):
    db = _db()
    try:
        return db.get(model, row_id)
    finally:
        db.close()


def test_reconcile_multi_links_full_amounts_and_flags():
    tx_id, e1, e2, inv = _seed()

    result = reconciliation_service.reconcile_multi(
        company_id=COMPANY_ID,
        transaction_id=tx_id,
        expense_ids=[e1, e2],
        invoice_ids=[inv],
    )

    assert result == {"transaction_id": tx_id, "is_reconciled": True, "link_count": 3}

    links = _links(tx_id)
    by_target = {(l.expense_id or l.invoice_id): float(l.amount_matched) for l in links}
    assert by_target == {e1: 100.0, e2: 30.0, inv: 45.0}
    assert all((l.expense_id is None) != (l.invoice_id is None) for l in links)

    assert _get(BankTransaction, tx_id).is_reconciled is True
    for expense_id in (e1, e2):
        expense = _get(Expense, expense_id)
        assert expense.is_reconciled is True
        assert expense.reconciled_transaction_id == tx_id


def test_reconcile_multi_is_idempotent():
    tx_id, e1, _e2, _inv = _seed()

    for _ in range(2):
        reconciliation_service.reconcile_multi(company_id=COMPANY_ID, transaction_id=tx_id, expense_ids=[e1])

    links = _links(tx_id)
    assert [l.expense_id for l in links] == [e1]


def test_duplicate_ids_collapse_to_one_link():
    tx_id, e1, _e2, _inv = _seed()

    result = reconciliation_service.reconcile_multi(
        company_id=COMPANY_ID,
        transaction_id=tx_id,
        expense_ids=[e1, e1],
    )

    assert result["link_count"] == 1


def test_replacing_links_releases_dropped_expenses():
    tx_id, e1, e2, _inv = _seed()

    reconciliation_service.reconcile_multi(company_id=COMPANY_ID, transaction_id=tx_id, expense_ids=[e1])
    reconciliation_service.reconcile_multi(company_id=COMPANY_ID, transaction_id=tx_id, expense_ids=[e2])

    assert [l.expense_id for l in _links(tx_id)] == [e2]
    assert _get(Expense, e1).is_reconciled is False
    assert _get(Expense, e1).reconciled_transaction_id is None
    assert _get(Expense, e2).is_reconciled is True


def test_partial_allocation_still_marks_reconciled():
    tx_id, _e1, e2, _inv = _seed()

    reconciliation_service.reconcile_multi(company_id=COMPANY_ID, transaction_id=tx_id, expense_ids=[e2])

    db = _db()
    try:
        summary = reconciliation_service.reconciliation_summary(
            company_id=COMPANY_ID, transaction_id=tx_id, db=db
        )
    finally:
        db.close()

    assert summary["is_reconciled"] is True
    assert summary["total_matched"] == pytest.approx(30)
    assert summary["unmatched_amount"] == pytest.approx(120)
    assert summary["linked_items"] == [f"expense:{e2}"]


def test_unreconcile_undoes_single_link_reconcile():
    tx_id, e1, _e2, _inv = _seed()

    reconciliation_service.reconcile_multi(company_id=COMPANY_ID, transaction_id=tx_id, expense_ids=[e1])
    result = reconciliation_service.unreconcile(company_id=COMPANY_ID, transaction_id=tx_id)

    assert result["is_reconciled"] is False
    assert result["links_removed"] == 1
    assert _links(tx_id) == []
    assert _get(BankTransaction, tx_id).is_reconciled is False
    expense = _get(Expense, e1)
    assert expense.is_reconciled is False
    assert expense.reconciled_transaction_id is None


def test_unreconcile_leaves_invoice_paid():
    tx_id, _e1, _e2, inv = _seed()

    reconciliation_service.reconcile_multi(company_id=COMPANY_ID, transaction_id=tx_id, invoice_ids=[inv])
    reconciliation_service.unreconcile(company_id=COMPANY_ID, transaction_id=tx_id)

    assert _get(Quote, inv).status == "paid"


def test_unknown_transaction_is_not_found():
    with pytest.raises(NotFoundError) as exc:
        reconciliation_service.reconcile_multi(
            company_id=COMPANY_ID, transaction_id="missing", expense_ids=[]
        )
    assert "Transaction not found" in str(exc.value)

    with pytest.raises(NotFoundError):
        reconciliation_service.unreconcile(company_id=COMPANY_ID, transaction_id="missing")


def test_other_company_transaction_is_not_found():
    tx_id, e1, _e2, _inv = _seed(company_id=COMPANY_ID + 1)

    with pytest.raises(NotFoundError):
        reconciliation_service.reconcile_multi(company_id=COMPANY_ID, transaction_id=tx_id, expense_ids=[e1])


def test_failed_acceptance_changes_nothing():
    tx_id, e1, e2, _inv = _seed()
    reconciliation_service.reconcile_multi(company_id=COMPANY_ID, transaction_id=tx_id, expense_ids=[e1])

    with pytest.raises(NotFoundError):
        reconciliation_service.reconcile_multi(
            company_id=COMPANY_ID,
            transaction_id=tx_id,
            expense_ids=[e2, "no-such-expense"],
        )

    assert [l.expense_id for l in _links(tx_id)] == [e1]
    assert _get(Expense, e1).is_reconciled is True
    assert _get(Expense, e2).is_reconciled is False


def test_accept_match_sets_single_link_fields():
    tx_id, e1, _e2, _inv = _seed()

    reconciliation_service.accept_match(company_id=COMPANY_ID, transaction_id=tx_id, expense_id=e1)

    tx = _get(BankTransaction, tx_id)
    assert tx.is_reconciled is True
    assert tx.reconciled_expense_id == e1
    assert tx.reconciled_invoice_id is None
    assert len(_links(tx_id)) == 1


def test_accept_match_requires_exactly_one_target():
    tx_id, e1, _e2, inv = _seed()

    with pytest.raises(ValueError):
        reconciliation_service.accept_match(company_id=COMPANY_ID, transaction_id=tx_id)
    with pytest.raises(ValueError):
        reconciliation_service.accept_match(
            company_id=COMPANY_ID, transaction_id=tx_id, expense_id=e1, invoice_id=inv
        )


def test_stats_and_suggestions():
    tx_id, _e1, _e2, _inv = _seed()
    db = _db()
    try:
        matched_tx = BankTransaction(
            company_id=COMPANY_ID,
            transaction_date=date(2026, 2, 4),
            amount=-36,
            is_reconciled=False,
        )
        db.add(matched_tx)
        db.commit()

        stats = reconciliation_service.reconciliation_stats(company_id=COMPANY_ID, db=db)
        suggestions = reconciliation_service.load_suggestions(company_id=COMPANY_ID, db=db)
    finally:
        db.close()

    # -36 is Screwfix's 30 grossed up by VAT; -150 matches nothing
    assert stats == {"total": 2, "reconciled": 0, "pending": 2, "suggested_count": 1}
    assert [s.expense.vendor for s in suggestions] == ["Screwfix"]


def test_reconcile_with_no_items_leaves_transaction_unreconciled():
    tx_id, e1, _e2, _inv = _seed()
    reconciliation_service.reconcile_multi(company_id=COMPANY_ID, transaction_id=tx_id, expense_ids=[e1])

    result = reconciliation_service.reconcile_multi(
        company_id=COMPANY_ID, transaction_id=tx_id, expense_ids=[], invoice_ids=[]
    )

    assert result == {"transaction_id": tx_id, "is_reconciled": False, "link_count": 0}
    assert _links(tx_id) == []
    assert _get(BankTransaction, tx_id).is_reconciled is False
    assert _get(Expense, e1).is_reconciled is False


def test_quote_that_is_not_an_invoice_cannot_be_linked():
    tx_id, _e1, _e2, _inv = _seed()
    db = _db()
    try:
        draft = Quote(
            company_id=COMPANY_ID,
            reference_number=2,
            type="quote",
            status="draft",
            sections=[],
            total=150,
        )
        db.add(draft)
        db.commit()
        draft_id = draft.id
    finally:
        db.close()

    with pytest.raises(NotFoundError) as exc:
        reconciliation_service.reconcile_multi(
            company_id=COMPANY_ID, transaction_id=tx_id, invoice_ids=[draft_id]
        )
    assert "Invoice not found" in str(exc.value)

    with pytest.raises(NotFoundError):
        reconciliation_service.accept_match(company_id=COMPANY_ID, transaction_id=tx_id, invoice_id=draft_id)

    assert _links(tx_id) == []
    assert _get(BankTransaction, tx_id).is_reconciled is False


def test_deleting_last_linked_expense_clears_transaction_flag():
    tx_id, e1, e2, _inv = _seed()
    other_tx = _seed()[0]
    reconciliation_service.reconcile_multi(company_id=COMPANY_ID, transaction_id=tx_id, expense_ids=[e1, e2])

    db = _db()
    try:
        for expense_id in (e1, e2):
            linked = reconciliation_service.linked_transaction_ids(db, expense_id=expense_id)
            assert linked == [tx_id]
            db.delete(db.get(Expense, expense_id))
            db.flush()
            cleared = reconciliation_service.clear_unlinked_transactions(db, linked + [other_tx])
            # the first delete leaves e2 linked
            assert cleared == (1 if expense_id == e2 else 0)
        db.commit()
    finally:
        db.close()

    assert _links(tx_id) == []
    tx = _get(BankTransaction, tx_id)
    assert tx.is_reconciled is False
    assert tx.reconciled_expense_id is None
    assert _get(BankTransaction, other_tx).is_reconciled is False
