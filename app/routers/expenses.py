from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from app.core.authorization import Role, require_feature, require_role
from app.database import SessionLocal
from app.models.bank_transaction import BankTransaction
from app.models.expense import Expense
from app.schemas.expense import ExpenseCreate, ExpenseResponse
from app.services import reconciliation_service
from app.services.subscription_service import Feature

router = APIRouter(
    prefix="/expenses",
    tags=["Expenses"],
    dependencies=[Depends(require_feature(Feature.EXPENSES))],
)


@router.post("", response_model=ExpenseResponse)
def create_expense(
    payload: ExpenseCreate,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    db = SessionLocal()
    try:
        row = Expense(
            company_id=int(request.state.company_id),
            vendor=payload.vendor,
            category=payload.category,
            description=payload.description,
            amount=payload.amount,
            vat_amount=payload.vat_amount,
            expense_date=payload.expense_date,
            is_reconciled=False,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    finally:
        db.close()


@router.get("", response_model=List[ExpenseResponse])
def list_expenses(
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        return (
            db.query(Expense)
            .filter(Expense.company_id == int(request.state.company_id))
            .order_by(Expense.expense_date.desc(), Expense.created_at.desc())
            .all()
        )
    finally:
        db.close()


def _get_own_expense(db, company_id: int, expense_id: str) -> Expense:
    row = (
        db.query(Expense)
        .filter(Expense.id == str(expense_id), Expense.company_id == int(company_id))
        .first()
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Expense not found")
    return row


@router.get("/{expense_id}", response_model=ExpenseResponse)
def get_expense(
    expense_id: str,
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        return _get_own_expense(db, int(request.state.company_id), expense_id)
    finally:
        db.close()


@router.delete("/{expense_id}", status_code=204)
def delete_expense(
    expense_id: str,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    db = SessionLocal()
    try:
        row = _get_own_expense(db, int(request.state.company_id), expense_id)
        linked_tx_ids = reconciliation_service.linked_transaction_ids(db, expense_id=row.id)

        # links cascade in the database; the legacy pointer does not
        db.query(BankTransaction).filter(
            BankTransaction.company_id == int(request.state.company_id),
            BankTransaction.reconciled_expense_id == row.id,
        ).update({BankTransaction.reconciled_expense_id: None}, synchronize_session=False)

        db.delete(row)
        db.flush()
        reconciliation_service.clear_unlinked_transactions(db, linked_tx_ids)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
