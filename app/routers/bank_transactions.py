from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.core.authorization import Role, require_feature, require_role
from app.core.errors import NotFoundError
from app.database import SessionLocal
from app.models.bank_transaction import BankTransaction
from app.schemas.bank_transaction import BankTransactionCreate, BankTransactionResponse
from app.services import reconciliation_service
from app.services.subscription_service import Feature

router = APIRouter(
    prefix="/bank_transactions",
    tags=["Bank Transactions"],
    dependencies=[Depends(require_feature(Feature.BANK_IMPORT))],
)


@router.post("", response_model=BankTransactionResponse)
def create_transaction(
    payload: BankTransactionCreate,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    db = SessionLocal()
    try:
        row = BankTransaction(
            company_id=int(request.state.company_id),
            transaction_date=payload.transaction_date,
            description=payload.description,
            amount=payload.amount,
            is_reconciled=False,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    finally:
        db.close()


@router.get("", response_model=List[BankTransactionResponse])
def list_transactions(
    request: Request,
    status: Literal["all", "unreconciled", "reconciled"] = Query("all"),
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        q = db.query(BankTransaction).filter(BankTransaction.company_id == int(request.state.company_id))
        if status == "unreconciled":
            q = q.filter(BankTransaction.is_reconciled.is_(False))
        elif status == "reconciled":
            q = q.filter(BankTransaction.is_reconciled.is_(True))
        return q.order_by(BankTransaction.transaction_date.desc(), BankTransaction.created_at.desc()).all()
    finally:
        db.close()


@router.get("/{transaction_id}", response_model=BankTransactionResponse)
def get_transaction(
    transaction_id: str,
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        return reconciliation_service.get_transaction(db, int(request.state.company_id), transaction_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    finally:
        db.close()


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    db = SessionLocal()
    try:
        row = reconciliation_service.get_transaction(db, int(request.state.company_id), transaction_id)
        # expenses become matchable again; links go by cascade
        reconciliation_service.release_expenses(db, row.id)
        db.flush()
        db.delete(row)
        db.commit()
    except NotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
