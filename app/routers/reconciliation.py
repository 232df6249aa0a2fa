from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from app.core.authorization import Role, require_feature, require_role
from app.core.errors import NotFoundError
from app.database import SessionLocal
from app.schemas.bank_transaction import BankTransactionResponse
from app.schemas.expense import ExpenseResponse
from app.schemas.reconciliation import (
    AcceptMatchRequest,
    ReconcileMultiRequest,
    ReconcileResult,
    ReconciliationStats,
    ReconciliationSummary,
    SuggestedInvoice,
    SuggestedMatchResponse,
)
from app.services import reconciliation_service
from app.services.reconciliation_matcher import SuggestedMatch
from app.services.subscription_service import Feature

router = APIRouter(
    prefix="/reconciliation",
    tags=["Reconciliation"],
    dependencies=[Depends(require_feature(Feature.BANK_IMPORT))],
)


def _to_response(match: SuggestedMatch) -> SuggestedMatchResponse:
    invoice = None
    if match.invoice is not None:
        invoice = SuggestedInvoice(
            id=match.invoice.id,
            reference_number=match.invoice.reference_number,
            customer_name=match.invoice.customer_name,
            total=None if match.invoice.total is None else float(match.invoice.total),
        )
    return SuggestedMatchResponse(
        transaction=BankTransactionResponse.model_validate(match.transaction),
        expense=None if match.expense is None else ExpenseResponse.model_validate(match.expense),
        invoice=invoice,
        confidence=match.confidence.value,
        reason=match.reason,
    )


@router.get("/suggestions", response_model=List[SuggestedMatchResponse])
def list_suggestions(
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        matches = reconciliation_service.load_suggestions(company_id=int(request.state.company_id), db=db)
        return [_to_response(m) for m in matches]
    finally:
        db.close()


@router.get("/stats", response_model=ReconciliationStats)
def get_stats(
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        return reconciliation_service.reconciliation_stats(company_id=int(request.state.company_id), db=db)
    finally:
        db.close()


@router.post("/{transaction_id}/accept", response_model=ReconcileResult)
def accept_match(
    transaction_id: str,
    payload: AcceptMatchRequest,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    try:
        return reconciliation_service.accept_match(
            company_id=int(request.state.company_id),
            transaction_id=transaction_id,
            expense_id=payload.expense_id,
            invoice_id=payload.invoice_id,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/{transaction_id}/multi", response_model=ReconcileResult)
def reconcile_multi(
    transaction_id: str,
    payload: ReconcileMultiRequest,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    try:
        return reconciliation_service.reconcile_multi(
            company_id=int(request.state.company_id),
            transaction_id=transaction_id,
            expense_ids=payload.expense_ids,
            invoice_ids=payload.invoice_ids,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post("/{transaction_id}/unreconcile", response_model=ReconcileResult)
def unreconcile(
    transaction_id: str,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    try:
        return reconciliation_service.unreconcile(
            company_id=int(request.state.company_id),
            transaction_id=transaction_id,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/{transaction_id}/summary", response_model=ReconciliationSummary)
def get_summary(
    transaction_id: str,
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        return reconciliation_service.reconciliation_summary(
            company_id=int(request.state.company_id),
            transaction_id=transaction_id,
            db=db,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    finally:
        db.close()
