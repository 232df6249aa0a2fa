from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from app.core.authorization import Role, require_feature, require_role
from app.core.errors import AccessDeniedError, NotFoundError
from app.database import SessionLocal
from app.schemas.quote import QuoteCalculateRequest, QuoteCreate, QuoteResponse, TotalsResponse
from app.services import quote_service, reconciliation_service, settings_service
from app.services.subscription_service import Feature
from app.services.totals_engine import DisplayOptions, calculate_quote_totals

router = APIRouter(
    prefix="/quotes",
    tags=["Quotes"],
    dependencies=[Depends(require_feature(Feature.INVOICES))],
)


@router.post("/calculate", response_model=TotalsResponse)
def calculate_totals(
    payload: QuoteCalculateRequest,
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    """Totals for an unsaved document, using the company's settings."""
    db = SessionLocal()
    try:
        settings = settings_service.get_settings(db, int(request.state.company_id))
        totals = calculate_quote_totals(
            payload,
            settings_service.calculation_options(settings),
            DisplayOptions(show_vat=payload.show_vat, show_cis=payload.show_cis),
        )
        return totals.to_dict()
    finally:
        db.close()


@router.post("", response_model=QuoteResponse)
def create_quote(
    payload: QuoteCreate,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    try:
        return quote_service.create_quote(int(request.state.company_id), payload)
    except AccessDeniedError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc


@router.get("", response_model=List[QuoteResponse])
def list_quotes(
    request: Request,
    type: Optional[str] = None,
    status: Optional[str] = None,
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        return quote_service.list_quotes(
            db,
            int(request.state.company_id),
            quote_type=type,
            status=status,
        )
    finally:
        db.close()


@router.get("/{quote_id}", response_model=QuoteResponse)
def get_quote(
    quote_id: str,
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        return quote_service.get_quote(db, int(request.state.company_id), quote_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    finally:
        db.close()


@router.get("/{quote_id}/totals", response_model=TotalsResponse)
def get_quote_totals(
    quote_id: str,
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        quote = quote_service.get_quote(db, int(request.state.company_id), quote_id)
        return quote_service.totals_for_quote(db, quote).to_dict()
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    finally:
        db.close()


@router.put("/{quote_id}", response_model=QuoteResponse)
def update_quote(
    quote_id: str,
    payload: QuoteCreate,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    try:
        return quote_service.update_quote(int(request.state.company_id), quote_id, payload)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except AccessDeniedError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc


@router.post("/{quote_id}/convert", response_model=QuoteResponse)
def convert_to_invoice(
    quote_id: str,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    try:
        return quote_service.set_quote_state(
            int(request.state.company_id),
            quote_id,
            quote_type="invoice",
            status="draft",
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except AccessDeniedError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc


@router.post("/{quote_id}/mark_paid", response_model=QuoteResponse)
def mark_paid(
    quote_id: str,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    try:
        return quote_service.set_quote_state(int(request.state.company_id), quote_id, status="paid")
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.delete("/{quote_id}", status_code=204)
def delete_quote(
    quote_id: str,
    request: Request,
    _role=Depends(require_role(Role.BOOKKEEPER)),
):
    db = SessionLocal()
    try:
        linked_tx_ids = reconciliation_service.linked_transaction_ids(db, invoice_id=quote_id)
        quote_service.delete_quote(int(request.state.company_id), quote_id, db=db)
        reconciliation_service.clear_unlinked_transactions(db, linked_tx_ids)
        db.commit()
    except NotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
