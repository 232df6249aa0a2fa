from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.core.authorization import Role, require_feature, require_role
from app.database import SessionLocal
from app.services import settings_service
from app.services.subscription_service import Feature
from app.services.vat_summary_service import ALL_QUARTERS, vat_report

router = APIRouter(
    prefix="/vat",
    tags=["VAT"],
    dependencies=[Depends(require_feature(Feature.VAT_REPORTS))],
)


@router.get("/summary")
def get_vat_summary(
    request: Request,
    quarter: str = Query(ALL_QUARTERS, pattern=r"^(all|\d{4}-Q[1-4])$"),
    _role=Depends(require_role(Role.VIEWER)),
) -> dict[str, Any]:
    db = SessionLocal()
    try:
        company_id = int(request.state.company_id)
        if not settings_service.get_settings(db, company_id).is_vat_registered:
            raise HTTPException(status_code=403, detail="VAT registration required")
        return vat_report(company_id=company_id, db=db, quarter=quarter)
    finally:
        db.close()
