from fastapi import APIRouter, Depends, HTTPException, Request

from app.core.authorization import Role, require_role
from app.database import SessionLocal
from app.schemas.settings import SettingsResponse, SettingsUpdate
from app.services import settings_service

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=SettingsResponse)
def get_settings(
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    db = SessionLocal()
    try:
        return settings_service.get_settings(db, int(request.state.company_id))
    finally:
        db.close()


@router.put("", response_model=SettingsResponse)
def update_settings(
    payload: SettingsUpdate,
    request: Request,
    _role=Depends(require_role(Role.OWNER)),
):
    db = SessionLocal()
    try:
        row = settings_service.update_settings(
            db,
            int(request.state.company_id),
            payload.model_dump(exclude_none=True),
        )
        db.commit()
        db.refresh(row)
        return row
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    finally:
        db.close()
