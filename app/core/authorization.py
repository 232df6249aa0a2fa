from enum import Enum

from fastapi import Depends, HTTPException, Request

from app.database import SessionLocal
from app.deps.auth import require_auth
from app.services import settings_service, subscription_service
from app.services.subscription_service import Feature


class Role(Enum):
    OWNER = "OWNER"
    BOOKKEEPER = "BOOKKEEPER"
    VIEWER = "VIEWER"


_RANK = {
    Role.VIEWER: 1,
    Role.BOOKKEEPER: 2,
    Role.OWNER: 3,
}


def require_role(role: Role):
    def dependency(request: Request, _auth: tuple[str, int] = Depends(require_auth)):
        # single-user businesses mint tokens without a role claim
        claim_role = request.state.claims.get("role") or Role.OWNER.value

        try:
            user_role = Role(str(claim_role).upper())
        except ValueError as exc:
            raise HTTPException(status_code=403, detail="Invalid role claim") from exc

        if _RANK[user_role] < _RANK[role]:
            raise HTTPException(status_code=403, detail="Insufficient role")

        request.state.role = user_role.value
        return user_role

    return dependency


def require_feature(feature: Feature):
    def dependency(request: Request, _auth: tuple[str, int] = Depends(require_auth)):
        db = SessionLocal()
        try:
            settings = settings_service.get_settings(db, int(request.state.company_id))
        finally:
            db.close()

        access = subscription_service.feature_access(settings, feature)
        if not access.allowed:
            raise HTTPException(
                status_code=403,
                detail=subscription_service.denial_message(feature, access),
            )
        return access

    return dependency
