from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import require_role, require_organization
from blokt.models.models import User
from blokt.schemas.schemas import AnalyticsResponse
from blokt.services.analytics import build_analytics

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

ANALYTICS_ROLES = ["project_manager", "safety_manager", "executive"]


@router.get("", response_model=AnalyticsResponse)
def get_analytics(user: User = Depends(require_role(ANALYTICS_ROLES)), db: Session = Depends(get_db)):
    return build_analytics(db, require_organization(user))
