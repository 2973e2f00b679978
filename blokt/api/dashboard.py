from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import get_current_user
from blokt.models.models import User
from blokt.schemas.schemas import DashboardResponse
from blokt.services.dashboards import build_dashboard
from blokt.api.serializers import project_response, task_response

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse)
def get_dashboard(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    ctx = build_dashboard(db, user)
    return DashboardResponse(
        first_name=user.first_name,
        role=user.role.value,
        projects=[project_response(db, p) for p in ctx["projects"]],
        active_projects=[project_response(db, p) for p in ctx["active_projects"]],
        all_tasks=[task_response(t) for t in ctx["all_tasks"]],
        completed_tasks=[task_response(t) for t in ctx["completed_tasks"]],
        pending_tasks=[task_response(t) for t in ctx["pending_tasks"]],
        total_members=ctx["total_members"],
        widgets=ctx["widgets"],
    )
