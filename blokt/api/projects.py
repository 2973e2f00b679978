import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import get_current_user, require_organization
from blokt.models.models import Project, ProjectStatus, Task, User, Video, SafetyAlert
from blokt.schemas.schemas import ProjectCreate, ProjectUpdate, ProjectResponse, ProjectDetail
from blokt.services import membership
from blokt.api.serializers import (
    get_org_project, project_response, member_response, task_response, video_response, alert_response
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])

VALID_STATUSES = [s.value for s in ProjectStatus]


def _check_status(status: str) -> ProjectStatus:
    if status not in VALID_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status. Must be one of: {VALID_STATUSES}")
    return ProjectStatus(status)


def tasks_by_start(tasks: list[Task]) -> list[Task]:
    return sorted(tasks, key=lambda t: (t.start is None, t.start or datetime.min))


@router.get("", response_model=list[ProjectResponse])
def list_projects(
    status: str = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not user.organization_id:
        return []
    q = db.query(Project).filter(Project.organization_id == user.organization_id)
    if status:
        q = q.filter(Project.status == _check_status(status))
    projects = q.order_by(Project.created_at.desc()).all()
    return [project_response(db, p) for p in projects]


@router.post("", response_model=ProjectResponse)
def create_project(
    data: ProjectCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    org_id = require_organization(user)
    if not data.name.strip():
        raise HTTPException(status_code=400, detail="Project name is required")
    project = Project(
        organization_id=org_id, name=data.name.strip(), location=data.location,
        description=data.description, date=data.date or datetime.utcnow(),
        ended_date=data.ended_date, task_ids=[], user_ids=[]
    )
    db.add(project)
    db.flush()
    membership.add_member(project, user)
    db.commit()
    db.refresh(project)
    logger.info("user %s created project %s", user.id, project.id)
    return project_response(db, project)


@router.get("/{project_id}", response_model=ProjectDetail)
def get_project(project_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_org_project(db, project_id, user.organization_id)
    task_ids = project.task_ids or []
    user_ids = project.user_ids or []
    tasks = db.query(Task).filter(Task.id.in_(task_ids)).all() if task_ids else []
    members = db.query(User).filter(User.id.in_(user_ids)).order_by(User.name).all() if user_ids else []
    videos = db.query(Video).filter(Video.project_id == project.id).order_by(Video.created_at.desc()).all()
    alerts = db.query(SafetyAlert).filter(
        SafetyAlert.project_id == project.id
    ).order_by(SafetyAlert.timestamp.desc()).all()

    return ProjectDetail(
        **project_response(db, project).model_dump(),
        members=[member_response(m) for m in members],
        tasks=[task_response(t) for t in tasks_by_start(tasks)],
        videos=[video_response(v) for v in videos],
        safety_alerts=[alert_response(a) for a in alerts],
    )


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: str, data: ProjectUpdate,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    project = get_org_project(db, project_id, user.organization_id)
    updates = data.model_dump(exclude_unset=True)
    if "status" in updates:
        updates["status"] = _check_status(updates["status"])
    if "name" in updates and not (updates["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Project name is required")
    for field, value in updates.items():
        setattr(project, field, value)
    db.commit()
    db.refresh(project)
    return project_response(db, project)


@router.delete("/{project_id}")
def delete_project(project_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_org_project(db, project_id, user.organization_id)
    membership.delete_project(db, project)
    db.commit()
    return {"ok": True}
