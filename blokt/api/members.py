import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import get_current_user, VALID_ROLES
from blokt.models.models import User, UserRole
from blokt.schemas.schemas import MemberResponse, MemberCreate, MemberRoleUpdate
from blokt.services import membership
from blokt.api.serializers import get_org_project, member_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects/{project_id}/members", tags=["members"])


def _check_role(role: str) -> UserRole:
    if role not in VALID_ROLES:
        raise HTTPException(status_code=400, detail=f"Invalid role. Must be one of: {VALID_ROLES}")
    return UserRole(role)


@router.get("", response_model=list[MemberResponse])
def list_members(project_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_org_project(db, project_id, user.organization_id)
    if not project.user_ids:
        return []
    members = db.query(User).filter(User.id.in_(project.user_ids)).order_by(User.name).all()
    return [member_response(m) for m in members]


@router.get("/available", response_model=list[MemberResponse])
def available_members(project_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_org_project(db, project_id, user.organization_id)
    current = set(project.user_ids or [])
    org_users = db.query(User).filter(User.organization_id == project.organization_id).order_by(User.name).all()
    return [member_response(u) for u in org_users if u.id not in current]


@router.post("", response_model=MemberResponse)
def add_member(
    project_id: str, data: MemberCreate,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    project = get_org_project(db, project_id, user.organization_id)
    target = db.query(User).filter(
        User.id == data.user_id, User.organization_id == project.organization_id
    ).first()
    if not target:
        raise HTTPException(status_code=400, detail="User is not in this organization")
    if target.id in (project.user_ids or []):
        raise HTTPException(status_code=400, detail="User is already a member of this project")

    if data.role:
        target.role = _check_role(data.role)
    membership.add_member(project, target)
    db.commit()
    db.refresh(target)
    logger.info("added %s to project %s", target.id, project.id)
    return member_response(target)


@router.put("/{user_id}", response_model=MemberResponse)
def update_member_role(
    project_id: str, user_id: str, data: MemberRoleUpdate,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    project = get_org_project(db, project_id, user.organization_id)
    if user_id not in (project.user_ids or []):
        raise HTTPException(status_code=404, detail="Member not found")
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="Member not found")
    target.role = _check_role(data.role)
    db.commit()
    db.refresh(target)
    return member_response(target)


@router.delete("/{user_id}")
def remove_member(
    project_id: str, user_id: str,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    project = get_org_project(db, project_id, user.organization_id)
    if user_id not in (project.user_ids or []):
        raise HTTPException(status_code=404, detail="Member not found")
    target = db.query(User).filter(User.id == user_id).first()
    if target:
        membership.remove_member(project, target)
    else:
        project.user_ids = [uid for uid in project.user_ids if uid != user_id]
    db.commit()
    logger.info("removed %s from project %s", user_id, project.id)
    return {"ok": True}
