import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import get_current_user, require_organization, require_role
from blokt.models.models import User, Project
from blokt.schemas.schemas import TeamMemberResponse, InviteCodeResponse, ProjectRef
from blokt.services import membership
from blokt.api.serializers import user_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/team", tags=["team"])

TEAM_ADMIN_ROLES = ["project_manager", "foreman", "executive"]


@router.get("", response_model=list[TeamMemberResponse])
def list_team(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    org_id = require_organization(user)
    members = db.query(User).filter(User.organization_id == org_id).order_by(User.name).all()
    projects = db.query(Project).filter(Project.organization_id == org_id).all()

    result = []
    for m in members:
        joined = [ProjectRef(id=p.id, name=p.name) for p in projects if m.id in (p.user_ids or [])]
        result.append(TeamMemberResponse(
            **user_response(m).model_dump(), project_count=len(joined), projects=joined
        ))
    return result


@router.get("/invite-code", response_model=InviteCodeResponse)
def invite_code(user: User = Depends(get_current_user)):
    return InviteCodeResponse(code=require_organization(user))


@router.delete("/{user_id}")
def remove_team_member(
    user_id: str,
    user: User = Depends(require_role(TEAM_ADMIN_ROLES)),
    db: Session = Depends(get_db)
):
    org_id = require_organization(user)
    if user_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot remove yourself")
    target = db.query(User).filter(User.id == user_id, User.organization_id == org_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found in your organization")

    membership.purge_user(db, target)
    db.delete(target)
    db.commit()
    logger.info("user %s removed team member %s", user.id, user_id)
    return {"ok": True}
