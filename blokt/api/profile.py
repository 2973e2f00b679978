import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import get_current_user, hash_password
from blokt.models.models import User, Organization
from blokt.schemas.schemas import ProfileUpdate, ProfileResponse, OrgCreate, OrgResponse, PasswordUpdate
from blokt.api.serializers import user_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["profile"])


def _profile(user: User) -> ProfileResponse:
    org = OrgResponse.model_validate(user.organization) if user.organization else None
    return ProfileResponse(**user_response(user).model_dump(), organization=org)


@router.get("", response_model=ProfileResponse)
def get_profile(user: User = Depends(get_current_user)):
    return _profile(user)


@router.put("", response_model=ProfileResponse)
def update_profile(
    data: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    updates = data.model_dump(exclude_unset=True)
    if "name" in updates and not (updates["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    for field, value in updates.items():
        setattr(user, field, value.strip() if isinstance(value, str) else value)
    db.commit()
    db.refresh(user)
    return _profile(user)


@router.post("/organization", response_model=OrgResponse)
def create_organization(
    data: OrgCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if user.organization_id:
        raise HTTPException(status_code=400, detail="User already belongs to an organization")
    if not data.name.strip():
        raise HTTPException(status_code=400, detail="Organization name is required")

    org = Organization(name=data.name.strip(), type=data.type)
    db.add(org)
    db.flush()
    user.organization_id = org.id
    db.commit()
    db.refresh(org)
    logger.info("user %s created organization %s", user.id, org.id)
    return org


@router.post("/password")
def change_password(
    data: PasswordUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    if len(data.new_password) < 6:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
    user.hashed_password = hash_password(data.new_password)
    db.commit()
    return {"ok": True}
