import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import (
    hash_password, verify_password, create_access_token, get_current_user, VALID_ROLES
)
from blokt.models.models import User, UserRole, Organization
from blokt.schemas.schemas import LoginRequest, TokenResponse, UserCreate, UserResponse, UserWithNav
from blokt.services.dashboards import navigation_for
from blokt.api.serializers import user_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 6


@router.post("/register", response_model=UserResponse)
def register(data: UserCreate, db: Session = Depends(get_db)):
    email = data.email.strip().lower()
    if not email or not data.name.strip():
        raise HTTPException(status_code=400, detail="Email and name are required")
    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
    if data.role not in VALID_ROLES:
        raise HTTPException(status_code=400, detail=f"Invalid role. Must be one of: {VALID_ROLES}")
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    org_id = None
    if data.invite_code:
        org = db.query(Organization).filter(Organization.id == data.invite_code.strip()).first()
        if not org:
            raise HTTPException(status_code=400, detail="Invalid invite code")
        org_id = org.id

    user = User(
        email=email,
        hashed_password=hash_password(data.password),
        name=data.name.strip(),
        role=UserRole(data.role),
        organization_id=org_id,
        project_ids=[],
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("registered user %s (%s)", user.id, user.role.value)
    return user_response(user)


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email.strip().lower()).first()
    if not user or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    token = create_access_token({"sub": user.id})
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=UserWithNav)
def get_me(user: User = Depends(get_current_user)):
    return UserWithNav(
        **user_response(user).model_dump(),
        organization_name=user.organization.name if user.organization else None,
        navigation=navigation_for(user.role.value),
    )
