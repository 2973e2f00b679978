import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import get_current_user, require_organization
from blokt.models.models import User
from blokt.schemas.schemas import ProcoreConnectResponse, ProcoreStatus
from blokt.services import procore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/integrations", tags=["integrations"])


@router.post("/procore/connect", response_model=ProcoreConnectResponse)
def connect_procore(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    require_organization(user)
    summary = procore.sync_procore(db, user.organization)
    return ProcoreConnectResponse(success=True, summary=summary)


@router.get("/procore/status", response_model=ProcoreStatus)
def procore_status(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return ProcoreStatus(**procore.connection_status(db, user))
