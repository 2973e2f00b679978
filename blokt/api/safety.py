import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import get_current_user
from blokt.models.models import SafetyAlert, AlertSeverity, Project, User, Video
from blokt.schemas.schemas import SafetyAlertCreate, SafetyAlertResponse
from blokt.api.serializers import get_org_project, alert_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["safety"])

VALID_SEVERITIES = [s.value for s in AlertSeverity]
ORG_ALERT_LIMIT = 100


def _org_alerts(db: Session, org_id: str):
    return db.query(SafetyAlert).join(Project, SafetyAlert.project_id == Project.id).filter(
        Project.organization_id == org_id
    )


def _check_alert_refs(db: Session, project: Project, data: SafetyAlertCreate):
    if data.task_id and data.task_id not in (project.task_ids or []):
        raise HTTPException(status_code=400, detail="Task does not belong to this project")
    if data.user_id:
        worker = db.query(User).filter(
            User.id == data.user_id, User.organization_id == project.organization_id
        ).first()
        if not worker:
            raise HTTPException(status_code=400, detail="User is not in this organization")
    if data.video_id:
        video = db.query(Video).filter(Video.id == data.video_id).first()
        owner_org = video.owner.organization_id if video and video.owner else None
        if owner_org != project.organization_id:
            raise HTTPException(status_code=400, detail="Video is not in this organization")


def _get_org_alert(db: Session, alert_id: str, user: User) -> SafetyAlert:
    alert = None
    if user.organization_id:
        alert = _org_alerts(db, user.organization_id).filter(SafetyAlert.id == alert_id).first()
    if not alert:
        raise HTTPException(status_code=404, detail="Safety alert not found")
    return alert


@router.get("/projects/{project_id}/safety", response_model=list[SafetyAlertResponse])
def project_alerts(project_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_org_project(db, project_id, user.organization_id)
    alerts = db.query(SafetyAlert).filter(
        SafetyAlert.project_id == project.id
    ).order_by(SafetyAlert.timestamp.desc()).all()
    return [alert_response(a) for a in alerts]


@router.get("/safety", response_model=list[SafetyAlertResponse])
def list_alerts(
    severity: str = Query(None),
    acknowledged: bool = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not user.organization_id:
        return []
    q = _org_alerts(db, user.organization_id)
    if severity:
        if severity not in VALID_SEVERITIES:
            raise HTTPException(status_code=400, detail=f"Invalid severity. Must be one of: {VALID_SEVERITIES}")
        q = q.filter(SafetyAlert.severity == AlertSeverity(severity))
    if acknowledged is not None:
        q = q.filter(SafetyAlert.acknowledged == acknowledged)
    alerts = q.order_by(SafetyAlert.timestamp.desc()).limit(ORG_ALERT_LIMIT).all()
    return [alert_response(a) for a in alerts]


@router.get("/safety/unacknowledged-count")
def unacknowledged_count(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not user.organization_id:
        return {"count": 0}
    count = _org_alerts(db, user.organization_id).filter(SafetyAlert.acknowledged == False).count()
    return {"count": count}


@router.post("/safety", response_model=SafetyAlertResponse)
def create_alert(data: SafetyAlertCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not data.project_id or not data.violation_type or not data.severity:
        raise HTTPException(status_code=400, detail="project_id, violation_type and severity are required")
    if data.severity not in VALID_SEVERITIES:
        raise HTTPException(status_code=400, detail=f"Invalid severity. Must be one of: {VALID_SEVERITIES}")
    project = get_org_project(db, data.project_id, user.organization_id)
    _check_alert_refs(db, project, data)

    alert = SafetyAlert(
        project_id=project.id, task_id=data.task_id, user_id=data.user_id, video_id=data.video_id,
        violation_type=data.violation_type, description=data.description,
        severity=AlertSeverity(data.severity), confidence_score=data.confidence_score,
        timestamp=datetime.utcnow(), acknowledged=False,
    )
    db.add(alert)
    db.commit()
    db.refresh(alert)
    logger.info("safety alert %s (%s) on project %s", alert.id, alert.severity.value, project.id)
    return alert_response(alert)


@router.post("/safety/{alert_id}/acknowledge", response_model=SafetyAlertResponse)
def acknowledge_alert(alert_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    alert = _get_org_alert(db, alert_id, user)
    alert.acknowledged = True
    alert.acknowledged_by = user.id
    alert.acknowledged_at = datetime.utcnow()
    db.commit()
    db.refresh(alert)
    return alert_response(alert)


@router.delete("/safety/{alert_id}")
def delete_alert(alert_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    alert = _get_org_alert(db, alert_id, user)
    db.delete(alert)
    db.commit()
    return {"ok": True}
