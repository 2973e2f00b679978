from sqlalchemy.orm import Session
from fastapi import HTTPException
from blokt.models.models import Project, Task, TaskStatus, SafetyAlert, Video, User
from blokt.schemas.schemas import (
    UserResponse, ProjectResponse, TaskResponse, SafetyAlertResponse, VideoResponse, MemberResponse
)


def get_org_project(db: Session, project_id: str, org_id: str | None) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project or not org_id or project.organization_id != org_id:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def user_response(u: User) -> UserResponse:
    return UserResponse(
        id=u.id, email=u.email, name=u.name, role=u.role.value,
        organization_id=u.organization_id, trade=u.trade, phone=u.phone,
        is_active=bool(u.is_active), created_at=u.created_at
    )


def task_response(t: Task) -> TaskResponse:
    return TaskResponse(
        id=t.id, name=t.name, description=t.description, status=t.status.value,
        start=t.start, end=t.end, trade=t.trade, assignees=list(t.assignees or []),
        procore_task_id=t.procore_task_id, created_at=t.created_at, updated_at=t.updated_at
    )


def project_response(db: Session, p: Project) -> ProjectResponse:
    task_ids = list(p.task_ids or [])
    completed = 0
    if task_ids:
        completed = db.query(Task).filter(
            Task.id.in_(task_ids), Task.status == TaskStatus.COMPLETED
        ).count()
    return ProjectResponse(
        id=p.id, organization_id=p.organization_id, name=p.name,
        location=p.location, description=p.description, status=p.status.value,
        date=p.date, ended_date=p.ended_date, procore_project_id=p.procore_project_id,
        task_ids=task_ids, user_ids=list(p.user_ids or []),
        task_count=len(task_ids), completed_count=completed,
        created_at=p.created_at, updated_at=p.updated_at
    )


def member_response(u: User) -> MemberResponse:
    return MemberResponse(user_id=u.id, name=u.name, email=u.email, role=u.role.value, trade=u.trade)


def alert_response(a: SafetyAlert) -> SafetyAlertResponse:
    return SafetyAlertResponse(
        id=a.id, project_id=a.project_id,
        project_name=a.project.name if a.project else None,
        task_id=a.task_id, task_name=a.task.name if a.task else None,
        user_id=a.user_id, worker_name=a.worker.name if a.worker else None,
        video_id=a.video_id, violation_type=a.violation_type,
        description=a.description, severity=a.severity.value,
        confidence_score=a.confidence_score, timestamp=a.timestamp,
        acknowledged=bool(a.acknowledged), acknowledged_by=a.acknowledged_by,
        acknowledged_at=a.acknowledged_at, created_at=a.created_at
    )


def video_response(v: Video) -> VideoResponse:
    return VideoResponse(
        id=v.id, uri=v.uri, file_name=v.file_name, file_size=v.file_size,
        user_id=v.user_id, project_id=v.project_id,
        project_name=v.project.name if v.project else None,
        start=v.start, endtime=v.endtime,
        task_ids=list(v.task_ids or []), ai_suggested_tasks=list(v.ai_suggested_tasks or []),
        created_at=v.created_at
    )
