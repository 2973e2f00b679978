import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import get_current_user
from blokt.models.models import Task, TaskStatus, User, Video
from blokt.schemas.schemas import TaskCreate, TaskUpdate, TaskResponse, TaskConfirm
from blokt.services import membership
from blokt.api.serializers import get_org_project, task_response
from blokt.api.projects import tasks_by_start

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["tasks"])

VALID_STATUSES = [s.value for s in TaskStatus]


def _check_dates(start, end):
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="Start date must be before end date")


def _get_org_task(db: Session, task_id: str, user: User) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task or not user.organization_id or not membership.project_for_task(db, task.id, user.organization_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("/projects/{project_id}/tasks", response_model=list[TaskResponse])
def list_tasks(project_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_org_project(db, project_id, user.organization_id)
    if not project.task_ids:
        return []
    tasks = db.query(Task).filter(Task.id.in_(project.task_ids)).all()
    return [task_response(t) for t in tasks_by_start(tasks)]


@router.post("/projects/{project_id}/tasks", response_model=TaskResponse)
def create_task(
    project_id: str, data: TaskCreate,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    project = get_org_project(db, project_id, user.organization_id)
    if not data.name.strip():
        raise HTTPException(status_code=400, detail="Task name is required")
    _check_dates(data.start, data.end)

    task = Task(
        name=data.name.strip(), description=data.description, status=TaskStatus.PENDING,
        start=data.start, end=data.end, trade=data.trade,
        assignees=list(dict.fromkeys(data.assignees)),
    )
    db.add(task)
    db.flush()
    membership.attach_task(project, task)
    db.commit()
    db.refresh(task)
    logger.info("created task %s in project %s", task.id, project.id)
    return task_response(task)


@router.put("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: str, data: TaskUpdate,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    task = _get_org_task(db, task_id, user)
    updates = data.model_dump(exclude_unset=True)
    if "name" in updates:
        if not (updates["name"] or "").strip():
            raise HTTPException(status_code=400, detail="Task name is required")
        updates["name"] = updates["name"].strip()
    if "status" in updates:
        if updates["status"] not in VALID_STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid status. Must be one of: {VALID_STATUSES}")
        updates["status"] = TaskStatus(updates["status"])
    if "assignees" in updates:
        updates["assignees"] = list(dict.fromkeys(updates["assignees"] or []))
    _check_dates(updates.get("start", task.start), updates.get("end", task.end))
    for field, value in updates.items():
        setattr(task, field, value)
    db.commit()
    db.refresh(task)
    return task_response(task)


@router.delete("/tasks/{task_id}")
def delete_task(task_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    task = _get_org_task(db, task_id, user)
    membership.detach_task(db, task)
    db.delete(task)
    db.commit()
    logger.info("deleted task %s", task_id)
    return {"ok": True}


@router.get("/tasks/mine", response_model=list[TaskResponse])
def my_tasks(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [task_response(t) for t in membership.get_user_tasks(db, user)]


@router.get("/users/{user_id}/tasks", response_model=list[TaskResponse])
def user_tasks(user_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    target = db.query(User).filter(User.id == user_id).first()
    if not target or not user.organization_id or target.organization_id != user.organization_id:
        raise HTTPException(status_code=404, detail="User not found")
    return [task_response(t) for t in membership.get_user_tasks(db, target)]


@router.post("/tasks/confirm")
def confirm_tasks(data: TaskConfirm, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Mark reviewed tasks completed and clear the video's staged AI suggestions."""
    video = db.query(Video).filter(Video.id == data.video_id).first()
    if not video or (video.user_id != user.id and (
            not video.owner or video.owner.organization_id != user.organization_id)):
        raise HTTPException(status_code=404, detail="Video not found")

    confirmed = 0
    if data.task_ids and user.organization_id:
        for task in db.query(Task).filter(Task.id.in_(data.task_ids)).all():
            if membership.project_for_task(db, task.id, user.organization_id):
                task.status = TaskStatus.COMPLETED
                confirmed += 1
    video.ai_suggested_tasks = []
    db.commit()
    logger.info("user %s confirmed %d tasks from video %s", user.id, confirmed, video.id)
    return {"ok": True, "confirmed": confirmed}
