"""Bookkeeping for the denormalized id arrays.

Projects carry ``task_ids`` and ``user_ids``; users carry ``project_ids``.
Nothing in the schema keeps them in step, so every write that touches one
side goes through these helpers. JSON columns are always reassigned with a
fresh list so SQLAlchemy sees the change.
"""
import logging
from sqlalchemy.orm import Session
from blokt.models.models import Project, Task, User, Video, SafetyAlert

logger = logging.getLogger(__name__)


def _with(values, item) -> list:
    values = list(values or [])
    if item not in values:
        values.append(item)
    return values


def _without(values, item) -> list:
    return [v for v in (values or []) if v != item]


def add_member(project: Project, user: User) -> bool:
    """Link ``user`` to ``project`` on both sides. Returns False if already linked."""
    already = user.id in (project.user_ids or [])
    project.user_ids = _with(project.user_ids, user.id)
    user.project_ids = _with(user.project_ids, project.id)
    return not already


def remove_member(project: Project, user: User) -> None:
    project.user_ids = _without(project.user_ids, user.id)
    user.project_ids = _without(user.project_ids, project.id)


def attach_task(project: Project, task: Task) -> None:
    project.task_ids = _with(project.task_ids, task.id)


def project_for_task(db: Session, task_id: str, org_id: str) -> Project | None:
    for project in db.query(Project).filter(Project.organization_id == org_id).all():
        if task_id in (project.task_ids or []):
            return project
    return None


def detach_task(db: Session, task: Task) -> None:
    """Strip ``task.id`` from every project and video that references it."""
    for project in db.query(Project).all():
        if task.id in (project.task_ids or []):
            project.task_ids = _without(project.task_ids, task.id)
    for video in db.query(Video).all():
        if task.id in (video.task_ids or []) or task.id in (video.ai_suggested_tasks or []):
            video.task_ids = _without(video.task_ids, task.id)
            video.ai_suggested_tasks = _without(video.ai_suggested_tasks, task.id)


def delete_project(db: Session, project: Project) -> int:
    """Delete a project with its tasks and alerts; returns the number of tasks removed."""
    task_ids = list(project.task_ids or [])
    if project.user_ids:
        for user in db.query(User).filter(User.id.in_(project.user_ids)).all():
            user.project_ids = _without(user.project_ids, project.id)
    db.query(SafetyAlert).filter(SafetyAlert.project_id == project.id).delete(synchronize_session=False)
    removed = 0
    if task_ids:
        for task in db.query(Task).filter(Task.id.in_(task_ids)).all():
            detach_task(db, task)
            db.delete(task)
            removed += 1
    for video in db.query(Video).filter(Video.project_id == project.id).all():
        video.project_id = None
    db.delete(project)
    logger.info("deleted project %s with %d tasks", project.id, removed)
    return removed


def purge_user(db: Session, user: User) -> None:
    """Remove every array reference to ``user`` ahead of deleting the row."""
    for project in db.query(Project).filter(Project.organization_id == user.organization_id).all():
        if user.id in (project.user_ids or []):
            project.user_ids = _without(project.user_ids, user.id)
    for task in db.query(Task).all():
        if user.id in (task.assignees or []):
            task.assignees = _without(task.assignees, user.id)


def projects_for_user(db: Session, user: User) -> list[Project]:
    """Projects in the user's organization whose ``user_ids`` contain the user, newest first."""
    if not user.organization_id:
        return []
    projects = (
        db.query(Project)
        .filter(Project.organization_id == user.organization_id)
        .order_by(Project.created_at.desc())
        .all()
    )
    return [p for p in projects if user.id in (p.user_ids or [])]


def get_user_tasks(db: Session, user: User) -> list[Task]:
    """Tasks of the user's projects plus tasks explicitly assigned to them, newest first."""
    if not user.organization_id:
        return []
    member_task_ids = set()
    org_task_ids = set()
    for project in db.query(Project).filter(Project.organization_id == user.organization_id).all():
        org_task_ids.update(project.task_ids or [])
        if user.id in (project.user_ids or []):
            member_task_ids.update(project.task_ids or [])
    if not org_task_ids:
        return []
    tasks = (
        db.query(Task)
        .filter(Task.id.in_(org_task_ids))
        .order_by(Task.created_at.desc())
        .all()
    )
    return [t for t in tasks if t.id in member_task_ids or user.id in (t.assignees or [])]
