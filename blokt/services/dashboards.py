import logging
from collections import Counter
from sqlalchemy.orm import Session
from blokt.models.models import (
    User, UserRole, Project, ProjectStatus, Task, TaskStatus, SafetyAlert, AlertSeverity
)
from blokt.services import membership

logger = logging.getLogger(__name__)

ALL_ROLES = [r.value for r in UserRole]

NAVIGATION = [
    {"href": "/dashboard", "label": "Dashboard", "roles": ALL_ROLES},
    {"href": "/projects", "label": "Projects", "roles": ALL_ROLES},
    {"href": "/videos", "label": "Videos", "roles": ALL_ROLES},
    {"href": "/review", "label": "Review", "roles": ["project_manager", "foreman", "safety_manager"]},
    {"href": "/analytics", "label": "Analytics", "roles": ["project_manager", "safety_manager", "executive"]},
    {"href": "/safety", "label": "Safety", "roles": ALL_ROLES},
    {"href": "/team", "label": "Team", "roles": ["project_manager", "foreman", "executive"]},
    {"href": "/upload", "label": "Upload", "roles": ["field_worker", "foreman"]},
    {"href": "/settings", "label": "Settings", "roles": ALL_ROLES},
]

ACTIVE_PROJECT_STATUSES = (ProjectStatus.ACTIVE, ProjectStatus.ON_HOLD)
PENDING_TASK_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.DELAYED)


def navigation_for(role: str) -> list[dict]:
    return [{"href": n["href"], "label": n["label"]} for n in NAVIGATION if role in n["roles"]]


def _pct(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def project_progress(projects: list[Project], tasks_by_id: dict) -> list[dict]:
    rows = []
    for p in projects:
        tasks = [tasks_by_id[tid] for tid in (p.task_ids or []) if tid in tasks_by_id]
        completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
        total = len(p.task_ids or [])
        rows.append({
            "id": p.id, "name": p.name, "status": p.status.value,
            "completed": completed, "total": total, "progress": _pct(completed, total),
        })
    return rows


def _field_worker(ctx: dict) -> dict:
    user = ctx["user"]
    mine = [t for t in ctx["all_tasks"] if user.id in (t.assignees or [])]
    return {
        "my_pending": sum(1 for t in mine if t.status in PENDING_TASK_STATUSES),
        "my_completed": sum(1 for t in mine if t.status == TaskStatus.COMPLETED),
        "project_progress": ctx["progress"],
    }


def _foreman(ctx: dict) -> dict:
    in_progress = [t for t in ctx["pending_tasks"] if t.status == TaskStatus.IN_PROGRESS]
    return {
        "in_progress": len(in_progress),
        "not_started": len(ctx["pending_tasks"]) - len(in_progress),
        "completed": len(ctx["completed_tasks"]),
        "recently_completed": [
            {"id": t.id, "name": t.name}
            for t in sorted(ctx["completed_tasks"], key=lambda t: t.updated_at, reverse=True)[:5]
        ],
        "project_progress": ctx["progress"],
    }


def _project_manager(ctx: dict) -> dict:
    statuses = Counter(t.status.value for t in ctx["all_tasks"])
    return {
        "alignment_score": _pct(len(ctx["completed_tasks"]), len(ctx["all_tasks"])),
        "status_breakdown": {s.value: statuses.get(s.value, 0) for s in TaskStatus},
        "project_progress": [p for p in ctx["progress"] if p["status"] in ("active", "on_hold")],
    }


def _safety_manager(ctx: dict) -> dict:
    open_alerts = [a for a in ctx["alerts"] if not a.acknowledged]
    by_severity = Counter(a.severity.value for a in open_alerts)
    return {
        "open_alerts": len(open_alerts),
        "open_by_severity": {s.value: by_severity.get(s.value, 0) for s in AlertSeverity},
        "completion_rate": _pct(len(ctx["completed_tasks"]), len(ctx["all_tasks"])),
    }


def _executive(ctx: dict) -> dict:
    return {
        "completion_rate": _pct(len(ctx["completed_tasks"]), len(ctx["all_tasks"])),
        "portfolio": [p for p in ctx["progress"] if p["status"] in ("active", "on_hold")],
    }


ROLE_WIDGETS = {
    UserRole.FIELD_WORKER: _field_worker,
    UserRole.FOREMAN: _foreman,
    UserRole.PROJECT_MANAGER: _project_manager,
    UserRole.SAFETY_MANAGER: _safety_manager,
    UserRole.EXECUTIVE: _executive,
}


def build_dashboard(db: Session, user: User) -> dict:
    projects = membership.projects_for_user(db, user)
    task_ids = {tid for p in projects for tid in (p.task_ids or [])}
    all_tasks = db.query(Task).filter(Task.id.in_(task_ids)).all() if task_ids else []
    tasks_by_id = {t.id: t for t in all_tasks}
    alerts = []
    if projects:
        alerts = db.query(SafetyAlert).filter(
            SafetyAlert.project_id.in_([p.id for p in projects])
        ).all()

    ctx = {
        "user": user,
        "projects": projects,
        "active_projects": [p for p in projects if p.status in ACTIVE_PROJECT_STATUSES],
        "all_tasks": all_tasks,
        "completed_tasks": [t for t in all_tasks if t.status == TaskStatus.COMPLETED],
        "pending_tasks": [t for t in all_tasks if t.status in PENDING_TASK_STATUSES],
        "alerts": alerts,
        "progress": project_progress(projects, tasks_by_id),
    }
    ctx["total_members"] = len({uid for p in projects for uid in (p.user_ids or [])})
    ctx["widgets"] = ROLE_WIDGETS[user.role](ctx)
    logger.debug("dashboard for %s: %d projects, %d tasks", user.id, len(projects), len(all_tasks))
    return ctx
