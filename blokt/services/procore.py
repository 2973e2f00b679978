"""Mock Procore integration.

No network calls are made: the payloads below follow the shape of the
Procore REST project and RFI/task listings and are written into the local
tables as if they had been fetched. Data is deterministic for a given day so
re-running the sync updates rows instead of duplicating them.
"""
import random
import logging
from datetime import datetime, date, timedelta
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from blokt.models.models import Organization, Project, ProjectStatus, Task, TaskStatus, User
from blokt.services import membership

logger = logging.getLogger(__name__)

PROCORE_API = "https://api.procore.com/rest"

TRADES = ["Electrical", "Plumbing", "HVAC", "Concrete", "Steel"]

PROCORE_PROJECTS = [
    {"id": 10001, "name": "Downtown Office Tower", "project_number": "P-2024-001", "active": True,
     "address": "500 Main Street", "city": "Austin", "state_code": "TX", "country_code": "US"},
    {"id": 10002, "name": "Harbor Bridge Renovation", "project_number": "P-2024-002", "active": True,
     "address": "1200 Harbor Blvd", "city": "San Diego", "state_code": "CA", "country_code": "US"},
    {"id": 10003, "name": "Metro Station Expansion", "project_number": "P-2024-003", "active": True,
     "address": "800 Transit Way", "city": "Denver", "state_code": "CO", "country_code": "US"},
    {"id": 10004, "name": "Airport Terminal B", "project_number": "P-2024-004", "active": True,
     "address": "1 Airport Road", "city": "Phoenix", "state_code": "AZ", "country_code": "US"},
    {"id": 10005, "name": "Riverside Apartments", "project_number": "P-2024-005", "active": False,
     "address": "250 River Road", "city": "Portland", "state_code": "OR", "country_code": "US"},
]

TASK_TEMPLATES = [
    ("Site preparation and grading", "Clear and grade the construction site according to plans"),
    ("Foundation excavation", "Excavate for foundation footings and walls"),
    ("Pour concrete footings", "Form and pour concrete footings per structural drawings"),
    ("Install rebar reinforcement", "Place rebar per structural specifications"),
    ("Waterproofing foundation", "Apply waterproofing membrane to foundation walls"),
    ("Structural steel delivery", "Receive and inspect structural steel shipment"),
    ("Steel column installation", "Erect primary steel columns on foundation"),
    ("Steel beam placement", "Install steel beams and connections"),
    ("Metal deck installation", "Install metal decking on steel frame"),
    ("Concrete slab pour - Level 1", "Pour concrete slab on metal deck for first floor"),
    ("Electrical rough-in", "Install electrical conduits and boxes"),
    ("Plumbing rough-in", "Install plumbing pipes and fixtures rough-in"),
    ("HVAC ductwork installation", "Install HVAC ducts and equipment"),
    ("Fire sprinkler installation", "Install fire protection system"),
    ("Roofing installation", "Install roofing membrane and flashing"),
]


def _task_status(offset: int, rng: random.Random) -> TaskStatus:
    # earlier tasks are more likely to be done
    if offset < -20:
        return TaskStatus.COMPLETED
    if offset < -10:
        return TaskStatus.COMPLETED if rng.random() > 0.3 else TaskStatus.DELAYED
    if offset < 5:
        return TaskStatus.IN_PROGRESS if rng.random() > 0.5 else TaskStatus.PENDING
    return TaskStatus.PENDING


def generate_tasks(project_number: str, today: date) -> list[dict]:
    rng = random.Random(project_number)
    tasks = []
    for idx, (name, description) in enumerate(TASK_TEMPLATES):
        offset = idx * 5 - 30
        start = datetime.combine(today + timedelta(days=offset), datetime.min.time())
        tasks.append({
            "procore_task_id": f"{project_number}-T{idx + 1:02d}",
            "name": name,
            "description": description,
            "status": _task_status(offset, rng),
            "start": start,
            "end": start + timedelta(days=4),
            "trade": rng.choice(TRADES),
        })
    return tasks


def _upsert_project(db: Session, org_id: str, payload: dict, user_ids: list[str], today: date) -> Project:
    procore_id = str(payload["id"])
    project = db.query(Project).filter(
        Project.organization_id == org_id,
        Project.procore_project_id == procore_id,
    ).first()
    if project is None:
        project = Project(organization_id=org_id, procore_project_id=procore_id, task_ids=[], user_ids=[])
        db.add(project)
    project.name = payload["name"]
    project.location = f"{payload['address']}, {payload['city']}, {payload['state_code']}"
    project.status = ProjectStatus.ACTIVE if payload["active"] else ProjectStatus.COMPLETED
    project.date = project.date or datetime.combine(today - timedelta(days=90), datetime.min.time())
    project.ended_date = None if payload["active"] else (project.ended_date or datetime.utcnow())
    project.user_ids = list(dict.fromkeys([*(project.user_ids or []), *user_ids]))
    db.flush()
    return project


def _upsert_task(db: Session, project: Project, payload: dict, assignees: list[str]) -> Task:
    task = None
    if project.task_ids:
        task = db.query(Task).filter(
            Task.id.in_(project.task_ids),
            Task.procore_task_id == payload["procore_task_id"],
        ).first()
    if task is None:
        task = Task(procore_task_id=payload["procore_task_id"])
        db.add(task)
    task.name = payload["name"]
    task.description = payload["description"]
    task.status = payload["status"]
    task.start = payload["start"]
    task.end = payload["end"]
    task.trade = payload["trade"]
    task.assignees = assignees
    db.flush()
    membership.attach_task(project, task)
    return task


def sync_procore(db: Session, org: Organization, today: date = None) -> dict:
    """Write the mock Procore payloads into ``org`` and return a summary.

    Each project and each task is written inside its own SAVEPOINT; a failure
    is logged and counted, and the rest of the sync carries on.
    """
    today = today or date.today()
    errors = 0

    logger.info("GET %s/v1.1/projects (mock) for org %s", PROCORE_API, org.id)
    org_users = db.query(User).filter(User.organization_id == org.id).order_by(User.created_at).all()
    user_ids = [u.id for u in org_users]

    projects = []
    for payload in PROCORE_PROJECTS:
        try:
            with db.begin_nested():
                project = _upsert_project(db, org.id, payload, user_ids, today)
            projects.append((project, payload))
        except SQLAlchemyError:
            errors += 1
            logger.exception("project %s failed to sync", payload["project_number"])

    total_tasks = 0
    for project, payload in projects:
        logger.info("GET %s/v1.0/projects/%s/rfis (mock)", PROCORE_API, payload["id"])
        for task_payload in generate_tasks(payload["project_number"], today):
            try:
                with db.begin_nested():
                    _upsert_task(db, project, task_payload, user_ids[:2])
                total_tasks += 1
            except SQLAlchemyError:
                errors += 1
                logger.exception("task %s failed to sync", task_payload["procore_task_id"])

    for user in org_users:
        for project, _ in projects:
            membership.add_member(project, user)

    org.procore_company_id = org.procore_company_id or f"mock-{org.id[:8]}"
    db.commit()
    logger.info("procore sync done: %d projects, %d tasks, %d errors", len(projects), total_tasks, errors)
    return {
        "projects": len(projects),
        "users": len(user_ids),
        "tasks": total_tasks,
        "manpower_logs": 0,
        "errors": errors,
    }


def connection_status(db: Session, user: User) -> dict:
    projects = membership.projects_for_user(db, user)
    if not projects:
        return {"connected": False, "last_sync": None}
    latest = max(projects, key=lambda p: p.updated_at or p.created_at)
    return {"connected": True, "last_sync": latest.updated_at}
