import os
import logging
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from blokt.core.config import CORS_ORIGINS, UPLOAD_DIR, LOG_LEVEL, SEED_DEMO_DATA
from blokt.core.logging import configure_logging
from blokt.db.session import engine
from blokt.models.base import Base
from blokt.api import (
    auth, profile, team, projects, members, tasks, safety, videos, uploads,
    integrations, dashboard, analytics, pages
)

configure_logging(LOG_LEVEL)
logger = logging.getLogger("blokt")

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "blokt", "static")

app = FastAPI(title="Blokt Field Operations", version="0.1.0")


class NoCacheMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/api") or request.url.path == "/":
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        return response


app.add_middleware(NoCacheMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ORIGINS != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR, check_dir=False), name="uploads")

app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(team.router)
app.include_router(projects.router)
app.include_router(members.router)
app.include_router(tasks.router)
app.include_router(safety.router)
app.include_router(videos.router)
app.include_router(uploads.router)
app.include_router(integrations.router)
app.include_router(dashboard.router)
app.include_router(analytics.router)
app.include_router(pages.router)


@app.on_event("startup")
def startup():
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    Base.metadata.create_all(bind=engine)
    if SEED_DEMO_DATA:
        _seed_defaults()


def _seed_defaults():
    from datetime import datetime, timedelta
    from blokt.db.session import SessionLocal
    from blokt.core.auth import hash_password
    from blokt.models.models import (
        Organization, User, UserRole, Project, Task, TaskStatus, SafetyAlert, AlertSeverity
    )
    from blokt.services import membership

    db = SessionLocal()
    try:
        if db.query(User).first():
            return

        org = Organization(name="Demo Construction Co", type="general_contractor")
        db.add(org)
        db.flush()

        people = [
            ("pm@blokt.dev", "Paula Manning", UserRole.PROJECT_MANAGER, None),
            ("foreman@blokt.dev", "Frank Ortiz", UserRole.FOREMAN, "Concrete"),
            ("worker@blokt.dev", "Wes Kim", UserRole.FIELD_WORKER, "Electrical"),
            ("safety@blokt.dev", "Sam Reyes", UserRole.SAFETY_MANAGER, None),
            ("exec@blokt.dev", "Erin Blake", UserRole.EXECUTIVE, None),
        ]
        users = []
        for email, name, role, trade in people:
            u = User(email=email, hashed_password=hash_password("password123"), name=name,
                     role=role, trade=trade, organization_id=org.id, project_ids=[])
            db.add(u)
            users.append(u)
        db.flush()

        now = datetime.utcnow().replace(hour=7, minute=0, second=0, microsecond=0)
        project = Project(organization_id=org.id, name="Eastside Medical Office", location="Austin, TX",
                          description="Three-storey medical office building", date=now - timedelta(days=30),
                          task_ids=[], user_ids=[])
        db.add(project)
        db.flush()
        for u in users:
            membership.add_member(project, u)

        worker = users[2]
        seed_tasks = [
            ("Excavate footings", TaskStatus.COMPLETED, -10, "Concrete"),
            ("Place footing rebar", TaskStatus.COMPLETED, -7, "Concrete"),
            ("Pour footings", TaskStatus.IN_PROGRESS, -2, "Concrete"),
            ("Underground conduit", TaskStatus.PENDING, 1, "Electrical"),
            ("Backfill and compact", TaskStatus.PENDING, 4, "Concrete"),
        ]
        created = []
        for name, status, offset, trade in seed_tasks:
            t = Task(name=name, status=status, trade=trade, start=now + timedelta(days=offset),
                     end=now + timedelta(days=offset + 2), assignees=[worker.id])
            db.add(t)
            db.flush()
            membership.attach_task(project, t)
            created.append(t)

        db.add(SafetyAlert(project_id=project.id, task_id=created[2].id, user_id=worker.id,
                           violation_type="Hard hat not worn", description="Worker without hard hat near pour",
                           severity=AlertSeverity.HIGH, confidence_score=0.92, timestamp=now))
        db.commit()
        logger.info("seeded demo organization %s", org.id)
    except Exception:
        db.rollback()
        logger.exception("seeding demo data failed")
    finally:
        db.close()


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
