import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_DEMO_DATA", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from blokt.db.session import get_db
from blokt.models.base import Base
from blokt.models.models import Organization, User, UserRole, Project, Task, TaskStatus
from blokt.core.auth import hash_password, create_access_token
from blokt.services import membership

PASSWORD = "secret123"


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def org(db):
    o = Organization(name="Acme Builders", type="general_contractor")
    db.add(o)
    db.commit()
    return o


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=UserRole.PROJECT_MANAGER, org=None, name=None, email=None, trade=None):
        counter["n"] += 1
        u = User(
            email=email or f"user{counter['n']}@example.com",
            hashed_password=hash_password(PASSWORD),
            name=name or f"User {counter['n']}",
            role=role,
            organization_id=org.id if org else None,
            trade=trade,
            project_ids=[],
        )
        db.add(u)
        db.commit()
        return u

    return _make


@pytest.fixture
def make_project(db):
    def _make(org, name="Tower A", members=(), status=None):
        p = Project(organization_id=org.id, name=name, task_ids=[], user_ids=[])
        if status is not None:
            p.status = status
        db.add(p)
        db.flush()
        for u in members:
            membership.add_member(p, u)
        db.commit()
        return p

    return _make


@pytest.fixture
def make_task(db):
    def _make(project, name="Pour slab", status=TaskStatus.PENDING, assignees=(), **kwargs):
        t = Task(name=name, status=status, assignees=list(assignees), **kwargs)
        db.add(t)
        db.flush()
        membership.attach_task(project, t)
        db.commit()
        return t

    return _make


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}


@pytest.fixture
def pm(make_user, org):
    return make_user(UserRole.PROJECT_MANAGER, org=org, name="Paula Manning")


@pytest.fixture
def worker(make_user, org):
    return make_user(UserRole.FIELD_WORKER, org=org, name="Wes Kim", trade="Electrical")
