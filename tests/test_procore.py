from datetime import date
from sqlalchemy.exc import SQLAlchemyError
from blokt.models.models import Project, ProjectStatus, Task, UserRole
from blokt.services import procore
from conftest import auth_headers


def test_connect_creates_projects_and_tasks(client, pm, worker, org, db):
    res = client.post("/api/integrations/procore/connect", headers=auth_headers(pm))
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["summary"] == {"projects": 5, "users": 2, "tasks": 75, "manpower_logs": 0, "errors": 0}

    projects = db.query(Project).filter(Project.organization_id == org.id).all()
    assert len(projects) == 5
    by_number = {p.procore_project_id: p for p in projects}
    assert by_number["10005"].status == ProjectStatus.COMPLETED
    assert by_number["10001"].status == ProjectStatus.ACTIVE
    for p in projects:
        assert len(p.task_ids) == 15
        assert set(p.user_ids) == {pm.id, worker.id}
    db.refresh(worker)
    assert set(worker.project_ids) == {p.id for p in projects}

    task = db.query(Task).filter(Task.procore_task_id == "P-2024-001-T01").one()
    assert set(task.assignees) == {pm.id, worker.id}


def test_connect_twice_upserts(client, pm, org, db):
    client.post("/api/integrations/procore/connect", headers=auth_headers(pm))
    client.post("/api/integrations/procore/connect", headers=auth_headers(pm))
    assert db.query(Project).count() == 5
    assert db.query(Task).count() == 75
    db.refresh(pm)
    assert len(pm.project_ids) == 5


def test_connect_requires_organization(client, make_user):
    res = client.post("/api/integrations/procore/connect", headers=auth_headers(make_user()))
    assert res.status_code == 400


def test_status_reflects_sync(client, pm):
    assert client.get("/api/integrations/procore/status", headers=auth_headers(pm)).json() == {
        "connected": False, "last_sync": None,
    }
    client.post("/api/integrations/procore/connect", headers=auth_headers(pm))
    status = client.get("/api/integrations/procore/status", headers=auth_headers(pm)).json()
    assert status["connected"] is True
    assert status["last_sync"] is not None


def test_generated_tasks_are_deterministic():
    today = date(2024, 6, 3)
    first = procore.generate_tasks("P-2024-001", today)
    assert first == procore.generate_tasks("P-2024-001", today)
    assert len(first) == 15
    assert first[0]["procore_task_id"] == "P-2024-001-T01"
    assert first[0]["status"].value == "completed"
    assert first[-1]["status"].value == "pending"
    for t in first:
        assert (t["end"] - t["start"]).days == 4


def test_failed_task_is_counted_and_sync_continues(db, org, make_user, monkeypatch):
    make_user(UserRole.PROJECT_MANAGER, org=org)
    real_upsert = procore._upsert_task

    def flaky(db_, project, payload, assignees):
        if payload["procore_task_id"].endswith("-T03"):
            raise SQLAlchemyError("constraint violated")
        return real_upsert(db_, project, payload, assignees)

    monkeypatch.setattr(procore, "_upsert_task", flaky)
    summary = procore.sync_procore(db, org, today=date(2024, 6, 3))
    assert summary["errors"] == 5
    assert summary["tasks"] == 70
    assert db.query(Task).count() == 70
