from datetime import datetime, timedelta
from blokt.models.models import Organization, SafetyAlert, AlertSeverity, Video
from conftest import auth_headers


def _alert(db, project, violation="Missing hard hat", severity=AlertSeverity.MEDIUM, minutes_ago=0, **kwargs):
    a = SafetyAlert(project_id=project.id, violation_type=violation, severity=severity,
                    timestamp=datetime.utcnow() - timedelta(minutes=minutes_ago), **kwargs)
    db.add(a)
    db.commit()
    return a


def test_create_alert_requires_fields(client, pm, org, make_project):
    project = make_project(org, members=[pm])
    headers = auth_headers(pm)
    assert client.post("/api/safety", headers=headers, json={"project_id": project.id}).status_code == 400
    assert client.post("/api/safety", headers=headers, json={
        "project_id": project.id, "violation_type": "Fall risk", "severity": "extreme",
    }).status_code == 400

    res = client.post("/api/safety", headers=headers, json={
        "project_id": project.id, "violation_type": "Fall risk", "severity": "high", "confidence_score": 0.8,
    })
    assert res.status_code == 200
    body = res.json()
    assert body["acknowledged"] is False
    assert body["project_name"] == "Tower A"
    assert body["severity"] == "high"


def test_project_alerts_newest_first(client, pm, org, make_project, db):
    project = make_project(org, members=[pm])
    _alert(db, project, violation="Old", minutes_ago=30)
    _alert(db, project, violation="New")
    res = client.get(f"/api/projects/{project.id}/safety", headers=auth_headers(pm))
    assert [a["violation_type"] for a in res.json()] == ["New", "Old"]


def test_org_alerts_filters_and_scope(client, pm, worker, org, make_project, db):
    project = make_project(org)
    _alert(db, project, violation="Low one", severity=AlertSeverity.LOW)
    _alert(db, project, violation="Critical one", severity=AlertSeverity.CRITICAL, acknowledged=True)
    rival = Organization(name="Rival")
    db.add(rival)
    db.commit()
    _alert(db, make_project(rival), violation="Not ours")

    headers = auth_headers(pm)
    everything = client.get("/api/safety", headers=headers).json()
    assert {a["violation_type"] for a in everything} == {"Low one", "Critical one"}
    critical = client.get("/api/safety", params={"severity": "critical"}, headers=headers).json()
    assert [a["violation_type"] for a in critical] == ["Critical one"]
    open_alerts = client.get("/api/safety", params={"acknowledged": "false"}, headers=headers).json()
    assert [a["violation_type"] for a in open_alerts] == ["Low one"]
    assert client.get("/api/safety/unacknowledged-count", headers=headers).json() == {"count": 1}


def test_acknowledge_and_delete(client, pm, org, make_project, db):
    alert = _alert(db, make_project(org))
    res = client.post(f"/api/safety/{alert.id}/acknowledge", headers=auth_headers(pm))
    assert res.status_code == 200
    assert res.json()["acknowledged"] is True
    assert res.json()["acknowledged_by"] == pm.id
    assert res.json()["acknowledged_at"] is not None

    assert client.delete(f"/api/safety/{alert.id}", headers=auth_headers(pm)).json() == {"ok": True}
    assert client.delete(f"/api/safety/{alert.id}", headers=auth_headers(pm)).status_code == 404


def test_create_alert_checks_references(client, pm, worker, org, make_project, make_task, make_user, db):
    project = make_project(org, members=[pm, worker])
    own_task = make_task(project)
    rival = Organization(name="Rival")
    db.add(rival)
    db.commit()
    outsider = make_user(org=rival)
    foreign_task = make_task(make_project(rival, members=[outsider]))
    foreign_video = Video(uri="/uploads/r.mp4", user_id=outsider.id, task_ids=[], ai_suggested_tasks=[])
    own_video = Video(uri="/uploads/o.mp4", user_id=worker.id, task_ids=[], ai_suggested_tasks=[])
    db.add_all([foreign_video, own_video])
    db.commit()

    headers = auth_headers(pm)
    base = {"project_id": project.id, "violation_type": "No harness", "severity": "critical"}
    for extra, detail in (
        ({"task_id": foreign_task.id}, "Task does not belong to this project"),
        ({"user_id": outsider.id}, "User is not in this organization"),
        ({"video_id": foreign_video.id}, "Video is not in this organization"),
        ({"video_id": "missing"}, "Video is not in this organization"),
    ):
        res = client.post("/api/safety", headers=headers, json={**base, **extra})
        assert res.status_code == 400
        assert res.json()["detail"] == detail

    res = client.post("/api/safety", headers=headers, json={
        **base, "task_id": own_task.id, "user_id": worker.id, "video_id": own_video.id,
    })
    assert res.status_code == 200
    assert res.json()["worker_name"] == "Wes Kim"
    assert db.query(SafetyAlert).count() == 1
