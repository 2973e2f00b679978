import os
import pytest
from blokt.api.videos import STREAM_PURPOSE
from blokt.core.auth import create_signed_token
from blokt.models.models import Video
from blokt.services import ai_service, storage
from conftest import auth_headers


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(storage, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


def _video(db, owner, **kwargs):
    kwargs.setdefault("uri", "/uploads/clip.mp4")
    kwargs.setdefault("task_ids", [])
    kwargs.setdefault("ai_suggested_tasks", [])
    v = Video(user_id=owner.id, **kwargs)
    db.add(v)
    db.commit()
    return v


def test_save_and_list_videos(client, worker, pm, org, make_project):
    project = make_project(org, members=[worker])
    res = client.post("/api/videos", headers=auth_headers(worker), json={
        "uri": "/uploads/w_1.mp4", "project_id": project.id, "file_name": "shift.mp4", "file_size": 1024,
        "start": "2024-06-01T07:00:00", "endtime": "2024-06-01T15:00:00",
    })
    assert res.status_code == 200
    assert res.json()["project_name"] == "Tower A"

    mine = client.get("/api/videos", headers=auth_headers(worker)).json()
    assert [v["file_name"] for v in mine] == ["shift.mp4"]
    assert client.get("/api/videos", headers=auth_headers(pm)).json() == []
    by_project = client.get(f"/api/projects/{project.id}/videos", headers=auth_headers(pm)).json()
    assert len(by_project) == 1


def test_video_detail_has_signed_playback_url(client, worker, pm, org, make_project, make_task, db, upload_dir):
    task = make_task(make_project(org, members=[worker]))
    (upload_dir / "clip.mp4").write_bytes(b"frames")
    video = _video(db, worker, ai_suggested_tasks=[task.id])

    body = client.get(f"/api/videos/{video.id}", headers=auth_headers(pm)).json()
    assert [t["id"] for t in body["suggested_tasks"]] == [task.id]
    assert body["playback_url"].startswith(f"/api/videos/{video.id}/stream?token=")

    stream = client.get(body["playback_url"])
    assert stream.status_code == 200
    assert stream.content == b"frames"
    assert client.get(f"/api/videos/{video.id}/stream", params={"token": "forged"}).status_code == 403


def test_save_video_normalizes_offset_times(client, worker):
    res = client.post("/api/videos", headers=auth_headers(worker), json={
        "uri": "/uploads/w_2.mp4", "start": "2024-06-01T09:00:00+02:00", "endtime": "2024-06-01T08:00:00",
    })
    assert res.status_code == 200
    res = client.post("/api/videos", headers=auth_headers(worker), json={
        "uri": "/uploads/w_3.mp4", "start": "2024-06-01T09:00:00Z", "endtime": "2024-06-01T08:00:00",
    })
    assert res.status_code == 400


def test_save_video_rejects_foreign_uri_schemes(client, worker):
    headers = auth_headers(worker)
    for uri in ("javascript:alert(1)", "//evil.example/clip.mp4", "ftp://files.example/clip.mp4"):
        res = client.post("/api/videos", headers=headers, json={"uri": uri})
        assert res.status_code == 400
    assert client.post("/api/videos", headers=headers,
                       json={"uri": "https://cdn.example.com/clip.mp4"}).status_code == 200


def test_remote_video_plays_directly_and_never_redirects(client, worker, db):
    video = _video(db, worker, uri="https://cdn.example.com/clip.mp4")
    body = client.get(f"/api/videos/{video.id}", headers=auth_headers(worker)).json()
    assert body["playback_url"] == "https://cdn.example.com/clip.mp4"

    legacy = _video(db, worker, uri="https://evil.example/phish")
    token = create_signed_token(legacy.id, STREAM_PURPOSE, 60)
    res = client.get(f"/api/videos/{legacy.id}/stream", params={"token": token}, follow_redirects=False)
    assert res.status_code == 404


def test_video_from_other_org_is_hidden(client, worker, make_user, db):
    video = _video(db, worker)
    stranger = make_user()
    assert client.get(f"/api/videos/{video.id}", headers=auth_headers(stranger)).status_code == 404


def test_delete_video_removes_file(client, worker, db, upload_dir):
    path = upload_dir / "clip.mp4"
    path.write_bytes(b"frames")
    video = _video(db, worker)
    assert client.delete(f"/api/videos/{video.id}", headers=auth_headers(worker)).json() == {"ok": True}
    assert not path.exists()
    assert db.query(Video).count() == 0


def test_analyze_stages_only_owner_task_ids(client, worker, pm, org, make_project, make_task, db, monkeypatch):
    project = make_project(org, members=[worker])
    t1 = make_task(project, name="Excavate footing")
    t2 = make_task(project, name="Place rebar")
    video = _video(db, worker)
    monkeypatch.setattr(ai_service, "_chat", lambda *a, **k: f'```json\n["{t2.id}", "made-up", "{t2.id}"]\n```')

    res = client.post(f"/api/videos/{video.id}/analyze", headers=auth_headers(pm))
    assert res.status_code == 200
    assert res.json() == {"success": True, "completed_task_ids": [t2.id], "used_fallback": False}
    db.expire_all()
    assert video.ai_suggested_tasks == [t2.id]
    assert t1.status.value == "pending"


def test_analyze_falls_back_when_provider_down(client, worker, org, make_project, make_task, db, monkeypatch):
    project = make_project(org, members=[worker])
    for name in ("A", "B", "C"):
        make_task(project, name=name)
    video = _video(db, worker)

    def boom(*args, **kwargs):
        raise ConnectionError("provider unreachable")

    monkeypatch.setattr(ai_service, "_chat", boom)
    body = client.post(f"/api/videos/{video.id}/analyze", headers=auth_headers(worker)).json()
    assert body["used_fallback"] is True
    assert len(body["completed_task_ids"]) == 2


def test_analyze_unparseable_response(client, worker, org, make_project, make_task, db, monkeypatch):
    make_task(make_project(org, members=[worker]))
    video = _video(db, worker)
    monkeypatch.setattr(ai_service, "_chat", lambda *a, **k: "I think they finished everything!")
    res = client.post(f"/api/videos/{video.id}/analyze", headers=auth_headers(worker))
    assert res.status_code == 502
    assert res.json()["detail"] == "AI failed to format response correctly"


def test_analyze_without_tasks(client, worker, db, monkeypatch):
    video = _video(db, worker)
    monkeypatch.setattr(ai_service, "_chat", lambda *a, **k: "[]")
    res = client.post(f"/api/videos/{video.id}/analyze", headers=auth_headers(worker))
    assert res.status_code == 400
    assert res.json()["detail"] == "No tasks found for evaluation"


def test_analyze_missing_annotations(client, worker, org, make_project, make_task, db, monkeypatch, tmp_path):
    make_task(make_project(org, members=[worker]))
    video = _video(db, worker)
    monkeypatch.setattr(ai_service, "VIDEO_ANNOTATIONS_PATH", str(tmp_path / "missing.json"))
    res = client.post(f"/api/videos/{video.id}/analyze", headers=auth_headers(worker))
    assert res.status_code == 500


def test_parse_task_ids_and_fallback():
    assert ai_service.parse_task_ids("```\n[1, \"b\"]\n```") == ["1", "b"]
    assert ai_service.parse_task_ids("") == []
    with pytest.raises(ai_service.AIResponseError):
        ai_service.parse_task_ids('{"ids": []}')
    tasks = [{"id": str(i)} for i in range(5)]
    assert ai_service.fallback_completions(tasks) == ["0", "1", "2"]
    assert ai_service.fallback_completions([]) == []


def test_bundled_annotations_load():
    annotations = ai_service.load_annotations()
    assert isinstance(annotations, dict)
    assert annotations
    assert os.path.exists(ai_service.VIDEO_ANNOTATIONS_PATH)
