from blokt.models.models import UserRole
from blokt.core.auth import create_signed_token, verify_signed_token, hash_password, verify_password
from conftest import auth_headers, PASSWORD


def test_password_hash_roundtrip():
    hashed = hash_password("hunter22")
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)
    assert not verify_password("hunter22", "garbage")


def test_register_and_login(client, db):
    res = client.post("/api/auth/register", json={
        "email": "New@Example.com", "password": "abcdef", "name": "Nia Lopez", "role": "foreman",
    })
    assert res.status_code == 200
    body = res.json()
    assert body["email"] == "new@example.com"
    assert body["role"] == "foreman"
    assert body["organization_id"] is None

    res = client.post("/api/auth/login", json={"email": "new@example.com", "password": "abcdef"})
    assert res.status_code == 200
    assert res.json()["token_type"] == "bearer"
    assert res.json()["access_token"]


def test_register_with_invite_code_joins_org(client, org):
    res = client.post("/api/auth/register", json={
        "email": "w@example.com", "password": "abcdef", "name": "W", "invite_code": org.id,
    })
    assert res.status_code == 200
    assert res.json()["organization_id"] == org.id
    assert res.json()["role"] == "field_worker"


def test_register_rejects_bad_input(client, make_user):
    make_user(email="taken@example.com")
    cases = [
        {"email": "taken@example.com", "password": "abcdef", "name": "X"},
        {"email": "a@example.com", "password": "abc", "name": "X"},
        {"email": "b@example.com", "password": "abcdef", "name": "X", "role": "wizard"},
        {"email": "c@example.com", "password": "abcdef", "name": "X",
         "invite_code": "3f1c1d7e-0000-4000-8000-000000000000"},
    ]
    for payload in cases:
        assert client.post("/api/auth/register", json=payload).status_code == 400


def test_login_failures(client, make_user, db):
    user = make_user(email="p@example.com")
    assert client.post("/api/auth/login", json={"email": "p@example.com", "password": "nope"}).status_code == 401
    user.is_active = False
    db.commit()
    res = client.post("/api/auth/login", json={"email": "p@example.com", "password": PASSWORD})
    assert res.status_code == 401
    assert res.json()["detail"] == "Account disabled"


def test_me_includes_navigation_for_role(client, make_user, org):
    worker = make_user(UserRole.FIELD_WORKER, org=org)
    res = client.get("/api/auth/me", headers=auth_headers(worker))
    assert res.status_code == 200
    body = res.json()
    assert body["organization_name"] == "Acme Builders"
    hrefs = [n["href"] for n in body["navigation"]]
    assert "/upload" in hrefs
    assert "/analytics" not in hrefs
    assert "/team" not in hrefs

    exec_user = make_user(UserRole.EXECUTIVE, org=org)
    hrefs = [n["href"] for n in client.get("/api/auth/me", headers=auth_headers(exec_user)).json()["navigation"]]
    assert "/analytics" in hrefs and "/team" in hrefs
    assert "/review" not in hrefs


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"}).status_code == 401


def test_signed_token_cannot_be_used_as_session(client, pm):
    token = create_signed_token(pm.id, "video-stream", 60)
    assert verify_signed_token(token, pm.id, "video-stream")
    assert not verify_signed_token(token, "someone-else", "video-stream")
    res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_expired_signed_token_is_rejected():
    assert not verify_signed_token(create_signed_token("v1", "video-stream", -10), "v1", "video-stream")
