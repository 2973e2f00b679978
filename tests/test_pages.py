import pytest


@pytest.mark.parametrize("path,page", [
    ("/", "home"),
    ("/login", "login"),
    ("/register", "register"),
    ("/dashboard", "dashboard"),
    ("/projects", "projects"),
    ("/videos", "videos"),
    ("/safety", "safety"),
    ("/team", "team"),
    ("/settings", "settings"),
    ("/analytics", "analytics"),
    ("/review", "review"),
    ("/upload", "upload"),
])
def test_page_shells_render(client, path, page):
    res = client.get(path)
    assert res.status_code == 200
    assert "text/html" in res.headers["content-type"]
    assert f'data-page="{page}"' in res.text


def test_detail_pages_carry_ids(client):
    assert 'data-project-id="abc"' in client.get("/projects/abc").text
    assert 'data-video-id="xyz"' in client.get("/videos/xyz").text


def test_api_responses_are_not_cached(client):
    res = client.get("/api/auth/me")
    assert res.headers["cache-control"] == "no-cache, no-store, must-revalidate"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_static_assets_served(client):
    assert client.get("/static/app.js").status_code == 200
