import os
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")

templates = Jinja2Templates(directory=TEMPLATES_DIR)

router = APIRouter(tags=["pages"], include_in_schema=False)

PAGE_TITLES = {
    "home": "Blokt",
    "login": "Sign in",
    "register": "Create account",
    "dashboard": "Dashboard",
    "projects": "Projects",
    "project": "Project",
    "videos": "Videos",
    "video": "Video",
    "safety": "Safety",
    "team": "Team",
    "settings": "Settings",
    "analytics": "Analytics",
    "review": "Review",
    "upload": "Upload",
}


def _render(request: Request, page: str, **params):
    return templates.TemplateResponse(
        request, "index.html", {"page": page, "title": PAGE_TITLES[page], "params": params}
    )


@router.get("/", response_class=HTMLResponse)
def home(request: Request):
    return _render(request, "home")


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request):
    return _render(request, "login")


@router.get("/register", response_class=HTMLResponse)
def register_page(request: Request):
    return _render(request, "register")


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard_page(request: Request):
    return _render(request, "dashboard")


@router.get("/projects", response_class=HTMLResponse)
def projects_page(request: Request):
    return _render(request, "projects")


@router.get("/projects/{project_id}", response_class=HTMLResponse)
def project_page(request: Request, project_id: str):
    return _render(request, "project", project_id=project_id)


@router.get("/videos", response_class=HTMLResponse)
def videos_page(request: Request):
    return _render(request, "videos")


@router.get("/videos/{video_id}", response_class=HTMLResponse)
def video_page(request: Request, video_id: str):
    return _render(request, "video", video_id=video_id)


@router.get("/safety", response_class=HTMLResponse)
def safety_page(request: Request):
    return _render(request, "safety")


@router.get("/team", response_class=HTMLResponse)
def team_page(request: Request):
    return _render(request, "team")


@router.get("/settings", response_class=HTMLResponse)
def settings_page(request: Request):
    return _render(request, "settings")


@router.get("/analytics", response_class=HTMLResponse)
def analytics_page(request: Request):
    return _render(request, "analytics")


@router.get("/review", response_class=HTMLResponse)
def review_page(request: Request):
    return _render(request, "review")


@router.get("/upload", response_class=HTMLResponse)
def upload_page(request: Request):
    return _render(request, "upload")
