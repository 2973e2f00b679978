import os
import json


def _parse_cors_origins(value: str | None) -> list[str]:
    if not value:
        return ["*"]

    cleaned = value.strip()
    if not cleaned:
        return ["*"]

    if cleaned.startswith("["):
        try:
            parsed = json.loads(cleaned)
            if isinstance(parsed, list):
                origins = [str(item).strip() for item in parsed if str(item).strip()]
                if origins:
                    return origins
        except json.JSONDecodeError:
            pass

    origins = [item.strip() for item in cleaned.split(",") if item.strip()]
    return origins or ["*"]


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.environ.get("DATABASE_URL", "postgresql://localhost/blokt")
SECRET_KEY = os.environ.get("SECRET_KEY", "blokt-field-ops-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24
CORS_ORIGINS = _parse_cors_origins(os.environ.get("CORS_ORIGINS"))

UPLOAD_DIR = os.environ.get("UPLOAD_DIR", "uploads")
MAX_UPLOAD_SIZE = int(os.environ.get("MAX_UPLOAD_SIZE", str(500 * 1024 * 1024)))
MAX_STREAM_UPLOAD_SIZE = int(os.environ.get("MAX_STREAM_UPLOAD_SIZE", str(10 * 1024 * 1024 * 1024)))
VIDEO_URL_TTL_SECONDS = 3600

AI_API_KEY = os.environ.get("AI_API_KEY")
AI_BASE_URL = os.environ.get("AI_BASE_URL")
AI_MODEL = os.environ.get("AI_MODEL", "gpt-4o-mini")
VIDEO_ANNOTATIONS_PATH = os.environ.get(
    "VIDEO_ANNOTATIONS_PATH",
    os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "video_annotated.json"),
)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
SEED_DEMO_DATA = _parse_bool(os.environ.get("SEED_DEMO_DATA"), True)
