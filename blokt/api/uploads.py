import logging
from fastapi import APIRouter, File, Form, Header, UploadFile
from fastapi.responses import JSONResponse
from blokt.core.config import MAX_UPLOAD_SIZE, MAX_STREAM_UPLOAD_SIZE
from blokt.services import storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["uploads"])


def _store(file: UploadFile, user_id: str | None, max_bytes: int, default_ext: str) -> JSONResponse:
    stored_name = storage.build_upload_name(user_id, file.filename, default_ext)
    try:
        storage.save_upload(file, stored_name, max_bytes)
    except storage.UploadTooLarge:
        return JSONResponse(status_code=413, content={"success": False, "error": "File too large"})
    except OSError as e:
        logger.exception("upload of %s failed", stored_name)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
    return JSONResponse(content={"success": True, "url": storage.public_url(stored_name)})


@router.post("")
def upload_file(file: UploadFile = File(None), userId: str = Form(None)):
    if file is None or not file.filename:
        return JSONResponse(status_code=400, content={"success": False, "error": "No file found"})
    return _store(file, userId, MAX_UPLOAD_SIZE, "bin")


@router.post("/stream")
def upload_stream(file: UploadFile = File(None), x_user_id: str = Header(None)):
    if file is None or not file.filename:
        return JSONResponse(status_code=400, content={"success": False, "error": "No file uploaded"})
    return _store(file, x_user_id, MAX_STREAM_UPLOAD_SIZE, "mp4")
