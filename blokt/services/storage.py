import os
import re
import time
import logging
from urllib.parse import urlparse
from fastapi import UploadFile
from blokt.core.config import UPLOAD_DIR

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
PUBLIC_PREFIX = "/uploads/"


class UploadTooLarge(Exception):
    pass


def secure_filename(filename: str) -> str:
    filename = os.path.basename(filename)
    filename = re.sub(r'[^\w\s\-.]', '', filename)
    filename = re.sub(r'\s+', '_', filename)
    return filename or "file"


def file_extension(filename: str | None, default: str = "bin") -> str:
    if filename and "." in filename:
        ext = secure_filename(filename.rsplit(".", 1)[1])
        if ext and ext != "file":
            return ext
    return default


def build_upload_name(user_id: str | None, filename: str | None, default_ext: str = "bin") -> str:
    owner = secure_filename(user_id or "anonymous")
    return f"{owner}_{int(time.time() * 1000)}.{file_extension(filename, default_ext)}"


def save_upload(upload: UploadFile, stored_name: str, max_bytes: int) -> int:
    """Copy ``upload`` into the upload dir in chunks; returns bytes written.

    Raises UploadTooLarge and removes the partial file once ``max_bytes`` is exceeded.
    """
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    path = os.path.join(UPLOAD_DIR, stored_name)
    written = 0
    with open(path, "wb") as out:
        while True:
            chunk = upload.file.read(CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                break
            out.write(chunk)
    if written > max_bytes:
        os.remove(path)
        logger.warning("upload %s exceeded %d bytes, discarded", stored_name, max_bytes)
        raise UploadTooLarge(stored_name)
    logger.info("stored upload %s (%d bytes)", stored_name, written)
    return written


def public_url(stored_name: str) -> str:
    return f"{PUBLIC_PREFIX}{stored_name}"


def local_path(uri: str) -> str | None:
    """Map a ``/uploads/<name>`` URI back to a path under the upload dir."""
    if not uri or not uri.startswith(PUBLIC_PREFIX):
        return None
    name = secure_filename(uri[len(PUBLIC_PREFIX):])
    return os.path.join(UPLOAD_DIR, name)


def is_remote_url(uri: str) -> bool:
    parsed = urlparse(uri or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def remove_file(uri: str) -> bool:
    path = local_path(uri)
    if path is None or not os.path.exists(path):
        return False
    try:
        os.remove(path)
    except OSError:
        logger.exception("could not remove %s", path)
        return False
    return True
