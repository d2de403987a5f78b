import logging
import re
import time
from pathlib import Path

from fastapi import UploadFile

from .config import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


def _safe_name(filename: str) -> str:
    name = Path(filename or "upload").name
    return re.sub(r"[^A-Za-z0-9._-]", "_", name)


async def save_image(file: UploadFile, folder: str = "") -> str:
    """Store an uploaded image under MEDIA_ROOT and return its public URL."""
    folder = _safe_name(folder) if folder else ""
    relative = f"{folder + '/' if folder else ''}{int(time.time() * 1000)}-{_safe_name(file.filename)}"
    target = Path(settings.MEDIA_ROOT) / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(await file.read())
    logger.info("Stored image %s", relative)
    return f"{settings.MEDIA_URL.rstrip('/')}/{relative}"
