"""
Upload Service - stores problem photos under the public uploads directory.
"""

from app.core.errors import ValidationError
from app.core.settings import settings
from fastapi import UploadFile
from typing import Optional, Tuple
import logging
import os
import re
import time

logger = logging.getLogger(__name__)

PUBLIC_UPLOAD_PREFIX = "/uploads"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def ensure_upload_dir() -> str:
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    return settings.UPLOAD_DIR


def safe_filename(original: Optional[str]) -> str:
    """Timestamped, path-free version of the client's file name."""
    base = os.path.basename(original or "image")
    base = _UNSAFE_FILENAME_CHARS.sub("_", base).strip("._") or "image"
    return f"{int(time.time() * 1000)}-{base}"


async def save_image(upload: UploadFile) -> Tuple[str, bytes, str]:
    """
    Validate and store an uploaded image.

    Returns:
        (public path, raw bytes, content type)

    Raises:
        ValidationError: not an image, or larger than MAX_UPLOAD_BYTES.
    """
    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationError("Not an image! Please upload an image.")

    # Read one byte past the limit so oversize files are detected without buffering them whole
    data = await upload.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise ValidationError(f"File too large. Maximum size is {limit_mb}MB.")

    filename = safe_filename(upload.filename)
    path = os.path.join(ensure_upload_dir(), filename)
    with open(path, "wb") as f:
        f.write(data)

    logger.info(f"Stored upload {filename} ({len(data)} bytes)")
    return f"{PUBLIC_UPLOAD_PREFIX}/{filename}", data, content_type


def discard_image(public_path: Optional[str]) -> None:
    """Remove a stored upload whose problem was never created."""
    if not public_path:
        return
    filename = os.path.basename(public_path)
    path = os.path.join(settings.UPLOAD_DIR, filename)
    try:
        os.remove(path)
        logger.info(f"Discarded upload {filename}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"⚠️ Could not discard upload {filename}: {e}")
