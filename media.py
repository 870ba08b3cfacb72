"""
Image hosting on Cloudinary.

Uploads take a base64 data URI and return the hosted URL and public id.
Deletes are best-effort: a failure is logged and reported as ``False`` so
callers can carry on with their own record changes.
"""
import re
from typing import NamedTuple, Optional

import cloudinary
import cloudinary.uploader

from config import settings
from logging_config import get_logger

logger = get_logger(__name__)

# https://res.cloudinary.com/<cloud>/image/upload/[<transforms>/][v123/]<public_id>.<ext>
CLOUDINARY_URL_RE = re.compile(r"/upload/(?:[^/]*_[^/]*/)*(?:v\d+/)?(?P<public_id>.+?)(?:\.[A-Za-z0-9]+)?$")


class UploadResult(NamedTuple):
    success: bool
    url: Optional[str] = None
    public_id: Optional[str] = None
    error: Optional[str] = None


def configure() -> None:
    cloudinary.config(
        cloud_name=settings.CLOUD_NAME,
        api_key=settings.API_KEY,
        api_secret=settings.API_SECRET,
        secure=True,
    )


def upload_image(data: str, folder: Optional[str] = None) -> UploadResult:
    configure()
    try:
        result = cloudinary.uploader.upload(data, folder=folder or settings.UPLOAD_FOLDER, resource_type="auto")
    except Exception as e:
        logger.warning("Image upload failed: %s", e)
        return UploadResult(False, error=str(e) or "Upload failed")
    return UploadResult(True, url=result.get("secure_url"), public_id=result.get("public_id"))


def delete_image(public_id: str) -> bool:
    configure()
    try:
        cloudinary.uploader.destroy(public_id)
    except Exception as e:
        logger.warning("Image delete failed for %s: %s", public_id, e)
        return False
    return True


def public_id_from_url(url: Optional[str]) -> Optional[str]:
    """Recover the public id from a Cloudinary delivery URL."""
    if not url or "res.cloudinary.com" not in url:
        return None
    match = CLOUDINARY_URL_RE.search(url.split("?", 1)[0])
    return match.group("public_id") if match else None
