"""Startup portfolio: admin CRUD, visibility toggle and public listing."""
from typing import Any, Dict, List, Mapping, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

import media
from database import STARTUPS, create_document, get_documents, object_id, to_str_id, utcnow
from exceptions import ConflictError, StartupNotFoundError, ValidationError
from logging_config import get_logger
from schemas import Startup
from validations import digits_only, is_valid_email, is_valid_slug, parse_datetime, validate_startup

logger = get_logger(__name__)

REQUIRED_FOR_VALIDATION = ("name", "slug", "email", "mobile_number", "incubated_date", "status")


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    return None


def _duplicate_slug(slug: str) -> ConflictError:
    return ConflictError(f"Duplicate entry: slug '{slug}' already exists", fields=["slug"])


def _get(db: Database, startup_id: str) -> dict:
    startup = db[STARTUPS].find_one({"_id": object_id(startup_id, "Startup")})
    if not startup:
        raise StartupNotFoundError()
    return startup


def list_startups(db: Database, active_only: bool = True, status: Optional[str] = None) -> List[dict]:
    query: Dict[str, Any] = {}
    if active_only:
        query["isActive"] = True
    if status:
        query["status"] = status
    return [to_str_id(s) for s in get_documents(db, STARTUPS, query, sort=[("createdAt", -1)])]


def featured_startups(db: Database, limit: int = 3) -> List[dict]:
    docs = get_documents(
        db, STARTUPS, {"isActive": True, "status": "incubated"}, sort=[("incubatedDate", -1)], limit=limit
    )
    return [to_str_id(s) for s in docs]


def get_startup(db: Database, startup_id: str) -> dict:
    return to_str_id(_get(db, startup_id))


def create_startup(db: Database, data: Mapping[str, Any]) -> dict:
    result = validate_startup(data)
    if not result.is_valid:
        raise ValidationError(result.error)

    image = _optional_text(data.get("image"))
    startup = Startup(
        name=data["name"].strip(),
        slug=data["slug"].strip().lower(),
        email=data["email"].strip().lower(),
        mobile_number=digits_only(data["mobile_number"]),
        incubated_date=parse_datetime(data["incubated_date"]),
        incubation_details=_optional_text(data.get("incubation_details")),
        status=data["status"],
        website=_optional_text(data.get("website")),
        image=image,
        image_public_id=_optional_text(data.get("image_public_id")) or media.public_id_from_url(image),
        is_active=True,
    )
    try:
        startup_id = create_document(db, STARTUPS, startup)
    except DuplicateKeyError:
        raise _duplicate_slug(startup.slug)

    logger.info("Startup '%s' created", startup.name)
    return get_startup(db, startup_id)


def update_startup(db: Database, startup_id: str, changes: Mapping[str, Any]) -> dict:
    """Partial update. Slug and email are checked whenever sent; the full rule set needs every required field."""
    oid = object_id(startup_id, "Startup")
    if all(changes.get(field) for field in REQUIRED_FOR_VALIDATION):
        result = validate_startup(changes)
        if not result.is_valid:
            raise ValidationError(result.error)

    update: Dict[str, Any] = {}
    if changes.get("name") is not None:
        update["name"] = changes["name"].strip()
    if changes.get("slug") is not None:
        update["slug"] = changes["slug"].strip().lower()
        if not is_valid_slug(update["slug"]):
            raise ValidationError("Slug can only contain lowercase letters, numbers, and hyphens")
    if changes.get("email") is not None:
        update["email"] = changes["email"].strip().lower()
        if not is_valid_email(update["email"]):
            raise ValidationError("Email is invalid")
    if changes.get("mobile_number") is not None:
        update["mobileNumber"] = digits_only(changes["mobile_number"])
    if changes.get("incubated_date") is not None:
        incubated = parse_datetime(changes["incubated_date"])
        if incubated is None:
            raise ValidationError("Invalid incubated date")
        update["incubatedDate"] = incubated
    if changes.get("status") is not None:
        if changes["status"] not in ("incubated", "non-incubated"):
            raise ValidationError('Status must be "incubated" or "non-incubated"')
        update["status"] = changes["status"]
    for field, key in (("incubation_details", "incubationDetails"), ("website", "website"), ("image", "image")):
        if field in changes and changes[field] is not None:
            update[key] = _optional_text(changes[field])
    if "image" in update:
        update["imagePublicId"] = _optional_text(changes.get("image_public_id")) or media.public_id_from_url(update["image"])
    if changes.get("is_active") is not None:
        update["isActive"] = bool(changes["is_active"])
    update["updatedAt"] = utcnow()

    try:
        startup = db[STARTUPS].find_one_and_update(
            {"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise _duplicate_slug(update.get("slug", ""))
    if not startup:
        raise StartupNotFoundError()
    return to_str_id(startup)


def toggle_startup(db: Database, startup_id: str) -> dict:
    startup = _get(db, startup_id)
    is_active = not startup.get("isActive", True)
    updated = db[STARTUPS].find_one_and_update(
        {"_id": startup["_id"]},
        {"$set": {"isActive": is_active, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise StartupNotFoundError()
    logger.info("Startup '%s' %s", startup["name"], "activated" if is_active else "hidden")
    return to_str_id(updated)


def delete_startup(db: Database, startup_id: str) -> dict:
    """Delete the record; the hosted image is removed on a best-effort basis."""
    startup = _get(db, startup_id)

    public_id = startup.get("imagePublicId") or media.public_id_from_url(startup.get("image"))
    image_deleted = media.delete_image(public_id) if public_id else False

    db[STARTUPS].delete_one({"_id": startup["_id"]})
    logger.info("Startup '%s' deleted (image removed: %s)", startup["name"], image_deleted)
    return {"deletedStartupId": startup_id, "imageDeleted": image_deleted}
