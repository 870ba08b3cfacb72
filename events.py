"""
Event catalogue: creation, lookup, update, statistics and the cascading
delete that takes an event's registrations and participants with it.

Events are addressed by slug in URLs; a lookup falls back to the event name
so older links built from the name keep working.
"""
from typing import Any, Dict, List, Mapping, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import (
    EVENTS,
    PARTICIPANTS,
    REGISTRATIONS,
    Saga,
    create_document,
    get_documents,
    restore_documents,
    to_str_id,
    utcnow,
)
from exceptions import ConflictError, EventNotFoundError, ValidationError
from logging_config import get_logger
from registrations import list_registrations, summarize
from schemas import Event
from validations import validate_event

logger = get_logger(__name__)

EVENT_FIELDS = ("name", "slug", "description", "date", "min_team_size", "max_team_size", "is_active")


def _normalize(data: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(data)
    for key in ("name", "description", "date"):
        if isinstance(out.get(key), str):
            out[key] = out[key].strip()
    if isinstance(out.get("slug"), str):
        out["slug"] = out["slug"].strip()
    return out


def _conflict(db: Database, name: str, slug: str, exclude_id=None) -> ConflictError:
    """Work out which unique field clashed after a DuplicateKeyError."""
    fields = []
    for field, value in (("name", name), ("slug", slug)):
        query = {field: value}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if db[EVENTS].find_one(query):
            fields.append(field)
    fields = fields or ["name", "slug"]
    return ConflictError(f"Duplicate entry: {', '.join(fields)} already exists", fields=fields)


def find_event(db: Database, identifier: str) -> Optional[dict]:
    return db[EVENTS].find_one({"slug": identifier}) or db[EVENTS].find_one({"name": identifier})


def get_event(db: Database, identifier: str) -> dict:
    event = find_event(db, identifier)
    if not event:
        raise EventNotFoundError()
    return event


def list_events(db: Database, active_only: bool = False) -> List[dict]:
    query = {"isActive": True} if active_only else {}
    return [to_str_id(e) for e in get_documents(db, EVENTS, query, sort=[("createdAt", -1)])]


def create_event(db: Database, data: Mapping[str, Any]) -> dict:
    payload = _normalize(data)
    if payload.get("min_team_size") is None:
        payload["min_team_size"] = 1
    if payload.get("max_team_size") is None:
        payload["max_team_size"] = 4

    result = validate_event(payload)
    if not result.is_valid:
        raise ValidationError(result.error)

    event = Event(
        name=payload["name"],
        slug=payload["slug"].lower(),
        description=payload["description"],
        date=payload["date"],
        min_team_size=payload["min_team_size"],
        max_team_size=payload["max_team_size"],
        is_active=True,
    )
    try:
        event_id = create_document(db, EVENTS, event)
    except DuplicateKeyError:
        raise _conflict(db, event.name, event.slug)

    logger.info("Event '%s' created (%s)", event.name, event.slug)
    return to_str_id(db[EVENTS].find_one({"slug": event.slug})) or {"id": event_id}


def update_event(db: Database, identifier: str, changes: Mapping[str, Any]) -> dict:
    """Apply a partial update; a rename is copied onto the event's registrations."""
    event = get_event(db, identifier)
    updates = {k: v for k, v in _normalize(changes).items() if k in EVENT_FIELDS and v is not None}

    merged = {
        "name": event["name"],
        "slug": event["slug"],
        "description": event["description"],
        "date": event["date"],
        "min_team_size": event.get("minTeamSize", 1),
        "max_team_size": event.get("maxTeamSize", 4),
    }
    merged.update(updates)
    result = validate_event(merged)
    if not result.is_valid:
        raise ValidationError(result.error)

    document = Event(**{**merged, "is_active": updates.get("is_active", event.get("isActive", True))})
    fields = document.model_dump(by_alias=True)
    fields["updatedAt"] = utcnow()
    try:
        updated = db[EVENTS].find_one_and_update(
            {"_id": event["_id"]}, {"$set": fields}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise _conflict(db, document.name, document.slug, exclude_id=event["_id"])
    if updated is None:
        raise EventNotFoundError()

    if updated["name"] != event["name"]:
        renamed = db[REGISTRATIONS].update_many(
            {"eventId": str(event["_id"])}, {"$set": {"eventName": updated["name"]}}
        )
        logger.info("Event renamed '%s' -> '%s' (%d registrations)", event["name"], updated["name"], renamed.modified_count)
    return to_str_id(updated)


def event_details(db: Database, identifier: str) -> dict:
    event = get_event(db, identifier)
    registrations = list_registrations(db, str(event["_id"]))
    return {
        "event": to_str_id(event),
        "stats": summarize(registrations),
        "registrations": registrations,
    }


def delete_event(db: Database, identifier: str) -> dict:
    """Delete an event together with its registrations and their participants."""
    event = get_event(db, identifier)
    event_id = str(event["_id"])

    registrations = list(db[REGISTRATIONS].find({"eventId": event_id}))
    registration_ids = [str(r["_id"]) for r in registrations]
    participants = list(db[PARTICIPANTS].find({"registrationId": {"$in": registration_ids}}))

    saga = Saga("Event deletion")
    saga.step(
        "deleting participants",
        lambda: db[PARTICIPANTS].delete_many({"registrationId": {"$in": registration_ids}}),
        undo=lambda: restore_documents(db, PARTICIPANTS, participants),
    )
    saga.step(
        "deleting registrations",
        lambda: db[REGISTRATIONS].delete_many({"eventId": event_id}),
        undo=lambda: restore_documents(db, REGISTRATIONS, registrations),
    )
    saga.step("deleting event", lambda: db[EVENTS].delete_one({"_id": event["_id"]}))

    logger.info(
        "Event '%s' deleted with %d registrations and %d participants",
        event["name"], len(registrations), len(participants),
    )
    return {
        "deletedEvent": event["name"],
        "deletedRegistrations": len(registrations),
        "deletedParticipants": len(participants),
    }


def registration_stats(db: Database) -> List[dict]:
    """Per-event counters for every active event."""
    stats = []
    for event in get_documents(db, EVENTS, {"isActive": True}, sort=[("date", 1)]):
        registrations = get_documents(db, REGISTRATIONS, {"eventId": str(event["_id"])})
        stats.append({"eventName": event["name"], "eventSlug": event["slug"], **summarize(registrations)})
    return stats


def upcoming_events(db: Database, limit: int = 3) -> List[dict]:
    today = utcnow().date().isoformat()
    docs = get_documents(db, EVENTS, {"isActive": True, "date": {"$gte": today}}, sort=[("date", 1)], limit=limit)
    return [to_str_id(e) for e in docs]
