"""
Incubation applications: public intake, admin review and statistics.

A founder may hold at most one open (pending or reviewing) application at
a time; resolved applications do not block a new one.
"""
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional

from pymongo import ReturnDocument
from pymongo.database import Database

from config import settings
from database import INCUBATIONS, create_document, get_documents, object_id, to_str_id, utcnow
from exceptions import ApplicationNotFoundError, DuplicateApplicationError, ValidationError
from logging_config import get_logger
from schemas import Incubation
from validations import (
    APPLICATION_STATUSES,
    STAGES,
    SUPPORT_OPTIONS,
    digits_only,
    validate_application_status,
    validate_incubation,
)

logger = get_logger(__name__)

OPEN_STATUSES = ("pending", "reviewing")

# Forward-moving review pipeline
TRANSITIONS = {
    "pending": {"reviewing", "approved", "rejected"},
    "reviewing": {"approved", "rejected"},
    "approved": set(),
    "rejected": set(),
}

TREND_DAYS = 7


def _text(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def submit_application(db: Database, data: Mapping[str, Any]) -> dict:
    payload = {key: _text(value) for key, value in data.items()}
    result = validate_incubation(payload)
    if not result.is_valid:
        raise ValidationError(result.error)

    founder_email = payload["founder_email"].lower()
    open_application = db[INCUBATIONS].find_one(
        {"founderEmail": founder_email, "status": {"$in": list(OPEN_STATUSES)}}
    )
    if open_application:
        raise DuplicateApplicationError()

    application = Incubation(
        startup_name=payload["startup_name"],
        founder_name=payload["founder_name"],
        founder_email=founder_email,
        founder_phone=digits_only(payload["founder_phone"]),
        founder_college=payload["founder_college"],
        founder_year=payload["founder_year"],
        founder_branch=payload["founder_branch"],
        team_size=payload["team_size"],
        problem_statement=payload["problem_statement"],
        proposed_solution=payload["proposed_solution"],
        unique_selling_point=payload["unique_selling_point"],
        current_stage=payload["current_stage"],
        support_needed=list(dict.fromkeys(payload["support_needed"])),
        additional_info=payload.get("additional_info") or "",
        status="pending",
    )
    application_id = create_document(db, INCUBATIONS, application)
    logger.info("Incubation application %s submitted for '%s'", application_id, application.startup_name)
    return {
        "id": application_id,
        "startupName": application.startup_name,
        "founderName": application.founder_name,
        "status": application.status,
    }


def list_applications(db: Database, status: Optional[str] = None) -> List[dict]:
    query = {"status": status} if status else {}
    return [to_str_id(a) for a in get_documents(db, INCUBATIONS, query, sort=[("createdAt", -1)])]


def get_application(db: Database, application_id: str) -> dict:
    application = db[INCUBATIONS].find_one({"_id": object_id(application_id, "Application")})
    if not application:
        raise ApplicationNotFoundError()
    return to_str_id(application)


def can_transition(current: str, new: str) -> bool:
    if current == new or not settings.ENFORCE_INCUBATION_TRANSITIONS:
        return True
    return new in TRANSITIONS.get(current, set())


def update_application(db: Database, application_id: str, changes: Mapping[str, Any]) -> dict:
    """Set a new status and/or admin notes."""
    oid = object_id(application_id, "Application")
    update: Dict[str, Any] = {}

    status = changes.get("status")
    if status:
        result = validate_application_status(status)
        if not result.is_valid:
            raise ValidationError(result.error)
        current = db[INCUBATIONS].find_one({"_id": oid}, {"status": 1})
        if not current:
            raise ApplicationNotFoundError()
        if not can_transition(current.get("status", "pending"), status):
            raise ValidationError(f"Cannot move application from {current['status']} to {status}")
        update["status"] = status

    if changes.get("admin_notes") is not None:
        update["adminNotes"] = _text(changes["admin_notes"])
    update["updatedAt"] = utcnow()

    application = db[INCUBATIONS].find_one_and_update(
        {"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    if not application:
        raise ApplicationNotFoundError()
    if "status" in update:
        logger.info("Application %s moved to %s", application_id, status)
    return to_str_id(application)


def delete_application(db: Database, application_id: str) -> None:
    result = db[INCUBATIONS].delete_one({"_id": object_id(application_id, "Application")})
    if result.deleted_count == 0:
        raise ApplicationNotFoundError()
    logger.info("Application %s deleted", application_id)


def application_stats(db: Database) -> dict:
    collection = db[INCUBATIONS]
    by_status = {s: collection.count_documents({"status": s}) for s in APPLICATION_STATUSES}
    by_stage = {s: collection.count_documents({"currentStage": s}) for s in STAGES}

    support = {option: 0 for option in SUPPORT_OPTIONS}
    for row in collection.aggregate([
        {"$unwind": "$supportNeeded"},
        {"$group": {"_id": "$supportNeeded", "count": {"$sum": 1}}},
    ]):
        if row["_id"] in support:
            support[row["_id"]] = row["count"]

    since = utcnow() - timedelta(days=TREND_DAYS)
    daily: Dict[str, int] = {}
    for doc in collection.find({"createdAt": {"$gte": since}}, {"createdAt": 1}):
        day = doc["createdAt"].strftime("%Y-%m-%d")
        daily[day] = daily.get(day, 0) + 1

    return {
        "totalApplications": collection.count_documents({}),
        "byStatus": by_status,
        "byStage": {
            "idea": by_stage["idea"],
            "mvp": by_stage["mvp"],
            "earlyTraction": by_stage["early-traction"],
        },
        "supportDistribution": support,
        "dailyTrend": [{"date": day, "count": daily[day]} for day in sorted(daily)],
    }
