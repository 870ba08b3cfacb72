"""
Event registration workflow and the admin mutations on registrations.

A registration is one Registration document plus 1-4 Participant documents
(leader first). Participants belong to exactly one registration and are
removed with it.
"""
from typing import Any, Dict, List, Mapping

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import (
    PARTICIPANTS,
    REGISTRATIONS,
    Saga,
    create_document,
    create_documents,
    object_id,
    restore_documents,
    to_str_id,
    utcnow,
)
from exceptions import (
    AlreadyRegisteredError,
    ParticipantNotFoundError,
    RegistrationNotFoundError,
    ValidationError,
)
from logging_config import get_logger
from schemas import Participant, Registration
from validations import digits_only, normalize_gender, validate_registration

logger = get_logger(__name__)

MIN_TEAM_TOTAL = 2


def _clean(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


def _upper(value: Any) -> Any:
    return value.strip().upper() if isinstance(value, str) else value


def normalize_member(member: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "name": _clean(member.get("name")),
        "gender": normalize_gender(member.get("gender")) or _clean(member.get("gender")),
        "roll_number": _upper(member.get("roll_number")),
        "contact_number": _clean(member.get("contact_number")),
        "email": _lower(member.get("email")),
    }


def normalize_registration(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Trim strings, lowercase emails and uppercase roll numbers."""
    members = data.get("team_members") or []
    return {
        "participation_type": _lower(data.get("participation_type")),
        "team_name": _clean(data.get("team_name")),
        "leader_name": _clean(data.get("leader_name")),
        "leader_gender": normalize_gender(data.get("leader_gender")) or _clean(data.get("leader_gender")),
        "leader_roll_number": _upper(data.get("leader_roll_number")),
        "leader_contact_number": _clean(data.get("leader_contact_number")),
        "leader_email": _lower(data.get("leader_email")),
        "team_members": [normalize_member(m) for m in members],
    }


def _participant(registration_id: str, member: Mapping[str, Any], is_leader: bool) -> Participant:
    return Participant(
        registration_id=registration_id,
        name=member["name"],
        gender=member["gender"],
        roll_number=member["roll_number"],
        contact_number=digits_only(member["contact_number"]),
        email=member["email"],
        is_leader=is_leader,
    )


def submit_registration(db: Database, event: Mapping[str, Any], data: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a signup and store the registration with its participants."""
    payload = normalize_registration(data)
    result = validate_registration(payload)
    if not result.is_valid:
        raise ValidationError(result.error)

    is_team = payload["participation_type"] == "team"
    members = payload["team_members"] if is_team else []
    total = 1 + len(members)
    event_id = str(event["_id"])

    registration = Registration(
        event_id=event_id,
        event_name=event["name"],
        is_team=is_team,
        team_name=payload["team_name"] if is_team else None,
        leader_email=payload["leader_email"],
        total_participants=total,
    )

    def discard_registration():
        # an ordered insert_many can stop partway through the participants
        db[PARTICIPANTS].delete_many({"registrationId": registration_id})
        db[REGISTRATIONS].delete_one({"_id": object_id(registration_id, "Registration")})

    saga = Saga("Registration")
    try:
        registration_id = saga.step(
            "creating registration",
            lambda: create_document(db, REGISTRATIONS, registration),
            undo=discard_registration,
        )
    except DuplicateKeyError:
        raise AlreadyRegisteredError()

    leader = {
        "name": payload["leader_name"],
        "gender": payload["leader_gender"],
        "roll_number": payload["leader_roll_number"],
        "contact_number": payload["leader_contact_number"],
        "email": payload["leader_email"],
    }
    participants = [_participant(registration_id, leader, True)]
    participants.extend(_participant(registration_id, m, False) for m in members)
    saga.step("creating participants", lambda: create_documents(db, PARTICIPANTS, participants))

    logger.info(
        "Registration %s created for %s (%s, %d participants)",
        registration_id, event["name"], "team" if is_team else "solo", total,
    )
    return {
        "registrationId": registration_id,
        "eventId": event_id,
        "eventName": event["name"],
        "isTeam": is_team,
        "teamName": registration.team_name,
        "leaderName": payload["leader_name"],
        "totalParticipants": total,
        "participantsCreated": len(participants),
    }


def list_registrations(db: Database, event_id: str) -> List[Dict[str, Any]]:
    """Registrations of one event, each with its participants (leader first)."""
    registrations = list(db[REGISTRATIONS].find({"eventId": event_id}).sort("createdAt", 1))
    ids = [str(r["_id"]) for r in registrations]
    by_registration: Dict[str, List[dict]] = {i: [] for i in ids}
    for p in db[PARTICIPANTS].find({"registrationId": {"$in": ids}}):
        by_registration[p["registrationId"]].append(to_str_id(p))

    out = []
    for reg in registrations:
        item = to_str_id(reg)
        members = by_registration[item["id"]]
        item["participants"] = sorted(members, key=lambda p: not p.get("isLeader"))
        out.append(item)
    return out


def summarize(registrations: List[Mapping[str, Any]]) -> Dict[str, int]:
    return {
        "totalRegistrations": len(registrations),
        "individualCount": sum(1 for r in registrations if not r.get("isTeam")),
        "teamCount": sum(1 for r in registrations if r.get("isTeam")),
        "totalParticipants": sum(r.get("totalParticipants", 0) for r in registrations),
    }


def delete_registration(db: Database, registration_id: str) -> Dict[str, Any]:
    oid = object_id(registration_id, "Registration")
    registration = db[REGISTRATIONS].find_one({"_id": oid})
    if not registration:
        raise RegistrationNotFoundError()

    participants = list(db[PARTICIPANTS].find({"registrationId": registration_id}))

    saga = Saga("Registration deletion")
    saga.step(
        "deleting participants",
        lambda: db[PARTICIPANTS].delete_many({"registrationId": registration_id}),
        undo=lambda: restore_documents(db, PARTICIPANTS, participants),
    )
    saga.step("deleting registration", lambda: db[REGISTRATIONS].delete_one({"_id": oid}))

    logger.info("Registration %s deleted with %d participants", registration_id, len(participants))
    return {"deletedRegistrationId": registration_id, "deletedParticipants": len(participants)}


def delete_participant(db: Database, participant_id: str) -> Dict[str, Any]:
    """Remove one non-leader member from a team of three or more."""
    oid = object_id(participant_id, "Participant")
    participant = db[PARTICIPANTS].find_one({"_id": oid})
    if not participant:
        raise ParticipantNotFoundError()

    if participant.get("isLeader"):
        raise ValidationError("Cannot delete team leader. Delete the entire registration instead.")

    registration_id = participant["registrationId"]
    reg_oid = object_id(registration_id, "Registration")
    registration = db[REGISTRATIONS].find_one({"_id": reg_oid})
    if not registration:
        raise RegistrationNotFoundError()

    if not registration.get("isTeam"):
        raise ValidationError(
            "Cannot delete participant from solo registration. Delete the entire registration instead."
        )

    floor_message = "Team must have at least 2 members. Delete the entire registration instead."
    if registration.get("totalParticipants", 0) <= MIN_TEAM_TOTAL:
        raise ValidationError(floor_message)

    saga = Saga("Participant removal")
    removed = saga.step(
        "deleting participant",
        lambda: db[PARTICIPANTS].delete_one({"_id": oid, "isLeader": False}),
        undo=lambda: restore_documents(db, PARTICIPANTS, [participant]),
    )
    if removed.deleted_count == 0:
        # an overlapping removal already took this row
        raise ParticipantNotFoundError()

    updated = saga.step(
        "decrementing team size",
        lambda: db[REGISTRATIONS].find_one_and_update(
            {"_id": reg_oid, "totalParticipants": {"$gt": MIN_TEAM_TOTAL}},
            {"$inc": {"totalParticipants": -1}, "$set": {"updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        ),
    )
    if updated is None:
        # another member was removed in the meantime and the team is at its floor
        saga.rollback()
        raise ValidationError(floor_message)

    logger.info("Participant %s removed from registration %s", participant_id, registration_id)
    return {
        "deletedParticipantId": participant_id,
        "registrationId": registration_id,
        "totalParticipants": updated["totalParticipants"],
    }
