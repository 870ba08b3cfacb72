import pytest
from fastapi.testclient import TestClient

import registrations
from conftest import solo_payload, team_payload
from database import EVENTS, PARTICIPANTS, REGISTRATIONS
from exceptions import ParticipantNotFoundError, ValidationError


def register(client: TestClient, payload: dict, slug: str = "hack25") -> str:
    r = client.post(f"/api/registrations/{slug}", json=payload)
    assert r.status_code == 201, r.json()
    return r.json()["data"]["registrationId"]


def members_of(db, registration_id: str, leader: bool):
    return list(db[PARTICIPANTS].find({"registrationId": registration_id, "isLeader": leader}))


def test_delete_event_cascades_to_registrations_and_participants(admin_client: TestClient, db, event):
    register(admin_client, solo_payload())
    register(admin_client, team_payload(3, leaderEmail="lead1@example.com"))
    register(admin_client, team_payload(1, leaderEmail="lead2@example.com"))

    r = admin_client.delete("/api/events/hack25")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["deletedEvent"] == "Hack25"
    assert data["deletedRegistrations"] == 3
    assert data["deletedParticipants"] == 1 + 4 + 2

    assert db[EVENTS].count_documents({}) == 0
    assert db[REGISTRATIONS].count_documents({"eventId": event["id"]}) == 0
    assert db[PARTICIPANTS].count_documents({}) == 0
    assert admin_client.get("/api/events/hack25").status_code == 404


def test_delete_event_leaves_other_events_alone(admin_client: TestClient, db, event):
    admin_client.post("/api/events", json={
        "name": "Ideathon", "slug": "ideathon", "description": "Pitch ideas", "date": "2025-04-10",
    })
    register(admin_client, solo_payload())
    keep = register(admin_client, solo_payload(), slug="ideathon")

    admin_client.delete("/api/events/hack25")
    assert db[REGISTRATIONS].count_documents({}) == 1
    assert db[PARTICIPANTS].count_documents({"registrationId": keep}) == 1


def test_delete_missing_event_is_not_found(admin_client: TestClient):
    r = admin_client.delete("/api/events/ghost")
    assert r.status_code == 404


def test_failed_event_cascade_restores_deleted_records(admin_client: TestClient, db, event, monkeypatch):
    register(admin_client, team_payload(2))
    collection = type(db[EVENTS])
    original = collection.delete_one

    def fail_on_events(self, *args, **kwargs):
        if self.name == EVENTS:
            raise RuntimeError("primary stepped down")
        return original(self, *args, **kwargs)

    monkeypatch.setattr(collection, "delete_one", fail_on_events)
    r = admin_client.delete("/api/events/hack25")
    assert r.status_code == 500
    assert r.json()["code"] == "PARTIAL_FAILURE"
    assert r.json()["details"]["rolledBack"] is True

    assert db[EVENTS].count_documents({}) == 1
    assert db[REGISTRATIONS].count_documents({}) == 1
    assert db[PARTICIPANTS].count_documents({}) == 3


def test_delete_registration_removes_its_participants(admin_client: TestClient, db, event):
    registration_id = register(admin_client, team_payload(3))
    other = register(admin_client, solo_payload(leaderEmail="other@example.com"))

    r = admin_client.delete(f"/api/admin/registrations/{registration_id}")
    assert r.status_code == 200
    assert r.json()["data"]["deletedParticipants"] == 4
    assert db[PARTICIPANTS].count_documents({"registrationId": registration_id}) == 0
    assert db[PARTICIPANTS].count_documents({"registrationId": other}) == 1


def test_delete_registration_not_found_and_bad_id(admin_client: TestClient):
    assert admin_client.delete("/api/admin/registrations/64b7f0c2a1b2c3d4e5f60718").status_code == 404
    assert admin_client.delete("/api/admin/registrations/not-an-id").status_code == 400


def test_leader_cannot_be_removed(admin_client: TestClient, db, event):
    registration_id = register(admin_client, team_payload(3))
    leader = members_of(db, registration_id, leader=True)[0]

    r = admin_client.delete(f"/api/admin/participants/{leader['_id']}")
    assert r.status_code == 400
    assert r.json()["error"] == "Cannot delete team leader. Delete the entire registration instead."
    assert db[PARTICIPANTS].count_documents({"registrationId": registration_id}) == 4
    assert db[REGISTRATIONS].find_one()["totalParticipants"] == 4


def test_team_of_two_cannot_shrink(admin_client: TestClient, db, event):
    registration_id = register(admin_client, team_payload(1))
    mate = members_of(db, registration_id, leader=False)[0]

    r = admin_client.delete(f"/api/admin/participants/{mate['_id']}")
    assert r.status_code == 400
    assert r.json()["error"] == "Team must have at least 2 members. Delete the entire registration instead."
    assert db[PARTICIPANTS].count_documents({"registrationId": registration_id}) == 2
    assert db[REGISTRATIONS].find_one()["totalParticipants"] == 2


def test_team_of_three_can_drop_a_member(admin_client: TestClient, db, event):
    registration_id = register(admin_client, team_payload(2))
    mate = members_of(db, registration_id, leader=False)[0]

    r = admin_client.delete(f"/api/admin/participants/{mate['_id']}")
    assert r.status_code == 200
    assert r.json()["data"]["totalParticipants"] == 2
    assert db[REGISTRATIONS].find_one()["totalParticipants"] == 2
    assert db[PARTICIPANTS].count_documents({"registrationId": registration_id}) == 2


class StaleReads:
    """Database view whose find_one on one collection answers from an old snapshot."""

    def __init__(self, db, collection_name: str, snapshot: dict):
        self._db = db
        self._name = collection_name
        self._snapshot = snapshot

    def __getitem__(self, name):
        collection = self._db[name]
        return _StaleCollection(collection, self._snapshot) if name == self._name else collection


class _StaleCollection:
    def __init__(self, collection, snapshot: dict):
        self._collection = collection
        self._snapshot = snapshot

    def find_one(self, *args, **kwargs):
        return dict(self._snapshot)

    def __getattr__(self, attr):
        return getattr(self._collection, attr)


def test_overlapping_removal_of_same_member_decrements_once(admin_client: TestClient, db, event):
    registration_id = register(admin_client, team_payload(3))
    mate = members_of(db, registration_id, leader=False)[0]
    assert admin_client.delete(f"/api/admin/participants/{mate['_id']}").status_code == 200

    with pytest.raises(ParticipantNotFoundError):
        registrations.delete_participant(StaleReads(db, PARTICIPANTS, mate), str(mate["_id"]))

    assert db[REGISTRATIONS].find_one()["totalParticipants"] == 3
    assert db[PARTICIPANTS].count_documents({"registrationId": registration_id}) == 3


def test_member_is_restored_when_team_reaches_floor_meanwhile(admin_client: TestClient, db, event):
    registration_id = register(admin_client, team_payload(1))
    mate = members_of(db, registration_id, leader=False)[0]
    stale = dict(db[REGISTRATIONS].find_one(), totalParticipants=3)

    with pytest.raises(ValidationError, match="Team must have at least 2 members"):
        registrations.delete_participant(StaleReads(db, REGISTRATIONS, stale), str(mate["_id"]))

    assert db[REGISTRATIONS].find_one()["totalParticipants"] == 2
    assert db[PARTICIPANTS].count_documents({"registrationId": registration_id}) == 2


def test_missing_participant_is_not_found(admin_client: TestClient):
    r = admin_client.delete("/api/admin/participants/64b7f0c2a1b2c3d4e5f60718")
    assert r.status_code == 404
    assert r.json()["error"] == "Participant not found"


def test_admin_routes_require_login(client: TestClient, db):
    assert client.delete("/api/admin/registrations/64b7f0c2a1b2c3d4e5f60718").status_code == 401
    assert client.delete("/api/admin/participants/64b7f0c2a1b2c3d4e5f60718").status_code == 401
    assert client.delete("/api/events/hack25").status_code == 401
    r = client.post("/api/events", json={"name": "X"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Authentication required", "code": "UNAUTHORIZED"}


def test_end_to_end_member_removal_updates_stats(admin_client: TestClient, db, event):
    registration_id = register(admin_client, team_payload(3))
    mate = members_of(db, registration_id, leader=False)[0]
    assert admin_client.delete(f"/api/admin/participants/{mate['_id']}").status_code == 200

    r = admin_client.get("/api/admin/stats")
    assert r.status_code == 200
    stats = r.json()["data"]
    assert stats == [{
        "eventName": "Hack25",
        "eventSlug": "hack25",
        "totalRegistrations": 1,
        "individualCount": 0,
        "teamCount": 1,
        "totalParticipants": 3,
    }]


def test_event_rename_follows_registrations(admin_client: TestClient, db, event):
    register(admin_client, solo_payload())
    r = admin_client.put("/api/events/hack25", json={"name": "Hack 2025", "maxTeamSize": 5})
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "Hack 2025"
    assert r.json()["data"]["maxTeamSize"] == 5
    assert db[REGISTRATIONS].find_one()["eventName"] == "Hack 2025"
