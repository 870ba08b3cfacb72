import pytest
from fastapi.testclient import TestClient

from config import settings
from database import INCUBATIONS


def application(**overrides) -> dict:
    data = {
        "startupName": "GreenGrid",
        "founderName": "Meera Iyer",
        "founderEmail": "Meera@Example.com",
        "founderPhone": "90000 00001",
        "founderCollege": "Govt Engineering College",
        "founderYear": "3rd Year",
        "founderBranch": "EEE",
        "teamSize": 3,
        "problemStatement": "Distribution losses in rural grids are high",
        "proposedSolution": "Low cost smart meters with anomaly alerts",
        "uniqueSellingPoint": "Ten times cheaper than incumbents",
        "currentStage": "mvp",
        "supportNeeded": ["mentorship", "funding"],
    }
    data.update(overrides)
    return data


def submit(client: TestClient, **overrides):
    return client.post("/api/incubation", json=application(**overrides))


def test_submit_application_is_public_and_pending(client: TestClient, db):
    r = submit(client)
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["status"] == "pending"
    assert data["startupName"] == "GreenGrid"

    stored = db[INCUBATIONS].find_one()
    assert stored["founderEmail"] == "meera@example.com"
    assert stored["founderPhone"] == "9000000001"
    assert stored["additionalInfo"] == ""


def test_missing_fields_are_reported_together(client: TestClient):
    r = submit(client, startupName="", supportNeeded=[])
    assert r.status_code == 400
    assert r.json()["error"] == "Missing required fields: startupName, supportNeeded"


def test_duplicate_open_application_is_rejected_until_resolved(admin_client: TestClient, db):
    first = submit(admin_client).json()["data"]["id"]

    r = submit(admin_client, startupName="GreenGrid v2", founderEmail="meera@example.com")
    assert r.status_code == 409
    assert r.json()["code"] == "DUPLICATE_APPLICATION"
    assert r.json()["error"] == "You already have a pending application. Please wait for our response."

    assert admin_client.put(f"/api/incubation/{first}", json={"status": "approved"}).status_code == 200
    r = submit(admin_client, startupName="GreenGrid v2")
    assert r.status_code == 201
    assert db[INCUBATIONS].count_documents({"founderEmail": "meera@example.com"}) == 2


def test_reviewing_application_also_blocks_resubmission(admin_client: TestClient):
    first = submit(admin_client).json()["data"]["id"]
    admin_client.put(f"/api/incubation/{first}", json={"status": "reviewing"})
    assert submit(admin_client).status_code == 409


def test_admin_update_sets_notes_and_validates_status(admin_client: TestClient):
    app_id = submit(admin_client).json()["data"]["id"]

    r = admin_client.put(f"/api/incubation/{app_id}", json={"status": "shortlisted"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid status"

    r = admin_client.put(f"/api/incubation/{app_id}", json={"adminNotes": "Call founder on Monday"})
    assert r.status_code == 200
    assert r.json()["data"]["adminNotes"] == "Call founder on Monday"
    assert r.json()["data"]["status"] == "pending"


def test_resolved_application_cannot_move_backwards(admin_client: TestClient):
    app_id = submit(admin_client).json()["data"]["id"]
    admin_client.put(f"/api/incubation/{app_id}", json={"status": "rejected"})

    r = admin_client.put(f"/api/incubation/{app_id}", json={"status": "pending"})
    assert r.status_code == 400
    assert r.json()["error"] == "Cannot move application from rejected to pending"


def test_permissive_transitions_when_enforcement_is_off(admin_client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "ENFORCE_INCUBATION_TRANSITIONS", False)
    app_id = submit(admin_client).json()["data"]["id"]
    admin_client.put(f"/api/incubation/{app_id}", json={"status": "approved"})
    r = admin_client.put(f"/api/incubation/{app_id}", json={"status": "pending"})
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "pending"


def test_get_and_delete_application(admin_client: TestClient, db):
    app_id = submit(admin_client).json()["data"]["id"]
    r = admin_client.get(f"/api/incubation/{app_id}")
    assert r.status_code == 200
    assert r.json()["data"]["id"] == app_id

    assert admin_client.delete(f"/api/incubation/{app_id}").status_code == 200
    assert db[INCUBATIONS].count_documents({}) == 0
    assert admin_client.delete(f"/api/incubation/{app_id}").status_code == 404
    assert admin_client.put(f"/api/incubation/{app_id}", json={"status": "approved"}).status_code == 404


@pytest.mark.parametrize("method", ["get", "delete"])
def test_application_management_requires_admin(client: TestClient, method):
    r = getattr(client, method)("/api/incubation/64b7f0c2a1b2c3d4e5f60718")
    assert r.status_code == 401


def test_list_applications_is_admin_only(client: TestClient):
    submit(client)
    assert client.get("/api/incubation").status_code == 401
    client.post("/api/auth", json={"password": "test-admin-password"})
    r = client.get("/api/incubation")
    assert r.status_code == 200
    assert len(r.json()["data"]) == 1


def test_application_stats(admin_client: TestClient):
    submit(admin_client)
    submit(admin_client, founderEmail="kiran@example.com", currentStage="idea", supportNeeded=["technical", "funding"])

    r = admin_client.get("/api/admin/incubation/stats")
    assert r.status_code == 200
    stats = r.json()["data"]
    assert stats["totalApplications"] == 2
    assert stats["byStatus"]["pending"] == 2
    assert stats["byStage"] == {"idea": 1, "mvp": 1, "earlyTraction": 0}
    assert stats["supportDistribution"] == {"mentorship": 1, "technical": 1, "funding": 2, "coworking": 0}
    assert sum(day["count"] for day in stats["dailyTrend"]) == 2
