"""
Test configuration and fixtures.

The environment is fixed before the app is imported; every test gets a
fresh in-memory Mongo database injected through the ``get_db`` dependency.
"""
import os

os.environ["ENVIRONMENT"] = "testing"
os.environ["ADMIN_PASSWORD"] = "test-admin-password"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("DATABASE_NAME", None)

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from main import app

ADMIN_PASSWORD = "test-admin-password"


@pytest.fixture
def db():
    database = mongomock.MongoClient().hub_test
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db) -> TestClient:
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client: TestClient) -> TestClient:
    r = client.post("/api/auth", json={"password": ADMIN_PASSWORD})
    assert r.status_code == 200
    return client


def member(n: int, **overrides) -> dict:
    data = {
        "name": f"Member {n}",
        "gender": "female",
        "rollNumber": f"cs2100{n}",
        "contactNumber": f"98765432{n:02d}",
        "email": f"member{n}@example.com",
    }
    data.update(overrides)
    return data


def solo_payload(**overrides) -> dict:
    data = {
        "participationType": "solo",
        "leaderName": "Asha Rao",
        "leaderGender": "Female",
        "leaderRollNumber": "cs21001",
        "leaderContactNumber": "9876543210",
        "leaderEmail": "Asha@Example.com",
    }
    data.update(overrides)
    return data


def team_payload(size: int = 3, **overrides) -> dict:
    data = solo_payload(participationType="team", teamName="Byte Force")
    data["teamMembers"] = [member(i) for i in range(1, size + 1)]
    data.update(overrides)
    return data


@pytest.fixture
def event(admin_client: TestClient) -> dict:
    r = admin_client.post("/api/events", json={
        "name": "Hack25",
        "slug": "hack25",
        "description": "24 hour hackathon",
        "date": "2025-03-01",
    })
    assert r.status_code == 201
    return r.json()["data"]
