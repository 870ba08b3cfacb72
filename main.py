import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

import database
import events
import incubation
import media
import registrations
import startups
from auth import check_password, clear_session_cookie, require_admin, set_session_cookie
from config import settings
from database import ensure_indexes, get_db
from exceptions import HubError
from logging_config import get_logger, setup_logging
from middleware import RequestLoggingMiddleware
from responses import created_response, error_response, success_response

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        try:
            ensure_indexes(database.db)
        except PyMongoError as e:
            logger.error("Could not create indexes, database unreachable: %s", e)
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; data endpoints will answer 503")
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

admin_only = [Depends(require_admin)]


# Error handling

@app.exception_handler(HubError)
async def hub_error_handler(request: Request, exc: HubError):
    return error_response(exc.message, exc.status_code, exc.code, exc.details)


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    key_pattern = (exc.details or {}).get("keyPattern") or {}
    keys = ", ".join(key_pattern) or "field"
    return error_response(f"Duplicate entry: {keys} already exists", 409, "DUPLICATE")


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    message = "A database error occurred" if settings.is_production else str(exc)
    return error_response(message, 500, "DATABASE_ERROR")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return error_response("Validation failed", 400, "VALIDATION_ERROR", details)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = "An unexpected error occurred" if settings.is_production else str(exc)
    return error_response(message, 500, "SERVER_ERROR")


# Request models for endpoints
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


class TeamMemberIn(CamelModel):
    name: Optional[str] = None
    gender: Optional[str] = None
    roll_number: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None


class RegistrationRequest(CamelModel):
    participation_type: Optional[str] = None
    team_name: Optional[str] = None
    leader_name: Optional[str] = None
    leader_gender: Optional[str] = None
    leader_roll_number: Optional[str] = None
    leader_contact_number: Optional[str] = None
    leader_email: Optional[str] = None
    team_members: List[TeamMemberIn] = []


class EventRequest(CamelModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    min_team_size: Optional[int] = None
    max_team_size: Optional[int] = None
    is_active: Optional[bool] = None


class StartupRequest(CamelModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    incubated_date: Optional[str] = None
    incubation_details: Optional[str] = None
    status: Optional[str] = None
    website: Optional[str] = None
    image: Optional[str] = None
    image_public_id: Optional[str] = None
    is_active: Optional[bool] = None


class IncubationRequest(CamelModel):
    startup_name: Optional[str] = None
    founder_name: Optional[str] = None
    founder_email: Optional[str] = None
    founder_phone: Optional[str] = None
    founder_college: Optional[str] = None
    founder_year: Optional[str] = None
    founder_branch: Optional[str] = None
    team_size: Optional[int] = None
    problem_statement: Optional[str] = None
    proposed_solution: Optional[str] = None
    unique_selling_point: Optional[str] = None
    current_stage: Optional[str] = None
    support_needed: Optional[List[str]] = None
    additional_info: Optional[str] = None


class IncubationUpdate(CamelModel):
    status: Optional[str] = None
    admin_notes: Optional[str] = None


class LoginRequest(CamelModel):
    password: Optional[str] = None


class UploadRequest(CamelModel):
    image: Optional[str] = None
    folder: Optional[str] = None


@app.get("/")
def root():
    return {"service": "innovation-hub", "status": "ok"}


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/test")
def test_database():
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_url": "Set" if settings.DATABASE_URL else "Not Set",
        "database_name": "Set" if settings.DATABASE_NAME else "Not Set",
        "connection_status": "Not Connected",
        "collections": [],
    }
    if database.db is not None:
        try:
            response["collections"] = database.db.list_collection_names()
            response["database"] = "Available"
            response["connection_status"] = "Connected"
        except PyMongoError as e:
            response["database"] = f"Error: {e}"
    return response


# Auth
@app.post("/api/auth")
def login(body: LoginRequest):
    check_password(body.password)
    response = success_response(None, "Login successful")
    set_session_cookie(response)
    logger.info("Admin logged in")
    return response


@app.delete("/api/auth")
def logout():
    response = success_response(None, "Logged out successfully")
    clear_session_cookie(response)
    return response


# Events
@app.get("/api/events")
def list_events(active: Optional[str] = None, db: Database = Depends(get_db)):
    return success_response(events.list_events(db, active_only=active == "true"))


@app.post("/api/events", dependencies=admin_only)
def create_event(body: EventRequest, db: Database = Depends(get_db)):
    return created_response(events.create_event(db, body.model_dump()), "Event created successfully")


@app.get("/api/events/{slug}")
def get_event(slug: str, db: Database = Depends(get_db)):
    return success_response(events.event_details(db, slug))


@app.put("/api/events/{slug}", dependencies=admin_only)
def update_event(slug: str, body: EventRequest, db: Database = Depends(get_db)):
    return success_response(events.update_event(db, slug, body.model_dump(exclude_unset=True)), "Event updated successfully")


@app.delete("/api/events/{slug}", dependencies=admin_only)
def delete_event(slug: str, db: Database = Depends(get_db)):
    return success_response(events.delete_event(db, slug), "Event and all registrations deleted successfully")


# Registrations
@app.post("/api/registrations/{event_slug}")
def register(event_slug: str, body: RegistrationRequest, db: Database = Depends(get_db)):
    event = events.get_event(db, event_slug)
    summary = registrations.submit_registration(db, event, body.model_dump())
    return created_response(summary, "Registration successful!")


@app.delete("/api/admin/registrations/{registration_id}", dependencies=admin_only)
def delete_registration(registration_id: str, db: Database = Depends(get_db)):
    return success_response(registrations.delete_registration(db, registration_id), "Registration deleted successfully")


@app.delete("/api/admin/participants/{participant_id}", dependencies=admin_only)
def delete_participant(participant_id: str, db: Database = Depends(get_db)):
    return success_response(
        registrations.delete_participant(db, participant_id), "Participant removed from team successfully"
    )


@app.get("/api/admin/stats")
def registration_stats(db: Database = Depends(get_db)):
    return success_response(events.registration_stats(db))


# Startups
@app.get("/api/startups")
def list_startups(active: Optional[str] = None, status: Optional[str] = None, db: Database = Depends(get_db)):
    return success_response(startups.list_startups(db, active_only=active != "false", status=status))


@app.post("/api/startups", dependencies=admin_only)
def create_startup(body: StartupRequest, db: Database = Depends(get_db)):
    return created_response(startups.create_startup(db, body.model_dump()), "Startup created successfully")


@app.get("/api/admin/startups/{startup_id}", dependencies=admin_only)
def get_startup(startup_id: str, db: Database = Depends(get_db)):
    return success_response(startups.get_startup(db, startup_id))


@app.put("/api/admin/startups/{startup_id}", dependencies=admin_only)
def update_startup(startup_id: str, body: StartupRequest, db: Database = Depends(get_db)):
    updated = startups.update_startup(db, startup_id, body.model_dump(exclude_unset=True))
    return success_response(updated, "Startup updated successfully")


@app.post("/api/admin/startups/{startup_id}/toggle", dependencies=admin_only)
def toggle_startup(startup_id: str, db: Database = Depends(get_db)):
    return success_response(startups.toggle_startup(db, startup_id), "Startup visibility updated")


@app.delete("/api/admin/startups/{startup_id}", dependencies=admin_only)
def delete_startup(startup_id: str, db: Database = Depends(get_db)):
    return success_response(startups.delete_startup(db, startup_id), "Startup deleted successfully")


# Incubation
@app.get("/api/incubation", dependencies=admin_only)
def list_applications(status: Optional[str] = None, db: Database = Depends(get_db)):
    return success_response(incubation.list_applications(db, status))


@app.post("/api/incubation")
def submit_application(body: IncubationRequest, db: Database = Depends(get_db)):
    return created_response(
        incubation.submit_application(db, body.model_dump()),
        "Application submitted successfully! We'll review and get back to you soon.",
    )


@app.get("/api/incubation/{application_id}", dependencies=admin_only)
def get_application(application_id: str, db: Database = Depends(get_db)):
    return success_response(incubation.get_application(db, application_id))


@app.put("/api/incubation/{application_id}", dependencies=admin_only)
def update_application(application_id: str, body: IncubationUpdate, db: Database = Depends(get_db)):
    updated = incubation.update_application(db, application_id, body.model_dump(exclude_unset=True))
    return success_response(updated, "Application updated successfully")


@app.delete("/api/incubation/{application_id}", dependencies=admin_only)
def delete_application(application_id: str, db: Database = Depends(get_db)):
    incubation.delete_application(db, application_id)
    return success_response(None, "Application deleted successfully")


@app.get("/api/admin/incubation/stats", dependencies=admin_only)
def application_stats(db: Database = Depends(get_db)):
    return success_response(incubation.application_stats(db))


# Homepage feed
@app.get("/api/homepage")
def homepage(feed: Optional[str] = Query(None, alias="type"), db: Database = Depends(get_db)):
    if feed == "upcoming-events":
        return success_response(events.upcoming_events(db))
    if feed == "startups":
        return success_response(startups.featured_startups(db))
    return success_response({"message": "Use ?type=upcoming-events or ?type=startups"})


# Media
@app.post("/api/upload", dependencies=admin_only)
def upload(body: UploadRequest):
    if not body.image:
        return error_response("Image data is required", 400, "VALIDATION_ERROR")
    result = media.upload_image(body.image, body.folder)
    if not result.success:
        return error_response(result.error or "Upload failed", 400, "UPLOAD_FAILED")
    return success_response({"url": result.url, "publicId": result.public_id})


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
