"""
Database Schemas for the Innovation Hub

Each Pydantic model represents one MongoDB collection (see the collection
constants in ``database``). Python attributes are snake_case; documents and
JSON bodies use the camelCase aliases. Workflows build these models only
after ``validations`` has accepted the input, so the field constraints
below restate the stored shape rather than replace the rule messages.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional
from datetime import datetime

Gender = Literal["Male", "Female", "Other"]
StartupStatus = Literal["incubated", "non-incubated"]
Stage = Literal["idea", "mvp", "early-traction"]
Support = Literal["mentorship", "technical", "funding", "coworking"]
ApplicationStatus = Literal["pending", "reviewing", "approved", "rejected"]
FounderYear = Literal["1st Year", "2nd Year", "3rd Year", "4th Year", "Alumni", "Faculty"]


class Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Event(Document):
    name: str = Field(..., description="Unique public event name")
    slug: str = Field(..., pattern=r"^[a-z0-9-]+$", description="Unique URL slug")
    description: str = Field(..., description="Event details")
    date: str = Field(..., description="Event date as YYYY-MM-DD")
    min_team_size: int = Field(1, ge=1, le=10, description="Smallest allowed team")
    max_team_size: int = Field(4, ge=1, le=10, description="Largest allowed team")
    is_active: bool = Field(True, description="Shown in public listings")


class Registration(Document):
    event_id: str = Field(..., description="ID of the event registered for")
    event_name: str = Field(..., description="Event name cached for display")
    is_team: bool = Field(False, description="Team or solo registration")
    team_name: Optional[str] = Field(None, min_length=3, max_length=100, description="Set only for teams")
    leader_email: str = Field(..., description="Lowercased leader email")
    total_participants: int = Field(..., ge=1, le=4, description="1 for solo, 2-4 for teams")


class Participant(Document):
    registration_id: str = Field(..., description="Owning registration ID")
    name: str = Field(..., min_length=2, max_length=100)
    gender: Gender
    roll_number: str = Field(..., description="Uppercased roll number")
    contact_number: str = Field(..., pattern=r"^\d{10}$")
    email: str
    is_leader: bool = Field(False, description="Exactly one leader per registration")


class Startup(Document):
    name: str = Field(..., description="Startup name")
    slug: str = Field(..., pattern=r"^[a-z0-9-]+$", description="Unique URL slug")
    email: str
    mobile_number: str
    incubated_date: datetime
    incubation_details: Optional[str] = None
    status: StartupStatus = "non-incubated"
    website: Optional[str] = None
    image: Optional[str] = Field(None, description="Externally hosted image URL")
    image_public_id: Optional[str] = Field(None, description="Media host asset id of the image")
    is_active: bool = Field(True, description="Visibility in public listings")


class Incubation(Document):
    startup_name: str
    founder_name: str
    founder_email: str
    founder_phone: str
    founder_college: str
    founder_year: FounderYear
    founder_branch: str
    team_size: int = Field(..., ge=1, le=10)
    problem_statement: str
    proposed_solution: str
    unique_selling_point: str
    current_stage: Stage
    support_needed: List[Support] = Field(..., min_length=1)
    additional_info: str = ""
    status: ApplicationStatus = "pending"
    admin_notes: Optional[str] = None
