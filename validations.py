"""
Pure validation rules for registrations, participants, events, startups
and incubation applications.

Every validator takes a plain mapping with snake_case keys, never touches
the database, and returns a ``ValidationResult``. Checks run in a fixed
order and stop at the first failure so the message returned is stable and
can be shown to the user verbatim.
"""
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, NamedTuple, Optional

from pydantic.alias_generators import to_camel

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[0-9]{10}$")
SLUG_RE = re.compile(r"^[a-z0-9-]+$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

GENDERS = ("Male", "Female", "Other")
PARTICIPATION_TYPES = ("solo", "team")
STARTUP_STATUSES = ("incubated", "non-incubated")
STAGES = ("idea", "mvp", "early-traction")
SUPPORT_OPTIONS = ("mentorship", "technical", "funding", "coworking")
APPLICATION_STATUSES = ("pending", "reviewing", "approved", "rejected")
FOUNDER_YEARS = ("1st Year", "2nd Year", "3rd Year", "4th Year", "Alumni", "Faculty")

MIN_TEAM_MEMBERS = 1
MAX_TEAM_MEMBERS = 3
TEAM_SIZE_LIMITS = (1, 10)

INCUBATION_REQUIRED_FIELDS = (
    "startup_name",
    "founder_name",
    "founder_email",
    "founder_phone",
    "founder_college",
    "founder_year",
    "founder_branch",
    "team_size",
    "problem_statement",
    "proposed_solution",
    "unique_selling_point",
    "current_stage",
    "support_needed",
)


class ValidationResult(NamedTuple):
    is_valid: bool
    error: Optional[str] = None


OK = ValidationResult(True)


def fail(message: str) -> ValidationResult:
    return ValidationResult(False, message)


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def digits_only(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return re.sub(r"\D", "", value)


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_RE.match(value.strip()))


def is_valid_phone(value: Any) -> bool:
    """Ten digits once separators such as spaces or dashes are removed."""
    return bool(PHONE_RE.match(digits_only(value)))


def is_valid_slug(value: Any) -> bool:
    return isinstance(value, str) and bool(SLUG_RE.match(value.strip()))


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a ``YYYY-MM-DD`` string that names a real calendar day."""
    if not isinstance(value, str) or not DATE_RE.match(value.strip()):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d")
    except ValueError:
        return None


def is_valid_date(value: Any) -> bool:
    return parse_date(value) is not None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Accept a datetime, a ``YYYY-MM-DD`` date or an ISO 8601 timestamp."""
    if isinstance(value, datetime):
        return value
    parsed = parse_date(value)
    if parsed is not None:
        return parsed
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def normalize_gender(value: Any) -> Optional[str]:
    """Map any casing of Male/Female/Other to its canonical form."""
    if not isinstance(value, str):
        return None
    for gender in GENDERS:
        if value.strip().lower() == gender.lower():
            return gender
    return None


def is_int_in_range(value: Any, low: int, high: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and low <= value <= high


def validate_participant(data: Mapping[str, Any], label: str = "Participant") -> ValidationResult:
    name = data.get("name")
    if not is_non_empty_string(name):
        return fail(f"{label} name is required")
    if not 2 <= len(name.strip()) <= 100:
        return fail(f"{label} name must be 2-100 characters")

    if normalize_gender(data.get("gender")) is None:
        return fail(f"{label} gender must be Male, Female, or Other")

    if not is_non_empty_string(data.get("roll_number")):
        return fail(f"{label} roll number is required")

    contact = data.get("contact_number")
    if not is_non_empty_string(contact):
        return fail(f"{label} contact number is required")
    if not is_valid_phone(contact):
        return fail(f"{label} contact number must be 10 digits")

    email = data.get("email")
    if not is_non_empty_string(email):
        return fail(f"{label} email is required")
    if not is_valid_email(email):
        return fail(f"{label} email is invalid")

    return OK


def leader_of(data: Mapping[str, Any]) -> dict:
    """Collect the ``leader_*`` fields of a registration into participant shape."""
    return {
        "name": data.get("leader_name"),
        "gender": data.get("leader_gender"),
        "roll_number": data.get("leader_roll_number"),
        "contact_number": data.get("leader_contact_number"),
        "email": data.get("leader_email"),
    }


def validate_registration(data: Mapping[str, Any]) -> ValidationResult:
    if data.get("participation_type") not in PARTICIPATION_TYPES:
        return fail('participationType must be "solo" or "team"')

    result = validate_participant(leader_of(data), "Leader")
    if not result.is_valid:
        return result

    members = data.get("team_members") or []

    if data["participation_type"] == "team":
        team_name = data.get("team_name")
        if not is_non_empty_string(team_name):
            return fail("Team name is required for team participation")
        if not 3 <= len(team_name.strip()) <= 100:
            return fail("Team name must be 3-100 characters")

        if not MIN_TEAM_MEMBERS <= len(members) <= MAX_TEAM_MEMBERS:
            return fail("Team requires 1-3 additional members (2-4 total)")

        for index, member in enumerate(members, start=1):
            result = validate_participant(member, f"Team member {index}")
            if not result.is_valid:
                return result

        emails = [data["leader_email"].strip().lower()]
        emails.extend(member["email"].strip().lower() for member in members)
        if len(set(emails)) != len(emails):
            return fail("Duplicate emails found in team members")
    elif members:
        return fail("Solo participation cannot have team members")

    return OK


def validate_event(data: Mapping[str, Any]) -> ValidationResult:
    if not is_non_empty_string(data.get("name")):
        return fail("Event name is required")

    slug = data.get("slug")
    if not is_non_empty_string(slug):
        return fail("Event slug is required")
    if not is_valid_slug(slug):
        return fail("Slug can only contain lowercase letters, numbers, and hyphens")

    if not is_non_empty_string(data.get("description")):
        return fail("Event description is required")

    date = data.get("date")
    if not is_non_empty_string(date):
        return fail("Event date is required")
    if not is_valid_date(date):
        return fail("Invalid date format. Use YYYY-MM-DD (e.g., 2025-01-15)")

    if data.get("max_team_size") is not None and not is_int_in_range(data["max_team_size"], *TEAM_SIZE_LIMITS):
        return fail("Max team size must be between 1 and 10")
    if data.get("min_team_size") is not None and not is_int_in_range(data["min_team_size"], *TEAM_SIZE_LIMITS):
        return fail("Min team size must be between 1 and 10")

    return OK


def validate_startup(data: Mapping[str, Any]) -> ValidationResult:
    if not is_non_empty_string(data.get("name")):
        return fail("Startup name is required")

    slug = data.get("slug")
    if not is_non_empty_string(slug):
        return fail("Startup slug is required")
    if not is_valid_slug(slug):
        return fail("Slug can only contain lowercase letters, numbers, and hyphens")

    email = data.get("email")
    if not is_non_empty_string(email):
        return fail("Email is required")
    if not is_valid_email(email):
        return fail("Email is invalid")

    mobile = data.get("mobile_number")
    if not is_non_empty_string(mobile):
        return fail("Mobile number is required")
    if not is_valid_phone(mobile):
        return fail("Mobile number must be 10 digits")

    incubated_date = data.get("incubated_date")
    if incubated_date is None or incubated_date == "":
        return fail("Incubated date is required")
    if parse_datetime(incubated_date) is None:
        return fail("Invalid incubated date")

    if data.get("status") not in STARTUP_STATUSES:
        return fail('Status must be "incubated" or "non-incubated"')

    return OK


def missing_fields(data: Mapping[str, Any], required: Iterable[str]) -> list:
    return [to_camel(field) for field in required if not data.get(field)]


def validate_incubation(data: Mapping[str, Any]) -> ValidationResult:
    missing = missing_fields(data, INCUBATION_REQUIRED_FIELDS)
    if missing:
        return fail(f"Missing required fields: {', '.join(missing)}")

    if not is_valid_email(data["founder_email"]):
        return fail("Invalid email format")

    if not is_valid_phone(data["founder_phone"]):
        return fail("Phone number must be 10 digits")

    if data["founder_year"] not in FOUNDER_YEARS:
        return fail("Invalid founder year")

    if not is_int_in_range(data["team_size"], *TEAM_SIZE_LIMITS):
        return fail("Team size must be between 1 and 10")

    if data["current_stage"] not in STAGES:
        return fail("Invalid current stage")

    support = data["support_needed"]
    if not isinstance(support, (list, tuple)) or not support or not all(s in SUPPORT_OPTIONS for s in support):
        return fail("Invalid support options selected")

    return OK


def validate_application_status(status: Any) -> ValidationResult:
    if status not in APPLICATION_STATUSES:
        return fail("Invalid status")
    return OK
