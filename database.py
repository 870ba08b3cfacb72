"""
MongoDB access helpers.

The connection is configured from DATABASE_URL / DATABASE_NAME. When either
is missing ``db`` stays ``None`` and ``get_db`` reports the store as
unavailable. Workflows never import ``db`` directly: they receive a
``Database`` handle so routes can inject it and tests can swap in an
in-memory one.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from bson.objectid import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from config import settings
from exceptions import DatabaseUnavailableError, InvalidIdError, PartialFailureError
from logging_config import get_logger

logger = get_logger(__name__)

EVENTS = "events"
REGISTRATIONS = "registrations"
PARTICIPANTS = "participants"
STARTUPS = "startups"
INCUBATIONS = "incubations"

client: Optional[MongoClient] = None
db: Optional[Database] = None

if settings.DATABASE_URL and settings.DATABASE_NAME:
    client = MongoClient(settings.DATABASE_URL, serverSelectionTimeoutMS=settings.DATABASE_TIMEOUT_MS)
    db = client[settings.DATABASE_NAME]


def get_db() -> Database:
    """FastAPI dependency returning the configured database."""
    if db is None:
        raise DatabaseUnavailableError()
    return db


def ensure_indexes(database: Database) -> None:
    """Create the unique and lookup indexes every collection relies on."""
    database[EVENTS].create_index("name", unique=True)
    database[EVENTS].create_index("slug", unique=True)
    database[EVENTS].create_index("isActive")

    database[REGISTRATIONS].create_index(
        [("eventId", ASCENDING), ("leaderEmail", ASCENDING)], unique=True
    )
    database[REGISTRATIONS].create_index("eventName")

    database[PARTICIPANTS].create_index("registrationId")

    database[STARTUPS].create_index("slug", unique=True)
    database[STARTUPS].create_index([("isActive", ASCENDING), ("createdAt", DESCENDING)])
    database[STARTUPS].create_index("status")

    database[INCUBATIONS].create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
    database[INCUBATIONS].create_index("founderEmail")
    logger.info("Indexes ensured on %s", database.name)


def utcnow() -> datetime:
    # naive UTC, the form pymongo hands back by default
    return datetime.now(timezone.utc).replace(tzinfo=None)


def object_id(value: str, resource_type: str) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise InvalidIdError(resource_type)
    return ObjectId(value)


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert one document with createdAt/updatedAt stamps; return its id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True, exclude_none=True)
    else:
        data_dict = data.copy()
    now = utcnow()
    data_dict["createdAt"] = now
    data_dict["updatedAt"] = now
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def create_documents(database: Database, collection_name: str, items: List[Union[BaseModel, dict]]) -> List[str]:
    docs = []
    now = utcnow()
    for item in items:
        doc = item.model_dump(by_alias=True, exclude_none=True) if isinstance(item, BaseModel) else item.copy()
        doc["createdAt"] = now
        doc["updatedAt"] = now
        docs.append(doc)
    result = database[collection_name].insert_many(docs, ordered=True)
    return [str(i) for i in result.inserted_ids]


def get_documents(
    database: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[tuple]] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def to_str_id(doc):
    """Copy a document with ``_id`` exposed as ``id`` and ObjectIds as strings."""
    if not doc:
        return doc
    out = {}
    for key, value in dict(doc).items():
        if key == "_id":
            out["id"] = str(value)
        elif isinstance(value, ObjectId):
            out[key] = str(value)
        else:
            out[key] = value
    return out


class Saga:
    """Run dependent writes in order, undoing finished ones if a later write fails.

    A failure in the very first write leaves nothing to undo and is re-raised
    unchanged. Any later failure triggers the registered compensations in
    reverse order and surfaces as ``PartialFailureError``.
    """

    def __init__(self, operation: str):
        self.operation = operation
        self._compensations: List[tuple] = []

    def step(self, description: str, action: Callable[[], Any], undo: Optional[Callable[[], Any]] = None) -> Any:
        try:
            result = action()
        except Exception as e:
            if not self._compensations:
                raise
            logger.error("%s failed while %s: %s", self.operation, description, e)
            rolled_back = self.rollback()
            raise PartialFailureError(self.operation, description, rolled_back, e) from e
        if undo is not None:
            self._compensations.append((description, undo))
        return result

    def rollback(self) -> bool:
        """Run the registered compensations in reverse; False if any of them failed."""
        rolled_back = True
        for description, undo in reversed(self._compensations):
            try:
                undo()
            except Exception:
                logger.exception("%s: could not undo step '%s'", self.operation, description)
                rolled_back = False
        self._compensations.clear()
        return rolled_back


def restore_documents(database: Database, collection_name: str, docs: List[dict]) -> None:
    """Re-insert previously deleted documents with their original ids."""
    if docs:
        database[collection_name].insert_many(docs)
