"""
Database Helper Functions

MongoDB connection bootstrap plus the small CRUD helpers the services use.
Helpers take the database handle explicitly so request handlers can receive it
through the ``get_db`` dependency (and tests can swap it out).
"""

from datetime import datetime, timezone
from typing import Union, Optional, Dict, Any, List

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import settings
from errors import MalformedIdError

USERS = "user"
MENU_ITEMS = "menuitem"
ORDERS = "order"
REVIEWS = "review"

NEWEST_FIRST = [("created_at", -1), ("_id", -1)]

_client = None
db = None

if settings.database_url and settings.database_name:
    _client = MongoClient(settings.database_url)
    db = _client[settings.database_name]


def get_db() -> Database:
    if db is None:
        raise RuntimeError("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
    return db


def ensure_indexes(database: Database) -> None:
    """Create the unique indexes the uniqueness rules rely on."""
    database[USERS].create_index([("email", ASCENDING)], unique=True)
    database[REVIEWS].create_index([("user_id", ASCENDING), ("menu_item", ASCENDING)], unique=True)


def parse_object_id(_id: str, label: str) -> ObjectId:
    try:
        return ObjectId(_id)
    except (InvalidId, TypeError):
        raise MalformedIdError(label)


def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


# CRUD helpers

def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> dict:
    payload = _to_dict(data)
    now = datetime.now(timezone.utc)
    payload['created_at'] = now
    payload['updated_at'] = now
    result = database[collection_name].insert_one(payload)
    payload['_id'] = result.inserted_id
    return serialize_doc(payload)


def get_documents(database: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  limit: Optional[int] = None, sort: Optional[list] = None,
                  projection: Optional[dict] = None) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(int(limit))
    return [serialize_doc(doc) for doc in cursor]


def get_document(database: Database, collection_name: str, filter_dict: dict,
                 projection: Optional[dict] = None) -> Optional[dict]:
    return serialize_doc(database[collection_name].find_one(filter_dict, projection))


def get_document_by_id(database: Database, collection_name: str, _id: Union[str, ObjectId],
                       projection: Optional[dict] = None) -> Optional[dict]:
    if not isinstance(_id, ObjectId):
        if not ObjectId.is_valid(_id):
            return None
        _id = ObjectId(_id)
    return get_document(database, collection_name, {"_id": _id}, projection)


def update_document(database: Database, collection_name: str, _id: ObjectId,
                    update_data: Dict[str, Any], projection: Optional[dict] = None) -> Optional[dict]:
    """Apply ``$set`` and return the updated document, or None when it does not exist."""
    update = {"$set": _to_dict(update_data)}
    update["$set"]["updated_at"] = datetime.now(timezone.utc)
    result = database[collection_name].update_one({"_id": _id}, update)
    if result.matched_count == 0:
        return None
    return get_document(database, collection_name, {"_id": _id}, projection)


def delete_document(database: Database, collection_name: str, _id: ObjectId) -> Optional[dict]:
    """Delete a document and return what was removed."""
    return serialize_doc(database[collection_name].find_one_and_delete({"_id": _id}))


# Utility

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["_id"] = str(d["_id"])  # convert ObjectId to string
    return d
