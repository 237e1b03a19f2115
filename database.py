"""
MongoDB access

One client per process; collections are looked up by name on the database
returned from get_db(). Helpers here translate between BSON documents and the
plain Python values used by the schemas.
"""
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Any, Optional

from bson import Decimal128, ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.database import Database

from config import settings


@lru_cache(maxsize=1)
def get_client() -> MongoClient:
    return MongoClient(settings.DATABASE_URL, tz_aware=True)


def get_db() -> Database:
    """FastAPI dependency returning the application database"""
    return get_client()[settings.DATABASE_NAME]


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for value, or None when it is not a valid id"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value).strip())
    except (InvalidId, TypeError):
        return None


def to_bson(value: Any) -> Any:
    """Convert Python values that BSON cannot encode natively"""
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, dict):
        return {k: to_bson(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_bson(v) for v in value]
    return value


def serialize_doc(doc: dict) -> dict:
    """Turn a stored document into a plain dict with a string "id" """
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    for k, v in list(d.items()):
        if isinstance(v, Decimal128):
            d[k] = v.to_decimal()
        elif isinstance(v, datetime) and v.tzinfo is None:
            # stored values are UTC
            d[k] = v.replace(tzinfo=timezone.utc)
    return d
