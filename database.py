"""
MongoDB access helpers.

The client is opened and closed by the process (see main.py lifespan) and
the resulting database handle is handed to each component. Nothing here
holds a module-level connection.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from bson.decimal128 import Decimal128
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)


def connect(settings: Settings) -> MongoClient:
    """Open a client whose every round trip is bounded by the request timeout."""
    timeout = settings.request_timeout_ms
    client = MongoClient(
        settings.database_url,
        serverSelectionTimeoutMS=timeout,
        connectTimeoutMS=timeout,
        socketTimeoutMS=timeout,
    )
    logger.info(f"MongoDB client created for database '{settings.database_name}'")
    return client


def get_database(client: MongoClient, settings: Settings) -> Database:
    return client[settings.database_name]


def utc_now() -> datetime:
    """Current UTC time at BSON (millisecond) resolution, stored naive."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Mark a naive datetime read back from Mongo as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_decimal(value: Any) -> Decimal:
    """Convert a stored price/amount (Decimal128, float, int, str) to Decimal."""
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # Go through str so 12.99 stays 12.99 instead of its binary expansion
        return Decimal(str(value))
    return Decimal(value)


def to_decimal128(value: Decimal) -> Decimal128:
    return Decimal128(value)


def object_id(id_str: Union[str, ObjectId]) -> Optional[ObjectId]:
    """Parse an id string; None when it is not a valid ObjectId."""
    if isinstance(id_str, ObjectId):
        return id_str
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a single document, stamping created_at/updated_at when absent."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = utc_now()
    data_dict.setdefault("created_at", now)
    data_dict.setdefault("updated_at", now)
    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
    projection: Optional[Dict[str, Any]] = None,
    max_time_ms: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    if max_time_ms:
        cursor = cursor.max_time_ms(max_time_ms)
    return list(cursor)


def ping(db: Database) -> bool:
    db.client.admin.command("ping")
    return True
