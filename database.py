"""
MongoDB helpers for PlantNet

The connection is configured from DATABASE_URL / DATABASE_NAME. When no URL is
set `db` stays None and the API answers 500 on routes that need storage.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient

from errors import NotFound

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "plantnet")

client = None
db = None

if DATABASE_URL:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]
    logger.info("MongoDB configured for database %s", DATABASE_NAME)


def _resolve(database):
    return database if database is not None else db


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]], database=None) -> str:
    """Insert a document, stamping created_at/updated_at, and return its id"""
    target = _resolve(database)
    if target is None:
        raise RuntimeError("Database not available")
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = datetime.now(timezone.utc)
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = target[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None, database=None) -> List[Dict[str, Any]]:
    target = _resolve(database)
    if target is None:
        raise RuntimeError("Database not available")
    return list(target[collection_name].find(filter_dict or {}))


def object_id(value: Any, label: str = "Document") -> ObjectId:
    # a malformed id can never match, so it reads as a missing document
    if isinstance(value, ObjectId):
        return value
    if not ObjectId.is_valid(value):
        raise NotFound(f"{label} not found")
    return ObjectId(value)


def serialize(doc: Any) -> Any:
    """Make a Mongo document JSON friendly: _id -> id, ObjectId -> str, datetime -> ISO"""
    if isinstance(doc, list):
        return [serialize(d) for d in doc]
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        if doc.tzinfo is None:
            doc = doc.replace(tzinfo=timezone.utc)
        return doc.astimezone(timezone.utc).isoformat()
    if not isinstance(doc, dict):
        return doc
    d = {k: serialize(v) for k, v in doc.items() if k != "_id"}
    if doc.get("_id") is not None:
        d["id"] = str(doc["_id"])
    return d
