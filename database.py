"""
Database helpers for StudyMate

Connection settings come from the environment (a local .env file is loaded
if present). The MongoClient itself is created once at startup by the app
lifespan and handed to route handlers through the ``get_db`` dependency.
"""

import os
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

from bson import ObjectId
from dotenv import load_dotenv
from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.server_api import ServerApi

load_dotenv()

logger = logging.getLogger("studymate.database")

DATABASE_NAME = os.getenv("DATABASE_NAME", "StudyMateDB")
DB_CLUSTER = os.getenv("DB_CLUSTER", "cluster0.rakfigq.mongodb.net")

PARTNERS = "partners"
REQUESTS = "requests"


def database_url() -> str:
    """Resolve the MongoDB URI: DATABASE_URL, then DB_USER/DB_PASS, then localhost."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    user = os.getenv("DB_USER")
    password = os.getenv("DB_PASS")
    if user and password:
        return (
            f"mongodb+srv://{quote_plus(user)}:{quote_plus(password)}"
            f"@{DB_CLUSTER}/?appName=Cluster0"
        )
    return "mongodb://localhost:27017"


def connect(url: Optional[str] = None) -> MongoClient:
    client = MongoClient(
        url or database_url(),
        server_api=ServerApi("1", strict=True, deprecation_errors=True),
        tz_aware=True,
    )
    logger.info("MongoDB client created for database %s", DATABASE_NAME)
    return client


def get_db(request: Request) -> Database:
    """FastAPI dependency returning the database opened at startup."""
    return request.app.state.db


def parse_object_id(value: Any, kind: str) -> ObjectId:
    # ObjectId(None) would mint a fresh id, so only strings are accepted
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail=f"Invalid {kind} id")
    return ObjectId(value)


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    return jsonable_encoder(doc, custom_encoder={ObjectId: str})


def serialize_docs(docs) -> List[Dict[str, Any]]:
    return [serialize_doc(d) for d in docs]


def insert_ack(result) -> Dict[str, Any]:
    return {"acknowledged": result.acknowledged, "insertedId": str(result.inserted_id)}


def update_ack(result) -> Dict[str, Any]:
    upserted_id = result.upserted_id
    return {
        "acknowledged": result.acknowledged,
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
        "upsertedId": str(upserted_id) if upserted_id is not None else None,
        "upsertedCount": 0 if upserted_id is None else 1,
    }


def delete_ack(result) -> Dict[str, Any]:
    return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}
