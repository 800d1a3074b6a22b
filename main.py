import os
import re
import time
import uuid
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError
from datetime import datetime, timezone

import database
from database import (
    PARTNERS,
    REQUESTS,
    get_db,
    parse_object_id,
    serialize_doc,
    serialize_docs,
    insert_ack,
    update_ack,
    delete_ack,
)
from schemas import PartnerSnapshot, StudyRequest, StudyRequestCreate

PORT = int(os.getenv("PORT", 3000))

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger("studymate.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = database.connect()
    app.state.db = client[database.DATABASE_NAME]
    try:
        yield
    finally:
        client.close()
        logger.info("MongoDB client closed")


app = FastAPI(title="StudyMate API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_log_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    started = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = req_id
    logger.info(
        "%s %s -> %s (%.2f ms) request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000.0,
        req_id,
    )
    return response


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Database error"})


# Utilities

def _now():
    return datetime.now(timezone.utc)


# Routes
@app.get("/", response_class=PlainTextResponse)
def root():
    return "StudyMate Server Side is running successfully!"


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") or os.getenv("DB_USER") else "❌ Not Set",
        "database_name": db.name,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        collections = db.list_collection_names()
        response["collections"] = collections[:10]
        response["connection_status"] = "Connected"
        response["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    return response


# Partners

@app.get("/partners")
def list_partners(db: Database = Depends(get_db)):
    return serialize_docs(db[PARTNERS].find())


@app.get("/partners/{partner_id}")
def get_partner(partner_id: str, db: Database = Depends(get_db)):
    oid = parse_object_id(partner_id, "partner")
    return serialize_doc(db[PARTNERS].find_one({"_id": oid}))


@app.post("/partners")
def create_partner(partner: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    doc = {**partner, "createdAt": _now()}
    return insert_ack(db[PARTNERS].insert_one(doc))


@app.put("/partners/{partner_id}")
def update_partner(partner_id: str, updated: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    oid = parse_object_id(partner_id, "partner")
    result = db[PARTNERS].update_one({"_id": oid}, {"$set": {**updated, "updatedAt": _now()}})
    return update_ack(result)


@app.delete("/partners/{partner_id}")
def delete_partner(partner_id: str, db: Database = Depends(get_db)):
    oid = parse_object_id(partner_id, "partner")
    return delete_ack(db[PARTNERS].delete_one({"_id": oid}))


@app.get("/latest-partners")
def latest_partners(db: Database = Depends(get_db)):
    return serialize_docs(db[PARTNERS].find().sort("createdAt", -1).limit(6))


@app.get("/top-partners")
def top_partners(db: Database = Depends(get_db)):
    return serialize_docs(db[PARTNERS].find().sort("rating", -1).limit(3))


@app.get("/my-partners")
def my_partners(email: str, db: Database = Depends(get_db)):
    return serialize_docs(db[PARTNERS].find({"email": email}))


@app.get("/search-partners")
def search_partners(q: str, db: Database = Depends(get_db)):
    pattern = {"$regex": re.escape(q), "$options": "i"}
    query = {"$or": [{"name": pattern}, {"subject": pattern}, {"location": pattern}]}
    return serialize_docs(db[PARTNERS].find(query))


# Requests

@app.post("/requests")
def create_request(payload: StudyRequestCreate, db: Database = Depends(get_db)):
    oid = parse_object_id(payload.partnerId, "partner")
    partner = db[PARTNERS].find_one({"_id": oid})
    if not partner:
        logger.info("Request for unknown partner %s", payload.partnerId)
        raise HTTPException(status_code=404, detail="Partner not found")

    # Best effort: no rollback if the insert below fails
    db[PARTNERS].update_one({"_id": oid}, {"$inc": {"partnerCount": 1}})

    new_request = StudyRequest(
        partnerId=payload.partnerId,
        requesterEmail=payload.requesterEmail,
        partnerSnapshot=PartnerSnapshot.from_partner(partner),
    ).model_dump()
    new_request["createdAt"] = _now()
    return insert_ack(db[REQUESTS].insert_one(new_request))


@app.get("/my-requests")
def my_requests(email: str, db: Database = Depends(get_db)):
    return serialize_docs(db[REQUESTS].find({"requesterEmail": email}))


@app.put("/requests/{request_id}")
def update_request(request_id: str, updated: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    oid = parse_object_id(request_id, "request")
    result = db[REQUESTS].update_one({"_id": oid}, {"$set": {**updated, "updatedAt": _now()}})
    return update_ack(result)


@app.delete("/requests/{request_id}")
def delete_request(request_id: str, db: Database = Depends(get_db)):
    oid = parse_object_id(request_id, "request")
    return delete_ack(db[REQUESTS].delete_one({"_id": oid}))


if __name__ == "__main__":
    import uvicorn
    logger.info("StudyMate server is running on port: %s", PORT)
    uvicorn.run(app, host="0.0.0.0", port=PORT)
