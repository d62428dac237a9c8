# ----------------------------
# MongoDB Setup
# ----------------------------

import datetime

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pymongo import MongoClient
from pymongo.database import Database

from config import Settings

# collection names, shared with the aggregation lookups
USERS = "users"
BOOKS = "books"
PRODUCTS = "products"
CATEGORIES = "categories"


def get_mongo_client(settings: Settings) -> MongoClient:
    # one client per process, pymongo pools connections internally
    return MongoClient(settings.mongo_url)


def init_collections(db: Database) -> None:
    # create indexes (only runs once, MongoDB skips if index already exists)
    db[USERS].create_index("username", unique=True)
    db[USERS].create_index("email", unique=True)
    db[CATEGORIES].create_index("name", unique=True)
    db[BOOKS].create_index("createdBy")
    db[PRODUCTS].create_index("category")


def get_db(request: Request) -> Database:
    # the database handle is opened once in the app lifespan
    return request.app.state.db


def to_object_id(value) -> ObjectId | None:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def utcnow() -> datetime.datetime:
    # MongoDB stores milliseconds, truncate so stored and returned values agree
    now = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def serialize(document):
    """Convert ObjectId values (at any depth) to strings so documents are JSON friendly."""
    if isinstance(document, ObjectId):
        return str(document)
    if isinstance(document, dict):
        return {key: serialize(value) for key, value in document.items()}
    if isinstance(document, list):
        return [serialize(value) for value in document]
    return document


"""

Terminal code MongoDB:
mongosh
    use storefront
    show collections
    db.books.find()
    db.users.getIndexes()
    db.categories.getIndexes()
exit

"""
