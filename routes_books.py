from fastapi import APIRouter, Depends, Request
from loguru import logger
from pymongo import ReturnDocument
from pymongo.database import Database

from config import Settings, get_settings
from errors import NotFoundError, ValidationError
from models_mongo import BOOKS, USERS, get_db, serialize, to_object_id, utcnow
from pipelines import find_one_with_relation, list_with_relation_filter
from schemas import BookCreate, BookUpdate, update_fields

router = APIRouter(prefix="/books", tags=["books"])


# ------------------------------------------------------------
# Pre-validation hook
# ------------------------------------------------------------

# refuses configured sentinel names before the book reaches the controller
async def reject_sentinel_names(request: Request, settings: Settings = Depends(get_settings)):
    try:
        body = await request.json()
    except ValueError:
        # empty, form encoded or otherwise not JSON
        raise ValidationError("Request body must be a JSON object")
    if isinstance(body, dict) and body.get("name") in settings.rejected_book_names:
        raise ValidationError("invalid request")


def resolve_user(db: Database, user_id: str):
    oid = to_object_id(user_id)
    if oid is None or db[USERS].find_one({"_id": oid}, {"_id": 1}) is None:
        raise ValidationError(f"createdBy: no user with id '{user_id}'")
    return oid


# ------------------------------------------------------------
# CRUD Operations for Books
# ------------------------------------------------------------

# create a book
@router.post("/add", dependencies=[Depends(reject_sentinel_names)])
def add_book(payload: BookCreate, db: Database = Depends(get_db)):
    now = utcnow()
    book = {
        "name": payload.name,
        "createdBy": resolve_user(db, payload.createdBy),
        "createdAt": now,
        "updatedAt": now,
    }
    db[BOOKS].insert_one(book)
    logger.info(f"Book {book['_id']} created")
    return serialize(book)

# gets all the books
@router.get("/")
def get_book_list(db: Database = Depends(get_db)):
    return serialize(list(db[BOOKS].find()))

# books with their creator inlined, filtered by the creator's name
@router.get("/list")
def list_books(name: str | None = None, db: Database = Depends(get_db)):
    pipeline = list_with_relation_filter(USERS, "createdBy", "name", name)
    return serialize(list(db[BOOKS].aggregate(pipeline)))

# first book with the given name, creator name populated and the book name left out
@router.get("/by-name/{name}")
def get_book_by_name(name: str, db: Database = Depends(get_db)):
    books = list(db[BOOKS].aggregate(find_one_with_relation(name, USERS, "createdBy", "name")))
    if not books:
        raise NotFoundError("Book")
    return serialize(books[0])

# gets a single book
@router.get("/{book_id}")
def get_book(book_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(book_id)
    book = db[BOOKS].find_one({"_id": oid}) if oid else None
    if not book:
        raise NotFoundError("Book")
    return serialize(book)

# update a book
@router.patch("/{book_id}")
def update_book(book_id: str, updates: BookUpdate, db: Database = Depends(get_db)):
    oid = to_object_id(book_id)
    if oid is None:
        raise NotFoundError("Book")

    update_data = update_fields(updates)
    if "createdBy" in update_data:
        update_data["createdBy"] = resolve_user(db, update_data["createdBy"])
    update_data["updatedAt"] = utcnow()

    book = db[BOOKS].find_one_and_update(
        {"_id": oid},
        {"$set": update_data},
        return_document=ReturnDocument.AFTER,
    )
    if not book:
        raise NotFoundError("Book")
    return serialize(book)

# delete a book, deleting a missing id is not an error
@router.delete("/{book_id}")
def delete_book(book_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(book_id)
    deleted = db[BOOKS].delete_one({"_id": oid}).deleted_count if oid else 0
    return {"acknowledged": True, "deletedCount": deleted}
