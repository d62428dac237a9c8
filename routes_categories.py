from fastapi import APIRouter, Depends
from pymongo import ReturnDocument
from pymongo.database import Database

from auth import get_current_user
from errors import NotFoundError, ValidationError
from models_mongo import CATEGORIES, get_db, serialize, to_object_id, utcnow
from schemas import CategoryCreate, CategoryUpdate, update_fields

router = APIRouter(prefix="/category", tags=["categories"])


def ensure_unique_name(db: Database, name: str, exclude=None):
    query = {"name": name}
    if exclude is not None:
        query["_id"] = {"$ne": exclude}
    if db[CATEGORIES].find_one(query, {"_id": 1}):
        raise ValidationError(f"Category name '{name}' already exists")


# ------------------------------------------------------------
# CRUD Operations for Categories
# ------------------------------------------------------------

# create a category, names are unique (pre-checked, enforced by the unique index)
@router.post("/add")
def add_category(payload: CategoryCreate, db: Database = Depends(get_db), user=Depends(get_current_user)):
    ensure_unique_name(db, payload.name)
    now = utcnow()
    category = {**payload.model_dump(), "createdAt": now, "updatedAt": now}
    db[CATEGORIES].insert_one(category)
    return serialize(category)

@router.get("/")
def get_category_list(db: Database = Depends(get_db)):
    return serialize(list(db[CATEGORIES].find()))

@router.get("/{category_id}")
def get_category(category_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(category_id)
    category = db[CATEGORIES].find_one({"_id": oid}) if oid else None
    if not category:
        raise NotFoundError("Category")
    return serialize(category)

@router.patch("/{category_id}")
def update_category(category_id: str, updates: CategoryUpdate, db: Database = Depends(get_db), user=Depends(get_current_user)):
    oid = to_object_id(category_id)
    if oid is None:
        raise NotFoundError("Category")

    update_data = update_fields(updates)
    if "name" in update_data:
        ensure_unique_name(db, update_data["name"], exclude=oid)
    update_data["updatedAt"] = utcnow()
    category = db[CATEGORIES].find_one_and_update(
        {"_id": oid},
        {"$set": update_data},
        return_document=ReturnDocument.AFTER,
    )
    if not category:
        raise NotFoundError("Category")
    return serialize(category)

# products keep their reference, nothing cascades
@router.delete("/{category_id}")
def delete_category(category_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    oid = to_object_id(category_id)
    deleted = db[CATEGORIES].delete_one({"_id": oid}).deleted_count if oid else 0
    return {"acknowledged": True, "deletedCount": deleted}
