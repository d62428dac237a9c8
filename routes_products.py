import os
from uuid import uuid4

from fastapi import APIRouter, Depends, File, UploadFile
from loguru import logger
from pymongo import ReturnDocument
from pymongo.database import Database
from werkzeug.utils import secure_filename

from auth import get_current_user
from config import Settings, get_settings
from errors import NotFoundError, ServerError, ValidationError
from models_mongo import CATEGORIES, PRODUCTS, get_db, serialize, to_object_id, utcnow
from pipelines import group_totals, list_with_relation_filter
from schemas import ProductCreate, ProductUpdate, update_fields

router = APIRouter(prefix="/products", tags=["products"])

ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


def resolve_category(db: Database, category_id: str):
    oid = to_object_id(category_id)
    if oid is None or db[CATEGORIES].find_one({"_id": oid}, {"_id": 1}) is None:
        raise ValidationError(f"category: no category with id '{category_id}'")
    return oid


def save_image(image: UploadFile, static_dir: str) -> str:
    original_filename = secure_filename(image.filename or "")
    if not original_filename:
        raise ValidationError("Please choose a valid file name")

    extension = os.path.splitext(original_filename)[1].lower()
    if extension.lstrip(".") not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError("Unsupported image format. Upload PNG, JPG, JPEG, GIF, or WEBP files")

    # unique name so uploads never overwrite each other
    unique_filename = f"{uuid4().hex}{extension}"
    upload_dir = os.path.join(static_dir, "uploads")
    try:
        os.makedirs(upload_dir, exist_ok=True)
        with open(os.path.join(upload_dir, unique_filename), "wb") as destination:
            destination.write(image.file.read())
    except OSError as e:
        logger.error(f"Could not store upload {original_filename}: {e}")
        raise ServerError("Could not store the uploaded image")

    return f"/static/uploads/{unique_filename}"


# ------------------------------------------------------------
# CRUD Operations for Products
# ------------------------------------------------------------

# create a product
@router.post("/add")
def add_product(payload: ProductCreate, db: Database = Depends(get_db), user=Depends(get_current_user)):
    now = utcnow()
    product = payload.model_dump()
    product["category"] = resolve_category(db, payload.category)
    product["createdAt"] = now
    product["updatedAt"] = now
    db[PRODUCTS].insert_one(product)
    logger.info(f"Product {product['_id']} created by {user['username']}")
    return serialize(product)

# gets all the products
@router.get("/")
def get_product_list(db: Database = Depends(get_db)):
    return serialize(list(db[PRODUCTS].find()))

# products with their category inlined, filtered by category name
@router.get("/list")
def list_products(category: str | None = None, db: Database = Depends(get_db)):
    pipeline = list_with_relation_filter(CATEGORIES, "category", "name", category)
    return serialize(list(db[PRODUCTS].aggregate(pipeline)))

# quantity in stock per price point, largest totals first
@router.get("/stats")
def product_stats(limit: int | None = None, db: Database = Depends(get_db)):
    if limit is not None and limit < 1:
        raise ValidationError("limit must be a positive integer")
    return serialize(list(db[PRODUCTS].aggregate(group_totals("price", "quantity", limit=limit))))

# gets a single product
@router.get("/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(product_id)
    product = db[PRODUCTS].find_one({"_id": oid}) if oid else None
    if not product:
        raise NotFoundError("Product")
    return serialize(product)

# update a product
@router.patch("/{product_id}")
def update_product(product_id: str, updates: ProductUpdate, db: Database = Depends(get_db), user=Depends(get_current_user)):
    oid = to_object_id(product_id)
    if oid is None:
        raise NotFoundError("Product")

    update_data = update_fields(updates)
    if "category" in update_data:
        update_data["category"] = resolve_category(db, update_data["category"])
    update_data["updatedAt"] = utcnow()

    product = db[PRODUCTS].find_one_and_update(
        {"_id": oid},
        {"$set": update_data},
        return_document=ReturnDocument.AFTER,
    )
    if not product:
        raise NotFoundError("Product")
    return serialize(product)

# upload the product image and store its public path
@router.post("/{product_id}/image")
def upload_product_image(
    product_id: str,
    image: UploadFile = File(...),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user=Depends(get_current_user),
):
    oid = to_object_id(product_id)
    if oid is None or db[PRODUCTS].find_one({"_id": oid}, {"_id": 1}) is None:
        raise NotFoundError("Product")

    path = save_image(image, settings.static_dir)
    product = db[PRODUCTS].find_one_and_update(
        {"_id": oid},
        {"$set": {"image": path, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not product:
        raise NotFoundError("Product")
    return serialize(product)

# delete a product
@router.delete("/{product_id}")
def delete_product(product_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    oid = to_object_id(product_id)
    deleted = db[PRODUCTS].delete_one({"_id": oid}).deleted_count if oid else 0
    return {"acknowledged": True, "deletedCount": deleted}
