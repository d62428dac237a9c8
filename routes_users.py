from fastapi import APIRouter, Depends
from loguru import logger
from pymongo import ReturnDocument
from pymongo.database import Database

from auth import create_access_token, get_current_user, hash_password, verify_password
from config import Settings, get_settings
from errors import NotFoundError, ValidationError
from mailer import send_welcome_email
from models_mongo import USERS, get_db, serialize, to_object_id, utcnow
from schemas import LoginRequest, RegisterRequest, UserUpdate, update_fields

router = APIRouter(prefix="/user", tags=["users"])

# the password hash never leaves the database
PUBLIC_FIELDS = {"password": 0}


# ------------------------------------------------------------
# Registration and login
# ------------------------------------------------------------

@router.post("/add")
@router.post("/register")
def register_user(payload: RegisterRequest, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    data = payload.model_dump()

    # Check if user/email already exists, the unique indexes catch any race
    if db[USERS].find_one({"$or": [{"username": data["username"]}, {"email": data["email"]}]}):
        raise ValidationError("Username or Email already registered")

    now = utcnow()
    user_doc = {
        "name": data["name"],
        "username": data["username"],
        "email": data["email"],
        "password": hash_password(data["password"]),
        "createdAt": now,
        "updatedAt": now,
    }
    db[USERS].insert_one(user_doc)
    logger.info(f"User {user_doc['username']} registered")

    # no rollback if the email fails, the account stays created
    send_welcome_email(settings, user_doc)

    user_doc.pop("password")
    return serialize(user_doc)

@router.post("/login")
def login_user(payload: LoginRequest, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = db[USERS].find_one({"email": payload.email})

    # check if password is correct
    if not user or not verify_password(user["password"], payload.password):
        raise ValidationError("Invalid email or password")

    token = create_access_token(user, settings)
    return {"message": "Login successful", "token": token, "user_id": str(user["_id"])}

# the decoded claims of the caller
@router.get("/me")
def current_user(user=Depends(get_current_user)):
    return user


# ------------------------------------------------------------
# Read and update
# ------------------------------------------------------------

@router.get("/")
def get_all_users(db: Database = Depends(get_db)):
    return serialize(list(db[USERS].find({}, PUBLIC_FIELDS)))

@router.get("/{user_id}")
def get_user(user_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(user_id)
    user = db[USERS].find_one({"_id": oid}, PUBLIC_FIELDS) if oid else None
    if not user:
        raise NotFoundError("User")
    return serialize(user)

@router.patch("/{user_id}")
def update_user(user_id: str, updates: UserUpdate, db: Database = Depends(get_db), caller=Depends(get_current_user)):
    oid = to_object_id(user_id)
    if oid is None:
        raise NotFoundError("User")

    update_data = update_fields(updates)
    # rehash only when a new password is supplied
    if "password" in update_data:
        update_data["password"] = hash_password(update_data["password"])
    update_data["updatedAt"] = utcnow()

    user = db[USERS].find_one_and_update(
        {"_id": oid},
        {"$set": update_data},
        projection=PUBLIC_FIELDS,
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        raise NotFoundError("User")
    return serialize(user)
