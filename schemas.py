from pydantic import BaseModel, EmailStr, Field


# ----------------------------
# Pydantic Models
# ----------------------------

# Users
class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    username: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    username: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=1)


# Books
class BookCreate(BaseModel):
    name: str = Field(min_length=1)
    createdBy: str  # id of an existing user

class BookUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    createdBy: str | None = None


# Products
class ProductCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    price: float = Field(ge=0)
    quantity: int = Field(ge=0)
    image: str | None = None
    category: str  # id of an existing category

class ProductUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    quantity: int | None = Field(default=None, ge=0)
    image: str | None = None
    category: str | None = None


# Categories
class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None

class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None


def update_fields(payload: BaseModel) -> dict:
    # only the fields the caller actually sent
    return {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
