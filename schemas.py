"""
Database Schemas for the Kazakh Menu API

Each document model below corresponds to a MongoDB collection.
The collection name is the lowercase class name (e.g., MenuItem -> "menuitem").
Request bodies live next to the documents they produce.
"""
import math
from typing import List, Optional, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from config import settings

Role = Literal["user", "admin"]
ORDER_STATUSES = ("pending", "confirmed", "completed", "cancelled")
MENU_CATEGORIES = ("Appetizers", "Main Courses", "Dessert", "Drinks")


# ===================== Documents =====================

class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Unique email address")
    password_hash: str = Field(..., description="BCrypt password hash")
    role: Role = Field("user", description="Access role")


class MenuItem(BaseModel):
    name: str
    description: str
    price: float = Field(..., ge=0)
    category: str
    image_url: str = settings.default_image_url


class OrderItem(BaseModel):
    menu_item: str = Field(..., description="Reference to menuitem _id")
    name: str = Field(..., description="Dish name at order time")
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price at order time")


class Order(BaseModel):
    user_id: str = Field(..., description="User placing the order")
    items: List[OrderItem]
    total: float = 0.0
    status: Literal["pending", "confirmed", "completed", "cancelled"] = "pending"


class Review(BaseModel):
    user_id: str = Field(..., description="Author, reference to user _id")
    menu_item: str = Field(..., description="Reviewed dish, reference to menuitem _id")
    rating: int
    comment: str


# ===================== Validators =====================

def _check_rating(value: Optional[int]) -> Optional[int]:
    if value is None:
        return value
    if value < 1:
        raise ValueError("Rating must be at least 1")
    if value > 5:
        raise ValueError("Rating cannot exceed 5")
    return value


def _check_comment(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if len(value) < 5:
        raise ValueError("Comment must be at least 5 characters")
    if len(value) > 500:
        raise ValueError("Comment cannot exceed 500 characters")
    return value


# ===================== Auth requests =====================

class RegisterRequest(BaseModel):
    # any extra "role" key is dropped: self-registration always creates a "user"
    name: str
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("password")
    @classmethod
    def password_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RoleChangeRequest(BaseModel):
    email: EmailStr


# ===================== Menu item requests =====================

class MenuItemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    price: float
    category: str
    image_url: Optional[str] = Field(None, alias="imageUrl")

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v

    @field_validator("description")
    @classmethod
    def description_length(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Description must be at least 10 characters")
        return v

    @field_validator("price")
    @classmethod
    def price_not_negative(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("Price must be a number")
        if v < 0:
            raise ValueError("Price cannot be negative")
        return v

    @field_validator("category")
    @classmethod
    def category_known(cls, v: str) -> str:
        if v not in MENU_CATEGORIES:
            raise ValueError(f"{v} is not a valid category")
        return v

    def to_document(self) -> MenuItem:
        return MenuItem(
            name=self.name,
            description=self.description,
            price=self.price,
            category=self.category,
            image_url=self.image_url or settings.default_image_url,
        )


# ===================== Order requests =====================

class OrderLineIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    menu_item: str = Field(..., alias="menuItem")
    quantity: int


class CreateOrderRequest(BaseModel):
    items: List[OrderLineIn] = []


class UpdateOrderStatusRequest(BaseModel):
    status: Optional[str] = None


# ===================== Review requests =====================

class ReviewIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    menu_item: str = Field(..., alias="menuItem")
    rating: int
    comment: str

    @field_validator("rating")
    @classmethod
    def rating_range(cls, v):
        return _check_rating(v)

    @field_validator("comment")
    @classmethod
    def comment_length(cls, v):
        return _check_comment(v)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = None

    @field_validator("rating")
    @classmethod
    def rating_range(cls, v):
        return _check_rating(v)

    @field_validator("comment")
    @classmethod
    def comment_length(cls, v):
        return _check_comment(v)
