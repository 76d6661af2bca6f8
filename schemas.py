"""
Database Schemas for PlantNet

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase of the class name:
- User -> "user"
- Plant -> "plant"
- Order -> "order"
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Role = Literal["Customer", "Seller", "Admin"]
OrderStatus = Literal["Pending", "Processing", "Shipped", "Delivered"]

# lifecycle order; an order only ever moves to the right
ORDER_FLOW = ("Pending", "Processing", "Shipped", "Delivered")
TERMINAL_STATUS = "Delivered"


class User(BaseModel):
    email: EmailStr = Field(..., description="Unique sign-in email")
    name: Optional[str] = Field(None, description="Display name")
    image: Optional[str] = Field(None, description="Avatar URL")
    role: Role = Field("Customer", description="Customer | Seller | Admin")
    status: Optional[Literal["Requested", "verified"]] = Field(None, description="Seller request state")


class SellerInfo(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None


class Plant(BaseModel):
    name: str = Field(..., description="Plant name")
    category: str = Field(..., description="Category, e.g. Indoor")
    description: Optional[str] = Field(None, description="Short description")
    price: float = Field(..., gt=0, description="Unit price")
    quantity: int = Field(0, ge=0, description="Units in stock")
    image: Optional[str] = Field(None, description="Image URL")
    seller: Optional[SellerInfo] = Field(None, description="Owning seller")


class Customer(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None


class Order(BaseModel):
    plant_id: str = Field(..., description="Ordered plant id")
    customer: Customer
    seller_email: EmailStr = Field(..., description="Seller to fulfil the order")
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Server computed total, quantity x unit price")
    status: OrderStatus = "Pending"
    address: Optional[str] = None
    created_at: Optional[datetime] = None
