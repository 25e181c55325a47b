# carts/domain/schemas.py
from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CreateCartIn(BaseModel):
    """Request body for get-or-create."""

    user_id: UUID


class ItemIn(BaseModel):
    """Request body for adding a product to a cart."""

    product_id: UUID
    quantity: int = Field(..., gt=0, description="Quantity to add (must be > 0)")
    version: int | None = Field(None, ge=1, description="Optional expected cart version")


class ItemUpdateIn(BaseModel):
    quantity: int = Field(..., gt=0, description="New quantity (must be > 0)")
    version: int = Field(..., ge=1, description="Cart version observed by the caller")


class VersionIn(BaseModel):
    version: int = Field(..., ge=1, description="Cart version observed by the caller")


class CartItemOut(BaseModel):
    id: UUID
    cart_id: UUID
    product_id: UUID
    quantity: int
    created_at: datetime
    updated_at: datetime


class CartOut(BaseModel):
    id: UUID
    user_id: UUID
    items: List[CartItemOut]
    expires_at: datetime
    last_activity_at: datetime
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
    version: int

    model_config = ConfigDict(from_attributes=True)


class CartListOut(BaseModel):
    carts: List[CartOut]
    total: int


class DeleteOut(BaseModel):
    id: UUID
    success: bool
