"""Pydantic schemas for lendable items."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ItemBase(BaseModel):
    """Base item fields."""

    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    item_condition: str = Field("GOOD", max_length=50)
    category: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None


class ItemCreate(ItemBase):
    """Schema for creating an item."""

    stock: int = Field(0, ge=0)


class ItemUpdate(BaseModel):
    """Schema for updating an item.

    Stock is only moved by loan approval and return; a stock correction
    after a stocktake goes through ``ItemManager.set_stock``.
    """

    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    item_condition: Optional[str] = Field(None, max_length=50)
    category: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None


class ItemResponse(ItemBase):
    """Schema for item responses."""

    id: str
    stock: int
    is_available: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
