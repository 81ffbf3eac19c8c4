"""Lendable item catalogue.

Provides functionality for:
- Registering school assets and their stock counts
- Listing and updating items
- Conditional stock mutations used by the loan lifecycle
"""

from .manager import ItemManager
from .models import Item
from .schemas import ItemCreate, ItemUpdate, ItemResponse

__all__ = [
    "ItemManager",
    "Item",
    "ItemCreate",
    "ItemUpdate",
    "ItemResponse",
]
