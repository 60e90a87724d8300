from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator


class InventoryAdjust(BaseModel):
    # Left untyped so the ledger engine, not request parsing, decides what is
    # a valid quantity and movement type
    quantity: Any = None
    movement_type: Any = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("reference_number", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class InventoryAdjustOut(BaseModel):
    message: str = "Inventory adjusted successfully"
    old_quantity: int
    new_quantity: int


class InventoryRowOut(BaseModel):
    id: int
    product_id: int
    quantity: int
    min_stock_level: int
    max_stock_level: int
    location: Optional[str] = None
    updated_at: Optional[datetime] = None
    product_name: str
    sku: Optional[str] = None
    price: Optional[float] = None
    category_name: Optional[str] = None


class StockMovementOut(BaseModel):
    id: int
    product_id: int
    user_id: Optional[str] = None
    movement_type: str
    quantity: int
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    product_name: str
    sku: Optional[str] = None


class DashboardStatsOut(BaseModel):
    total_products: int
    total_categories: int
    low_stock_products: int
    total_inventory_value: float
