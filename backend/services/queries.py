"""Read-only projections over the inventory and stock movement tables.

None of these take locks or participate in ledger transactions. Each call
reads current storage state; nothing is cached between requests.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import InvalidRequest
from db.category import Category
from db.inventory.movement import StockMovement
from db.inventory.stock import InventoryState
from db.product import Product


def _price(value) -> Optional[float]:
    return float(value) if value is not None else None


def _inventory_stmt():
    return (
        select(
            InventoryState,
            Product.name.label("product_name"),
            Product.sku.label("sku"),
            Product.price.label("price"),
            Category.name.label("category_name"),
        )
        .join(Product, InventoryState.product_id == Product.id)
        .outerjoin(Category, Product.category_id == Category.id)
    )


def _inventory_row(inv: InventoryState, product_name, sku, price, category_name) -> dict:
    return {
        "id": inv.id,
        "product_id": inv.product_id,
        "quantity": int(inv.quantity),
        "min_stock_level": int(inv.min_stock_level),
        "max_stock_level": int(inv.max_stock_level),
        "location": inv.location,
        "updated_at": inv.updated_at,
        "product_name": product_name,
        "sku": sku,
        "price": _price(price),
        "category_name": category_name,
    }


async def list_inventory(db: AsyncSession) -> list[dict]:
    res = await db.execute(_inventory_stmt().order_by(Product.name.asc(), Product.id.asc()))
    return [_inventory_row(*row) for row in res.all()]


async def list_low_stock(db: AsyncSession) -> list[dict]:
    """Rows at or below their minimum level, most depleted first."""
    stmt = (
        _inventory_stmt()
        .where(InventoryState.quantity <= InventoryState.min_stock_level)
        .order_by(InventoryState.quantity.asc(), Product.name.asc())
    )
    res = await db.execute(stmt)
    return [_inventory_row(*row) for row in res.all()]


async def list_movements(
    db: AsyncSession,
    product_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[dict]:
    """Movement history, newest first, optionally for a single product."""
    if limit is None:
        limit = settings.movements_default_limit
    if limit < 1:
        raise InvalidRequest("limit must be >= 1")

    stmt = (
        select(StockMovement, Product.name.label("product_name"), Product.sku.label("sku"))
        .join(Product, StockMovement.product_id == Product.id)
    )
    if product_id is not None:
        stmt = stmt.where(StockMovement.product_id == product_id)
    # id breaks ties between movements committed within the same clock tick
    stmt = stmt.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit)

    res = await db.execute(stmt)
    return [
        {
            "id": m.id,
            "product_id": m.product_id,
            "user_id": m.user_id,
            "movement_type": m.movement_type,
            "quantity": int(m.quantity),
            "reference_number": m.reference_number,
            "notes": m.notes,
            "created_at": m.created_at,
            "product_name": product_name,
            "sku": sku,
        }
        for (m, product_name, sku) in res.all()
    ]


async def dashboard_stats(db: AsyncSession) -> dict:
    # Independent reads; the counts are for display and need no shared snapshot
    total_products = await db.scalar(select(func.count()).select_from(Product))
    total_categories = await db.scalar(select(func.count()).select_from(Category))
    low_stock_products = await db.scalar(
        select(func.count())
        .select_from(InventoryState)
        .where(InventoryState.quantity <= InventoryState.min_stock_level)
    )
    total_value = await db.scalar(
        select(func.sum(Product.price * InventoryState.quantity))
        .select_from(Product)
        .join(InventoryState, InventoryState.product_id == Product.id)
    )
    return {
        "total_products": int(total_products or 0),
        "total_categories": int(total_categories or 0),
        "low_stock_products": int(low_stock_products or 0),
        "total_inventory_value": float(total_value or 0),
    }
