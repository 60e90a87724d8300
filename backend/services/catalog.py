"""Catalog collaborator: registers categories and products.

Product registration is the only place an InventoryState row is created. The
product, its inventory row and the initial IN movement are committed together.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Conflict, InvalidRequest, NotFound, StorageError
from db.category import Category
from db.inventory.movement import MovementType, StockMovement
from db.inventory.stock import MAX_QUANTITY, InventoryState
from db.product import Product

logger = structlog.get_logger(__name__)

INITIAL_STOCK_NOTE = "Initial stock"

# Numeric(10, 2)
MAX_MONEY = Decimal("99999999.99")


def _strip(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


def _money(value: Any, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidRequest(f"{field} must be a number")
    if not amount.is_finite() or amount < 0:
        raise InvalidRequest(f"{field} must be >= 0")
    if amount > MAX_MONEY:
        raise InvalidRequest(f"{field} must be <= {MAX_MONEY}")
    return amount


def _non_negative_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRequest(f"{field} must be an integer")
    if value < 0:
        raise InvalidRequest(f"{field} must be >= 0")
    if value > MAX_QUANTITY:
        raise InvalidRequest(f"{field} must be <= {MAX_QUANTITY}")
    return value


async def register_category(db: AsyncSession, *, name: Optional[str], description: Optional[str] = None) -> Category:
    name = _strip(name)
    if not name:
        raise InvalidRequest("Category name is required")

    model = Category(name=name, description=description)
    db.add(model)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("register_category_failed", name=name)
        raise StorageError(cause=e) from e
    await db.refresh(model)
    logger.info("category_registered", category_id=model.id, name=name)
    return model


async def register_product(
    db: AsyncSession,
    *,
    name: Optional[str],
    price: Any,
    description: Optional[str] = None,
    category_id: Optional[int] = None,
    cost_price: Any = None,
    sku: Optional[str] = None,
    barcode: Optional[str] = None,
    initial_quantity: int = 0,
    min_stock_level: int = 0,
    max_stock_level: int = 1000,
    location: Optional[str] = None,
) -> Product:
    name = _strip(name)
    if not name or price is None:
        raise InvalidRequest("Product name and price are required")

    price_amount = _money(price, "price")
    if price_amount == 0:
        raise InvalidRequest("Product name and price are required")
    cost_amount = _money(cost_price, "cost_price")
    initial_quantity = _non_negative_int(initial_quantity, "initial_quantity")
    min_stock_level = _non_negative_int(min_stock_level, "min_stock_level")
    max_stock_level = _non_negative_int(max_stock_level, "max_stock_level")
    sku = _strip(sku)

    try:
        if category_id is not None:
            res = await db.execute(select(Category.id).where(Category.id == category_id))
            if res.scalar_one_or_none() is None:
                raise NotFound("Category not found")

        if sku:
            existing = await db.execute(select(Product.id).where(Product.sku == sku))
            if existing.scalar_one_or_none() is not None:
                raise Conflict("Product with this SKU already exists")

        product = Product(
            name=name,
            description=description,
            category_id=category_id,
            price=price_amount,
            cost_price=cost_amount,
            sku=sku,
            barcode=_strip(barcode),
        )
        db.add(product)
        await db.flush()

        db.add(
            InventoryState(
                product_id=product.id,
                quantity=initial_quantity,
                min_stock_level=min_stock_level,
                max_stock_level=max_stock_level,
                location=_strip(location),
            )
        )
        if initial_quantity > 0:
            db.add(
                StockMovement(
                    product_id=product.id,
                    movement_type=MovementType.IN.value,
                    quantity=initial_quantity,
                    notes=INITIAL_STOCK_NOTE,
                )
            )

        await db.commit()
    except (NotFound, Conflict):
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        raise Conflict("Product violates a uniqueness constraint") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("register_product_failed", name=name)
        raise StorageError(cause=e) from e

    await db.refresh(product)
    logger.info("product_registered", product_id=product.id, name=name, initial_quantity=initial_quantity)
    return product
