"""
Reset the catalog and seed a small demo stock ledger.

This script:
- Deletes ALL products and categories (inventory rows and stock movements go with them via ON DELETE CASCADE).
- Registers a few categories and products, each with an initial quantity.
- Runs a handful of ledger adjustments so the movement history and low-stock view have content.

Run from the backend directory:
  PYTHONPATH=. python scripts/seed_demo_stock.py

Optional env vars:
- DEMO_INITIAL_QTY (default: 40)
"""

from __future__ import annotations

import asyncio
import os

from sqlalchemy import delete

from core.errors import InsufficientStock
from core.logging import configure_logging
from db.category import Category
from db.database import async_session_maker, create_db_and_tables
from db.product import Product
from services.catalog import register_category, register_product
from services.ledger import LedgerEngine

DEMO_CATALOG = {
    "Hardware": [
        # name, sku, price, min_stock_level
        ("Hex Bolt M8", "HW-BOLT-M8", 0.35, 100),
        ("Wood Screw 4x40", "HW-SCR-440", 0.08, 50),
    ],
    "Tools": [
        ("Claw Hammer", "TL-HAM-16", 18.90, 5),
        ("Tape Measure 5m", "TL-TAPE-5", 9.50, 10),
    ],
}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)).strip())
    except ValueError:
        return default


async def main() -> None:
    configure_logging()
    await create_db_and_tables()
    initial_qty = _env_int("DEMO_INITIAL_QTY", 40)

    async with async_session_maker() as db:
        await db.execute(delete(Product))
        await db.execute(delete(Category))
        await db.commit()

        product_ids: dict[str, int] = {}
        for category_name, products in DEMO_CATALOG.items():
            category = await register_category(db, name=category_name)
            for name, sku, price, min_level in products:
                product = await register_product(
                    db,
                    name=name,
                    sku=sku,
                    price=price,
                    category_id=category.id,
                    initial_quantity=initial_qty,
                    min_stock_level=min_level,
                    location="Aisle 1",
                )
                product_ids[sku] = product.id

    ledger = LedgerEngine(async_session_maker)
    await ledger.adjust(product_ids["HW-BOLT-M8"], "IN", 200, reference_number="PO-1001")
    await ledger.adjust(product_ids["TL-HAM-16"], "OUT", 37, reference_number="SO-2001")
    await ledger.adjust(product_ids["TL-TAPE-5"], "ADJUSTMENT", 8, notes="Cycle count")
    try:
        await ledger.adjust(product_ids["HW-SCR-440"], "OUT", initial_qty + 1, reference_number="SO-2002")
    except InsufficientStock as e:
        print(f"Rejected as expected: {e.message} (available={e.available}, requested={e.requested})")

    print(f"Demo stock seeded. Products: {len(product_ids)}. Initial quantity: {initial_qty}.")


if __name__ == "__main__":
    asyncio.run(main())
