from typing import List, Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import LedgerError
from db.database import async_session_maker, get_read_session
from routers.errors import to_http_exception
from schemas.inventory import InventoryAdjust, InventoryAdjustOut, InventoryRowOut
from services import queries
from services.ledger import LedgerEngine

router = APIRouter()


def get_ledger() -> LedgerEngine:
    return LedgerEngine(async_session_maker)


@router.get("", response_model=List[InventoryRowOut])
async def list_inventory(db: AsyncSession = Depends(get_read_session)):
    return await queries.list_inventory(db)


@router.get("/low-stock", response_model=List[InventoryRowOut])
async def list_low_stock(db: AsyncSession = Depends(get_read_session)):
    """Products at or below their minimum stock level, most depleted first."""
    return await queries.list_low_stock(db)


@router.put("/{product_id}/adjust", response_model=InventoryAdjustOut)
async def adjust_inventory(
    product_id: int,
    payload: InventoryAdjust,
    x_actor_id: Optional[str] = Header(default=None),
    ledger: LedgerEngine = Depends(get_ledger),
):
    """
    Apply one stock movement to a product.

    - IN adds `quantity`, OUT subtracts it (rejected with 409 if stock would go negative),
      ADJUSTMENT sets the quantity to `quantity`.
    - The optional X-Actor-Id header is recorded on the movement.
    """
    try:
        result = await ledger.adjust(
            product_id,
            payload.movement_type,
            payload.quantity,
            reference_number=payload.reference_number,
            notes=payload.notes,
            actor_id=x_actor_id,
        )
    except LedgerError as e:
        raise to_http_exception(e)

    return InventoryAdjustOut(old_quantity=result.old_quantity, new_quantity=result.new_quantity)
