from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from db.database import get_read_session
from schemas.inventory import StockMovementOut
from services import queries

router = APIRouter()


@router.get("", response_model=List[StockMovementOut])
async def list_stock_movements(
    product_id: Optional[int] = None,
    limit: int = Query(settings.movements_default_limit, ge=1, le=settings.movements_max_limit),
    db: AsyncSession = Depends(get_read_session),
):
    return await queries.list_movements(db, product_id=product_id, limit=limit)
