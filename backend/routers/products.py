from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import LedgerError
from db.database import get_async_session
from routers.errors import to_http_exception
from schemas.products import ProductCreate, ProductRead
from services.catalog import register_product

router = APIRouter()


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Register a product and its inventory record.

    A positive `initial_quantity` is recorded as an IN movement ("Initial stock").
    """
    try:
        product = await register_product(db, **payload.model_dump())
    except LedgerError as e:
        raise to_http_exception(e)
    return ProductRead(**product.to_schema)
