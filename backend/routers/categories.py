from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import LedgerError
from db.database import get_async_session
from routers.errors import to_http_exception
from schemas.categories import CategoryCreate, CategoryRead
from services.catalog import register_category

router = APIRouter()


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
):
    try:
        category = await register_category(db, name=payload.name, description=payload.description)
    except LedgerError as e:
        raise to_http_exception(e)
    return CategoryRead(**category.to_schema)
