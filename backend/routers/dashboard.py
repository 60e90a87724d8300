from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_read_session
from schemas.inventory import DashboardStatsOut
from services import queries

router = APIRouter()


@router.get("/stats", response_model=DashboardStatsOut)
async def get_dashboard_stats(db: AsyncSession = Depends(get_read_session)):
    return await queries.dashboard_stats(db)
