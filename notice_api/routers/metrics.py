from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from notice_api.cache import cache
from notice_api.database import get_db
from notice_api.schemas import MetricsResponse
from notice_api.services import notice_service

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])


@router.get("", response_model=MetricsResponse)
async def get_metrics(db: AsyncSession = Depends(get_db)):
    counts = await notice_service.get_board_stats(db)
    return MetricsResponse(**counts, cache_info=cache.stats)
