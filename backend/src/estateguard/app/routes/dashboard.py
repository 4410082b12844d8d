"""Dashboard summary route."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.app.context import AppContext, get_app_context
from estateguard.app.errors import store_http_error
from estateguard.domain.schemas import DashboardStats
from estateguard.infra.database import get_db
from estateguard.services.property_service import dashboard_stats
from estateguard.services.store_errors import StoreWriteError

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
async def get_stats(
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await dashboard_stats(db, ctx.user_id, ctx.stages)
    except StoreWriteError as exc:
        raise store_http_error(exc)
