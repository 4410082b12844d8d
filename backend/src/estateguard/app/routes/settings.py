"""Agency settings routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.app.context import AppContext, get_app_context
from estateguard.app.errors import store_http_error
from estateguard.domain.schemas import AgentSettings
from estateguard.infra.database import get_db
from estateguard.services.settings_service import save_agent_settings
from estateguard.services.store_errors import StoreWriteError

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=AgentSettings)
async def get_settings_view(ctx: AppContext = Depends(get_app_context)):
    return ctx.settings


@router.put("", response_model=AgentSettings)
async def save_settings(
    data: AgentSettings,
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await save_agent_settings(db, ctx.user_id, data)
    except StoreWriteError as exc:
        raise store_http_error(exc)
