"""Per-request application context.

Replaces the dashboard's global UI state: every authenticated route gets
the signed-in account and that account's agency settings.
"""

from dataclasses import dataclass

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.app.errors import store_http_error
from estateguard.app.routes.auth import get_current_user_dep
from estateguard.domain.models import User
from estateguard.domain.schemas import AgentSettings
from estateguard.infra.database import get_db
from estateguard.services.pipeline_board import DEFAULT_STAGES
from estateguard.services.settings_service import get_agent_settings
from estateguard.services.store_errors import StoreWriteError


@dataclass
class AppContext:
    user: User
    settings: AgentSettings

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def gemini_api_key(self) -> str | None:
        return self.settings.api_key or None

    @property
    def stages(self) -> list[str]:
        return list(self.settings.pipeline_stages or DEFAULT_STAGES)


async def get_app_context(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
) -> AppContext:
    try:
        settings = await get_agent_settings(db, user.id)
    except StoreWriteError as exc:
        raise store_http_error(exc)
    return AppContext(user=user, settings=settings)
