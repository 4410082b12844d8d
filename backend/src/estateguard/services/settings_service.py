"""Per-account agency settings stored in ``app_config``."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.domain.models import AppConfig
from estateguard.domain.schemas import AgentSettings
from estateguard.services.pipeline_board import DEFAULT_STAGES
from estateguard.services.store_errors import classify_store_error, commit_or_raise

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = tuple(AgentSettings.model_fields)


def config_to_settings(config: AppConfig) -> AgentSettings:
    """Map a config row onto the schema, letting schema defaults fill NULLs."""
    values = {}
    for field in SETTINGS_FIELDS:
        value = getattr(config, field, None)
        if value is not None:
            values[field] = value
    return AgentSettings(**values)


async def get_config(db: AsyncSession, user_id: str) -> AppConfig | None:
    try:
        result = await db.execute(select(AppConfig).where(AppConfig.id == user_id))
    except SQLAlchemyError as exc:
        raise classify_store_error("load settings", exc) from exc
    return result.scalar_one_or_none()


async def get_or_create_config(db: AsyncSession, user_id: str) -> AppConfig:
    """Return the account's config row, inserting defaults on first use."""
    config = await get_config(db, user_id)
    if config is not None:
        return config

    defaults = AgentSettings(pipeline_stages=list(DEFAULT_STAGES))
    config = AppConfig(id=user_id, **defaults.model_dump())
    db.add(config)
    await commit_or_raise(db, "create default settings")
    logger.info("Created default settings for account %s", user_id)
    return config


async def get_agent_settings(db: AsyncSession, user_id: str) -> AgentSettings:
    return config_to_settings(await get_or_create_config(db, user_id))


async def save_agent_settings(
    db: AsyncSession, user_id: str, data: AgentSettings
) -> AgentSettings:
    """Overwrite every setting with ``data`` except ``pipeline_stages``.

    Stage lists change only through the pipeline service, which guards
    occupied stages and migrates leads on rename.
    """
    config = await get_or_create_config(db, user_id)
    for field, value in data.model_dump(exclude={"pipeline_stages"}).items():
        setattr(config, field, value)
    await commit_or_raise(db, "save settings")
    return config_to_settings(config)
