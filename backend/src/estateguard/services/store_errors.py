"""Data-store failure types and the helper that classifies raw DB errors."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

SCHEMA_REMEDIATION = (
    "The database schema is out of date. Run scripts/validate_schema.py and "
    "apply the missing columns before retrying."
)

_SCHEMA_MARKERS = ("no such column", "does not exist", "has no column", "undefined column")


class StoreWriteError(Exception):
    """A read or write against the data store failed."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


class SchemaMismatchError(StoreWriteError):
    """The store rejected a statement because a known column is missing."""

    def __init__(self, operation: str, detail: str):
        super().__init__(operation, detail)
        self.remediation = SCHEMA_REMEDIATION


def classify_store_error(operation: str, exc: Exception) -> StoreWriteError:
    """Wrap ``exc`` as ``SchemaMismatchError`` or plain ``StoreWriteError``."""
    from estateguard.services.schema_check import known_column_names

    detail = str(getattr(exc, "orig", None) or exc)
    lowered = detail.lower()
    if any(marker in lowered for marker in _SCHEMA_MARKERS):
        return SchemaMismatchError(operation, detail)
    if "column" in lowered and any(name in lowered for name in known_column_names()):
        return SchemaMismatchError(operation, detail)
    return StoreWriteError(operation, detail)


async def commit_or_raise(db: AsyncSession, operation: str) -> None:
    """Commit, or roll back and raise a classified store error."""
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        error = classify_store_error(operation, exc)
        logger.error("Store write failed during %s: %s", operation, error.detail)
        raise error from exc
