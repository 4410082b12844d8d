"""Tests for store-error classification and the schema drift check."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine

from estateguard.infra.database import Base
from estateguard.services.schema_check import EXPECTED_COLUMNS, find_missing_columns
from estateguard.services.store_errors import (
    SCHEMA_REMEDIATION,
    SchemaMismatchError,
    StoreWriteError,
    classify_store_error,
    commit_or_raise,
)


def _operational(message: str) -> OperationalError:
    return OperationalError("INSERT INTO leads ...", {}, Exception(message))


class TestClassifyStoreError:

    def test_missing_column_is_schema_mismatch(self):
        error = classify_store_error("capture lead", _operational("no such column: leads.notes_log"))
        assert isinstance(error, SchemaMismatchError)
        assert error.remediation == SCHEMA_REMEDIATION
        assert error.detail == "no such column: leads.notes_log"

    def test_known_column_mentioned_by_name(self):
        error = classify_store_error(
            "save settings",
            Exception("Could not find the 'pipeline_stages' column of 'app_config' in the schema cache"),
        )
        assert isinstance(error, SchemaMismatchError)

    def test_other_failures_stay_generic(self):
        error = classify_store_error("capture lead", _operational("database is locked"))
        assert type(error) is StoreWriteError
        assert error.operation == "capture lead"


class TestCommitOrRaise:

    async def test_rolls_back_and_raises(self):
        db = AsyncMock()
        db.commit.side_effect = _operational("disk I/O error")
        with pytest.raises(StoreWriteError) as exc_info:
            await commit_or_raise(db, "move lead")
        db.rollback.assert_awaited_once()
        assert "move lead failed" in str(exc_info.value)

    async def test_success_commits(self):
        db = AsyncMock()
        await commit_or_raise(db, "move lead")
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()


class TestSchemaCheck:

    @pytest.fixture
    async def engine(self):
        engine = create_async_engine("sqlite+aiosqlite://")
        yield engine
        await engine.dispose()

    async def test_current_schema_has_nothing_missing(self, engine):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        assert await find_missing_columns(engine) == {}

    async def test_reports_absent_tables_and_columns(self, engine):
        async with engine.begin() as conn:
            await conn.execute(text("CREATE TABLE leads (id VARCHAR(36) PRIMARY KEY, name VARCHAR(255))"))
        missing = await find_missing_columns(engine)

        assert missing["properties"] == EXPECTED_COLUMNS["properties"]
        assert missing["app_config"] == EXPECTED_COLUMNS["app_config"]
        assert "id" not in missing["leads"]
        assert "notes_log" in missing["leads"]
