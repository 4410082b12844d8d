"""Tests for persisted pipeline operations, including the stage-rename saga."""

from unittest.mock import patch

import pytest
from sqlalchemy import select

from estateguard.domain.enums import StageRenameStatus
from estateguard.domain.models import AppConfig, Lead, StageRename
from estateguard.services import store_errors
from estateguard.services.pipeline_board import StageNotEmptyError
from estateguard.services.pipeline_service import PipelineService, StageRenameNotFoundError
from estateguard.services.store_errors import StoreWriteError

_real_commit = store_errors.commit_or_raise


def _failing_commit(fail_on: str, after: int = 0):
    """commit_or_raise stand-in that fails the ``after``-th call of ``fail_on``."""
    calls = {"n": 0}

    async def _commit(db, operation):
        if operation == fail_on:
            calls["n"] += 1
            if calls["n"] > after:
                await db.rollback()
                raise StoreWriteError(operation, "disk I/O error")
        await _real_commit(db, operation)

    return _commit


async def _statuses(db_session, user_id: str) -> dict[str, str]:
    rows = (await db_session.execute(select(Lead).where(Lead.user_id == user_id))).scalars().all()
    return {lead.id: lead.status for lead in rows}


class TestStageEdits:

    async def test_add_stage_persists(self, db_session, make_user):
        user = await make_user()
        board = await PipelineService(db_session, user.id).add_stage("Under Contract")
        assert board.stages[-1] == "Under Contract"

        config = await db_session.get(AppConfig, user.id)
        assert config.pipeline_stages[-1] == "Under Contract"

    async def test_delete_stage_with_leads_rejected(self, db_session, make_user, make_lead):
        user = await make_user()
        await make_lead(user, status="Leads")
        with pytest.raises(StageNotEmptyError):
            await PipelineService(db_session, user.id).delete_stage("Leads")

        config = await db_session.get(AppConfig, user.id)
        assert "Leads" in config.pipeline_stages


class TestRenameSaga:

    async def test_rename_migrates_every_lead(self, db_session, make_user, make_lead):
        user = await make_user()
        user_id = user.id
        a = await make_lead(user, status="Leads", age_minutes=3)
        b = await make_lead(user, status="Leads", age_minutes=2)
        other = await make_lead(user, status="New", age_minutes=1)

        saga = await PipelineService(db_session, user.id).rename_stage("Leads", "Warm Leads")

        assert saga.status == StageRenameStatus.COMPLETED.value
        assert sorted(saga.migrated_lead_ids) == sorted([a.id, b.id])
        statuses = await _statuses(db_session, user_id)
        assert statuses[a.id] == statuses[b.id] == "Warm Leads"
        assert statuses[other.id] == "New"
        config = await db_session.get(AppConfig, user.id)
        assert config.pipeline_stages[2] == "Warm Leads"
        assert "Leads" not in config.pipeline_stages

    async def test_failure_part_way_is_resumable(self, db_session, make_user, make_lead):
        user = await make_user()
        user_id = user.id
        await make_lead(user, status="Leads", age_minutes=3)
        await make_lead(user, status="Leads", age_minutes=2)
        await make_lead(user, status="Leads", age_minutes=1)

        with patch(
            "estateguard.services.pipeline_service.commit_or_raise",
            side_effect=_failing_commit("migrate lead stage", after=1),
        ):
            saga = await PipelineService(db_session, user.id).rename_stage("Leads", "Warm Leads")

        assert saga.status == StageRenameStatus.FAILED.value
        assert "disk I/O error" in saga.last_error
        assert len(saga.migrated_lead_ids) == 1
        statuses = await _statuses(db_session, user_id)
        assert sorted(statuses.values()) == ["Leads", "Leads", "Warm Leads"]

        resumed = await PipelineService(db_session, user_id).resume_rename(saga.id)

        assert resumed.status == StageRenameStatus.COMPLETED.value
        assert resumed.last_error is None
        assert set((await _statuses(db_session, user_id)).values()) == {"Warm Leads"}

    async def test_resume_unknown_rename(self, db_session, make_user):
        user = await make_user()
        with pytest.raises(StageRenameNotFoundError):
            await PipelineService(db_session, user.id).resume_rename("missing")

    async def test_resume_is_scoped_to_account(self, db_session, make_user, make_lead):
        owner = await make_user()
        intruder = await make_user()
        await make_lead(owner, status="Leads")
        saga = await PipelineService(db_session, owner.id).rename_stage("Leads", "Warm")

        with pytest.raises(StageRenameNotFoundError):
            await PipelineService(db_session, intruder.id).resume_rename(saga.id)

    async def test_saga_row_recorded(self, db_session, make_user):
        user = await make_user()
        await PipelineService(db_session, user.id).rename_stage("Showing", "Tours")
        saga = (await db_session.execute(select(StageRename))).scalar_one()
        assert (saga.old_name, saga.new_name) == ("Showing", "Tours")
        assert saga.lead_ids == []


class TestLeadMoves:

    async def test_move_persists(self, db_session, make_user, make_lead):
        user = await make_user()
        user_id = user.id
        lead = await make_lead(user, status="New")
        board = await PipelineService(db_session, user.id).move_lead(lead.id, "Showing")

        showing = next(col for col in board.columns if col.stage == "Showing")
        assert showing.lead_ids == [lead.id]
        assert (await _statuses(db_session, user_id))[lead.id] == "Showing"

    async def test_archive_keeps_record_and_history(self, db_session, make_user, make_lead):
        user = await make_user()
        lead = await make_lead(
            user,
            status="Negotiation",
            notes=["Prefers Call at Morning"],
            conversation_history=[{"role": "user", "content": "Is it still available?"}],
        )
        board = await PipelineService(db_session, user.id).archive_lead(lead.id)

        assert board.archived_lead_ids == [lead.id]
        row = await db_session.get(Lead, lead.id)
        assert row.status == "Archived"
        assert row.notes == ["Prefers Call at Morning"]
        assert row.conversation_history[0]["content"] == "Is it still available?"

    async def test_advance(self, db_session, make_user, make_lead):
        user = await make_user()
        user_id = user.id
        lead = await make_lead(user, status="Discovery")
        await PipelineService(db_session, user.id).advance_lead(lead.id)
        assert (await _statuses(db_session, user_id))[lead.id] == "Leads"

    async def test_failed_write_marks_lead_out_of_sync(self, db_session, make_user, make_lead):
        user = await make_user()
        user_id = user.id
        lead = await make_lead(user, status="New")
        lead_id = lead.id
        service = PipelineService(db_session, user.id)

        with patch(
            "estateguard.services.pipeline_service.commit_or_raise",
            side_effect=_failing_commit("move lead"),
        ):
            with pytest.raises(StoreWriteError):
                await service.move_lead(lead_id, "Showing")

        # The board keeps the optimistic placement but flags the lead
        assert service.board.stage_of(lead_id) == "Showing"
        assert service.board_response().out_of_sync_lead_ids == [lead_id]
        assert (await _statuses(db_session, user_id))[lead_id] == "New"
