"""Tests for lead capture and editing."""

from datetime import date

import pytest

from estateguard.domain.enums import FinancingStatus
from estateguard.domain.schemas import LeadCapture, LeadUpdate
from estateguard.services.lead_service import (
    DEFAULT_LEAD_NAME,
    LeadNotFoundError,
    add_note,
    capture_lead,
    get_lead,
    list_leads,
    update_lead,
)
from estateguard.services.pipeline_service import PipelineService


class TestCaptureLead:

    async def test_defaults_filled(self, db_session, make_user):
        user = await make_user()
        lead = await capture_lead(db_session, user.id, LeadCapture())

        assert lead.name == DEFAULT_LEAD_NAME
        assert lead.phone == "N/A"
        assert lead.property_id == "General"
        assert lead.property_address == "N/A"
        assert lead.financing_status == "Unverified"
        assert lead.status == "New"

    async def test_lands_in_first_custom_stage(self, db_session, make_user):
        user = await make_user()
        await PipelineService(db_session, user.id).rename_stage("New", "Inbox")
        lead = await capture_lead(db_session, user.id, LeadCapture(name="Omar"))
        assert lead.status == "Inbox"

    async def test_explicit_first_stage(self, db_session, make_user):
        user = await make_user()
        lead = await capture_lead(db_session, user.id, LeadCapture(), first_stage="Discovery")
        assert lead.status == "Discovery"


class TestQueries:

    async def test_newest_first(self, db_session, make_user, make_lead):
        user = await make_user()
        old = await make_lead(user, name="Old", age_minutes=30)
        new = await make_lead(user, name="New", age_minutes=1)
        assert [lead.id for lead in await list_leads(db_session, user.id)] == [new.id, old.id]

    async def test_scoped_to_account(self, db_session, make_user, make_lead):
        owner = await make_user()
        other = await make_user()
        lead = await make_lead(owner)
        assert await list_leads(db_session, other.id) == []
        with pytest.raises(LeadNotFoundError):
            await get_lead(db_session, other.id, lead.id)


class TestEditing:

    async def test_partial_update(self, db_session, make_user, make_lead):
        user = await make_user()
        lead = await make_lead(user, agent_notes="Call back Tuesday")
        updated = await update_lead(
            db_session,
            user.id,
            lead.id,
            LeadUpdate(
                due_date=date(2026, 11, 2),
                priority_score=8,
                financing_status=FinancingStatus.CASH,
            ),
        )
        assert updated.due_date == date(2026, 11, 2)
        assert updated.priority_score == 8
        assert updated.financing_status == "Cash"
        assert updated.agent_notes == "Call back Tuesday"

    async def test_notes_are_appended_with_timestamps(self, db_session, make_user, make_lead):
        user = await make_user()
        lead = await make_lead(user)
        await add_note(db_session, user.id, lead.id, " Left voicemail ")
        lead = await add_note(db_session, user.id, lead.id, "Booked showing")

        assert [entry["text"] for entry in lead.notes_log] == ["Left voicemail", "Booked showing"]
        assert all(entry["timestamp"] for entry in lead.notes_log)

    async def test_unknown_lead(self, db_session, make_user):
        user = await make_user()
        with pytest.raises(LeadNotFoundError):
            await add_note(db_session, user.id, "missing", "hi")
