"""Tests for concierge chat sessions and the lead-qualification gate."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from estateguard.agents.base import AgentResult
from estateguard.agents.prompts.concierge import GATE_DIRECTIVE
from estateguard.domain.enums import ContactChannel, ContactWindow, GateState
from estateguard.domain.models import Lead
from estateguard.domain.schemas import ContactFormRequest
from estateguard.services.concierge_service import (
    PHONE_LEAD_NAME,
    ChatGatedError,
    ChatSession,
    ChatSessionNotFoundError,
    ChatSessionStore,
    ConciergeService,
    ContactFormError,
)
from estateguard.services.property_service import PropertyNotFoundError


class FakeConciergeAgent:
    """Stands in for ConciergeAgent; records every call."""

    def __init__(self, result: AgentResult | None = None):
        self.reply = AsyncMock(return_value=result or AgentResult.success("Happy to help."))
        self.api_keys: list = []

    def factory(self, api_key):
        self.api_keys.append(api_key)
        return self


@pytest.fixture
def agent():
    return FakeConciergeAgent()


@pytest.fixture
def service(db_session, agent):
    return ConciergeService(db_session, store=ChatSessionStore(), agent_factory=agent.factory)


def _sent_contexts(agent: FakeConciergeAgent) -> list[dict]:
    return [call.args[2] for call in agent.reply.call_args_list]


def _last_outgoing(agent: FakeConciergeAgent) -> str:
    return agent.reply.call_args.args[0][-1]["text"]


class TestSessionLifecycle:

    async def test_unknown_property_rejected(self, service):
        with pytest.raises(PropertyNotFoundError):
            await service.start_session("EG-MISSING")

    async def test_session_starts_open_with_agency_branding(self, service, make_user, make_property):
        user = await make_user(name="Harbor Realty")
        listing = await make_property(user)
        session, settings = await service.start_session(listing.property_id)
        assert session.state == GateState.OPEN
        assert session.owner_id == user.id
        assert settings.business_name == "Harbor Realty"

    async def test_reset_drops_session(self, service, make_user, make_property):
        user = await make_user()
        listing = await make_property(user)
        session, _ = await service.start_session(listing.property_id)
        service.reset(session.session_id)
        with pytest.raises(ChatSessionNotFoundError):
            await service.send_message(session.session_id, "hello")


class TestGating:

    async def test_third_specific_question_gates_standard_listing(
        self, service, agent, make_user, make_property
    ):
        user = await make_user()
        listing = await make_property(user, price=850_000, tier="Standard")
        session, _ = await service.start_session(listing.property_id)

        first = await service.send_message(session.session_id, "What is the price?")
        second = await service.send_message(session.session_id, "How many bedrooms?")
        assert first.show_contact_form is False
        assert second.show_contact_form is False
        assert second.specific_question_count == 2
        assert GATE_DIRECTIVE not in _last_outgoing(agent)

        third = await service.send_message(session.session_id, "Is there a pool?")
        assert third.show_contact_form is True
        assert third.state == GateState.GATED
        assert third.specific_question_count == 3
        assert _last_outgoing(agent).startswith(GATE_DIRECTIVE)
        # The transcript keeps what the prospect actually typed
        assert session.turns[-2].text == "Is there a pool?"

    async def test_gated_session_blocks_input(self, service, agent, make_user, make_property):
        user = await make_user()
        listing = await make_property(user, price=7_500_000, tier="Estate Guard")
        session, _ = await service.start_session(listing.property_id)

        await service.send_message(session.session_id, "What's the HOA?")
        calls_before = agent.reply.await_count
        with pytest.raises(ChatGatedError):
            await service.send_message(session.session_id, "Hello?")
        assert agent.reply.await_count == calls_before

    async def test_estate_guard_high_security_gates_first_specific(
        self, service, make_user, make_property
    ):
        user = await make_user(high_security_mode=True)
        listing = await make_property(user, price=7_500_000, tier="Estate Guard")
        session, _ = await service.start_session(listing.property_id)

        reply = await service.send_message(session.session_id, "What's the address?")
        assert reply.show_contact_form is True
        assert reply.state == GateState.GATED

    async def test_estate_guard_without_high_security_uses_strike_limit(
        self, service, make_user, make_property
    ):
        user = await make_user(high_security_mode=False)
        listing = await make_property(user, price=7_500_000, tier="Estate Guard")
        session, _ = await service.start_session(listing.property_id)

        reply = await service.send_message(session.session_id, "What's the address?")
        assert reply.show_contact_form is False

    async def test_non_specific_messages_do_not_count(self, service, make_user, make_property):
        user = await make_user()
        listing = await make_property(user)
        session, _ = await service.start_session(listing.property_id)

        for text in ("Hello", "Is it near the beach?", "Thanks!"):
            reply = await service.send_message(session.session_id, text)
            assert reply.specific_question_count == 0
            assert reply.state == GateState.OPEN

    async def test_counter_never_decreases_before_qualification(
        self, service, make_user, make_property
    ):
        user = await make_user()
        listing = await make_property(user)
        session, _ = await service.start_session(listing.property_id)

        counts = []
        for text in ("price?", "hello", "bedrooms?", "nice"):
            counts.append((await service.send_message(session.session_id, text)).specific_question_count)
        assert counts == sorted(counts)
        assert counts[-1] == 2

    async def test_model_never_sees_gated_fields_or_agent_notes(
        self, service, agent, make_user, make_property
    ):
        user = await make_user()
        listing = await make_property(user)
        session, _ = await service.start_session(listing.property_id)

        for text in ("price?", "appraisal?", "showing details?"):
            await service.send_message(session.session_id, text)

        for context in _sent_contexts(agent):
            assert "agent_notes" not in context
            assert "private_appraisal" not in context.get("deep_data", {})


class TestModelFailure:

    async def test_failed_turn_leaves_counter_and_state(self, db_session, make_user, make_property):
        failing = FakeConciergeAgent(AgentResult.failure("503 UNAVAILABLE"))
        service = ConciergeService(db_session, store=ChatSessionStore(), agent_factory=failing.factory)
        user = await make_user(name="Harbor Realty")
        listing = await make_property(user)
        session, _ = await service.start_session(listing.property_id)

        reply = await service.send_message(session.session_id, "What is the price?")
        assert reply.failed is True
        assert reply.specific_question_count == 0
        assert reply.state == GateState.OPEN
        assert "Harbor Realty" in reply.reply
        assert session.turns[-1].text == reply.reply

    async def test_failed_gating_turn_does_not_gate(self, db_session, make_user, make_property):
        failing = FakeConciergeAgent(AgentResult.failure("timeout"))
        service = ConciergeService(db_session, store=ChatSessionStore(), agent_factory=failing.factory)
        user = await make_user()
        listing = await make_property(user, price=9_000_000, tier="Estate Guard")
        session, _ = await service.start_session(listing.property_id)

        reply = await service.send_message(session.session_id, "What is the price?")
        assert reply.state == GateState.OPEN
        assert reply.show_contact_form is False


class TestLeadCapture:

    async def test_phone_in_message_captures_lead_before_model_call(
        self, db_session, make_user, make_property
    ):
        failing = FakeConciergeAgent(AgentResult.failure("429 RESOURCE_EXHAUSTED"))
        service = ConciergeService(db_session, store=ChatSessionStore(), agent_factory=failing.factory)
        user = await make_user()
        listing = await make_property(user)
        session, _ = await service.start_session(listing.property_id)

        reply = await service.send_message(session.session_id, "Text me on 555-867-5309")
        assert len(reply.captured_lead_ids) == 1

        lead = (await db_session.execute(select(Lead))).scalar_one()
        assert lead.name == PHONE_LEAD_NAME
        assert lead.phone == "555-867-5309"
        assert lead.property_id == listing.property_id
        assert lead.status == "New"

    async def test_contact_form_creates_lead_and_qualifies(
        self, service, agent, db_session, make_user, make_property
    ):
        user = await make_user()
        listing = await make_property(user, price=7_500_000, tier="Estate Guard")
        session, _ = await service.start_session(listing.property_id)
        await service.send_message(session.session_id, "What's the appraisal?")
        assert session.state == GateState.GATED

        form = ContactFormRequest(
            name="  Priya Raman ",
            phone="555-010-2020",
            channel=ContactChannel.SMS_TEXT,
            window=ContactWindow.EVENING,
        )
        lead = await service.submit_contact_form(session.session_id, form)

        assert lead.name == "Priya Raman"
        assert lead.notes == ["Prefers SMS Text at Evening"]
        assert lead.property_address == "18 Harbor View Lane"
        assert [e["content"] for e in lead.conversation_history][0] == "What's the appraisal?"
        assert session.state == GateState.OPEN
        assert session.specific_question_count == 0
        assert session.qualified is True

        # Qualified prospects are not gated again and see gated fields
        for text in ("price?", "appraisal?", "showing?"):
            reply = await service.send_message(session.session_id, text)
            assert reply.show_contact_form is False
        assert "private_appraisal" in _sent_contexts(agent)[-1]["deep_data"]
        assert "agent_notes" not in _sent_contexts(agent)[-1]

    async def test_contact_form_requires_name_and_phone(self, service, make_user, make_property):
        user = await make_user()
        listing = await make_property(user)
        session, _ = await service.start_session(listing.property_id)
        with pytest.raises(ContactFormError):
            await service.submit_contact_form(
                session.session_id, ContactFormRequest(name="   ", phone="555-010-2020")
            )


class TestSessionStore:

    def test_evicts_least_recently_used(self):
        store = ChatSessionStore(max_sessions=2)
        for sid in ("a", "b"):
            store.add(ChatSession(session_id=sid, property_id="p", owner_id="u"))
        store.get("a")
        store.add(ChatSession(session_id="c", property_id="p", owner_id="u"))

        assert len(store) == 2
        store.get("a")
        with pytest.raises(ChatSessionNotFoundError):
            store.get("b")
