"""Concierge chat sessions and the lead-qualification gate.

Session lifecycle::

    OPEN --(gating message answered)--> GATED --(contact form)--> OPEN, qualified

A GATED session rejects new messages until the prospect submits the
contact form. Qualified sessions are never gated again and see the
listing's gated fields.

Sessions live in a bounded in-process LRU store and are never persisted;
the leads they produce are.
"""

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.agents.concierge_agent import ConciergeAgent
from estateguard.agents.prompts.concierge import CONNECTION_FAILURE_TEMPLATE, GATE_DIRECTIVE
from estateguard.app.config import get_settings
from estateguard.domain.enums import ChatRole, GateState
from estateguard.domain.models import Lead
from estateguard.domain.schemas import (
    AgentSettings,
    ContactFormRequest,
    ConversationEntry,
    LeadCapture,
    PropertyRecord,
)
from estateguard.services.chat_gating import (
    extract_phone,
    is_specific_question,
    redact_for_prospect,
    should_gate,
)
from estateguard.services.lead_service import capture_lead
from estateguard.services.property_service import (
    PropertyNotFoundError,
    get_public_property,
    row_to_record,
)
from estateguard.services.settings_service import get_agent_settings
from estateguard.services.store_errors import StoreWriteError

logger = logging.getLogger(__name__)

PHONE_LEAD_NAME = "Direct Chat Lead"


class ChatSessionNotFoundError(LookupError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Chat session {session_id} not found or expired")


class ChatGatedError(Exception):
    """Raised when a GATED session receives a message before the contact form."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("Please share your contact details to continue the conversation")


class ContactFormError(ValueError):
    pass


@dataclass
class ChatTurn:
    role: ChatRole
    text: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass
class ChatSession:
    session_id: str
    property_id: str
    owner_id: str
    turns: list[ChatTurn] = field(default_factory=list)
    specific_question_count: int = 0
    state: GateState = GateState.OPEN
    qualified: bool = False

    def transcript(self) -> list[ConversationEntry]:
        return [
            ConversationEntry(role=t.role.value, content=t.text, timestamp=t.timestamp)
            for t in self.turns
        ]


@dataclass
class ChatReply:
    reply: str
    state: GateState
    specific_question_count: int
    show_contact_form: bool = False
    failed: bool = False
    captured_lead_ids: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Session store
# ---------------------------------------------------------------------------


class ChatSessionStore:
    """Bounded LRU map of session id -> ChatSession."""

    def __init__(self, max_sessions: int = 1000):
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, ChatSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, session: ChatSession) -> None:
        self._sessions[session.session_id] = session
        self._sessions.move_to_end(session.session_id)
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug("Evicted chat session %s", evicted)

    def get(self, session_id: str) -> ChatSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise ChatSessionNotFoundError(session_id)
        self._sessions.move_to_end(session_id)
        return session

    def remove(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise ChatSessionNotFoundError(session_id)


@lru_cache
def get_session_store() -> ChatSessionStore:
    return ChatSessionStore(max_sessions=get_settings().chat_session_limit)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ConciergeService:
    """Runs concierge turns against one request's DB session."""

    def __init__(
        self,
        db: AsyncSession,
        store: Optional[ChatSessionStore] = None,
        agent_factory: Callable[[Optional[str]], ConciergeAgent] = ConciergeAgent,
    ):
        self.db = db
        self.store = store or get_session_store()
        self.agent_factory = agent_factory

    async def _load_listing(self, property_id: str) -> PropertyRecord:
        prop = await get_public_property(self.db, property_id)
        if prop is None:
            raise PropertyNotFoundError(property_id)
        return row_to_record(prop)

    async def start_session(self, property_id: str) -> tuple[ChatSession, AgentSettings]:
        record = await self._load_listing(property_id)
        session = ChatSession(
            session_id=str(uuid.uuid4()),
            property_id=record.property_id,
            owner_id=record.user_id,
        )
        self.store.add(session)
        settings = await get_agent_settings(self.db, record.user_id)
        return session, settings

    async def get_session(self, session_id: str) -> tuple[ChatSession, AgentSettings]:
        session = self.store.get(session_id)
        return session, await get_agent_settings(self.db, session.owner_id)

    def reset(self, session_id: str) -> None:
        self.store.remove(session_id)

    async def _capture_phone_lead(
        self, session: ChatSession, record: PropertyRecord, phone: str
    ) -> Optional[Lead]:
        capture = LeadCapture(
            name=PHONE_LEAD_NAME,
            phone=phone,
            property_id=record.property_id,
            property_address=record.listing_details.address or None,
            notes=["Shared a phone number in the concierge chat"],
            conversation_history=session.transcript(),
        )
        try:
            return await capture_lead(self.db, session.owner_id, capture)
        except StoreWriteError as exc:
            # The chat turn still goes ahead; the agent sees the number in the transcript
            logger.error("Phone capture failed for session %s: %s", session.session_id, exc)
            return None

    async def send_message(self, session_id: str, text: str) -> ChatReply:
        """Handle one prospect message.

        Order: phone capture, gate decision, model call, state update.
        The counter and gate only change when the model call succeeds.
        """
        session = self.store.get(session_id)
        if session.state == GateState.GATED:
            raise ChatGatedError(session_id)

        record = await self._load_listing(session.property_id)
        settings = await get_agent_settings(self.db, session.owner_id)

        captured: list[str] = []
        phone = extract_phone(text)
        if phone:
            lead = await self._capture_phone_lead(session, record, phone)
            if lead is not None:
                captured.append(lead.id)

        specific = is_specific_question(text)
        gate = not session.qualified and should_gate(
            session.specific_question_count,
            specific,
            settings.high_security_mode,
            record.tier.value,
        )
        outgoing = f"{GATE_DIRECTIVE}\n\n{text}" if gate else text

        history = [{"role": t.role.value, "text": t.text} for t in session.turns]
        history.append({"role": ChatRole.USER.value, "text": outgoing})
        context = redact_for_prospect(record.model_dump(mode="json"), session.qualified)

        agent = self.agent_factory(settings.api_key or None)
        result = await agent.reply(history, settings, context)

        session.turns.append(ChatTurn(role=ChatRole.USER, text=text))
        if not result.ok:
            failure = CONNECTION_FAILURE_TEMPLATE.format(business_name=settings.business_name)
            session.turns.append(ChatTurn(role=ChatRole.MODEL, text=failure))
            logger.warning("Concierge turn failed for session %s: %s", session_id, result.error)
            return ChatReply(
                reply=failure,
                state=session.state,
                specific_question_count=session.specific_question_count,
                failed=True,
                captured_lead_ids=captured,
            )

        reply = result.data or ""
        session.turns.append(ChatTurn(role=ChatRole.MODEL, text=reply))
        if specific:
            session.specific_question_count += 1
        if gate:
            session.state = GateState.GATED
            logger.info(
                "Session %s gated after %d specific questions",
                session_id,
                session.specific_question_count,
            )
        return ChatReply(
            reply=reply,
            state=session.state,
            specific_question_count=session.specific_question_count,
            show_contact_form=gate,
            captured_lead_ids=captured,
        )

    async def submit_contact_form(self, session_id: str, form: ContactFormRequest) -> Lead:
        """Capture the prospect as a lead and reopen the session as qualified."""
        session = self.store.get(session_id)
        name = form.name.strip()
        phone = form.phone.strip()
        if not name or not phone:
            raise ContactFormError("Name and phone are required")

        record = await self._load_listing(session.property_id)
        capture = LeadCapture(
            name=name,
            phone=phone,
            property_id=record.property_id,
            property_address=record.listing_details.address or None,
            notes=[f"Prefers {form.channel.value} at {form.window.value}"],
            conversation_history=session.transcript(),
        )
        lead = await capture_lead(self.db, session.owner_id, capture)

        session.state = GateState.OPEN
        session.specific_question_count = 0
        session.qualified = True
        logger.info("Session %s qualified as lead %s", session_id, lead.id)
        return lead
