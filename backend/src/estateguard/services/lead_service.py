"""Lead capture and editing.

Leads are never hard-deleted; archiving is a stage move handled by the
pipeline service.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.domain.enums import FinancingStatus
from estateguard.domain.models import Lead
from estateguard.domain.schemas import LeadCapture, LeadUpdate
from estateguard.services.settings_service import get_agent_settings
from estateguard.services.pipeline_board import DEFAULT_STAGES
from estateguard.services.store_errors import classify_store_error, commit_or_raise

logger = logging.getLogger(__name__)

DEFAULT_LEAD_NAME = "New Prospect"
DEFAULT_PHONE = "N/A"
DEFAULT_PROPERTY_ID = "General"
DEFAULT_PROPERTY_ADDRESS = "N/A"


class LeadNotFoundError(LookupError):
    def __init__(self, lead_id: str):
        self.lead_id = lead_id
        super().__init__(f"Lead {lead_id} not found")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def capture_lead(
    db: AsyncSession,
    user_id: str,
    capture: LeadCapture,
    first_stage: str | None = None,
) -> Lead:
    """Create a lead, filling capture defaults.

    The lead lands in ``first_stage`` or, when omitted, the first stage of
    the account's pipeline.
    """
    if first_stage is None:
        stages = (await get_agent_settings(db, user_id)).pipeline_stages or DEFAULT_STAGES
        first_stage = stages[0]

    lead = Lead(
        user_id=user_id,
        name=(capture.name or "").strip() or DEFAULT_LEAD_NAME,
        phone=(capture.phone or "").strip() or DEFAULT_PHONE,
        email=capture.email or "",
        financing_status=(capture.financing_status or FinancingStatus.UNVERIFIED).value,
        property_id=capture.property_id or DEFAULT_PROPERTY_ID,
        property_address=capture.property_address or DEFAULT_PROPERTY_ADDRESS,
        status=first_stage,
        notes=list(capture.notes),
        agent_notes=capture.agent_notes or "",
        notes_log=[],
        conversation_history=[e.model_dump() for e in capture.conversation_history],
        priority_score=capture.priority_score,
        due_date=capture.due_date,
        created_at=datetime.now(timezone.utc),
    )
    db.add(lead)
    await commit_or_raise(db, "capture lead")
    logger.info("Captured lead %s (%s) for account %s", lead.id, lead.name, user_id)
    return lead


async def list_leads(db: AsyncSession, user_id: str) -> list[Lead]:
    """All of an account's leads, newest first."""
    try:
        result = await db.execute(
            select(Lead).where(Lead.user_id == user_id).order_by(Lead.created_at.desc())
        )
    except SQLAlchemyError as exc:
        raise classify_store_error("list leads", exc) from exc
    return list(result.scalars().all())


async def get_lead(db: AsyncSession, user_id: str, lead_id: str) -> Lead:
    try:
        result = await db.execute(
            select(Lead).where(Lead.id == lead_id, Lead.user_id == user_id)
        )
    except SQLAlchemyError as exc:
        raise classify_store_error("load lead", exc) from exc
    lead = result.scalar_one_or_none()
    if lead is None:
        raise LeadNotFoundError(lead_id)
    return lead


async def update_lead(
    db: AsyncSession, user_id: str, lead_id: str, data: LeadUpdate
) -> Lead:
    lead = await get_lead(db, user_id, lead_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if field == "financing_status" and value is not None:
            value = FinancingStatus(value).value
        setattr(lead, field, value)
    await commit_or_raise(db, "update lead")
    return lead


async def add_note(db: AsyncSession, user_id: str, lead_id: str, text: str) -> Lead:
    """Append a timestamped entry to the lead's activity log."""
    lead = await get_lead(db, user_id, lead_id)
    # JSON columns only track reassignment
    lead.notes_log = [*(lead.notes_log or []), {"text": text.strip(), "timestamp": _now_iso()}]
    await commit_or_raise(db, "add lead note")
    return lead

