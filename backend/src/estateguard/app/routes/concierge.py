"""Public concierge chat routes used by the embeddable listing widget."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.app.errors import store_http_error
from estateguard.domain.schemas import (
    ChatMessageRequest,
    ChatReplyOut,
    ChatSessionCreate,
    ChatSessionOut,
    ChatTurnOut,
    ContactFormRequest,
    LeadResponse,
)
from estateguard.infra.database import get_db
from estateguard.services.concierge_service import (
    ChatGatedError,
    ChatSessionNotFoundError,
    ConciergeService,
    ContactFormError,
)
from estateguard.services.property_service import PropertyNotFoundError
from estateguard.services.store_errors import StoreWriteError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/concierge", tags=["concierge"])


def _session_out(session, settings) -> ChatSessionOut:
    return ChatSessionOut(
        session_id=session.session_id,
        property_id=session.property_id,
        state=session.state,
        specific_question_count=session.specific_question_count,
        qualified=session.qualified,
        business_name=settings.business_name,
        concierge_intro=settings.concierge_intro,
        turns=[ChatTurnOut(role=t.role.value, text=t.text) for t in session.turns],
    )


@router.post("/sessions", response_model=ChatSessionOut, status_code=201)
async def start_session(data: ChatSessionCreate, db: AsyncSession = Depends(get_db)):
    service = ConciergeService(db)
    try:
        session, settings = await service.start_session(data.property_id)
    except PropertyNotFoundError:
        raise HTTPException(status_code=404, detail="Property not found")
    except StoreWriteError as exc:
        raise store_http_error(exc)
    return _session_out(session, settings)


@router.get("/sessions/{session_id}", response_model=ChatSessionOut)
async def get_session(session_id: str, db: AsyncSession = Depends(get_db)):
    service = ConciergeService(db)
    try:
        session, settings = await service.get_session(session_id)
    except ChatSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _session_out(session, settings)


@router.post("/sessions/{session_id}/messages", response_model=ChatReplyOut)
async def send_message(
    session_id: str,
    data: ChatMessageRequest,
    db: AsyncSession = Depends(get_db),
):
    service = ConciergeService(db)
    try:
        reply = await service.send_message(session_id, data.text)
    except ChatSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ChatGatedError as exc:
        raise HTTPException(
            status_code=409,
            detail={"message": str(exc), "show_contact_form": True},
        )
    except PropertyNotFoundError:
        raise HTTPException(status_code=404, detail="Property no longer available")
    except StoreWriteError as exc:
        raise store_http_error(exc)
    return ChatReplyOut(
        reply=reply.reply,
        state=reply.state,
        specific_question_count=reply.specific_question_count,
        show_contact_form=reply.show_contact_form,
        failed=reply.failed,
        captured_lead_ids=reply.captured_lead_ids,
    )


@router.post("/sessions/{session_id}/contact", response_model=LeadResponse, status_code=201)
async def submit_contact_form(
    session_id: str,
    data: ContactFormRequest,
    db: AsyncSession = Depends(get_db),
):
    service = ConciergeService(db)
    try:
        lead = await service.submit_contact_form(session_id, data)
    except ChatSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ContactFormError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except PropertyNotFoundError:
        raise HTTPException(status_code=404, detail="Property no longer available")
    except StoreWriteError as exc:
        raise store_http_error(exc)
    return LeadResponse.model_validate(lead)


@router.delete("/sessions/{session_id}")
async def reset_session(session_id: str, db: AsyncSession = Depends(get_db)):
    try:
        ConciergeService(db).reset(session_id)
    except ChatSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {"ok": True}
