"""Lead routes: manual capture, listing, editing and the activity log."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.app.context import AppContext, get_app_context
from estateguard.app.errors import store_http_error
from estateguard.domain.schemas import LeadCapture, LeadNoteCreate, LeadResponse, LeadUpdate
from estateguard.infra.database import get_db
from estateguard.services.lead_service import (
    LeadNotFoundError,
    add_note,
    capture_lead,
    get_lead,
    list_leads,
    update_lead,
)
from estateguard.services.store_errors import StoreWriteError

router = APIRouter(prefix="/api/leads", tags=["leads"])


@router.get("", response_model=list[LeadResponse])
async def list_my_leads(
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        leads = await list_leads(db, ctx.user_id)
    except StoreWriteError as exc:
        raise store_http_error(exc)
    return [LeadResponse.model_validate(lead) for lead in leads]


@router.post("", response_model=LeadResponse, status_code=201)
async def create_lead(
    data: LeadCapture,
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        lead = await capture_lead(db, ctx.user_id, data, first_stage=ctx.stages[0])
    except StoreWriteError as exc:
        raise store_http_error(exc)
    return LeadResponse.model_validate(lead)


@router.get("/{lead_id}", response_model=LeadResponse)
async def get_my_lead(
    lead_id: str,
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return LeadResponse.model_validate(await get_lead(db, ctx.user_id, lead_id))
    except LeadNotFoundError:
        raise HTTPException(status_code=404, detail="Lead not found")


@router.patch("/{lead_id}", response_model=LeadResponse)
async def edit_lead(
    lead_id: str,
    data: LeadUpdate,
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        lead = await update_lead(db, ctx.user_id, lead_id, data)
    except LeadNotFoundError:
        raise HTTPException(status_code=404, detail="Lead not found")
    except StoreWriteError as exc:
        raise store_http_error(exc)
    return LeadResponse.model_validate(lead)


@router.post("/{lead_id}/notes", response_model=LeadResponse)
async def add_lead_note(
    lead_id: str,
    data: LeadNoteCreate,
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        lead = await add_note(db, ctx.user_id, lead_id, data.text)
    except LeadNotFoundError:
        raise HTTPException(status_code=404, detail="Lead not found")
    except StoreWriteError as exc:
        raise store_http_error(exc)
    return LeadResponse.model_validate(lead)
