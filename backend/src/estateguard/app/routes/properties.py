"""Listing routes: owner-scoped CRUD, share links, starter portfolio."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.app.context import AppContext, get_app_context
from estateguard.app.errors import store_http_error
from estateguard.domain.schemas import PropertyRecord, ShareLinks
from estateguard.infra.database import get_db
from estateguard.services.chat_gating import redact_for_prospect
from estateguard.services.property_service import (
    PropertyConflictError,
    PropertyNotFoundError,
    delete_property,
    get_property,
    get_public_property,
    inject_starter_portfolio,
    list_properties,
    row_to_record,
    upsert_property,
)
from estateguard.services.share_service import build_share_links
from estateguard.services.store_errors import StoreWriteError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/properties", tags=["properties"])


@router.get("", response_model=list[PropertyRecord])
async def list_my_properties(
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await list_properties(db, ctx.user_id)
    except StoreWriteError as exc:
        raise store_http_error(exc)


@router.post("/starter-portfolio", response_model=list[PropertyRecord])
async def load_starter_portfolio(
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await inject_starter_portfolio(db, ctx.user_id)
    except StoreWriteError as exc:
        raise store_http_error(exc)


@router.get("/public/{property_id}")
async def get_shared_property(property_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    """Deep-link view, redacted the same way the concierge sees it.

    Returned as a plain dict so removed fields stay absent instead of
    coming back as schema defaults.
    """
    prop = await get_public_property(db, property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    record = row_to_record(prop).model_dump(mode="json")
    return redact_for_prospect(record, qualified=False)


@router.get("/{property_id}", response_model=PropertyRecord)
async def get_my_property(
    property_id: str,
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    prop = await get_property(db, ctx.user_id, property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return row_to_record(prop)


@router.put("/{property_id}", response_model=PropertyRecord)
async def save_property(
    property_id: str,
    record: PropertyRecord,
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    if record.property_id != property_id:
        raise HTTPException(status_code=400, detail="property_id in body does not match URL")
    try:
        return await upsert_property(db, ctx.user_id, record)
    except PropertyConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except StoreWriteError as exc:
        raise store_http_error(exc)


@router.delete("/{property_id}")
async def remove_property(
    property_id: str,
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        await delete_property(db, ctx.user_id, property_id)
    except PropertyNotFoundError:
        raise HTTPException(status_code=404, detail="Property not found")
    except StoreWriteError as exc:
        raise store_http_error(exc)
    return {"ok": True}


@router.get("/{property_id}/share", response_model=ShareLinks)
async def share_property(
    property_id: str,
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    prop = await get_property(db, ctx.user_id, property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return build_share_links(row_to_record(prop), ctx.settings.business_name)
