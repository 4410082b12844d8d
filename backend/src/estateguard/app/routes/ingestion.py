"""Ingestion routes: URL / text and voice-note sync into a listing."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.app.context import AppContext, get_app_context
from estateguard.domain.schemas import IngestRequest, IngestResponse
from estateguard.infra.database import get_db
from estateguard.services.ingestion_service import (
    IngestionError,
    IngestionOutcome,
    IngestionService,
)
from estateguard.services.property_service import PropertyConflictError, upsert_property
from estateguard.services.store_errors import StoreWriteError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ingest", tags=["ingestion"])


async def _persist(db: AsyncSession, ctx: AppContext, outcome: IngestionOutcome) -> IngestResponse:
    """Save the extracted record; a storage failure still returns the extraction."""
    try:
        record = await upsert_property(db, ctx.user_id, outcome.record)
        persisted = True
    except (StoreWriteError, PropertyConflictError) as exc:
        logger.error("Extracted %s but could not save it: %s", outcome.record.property_id, exc)
        record = outcome.record
        persisted = False
    return IngestResponse(property=record, degraded=outcome.degraded, persisted=persisted)


@router.post("", response_model=IngestResponse)
async def ingest_listing(
    data: IngestRequest,
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    service = IngestionService(api_key=ctx.gemini_api_key)
    try:
        outcome = await service.ingest(data.input, image_url=data.image_url, user_id=ctx.user_id)
    except IngestionError as exc:
        raise HTTPException(
            status_code=exc.http_status,
            detail={"kind": exc.kind.value, "message": exc.message},
        )
    return await _persist(db, ctx, outcome)


@router.post("/voice", response_model=IngestResponse)
async def ingest_voice_note(
    audio: UploadFile = File(...),
    image_url: Optional[str] = Form(None),
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
):
    payload = await audio.read()
    if not payload:
        raise HTTPException(status_code=400, detail="Audio file is empty")
    service = IngestionService(api_key=ctx.gemini_api_key)
    try:
        outcome = await service.ingest_voice(
            payload,
            audio.content_type or "audio/mp3",
            image_url=image_url,
            user_id=ctx.user_id,
        )
    except IngestionError as exc:
        raise HTTPException(
            status_code=exc.http_status,
            detail={"kind": exc.kind.value, "message": exc.message},
        )
    return await _persist(db, ctx, outcome)
