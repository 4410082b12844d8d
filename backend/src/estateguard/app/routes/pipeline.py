"""Pipeline board routes: stage edits, lead moves and rename recovery."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.app.context import AppContext, get_app_context
from estateguard.app.errors import pipeline_http_error, store_http_error
from estateguard.domain.enums import StageRenameStatus
from estateguard.domain.schemas import (
    BoardResponse,
    LeadMoveRequest,
    StageCreate,
    StageRenameRequest,
    StageRenameResponse,
)
from estateguard.infra.database import get_db
from estateguard.services.lead_service import LeadNotFoundError
from estateguard.services.pipeline_board import PipelineError
from estateguard.services.pipeline_service import PipelineService, StageRenameNotFoundError
from estateguard.services.store_errors import StoreWriteError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pipeline", tags=["pipeline"])


def _service(
    ctx: AppContext = Depends(get_app_context),
    db: AsyncSession = Depends(get_db),
) -> PipelineService:
    return PipelineService(db, ctx.user_id)


async def _run(service: PipelineService, operation):
    """Await a board operation and translate its failures."""
    try:
        return await operation
    except PipelineError as exc:
        raise pipeline_http_error(exc)
    except LeadNotFoundError:
        raise HTTPException(status_code=404, detail="Lead not found")
    except StoreWriteError as exc:
        out_of_sync = sorted(service.board.out_of_sync) if service.board else []
        raise store_http_error(exc, out_of_sync_lead_ids=out_of_sync)


@router.get("", response_model=BoardResponse)
async def get_board(service: PipelineService = Depends(_service)):
    await _run(service, service.load())
    return service.board_response()


@router.post("/stages", response_model=BoardResponse)
async def add_stage(data: StageCreate, service: PipelineService = Depends(_service)):
    return await _run(service, service.add_stage(data.name))


@router.delete("/stages/{name}", response_model=BoardResponse)
async def delete_stage(name: str, service: PipelineService = Depends(_service)):
    return await _run(service, service.delete_stage(name))


@router.put("/stages/{name}", response_model=StageRenameResponse)
async def rename_stage(
    name: str,
    data: StageRenameRequest,
    service: PipelineService = Depends(_service),
):
    saga = await _run(service, service.rename_stage(name, data.new_name))
    return _rename_response(saga)


@router.post("/renames/{rename_id}/resume", response_model=StageRenameResponse)
async def resume_rename(rename_id: str, service: PipelineService = Depends(_service)):
    try:
        saga = await _run(service, service.resume_rename(rename_id))
    except StageRenameNotFoundError:
        raise HTTPException(status_code=404, detail="Stage rename not found")
    return _rename_response(saga)


def _rename_response(saga) -> StageRenameResponse:
    response = StageRenameResponse.model_validate(saga)
    if saga.status == StageRenameStatus.FAILED.value:
        raise HTTPException(
            status_code=502,
            detail={
                "message": f"Rename stopped part-way: {saga.last_error}",
                "rename": response.model_dump(),
            },
        )
    return response


@router.post("/leads/{lead_id}/move", response_model=BoardResponse)
async def move_lead(
    lead_id: str,
    data: LeadMoveRequest,
    service: PipelineService = Depends(_service),
):
    return await _run(service, service.move_lead(lead_id, data.stage, data.position))


@router.post("/leads/{lead_id}/advance", response_model=BoardResponse)
async def advance_lead(lead_id: str, service: PipelineService = Depends(_service)):
    return await _run(service, service.advance_lead(lead_id))


@router.post("/leads/{lead_id}/archive", response_model=BoardResponse)
async def archive_lead(lead_id: str, service: PipelineService = Depends(_service)):
    return await _run(service, service.archive_lead(lead_id))
