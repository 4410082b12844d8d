"""Persists pipeline board operations for one account.

Stage renames run as a saga: a ``StageRename`` row lists the affected
leads and a cursor of those already migrated. Each lead is committed on
its own together with the cursor, so a failure part-way leaves earlier
leads on the new name and the rename can be resumed later.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.domain.enums import StageRenameStatus
from estateguard.domain.models import Lead, StageRename
from estateguard.domain.schemas import BoardColumn, BoardResponse
from estateguard.services.lead_service import LeadNotFoundError, list_leads
from estateguard.services.pipeline_board import ARCHIVED_STAGE, DEFAULT_STAGES, PipelineBoard
from estateguard.services.settings_service import get_or_create_config
from estateguard.services.store_errors import (
    StoreWriteError,
    classify_store_error,
    commit_or_raise,
)

logger = logging.getLogger(__name__)


class StageRenameNotFoundError(LookupError):
    def __init__(self, rename_id: str):
        self.rename_id = rename_id
        super().__init__(f"Stage rename {rename_id} not found")


class PipelineService:
    """Loads an account's board, applies one operation and writes it back."""

    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id
        self.board: Optional[PipelineBoard] = None
        self._leads: dict[str, Lead] = {}

    async def load(self) -> PipelineBoard:
        config = await get_or_create_config(self.db, self.user_id)
        stages = config.pipeline_stages or list(DEFAULT_STAGES)
        leads = await list_leads(self.db, self.user_id)
        self._leads = {lead.id: lead for lead in leads}
        self.board = PipelineBoard(stages, [(lead.id, lead.status) for lead in leads])
        return self.board

    async def _board(self) -> PipelineBoard:
        if self.board is None:
            await self.load()
        return self.board

    def board_response(self) -> BoardResponse:
        board = self.board
        return BoardResponse(
            stages=list(board.stages),
            columns=[BoardColumn(stage=s, lead_ids=ids) for s, ids in board.columns()],
            archived_lead_ids=board.archived(),
            out_of_sync_lead_ids=sorted(board.out_of_sync),
        )

    async def _save_stages(self, operation: str) -> None:
        config = await get_or_create_config(self.db, self.user_id)
        config.pipeline_stages = list(self.board.stages)
        await commit_or_raise(self.db, operation)

    # ------------------------------------------------------------------
    # Stage edits
    # ------------------------------------------------------------------

    async def add_stage(self, name: str) -> BoardResponse:
        board = await self._board()
        board.add_stage(name)
        await self._save_stages("add stage")
        return self.board_response()

    async def delete_stage(self, name: str) -> BoardResponse:
        board = await self._board()
        board.delete_stage(name)
        await self._save_stages("delete stage")
        return self.board_response()

    async def rename_stage(self, old_name: str, new_name: str) -> StageRename:
        """Rename a stage and migrate its leads one commit at a time."""
        board = await self._board()
        cleaned, lead_ids = board.rename_stage(old_name, new_name)

        saga = StageRename(
            user_id=self.user_id,
            old_name=old_name,
            new_name=cleaned,
            lead_ids=lead_ids,
            migrated_lead_ids=[],
            status=StageRenameStatus.PENDING.value,
        )
        self.db.add(saga)
        # Stage list and saga record land together before any lead moves
        await self._save_stages("rename stage")
        logger.info(
            "Renaming stage '%s' -> '%s' for account %s (%d leads)",
            old_name,
            cleaned,
            self.user_id,
            len(lead_ids),
        )
        return await self._run_rename(saga)

    async def resume_rename(self, rename_id: str) -> StageRename:
        try:
            result = await self.db.execute(
                select(StageRename).where(
                    StageRename.id == rename_id, StageRename.user_id == self.user_id
                )
            )
        except SQLAlchemyError as exc:
            raise classify_store_error("load stage rename", exc) from exc
        saga = result.scalar_one_or_none()
        if saga is None:
            raise StageRenameNotFoundError(rename_id)
        if saga.status == StageRenameStatus.COMPLETED.value:
            return saga
        await self._board()
        return await self._run_rename(saga)

    async def _run_rename(self, saga: StageRename) -> StageRename:
        migrated = list(saga.migrated_lead_ids or [])
        for lead_id in saga.lead_ids:
            if lead_id in migrated:
                continue
            lead = self._leads.get(lead_id)
            # Leads moved elsewhere since the rename started keep their stage
            if lead is not None and lead.status == saga.old_name:
                lead.status = saga.new_name
            migrated.append(lead_id)
            saga.migrated_lead_ids = list(migrated)
            try:
                await commit_or_raise(self.db, "migrate lead stage")
            except StoreWriteError as exc:
                await self._record_rename_failure(saga, exc)
                return saga

        saga.status = StageRenameStatus.COMPLETED.value
        saga.last_error = None
        await commit_or_raise(self.db, "complete stage rename")
        return saga

    async def _record_rename_failure(self, saga: StageRename, exc: StoreWriteError) -> None:
        # The rollback expired the saga; reload the last committed cursor
        await self.db.refresh(saga)
        logger.error(
            "Stage rename %s stopped: %s. Resume it to finish the remaining leads.",
            saga.id,
            exc.detail,
        )
        saga.status = StageRenameStatus.FAILED.value
        saga.last_error = exc.detail
        await commit_or_raise(self.db, "record stage rename failure")

    # ------------------------------------------------------------------
    # Lead moves
    # ------------------------------------------------------------------

    def _lead(self, lead_id: str) -> Lead:
        lead = self._leads.get(lead_id)
        if lead is None:
            raise LeadNotFoundError(lead_id)
        return lead

    async def _persist_move(self, lead: Lead, stage: str) -> None:
        lead_id = lead.id
        lead.status = stage
        try:
            await commit_or_raise(self.db, "move lead")
        except StoreWriteError:
            self.board.mark_out_of_sync(lead_id)
            raise

    async def move_lead(
        self, lead_id: str, stage: str, position: Optional[int] = None
    ) -> BoardResponse:
        board = await self._board()
        lead = self._lead(lead_id)
        board.move(lead_id, stage, position)
        await self._persist_move(lead, board.stage_of(lead_id))
        return self.board_response()

    async def advance_lead(self, lead_id: str) -> BoardResponse:
        board = await self._board()
        lead = self._lead(lead_id)
        target = board.advance(lead_id)
        await self._persist_move(lead, target)
        return self.board_response()

    async def archive_lead(self, lead_id: str) -> BoardResponse:
        """Move to ``Archived``; the record and its history are kept."""
        board = await self._board()
        lead = self._lead(lead_id)
        board.archive(lead_id)
        await self._persist_move(lead, ARCHIVED_STAGE)
        return self.board_response()
