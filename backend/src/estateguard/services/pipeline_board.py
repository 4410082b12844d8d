"""Pipeline board: ordered stages and the leads sitting in each.

In-memory model of one account's kanban board. It validates every stage
edit and lead move, then the pipeline service persists the result. Moves
are optimistic: a lead whose write later fails stays where the board put
it and is flagged out-of-sync.
"""

from typing import Iterable, Optional

DEFAULT_STAGES: tuple[str, ...] = (
    "New",
    "Discovery",
    "Leads",
    "Showing",
    "Negotiation",
    "Closed",
)

ARCHIVED_STAGE = "Archived"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class PipelineError(Exception):
    """Base class for rejected board operations."""


class InvalidStageNameError(PipelineError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid stage name: {name!r}")


class ReservedStageError(PipelineError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"'{ARCHIVED_STAGE}' is reserved and cannot be used as a stage ({name!r})")


class DuplicateStageError(PipelineError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Stage '{name}' already exists")


class StageNotFoundError(PipelineError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Stage '{name}' does not exist")


class StageNotEmptyError(PipelineError):
    def __init__(self, name: str, lead_count: int):
        self.name = name
        self.lead_count = lead_count
        super().__init__(
            f"Stage '{name}' still holds {lead_count} lead(s); move them before deleting"
        )


class LastStageError(PipelineError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Stage '{name}' is the only stage left and cannot be deleted")


class InvalidMoveError(PipelineError):
    def __init__(self, lead_id: str, reason: str):
        self.lead_id = lead_id
        self.reason = reason
        super().__init__(f"Cannot move lead {lead_id}: {reason}")


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------


class PipelineBoard:
    """Stages plus a column of lead ids per stage.

    Args:
        stages: Ordered stage names.
        leads: ``(lead_id, status)`` pairs, already in display order
            (newest first). Statuses outside ``stages`` are kept but not
            shown as columns, except ``Archived``.
    """

    def __init__(self, stages: Iterable[str], leads: Iterable[tuple[str, str]] = ()):
        self.stages: list[str] = list(stages)
        self._status: dict[str, str] = {}
        self._columns: dict[str, list[str]] = {stage: [] for stage in self.stages}
        self.out_of_sync: set[str] = set()
        for lead_id, status in leads:
            self._status[lead_id] = status
            self._columns.setdefault(status, []).append(lead_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_stage(self, name: str) -> bool:
        return name in self.stages

    def stage_of(self, lead_id: str) -> str:
        if lead_id not in self._status:
            raise InvalidMoveError(lead_id, "lead is not on this board")
        return self._status[lead_id]

    def leads_in(self, stage: str) -> list[str]:
        return list(self._columns.get(stage, []))

    def columns(self) -> list[tuple[str, list[str]]]:
        return [(stage, self.leads_in(stage)) for stage in self.stages]

    def archived(self) -> list[str]:
        return self.leads_in(ARCHIVED_STAGE)

    def counts(self) -> dict[str, int]:
        return {stage: len(self._columns.get(stage, [])) for stage in self.stages}

    # ------------------------------------------------------------------
    # Stage edits
    # ------------------------------------------------------------------

    def _validate_new_name(self, name: str, ignore: Optional[str] = None) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise InvalidStageNameError(name)
        if cleaned.lower() == ARCHIVED_STAGE.lower():
            raise ReservedStageError(cleaned)
        for stage in self.stages:
            if stage != ignore and stage.lower() == cleaned.lower():
                raise DuplicateStageError(cleaned)
        return cleaned

    def _require_stage(self, name: str) -> None:
        if name not in self.stages:
            raise StageNotFoundError(name)

    def add_stage(self, name: str) -> str:
        cleaned = self._validate_new_name(name)
        self.stages.append(cleaned)
        self._columns.setdefault(cleaned, [])
        return cleaned

    def delete_stage(self, name: str) -> None:
        self._require_stage(name)
        occupants = self._columns.get(name, [])
        if occupants:
            raise StageNotEmptyError(name, len(occupants))
        if len(self.stages) == 1:
            raise LastStageError(name)
        self.stages.remove(name)
        self._columns.pop(name, None)

    def rename_stage(self, old_name: str, new_name: str) -> tuple[str, list[str]]:
        """Rename a stage in place and move its leads to the new name.

        Returns:
            ``(cleaned_new_name, lead_ids_that_must_be_rewritten)``.
        """
        self._require_stage(old_name)
        cleaned = self._validate_new_name(new_name, ignore=old_name)
        if cleaned == old_name:
            return cleaned, []

        self.stages[self.stages.index(old_name)] = cleaned
        moved = self._columns.pop(old_name, [])
        self._columns.setdefault(cleaned, [])
        self._columns[cleaned] = moved + self._columns[cleaned]
        for lead_id in moved:
            self._status[lead_id] = cleaned
        return cleaned, list(moved)

    # ------------------------------------------------------------------
    # Lead moves
    # ------------------------------------------------------------------

    def _place(self, lead_id: str, target: str, position: Optional[int]) -> None:
        current = self._status[lead_id]
        self._columns[current].remove(lead_id)
        column = self._columns.setdefault(target, [])
        if position is None or position >= len(column):
            # New arrivals go on top, matching newest-first load order
            column.insert(0 if position is None else len(column), lead_id)
        else:
            column.insert(max(position, 0), lead_id)
        self._status[lead_id] = target

    def move(self, lead_id: str, target: str, position: Optional[int] = None) -> str:
        """Move a lead to ``target``. Returns the stage it left."""
        current = self.stage_of(lead_id)
        if target == ARCHIVED_STAGE:
            return self.archive(lead_id)
        self._require_stage(target)
        if target == current:
            raise InvalidMoveError(lead_id, f"already in '{target}'")
        self._place(lead_id, target, position)
        return current

    def advance(self, lead_id: str) -> str:
        """Move a lead one stage to the right. Returns the new stage."""
        current = self.stage_of(lead_id)
        if current not in self.stages:
            raise InvalidMoveError(lead_id, f"'{current}' is not an active stage")
        index = self.stages.index(current)
        if index == len(self.stages) - 1:
            raise InvalidMoveError(lead_id, f"'{current}' is the last stage")
        target = self.stages[index + 1]
        self._place(lead_id, target, None)
        return target

    def archive(self, lead_id: str) -> str:
        current = self.stage_of(lead_id)
        if current == ARCHIVED_STAGE:
            raise InvalidMoveError(lead_id, "already archived")
        self._place(lead_id, ARCHIVED_STAGE, None)
        return current

    def mark_out_of_sync(self, lead_id: str) -> None:
        self.out_of_sync.add(lead_id)
