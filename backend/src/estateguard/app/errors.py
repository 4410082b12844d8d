"""Translation of service exceptions into HTTP errors."""

from fastapi import HTTPException

from estateguard.services.pipeline_board import (
    DuplicateStageError,
    InvalidMoveError,
    InvalidStageNameError,
    LastStageError,
    PipelineError,
    ReservedStageError,
    StageNotEmptyError,
    StageNotFoundError,
)
from estateguard.services.store_errors import SchemaMismatchError, StoreWriteError

_PIPELINE_STATUS = {
    InvalidStageNameError: 400,
    ReservedStageError: 400,
    DuplicateStageError: 409,
    StageNotEmptyError: 409,
    LastStageError: 409,
    StageNotFoundError: 404,
    InvalidMoveError: 409,
}


def store_http_error(exc: StoreWriteError, **extra) -> HTTPException:
    """Schema drift is a 500 with a remediation hint; other store failures are 502."""
    if isinstance(exc, SchemaMismatchError):
        return HTTPException(
            status_code=500,
            detail={"message": str(exc), "remediation": exc.remediation, **extra},
        )
    return HTTPException(status_code=502, detail={"message": str(exc), **extra})


def pipeline_http_error(exc: PipelineError) -> HTTPException:
    return HTTPException(status_code=_PIPELINE_STATUS.get(type(exc), 400), detail=str(exc))
