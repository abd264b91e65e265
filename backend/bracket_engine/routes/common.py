from fastapi import HTTPException, Request

from bracket_engine.services.broadcaster import Broadcaster
from bracket_engine.services.errors import (
    ConflictError,
    ConsistencyError,
    NotFoundError,
    PreconditionError,
    TournamentError,
)

# Service error -> HTTP status
ERROR_STATUS = (
    (NotFoundError, 404),
    (PreconditionError, 400),
    (ConflictError, 409),
    (ConsistencyError, 500),
)


def http_error(exc: TournamentError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def get_broadcaster(request: Request) -> Broadcaster:
    """Live update channel for the running app (overridable in tests)"""
    return request.app.state.broadcaster
