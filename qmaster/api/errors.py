from __future__ import annotations

from fastapi import HTTPException

from qmaster.queue.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    QueueError,
    QueueValidationError,
)

_STATUS_CODES: tuple[tuple[type[QueueError], int], ...] = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (QueueValidationError, 400),
    (PermissionDeniedError, 403),
    (AuthenticationError, 401),
)


def to_http_exception(exc: QueueError) -> HTTPException:
    """Translate a domain error into the matching HTTP error."""

    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
