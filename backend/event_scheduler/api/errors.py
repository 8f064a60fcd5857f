from fastapi import HTTPException

from event_scheduler.services.exceptions import (
    ConcurrencyConflict,
    Forbidden,
    NotFound,
    ProtocolError,
    ServiceError,
    Unavailable,
    ValidationFailed,
)


def http_error_from_service(err: ServiceError) -> HTTPException:
    if isinstance(err, NotFound):
        code = 404
    elif isinstance(err, Forbidden):
        code = 403
    elif isinstance(err, ConcurrencyConflict):
        code = 409
    elif isinstance(err, ValidationFailed):
        code = 422
    elif isinstance(err, ProtocolError):
        code = 400
    elif isinstance(err, Unavailable):
        code = 503
    else:
        code = 500

    return HTTPException(
        status_code=code,
        detail={"code": err.code, "message": err.message},
    )
