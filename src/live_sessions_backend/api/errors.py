'''
Maps scheduling errors to HTTP responses.
'''
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..common.exceptions import (
    BookingWindowError,
    CapacityExceededError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    NotRequesterError,
    PriceOutOfRangeError,
    PriceRuleValidationError,
    SchedulingError,
    WindowValidationError
)
from ..common.logger import log

# Most specific first; the first matching class decides the status code.
STATUS_CODES: list[tuple[type[SchedulingError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (WindowValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PriceRuleValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (BookingWindowError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PriceOutOfRangeError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConflictError, status.HTTP_409_CONFLICT),
    (CapacityExceededError, status.HTTP_409_CONFLICT),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (NotRequesterError, status.HTTP_403_FORBIDDEN),
]


def status_code_for(exc: SchedulingError) -> int:
    for error_class, status_code in STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def error_body(exc: SchedulingError) -> dict:
    body = {"detail": str(exc), "kind": type(exc).__name__}
    if isinstance(exc, (WindowValidationError, PriceRuleValidationError)):
        body["errors"] = exc.errors
    if isinstance(exc, ConflictError):
        body["conflicts"] = jsonable_encoder(exc.conflicts)
    return body


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    status_code = status_code_for(exc)
    log.warning(f"{request.method} {request.url.path} refused ({status_code}): {exc}")
    return JSONResponse(status_code=status_code, content=error_body(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SchedulingError, scheduling_error_handler)
