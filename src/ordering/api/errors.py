"""Map domain errors to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import (
    ConflictError,
    ExpiredError,
    FeedUnavailable,
    InvalidSignature,
    OrderingError,
)

_STATUS_CODES = {
    InvalidSignature: 401,
    ConflictError: 409,
    ExpiredError: 409,
    FeedUnavailable: 502,
}


def status_code_for(exc: OrderingError) -> int:
    for error_class, status_code in _STATUS_CODES.items():
        if isinstance(exc, error_class):
            return status_code
    return 500


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(exc), content=exc.to_dict())


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "not_found", "message": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's validation handlers plus the ordering error mapping."""
    register_exception_handlers(app)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(OrderingError, ordering_error_handler)
