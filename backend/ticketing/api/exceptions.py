"""
Exception handlers: every error response is {"success": false, "error": {...}}.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ticketing.core.errors import TicketingError
from ticketing.core.logging import get_logger

logger = get_logger(__name__)


def error_response(status_code: int, error: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


async def ticketing_error_handler(request: Request, exc: TicketingError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("request_rejected", kind=exc.kind, detail=exc.detail, **exc.context)
    return error_response(exc.status_code, exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request")
    detail = f"{field}: {message}" if field else message
    logger.info("request_invalid", detail=detail)
    return error_response(
        status.HTTP_400_BAD_REQUEST, {"kind": "invalid_input", "detail": detail}
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error=repr(exc))
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"kind": "internal_error", "detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TicketingError, ticketing_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
