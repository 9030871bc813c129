"""
Boundary handlers translating service-layer exceptions into JSON errors.

Every body has the shape ``{"error": <kind>, "message": <text>}``;
request validation failures add a ``fields`` mapping of the offending
locations.  Nothing here retries: a failure is reported as-is.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from notice_api.exceptions import (
    AttachmentNotFoundError,
    FileStorageError,
    InvalidFileNameError,
    NoticeApiError,
    NoticeNotFoundError,
    NoticeValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[NoticeApiError], int]] = [
    (NoticeNotFoundError, status.HTTP_404_NOT_FOUND),
    (AttachmentNotFoundError, status.HTTP_404_NOT_FOUND),
    (NoticeValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidFileNameError, status.HTTP_400_BAD_REQUEST),
    (FileStorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: NoticeApiError) -> int:
    for exc_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_body(error: str, message: str, **extra) -> dict:
    return {"error": error, "message": message, **extra}


async def handle_notice_api_error(request: Request, exc: NoticeApiError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.warning("%s %s -> %d %s", request.method, request.url.path, code, exc.message)
    return JSONResponse(status_code=code, content=_error_body(exc.error, exc.message))


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = {}
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        fields[location or "request"] = err.get("msg", "invalid value")
    logger.warning("%s %s -> 400 invalid request: %s", request.method, request.url.path, fields)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("ValidationError", "Request validation failed", fields=fields),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NoticeApiError, handle_notice_api_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
