"""Error responses shared by the API routes."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)

INVALID_PAYLOAD = "Invalid payload"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def invalid_payload() -> JSONResponse:
    return error_response(400, INVALID_PAYLOAD)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON, a missing body or a body of the wrong type → 400 Invalid payload."""
    logger.info("request.invalid_payload", path=request.url.path, errors=len(exc.errors()))
    return invalid_payload()


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
