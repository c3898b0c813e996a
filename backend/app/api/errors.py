"""JSON error bodies shared by the API routes.

Failures are reported as {"error": ..., "details": ...} so the dashboard can
show the upstream reason next to each failed item.
"""

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.app.services.spoolman import SpoolmanError

logger = logging.getLogger(__name__)


def error_response(status_code: int, error: str, details=None, **extra) -> JSONResponse:
    content = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def spoolman_error_response(error: str, exc: SpoolmanError) -> JSONResponse:
    """500 response carrying Spoolman's own error detail when it sent one."""
    return error_response(500, error, exc.detail)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed request bodies with 400 before any side effect."""
    errors = exc.errors()
    logger.info("Invalid request on %s %s: %s", request.method, request.url.path, errors)
    message = "Invalid request"
    if errors:
        message = errors[0].get("msg", message).removeprefix("Value error, ")
    details = [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors]
    return error_response(400, message, details)
