"""
Exception handlers. Register on a FastAPI app via `register_exception_handlers(app)`.
"""
import logging

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.env import is_local_env
from .errors import AuthError, SessionInvalid, ServerMisconfigured, InvalidRequest

logger = logging.getLogger("phoneauth")


async def auth_error_handler(request: Request, exc: AuthError):
    """Render the auth taxonomy as {"success": false, "code": ...}."""
    content = {"success": False, "code": exc.code}
    if isinstance(exc, SessionInvalid):
        content["reason"] = exc.reason
    if isinstance(exc, ServerMisconfigured):
        logger.error(f"Server misconfigured on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are INVALID_REQUEST; field details are not echoed."""
    logger.info(f"Invalid request on {request.url.path}: {len(exc.errors())} validation error(s)")
    return JSONResponse(
        status_code=InvalidRequest.status_code,
        content={"success": False, "code": InvalidRequest.code},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.detail},
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)

    if is_local_env():
        error_response = {"success": False, "code": "INTERNAL_ERROR", "detail": str(exc)}
    else:
        error_response = {"success": False, "code": "INTERNAL_ERROR"}
    return JSONResponse(status_code=500, content=error_response)


def register_exception_handlers(app):
    """Register all exception handlers on the given FastAPI app."""
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
