import time
import json
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """One JSON line per request. Bodies and cookies are never logged."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.exception(
                "Unhandled error on %s %s after %sms: %s",
                request.method,
                request.url.path,
                round(duration_ms, 2),
                str(e),
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        access = getattr(request.state, "access_context", None)
        log_data = {
            "request_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "capability": access.capability.value if access else None,
        }
        logger.info(json.dumps(log_data))
        return response
