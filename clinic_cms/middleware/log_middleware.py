import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from clinic_cms.core.logger import get_logger

logger = get_logger("http")

class LogMiddleware(BaseHTTPMiddleware):
    """Logs one line per request and exposes the handler time as ``X-Process-Time``."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        message = (
            f"Method: {request.method} | "
            f"Path: {request.url.path} | "
            f"Status: {response.status_code} | "
            f"Duration: {process_time:.4f}s"
        )
        if response.status_code >= 500:
            logger.warning(message)
        else:
            logger.info(message)
        return response
