"""Global exception handling."""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from src.shared.errors import PartialCascadeFailure, TmapError, UpstreamUnavailable

logger = structlog.get_logger()


def _error_response(status_code: int, error: str, message: str, request_id: str, **extra):
    content = {"error": error, "message": message, "request_id": request_id}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, PartialCascadeFailure):
        logger.error(
            "partial_cascade_failure",
            request_id=request_id,
            restaurant_id=exc.restaurant_id,
            state=exc.state,
        )
        return _error_response(
            exc.status_code,
            exc.code,
            exc.message,
            request_id,
            restaurant_id=exc.restaurant_id,
            state=exc.state,
            purged_dish_ids=exc.purged_dish_ids,
        )

    if isinstance(exc, UpstreamUnavailable):
        logger.warning("upstream_unavailable", request_id=request_id, error=exc.message)
        return _error_response(
            exc.status_code, exc.code, "Upstream service unavailable", request_id
        )

    if isinstance(exc, TmapError):
        logger.warning(exc.code, request_id=request_id, error=exc.message)
        return _error_response(exc.status_code, exc.code, exc.message, request_id)

    logger.exception("unhandled_exception", request_id=request_id, error_type=type(exc).__name__)
    return _error_response(
        500, "internal_server_error", "An unexpected error occurred", request_id
    )
