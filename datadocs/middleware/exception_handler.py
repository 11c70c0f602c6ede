"""Exception handler middleware for structured error responses."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import DataDocsException

logger = logging.getLogger(__name__)


async def datadocs_exception_handler(request: Request, exc: DataDocsException) -> JSONResponse:
    """
    Handle custom exceptions and return structured JSON responses.

    Client errors are logged at WARNING, server-side failures at ERROR.

    Args:
        request: FastAPI request object
        exc: DataDocsException instance

    Returns:
        JSONResponse with error details
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"DataDocsException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
