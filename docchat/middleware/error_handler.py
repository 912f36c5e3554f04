from fastapi import Request
from fastapi.responses import JSONResponse
import structlog

from docchat.core.exceptions import (
    BackendNotFoundError,
    DocChatError,
    DocumentNotBoundError,
    DocumentNotFoundError,
    GenerationError,
    GenerationInProgressError,
    ModelNotReadyError,
    StorageError,
    TransportError,
    UnsupportedInputError,
)

logger = structlog.get_logger(__name__)

_STATUS_MAP = {
    DocumentNotBoundError: 409,
    GenerationInProgressError: 409,
    ModelNotReadyError: 503,
    StorageError: 503,
    GenerationError: 502,
    TransportError: 502,
    UnsupportedInputError: 400,
    BackendNotFoundError: 400,
    DocumentNotFoundError: 404,
}


async def docchat_exception_handler(request: Request, exc: DocChatError) -> JSONResponse:
    status_code = _STATUS_MAP.get(type(exc), 500)
    logger.error(
        "request_error",
        error_type=type(exc).__name__,
        message=exc.message,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message},
    )
