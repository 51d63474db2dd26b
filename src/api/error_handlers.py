import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.domain.errors import (
    AttachmentError,
    ListingError,
    NotFoundError,
    StorageError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

_STATUS_BY_ERROR: dict[type[ListingError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AttachmentError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: ListingError) -> int:
    for error_type, code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def listing_error_handler(request: Request, exc: ListingError) -> JSONResponse:
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(
        "request_failed",
        method=request.method,
        path=request.url.path,
        code=exc.code,
        status=status_code,
    )
    return JSONResponse(status_code=status_code, content={"error": exc.message, "code": exc.code})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ListingError, listing_error_handler)  # type: ignore[arg-type]
