"""
Mapping from core error kinds to HTTP responses.

The core raises AuthorizationError subclasses (ValueErrors); routes let them
propagate and the handlers registered here turn them into JSON responses.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from orgauthz import errors

logger = logging.getLogger(__name__)

# Most specific class first
STATUS_BY_ERROR = [
    (errors.NotFound, status.HTTP_404_NOT_FOUND),
    (errors.Immutable, status.HTTP_403_FORBIDDEN),
    (errors.Expired, status.HTTP_410_GONE),
    (errors.DuplicateName, status.HTTP_409_CONFLICT),
    (errors.InUse, status.HTTP_409_CONFLICT),
    (errors.AlreadyBound, status.HTTP_409_CONFLICT),
    (errors.AlreadyMember, status.HTTP_409_CONFLICT),
    (errors.AlreadyProcessed, status.HTTP_409_CONFLICT),
    (errors.InvalidState, status.HTTP_409_CONFLICT),
    (errors.InvalidPermissionFormat, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (errors.InvalidTeamHierarchy, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (errors.OperationCancelled, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: Exception) -> int:
    for error_class, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def register_error_handlers(app: FastAPI) -> None:
    """Install handlers for AuthorizationError and plain ValueError."""

    @app.exception_handler(errors.AuthorizationError)
    async def authorization_error_handler(request: Request, exc: errors.AuthorizationError):
        status_code = status_for(exc)
        logger.info(f"{request.method} {request.url.path} -> {status_code} ({exc.kind}: {exc})")
        return JSONResponse(status_code=status_code, content={"detail": str(exc), "kind": exc.kind})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})
