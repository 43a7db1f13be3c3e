"""Domain error taxonomy and its HTTP mapping.

Services raise these; routers never catch them. The handlers registered by
``register_exception_handlers`` turn them into ``{"detail": ...}`` bodies.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

log = structlog.get_logger(__name__)


class ArticleApiError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ArticleApiError):
    """Missing or malformed input; detected before any transaction opens."""

    status_code = 400


class AuthenticationError(ArticleApiError):
    status_code = 401


class PermissionDeniedError(ArticleApiError):
    status_code = 403


class NotFoundError(ArticleApiError):
    status_code = 404


class ConflictError(ArticleApiError):
    """Uniqueness violation: duplicate tag name, username, version number."""

    status_code = 409


class StorageError(ArticleApiError):
    """Transaction or query failure. The message never carries driver detail."""

    status_code = 503

    def __init__(self, message: str = "storage unavailable, please retry"):
        super().__init__(message)


async def _handle_api_error(request: Request, exc: ArticleApiError) -> JSONResponse:
    if isinstance(exc, StorageError):
        log.error("storage_error", path=request.url.path, cause=repr(exc.__cause__))
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ArticleApiError, _handle_api_error)
