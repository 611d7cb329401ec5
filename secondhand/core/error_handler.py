"""
Error handling and sanitization

- Marketplace errors render as {"error": message} with their own status
- Request validation errors render as 400 {"error": ...}
- Collaborator failures are mapped to UnexpectedError at the service boundary
- Anything unhandled is logged with its traceback and returned as a generic 500
"""
import logging
import traceback
from contextlib import contextmanager
from typing import Iterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from secondhand.core.config import settings
from secondhand.core.exceptions import MarketplaceError, UnexpectedError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


@contextmanager
def collaborator_boundary(action: str) -> Iterator[None]:
    """
    Map collaborator failures inside the block to UnexpectedError.

    Marketplace errors raised on purpose pass through untouched. Anything
    else (store, identity provider, blob storage) is logged and replaced by
    "Internal server error {action}".
    """
    try:
        yield
    except MarketplaceError as e:
        if isinstance(e, UnexpectedError):
            logger.error(f"Collaborator failure while {action}: {e.to_dict()}")
            raise UnexpectedError(
                f"Internal server error {action}", code=e.code, details=e.details
            ) from e
        raise
    except Exception as e:
        logger.exception(f"Unexpected failure while {action}: {type(e).__name__}: {e}")
        raise UnexpectedError(f"Internal server error {action}") from e


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.to_dict()}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Catch unhandled exceptions and sanitize the error response.

    - In production: Returns generic error, logs full details
    - In development: Returns the exception message for debugging
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as e:
            error_id = getattr(request.state, "request_id", None) or f"err-{id(e)}"
            logger.error(
                f"Unhandled exception [{error_id}]: {type(e).__name__}: {str(e)}\n"
                f"Path: {request.url.path}\n"
                f"Method: {request.method}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )
            message = str(e) if settings.DEBUG else GENERIC_ERROR_MESSAGE
            return JSONResponse(status_code=500, content={"error": message, "error_id": error_id})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_middleware(ErrorSanitizationMiddleware)
