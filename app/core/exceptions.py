"""
Application exception hierarchy.

    CatalogueError (base)
    ├── SlugError
    │   ├── InvalidInput          → 400 Bad Request
    │   ├── OracleUnavailable     → 503 Service Unavailable
    │   ├── ConstraintViolation   → 409 Conflict
    │   └── SlugExhausted         → 500 Internal Server Error
    ├── UnsupportedImage          → 400 Bad Request
    ├── ImageHostError            → 502 Bad Gateway
    ├── EmailDeliveryError        → 502 Bad Gateway
    └── GeocodingError            → 502 Bad Gateway

Handlers registered by ``register_exception_handlers`` turn these into
``{"error": ..., "message": ...}`` JSON bodies. ``context`` is logged but never
returned to the client.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CatalogueError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class SlugError(CatalogueError):
    error = "slug_error"


class InvalidInput(SlugError):
    """The display name reduces to nothing usable as a slug."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "invalid_input"

    def __init__(self, message: str = "A non-empty name is required", field: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class OracleUnavailable(SlugError):
    """The existence check could not be answered. Not retried by the allocator."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "oracle_unavailable"

    def __init__(self, message: str = "Could not verify slug availability. Please try again later.",
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class ConstraintViolation(SlugError):
    """
    The store rejected a write because the slug was taken after it was checked.

    Raised by store adapters at persistence time; ``insert_with_unique_slug``
    recovers from it by re-allocating.
    """

    status_code = status.HTTP_409_CONFLICT
    error = "constraint_violation"

    def __init__(self, slug: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        if slug:
            ctx["slug"] = slug
        super().__init__(message="The record could not be saved because its identifier is already taken",
                         context=ctx)
        self.slug = slug


class SlugExhausted(SlugError):
    error = "slug_exhausted"

    def __init__(self, base: str, attempts: int):
        super().__init__(
            message="Could not find a free identifier for this name",
            context={"base": base, "attempts": attempts},
        )
        self.base = base
        self.attempts = attempts


class UnsupportedImage(CatalogueError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "unsupported_image"

    def __init__(self, filename: str, allowed: tuple):
        super().__init__(
            message=f"File '{filename}' is not a supported image. Allowed: {', '.join(allowed)}",
            context={"filename": filename},
        )


class ImageHostError(CatalogueError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "image_host_error"

    def __init__(self, message: str = "Image upload failed", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class EmailDeliveryError(CatalogueError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "email_delivery_error"

    def __init__(self, message: str = "Could not send email", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class GeocodingError(CatalogueError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "geocoding_error"

    def __init__(self, message: str = "Geocoding lookup failed", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


async def catalogue_error_handler(request: Request, exc: CatalogueError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log("%s on %s %s: %s %s", type(exc).__name__, request.method, request.url.path, exc.message, exc.context)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "message": exc.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CatalogueError, catalogue_error_handler)
