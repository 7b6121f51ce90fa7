"""
Exception handlers.

Every error leaves the service in the response envelope:
``{"success": false, "message": ..., "errors": [{"field", "message"}]}``.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from shipment_service.core import get_logger
from shipment_service.core_settings import get_settings
from shipment_service.domain.errors import ServiceError
from shipment_service.infrastructure.rate_limit import rate_limit_exceeded_handler
from . import responses

logger = get_logger(__name__)

HTTP_MESSAGES = {
    401: "Unauthorized access",
    403: "Access forbidden",
    404: "Resource not found",
    405: "Method not allowed",
}

def _field_name(loc) -> str:
    # Drop the "body"/"query"/"path" prefix FastAPI puts first
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header", "form")]
    return ".".join(parts) or "request"

async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__}: {exc.message}")
    return responses.error(exc.status_code, exc.message, errors=exc.errors, data=exc.data)

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else HTTP_MESSAGES.get(exc.status_code, "Request failed")
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route {request.url.path} not found"
    return responses.error(exc.status_code, message, headers=getattr(exc, "headers", None))

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": _field_name(err.get("loc", ())), "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return responses.error(422, "Validation failed", errors=errors)

async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    message = str(exc) if get_settings().is_development else "Something went wrong"
    return responses.error(500, message)

def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
