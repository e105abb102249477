"""
Service-level errors for the custom domain subsystem.

Services raise these, never HTTPException; `register_exception_handlers`
maps them to JSON responses.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("raya.errors")


class DomainServiceError(Exception):
    code: str = "domain_error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "") -> None:
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class ValidationError(DomainServiceError):
    """Malformed domain name or a name inside the platform's own domain."""
    code = "validation_error"


class ConflictError(DomainServiceError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(DomainServiceError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ExpiredError(DomainServiceError):
    """Verification window elapsed; a new token must be issued explicitly."""
    code = "verification_expired"
    status_code = status.HTTP_410_GONE


class StateError(DomainServiceError):
    code = "invalid_state"


class DNSLookupError(DomainServiceError):
    code = "dns_lookup_failed"
    status_code = status.HTTP_502_BAD_GATEWAY


class NoRecordsError(DNSLookupError):
    """The name does not exist or carries no record of the requested type."""
    code = "dns_no_records"


async def _domain_error_handler(request: Request, exc: DomainServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainServiceError, _domain_error_handler)
