import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from storefront.domain.exceptions import (
    DomainException, EmptyCartError, PaymentGatewayError, NotFoundError, PersistenceError,
    OutOfStockError, InvalidQuantityError, EmailAlreadyRegisteredError
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    EmptyCartError: status.HTTP_400_BAD_REQUEST,
    InvalidQuantityError: status.HTTP_400_BAD_REQUEST,
    OutOfStockError: status.HTTP_409_CONFLICT,
    EmailAlreadyRegisteredError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    PaymentGatewayError: status.HTTP_502_BAD_GATEWAY,
}


def _error(status_code: int, reason: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "reason": reason, "detail": detail}
    )


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        logger.error(f"Datastore failure on {request.method} {request.url.path}", exc_info=exc)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc.reason, "Service temporarily unavailable")

    for exc_type, status_code in STATUS_CODES.items():
        if isinstance(exc, exc_type):
            if isinstance(exc, PaymentGatewayError):
                # Upstream details stay in the log
                return _error(status_code, exc.reason, "Failed to create order")
            return _error(status_code, exc.reason, str(exc))

    logger.error(f"Unmapped domain error on {request.url.path}: {exc!r}")
    return _error(status.HTTP_400_BAD_REQUEST, exc.reason, str(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Something went wrong")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
