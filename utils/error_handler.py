"""
Error Handler Utility for the HTTP API

Provides centralized error handling for routers with:
- Automatic exception to HTTP status / error code mapping
- Consistent JSON error bodies
- Logging for debugging

Routers do not catch service exceptions themselves; the handlers below are
registered on the FastAPI app by register_exception_handlers().

Response body:
    {"error": "sold_out", "message": "...", "details": {...}}
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from exceptions import (
    StorefrontException,
    OrderNotFoundException,
    OutOfStockException,
    InvalidQuantityException,
    PurchaseLimitExceededException,
    InvalidOrderStateException,
    ProductNotFoundException,
    CardNotFoundException,
    CategoryAlreadyExistsException,
    SchemaDriftException,
    StoreUnavailableException,
    UserNotFoundException,
    UserBlockedException,
    InvalidPointsException,
    CheckinDisabledException,
    AlreadyCheckedInException,
    InvalidSettingValueException,
)

ERROR_MAPPING: dict[type[StorefrontException], tuple[int, str]] = {
    # Order exceptions
    OrderNotFoundException: (status.HTTP_404_NOT_FOUND, "order_not_found"),
    OutOfStockException: (status.HTTP_409_CONFLICT, "sold_out"),
    InvalidQuantityException: (status.HTTP_400_BAD_REQUEST, "invalid_quantity"),
    PurchaseLimitExceededException: (status.HTTP_400_BAD_REQUEST, "purchase_limit_exceeded"),
    InvalidOrderStateException: (status.HTTP_409_CONFLICT, "invalid_order_state"),

    # Product exceptions
    ProductNotFoundException: (status.HTTP_404_NOT_FOUND, "product_not_found"),
    CardNotFoundException: (status.HTTP_404_NOT_FOUND, "card_not_found"),
    CategoryAlreadyExistsException: (status.HTTP_409_CONFLICT, "category_exists"),

    # Store exceptions
    SchemaDriftException: (status.HTTP_500_INTERNAL_SERVER_ERROR, "schema_drift"),
    StoreUnavailableException: (status.HTTP_503_SERVICE_UNAVAILABLE, "store_unavailable"),

    # User exceptions
    UserNotFoundException: (status.HTTP_404_NOT_FOUND, "user_not_found"),
    UserBlockedException: (status.HTTP_403_FORBIDDEN, "user_blocked"),
    InvalidPointsException: (status.HTTP_400_BAD_REQUEST, "invalid_points"),

    # Check-in exceptions
    CheckinDisabledException: (status.HTTP_403_FORBIDDEN, "checkin_disabled"),
    AlreadyCheckedInException: (status.HTTP_409_CONFLICT, "already_checked_in"),

    # Settings exceptions
    InvalidSettingValueException: (status.HTTP_400_BAD_REQUEST, "invalid_setting"),
}


def handle_service_error(exception: StorefrontException) -> tuple[int, dict]:
    """
    Convert a service exception to an HTTP status code and JSON body.

    Args:
        exception: The custom exception raised by a service

    Returns:
        Tuple of (status code, response body)
    """
    status_code, error_code = ERROR_MAPPING.get(
        type(exception), (status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error")
    )

    if status_code >= 500:
        logging.error(f"Service error handled: {type(exception).__name__} - {str(exception)}")
    else:
        logging.warning(f"Service error handled: {type(exception).__name__} - {str(exception)}")

    return status_code, {
        "error": error_code,
        "message": exception.message,
        "details": exception.details,
    }


async def storefront_exception_handler(request: Request, exc: StorefrontException) -> JSONResponse:
    status_code, body = handle_service_error(exc)
    return JSONResponse(status_code=status_code, content=body)


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, return a generic 500 without internals."""
    logging.error(f"Unexpected error on {request.method} {request.url.path}: {type(exc).__name__} - {str(exc)}",
                  exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "message": "An unexpected error occurred", "details": {}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontException, storefront_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)
