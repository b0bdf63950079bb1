"""Exception handlers for the FastAPI application."""
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse

from dam.core.constants import GeneralErrorDetails
from dam.core.exceptions import AppException, ErrorKind

logger = logging.getLogger(__name__)


def create_error_response(status_code: int, message: str, data: dict | None = None) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "data": data
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with standardized response format."""
    return create_error_response(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation errors with standardized format."""
    errors = exc.errors()
    error_details = []

    for error in errors:
        field = error["loc"][-1] if error.get("loc") else "unknown"
        message = error.get("msg", "")

        # Remove "Value error, " prefix if present
        if message.startswith("Value error, "):
            message = message[13:]

        error_details.append({"field": field, "message": message})

    # Malformed or missing input is a bad request, same as ValidationError.
    return create_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message="Validation error",
        data={"error": ErrorKind.VALIDATION.value, "validation_errors": error_details}
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions."""
    data = {"error": exc.kind.value, **exc.data}
    return create_error_response(exc.status_code, exc.message, data)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions with error logging."""
    logger.exception(
        "Unhandled exception occurred",
        extra={"path": request.url.path, "method": request.method}
    )

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=GeneralErrorDetails.INTERNAL_SERVER_ERROR
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
