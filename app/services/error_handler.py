"""
Error handling service for consistent error response formatting and logging.
Every error leaves the API as {"error": {code, message, timestamp, request_id, details?}}.
"""

from typing import Dict, Any, Optional, List
from datetime import datetime, timezone
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from supabase import AuthError
from app.utils.exceptions import APIException
import logging
import uuid

logger = logging.getLogger(__name__)

# Postgres error codes surfaced by the backend's REST layer
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
INSUFFICIENT_PRIVILEGE = "42501"

_JSON_SCALARS = (str, int, float, bool, type(None))


class ErrorHandlerService:
    """
    Turns API, validation, backend and auth failures into the shared error envelope.
    Backend messages are logged but never returned to the caller.
    """

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Format error response in a consistent structure.

        Args:
            error_code: Error code identifier
            message: Human-readable error message
            details: Optional list of detailed error information
            request_id: Optional request identifier for tracking
            extra: Additional top-level keys for the error body

        Returns:
            Formatted error response dictionary
        """
        response = {
            "error": {
                "code": error_code,
                "message": message,
                "timestamp": ErrorHandlerService._get_current_timestamp(),
            }
        }

        if details:
            response["error"]["details"] = details

        if request_id:
            response["error"]["request_id"] = request_id

        if extra:
            response["error"].update(extra)

        return response

    @staticmethod
    def handle_api_exception(
        exception: APIException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle custom API exceptions with structured response.

        Args:
            exception: API exception instance
            request: Optional FastAPI request object

        Returns:
            JSON response with formatted error
        """
        request_id = ErrorHandlerService._get_request_id(request)

        logger.warning(
            f"API Exception [{request_id}]: {exception.error_code} - {exception.detail}",
            extra={
                "error_code": exception.error_code,
                "status_code": exception.status_code,
                "request_id": request_id,
                "path": request.url.path if request else None
            }
        )

        extra = None
        sign_in_url = getattr(exception, "sign_in_url", None)
        if sign_in_url:
            extra = {"sign_in_url": sign_in_url}

        error_response = ErrorHandlerService.format_error_response(
            error_code=exception.error_code or "API_ERROR",
            message=exception.detail,
            details=getattr(exception, "field_errors", None),
            request_id=request_id,
            extra=extra
        )

        return JSONResponse(
            status_code=exception.status_code,
            content=error_response,
            headers=exception.headers
        )

    @staticmethod
    def handle_validation_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle request and pydantic validation errors with field details.

        Args:
            exception: RequestValidationError or pydantic ValidationError
            request: Optional FastAPI request object

        Returns:
            JSON response with validation error details
        """
        request_id = ErrorHandlerService._get_request_id(request)

        validation_details = []
        for error in exception.errors():
            field_path = " -> ".join(str(loc) for loc in error.get("loc", ()))
            detail = {
                "field": field_path,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type"),
            }
            value = error.get("input")
            if isinstance(value, _JSON_SCALARS):
                detail["input"] = value
            validation_details.append(detail)

        logger.warning(
            f"Validation Error [{request_id}]: {len(validation_details)} field errors",
            extra={
                "error_count": len(validation_details),
                "request_id": request_id,
                "path": request.url.path if request else None
            }
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code="VALIDATION_ERROR",
            message="Request validation failed",
            details=validation_details,
            request_id=request_id
        )

        return JSONResponse(
            status_code=422,
            content=error_response
        )

    @staticmethod
    def handle_backend_error(
        exception: APIError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle errors returned by the backend's REST layer.

        Args:
            exception: postgrest APIError
            request: Optional FastAPI request object

        Returns:
            JSON response; the backend's internal message is never exposed
        """
        request_id = ErrorHandlerService._get_request_id(request)
        backend_code = getattr(exception, "code", None)

        if backend_code == UNIQUE_VIOLATION:
            error_code = "CONFLICT"
            message = "A record with these values already exists"
            status_code = 409
        elif backend_code == FOREIGN_KEY_VIOLATION:
            error_code = "CONFLICT"
            message = "Referenced record does not exist"
            status_code = 409
        elif backend_code == INSUFFICIENT_PRIVILEGE:
            error_code = "FORBIDDEN"
            message = "The backend denied this operation"
            status_code = 403
        else:
            error_code = "BACKEND_ERROR"
            message = "Backend request failed"
            status_code = 502

        logger.error(
            f"Backend Error [{request_id}]: {backend_code} - {getattr(exception, 'message', str(exception))}",
            extra={
                "error_code": error_code,
                "backend_code": backend_code,
                "request_id": request_id,
                "path": request.url.path if request else None
            }
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code=error_code,
            message=message,
            request_id=request_id
        )

        return JSONResponse(
            status_code=status_code,
            content=error_response
        )

    @staticmethod
    def handle_auth_error(
        exception: AuthError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle auth API errors that escaped the auth service as 401s."""
        request_id = ErrorHandlerService._get_request_id(request)

        logger.warning(
            f"Auth Error [{request_id}]: {getattr(exception, 'message', str(exception))}",
            extra={
                "request_id": request_id,
                "path": request.url.path if request else None
            }
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code="UNAUTHORIZED",
            message="Authentication failed",
            request_id=request_id
        )

        return JSONResponse(
            status_code=401,
            content=error_response,
            headers={"WWW-Authenticate": "Bearer"}
        )

    @staticmethod
    def handle_http_exception(
        exception: HTTPException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle FastAPI and Starlette HTTP exceptions (404 routes, 405 methods).

        Args:
            exception: HTTP exception
            request: Optional FastAPI request object

        Returns:
            JSON response with HTTP error information
        """
        request_id = ErrorHandlerService._get_request_id(request)

        logger.warning(
            f"HTTP Exception [{request_id}]: {exception.status_code} - {exception.detail}",
            extra={
                "status_code": exception.status_code,
                "request_id": request_id,
                "path": request.url.path if request else None
            }
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code=f"HTTP_{exception.status_code}",
            message=str(exception.detail),
            request_id=request_id
        )

        return JSONResponse(
            status_code=exception.status_code,
            content=error_response,
            headers=getattr(exception, "headers", None)
        )

    @staticmethod
    def handle_unexpected_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle unexpected errors with secure error responses.

        Args:
            exception: Unexpected exception
            request: Optional FastAPI request object

        Returns:
            JSON response with generic error message
        """
        request_id = ErrorHandlerService._get_request_id(request)

        logger.error(
            f"Unexpected Error [{request_id}]: {type(exception).__name__} - {str(exception)}",
            extra={
                "request_id": request_id,
                "path": request.url.path if request else None,
                "exception_type": type(exception).__name__
            },
            exc_info=exception
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code="INTERNAL_SERVER_ERROR",
            message="An unexpected error occurred. Please try again later.",
            request_id=request_id
        )

        return JSONResponse(
            status_code=500,
            content=error_response
        )

    @staticmethod
    def _get_request_id(request: Optional[Request] = None) -> str:
        """Request ID assigned by the middleware, or a fresh one."""
        if request is not None:
            request_id = getattr(request.state, "request_id", None)
            if request_id:
                return request_id
        return ErrorHandlerService._generate_request_id()

    @staticmethod
    def _generate_request_id() -> str:
        """Generate a unique request ID for error tracking."""
        return str(uuid.uuid4())[:8]

    @staticmethod
    def _get_current_timestamp() -> str:
        """Get current UTC timestamp in ISO format."""
        return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
