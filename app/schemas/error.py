"""
Error response schemas for API documentation and consistent error formatting.
Every error leaves the API as ``{"error": {...}}``; these models document that envelope.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict


class ErrorDetail(BaseModel):
    """Schema for individual error detail."""

    field: Optional[str] = Field(
        None,
        description="Field name that caused the error",
        examples=["price"]
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Price must be a valid number"]
    )

    type: Optional[str] = Field(
        None,
        description="Error type identifier",
        examples=["decimal_parsing"]
    )

    input: Optional[Any] = Field(
        None,
        description="Input value that caused the error",
        examples=["abc"]
    )


class ErrorResponse(BaseModel):
    """Schema for standardized error responses."""

    code: str = Field(..., description="Error code identifier", examples=["VALIDATION_ERROR"])
    message: str = Field(..., description="Human-readable error message")
    timestamp: str = Field(..., description="Error timestamp in ISO format", examples=["2024-01-01T00:00:00Z"])
    request_id: Optional[str] = Field(None, description="Request identifier for tracking", examples=["abc12345"])
    details: Optional[List[ErrorDetail]] = Field(
        None,
        description="Detailed error information for validation errors"
    )


class APIErrorResponse(BaseModel):
    """Schema for API error response wrapper."""

    error: ErrorResponse = Field(..., description="Error information")


def _example(code: str, message: str, details: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "code": code,
        "message": message,
        "timestamp": "2024-01-01T00:00:00Z",
        "request_id": "abc12345",
    }
    if details:
        body["details"] = details
    return {"error": body}


def _response(description: str, **examples: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "description": description,
        "model": APIErrorResponse,
        "content": {
            "application/json": {
                "examples": {
                    name: {"summary": name.replace("_", " ").capitalize(), "value": value}
                    for name, value in examples.items()
                }
            }
        }
    }


# Common error response examples for documentation
COMMON_ERROR_RESPONSES = {
    400: _response(
        "Bad Request - Invalid request parameters",
        bad_request=_example("BAD_REQUEST", "Invalid price range: 10-"),
        image_limit=_example("BAD_REQUEST", "Images limit exceeded (maximum: 10)"),
    ),
    401: _response(
        "Unauthorized - Sign in required",
        sign_in_required=_example("UNAUTHORIZED", "Sign in required"),
        invalid_token=_example("UNAUTHORIZED", "Invalid token"),
        token_expired=_example("UNAUTHORIZED", "Token has expired"),
    ),
    403: _response(
        "Forbidden - Not an administrator",
        admin_required=_example("FORBIDDEN", "Access Denied: You don't have admin privileges."),
    ),
    404: _response(
        "Not Found - Resource not found",
        listing_not_found=_example(
            "NOT_FOUND", "Listing not found with ID: 123e4567-e89b-12d3-a456-426614174000"
        ),
    ),
    409: _response(
        "Conflict - Resource conflict",
        conflict=_example("CONFLICT", "A record with these values already exists"),
    ),
    422: _response(
        "Unprocessable Entity - Validation error",
        missing_fields=_example(
            "VALIDATION_ERROR",
            "Missing required fields: title, price",
            [{"field": "title", "message": "title is required"}, {"field": "price", "message": "price is required"}],
        ),
        invalid_price=_example("VALIDATION_ERROR", "Price must be a valid number"),
        invalid_specifications=_example("VALIDATION_ERROR", "Specifications must be valid JSON object"),
    ),
    500: _response(
        "Internal Server Error - Unexpected error",
        internal_error=_example("INTERNAL_SERVER_ERROR", "An unexpected error occurred. Please try again later."),
    ),
    502: _response(
        "Bad Gateway - The managed backend failed",
        backend_error=_example("BACKEND_ERROR", "Backend request failed"),
    ),
    503: _response(
        "Service Unavailable - Service temporarily unavailable",
        unavailable=_example("SERVICE_UNAVAILABLE", "Service temporarily unavailable"),
    ),
}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """
    Get error response schemas for specific status codes.

    Args:
        status_codes: HTTP status codes to include

    Returns:
        Dictionary of error response schemas
    """
    return {
        code: COMMON_ERROR_RESPONSES[code]
        for code in status_codes
        if code in COMMON_ERROR_RESPONSES
    }


def get_auth_error_responses() -> Dict[int, Dict[str, Any]]:
    """Get authentication and authorization error response schemas."""
    return get_error_responses(401, 403, 502)


def get_public_error_responses() -> Dict[int, Dict[str, Any]]:
    """Error responses for anonymous catalog endpoints."""
    return get_error_responses(400, 404, 422, 500, 502)


def get_crud_error_responses() -> Dict[int, Dict[str, Any]]:
    """Get error response schemas for back office operations."""
    return get_error_responses(400, 401, 403, 404, 409, 422, 500, 502)
