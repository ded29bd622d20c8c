"""
FastAPI application entry point for the storefront.
Wires routers, middleware and exception handlers around the managed backend.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from postgrest.exceptions import APIError
from pydantic import ValidationError as PydanticValidationError
from supabase import AuthError
import logging

from app.config import settings
from app.backend import check_backend_connection, get_backend_info
from app.routers import auth_router, listings_router, admin_router, images_router
from app.utils.exceptions import APIException
from app.services.error_handler import ErrorHandlerService
from app.middleware.validation import ValidationMiddleware

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Backend: {settings.supabase_host}")

    if not settings.is_testing:
        backend_connected = await check_backend_connection()
        if not backend_connected:
            logger.error("Failed to reach the backend on startup")

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Storefront API for a marketplace selling cars and properties.

    ## Features

    * **Catalog**: Search active listings by text, type, location and price, featured first
    * **Listing Detail**: Formatted prices and a prefilled WhatsApp contact link
    * **Back Office**: Create, edit, feature, mark sold and delete listings
    * **Image Upload**: Up to 10 images per listing stored in the backend bucket
    * **Authentication**: Sign-in and sign-up backed by the managed auth service

    ## Authentication

    Sign in at `/api/v1/auth/sign-in` to obtain an access token, then send it in the
    Authorization header as `Bearer <token>` or rely on the session cookie.
    Back office endpoints additionally require the admin flag on the caller's profile.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Authentication",
            "description": "Sign-in, sign-up, sessions and admin status"
        },
        {
            "name": "Catalog",
            "description": "Public listing search and detail"
        },
        {
            "name": "Admin",
            "description": "Back office listing management"
        },
        {
            "name": "Images",
            "description": "Listing image upload and removal"
        },
        {
            "name": "Health",
            "description": "System health endpoints"
        }
    ],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

# Room for a full batch of images plus form overhead
app.add_middleware(
    ValidationMiddleware,
    max_request_size=settings.max_images_per_listing * settings.max_image_size + 1024 * 1024,
    enable_request_logging=settings.debug,
    api_prefix=settings.api_v1_prefix
)

app.include_router(auth_router, prefix=settings.api_v1_prefix)
app.include_router(listings_router, prefix=settings.api_v1_prefix)
app.include_router(admin_router, prefix=settings.api_v1_prefix)
app.include_router(images_router, prefix=settings.api_v1_prefix)


# Global exception handlers using ErrorHandlerService
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Handle custom API exceptions with structured error responses."""
    return ErrorHandlerService.handle_api_exception(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors with detailed field information."""
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
    """Handle Pydantic validation errors with detailed field information."""
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(APIError)
async def backend_exception_handler(request: Request, exc: APIError):
    """Handle table and RPC errors reported by the backend."""
    return ErrorHandlerService.handle_backend_error(exc, request)


@app.exception_handler(AuthError)
async def auth_exception_handler(request: Request, exc: AuthError):
    """Handle auth service errors that were not translated by a service."""
    return ErrorHandlerService.handle_auth_error(exc, request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions such as unknown routes with structured error responses."""
    return ErrorHandlerService.handle_http_exception(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with secure error responses."""
    return ErrorHandlerService.handle_unexpected_error(exc, request)


@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint providing basic API information.
    """
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "healthy",
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json"
        },
        "api_prefix": settings.api_v1_prefix
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint with a backend reachability test.
    Used by container health checks and load balancers.
    """
    backend = await get_backend_info()

    if not backend["reachable"]:
        raise HTTPException(status_code=503, detail="Backend unreachable")

    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "backend": backend
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
