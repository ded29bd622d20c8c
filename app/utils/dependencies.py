"""
FastAPI dependency injection utilities for authentication and backend clients.
Provides reusable dependencies for route protection and user extraction.
"""

from typing import AsyncIterator, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import AsyncClient
from app.backend import BackendFactory, create_backend_client, close_backend_client
from app.config import settings
from app.models.user import AuthUser
from app.services.auth import AuthService
from app.services.listing import ListingService
from app.services.image import ImageService
from app.utils.exceptions import (
    APIException,
    UnauthorizedError,
    SignInRequiredError,
    AdminAccessDeniedError
)


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_backend_factory() -> BackendFactory:
    """
    Factory used to create backend clients.
    Tests override this single dependency to swap in a fake backend.
    """
    return create_backend_client


async def get_backend(
    factory: BackendFactory = Depends(get_backend_factory)
) -> AsyncIterator[AsyncClient]:
    """
    Yield an anonymous backend client for the duration of a request.
    """
    client = await factory(None)
    try:
        yield client
    finally:
        await close_backend_client(client)


async def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    """
    Access token from the Authorization header, or the session cookie for browsers.

    Returns:
        Token string, or None when the caller is anonymous
    """
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name) or None


async def get_user_backend(
    access_token: Optional[str] = Depends(get_access_token),
    factory: BackendFactory = Depends(get_backend_factory)
) -> AsyncIterator[AsyncClient]:
    """
    Yield a backend client that acts as the caller.

    Row-level rules and the admin-status procedure see the caller's token;
    anonymous callers get an anonymous client.
    """
    client = await factory(access_token)
    try:
        yield client
    finally:
        await close_backend_client(client)


async def get_auth_service(client: AsyncClient = Depends(get_user_backend)) -> AuthService:
    """
    Get authentication service instance.

    Args:
        client: Caller-scoped backend client

    Returns:
        AuthService instance
    """
    return AuthService(client)


async def get_public_auth_service(client: AsyncClient = Depends(get_backend)) -> AuthService:
    """Authentication service on an anonymous client, for sign-in, sign-up and refresh."""
    return AuthService(client)


async def get_listing_service(client: AsyncClient = Depends(get_user_backend)) -> ListingService:
    """Get listing service instance."""
    return ListingService(client)


async def get_image_service(client: AsyncClient = Depends(get_user_backend)) -> ImageService:
    """Get image service instance."""
    return ImageService(client)


async def get_current_user(
    access_token: Optional[str] = Depends(get_access_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> AuthUser:
    """
    Get current authenticated user from the access token.

    Args:
        access_token: Bearer or cookie token
        auth_service: Authentication service

    Returns:
        Current AuthUser

    Raises:
        UnauthorizedError: If no token provided or token is invalid
        TokenExpiredError: If token is expired
    """
    if not access_token:
        raise UnauthorizedError("Authentication token required")

    try:
        return await auth_service.get_current_user(access_token)
    except APIException:
        raise
    except Exception as e:
        raise UnauthorizedError(f"Authentication failed: {str(e)}")


# Optional authentication dependency (for public endpoints that can benefit from user context)
async def get_optional_current_user(
    access_token: Optional[str] = Depends(get_access_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[AuthUser]:
    """
    Get current user if a valid token is provided, otherwise return None.
    """
    if not access_token:
        return None

    try:
        return await auth_service.get_current_user(access_token)
    except UnauthorizedError:
        return None


async def get_current_admin_user(
    access_token: Optional[str] = Depends(get_access_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> AuthUser:
    """
    Gate for every back office route.

    Returns:
        Admin AuthUser

    Raises:
        SignInRequiredError: If nobody is signed in (401, points at /auth?redirect=admin)
        AdminAccessDeniedError: If the signed-in user is not an admin (403)
    """
    if not access_token:
        raise SignInRequiredError()

    try:
        current_user = await auth_service.get_current_user(access_token)
    except UnauthorizedError:
        raise SignInRequiredError()

    if not await auth_service.is_admin(current_user):
        raise AdminAccessDeniedError()

    return current_user


async def get_optional_admin_flag(
    current_user: Optional[AuthUser] = Depends(get_optional_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> bool:
    """Whether the caller is a signed-in admin; never raises."""
    if current_user is None:
        return False
    return await auth_service.is_admin(current_user)
