"""
Authentication API endpoints for sign-in, sign-up, sessions and admin status.
Account flows are handled by the managed backend's auth service.
"""

from fastapi import APIRouter, Depends, Response, status
from app.models.user import AuthUser
from app.services.auth import AuthService
from app.schemas.auth import (
    SignInRequest,
    SignUpRequest,
    RefreshTokenRequest,
    SessionResponse,
    SignUpResponse,
    CurrentUserResponse,
    AdminStatusResponse
)
from app.schemas.error import get_auth_error_responses, get_error_responses
from app.utils.dependencies import (
    get_access_token,
    get_auth_service,
    get_public_auth_service,
    get_current_user,
    get_optional_current_user
)
from app.utils.exceptions import SignInRequiredError, UnauthorizedError
from app.config import settings
from typing import Optional


router = APIRouter(prefix="/auth", tags=["Authentication"])


def _set_session_cookie(response: Response, session: dict) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session["access_token"],
        max_age=session.get("expires_in"),
        httponly=True,
        secure=settings.is_production,
        samesite="lax"
    )


@router.post(
    "/sign-in",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign in",
    description="Sign in with email and password. Returns backend session tokens and sets the session cookie.",
    responses=get_error_responses(401, 422, 502)
)
async def sign_in(
    credentials: SignInRequest,
    response: Response,
    auth_service: AuthService = Depends(get_public_auth_service)
) -> SessionResponse:
    """
    Sign in and return the session.

    Args:
        credentials: Email and password
        response: Outgoing response, used to set the session cookie
        auth_service: Authentication service

    Returns:
        Session with user info and tokens

    Raises:
        InvalidCredentialsError: If credentials are invalid
    """
    session = await auth_service.sign_in(credentials.email, credentials.password)
    _set_session_cookie(response, session)
    return SessionResponse.model_validate(session)


@router.post(
    "/sign-up",
    response_model=SignUpResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create account",
    description="Register a new account. When email confirmation is required no session is returned.",
    responses=get_error_responses(400, 409, 422, 502)
)
async def sign_up(
    registration: SignUpRequest,
    response: Response,
    auth_service: AuthService = Depends(get_public_auth_service)
) -> SignUpResponse:
    """Register a new account."""
    result = await auth_service.sign_up(
        registration.email,
        registration.password,
        full_name=registration.full_name
    )
    if result["session"]:
        _set_session_cookie(response, result["session"])
    return SignUpResponse.model_validate(result)


@router.post(
    "/refresh",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh session",
    description="Exchange a refresh token for a new session",
    responses=get_error_responses(401, 422)
)
async def refresh_session(
    refresh_data: RefreshTokenRequest,
    response: Response,
    auth_service: AuthService = Depends(get_public_auth_service)
) -> SessionResponse:
    """
    Create a new session from a refresh token.

    Raises:
        InvalidTokenError: If refresh token is invalid
    """
    session = await auth_service.refresh(refresh_data.refresh_token)
    _set_session_cookie(response, session)
    return SessionResponse.model_validate(session)


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    description="Get the signed-in user's identity, metadata and profile",
    responses=get_error_responses(401)
)
async def get_current_user_info(
    current_user: AuthUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> CurrentUserResponse:
    """
    Get current authenticated user information.

    Args:
        current_user: Current authenticated user
        auth_service: Authentication service

    Returns:
        Current user information, with profile fields when the profile is readable
    """
    details = await auth_service.get_user_details(current_user)
    return CurrentUserResponse.model_validate(details)


@router.get(
    "/admin-status",
    response_model=AdminStatusResponse,
    status_code=status.HTTP_200_OK,
    summary="Check admin privilege",
    description="Whether the caller may use the back office. Anonymous callers get 401 with the sign-in URL.",
    responses=get_auth_error_responses()
)
async def get_admin_status(
    current_user: Optional[AuthUser] = Depends(get_optional_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> AdminStatusResponse:
    """
    Report the caller's admin flag.

    Raises:
        SignInRequiredError: If nobody is signed in
    """
    if current_user is None:
        raise SignInRequiredError()

    is_admin = await auth_service.is_admin(current_user)
    return AdminStatusResponse(is_admin=is_admin, user_id=current_user.id)


@router.post(
    "/sign-out",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out",
    description="Revoke the session and clear the session cookie"
)
async def sign_out(
    access_token: Optional[str] = Depends(get_access_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Response:
    """
    Sign out.

    Raises:
        UnauthorizedError: If no session token was sent
    """
    if not access_token:
        raise UnauthorizedError("Authentication token required")

    await auth_service.sign_out(access_token)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.session_cookie_name)
    return response
