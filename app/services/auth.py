"""
Authentication service for sign-in, sign-up, session management and admin status.
Account flows are delegated to the managed backend's auth API; this service
shapes its responses and maps its failures onto API errors.
"""

from typing import Optional, Dict, Any
from postgrest.exceptions import APIError
from supabase import AsyncClient, AuthApiError, AuthError
from app.models.user import AuthUser, Profile
from app.repositories.profile import ProfileRepository
from app.utils.auth import verify_token
from app.utils.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    ValidationError,
    ConflictError,
    BadRequestError
)
from app.config import settings
from jose import ExpiredSignatureError, JWTError
import logging

logger = logging.getLogger(__name__)


def _auth_message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error)


class AuthService:
    """
    Authentication service for managing sessions and admin privilege.
    The backend client should be scoped to the caller's token so the
    admin-status procedure sees who is asking.
    """

    def __init__(self, client: AsyncClient):
        self.client = client
        self.profile_repo = ProfileRepository(client)

    @staticmethod
    def _session_payload(session: Any, user: AuthUser) -> Dict[str, Any]:
        """Shape a backend session for the SessionResponse schema."""
        return {
            "user": user.to_dict(),
            "access_token": session.access_token,
            "refresh_token": session.refresh_token,
            "token_type": "bearer",
            "expires_in": getattr(session, "expires_in", None),
        }

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """
        Sign in with email and password.

        Args:
            email: User's email address
            password: Plain text password

        Returns:
            Session payload with user identity and tokens

        Raises:
            InvalidCredentialsError: If the backend rejects the credentials
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        try:
            response = await self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthApiError as e:
            logger.warning(f"Failed sign-in attempt for email: {email} ({_auth_message(e)})")
            raise InvalidCredentialsError()

        if response is None or response.session is None or response.user is None:
            logger.warning(f"Sign-in for {email} returned no session")
            raise InvalidCredentialsError()

        user = AuthUser.from_backend(response.user, response.session.access_token)
        logger.info(f"User signed in: {user.email}")
        return self._session_payload(response.session, user)

    async def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Register a new account.

        The backend withholds the session until the email address is confirmed
        when confirmation is enabled for the project.

        Returns:
            Dictionary matching SignUpResponse

        Raises:
            ConflictError: If the email is already registered
            BadRequestError: If the backend rejects the sign-up
        """
        credentials: Dict[str, Any] = {"email": email, "password": password}
        if full_name:
            credentials["options"] = {"data": {"full_name": full_name}}

        try:
            response = await self.client.auth.sign_up(credentials)
        except AuthApiError as e:
            message = _auth_message(e)
            logger.warning(f"Sign-up rejected for {email}: {message}")
            if "already" in message.lower():
                raise ConflictError("An account with this email already exists")
            raise BadRequestError(message)

        user = AuthUser.from_backend(response.user) if response.user else None
        session = response.session

        if session is None:
            logger.info(f"User signed up, awaiting email confirmation: {email}")
            return {
                "user": user.to_dict() if user else None,
                "session": None,
                "requires_confirmation": True,
                "message": "Check your email to confirm your account",
            }

        user = AuthUser.from_backend(response.user, session.access_token)
        logger.info(f"User signed up: {email}")
        return {
            "user": user.to_dict(),
            "session": self._session_payload(session, user),
            "requires_confirmation": False,
            "message": "Account created successfully",
        }

    async def sign_out(self, access_token: str) -> None:
        """
        Revoke the session behind an access token.
        Sign-out is best effort; a token the backend no longer knows is already signed out.
        """
        try:
            await self.client.auth.admin.sign_out(access_token)
            logger.info("User signed out")
        except AuthError as e:
            logger.warning(f"Sign-out failed: {_auth_message(e)}")

    async def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """
        Exchange a refresh token for a new session.

        Raises:
            InvalidTokenError: If the refresh token is invalid or already used
        """
        try:
            response = await self.client.auth.refresh_session(refresh_token)
        except AuthError as e:
            logger.warning(f"Session refresh failed: {_auth_message(e)}")
            raise InvalidTokenError("Invalid refresh token")

        if response is None or response.session is None or response.user is None:
            raise InvalidTokenError("Invalid refresh token")

        user = AuthUser.from_backend(response.user, response.session.access_token)
        return self._session_payload(response.session, user)

    async def get_current_user(self, token: str) -> AuthUser:
        """
        Resolve the user behind an access token.

        The token is decoded locally when the JWT secret is configured,
        otherwise the backend is asked.

        Raises:
            TokenExpiredError: If the token is expired
            InvalidTokenError: If the token is invalid
        """
        if settings.verifies_tokens_locally:
            try:
                payload = verify_token(token)
            except ExpiredSignatureError:
                raise TokenExpiredError()
            except JWTError as e:
                raise InvalidTokenError(str(e))
            return AuthUser.from_backend(payload.to_user_dict(), token)

        try:
            response = await self.client.auth.get_user(token)
        except AuthApiError as e:
            message = _auth_message(e)
            if "expired" in message.lower():
                raise TokenExpiredError()
            raise InvalidTokenError(message)

        if response is None or response.user is None:
            raise InvalidTokenError()

        return AuthUser.from_backend(response.user, token)

    async def get_profile(self, user: AuthUser) -> Optional[Profile]:
        """
        Profile row of a user.
        Returns None when the row is missing or the caller may not read it.
        """
        try:
            return await self.profile_repo.get_profile(user.id)
        except (APIError, ValueError) as e:
            logger.warning(f"Profile lookup failed for user {user.id}: {e}")
            return None

    async def get_user_details(self, user: AuthUser) -> Dict[str, Any]:
        """
        Identity for the header, enriched with the profile row when one is readable.
        The profile role is informational; admin access is decided by is_admin.
        """
        details = user.to_dict()
        profile = await self.get_profile(user)
        if profile is None:
            return details

        if not details["full_name"] and profile.full_name:
            details["full_name"] = profile.full_name
            details["display_name"] = profile.full_name
        details.update(
            role=profile.role.value,
            phone=profile.phone,
            avatar_url=profile.avatar_url,
        )
        return details

    async def is_admin(self, user: Optional[AuthUser]) -> bool:
        """
        Check whether a user holds admin privilege.

        The admin-status procedure is the only source of truth.
        Any failure counts as not admin.
        """
        if user is None:
            return False
        try:
            is_admin = await self.profile_repo.get_admin_status()
        except Exception as e:
            logger.warning(f"Admin check failed for user {user.id}, denying access: {e}")
            return False

        if not is_admin:
            logger.info(f"Admin access denied for user {user.id}")
        return is_admin
