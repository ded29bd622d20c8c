"""
Pydantic schemas for authentication requests and responses.
Handles sign-in, sign-up, session refresh and the current user.
"""

from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional, Dict, Any


class SignInRequest(BaseModel):
    """Sign-in request schema."""

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["buyer@example.com"]
    )
    password: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="User's password",
        examples=["securepassword123"]
    )

    @validator('email')
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()


class SignUpRequest(SignInRequest):
    """Sign-up request schema."""

    password: str = Field(
        ...,
        min_length=6,
        max_length=128,
        description="New password (minimum 6 characters)",
        examples=["securepassword123"]
    )
    full_name: Optional[str] = Field(
        None,
        max_length=255,
        description="Name stored in the account metadata",
        examples=["Jane Wanjiku"]
    )

    @validator('full_name')
    def strip_full_name(cls, v):
        if v is None:
            return v
        return v.strip() or None


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str = Field(
        ...,
        min_length=1,
        description="Refresh token issued at sign-in"
    )


class CurrentUserResponse(BaseModel):
    """Signed-in user as shown in the header."""

    id: str = Field(..., examples=["123e4567-e89b-12d3-a456-426614174000"])
    email: Optional[str] = Field(None, examples=["buyer@example.com"])
    full_name: Optional[str] = None
    display_name: str = Field(..., description="Full name, else the email local part")
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    role: Optional[str] = Field(None, description="Profile role, when the profile is readable", examples=["user"])
    phone: Optional[str] = None
    avatar_url: Optional[str] = None


class SessionResponse(BaseModel):
    """Complete sign-in response schema."""

    user: CurrentUserResponse
    access_token: str = Field(
        ...,
        description="Backend access token",
        examples=["eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."]
    )
    refresh_token: str = Field(..., description="Backend refresh token")
    token_type: str = Field(default="bearer", examples=["bearer"])
    expires_in: Optional[int] = Field(
        None,
        description="Access token lifetime in seconds",
        examples=[3600]
    )


class SignUpResponse(BaseModel):
    """Sign-up outcome. No session is issued until the email is confirmed."""

    user: Optional[CurrentUserResponse] = None
    session: Optional[SessionResponse] = None
    requires_confirmation: bool = Field(
        ...,
        description="True when the account must be confirmed by email before signing in"
    )
    message: str = Field(..., examples=["Check your email to confirm your account"])


class AdminStatusResponse(BaseModel):
    """Whether the caller may use the back office."""

    is_admin: bool
    user_id: Optional[str] = None
    sign_in_url: Optional[str] = Field(
        None,
        description="Where to send the browser when nobody is signed in",
        examples=["/auth?redirect=admin"]
    )
