"""
Access token utilities.
Decodes backend-issued JWTs locally when the project's JWT secret is configured.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from jose import ExpiredSignatureError, JWTError, jwt
from app.config import settings


class TokenPayload:
    """Claims of a backend access token."""

    def __init__(
        self,
        user_id: str,
        email: Optional[str],
        role: Optional[str],
        exp: datetime,
        user_metadata: Optional[Dict[str, Any]] = None
    ):
        self.user_id = user_id
        self.email = email
        self.role = role
        self.exp = exp
        self.user_metadata = user_metadata or {}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from decoded claims."""
        return cls(
            user_id=data["sub"],
            email=data.get("email"),
            role=data.get("role"),  # Postgres role, "authenticated" for signed-in users
            exp=datetime.fromtimestamp(data["exp"], tz=timezone.utc),
            user_metadata=data.get("user_metadata")
        )

    def to_user_dict(self) -> Dict[str, Any]:
        """Shape the claims like a backend user record."""
        return {
            "id": self.user_id,
            "email": self.email,
            "user_metadata": self.user_metadata,
        }


def verify_token(token: str, secret: Optional[str] = None) -> TokenPayload:
    """
    Verify and decode a backend access token.

    Args:
        token: JWT access token string
        secret: Signing secret, defaults to SUPABASE_JWT_SECRET

    Returns:
        TokenPayload with the token claims

    Raises:
        ExpiredSignatureError: If the token has expired
        JWTError: If the token is invalid or the secret is not configured
    """
    secret = secret or settings.supabase_jwt_secret
    if not secret:
        raise JWTError("JWT secret is not configured")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.supabase_jwt_audience
        )
    except ExpiredSignatureError:
        raise
    except JWTError:
        raise
    except Exception as e:
        raise JWTError(f"Token validation error: {str(e)}")

    if not payload.get("sub") or "exp" not in payload:
        raise JWTError("Invalid token payload")

    return TokenPayload.from_dict(payload)
