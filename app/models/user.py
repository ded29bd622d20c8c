"""
User models for storefront accounts.
Identities come from the managed backend's auth service; profiles from the profiles table.
"""

from datetime import datetime
from typing import Any, Dict, Optional
import enum


class UserRole(str, enum.Enum):
    """Profile role flag."""
    USER = "user"
    ADMIN = "admin"


class AuthUser:
    """
    Signed-in user as reported by the backend auth service.
    Carries the access token so downstream calls run with the caller's row-level permissions.
    """

    def __init__(
        self,
        id: str,
        email: Optional[str] = None,
        user_metadata: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None,
    ):
        self.id = id
        self.email = email
        self.user_metadata = user_metadata or {}
        self.access_token = access_token

    def __repr__(self) -> str:
        """String representation of the user."""
        return f"<AuthUser(id={self.id}, email={self.email})>"

    @classmethod
    def from_backend(cls, user: Any, access_token: Optional[str] = None) -> "AuthUser":
        """
        Build from a backend auth user object or a decoded token payload.

        Args:
            user: supabase ``User`` object, or dict with ``id``/``sub`` keys
            access_token: Token the identity was obtained with

        Returns:
            AuthUser instance
        """
        if isinstance(user, dict):
            return cls(
                id=str(user.get("id") or user["sub"]),
                email=user.get("email"),
                user_metadata=user.get("user_metadata") or {},
                access_token=access_token,
            )
        return cls(
            id=str(user.id),
            email=getattr(user, "email", None),
            user_metadata=getattr(user, "user_metadata", None) or {},
            access_token=access_token,
        )

    @property
    def full_name(self) -> Optional[str]:
        return self.user_metadata.get("full_name")

    @property
    def display_name(self) -> str:
        """Name shown in the header greeting."""
        if self.full_name:
            return self.full_name
        if self.email:
            return self.email.split("@")[0]
        return "User"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "display_name": self.display_name,
            "user_metadata": dict(self.user_metadata),
        }


class Profile:
    """Row of the profiles table."""

    def __init__(
        self,
        id: str,
        email: str,
        role: UserRole = UserRole.USER,
        full_name: Optional[str] = None,
        phone: Optional[str] = None,
        avatar_url: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.email = email
        self.role = role
        self.full_name = full_name
        self.phone = phone
        self.avatar_url = avatar_url
        self.created_at = created_at
        self.updated_at = updated_at

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email={self.email}, role={self.role})>"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Profile":
        return cls(
            id=str(row["id"]),
            email=row.get("email") or "",
            role=UserRole(row.get("role") or UserRole.USER.value),
            full_name=row.get("full_name"),
            phone=row.get("phone"),
            avatar_url=row.get("avatar_url"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    @property
    def is_admin(self) -> bool:
        """Check if the profile carries the admin role."""
        return self.role == UserRole.ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role.value,
            "full_name": self.full_name,
            "phone": self.phone,
            "avatar_url": self.avatar_url,
        }
