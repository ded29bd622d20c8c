"""
Profile repository: the profiles table and the admin-status remote procedure.
"""

from supabase import AsyncClient
from app.repositories.base import BaseRepository
from app.models.user import Profile
from app.config import settings
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)


def coerce_admin_flag(data: Any) -> bool:
    """
    Normalize the admin-status RPC result.

    The procedure may answer with a scalar, a one-element list, or null.
    Only a literal True grants admin.
    """
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict):
        # Set-returning variants wrap the flag in a row
        data = next(iter(data.values()), None) if len(data) == 1 else None
    return data is True


class ProfileRepository(BaseRepository):
    """Repository for user profiles."""

    def __init__(self, client: AsyncClient):
        super().__init__(client, settings.profiles_table)

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        """Get the profile row of a user, if one exists."""
        row = await self.get_by_id(user_id)
        return Profile.from_row(row) if row else None

    async def get_admin_status(self) -> bool:
        """
        Ask the backend whether the caller is an admin.
        The client must carry the caller's token; the procedure reads it server-side.

        Raises:
            APIError: If the procedure call fails
        """
        try:
            response = await self.client.rpc(settings.admin_status_rpc, {}).execute()
            is_admin = coerce_admin_flag(response.data)
            logger.debug(f"Admin status RPC returned {response.data!r}")
            return is_admin
        except Exception as e:
            logger.error(f"Admin status RPC {settings.admin_status_rpc} failed: {e}")
            raise
