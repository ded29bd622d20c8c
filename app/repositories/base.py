"""
Base repository class with common CRUD operations over a managed backend table.
Provides generic table operations that can be extended by specific repositories.
"""

from supabase import AsyncClient
from typing import Optional, List, Dict, Any
import logging

logger = logging.getLogger(__name__)


class BaseRepository:
    """
    Base repository class providing common CRUD operations.
    Rows are plain dictionaries as returned by the backend's REST layer.
    Backend failures (``postgrest.exceptions.APIError``) are logged and re-raised.
    """

    def __init__(self, client: AsyncClient, table_name: str):
        """
        Initialize repository with a backend client and table name.

        Args:
            client: Backend client, anonymous or scoped to the caller's token
            table_name: Name of the backend table
        """
        self.client = client
        self.table_name = table_name

    def table(self):
        """Start a new query against the repository's table."""
        return self.client.table(self.table_name)

    async def create(self, obj_in: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new row.

        Args:
            obj_in: Dictionary of column values for the new row

        Returns:
            The inserted row, including backend-generated columns

        Raises:
            APIError: If the backend rejects the insert
        """
        try:
            response = await self.table().insert(obj_in).execute()
            row = response.data[0]
            logger.debug(f"Created {self.table_name} row with id: {row.get('id')}")
            return row
        except Exception as e:
            logger.error(f"Failed to create {self.table_name} row: {e}")
            raise

    async def get_by_id(self, id: str) -> Optional[Dict[str, Any]]:
        """
        Get a row by its ID.

        Args:
            id: ID of the row to retrieve

        Returns:
            Row if found, None otherwise
        """
        try:
            response = await self.table().select("*").eq("id", str(id)).limit(1).execute()
            rows = response.data or []

            if rows:
                logger.debug(f"Retrieved {self.table_name} row with id: {id}")
                return rows[0]

            logger.debug(f"{self.table_name} row with id {id} not found")
            return None
        except Exception as e:
            logger.error(f"Failed to get {self.table_name} row by id {id}: {e}")
            raise

    async def get_multi(
        self,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "-created_at"
    ) -> List[Dict[str, Any]]:
        """
        Get multiple rows with optional equality filters, pagination, and ordering.

        Args:
            skip: Number of rows to skip
            limit: Maximum number of rows to return
            filters: Column equality filters
            order_by: Column to order by (prefix with '-' for descending)

        Returns:
            List of rows
        """
        try:
            query = self.table().select("*")

            for field, value in (filters or {}).items():
                query = query.eq(field, value)

            descending = order_by.startswith('-')
            query = query.order(order_by.lstrip('-'), desc=descending)
            query = query.range(skip, skip + limit - 1)

            response = await query.execute()
            rows = response.data or []
            logger.debug(f"Retrieved {len(rows)} {self.table_name} rows")
            return rows
        except Exception as e:
            logger.error(f"Failed to get multiple {self.table_name} rows: {e}")
            raise

    async def update(self, id: str, obj_in: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update a row by its ID.

        Args:
            id: ID of the row to update
            obj_in: Column values to change

        Returns:
            Updated row if found, None otherwise

        Raises:
            APIError: If the backend rejects the update
        """
        if not obj_in:
            logger.warning(f"No data provided for updating {self.table_name} {id}")
            return await self.get_by_id(id)

        try:
            response = await self.table().update(obj_in).eq("id", str(id)).execute()
            rows = response.data or []

            if not rows:
                logger.debug(f"{self.table_name} row with id {id} not found for update")
                return None

            logger.debug(f"Updated {self.table_name} row with id: {id}")
            return rows[0]
        except Exception as e:
            logger.error(f"Failed to update {self.table_name} row {id}: {e}")
            raise

    async def delete(self, id: str) -> bool:
        """
        Delete a row by its ID.

        Returns:
            True if a row was deleted, False if not found
        """
        try:
            response = await self.table().delete().eq("id", str(id)).execute()
            deleted = bool(response.data)
            if deleted:
                logger.debug(f"Deleted {self.table_name} row with id: {id}")
            else:
                logger.debug(f"{self.table_name} row with id {id} not found for deletion")
            return deleted
        except Exception as e:
            logger.error(f"Failed to delete {self.table_name} row {id}: {e}")
            raise

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """
        Count rows with optional equality filters.

        Args:
            filters: Column equality filters

        Returns:
            Number of matching rows
        """
        try:
            query = self.table().select("id", count="exact")
            for field, value in (filters or {}).items():
                query = query.eq(field, value)

            # Only the exact count is needed, not the rows
            response = await query.limit(1).execute()
            count = response.count or 0
            logger.debug(f"Counted {count} {self.table_name} rows")
            return count
        except Exception as e:
            logger.error(f"Failed to count {self.table_name} rows: {e}")
            raise
