"""
Supabase client utility.
This module manages the async Supabase client used as the remote journal store.
"""
import asyncio
import logging
from typing import Optional

from supabase import AsyncClient, acreate_client

logger = logging.getLogger(__name__)


class SupabaseManager:
    """Lazily creates and holds the async Supabase client.

    One manager is created by the application factory and handed to the
    components that need it; there is no module-level client.
    """

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None,
                 client: Optional[AsyncClient] = None):
        """Initialize the manager.

        Args:
            url: Supabase project URL.
            key: Supabase anon key. Row level security keeps users apart.
            client: Already created client, used instead of creating one.
        """
        self.url = url
        self.key = key
        self._client = client
        self._lock: Optional[asyncio.Lock] = None

        if client is None and not self.is_available():
            logger.warning("Supabase URL or key not set. Journal sync runs in local-only mode.")

    def is_available(self) -> bool:
        """Check if a remote store is configured.

        Returns:
            bool: True if Supabase is configured, False otherwise.
        """
        return self._client is not None or bool(self.url and self.key)

    async def get_client(self) -> AsyncClient:
        """Get the Supabase client, creating it on first use.

        Raises:
            ValueError: If Supabase is not configured.
        """
        if self._client is not None:
            return self._client

        if not self.is_available():
            raise ValueError("Supabase client not configured")

        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            if self._client is None:
                logger.info(f"Initializing Supabase client with URL: {self.url[:10]}...")
                self._client = await acreate_client(self.url, self.key)
                logger.info("Supabase client initialized successfully")
        return self._client

    async def table(self, table_name: str):
        """Get a query builder for a table.

        Args:
            table_name: The name of the table to query.

        Returns:
            Query builder for further operations.
        """
        client = await self.get_client()
        return client.table(table_name)
