"""
User identity service.

Issues a stable, opaque user identifier without any server round trip. The
identifier is the tenant key for both the local and the remote store; it is
not backed by a verified account.

Identifiers look like ``1735123456789_12345`` (creation time in milliseconds,
an underscore, and a random number). Collisions are unlikely, not impossible.
"""
import asyncio
import logging
import random
import time
from typing import Optional

from ..storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

USER_ID_STORAGE_KEY = 'innerflow_user_id'
IDENTITY_LOCK_KEY = 'innerflow_user_id_lock'
DEFAULT_POLL_INTERVAL = 0.1
DEFAULT_LOCK_TIMEOUT = 3.0


def generate_user_id() -> str:
    timestamp = int(time.time() * 1000)
    suffix = random.randint(0, 99999)
    return f"{timestamp}_{suffix}"


class IdentityProvider:
    """Get or create the locally persisted user identifier.

    Creation is guarded by an advisory lock stored next to the identifier, so
    two processes sharing the same storage do not both mint an identifier. A
    waiter gives up after ``lock_timeout`` seconds and creates one anyway:
    a duplicate identity is acceptable, a deadlock is not.
    """

    def __init__(self, kv_store: KeyValueStore,
                 storage_key: str = USER_ID_STORAGE_KEY,
                 lock_key: str = IDENTITY_LOCK_KEY,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.kv_store = kv_store
        self.storage_key = storage_key
        self.lock_key = lock_key
        self.poll_interval = poll_interval
        self.lock_timeout = lock_timeout
        # Identifier minted while storage refused writes, kept for this process
        self._unsaved_user_id: Optional[str] = None

    def get_user_id(self) -> Optional[str]:
        """Get the stored identifier without creating one.

        Returns:
            The identifier, or None if none is stored or storage is unavailable.
            An identifier that could not be persisted is returned for the
            lifetime of this provider.
        """
        user_id = self.kv_store.get(self.storage_key)
        if user_id and user_id.strip():
            return user_id
        return self._unsaved_user_id

    def _lock_is_held(self) -> bool:
        taken_at = self.kv_store.get(self.lock_key)
        if not taken_at:
            return False
        try:
            age = time.time() - int(taken_at) / 1000
        except ValueError:
            return False
        # A lock older than the timeout belongs to a process that went away
        return 0 <= age < self.lock_timeout

    async def _wait_for_other_creator(self) -> Optional[str]:
        waited = 0.0
        while waited < self.lock_timeout:
            await asyncio.sleep(self.poll_interval)
            waited += self.poll_interval
            user_id = self.get_user_id()
            if user_id:
                return user_id
            if not self._lock_is_held():
                return None
        logger.warning(f"Identity lock still held after {self.lock_timeout}s, proceeding without it")
        self.kv_store.remove(self.lock_key)
        return None

    async def get_or_create_user_id(self) -> str:
        """Get the stored identifier, creating and persisting one if needed.

        Returns:
            The user identifier. Never raises; if storage is unavailable the
            new identifier is returned without being persisted.
        """
        user_id = self.get_user_id()
        if user_id:
            return user_id

        if self._lock_is_held():
            logger.info("Another process is creating the user id, waiting")
            user_id = await self._wait_for_other_creator()
            if user_id:
                logger.info("Reusing user id created by another process")
                return user_id

        self.kv_store.set(self.lock_key, str(int(time.time() * 1000)))
        try:
            # Another creator may have finished while the lock was being taken
            user_id = self.get_user_id()
            if user_id:
                return user_id

            user_id = generate_user_id()
            if not self.kv_store.set(self.storage_key, user_id):
                logger.warning("Could not persist new user id, it will not survive a restart")
                self._unsaved_user_id = user_id
            logger.info(f"Created new user id: {user_id}")
            return user_id
        finally:
            self.kv_store.remove(self.lock_key)

    def clear_user_id(self) -> None:
        """Forget the identifier. Data stored remotely under it becomes unreachable."""
        self.kv_store.remove(self.storage_key)
        self._unsaved_user_id = None
        logger.info("Cleared user id")
