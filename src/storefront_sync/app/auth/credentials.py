"""
Storefront Sync - Credential Store
Persistence of per-platform credentials and OAuth state nonces.
"""

import logging
from typing import Callable, Optional

from pydantic import ValidationError

from ..core.exceptions import PersistenceError
from ..schemas.models import PlatformCredentials
from ..storage.kv_store import KeyValueStore
from ..utils.clock import now_millis
from ..utils.security import CredentialCipher

logger = logging.getLogger(__name__)


def credentials_key(platform_id: str) -> str:
    return f"{platform_id}_credentials"


def oauth_state_key(platform_id: str) -> str:
    return f"{platform_id}_oauth_state"


class CredentialStore:
    """
    Stores platform credentials keyed by platform id.

    ``is_valid`` is the single check every other component makes before
    calling a platform API.
    """

    def __init__(
        self,
        store: KeyValueStore,
        cipher: Optional[CredentialCipher] = None,
        clock: Callable[[], int] = now_millis,
    ):
        """
        Initialize credential store.

        Args:
            store: Backing key-value store
            cipher: Optional cipher for encrypting records at rest
            clock: Returns the current time in epoch milliseconds
        """
        self.kv_store = store
        self.cipher = cipher
        self.clock = clock

    async def store(self, platform_id: str, credentials: PlatformCredentials) -> None:
        """
        Persist credentials, replacing any previous record.

        Raises:
            PersistenceError: If the backing store rejects the write
        """
        payload = credentials.to_json()
        if self.cipher:
            payload = self.cipher.encrypt(payload)

        try:
            await self.kv_store.set(credentials_key(platform_id), payload)
        except PersistenceError as e:
            logger.error(f"Failed to store platform credentials for {platform_id}: {e}")
            raise PersistenceError("Failed to store credentials") from e

        logger.debug(f"Stored credentials for {platform_id}")

    async def get(self, platform_id: str) -> Optional[PlatformCredentials]:
        """Return the stored credentials, or None if absent or unreadable."""
        try:
            raw = await self.kv_store.get(credentials_key(platform_id))
        except PersistenceError as e:
            logger.error(f"Failed to retrieve platform credentials for {platform_id}: {e}")
            return None

        if raw is None:
            return None

        if self.cipher:
            raw = self.cipher.decrypt(raw)
            if raw is None:
                return None

        try:
            return PlatformCredentials.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Stored credentials for {platform_id} are malformed: {e}")
            return None

    async def clear(self, platform_id: str) -> None:
        """Remove stored credentials. Safe to call when none exist."""
        try:
            await self.kv_store.remove(credentials_key(platform_id))
        except PersistenceError as e:
            logger.error(f"Failed to clear platform credentials for {platform_id}: {e}")

    async def is_valid(self, platform_id: str) -> bool:
        """True iff credentials exist, carry an access token and have not expired."""
        credentials = await self.get(platform_id)
        if credentials is None:
            return False
        return credentials.is_authenticated(self.clock())

    async def store_oauth_state(self, platform_id: str, state: str) -> None:
        try:
            await self.kv_store.set(oauth_state_key(platform_id), state)
        except PersistenceError as e:
            logger.error(f"Failed to store OAuth state for {platform_id}: {e}")
            raise

    async def get_oauth_state(self, platform_id: str) -> Optional[str]:
        try:
            return await self.kv_store.get(oauth_state_key(platform_id))
        except PersistenceError as e:
            logger.error(f"Failed to read OAuth state for {platform_id}: {e}")
            return None

    async def clear_oauth_state(self, platform_id: str) -> None:
        try:
            await self.kv_store.remove(oauth_state_key(platform_id))
        except PersistenceError as e:
            logger.error(f"Failed to clear OAuth state for {platform_id}: {e}")
