"""
Storefront Sync - Credential Store Tests
Tests for credential persistence, validity checks and OAuth state storage.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from storefront_sync.app.auth.credentials import CredentialStore
from storefront_sync.app.core.exceptions import PersistenceError
from storefront_sync.app.schemas.models import PlatformCredentials
from storefront_sync.app.storage.kv_store import InMemoryKeyValueStore
from storefront_sync.app.utils.security import (
    CredentialCipher,
    generate_oauth_state,
    platform_from_state,
    states_match,
)

NOW = 1_700_000_000_000


class TestCredentialStore:
    """Test credential store behaviour."""

    @pytest.fixture
    def kv(self):
        return InMemoryKeyValueStore()

    @pytest.fixture
    def store(self, kv):
        return CredentialStore(kv, clock=lambda: NOW)

    @pytest.mark.asyncio
    async def test_store_and_get(self, store, kv):
        """Test that credentials round-trip with camelCase keys."""
        credentials = PlatformCredentials(access_token="tok", refresh_token="ref", expires_at=NOW + 1000)
        await store.store("etsy", credentials)

        raw = json.loads(await kv.get("etsy_credentials"))
        assert raw == {"accessToken": "tok", "refreshToken": "ref", "expiresAt": NOW + 1000}
        assert await store.get("etsy") == credentials

    @pytest.mark.asyncio
    async def test_store_replaces_previous_record(self, store):
        """Test that a second store overwrites the first."""
        await store.store("etsy", PlatformCredentials(api_key="first"))
        await store.store("etsy", PlatformCredentials(access_token="second"))

        credentials = await store.get("etsy")
        assert credentials.api_key is None
        assert credentials.access_token == "second"

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        """Test that unknown platforms have no credentials."""
        assert await store.get("ebay") is None

    @pytest.mark.asyncio
    async def test_get_malformed_record(self, store, kv):
        """Test that unparsable records read as absent."""
        await kv.set("etsy_credentials", "not json")
        assert await store.get("etsy") is None
        assert await store.is_valid("etsy") is False

    @pytest.mark.asyncio
    async def test_clear_is_idempotent(self, store):
        """Test clearing twice."""
        await store.store("etsy", PlatformCredentials(access_token="tok"))
        await store.clear("etsy")
        await store.clear("etsy")
        assert await store.get("etsy") is None

    @pytest.mark.asyncio
    async def test_is_valid_without_expiry(self, store):
        """Test that tokens without expiry never expire."""
        await store.store("square", PlatformCredentials(access_token="tok"))
        assert await store.is_valid("square") is True

    @pytest.mark.asyncio
    async def test_is_valid_expiry_boundary(self, store):
        """Test that a token expiring exactly now is expired."""
        await store.store("square", PlatformCredentials(access_token="tok", expires_at=NOW))
        assert await store.is_valid("square") is False

        await store.store("square", PlatformCredentials(access_token="tok", expires_at=NOW + 1))
        assert await store.is_valid("square") is True

    @pytest.mark.asyncio
    async def test_is_valid_requires_access_token(self, store):
        """Test that API-key-only records are not authenticated."""
        await store.store("amazon", PlatformCredentials(api_key="key", api_secret="secret"))
        assert await store.is_valid("amazon") is False

    @pytest.mark.asyncio
    async def test_store_failure_raises(self, store, kv):
        """Test that write failures are surfaced."""
        with patch.object(kv, "set", AsyncMock(side_effect=PersistenceError("quota exceeded"))):
            with pytest.raises(PersistenceError, match="Failed to store credentials"):
                await store.store("etsy", PlatformCredentials(access_token="tok"))

    @pytest.mark.asyncio
    async def test_encrypted_records(self, kv):
        """Test at-rest encryption with a cipher."""
        cipher = CredentialCipher()
        store = CredentialStore(kv, cipher=cipher, clock=lambda: NOW)
        await store.store("etsy", PlatformCredentials(access_token="secret-token"))

        assert "secret-token" not in await kv.get("etsy_credentials")
        assert (await store.get("etsy")).access_token == "secret-token"

        other = CredentialStore(kv, cipher=CredentialCipher(), clock=lambda: NOW)
        assert await other.get("etsy") is None

    @pytest.mark.asyncio
    async def test_oauth_state_lifecycle(self, store, kv):
        """Test storing, reading and clearing the state nonce."""
        await store.store_oauth_state("etsy", "etsy_abc")
        assert await kv.get("etsy_oauth_state") == "etsy_abc"
        assert await store.get_oauth_state("etsy") == "etsy_abc"

        await store.clear_oauth_state("etsy")
        assert await store.get_oauth_state("etsy") is None


class TestOAuthStateHelpers:
    """Test state generation and comparison helpers."""

    def test_generate_state_has_platform_prefix(self):
        """Test the state format."""
        state = generate_oauth_state("tiktok")
        assert state.startswith("tiktok_")
        assert platform_from_state(state) == "tiktok"

    def test_states_are_unique(self):
        """Test that two flows get different states."""
        assert generate_oauth_state("etsy") != generate_oauth_state("etsy")

    def test_platform_from_empty_state(self):
        """Test prefix parsing without a state."""
        assert platform_from_state(None) == ""
        assert platform_from_state("") == ""

    def test_states_match(self):
        """Test constant-time comparison."""
        assert states_match("etsy_abc", "etsy_abc") is True
        assert states_match("etsy_abc", "etsy_abd") is False
        assert states_match(None, "etsy_abc") is False
        assert states_match("etsy_abc", None) is False
