"""
Storefront Sync - OAuth Token Clients

Clients that turn an authorization code or refresh token into platform tokens.
``SimulatedTokenClient`` issues mock tokens without network access, matching
the dashboard's demo behaviour. ``HttpTokenClient`` performs the standard
OAuth 2.0 grants against a platform's token endpoint.
"""

import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from ..core.exceptions import TokenExchangeError
from ..schemas.models import Platform

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600  # 1 hour


@dataclass
class TokenResponse:
    """Tokens returned by a platform token endpoint."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = DEFAULT_EXPIRES_IN


class TokenClient(ABC):
    """Exchanges grants for tokens at a platform token endpoint."""

    @abstractmethod
    async def exchange_code(self, platform: Platform, code: str, redirect_uri: str) -> TokenResponse:
        """Exchange an authorization code for tokens."""

    @abstractmethod
    async def refresh(self, platform: Platform, refresh_token: str) -> TokenResponse:
        """Obtain a new access token from a refresh token."""


class SimulatedTokenClient(TokenClient):
    """Issues mock tokens without contacting the platform."""

    def __init__(self, expires_in: int = DEFAULT_EXPIRES_IN):
        self.expires_in = expires_in

    async def exchange_code(self, platform: Platform, code: str, redirect_uri: str) -> TokenResponse:
        return TokenResponse(
            access_token=f"mock_access_token_{platform.id}_{secrets.token_hex(8)}",
            refresh_token=f"mock_refresh_token_{platform.id}_{secrets.token_hex(8)}",
            expires_in=self.expires_in,
        )

    async def refresh(self, platform: Platform, refresh_token: str) -> TokenResponse:
        return TokenResponse(
            access_token=f"refreshed_access_token_{platform.id}_{secrets.token_hex(8)}",
            refresh_token=refresh_token,
            expires_in=self.expires_in,
        )


class HttpTokenClient(TokenClient):
    """
    OAuth 2.0 token endpoint client.

    Posts form-encoded ``authorization_code`` and ``refresh_token`` grants to
    the platform's ``token_url`` using the configured client credentials.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: Optional[str] = None,
        timeout_seconds: int = 30,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize HTTP token client.

        Args:
            client_id: OAuth client id registered with the platforms
            client_secret: OAuth client secret
            timeout_seconds: Total request timeout
            session: Optional shared aiohttp session
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.session = session

    async def exchange_code(self, platform: Platform, code: str, redirect_uri: str) -> TokenResponse:
        return await self._request_token(platform, {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        })

    async def refresh(self, platform: Platform, refresh_token: str) -> TokenResponse:
        response = await self._request_token(platform, {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })
        if not response.refresh_token:
            response.refresh_token = refresh_token
        return response

    async def _request_token(self, platform: Platform, form: Dict[str, str]) -> TokenResponse:
        """
        Post a grant to the platform token endpoint.

        Raises:
            TokenExchangeError: For HTTP errors or malformed responses
        """
        if not platform.token_url:
            raise TokenExchangeError(f"Token URL for {platform.name} is not configured")

        form = {**form, "client_id": self.client_id}
        if self.client_secret:
            form["client_secret"] = self.client_secret

        session = self.session or aiohttp.ClientSession(timeout=self.timeout)
        try:
            async with session.post(platform.token_url, data=form, headers={"Accept": "application/json"}) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    logger.error(f"Token endpoint for {platform.id} returned {response.status}: {error_text}")
                    raise TokenExchangeError(f"Token request failed with status {response.status}")
                payload: Dict[str, Any] = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Token request to {platform.id} failed: {e}")
            raise TokenExchangeError(f"Could not reach token endpoint for {platform.name}") from e
        finally:
            if self.session is None:
                await session.close()

        access_token = payload.get("access_token")
        if not access_token:
            raise TokenExchangeError(f"No access token returned by {platform.name}")

        return TokenResponse(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            expires_in=int(payload.get("expires_in") or DEFAULT_EXPIRES_IN),
        )


def create_token_client(settings) -> TokenClient:
    """
    Create the token client selected by configuration.

    Args:
        settings: Library settings

    Returns:
        TokenClient instance
    """
    if settings.token_client == "http":
        return HttpTokenClient(
            client_id=settings.oauth_client_id,
            client_secret=settings.oauth_client_secret,
            timeout_seconds=settings.http_timeout_seconds,
        )

    if settings.token_client != "simulated":
        logger.warning(f"Unknown token client {settings.token_client!r}, using simulated tokens")
    return SimulatedTokenClient(expires_in=settings.token_ttl_seconds)
