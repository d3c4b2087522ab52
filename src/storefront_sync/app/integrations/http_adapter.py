"""
Storefront Sync - HTTP Platform Adapter Base

Shared session handling, authentication and retry behaviour for adapters
that talk to real platform REST APIs.
"""

import asyncio
import logging
from abc import abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..core.exceptions import PlatformApiError, PlatformRateLimitError
from ..storage.catalog import ProductCatalog
from .base import PlatformAdapter

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]


def is_transient_error(error: BaseException) -> bool:
    """Rate limits, server errors and transport failures are worth retrying."""
    if isinstance(error, PlatformRateLimitError):
        return True
    if isinstance(error, PlatformApiError):
        return error.status is None or error.status >= 500
    return False


class HttpPlatformAdapter(PlatformAdapter):
    """
    Base class for adapters backed by a platform REST API.

    Subclasses provide ``base_url`` and ``auth_headers``; requests go through
    ``_request`` which retries transient failures with exponential backoff.
    """

    def __init__(
        self,
        platform_id: str,
        token_provider: TokenProvider,
        catalog: ProductCatalog,
        timeout_seconds: int = 30,
        max_retries: int = 3,
        retry_wait=None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize HTTP adapter.

        Args:
            platform_id: Platform this adapter serves
            token_provider: Coroutine returning the current access token
            catalog: Local product catalog used for exports and SKU lookups
            timeout_seconds: Total timeout per request
            max_retries: Attempts per request before giving up
            retry_wait: tenacity wait strategy between attempts
            session: Optional shared aiohttp session
        """
        super().__init__(platform_id)
        self.token_provider = token_provider
        self.catalog = catalog
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.max_retries = max(1, max_retries)
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)
        self.session = session
        self._owns_session = session is None

    @property
    @abstractmethod
    def base_url(self) -> str:
        pass

    @abstractmethod
    def auth_headers(self, access_token: str) -> Dict[str, str]:
        pass

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=self.timeout,
                connector=aiohttp.TCPConnector(limit=100, limit_per_host=30),
            )
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        if self.session and self._owns_session and not self.session.closed:
            await self.session.close()
            logger.info(f"Closed HTTP session for {self.platform_id}")

    async def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """
        Make an API request, retrying transient failures.

        Args:
            method: HTTP method
            endpoint: Path relative to ``base_url``
            **kwargs: Additional aiohttp request parameters

        Returns:
            Decoded JSON response body

        Raises:
            PlatformApiError: When the request fails after all attempts
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self.retry_wait,
            retry=retry_if_exception(is_transient_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self._send(method, endpoint, **kwargs)

    async def _send(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        access_token = await self.token_provider()
        if not access_token:
            raise PlatformApiError(f"No access token available for {self.platform_name}", status=401)

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        session = await self._get_session()
        try:
            async with session.request(method, url, headers=self.auth_headers(access_token), **kwargs) as response:
                if response.status == 429:
                    logger.warning(f"{self.platform_name} rate limited request to {endpoint}")
                    raise PlatformRateLimitError(f"{self.platform_name} API rate limit exceeded", status=429)

                if response.status >= 400:
                    error_text = await response.text()
                    logger.error(f"{self.platform_name} API error {response.status}: {error_text}")
                    raise PlatformApiError(f"{self.platform_name} API error: {response.status}", status=response.status)

                if response.status == 204:
                    return {}
                return await response.json(content_type=None) or {}

        except asyncio.TimeoutError as e:
            logger.warning(f"Request to {self.platform_name} timed out: {endpoint}")
            raise PlatformApiError(f"Request to {self.platform_name} timed out") from e
        except aiohttp.ClientError as e:
            logger.error(f"Client error calling {self.platform_name}: {e}")
            raise PlatformApiError(f"Could not reach {self.platform_name}: {e}") from e
