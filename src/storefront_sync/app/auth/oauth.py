"""
Storefront Sync - OAuth Flow Manager

Drives the authorization-code flow used to connect a selling platform:
building the authorization URL, tracking the pending state nonce, handling
the provider redirect, exchanging the code for tokens and refreshing them.

Each connection attempt moves through
``idle -> authorizing -> exchanging -> connected | failed``.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

from ..core.exceptions import (
    AuthorizationError,
    ConfigurationError,
    MissingCodeError,
    StateMismatchError,
    StorefrontSyncError,
    TokenExchangeError,
)
from ..schemas.models import OAuthCallbackResult, Platform, PlatformCredentials
from ..schemas.platforms import platform_display_name
from ..utils.clock import now_millis
from ..utils.security import generate_oauth_state, platform_from_state, states_match
from .credentials import CredentialStore
from .token_client import SimulatedTokenClient, TokenClient

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/oauth-callback"


class OAuthFlowState(str, Enum):
    """State of a platform connection attempt."""
    IDLE = "idle"
    AUTHORIZING = "authorizing"
    EXCHANGING = "exchanging"
    CONNECTED = "connected"
    FAILED = "failed"


class OAuthFlowManager:
    """
    Manages OAuth connection attempts for all platforms.
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        platforms: Mapping[str, Platform],
        token_client: Optional[TokenClient] = None,
        client_id: str = "DEMO_CLIENT_ID",
        redirect_base_url: str = "http://localhost:3000",
        verify_state: bool = True,
        url_opener: Optional[Callable[[str], Any]] = None,
        clock: Callable[[], int] = now_millis,
    ):
        """
        Initialize OAuth flow manager.

        Args:
            credential_store: Where tokens and state nonces are persisted
            platforms: Known platforms by id, used to resolve callbacks
            token_client: Client performing code exchange and refresh
            client_id: OAuth client id sent in authorization URLs
            redirect_base_url: Origin used for the default redirect URI
            verify_state: Reject callbacks whose state does not match the pending nonce
            url_opener: Non-blocking callable that presents the authorization URL to the user
            clock: Returns the current time in epoch milliseconds
        """
        self.credential_store = credential_store
        self.platforms = platforms
        self.token_client = token_client or SimulatedTokenClient()
        self.client_id = client_id
        self.redirect_base_url = redirect_base_url.rstrip("/")
        self.verify_state = verify_state
        self.url_opener = url_opener
        self.clock = clock
        self._flow_states: Dict[str, OAuthFlowState] = {}

    def flow_state(self, platform_id: str) -> OAuthFlowState:
        return self._flow_states.get(platform_id, OAuthFlowState.IDLE)

    def redirect_uri_for(self, platform: Platform) -> str:
        return platform.redirect_uri or f"{self.redirect_base_url}{CALLBACK_PATH}"

    async def initiate(self, platform: Platform) -> str:
        """
        Start an authorization flow.

        Args:
            platform: Platform to connect

        Returns:
            The authorization URL the user must visit

        Raises:
            ConfigurationError: If the platform has no authorization URL
        """
        if not platform.auth_url:
            raise ConfigurationError(f"OAuth URLs for {platform.name} are not configured.")

        state = generate_oauth_state(platform.id)
        await self.credential_store.store_oauth_state(platform.id, state)

        params = [
            ("client_id", self.client_id),
            ("redirect_uri", self.redirect_uri_for(platform)),
            ("response_type", "code"),
            ("state", state),
            ("platform", platform.id),
        ]
        if platform.scopes:
            params.append(("scope", " ".join(platform.scopes)))

        url = _append_query(platform.auth_url, params)
        self._flow_states[platform.id] = OAuthFlowState.AUTHORIZING
        logger.info(f"Started OAuth flow for {platform.id}")

        if self.url_opener is not None:
            try:
                self.url_opener(url)
            except Exception as e:
                logger.warning(f"Could not open authorization URL for {platform.id}: {e}")

        return url

    async def handle_callback(self, query_params: Mapping[str, Optional[str]]) -> OAuthCallbackResult:
        """
        Process the provider redirect.

        Args:
            query_params: ``code``, ``state``, ``error`` and ``platform`` from the redirect

        Returns:
            Outcome of the connection attempt; failures are reported, not raised
        """
        code = query_params.get("code")
        state = query_params.get("state")
        error = query_params.get("error")
        platform_id = query_params.get("platform") or platform_from_state(state)
        platform_name = platform_display_name(platform_id)

        try:
            if error:
                raise AuthorizationError(f"Error: {error}")
            if not code:
                raise MissingCodeError("No authorization code was received from the provider.")

            platform = self.platforms.get(platform_id)
            if platform is None:
                raise ConfigurationError(f"Unknown platform: {platform_id or 'unspecified'}")

            if self.verify_state:
                await self._verify_state(platform, state)

            self._flow_states[platform_id] = OAuthFlowState.EXCHANGING
            credentials = await self.exchange_code_for_token(platform, code)

        except StorefrontSyncError as e:
            if platform_id:
                self._flow_states[platform_id] = OAuthFlowState.FAILED
            logger.warning(f"OAuth callback for {platform_id or 'unknown platform'} failed: {e}")
            return OAuthCallbackResult(
                success=False,
                platform_id=platform_id,
                platform_name=platform_name,
                message=str(e),
                error_type=type(e).__name__,
            )

        self._flow_states[platform_id] = OAuthFlowState.CONNECTED
        logger.info(f"OAuth flow for {platform_id} completed")
        return OAuthCallbackResult(
            success=True,
            platform_id=platform_id,
            platform_name=platform_name,
            message=f"Successfully connected to {platform_name}!",
            credentials=credentials,
        )

    async def _verify_state(self, platform: Platform, state: Optional[str]) -> None:
        expected = await self.credential_store.get_oauth_state(platform.id)
        if not states_match(expected, state):
            raise StateMismatchError(
                f"Authorization state for {platform.name} did not match. Please start the connection again."
            )
        await self.credential_store.clear_oauth_state(platform.id)

    async def exchange_code_for_token(self, platform: Platform, code: str) -> PlatformCredentials:
        """
        Exchange an authorization code for credentials and persist them.

        Raises:
            ConfigurationError: If the platform has no token URL
            TokenExchangeError: If the exchange or persistence fails
        """
        if not platform.token_url:
            raise ConfigurationError(f"Token URL for {platform.name} is not configured")

        try:
            tokens = await self.token_client.exchange_code(platform, code, self.redirect_uri_for(platform))
            credentials = PlatformCredentials(
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                expires_at=self.clock() + tokens.expires_in * 1000,
            )
            await self.credential_store.store(platform.id, credentials)
        except TokenExchangeError:
            raise
        except Exception as e:
            logger.error(f"Token exchange error for {platform.id}: {e}")
            raise TokenExchangeError("Failed to exchange code for token") from e

        return credentials

    async def refresh(self, platform: Platform) -> Optional[PlatformCredentials]:
        """
        Refresh the access token.

        Returns:
            The refreshed credentials, or None when no refresh token exists
            or the refresh fails
        """
        credentials = await self.credential_store.get(platform.id)
        if not credentials or not credentials.refresh_token:
            return None

        try:
            tokens = await self.token_client.refresh(platform, credentials.refresh_token)
            refreshed = credentials.model_copy(update={
                "access_token": tokens.access_token,
                "refresh_token": tokens.refresh_token or credentials.refresh_token,
                "expires_at": self.clock() + tokens.expires_in * 1000,
            })
            await self.credential_store.store(platform.id, refreshed)
        except Exception as e:
            logger.error(f"Token refresh error for {platform.id}: {e}")
            return None

        logger.info(f"Refreshed access token for {platform.id}")
        return refreshed


def _append_query(url: str, params) -> str:
    parts = urlsplit(url)
    query = urlencode(params)
    if parts.query:
        query = f"{parts.query}&{query}"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
