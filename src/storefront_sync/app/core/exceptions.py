"""
Storefront Sync - Exceptions
Error kinds raised by the credential, OAuth, adapter and storage layers.
"""

from typing import Optional


class StorefrontSyncError(Exception):
    """Base exception class for all storefront sync operations.

    Every error carries a message that is safe to show to the user as-is.
    """
    pass


class ConfigurationError(StorefrontSyncError):
    """Raised when a platform is missing OAuth configuration (authUrl/tokenUrl)."""
    pass


class AuthorizationError(StorefrontSyncError):
    """Raised when the provider reports an error on the OAuth redirect."""
    pass


class StateMismatchError(AuthorizationError):
    """Raised when the OAuth state does not match the pending nonce."""
    pass


class MissingCodeError(StorefrontSyncError):
    """Raised when the OAuth redirect carries no authorization code."""
    pass


class TokenExchangeError(StorefrontSyncError):
    """Raised when an authorization code cannot be exchanged for tokens."""
    pass


class CredentialsExpiredError(StorefrontSyncError):
    """Credentials are missing or expired and could not be refreshed.

    Surfaced to callers as a failed SyncResult rather than raised.
    """
    pass


class NoAdapterError(StorefrontSyncError):
    """Raised when no API adapter is registered for a platform id."""
    pass


class PlatformApiError(StorefrontSyncError):
    """Raised when a platform API call fails."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class PlatformRateLimitError(PlatformApiError):
    """Raised when a platform API rate limit is exceeded."""
    pass


class PersistenceError(StorefrontSyncError):
    """Raised when the key-value store cannot be read or written."""
    pass


class PlatformNotFoundError(StorefrontSyncError):
    """Raised when a platform id is not in the platform list."""
    pass
