"""
Storefront Sync - Data Models
Pydantic models for platforms, credentials, sync configuration and results.

Stored JSON uses camelCase keys (``accessToken``, ``syncInterval``...) so that
records written by earlier dashboard sessions keep loading. Python code uses
the snake_case attribute names; both spellings are accepted on input.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..utils.clock import now_millis, utc_isoformat

LOCAL_SOURCE = "local"


class PlatformStatus(str, Enum):
    """Connection status of a platform."""

    CONNECTED = "connected"
    NOT_CONNECTED = "not_connected"


class SyncDirection(str, Enum):
    """Direction of a product synchronization."""

    IMPORT = "import"
    EXPORT = "export"
    BIDIRECTIONAL = "bidirectional"


class InventoryPriority(str, Enum):
    """Conflict resolution strategy for inventory quantities."""

    PLATFORM = "platform"
    LOCAL = "local"
    NEWEST = "newest"


class CamelModel(BaseModel):
    """Base model serialising to camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_json(self) -> str:
        """Serialise to the stored JSON representation."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to a camelCase dictionary."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PlatformCredentials(CamelModel):
    """Credentials for one platform. ``expires_at`` is epoch milliseconds."""

    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    def is_authenticated(self, now: Optional[int] = None) -> bool:
        """True iff an access token is present and not expired."""
        if not self.access_token:
            return False
        if self.expires_at is None:
            return True
        return self.expires_at > (now if now is not None else now_millis())


class Platform(CamelModel):
    """A selling platform and its integration metadata."""

    id: str
    name: str
    description: str = ""
    icon: str = ""
    status: PlatformStatus = PlatformStatus.NOT_CONNECTED
    last_sync: Optional[str] = None
    required_credentials: List[str] = Field(default_factory=list)
    auth_url: Optional[str] = None
    token_url: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)
    redirect_uri: Optional[str] = None
    refresh_credentials: bool = False
    webhook_support: bool = False
    inventory_sync: bool = False


class SyncDetails(CamelModel):
    """Counters and itemized errors of a sync run."""

    items_synced: Optional[int] = None
    items_failed: Optional[int] = None
    inventory_updated: Optional[int] = None
    errors: Optional[List[str]] = None


class SyncResult(CamelModel):
    """Outcome of a sync, import, export or inventory operation."""

    success: bool
    message: str
    timestamp: str = Field(default_factory=utc_isoformat)
    details: Optional[SyncDetails] = None

    @classmethod
    def failed(cls, message: str, details: Optional[SyncDetails] = None) -> "SyncResult":
        """Build a failure result."""
        return cls(success=False, message=message, details=details)

    @classmethod
    def succeeded(cls, message: str, details: Optional[SyncDetails] = None) -> "SyncResult":
        """Build a success result."""
        return cls(success=True, message=message, details=details)


class PlatformSyncConfig(CamelModel):
    """Per-platform synchronization settings."""

    auto_sync: bool = False
    sync_interval: int = Field(default=60, ge=1)
    sync_direction: SyncDirection = SyncDirection.BIDIRECTIONAL
    sync_inventory_only: Optional[bool] = None
    inventory_priority: Optional[InventoryPriority] = None
    last_sync_status: Optional[SyncResult] = None


class InventoryUpdate(CamelModel):
    """A quantity reading for a product from one source at a point in time."""

    product_id: str
    sku: str
    quantity: int = Field(ge=0)
    platform_id: str
    timestamp: int = Field(default_factory=now_millis)

    @property
    def key(self) -> str:
        return f"{self.product_id}_{self.platform_id}"


class CatalogProduct(CamelModel):
    """A local product as supplied by the product catalog."""

    id: str
    name: str = ""
    sku: str = ""
    price: float = 0.0
    inventory: int = 0
    description: Optional[str] = None
    status: Optional[str] = None


class OAuthCallbackResult(CamelModel):
    """Outcome of processing an OAuth redirect."""

    success: bool
    platform_id: str = ""
    platform_name: str = "Platform"
    message: str
    error_type: Optional[str] = None
    credentials: Optional[PlatformCredentials] = None
