"""
Storefront Gateway - Integration Endpoints
Platform connection, synchronization and sync-settings API used by the dashboard.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from storefront_sync.app.schemas.models import (
    CamelModel,
    InventoryPriority,
    PlatformCredentials,
    PlatformSyncConfig,
    SyncDirection,
)
from storefront_sync.app.sync.manager import IntegrationManager

from ..deps import get_manager
from .oauth import public_result

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["integrations"])


class SyncRequest(CamelModel):
    """Manual sync request."""

    direction: Optional[SyncDirection] = Field(None, description="Defaults to the configured direction")


class SyncConfigRequest(CamelModel):
    """Editable sync settings."""

    auto_sync: bool = False
    sync_interval: int = Field(60, ge=1, description="Minutes between automatic syncs")
    sync_direction: SyncDirection = SyncDirection.BIDIRECTIONAL
    sync_inventory_only: Optional[bool] = None
    inventory_priority: Optional[InventoryPriority] = None


class InventorySettingsRequest(CamelModel):
    """Inventory-specific sync settings."""

    sync_inventory_only: Optional[bool] = None
    inventory_priority: Optional[InventoryPriority] = None


@router.get("/platforms")
async def list_platforms(manager: IntegrationManager = Depends(get_manager)) -> Dict[str, Any]:
    return {"platforms": [platform.to_dict() for platform in manager.list_platforms()]}


@router.get("/platforms/{platform_id}")
async def get_platform(platform_id: str, manager: IntegrationManager = Depends(get_manager)) -> Dict[str, Any]:
    return manager.get_platform(platform_id).to_dict()


@router.post("/platforms/{platform_id}/connect")
async def connect_platform(platform_id: str, manager: IntegrationManager = Depends(get_manager)) -> Dict[str, Any]:
    """
    Start the OAuth flow for a platform.

    Returns:
        The authorization URL to send the user to
    """
    url = await manager.start_connect(platform_id)
    return {"platformId": platform_id, "authorizationUrl": url}


@router.post("/platforms/{platform_id}/credentials")
async def connect_with_credentials(
    platform_id: str,
    credentials: PlatformCredentials,
    manager: IntegrationManager = Depends(get_manager),
) -> Dict[str, Any]:
    result = await manager.connect_with_credentials(platform_id, credentials)
    return public_result(result)


@router.post("/platforms/{platform_id}/disconnect")
async def disconnect_platform(platform_id: str, manager: IntegrationManager = Depends(get_manager)) -> Dict[str, Any]:
    return (await manager.disconnect(platform_id)).to_dict()


@router.post("/platforms/{platform_id}/sync")
async def sync_platform(
    platform_id: str,
    request: Optional[SyncRequest] = None,
    manager: IntegrationManager = Depends(get_manager),
) -> Dict[str, Any]:
    direction = request.direction if request else None
    result = await manager.sync(platform_id, direction)
    return result.to_dict()


@router.post("/platforms/{platform_id}/inventory-sync")
async def sync_inventory(platform_id: str, manager: IntegrationManager = Depends(get_manager)) -> Dict[str, Any]:
    return (await manager.sync_inventory(platform_id)).to_dict()


@router.post("/platforms/{platform_id}/webhook")
async def setup_webhook(platform_id: str, manager: IntegrationManager = Depends(get_manager)) -> Dict[str, Any]:
    return {"platformId": platform_id, "success": await manager.setup_webhook(platform_id)}


@router.get("/platforms/{platform_id}/sync-config")
async def get_sync_config(platform_id: str, manager: IntegrationManager = Depends(get_manager)) -> Dict[str, Any]:
    return (await manager.get_sync_config(platform_id)).to_dict()


@router.put("/platforms/{platform_id}/sync-config")
async def save_sync_config(
    platform_id: str,
    request: SyncConfigRequest,
    manager: IntegrationManager = Depends(get_manager),
) -> Dict[str, Any]:
    config = PlatformSyncConfig.model_validate(request.model_dump())
    saved = await manager.save_sync_config(platform_id, config)
    return saved.to_dict()


@router.put("/platforms/{platform_id}/inventory-settings")
async def update_inventory_settings(
    platform_id: str,
    request: InventorySettingsRequest,
    manager: IntegrationManager = Depends(get_manager),
) -> Dict[str, Any]:
    config = await manager.update_inventory_settings(
        platform_id,
        sync_inventory_only=request.sync_inventory_only,
        inventory_priority=request.inventory_priority,
    )
    return config.to_dict()


@router.get("/status")
async def integration_status(manager: IntegrationManager = Depends(get_manager)) -> Dict[str, Any]:
    return manager.status()
