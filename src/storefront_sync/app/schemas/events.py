"""
Storefront Sync - Event Schemas
Pydantic schemas for user-visible notifications emitted by background work.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from .models import SyncResult


class EventType(str, Enum):
    """Event types emitted by the sync subsystem."""

    AUTO_SYNC_COMPLETED = "sync.auto.completed"
    AUTO_SYNC_FAILED = "sync.auto.failed"


class NotificationVariant(str, Enum):
    """Display variant of a notification."""

    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class BaseEvent(BaseModel):
    """Base event schema with common fields."""

    event_id: UUID = Field(default_factory=uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source_service: str = Field(default="storefront_sync")

    model_config = ConfigDict(use_enum_values=True)


class SyncNotification(BaseEvent):
    """Toast-style notification summarizing an automatic sync run."""

    platform_id: str
    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT
    result: Optional[SyncResult] = None


def create_sync_notification(platform_id: str, result: SyncResult) -> SyncNotification:
    """
    Build the notification for an automatic sync result.

    Args:
        platform_id: Platform the sync ran against
        result: Result of the sync run

    Returns:
        Notification with title and variant matching the outcome
    """
    if result.success:
        return SyncNotification(
            event_type=EventType.AUTO_SYNC_COMPLETED,
            platform_id=platform_id,
            title="Auto-Sync Completed",
            description=result.message,
            result=result,
        )
    return SyncNotification(
        event_type=EventType.AUTO_SYNC_FAILED,
        platform_id=platform_id,
        title="Auto-Sync Failed",
        description=result.message,
        variant=NotificationVariant.DESTRUCTIVE,
        result=result,
    )
