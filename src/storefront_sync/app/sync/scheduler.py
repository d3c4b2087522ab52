"""
Storefront Sync - Auto-Sync Scheduler

Recurring background synchronization per platform, driven by the
``auto_sync`` and ``sync_interval`` settings of each platform's sync config.
Each scheduler owns its own APScheduler instance; jobs are keyed by
platform id so a platform never has more than one active job.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..schemas.events import SyncNotification, create_sync_notification
from ..schemas.models import Platform, SyncResult
from .config_store import SyncConfigStore
from .orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

Notifier = Callable[[SyncNotification], Awaitable[None]]
PlatformLookup = Callable[[str], Optional[Platform]]


async def log_notification(notification: SyncNotification) -> None:
    """Default notifier: write the notification to the log."""
    level = logging.INFO if notification.variant == "default" else logging.WARNING
    logger.log(level, f"{notification.title} ({notification.platform_id}): {notification.description}")


class AutoSyncScheduler:
    """
    Arms and cancels interval jobs that run the Sync Orchestrator.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        config_store: SyncConfigStore,
        notifier: Optional[Notifier] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        platform_lookup: Optional[PlatformLookup] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            orchestrator: Runs each synchronization
            config_store: Source of auto-sync settings; receives ``last_sync_status``
            notifier: Coroutine receiving a notification after every automatic run
            scheduler: APScheduler instance (a new one is created if None)
            platform_lookup: Returns the current Platform for an id at run time
        """
        self.orchestrator = orchestrator
        self.config_store = config_store
        self.notifier = notifier or log_notification
        self.scheduler = scheduler or AsyncIOScheduler()
        self.platform_lookup = platform_lookup

    def startup(self) -> None:
        """Start the underlying scheduler. Must be called with a running event loop."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Auto-sync scheduler started")

    async def shutdown(self) -> None:
        """Stop the underlying scheduler and wait for the stop to take effect."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # Newer APScheduler 3.x releases defer shutdown to the next loop iteration
            await asyncio.sleep(0)
            logger.info("Auto-sync scheduler stopped")

    async def start(self, platform: Platform) -> bool:
        """
        Arm recurring sync for a platform according to its sync config.

        Starting an already scheduled platform replaces its job.

        Returns:
            True if a job is now scheduled
        """
        config = await self.config_store.get(platform.id)
        if not config.auto_sync:
            logger.debug(f"Auto-sync disabled for {platform.id}, not scheduling")
            return False

        self.stop(platform.id)
        self.scheduler.add_job(
            self.run_auto_sync,
            IntervalTrigger(minutes=config.sync_interval),
            args=[platform],
            id=platform.id,
            name=f"Auto-sync {platform.name}",
            replace_existing=True,
        )
        logger.info(f"Auto-sync scheduled for {platform.id} every {config.sync_interval} minutes")
        return True

    def stop(self, platform_id: str) -> bool:
        """
        Cancel the recurring sync for a platform. Safe to call when none is scheduled.

        Returns:
            True if a job was removed
        """
        if self.scheduler.get_job(platform_id) is None:
            return False

        self.scheduler.remove_job(platform_id)
        logger.info(f"Auto-sync stopped for {platform_id}")
        return True

    def is_scheduled(self, platform_id: str) -> bool:
        return self.scheduler.get_job(platform_id) is not None

    def active_platform_ids(self) -> List[str]:
        return [job.id for job in self.scheduler.get_jobs()]

    def get_status(self) -> Dict[str, Any]:
        """Get status of scheduled jobs"""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
            })
        return {"running": self.scheduler.running, "jobs": jobs}

    async def run_auto_sync(self, platform: Platform) -> Optional[SyncResult]:
        """
        One scheduled run: sync in the configured direction, record the
        result as ``last_sync_status`` and notify.

        Returns:
            The sync result, or None if auto-sync was disabled in the meantime
        """
        if self.platform_lookup is not None:
            platform = self.platform_lookup(platform.id) or platform

        config = await self.config_store.get(platform.id)
        if not config.auto_sync:
            logger.info(f"Auto-sync was disabled for {platform.id}, cancelling job")
            self.stop(platform.id)
            return None

        logger.info(f"Running auto-sync for {platform.id}")
        result = await self.orchestrator.sync_with_platform(platform, config.sync_direction)
        await self.config_store.record_result(platform.id, result)

        notification = create_sync_notification(platform.id, result)
        try:
            await self.notifier(notification)
        except Exception as e:
            logger.error(f"Failed to deliver auto-sync notification for {platform.id}: {e}")

        return result
