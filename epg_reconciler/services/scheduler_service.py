import logging
from datetime import datetime, timezone
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from epg_reconciler.config import CustomSettings
from epg_reconciler.errors import ReconcilerError
from epg_reconciler.services.reconcile_pipeline_service import run_reconciliation
from epg_reconciler.services.run_coordinator import RunCoordinator


logger = logging.getLogger(__name__)

JOB_ID = "epg_reconcile"


class ReconcileScheduler:
    """Scheduler for periodic reconciliation runs"""

    def __init__(self, settings: CustomSettings, coordinator: RunCoordinator | None = None):
        self.settings = settings
        self.coordinator = coordinator or RunCoordinator()
        self.scheduler: AsyncIOScheduler | None = None

    async def run_job(self) -> None:
        """Background job that runs one reconciliation"""
        logger.info("Scheduled reconciliation triggered")
        try:
            report = await run_reconciliation(self.settings, self.coordinator)
        except ReconcilerError as e:
            logger.error(f"Scheduled reconciliation failed: {e}")
            return
        except Exception as e:
            logger.error(f"Exception in scheduled reconciliation: {e}", exc_info=True)
            return

        if report is not None:
            logger.info(
                "Scheduled reconciliation wrote %s channel file(s) with %s events",
                report.channels_written,
                report.total_events,
            )

    def start(self, run_immediately: bool = False) -> None:
        """
        Start the scheduler with the reconciliation job

        Args:
            run_immediately: Fire the first run now instead of waiting for the cron slot
        """
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        try:
            trigger = CronTrigger.from_crontab(self.settings.reconcile_cron, timezone="UTC")
        except (ValueError, KeyError) as exc:
            logger.error("Invalid cron expression '%s': %s", self.settings.reconcile_cron, exc)
            raise

        job_options = {}
        if run_immediately:
            job_options["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler = AsyncIOScheduler(timezone='UTC')
        self.scheduler.add_job(
            self.run_job,
            trigger=trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.settings.reconcile_misfire_grace_sec,
            **job_options,
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Scheduler started. Next reconciliation: %s",
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")
            self.scheduler = None

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled reconciliation time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None
