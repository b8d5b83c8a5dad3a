"""
Artifact Cleanup Scheduler

Periodically removes expired artifacts from the downloads directory using
APScheduler. Started and stopped with the FastAPI application lifespan.

Usage:
    scheduler = ArtifactCleanupScheduler(settings)
    scheduler.start()
    ...
    scheduler.stop()
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import Settings
from app.services.cache_service import cleanup_artifacts
from app.utils.logging_utils import APP_LOGGER_NAME


logger = logging.getLogger(APP_LOGGER_NAME)

JOB_ID = 'artifact_cleanup'


class ArtifactCleanupScheduler:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._scheduler: Optional[BackgroundScheduler] = None
        self._last_run_time: Optional[datetime] = None
        self._last_result: Optional[Dict[str, Any]] = None

    @property
    def enabled(self) -> bool:
        return self.settings.artifact_ttl_hours > 0

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def run_cleanup(self) -> Dict[str, Any]:
        """Scheduled job body; also callable directly."""
        result = cleanup_artifacts(self.settings.downloads_dir, self.settings.artifact_ttl_hours)
        self._last_run_time = datetime.now()
        self._last_result = result
        if result["total_deleted"]:
            logger.info(
                f"Artifact cleanup removed {result['total_deleted']} files "
                f"({result['freed_bytes']} bytes)"
            )
        return result

    def start(self) -> None:
        """Start the background scheduler if a TTL is configured."""
        if self._scheduler is not None:
            logger.warning("Cleanup scheduler already running, skipping start")
            return
        if not self.enabled:
            logger.info("Artifact cleanup disabled (ARTIFACT_TTL_HOURS=0)")
            return

        self._scheduler = BackgroundScheduler(
            job_defaults={
                'coalesce': True,  # Combine multiple missed runs into one
                'max_instances': 1,
            }
        )
        self._scheduler.add_job(
            func=self.run_cleanup,
            trigger=IntervalTrigger(minutes=max(1, self.settings.cleanup_interval_minutes)),
            id=JOB_ID,
            name='Artifact Cleanup',
            replace_existing=True,
        )
        self._scheduler.start()

        next_run = self._scheduler.get_job(JOB_ID).next_run_time
        logger.info(
            f"Artifact cleanup scheduled every {self.settings.cleanup_interval_minutes} minutes "
            f"(TTL {self.settings.artifact_ttl_hours}h), next run {next_run.strftime('%Y-%m-%d %H:%M:%S %Z')}"
        )

    def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=True)
        self._scheduler = None
        logger.info("Artifact cleanup scheduler stopped")

    def status(self) -> Dict[str, Any]:
        if self._scheduler is None:
            return {"running": False, "ttl_hours": self.settings.artifact_ttl_hours}

        job = self._scheduler.get_job(JOB_ID)
        return {
            "running": True,
            "ttl_hours": self.settings.artifact_ttl_hours,
            "interval_minutes": self.settings.cleanup_interval_minutes,
            "next_run_time": job.next_run_time.isoformat() if job and job.next_run_time else None,
            "last_run_time": self._last_run_time.isoformat() if self._last_run_time else None,
            "last_result": self._last_result,
        }
