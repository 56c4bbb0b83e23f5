"""APScheduler based scheduler implementation."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from vakit_push.services.ports import SchedulerPort

logger = logging.getLogger(__name__)


class APSchedulerAdapter(SchedulerPort):
    """APScheduler ile zamanlama adaptörü."""

    def __init__(self, timezone: str = "UTC") -> None:
        """Initialize scheduler."""
        jobstores = {"default": MemoryJobStore()}
        self._scheduler = AsyncIOScheduler(jobstores=jobstores, timezone=timezone)
        self._started = False

    @property
    def running(self) -> bool:
        """Scheduler çalışıyor mu?"""
        return self._started

    def start(self) -> None:
        """Scheduler'ı başlat."""
        if not self._started:
            self._scheduler.start()
            self._started = True
            logger.info("APScheduler başlatıldı.")

    def shutdown(self) -> None:
        """Scheduler'ı kapat."""
        if self._started:
            self._scheduler.shutdown(wait=False)
            self._started = False
            logger.info("APScheduler kapatıldı.")

    def schedule_every_minute(
        self,
        callback: Callable[[], Awaitable[Any]],
        job_id: str,
    ) -> None:
        """
        Her dakikanın başında çalışacak iş planla.

        Bir önceki çalışma bitmeden yenisi başlamaz, kaçırılan
        çalışmalar tek seferde birleştirilir.
        """
        self._scheduler.add_job(
            callback,
            trigger=CronTrigger(minute="*"),
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=30,
        )
        logger.debug(f"Dakikalık iş planlandı: {job_id}")

    def cancel(self, job_id: str) -> bool:
        """Planlanmış işi iptal et."""
        try:
            self._scheduler.remove_job(job_id)
            logger.debug(f"İş iptal edildi: {job_id}")
            return True
        except JobLookupError:
            return False

    def cancel_all(self) -> None:
        """Tüm işleri iptal et."""
        self._scheduler.remove_all_jobs()
        logger.info("Tüm planlanmış işler iptal edildi.")

    def get_scheduled_jobs(self) -> list[tuple[str, datetime]]:
        """Planlanmış işleri listele."""
        jobs = self._scheduler.get_jobs()
        result = []
        for job in jobs:
            next_run = getattr(job, "next_run_time", None)
            if next_run:
                result.append((job.id, next_run))
        return sorted(result, key=lambda x: x[1])
