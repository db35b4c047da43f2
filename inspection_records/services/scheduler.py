from __future__ import annotations

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from inspection_records.config import settings
from inspection_records.database import SessionLocal

log = structlog.get_logger(__name__)
_scheduler: AsyncIOScheduler | None = None


async def _scheduled_close_month() -> None:
    from inspection_records.services.lifecycle import close_month
    async with SessionLocal() as db:
        try:
            result = await close_month(db)
            log.info("scheduler.close_month.done", **result)
        except Exception as exc:
            log.error("scheduler.close_month.failed", error=str(exc))


def start_scheduler() -> None:
    global _scheduler
    if not settings.SCHEDULER_ENABLED:
        log.info("scheduler.disabled")
        return

    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        _scheduled_close_month,
        # last day of the month, before the wall clock rolls into the next month key
        trigger=CronTrigger(
            day="last",
            hour=settings.CLOSE_MONTH_HOUR,
            minute=settings.CLOSE_MONTH_MINUTE,
        ),
        id="auto_close_month",
        replace_existing=True,
        max_instances=1,
    )
    _scheduler.start()
    log.info(
        "scheduler.started",
        hour=settings.CLOSE_MONTH_HOUR,
        minute=settings.CLOSE_MONTH_MINUTE,
    )


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        log.info("scheduler.stopped")


def scheduler_state() -> str:
    if not settings.SCHEDULER_ENABLED:
        return "disabled"
    return "running" if (_scheduler and _scheduler.running) else "stopped"
