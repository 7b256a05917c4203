"""APScheduler job management for client-side conversation polling.

A single ``BackgroundScheduler`` runs every open conversation's poll job.
Each job is registered with ``max_instances=1`` and ``coalesce=True``: a
stalled poll never stacks up overlapping requests, and missed ticks collapse
into one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

# Module-level scheduler instance (singleton).  Its thread is a daemon: it is
# started by the first open conversation and dies with the process.
scheduler = BackgroundScheduler(daemon=True)


def start_scheduler() -> None:
    """Start the background scheduler if it is not already running."""
    if not scheduler.running:
        scheduler.start()
        logger.info("scheduler_started")


def schedule_poll(job_id: str, func: Callable[[], None], interval_seconds: float) -> None:
    """Run *func* every *interval_seconds* under *job_id*, replacing any previous job."""
    start_scheduler()
    scheduler.add_job(
        func,
        IntervalTrigger(seconds=interval_seconds),
        id=job_id,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        "poll_scheduled",
        extra={"job_id": job_id, "interval_seconds": interval_seconds},
    )


def cancel_poll(job_id: str) -> None:
    """Remove the poll job; unknown ids are ignored."""
    if scheduler.get_job(job_id) is not None:
        scheduler.remove_job(job_id)
        logger.info("poll_cancelled", extra={"job_id": job_id})
