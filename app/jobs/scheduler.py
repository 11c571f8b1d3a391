"""APScheduler setup and job registration."""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import settings
from app.jobs.election_retention import election_retention

scheduler = AsyncIOScheduler(timezone=settings.timezone)


def register_jobs() -> None:
    """Register all periodic jobs if not already present."""
    if scheduler.get_job("election_retention") is None:
        scheduler.add_job(
            election_retention,
            IntervalTrigger(minutes=max(1, settings.retention_sweep_minutes)),
            id="election_retention",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
