"""Scheduled jobs arq worker.

Schedule (UTC):
- Weekly ranking rollover: Sunday 23:59
- todayMissions cleanup: every day 00:00
- Meal reminders / daily summary: every hour at :00 (user local hour)
- Streak warnings: every hour at :30 (user local hour)

Import path for arq CLI: arq nutrigame.workers.scheduler.SchedulerWorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from nutrigame.clock import Clock
from nutrigame.config import get_settings
from nutrigame.database import close_db, get_session_factory, init_db, session_scope
from nutrigame.db.transactions import run_in_transaction
from nutrigame.middleware.logging import setup_logging
from nutrigame.notifications.push import PushDispatcher
from nutrigame.notifications.reminders import send_hourly_reminders, send_streak_warnings
from nutrigame.ranking.service import prune_stale_today_missions, rollover_weekly_rankings

logger = logging.getLogger(__name__)


async def scheduler_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB and the push dispatcher on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    # arq owns ctx["redis"]; the dispatcher borrows it and never closes it.
    ctx["push"] = PushDispatcher(ctx["redis"], settings.push_channel)
    ctx.setdefault("clock", Clock())
    logger.info("Scheduler worker started")


async def scheduler_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    await close_db()
    logger.info("Scheduler worker shut down")


async def weekly_rollover(ctx: dict) -> None:  # type: ignore[type-arg]
    """Close the current week for every squad and open next week's rankings."""
    clock: Clock = ctx["clock"]
    report = await rollover_weekly_rankings(get_session_factory(), ctx["push"], now=clock.now())
    if report.failed:
        logger.warning("Weekly rollover skipped %d squads: %s", len(report.failed), report.failed)


async def daily_today_missions_reset(ctx: dict) -> int:  # type: ignore[type-arg]
    """Delete today-mission markers older than every user's local today."""
    clock: Clock = ctx["clock"]
    now = clock.now()
    async with session_scope() as db:
        return await run_in_transaction(db, lambda s: prune_stale_today_missions(s, now=now))


async def hourly_reminders(ctx: dict) -> int:  # type: ignore[type-arg]
    return await send_hourly_reminders(get_session_factory(), ctx["push"], clock=ctx["clock"])


async def streak_warnings(ctx: dict) -> int:  # type: ignore[type-arg]
    return await send_streak_warnings(get_session_factory(), ctx["push"], clock=ctx["clock"])


class SchedulerWorkerSettings:
    """arq worker settings for the scheduled gamification jobs."""

    functions = [weekly_rollover, daily_today_missions_reset, hourly_reminders, streak_warnings]
    cron_jobs = [
        cron(weekly_rollover, weekday=6, hour=23, minute=59),  # Sunday 23:59 UTC
        cron(daily_today_missions_reset, hour=0, minute=0),
        cron(hourly_reminders, minute=0),
        cron(streak_warnings, minute=30),
    ]
    on_startup = scheduler_startup
    on_shutdown = scheduler_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 4
    job_timeout = 600
    allow_abort_jobs = True
