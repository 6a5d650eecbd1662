"""
app/scheduler/jobs.py

APScheduler-based catch-up job for daily KPI computation.

Reports normally trigger computation as soon as the last category of a
date arrives. A date can still be left uncomputed when that computation
failed, or when the required category list changed after the files came
in. The catch-up job scans the trailing window for dates with stored
reports and no DailyKPI row and computes the ones whose set is complete.

Schedule
--------
  dialer_catch_up  every SCHEDULER_INTERVAL_MINUTES (default 30)

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py
and only runs when ``SCHEDULER_ENABLED`` is true.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import SchedulerSettings, get_scheduler_settings
from app.services.batch_ingestion_service import get_batch_ingestion_service
from db.base import utc_now
from db.session import session_scope

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: catch-up computation
# ---------------------------------------------------------------------------


def run_catch_up() -> None:
    """
    Compute every complete but uncomputed date in the trailing window.
    KPIOrchestrator commits per date; a failure is logged and the next
    run retries it.
    """
    settings = get_scheduler_settings()
    logger.info("Scheduler: catch_up starting window=%d days", settings.catch_up_days)

    with session_scope() as db:
        try:
            computed = get_batch_ingestion_service().compute_pending(
                db,
                days=settings.catch_up_days,
                today=utc_now().date(),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Scheduler: catch_up failed: %s", exc)
            return

    for result in computed:
        logger.info(
            "Scheduler: catch_up computed date=%s transfers=%s alerts_created=%d",
            result.report_date.isoformat(),
            result.metrics.get("total_transfers"),
            result.alerts_created,
        )
    logger.info("Scheduler: catch_up complete computed=%d", len(computed))


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(settings: SchedulerSettings | None = None) -> BackgroundScheduler:
    """
    Build and register the periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = settings or get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_catch_up,
        trigger="interval",
        minutes=settings.interval_minutes,
        id="dialer_catch_up",
        name="Dialer KPI catch-up",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=3600,
    )

    return scheduler
