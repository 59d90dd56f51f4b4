"""
Scheduled Tasks for the herbarium backend

Uses APScheduler to periodically reconcile every package state with its
samples, catching any background recompute that failed or raced.
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from herbario.config import settings
from herbario.database import SessionLocal
from herbario.services.package_state import refresh_all_package_states

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def run_package_sweep_job():
    """Recompute the state of every package."""
    logger.info("Starting scheduled package state sweep...")

    db = SessionLocal()
    try:
        results = refresh_all_package_states(db)
        failed = sum(1 for v in results.values() if v == "error")
        logger.info(f"Package sweep complete. {len(results)} packages checked, {failed} failed.")
    except Exception as e:
        logger.error(f"Package sweep failed: {e}")
    finally:
        db.close()


def start_scheduler():
    """Start the APScheduler with the package sweep job."""
    if not settings.package_sweep_enabled:
        logger.info("Package sweep disabled; scheduler not started")
        return
    if not scheduler.running:
        scheduler.add_job(
            run_package_sweep_job,
            trigger=IntervalTrigger(minutes=settings.package_sweep_interval_minutes),
            id="package_state_sweep",
            name="Package state reconciliation",
            replace_existing=True
        )
        scheduler.start()
        logger.info(
            f"Scheduler started with package sweep (interval: {settings.package_sweep_interval_minutes} minutes)"
        )


def stop_scheduler():
    """Stop the APScheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

