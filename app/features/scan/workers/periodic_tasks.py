"""
Celery periodic tasks for scheduled scans.

This module contains tasks that run on a schedule via Celery Beat.
"""
import logging
from datetime import datetime, timezone

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True, name="app.features.scan.workers.periodic_tasks.run_expired_scans")
def run_expired_scans(self):
    """
    Sweep for scheduled scans whose time has passed and run them.

    Runs every hour via Celery Beat. Due schedule entries are detached
    first, then each scan runs in turn; one failing scan does not stop the
    rest of the sweep.
    """
    from app.features.scan.services.orchestration.scheduler import run_expired_scans as sweep

    now = datetime.now(timezone.utc)
    logger.info("Checking for scheduled scans due to run...")

    try:
        summary = sweep(now=now)
    except Exception as e:
        logger.error(f"Error in run_expired_scans: {e}", exc_info=True)
        return {
            "status": "error",
            "error": str(e),
            "timestamp": now.isoformat(),
        }

    logger.info(
        f"Scheduled scan sweep finished: {summary['completed']} completed, "
        f"{summary['failed']} failed of {summary['due']} due"
    )
    return {
        "status": "success",
        "scans_due": summary["due"],
        "scans_completed": summary["completed"],
        "scans_failed": summary["failed"],
        "timestamp": now.isoformat(),
    }
