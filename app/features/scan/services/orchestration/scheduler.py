import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.features.scan.models.scan_request import ScanRequest
from app.features.scan.models.scan_schedule import ScanSchedule
from app.features.scan.services.scan.scan_executor import ScanExecutor, completed_message
from app.features.scan.services.scan.scan_store import get_scan_request, store_operation
from app.platform.db.session import get_sync_db

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def schedule_scan(db: Session, scan_request_id: str, scheduled_time: datetime) -> ScanSchedule:
    """
    Schedule (or reschedule) a scan request.

    Upserts the schedule entry keyed by scan request and sets the request's
    scheduled_time in the same transaction.
    """
    scheduled_time = as_utc(scheduled_time)
    scan_request = get_scan_request(db, scan_request_id)

    for attempt in range(2):
        with store_operation(db, f"schedule scan request {scan_request_id}"):
            try:
                entry = db.execute(
                    select(ScanSchedule)
                    .where(ScanSchedule.scan_request_id == scan_request_id)
                    .with_for_update()
                ).scalar_one_or_none()

                if entry is None:
                    entry = ScanSchedule(scan_request_id=scan_request_id, scheduled_time=scheduled_time)
                    db.add(entry)
                else:
                    entry.scheduled_time = scheduled_time

                scan_request.scheduled_time = scheduled_time
                db.commit()
                break
            except IntegrityError:
                # Another request inserted the entry first; retry as an update
                db.rollback()
                if attempt == 1:
                    raise

    logger.info(f"Scan request with ID {scan_request_id} scheduled for {scheduled_time.isoformat()}")
    return entry


def get_expired_scans(db: Session, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Due schedule entries, each hydrated with its request's URLs and device."""
    now = as_utc(now or datetime.now(timezone.utc))
    with store_operation(db, "load expired scans"):
        rows = db.execute(
            select(ScanSchedule, ScanRequest)
            .join(ScanRequest, ScanSchedule.scan_request_id == ScanRequest.id)
            .where(ScanSchedule.scheduled_time <= now)
            .order_by(ScanSchedule.scheduled_time)
        ).all()

    return [
        {
            "schedule_id": entry.id,
            "scan_request_id": scan_request.id,
            "scheduled_time": entry.scheduled_time,
            "urls": list(scan_request.urls or []),
            "device": scan_request.device,
        }
        for entry, scan_request in rows
    ]


def detach_schedule(db: Session, scan: Dict[str, Any]) -> None:
    """Delete the schedule entry and clear the request's scheduled_time."""
    with store_operation(db, f"detach schedule {scan['schedule_id']}"):
        entry = db.get(ScanSchedule, scan["schedule_id"])
        if entry is not None:
            db.delete(entry)
        scan_request = db.get(ScanRequest, scan["scan_request_id"])
        if scan_request is not None:
            scan_request.scheduled_time = None
        db.commit()


def run_expired_scans(
    now: Optional[datetime] = None,
    session_factory: Callable[[], Session] = get_sync_db,
    executor: Optional[ScanExecutor] = None,
) -> Dict[str, Any]:
    """
    One sweep: run every scan whose scheduled time has passed.

    All due entries are detached before any scan runs, so the stored
    schedule is correct no matter how long the runs take. Each run is
    isolated; a failure is logged and the sweep moves on.
    """
    executor = executor or ScanExecutor(session_factory=session_factory)

    db = session_factory()
    try:
        scans_to_run = get_expired_scans(db, now)
        logger.info(f"Found {len(scans_to_run)} scheduled scans due to run")

        for scan in scans_to_run:
            try:
                detach_schedule(db, scan)
            except Exception as e:
                logger.error(
                    f"Error updating info of scheduled scan {scan['schedule_id']}: {e}",
                    exc_info=True,
                )
    finally:
        db.close()

    summary: Dict[str, Any] = {"due": len(scans_to_run), "completed": 0, "failed": 0, "results": []}
    for scan in scans_to_run:
        scan_request_id = scan["scan_request_id"]
        try:
            message = executor.run(scan_request_id, scan["urls"], scan["device"])
            success = message == completed_message(scan_request_id)
            summary["completed" if success else "failed"] += 1
            summary["results"].append({"scan_request_id": scan_request_id, "success": success, "message": message})
        except Exception as e:
            logger.error(f"Error running scheduled scan {scan_request_id}: {e}", exc_info=True)
            summary["failed"] += 1
            summary["results"].append({"scan_request_id": scan_request_id, "success": False, "message": str(e)})

    return summary
