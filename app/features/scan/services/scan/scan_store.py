"""
Persistence helpers shared by the executor, the scheduler and the API.

Every write commits on its own so partial progress survives a later crash.
Store failures are rolled back and re-raised as PersistenceError, once.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.features.scan.exceptions import PersistenceError, ScanRequestNotFoundError
from app.features.scan.models.scan_request import ScanRequest, ScanRequestStatus
from app.features.scan.models.scan_result import ScanResult

logger = logging.getLogger(__name__)

RESULT_BUCKETS = ("violations", "passes", "incomplete", "inapplicable")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def store_operation(db: Session, description: str):
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store operation failed ({description}): {e}")
        raise PersistenceError(f"Failed to {description}: {e}") from e


def get_scan_request(db: Session, scan_request_id: str) -> ScanRequest:
    with store_operation(db, f"load scan request {scan_request_id}"):
        scan_request = db.execute(
            select(ScanRequest).where(ScanRequest.id == scan_request_id)
        ).scalar_one_or_none()

    if scan_request is None:
        raise ScanRequestNotFoundError(scan_request_id)
    return scan_request


def save_scan_result(
    db: Session,
    scan_request_id: str,
    url: str,
    results: Dict[str, Any],
    score: float,
    device_name: str,
) -> ScanResult:
    """Persist one URL's analyzer output immediately."""
    test_environment = dict(results.get("testEnvironment") or {})
    test_environment["device"] = device_name

    record = ScanResult(
        scan_request_id=scan_request_id,
        url=url,
        score=score,
        test_environment=test_environment,
        timestamp=utcnow(),
        **{bucket: list(results.get(bucket) or []) for bucket in RESULT_BUCKETS},
    )
    with store_operation(db, f"save results for {url}"):
        db.add(record)
        db.commit()
    return record


def complete_scan_request(db: Session, scan_request_id: str, score: float) -> ScanRequest:
    scan_request = get_scan_request(db, scan_request_id)
    with store_operation(db, f"complete scan request {scan_request_id}"):
        scan_request.status = ScanRequestStatus.complete
        scan_request.weighted_score = score
        scan_request.date_last_ran = utcnow()
        db.commit()

    logger.info(f"Scan request with ID {scan_request_id} updated successfully with score of {score}.")
    return scan_request


def get_scan_results(db: Session, scan_request_id: str) -> List[ScanResult]:
    with store_operation(db, f"load results for {scan_request_id}"):
        return list(
            db.execute(
                select(ScanResult)
                .where(ScanResult.scan_request_id == scan_request_id)
                .order_by(ScanResult.timestamp)
            ).scalars().all()
        )
