import copy
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.features.scan.models.scan_request import ScanRequest, ScanRequestStatus
from app.features.scan.models.scan_result import ScanResult
from app.features.scan.schemas.step import Step
from app.features.scan.services.browser.browsing_session import BrowsingSession
from app.features.scan.services.device.device_service import get_device_profile
from app.features.scan.services.discovery.url_discovery import UrlDiscoveryService
from app.features.scan.services.scan.scan_executor import ScanExecutor, completed_message
from app.features.scan.services.scan.scan_store import get_scan_request, get_scan_results, store_operation
from app.platform.config import settings

logger = logging.getLogger(__name__)


def _step_documents(steps: Optional[Sequence[Union[Step, Dict[str, Any]]]]) -> List[Dict[str, Any]]:
    documents = []
    for step in steps or []:
        if not isinstance(step, Step):
            step = Step.model_validate(step)
        documents.append(step.model_dump(mode="json"))
    return documents


def create_scan(
    db: Session,
    url: str,
    guidance: List[str],
    depth: int,
    device: str,
    steps: Optional[Sequence[Union[Step, Dict[str, Any]]]] = None,
    name: Optional[str] = None,
    project_id: Optional[str] = None,
    username: Optional[str] = None,
    browser_factory: Callable[[], BrowsingSession] = BrowsingSession.open,
) -> ScanRequest:
    """
    Discover the pages to scan and store a new Incomplete scan request.

    Discovery starts from the origin of ``url`` and uses its own browser.
    """
    # Fail before launching a browser if the device is unknown
    get_device_profile(db, device)

    base_url = UrlDiscoveryService.extract_base_url(url)
    with browser_factory() as session:
        discovered = UrlDiscoveryService(session).discover(base_url, depth)

    scan_request = ScanRequest(
        name=name,
        url=url,
        guidance=list(guidance),
        depth=depth,
        device=device,
        steps=_step_documents(steps),
        urls=list(discovered),
        status=ScanRequestStatus.incomplete,
        project_id=project_id,
        username=username,
    )
    with store_operation(db, "create scan request"):
        db.add(scan_request)
        db.commit()
        db.refresh(scan_request)

    logger.info(f"Created scan request {scan_request.id} for {url} with {len(discovered)} URLs")
    return scan_request


def _run_one(executor: ScanExecutor, scan_request_id: str, device_name: Optional[str]) -> Dict[str, Any]:
    try:
        message = executor.run(scan_request_id, None, device_name)
    except Exception as e:
        logger.error(f"Scan run failed for {scan_request_id}: {e}", exc_info=True)
        return {"scan_request_id": scan_request_id, "success": False, "message": str(e)}
    return {
        "scan_request_id": scan_request_id,
        "success": message == completed_message(scan_request_id),
        "message": message,
    }


def run_scans(
    scan_request_ids: Sequence[str],
    device_name: Optional[str] = None,
    executor: Optional[ScanExecutor] = None,
    max_workers: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Run several scan requests concurrently and wait for all of them.

    Each run opens its own browser and database session; one run failing
    does not affect the others. Outcomes are returned in request order.
    """
    if not scan_request_ids:
        return []

    executor = executor or ScanExecutor()
    workers = max(1, min(len(scan_request_ids), max_workers or settings.SCAN_BATCH_MAX_WORKERS))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scan-run") as pool:
        futures = [pool.submit(_run_one, executor, scan_request_id, device_name) for scan_request_id in scan_request_ids]
        return [future.result() for future in futures]


def edit_scan(
    db: Session,
    scan_request_id: str,
    name: Optional[str] = None,
    device: Optional[str] = None,
    depth: Optional[int] = None,
    guidance: Optional[List[str]] = None,
    steps: Optional[Sequence[Union[Step, Dict[str, Any]]]] = None,
    project_id: Optional[str] = None,
    username: Optional[str] = None,
) -> bool:
    """
    Update editable fields of a scan request. Returns True when anything changed.

    The discovered URL set is left as it is, even when depth changes.
    """
    scan_request = get_scan_request(db, scan_request_id)
    if device is not None:
        get_device_profile(db, device)

    updates: Dict[str, Any] = {
        "name": name,
        "device": device,
        "depth": depth,
        "project_id": project_id,
        "username": username,
    }
    if guidance is not None:
        updates["guidance"] = list(guidance)
    if steps is not None:
        updates["steps"] = _step_documents(steps)

    changed = False
    for field, value in updates.items():
        if value is not None and getattr(scan_request, field) != value:
            setattr(scan_request, field, value)
            changed = True

    if changed:
        with store_operation(db, f"edit scan request {scan_request_id}"):
            db.commit()
    return changed


def delete_scans(db: Session, scan_request_ids: Sequence[str]) -> int:
    """Delete scan requests with their results and schedule entries. Returns the count deleted."""
    with store_operation(db, "delete scan requests"):
        scan_requests = db.execute(
            select(ScanRequest).where(ScanRequest.id.in_(list(scan_request_ids)))
        ).scalars().all()
        for scan_request in scan_requests:
            db.delete(scan_request)
        db.commit()

    logger.info(f"Deleted {len(scan_requests)} scan requests")
    return len(scan_requests)


def delete_scan(db: Session, scan_request_id: str) -> int:
    return delete_scans(db, [scan_request_id])


def list_scan_requests(
    db: Session,
    project_id: Optional[str] = None,
    username: Optional[str] = None,
) -> List[ScanRequest]:
    query = select(ScanRequest).order_by(ScanRequest.created_at.desc())
    if project_id:
        query = query.where(ScanRequest.project_id == project_id)
    if username:
        query = query.where(ScanRequest.username == username)

    with store_operation(db, "list scan requests"):
        return list(db.execute(query).scalars().all())


def get_results(db: Session, scan_request_id: str) -> List[ScanResult]:
    get_scan_request(db, scan_request_id)
    return get_scan_results(db, scan_request_id)


def get_urls(db: Session, scan_request_id: str) -> List[str]:
    return list(get_scan_request(db, scan_request_id).urls or [])


def get_score(db: Session, scan_request_id: str) -> Dict[str, Any]:
    """Aggregate score of the last completed run plus each stored per-URL score."""
    scan_request = get_scan_request(db, scan_request_id)
    results = get_scan_results(db, scan_request_id)
    return {
        "scan_request_id": scan_request_id,
        "status": scan_request.status.value,
        "weighted_score": scan_request.weighted_score,
        "date_last_ran": scan_request.date_last_ran,
        "pages": [{"url": result.url, "score": result.score, "timestamp": result.timestamp} for result in results],
    }


def get_report_data(db: Session, scan_request_id: str) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """
    Everything a report generator needs for one scan request.

    Returned as plain documents so report code cannot mutate stored rows.
    """
    scan_request = get_scan_request(db, scan_request_id)
    results = get_scan_results(db, scan_request_id)
    return copy.deepcopy(scan_request.to_document()), [copy.deepcopy(result.to_document()) for result in results]
