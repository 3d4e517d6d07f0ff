from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.features.scan.exceptions import DeviceConfigNotFoundError, ScanError, ScanRequestNotFoundError
from app.features.scan.schemas.scan import (
    DeviceConfigResponse,
    GuidanceLevelResponse,
    ScanCreateRequest,
    ScanCreateResponse,
    ScanDeleteManyRequest,
    ScanDeleteRequest,
    ScanEditRequest,
    ScanResultResponse,
    ScanRunOutcome,
    ScanRunRequest,
    ScanScheduleRequest,
)
from app.features.scan.services.browser.browsing_session import BrowsingSession
from app.features.scan.services.device.device_service import get_device_configs
from app.features.scan.services.guidance.guidance_service import get_guidance_levels
from app.features.scan.services.orchestration.scheduler import schedule_scan as schedule_scan_request
from app.features.scan.services.scan import scan_service
from app.features.scan.services.scan.scan_executor import ScanExecutor
from app.features.scan.workers.tasks import run_scan as run_scan_task
from app.platform.config import settings
from app.platform.db.session import get_db
from app.platform.logger import get_logger
from app.platform.response import api_response

logger = get_logger(__name__)

router = APIRouter(prefix="/scan", tags=["scan"])


def get_browser_factory() -> Callable[[], BrowsingSession]:
    return BrowsingSession.open


def get_scan_executor() -> ScanExecutor:
    return ScanExecutor()


def _raise_for_scan_error(e: ScanError, action: str):
    if isinstance(e, ScanRequestNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, DeviceConfigNotFoundError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.error(f"Error while trying to {action}: {e}")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Error while trying to {action}: {e}",
    )


@router.post("/create-scan")
def create_scan(
    request: ScanCreateRequest,
    db: Session = Depends(get_db),
    browser_factory: Callable[[], BrowsingSession] = Depends(get_browser_factory),
):
    try:
        scan_request = scan_service.create_scan(
            db,
            url=str(request.scan_url),
            guidance=request.guidance,
            depth=request.depth,
            device=request.device_config or settings.DEFAULT_DEVICE,
            steps=request.steps,
            name=request.name,
            project_id=request.project_id,
            username=request.username,
            browser_factory=browser_factory,
        )
    except ScanError as e:
        _raise_for_scan_error(e, "create scan")

    return api_response(
        data=ScanCreateResponse(
            scan_request_id=scan_request.id,
            urls=scan_request.urls,
            count=len(scan_request.urls),
        ),
        message="Scan request created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/run-scan")
def run_scan(
    request: ScanRunRequest,
    db: Session = Depends(get_db),
    executor: ScanExecutor = Depends(get_scan_executor),
):
    if request.background:
        return _enqueue_scans(request, db)

    outcomes = scan_service.run_scans(
        request.scan_request_ids,
        device_name=request.device_config,
        executor=executor,
    )
    failed = [outcome for outcome in outcomes if not outcome["success"]]
    logger.info(f"Ran {len(outcomes)} scans, {len(failed)} failed")

    return api_response(
        data=[ScanRunOutcome(**outcome) for outcome in outcomes],
        message="All scans completed" if not failed else f"{len(failed)} of {len(outcomes)} scans failed",
        status_code=status.HTTP_200_OK if not failed else status.HTTP_207_MULTI_STATUS,
    )


def _enqueue_scans(request: ScanRunRequest, db: Session):
    _check_scan_requests_exist(db, request.scan_request_ids, "queue scans")

    queued = []
    for scan_request_id in request.scan_request_ids:
        task = run_scan_task.delay(scan_request_id, None, request.device_config)
        logger.info(f"[{scan_request_id}] Queued scan run as task {task.id}")
        queued.append({"scan_request_id": scan_request_id, "task_id": task.id})

    return api_response(
        data=queued,
        message=f"Queued {len(queued)} scans",
        status_code=status.HTTP_202_ACCEPTED,
    )


def _check_scan_requests_exist(db: Session, scan_request_ids, action: str):
    for scan_request_id in scan_request_ids:
        try:
            scan_service.get_scan_request(db, scan_request_id)
        except ScanError as e:
            _raise_for_scan_error(e, action)


@router.post("/schedule-scan")
def schedule_scan(request: ScanScheduleRequest, db: Session = Depends(get_db)):
    # Nothing is scheduled unless every ID is known
    _check_scan_requests_exist(db, request.scan_request_ids, "schedule scans")

    scheduled = []
    for scan_request_id in request.scan_request_ids:
        try:
            entry = schedule_scan_request(db, scan_request_id, request.scheduled_time)
        except ScanError as e:
            _raise_for_scan_error(e, f"schedule scan {scan_request_id}")
        scheduled.append({
            "scan_request_id": scan_request_id,
            "scheduled_time": entry.scheduled_time,
            "message": f"Scan request with ID {scan_request_id} scheduled successfully.",
        })

    return api_response(data=scheduled, message="Scans scheduled successfully")


@router.put("/edit-scan")
def edit_scan(request: ScanEditRequest, db: Session = Depends(get_db)):
    try:
        changed = scan_service.edit_scan(
            db,
            request.scan_request_id,
            name=request.name,
            device=request.device_config,
            depth=request.depth,
            guidance=request.guidance,
            steps=request.steps,
            project_id=request.project_id,
            username=request.username,
        )
    except ScanError as e:
        _raise_for_scan_error(e, "edit scan")

    if not changed:
        logger.info(f"No changes made to scan {request.scan_request_id}")
    return api_response(
        data={"scan_request_id": request.scan_request_id, "modified": changed},
        message="Scan updated successfully" if changed else "No changes made to this scan",
    )


@router.delete("/delete-scan")
def delete_scan(request: ScanDeleteRequest, db: Session = Depends(get_db)):
    try:
        deleted = scan_service.delete_scan(db, request.scan_request_id)
    except ScanError as e:
        _raise_for_scan_error(e, "delete scan")

    if deleted == 0:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No record found with the given scanRequestId.",
        )
    return api_response(data={"deleted_count": deleted}, message="Scan deleted successfully")


@router.delete("/delete-multiple-scans")
def delete_multiple_scans(request: ScanDeleteManyRequest, db: Session = Depends(get_db)):
    try:
        deleted = scan_service.delete_scans(db, request.scan_request_ids)
    except ScanError as e:
        _raise_for_scan_error(e, "delete scans")

    if deleted == 0:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No records found for the given scanRequestIds.",
        )
    return api_response(data={"deleted_count": deleted}, message="Scans deleted successfully")


@router.get("/results")
def get_results(scan_request_id: str = Query(..., alias="scanRequestId"), db: Session = Depends(get_db)):
    try:
        results = scan_service.get_results(db, scan_request_id)
    except ScanError as e:
        _raise_for_scan_error(e, "fetch results")

    return api_response(
        data=[ScanResultResponse.model_validate(result) for result in results],
        message="Scan results retrieved successfully",
    )


@router.get("/request")
def get_request(scan_request_id: str = Query(..., alias="scanRequestId"), db: Session = Depends(get_db)):
    try:
        scan_request = scan_service.get_scan_request(db, scan_request_id)
    except ScanError as e:
        _raise_for_scan_error(e, "fetch scan request")

    return api_response(data=scan_request.to_document(), message="Scan request retrieved successfully")


@router.get("/requests")
def list_requests(
    project_id: Optional[str] = Query(None, alias="projectID"),
    username: Optional[str] = None,
    db: Session = Depends(get_db),
):
    try:
        scan_requests = scan_service.list_scan_requests(db, project_id=project_id, username=username)
    except ScanError as e:
        _raise_for_scan_error(e, "list scan requests")

    return api_response(
        data=[scan_request.to_document() for scan_request in scan_requests],
        message="Scan requests retrieved successfully",
    )


@router.get("/score")
def get_score(scan_request_id: str = Query(..., alias="scanRequestId"), db: Session = Depends(get_db)):
    try:
        score = scan_service.get_score(db, scan_request_id)
    except ScanError as e:
        _raise_for_scan_error(e, "fetch score")

    return api_response(data=score, message="Accessibility score retrieved successfully")


@router.get("/urls")
def get_urls(scan_request_id: str = Query(..., alias="scanRequestId"), db: Session = Depends(get_db)):
    try:
        urls = scan_service.get_urls(db, scan_request_id)
    except ScanError as e:
        _raise_for_scan_error(e, "fetch URLs")

    return api_response(data={"urls": urls, "count": len(urls)}, message="URLs retrieved successfully")


@router.get("/devices")
def list_devices(db: Session = Depends(get_db)):
    devices = get_device_configs(db)
    return api_response(
        data=[DeviceConfigResponse.model_validate(device) for device in devices],
        message="Device configurations retrieved successfully",
    )


@router.get("/guidance-levels")
def list_guidance_levels(db: Session = Depends(get_db)):
    levels = get_guidance_levels(db)
    return api_response(
        data=[GuidanceLevelResponse.model_validate(level) for level in levels],
        message="Guidance levels retrieved successfully",
    )
