import logging
from typing import Any, Dict, List, Optional

from app.platform.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="app.features.scan.workers.tasks.run_scan",
    max_retries=0,
)
def run_scan(
    self,
    scan_request_id: str,
    url_list: Optional[List[str]] = None,
    device_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run one scan request in a worker.

    Args:
        scan_request_id: The scan request ID
        url_list: Optional URL override
        device_name: Optional device configuration override

    Returns:
        Dict with the outcome message
    """
    from app.features.scan.services.scan.scan_executor import ScanExecutor, completed_message

    logger.info(f"[{scan_request_id}] Worker starting scan run")
    try:
        message = ScanExecutor().run(scan_request_id, url_list, device_name)
    except Exception as e:
        logger.error(f"[{scan_request_id}] Scan run failed: {e}", exc_info=True)
        raise

    return {
        "scan_request_id": scan_request_id,
        "success": message == completed_message(scan_request_id),
        "message": message,
    }
