import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.features.scan.exceptions import NavigationError, NavigationSettleTimeout, StepError
from app.features.scan.schemas.device import DeviceProfile
from app.features.scan.services.analysis.score import calculate_result_score, calculate_score
from app.features.scan.services.browser.browsing_session import BrowsingSession, WaitPolicy
from app.features.scan.services.device.device_service import get_device_profile
from app.features.scan.services.scan.scan_store import (
    complete_scan_request,
    get_scan_request,
    save_scan_result,
)
from app.features.scan.services.steps.step_runner import StepRunner
from app.platform.config import settings
from app.platform.db.session import get_sync_db

logger = logging.getLogger(__name__)


def completed_message(scan_request_id: str) -> str:
    return f"Scan request with ID {scan_request_id} completed successfully."


def steps_failed_message(scan_request_id: str) -> str:
    return f"Scan Steps issue with Scan request with ID {scan_request_id}."


class ScanExecutor:
    """
    Runs one scan request end to end with a single browser.

    Steps run once against the seed URL, then every target URL is analyzed
    and its result persisted as soon as it is available. The request is
    marked Complete only after the last URL.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = get_sync_db,
        browser_factory: Callable[[], BrowsingSession] = BrowsingSession.open,
        settle_timeout: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.browser_factory = browser_factory
        self.settle_timeout = settle_timeout if settle_timeout is not None else settings.NAVIGATION_SETTLE_TIMEOUT

    def run(
        self,
        scan_request_id: str,
        url_list: Optional[Iterable[str]] = None,
        device_name: Optional[str] = None,
    ) -> str:
        """
        Execute a scan request.

        Args:
            scan_request_id: ID of the stored scan request
            url_list: URLs to scan instead of the request's discovered set
            device_name: Device configuration to use instead of the request's own

        Returns:
            Status message describing the outcome

        Raises:
            ScanRequestNotFoundError, DeviceConfigNotFoundError, AnalysisError, PersistenceError
        """
        db = self.session_factory()
        try:
            scan_request = get_scan_request(db, scan_request_id)
            urls = list(url_list) if url_list is not None else list(scan_request.urls or [])
            device_name = device_name or scan_request.device
            profile = get_device_profile(db, device_name)
            guidance = list(scan_request.guidance or [])
            steps = list(scan_request.steps or [])
            seed_url = scan_request.url

            logger.info(f"[{scan_request_id}] Starting scan of {len(urls)} URLs on '{device_name}'")

            with self.browser_factory() as session:
                if steps:
                    try:
                        self._run_steps(session, seed_url, steps, profile)
                    except (StepError, NavigationError) as e:
                        logger.error(f"[{scan_request_id}] Pre-scan steps failed: {e}")
                        return steps_failed_message(scan_request_id)

                totals = {"passes": 0, "violations": 0}
                for url in urls:
                    results = self._analyze_url(session, url, profile, guidance, scan_request_id)
                    if results is None:
                        continue

                    totals["passes"] += len(results.get("passes") or [])
                    totals["violations"] += len(results.get("violations") or [])

                    score = calculate_result_score(results)
                    save_scan_result(db, scan_request_id, url, results, score, device_name)
                    logger.info(f"[{scan_request_id}] Saved results for {url} (score {score})")

                total_score = calculate_score(totals["passes"], totals["violations"])
                complete_scan_request(db, scan_request_id, total_score)

            return completed_message(scan_request_id)
        finally:
            db.close()

    def _run_steps(self, session: BrowsingSession, seed_url: str, steps: List[Any], profile: DeviceProfile) -> None:
        session.emulate(profile)
        session.navigate(seed_url, WaitPolicy.dom_content_loaded)
        StepRunner(session).run(steps)

    def _analyze_url(
        self,
        session: BrowsingSession,
        url: str,
        profile: DeviceProfile,
        guidance: List[str],
        scan_request_id: str,
    ) -> Optional[Dict[str, Any]]:
        """Analyzer output for ``url``, or None when the page could not be loaded."""
        logger.info(f"[{scan_request_id}] Scanning URL {url}")
        try:
            session.emulate(profile)
            session.navigate(url, WaitPolicy.dom_content_loaded)
        except NavigationError as e:
            logger.warning(f"[{scan_request_id}] Navigation failed, skipping {url}: {e}")
            return None

        try:
            session.wait_for_settle(WaitPolicy.network_idle, timeout=self.settle_timeout)
        except NavigationSettleTimeout as e:
            logger.warning(f"[{scan_request_id}] Navigation did not settle, analyzing anyway: {e}")

        return session.run_analysis(guidance)
