import enum
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional

from selenium import webdriver
from selenium.common.exceptions import (
    InvalidSelectorException,
    NoSuchElementException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import Select, WebDriverWait

from app.features.scan.exceptions import (
    AnalysisError,
    NavigationError,
    NavigationSettleTimeout,
    StepResolutionError,
    StepTimeoutError,
)
from app.features.scan.schemas.device import DeviceProfile
from app.platform.config import settings

logger = logging.getLogger(__name__)

# Quiet window for the network-idle heuristic, in milliseconds
NETWORK_IDLE_QUIET_MS = 500

_NETWORK_IDLE_JS = """
const quiet = arguments[0];
if (document.readyState !== 'complete') return false;
const entries = performance.getEntriesByType('resource') || [];
const now = performance.now();
return entries.every(e => (e.responseEnd || e.startTime) > 0 && (now - (e.responseEnd || e.startTime)) > quiet);
"""

_RUN_AXE_JS = """
const tags = arguments[0];
const cb = arguments[arguments.length - 1];
if (!window.axe) { cb({error: 'axe not injected'}); return; }
const options = (tags && tags.length) ? {runOnly: {type: 'tag', values: tags}} : {};
axe.run(document, options)
  .then(r => cb({ok: true, r: JSON.stringify(r)}))
  .catch(e => cb({error: (e && e.message) || String(e)}));
"""

_SET_VALUE_JS = """
arguments[0].value = arguments[1];
arguments[0].dispatchEvent(new Event('input', {bubbles: true}));
arguments[0].dispatchEvent(new Event('change', {bubbles: true}));
"""


class WaitPolicy(str, enum.Enum):
    """How far a page has to get before navigation counts as done."""
    dom_content_loaded = "domcontentloaded"
    load = "load"
    network_idle = "networkidle"


@dataclass(frozen=True)
class ElementQuery:
    """A Selenium locator pair, e.g. (By.CSS_SELECTOR, "#login")."""
    by: str
    value: str


@lru_cache(maxsize=4)
def _load_axe_source(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


class BrowsingSession:
    """
    One Chrome tab driven through Selenium.

    Owned by exactly one scan run or discovery pass. Use it as a context
    manager so the browser is quit on every exit path.
    """

    def __init__(self, driver: webdriver.Chrome, axe_script_path: Optional[str] = None):
        self.driver = driver
        self.axe_script_path = axe_script_path or settings.AXE_SCRIPT_PATH
        # None means no step override is active
        self.default_timeout_ms: Optional[int] = None

    @staticmethod
    def build_driver() -> webdriver.Chrome:
        chrome_options = Options()
        if settings.BROWSER_HEADLESS:
            chrome_options.add_argument('--headless=new')
        chrome_options.add_argument('--no-sandbox')
        chrome_options.add_argument('--disable-dev-shm-usage')
        chrome_options.add_argument('--disable-setuid-sandbox')
        # driver.get returns at DOMContentLoaded; later states are awaited explicitly
        chrome_options.page_load_strategy = "eager"

        if settings.CHROMEDRIVER_PATH:
            driver_service = Service(executable_path=settings.CHROMEDRIVER_PATH)
            driver = webdriver.Chrome(service=driver_service, options=chrome_options)
        else:
            driver = webdriver.Chrome(options=chrome_options)

        driver.set_script_timeout(90)
        return driver

    @classmethod
    def open(cls) -> "BrowsingSession":
        return cls(cls.build_driver())

    def __enter__(self) -> "BrowsingSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        driver, self.driver = self.driver, None
        if driver is None:
            return
        try:
            driver.quit()
        except WebDriverException as e:
            logger.warning(f"Error while closing browser: {e}")

    # ── Timeouts ────────────────────────────────

    def _timeout_seconds(self, timeout: Optional[float] = None) -> float:
        if timeout:
            return timeout
        if self.default_timeout_ms:
            return self.default_timeout_ms / 1000
        return settings.DEFAULT_PAGE_LOAD_TIMEOUT

    def set_default_timeout(self, timeout_ms: Optional[int]) -> None:
        self.default_timeout_ms = timeout_ms

    @contextmanager
    def timeout_override(self, timeout_ms: Optional[int]):
        """
        Bound every wait to ``timeout_ms`` for the duration of the block.

        0 or None leaves waits at DEFAULT_PAGE_LOAD_TIMEOUT.
        """
        self.set_default_timeout(timeout_ms or None)
        try:
            yield self
        finally:
            self.set_default_timeout(None)

    # ── Navigation ──────────────────────────────

    @property
    def current_url(self) -> str:
        return self.driver.current_url

    def navigate(self, url: str, wait_policy: WaitPolicy = WaitPolicy.load, timeout: Optional[float] = None) -> None:
        seconds = self._timeout_seconds(timeout)
        try:
            self.driver.set_page_load_timeout(seconds)
            self.driver.get(url)
        except TimeoutException as e:
            raise NavigationError(f"Timed out loading {url} after {seconds}s") from e
        except WebDriverException as e:
            raise NavigationError(f"Failed to load {url}: {e.msg or e}") from e

        if wait_policy is not WaitPolicy.dom_content_loaded:
            self.wait_for_settle(wait_policy, timeout=seconds)

    def wait_for_settle(self, wait_policy: WaitPolicy, timeout: Optional[float] = None) -> None:
        seconds = self._timeout_seconds(timeout)
        if wait_policy is WaitPolicy.network_idle:
            condition = lambda d: d.execute_script(_NETWORK_IDLE_JS, NETWORK_IDLE_QUIET_MS) is True
        elif wait_policy is WaitPolicy.load:
            condition = lambda d: d.execute_script("return document.readyState") == "complete"
        else:
            condition = lambda d: d.execute_script("return document.readyState") in ("interactive", "complete")

        try:
            WebDriverWait(self.driver, seconds).until(condition)
        except TimeoutException as e:
            raise NavigationSettleTimeout(
                f"{self.driver.current_url} did not reach '{wait_policy.value}' within {seconds}s"
            ) from e

    @contextmanager
    def expect_navigation(self, wait_policy: WaitPolicy = WaitPolicy.network_idle, timeout: Optional[float] = None):
        """Wait, after the block, for the current document to be replaced and settle."""
        seconds = self._timeout_seconds(timeout)
        old_root = self.driver.find_element(By.TAG_NAME, "html")
        yield
        try:
            WebDriverWait(self.driver, seconds).until(EC.staleness_of(old_root))
        except TimeoutException as e:
            raise NavigationSettleTimeout(f"No navigation happened within {seconds}s") from e
        self.wait_for_settle(wait_policy, timeout=seconds)

    def emulate(self, profile: DeviceProfile) -> None:
        try:
            self.driver.execute_cdp_cmd("Emulation.setDeviceMetricsOverride", {
                "width": profile.width,
                "height": profile.height,
                "deviceScaleFactor": profile.device_scale_factor,
                "mobile": profile.is_mobile,
            })
            self.driver.execute_cdp_cmd("Emulation.setTouchEmulationEnabled", {"enabled": profile.has_touch})
            if profile.user_agent:
                self.driver.execute_cdp_cmd("Network.setUserAgentOverride", {"userAgent": profile.user_agent})
        except WebDriverException as e:
            raise NavigationError(f"Failed to emulate device '{profile.name}': {e.msg or e}") from e

    def content(self) -> str:
        return self.driver.page_source

    # ── Elements ────────────────────────────────

    def resolve(self, query: ElementQuery, timeout: Optional[float] = None) -> WebElement:
        """Wait for and return the first element matching ``query``."""
        seconds = self._timeout_seconds(timeout)
        try:
            return WebDriverWait(self.driver, seconds).until(
                EC.presence_of_element_located((query.by, query.value))
            )
        except TimeoutException as e:
            raise StepTimeoutError(f"Timeout waiting for selector: {query.value}") from e
        except (InvalidSelectorException, WebDriverException) as e:
            raise StepResolutionError(f"Error with selector: {query.value}, {e.msg or e}") from e

    def click(self, element: WebElement) -> None:
        element.click()

    def type_text(self, element: WebElement, text: str) -> None:
        element.send_keys(text)

    def select(self, element: WebElement, option: str) -> None:
        if (element.tag_name or "").lower() == "select":
            try:
                Select(element).select_by_value(option)
            except NoSuchElementException as e:
                raise StepResolutionError(f"Option '{option}' not found") from e
        else:
            self.driver.execute_script(_SET_VALUE_JS, element, option)

    # ── Analysis ────────────────────────────────

    def run_analysis(self, tags: Optional[List[str]] = None) -> Dict[str, Any]:
        """Inject axe-core and run it scoped to ``tags``. Empty tags runs every rule."""
        try:
            self.driver.execute_script(_load_axe_source(self.axe_script_path))
            if not self.driver.execute_script("return !!window.axe;"):
                raise AnalysisError("axe-core was injected but window.axe not found")
            outcome = self.driver.execute_async_script(_RUN_AXE_JS, list(tags or []))
        except OSError as e:
            raise AnalysisError(f"Cannot read axe-core script at {self.axe_script_path}: {e}") from e
        except WebDriverException as e:
            raise AnalysisError(f"axe-core run failed: {e.msg or e}") from e

        if not outcome or outcome.get("error"):
            raise AnalysisError(f"axe.run failed: {(outcome or {}).get('error', 'no result')}")
        return json.loads(outcome["r"])
