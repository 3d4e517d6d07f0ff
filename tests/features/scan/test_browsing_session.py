"""
Tests for BrowsingSession error mapping and timeout handling, using a mocked WebDriver.
"""
import json
from unittest.mock import MagicMock

import pytest
from selenium.common.exceptions import NoSuchElementException, TimeoutException, WebDriverException
from selenium.webdriver.common.by import By

from app.features.scan.exceptions import AnalysisError, NavigationError, StepTimeoutError
from app.features.scan.schemas.device import DeviceProfile
from app.features.scan.services.browser.browsing_session import BrowsingSession, ElementQuery, WaitPolicy
from app.platform.config import settings


@pytest.fixture
def driver():
    return MagicMock()


@pytest.fixture
def axe_script(tmp_path):
    path = tmp_path / "axe.min.js"
    path.write_text("window.axe = {run: function() {}};", encoding="utf-8")
    return str(path)


class TestLifecycle:

    def test_close_quits_once(self, driver):
        session = BrowsingSession(driver)
        with session:
            pass
        session.close()

        driver.quit.assert_called_once()

    def test_quit_error_is_logged_not_raised(self, driver):
        driver.quit.side_effect = WebDriverException("already gone")
        BrowsingSession(driver).close()


class TestTimeouts:

    def test_default_is_page_load_timeout(self, driver):
        assert BrowsingSession(driver)._timeout_seconds() == settings.DEFAULT_PAGE_LOAD_TIMEOUT

    def test_override_applies_and_is_restored_on_error(self, driver):
        session = BrowsingSession(driver)

        with pytest.raises(RuntimeError):
            with session.timeout_override(2500):
                assert session._timeout_seconds() == 2.5
                raise RuntimeError("step failed")

        assert session.default_timeout_ms is None

    def test_explicit_timeout_wins(self, driver):
        session = BrowsingSession(driver)
        with session.timeout_override(2500):
            assert session._timeout_seconds(7) == 7

    def test_zero_override_falls_back_to_page_load_timeout(self, driver):
        session = BrowsingSession(driver)
        with session.timeout_override(0):
            assert session.default_timeout_ms is None
            assert session._timeout_seconds(0) == settings.DEFAULT_PAGE_LOAD_TIMEOUT


class TestNavigation:

    def test_navigate_timeout(self, driver):
        driver.get.side_effect = TimeoutException("slow")

        with pytest.raises(NavigationError, match="Timed out loading https://example.com"):
            BrowsingSession(driver).navigate("https://example.com", WaitPolicy.dom_content_loaded, timeout=5)
        driver.set_page_load_timeout.assert_called_once_with(5)

    def test_navigate_failure(self, driver):
        driver.get.side_effect = WebDriverException("net::ERR_NAME_NOT_RESOLVED")

        with pytest.raises(NavigationError):
            BrowsingSession(driver).navigate("https://nowhere.invalid", WaitPolicy.dom_content_loaded)

    def test_load_policy_waits_for_ready_state(self, driver):
        driver.execute_script.return_value = "complete"

        BrowsingSession(driver).navigate("https://example.com", WaitPolicy.load, timeout=1)

        driver.get.assert_called_once_with("https://example.com")
        driver.execute_script.assert_called_with("return document.readyState")

    def test_emulate_sends_device_metrics(self, driver):
        profile = DeviceProfile(name="iPhone 12", width=390, height=844, device_scale_factor=3,
                                is_mobile=True, has_touch=True, user_agent="iPhone UA")

        BrowsingSession(driver).emulate(profile)

        commands = [call.args[0] for call in driver.execute_cdp_cmd.call_args_list]
        assert commands == [
            "Emulation.setDeviceMetricsOverride",
            "Emulation.setTouchEmulationEnabled",
            "Network.setUserAgentOverride",
        ]
        assert driver.execute_cdp_cmd.call_args_list[0].args[1]["width"] == 390


class TestResolve:

    def test_missing_element_times_out(self, driver):
        driver.find_element.side_effect = NoSuchElementException("nope")

        with pytest.raises(StepTimeoutError, match="Timeout waiting for selector: #missing"):
            BrowsingSession(driver).resolve(ElementQuery(By.CSS_SELECTOR, "#missing"), timeout=0.01)

    def test_found_element_returned(self, driver):
        element = MagicMock()
        driver.find_element.return_value = element

        assert BrowsingSession(driver).resolve(ElementQuery(By.XPATH, "//a"), timeout=1) is element
        driver.find_element.assert_called_with(By.XPATH, "//a")

    def test_zero_timeout_still_waits_for_late_element(self, driver):
        element = MagicMock()
        driver.find_element.side_effect = [NoSuchElementException("not yet"), element]
        session = BrowsingSession(driver)

        with session.timeout_override(0):
            assert session.resolve(ElementQuery(By.CSS_SELECTOR, "#login"), timeout=0) is element


class TestRunAnalysis:

    def test_returns_parsed_axe_result(self, driver, axe_script):
        driver.execute_script.side_effect = [None, True]
        driver.execute_async_script.return_value = {"ok": True, "r": json.dumps({"violations": [], "passes": [{"id": "x"}]})}

        result = BrowsingSession(driver, axe_script_path=axe_script).run_analysis(["wcag2a"])

        assert result["passes"] == [{"id": "x"}]
        assert driver.execute_async_script.call_args.args[1] == ["wcag2a"]

    def test_missing_script(self, driver, tmp_path):
        with pytest.raises(AnalysisError, match="Cannot read axe-core script"):
            BrowsingSession(driver, axe_script_path=str(tmp_path / "absent.js")).run_analysis([])

    def test_axe_not_on_page(self, driver, axe_script):
        driver.execute_script.side_effect = [None, False]

        with pytest.raises(AnalysisError):
            BrowsingSession(driver, axe_script_path=axe_script).run_analysis([])

    def test_axe_run_error(self, driver, axe_script):
        driver.execute_script.side_effect = [None, True]
        driver.execute_async_script.return_value = {"error": "Axe is already running"}

        with pytest.raises(AnalysisError, match="Axe is already running"):
            BrowsingSession(driver, axe_script_path=axe_script).run_analysis([])
