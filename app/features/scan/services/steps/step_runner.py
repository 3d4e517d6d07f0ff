import logging
from typing import Any, Callable, Dict, Iterable, Union

from pydantic import ValidationError
from selenium.common.exceptions import WebDriverException

from app.features.scan.exceptions import (
    NavigationError,
    NavigationSettleTimeout,
    StepDefinitionError,
    StepError,
    StepResolutionError,
    StepTimeoutError,
)
from app.features.scan.schemas.step import Step, StepAction
from app.features.scan.services.browser.browsing_session import BrowsingSession, WaitPolicy
from app.features.scan.services.steps.selectors import build_query

logger = logging.getLogger(__name__)


class StepRunner:
    """
    Replays pre-scan steps against a browsing session, in order.

    A step fires only when the session is on the step's URL and the step is
    active. The first failing step aborts the whole sequence.
    """

    def __init__(self, session: BrowsingSession):
        self.session = session
        self._handlers: Dict[StepAction, Callable[[Step], None]] = {
            StepAction.click: self._click,
            StepAction.input_text: self._input_text,
            StepAction.select_value: self._select_value,
            StepAction.navigate: self._navigate,
        }

    @staticmethod
    def parse_step(raw: Union[Step, Dict[str, Any]]) -> Step:
        if isinstance(raw, Step):
            return raw
        try:
            return Step.model_validate(raw)
        except ValidationError as e:
            raise StepDefinitionError(f"Invalid step definition: {e}") from e

    def run(self, steps: Iterable[Union[Step, Dict[str, Any]]]) -> int:
        """Run every matching step. Returns how many fired."""
        performed = 0
        for index, raw in enumerate(steps):
            step = self.parse_step(raw)
            current_url = self.session.current_url
            if current_url != step.url:
                logger.debug(f"Skipping step {index}: on {current_url}, step targets {step.url}")
                continue
            if not step.is_active:
                logger.debug(f"Skipping inactive step {index}")
                continue

            self.perform_step(step)
            performed += 1

        logger.info(f"All steps executed ({performed} performed), current page: {self.session.current_url}")
        return performed

    def perform_step(self, step: Step) -> None:
        handler = self._handlers.get(step.step_action)
        if handler is None:
            raise StepDefinitionError(f"Unsupported step action: {step.step_action}")

        timeout_ms = int(step.timeout_seconds * 1000) if step.timeout_seconds else None
        with self.session.timeout_override(timeout_ms):
            try:
                handler(step)
            except StepError as e:
                logger.error(f"Error performing step: {step.step_action.value}, Error: {e}")
                raise
            except NavigationSettleTimeout as e:
                logger.error(f"Error performing step: {step.step_action.value}, Error: {e}")
                raise StepTimeoutError(str(e)) from e
            except NavigationError as e:
                logger.error(f"Error performing step: {step.step_action.value}, Error: {e}")
                raise StepError(str(e)) from e
            except WebDriverException as e:
                logger.error(f"Error performing step: {step.step_action.value}, Error: {e}")
                raise StepResolutionError(f"Browser error on {step.find_value}: {e.msg or e}") from e

    def _resolve(self, step: Step):
        query = build_query(step.find_by, step.find_value)
        return self.session.resolve(query, timeout=step.timeout_seconds)

    def _click(self, step: Step) -> None:
        element = self._resolve(step)
        with self.session.expect_navigation(WaitPolicy.network_idle):
            self.session.click(element)
        logger.info(f"{step.find_value} clicked")

    def _input_text(self, step: Step) -> None:
        element = self._resolve(step)
        self.session.type_text(element, step.payload)
        logger.info(f"{step.payload} inputted")

    def _select_value(self, step: Step) -> None:
        element = self._resolve(step)
        self.session.select(element, step.payload)
        logger.info(f"{step.payload} selected")

    def _navigate(self, step: Step) -> None:
        target = step.navigate_target
        if not target:
            raise StepDefinitionError("Navigate step has no target URL")
        self.session.navigate(target, WaitPolicy.network_idle)
        logger.info(f"Navigated to {target}")
