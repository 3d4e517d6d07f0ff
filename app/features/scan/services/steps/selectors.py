"""
Element-location strategies for pre-scan steps.

Each strategy turns a step's ``find_value`` into a Selenium locator.
"""
from typing import Callable, Dict

from selenium.webdriver.common.by import By

from app.features.scan.exceptions import StepDefinitionError
from app.features.scan.schemas.step import FindBy
from app.features.scan.services.browser.browsing_session import ElementQuery


def format_id(value: str) -> str:
    return f"#{value}"


def format_name(value: str) -> str:
    return f'[name="{value}"]'


def format_class_name(value: str) -> str:
    return f".{value}"


SELECTOR_BUILDERS: Dict[FindBy, Callable[[str], ElementQuery]] = {
    FindBy.xpath: lambda value: ElementQuery(By.XPATH, value),
    FindBy.id: lambda value: ElementQuery(By.CSS_SELECTOR, format_id(value)),
    FindBy.name: lambda value: ElementQuery(By.CSS_SELECTOR, format_name(value)),
    FindBy.class_name: lambda value: ElementQuery(By.CSS_SELECTOR, format_class_name(value)),
    # Tag names and raw CSS selectors are used verbatim
    FindBy.tag_name: lambda value: ElementQuery(By.CSS_SELECTOR, value),
    FindBy.css_selector: lambda value: ElementQuery(By.CSS_SELECTOR, value),
}


def build_query(find_by: FindBy, value: str) -> ElementQuery:
    builder = SELECTOR_BUILDERS.get(find_by)
    if builder is None:
        raise StepDefinitionError(f"Unsupported selector type: {find_by}")
    if not value:
        raise StepDefinitionError(f"Empty selector value for {find_by.value}")
    return builder(value)
