"""
Step Schemas

Pre-scan automation steps (e.g. logging in) replayed before analysis.
"""
import enum
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator


class FindBy(str, enum.Enum):
    """Element-location strategy."""
    xpath = "XPath"
    id = "Id"
    name = "Name"
    class_name = "ClassName"
    tag_name = "TagName"
    css_selector = "CssSelector"


class StepAction(str, enum.Enum):
    click = "Click"
    input_text = "InputText"
    select_value = "SelectValue"
    navigate = "Navigate"


class Step(BaseModel):
    """
    One scripted UI action. Fires only when the browser is on ``url``.

    Accepts both snake_case and the camelCase names used by stored
    documents (``findBy``, ``findValue``, ``stepAction`` ...).
    """
    url: str
    depth: Optional[int] = None
    find_by: FindBy = Field(FindBy.css_selector, alias="findBy")
    find_value: str = Field("", alias="findValue")
    step_action: StepAction = Field(alias="stepAction")
    elem_input: Optional[Union[str, int, float]] = Field(None, alias="elemInput")
    wait_time: float = Field(10, ge=0, alias="waitTime")
    is_active: bool = Field(True, alias="isActive")
    notes: Optional[str] = ""

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "url": "https://example.com/login",
                "findBy": "Id",
                "findValue": "username",
                "stepAction": "InputText",
                "elemInput": "demo-user",
                "waitTime": 10,
                "isActive": True,
                "notes": "Fill in the username field",
            }
        }

    @field_validator("depth", mode="before")
    @classmethod
    def _blank_depth(cls, value):
        if value == "":
            return None
        return value

    @property
    def payload(self) -> str:
        """Text to type, option to select or URL to navigate to."""
        return "" if self.elem_input is None else str(self.elem_input)

    @property
    def navigate_target(self) -> str:
        # Older documents kept the destination in findValue
        return self.payload or self.find_value

    @property
    def timeout_seconds(self) -> Optional[float]:
        """Per-step wait bound. A waitTime of 0 means no bound of its own."""
        return self.wait_time or None
