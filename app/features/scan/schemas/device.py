from typing import Optional

from pydantic import BaseModel, Field


class DeviceProfile(BaseModel):
    """Concrete emulation settings resolved from a device configuration name."""
    name: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    device_scale_factor: float = 1.0
    is_mobile: bool = False
    has_touch: bool = False
    user_agent: Optional[str] = None

    class Config:
        from_attributes = True
