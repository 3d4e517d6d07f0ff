from sqlalchemy import Column, String, Integer, Float, Boolean, Text

from app.platform.db.base import BaseModel


class DeviceConfig(BaseModel):
    """Named viewport / user-agent profile applied before navigation."""
    __tablename__ = "device_configs"

    name = Column(String(255), nullable=False, unique=True, index=True)
    width = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    device_scale_factor = Column(Float, nullable=False, default=1.0)
    is_mobile = Column(Boolean, nullable=False, default=False)
    has_touch = Column(Boolean, nullable=False, default=False)
    user_agent = Column(Text, nullable=True)
