from sqlalchemy import Column, Integer, JSON, String, Text

from app.platform.db.base import BaseModel


class GuidanceLevel(BaseModel):
    """A named set of axe-core rule tags clients can pick as a scan's guidance."""
    __tablename__ = "guidance_levels"

    name = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    sort_order = Column(Integer, nullable=False, default=0)
