from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.platform.db.base import BaseModel


class ScanSchedule(BaseModel):
    """One pending scheduled run per scan request."""
    __tablename__ = "scan_schedules"

    scan_request_id = Column(
        String,
        ForeignKey("scan_requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    scan_request = relationship("ScanRequest", back_populates="schedule")

    scheduled_time = Column(DateTime(timezone=True), nullable=False, index=True)
