from sqlalchemy import Column, String, Integer, Float, DateTime, JSON, Enum, Index
from sqlalchemy.orm import relationship
import enum

from app.platform.db.base import BaseModel


class ScanRequestStatus(enum.Enum):
    """Incomplete until the executor finishes a full run, then Complete."""
    incomplete = "Incomplete"
    complete = "Complete"


class ScanRequest(BaseModel):
    """
    A saved scan: seed URL, rule tags, crawl depth, device, pre-scan steps
    and the URL set discovered when the scan was created.
    """
    __tablename__ = "scan_requests"

    name = Column(String(255), nullable=True)
    url = Column(String(2048), nullable=False)

    guidance = Column(JSON, nullable=False, default=list)
    depth = Column(Integer, nullable=False, default=0)
    device = Column(String(255), nullable=False)
    steps = Column(JSON, nullable=False, default=list)
    urls = Column(JSON, nullable=False, default=list)

    status = Column(
        Enum(ScanRequestStatus, values_callable=lambda e: [m.value for m in e]),
        default=ScanRequestStatus.incomplete,
        nullable=False,
        index=True,
    )

    date_last_ran = Column(DateTime(timezone=True), nullable=True)
    scheduled_time = Column(DateTime(timezone=True), nullable=True)
    weighted_score = Column(Float, nullable=True)

    # Owner and project are managed elsewhere; stored as opaque identifiers
    username = Column(String(255), nullable=True, index=True)
    project_id = Column(String, nullable=True, index=True)

    results = relationship(
        "ScanResult",
        back_populates="scan_request",
        cascade="all, delete-orphan",
        order_by="ScanResult.timestamp",
    )
    schedule = relationship(
        "ScanSchedule",
        back_populates="scan_request",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __table_args__ = (
        Index('idx_scan_requests_scheduled_time', 'scheduled_time'),
    )

    @property
    def date_created(self):
        return self.created_at

    def to_document(self) -> dict:
        """Serializable view used by API responses and report generation."""
        return {
            "_id": self.id,
            "name": self.name,
            "url": self.url,
            "guidance": list(self.guidance or []),
            "depth": self.depth,
            "device": self.device,
            "steps": list(self.steps or []),
            "urls": list(self.urls or []),
            "status": self.status.value if self.status else None,
            "date_created": self.created_at,
            "date_last_ran": self.date_last_ran,
            "scheduled_time": self.scheduled_time,
            "weighted_score": self.weighted_score,
            "username": self.username,
            "projectID": self.project_id,
        }
