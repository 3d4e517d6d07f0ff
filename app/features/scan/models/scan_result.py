from sqlalchemy import Column, String, Float, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from app.platform.db.base import BaseModel


class ScanResult(BaseModel):
    """
    Outcome of analyzing one URL within one scan run.

    The four buckets hold axe-core findings as returned by the analyzer
    (id, tags, impact, description, help, helpUrl, nodes ...).
    """
    __tablename__ = "scan_results"

    scan_request_id = Column(
        String, ForeignKey("scan_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    scan_request = relationship("ScanRequest", back_populates="results")

    url = Column(String(2048), nullable=False)
    score = Column(Float, nullable=False)

    violations = Column(JSON, nullable=False, default=list)
    passes = Column(JSON, nullable=False, default=list)
    incomplete = Column(JSON, nullable=False, default=list)
    inapplicable = Column(JSON, nullable=False, default=list)

    test_environment = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def to_document(self) -> dict:
        return {
            "_id": self.id,
            "scanRequestId": self.scan_request_id,
            "url": self.url,
            "score": self.score,
            "violations": self.violations or [],
            "passes": self.passes or [],
            "incomplete": self.incomplete or [],
            "inapplicable": self.inapplicable or [],
            "testEnvironment": self.test_environment,
            "timestamp": self.timestamp,
        }
