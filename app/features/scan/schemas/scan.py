"""
Scan Schemas

Request and response models for the scan API endpoints.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.features.scan.schemas.step import Step
from app.platform.utils.url_validator import validate_url


# ============================================================================
# Scan request lifecycle
# ============================================================================

class ScanCreateRequest(BaseModel):
    """Request to discover a site's pages and save a scan request."""
    scan_url: str
    guidance: List[str] = Field(min_length=1)
    depth: int = Field(0, ge=0)
    device_config: Optional[str] = None
    steps: List[Step] = Field(default_factory=list)
    name: Optional[str] = None
    project_id: Optional[str] = Field(None, alias="projectID")
    username: Optional[str] = None

    @field_validator("scan_url")
    @classmethod
    def check_scan_url(cls, v: str) -> str:
        is_valid, normalized_url, error = validate_url(v)
        if not is_valid:
            raise ValueError(error)
        return normalized_url

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "scan_url": "https://example.com",
                "guidance": ["wcag2a", "wcag2aa"],
                "depth": 1,
                "device_config": "Desktop",
                "steps": [],
                "name": "Example homepage",
                "username": "auditor",
            }
        }


class ScanCreateResponse(BaseModel):
    scan_request_id: str
    urls: List[str]
    count: int


class ScanRunRequest(BaseModel):
    """Run one or more saved scan requests now, or hand them to the worker queue."""
    scan_request_ids: List[str] = Field(alias="scanRequestIdList", min_length=1)
    device_config: Optional[str] = None
    background: bool = False

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"scanRequestIdList": ["0190f1d2-5a7b-7c3e-9f10-2b4c6d8e0a12"]}
        }


class ScanRunOutcome(BaseModel):
    scan_request_id: str
    success: bool
    message: str


class ScanScheduleRequest(BaseModel):
    """Defer one or more scan requests to a later time (UTC when no offset is given)."""
    scan_request_ids: List[str] = Field(alias="scanRequestIdList", min_length=1)
    scheduled_time: datetime = Field(alias="scheduledTime")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "scanRequestIdList": ["0190f1d2-5a7b-7c3e-9f10-2b4c6d8e0a12"],
                "scheduledTime": "2026-01-01T09:00:00Z",
            }
        }


class ScanEditRequest(BaseModel):
    scan_request_id: str = Field(alias="scanRequestId")
    name: Optional[str] = None
    device_config: Optional[str] = None
    depth: Optional[int] = Field(None, ge=0)
    guidance: Optional[List[str]] = None
    steps: Optional[List[Step]] = None
    project_id: Optional[str] = Field(None, alias="projectID")
    username: Optional[str] = None

    class Config:
        populate_by_name = True


class ScanDeleteRequest(BaseModel):
    scan_request_id: str = Field(alias="scanRequestId")

    class Config:
        populate_by_name = True


class ScanDeleteManyRequest(BaseModel):
    scan_request_ids: List[str] = Field(alias="scanRequestIds", min_length=1)

    class Config:
        populate_by_name = True


# ============================================================================
# Results
# ============================================================================

class Finding(BaseModel):
    """One axe-core rule outcome. Extra analyzer fields (e.g. nodes) are kept."""
    id: str
    tags: List[str] = Field(default_factory=list)
    impact: Optional[str] = None
    description: Optional[str] = None
    help: Optional[str] = None
    help_url: Optional[str] = Field(None, alias="helpUrl")

    class Config:
        populate_by_name = True
        extra = "allow"


class ScanResultResponse(BaseModel):
    id: str
    scan_request_id: str
    url: str
    score: float
    violations: List[Finding]
    passes: List[Finding]
    incomplete: List[Finding]
    inapplicable: List[Finding]
    test_environment: Optional[Dict[str, Any]] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class DeviceConfigResponse(BaseModel):
    name: str
    width: int
    height: int
    device_scale_factor: float
    is_mobile: bool
    has_touch: bool
    user_agent: Optional[str] = None

    class Config:
        from_attributes = True


class GuidanceLevelResponse(BaseModel):
    name: str
    description: Optional[str] = None
    tags: List[str]

    class Config:
        from_attributes = True
