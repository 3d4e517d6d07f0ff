"""
Scan models package.
"""
from app.features.scan.models.scan_request import ScanRequest, ScanRequestStatus
from app.features.scan.models.scan_result import ScanResult
from app.features.scan.models.scan_schedule import ScanSchedule
from app.features.scan.models.device_config import DeviceConfig
from app.features.scan.models.guidance_level import GuidanceLevel

__all__ = ["ScanRequest", "ScanRequestStatus", "ScanResult", "ScanSchedule", "DeviceConfig", "GuidanceLevel"]
