"""
Scan pipeline errors.

Recovered locally: CrawlFetchError (branch pruned), NavigationSettleTimeout
(analysis proceeds), NavigationError (URL skipped).
Fatal to a run: StepError and subclasses, AnalysisError, PersistenceError.
"""


class ScanError(Exception):
    """Base class for scan pipeline errors."""


class ScanRequestNotFoundError(ScanError):
    def __init__(self, scan_request_id: str):
        self.scan_request_id = scan_request_id
        super().__init__(f"Scan request with ID {scan_request_id} not found.")


class DeviceConfigNotFoundError(ScanError):
    def __init__(self, device_name: str):
        self.device_name = device_name
        super().__init__(f"Device configuration '{device_name}' not found.")


class CrawlFetchError(ScanError):
    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Failed to fetch {url} during discovery: {reason}")


class StepError(ScanError):
    """A pre-scan step failed; the whole step sequence is aborted."""


class StepDefinitionError(StepError):
    """The stored step document is malformed (unknown selector type or action)."""


class StepResolutionError(StepError):
    """The element could not be located for a reason other than a timeout."""


class StepTimeoutError(StepError):
    """No element matched within the step's wait time."""


class NavigationError(ScanError):
    """The browser could not load a page at all."""


class NavigationSettleTimeout(ScanError):
    """The page loaded but did not reach the requested settle state in time."""


class AnalysisError(ScanError):
    """The accessibility analyzer could not be injected or failed to run."""


class PersistenceError(ScanError):
    """A store operation failed. Not retried."""
