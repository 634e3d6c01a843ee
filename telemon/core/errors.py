"""TELEMON — Error Taxonomy.

Nothing here is fatal to the process. Each error maps to a typed outcome:
an error snapshot, a warning-tagged store result, or a failed request.
"""

from typing import Dict


class TelemonError(Exception):
    """Base class for all Telemon errors."""


class ConfigLoadError(TelemonError):
    """Reading metric definitions or settings from the backend failed."""


class ConfigPersistError(TelemonError):
    """Writing to the backend failed. Recovered by the local fallback."""


class FetchError(TelemonError):
    """Raised when a data source call or its response parsing fails."""

    def __init__(self, message: str, status_code: int = 0, source_type: str = ""):
        self.status_code = status_code
        self.source_type = source_type
        super().__init__(message)


class FetchTimeoutError(TelemonError):
    """Waiting on another caller's in-flight fetch took too long."""

    def __init__(self, metric_id: str, timeout_s: float):
        self.metric_id = metric_id
        self.timeout_s = timeout_s
        super().__init__("Loading metric data timed out")


class DuplicateMetricError(TelemonError):
    """A metric with this id already exists."""

    def __init__(self, metric_id: str):
        self.metric_id = metric_id
        super().__init__(f"Metric id already exists: {metric_id}")


class MetricValidationError(TelemonError):
    """Admin input rejected before reaching the store."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__(
            "; ".join(f"{field}: {msg}" for field, msg in errors.items())
        )
