"""TELEMON — Snapshot Models.

Snapshots are derived and ephemeral. They are rebuilt on every refresh and
never persisted.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from telemon.models.metric_models import CamelModel, MetricConfig

DATA_NOT_AVAILABLE = "Data not available"


class MetricStatus(str, Enum):
    """Threshold classification of a current value."""

    UNKNOWN = "unknown"
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class Trend(str, Enum):
    """Short-term direction of the last few points."""

    STEADY = "steady"
    SLOW_RISING = "slow-rising"
    RISING = "rising"
    RAPIDLY_RISING = "rapidly-rising"
    SLOW_FALLING = "slow-falling"
    FALLING = "falling"
    RAPIDLY_FALLING = "rapidly-falling"
    FLUCTUATING = "fluctuating"
    UNKNOWN = "unknown"


class TimeSeriesPoint(CamelModel):
    timestamp: datetime
    value: float
    metadata: Optional[Dict[str, Any]] = None


class MetricSnapshot(CamelModel):
    """Point-in-time view of a metric as served to consumers.

    ``error`` and ``current_value`` are mutually exclusive.
    """

    id: str
    name: str
    current_value: Optional[float] = None
    historical_data: List[TimeSeriesPoint] = []
    config: MetricConfig
    error: Optional[str] = None

    @classmethod
    def failed(cls, config: MetricConfig, error: str) -> "MetricSnapshot":
        return cls(
            id=config.id,
            name=config.name,
            current_value=None,
            historical_data=[],
            config=config,
            error=error,
        )

    @classmethod
    def unavailable(cls, config: MetricConfig) -> "MetricSnapshot":
        return cls.failed(config, DATA_NOT_AVAILABLE)


class MetricView(MetricSnapshot):
    """Snapshot with status and trend attached for the dashboard."""

    status: MetricStatus
    trend: Trend


class WeatherReading(BaseModel):
    """Current conditions plus forecast series for one weather metric."""

    current_value: float
    historical_data: List[TimeSeriesPoint] = []
