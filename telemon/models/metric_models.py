"""TELEMON — Metric Definition Models.

A metric is a named value with control limits and a data source descriptor.
The descriptor is a tagged union on ``type``. Unknown tags parse into
``UnrecognizedSource`` so a stale or hand-edited config never breaks loading.
"""

from enum import Enum
from typing import Annotated, Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Tag
from pydantic.alias_generators import to_camel

DEFAULT_REFRESH_INTERVAL_MS = 60000


class CamelModel(BaseModel):
    """Base model speaking camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SourceType(str, Enum):
    """Data source kinds the adapter knows how to fetch."""

    KIBANA = "kibana"
    DATABASE = "database"
    API = "api"
    WEATHER_API = "weather_api"


class WeatherMetricType(str, Enum):
    """Which weather field a metric tracks."""

    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    WIND_SPEED = "wind_speed"
    PRESSURE = "pressure"


class KibanaResponseShape(str, Enum):
    """Declared shape of a Kibana response."""

    AGGREGATION = "aggregation"
    COUNT = "count"
    DOCUMENTS = "documents"


# ─────────────────────────────────────────────
# DATA SOURCE DESCRIPTORS
# ─────────────────────────────────────────────


class SourceBase(CamelModel):
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL_MS
    """Freshness window in milliseconds."""


class KibanaSource(SourceBase):
    type: str = SourceType.KIBANA.value
    query: str
    response_shape: Optional[KibanaResponseShape] = None
    """When unset, the shape is inferred from the query text."""


class DatabaseSource(SourceBase):
    type: str = SourceType.DATABASE.value
    query: str


class ApiSource(SourceBase):
    type: str = SourceType.API.value
    query: str
    """The URL to fetch."""
    method: str = "GET"
    body: Optional[Any] = None


class WeatherParams(CamelModel):
    city: str
    metric_type: WeatherMetricType


class WeatherSource(SourceBase):
    type: str = SourceType.WEATHER_API.value
    params: WeatherParams


class UnrecognizedSource(SourceBase):
    """Any descriptor whose ``type`` is not a known source kind."""

    type: str = "unrecognized"
    query: Optional[str] = None
    params: Optional[Dict[str, Any]] = None


KNOWN_SOURCE_TYPES = {t.value for t in SourceType}


def _source_tag(value: Any) -> str:
    if isinstance(value, dict):
        source_type = value.get("type")
    else:
        source_type = getattr(value, "type", None)
    return source_type if source_type in KNOWN_SOURCE_TYPES else "unrecognized"


DataSourceDescriptor = Annotated[
    Union[
        Annotated[KibanaSource, Tag(SourceType.KIBANA.value)],
        Annotated[DatabaseSource, Tag(SourceType.DATABASE.value)],
        Annotated[ApiSource, Tag(SourceType.API.value)],
        Annotated[WeatherSource, Tag(SourceType.WEATHER_API.value)],
        Annotated[UnrecognizedSource, Tag("unrecognized")],
    ],
    Discriminator(_source_tag),
]


# ─────────────────────────────────────────────
# METRIC CONFIG
# ─────────────────────────────────────────────


class MetricConfig(CamelModel):
    """One monitored metric as defined in the admin UI."""

    id: str
    name: str
    description: str = ""
    unit: str = ""
    ucl: float
    lcl: float
    critical_threshold: Optional[float] = None
    """None means "not set". Zero is a real threshold."""
    data_source: DataSourceDescriptor

    @property
    def refresh_interval_s(self) -> float:
        return self.data_source.refresh_interval / 1000.0

    def to_wire(self) -> Dict[str, Any]:
        """Serialize the way the backend and the UI expect it."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
