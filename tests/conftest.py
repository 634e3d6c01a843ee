"""Shared fixtures for the Telemon test suite."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from telemon.core.errors import ConfigLoadError, ConfigPersistError
from telemon.models.metric_models import MetricConfig
from telemon.models.snapshot_models import MetricSnapshot, TimeSeriesPoint
from telemon.models.store_models import LocalSetting  # noqa: F401  registers table
from telemon.store.local import LocalConfigStore


# =============================================================================
# BUILDERS
# =============================================================================

def build_config(
    metric_id: str = "1",
    source: Optional[Dict[str, Any]] = None,
    refresh_interval: int = 60000,
    **overrides: Any,
) -> MetricConfig:
    data: Dict[str, Any] = {
        "id": metric_id,
        "name": f"Metric {metric_id}",
        "description": "Test metric",
        "unit": "ms",
        "ucl": 150,
        "lcl": 50,
        "criticalThreshold": 200,
        "dataSource": source
        or {"type": "database", "query": "SELECT 1", "refreshInterval": refresh_interval},
    }
    data.update(overrides)
    return MetricConfig.model_validate(data)


def build_points(values: List[float]) -> List[TimeSeriesPoint]:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        TimeSeriesPoint(timestamp=start + timedelta(minutes=i), value=v)
        for i, v in enumerate(values)
    ]


def build_snapshot(config: MetricConfig, value: float = 100.0) -> MetricSnapshot:
    return MetricSnapshot(
        id=config.id,
        name=config.name,
        current_value=value,
        historical_data=build_points([value]),
        config=config,
    )


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryRemote:
    """Backend double with the RemoteConfigClient interface."""

    def __init__(self, configs: Optional[List[Dict[str, Any]]] = None):
        self.configs: List[Dict[str, Any]] = list(configs or [])
        self.interval = 60000
        self.down = False

    def _check(self, read: bool = False) -> None:
        if self.down:
            raise (ConfigLoadError if read else ConfigPersistError)("backend down")

    async def fetch_metrics_config(self):
        self._check(read=True)
        return [dict(c) for c in self.configs]

    async def save_metrics_config(self, configs):
        self._check()
        self.configs = [dict(c) for c in configs]
        return {"success": True}

    async def add_metric(self, metric):
        self._check()
        self.configs.append(dict(metric))
        return {"success": True, "id": metric["id"]}

    async def update_metric(self, metric_id, updates):
        self._check()
        self.configs = [
            {**c, **updates} if c.get("id") == metric_id else c for c in self.configs
        ]
        return {"success": True}

    async def delete_metric(self, metric_id):
        self._check()
        self.configs = [c for c in self.configs if c.get("id") != metric_id]
        return {"success": True}

    async def delete_all_metrics(self):
        self._check()
        self.configs = []
        return {"success": True}

    async def get_refresh_interval(self):
        self._check(read=True)
        return self.interval

    async def save_refresh_interval(self, interval_ms):
        self._check()
        self.interval = interval_ms
        return {"success": True}

    async def close(self):
        return None


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def make_config():
    return build_config


@pytest.fixture
def make_points():
    return build_points


@pytest.fixture
def make_snapshot():
    return build_snapshot


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def local_store(memory_engine) -> LocalConfigStore:
    return LocalConfigStore(memory_engine)


@pytest.fixture
def remote() -> InMemoryRemote:
    return InMemoryRemote()


@pytest.fixture
def metric_payload() -> Dict[str, Any]:
    """Valid admin form payload."""
    return {
        "name": "Network Latency",
        "description": "Average network latency in milliseconds",
        "unit": "ms",
        "ucl": 150,
        "lcl": 50,
        "criticalThreshold": 200,
        "dataSource": {
            "type": "kibana",
            "query": "index=network_metrics | avg(latency)",
            "refreshInterval": 60000,
        },
    }
