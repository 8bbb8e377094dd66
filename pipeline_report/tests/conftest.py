"""
Pytest Configuration and Shared Fixtures for the Pipeline Report tests.

Provides:
- Engine settings independent of the environment
- A scripted fake report data provider whose responses can be held open
  (asyncio.Event gates) or failed, to drive race and error scenarios
- A recording edit sink and renderer
- Sample provider payloads for all three axes
- A mock asyncpg pool for the PostgreSQL collaborators

Async tests run under pytest-asyncio (asyncio_mode = "auto" in pyproject.toml).
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, Mock

import pytest

from pipeline_report.core.config import Settings
from pipeline_report.models.enums import Axis, TotalRowPolicy
from pipeline_report.models.schemas import DrillSelection, GlobalFilters, MetricFilter
from pipeline_report.services.drill_engine import DrillEngine, ViewSnapshot


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Register custom markers.

    - race: tests that interleave concurrent fetches
    """
    config.addinivalue_line('markers', 'race: tests that interleave concurrent fetches')


# ============================================================
# SAMPLE PAYLOADS
# ============================================================

SALESPERSON_ROOT = {
    "rows": [
        {"salesperson": "J.Doe", "potential_profit": 40000, "pipeline_profit": 20000,
         "gained_profit": 5000, "lost_profit": 1000, "quoted_profit": 8000,
         "expected_profit": 3000},
        {"salesperson": "A.Roe", "potential_profit": 10000, "pipeline_profit": 4000,
         "gained_profit": 2500, "lost_profit": 0, "quoted_profit": 1500,
         "expected_profit": None},
    ],
    "summary": {"total_potential": 90000, "total_pipeline": 30000, "total_gained": 9000,
                "total_lost": 1500, "total_quoted": 11000, "total_expected": 4000},
}

SALESPERSON_CUSTOMERS = {
    "rows": [
        {"customer_code": "C001", "customer_name": "Blue Ocean Ltd", "gained_profit": 3000,
         "expected_profit": 1200},
        {"customer_code": "C002", "customer_name": "Red Sea Co", "gained_profit": 2000,
         "expected_profit": 1800},
    ],
    "summary": {"total_gained": 5000, "total_expected": 3000},
}

REGION_ROOT = {
    "rows": [
        {"region": "EMEA", "gained_profit": 7000, "pipeline_profit": 15000},
        {"region": "APAC", "gained_profit": 2000, "pipeline_profit": 15000},
    ],
    "summary": {"total_gained": 9000, "total_pipeline": 30000},
}

REGION_SALESPEOPLE = {
    "rows": [
        {"salesperson": "J.Doe", "gained_profit": 5000, "expected_profit": 2500},
    ],
    "summary": {"total_gained": 5000, "total_expected": 2500},
}

PRODUCT_ROOT = {
    "rows": [
        {"service": "FCL", "service_type": "Import", "gained_profit": 12000},
        {"service": "Air Freight", "service_type": "Export", "gained_profit": 3000},
    ],
    "summary": {"total_gained": 15000},
}

DETAIL_ROWS = {
    "rows": [
        {"quotation_id": "Q-100", "call_entry_id": None, "customer_code": "C001",
         "customer_name": "Blue Ocean Ltd", "gained_profit": 12000},
    ],
    "summary": {"total_gained": 12000},
}

EMPTY = {"rows": [], "summary": None}


# ============================================================
# FAKE COLLABORATORS
# ============================================================

ResponseKey = Tuple[str, Tuple[Tuple[str, str], ...], Optional[str]]


@dataclass
class FetchCall:
    """One recorded provider call."""
    axis: Axis
    drill_path: Tuple[DrillSelection, ...]
    metric_filter: Optional[MetricFilter]
    filters: GlobalFilters

    @property
    def path(self) -> Tuple[Tuple[str, str], ...]:
        return tuple((s.level_kind.value, s.key) for s in self.drill_path)


def response_key(axis: Axis, path=(), metric: Optional[str] = None) -> ResponseKey:
    return (Axis(axis).value, tuple(path), metric)


class FakeReportProvider:
    """
    Scripted report data provider.

    Responses are looked up by (axis, ((kind, key), ...), normalized metric).
    Individual calls (by index) can be held on an asyncio.Event, given their
    own payload, or failed.
    """

    def __init__(self) -> None:
        self.calls: List[FetchCall] = []
        self.responses: Dict[ResponseKey, Any] = {}
        self.default: Any = EMPTY
        self.gates: Dict[int, asyncio.Event] = {}
        self.call_payloads: Dict[int, Any] = {}
        self.call_errors: Dict[int, Exception] = {}
        self.error: Optional[Exception] = None

    def respond(self, axis: Axis, payload: Any, path=(), metric: Optional[str] = None) -> None:
        self.responses[response_key(axis, path, metric)] = payload

    def hold(self, index: int) -> asyncio.Event:
        """Hold the `index`-th call (0-based) until the returned event is set."""
        self.gates[index] = asyncio.Event()
        return self.gates[index]

    async def fetch(self, axis, drill_path, metric_filter, filters):
        index = len(self.calls)
        call = FetchCall(axis, tuple(drill_path), metric_filter, filters)
        self.calls.append(call)

        gate = self.gates.get(index)
        if gate is not None:
            await gate.wait()

        if index in self.call_errors:
            raise self.call_errors[index]
        if self.error is not None:
            raise self.error
        if index in self.call_payloads:
            return self.call_payloads[index]
        metric = metric_filter.normalized_key if metric_filter else None
        return self.responses.get(response_key(axis, call.path, metric), self.default)


class RecordingEditSink:
    """Edit sink recording every update; returns `result` or raises `error`."""

    def __init__(self, result: bool = True, error: Optional[Exception] = None) -> None:
        self.result = result
        self.error = error
        self.updates: List[Tuple[str, str, float]] = []
        self.gate: Optional[asyncio.Event] = None

    async def update_metric(self, entity_key: str, metric: str, new_value: float) -> bool:
        self.updates.append((entity_key, metric, new_value))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class RecordingRenderer:
    """Renderer keeping every snapshot and notification."""

    def __init__(self) -> None:
        self.snapshots: List[ViewSnapshot] = []
        self.notices: List[str] = []

    def render(self, snapshot: ViewSnapshot) -> None:
        self.snapshots.append(snapshot)

    def notify(self, message: str) -> None:
        self.notices.append(message)


async def wait_for_calls(provider: FakeReportProvider, count: int) -> None:
    """Yield to the event loop until the provider has seen `count` calls."""
    for _ in range(100):
        if len(provider.calls) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"Expected {count} provider calls, saw {len(provider.calls)}")


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def settings() -> Settings:
    """Settings that ignore the environment; only the active tab preloads."""
    return Settings(
        _env_file=None,
        preload_all_axes=False,
        total_row_policy=TotalRowPolicy.LEAF_ONLY,
        detail_row_limit=500,
    )


@pytest.fixture
def provider() -> FakeReportProvider:
    """Fake provider scripted with the sample payloads of every axis."""
    fake = FakeReportProvider()
    fake.respond(Axis.SALESPERSON, SALESPERSON_ROOT)
    fake.respond(Axis.SALESPERSON, SALESPERSON_CUSTOMERS, path=[("salesperson", "J.Doe")])
    fake.respond(Axis.REGION, REGION_ROOT)
    fake.respond(Axis.REGION, REGION_SALESPEOPLE, path=[("region", "EMEA")])
    fake.respond(Axis.PRODUCT, PRODUCT_ROOT)
    fake.respond(
        Axis.PRODUCT, DETAIL_ROWS,
        path=[("service", "FCL"), ("service_type", "Import")], metric="gained",
    )
    return fake


@pytest.fixture
def edit_sink() -> RecordingEditSink:
    return RecordingEditSink()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def engine(provider, edit_sink, renderer, settings) -> DrillEngine:
    """Engine on the salesperson tab, not yet loaded."""
    return DrillEngine(provider, edit_sink=edit_sink, renderer=renderer, settings=settings)


@pytest.fixture
def mock_db_pool() -> AsyncMock:
    """
    Mock asyncpg pool.

    pool.acquire() returns an async context manager yielding a connection
    whose fetch/fetchrow/execute are AsyncMocks:

        conn = mock_db_pool.acquire.return_value.__aenter__.return_value
        conn.fetch.return_value = [{'region': 'EMEA'}]
    """
    pool = AsyncMock()

    conn = AsyncMock()
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchrow = AsyncMock(return_value=None)

    acquire_context = AsyncMock()
    acquire_context.__aenter__ = AsyncMock(return_value=conn)
    acquire_context.__aexit__ = AsyncMock(return_value=None)
    pool.acquire = Mock(return_value=acquire_context)
    pool.close = AsyncMock(return_value=None)

    return pool
