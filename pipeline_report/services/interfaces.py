"""
Collaborator interfaces consumed by the Drill Engine.

The engine depends only on these shapes, never on a concrete backend or
rendering technology:

- ReportDataProvider: stateless async fetch of rows plus optional summary
- EditSink: async single-shot write of the editable `expected` metric
- Renderer: receives immutable view snapshots and user notifications
- TenantContext: emits company changes the engine resets on
"""

import logging
from typing import (
    TYPE_CHECKING, Any, Awaitable, Callable, List, Mapping, Optional, Protocol,
    Tuple, Union, runtime_checkable,
)

from pipeline_report.models.enums import Axis
from pipeline_report.models.schemas import DrillSelection, FetchResult, GlobalFilters, MetricFilter

if TYPE_CHECKING:
    from pipeline_report.services.drill_engine import ViewSnapshot


logger = logging.getLogger(__name__)


@runtime_checkable
class ReportDataProvider(Protocol):
    """
    Source of report rows.

    Implementations place no caching obligation on themselves; caching lives
    in the engine. Failures may be raised as any exception and are treated as
    transient fetch errors for the affected level.
    """

    async def fetch(
        self,
        axis: Axis,
        drill_path: Tuple[DrillSelection, ...],
        metric_filter: Optional[MetricFilter],
        filters: GlobalFilters,
    ) -> Union[FetchResult, Mapping[str, Any]]:
        ...


@runtime_checkable
class EditSink(Protocol):
    """Write target for the editable `expected` metric."""

    async def update_metric(self, entity_key: str, metric: str, new_value: float) -> bool:
        ...


@runtime_checkable
class Renderer(Protocol):
    """UI layer fed by the engine."""

    def render(self, snapshot: 'ViewSnapshot') -> None:
        ...

    def notify(self, message: str) -> None:
        ...


CompanyCallback = Callable[[str], Awaitable[None]]


class TenantContext:
    """
    Holder of the active company that notifies subscribers on change.

    Example:
        tenant = TenantContext("Acme Logistics")
        tenant.subscribe(engine.on_company_change)
        await tenant.set_company("Acme Freight")
    """

    def __init__(self, company: str = "") -> None:
        self._company = company
        self._subscribers: List[CompanyCallback] = []

    @property
    def company(self) -> str:
        return self._company

    def subscribe(self, callback: CompanyCallback) -> Callable[[], None]:
        """Register a coroutine callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def set_company(self, company: str) -> None:
        """Switch company and await every subscriber in registration order."""
        if company == self._company:
            return
        logger.info(f"Company changed from '{self._company}' to '{company}'")
        self._company = company
        for callback in list(self._subscribers):
            try:
                await callback(company)
            except Exception as e:
                logger.exception(f"Company change subscriber failed: {e}")


__all__ = [
    'ReportDataProvider',
    'EditSink',
    'Renderer',
    'TenantContext',
]
