"""
Drill Engine for the Pipeline Report.

A single owned engine instance holds all drill state for the report: the
active axis tab, the navigation stack, the row cache and the per-level
loading and error flags. The only way to change that state is through the
transition methods below. The UI reads immutable ViewSnapshots.

State shapes:
- root: stack empty, level 0 of the active axis tab
- dimension_level: a dimension drill path below the axis' max depth
- leaf: a dimension drill path at the axis' max depth (customer rows)
- metric_detail: a metric filter is attached; rows are transactions

Transitions:
- select_dimension_value: Root/DimensionLevel -> next level
- select_metric: Root/DimensionLevel/Leaf -> MetricDetail, fixing every
  selection implied by the clicked row in one hop (level skip)
- back: pop the stack; cached rows are shown without a fetch
- switch_axis: change the active tab (Root only)
- reset_to_root: drop history, cache and flags, then reload

Frames are pushed only once their fetch succeeded and is still current, so
a failed drill leaves the stack and the displayed rows as they were. Illegal
transitions are logged at INFO and return False; they never raise.

Example:
    engine = DrillEngine(provider, edit_sink=sink, renderer=ui)
    await engine.load()
    await engine.select_dimension_value("region", "EMEA")
    await engine.select_metric("gained", row)
    await engine.back()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union,
)

from pipeline_report.core.config import Settings, get_settings
from pipeline_report.core.errors import (
    EditFailure,
    IllegalTransitionError,
    StaleResponseError,
    TransientFetchError,
)
from pipeline_report.models.enums import Axis, LevelKind, MetricKey, ViewState
from pipeline_report.models.schemas import (
    DrillSelection,
    FetchResult,
    GlobalFilters,
    MetricFilter,
    NavigationFrame,
    NavigationHistory,
    ReportRow,
    Summary,
)
from pipeline_report.services.aggregation import merge, should_suppress_total
from pipeline_report.services.axes import LEVEL_FIELDS, get_axis_descriptor
from pipeline_report.services.interfaces import (
    EditSink,
    Renderer,
    ReportDataProvider,
    TenantContext,
)
from pipeline_report.services.metric_registry import (
    METRIC_REGISTRY,
    is_drill_eligible,
    normalize_metric_key,
)
from pipeline_report.services.navigation import ROOT, NavigationStack, RootSentinel
from pipeline_report.services.rows import coerce_fetch_result
from pipeline_report.services.sequencer import LoadingKey, RequestSequencer


logger = logging.getLogger(__name__)

ViewKey = Tuple[Axis, Tuple[DrillSelection, ...], Optional[MetricFilter]]


# =============================================================================
# View Snapshot
# =============================================================================


@dataclass(frozen=True)
class ViewSnapshot:
    """
    Immutable picture of the report for rendering.

    Attributes:
        active_axis: Active axis tab.
        frame: Frame being displayed (the axis root frame when the stack is empty).
        state: Shape of the displayed view.
        depth: Number of axis levels fixed by the frame's drill path.
        rows: Displayed rows, TOTAL row included when shown.
        summary: Provider totals for the frame, if any.
        loading: (axis, depth) pairs with a request in flight.
        errors: Read-only error message per (axis, depth) whose last fetch failed.
        is_back_available: True when back() would change the view.
    """
    active_axis: Axis
    frame: NavigationFrame
    state: ViewState
    depth: int
    rows: Tuple[ReportRow, ...]
    summary: Optional[Summary]
    loading: FrozenSet[LoadingKey] = frozenset()
    errors: Mapping[LoadingKey, str] = field(default_factory=lambda: MappingProxyType({}))
    is_back_available: bool = False

    @property
    def is_loading(self) -> bool:
        """Whether the displayed level has a request in flight."""
        return (self.frame.axis, self.depth) in self.loading

    @property
    def error(self) -> Optional[str]:
        """Error of the displayed level, if its last fetch failed."""
        return self.errors.get((self.frame.axis, self.depth))


# =============================================================================
# Drill Engine
# =============================================================================


class DrillEngine:
    """
    Owned state machine behind the Pipeline Report.

    Args:
        provider: Report data provider.
        edit_sink: Target of expected-profit edits (edits are ignored without one).
        renderer: Receives snapshots after every state change.
        settings: Engine settings (default: get_settings()).
        filters: Initial global filters.
        active_axis: Initially active tab.
        tenant: Optional tenant context; its company changes reset the engine.
    """

    def __init__(
        self,
        provider: ReportDataProvider,
        edit_sink: Optional[EditSink] = None,
        renderer: Optional[Renderer] = None,
        settings: Optional[Settings] = None,
        filters: Optional[GlobalFilters] = None,
        active_axis: Union[Axis, str] = Axis.SALESPERSON,
        tenant: Optional[TenantContext] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._provider = provider
        self._edit_sink = edit_sink
        self._renderer = renderer
        self._filters = filters or GlobalFilters(
            company=tenant.company if tenant else "",
            calculation=self._settings.default_calculation,
        )
        self._active_axis = Axis(active_axis)
        self._stack = NavigationStack()
        self._sequencer = RequestSequencer()
        self._cache: Dict[ViewKey, FetchResult] = {}
        self._errors: Dict[LoadingKey, str] = {}

        if tenant is not None:
            tenant.subscribe(self.on_company_change)

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def active_axis(self) -> Axis:
        return self._active_axis

    @property
    def filters(self) -> GlobalFilters:
        return self._filters

    @property
    def is_back_available(self) -> bool:
        return len(self._stack) > 0

    def current_frame(self) -> NavigationFrame:
        """Top of the stack, or the active axis' root frame when it is empty."""
        frame = self._stack.current()
        if frame is not None:
            return frame
        return NavigationFrame(
            axis=self._active_axis,
            request_version=self._sequencer.current_version(self._active_axis),
        )

    def depth(self) -> int:
        frame = self.current_frame()
        return get_axis_descriptor(frame.axis).depth_of(frame.drill_path)

    def state(self) -> ViewState:
        return _state_of(self.current_frame())

    def is_drill_eligible(
        self,
        metric: Union[MetricKey, str],
        axis: Optional[Union[Axis, str]] = None,
        depth: Optional[int] = None,
    ) -> bool:
        """
        Whether a metric cell is clickable.

        Defaults to the displayed axis and depth. Always False on a metric
        detail view, whose rows are transactions.
        """
        if axis is None and depth is None and self.state() == ViewState.METRIC_DETAIL:
            return False
        axis = self.current_frame().axis if axis is None else axis
        depth = self.depth() if depth is None else depth
        return is_drill_eligible(metric, axis, depth)

    def cached_view_keys(self) -> FrozenSet[ViewKey]:
        """View keys whose rows are cached."""
        return frozenset(self._cache)

    def rows(self) -> Tuple[ReportRow, ...]:
        return self.snapshot().rows

    def snapshot(self) -> ViewSnapshot:
        """Build the immutable snapshot of the displayed view."""
        frame = self.current_frame()
        descriptor = get_axis_descriptor(frame.axis)
        depth = descriptor.depth_of(frame.drill_path)
        metric_detail = frame.metric_filter is not None

        result = self._cache.get(frame.view_key)
        rows: Tuple[ReportRow, ...] = ()
        summary = None
        if result is not None:
            summary = result.summary
            rows = merge(
                result.rows,
                summary,
                suppress_total=should_suppress_total(
                    descriptor, frame, self._settings.total_row_policy
                ),
                label_field=descriptor.display_field(depth, metric_detail),
            )

        return ViewSnapshot(
            active_axis=self._active_axis,
            frame=frame,
            state=_state_of(frame),
            depth=depth,
            rows=rows,
            summary=summary,
            loading=self._sequencer.loading_flags(),
            errors=MappingProxyType(dict(self._errors)),
            is_back_available=self.is_back_available,
        )

    def history(self) -> NavigationHistory:
        """Serializable copy of the navigation stack."""
        return NavigationHistory(active_axis=self._active_axis, frames=self._stack.frames())

    # =========================================================================
    # Transitions
    # =========================================================================

    async def load(self) -> None:
        """
        Load root rows.

        Loads every axis' root frame concurrently when preload_all_axes is
        set, otherwise only the active one. Roots already cached are skipped.
        """
        axes = list(Axis) if self._settings.preload_all_axes else [self._active_axis]
        frames = [
            self._new_frame(axis)
            for axis in axes
            if NavigationFrame(axis=axis).view_key not in self._cache
        ]
        if frames:
            await asyncio.gather(*(self._fetch(frame, push=False) for frame in frames))
        else:
            self._render()

    async def select_dimension_value(
        self,
        level_kind: Union[LevelKind, str],
        key: str,
        label: Optional[str] = None,
        row_context: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """
        Drill into one value of the displayed level.

        Args:
            level_kind: Kind of the chosen value (must belong to the displayed level).
            key: Value key sent to the provider.
            label: Display label (a combined product label is split when needed).
            row_context: The clicked row, used to complete composite levels.

        Returns:
            bool: True if the drill was committed.
        """
        frame = self.current_frame()
        state = _state_of(frame)
        if state not in (ViewState.ROOT, ViewState.DIMENSION_LEVEL):
            return self._ignore(f"dimension drill from {state.value}")
        if row_context is not None and row_context.get("is_total"):
            return self._ignore("dimension drill on the TOTAL row")

        descriptor = get_axis_descriptor(frame.axis)
        depth = descriptor.depth_of(frame.drill_path)
        try:
            selections = descriptor.selections_for_value(depth, level_kind, key, label, row_context)
            target = self._new_frame(frame.axis, frame.drill_path + selections)
            descriptor.validate_frame(target)
        except (IllegalTransitionError, ValueError) as exc:
            return self._ignore(str(exc))

        return await self._fetch(target, push=True)

    async def select_metric(
        self,
        metric: Union[MetricKey, str],
        row_context: Optional[Mapping[str, Any]],
    ) -> bool:
        """
        Open the metric detail view for a clicked metric cell.

        Every selection implied by the clicked row is appended to the drill
        path in one step, so a root row reaches its detail view without an
        intermediate dimension fetch.

        Args:
            metric: Metric column clicked.
            row_context: The clicked row.

        Returns:
            bool: True if the drill was committed.
        """
        frame = self.current_frame()
        state = _state_of(frame)
        if state == ViewState.METRIC_DETAIL:
            return self._ignore("metric drill from a metric detail view")
        if row_context is None or row_context.get("is_total"):
            return self._ignore("metric drill without a data row")

        descriptor = get_axis_descriptor(frame.axis)
        depth = descriptor.depth_of(frame.drill_path)
        try:
            metric_key = normalize_metric_key(metric)
        except ValueError as exc:
            return self._ignore(str(exc))
        if not is_drill_eligible(metric_key, frame.axis, depth):
            return self._ignore(
                f"metric {metric_key.value} is not drillable at depth {depth} "
                f"of {frame.axis.value}"
            )

        try:
            selections = descriptor.selections_from_row(depth, row_context)
            metric_filter = MetricFilter(
                metric=metric_key,
                normalized_key=METRIC_REGISTRY[metric_key].normalized_key,
            )
            target = self._new_frame(frame.axis, frame.drill_path + selections, metric_filter)
            descriptor.validate_frame(target)
        except (IllegalTransitionError, ValueError) as exc:
            return self._ignore(str(exc))

        return await self._fetch(target, push=True)

    async def back(self) -> Union[NavigationFrame, RootSentinel]:
        """
        Return to the previous view.

        Cached rows are shown without a fetch; otherwise the previous frame is
        refetched and the stack is popped only once those rows are committed.
        If the refetch fails or is superseded, the stack is left as it was and
        the unchanged top frame is returned, so calling back() again retries.
        On an empty stack this is a no-op returning ROOT.
        """
        if not self._stack:
            return ROOT

        self._sequencer.supersede(self._active_axis)
        frames = self._stack.frames()
        previous = frames[-2] if len(frames) > 1 else NavigationFrame(axis=self._active_axis)
        if previous.view_key not in self._cache:
            if not await self._fetch(self._restamp(previous), push=False):
                return self._stack.current()

        top = self._stack.back()
        self._render()
        return top

    async def switch_axis(self, axis: Union[Axis, str]) -> bool:
        """
        Change the active tab. Only legal at Root.

        Each axis keeps its own root rows; a tab whose root is cached is shown
        without a refetch.
        """
        if self._stack:
            return self._ignore("axis switch away from Root")
        try:
            axis = Axis(axis)
        except ValueError as exc:
            return self._ignore(str(exc))
        if axis == self._active_axis:
            return True

        self._sequencer.supersede(self._active_axis)
        self._active_axis = axis
        frame = self.current_frame()
        if frame.view_key in self._cache:
            self._render()
        else:
            await self._fetch(self._restamp(frame), push=False)
        return True

    async def reset_to_root(self) -> None:
        """
        Drop every frame, cached row set, selection and flag, then reload.

        The active tab is kept. In-flight requests become stale.
        """
        self._sequencer.bump_epoch()
        self._stack.reset_to_root()
        self._cache.clear()
        self._errors.clear()
        logger.info(f"Pipeline report reset to root ({self._active_axis.value})")
        await self.load()

    async def refresh(self) -> bool:
        """Refetch the displayed frame."""
        return await self._fetch(self._restamp(self.current_frame()), push=False)

    async def set_global_filters(self, filters: Union[GlobalFilters, Mapping[str, Any]]) -> None:
        """
        Apply new global filters (search text, date range, calculation).

        Invalidates every in-flight request and every cached row set, then
        refetches the displayed view. Navigation is kept.

        A mapping is merged over the current filters. The company stays that
        of the tenant unless the new filters name one.
        """
        if isinstance(filters, GlobalFilters):
            if not filters.company:
                filters = filters.model_copy(update={"company": self._filters.company})
        else:
            filters = GlobalFilters.model_validate({**self._filters.model_dump(), **filters})
        self._filters = filters
        self._sequencer.bump_epoch()
        self._cache.clear()
        self._errors.clear()
        logger.info(f"Global filters changed: {filters.model_dump(exclude_none=True)}")
        await self.refresh()

    async def on_company_change(self, company: str) -> None:
        """Tenant context callback: switch company and reset to root."""
        self._filters = self._filters.model_copy(update={"company": company})
        logger.info(f"Company changed to '{company}', resetting pipeline report")
        await self.reset_to_root()

    async def restore(self, history: NavigationHistory) -> bool:
        """
        Rebuild the navigation stack from a saved history.

        Every frame is validated against its axis before anything changes.
        Only the top frame is refetched (unless cached).

        Returns:
            bool: False if the history does not describe a legal stack.
        """
        try:
            for frame in history.frames:
                if frame.axis != history.active_axis:
                    raise IllegalTransitionError(
                        f"Frame axis {frame.axis.value} differs from {history.active_axis.value}"
                    )
                if not frame.drill_path and frame.metric_filter is None:
                    raise IllegalTransitionError("Root frames are not kept on the stack")
                get_axis_descriptor(frame.axis).validate_frame(frame)
        except IllegalTransitionError as exc:
            return self._ignore(f"restore: {exc}")

        self._sequencer.supersede(self._active_axis)
        self._sequencer.supersede(history.active_axis)
        self._active_axis = history.active_axis
        self._stack = NavigationStack(history.frames)

        frame = self.current_frame()
        if frame.view_key in self._cache:
            self._render()
            return True
        await self._fetch(self._restamp(frame), push=False)
        return True

    # =========================================================================
    # Edits
    # =========================================================================

    async def update_expected(self, row: Mapping[str, Any], new_value: float) -> bool:
        """
        Write a customer's expected profit. Only legal on leaf (customer) rows.

        The new value is shown while the write is pending. On success the
        displayed frame is refetched; on failure the last server-confirmed
        rows are restored and the renderer is notified.

        Returns:
            bool: True if the edit sink accepted the update.
        """
        frame = self.current_frame()
        if _state_of(frame) != ViewState.LEAF:
            return self._ignore(f"expected edit at {_state_of(frame).value}")
        if self._edit_sink is None:
            return self._ignore("expected edit without an edit sink")
        if row is None or row.get("is_total"):
            return self._ignore("expected edit on the TOTAL row")

        key_field = LEVEL_FIELDS[LevelKind.CUSTOMER].key_field
        entity_key = row.get(key_field)
        if entity_key in (None, "", "-"):
            return self._ignore(f"expected edit on a row without {key_field}")
        try:
            value = float(new_value)
        except (TypeError, ValueError):
            return self._ignore(f"expected edit with non-numeric value {new_value!r}")

        view_key = frame.view_key
        epoch = self._sequencer.epoch
        confirmed = self._cache.get(view_key)
        pending: Optional[FetchResult] = None
        if confirmed is not None:
            edited = tuple(
                r.with_metric(MetricKey.EXPECTED, value) if r.get(key_field) == entity_key else r
                for r in confirmed.rows
            )
            pending = FetchResult(rows=edited, summary=confirmed.summary)
            self._cache[view_key] = pending
            self._render()

        metric = METRIC_REGISTRY[MetricKey.EXPECTED].normalized_key
        try:
            accepted = await self._edit_sink.update_metric(str(entity_key), metric, value)
            if not accepted:
                raise EditFailure(
                    f"Update of {metric} for {entity_key} was rejected",
                    entity_key=str(entity_key),
                    metric=metric,
                )
        except Exception as e:
            logger.warning(f"Expected profit update failed for {entity_key}: {e}")
            # Rows committed while the write was pending are newer than the snapshot
            if (
                pending is not None
                and self._cache.get(view_key) is pending
                and self._sequencer.epoch == epoch
            ):
                self._cache[view_key] = confirmed
            self._notify(f"Failed to update expected profit for {row.get('customer_name', entity_key)}")
            self._render()
            return False

        logger.info(f"Expected profit for {entity_key} updated to {value}")
        self._notify("Expected profit updated")
        if self.current_frame().view_key == view_key:
            await self._fetch(self._restamp(frame), push=False)
        else:
            self._cache.pop(view_key, None)
        return True

    # =========================================================================
    # Internals
    # =========================================================================

    def _new_frame(
        self,
        axis: Axis,
        drill_path: Tuple[DrillSelection, ...] = (),
        metric_filter: Optional[MetricFilter] = None,
    ) -> NavigationFrame:
        return NavigationFrame(
            axis=axis,
            drill_path=drill_path,
            metric_filter=metric_filter,
            request_version=self._sequencer.next_version(),
        )

    def _restamp(self, frame: NavigationFrame) -> NavigationFrame:
        return frame.model_copy(update={"request_version": self._sequencer.next_version()})

    async def _fetch(self, frame: NavigationFrame, push: bool) -> bool:
        """
        Issue a versioned fetch and commit its result if still current.

        Returns:
            bool: True if the result was committed.
        """
        depth = get_axis_descriptor(frame.axis).depth_of(frame.drill_path)
        level = (frame.axis, depth)

        async def call_provider(issued: NavigationFrame) -> FetchResult:
            self._render()
            raw = await self._provider.fetch(
                issued.axis, issued.drill_path, issued.metric_filter, self._filters
            )
            return coerce_fetch_result(raw)

        try:
            result = await self._sequencer.issue(frame, depth, call_provider)
        except StaleResponseError as exc:
            logger.debug(str(exc))
            return False
        except TransientFetchError as e:
            logger.warning(f"Fetch failed for {frame.axis.value} depth {depth}: {e}")
            self._errors[level] = str(e)
            self._render()
            return False
        except Exception as e:
            logger.exception(f"Unexpected provider error for {frame.axis.value} depth {depth}: {e}")
            self._errors[level] = str(e) or type(e).__name__
            self._render()
            return False

        self._errors.pop(level, None)
        self._cache[frame.view_key] = result
        if push:
            self._stack.push(frame)
        logger.debug(
            f"Committed {len(result.rows)} rows for {frame.axis.value} depth {depth} "
            f"(v{frame.request_version})"
        )
        self._render()
        return True

    def _ignore(self, reason: str) -> bool:
        logger.info(f"Ignored transition: {reason}")
        return False

    def _render(self) -> None:
        if self._renderer is not None:
            self._renderer.render(self.snapshot())

    def _notify(self, message: str) -> None:
        if self._renderer is not None:
            self._renderer.notify(message)


def _state_of(frame: NavigationFrame) -> ViewState:
    if frame.metric_filter is not None:
        return ViewState.METRIC_DETAIL
    if not frame.drill_path:
        return ViewState.ROOT
    descriptor = get_axis_descriptor(frame.axis)
    if descriptor.depth_of(frame.drill_path) >= descriptor.max_depth:
        return ViewState.LEAF
    return ViewState.DIMENSION_LEVEL


__all__ = [
    'ViewSnapshot',
    'DrillEngine',
]
