"""
Pydantic models for the Pipeline Report engine.

This module defines the immutable values that flow between the drill engine,
its collaborators and the host UI:

- DrillSelection / MetricFilter / NavigationFrame: one point in drill history
- GlobalFilters: tenant, free-text search, date range and calculation mode
- ReportRow / Summary / FetchResult: what a data provider returns
- NavigationHistory: serializable copy of the navigation stack

All models use Pydantic v2 syntax. Every navigation value is frozen so that a
transition always produces a new frame instead of mutating the current one.
"""

from datetime import date
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pipeline_report.models.enums import Axis, Calculation, LevelKind, MetricKey


METRIC_FIELDS: Tuple[str, ...] = tuple(metric.value for metric in MetricKey)


def _coerce_number(value: Any) -> Any:
    """Map upstream null/empty metric values to 0; leave the rest to pydantic."""
    if value is None or value == "":
        return 0.0
    return value


# =============================================================================
# Navigation Models
# =============================================================================


class DrillSelection(BaseModel):
    """
    One dimension value chosen along the active axis.

    Example: DrillSelection(level_kind="region", key="EMEA", label="EMEA")
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    level_kind: LevelKind = Field(..., description="Dimension kind of the selection")
    key: str = Field(..., min_length=1, description="Identifying value sent to the provider")
    label: Optional[str] = Field(default=None, description="Display label")


class MetricFilter(BaseModel):
    """
    Metric chosen by clicking a financial cell.

    `normalized_key` is what the data provider receives (`quote` becomes
    `quoted_created`; every other metric is unchanged).
    """
    model_config = ConfigDict(frozen=True)

    metric: MetricKey
    normalized_key: str = Field(..., min_length=1)


class NavigationFrame(BaseModel):
    """
    The unit of drill history: `{axis, drill_path, metric_filter, request_version}`.

    Frames are immutable. `view_key` identifies the view a frame shows and
    ignores `request_version`, so two fetches of the same view share a cache
    entry.
    """
    model_config = ConfigDict(frozen=True)

    axis: Axis
    drill_path: Tuple[DrillSelection, ...] = ()
    metric_filter: Optional[MetricFilter] = None
    request_version: int = Field(default=0, ge=0)

    @model_validator(mode='after')
    def one_entry_per_kind(self) -> 'NavigationFrame':
        kinds = [selection.level_kind for selection in self.drill_path]
        if len(kinds) != len(set(kinds)):
            raise ValueError(f"Drill path repeats a level kind: {[k.value for k in kinds]}")
        return self

    @property
    def view_key(self) -> Tuple[Axis, Tuple[DrillSelection, ...], Optional[MetricFilter]]:
        return (self.axis, self.drill_path, self.metric_filter)

    def selection(self, kind: LevelKind) -> Optional[DrillSelection]:
        """Return the selection for a level kind, or None if not chosen."""
        for selection in self.drill_path:
            if selection.level_kind == kind:
                return selection
        return None


class NavigationHistory(BaseModel):
    """
    Serializable copy of the navigation stack.

    A host stores this when the user leaves the report (e.g. to edit a
    quotation) and hands it back to DrillEngine.restore() on return.
    """
    active_axis: Axis
    frames: Tuple[NavigationFrame, ...] = ()


# =============================================================================
# Filter Models
# =============================================================================


class GlobalFilters(BaseModel):
    """
    Filters that apply to every fetch regardless of drill position.

    A change to any of these invalidates every in-flight request.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    company: str = Field(default="", description="Active tenant/company name")
    search: Optional[str] = Field(default=None, description="Free-text search")
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    calculation: Optional[Calculation] = None

    @field_validator('search')
    @classmethod
    def blank_search_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value or None

    @model_validator(mode='after')
    def ordered_range(self) -> 'GlobalFilters':
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError(f"date_from {self.date_from} is after date_to {self.date_to}")
        return self


# =============================================================================
# Report Data Models
# =============================================================================


class ReportRow(BaseModel):
    """
    One displayed row.

    Level-identifying fields (salesperson, region, service, service_type,
    customer_code, customer_name, ...) and pass-through fields needed for
    click targets (quotation_id, call_entry_id, ...) are kept as extra
    fields. The six metric fields default to 0 when absent upstream.
    """
    model_config = ConfigDict(frozen=True, extra='allow')

    potential: float = 0.0
    pipeline: float = 0.0
    gained: float = 0.0
    lost: float = 0.0
    quote: float = 0.0
    expected: float = 0.0
    is_total: bool = False

    @field_validator(*METRIC_FIELDS, mode='before')
    @classmethod
    def metric_default(cls, value: Any) -> Any:
        return _coerce_number(value)

    def get(self, field: str, default: Any = None) -> Any:
        """Dict-style access across declared and extra fields."""
        if field in type(self).model_fields:
            return getattr(self, field)
        return (self.model_extra or {}).get(field, default)

    def with_metric(self, metric: MetricKey, value: float) -> 'ReportRow':
        """Return a copy with one metric replaced."""
        return self.model_copy(update={MetricKey(metric).value: float(value)})


class Summary(BaseModel):
    """
    Authoritative aggregate totals supplied by the data provider.

    Never derived by summing client-side rows: provider totals may cover
    rows outside the current page or search filter.
    """
    model_config = ConfigDict(frozen=True)

    total_potential: float = 0.0
    total_pipeline: float = 0.0
    total_gained: float = 0.0
    total_lost: float = 0.0
    total_quoted: float = 0.0
    total_expected: float = 0.0

    @field_validator(
        'total_potential', 'total_pipeline', 'total_gained',
        'total_lost', 'total_quoted', 'total_expected',
        mode='before',
    )
    @classmethod
    def total_default(cls, value: Any) -> Any:
        return _coerce_number(value)


class FetchResult(BaseModel):
    """Rows plus the optional summary returned for one frame."""
    model_config = ConfigDict(frozen=True)

    rows: Tuple[ReportRow, ...] = ()
    summary: Optional[Summary] = None
