"""
Metric Registry for the Pipeline Report drill engine.

Static table of the six financial metrics. For each metric it records:

- the canonical key sent to a data provider (only `quote` differs, it becomes
  `quoted_created`)
- the ordered upstream field names a row value may arrive under
- the Summary field that carries the metric's authoritative total
- the depths, per axis, at which clicking the metric's cell may drill

Key Functions:
- normalize_metric_key: Resolve a UI or provider metric name to MetricKey
- resolve_metric: Look up the MetricSpec for a metric
- is_drill_eligible: Boolean query used by the UI to decide clickable cells

Drill Eligibility Rule:
- `expected` is an editable value, not a drillable aggregate. It is never
  eligible at depth 0 or at the axis' max depth.
- Every other metric is eligible at every depth from 0 to the max depth.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple, Union

from pipeline_report.models.enums import Axis, MetricKey
from pipeline_report.services.axes import AXIS_DESCRIPTORS


# =============================================================================
# Metric Specifications
# =============================================================================


@dataclass(frozen=True)
class MetricSpec:
    """
    Static description of one financial metric.

    Attributes:
        key: The metric.
        normalized_key: Key the data provider receives in a metric filter.
        source_fields: Upstream field names in lookup order; first non-empty wins.
        summary_field: Summary attribute holding the metric's total.
        label: Column caption.
    """
    key: MetricKey
    normalized_key: str
    source_fields: Tuple[str, ...]
    summary_field: str
    label: str


METRIC_REGISTRY: Dict[MetricKey, MetricSpec] = {
    MetricKey.POTENTIAL: MetricSpec(
        key=MetricKey.POTENTIAL,
        normalized_key="potential",
        source_fields=("potential_profit", "potential"),
        summary_field="total_potential",
        label="Potential",
    ),
    MetricKey.PIPELINE: MetricSpec(
        key=MetricKey.PIPELINE,
        normalized_key="pipeline",
        source_fields=("pipeline_profit", "pipeline"),
        summary_field="total_pipeline",
        label="Pipeline",
    ),
    MetricKey.GAINED: MetricSpec(
        key=MetricKey.GAINED,
        normalized_key="gained",
        source_fields=("gained_profit", "gained"),
        summary_field="total_gained",
        label="Gained",
    ),
    MetricKey.LOST: MetricSpec(
        key=MetricKey.LOST,
        normalized_key="lost",
        source_fields=("lost_profit", "lost"),
        summary_field="total_lost",
        label="Lost",
    ),
    MetricKey.QUOTE: MetricSpec(
        key=MetricKey.QUOTE,
        normalized_key="quoted_created",
        source_fields=("quoted_profit", "quoted_created", "quote"),
        summary_field="total_quoted",
        label="Quoted",
    ),
    MetricKey.EXPECTED: MetricSpec(
        key=MetricKey.EXPECTED,
        normalized_key="expected",
        source_fields=("expected_profit", "expected"),
        summary_field="total_expected",
        label="Expected",
    ),
}

# Names a metric may arrive under besides its own value
_METRIC_ALIASES: Dict[str, MetricKey] = {
    "quoted_created": MetricKey.QUOTE,
    "quoted": MetricKey.QUOTE,
}


# =============================================================================
# Drill Eligibility Table
# =============================================================================

AXIS_MAX_DEPTH: Dict[Axis, int] = {
    axis: descriptor.max_depth for axis, descriptor in AXIS_DESCRIPTORS.items()
}


def _eligible_depths(metric: MetricKey, max_depth: int) -> FrozenSet[int]:
    depths = range(max_depth + 1)
    if metric == MetricKey.EXPECTED:
        return frozenset(d for d in depths if 0 < d < max_depth)
    return frozenset(depths)


DRILL_ELIGIBILITY: Dict[Axis, Dict[MetricKey, FrozenSet[int]]] = {
    axis: {metric: _eligible_depths(metric, max_depth) for metric in MetricKey}
    for axis, max_depth in AXIS_MAX_DEPTH.items()
}


# =============================================================================
# Lookup Functions
# =============================================================================


def normalize_metric_key(metric: Union[str, MetricKey]) -> MetricKey:
    """
    Resolve a metric name to its MetricKey.

    Accepts the UI column keys, the provider-normalized keys and the enum
    itself, case-insensitively.

    Args:
        metric: Metric name or MetricKey.

    Returns:
        MetricKey: The resolved metric.

    Raises:
        ValueError: If the name is not a known metric.

    Example:
        >>> normalize_metric_key("quoted_created")
        <MetricKey.QUOTE: 'quote'>
    """
    if isinstance(metric, MetricKey):
        return metric
    name = str(metric).strip().lower()
    if name in _METRIC_ALIASES:
        return _METRIC_ALIASES[name]
    try:
        return MetricKey(name)
    except ValueError:
        raise ValueError(f"Unknown metric: {metric!r}") from None


def resolve_metric(metric: Union[str, MetricKey]) -> MetricSpec:
    """Return the MetricSpec for a metric name or key."""
    return METRIC_REGISTRY[normalize_metric_key(metric)]


def is_drill_eligible(metric: Union[str, MetricKey], axis: Union[str, Axis], depth: int) -> bool:
    """
    Whether clicking `metric` at `depth` of `axis` opens a metric detail view.

    Unknown metrics, unknown axes and out-of-range depths are not eligible.

    Args:
        metric: Metric name or key.
        axis: Axis name or enum.
        depth: Number of axis levels already fixed (0 = axis root).

    Returns:
        bool: True if the cell is clickable.
    """
    try:
        key = normalize_metric_key(metric)
        axis = Axis(axis)
    except ValueError:
        return False
    return depth in DRILL_ELIGIBILITY[axis][key]


__all__ = [
    'MetricSpec',
    'METRIC_REGISTRY',
    'AXIS_MAX_DEPTH',
    'DRILL_ELIGIBILITY',
    'normalize_metric_key',
    'resolve_metric',
    'is_drill_eligible',
]
