"""
Aggregation Merger for the Pipeline Report drill engine.

Combines fetched rows with the provider's summary into the displayed row set,
optionally followed by one synthetic TOTAL row.

The TOTAL row is built only from Summary fields. It is never a sum of the
displayed rows, because provider totals may cover rows outside the current
page or search filter.

Key Functions:
- merge: Rows plus optional TOTAL row
- build_total_row: The TOTAL row for a summary
- should_suppress_total: TOTAL row rule for a frame under a TotalRowPolicy
"""

from typing import Iterable, Optional, Tuple

from pipeline_report.models.enums import TotalRowPolicy
from pipeline_report.models.schemas import NavigationFrame, ReportRow, Summary
from pipeline_report.services.axes import AxisDescriptor
from pipeline_report.services.metric_registry import METRIC_REGISTRY


TOTAL_LABEL = "TOTAL"


def build_total_row(
    template: ReportRow,
    summary: Summary,
    label_field: Optional[str] = None,
) -> ReportRow:
    """
    Build the synthetic TOTAL row.

    Every non-metric field of `template` is blanked, `label_field` (or the
    template's first identifying field) is set to "TOTAL", and each metric
    takes the value of its Summary field.

    Args:
        template: Row whose field layout the TOTAL row mirrors.
        summary: Provider totals.
        label_field: Field receiving the "TOTAL" label.

    Returns:
        ReportRow: Row with is_total=True.
    """
    extras = dict(template.model_extra or {})
    data = {name: "" for name in extras}
    if label_field is None:
        label_field = next(iter(extras), "label")
    data[label_field] = TOTAL_LABEL

    for metric, spec in METRIC_REGISTRY.items():
        data[metric.value] = getattr(summary, spec.summary_field)

    return ReportRow(is_total=True, **data)


def merge(
    rows: Iterable[ReportRow],
    summary: Optional[Summary],
    suppress_total: bool,
    label_field: Optional[str] = None,
) -> Tuple[ReportRow, ...]:
    """
    Produce the displayed row set.

    A TOTAL row is appended only when a summary is present, `suppress_total`
    is false and there is at least one row. Identical inputs always give
    identical output.

    Example:
        >>> merged = merge(rows, summary, suppress_total=False, label_field="region")
        >>> merged[-1].get("region")
        'TOTAL'
    """
    rows = tuple(rows)
    if suppress_total or summary is None or not rows:
        return rows
    return rows + (build_total_row(rows[0], summary, label_field),)


def should_suppress_total(
    descriptor: AxisDescriptor,
    frame: NavigationFrame,
    policy: TotalRowPolicy = TotalRowPolicy.LEAF_ONLY,
) -> bool:
    """
    Whether the TOTAL row is hidden for `frame`.

    Dimension levels never hide it. For metric detail views:
    - leaf_only: hidden unless the detail view was opened from a leaf row
      (the clicked row sat at the axis' max depth)
    - always: never hidden
    - never: always hidden
    """
    if frame.metric_filter is None:
        return False
    policy = TotalRowPolicy(policy)
    if policy == TotalRowPolicy.ALWAYS:
        return False
    if policy == TotalRowPolicy.NEVER:
        return True
    origin_depth = descriptor.depth_of(frame.drill_path) - 1
    return origin_depth < descriptor.max_depth


__all__ = [
    'TOTAL_LABEL',
    'build_total_row',
    'merge',
    'should_suppress_total',
]
