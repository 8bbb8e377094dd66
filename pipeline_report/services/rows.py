"""
Row normalization for data provider payloads.

Upstream payloads name metrics inconsistently (`gained_profit` on one
endpoint, `gained` on another, `quoted_created` vs `quote`). Every row is
normalized once, when a fetch result reaches the engine, so that the merger,
renderer and export code only ever see the six canonical metric fields.

Normalization rules:
- Each metric is resolved from its ordered source fields (first non-empty
  wins) and cast to float; missing, null or unparseable values become 0.
- Null or empty text fields become "-".
- Rows carrying both `service` and `service_type` get a combined
  `service_label` ("FCL Import") for the product axis.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from pipeline_report.models.schemas import FetchResult, ReportRow, Summary
from pipeline_report.services.axes import EMPTY_TEXT
from pipeline_report.services.metric_registry import METRIC_REGISTRY


logger = logging.getLogger(__name__)

_SOURCE_FIELDS = {name for spec in METRIC_REGISTRY.values() for name in spec.source_fields}


def _to_float(value: Any, field: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Non-numeric value {value!r} for metric field '{field}', using 0")
        return 0.0


def normalize_row(raw: Union[ReportRow, Mapping[str, Any]]) -> ReportRow:
    """
    Normalize one upstream row into a ReportRow.

    Args:
        raw: Mapping from the provider, or an already-built ReportRow.

    Returns:
        ReportRow: Row with canonical metric fields.

    Example:
        >>> row = normalize_row({"service": "FCL", "service_type": "Import",
        ...                      "gained_profit": "12000"})
        >>> row.gained, row.get("service_label")
        (12000.0, 'FCL Import')
    """
    if isinstance(raw, ReportRow):
        return raw

    data: Dict[str, Any] = {}
    for name, value in raw.items():
        if name in _SOURCE_FIELDS or name == "is_total":
            continue
        if value is None or (isinstance(value, str) and not value.strip()):
            data[name] = EMPTY_TEXT
        else:
            data[name] = value

    for metric, spec in METRIC_REGISTRY.items():
        value = 0.0
        for source in spec.source_fields:
            candidate = raw.get(source)
            if candidate is not None and candidate != "":
                value = _to_float(candidate, source)
                break
        data[metric.value] = value

    service = data.get("service")
    service_type = data.get("service_type")
    if "service_label" not in data and service not in (None, EMPTY_TEXT) \
            and service_type not in (None, EMPTY_TEXT):
        data["service_label"] = f"{service} {service_type}"

    return ReportRow(is_total=bool(raw.get("is_total", False)), **data)


def normalize_rows(rows: Iterable[Union[ReportRow, Mapping[str, Any]]]) -> tuple:
    """Normalize a sequence of upstream rows, preserving order."""
    return tuple(normalize_row(row) for row in rows)


def coerce_fetch_result(raw: Union[FetchResult, Mapping[str, Any], None]) -> FetchResult:
    """
    Turn whatever a data provider returned into a FetchResult.

    Providers may return a FetchResult or a mapping
    `{"rows": [...], "summary": {...} | None}`. A missing payload is treated
    as an empty result.

    Raises:
        TypeError: If the payload has an unsupported type.
    """
    if raw is None:
        return FetchResult()
    if isinstance(raw, FetchResult):
        return FetchResult(rows=normalize_rows(raw.rows), summary=raw.summary)
    if not isinstance(raw, Mapping):
        raise TypeError(f"Unsupported fetch result type: {type(raw).__name__}")

    summary: Optional[Summary] = None
    raw_summary = raw.get("summary")
    if isinstance(raw_summary, Summary):
        summary = raw_summary
    elif raw_summary is not None:
        summary = Summary.model_validate(raw_summary)

    return FetchResult(rows=normalize_rows(raw.get("rows") or ()), summary=summary)


__all__ = [
    'normalize_row',
    'normalize_rows',
    'coerce_fetch_result',
]
