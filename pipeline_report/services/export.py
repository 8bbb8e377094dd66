"""
Tabular export of the displayed Pipeline Report rows.

Backs the report's download action: the merged row set (TOTAL row included)
becomes a pandas DataFrame, and from there CSV bytes.

Column order: identifying and pass-through fields in the order the first row
carries them, then the six metrics. Metric columns can be renamed to their
captions (Potential, Pipeline, ...).
"""

import logging
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from pipeline_report.models.schemas import METRIC_FIELDS, ReportRow
from pipeline_report.services.metric_registry import METRIC_REGISTRY


logger = logging.getLogger(__name__)


def _default_columns(rows: Sequence[ReportRow]) -> List[str]:
    columns: List[str] = []
    for row in rows:
        for name in (row.model_extra or {}):
            if name not in columns:
                columns.append(name)
    return columns + list(METRIC_FIELDS)


def rows_to_dataframe(
    rows: Iterable[ReportRow],
    columns: Optional[Sequence[str]] = None,
    captions: bool = False,
) -> pd.DataFrame:
    """
    Convert displayed rows to a DataFrame.

    Args:
        rows: Rows as shown, usually ViewSnapshot.rows.
        columns: Columns to keep, in order (default: every field).
        captions: Rename metric columns to their captions.

    Returns:
        pd.DataFrame: One row per report row; missing fields are NaN.
    """
    rows = list(rows)
    columns = list(columns) if columns is not None else _default_columns(rows)
    if not rows:
        df = pd.DataFrame(columns=columns)
    else:
        df = pd.DataFrame([row.model_dump() for row in rows]).reindex(columns=columns)

    if captions:
        df = df.rename(columns={m.value: spec.label for m, spec in METRIC_REGISTRY.items()})
    return df


def export_rows_csv(
    rows: Iterable[ReportRow],
    columns: Optional[Sequence[str]] = None,
    captions: bool = True,
) -> bytes:
    """
    Render displayed rows as UTF-8 CSV bytes.

    Example:
        >>> data = export_rows_csv(engine.snapshot().rows)
    """
    df = rows_to_dataframe(rows, columns=columns, captions=captions)
    logger.info(f"Exporting {len(df)} pipeline report rows")
    return df.to_csv(index=False).encode("utf-8")


__all__ = [
    'rows_to_dataframe',
    'export_rows_csv',
]
