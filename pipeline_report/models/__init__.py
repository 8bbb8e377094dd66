"""
Package initialization file for the Pipeline Report models.

Exports every Pydantic schema and enumeration from schemas.py and enums.py so
other modules can import data models without knowing the internal layout.

Usage:
    from pipeline_report.models import (
        Axis,
        MetricKey,
        NavigationFrame,
        ReportRow,
        # ... etc
    )
"""

# =============================================================================
# Enums - Import and re-export all enumerations from enums.py
# =============================================================================

from pipeline_report.models.enums import (
    Axis,
    LevelKind,
    MetricKey,
    ViewState,
    Calculation,
    TotalRowPolicy,
)

# =============================================================================
# Schemas - Import and re-export all Pydantic models from schemas.py
# =============================================================================

from pipeline_report.models.schemas import (
    # Navigation
    DrillSelection,
    MetricFilter,
    NavigationFrame,
    NavigationHistory,
    # Filters
    GlobalFilters,
    # Report data
    ReportRow,
    Summary,
    FetchResult,
    METRIC_FIELDS,
)

__all__ = [
    # Enums
    'Axis',
    'LevelKind',
    'MetricKey',
    'ViewState',
    'Calculation',
    'TotalRowPolicy',
    # Navigation
    'DrillSelection',
    'MetricFilter',
    'NavigationFrame',
    'NavigationHistory',
    # Filters
    'GlobalFilters',
    # Report data
    'ReportRow',
    'Summary',
    'FetchResult',
    'METRIC_FIELDS',
]
