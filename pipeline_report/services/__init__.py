"""
Pipeline Report Services Module

Business logic of the drill-down navigation and aggregation engine.

Services:
- axes: Axis descriptors (levels, field mapping, selections from rows)
- metric_registry: The six metrics and their drill eligibility
- rows: Normalization of provider payloads
- navigation: Navigation stack and ROOT sentinel
- sequencer: Versioned fetches, session epoch, loading flags
- aggregation: Rows plus TOTAL row from the provider summary
- interfaces: Collaborator protocols and the tenant context
- drill_engine: The owned state machine and its view snapshots
- sql_provider: PostgreSQL data provider and edit sink
- export: DataFrame / CSV export of displayed rows
"""

# =============================================================================
# Axis Descriptors
# =============================================================================

from pipeline_report.services.axes import (
    LevelField,
    LEVEL_FIELDS,
    AxisLevel,
    AxisDescriptor,
    AXIS_DESCRIPTORS,
    get_axis_descriptor,
    split_service_label,
)

# =============================================================================
# Metric Registry
# =============================================================================

from pipeline_report.services.metric_registry import (
    MetricSpec,
    METRIC_REGISTRY,
    DRILL_ELIGIBILITY,
    normalize_metric_key,
    resolve_metric,
    is_drill_eligible,
)

# =============================================================================
# Row Normalization
# =============================================================================

from pipeline_report.services.rows import (
    normalize_row,
    normalize_rows,
    coerce_fetch_result,
)

# =============================================================================
# Navigation, Sequencing and Aggregation
# =============================================================================

from pipeline_report.services.navigation import (
    RootSentinel,
    ROOT,
    NavigationStack,
)
from pipeline_report.services.sequencer import (
    RequestTicket,
    RequestSequencer,
)
from pipeline_report.services.aggregation import (
    TOTAL_LABEL,
    build_total_row,
    merge,
    should_suppress_total,
)

# =============================================================================
# Collaborators and Engine
# =============================================================================

from pipeline_report.services.interfaces import (
    ReportDataProvider,
    EditSink,
    Renderer,
    TenantContext,
)
from pipeline_report.services.drill_engine import (
    ViewSnapshot,
    DrillEngine,
)
from pipeline_report.services.sql_provider import (
    PostgresReportProvider,
    PostgresEditSink,
)
from pipeline_report.services.export import (
    rows_to_dataframe,
    export_rows_csv,
)

__all__ = [
    # Axes
    'LevelField',
    'LEVEL_FIELDS',
    'AxisLevel',
    'AxisDescriptor',
    'AXIS_DESCRIPTORS',
    'get_axis_descriptor',
    'split_service_label',
    # Metric registry
    'MetricSpec',
    'METRIC_REGISTRY',
    'DRILL_ELIGIBILITY',
    'normalize_metric_key',
    'resolve_metric',
    'is_drill_eligible',
    # Rows
    'normalize_row',
    'normalize_rows',
    'coerce_fetch_result',
    # Navigation
    'RootSentinel',
    'ROOT',
    'NavigationStack',
    # Sequencer
    'RequestTicket',
    'RequestSequencer',
    # Aggregation
    'TOTAL_LABEL',
    'build_total_row',
    'merge',
    'should_suppress_total',
    # Collaborators
    'ReportDataProvider',
    'EditSink',
    'Renderer',
    'TenantContext',
    # Engine
    'ViewSnapshot',
    'DrillEngine',
    # PostgreSQL collaborators
    'PostgresReportProvider',
    'PostgresEditSink',
    # Export
    'rows_to_dataframe',
    'export_rows_csv',
]
