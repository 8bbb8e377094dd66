"""
Enumeration definitions for the Pipeline Report engine.

All enums inherit from both `str` and `Enum` so they serialize as plain
strings inside Pydantic models and compare equal to the raw values the UI
and data providers exchange.
"""

from enum import Enum


class Axis(str, Enum):
    """
    Independent pivot dimensions of the Pipeline Report (one tab each).

    - salesperson: salesperson -> customer
    - region: region/sector -> salesperson -> customer
    - product: service + service type -> salesperson -> customer
    """
    SALESPERSON = "salesperson"
    REGION = "region"
    PRODUCT = "product"


class LevelKind(str, Enum):
    """
    Dimension kinds that can appear in a drill path.

    The value doubles as the filter name a data provider receives.
    """
    SALESPERSON = "salesperson"
    REGION = "region"
    SERVICE = "service"
    SERVICE_TYPE = "service_type"
    CUSTOMER = "customer"


class MetricKey(str, Enum):
    """
    The six financial metrics shown on every report level.

    `quote` is the UI column key; it normalizes to `quoted_created` before
    reaching a data provider. `expected` is an editable value, not a
    drillable aggregate, at the extremes of an axis.
    """
    POTENTIAL = "potential"
    PIPELINE = "pipeline"
    GAINED = "gained"
    LOST = "lost"
    QUOTE = "quote"
    EXPECTED = "expected"


class ViewState(str, Enum):
    """
    Shape of the current view.

    - root: axis selector (tabbed view) at level 0, no metric filter
    - dimension_level: axis chosen, depth below the axis' max depth
    - leaf: depth equals the axis' max depth (customer rows)
    - metric_detail: a metric filter is attached; rows are transactions
    """
    ROOT = "root"
    DIMENSION_LEVEL = "dimension_level"
    LEAF = "leaf"
    METRIC_DETAIL = "metric_detail"


class Calculation(str, Enum):
    """
    How metric values are computed upstream.

    - volume: summed profit
    - no_of_shipments: number of records carrying the metric
    """
    VOLUME = "volume"
    NO_OF_SHIPMENTS = "no_of_shipments"


class TotalRowPolicy(str, Enum):
    """
    Treatment of the synthetic TOTAL row on metric detail views.

    Dimension levels always show it when a summary is available.

    - leaf_only: show it only on detail views opened from a leaf row
    - always: show it on every metric detail view
    - never: hide it on every metric detail view
    """
    LEAF_ONLY = "leaf_only"
    ALWAYS = "always"
    NEVER = "never"
