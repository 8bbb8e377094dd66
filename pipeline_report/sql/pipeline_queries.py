"""
Parameterized SQL for the PostgreSQL Pipeline Report provider.

Queries read the `pipeline_report_fact` relation: one record per quotation /
call entry with its dimension columns and the six profit columns. The
`expected_profit` column is expected to come from `customer_expected_profit`
through the view definition.

Column names are only ever taken from the whitelists below; every value
travels as a $n parameter.

Query Families:
    - Level rows: grouped by the displayed level's columns, metrics summed
    - Summary: ungrouped totals under the same filters
    - Detail rows: individual records whose metric is non-zero
    - Expected profit upsert
"""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple


FACT_TABLE = "pipeline_report_fact"
EXPECTED_TABLE = "customer_expected_profit"

# Metric key -> fact column
METRIC_COLUMNS: Dict[str, str] = {
    "potential": "potential_profit",
    "pipeline": "pipeline_profit",
    "gained": "gained_profit",
    "lost": "lost_profit",
    "quote": "quoted_profit",
    "expected": "expected_profit",
}

# Metric key -> summary column alias
SUMMARY_ALIASES: Dict[str, str] = {
    "potential": "total_potential",
    "pipeline": "total_pipeline",
    "gained": "total_gained",
    "lost": "total_lost",
    "quote": "total_quoted",
    "expected": "total_expected",
}

# Level kind -> fact column used to filter by a selection
SELECTION_COLUMNS: Dict[str, str] = {
    "salesperson": "salesperson",
    "region": "region",
    "service": "service",
    "service_type": "service_type",
    "customer": "customer_code",
}

# Columns a level may be grouped by
GROUPABLE_COLUMNS = frozenset({
    "salesperson", "region", "service", "service_type", "customer_code", "customer_name",
})

DETAIL_COLUMNS: Tuple[str, ...] = (
    "quotation_id",
    "call_entry_id",
    "created_at",
    "salesperson",
    "region",
    "service",
    "service_type",
    "customer_code",
    "customer_name",
)

# Columns compared case-insensitively
_CASE_INSENSITIVE = frozenset({"service_type"})


def _placeholder(params: List[Any], value: Any) -> str:
    params.append(value)
    return f"${len(params)}"


def metric_column(metric: str) -> str:
    """
    Fact column of a metric key.

    Raises:
        ValueError: If the metric is unknown.
    """
    try:
        return METRIC_COLUMNS[metric]
    except KeyError:
        raise ValueError(f"Unknown metric: {metric}") from None


def metric_aggregate(column: str, calculation: str = "volume") -> str:
    """
    Aggregate expression for one metric column.

    `volume` sums profit; `no_of_shipments` counts the records that carry a
    non-zero value.
    """
    if calculation == "no_of_shipments":
        return f"COUNT(*) FILTER (WHERE COALESCE({column}, 0) <> 0)"
    return f"COALESCE(SUM({column}), 0)"


def build_where_clause(
    params: List[Any],
    company: Optional[str] = None,
    selections: Sequence[Tuple[str, str]] = (),
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    metric: Optional[str] = None,
) -> str:
    """
    Build a WHERE clause, appending its values to `params`.

    Args:
        params: Parameter list extended in place; placeholders follow its length.
        company: Tenant filter.
        selections: (level_kind, key) pairs from the drill path.
        search: Free text matched against customer and salesperson names.
        date_from: Inclusive start on created_at.
        date_to: Inclusive end on created_at.
        metric: Restrict to records whose metric column is non-zero.

    Returns:
        str: "WHERE ..." or an empty string when there are no conditions.

    Raises:
        ValueError: On an unknown level kind or metric.

    Example:
        >>> params = []
        >>> build_where_clause(params, company="Acme", selections=[("region", "EMEA")])
        'WHERE company = $1 AND region = $2'
    """
    conditions: List[str] = []

    if company:
        conditions.append(f"company = {_placeholder(params, company)}")

    for kind, key in selections:
        column = SELECTION_COLUMNS.get(kind)
        if column is None:
            raise ValueError(f"Unknown level kind: {kind}")
        placeholder = _placeholder(params, key)
        if column in _CASE_INSENSITIVE:
            conditions.append(f"LOWER({column}) = LOWER({placeholder})")
        else:
            conditions.append(f"{column} = {placeholder}")

    if search:
        placeholder = _placeholder(params, f"%{search}%")
        conditions.append(f"(customer_name ILIKE {placeholder} OR salesperson ILIKE {placeholder})")

    if date_from:
        conditions.append(f"created_at::date >= {_placeholder(params, date_from)}")
    if date_to:
        conditions.append(f"created_at::date <= {_placeholder(params, date_to)}")

    if metric:
        conditions.append(f"COALESCE({metric_column(metric)}, 0) <> 0")

    if not conditions:
        return ""
    return "WHERE " + " AND ".join(conditions)


def get_level_rows_query(
    group_columns: Sequence[str],
    where_clause: str,
    calculation: str = "volume",
) -> str:
    """
    Rows of one report level, one per distinct group value.

    Args:
        group_columns: Columns identifying the level's values.
        where_clause: Output of build_where_clause().
        calculation: "volume" or "no_of_shipments".

    Returns:
        str: SQL whose metric columns carry the *_profit names.
    """
    unknown = [column for column in group_columns if column not in GROUPABLE_COLUMNS]
    if unknown or not group_columns:
        raise ValueError(f"Cannot group by {list(group_columns)}")

    group_list = ", ".join(group_columns)
    metrics = ",\n        ".join(
        f"{metric_aggregate(column, calculation)} AS {column}"
        for column in METRIC_COLUMNS.values()
    )
    return f"""
    SELECT
        {group_list},
        {metrics}
    FROM {FACT_TABLE}
    {where_clause}
    GROUP BY {group_list}
    ORDER BY {group_list}
    """


def get_summary_query(where_clause: str, calculation: str = "volume") -> str:
    """Authoritative totals for the same filters as the displayed rows."""
    totals = ",\n        ".join(
        f"{metric_aggregate(METRIC_COLUMNS[metric], calculation)} AS {alias}"
        for metric, alias in SUMMARY_ALIASES.items()
    )
    return f"""
    SELECT
        {totals}
    FROM {FACT_TABLE}
    {where_clause}
    """


def get_detail_rows_query(where_clause: str, limit_placeholder: str) -> str:
    """
    Individual records for a metric detail view, newest first.

    The metric condition is expected in `where_clause`.
    """
    columns = ",\n        ".join(DETAIL_COLUMNS + tuple(METRIC_COLUMNS.values()))
    return f"""
    SELECT
        {columns}
    FROM {FACT_TABLE}
    {where_clause}
    ORDER BY created_at DESC, quotation_id
    LIMIT {limit_placeholder}
    """


def get_upsert_expected_query() -> str:
    """
    Upsert a customer's expected profit.

    Parameters: $1 company, $2 customer_code, $3 expected_profit.
    """
    return f"""
    INSERT INTO {EXPECTED_TABLE} (company, customer_code, expected_profit, updated_at)
    VALUES ($1, $2, $3, NOW())
    ON CONFLICT (company, customer_code)
    DO UPDATE SET
        expected_profit = EXCLUDED.expected_profit,
        updated_at = NOW()
    """
