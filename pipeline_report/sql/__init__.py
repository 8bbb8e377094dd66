"""
SQL Query Module for the Pipeline Report.

Provides parameterized PostgreSQL queries for the reference report provider
and edit sink. Re-exported here so callers import from pipeline_report.sql
rather than the submodule.

Submodules:
    pipeline_queries: Level rows, summaries, metric detail records and the
                      expected profit upsert over pipeline_report_fact.

Example usage:
    from pipeline_report.sql import build_where_clause, get_summary_query

    params = []
    where = build_where_clause(params, company="Acme", selections=[("region", "EMEA")])
    sql = get_summary_query(where)
"""

from pipeline_report.sql.pipeline_queries import (
    FACT_TABLE,
    EXPECTED_TABLE,
    METRIC_COLUMNS,
    SUMMARY_ALIASES,
    SELECTION_COLUMNS,
    DETAIL_COLUMNS,
    metric_column,
    metric_aggregate,
    build_where_clause,
    get_level_rows_query,
    get_summary_query,
    get_detail_rows_query,
    get_upsert_expected_query,
)

__all__ = [
    # Relations and column whitelists
    'FACT_TABLE',
    'EXPECTED_TABLE',
    'METRIC_COLUMNS',
    'SUMMARY_ALIASES',
    'SELECTION_COLUMNS',
    'DETAIL_COLUMNS',
    # Expression builders
    'metric_column',
    'metric_aggregate',
    'build_where_clause',
    # Queries
    'get_level_rows_query',
    'get_summary_query',
    'get_detail_rows_query',
    'get_upsert_expected_query',
]
