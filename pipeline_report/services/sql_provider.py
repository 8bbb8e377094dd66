"""
PostgreSQL reference collaborators for the Drill Engine.

- PostgresReportProvider: implements ReportDataProvider over the
  pipeline_report_fact relation
- PostgresEditSink: implements EditSink by upserting expected profit

Both use the shared asyncpg pool from pipeline_report.core.database and turn
driver failures into TransientFetchError / EditFailure for the engine.

Usage:
    provider = PostgresReportProvider()
    sink = PostgresEditSink(tenant=tenant)
    engine = DrillEngine(provider, edit_sink=sink, tenant=tenant)
"""

import logging
from typing import Any, List, Optional, Tuple

import asyncpg

from pipeline_report.core.config import Settings, get_settings
from pipeline_report.core.database import get_db_pool
from pipeline_report.core.errors import EditFailure, TransientFetchError
from pipeline_report.models.enums import Axis, Calculation
from pipeline_report.models.schemas import (
    DrillSelection,
    FetchResult,
    GlobalFilters,
    MetricFilter,
    Summary,
)
from pipeline_report.services.axes import get_axis_descriptor
from pipeline_report.services.interfaces import TenantContext
from pipeline_report.services.rows import normalize_rows
from pipeline_report.sql.pipeline_queries import (
    build_where_clause,
    get_detail_rows_query,
    get_level_rows_query,
    get_summary_query,
    get_upsert_expected_query,
)


logger = logging.getLogger(__name__)


class PostgresReportProvider:
    """
    Report data provider backed by PostgreSQL.

    Dimension frames return one row per value of the displayed level.
    Metric detail frames return the individual records carrying the metric,
    capped at settings.detail_row_limit. Both return the summary for the
    same filters.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def _calculation(self, filters: GlobalFilters) -> str:
        calculation = filters.calculation or self._settings.default_calculation or Calculation.VOLUME
        return Calculation(calculation).value

    def build_queries(
        self,
        axis: Axis,
        drill_path: Tuple[DrillSelection, ...],
        metric_filter: Optional[MetricFilter],
        filters: GlobalFilters,
    ) -> Tuple[str, List[Any], str, List[Any]]:
        """
        Build (rows_sql, rows_params, summary_sql, summary_params) for a frame.

        Raises:
            IllegalTransitionError: If the drill path does not fit the axis.
            ValueError: On an unknown level kind or metric.
        """
        descriptor = get_axis_descriptor(axis)
        depth = descriptor.validate_path(drill_path, metric_filter is not None)
        calculation = self._calculation(filters)

        params: List[Any] = []
        where = build_where_clause(
            params,
            company=filters.company or None,
            selections=[(s.level_kind.value, s.key) for s in drill_path],
            search=filters.search,
            date_from=filters.date_from,
            date_to=filters.date_to,
            metric=metric_filter.metric.value if metric_filter else None,
        )
        summary_sql = get_summary_query(where, calculation)

        if metric_filter is None:
            group_columns = descriptor.level_at(depth).group_fields
            return get_level_rows_query(group_columns, where, calculation), params, summary_sql, params

        rows_params = params + [self._settings.detail_row_limit]
        rows_sql = get_detail_rows_query(where, f"${len(rows_params)}")
        return rows_sql, rows_params, summary_sql, params

    async def fetch(
        self,
        axis: Axis,
        drill_path: Tuple[DrillSelection, ...],
        metric_filter: Optional[MetricFilter],
        filters: GlobalFilters,
    ) -> FetchResult:
        """
        Fetch rows and summary for a frame.

        Raises:
            TransientFetchError: If the database is unreachable or the query fails.
        """
        rows_sql, rows_params, summary_sql, summary_params = self.build_queries(
            axis, drill_path, metric_filter, filters
        )
        depth = get_axis_descriptor(axis).depth_of(drill_path)

        try:
            pool = await get_db_pool()
            async with pool.acquire() as conn:
                records = await conn.fetch(rows_sql, *rows_params)
                summary_record = await conn.fetchrow(summary_sql, *summary_params)
        except (asyncpg.PostgresError, OSError) as exc:
            raise TransientFetchError(
                f"Pipeline report query failed: {exc}", axis=axis, depth=depth
            ) from exc

        rows = normalize_rows(dict(record) for record in records)
        summary = Summary.model_validate(dict(summary_record)) if summary_record else None
        logger.debug(f"Fetched {len(rows)} rows for {axis.value} depth {depth}")
        return FetchResult(rows=rows, summary=summary)


class PostgresEditSink:
    """
    Edit sink storing expected profit per (company, customer).

    Args:
        company: Fixed company, used when no tenant context is given.
        tenant: Tenant context whose current company scopes each write.
    """

    def __init__(self, company: str = "", tenant: Optional[TenantContext] = None) -> None:
        self._company = company
        self._tenant = tenant

    @property
    def company(self) -> str:
        return self._tenant.company if self._tenant is not None else self._company

    async def update_metric(self, entity_key: str, metric: str, new_value: float) -> bool:
        """
        Upsert a customer's expected profit.

        Returns:
            bool: True once the row is written.

        Raises:
            EditFailure: For a metric other than expected, or a database failure.
        """
        if metric != "expected":
            raise EditFailure(f"Metric {metric} is not editable", entity_key=entity_key, metric=metric)

        try:
            pool = await get_db_pool()
            async with pool.acquire() as conn:
                status = await conn.execute(
                    get_upsert_expected_query(), self.company, entity_key, float(new_value)
                )
        except (asyncpg.PostgresError, OSError) as exc:
            raise EditFailure(
                f"Could not store expected profit: {exc}", entity_key=entity_key, metric=metric
            ) from exc

        logger.info(f"Expected profit for {entity_key} stored ({status})")
        return True


__all__ = [
    'PostgresReportProvider',
    'PostgresEditSink',
]
