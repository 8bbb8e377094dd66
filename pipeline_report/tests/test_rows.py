"""
Row Normalization Test Module

Covers metric field fallbacks, float coercion, empty text placeholders, the
combined product label and fetch result coercion.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from pipeline_report.models.enums import Calculation
from pipeline_report.models.schemas import FetchResult, GlobalFilters, ReportRow, Summary
from pipeline_report.services.rows import coerce_fetch_result, normalize_row


class TestNormalizeRow:
    """Tests for normalize_row."""

    def test_profit_fields_map_to_metrics(self) -> None:
        row = normalize_row({
            "salesperson": "J.Doe",
            "potential_profit": "40000",
            "pipeline_profit": 20000,
            "gained_profit": 5000.5,
            "lost_profit": 0,
            "quoted_profit": 800,
            "expected_profit": 300,
        })

        assert row.potential == 40000.0
        assert row.pipeline == 20000.0
        assert row.gained == 5000.5
        assert row.lost == 0.0
        assert row.quote == 800.0
        assert row.expected == 300.0
        assert row.get("salesperson") == "J.Doe"

    def test_first_non_empty_source_wins(self) -> None:
        row = normalize_row({"quoted_profit": None, "quoted_created": 15, "quote": 99})
        assert row.quote == 15.0

    def test_missing_and_null_metrics_default_to_zero(self) -> None:
        row = normalize_row({"region": "EMEA", "gained_profit": None})
        assert row.gained == 0.0
        assert row.expected == 0.0

    def test_non_numeric_metric_defaults_to_zero(self) -> None:
        row = normalize_row({"gained_profit": "n/a"})
        assert row.gained == 0.0

    def test_source_fields_are_not_kept(self) -> None:
        row = normalize_row({"gained_profit": 10})
        assert row.get("gained_profit") is None

    def test_empty_text_becomes_placeholder(self) -> None:
        row = normalize_row({"customer_name": None, "region": "  ", "quotation_id": "Q-1"})
        assert row.get("customer_name") == "-"
        assert row.get("region") == "-"
        assert row.get("quotation_id") == "Q-1"

    def test_service_label_added(self) -> None:
        row = normalize_row({"service": "FCL", "service_type": "Import"})
        assert row.get("service_label") == "FCL Import"

    def test_service_label_not_added_for_placeholder(self) -> None:
        row = normalize_row({"service": "FCL", "service_type": None})
        assert row.get("service_label") is None

    def test_report_row_passes_through(self) -> None:
        original = ReportRow(region="EMEA", gained=1.0)
        assert normalize_row(original) is original


class TestCoerceFetchResult:
    """Tests for coerce_fetch_result."""

    def test_mapping_payload(self) -> None:
        result = coerce_fetch_result({
            "rows": [{"region": "EMEA", "gained_profit": 7000}],
            "summary": {"total_gained": 7000, "total_lost": None},
        })

        assert isinstance(result, FetchResult)
        assert result.rows[0].gained == 7000.0
        assert result.summary == Summary(total_gained=7000)
        assert result.summary.total_lost == 0.0

    def test_missing_summary_is_none(self) -> None:
        assert coerce_fetch_result({"rows": []}).summary is None

    def test_none_is_empty_result(self) -> None:
        assert coerce_fetch_result(None) == FetchResult()

    def test_fetch_result_rows_are_kept(self) -> None:
        original = FetchResult(rows=(ReportRow(region="EMEA"),), summary=Summary())
        result = coerce_fetch_result(original)
        assert result.rows == original.rows
        assert result.summary == original.summary

    def test_unsupported_payload(self) -> None:
        with pytest.raises(TypeError):
            coerce_fetch_result([{"region": "EMEA"}])


class TestGlobalFilters:
    """Tests for GlobalFilters validation."""

    def test_blank_search_is_none(self) -> None:
        assert GlobalFilters(search="   ").search is None
        assert GlobalFilters(search=" ocean ").search == "ocean"

    def test_date_range_order(self) -> None:
        with pytest.raises(ValidationError):
            GlobalFilters(date_from=date(2026, 2, 1), date_to=date(2026, 1, 1))

    def test_calculation_from_string(self) -> None:
        assert GlobalFilters(calculation="no_of_shipments").calculation == Calculation.NO_OF_SHIPMENTS
