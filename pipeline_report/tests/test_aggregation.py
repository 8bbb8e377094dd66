"""
Aggregation Merger Test Module

The TOTAL row comes only from the provider summary, never from summing the
displayed rows, and is omitted when rows are empty, the summary is missing or
the view suppresses it.
"""

import pytest

from pipeline_report.models.enums import Axis, TotalRowPolicy
from pipeline_report.models.schemas import (
    DrillSelection,
    MetricFilter,
    NavigationFrame,
    ReportRow,
    Summary,
)
from pipeline_report.services.aggregation import (
    TOTAL_LABEL,
    build_total_row,
    merge,
    should_suppress_total,
)
from pipeline_report.services.axes import get_axis_descriptor


@pytest.fixture
def rows():
    return (
        ReportRow(region="EMEA", quotation_id="Q-1", gained=7000, pipeline=100),
        ReportRow(region="APAC", quotation_id="Q-2", gained=2000, pipeline=200),
    )


@pytest.fixture
def summary():
    # Totals deliberately differ from the sum of the rows
    return Summary(
        total_potential=1, total_pipeline=2, total_gained=99999,
        total_lost=4, total_quoted=5, total_expected=6,
    )


def sel(kind: str, key: str) -> DrillSelection:
    return DrillSelection(level_kind=kind, key=key)


GAINED = MetricFilter(metric="gained", normalized_key="gained")


class TestMerge:
    """Tests for merge and build_total_row."""

    def test_total_row_equals_summary(self, rows, summary) -> None:
        merged = merge(rows, summary, suppress_total=False, label_field="region")

        assert len(merged) == 3
        total = merged[-1]
        assert total.is_total is True
        assert (total.potential, total.pipeline, total.gained,
                total.lost, total.quote, total.expected) == (1, 2, 99999, 4, 5, 6)

    def test_total_row_labels_and_blanks(self, rows, summary) -> None:
        total = merge(rows, summary, suppress_total=False, label_field="region")[-1]
        assert total.get("region") == TOTAL_LABEL
        assert total.get("quotation_id") == ""

    def test_label_defaults_to_first_identifying_field(self, rows, summary) -> None:
        total = build_total_row(rows[0], summary)
        assert total.get("region") == TOTAL_LABEL

    def test_no_total_without_summary(self, rows) -> None:
        assert merge(rows, None, suppress_total=False) == rows

    def test_no_total_for_empty_rows(self, summary) -> None:
        assert merge((), summary, suppress_total=False) == ()

    def test_suppressed(self, rows, summary) -> None:
        assert merge(rows, summary, suppress_total=True) == rows

    def test_deterministic(self, rows, summary) -> None:
        first = merge(rows, summary, suppress_total=False, label_field="region")
        second = merge(rows, summary, suppress_total=False, label_field="region")
        assert first == second

    def test_input_rows_unchanged(self, rows, summary) -> None:
        merge(rows, summary, suppress_total=False, label_field="region")
        assert rows[0].get("region") == "EMEA"
        assert not rows[0].is_total


class TestShouldSuppressTotal:
    """Tests for the TOTAL row rule per frame and policy."""

    def test_dimension_levels_always_show_total(self) -> None:
        descriptor = get_axis_descriptor(Axis.REGION)
        for path in [(), (sel("region", "EMEA"),), (sel("region", "EMEA"), sel("salesperson", "J"))]:
            frame = NavigationFrame(axis=Axis.REGION, drill_path=path)
            for policy in TotalRowPolicy:
                assert should_suppress_total(descriptor, frame, policy) is False

    def test_intermediate_metric_detail_suppressed(self) -> None:
        descriptor = get_axis_descriptor(Axis.REGION)
        frame = NavigationFrame(
            axis=Axis.REGION, drill_path=(sel("region", "EMEA"),), metric_filter=GAINED,
        )
        assert should_suppress_total(descriptor, frame) is True

    def test_metric_detail_from_leaf_shows_total(self) -> None:
        descriptor = get_axis_descriptor(Axis.SALESPERSON)
        frame = NavigationFrame(
            axis=Axis.SALESPERSON,
            drill_path=(sel("salesperson", "J.Doe"), sel("customer", "C001")),
            metric_filter=GAINED,
        )
        assert should_suppress_total(descriptor, frame) is False

    def test_policies_on_intermediate_detail(self) -> None:
        descriptor = get_axis_descriptor(Axis.REGION)
        frame = NavigationFrame(
            axis=Axis.REGION, drill_path=(sel("region", "EMEA"),), metric_filter=GAINED,
        )
        assert should_suppress_total(descriptor, frame, TotalRowPolicy.ALWAYS) is False
        assert should_suppress_total(descriptor, frame, TotalRowPolicy.NEVER) is True
