"""
Metric Registry Test Module

Covers metric key normalization and the drill eligibility table: `expected`
is never drillable at depth 0 or at an axis' max depth, every other metric
is drillable at every depth of every axis.
"""

import pytest

from pipeline_report.models.enums import Axis, MetricKey
from pipeline_report.services.axes import AXIS_DESCRIPTORS
from pipeline_report.services.metric_registry import (
    DRILL_ELIGIBILITY,
    METRIC_REGISTRY,
    is_drill_eligible,
    normalize_metric_key,
    resolve_metric,
)


class TestNormalization:
    """Tests for metric key resolution."""

    def test_quote_normalizes_to_quoted_created(self) -> None:
        assert resolve_metric("quote").normalized_key == "quoted_created"

    @pytest.mark.parametrize("metric", ["potential", "pipeline", "gained", "lost", "expected"])
    def test_other_metrics_normalize_to_themselves(self, metric: str) -> None:
        assert resolve_metric(metric).normalized_key == metric

    @pytest.mark.parametrize("alias", ["quoted_created", "quoted", "QUOTE", " quote "])
    def test_quote_aliases(self, alias: str) -> None:
        assert normalize_metric_key(alias) == MetricKey.QUOTE

    def test_enum_passes_through(self) -> None:
        assert normalize_metric_key(MetricKey.LOST) is MetricKey.LOST

    def test_unknown_metric_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown metric"):
            normalize_metric_key("revenue")

    def test_every_metric_has_summary_field(self) -> None:
        fields = {spec.summary_field for spec in METRIC_REGISTRY.values()}
        assert fields == {
            "total_potential", "total_pipeline", "total_gained",
            "total_lost", "total_quoted", "total_expected",
        }


class TestDrillEligibility:
    """Tests for is_drill_eligible over every axis and depth."""

    @pytest.mark.parametrize("axis", list(Axis))
    def test_expected_never_eligible_at_extremes(self, axis: Axis) -> None:
        max_depth = AXIS_DESCRIPTORS[axis].max_depth
        assert is_drill_eligible("expected", axis, 0) is False
        assert is_drill_eligible("expected", axis, max_depth) is False

    @pytest.mark.parametrize("axis", list(Axis))
    def test_other_metrics_eligible_everywhere(self, axis: Axis) -> None:
        max_depth = AXIS_DESCRIPTORS[axis].max_depth
        for metric in MetricKey:
            if metric == MetricKey.EXPECTED:
                continue
            for depth in range(max_depth + 1):
                assert is_drill_eligible(metric, axis, depth), (metric, axis, depth)

    def test_expected_eligible_at_intermediate_depths(self) -> None:
        assert is_drill_eligible("expected", Axis.REGION, 1) is True
        assert is_drill_eligible("expected", Axis.PRODUCT, 1) is True

    def test_salesperson_axis_never_drills_expected(self) -> None:
        # Max depth 1: every depth is an extreme
        assert DRILL_ELIGIBILITY[Axis.SALESPERSON][MetricKey.EXPECTED] == frozenset()

    def test_out_of_range_depth_is_not_eligible(self) -> None:
        assert is_drill_eligible("gained", Axis.REGION, 3) is False
        assert is_drill_eligible("gained", Axis.REGION, -1) is False

    def test_unknown_inputs_are_not_eligible(self) -> None:
        assert is_drill_eligible("revenue", Axis.REGION, 1) is False
        assert is_drill_eligible("gained", "budget", 1) is False

    def test_quote_alias_uses_quote_rules(self) -> None:
        assert is_drill_eligible("quoted_created", "product", 0) is True
