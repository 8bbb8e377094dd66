"""
Axis descriptors for the Pipeline Report drill engine.

One engine serves all three report tabs. Each tab is described by an
AxisDescriptor: its ordered levels and the row fields that identify a value
at each level.

Axes:
- salesperson: [salesperson] -> [customer]                       (max depth 1)
- region:      [region] -> [salesperson] -> [customer]           (max depth 2)
- product:     [service + service_type] -> [salesperson] -> [customer]
                                                                  (max depth 2)

Depth is the number of levels fixed by a drill path. The first product level
is composite: one product row ("FCL Import") fixes both service and
service_type, so it adds two drill-path entries but only one level of depth.

Rows displayed at depth `d` are values of level `d`. Selecting one of them
fixes that level and moves to depth `d + 1`.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from pipeline_report.core.errors import IllegalTransitionError
from pipeline_report.models.enums import Axis, LevelKind
from pipeline_report.models.schemas import DrillSelection, NavigationFrame

# Placeholder used for empty text fields in normalized rows
EMPTY_TEXT = "-"


# =============================================================================
# Level Field Mapping
# =============================================================================


@dataclass(frozen=True)
class LevelField:
    """
    Row fields identifying a value of one level kind.

    Attributes:
        kind: The level kind.
        key_field: Row field holding the key sent to the provider.
        label_field: Row field holding the human-readable label.
    """
    kind: LevelKind
    key_field: str
    label_field: str


# Shared by every axis
LEVEL_FIELDS: Dict[LevelKind, LevelField] = {
    LevelKind.SALESPERSON: LevelField(LevelKind.SALESPERSON, "salesperson", "salesperson"),
    LevelKind.REGION: LevelField(LevelKind.REGION, "region", "region"),
    LevelKind.SERVICE: LevelField(LevelKind.SERVICE, "service", "service"),
    LevelKind.SERVICE_TYPE: LevelField(LevelKind.SERVICE_TYPE, "service_type", "service_type"),
    LevelKind.CUSTOMER: LevelField(LevelKind.CUSTOMER, "customer_code", "customer_name"),
}


def _text(value: Any) -> Optional[str]:
    """Return a stripped string, or None for null, empty and placeholder values."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == EMPTY_TEXT:
        return None
    return text


def split_service_label(label: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Split a combined product label into (service, service_type).

    Splits on the last space so multi-word services keep their words.

    Example:
        >>> split_service_label("FCL Import")
        ('FCL', 'Import')
        >>> split_service_label("Air Freight Export")
        ('Air Freight', 'Export')
    """
    text = _text(label)
    if text is None or " " not in text:
        return None
    service, service_type = text.rsplit(" ", 1)
    service = service.strip()
    if not service or not service_type:
        return None
    return service, service_type


# =============================================================================
# Axis Descriptors
# =============================================================================


@dataclass(frozen=True)
class AxisLevel:
    """
    One level of an axis.

    Attributes:
        kinds: Level kinds fixed together when a row of this level is chosen.
        display_field: Row field shown in the first column; receives "TOTAL".
    """
    kinds: Tuple[LevelKind, ...]
    display_field: str

    @property
    def is_composite(self) -> bool:
        return len(self.kinds) > 1

    @property
    def fields(self) -> Tuple[LevelField, ...]:
        return tuple(LEVEL_FIELDS[kind] for kind in self.kinds)

    @property
    def group_fields(self) -> Tuple[str, ...]:
        """Distinct key and label fields a provider groups this level by."""
        names = []
        for level_field in self.fields:
            for name in (level_field.key_field, level_field.label_field):
                if name not in names:
                    names.append(name)
        return tuple(names)


@dataclass(frozen=True)
class AxisDescriptor:
    """
    Ordered levels of one report axis.

    Attributes:
        axis: The axis described.
        label: Tab caption.
        levels: Levels from the axis root to the leaf.
        detail_display_field: First column of metric detail (transaction) rows.
    """
    axis: Axis
    label: str
    levels: Tuple[AxisLevel, ...]
    detail_display_field: str = "customer_name"

    @property
    def max_depth(self) -> int:
        """Depth at which rows are leaf values (no further dimension drill)."""
        return len(self.levels) - 1

    @property
    def level_kinds(self) -> Tuple[LevelKind, ...]:
        return tuple(kind for level in self.levels for kind in level.kinds)

    def level_at(self, depth: int) -> AxisLevel:
        """
        Level whose values are displayed at `depth`.

        Raises:
            IllegalTransitionError: If the depth is outside the axis.
        """
        if depth < 0 or depth > self.max_depth:
            raise IllegalTransitionError(
                f"Depth {depth} is outside axis {self.axis.value} (max {self.max_depth})"
            )
        return self.levels[depth]

    def depth_of(self, drill_path: Sequence[DrillSelection]) -> int:
        """
        Number of leading levels fully fixed by a drill path.

        Example:
            product path [service=FCL, service_type=Import] -> 1
        """
        chosen = {selection.level_kind for selection in drill_path}
        depth = 0
        for level in self.levels:
            if not all(kind in chosen for kind in level.kinds):
                break
            depth += 1
        return depth

    def display_field(self, depth: int, metric_detail: bool = False) -> str:
        """Field that carries the TOTAL label for rows shown at `depth`."""
        if metric_detail or depth > self.max_depth:
            return self.detail_display_field
        return self.levels[depth].display_field

    def validate_path(
        self,
        drill_path: Sequence[DrillSelection],
        metric_detail: bool = False,
    ) -> int:
        """
        Check a drill path against this axis and return its depth.

        Dimension paths must fix whole levels contiguously from the axis root
        and may not go past the leaf's parent. Metric detail paths only need
        their level kinds to belong to the axis.

        Raises:
            IllegalTransitionError: If the path does not fit the axis.
        """
        allowed = set(self.level_kinds)
        kinds = [selection.level_kind for selection in drill_path]
        unknown = [kind.value for kind in kinds if kind not in allowed]
        if unknown:
            raise IllegalTransitionError(
                f"Level kinds {unknown} are not defined on axis {self.axis.value}"
            )
        if len(kinds) != len(set(kinds)):
            raise IllegalTransitionError(f"Drill path repeats a level kind: {kinds}")

        depth = self.depth_of(drill_path)
        if metric_detail:
            return depth

        fixed = sum(len(level.kinds) for level in self.levels[:depth])
        if fixed != len(kinds):
            raise IllegalTransitionError(
                f"Drill path {[k.value for k in kinds]} has gaps on axis {self.axis.value}"
            )
        if depth > self.max_depth:
            raise IllegalTransitionError(
                f"Drill path fixes every level of axis {self.axis.value}"
            )
        return depth

    def validate_frame(self, frame: NavigationFrame) -> int:
        """Validate a frame's path for this axis; return its depth."""
        if frame.axis != self.axis:
            raise IllegalTransitionError(
                f"Frame axis {frame.axis.value} does not match {self.axis.value}"
            )
        return self.validate_path(frame.drill_path, frame.metric_filter is not None)

    # =========================================================================
    # Selections
    # =========================================================================

    def selections_from_row(
        self,
        depth: int,
        row: Mapping[str, Any],
    ) -> Tuple[DrillSelection, ...]:
        """
        Selections implied by a row displayed at `depth`.

        A product row without separate service/service_type fields is
        resolved from its combined `service_label`.

        Raises:
            IllegalTransitionError: If the row lacks a level key.
        """
        level = self.level_at(depth)
        values = _row_values(level, row)
        if level.is_composite and len(values) < len(level.kinds):
            split = split_service_label(row.get("service_label"))
            if split is not None:
                for kind, value in zip(level.kinds, split):
                    values.setdefault(kind, (value, value))
        return _build_selections(self.axis, level, values)

    def selections_for_value(
        self,
        depth: int,
        kind: LevelKind,
        key: str,
        label: Optional[str] = None,
        row_context: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[DrillSelection, ...]:
        """
        Selections for choosing `key` of `kind` at `depth`.

        For the composite product level the companion value comes from
        `row_context`, or from splitting a combined label such as
        "FCL Import".

        Raises:
            IllegalTransitionError: If `kind` is not the level at `depth` or a
                composite level cannot be completed.
        """
        level = self.level_at(depth)
        kind = LevelKind(kind)
        if kind not in level.kinds:
            raise IllegalTransitionError(
                f"Level kind {kind.value} is not selectable at depth {depth} "
                f"of axis {self.axis.value}"
            )
        key = _text(key)
        if key is None:
            raise IllegalTransitionError(f"Empty key for level kind {kind.value}")

        if not level.is_composite:
            return (DrillSelection(level_kind=kind, key=key, label=_text(label) or key),)

        values = _row_values(level, row_context or {})
        if len(values) < len(level.kinds):
            split = split_service_label(label or key)
            if not values and split is not None:
                values = {k: (v, v) for k, v in zip(level.kinds, split)}
            else:
                values.setdefault(kind, (key, _text(label) or key))
        return _build_selections(self.axis, level, values)


def _row_values(level: AxisLevel, row: Mapping[str, Any]) -> Dict[LevelKind, Tuple[str, str]]:
    values: Dict[LevelKind, Tuple[str, str]] = {}
    for level_field in level.fields:
        key = _text(row.get(level_field.key_field))
        if key is not None:
            values[level_field.kind] = (key, _text(row.get(level_field.label_field)) or key)
    return values


def _build_selections(
    axis: Axis,
    level: AxisLevel,
    values: Dict[LevelKind, Tuple[str, str]],
) -> Tuple[DrillSelection, ...]:
    missing = [kind.value for kind in level.kinds if kind not in values]
    if missing:
        raise IllegalTransitionError(f"Row is missing {missing} for axis {axis.value}")
    return tuple(
        DrillSelection(level_kind=kind, key=values[kind][0], label=values[kind][1])
        for kind in level.kinds
    )


AXIS_DESCRIPTORS: Dict[Axis, AxisDescriptor] = {
    Axis.SALESPERSON: AxisDescriptor(
        axis=Axis.SALESPERSON,
        label="Salesperson",
        levels=(
            AxisLevel((LevelKind.SALESPERSON,), "salesperson"),
            AxisLevel((LevelKind.CUSTOMER,), "customer_name"),
        ),
    ),
    Axis.REGION: AxisDescriptor(
        axis=Axis.REGION,
        label="Region",
        levels=(
            AxisLevel((LevelKind.REGION,), "region"),
            AxisLevel((LevelKind.SALESPERSON,), "salesperson"),
            AxisLevel((LevelKind.CUSTOMER,), "customer_name"),
        ),
    ),
    Axis.PRODUCT: AxisDescriptor(
        axis=Axis.PRODUCT,
        label="Product",
        levels=(
            AxisLevel((LevelKind.SERVICE, LevelKind.SERVICE_TYPE), "service_label"),
            AxisLevel((LevelKind.SALESPERSON,), "salesperson"),
            AxisLevel((LevelKind.CUSTOMER,), "customer_name"),
        ),
    ),
}


def get_axis_descriptor(axis: Axis) -> AxisDescriptor:
    """Return the descriptor for an axis name or enum."""
    return AXIS_DESCRIPTORS[Axis(axis)]


__all__ = [
    'EMPTY_TEXT',
    'LevelField',
    'LEVEL_FIELDS',
    'AxisLevel',
    'AxisDescriptor',
    'AXIS_DESCRIPTORS',
    'get_axis_descriptor',
    'split_service_label',
]
