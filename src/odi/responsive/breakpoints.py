"""Breakpoint resolution for responsive images.

Turns a sparse, per-breakpoint description of source images and display
sizes into an ordered breakpoint table. Every entry carries a single
resolved width expression in either viewport units (``vw``) or pixels
(``px``).

Sparse maps hold their last value until overridden: a threshold present in
only one map inherits the other map's value from the previous threshold.

When the layout container has an absolute maximum width ``M``, percentage
sizes stop scaling at ``M``. A synthetic breakpoint is inserted at ``M`` with
the saturated pixel width so the image never keeps growing relatively past
the point where its container can no longer grow.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from enum import Enum
from typing import NamedTuple, Self

from pydantic import BaseModel, Field, field_validator

from odi.exceptions import InvalidInputError

_WIDTH_RE = re.compile(r"^(?P<value>[1-9]\d*)(?P<unit>px|vw)$")
_SIZE_EXPRESSION_RE = re.compile(r"^(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>%|vw|px)?$")

DEFAULT_SIZE = "100%"
DEFAULT_CONTAINED_MAX_WIDTH = "100vw"

SizeValue = str | int | float

# Ordered mapping: viewport threshold (px) -> breakpoint, keys ascending.
BreakpointTable = dict[int, "BreakPoint"]


class Unit(str, Enum):
    """Unit of a resolved width."""

    PX = "px"
    VW = "vw"


class BreakPoint(BaseModel, frozen=True):
    """Source image and resolved width active from a viewport threshold.

    Attributes:
        source_id: Identifier of the source image shown at this breakpoint.
        width: Width expression such as ``"50vw"`` or ``"400px"``.
    """

    source_id: int
    width: str = Field(..., description="Strictly positive width with unit")

    @field_validator("width")
    @classmethod
    def _validate_width(cls, value: str) -> str:
        if not _WIDTH_RE.match(value):
            raise ValueError(
                f"width must be a positive integer followed by px or vw, got {value!r}"
            )
        return value

    @property
    def unit(self) -> Unit:
        """Return the unit derived from the width suffix."""
        return Unit(self.width[-2:])

    @property
    def value(self) -> int:
        """Return the numeric part of the width."""
        return int(self.width[:-2])

    @property
    def is_relative(self) -> bool:
        """Return True when the width is viewport relative."""
        return self.unit is Unit.VW


class SizeExpression(NamedTuple):
    """Parsed display size: a percentage of the container or literal pixels."""

    value: float
    relative: bool


class ContainedMaxWidth(BaseModel, frozen=True):
    """The largest width the image's container can ever reach.

    Attributes:
        value: Numeric part of the expression.
        unit: ``px`` for an absolute cap, ``vw`` for a viewport fraction.
    """

    value: int = Field(..., gt=0)
    unit: Unit

    @property
    def is_relative(self) -> bool:
        """Return True when the container width is viewport relative."""
        return self.unit is Unit.VW

    @classmethod
    def parse(cls, expression: SizeValue | None) -> Self:
        """Parse ``1200``, ``"1200"``, ``"1200px"`` or ``"80vw"``.

        None means the container spans the viewport (``100vw``).

        Raises:
            InvalidInputError: If the expression is malformed or not positive.
        """
        if expression is None:
            expression = DEFAULT_CONTAINED_MAX_WIDTH
        if isinstance(expression, bool):
            raise InvalidInputError(f"Invalid contained max width: {expression!r}")
        if isinstance(expression, int | float):
            if expression <= 0 or expression != int(expression):
                raise InvalidInputError(f"Invalid contained max width: {expression!r}")
            return cls(value=int(expression), unit=Unit.PX)

        text = expression.strip().lower()
        match = re.match(r"^(?P<value>[1-9]\d*)\s*(?P<unit>px|vw)?$", text)
        if not match:
            raise InvalidInputError(f"Invalid contained max width: {expression!r}")
        return cls(value=int(match["value"]), unit=Unit(match["unit"] or "px"))


def parse_size_expression(expression: SizeValue) -> SizeExpression:
    """Parse a display size expression.

    Accepted forms are percentages (``"50%"``, or the equivalent ``"50vw"``),
    bare numbers (``400`` or ``"400"``, read as pixels) and ``"400px"``.

    Raises:
        InvalidInputError: If the expression is malformed or not positive.
    """
    if isinstance(expression, bool):
        raise InvalidInputError(f"Invalid size expression: {expression!r}")
    if isinstance(expression, int | float):
        text = str(expression)
    else:
        text = expression.strip().lower()

    match = _SIZE_EXPRESSION_RE.match(text)
    if not match:
        raise InvalidInputError(f"Invalid size expression: {expression!r}")

    value = float(match["value"])
    relative = match["unit"] in ("%", "vw")
    if value <= 0:
        raise InvalidInputError(f"Size expression must be positive: {expression!r}")
    if not relative and value != int(value):
        raise InvalidInputError(f"Pixel sizes must be whole numbers: {expression!r}")

    return SizeExpression(value=value, relative=relative)


def _saturated_width(container: int, percentage: float) -> str:
    return f"{math.ceil(container * percentage / 100)}px"


def _resolve_width(
    size: SizeExpression,
    threshold: int,
    container: ContainedMaxWidth,
) -> str:
    if not size.relative:
        return f"{int(size.value)}px"

    if container.is_relative:
        return f"{max(1, math.floor(container.value * size.value / 100))}vw"

    if threshold < container.value:
        return f"{max(1, math.floor(size.value))}vw"

    return _saturated_width(container.value, size.value)


def _normalize_sources(source_ids: int | Mapping[int, int]) -> dict[int, int]:
    if isinstance(source_ids, int):
        return {0: source_ids}

    sources = dict(source_ids)
    if 0 not in sources:
        raise InvalidInputError(
            "A source must be given for breakpoint 0; "
            f"got breakpoints {sorted(sources)}"
        )
    return sources


def _normalize_sizes(
    sizes: SizeValue | Mapping[int, SizeValue] | None,
) -> dict[int, SizeValue]:
    if sizes is None:
        return {0: DEFAULT_SIZE}
    if not isinstance(sizes, Mapping):
        return {0: sizes}

    normalized = dict(sizes)
    normalized.setdefault(0, DEFAULT_SIZE)
    return normalized


def resolve_breakpoints(
    source_ids: int | Mapping[int, int],
    sizes: SizeValue | Mapping[int, SizeValue] | None = None,
    contained_max_width: SizeValue | None = None,
) -> BreakpointTable:
    """Resolve per-breakpoint sources and sizes into a breakpoint table.

    Args:
        source_ids: One source id for every viewport, or a sparse map of
            threshold -> source id which must contain threshold 0.
        sizes: One size expression, or a sparse map of threshold -> size
            expression. Breakpoint 0 defaults to ``"100%"``.
        contained_max_width: Maximum container width, ``"Npx"``/``N`` or
            ``"Nvw"``. Defaults to ``"100vw"``.

    Returns:
        Breakpoint table with ascending thresholds, always containing 0.

    Raises:
        InvalidInputError: If the source map lacks breakpoint 0, a threshold
            is negative, or an expression is malformed.
    """
    source_map = _normalize_sources(source_ids)
    size_map = _normalize_sizes(sizes)
    container = ContainedMaxWidth.parse(contained_max_width)

    thresholds = sorted(set(source_map) | set(size_map))
    if thresholds[0] < 0:
        raise InvalidInputError(f"Breakpoints must be non-negative, got {thresholds[0]}")

    table: BreakpointTable = {}
    source_id = source_map[0]
    size = parse_size_expression(size_map[0])

    for index, threshold in enumerate(thresholds):
        source_id = source_map.get(threshold, source_id)
        if threshold in size_map:
            size = parse_size_expression(size_map[threshold])

        table[threshold] = BreakPoint(
            source_id=source_id,
            width=_resolve_width(size, threshold, container),
        )

        if not size.relative or container.is_relative:
            continue

        next_threshold = thresholds[index + 1] if index + 1 < len(thresholds) else None
        if threshold < container.value and (
            next_threshold is None or next_threshold > container.value
        ):
            table[container.value] = BreakPoint(
                source_id=source_id,
                width=_saturated_width(container.value, size.value),
            )

    return table
