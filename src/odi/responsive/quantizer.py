"""Width quantization for responsive image candidates.

A viewport-relative image can render at any width inside a continuous range.
Generating a derivative per possible width is unbounded, so the range is
reduced to evenly stepped candidates: at most ``ceil((max - min) / step) + 1``
widths per run, at the cost of a small over-fetch.
"""

from __future__ import annotations

import math

from odi.responsive.breakpoints import BreakpointTable, Unit

DEFAULT_MIN_VIEWPORT = 320
DEFAULT_MAX_VIEWPORT = 2000
DEFAULT_STEP = 200


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


def candidate_widths(
    table: BreakpointTable,
    min_viewport: int = DEFAULT_MIN_VIEWPORT,
    max_viewport: int = DEFAULT_MAX_VIEWPORT,
    *,
    until: int | None = None,
) -> list[int]:
    """Collect the physical widths each breakpoint can render at, ascending.

    A ``vw`` entry contributes its width at the smallest and largest viewport
    it is active for; both ends are clamped to ``[min_viewport, max_viewport]``.
    A ``px`` entry contributes its literal value.

    Args:
        table: Breakpoint table to inspect.
        min_viewport: Smallest supported viewport width.
        max_viewport: Largest supported viewport width.
        until: Threshold at which the table stops applying, for tables that
            are a slice of a larger one. None means ``max_viewport``.
    """
    thresholds = list(table)
    candidates: list[int] = []

    for index, threshold in enumerate(thresholds):
        entry = table[threshold]
        if entry.unit is Unit.PX:
            candidates.append(entry.value)
            continue

        next_threshold = thresholds[index + 1] if index + 1 < len(thresholds) else until
        lowest = _clamp(threshold, min_viewport, max_viewport)
        highest = _clamp(
            next_threshold - 1 if next_threshold is not None else max_viewport,
            min_viewport,
            max_viewport,
        )
        highest = max(highest, lowest)

        candidates.append(math.ceil(lowest * entry.value / 100))
        candidates.append(math.ceil(highest * entry.value / 100))

    return sorted(candidates)


def quantize_widths(
    table: BreakpointTable,
    min_viewport: int = DEFAULT_MIN_VIEWPORT,
    max_viewport: int = DEFAULT_MAX_VIEWPORT,
    step: int = DEFAULT_STEP,
    *,
    until: int | None = None,
) -> list[int]:
    """Reduce a breakpoint table to an ascending list of widths to generate.

    Steps from the smallest to the largest candidate width in increments of
    ``step``; the largest candidate always closes the list.

    Args:
        table: Breakpoint table (or a slice of one).
        min_viewport: Smallest supported viewport width.
        max_viewport: Largest supported viewport width.
        step: Maximum distance between two consecutive widths.
        until: Threshold at which a sliced table stops applying.

    Returns:
        Widths in pixels; a single width when all candidates coincide and
        an empty list for an empty table.

    Raises:
        ValueError: If step is not positive or the viewport range is empty.

    Example:
        >>> from odi.responsive.breakpoints import BreakPoint
        >>> quantize_widths({0: BreakPoint(source_id=1, width="100vw")})
        [320, 520, 720, 920, 1120, 1320, 1520, 1720, 1920, 2000]
    """
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    if min_viewport > max_viewport:
        raise ValueError(
            f"min_viewport ({min_viewport}) exceeds max_viewport ({max_viewport})"
        )

    candidates = candidate_widths(table, min_viewport, max_viewport, until=until)
    if not candidates:
        return []

    smallest, largest = candidates[0], candidates[-1]
    if smallest == largest:
        return [smallest]

    return [*range(smallest, largest, step), largest]
