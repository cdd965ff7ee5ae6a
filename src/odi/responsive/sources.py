"""Grouping of breakpoints into ``<source>`` clusters.

Consecutive viewport-relative breakpoints showing the same source image are
merged into one cluster described by a sizes list and a range of quantized
widths. Fixed-pixel breakpoints each get their own cluster with a 1x and 2x
pixel-density variant instead of a width range.

Clusters are emitted in ascending threshold order. A cluster followed by
another one matches ``(max-width: next - 1px)``; the last cluster matches
``(min-width: threshold px)``.
"""

from __future__ import annotations

from dataclasses import dataclass

from odi.responsive.breakpoints import BreakpointTable, Unit
from odi.responsive.quantizer import (
    DEFAULT_MAX_VIEWPORT,
    DEFAULT_MIN_VIEWPORT,
    DEFAULT_STEP,
    quantize_widths,
)

FIXED_PIXEL_DENSITIES = (1, 2)


@dataclass(frozen=True)
class SourceCluster:
    """One ``<source>`` candidate of a responsive picture.

    Attributes:
        threshold: Viewport width from which the cluster applies.
        source_id: Source image all widths are generated from.
        unit: ``vw`` for a merged relative run, ``px`` for a fixed box.
        media_query: Media condition selecting the cluster.
        sizes: Sizes list for relative clusters, None for fixed ones.
        widths: Widths to materialize at 1x.
        pixel_densities: Density multipliers requested per width.
    """

    threshold: int
    source_id: int
    unit: Unit
    media_query: str
    sizes: str | None
    widths: tuple[int, ...]
    pixel_densities: tuple[int, ...] = (1,)

    @property
    def is_fixed(self) -> bool:
        """Return True for a fixed-pixel cluster."""
        return self.unit is Unit.PX

    @property
    def physical_widths(self) -> tuple[int, ...]:
        """Return every width actually generated, densities applied."""
        return tuple(sorted({w * d for w in self.widths for d in self.pixel_densities}))


def media_query(threshold: int, next_threshold: int | None) -> str:
    """Return the media condition for a cluster."""
    if next_threshold is not None:
        return f"(max-width: {next_threshold - 1}px)"
    return f"(min-width: {threshold}px)"


def _sizes_attribute(run: BreakpointTable) -> str:
    thresholds = list(run)
    parts = [
        f"(max-width: {thresholds[index + 1] - 1}px) {run[threshold].width}"
        for index, threshold in enumerate(thresholds[:-1])
    ]
    parts.append(run[thresholds[-1]].width)
    return ", ".join(parts)


def assemble_sources(
    table: BreakpointTable,
    min_viewport: int = DEFAULT_MIN_VIEWPORT,
    max_viewport: int = DEFAULT_MAX_VIEWPORT,
    step: int = DEFAULT_STEP,
) -> list[SourceCluster]:
    """Group a breakpoint table into source clusters.

    A relative run closes when the table ends, the next entry is fixed-pixel,
    or the next entry shows a different source image. Its widths are the
    quantized widths of the run alone, bounded by the threshold where it ends.

    Args:
        table: Resolved breakpoint table.
        min_viewport: Smallest supported viewport width.
        max_viewport: Largest supported viewport width.
        step: Maximum distance between two generated widths.

    Returns:
        Clusters in ascending threshold order.
    """
    thresholds = list(table)
    clusters: list[SourceCluster] = []
    run: BreakpointTable = {}

    for index, threshold in enumerate(thresholds):
        entry = table[threshold]
        next_threshold = thresholds[index + 1] if index + 1 < len(thresholds) else None

        if entry.unit is Unit.PX:
            clusters.append(
                SourceCluster(
                    threshold=threshold,
                    source_id=entry.source_id,
                    unit=Unit.PX,
                    media_query=media_query(threshold, next_threshold),
                    sizes=None,
                    widths=(entry.value,),
                    pixel_densities=FIXED_PIXEL_DENSITIES,
                )
            )
            continue

        run[threshold] = entry
        following = table[next_threshold] if next_threshold is not None else None
        if (
            following is not None
            and following.is_relative
            and following.source_id == entry.source_id
        ):
            continue

        start = next(iter(run))
        clusters.append(
            SourceCluster(
                threshold=start,
                source_id=entry.source_id,
                unit=Unit.VW,
                media_query=media_query(start, next_threshold),
                sizes=_sizes_attribute(run),
                widths=tuple(
                    quantize_widths(
                        run, min_viewport, max_viewport, step, until=next_threshold
                    )
                ),
            )
        )
        run = {}

    return clusters
