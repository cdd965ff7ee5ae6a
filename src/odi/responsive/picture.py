"""Responsive picture planning.

Runs the full pipeline for one displayed image: breakpoint resolution,
source clustering and width quantization, then materializes every needed
derivative through the cache. The result is what a markup layer needs to
render ``<picture>``, ``<source>`` and ``<img>``; markup itself is not built
here.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from odi.cache import Derivative, DerivativeCache, SizeDefinition, parse_aspect_ratio
from odi.config import settings
from odi.responsive.breakpoints import SizeValue, resolve_breakpoints
from odi.responsive.sources import SourceCluster, assemble_sources
from odi.utils.logging import correlation_scope, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SrcsetEntry:
    """One candidate of a srcset: URL plus ``w`` or ``x`` descriptor."""

    url: str
    descriptor: str

    def __str__(self) -> str:
        return f"{self.url} {self.descriptor}"


@dataclass(frozen=True)
class PictureSource:
    """Materialized source cluster."""

    media_query: str
    sizes: str | None
    srcset: tuple[SrcsetEntry, ...]

    @property
    def srcset_attribute(self) -> str:
        return ", ".join(str(entry) for entry in self.srcset)


@dataclass(frozen=True)
class PicturePlan:
    """Everything the markup layer needs for one responsive image.

    Attributes:
        sources: Source clusters in ascending breakpoint order.
        fallback: Image for the ``<img>`` element, None if nothing could be
            produced.
    """

    sources: tuple[PictureSource, ...]
    fallback: Derivative | None


class PicturePlanner:
    """Plans and materializes responsive pictures."""

    __slots__ = ("_cache", "_max_viewport", "_min_viewport", "_step")

    def __init__(
        self,
        cache: DerivativeCache,
        min_viewport: int | None = None,
        max_viewport: int | None = None,
        step: int | None = None,
    ) -> None:
        """Initialize the planner.

        Args:
            cache: Derivative cache materializing every srcset entry.
            min_viewport: Narrowest viewport width considered. Defaults to
                ``settings.MIN_VIEWPORT_WIDTH``.
            max_viewport: Widest viewport width considered. Defaults to
                ``settings.MAX_VIEWPORT_WIDTH``.
            step: Spacing between generated widths. Defaults to
                ``settings.WIDTH_STEP``.
        """
        self._cache = cache
        self._min_viewport = (
            settings.MIN_VIEWPORT_WIDTH if min_viewport is None else min_viewport
        )
        self._max_viewport = (
            settings.MAX_VIEWPORT_WIDTH if max_viewport is None else max_viewport
        )
        self._step = settings.WIDTH_STEP if step is None else step

    def plan(
        self,
        source_ids: int | Mapping[int, int],
        sizes: SizeValue | Mapping[int, SizeValue] | None = None,
        contained_max_width: SizeValue | None = None,
        aspect_ratio: float | int | str | None = None,
    ) -> PicturePlan:
        """Plan a responsive picture and materialize its derivatives.

        Args:
            source_ids: Source id, or map of breakpoint -> source id with an
                entry at 0.
            sizes: Display size, or map of breakpoint -> display size.
            contained_max_width: Maximum container width (``"Npx"``/``"Nvw"``).
            aspect_ratio: Crop every derivative to this ratio. Without it
                derivatives keep the original proportions.

        Raises:
            InvalidInputError: On malformed input.
            CacheIOError: If the derivative folder is unusable.
        """
        table = resolve_breakpoints(source_ids, sizes, contained_max_width)
        ratio = parse_aspect_ratio(aspect_ratio) if aspect_ratio is not None else None
        clusters = assemble_sources(
            table, self._min_viewport, self._max_viewport, self._step
        )

        sources: list[PictureSource] = []
        for cluster in clusters:
            with correlation_scope(source_id=cluster.source_id):
                srcset = self._materialize(cluster, ratio)
            if not srcset:
                logger.warning(
                    "No derivative for source cluster",
                    source_id=cluster.source_id,
                    media_query=cluster.media_query,
                )
                continue
            sources.append(
                PictureSource(
                    media_query=cluster.media_query,
                    sizes=cluster.sizes,
                    srcset=srcset,
                )
            )

        fallback = self._cache.get_max_image(table[0].source_id, ratio)
        return PicturePlan(sources=tuple(sources), fallback=fallback)

    def _materialize(
        self,
        cluster: SourceCluster,
        ratio: float | None,
    ) -> tuple[SrcsetEntry, ...]:
        if cluster.is_fixed:
            entries = self._density_entries(cluster, ratio)
        else:
            entries = self._width_entries(cluster, ratio)
        if entries:
            return entries

        # Serve the largest derivative rather than nothing
        largest = self._cache.get_max_image(cluster.source_id, ratio)
        if largest is None:
            return ()
        descriptor = "1x" if cluster.is_fixed else f"{largest.width}w"
        return (SrcsetEntry(url=largest.url, descriptor=descriptor),)

    def _width_entries(
        self,
        cluster: SourceCluster,
        ratio: float | None,
    ) -> tuple[SrcsetEntry, ...]:
        by_width: dict[int, SrcsetEntry] = {}
        for width in cluster.widths:
            derivative = self._cache.get_image(cluster.source_id, _box(width, ratio))
            if derivative is not None:
                by_width[derivative.width] = SrcsetEntry(
                    url=derivative.url, descriptor=f"{derivative.width}w"
                )
        return tuple(by_width[width] for width in sorted(by_width))

    def _density_entries(
        self,
        cluster: SourceCluster,
        ratio: float | None,
    ) -> tuple[SrcsetEntry, ...]:
        (width,) = cluster.widths
        box = _box(width, ratio)
        entries: list[SrcsetEntry] = []
        for density in cluster.pixel_densities:
            derivative = self._cache.get_image(cluster.source_id, box.descriptor(density))
            if derivative is not None:
                entries.append(SrcsetEntry(url=derivative.url, descriptor=f"{density}x"))
        return tuple(entries)

    def build_srcset(self, source_id: int, sizes: Iterable[str]) -> str | None:
        """Join several sizes of one source into a ``w``-descriptor srcset.

        Sizes resolving to the same width keep the last one; entries are
        ordered by width. Returns None when no size resolves.

        Raises:
            InvalidInputError: If a size is neither registered nor a valid
                descriptor.
        """
        by_width: dict[int, SrcsetEntry] = {}
        for size in dict.fromkeys(sizes):
            derivative = self._cache.get_image(source_id, size)
            if derivative is not None:
                by_width[derivative.width] = SrcsetEntry(
                    url=derivative.url, descriptor=f"{derivative.width}w"
                )

        if not by_width:
            return None
        return ", ".join(str(by_width[width]) for width in sorted(by_width))


def _box(width: int, ratio: float | None) -> SizeDefinition:
    """Return the box for a width; cropped to ``ratio`` when one is given."""
    if ratio is None:
        return SizeDefinition(width=width, height=0, crop=False)
    return SizeDefinition(
        width=width, height=max(1, math.floor(width / ratio + 0.5)), crop=True
    )
