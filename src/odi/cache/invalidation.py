"""Batched invalidation of derivatives after focal point changes.

A derivative's crop depends on the focal point, so changing it invalidates
every derivative of the source. Several metadata writes within one unit of
work (x and y are separate keys, and editors may save repeatedly) must
trigger a single delete pass per source. Writes are therefore collected in
a request-scoped batch and flushed once at the end.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

from odi.exceptions import CacheIOError
from odi.sources import FOCAL_POINT_KEYS
from odi.utils.logging import correlation_scope, get_logger

logger = get_logger(__name__)


class _Purger(Protocol):
    def delete_for_source(self, source_id: int) -> bool: ...


class InvalidationBatch:
    """Collects sources whose derivatives must be deleted.

    Implements the metadata-listener interface: pass it as ``listener`` to
    metadata writes. Sources are deduplicated and kept in first-seen order.
    """

    __slots__ = ("_pending",)

    def __init__(self) -> None:
        self._pending: dict[int, None] = {}

    def watch(self, source_id: int, meta_key: str) -> None:
        """Record a metadata write; only focal point keys invalidate."""
        if meta_key in FOCAL_POINT_KEYS:
            self.mark(source_id)

    def mark(self, source_id: int) -> None:
        """Schedule a source for invalidation."""
        self._pending[source_id] = None

    @property
    def pending(self) -> tuple[int, ...]:
        return tuple(self._pending)

    def flush(self, cache: _Purger) -> list[int]:
        """Delete derivatives of every pending source once.

        Every pending source is attempted. A source stays pending only when
        its delete fails, so a later flush retries it.

        Returns:
            The sources that were invalidated.

        Raises:
            CacheIOError: The first delete failure, after all sources were
                attempted.
        """
        invalidated: list[int] = []
        failure: CacheIOError | None = None

        for source_id in list(self._pending):
            with correlation_scope(source_id=source_id):
                try:
                    cache.delete_for_source(source_id)
                except CacheIOError as e:
                    logger.error("Invalidation failed", source_id=source_id, error=str(e))
                    failure = failure or e
                    continue
            del self._pending[source_id]
            invalidated.append(source_id)

        if invalidated:
            logger.info("Invalidated derivatives", source_ids=invalidated)
        if failure is not None:
            raise failure
        return invalidated


@contextmanager
def invalidation_scope(cache: _Purger) -> Iterator[InvalidationBatch]:
    """Provide a batch for one unit of work and flush it when the unit ends.

    Example:
        >>> with invalidation_scope(cache) as batch:
        ...     store.set_focal_point(42, FocalPoint(x=0.2, y=0.3), listener=batch)
        ...     store.set_focal_point(42, FocalPoint(x=0.25, y=0.3), listener=batch)
        # one delete pass for source 42
    """
    batch = InvalidationBatch()
    try:
        yield batch
    finally:
        batch.flush(cache)
