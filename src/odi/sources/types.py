"""Type definitions for source images.

A source asset is an original upload together with the metadata the
derivative pipeline needs: its dimensions, MIME type, storage location and
stored focal point. The metadata store itself belongs to the host; it is
accessed through SourceStoreProtocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol

from odi.geometry import FocalPoint, Size

FOCAL_POINT_X_KEY = "focalpoint_x"
FOCAL_POINT_Y_KEY = "focalpoint_y"
FOCAL_POINT_KEYS: frozenset[str] = frozenset({FOCAL_POINT_X_KEY, FOCAL_POINT_Y_KEY})


@dataclass(frozen=True)
class SourceAsset:
    """Immutable metadata of an original upload.

    Attributes:
        id: Identifier of the source in the host's metadata store.
        file: Storage path relative to the uploads root, e.g. ``"2024/05/cat.jpg"``.
        path: Absolute path of the original file.
        width: Original width in pixels.
        height: Original height in pixels.
        mime_type: MIME type of the original, e.g. ``"image/jpeg"``.
        focal_point: Stored focal point, None when never set.
    """

    id: int
    file: str
    path: Path
    width: int
    height: int
    mime_type: str
    focal_point: FocalPoint | None = None

    @property
    def size(self) -> Size:
        """Return the original dimensions as a Size."""
        return Size(width=self.width, height=self.height)

    @property
    def is_vector(self) -> bool:
        """Return True for vector formats the pipeline cannot rasterize."""
        return "svg" in self.mime_type.lower()

    @property
    def stem(self) -> str:
        """Return the file name without its extension."""
        return PurePosixPath(self.file).stem

    @property
    def effective_focal_point(self) -> FocalPoint:
        """Return the stored focal point, or the image center."""
        return self.focal_point or FocalPoint.center()


class SourceStoreProtocol(Protocol):
    """Protocol for the host's source metadata store."""

    def get(self, source_id: int) -> SourceAsset | None:
        """Return the asset with the given id, or None if unknown."""
        ...


class MetaListener(Protocol):
    """Receives notifications of metadata writes on a source."""

    def watch(self, source_id: int, meta_key: str) -> None:
        """Called after ``meta_key`` of ``source_id`` was added or updated."""
        ...


class RemovalListener(Protocol):
    """Receives notifications of source removals."""

    def source_removed(self, asset: SourceAsset) -> None:
        """Called before ``asset`` is dropped from the store."""
        ...
