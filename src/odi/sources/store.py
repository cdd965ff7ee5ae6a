"""In-memory source metadata store.

Stands in for the host CMS's attachment store in the CLI and in tests.
Metadata writes and removals notify an optional listener the way the host
fires its "meta added/updated" and "delete attachment" hooks.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

from odi.geometry import FocalPoint
from odi.sources.types import (
    FOCAL_POINT_X_KEY,
    FOCAL_POINT_Y_KEY,
    MetaListener,
    RemovalListener,
    SourceAsset,
)


class InMemorySourceStore:
    """Dictionary-backed implementation of SourceStoreProtocol."""

    __slots__ = ("_assets", "_meta")

    def __init__(self, assets: Iterable[SourceAsset] = ()) -> None:
        self._assets: dict[int, SourceAsset] = {}
        self._meta: dict[int, dict[str, object]] = {}
        for asset in assets:
            self.add(asset)

    def add(self, asset: SourceAsset) -> None:
        self._assets[asset.id] = asset
        self._meta.setdefault(asset.id, {})

    def get(self, source_id: int) -> SourceAsset | None:
        return self._assets.get(source_id)

    def remove(
        self,
        source_id: int,
        *,
        listener: RemovalListener | None = None,
    ) -> SourceAsset | None:
        """Drop a source and its metadata.

        The listener sees the asset before it is dropped; if it raises, the
        source stays in the store.
        """
        asset = self._assets.get(source_id)
        if asset is None:
            return None
        if listener is not None:
            listener.source_removed(asset)
        self._meta.pop(source_id, None)
        return self._assets.pop(source_id)

    def get_meta(self, source_id: int, meta_key: str) -> object | None:
        return self._meta.get(source_id, {}).get(meta_key)

    def set_meta(
        self,
        source_id: int,
        meta_key: str,
        value: object,
        *,
        listener: MetaListener | None = None,
    ) -> None:
        """Write one metadata value and notify the listener.

        Writes to the focal point keys are reflected in the asset's
        ``focal_point``; an axis that was never set stays centered. An
        invalid coordinate leaves both untouched.

        Raises:
            KeyError: If the source is unknown.
            ValueError: If a focal point coordinate is not a number in [0, 1].
        """
        asset = self._assets[source_id]

        if meta_key in (FOCAL_POINT_X_KEY, FOCAL_POINT_Y_KEY):
            coordinate = float(value)  # type: ignore[arg-type]
            current = asset.effective_focal_point
            if meta_key == FOCAL_POINT_X_KEY:
                focal = FocalPoint(x=coordinate, y=current.y)
            else:
                focal = FocalPoint(x=current.x, y=coordinate)
            self._assets[source_id] = dataclasses.replace(asset, focal_point=focal)

        self._meta[source_id][meta_key] = value

        if listener is not None:
            listener.watch(source_id, meta_key)

    def set_focal_point(
        self,
        source_id: int,
        focal_point: FocalPoint,
        *,
        listener: MetaListener | None = None,
    ) -> None:
        """Store both focal point coordinates of a source."""
        self.set_meta(source_id, FOCAL_POINT_X_KEY, focal_point.x, listener=listener)
        self.set_meta(source_id, FOCAL_POINT_Y_KEY, focal_point.y, listener=listener)
