"""On-demand derivative cache.

Resolves a (source, size) request to a derivative file, generating it on
first access. The file name encodes source stem, width and height, so a
cache hit is a single ``stat``; a miss costs one decode/transform/encode.

Two concurrent requests for the same missing derivative may both generate
it. Generation is deterministic and saves are atomic renames, so the last
writer wins with identical content.

Failure policy:
    - Unknown source, vector source, upscale request or codec failure:
      logged, the request resolves to None.
    - Malformed size request: InvalidInputError propagates.
    - Filesystem failure: CacheIOError propagates.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path

from odi.cache.sizes import SizeDefinition, SizeRegistry, parse_aspect_ratio
from odi.cache.storage import DerivativeStorage
from odi.codec import ImageCodecProtocol, PillowCodec
from odi.config import settings
from odi.exceptions import CodecError, UnsupportedSourceError, UpscaleRejectedError
from odi.geometry import FocalCropper, Size
from odi.sources import SourceAsset, SourceStoreProtocol
from odi.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Derivative:
    """A generated image file.

    Attributes:
        path: Location on disk.
        url: Public URL.
        width: Actual width read back from the file.
        height: Actual height read back from the file.
    """

    path: Path
    url: str
    width: int
    height: int


class DerivativeCache:
    """Generates, stores, serves and invalidates derivatives.

    Example:
        >>> cache = DerivativeCache(sources, DerivativeStorage("/srv/uploads", url))
        >>> cache.get_image(42, "*600x400c")
        Derivative(path=PosixPath('/srv/uploads/odi/2024/05/cat-600x400.jpg'), ...)
    """

    __slots__ = ("_codec", "_cropper", "_registry", "_sources", "_storage")

    def __init__(
        self,
        sources: SourceStoreProtocol,
        storage: DerivativeStorage,
        codec: ImageCodecProtocol | None = None,
        registry: SizeRegistry | None = None,
        cropper: FocalCropper | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            sources: Metadata store supplying source assets.
            storage: Derivative folder layout.
            codec: Image codec. Defaults to PillowCodec at
                ``settings.JPEG_QUALITY``.
            registry: Named sizes. Defaults to an empty registry, which only
                accepts ad-hoc descriptors.
            cropper: Focal crop computation. Defaults to FocalCropper.
        """
        self._sources = sources
        self._storage = storage
        self._codec = codec or PillowCodec(jpeg_quality=settings.JPEG_QUALITY)
        self._registry = registry or SizeRegistry()
        self._cropper = cropper or FocalCropper()

    @property
    def storage(self) -> DerivativeStorage:
        return self._storage

    def get_image(
        self,
        source_id: int,
        size: str | SizeDefinition,
    ) -> Derivative | None:
        """Return the derivative of a source for a size, generating it if missing.

        Args:
            source_id: Source image id.
            size: Registered size name, ad-hoc descriptor or definition.

        Returns:
            The derivative, or None when none can be produced.

        Raises:
            InvalidInputError: If ``size`` is neither registered nor a valid
                descriptor.
            CacheIOError: If the derivative folder or file cannot be written.
        """
        asset = self._sources.get(source_id)
        if asset is None:
            logger.warning("Unknown source", source_id=source_id)
            return None

        definition = self._registry.resolve(size)

        try:
            return self._materialize(asset, definition)
        except (UnsupportedSourceError, UpscaleRejectedError) as e:
            logger.info("No derivative available", source_id=source_id, reason=str(e))
            return None
        except CodecError as e:
            logger.error(
                "Derivative generation failed",
                source_id=source_id,
                width=definition.width,
                height=definition.height,
                error=str(e),
            )
            return None

    def _materialize(self, asset: SourceAsset, definition: SizeDefinition) -> Derivative:
        # Rejected requests must not create the derivative folder
        _check_generatable(asset, definition)

        location = self._storage.key_for(asset.file, definition.width, definition.height)
        if self._storage.exists(location.path):
            logger.debug("Derivative cache hit", source_id=asset.id, path=str(location.path))
        else:
            self.generate(asset, definition, location.path)

        # Actual dimensions can differ from the request when resizing without crop
        size = self._codec.read_size(location.path)
        return Derivative(
            path=location.path,
            url=location.url,
            width=size.width,
            height=size.height,
        )

    def generate(
        self,
        asset: SourceAsset,
        definition: SizeDefinition,
        destination: Path,
    ) -> Path:
        """Generate a derivative file from the original.

        Cropping sizes are cut around the source's focal point (the center
        when none is stored) and scaled to the exact box. Other sizes are
        scaled to fit inside the box.

        Raises:
            UnsupportedSourceError: If the source is a vector image.
            UpscaleRejectedError: If the box is larger than the original.
            CodecError: If decoding, transforming or encoding fails.
            CacheIOError: If the file cannot be written.
        """
        _check_generatable(asset, definition)

        image = self._codec.open(asset.path)

        if definition.crop:
            region = self._cropper.compute_crop(
                asset.size,
                definition.width,
                definition.height,
                asset.effective_focal_point,
            )
            image = self._codec.crop(image, region)
            image = self._codec.resize(
                image,
                definition.width or asset.width,
                definition.height or asset.height,
                preserve_aspect=False,
            )
        else:
            image = self._codec.resize(
                image,
                definition.width,
                definition.height,
                preserve_aspect=True,
            )

        self._codec.save(image, destination)
        logger.info(
            "Generated derivative",
            source_id=asset.id,
            width=definition.width,
            height=definition.height,
            crop=definition.crop,
            path=str(destination),
        )
        return destination

    def get_max_image(
        self,
        source_id: int,
        aspect_ratio: float | int | str | None = None,
    ) -> Derivative | None:
        """Return the largest derivative a source can yield.

        Args:
            source_id: Source image id.
            aspect_ratio: Optional ratio (number, ``"W:H"`` or ``"W/H"``) to
                crop to; the crop is as large as the original allows.

        Raises:
            InvalidInputError: If the aspect ratio is malformed.
        """
        asset = self._sources.get(source_id)
        if asset is None:
            logger.warning("Unknown source", source_id=source_id)
            return None

        width = asset.width
        height = asset.height
        if aspect_ratio is not None:
            # A zero height would mean "unconstrained" to the cache key
            height = max(1, math.floor(asset.width / parse_aspect_ratio(aspect_ratio)))
            if height > asset.height:
                width = max(1, math.floor(asset.width * (asset.height / height)))
                height = asset.height

        definition = SizeDefinition(
            width=width, height=height, crop=aspect_ratio is not None
        )
        return self.get_image(source_id, definition)

    def delete_for_source(self, source_id: int) -> bool:
        """Delete every derivative of a source.

        Returns:
            False when the source is unknown or not a raster image.

        Raises:
            CacheIOError: If a derivative cannot be deleted.
        """
        asset = self._sources.get(source_id)
        if asset is None:
            return False
        return self.delete_for_asset(asset)

    def delete_for_asset(self, asset: SourceAsset) -> bool:
        """Delete every derivative of an asset, known to the store or not.

        Returns:
            False when the asset is not a raster image.

        Raises:
            CacheIOError: If a derivative cannot be deleted.
        """
        if asset.is_vector:
            return False

        deleted = self._storage.purge(asset.file)
        logger.info("Deleted derivatives", source_id=asset.id, count=len(deleted))
        return True

    def source_removed(self, asset: SourceAsset) -> None:
        """Purge the derivatives of a source the host is about to remove.

        Pass the cache as the ``listener`` of ``InMemorySourceStore.remove``;
        once the source is gone ``delete_for_source`` can no longer find it.
        """
        self.delete_for_asset(asset)

    def dimensions_for_url(self, url: str) -> Size | None:
        """Return the size of the derivative served at ``url``.

        Returns None for URLs outside the derivative folder, missing files
        and unreadable images.
        """
        path = self._storage.path_for_url(url)
        if path is None or not self._storage.exists(path):
            return None

        try:
            return self._codec.read_size(path)
        except CodecError:
            logger.warning("Unreadable derivative", url=url)
            return None


def _check_generatable(asset: SourceAsset, definition: SizeDefinition) -> None:
    if asset.is_vector:
        raise UnsupportedSourceError(asset.id, asset.mime_type)
    if asset.width < definition.width or asset.height < definition.height:
        raise UpscaleRejectedError(
            asset.id,
            requested=(definition.width, definition.height),
            original=(asset.width, asset.height),
        )
