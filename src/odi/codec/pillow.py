"""Image codec implementation wrapping Pillow."""

from __future__ import annotations

import os
import uuid
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from odi.exceptions import CacheIOError, CodecError
from odi.geometry import Region, Size

# Formats that accept a ``quality`` save parameter
_LOSSY_FORMATS: frozenset[str] = frozenset({"JPEG", "WEBP"})

# JPEG cannot store alpha or palette images
_JPEG_MODES: frozenset[str] = frozenset({"RGB", "L", "CMYK"})


class PillowCodec:
    """Codec backed by Pillow.

    Resizing uses LANCZOS resampling. Saves go to a hidden temporary sibling
    that is renamed into place, so a derivative path never holds a partially
    written file.

    Usage:
        codec = PillowCodec(jpeg_quality=85)
        image = codec.open(Path("cat.jpg"))
        image = codec.resize(image, 300, 0, preserve_aspect=True)
        codec.save(image, Path("cat-300x0.jpg"))
    """

    __slots__ = ("_jpeg_quality",)

    def __init__(self, jpeg_quality: int = 85) -> None:
        """Initialize the codec.

        Args:
            jpeg_quality: Quality 1-100 for JPEG and WebP output.

        Raises:
            ValueError: If jpeg_quality is out of range.
        """
        if not 1 <= jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be 1-100, got {jpeg_quality}")
        self._jpeg_quality = jpeg_quality

    def open(self, path: Path) -> Image.Image:
        try:
            image = Image.open(path)
            image.load()
        except (OSError, UnidentifiedImageError) as e:
            raise CodecError(f"Failed to open image: {e}", path=path) from e
        return image

    def crop(self, image: Image.Image, region: Region) -> Image.Image:
        return image.crop(region.to_box())

    def resize(
        self,
        image: Image.Image,
        width: int,
        height: int,
        *,
        preserve_aspect: bool,
    ) -> Image.Image:
        original_width, original_height = image.size
        if width <= 0 and height <= 0:
            return image

        if width <= 0:
            width = max(1, round(original_width * height / original_height))
        elif height <= 0:
            height = max(1, round(original_height * width / original_width))
        elif preserve_aspect:
            scale = min(width / original_width, height / original_height)
            width = max(1, round(original_width * scale))
            height = max(1, round(original_height * scale))

        if (width, height) == image.size:
            return image

        return image.resize((width, height), resample=Image.Resampling.LANCZOS)

    def save(self, image: Image.Image, path: Path) -> Path:
        image_format = Image.registered_extensions().get(path.suffix.lower())
        if image_format is None:
            raise CodecError(f"Unsupported output extension '{path.suffix}'", path=path)

        params: dict[str, int] = {}
        if image_format in _LOSSY_FORMATS:
            params["quality"] = self._jpeg_quality
        if image_format == "JPEG" and image.mode not in _JPEG_MODES:
            image = image.convert("RGB")

        temporary = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            image.save(temporary, format=image_format, **params)
            os.replace(temporary, path)
        except (ValueError, KeyError) as e:
            temporary.unlink(missing_ok=True)
            raise CodecError(f"Failed to save image: {e}", path=path) from e
        except OSError as e:
            temporary.unlink(missing_ok=True)
            raise CacheIOError(f"Cannot write derivative: {e}", path=path) from e

        return path

    def read_size(self, path: Path) -> Size:
        try:
            with Image.open(path) as image:
                return Size.from_tuple(image.size)
        except (OSError, UnidentifiedImageError) as e:
            raise CodecError(f"Failed to read image size: {e}", path=path) from e
