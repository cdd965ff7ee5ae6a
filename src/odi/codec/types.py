"""Image codec protocol.

The derivative cache never touches pixels itself; it asks a codec to open
the original, crop, resize and save the result. The protocol allows for
dependency injection and testing with mock implementations.
"""

from pathlib import Path
from typing import Protocol

from PIL import Image

from odi.geometry import Region, Size


class ImageCodecProtocol(Protocol):
    """Protocol defining the interface for image codecs."""

    def open(self, path: Path) -> Image.Image:
        """Open and decode an image.

        Raises:
            CodecError: If the file cannot be read or decoded.
        """
        ...

    def crop(self, image: Image.Image, region: Region) -> Image.Image:
        """Extract a region of an image."""
        ...

    def resize(
        self,
        image: Image.Image,
        width: int,
        height: int,
        *,
        preserve_aspect: bool,
    ) -> Image.Image:
        """Resize an image.

        Args:
            image: Image to resize.
            width: Target width; 0 leaves the axis unconstrained.
            height: Target height; 0 leaves the axis unconstrained.
            preserve_aspect: Fit inside the box instead of filling it exactly.
        """
        ...

    def save(self, image: Image.Image, path: Path) -> Path:
        """Encode an image to ``path``, format chosen by extension.

        Raises:
            CodecError: If the image cannot be encoded.
            CacheIOError: If the file cannot be written.
        """
        ...

    def read_size(self, path: Path) -> Size:
        """Return the pixel dimensions of an encoded image.

        Raises:
            CodecError: If the file cannot be read.
        """
        ...
