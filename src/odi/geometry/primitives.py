"""Geometry primitives for ODI.

Immutable Pydantic models for image dimensions, crop rectangles and focal
points. Pixel coordinates start at the top-left corner of the original.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, Field


class Size(BaseModel, frozen=True):
    """Pixel dimensions of an image or derivative.

    Attributes:
        width: Width in pixels, at least 1.
        height: Height in pixels, at least 1.
    """

    width: int = Field(..., gt=0, description="Width in pixels")
    height: int = Field(..., gt=0, description="Height in pixels")

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def to_tuple(self) -> tuple[int, int]:
        """Return ``(width, height)``, the form Pillow reports sizes in."""
        return (self.width, self.height)

    @classmethod
    def from_tuple(cls, size: tuple[int, int]) -> Self:
        return cls(width=size[0], height=size[1])


class Region(BaseModel, frozen=True):
    """Crop rectangle inside an original image.

    ``right`` and ``bottom`` are exclusive, so a region covering a
    1000x500 image is ``Region(x=0, y=0, width=1000, height=500)`` with
    ``right == 1000``.

    Attributes:
        x: Left edge, non-negative.
        y: Top edge, non-negative.
        width: Crop width in pixels, at least 1.
        height: Crop height in pixels, at least 1.
    """

    x: int = Field(..., ge=0, description="Left edge in pixels")
    y: int = Field(..., ge=0, description="Top edge in pixels")
    width: int = Field(..., gt=0, description="Crop width in pixels")
    height: int = Field(..., gt=0, description="Crop height in pixels")

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def size(self) -> Size:
        return Size(width=self.width, height=self.height)

    def to_tuple(self) -> tuple[int, int, int, int]:
        """Return ``(x, y, width, height)``."""
        return (self.x, self.y, self.width, self.height)

    def to_box(self) -> tuple[int, int, int, int]:
        """Return the ``(left, upper, right, lower)`` box Pillow crops with."""
        return (self.x, self.y, self.right, self.bottom)

    @classmethod
    def from_tuple(cls, values: tuple[int, int, int, int]) -> Self:
        """Build a region from ``(x, y, width, height)``."""
        x, y, width, height = values
        return cls(x=x, y=y, width=width, height=height)


class FocalPoint(BaseModel, frozen=True):
    """Normalized position of the subject of interest in an image.

    (0, 0) is the top-left corner and (1, 1) the bottom-right one.
    The default is the image center.

    Attributes:
        x: Horizontal position as a fraction of the image width.
        y: Vertical position as a fraction of the image height.
    """

    x: float = Field(0.5, ge=0.0, le=1.0, description="Horizontal position (0-1)")
    y: float = Field(0.5, ge=0.0, le=1.0, description="Vertical position (0-1)")

    def to_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)

    @classmethod
    def center(cls) -> Self:
        """Return the default, centered focal point."""
        return cls(x=0.5, y=0.5)
