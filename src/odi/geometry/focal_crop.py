"""Focal-point aware crop computation.

Given the original image size, a target box and a focal point, computes the
largest rectangle of the original that shares the target aspect ratio and
keeps the focal point at the same relative position inside the crop as it
has inside the full image. With the default focal point (0.5, 0.5) this is a
conventional center crop.

The result is handed to the codec as the region to extract before resizing
to the target box; the rectangle never leaves the original bounds.
"""

from __future__ import annotations

import math

from odi.geometry.primitives import FocalPoint, Region, Size
from odi.geometry.validators import GeometryValidator


def _round_half_up(value: float) -> int:
    """Round a non-negative value, sending .5 away from zero."""
    return math.floor(value + 0.5)


class FocalCropper:
    """Computes source rectangles for focal-point crops.

    Algorithm:
        1. A target axis of 0 means "unconstrained" and takes the original
           dimension for that axis.
        2. Crop size: if the original is wider than the target ratio, the
           crop spans the full height and width = round(H * tw / th);
           otherwise it spans the full width and height = round(W * th / tw).
        3. Offset: x = W * fx - crop_w * fx, shifted back when the crop would
           overflow the right edge and floored at 0; same for y.

    Example:
        >>> cropper = FocalCropper()
        >>> cropper.compute_crop(Size(width=1000, height=500), 200, 200)
        Region(x=250, y=0, width=500, height=500)
    """

    __slots__ = ("_validator",)

    def __init__(self, validator: GeometryValidator | None = None) -> None:
        self._validator = validator or GeometryValidator()

    def compute_crop(
        self,
        original: Size,
        target_width: int,
        target_height: int,
        focal: FocalPoint | None = None,
    ) -> Region:
        """Compute the crop rectangle for a target box.

        Args:
            original: Dimensions of the source image.
            target_width: Width of the final box (0 = original width).
            target_height: Height of the final box (0 = original height).
            focal: Focal point; the image center when None.

        Returns:
            Region within the original bounds with the target aspect ratio.

        Raises:
            ValueError: If a target dimension is negative.
        """
        if target_width < 0 or target_height < 0:
            raise ValueError(
                f"Target dimensions must be non-negative, "
                f"got {target_width}x{target_height}"
            )

        focal = focal or FocalPoint.center()
        dst_w = target_width or original.width
        dst_h = target_height or original.height

        src_w = original.width
        src_h = original.height
        if original.width / original.height > dst_w / dst_h:
            src_w = max(1, _round_half_up(original.height * (dst_w / dst_h)))
        else:
            src_h = max(1, _round_half_up(original.width * (dst_h / dst_w)))

        src_x = self._offset(original.width, src_w, focal.x)
        src_y = self._offset(original.height, src_h, focal.y)

        region = Region(x=src_x, y=src_y, width=src_w, height=src_h)
        self._validator.validate(region, original)
        return region

    @staticmethod
    def _offset(full: int, span: int, focal: float) -> int:
        """Position a span of ``span`` pixels on an axis of ``full`` pixels."""
        start = full * focal - span * focal
        if start + span > full:
            start += full - span - start
        if start < 0:
            start = 0
        return _round_half_up(start)
