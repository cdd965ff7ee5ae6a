"""Geometry module for ODI.

This package provides coordinate primitives, bounds validation and the
focal-point crop computation used when generating cropped derivatives.

Key Components:
    - Primitives: Size, Region and FocalPoint models
    - Validators: Bounds checking of crop regions
    - FocalCropper: Crop rectangle that keeps the focal point in view

Example:
    from odi.geometry import FocalCropper, FocalPoint, Size

    cropper = FocalCropper()
    region = cropper.compute_crop(
        Size(width=1000, height=500), 200, 200, FocalPoint(x=0.1, y=0.9)
    )
"""

from odi.geometry.focal_crop import FocalCropper
from odi.geometry.primitives import FocalPoint, Region, Size
from odi.geometry.validators import GeometryValidator, ValidationError

__all__ = [
    "FocalCropper",
    "FocalPoint",
    "GeometryValidator",
    "Region",
    "Size",
    "ValidationError",
]
