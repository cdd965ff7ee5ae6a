"""Bounds checks for crop rectangles.

A crop region handed to the codec must lie inside the original image;
Pillow would otherwise pad the result with black pixels instead of failing.
"""

from __future__ import annotations

from odi.geometry.primitives import Region, Size


class ValidationError(Exception):
    """Raised when a crop region leaves the original image.

    Attributes:
        region: The offending region.
        bounds: Size of the original image.
    """

    def __init__(self, message: str, *, region: Region, bounds: Size) -> None:
        self.region = region
        self.bounds = bounds
        super().__init__(
            f"{message} (region={region.to_tuple()}, bounds={bounds.to_tuple()})"
        )


def bounds_violations(region: Region, bounds: Size) -> list[str]:
    """Describe every edge of ``region`` lying outside ``bounds``.

    Origins are non-negative by construction, so only the far edges are
    checked.
    """
    violations: list[str] = []
    if region.right > bounds.width:
        violations.append(f"right edge ({region.right}) exceeds width ({bounds.width})")
    if region.bottom > bounds.height:
        violations.append(
            f"bottom edge ({region.bottom}) exceeds height ({bounds.height})"
        )
    return violations


class GeometryValidator:
    """Checks crop regions against the original image size."""

    def validate(self, region: Region, bounds: Size, *, strict: bool = True) -> bool:
        """Return True when ``region`` fits inside ``bounds``.

        Raises:
            ValidationError: If the region does not fit and ``strict`` is set.
        """
        violations = bounds_violations(region, bounds)
        if violations and strict:
            raise ValidationError(
                f"Crop outside image: {'; '.join(violations)}",
                region=region,
                bounds=bounds,
            )
        return not violations

    def is_within_bounds(self, region: Region, bounds: Size) -> bool:
        return self.validate(region, bounds, strict=False)
