"""Unit tests for geometry primitives.

Tests Size, Region and FocalPoint Pydantic models including:
- Construction and validation
- Computed properties (right, bottom, aspect ratio)
- Tuple and box conversion
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from odi.geometry import FocalPoint, Region, Size


class TestSize:
    """Tests for the Size model."""

    def test_size_creation_valid(self) -> None:
        size = Size(width=1000, height=500)
        assert size.to_tuple() == (1000, 500)

    def test_size_rejects_zero(self) -> None:
        with pytest.raises(ValidationError, match="greater than 0"):
            Size(width=0, height=10)

    def test_size_aspect_ratio(self) -> None:
        assert Size(width=1600, height=900).aspect_ratio == pytest.approx(16 / 9)

    def test_size_from_tuple(self) -> None:
        assert Size.from_tuple((3, 4)) == Size(width=3, height=4)

    def test_size_is_frozen(self) -> None:
        size = Size(width=1, height=1)
        with pytest.raises(ValidationError):
            size.width = 2  # type: ignore[misc]


class TestRegion:
    """Tests for the Region model."""

    def test_region_edges(self) -> None:
        region = Region(x=10, y=20, width=100, height=50)
        assert region.right == 110
        assert region.bottom == 70
        assert region.size == Size(width=100, height=50)

    def test_region_rejects_negative_origin(self) -> None:
        with pytest.raises(ValidationError, match="greater than or equal to 0"):
            Region(x=-1, y=0, width=10, height=10)

    def test_region_rejects_empty(self) -> None:
        with pytest.raises(ValidationError):
            Region(x=0, y=0, width=0, height=10)

    def test_region_to_box(self) -> None:
        """Pillow boxes are (left, upper, right, lower)."""
        region = Region(x=10, y=20, width=100, height=50)
        assert region.to_box() == (10, 20, 110, 70)

    def test_region_tuple_round_trip(self) -> None:
        region = Region.from_tuple((1, 2, 3, 4))
        assert region.to_tuple() == (1, 2, 3, 4)


class TestFocalPoint:
    """Tests for the FocalPoint model."""

    def test_focal_point_defaults_to_center(self) -> None:
        assert FocalPoint() == FocalPoint.center() == FocalPoint(x=0.5, y=0.5)

    @pytest.mark.parametrize("x", [0.0, 1.0, 0.25])
    def test_focal_point_accepts_unit_interval(self, x: float) -> None:
        assert FocalPoint(x=x, y=0.5).x == x

    @pytest.mark.parametrize("x", [-0.01, 1.01])
    def test_focal_point_rejects_outside_unit_interval(self, x: float) -> None:
        with pytest.raises(ValidationError):
            FocalPoint(x=x, y=0.5)

    def test_focal_point_hashable(self) -> None:
        assert len({FocalPoint(x=0.1, y=0.2), FocalPoint(x=0.1, y=0.2)}) == 1
