"""Unit tests for PicturePlanner.

The derivative cache is mocked; planning is checked through the requests it
makes and the srcset entries it assembles.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from odi.cache import Derivative, SizeDefinition
from odi.config import settings
from odi.exceptions import InvalidInputError
from odi.responsive import PicturePlanner, SrcsetEntry


def _derivative(width: int, height: int = 100) -> Derivative:
    return Derivative(
        path=Path(f"/tmp/cat-{width}x{height}.jpg"),
        url=f"https://cdn.test/cat-{width}x{height}.jpg",
        width=width,
        height=height,
    )


def _echo_get_image(source_id: int, size: str | SizeDefinition) -> Derivative:
    """Return a derivative exactly as large as requested."""
    if isinstance(size, str):
        width, _, rest = size.lstrip("*").partition("x")
        height = rest.split("c")[0].split("/")[0]
        density = int(rest.split("/")[1][:-1]) if "/" in rest else 1
        return _derivative(int(width) * density, int(height) * density)
    return _derivative(size.width, size.height or 50)


@pytest.fixture
def cache() -> MagicMock:
    mock = MagicMock()
    mock.get_image.side_effect = _echo_get_image
    mock.get_max_image.return_value = _derivative(1000, 500)
    return mock


class TestPlan:
    """Tests for PicturePlanner.plan."""

    def test_single_relative_cluster(self, cache: MagicMock) -> None:
        plan = PicturePlanner(cache, 320, 920, 200).plan(1)

        (source,) = plan.sources
        assert source.media_query == "(min-width: 0px)"
        assert source.sizes == "100vw"
        assert [entry.descriptor for entry in source.srcset] == [
            "320w", "520w", "720w", "920w",
        ]
        assert plan.fallback == _derivative(1000, 500)
        cache.get_max_image.assert_called_once_with(1, None)

    def test_relative_requests_resize_boxes(self, cache: MagicMock) -> None:
        PicturePlanner(cache, 320, 520, 200).plan(1)

        requested = [call.args for call in cache.get_image.call_args_list]
        assert requested == [
            (1, SizeDefinition(width=320, height=0, crop=False)),
            (1, SizeDefinition(width=520, height=0, crop=False)),
        ]

    def test_viewport_range_defaults_to_settings(
        self, cache: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "MIN_VIEWPORT_WIDTH", 400)
        monkeypatch.setattr(settings, "MAX_VIEWPORT_WIDTH", 800)
        monkeypatch.setattr(settings, "WIDTH_STEP", 300)

        (source,) = PicturePlanner(cache).plan(1).sources

        assert [entry.descriptor for entry in source.srcset] == ["400w", "700w", "800w"]

    def test_aspect_ratio_requests_cropped_boxes(self, cache: MagicMock) -> None:
        PicturePlanner(cache, 320, 520, 200).plan(1, aspect_ratio="4:3")

        requested = [call.args[1] for call in cache.get_image.call_args_list]
        assert requested == [
            SizeDefinition(width=320, height=240, crop=True),
            SizeDefinition(width=520, height=390, crop=True),
        ]
        cache.get_max_image.assert_called_once_with(1, 4 / 3)

    def test_fixed_cluster_uses_pixel_densities(self, cache: MagicMock) -> None:
        plan = PicturePlanner(cache).plan(1, {0: "400px"})

        (source,) = plan.sources
        assert source.sizes is None
        assert source.srcset_attribute == (
            "https://cdn.test/cat-400x0.jpg 1x, https://cdn.test/cat-800x0.jpg 2x"
        )
        assert [call.args for call in cache.get_image.call_args_list] == [
            (1, "*400x0"),
            (1, "*400x0/2x"),
        ]

    def test_widths_deduplicated_by_actual_size(self, cache: MagicMock) -> None:
        """An original narrower than the candidates yields one entry per real width."""
        cache.get_image.side_effect = lambda source_id, size: _derivative(
            min(size.width, 600)
        )

        (source,) = PicturePlanner(cache, 320, 1120, 200).plan(1).sources

        assert [entry.descriptor for entry in source.srcset] == ["320w", "520w", "600w"]

    def test_unresolvable_widths_fall_back_to_largest(self, cache: MagicMock) -> None:
        cache.get_image.side_effect = None
        cache.get_image.return_value = None

        (source,) = PicturePlanner(cache).plan(1).sources

        assert source.srcset == (
            SrcsetEntry(url="https://cdn.test/cat-1000x500.jpg", descriptor="1000w"),
        )

    def test_cluster_without_any_derivative_is_omitted(self, cache: MagicMock) -> None:
        cache.get_image.side_effect = None
        cache.get_image.return_value = None
        cache.get_max_image.return_value = None

        plan = PicturePlanner(cache).plan(1)

        assert plan.sources == ()
        assert plan.fallback is None

    def test_fallback_uses_source_at_breakpoint_zero(self, cache: MagicMock) -> None:
        PicturePlanner(cache).plan({0: 4, 768: 9})
        assert cache.get_max_image.call_args_list[-1].args == (4, None)

    def test_malformed_input_raises(self, cache: MagicMock) -> None:
        with pytest.raises(InvalidInputError):
            PicturePlanner(cache).plan({768: 4})


class TestBuildSrcset:
    """Tests for PicturePlanner.build_srcset."""

    def test_orders_by_width(self, cache: MagicMock) -> None:
        srcset = PicturePlanner(cache).build_srcset(1, ["*600x0", "*300x0"])
        assert srcset == (
            "https://cdn.test/cat-300x0.jpg 300w, https://cdn.test/cat-600x0.jpg 600w"
        )

    def test_returns_none_when_nothing_resolves(self, cache: MagicMock) -> None:
        cache.get_image.side_effect = None
        cache.get_image.return_value = None
        assert PicturePlanner(cache).build_srcset(1, ["large"]) is None
