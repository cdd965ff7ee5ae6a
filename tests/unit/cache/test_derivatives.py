"""Unit tests for DerivativeCache.

The codec is mocked so generation is observed through codec calls; the
storage layout is real and rooted in a temporary folder.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from odi.cache import DerivativeCache, DerivativeStorage, SizeDefinition, SizeRegistry
from odi.config import settings
from odi.exceptions import CacheIOError, CodecError, InvalidInputError
from odi.geometry import FocalPoint, Region, Size
from odi.sources import InMemorySourceStore, SourceAsset


@pytest.fixture
def codec() -> MagicMock:
    mock = MagicMock()
    mock.read_size.return_value = Size(width=200, height=200)
    return mock


@pytest.fixture
def cache(
    source_store: InMemorySourceStore,
    storage: DerivativeStorage,
    codec: MagicMock,
) -> DerivativeCache:
    registry = SizeRegistry({"medium": SizeDefinition(width=300, height=300)})
    return DerivativeCache(source_store, storage, codec=codec, registry=registry)


class TestGetImage:
    """Tests for DerivativeCache.get_image."""

    def test_generates_missing_derivative(
        self, cache: DerivativeCache, codec: MagicMock, storage: DerivativeStorage
    ) -> None:
        derivative = cache.get_image(1, "*200x200c")

        assert derivative is not None
        assert derivative.path == storage.root / "2024" / "05" / "cat-200x200.jpg"
        assert derivative.url == "https://example.test/uploads/odi/2024/05/cat-200x200.jpg"
        assert (derivative.width, derivative.height) == (200, 200)
        codec.open.assert_called_once()
        codec.save.assert_called_once()
        assert codec.save.call_args.args[1] == derivative.path

    def test_cache_hit_skips_generation(
        self, cache: DerivativeCache, codec: MagicMock, storage: DerivativeStorage
    ) -> None:
        location = storage.key_for("2024/05/cat.jpg", 200, 200)
        location.path.write_bytes(b"cached")

        derivative = cache.get_image(1, "*200x200c")

        assert derivative is not None
        assert derivative.path == location.path
        codec.open.assert_not_called()
        codec.save.assert_not_called()

    def test_dimensions_read_from_file(self, cache: DerivativeCache, codec: MagicMock) -> None:
        codec.read_size.return_value = Size(width=300, height=150)

        derivative = cache.get_image(1, "medium")

        assert derivative is not None
        assert (derivative.width, derivative.height) == (300, 150)
        assert derivative.path.name == "cat-300x300.jpg"

    def test_density_descriptor_addresses_same_file(
        self, cache: DerivativeCache
    ) -> None:
        double = cache.get_image(1, "*100x100c/2x")
        plain = cache.get_image(1, "*200x200c")
        assert double is not None and plain is not None
        assert double.path == plain.path

    def test_unknown_source_returns_none(self, cache: DerivativeCache, codec: MagicMock) -> None:
        assert cache.get_image(99, "*10x10") is None
        codec.open.assert_not_called()

    def test_vector_source_returns_none(
        self,
        source_store: InMemorySourceStore,
        make_asset: Callable[..., SourceAsset],
        cache: DerivativeCache,
        codec: MagicMock,
    ) -> None:
        source_store.add(make_asset(id=2, file="logo.svg", mime_type="image/svg+xml"))

        assert cache.get_image(2, "*10x10") is None
        codec.open.assert_not_called()

    @pytest.mark.parametrize("size", ["*2000x0", "*0x600", "*600x400c/2x"])
    def test_upscale_returns_none(
        self, cache: DerivativeCache, codec: MagicMock, size: str
    ) -> None:
        assert cache.get_image(1, size) is None
        codec.open.assert_not_called()

    def test_exact_original_size_is_allowed(self, cache: DerivativeCache) -> None:
        assert cache.get_image(1, "*1000x500") is not None

    def test_upscale_creates_no_folder(
        self, cache: DerivativeCache, storage: DerivativeStorage
    ) -> None:
        assert cache.get_image(1, "*2000x0") is None
        assert not storage.root.exists()

    def test_codec_failure_returns_none(self, cache: DerivativeCache, codec: MagicMock) -> None:
        codec.open.side_effect = CodecError("corrupt")
        assert cache.get_image(1, "*100x100") is None

    def test_write_failure_raises(self, cache: DerivativeCache, codec: MagicMock) -> None:
        codec.save.side_effect = CacheIOError("disk full")

        with pytest.raises(CacheIOError, match="disk full"):
            cache.get_image(1, "*100x100")

    def test_derivative_path_occupied_by_directory_raises(
        self,
        source_store: InMemorySourceStore,
        make_asset: Callable[..., SourceAsset],
        storage: DerivativeStorage,
        write_image: Callable[..., Path],
    ) -> None:
        source_store.add(make_asset(id=2, path=write_image("originals/cat.jpg")))
        storage.key_for("2024/05/cat.jpg", 300, 0).path.mkdir()
        cache = DerivativeCache(source_store, storage)

        with pytest.raises(CacheIOError, match="Cannot write derivative"):
            cache.get_image(2, "*300x0")

    @pytest.mark.parametrize("size", ["*abc", "huge", "*100x100/10x"])
    def test_malformed_size_raises(self, cache: DerivativeCache, size: str) -> None:
        with pytest.raises(InvalidInputError):
            cache.get_image(1, size)


class TestGenerate:
    """Tests for DerivativeCache.generate."""

    def test_crop_uses_focal_point_then_scales_exactly(
        self,
        cache: DerivativeCache,
        codec: MagicMock,
        make_asset: Callable[..., SourceAsset],
        tmp_path: Path,
    ) -> None:
        asset = make_asset(focal_point=FocalPoint(x=0.1, y=0.9))
        opened, cropped, resized = MagicMock(), MagicMock(), MagicMock()
        codec.open.return_value = opened
        codec.crop.return_value = cropped
        codec.resize.return_value = resized

        destination = tmp_path / "out.jpg"
        cache.generate(asset, SizeDefinition(width=200, height=200, crop=True), destination)

        codec.open.assert_called_once_with(asset.path)
        codec.crop.assert_called_once_with(opened, Region(x=50, y=0, width=500, height=500))
        codec.resize.assert_called_once_with(cropped, 200, 200, preserve_aspect=False)
        codec.save.assert_called_once_with(resized, destination)

    def test_crop_with_free_axis_keeps_original_extent(
        self,
        cache: DerivativeCache,
        codec: MagicMock,
        make_asset: Callable[..., SourceAsset],
        tmp_path: Path,
    ) -> None:
        cache.generate(
            make_asset(), SizeDefinition(width=250, height=0, crop=True), tmp_path / "o.jpg"
        )

        codec.crop.assert_called_once_with(
            codec.open.return_value, Region(x=375, y=0, width=250, height=500)
        )
        codec.resize.assert_called_once_with(
            codec.crop.return_value, 250, 500, preserve_aspect=False
        )

    def test_plain_resize_fits_inside_box(
        self,
        cache: DerivativeCache,
        codec: MagicMock,
        make_asset: Callable[..., SourceAsset],
        tmp_path: Path,
    ) -> None:
        cache.generate(make_asset(), SizeDefinition(width=300, height=300), tmp_path / "o.jpg")

        codec.crop.assert_not_called()
        codec.resize.assert_called_once_with(
            codec.open.return_value, 300, 300, preserve_aspect=True
        )


class TestGetMaxImage:
    """Tests for DerivativeCache.get_max_image."""

    def test_without_ratio_is_full_size(self, cache: DerivativeCache) -> None:
        derivative = cache.get_max_image(1)
        assert derivative is not None
        assert derivative.path.name == "cat-1000x500.jpg"

    def test_square_ratio_limited_by_height(self, cache: DerivativeCache, codec: MagicMock) -> None:
        derivative = cache.get_max_image(1, "1:1")

        assert derivative is not None
        assert derivative.path.name == "cat-500x500.jpg"
        codec.crop.assert_called_once()

    def test_wide_ratio_limited_by_width(self, cache: DerivativeCache) -> None:
        derivative = cache.get_max_image(1, 4)
        assert derivative is not None
        assert derivative.path.name == "cat-1000x250.jpg"

    @pytest.mark.parametrize(
        ("ratio", "name"),
        [(2000, "cat-1000x1.jpg"), ("1:2000", "cat-1x500.jpg")],
    )
    def test_extreme_ratio_keeps_both_axes_constrained(
        self, cache: DerivativeCache, ratio: float | str, name: str
    ) -> None:
        derivative = cache.get_max_image(1, ratio)
        assert derivative is not None
        assert derivative.path.name == name

    def test_unknown_source(self, cache: DerivativeCache) -> None:
        assert cache.get_max_image(42) is None

    def test_malformed_ratio_raises(self, cache: DerivativeCache) -> None:
        with pytest.raises(InvalidInputError):
            cache.get_max_image(1, "wide")


class TestDeleteForSource:
    """Tests for DerivativeCache.delete_for_source."""

    def test_deletes_all_derivatives(
        self, cache: DerivativeCache, storage: DerivativeStorage
    ) -> None:
        paths = [storage.key_for("2024/05/cat.jpg", w, w).path for w in (10, 20)]
        for path in paths:
            path.write_bytes(b"x")

        assert cache.delete_for_source(1) is True
        assert not any(path.exists() for path in paths)

    def test_unknown_source(self, cache: DerivativeCache) -> None:
        assert cache.delete_for_source(42) is False

    def test_vector_source(
        self,
        source_store: InMemorySourceStore,
        make_asset: Callable[..., SourceAsset],
        cache: DerivativeCache,
    ) -> None:
        source_store.add(make_asset(id=2, file="logo.svg", mime_type="image/svg+xml"))
        assert cache.delete_for_source(2) is False

    def test_store_removal_purges_first(
        self,
        source_store: InMemorySourceStore,
        cache: DerivativeCache,
        storage: DerivativeStorage,
    ) -> None:
        path = storage.key_for("2024/05/cat.jpg", 300, 0).path
        path.write_bytes(b"x")

        removed = source_store.remove(1, listener=cache)

        assert removed is not None
        assert not path.exists()
        assert source_store.get(1) is None

    def test_delete_for_removed_asset(
        self,
        make_asset: Callable[..., SourceAsset],
        cache: DerivativeCache,
        storage: DerivativeStorage,
    ) -> None:
        path = storage.key_for("2019/dog.png", 40, 40).path
        path.write_bytes(b"x")

        assert cache.delete_for_asset(make_asset(id=7, file="2019/dog.png")) is True
        assert not path.exists()


class TestDimensionsForUrl:
    """Tests for DerivativeCache.dimensions_for_url."""

    def test_existing_derivative(
        self, cache: DerivativeCache, storage: DerivativeStorage, codec: MagicMock
    ) -> None:
        location = storage.key_for("2024/05/cat.jpg", 30, 20)
        location.path.write_bytes(b"x")
        codec.read_size.return_value = Size(width=30, height=20)

        assert cache.dimensions_for_url(location.url) == Size(width=30, height=20)
        codec.read_size.assert_called_once_with(location.path)

    def test_missing_file(self, cache: DerivativeCache, storage: DerivativeStorage) -> None:
        url = storage.key_for("2024/05/cat.jpg", 30, 20).url
        assert cache.dimensions_for_url(url) is None

    def test_foreign_url(self, cache: DerivativeCache) -> None:
        assert cache.dimensions_for_url("https://elsewhere.test/cat.jpg") is None

    def test_unreadable_file(
        self, cache: DerivativeCache, storage: DerivativeStorage, codec: MagicMock
    ) -> None:
        location = storage.key_for("cat.jpg", 1, 1)
        location.path.write_bytes(b"not an image")
        codec.read_size.side_effect = CodecError("unreadable")

        assert cache.dimensions_for_url(location.url) is None


class TestDefaults:
    """Tests for collaborators built from settings."""

    def test_default_codec_uses_configured_quality(
        self,
        source_store: InMemorySourceStore,
        storage: DerivativeStorage,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        codec_class = MagicMock()
        monkeypatch.setattr("odi.cache.derivatives.PillowCodec", codec_class)
        monkeypatch.setattr(settings, "JPEG_QUALITY", 40)

        DerivativeCache(source_store, storage)

        codec_class.assert_called_once_with(jpeg_quality=40)

    def test_default_registry_uses_configured_on_demand_keys(
        self,
        source_store: InMemorySourceStore,
        storage: DerivativeStorage,
        codec: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings, "ON_DEMAND_SIZE_KEYS", ["thumbnail"])
        registry = SizeRegistry({"thumbnail": SizeDefinition(width=150, height=150, crop=True)})
        cache = DerivativeCache(source_store, storage, codec=codec, registry=registry)

        derivative = cache.get_image(1, "thumbnail")

        assert derivative is not None
        assert derivative.path.name == "cat-150x150.jpg"
