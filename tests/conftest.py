"""Shared pytest fixtures and configuration."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from PIL import Image

from odi.cache import DerivativeStorage
from odi.config import Settings
from odi.sources import InMemorySourceStore, SourceAsset
from odi.utils.logging import clear_correlation_context, configure_logging

BASE_URL = "https://example.test/uploads"


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        UPLOADS_BASEDIR=tmp_path / "uploads",
        UPLOADS_BASEURL=BASE_URL,
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def storage(tmp_path: Path) -> DerivativeStorage:
    """Derivative storage rooted in a temporary uploads folder."""
    return DerivativeStorage(tmp_path / "uploads", BASE_URL)


@pytest.fixture
def make_asset() -> Callable[..., SourceAsset]:
    """Factory for source assets with sensible defaults."""

    def _make(**overrides: object) -> SourceAsset:
        fields: dict[str, object] = {
            "id": 1,
            "file": "2024/05/cat.jpg",
            "path": Path("/originals/2024/05/cat.jpg"),
            "width": 1000,
            "height": 500,
            "mime_type": "image/jpeg",
            "focal_point": None,
        }
        fields.update(overrides)
        return SourceAsset(**fields)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def source_store(make_asset: Callable[..., SourceAsset]) -> InMemorySourceStore:
    """Store holding one 1000x500 JPEG source with id 1."""
    return InMemorySourceStore([make_asset()])


@pytest.fixture
def write_image(tmp_path: Path) -> Callable[..., Path]:
    """Write a real image file and return its path."""

    def _write(
        relative: str = "originals/photo.jpg",
        size: tuple[int, int] = (1000, 500),
        color: tuple[int, int, int] = (128, 128, 128),
    ) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, color=color).save(path)
        return path

    return _write
