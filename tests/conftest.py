"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

from asset_normalizer.adapters.mock import MOCK_MP4, MockEncoder, MockProber
from asset_normalizer.core.config.loader import Settings
from asset_normalizer.core.models.media import FormatCatalog
from asset_normalizer.core.services.pipeline import MediaPipeline


def make_image(
    width: int,
    height: int,
    fmt: str = "PNG",
    mode: str = "RGB",
    color: tuple[int, ...] = (200, 30, 30),
) -> bytes:
    """Encode a solid-colour image of the given size with Pillow."""
    img = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    return make_image


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of any normalizer.yml on disk."""
    return Settings()


@pytest.fixture
def catalog(settings: Settings) -> FormatCatalog:
    return settings.catalog()


@pytest.fixture
def encoder() -> MockEncoder:
    return MockEncoder()


@pytest.fixture
def prober() -> MockProber:
    return MockProber()


@pytest.fixture
def pipeline(settings: Settings, encoder: MockEncoder, prober: MockProber) -> MediaPipeline:
    return MediaPipeline(settings, encoder, prober)


@pytest.fixture
def video_file(tmp_path: Path) -> Path:
    """A small file that sniffs as MP4."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(MOCK_MP4)
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ANORM_* variables from the developer's shell out of tests."""
    import os

    for var in list(os.environ):
        if var.startswith("ANORM_"):
            monkeypatch.delenv(var, raising=False)
