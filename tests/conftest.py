"""Test fixtures for tilepalette tests."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Callable, Generator

# Run Qt without a display server (headless test environments).
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import numpy as np
import pytest
from PIL import Image as PILImage
from PySide6.QtWidgets import QApplication

from tilepalette.core.images import TilesetImageLoader
from tilepalette.core.registry import TileRegistry
from tilepalette.core.types import ObstacleKind, TileRect

TILESET_NAME = "house"
IMAGE_WIDTH = 64
IMAGE_HEIGHT = 32


@pytest.fixture(scope="session")
def qapp():
    """Create a Qt application for testing (shared across all test files)."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_rgb_array() -> np.ndarray:
    """Create a 64x32 RGB tileset image with one colored 16x16 cell per tile slot."""
    img = np.full((IMAGE_HEIGHT, IMAGE_WIDTH, 3), 255, dtype=np.uint8)

    # Top row: red, green, blue, purple
    img[0:16, 0:16] = [200, 50, 50]
    img[0:16, 16:32] = [50, 200, 50]
    img[0:16, 32:48] = [50, 50, 200]
    img[0:16, 48:64] = [150, 50, 150]

    # Bottom row: grey
    img[16:32, :] = [128, 128, 128]

    return img


@pytest.fixture
def tileset_root(temp_dir: Path, sample_rgb_array: np.ndarray) -> Path:
    """Create a data root holding images/tilesets/house.png."""
    images_dir = temp_dir / "data" / "images" / "tilesets"
    images_dir.mkdir(parents=True)
    PILImage.fromarray(sample_rgb_array).save(images_dir / f"{TILESET_NAME}.png")
    return temp_dir / "data"


@pytest.fixture
def image_loader(tileset_root: Path) -> TilesetImageLoader:
    """Loader whose root holds the house tileset image."""
    return TilesetImageLoader(tileset_root)


@pytest.fixture
def empty_loader(temp_dir: Path) -> TilesetImageLoader:
    """Loader whose root holds no images at all."""
    return TilesetImageLoader(temp_dir / "no_data")


@pytest.fixture
def registry(qapp, empty_loader: TilesetImageLoader) -> TileRegistry:
    """An empty tileset without image."""
    return TileRegistry(TILESET_NAME, empty_loader)


@pytest.fixture
def add_tile() -> Callable[..., int]:
    """Return a helper that adds a tile through the interactive workflow."""

    def _add(
        registry: TileRegistry,
        rect: tuple[int, int, int, int],
        obstacle: ObstacleKind = ObstacleKind.NONE,
    ) -> int:
        registry.beginNewTile()
        registry.setPendingArea(TileRect(*rect))
        return registry.addTile(obstacle)

    return _add


@pytest.fixture
def sparse_registry(registry: TileRegistry, add_tile) -> TileRegistry:
    """Tileset with tiles at indexes 1, 3 and 4 (tile 2 removed)."""
    add_tile(registry, (0, 0, 16, 16))
    add_tile(registry, (16, 0, 16, 16))
    add_tile(registry, (32, 0, 16, 16))
    add_tile(registry, (48, 0, 16, 16), ObstacleKind.OBSTACLE)
    registry.setSelectedIndex(2)
    registry.removeTile()
    return registry
