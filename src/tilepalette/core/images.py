"""Tileset image lookup and loading."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Union

from PySide6.QtCore import Qt
from PySide6.QtGui import QImage

from tilepalette import config
from tilepalette.core.errors import AssetUnavailableError

logger = logging.getLogger(__name__)

RootSource = Union[str, Path, Callable[[], Union[str, Path]]]


class TilesetImageLoader:
    """Resolves and loads the image of a tileset from its name.

    The data root is injected rather than read from a global: pass a path,
    or a callable returning one if the root can change while the editor runs
    (the registry then picks up the new root on its next ``reloadImage()``).

    Image path: ``<root>/images/tilesets/<name>.png``
    """

    def __init__(self, root: RootSource | None = None, scale: int | None = None) -> None:
        self._root = config.TILESET_ROOT_PATH if root is None else root
        self._scale = config.DOUBLE_IMAGE_SCALE if scale is None else max(1, scale)

    @property
    def scale(self) -> int:
        return self._scale

    def rootPath(self) -> Path:
        """Current data root."""
        root = self._root() if callable(self._root) else self._root
        return Path(root)

    def imagePath(self, name: str) -> Path:
        """Path of the image file of the tileset called ``name``."""
        return self.rootPath().joinpath(
            *config.TILESET_IMAGE_SUBDIR, f"{name}{config.TILESET_IMAGE_SUFFIX}"
        )

    def load(self, name: str) -> tuple[QImage, QImage]:
        """Load the tileset image and its magnified copy.

        Returns:
            Tuple of (image, scaled image). The scaled copy uses nearest-neighbour
            sampling so pixel art stays sharp.

        Raises:
            AssetUnavailableError: If the file is missing or cannot be decoded
        """
        path = self.imagePath(name)
        if not path.is_file():
            raise AssetUnavailableError(f"Tileset image not found: {path}")

        image = QImage(str(path))
        if image.isNull():
            raise AssetUnavailableError(f"Cannot decode tileset image: {path}")

        scaled = image.scaled(
            image.width() * self._scale,
            image.height() * self._scale,
            Qt.AspectRatioMode.IgnoreAspectRatio,
            Qt.TransformationMode.FastTransformation,
        )
        logger.debug(
            "Loaded tileset image %s (%dx%d)", path, image.width(), image.height()
        )
        return image, scaled
