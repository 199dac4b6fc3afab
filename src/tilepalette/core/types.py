"""Shared type definitions for the tileset core."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import NamedTuple, Optional, Union

from PySide6.QtCore import QRect
from PySide6.QtGui import QImage


class TileRect(NamedTuple):
    """Rectangle of a tile in tileset image pixel space.

    Attributes:
        x: Left edge
        y: Top edge
        width: Width in pixels
        height: Height in pixels
    """

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, px: int, py: int) -> bool:
        """Whether the point lies inside the rectangle (right/bottom edges excluded)."""
        if self.is_empty():
            return False
        return self.x <= px < self.right and self.y <= py < self.bottom

    def intersects(self, other: TileRect) -> bool:
        """Whether both rectangles share an area; touching edges do not count."""
        if self.is_empty() or other.is_empty():
            return False
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def to_qrect(self) -> QRect:
        return QRect(self.x, self.y, self.width, self.height)


class TileLayer(IntEnum):
    """Layer a tile is drawn on."""

    BELOW = 0
    INTERMEDIATE = 1
    ABOVE = 2


class ObstacleKind(IntEnum):
    """Obstacle classification of a tile.

    The diagonal kinds name the corner that is walkable-blocked.
    """

    NONE = 0
    OBSTACLE = 1
    TOP_RIGHT = 2
    TOP_LEFT = 3
    BOTTOM_LEFT = 4
    BOTTOM_RIGHT = 5


@dataclass(frozen=True)
class Tile:
    """A tile of a tileset: a region of the tileset image plus its properties."""

    rect: TileRect
    layer: TileLayer = TileLayer.BELOW
    obstacle: ObstacleKind = ObstacleKind.NONE


# -----------------------------------------------------------------------------
# Notification payloads
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class TileCreated:
    """A tile was added at ``index``."""

    index: int
    tile: Tile


@dataclass(frozen=True)
class TileRemoved:
    """The tile at ``index`` was removed."""

    index: int


@dataclass(frozen=True)
class ImageChanged:
    """The tileset image was (re)loaded; ``image`` is None if loading failed."""

    image: Optional[QImage]


#: Everything an observer can receive. ``None`` is the generic change
#: notification (selection or pending area changed).
TilesetEvent = Optional[Union[TileCreated, TileRemoved, ImageChanged]]
