"""Tileset core: tiles, registry and persistence."""

from .errors import (
    AssetUnavailableError,
    CorruptDataError,
    TileNotFoundError,
    TilesetError,
)
from .images import TilesetImageLoader
from .registry import NEW_TILE_SELECTION, NO_SELECTION, TileRegistry
from .types import (
    ImageChanged,
    ObstacleKind,
    Tile,
    TileCreated,
    TileLayer,
    TileRect,
    TileRemoved,
    TilesetEvent,
)

__all__ = [
    "TileRegistry",
    "TilesetImageLoader",
    "NO_SELECTION",
    "NEW_TILE_SELECTION",
    "Tile",
    "TileRect",
    "TileLayer",
    "ObstacleKind",
    "TileCreated",
    "TileRemoved",
    "ImageChanged",
    "TilesetEvent",
    "TilesetError",
    "TileNotFoundError",
    "CorruptDataError",
    "AssetUnavailableError",
]
