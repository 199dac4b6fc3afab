"""Exceptions raised by the tileset core."""

from __future__ import annotations


class TilesetError(Exception):
    """Base class for tileset errors."""


class TileNotFoundError(TilesetError, LookupError):
    """No tile exists at the requested index or rank."""


class CorruptDataError(TilesetError, ValueError):
    """A tileset byte stream is malformed or uses an unknown format version."""


class AssetUnavailableError(TilesetError, OSError):
    """The tileset image could not be read or decoded."""
