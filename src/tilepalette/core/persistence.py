"""Binary tileset files.

Layout (little-endian)::

    header   magic (8s) | format version (H) | max index (I)
    name     byte length (H) | UTF-8 bytes
    count    number of tiles (I)
    entries  index (I) | x (i) | y (i) | width (i) | height (i) | layer (B) | obstacle (B)

Entries are stored in ascending index order. Only the name, the tiles and
the index counter are stored; selection, pending area, dirty flag and
images are runtime state rebuilt after loading.
"""

from __future__ import annotations

import logging
import os
import struct
import tempfile
from pathlib import Path

from tilepalette.config import TILESET_FILE_SUFFIX
from tilepalette.core.errors import CorruptDataError
from tilepalette.core.images import TilesetImageLoader
from tilepalette.core.registry import NO_SELECTION, TileRegistry
from tilepalette.core.types import ObstacleKind, Tile, TileLayer, TileRect

logger = logging.getLogger(__name__)

TILESET_MAGIC = b"TPALSET\0"
FORMAT_VERSION = 1
_KNOWN_VERSIONS = {FORMAT_VERSION}

TILESET_HEADER = struct.Struct("<8sHI")
NAME_LENGTH = struct.Struct("<H")
TILE_COUNT = struct.Struct("<I")
TILE_ENTRY = struct.Struct("<IiiiiBB")


def serialize(registry: TileRegistry) -> bytes:
    """Encode the persistent part of a tileset."""
    name = registry.name.encode("utf-8")
    if len(name) > 0xFFFF:
        raise ValueError(f"Tileset name too long ({len(name)} bytes)")

    items = registry.items()
    parts = [
        TILESET_HEADER.pack(TILESET_MAGIC, FORMAT_VERSION, registry.maxIndex),
        NAME_LENGTH.pack(len(name)),
        name,
        TILE_COUNT.pack(len(items)),
    ]
    for index, tile in items:
        rect = tile.rect
        parts.append(
            TILE_ENTRY.pack(
                index,
                rect.x,
                rect.y,
                rect.width,
                rect.height,
                int(tile.layer),
                int(tile.obstacle),
            )
        )
    return b"".join(parts)


class _Reader:
    """Sequential struct reader that reports truncation as corrupt data."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._offset = 0

    def read(self, fmt: struct.Struct) -> tuple:
        if self._offset + fmt.size > len(self._data):
            raise CorruptDataError(
                f"Truncated tileset data at offset {self._offset}"
            )
        values = fmt.unpack_from(self._data, self._offset)
        self._offset += fmt.size
        return values

    def read_bytes(self, size: int) -> bytes:
        if self._offset + size > len(self._data):
            raise CorruptDataError(
                f"Truncated tileset data at offset {self._offset}"
            )
        chunk = bytes(self._data[self._offset:self._offset + size])
        self._offset += size
        return chunk

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset


def _decode(data: bytes) -> tuple[str, dict[int, Tile], int]:
    """Parse and validate a tileset byte stream into (name, tiles, max_index)."""
    reader = _Reader(data)

    magic, version, max_index = reader.read(TILESET_HEADER)
    if magic != TILESET_MAGIC:
        raise CorruptDataError("Not a tileset file (bad magic)")
    if version not in _KNOWN_VERSIONS:
        raise CorruptDataError(f"Unsupported tileset format version {version}")

    (name_length,) = reader.read(NAME_LENGTH)
    try:
        name = reader.read_bytes(name_length).decode("utf-8")
    except UnicodeDecodeError as e:
        raise CorruptDataError(f"Invalid tileset name: {e}") from e

    (count,) = reader.read(TILE_COUNT)
    if count * TILE_ENTRY.size > reader.remaining:
        raise CorruptDataError(
            f"Tileset declares {count} tiles but holds only {reader.remaining} bytes"
        )

    tiles: dict[int, Tile] = {}
    previous = 0
    for _ in range(count):
        index, x, y, width, height, layer, obstacle = reader.read(TILE_ENTRY)
        if index <= previous or index > max_index:
            raise CorruptDataError(
                f"Invalid tile index {index} (previous {previous}, max {max_index})"
            )
        try:
            tile = Tile(TileRect(x, y, width, height), TileLayer(layer), ObstacleKind(obstacle))
        except ValueError as e:
            raise CorruptDataError(f"Invalid tile {index}: {e}") from e
        tiles[index] = tile
        previous = index

    if reader.remaining:
        raise CorruptDataError(f"{reader.remaining} unexpected trailing bytes")

    return name, tiles, max_index


def deserialize(
    data: bytes, image_loader: TilesetImageLoader | None = None
) -> TileRegistry:
    """Rebuild a tileset from bytes produced by ``serialize()``.

    The returned tileset is clean (not dirty), has nothing selected and has
    just attempted to load its image.

    Raises:
        CorruptDataError: If the data is malformed or from an unknown format version
    """
    name, tiles, max_index = _decode(data)

    registry = TileRegistry(name, image_loader, load_image=False)
    registry._restore(tiles, max_index)

    registry.setDirty(False)
    registry.setSelectedIndex(NO_SELECTION)
    registry.reloadImage()
    return registry


def tileset_file_path(path: str | Path) -> Path:
    """Path of a tileset file, with the tileset suffix appended if missing.

    ``house`` becomes ``house.tileset`` and ``house.bak`` becomes
    ``house.bak.tileset``.
    """
    path = Path(path)
    if path.suffix != TILESET_FILE_SUFFIX:
        path = path.with_name(path.name + TILESET_FILE_SUFFIX)
    return path


def _write_file(path: Path, data: bytes) -> int:
    """Replace ``path`` with ``data`` so readers never see a partial tileset.

    Returns the number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return len(data)


def save(path: str | Path, registry: TileRegistry) -> Path:
    """Write a tileset file and mark the tileset as saved.

    Returns:
        The path actually written, see ``tileset_file_path()``
    """
    path = tileset_file_path(path)
    size = _write_file(path, serialize(registry))
    registry.setDirty(False)
    logger.info(
        "Saved tileset %r (%d tiles, %d bytes) to %s",
        registry.name, registry.tileCount(), size, path,
    )
    return path


def load(path: str | Path, image_loader: TilesetImageLoader | None = None) -> TileRegistry:
    """Read a tileset file.

    Raises:
        OSError: If the file cannot be read
        CorruptDataError: If the file content is not a valid tileset
    """
    path = Path(path)
    data = path.read_bytes()
    registry = deserialize(data, image_loader)
    logger.info("Loaded tileset %r (%d tiles) from %s", registry.name, registry.tileCount(), path)
    return registry
