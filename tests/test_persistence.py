"""Tests for tileset serialization and tileset files."""

from __future__ import annotations

from pathlib import Path

import pytest

from tilepalette.core import persistence
from tilepalette.core.errors import CorruptDataError
from tilepalette.core.images import TilesetImageLoader
from tilepalette.core.persistence import (
    FORMAT_VERSION,
    NAME_LENGTH,
    TILE_COUNT,
    TILE_ENTRY,
    TILESET_HEADER,
    TILESET_MAGIC,
    deserialize,
    serialize,
)
from tilepalette.core.registry import NO_SELECTION, TileRegistry
from tilepalette.core.types import ObstacleKind, TileRect


def _encode(
    entries: list[tuple[int, int, int, int, int, int, int]],
    *,
    name: bytes = b"house",
    max_index: int = 10,
    magic: bytes = TILESET_MAGIC,
    version: int = FORMAT_VERSION,
    count: int | None = None,
) -> bytes:
    """Hand-build a tileset byte stream."""
    parts = [
        TILESET_HEADER.pack(magic, version, max_index),
        NAME_LENGTH.pack(len(name)),
        name,
        TILE_COUNT.pack(len(entries) if count is None else count),
    ]
    parts.extend(TILE_ENTRY.pack(*entry) for entry in entries)
    return b"".join(parts)


class TestRoundTrip:
    """Tests for serialize followed by deserialize."""

    def test_round_trip(self, sparse_registry: TileRegistry, empty_loader: TilesetImageLoader):
        restored = deserialize(serialize(sparse_registry), empty_loader)

        assert restored.name == sparse_registry.name
        assert restored.tileIndexes() == [1, 3, 4]
        assert restored.items() == sparse_registry.items()
        assert restored.maxIndex == 4

    def test_empty_tileset(self, registry: TileRegistry, empty_loader: TilesetImageLoader):
        restored = deserialize(serialize(registry), empty_loader)
        assert restored.tileCount() == 0
        assert restored.maxIndex == 0

    def test_max_index_survives_removal_of_last_tile(
        self, registry: TileRegistry, add_tile, empty_loader: TilesetImageLoader
    ):
        add_tile(registry, (0, 0, 16, 16))
        registry.removeTile()  # tile 1 is selected right after creation

        restored = deserialize(serialize(registry), empty_loader)
        assert restored.tileCount() == 0
        assert add_tile(restored, (0, 0, 16, 16)) == 2

    def test_transient_state_reset(self, sparse_registry: TileRegistry, empty_loader: TilesetImageLoader):
        """Selection, pending area and dirty flag are not persisted."""
        sparse_registry.beginNewTile()
        sparse_registry.setPendingArea(TileRect(8, 8, 16, 16))
        assert sparse_registry.isDirty

        restored = deserialize(serialize(sparse_registry), empty_loader)

        assert restored.selectedIndex == NO_SELECTION
        assert restored.pendingArea() is None
        assert not restored.isPendingOverlapping()
        assert not restored.isDirty

    def test_selection_is_not_in_the_bytes(self, sparse_registry: TileRegistry):
        sparse_registry.setSelectedIndex(1)
        with_selection = serialize(sparse_registry)
        sparse_registry.deselect()
        assert serialize(sparse_registry) == with_selection

    def test_image_reloaded(self, qapp, sparse_registry: TileRegistry, image_loader: TilesetImageLoader):
        restored = deserialize(serialize(sparse_registry), image_loader)
        assert restored.image() is not None
        assert restored.doubleImage().width() == 128

    def test_unicode_name(self, qapp, empty_loader: TilesetImageLoader):
        registry = TileRegistry("château", empty_loader)
        assert deserialize(serialize(registry), empty_loader).name == "château"

    def test_negative_coordinates(self, registry: TileRegistry, add_tile, empty_loader):
        add_tile(registry, (-8, -8, 16, 16), ObstacleKind.BOTTOM_RIGHT)
        restored = deserialize(serialize(registry), empty_loader)
        assert restored.tileAt(1).rect == TileRect(-8, -8, 16, 16)
        assert restored.tileAt(1).obstacle == ObstacleKind.BOTTOM_RIGHT


class TestCorruptData:
    """Tests for malformed tileset streams."""

    def test_valid_hand_built_stream(self, qapp, empty_loader: TilesetImageLoader):
        data = _encode([(2, 0, 0, 16, 16, 0, 1), (7, 16, 0, 16, 16, 2, 0)], max_index=7)
        registry = deserialize(data, empty_loader)
        assert registry.tileIndexes() == [2, 7]
        assert registry.maxIndex == 7

    def test_empty_bytes(self):
        with pytest.raises(CorruptDataError):
            deserialize(b"")

    def test_bad_magic(self):
        with pytest.raises(CorruptDataError, match="magic"):
            deserialize(_encode([], magic=b"NOTATILE"))

    def test_future_version(self):
        with pytest.raises(CorruptDataError, match="version"):
            deserialize(_encode([], version=FORMAT_VERSION + 1))

    def test_truncated(self, sparse_registry: TileRegistry):
        data = serialize(sparse_registry)
        for cut in (4, len(data) // 2, len(data) - 1):
            with pytest.raises(CorruptDataError):
                deserialize(data[:cut])

    def test_trailing_bytes(self, sparse_registry: TileRegistry):
        with pytest.raises(CorruptDataError, match="trailing"):
            deserialize(serialize(sparse_registry) + b"\0")

    def test_count_larger_than_data(self):
        with pytest.raises(CorruptDataError):
            deserialize(_encode([(1, 0, 0, 16, 16, 0, 0)], count=1000))

    def test_invalid_name(self):
        with pytest.raises(CorruptDataError, match="name"):
            deserialize(_encode([], name=b"\xff\xfe"))

    def test_index_zero(self):
        with pytest.raises(CorruptDataError):
            deserialize(_encode([(0, 0, 0, 16, 16, 0, 0)]))

    def test_index_above_max_index(self):
        with pytest.raises(CorruptDataError):
            deserialize(_encode([(11, 0, 0, 16, 16, 0, 0)], max_index=10))

    def test_duplicate_index(self):
        with pytest.raises(CorruptDataError):
            deserialize(_encode([(1, 0, 0, 16, 16, 0, 0), (1, 16, 0, 16, 16, 0, 0)]))

    def test_descending_indexes(self):
        with pytest.raises(CorruptDataError):
            deserialize(_encode([(3, 0, 0, 16, 16, 0, 0), (2, 16, 0, 16, 16, 0, 0)]))

    def test_unknown_layer(self):
        with pytest.raises(CorruptDataError):
            deserialize(_encode([(1, 0, 0, 16, 16, 9, 0)]))

    def test_unknown_obstacle(self):
        with pytest.raises(CorruptDataError):
            deserialize(_encode([(1, 0, 0, 16, 16, 0, 42)]))

    def test_corrupt_data_is_a_value_error(self):
        with pytest.raises(ValueError):
            deserialize(b"garbage")


class TestFiles:
    """Tests for save() and load()."""

    def test_save_and_load(self, sparse_registry: TileRegistry, temp_dir: Path, empty_loader):
        path = temp_dir / "house.tileset"
        persistence.save(path, sparse_registry)

        assert path.exists()
        assert not sparse_registry.isDirty

        restored = persistence.load(path, empty_loader)
        assert restored.items() == sparse_registry.items()
        assert not restored.isDirty

    def test_save_creates_directories(self, registry: TileRegistry, temp_dir: Path):
        path = temp_dir / "nested" / "dir" / "house.tileset"
        persistence.save(path, registry)
        assert path.exists()

    def test_save_leaves_no_temp_files(self, registry: TileRegistry, temp_dir: Path):
        persistence.save(temp_dir / "house.tileset", registry)
        assert [p.name for p in temp_dir.iterdir() if p.is_file()] == ["house.tileset"]

    def test_save_returns_written_path(self, registry: TileRegistry, temp_dir: Path):
        path = temp_dir / "house.tileset"
        assert persistence.save(path, registry) == path

    @pytest.mark.parametrize(
        "name, expected",
        [("house", "house.tileset"), ("house.bak", "house.bak.tileset"), ("house.tileset", "house.tileset")],
    )
    def test_save_appends_suffix(self, registry: TileRegistry, temp_dir: Path, name: str, expected: str):
        written = persistence.save(temp_dir / name, registry)
        assert written == temp_dir / expected
        assert written.exists()

    def test_new_tileset_clean_after_save(self, registry: TileRegistry, temp_dir: Path):
        assert registry.isDirty
        persistence.save(temp_dir / "house.tileset", registry)
        assert not registry.isDirty

    def test_save_marks_clean_only_after_writing(self, sparse_registry: TileRegistry, temp_dir: Path):
        """A failed write keeps the unsaved changes flagged."""
        blocker = temp_dir / "blocker"
        blocker.write_text("")
        with pytest.raises(OSError):
            persistence.save(blocker / "house.tileset", sparse_registry)
        assert sparse_registry.isDirty

    def test_load_nonexistent(self, temp_dir: Path):
        with pytest.raises(FileNotFoundError):
            persistence.load(temp_dir / "missing.tileset")

    def test_load_corrupt_file(self, temp_dir: Path):
        path = temp_dir / "bad.tileset"
        path.write_bytes(b"{not a tileset")
        with pytest.raises(CorruptDataError):
            persistence.load(path)
