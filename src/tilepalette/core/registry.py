"""Observable registry of the tiles of a tileset."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from PySide6.QtCore import QObject, Signal, Slot, Property
from PySide6.QtGui import QImage

from tilepalette.core.errors import AssetUnavailableError, TileNotFoundError
from tilepalette.core.images import TilesetImageLoader
from tilepalette.core.types import (
    ImageChanged,
    ObstacleKind,
    Tile,
    TileCreated,
    TileLayer,
    TileRect,
    TileRemoved,
    TilesetEvent,
)

logger = logging.getLogger(__name__)

#: Selection value when no tile is selected
NO_SELECTION = 0

#: Selection value while the user is drawing the area of a new tile
NEW_TILE_SELECTION = -1

Observer = Callable[[TilesetEvent], None]


class TileRegistry(QObject):
    """The tiles of a tileset, keyed by index, plus the user's editing state.

    Indexes start at 1 and are never reused: each new tile gets
    ``maxIndex + 1`` even if tiles were removed in between. Tiles are always
    iterated in ascending index order. The *rank* of a tile is its position
    in that order.

    Selection (``selectedIndex``):
    - 0: nothing selected
    - 1 or more: the tile with that index is selected
    - -1: the user is defining a new tile, see ``setPendingArea()``

    Signals are delivered synchronously from the calling thread. Handlers
    must not add or remove tiles.
    """

    changed = Signal()
    tileCreated = Signal(object)  # TileCreated
    tileRemoved = Signal(int)  # removed index
    imageChanged = Signal(object)  # QImage or None
    dirtyChanged = Signal()

    def __init__(
        self,
        name: str,
        image_loader: TilesetImageLoader | None = None,
        parent: QObject | None = None,
        *,
        load_image: bool = True,
    ) -> None:
        """Create an empty tileset.

        Args:
            name: Name of the tileset, e.g. "house"; also names its image file
            image_loader: Resolves and loads the tileset image (default root from config)
            parent: Optional Qt parent
            load_image: Try to load the tileset image right away
        """
        super().__init__(parent)
        self._name = name
        self._loader = image_loader if image_loader is not None else TilesetImageLoader()
        self._tiles: dict[int, Tile] = {}
        self._max_index = 0
        self._selected_index = NO_SELECTION
        self._pending_area: TileRect | None = None
        self._pending_overlaps = False
        self._dirty = True
        self._image: QImage | None = None
        self._double_image: QImage | None = None
        self._observers: dict[Observer, tuple] = {}
        if load_image:
            self.reloadImage()

    def __repr__(self) -> str:
        return (
            f"TileRegistry(name={self._name!r}, tiles={len(self._tiles)}, "
            f"max_index={self._max_index})"
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @Property(str, constant=True)
    def name(self) -> str:
        """Name of the tileset."""
        return self._name

    @Property(int, notify=changed)
    def count(self) -> int:
        """Number of tiles."""
        return len(self._tiles)

    @Property(int, notify=changed)
    def maxIndex(self) -> int:
        """Highest index ever assigned in this tileset."""
        return self._max_index

    @Property(bool, notify=dirtyChanged)
    def isDirty(self) -> bool:
        """Whether the tileset has changes that were never saved.

        A newly created tileset is dirty until it is first saved.
        """
        return self._dirty

    def setDirty(self, dirty: bool) -> None:
        if self._dirty != dirty:
            self._dirty = dirty
            self.dirtyChanged.emit()

    # ------------------------------------------------------------------
    # Indexed tile map
    # ------------------------------------------------------------------

    @Slot(result=int)
    def tileCount(self) -> int:
        return len(self._tiles)

    def tileIndexes(self) -> list[int]:
        """Indexes of all tiles, ascending."""
        return list(self._tiles)

    def tiles(self) -> list[Tile]:
        """All tiles, in ascending index order."""
        return list(self._tiles.values())

    def items(self) -> list[tuple[int, Tile]]:
        """(index, tile) pairs in ascending index order."""
        return list(self._tiles.items())

    @Slot(int, result=bool)
    def hasTile(self, index: int) -> bool:
        return index in self._tiles

    def tileAt(self, index: int) -> Tile:
        """Get the tile with the given index.

        Raises:
            TileNotFoundError: If there is no tile with this index
        """
        try:
            return self._tiles[index]
        except KeyError:
            raise TileNotFoundError(
                f"There is no tile with index {index} in tileset {self._name!r}"
            ) from None

    @Slot(int, int, result=int)
    def indexOfTileAt(self, x: int, y: int) -> int:
        """Index of the tile containing the point (x, y), or 0 if there is none.

        When tiles overlap, the one with the lowest index wins.
        """
        for index, tile in self._tiles.items():
            if tile.rect.contains(x, y):
                return index
        return 0

    @Slot(int, result=int)
    def rankOfIndex(self, index: int) -> int:
        """Position of a tile when all tiles are sorted by index.

        Raises:
            TileNotFoundError: If there is no tile with this index
        """
        for rank, current in enumerate(self._tiles):
            if current == index:
                return rank
        raise TileNotFoundError(
            f"There is no tile with index {index} in tileset {self._name!r}"
        )

    @Slot(int, result=int)
    def indexOfRank(self, rank: int) -> int:
        """Index of the tile at the given rank.

        Raises:
            TileNotFoundError: If rank is not in [0, tileCount() - 1]
        """
        if 0 <= rank < len(self._tiles):
            for current_rank, index in enumerate(self._tiles):
                if current_rank == rank:
                    return index
        raise TileNotFoundError(
            f"There is no tile with rank {rank} in tileset {self._name!r}"
        )

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _get_selected_index(self) -> int:
        return self._selected_index

    @Slot(int)
    def setSelectedIndex(self, index: int) -> None:
        """Select a tile and notify the observers.

        Does nothing if the selection does not change.

        Args:
            index: 0 to select nothing, an existing index to select that tile,
                or -1 to start defining a new tile

        Raises:
            TileNotFoundError: If index is positive but not the index of a
                tile, or below -1
        """
        if index == self._selected_index:
            return
        if index < NEW_TILE_SELECTION or (index > NO_SELECTION and index not in self._tiles):
            raise TileNotFoundError(
                f"Cannot select {index}: no such tile in tileset {self._name!r}"
            )

        self._selected_index = index
        # The pending area survives only when the selection lands on the
        # index equal to the current tile count.
        if index != len(self._tiles):
            self._pending_area = None
            self._pending_overlaps = False

        logger.debug("Tileset %r: selected index %d", self._name, index)
        self.changed.emit()

    selectedIndex = Property(int, _get_selected_index, setSelectedIndex, notify=changed)

    @Slot()
    def deselect(self) -> None:
        self.setSelectedIndex(NO_SELECTION)

    @Slot()
    def beginNewTile(self) -> None:
        """Start defining a new tile."""
        self.setSelectedIndex(NEW_TILE_SELECTION)

    def selectedTile(self) -> Tile | None:
        """The selected tile, or None if nothing or a new tile is selected."""
        if self._selected_index > 0:
            return self.tileAt(self._selected_index)
        return None

    @Slot(result=bool)
    def isDefiningNewTile(self) -> bool:
        return self._selected_index == NEW_TILE_SELECTION

    # ------------------------------------------------------------------
    # Pending area
    # ------------------------------------------------------------------

    def pendingArea(self) -> TileRect | None:
        """Area of the tile being defined, or None."""
        return self._pending_area

    def setPendingArea(self, area: TileRect | tuple[int, int, int, int] | None) -> None:
        """Change the area of the tile being defined.

        Also determines whether this area overlaps an existing tile, in which
        case the tile cannot be created. Does nothing if the area is unchanged
        or if no new tile is being defined.
        """
        if area is not None:
            area = TileRect(*area)
        if area == self._pending_area:
            return
        if not self.isDefiningNewTile():
            logger.debug("Tileset %r: pending area ignored, not defining a new tile", self._name)
            return

        self._pending_area = area
        self._pending_overlaps = area is not None and any(
            tile.rect.intersects(area) for tile in self._tiles.values()
        )
        self.changed.emit()

    @Slot(int, int, int, int)
    def setPendingRect(self, x: int, y: int, width: int, height: int) -> None:
        """QML-friendly variant of ``setPendingArea()``."""
        self.setPendingArea(TileRect(x, y, width, height))

    @Slot(result=bool)
    def isPendingOverlapping(self) -> bool:
        return self._pending_overlaps

    # ------------------------------------------------------------------
    # Tile creation / removal
    # ------------------------------------------------------------------

    @Slot(int, result=int)
    def addTile(self, obstacle: int = ObstacleKind.NONE) -> int:
        """Create a tile from the pending area and add it to the tileset.

        Only works while a new tile is being defined and its area overlaps no
        existing tile; otherwise nothing happens. The new tile gets selected.

        Args:
            obstacle: Obstacle kind of the new tile

        Returns:
            Index of the new tile, or 0 if nothing was added

        Raises:
            ValueError: If obstacle is not an ObstacleKind value; nothing is
                changed in that case
        """
        if (
            not self.isDefiningNewTile()
            or self._pending_overlaps
            or self._pending_area is None
        ):
            logger.debug("Tileset %r: addTile ignored, no valid new tile area", self._name)
            return 0

        tile = Tile(self._pending_area, TileLayer.BELOW, ObstacleKind(obstacle))
        self._max_index += 1
        index = self._max_index
        self._tiles[index] = tile

        self.setSelectedIndex(index)
        self.setDirty(True)

        logger.info("Tileset %r: added tile %d at %s", self._name, index, tuple(tile.rect))
        self.tileCreated.emit(TileCreated(index, tile))
        return index

    @Slot(result=int)
    def removeTile(self) -> int:
        """Remove the selected tile.

        Returns:
            Index of the removed tile, or 0 if no existing tile was selected
        """
        index = self._selected_index
        if index <= 0:
            logger.debug("Tileset %r: removeTile ignored, no tile selected", self._name)
            return 0

        del self._tiles[index]
        self.setSelectedIndex(NO_SELECTION)
        self.setDirty(True)

        logger.info("Tileset %r: removed tile %d", self._name, index)
        self.tileRemoved.emit(index)
        return index

    def _restore(self, tiles: dict[int, Tile], max_index: int) -> None:
        """Replace the tile map wholesale. Keys must be ascending and <= max_index."""
        self._tiles = dict(tiles)
        self._max_index = max_index

    # ------------------------------------------------------------------
    # Image
    # ------------------------------------------------------------------

    @property
    def imageLoader(self) -> TilesetImageLoader:
        return self._loader

    def imagePath(self) -> Path:
        """Path of the file holding the tileset image."""
        return self._loader.imagePath(self._name)

    def image(self) -> QImage | None:
        """The tileset image, or None if it could not be loaded."""
        return self._image

    def doubleImage(self) -> QImage | None:
        """The tileset image scaled up for zoomed views, or None."""
        return self._double_image

    @Slot()
    def reloadImage(self) -> None:
        """Reload the tileset image, e.g. after the data root changed.

        A missing or broken image is not an error: both images are cleared
        and observers receive None so they can draw a placeholder.
        """
        try:
            self._image, self._double_image = self._loader.load(self._name)
        except AssetUnavailableError as e:
            logger.warning("Tileset %r: image unavailable: %s", self._name, e)
            self._image = None
            self._double_image = None

        self.imageChanged.emit(self._image)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def addObserver(self, observer: Observer) -> None:
        """Call ``observer(event)`` for every notification of this tileset.

        ``event`` is None for selection and pending area changes, or a
        TileCreated, TileRemoved or ImageChanged instance.
        """
        if observer in self._observers:
            return

        slots = (
            (self.changed, lambda: observer(None)),
            (self.tileCreated, lambda event: observer(event)),
            (self.tileRemoved, lambda index: observer(TileRemoved(index))),
            (self.imageChanged, lambda image: observer(ImageChanged(image))),
        )
        for signal, slot in slots:
            signal.connect(slot)
        self._observers[observer] = slots

    def removeObserver(self, observer: Observer) -> None:
        """Stop notifying ``observer``. Unknown observers are ignored."""
        slots = self._observers.pop(observer, None)
        if slots is None:
            return
        for signal, slot in slots:
            signal.disconnect(slot)
