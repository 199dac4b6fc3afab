"""Qt models for QML bindings."""

from __future__ import annotations

import logging
from typing import Any

from PySide6.QtCore import (
    QAbstractListModel,
    QModelIndex,
    QObject,
    Qt,
    Signal,
    Slot,
    Property,
)

from tilepalette.core.registry import TileRegistry
from tilepalette.core.types import TileCreated

logger = logging.getLogger(__name__)


class TileListModel(QAbstractListModel):
    """List of the tiles of a tileset, one row per tile in rank order.

    Follows the registry through its signals: rows are inserted and removed
    as tiles are created and deleted, and the selected role is refreshed on
    selection changes.
    """

    TileIndexRole = Qt.ItemDataRole.UserRole + 1
    XRole = Qt.ItemDataRole.UserRole + 2
    YRole = Qt.ItemDataRole.UserRole + 3
    WidthRole = Qt.ItemDataRole.UserRole + 4
    HeightRole = Qt.ItemDataRole.UserRole + 5
    LayerRole = Qt.ItemDataRole.UserRole + 6
    ObstacleRole = Qt.ItemDataRole.UserRole + 7
    SelectedRole = Qt.ItemDataRole.UserRole + 8

    selectedRowChanged = Signal()

    def __init__(self, registry: TileRegistry | None = None, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._registry: TileRegistry | None = None
        # Indexes are cached so a removed tile can still be mapped to its row.
        self._indexes: list[int] = []
        self._selected_index = 0
        if registry is not None:
            self.setRegistry(registry)

    def registry(self) -> TileRegistry | None:
        return self._registry

    def setRegistry(self, registry: TileRegistry | None) -> None:
        """Show the tiles of another tileset (or none)."""
        if registry is self._registry:
            return

        self.beginResetModel()
        if self._registry is not None:
            self._registry.changed.disconnect(self._on_changed)
            self._registry.tileCreated.disconnect(self._on_tile_created)
            self._registry.tileRemoved.disconnect(self._on_tile_removed)

        self._registry = registry
        if registry is not None:
            registry.changed.connect(self._on_changed)
            registry.tileCreated.connect(self._on_tile_created)
            registry.tileRemoved.connect(self._on_tile_removed)
            self._indexes = registry.tileIndexes()
            self._selected_index = registry.selectedIndex
        else:
            self._indexes = []
            self._selected_index = 0
        self.endResetModel()
        self.selectedRowChanged.emit()

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self._indexes)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole) -> Any:
        """Return data for the given model index and role."""
        if self._registry is None or not index.isValid() or index.row() >= len(self._indexes):
            return None

        tile_index = self._indexes[index.row()]
        if role == self.TileIndexRole:
            return tile_index
        if role == self.SelectedRole:
            return tile_index == self._registry.selectedIndex
        if not self._registry.hasTile(tile_index):
            # Removal in progress: the row goes away on tileRemoved.
            return None

        tile = self._registry.tileAt(tile_index)
        if role == self.XRole:
            return tile.rect.x
        elif role == self.YRole:
            return tile.rect.y
        elif role == self.WidthRole:
            return tile.rect.width
        elif role == self.HeightRole:
            return tile.rect.height
        elif role == self.LayerRole:
            return int(tile.layer)
        elif role == self.ObstacleRole:
            return int(tile.obstacle)
        elif role == Qt.ItemDataRole.DisplayRole:
            return f"Tile {tile_index}"
        return None

    def roleNames(self) -> dict:
        return {
            self.TileIndexRole: b"tileIndex",
            self.XRole: b"tileX",
            self.YRole: b"tileY",
            self.WidthRole: b"tileWidth",
            self.HeightRole: b"tileHeight",
            self.LayerRole: b"layer",
            self.ObstacleRole: b"obstacle",
            self.SelectedRole: b"selected",
        }

    def _row_of(self, tile_index: int) -> int:
        try:
            return self._indexes.index(tile_index)
        except ValueError:
            return -1

    @Property(int, notify=selectedRowChanged)
    def selectedRow(self) -> int:
        """Row of the selected tile, or -1."""
        return self._row_of(self._selected_index) if self._selected_index > 0 else -1

    @Slot(int)
    def selectRow(self, row: int) -> None:
        """Select the tile shown at ``row``; out-of-range rows deselect."""
        if self._registry is None:
            return
        if 0 <= row < len(self._indexes):
            self._registry.setSelectedIndex(self._indexes[row])
        else:
            self._registry.deselect()

    def _refresh_selected(self, tile_index: int) -> None:
        row = self._row_of(tile_index)
        if row >= 0:
            model_index = self.index(row, 0)
            self.dataChanged.emit(model_index, model_index, [self.SelectedRole])

    def _on_changed(self) -> None:
        new_index = self._registry.selectedIndex
        if new_index == self._selected_index:
            return
        old_index = self._selected_index
        self._selected_index = new_index
        self._refresh_selected(old_index)
        self._refresh_selected(new_index)
        self.selectedRowChanged.emit()

    def _on_tile_created(self, event: TileCreated) -> None:
        row = self._registry.rankOfIndex(event.index)
        self.beginInsertRows(QModelIndex(), row, row)
        self._indexes.insert(row, event.index)
        self.endInsertRows()
        logger.debug("TileListModel: inserted tile %d at row %d", event.index, row)
        if event.index == self._selected_index:
            self.selectedRowChanged.emit()

    def _on_tile_removed(self, tile_index: int) -> None:
        row = self._row_of(tile_index)
        if row < 0:
            logger.warning("TileListModel: removed tile %d was not listed", tile_index)
            return
        self.beginRemoveRows(QModelIndex(), row, row)
        del self._indexes[row]
        self.endRemoveRows()
        self.selectedRowChanged.emit()
