"""
Layer Panel component for the plot tracker GUI.

This module provides a layer list with:
- Drag-drop reordering
- Visibility toggle (checkbox)
- Right-click context menu (zoom to layer)
"""

from typing import Optional, List, Dict

from PySide6.QtWidgets import (
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QTreeWidget,
    QTreeWidgetItem,
    QMenu,
    QLabel,
    QAbstractItemView,
)
from PySide6.QtCore import Qt, Signal, QPoint
from PySide6.QtGui import QAction, QDropEvent
from loguru import logger

from plotkeeper.gui.config import tr

_NAME_ROLE = Qt.ItemDataRole.UserRole


class DraggableTreeWidget(QTreeWidget):
    """
    QTreeWidget subclass with drag-drop reordering support.

    Signals
    -------
    sigOrderChanged : Signal()
        Emitted when item order changes via drag-drop.
    """

    sigOrderChanged = Signal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        # Enable drag-drop
        self.setDragEnabled(True)
        self.setAcceptDrops(True)
        self.setDropIndicatorShown(True)
        self.setDragDropMode(QAbstractItemView.DragDropMode.InternalMove)

    def dropEvent(self, event: QDropEvent) -> None:
        """Handle drop events and emit order changed signal."""
        super().dropEvent(event)
        if event.isAccepted():
            self.sigOrderChanged.emit()


class LayerPanel(QWidget):
    """
    Layer list with visibility checkboxes and drag-drop ordering.

    Raster layers are inserted at the bottom of the list, vector layers at
    the top, so a late overlay never hides the drawn features.

    Signals
    -------
    sigLayerVisibilityChanged : Signal(str, bool)
        Emitted when layer visibility changes. Args: (layer_name, visible)
    sigLayerOrderChanged : Signal(list)
        Emitted when layer order changes. Args: (ordered_layer_names)
    sigZoomToLayerRequested : Signal(str)
        Emitted from the context menu. Args: (layer_name)

    Examples
    --------
    >>> panel = LayerPanel()
    >>> panel.add_layer("Overlay", "Raster")
    >>> panel.add_layer("Rows", "Vector")
    >>> panel.get_layer_order()
    ['Rows', 'Overlay']
    """

    sigLayerVisibilityChanged = Signal(str, bool)
    sigLayerOrderChanged = Signal(list)
    sigZoomToLayerRequested = Signal(str)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        # Layer registry: {name: {'type': str, 'visible': bool, 'item': QTreeWidgetItem}}
        self._layers: Dict[str, Dict] = {}

        self._init_ui()

    def _init_ui(self) -> None:
        """Initialize the UI components."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        # Header
        header_layout = QHBoxLayout()
        header_label = QLabel(tr("layer_panel.title"))
        header_layout.addWidget(header_label)
        header_layout.addStretch()
        layout.addLayout(header_layout)

        # Tree widget for layers
        self._tree = DraggableTreeWidget()
        self._tree.setHeaderLabels([tr("layer_panel.title")])
        self._tree.setHeaderHidden(True)
        self._tree.setRootIsDecorated(False)
        self._tree.setIndentation(0)

        # Enable right-click context menu
        self._tree.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self._tree.customContextMenuRequested.connect(self._show_context_menu)

        # Connect signals
        self._tree.sigOrderChanged.connect(self._on_order_changed)
        self._tree.itemChanged.connect(self._on_item_changed)

        layout.addWidget(self._tree, 1)

        # Set minimum width
        self.setMinimumWidth(150)
        self.setMaximumWidth(300)

    def add_layer(
        self,
        name: str,
        layer_type: str = "Vector",
        visible: bool = True
    ) -> None:
        """
        Add a layer to the panel.

        Parameters
        ----------
        name : str
            Layer name.
        layer_type : str, optional
            ``"Raster"`` or ``"Vector"``, by default ``"Vector"``.
        visible : bool, optional
            Initial visibility, by default True.
        """
        if name in self._layers:
            logger.warning(f"Layer '{name}' already exists")
            return

        # Block signals during setup
        self._tree.blockSignals(True)

        item = QTreeWidgetItem([tr(f"layer.{name}")])
        item.setData(0, _NAME_ROLE, name)
        item.setFlags(
            Qt.ItemFlag.ItemIsUserCheckable |
            Qt.ItemFlag.ItemIsEnabled |
            Qt.ItemFlag.ItemIsSelectable |
            Qt.ItemFlag.ItemIsDragEnabled
        )
        item.setCheckState(0, Qt.CheckState.Checked if visible else Qt.CheckState.Unchecked)

        if layer_type.lower() == "raster":
            self._tree.addTopLevelItem(item)
        else:
            self._tree.insertTopLevelItem(0, item)

        self._layers[name] = {
            'type': layer_type,
            'visible': visible,
            'item': item
        }

        self._tree.blockSignals(False)

        self._on_order_changed()
        logger.debug(f"Layer added: {name} ({layer_type})")

    def remove_layer(self, name: str) -> bool:
        """
        Remove a layer from the panel.

        Returns
        -------
        bool
            True if layer was removed, False if not found.
        """
        if name not in self._layers:
            return False

        item = self._layers.pop(name).get('item')
        if item:
            root = self._tree.invisibleRootItem()
            root.removeChild(item)

        logger.debug(f"Layer removed: {name}")
        return True

    def has_layer(self, name: str) -> bool:
        return name in self._layers

    def is_layer_visible(self, name: str) -> bool:
        return bool(self._layers.get(name, {}).get('visible', False))

    def get_layer_order(self) -> List[str]:
        """
        Get the current layer order (top to bottom).

        Returns
        -------
        List[str]
            List of layer names from top to bottom.
        """
        order = []
        for i in range(self._tree.topLevelItemCount()):
            item = self._tree.topLevelItem(i)
            order.append(item.data(0, _NAME_ROLE))
        return order

    def set_layer_visibility(self, name: str, visible: bool) -> None:
        """
        Set visibility of a layer and notify listeners.

        Parameters
        ----------
        name : str
            Layer name.
        visible : bool
            Visibility state.
        """
        if name not in self._layers:
            return
        item = self._layers[name]['item']
        # itemChanged emits sigLayerVisibilityChanged
        item.setCheckState(0, Qt.CheckState.Checked if visible else Qt.CheckState.Unchecked)

    def _on_order_changed(self) -> None:
        """Handle layer order change."""
        order = self.get_layer_order()
        self.sigLayerOrderChanged.emit(order)
        logger.debug(f"Layer order changed: {order}")

    def _on_item_changed(self, item: QTreeWidgetItem, column: int) -> None:
        """Handle visibility toggle."""
        if column != 0:
            return

        name = item.data(0, _NAME_ROLE)
        if name not in self._layers:
            return

        visible = item.checkState(0) == Qt.CheckState.Checked
        if self._layers[name]['visible'] == visible:
            return
        self._layers[name]['visible'] = visible
        self.sigLayerVisibilityChanged.emit(name, visible)

        logger.debug(f"Layer '{name}' visibility: {visible}")

    def _show_context_menu(self, position: QPoint) -> None:
        """Show context menu on right-click."""
        item = self._tree.itemAt(position)
        if not item:
            return

        name = item.data(0, _NAME_ROLE)
        menu = QMenu(self)

        zoom_action = QAction(tr("layer_panel.menu.zoom"), self)
        zoom_action.triggered.connect(lambda: self.sigZoomToLayerRequested.emit(name))
        menu.addAction(zoom_action)

        menu.exec(self._tree.mapToGlobal(position))

    def clear(self) -> None:
        """Remove all layers."""
        for name in list(self._layers.keys()):
            self.remove_layer(name)
