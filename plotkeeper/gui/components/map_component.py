from typing import Optional

from PySide6.QtWidgets import QWidget, QVBoxLayout, QSplitter
from PySide6.QtCore import Qt, Signal

from plotkeeper.gui.components.layer_panel import LayerPanel
from plotkeeper.gui.components.map_canvas import MapCanvas
from plotkeeper.gui.components.status_bar import StatusBar

class MapComponent(QWidget):
    """
    Composite component containing:
    - Layer Panel (Left)
    - Map Canvas (Center)
    - Status Bar (Bottom)
    """

    # Re-expose map signals
    sigCoordinateChanged = Signal(float, float)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self._init_ui()
        self._connect_signals()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        # Splitter for Layer | Map
        self.h_splitter = QSplitter(Qt.Orientation.Horizontal)
        self.h_splitter.setHandleWidth(1)

        # 1. Layer Panel
        self.layer_panel = LayerPanel()
        self.h_splitter.addWidget(self.layer_panel)

        # 2. Vertical Splitter for Map | Status Bar
        self.v_splitter = QSplitter(Qt.Orientation.Vertical)
        self.v_splitter.setHandleWidth(1)

        self.h_splitter.addWidget(self.v_splitter)

        self.map_canvas = MapCanvas()
        self.v_splitter.addWidget(self.map_canvas)

        # 3. Status Bar
        self.status_bar = StatusBar()
        self.v_splitter.addWidget(self.status_bar)

        # Initial sizes (Layer:Map = 1:4)
        self.h_splitter.setSizes([200, 800])

        layout.addWidget(self.h_splitter, 1) # Take available vertical space

    def _connect_signals(self) -> None:
        # Map Canvas -> Layer Panel
        self.map_canvas.sigLayerAdded.connect(self.layer_panel.add_layer)
        self.map_canvas.sigLayerRemoved.connect(self.layer_panel.remove_layer)

        # Layer Panel -> Map Canvas
        self.layer_panel.sigLayerVisibilityChanged.connect(
            self.map_canvas.set_layer_visibility
        )
        self.layer_panel.sigLayerOrderChanged.connect(
            self.map_canvas.update_layer_order
        )
        self.layer_panel.sigZoomToLayerRequested.connect(
            self.map_canvas.zoom_to_layer
        )

        # Map Canvas -> Status Bar
        self.map_canvas.sigCoordinateChanged.connect(self.status_bar.update_coordinates)

        # Map Canvas -> Self (re-emit)
        self.map_canvas.sigCoordinateChanged.connect(self.sigCoordinateChanged.emit)

    def cleanup(self):
        """Cleanup resources."""
        self.map_canvas.cleanup()
