from PySide6.QtWidgets import QFrame, QHBoxLayout, QWidget
from PySide6.QtCore import Qt
from qfluentwidgets import BodyLabel

from plotkeeper.gui.config import tr

class StatusBar(QFrame):
    """
    Status bar with cursor coordinates, draw mode and overlay state.
    """

    def __init__(self, parent: QWidget = None):
        super().__init__(parent)
        self._init_ui()

    def _init_ui(self):
        self.setObjectName('statusBar')
        self.setFixedHeight(40)

        # Main layout
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        # --- Section 1: Coordinates ---
        self.coord_container = QWidget()
        coord_layout = QHBoxLayout(self.coord_container)
        coord_layout.setContentsMargins(16, 0, 16, 0)

        self.coord_label = BodyLabel(tr("status.coord").format(lat=0.0, lng=0.0))
        coord_layout.addWidget(self.coord_label, alignment=Qt.AlignmentFlag.AlignCenter)

        layout.addWidget(self.coord_container, 1) # Ratio 1

        layout.addWidget(self._create_separator())

        # --- Section 2: Draw mode ---
        self.mode_container = QWidget()
        mode_layout = QHBoxLayout(self.mode_container)
        mode_layout.setContentsMargins(16, 0, 16, 0)

        self.mode_label = BodyLabel(tr("status.mode.none"))
        mode_layout.addWidget(self.mode_label, alignment=Qt.AlignmentFlag.AlignCenter)

        layout.addWidget(self.mode_container, 1)

        layout.addWidget(self._create_separator())

        # --- Section 3: Overlay ---
        self.overlay_container = QWidget()
        overlay_layout = QHBoxLayout(self.overlay_container)
        overlay_layout.setContentsMargins(16, 0, 16, 0)

        self.overlay_label = BodyLabel(tr("status.overlay.absent"))
        overlay_layout.addWidget(self.overlay_label, alignment=Qt.AlignmentFlag.AlignCenter)

        layout.addWidget(self.overlay_container, 1)

    def _create_separator(self) -> QFrame:
        line = QFrame()
        line.setFrameShape(QFrame.Shape.VLine)
        line.setFrameShadow(QFrame.Shadow.Sunken)
        line.setLineWidth(1)
        line.setMidLineWidth(0)
        line.setStyleSheet("QFrame { border: none; background-color: #E5E5E5; max-width: 1px; }")
        line.setFixedHeight(24)
        return line

    def update_coordinates(self, lat: float, lng: float) -> None:
        self.coord_label.setText(tr("status.coord").format(lat=lat, lng=lng))

    def update_mode(self, text: str) -> None:
        self.mode_label.setText(text)

    def update_overlay(self, text: str) -> None:
        self.overlay_label.setText(text)
