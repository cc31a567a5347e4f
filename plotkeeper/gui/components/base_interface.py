"""Page shell shared by map tabs: a tool bar above a map and a side panel."""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QGroupBox,
    QHBoxLayout,
    QSplitter,
    QVBoxLayout,
    QWidget,
)
from qfluentwidgets import Theme

from plotkeeper.gui.components.map_component import MapComponent
from plotkeeper.gui.config import cfg

_QSS_DIR = Path(__file__).parent.parent / "resource" / "qss"


def resolve_theme_name() -> str:
    """Return ``"light"`` or ``"dark"`` for the configured theme."""
    theme = cfg.themeMode.value
    if theme == Theme.AUTO:
        import darkdetect

        return "dark" if darkdetect.isDark() else "light"
    return theme.value.lower()


class PageGroup(QGroupBox):
    """Titled row of tool-bar buttons."""

    def __init__(self, title: str, parent: Optional[QWidget] = None) -> None:
        super().__init__(title, parent)
        self.setObjectName("PageGroup")

        self._layout = QHBoxLayout(self)
        self._layout.setContentsMargins(8, 16, 8, 8)
        self._layout.setSpacing(6)

    def add_widget(self, widget: QWidget) -> None:
        self._layout.addWidget(widget)


class BaseInterface(QWidget):
    """
    Tab with a tool bar on top and a content area below.

    Groups are appended left to right with :meth:`add_group`; subclasses
    fill ``content_layout``.
    """

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        root_layout = QVBoxLayout(self)
        root_layout.setContentsMargins(0, 0, 0, 0)
        root_layout.setSpacing(0)

        self.tool_bar = QWidget()
        self.tool_bar.setObjectName("ToolBar")
        self.tool_bar.setMinimumHeight(72)
        self.tool_bar.setMaximumHeight(112)
        self._tool_layout = QHBoxLayout(self.tool_bar)
        self._tool_layout.setContentsMargins(4, 4, 4, 4)
        self._tool_layout.setSpacing(8)
        root_layout.addWidget(self.tool_bar)

        self.content_area = QWidget()
        self.content_area.setObjectName("ContentArea")
        self.content_layout = QVBoxLayout(self.content_area)
        self.content_layout.setContentsMargins(0, 0, 0, 0)
        self.content_layout.setSpacing(0)
        root_layout.addWidget(self.content_area, 1)

        self.setQss()
        cfg.themeChanged.connect(self.setQss)

    def add_group(self, group: PageGroup) -> None:
        self._tool_layout.addWidget(group)

    def add_stretch(self) -> None:
        self._tool_layout.addStretch()

    def setQss(self):
        """Apply the tool bar stylesheet of the current theme."""
        qss_path = _QSS_DIR / resolve_theme_name() / "base_interface.qss"
        if qss_path.exists():
            self.setStyleSheet(qss_path.read_text(encoding="utf-8"))


class TabInterface(BaseInterface):
    """
    Map tab: ``MapComponent`` on the left, an optional side panel on the right.

    Signals
    -------
    sigCoordinateChanged : Signal(float, float)
        Cursor position as ``(lat, lng)``, forwarded from the map.
    """

    sigCoordinateChanged = Signal(float, float)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self.splitter = QSplitter(Qt.Orientation.Horizontal)
        self.map_component = MapComponent()
        self.splitter.addWidget(self.map_component)
        self.content_layout.addWidget(self.splitter)

        self.map_component.sigCoordinateChanged.connect(self.sigCoordinateChanged.emit)

    def set_side_panel(self, panel: QWidget) -> None:
        """Dock ``panel`` to the right of the map."""
        self.splitter.addWidget(panel)
        self.splitter.setSizes([800, 280])
