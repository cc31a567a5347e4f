from PySide6.QtWidgets import QApplication
from PySide6.QtGui import QIcon

from loguru import logger

from qfluentwidgets import (
    FluentWindow,
    NavigationItemPosition,
    FluentIcon as FIF,
    setTheme,
)

from plotkeeper.gui.config import cfg, tr
from plotkeeper.gui.tabs.plot_tracker import PlotTrackerTab
from plotkeeper.gui.tabs.settings import SettingsTab

class MainWindow(FluentWindow):
    """
    Main Window using Fluent Design.
    """

    def __init__(self):
        super().__init__()

        # Create interfaces
        self.tracker_tab = PlotTrackerTab(self)
        self.settings_tab = SettingsTab(self)

        # Set object names for FluentWindow navigation
        self.tracker_tab.setObjectName("tracker_tab")
        self.settings_tab.setObjectName("settings_tab")

        self.init_navigation()
        self.init_window()

        logger.info("MainWindow initialized successfully")

    def init_navigation(self):
        # Add interfaces to navigation
        self.addSubInterface(self.tracker_tab, FIF.GLOBE, tr("nav.tracker"))

        self.navigationInterface.addSeparator()

        self.addSubInterface(
            self.settings_tab,
            FIF.SETTING,
            tr("nav.settings"),
            NavigationItemPosition.BOTTOM
        )

    def init_window(self):
        self.resize(1200, 800)

        self.setWindowIcon(QIcon(":/qfluentwidgets/images/logo.png"))
        self.setWindowTitle(tr("app.title"))

        # Apply Theme
        setTheme(cfg.get(cfg.themeMode))

        # Center window
        desktop = QApplication.primaryScreen().availableGeometry()
        w, h = desktop.width(), desktop.height()
        self.move(w//2 - self.width()//2, h//2 - self.height()//2)

        self.navigationInterface.setMinimumExpandWidth(600)
        self.navigationInterface.setExpandWidth(200)

    def closeEvent(self, event):
        logger.info("MainWindow closing")
        self.tracker_tab.cleanup()
        super().closeEvent(event)
