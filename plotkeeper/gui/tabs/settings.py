from pathlib import Path
from PySide6.QtWidgets import QWidget, QLabel, QFileDialog, QInputDialog
from PySide6.QtCore import Qt
from qfluentwidgets import (
    ScrollArea,
    SettingCardGroup,
    PushSettingCard,
    OptionsSettingCard,
    RangeSettingCard,
    SwitchSettingCard,
    ExpandLayout,
    InfoBar,
    InfoBarPosition,
    setTheme,
)
from qfluentwidgets import FluentIcon as FIF

from plotkeeper.gui.components.base_interface import resolve_theme_name
from plotkeeper.gui.config import cfg, Language, resolve_data_dir, tr, translator


class SettingsTab(ScrollArea):
    """
    Settings Interface.
    """

    def __init__(self, parent=None):
        super().__init__(parent)

        self.scrollWidget = QWidget()
        self.expandLayout = ExpandLayout(self.scrollWidget)

        self.setWidget(self.scrollWidget)
        self.setWidgetResizable(True)
        self.setObjectName("settingsInterface")

        self._init_ui()
        self._load_settings()
        self._connect_signals()

    def _init_ui(self):
        """Initialize UI controls."""
        self.setViewportMargins(0, 80, 0, 20)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)

        # --- Settings Header ---
        self.settingLabel = QLabel(tr("nav.settings"), self)
        self.settingLabel.setObjectName("settingLabel")
        self.settingLabel.move(36, 30)

        # --- General Group ---
        self.generalGroup = SettingCardGroup(
            tr("settings.group.general"), self.scrollWidget
        )

        self.themeCard = OptionsSettingCard(
            cfg.themeMode,
            FIF.BRUSH,
            tr("settings.label.theme"),
            tr("settings.desc.theme"),
            texts=[
                tr("settings.theme.light"),
                tr("settings.theme.dark"),
                tr("settings.theme.auto"),
            ],
            parent=self.generalGroup,
        )

        self.languageCard = OptionsSettingCard(
            cfg.language,
            FIF.LANGUAGE,
            tr("settings.label.language"),
            tr("settings.desc.language"),
            texts=[
                tr("settings.lang.auto"),
                tr("settings.lang.en"),
                tr("settings.lang.fr"),
            ],
            parent=self.generalGroup,
        )

        self.generalGroup.addSettingCard(self.themeCard)
        self.generalGroup.addSettingCard(self.languageCard)

        # --- Storage Group ---
        self.storageGroup = SettingCardGroup(
            tr("settings.group.storage"), self.scrollWidget
        )

        self.dataDirCard = PushSettingCard(
            tr("settings.btn.browse"),
            FIF.FOLDER,
            tr("settings.label.data_dir"),
            cfg.dataDir.value,
            self.storageGroup,
        )

        self.storageGroup.addSettingCard(self.dataDirCard)

        # --- Overlay Group ---
        self.overlayGroup = SettingCardGroup(
            tr("settings.group.overlay"), self.scrollWidget
        )

        self.overlayUrlCard = PushSettingCard(
            tr("settings.btn.edit"),
            FIF.LINK,
            tr("settings.label.overlay_url"),
            cfg.overlayUrl.value,
            self.overlayGroup,
        )

        self.overlayAutoLoadCard = SwitchSettingCard(
            FIF.DOWNLOAD,
            tr("settings.label.overlay_auto_load"),
            tr("settings.desc.overlay_auto_load"),
            configItem=cfg.overlayAutoLoad,
            parent=self.overlayGroup,
        )

        self.overlayOpacityCard = RangeSettingCard(
            cfg.overlayOpacity,
            FIF.TRANSPARENT,
            tr("settings.label.overlay_opacity"),
            tr("settings.desc.overlay_opacity"),
            parent=self.overlayGroup,
        )

        self.overlayMaxSizeCard = RangeSettingCard(
            cfg.overlayMaxSize,
            FIF.ZOOM,
            tr("settings.label.overlay_max_size"),
            tr("settings.desc.overlay_max_size"),
            parent=self.overlayGroup,
        )

        self.overlayGroup.addSettingCard(self.overlayUrlCard)
        self.overlayGroup.addSettingCard(self.overlayAutoLoadCard)
        self.overlayGroup.addSettingCard(self.overlayOpacityCard)
        self.overlayGroup.addSettingCard(self.overlayMaxSizeCard)

        # --- Add Groups to Layout ---
        self.expandLayout.setSpacing(28)
        self.expandLayout.setContentsMargins(36, 10, 36, 0)
        self.expandLayout.addWidget(self.generalGroup)
        self.expandLayout.addWidget(self.storageGroup)
        self.expandLayout.addWidget(self.overlayGroup)

        self.scrollWidget.setObjectName("scrollWidget")
        self.setQss()

    def _load_settings(self):
        """Sync cards that are not bound to a config item."""
        self.dataDirCard.setContent(str(resolve_data_dir(cfg)))
        self.overlayUrlCard.setContent(cfg.overlayUrl.value)

    def _connect_signals(self):
        """Connect signals."""
        self.dataDirCard.clicked.connect(self._browse_data_dir)
        self.overlayUrlCard.clicked.connect(self._edit_overlay_url)
        cfg.themeChanged.connect(self.setQss)
        cfg.themeChanged.connect(setTheme)
        cfg.language.valueChanged.connect(self.setLanguage)

    def _browse_data_dir(self):
        """Open file dialog to select the data directory."""
        directory = QFileDialog.getExistingDirectory(
            self,
            tr("settings.btn.browse"),
            str(resolve_data_dir(cfg)),
        )
        if directory:
            self.dataDirCard.setContent(directory)
            cfg.set(cfg.dataDir, directory)
            self._on_restart_needed()

    def _edit_overlay_url(self):
        """Ask for a new overlay GeoTIFF URL."""
        url, ok = QInputDialog.getText(
            self,
            tr("settings.label.overlay_url"),
            tr("settings.desc.overlay_url"),
            text=cfg.overlayUrl.value,
        )
        url = url.strip()
        if not ok or not url:
            return
        self.overlayUrlCard.setContent(url)
        cfg.set(cfg.overlayUrl, url)

    def _on_restart_needed(self):
        """Show restart warning."""
        InfoBar.warning(
            title=tr("settings.msg.restart_title"),
            content=tr("settings.msg.restart"),
            orient=Qt.Orientation.Horizontal,
            isClosable=True,
            position=InfoBarPosition.TOP_RIGHT,
            duration=5000,
            parent=self,
        )

    def setQss(self):
        """Apply QSS."""
        qss_path = (
            Path(__file__).parent.parent
            / "resource"
            / "qss"
            / resolve_theme_name()
            / "setting_interface.qss"
        )
        if qss_path.exists():
            with open(qss_path, encoding="utf-8") as f:
                self.setStyleSheet(f.read())

    def setLanguage(self, language: Language):
        """Set language."""
        translator.set_language(language)
        self._on_restart_needed()
