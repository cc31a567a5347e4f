
from enum import Enum
from PySide6.QtCore import QLocale, QObject
from qfluentwidgets import (
    QConfig,
    qconfig,
    ConfigItem,
    FolderValidator,
    OptionsConfigItem,
    OptionsValidator,
    RangeConfigItem,
    RangeValidator,
    BoolValidator,
    EnumSerializer,
    Theme
)

from loguru import logger
from pathlib import Path
from typing import Dict
import json

from plotkeeper.core.overlay import (
    DEFAULT_MAX_SIZE,
    DEFAULT_OVERLAY_OPACITY,
    DEFAULT_OVERLAY_URL,
    DEFAULT_TIMEOUT_S,
)
from plotkeeper.core.storage import STORAGE_KEY

class Language(Enum):
    """Language enumeration."""
    AUTO = "Auto"
    ENGLISH = "en_US"
    FRENCH = "fr_FR"

class Config(QConfig):
    """
    Configuration for the application.
    """

    # Theme Mode: Light, Dark, Auto
    themeMode = OptionsConfigItem(
        "General", "ThemeMode", Theme.AUTO, OptionsValidator(Theme), EnumSerializer(Theme), restart=False
    )

    # Language: Auto, English, French
    language = OptionsConfigItem(
        "General", "Language", Language.AUTO, OptionsValidator(Language), EnumSerializer(Language), restart=True
    )

    # Storage directory holding the persisted drawing state
    dataDir = ConfigItem(
        "Storage", "DataDir", "", FolderValidator()
    )
    storageKey = ConfigItem("Storage", "Key", STORAGE_KEY)

    # Remote GeoTIFF overlay
    overlayUrl = ConfigItem("Overlay", "Url", DEFAULT_OVERLAY_URL)
    overlayAutoLoad = ConfigItem("Overlay", "AutoLoad", True, BoolValidator())
    overlayOpacity = RangeConfigItem(
        "Overlay", "Opacity", int(DEFAULT_OVERLAY_OPACITY * 100), RangeValidator(0, 100)
    )
    overlayMaxSize = RangeConfigItem(
        "Overlay", "MaxSize", DEFAULT_MAX_SIZE, RangeValidator(256, 8192)
    )
    overlayTimeout = RangeConfigItem(
        "Overlay", "Timeout", int(DEFAULT_TIMEOUT_S), RangeValidator(5, 600)
    )


def resolve_data_dir(config: "Config") -> Path:
    """Return the configured data directory, defaulting to ``~/.plotkeeper``."""
    if config.dataDir.value:
        return Path(config.dataDir.value)
    return Path.home() / ".plotkeeper"


class Translator(QObject):
    """
    Manages application translations.
    """

    def __init__(self):
        super().__init__()
        logger.debug(f"Requested language from config: {cfg.get(cfg.language)}")
        self._current_language = self.get_language(cfg.get(cfg.language))
        logger.info(f"Current language from config: {self._current_language}")
        self._translations: Dict[Language, Dict[str, str]] = {}
        self._load_translations()

    def _load_translations(self):
        """Load all translation files from locales directory."""
        # config.py is in plotkeeper/gui/, resource is in plotkeeper/gui/resource/
        locales_dir = Path(__file__).parent / "resource" / "i18n"
        if not locales_dir.exists():
            logger.error(f"Locales directory not found: {locales_dir}")
            return

        for file_path in locales_dir.glob("*.json"):
            lang_code = file_path.stem
            try:
                # e.g., 'fr_FR' -> Language.FRENCH
                lang = Language(lang_code)
                with open(file_path, "r", encoding="utf-8") as f:
                    self._translations[lang] = json.load(f)
                logger.debug(f"Loaded translations for: {lang.name}")
            except Exception as e:
                logger.error(f"Failed to load translation {file_path}: {e}")

    def get_language(self, language: Language) -> Language:
        """Resolve ``AUTO`` against the system locale."""
        logger.debug(f"Requested language: {language}")
        if language == Language.AUTO:
            locale = QLocale.system().name() # e.g., en_US, fr_FR
            if locale.startswith("fr"):
                self._current_language = Language.FRENCH
            else:
                self._current_language = Language.ENGLISH
        elif language == Language.FRENCH:
            self._current_language = Language.FRENCH
        else:
            self._current_language = Language.ENGLISH

        return self._current_language

    def set_language(self, language: Language):
        """
        Set the current language.

        Parameters
        ----------
        language : Language
            Target language; ``AUTO`` follows the system locale.
        """
        resolved = self.get_language(language)
        logger.info(f"Language switched to: {resolved}")

    def tr(self, key: str) -> str:
        """
        Get translated string for the given key.

        If translation is missing for current language, falls back to English,
        then to the key itself.
        """
        lang_dict = self._translations.get(self._current_language, {})

        result = lang_dict.get(key)
        if result is not None:
            return result

        if self._current_language != Language.ENGLISH:
            en_dict = self._translations.get(Language.ENGLISH, {})
            result = en_dict.get(key)
            if result is not None:
                return result

        return key


cfg = Config()
qconfig.load('config.json', cfg)

# Global instance
translator = Translator()

def tr(key: str) -> str:
    """Helper function to translate a key using the global translator."""
    return translator.tr(key)
