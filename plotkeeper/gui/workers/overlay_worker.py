"""QThread worker for remote GeoTIFF overlay loading."""

from __future__ import annotations

from dataclasses import dataclass
import traceback

from PySide6.QtCore import QObject, Signal, Slot
from loguru import logger

from plotkeeper.core.overlay import decode_geotiff, fetch_geotiff


@dataclass
class OverlayLoadInput:
    """Input payload for overlay load worker."""

    url: str
    timeout: float
    max_size: int


class OverlayLoadWorker(QObject):
    """Background worker fetching and decoding the overlay GeoTIFF."""

    sigFinished = Signal(object)
    sigFailed = Signal(str)
    sigCancelled = Signal()

    def __init__(
        self,
        payload: OverlayLoadInput,
        fetcher: object | None = None,
    ) -> None:
        super().__init__()
        self.payload = payload
        self._fetcher = fetcher or fetch_geotiff
        self._cancelled = False

    def request_cancel(self) -> None:
        """Request best-effort cancellation."""
        self._cancelled = True

    @Slot()
    def run(self) -> None:
        """Fetch, decode, and emit the raster."""
        if self._cancelled:
            self.sigCancelled.emit()
            return
        try:
            content = self._fetcher(self.payload.url, timeout=self.payload.timeout)
            if self._cancelled:
                self.sigCancelled.emit()
                return
            georaster = decode_geotiff(content, max_size=self.payload.max_size)
        except Exception as exc:
            message = format_worker_exception(exc)
            logger.debug(f"GeoTIFF load failed: {type(exc).__name__}: {exc}")
            self.sigFailed.emit(message)
            return
        if self._cancelled:
            self.sigCancelled.emit()
            return
        self.sigFinished.emit(georaster)


def format_worker_exception(exc: Exception) -> str:
    """Format exception into message with traceback details."""
    trace_text = traceback.format_exc()
    if not trace_text or trace_text == "NoneType: None\n":
        trace_text = "\n".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return f"{type(exc).__name__}: {exc}\n{trace_text.strip()}"
