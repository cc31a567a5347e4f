"""Tests for the overlay QThread worker."""

from loguru import logger

from plotkeeper.core.overlay import GeoRaster
from plotkeeper.gui.workers.overlay_worker import (
    OverlayLoadInput,
    OverlayLoadWorker,
    format_worker_exception,
)


def _payload() -> OverlayLoadInput:
    return OverlayLoadInput(url="https://example.org/a.tif", timeout=3.0, max_size=64)


def _collect(worker: OverlayLoadWorker) -> dict:
    events = {"finished": [], "failed": [], "cancelled": 0}
    worker.sigFinished.connect(events["finished"].append)
    worker.sigFailed.connect(events["failed"].append)

    def _on_cancel():
        events["cancelled"] += 1

    worker.sigCancelled.connect(_on_cancel)
    return events


def test_format_worker_exception_includes_traceback_lines() -> None:
    """Worker exception formatter should include exception type and traceback."""
    try:
        raise RuntimeError("tiff boom")
    except RuntimeError as exc:
        message = format_worker_exception(exc)
    assert "RuntimeError" in message
    assert "tiff boom" in message
    assert "Traceback" in message


def test_worker_emits_finished_with_georaster(qtbot, make_geotiff_bytes) -> None:
    calls = []

    def fetcher(url, timeout):
        calls.append((url, timeout))
        return make_geotiff_bytes(width=16, height=16)

    worker = OverlayLoadWorker(_payload(), fetcher=fetcher)
    events = _collect(worker)
    worker.run()

    assert calls == [("https://example.org/a.tif", 3.0)]
    assert len(events["finished"]) == 1
    raster = events["finished"][0]
    assert isinstance(raster, GeoRaster)
    assert raster.image.shape == (16, 16, 3)
    assert events["failed"] == []


def test_worker_emits_failed_on_fetch_error(qtbot) -> None:
    def fetcher(url, timeout):
        raise ConnectionError("offline")

    worker = OverlayLoadWorker(_payload(), fetcher=fetcher)
    events = _collect(worker)
    worker.run()

    assert events["finished"] == []
    assert len(events["failed"]) == 1
    assert events["failed"][0].startswith("ConnectionError: offline")


def test_worker_leaves_error_logging_to_caller(qtbot) -> None:
    records = []
    sink_id = logger.add(lambda message: records.append(message), level="ERROR")
    try:
        worker = OverlayLoadWorker(
            _payload(), fetcher=lambda url, timeout: b"junk"
        )
        events = _collect(worker)
        worker.run()
    finally:
        logger.remove(sink_id)
    assert len(events["failed"]) == 1
    assert records == []


def test_worker_emits_failed_on_decode_error(qtbot) -> None:
    worker = OverlayLoadWorker(_payload(), fetcher=lambda url, timeout: b"junk")
    events = _collect(worker)
    worker.run()
    assert len(events["failed"]) == 1


def test_worker_cancelled_before_run_skips_fetch(qtbot) -> None:
    calls = []
    worker = OverlayLoadWorker(
        _payload(), fetcher=lambda url, timeout: calls.append(url) or b""
    )
    events = _collect(worker)
    worker.request_cancel()
    worker.run()
    assert calls == []
    assert events["cancelled"] == 1
    assert events["finished"] == []


def test_worker_cancelled_during_fetch_skips_decode(qtbot) -> None:
    holder = {}

    def fetcher(url, timeout):
        holder["worker"].request_cancel()
        return b"junk"

    worker = OverlayLoadWorker(_payload(), fetcher=fetcher)
    holder["worker"] = worker
    events = _collect(worker)
    worker.run()
    assert events["cancelled"] == 1
    assert events["failed"] == []
