"""Plot tracker tab: draw parcels and rows, edit row metadata, show the overlay."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import pyqtgraph as pg
from loguru import logger
from PySide6.QtCore import QThread, Signal, Slot
from PySide6.QtWidgets import QFileDialog, QWidget
from qfluentwidgets import (
    FluentIcon as FIF,
    InfoBar,
    PrimaryPushButton,
    PushButton,
)

from plotkeeper.core.drawing import DrawingController, DrawMode
from plotkeeper.core.overlay import GeoRaster, OverlayState
from plotkeeper.core.state import FarmState, FarmStore, StateAction
from plotkeeper.core.storage import LocalStorage, open_store
from plotkeeper.gui.components.base_interface import PageGroup, TabInterface
from plotkeeper.gui.components.map_canvas import CustomViewBox, FeatureStyle, LayerBounds
from plotkeeper.gui.components.row_panel import RowPanel
from plotkeeper.gui.config import cfg, resolve_data_dir, tr
from plotkeeper.gui.workers.overlay_worker import OverlayLoadInput, OverlayLoadWorker
from plotkeeper.utils.export import export_geojson

OVERLAY_LAYER = "overlay"
PARCELS_LAYER = "parcels"
ROWS_LAYER = "rows"

PARCEL_STYLE = FeatureStyle(color="#2a9d8f", width=2, fill_alpha=0.2)
ROW_STYLE = FeatureStyle(color="#2b9348", width=3)
SELECTED_ROW_STYLE = FeatureStyle(color="#e63946", width=5)
PREVIEW_STYLE = FeatureStyle(color="#f59e0b", width=3, dashed=True)

# Overlay loads still running after their tab was torn down
_DETACHED_LOADS: list = []


def _release_detached(thread: QThread) -> None:
    for entry in list(_DETACHED_LOADS):
        if entry[0] is thread:
            _DETACHED_LOADS.remove(entry)
            thread.deleteLater()


class PlotTrackerTab(TabInterface):
    """Map page wiring the farm store, the drawing tools and the overlay.

    Parameters
    ----------
    parent : QWidget, optional
        Parent widget.
    store : FarmStore, optional
        State owner. When omitted, the store is loaded from the configured
        data directory and persisted after every change.
    auto_load_overlay : bool, optional
        Start the overlay download right away. Defaults to the
        ``Overlay/AutoLoad`` config value.
    overlay_fetcher : callable, optional
        ``fetcher(url, timeout=...) -> bytes`` used by the overlay worker.
    """

    sigOverlayStateChanged = Signal(str)

    def __init__(
        self,
        parent: Optional[QWidget] = None,
        store: Optional[FarmStore] = None,
        auto_load_overlay: Optional[bool] = None,
        overlay_fetcher: Optional[Callable[..., bytes]] = None,
    ) -> None:
        super().__init__(parent)
        if store is None:
            storage = LocalStorage(resolve_data_dir(cfg))
            store = open_store(storage, cfg.storageKey.value)
        self.store = store
        self.drawing = DrawingController(store)

        self._overlay_fetcher = overlay_fetcher
        self._overlay_thread: Optional[QThread] = None
        self._overlay_worker: Optional[OverlayLoadWorker] = None
        self._overlay_state = OverlayState.ABSENT
        self._torn_down = False

        self._init_controls()
        self._init_side_panel()
        self._init_map()
        self._connect_signals()
        self._refresh_all()
        self._refresh_draw_ui()

        if auto_load_overlay is None:
            auto_load_overlay = bool(cfg.overlayAutoLoad.value)
        if auto_load_overlay:
            self.load_overlay()

    # ---- UI construction ----

    def _init_controls(self) -> None:
        """Build tool bar groups."""
        draw_group = PageGroup(tr("page.tracker.group.draw"))
        self.btn_draw_parcel = PushButton(FIF.TILES, tr("page.tracker.btn.draw_parcel"))
        self.btn_draw_row = PushButton(FIF.LEAF, tr("page.tracker.btn.draw_row"))
        self.btn_start = PushButton(FIF.PLAY, tr("page.tracker.btn.start"))
        self.btn_finish = PrimaryPushButton(FIF.ACCEPT, tr("page.tracker.btn.finish"))
        self.btn_clear = PushButton(FIF.ERASE_TOOL, tr("page.tracker.btn.clear"))
        for button in (
            self.btn_draw_parcel,
            self.btn_draw_row,
            self.btn_start,
            self.btn_finish,
            self.btn_clear,
        ):
            draw_group.add_widget(button)
        self.add_group(draw_group)

        overlay_group = PageGroup(tr("page.tracker.group.overlay"))
        self.btn_reload_overlay = PushButton(FIF.SYNC, tr("page.tracker.btn.reload_overlay"))
        overlay_group.add_widget(self.btn_reload_overlay)
        self.add_group(overlay_group)

        data_group = PageGroup(tr("page.tracker.group.data"))
        self.btn_export = PushButton(FIF.SAVE_AS, tr("page.tracker.btn.export"))
        data_group.add_widget(self.btn_export)
        self.add_group(data_group)

        self.add_stretch()

    def _init_side_panel(self) -> None:
        self.row_panel = RowPanel()
        self.set_side_panel(self.row_panel)

    def _init_map(self) -> None:
        self.map_canvas = self.map_component.map_canvas
        self.status_bar = self.map_component.status_bar
        self._preview_item = pg.PlotCurveItem(pen=PREVIEW_STYLE.pen())
        self.map_canvas.add_overlay_item(self._preview_item)

    def _connect_signals(self) -> None:
        self.btn_draw_parcel.clicked.connect(lambda: self.toggle_draw_mode(DrawMode.PARCEL))
        self.btn_draw_row.clicked.connect(lambda: self.toggle_draw_mode(DrawMode.ROW))
        self.btn_start.clicked.connect(self.start_drawing)
        self.btn_finish.clicked.connect(self.finish_drawing)
        self.btn_clear.clicked.connect(self.clear_drawing)
        self.btn_reload_overlay.clicked.connect(self.load_overlay)
        self.btn_export.clicked.connect(self._on_export_clicked)

        self.map_canvas.register_click_handler(self._on_map_clicked)
        self.map_canvas.sigFeatureClicked.connect(self._on_feature_clicked)

        self.row_panel.sigRowSelected.connect(self.select_row)
        self.row_panel.sigMetaEdited.connect(self._on_meta_edited)
        self.row_panel.sigDeleteRequested.connect(self.delete_row)

        self.store.subscribe(self._on_state_changed)
        cfg.overlayOpacity.valueChanged.connect(self._on_opacity_changed)

    # ---- Drawing ----

    def toggle_draw_mode(self, mode: DrawMode) -> None:
        """Toggle a draw mode on, or off when it is already active."""
        self.drawing.toggle_mode(mode)
        self._refresh_draw_ui()

    @Slot()
    def start_drawing(self) -> None:
        self.drawing.start()
        self._refresh_draw_ui()

    @Slot()
    def finish_drawing(self) -> Optional[str]:
        """Commit the in-progress shape. Returns the created id, if any."""
        created_id = self.drawing.finish()
        self._refresh_draw_ui()
        return created_id

    @Slot()
    def clear_drawing(self) -> None:
        self.drawing.clear()
        self._refresh_draw_ui()

    def _on_map_clicked(self, lat: float, lng: float, _ev=None) -> bool:
        """Capture map clicks while drawing."""
        if not self.drawing.add_point(lat, lng):
            return False
        self._refresh_draw_ui()
        return True

    def _refresh_draw_ui(self) -> None:
        mode = self.drawing.mode
        drawing = self.drawing.is_drawing
        points = self.drawing.preview_points()

        self.btn_draw_parcel.setText(
            tr("page.tracker.btn.cancel")
            if mode == DrawMode.PARCEL
            else tr("page.tracker.btn.draw_parcel")
        )
        self.btn_draw_row.setText(
            tr("page.tracker.btn.cancel")
            if mode == DrawMode.ROW
            else tr("page.tracker.btn.draw_row")
        )
        self.btn_start.setEnabled(mode != DrawMode.NONE and not drawing)
        self.btn_finish.setEnabled(drawing)
        self.btn_clear.setEnabled(mode != DrawMode.NONE)

        self.map_canvas.set_mode(
            CustomViewBox.MODE_DRAW if drawing else CustomViewBox.MODE_PAN
        )
        self._preview_item.setData(
            x=[lng for _, lng in points], y=[lat for lat, _ in points]
        )

        if mode == DrawMode.NONE:
            mode_text = tr("status.mode.none")
        else:
            mode_text = tr(f"status.mode.{mode.value}")
            if drawing:
                mode_text = tr("status.mode.drawing").format(
                    mode=mode_text, count=len(points)
                )
        self.status_bar.update_mode(mode_text)

    # ---- Rows ----

    @Slot(str)
    def select_row(self, row_id: Optional[str]) -> bool:
        """Select a row and redraw the highlight."""
        if not self.store.select_row(row_id):
            return False
        self._refresh_rows()
        return True

    @Slot(str)
    def delete_row(self, row_id: str) -> bool:
        return self.store.delete_row(row_id)

    @Slot(str, dict)
    def _on_meta_edited(self, row_id: str, patch: dict) -> None:
        self.store.patch_row_meta(row_id, **patch)

    @Slot(str, str)
    def _on_feature_clicked(self, layer_name: str, feature_id: str) -> None:
        if layer_name == ROWS_LAYER:
            self.select_row(feature_id)

    def _on_state_changed(self, state: FarmState, action: StateAction) -> None:
        if self._torn_down:
            return
        if action == StateAction.ADD_PARCEL:
            self._render_parcels()
        self._refresh_rows()

    # ---- Rendering ----

    def _refresh_all(self) -> None:
        self._render_parcels()
        self._refresh_rows()

    def _render_parcels(self) -> None:
        parcels = self.store.state.parcels
        self.map_canvas.set_feature_layer(
            PARCELS_LAYER,
            {parcel.id: parcel.coords for parcel in parcels},
            PARCEL_STYLE,
            closed=True,
            tooltips={parcel.id: parcel.meta.name or "" for parcel in parcels},
        )

    def _render_rows(self) -> None:
        rows = self.store.state.rows
        selected_id = self.store.selected_row_id
        self.map_canvas.set_feature_layer(
            ROWS_LAYER,
            {row.id: row.coords for row in rows},
            {
                row.id: SELECTED_ROW_STYLE if row.id == selected_id else ROW_STYLE
                for row in rows
            },
            clickable=True,
            tooltips={row.id: row.label or "-" for row in rows},
        )

    def _refresh_rows(self) -> None:
        self._render_rows()
        state = self.store.state
        self.row_panel.set_rows(state.rows, self.store.selected_row_id)
        selected = self.store.selected_row
        parcel_name = None
        if selected is not None and selected.meta.parcel_id is not None:
            parcel = state.get_parcel(selected.meta.parcel_id)
            if parcel is not None:
                parcel_name = parcel.meta.name
        self.row_panel.show_row(selected, parcel_name)

    # ---- Overlay ----

    @property
    def overlay_state(self) -> OverlayState:
        return self._overlay_state

    def _set_overlay_state(self, state: OverlayState) -> None:
        self._overlay_state = state
        self.status_bar.update_overlay(tr(f"status.overlay.{state.value}"))
        self.sigOverlayStateChanged.emit(state.value)

    @Slot()
    def load_overlay(self) -> bool:
        """Start fetching the configured GeoTIFF in a background thread.

        Returns
        -------
        bool
            False when a load is already running or the tab is torn down.
        """
        if self._torn_down or self._overlay_thread is not None:
            return False
        payload = OverlayLoadInput(
            url=str(cfg.overlayUrl.value),
            timeout=float(cfg.overlayTimeout.value),
            max_size=int(cfg.overlayMaxSize.value),
        )
        logger.info(f"Loading overlay from {payload.url}")
        self._overlay_thread = QThread(self)
        self._overlay_worker = OverlayLoadWorker(payload, fetcher=self._overlay_fetcher)
        self._overlay_worker.moveToThread(self._overlay_thread)
        self._overlay_thread.started.connect(self._overlay_worker.run)
        self._overlay_worker.sigFinished.connect(self._on_overlay_loaded)
        self._overlay_worker.sigFailed.connect(self._on_overlay_failed)
        self._overlay_worker.sigCancelled.connect(self._on_overlay_cancelled)
        self._overlay_thread.start()
        self.btn_reload_overlay.setEnabled(False)
        self.status_bar.update_overlay(tr("status.overlay.loading"))
        return True

    def apply_overlay(self, georaster: GeoRaster) -> bool:
        """Replace the overlay layer and fit the view to it."""
        opacity = float(cfg.overlayOpacity.value) / 100.0
        if not self.map_canvas.add_raster_image_layer(georaster, OVERLAY_LAYER, opacity):
            return False
        bounds = georaster.bounds
        self.map_canvas.fit_bounds(
            LayerBounds(bounds.left, bounds.bottom, bounds.right, bounds.top)
        )
        self._set_overlay_state(OverlayState.PRESENT)
        return True

    @Slot(object)
    def _on_overlay_loaded(self, georaster: GeoRaster) -> None:
        if self._torn_down:
            logger.debug("Overlay result ignored, tab already torn down")
            return
        self._teardown_overlay_thread()
        self.apply_overlay(georaster)

    @Slot(str)
    def _on_overlay_failed(self, message: str) -> None:
        logger.error("Overlay load failed:\n{}", message)
        if self._torn_down:
            return
        self._teardown_overlay_thread()
        self._set_overlay_state(self._overlay_state)

    @Slot()
    def _on_overlay_cancelled(self) -> None:
        logger.debug("Overlay load cancelled")
        if self._torn_down:
            return
        self._teardown_overlay_thread()
        self._set_overlay_state(self._overlay_state)

    def _teardown_overlay_thread(self) -> None:
        """Stop and release the overlay thread."""
        if self._overlay_thread is None:
            return
        thread = self._overlay_thread
        thread.quit()
        if thread.wait(1000):
            thread.deleteLater()
        else:
            # Still blocked in the download, release it once it returns
            logger.warning("Overlay thread still running, detaching it")
            thread.setParent(None)
            _DETACHED_LOADS.append((thread, self._overlay_worker))
            thread.finished.connect(lambda t=thread: _release_detached(t))
        self._overlay_thread = None
        self._overlay_worker = None
        if not self._torn_down:
            self.btn_reload_overlay.setEnabled(True)

    def _on_opacity_changed(self, value: int) -> None:
        if self._torn_down:
            return
        self.map_canvas.set_layer_opacity(OVERLAY_LAYER, float(value) / 100.0)

    # ---- Export ----

    def export_to(self, out_path: str | Path) -> Path:
        """Write parcels and rows as GeoJSON."""
        return export_geojson(self.store.state, out_path)

    @Slot()
    def _on_export_clicked(self) -> None:
        out_path, _ = QFileDialog.getSaveFileName(
            self,
            tr("page.tracker.dialog.export"),
            "",
            "GeoJSON (*.geojson);;All Files (*)",
        )
        if not out_path:
            return
        try:
            written = self.export_to(out_path)
        except Exception as exc:
            logger.error(f"GeoJSON export failed: {exc}")
            InfoBar.error(
                title=tr("error"),
                content=f"{exc}",
                parent=self,
                duration=5000,
            )
            return
        InfoBar.success(
            title=tr("success"),
            content=tr("page.tracker.msg.export_success").format(path=written),
            parent=self,
            duration=2500,
        )

    # ---- Lifetime ----

    def cleanup(self) -> None:
        """Cancel the overlay load and release map resources."""
        if self._torn_down:
            return
        self._torn_down = True
        if self._overlay_worker is not None:
            self._overlay_worker.request_cancel()
        self._teardown_overlay_thread()
        self.store.unsubscribe(self._on_state_changed)
        cfg.overlayOpacity.valueChanged.disconnect(self._on_opacity_changed)
        self.map_component.cleanup()
        logger.debug("PlotTrackerTab torn down")
