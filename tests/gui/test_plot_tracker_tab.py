"""End-to-end tests for the plot tracker tab."""

from __future__ import annotations

import json

import pytest

from plotkeeper.core.drawing import DrawMode
from plotkeeper.core.overlay import OverlayState
from plotkeeper.core.storage import STORAGE_KEY, LocalStorage, load_state, open_store
from plotkeeper.gui.config import tr
from plotkeeper.gui.tabs.plot_tracker import (
    OVERLAY_LAYER,
    PARCELS_LAYER,
    ROWS_LAYER,
    PlotTrackerTab,
)

PARCEL_RING = [(43.950, 4.800), (43.952, 4.800), (43.952, 4.803), (43.950, 4.803)]
ROW_LINE = [(43.9505, 4.8005), (43.9515, 4.8025)]


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path)


@pytest.fixture
def make_tab(qtbot, storage):
    created = []

    def _make(**kwargs):
        kwargs.setdefault("auto_load_overlay", False)
        tab = PlotTrackerTab(store=open_store(storage), **kwargs)
        qtbot.addWidget(tab)
        created.append(tab)
        return tab

    yield _make
    for tab in created:
        tab.cleanup()


def _draw(tab: PlotTrackerTab, mode: DrawMode, points) -> str | None:
    tab.toggle_draw_mode(mode)
    tab.start_drawing()
    for lat, lng in points:
        assert tab.map_canvas.dispatch_click(lat, lng) is True
    return tab.finish_drawing()


def test_draw_buttons_toggle_mode_and_labels(make_tab) -> None:
    tab = make_tab()
    assert not tab.btn_start.isEnabled()

    tab.btn_draw_parcel.click()
    assert tab.drawing.mode == DrawMode.PARCEL
    assert tab.btn_draw_parcel.text() == tr("page.tracker.btn.cancel")
    assert tab.btn_start.isEnabled()
    assert not tab.btn_finish.isEnabled()

    tab.btn_draw_row.click()
    assert tab.drawing.mode == DrawMode.ROW
    assert tab.btn_draw_parcel.text() == tr("page.tracker.btn.draw_parcel")

    tab.btn_draw_row.click()
    assert tab.drawing.mode == DrawMode.NONE


def test_clicks_outside_drawing_are_not_captured(make_tab) -> None:
    tab = make_tab()
    tab.toggle_draw_mode(DrawMode.PARCEL)
    assert tab.map_canvas.dispatch_click(43.95, 4.80) is False
    assert tab.drawing.preview_points() == []


def test_draw_parcel_renders_and_persists(make_tab, storage) -> None:
    tab = make_tab()
    tab.toggle_draw_mode(DrawMode.PARCEL)
    tab.start_drawing()
    for lat, lng in PARCEL_RING:
        tab.map_canvas.dispatch_click(lat, lng)

    assert list(tab._preview_item.yData) == [lat for lat, _ in PARCEL_RING]
    assert tab.btn_finish.isEnabled()

    parcel_id = tab.finish_drawing()

    assert parcel_id is not None
    assert tab.drawing.mode == DrawMode.NONE
    assert tab.map_canvas.get_feature_ids(PARCELS_LAYER) == [parcel_id]
    assert tab.drawing.preview_points() == []
    saved = load_state(storage)
    assert [parcel.id for parcel in saved.parcels] == [parcel_id]


def test_too_few_points_create_nothing(make_tab) -> None:
    tab = make_tab()
    assert _draw(tab, DrawMode.PARCEL, PARCEL_RING[:2]) is None
    assert _draw(tab, DrawMode.ROW, ROW_LINE[:1]) is None
    assert tab.store.state.parcels == ()
    assert tab.store.state.rows == ()


def test_clear_keeps_mode(make_tab) -> None:
    tab = make_tab()
    tab.toggle_draw_mode(DrawMode.ROW)
    tab.start_drawing()
    tab.map_canvas.dispatch_click(*ROW_LINE[0])
    tab.clear_drawing()
    assert tab.drawing.mode == DrawMode.ROW
    assert tab.drawing.preview_points() == []


def test_new_row_is_selected_and_linked_to_parcel(make_tab) -> None:
    tab = make_tab()
    parcel_id = _draw(tab, DrawMode.PARCEL, PARCEL_RING)
    row_id = _draw(tab, DrawMode.ROW, ROW_LINE)

    assert tab.store.selected_row_id == row_id
    assert tab.store.state.get_row(row_id).meta.parcel_id == parcel_id
    assert tab.row_panel.row_ids() == [row_id]
    assert tab.row_panel.row_labels() == [tr("row_panel.unnamed")]
    assert tab.row_panel.current_row_id() == row_id
    assert not tab.row_panel.editor.isHidden()

    item = tab.map_canvas.get_feature_item(ROWS_LAYER, row_id)
    assert item.opts["pen"].color().name() == "#e63946"


def test_editing_species_updates_label_and_storage(make_tab, qtbot, storage) -> None:
    tab = make_tab()
    row_id = _draw(tab, DrawMode.ROW, ROW_LINE)

    qtbot.keyClicks(tab.row_panel.editor_widget("species"), "Tomate")

    row = tab.store.state.get_row(row_id)
    assert row.meta.species == "Tomate"
    assert row.meta.notes == ""
    assert tab.row_panel.row_labels() == ["Tomate"]
    assert tab.row_panel.editor_widget("species").text() == "Tomate"
    assert tab.map_canvas.get_feature_item(ROWS_LAYER, row_id).toolTip() == "Tomate"
    payload = json.loads(storage.get_item(STORAGE_KEY))
    assert payload["lines"][0]["meta"]["species"] == "Tomate"


def test_feature_click_selects_row(make_tab) -> None:
    tab = make_tab()
    first = _draw(tab, DrawMode.ROW, ROW_LINE)
    second = _draw(tab, DrawMode.ROW, [(43.951, 4.801), (43.9515, 4.802)])
    assert tab.store.selected_row_id == second

    tab.map_canvas.sigFeatureClicked.emit(ROWS_LAYER, first)

    assert tab.store.selected_row_id == first
    assert tab.row_panel.current_row_id() == first
    first_pen = tab.map_canvas.get_feature_item(ROWS_LAYER, first).opts["pen"]
    second_pen = tab.map_canvas.get_feature_item(ROWS_LAYER, second).opts["pen"]
    assert first_pen.color().name() == "#e63946"
    assert second_pen.color().name() == "#2b9348"


def test_parcel_click_does_not_change_selection(make_tab) -> None:
    tab = make_tab()
    row_id = _draw(tab, DrawMode.ROW, ROW_LINE)
    tab.map_canvas.sigFeatureClicked.emit(PARCELS_LAYER, "anything")
    assert tab.store.selected_row_id == row_id


def test_delete_row_clears_editor(make_tab) -> None:
    tab = make_tab()
    row_id = _draw(tab, DrawMode.ROW, ROW_LINE)

    tab.row_panel.btn_delete.click()

    assert tab.store.state.get_row(row_id) is None
    assert tab.store.selected_row_id is None
    assert tab.row_panel.row_ids() == []
    assert tab.row_panel.editor.isHidden()
    assert tab.map_canvas.get_feature_ids(ROWS_LAYER) == []


def test_state_is_restored_from_storage(make_tab) -> None:
    first = make_tab()
    parcel_id = _draw(first, DrawMode.PARCEL, PARCEL_RING)
    row_id = _draw(first, DrawMode.ROW, ROW_LINE)
    first.store.patch_row_meta(row_id, species="Ail")

    second = make_tab()
    assert second.map_canvas.get_feature_ids(PARCELS_LAYER) == [parcel_id]
    assert second.map_canvas.get_feature_ids(ROWS_LAYER) == [row_id]
    assert second.row_panel.row_labels() == ["Ail"]
    assert second.store.selected_row_id is None


def test_export_writes_geojson(make_tab, tmp_path) -> None:
    tab = make_tab()
    _draw(tab, DrawMode.PARCEL, PARCEL_RING)
    _draw(tab, DrawMode.ROW, ROW_LINE)

    written = tab.export_to(tmp_path / "farm.geojson")

    data = json.loads(written.read_text(encoding="utf-8"))
    kinds = sorted(feature["properties"]["kind"] for feature in data["features"])
    assert kinds == ["parcel", "row"]


def test_overlay_load_places_raster(make_tab, qtbot, make_geotiff_bytes) -> None:
    urls = []

    def fetcher(url, timeout):
        urls.append(url)
        return make_geotiff_bytes()

    tab = make_tab(overlay_fetcher=fetcher)
    assert tab.overlay_state == OverlayState.ABSENT

    with qtbot.waitSignal(tab.sigOverlayStateChanged, timeout=10000) as blocker:
        assert tab.load_overlay() is True
        assert tab.load_overlay() is False

    assert blocker.args == [OverlayState.PRESENT.value]
    assert tab.overlay_state == OverlayState.PRESENT
    assert len(urls) == 1
    assert tab.map_canvas.has_layer(OVERLAY_LAYER)
    assert tab.map_component.layer_panel.get_layer_order()[-1] == OVERLAY_LAYER
    bounds = tab.map_canvas.get_layer_bounds(OVERLAY_LAYER)
    assert bounds.left == pytest.approx(4.8)
    assert bounds.top == pytest.approx(43.96)
    qtbot.waitUntil(lambda: tab.btn_reload_overlay.isEnabled())


def test_overlay_failure_keeps_state(make_tab, qtbot) -> None:
    def fetcher(url, timeout):
        raise ConnectionError("offline")

    tab = make_tab(overlay_fetcher=fetcher)
    with qtbot.waitSignal(tab.sigOverlayStateChanged, timeout=10000) as blocker:
        tab.load_overlay()

    assert blocker.args == [OverlayState.ABSENT.value]
    assert tab.overlay_state == OverlayState.ABSENT
    assert not tab.map_canvas.has_layer(OVERLAY_LAYER)
    assert tab.btn_reload_overlay.isEnabled()


def test_reloading_overlay_replaces_layer(make_tab, qtbot, make_geotiff_bytes) -> None:
    from plotkeeper.core.overlay import decode_geotiff

    tab = make_tab()
    georaster = decode_geotiff(make_geotiff_bytes())
    assert tab.apply_overlay(georaster) is True
    assert tab.apply_overlay(georaster) is True
    assert tab.map_canvas.get_layer_names().count(OVERLAY_LAYER) == 1
    assert tab.map_component.layer_panel.get_layer_order().count(OVERLAY_LAYER) == 1


def test_result_after_cleanup_is_ignored(make_tab, make_geotiff_bytes) -> None:
    from plotkeeper.core.overlay import decode_geotiff

    tab = make_tab()
    tab.cleanup()
    tab._on_overlay_loaded(decode_geotiff(make_geotiff_bytes()))

    assert tab.overlay_state == OverlayState.ABSENT
    assert not tab.map_canvas.has_layer(OVERLAY_LAYER)
    assert tab.load_overlay() is False
