"""Tests for MapCanvas feature, raster and handler APIs."""

from __future__ import annotations

import numpy as np
import pyqtgraph as pg
import pytest
from PySide6.QtCore import QPointF
from rasterio.coords import BoundingBox

from plotkeeper.core.overlay import GeoRaster
from plotkeeper.gui.components.map_canvas import (
    DEFAULT_CENTER,
    FeatureStyle,
    LayerBounds,
    MapCanvas,
)


class _FakeClick:
    def __init__(self, scene_pos: QPointF) -> None:
        self._scene_pos = scene_pos

    def scenePos(self) -> QPointF:
        return self._scene_pos


def _canvas(qtbot) -> MapCanvas:
    canvas = MapCanvas()
    qtbot.addWidget(canvas)
    canvas.resize(400, 300)
    return canvas


def _raster() -> GeoRaster:
    image = np.zeros((4, 6, 3), dtype=np.uint8)
    image[0] = 255  # northern row white
    return GeoRaster(image=image, bounds=BoundingBox(4.80, 43.94, 4.86, 43.98))


def test_initial_view_is_centered_on_default_center(qtbot) -> None:
    canvas = _canvas(qtbot)
    lat, lng = canvas.view_center()
    assert lat == pytest.approx(DEFAULT_CENTER[0], abs=1e-6)
    assert lng == pytest.approx(DEFAULT_CENTER[1], abs=1e-6)


def test_set_feature_layer_creates_once_and_refreshes_in_place(qtbot) -> None:
    """Refreshing a layer keeps its order entry and emits no new add."""
    canvas = _canvas(qtbot)
    added = []
    canvas.sigLayerAdded.connect(lambda name, kind: added.append((name, kind)))
    style = FeatureStyle("#2b9348", width=3)

    canvas.set_feature_layer("rows", {"a": [(0.0, 0.0), (1.0, 1.0)]}, style)
    canvas.set_feature_layer(
        "rows",
        {"a": [(0.0, 0.0), (1.0, 1.0)], "b": [(2.0, 3.0), (4.0, 5.0)]},
        style,
    )

    assert added == [("rows", "Vector")]
    assert canvas.get_layer_names() == ["rows"]
    assert canvas.get_feature_ids("rows") == ["a", "b"]
    assert canvas.get_layer_bounds("rows") == LayerBounds(0.0, 0.0, 5.0, 4.0)


def test_polyline_styles_apply_per_feature(qtbot) -> None:
    canvas = _canvas(qtbot)
    canvas.set_feature_layer(
        "rows",
        {"a": [(0.0, 0.0), (1.0, 1.0)], "b": [(2.0, 2.0), (3.0, 3.0)]},
        {"a": FeatureStyle("#e63946", width=5), "b": FeatureStyle("#2b9348", width=3)},
        clickable=True,
        tooltips={"a": "Tomate"},
    )
    item_a = canvas.get_feature_item("rows", "a")
    item_b = canvas.get_feature_item("rows", "b")
    assert isinstance(item_a, pg.PlotCurveItem)
    assert item_a.opts["pen"].color().name() == "#e63946"
    assert item_a.opts["pen"].widthF() == pytest.approx(5)
    assert item_b.opts["pen"].color().name() == "#2b9348"
    assert item_a.toolTip() == "Tomate"
    # x = lng, y = lat
    assert list(item_b.xData) == [2.0, 3.0]


def test_polygon_features_are_filled(qtbot) -> None:
    canvas = _canvas(qtbot)
    canvas.set_feature_layer(
        "parcels",
        {"p": [(0.0, 0.0), (0.0, 1.0), (1.0, 1.0)]},
        FeatureStyle("#2a9d8f", fill_alpha=0.2),
        closed=True,
    )
    item = canvas.get_feature_item("parcels", "p")
    assert item.pen().color().name() == "#2a9d8f"
    assert item.brush().color().alphaF() == pytest.approx(0.2, abs=0.01)
    assert item.polygon().count() == 3


def test_feature_with_empty_coords_is_skipped(qtbot) -> None:
    canvas = _canvas(qtbot)
    canvas.set_feature_layer("rows", {"a": []}, FeatureStyle("#000000"))
    assert canvas.get_feature_ids("rows") == []
    assert canvas.get_layer_bounds("rows") is None
    assert canvas.zoom_to_layer("rows") is False


def test_add_raster_image_layer_places_north_up(qtbot) -> None:
    canvas = _canvas(qtbot)
    added = []
    canvas.sigLayerAdded.connect(lambda name, kind: added.append((name, kind)))

    ok = canvas.add_raster_image_layer(_raster(), "overlay", opacity=0.7)

    assert ok is True
    assert added == [("overlay", "Raster")]
    item = canvas._layers["overlay"]["item"]
    assert item.opacity() == pytest.approx(0.7)
    # row 0 of the displayed array is the south edge
    assert (item.image[-1] == 255).all()
    assert (item.image[0] == 0).all()
    assert canvas.get_layer_bounds("overlay") == LayerBounds(4.80, 43.94, 4.86, 43.98)


def test_add_raster_image_layer_replaces_same_name(qtbot) -> None:
    canvas = _canvas(qtbot)
    canvas.add_raster_image_layer(_raster(), "overlay")
    canvas.add_raster_image_layer(_raster(), "overlay")
    assert canvas.get_layer_names().count("overlay") == 1


def test_add_raster_image_layer_rejects_bad_bounds(qtbot) -> None:
    canvas = _canvas(qtbot)
    raster = GeoRaster(
        image=np.zeros((2, 2, 3), dtype=np.uint8),
        bounds=BoundingBox(1.0, 1.0, 1.0, 2.0),
    )
    assert canvas.add_raster_image_layer(raster, "overlay") is False
    assert not canvas.has_layer("overlay")


def test_update_layer_order_sets_z_values(qtbot) -> None:
    canvas = _canvas(qtbot)
    canvas.add_raster_image_layer(_raster(), "overlay")
    canvas.set_feature_layer("rows", {"a": [(0.0, 0.0), (1.0, 1.0)]}, FeatureStyle("#000000"))

    canvas.update_layer_order(["rows", "overlay", "missing"])

    assert canvas.get_layer_names() == ["rows", "overlay"]
    assert canvas._layers["rows"]["item"].zValue() > canvas._layers["overlay"]["item"].zValue()


def test_visibility_and_remove_layer(qtbot) -> None:
    canvas = _canvas(qtbot)
    removed = []
    canvas.sigLayerRemoved.connect(removed.append)
    canvas.set_feature_layer("rows", {"a": [(0.0, 0.0), (1.0, 1.0)]}, FeatureStyle("#000000"))

    canvas.set_layer_visibility("rows", False)
    assert canvas._layers["rows"]["item"].isVisible() is False

    assert canvas.remove_layer("rows") is True
    assert canvas.remove_layer("rows") is False
    assert removed == ["rows"]


def test_click_handlers_run_until_consumed(qtbot) -> None:
    canvas = _canvas(qtbot)
    calls = []

    def first(lat, lng, ev):
        calls.append(("first", lat, lng))
        return True

    def second(lat, lng, ev):
        calls.append(("second", lat, lng))
        return True

    canvas.register_click_handler(first)
    canvas.register_click_handler(first)
    canvas.register_click_handler(second)
    assert canvas.dispatch_click(43.9, 4.8) is True
    assert calls == [("first", 43.9, 4.8)]

    canvas.unregister_click_handler(first)
    canvas.dispatch_click(1.0, 2.0)
    assert calls[-1] == ("second", 1.0, 2.0)


def test_feature_click_emits_when_no_handler_consumes(qtbot) -> None:
    canvas = _canvas(qtbot)
    clicked = []
    canvas.sigFeatureClicked.connect(lambda layer, fid: clicked.append((layer, fid)))
    scene_pos = canvas._view_box.mapViewToScene(QPointF(4.8, 43.95))

    canvas._on_feature_clicked("rows", "a", _FakeClick(scene_pos))
    assert clicked == [("rows", "a")]

    canvas.register_click_handler(lambda lat, lng, ev: True)
    canvas._on_feature_clicked("rows", "a", _FakeClick(scene_pos))
    assert clicked == [("rows", "a")]


def test_hover_emits_lat_lng(qtbot) -> None:
    canvas = _canvas(qtbot)
    seen = []

    def handler(lat, lng):
        seen.append((lat, lng))

    canvas.register_hover_handler(handler)
    with qtbot.waitSignal(canvas.sigCoordinateChanged) as blocker:
        canvas._on_coordinate_hover(4.8, 43.95)
    assert blocker.args == [43.95, 4.8]
    assert seen == [(43.95, 4.8)]

    canvas.unregister_hover_handler(handler)
    canvas._on_coordinate_hover(5.0, 44.0)
    assert seen == [(43.95, 4.8)]


def test_overlay_items_and_cleanup(qtbot) -> None:
    canvas = _canvas(qtbot)
    preview = pg.PlotCurveItem(x=[0.0, 1.0], y=[0.0, 1.0])
    canvas.add_overlay_item(preview)
    assert preview.parentItem() is canvas._item_group
    assert preview.zValue() == 1000

    canvas.set_feature_layer("rows", {"a": [(0.0, 0.0), (1.0, 1.0)]}, FeatureStyle("#000000"))
    canvas.register_click_handler(lambda lat, lng, ev: True)
    canvas.cleanup()

    assert canvas.get_layer_names() == []
    assert preview.parentItem() is None
    assert canvas.dispatch_click(0.0, 0.0) is False


def test_fit_bounds_covers_extent(qtbot) -> None:
    canvas = _canvas(qtbot)
    canvas.fit_bounds(LayerBounds(4.80, 43.94, 4.86, 43.98), padding=0.0)
    (x_min, x_max), (y_min, y_max) = canvas._view_box.viewRange()
    assert x_min <= 4.80 + 1e-9 and x_max >= 4.86 - 1e-9
    assert y_min <= 43.94 + 1e-9 and y_max >= 43.98 - 1e-9
