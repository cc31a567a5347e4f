"""Tests for the click-accumulating drawing controller."""

from plotkeeper.core.drawing import DrawingController, DrawMode
from plotkeeper.core.state import FarmStore


def _drawing() -> tuple[FarmStore, DrawingController]:
    store = FarmStore()
    return store, DrawingController(store)


def test_toggle_mode_switches_and_turns_off() -> None:
    _, drawing = _drawing()
    assert drawing.mode == DrawMode.NONE
    drawing.toggle_mode(DrawMode.PARCEL)
    assert drawing.mode == DrawMode.PARCEL
    drawing.toggle_mode(DrawMode.ROW)
    assert drawing.mode == DrawMode.ROW
    drawing.toggle_mode(DrawMode.ROW)
    assert drawing.mode == DrawMode.NONE


def test_toggle_mode_discards_progress() -> None:
    _, drawing = _drawing()
    drawing.toggle_mode(DrawMode.PARCEL)
    drawing.start()
    drawing.add_point(0.0, 0.0)
    drawing.toggle_mode(DrawMode.ROW)
    assert drawing.preview_points() == []
    assert drawing.is_drawing is False


def test_clicks_ignored_until_started() -> None:
    """Points are only captured after start in an active mode."""
    _, drawing = _drawing()
    assert drawing.add_point(1.0, 1.0) is False
    assert drawing.start() is False

    drawing.toggle_mode(DrawMode.ROW)
    assert drawing.add_point(1.0, 1.0) is False
    assert drawing.start() is True
    assert drawing.add_point(1.0, 2.0) is True
    assert drawing.preview_points() == [(1.0, 2.0)]


def test_finish_parcel_with_three_points() -> None:
    store, drawing = _drawing()
    drawing.toggle_mode(DrawMode.PARCEL)
    drawing.start()
    for lat, lng in [(0.0, 0.0), (0.0, 1.0), (1.0, 1.0)]:
        drawing.add_point(lat, lng)

    parcel_id = drawing.finish()

    assert parcel_id == store.state.parcels[0].id
    assert store.state.parcels[0].coords == ((0.0, 0.0), (0.0, 1.0), (1.0, 1.0))
    assert drawing.mode == DrawMode.NONE
    assert drawing.is_drawing is False
    assert drawing.preview_points() == []


def test_finish_with_too_few_points_adds_nothing() -> None:
    """Insufficient points discard the drawing and leave draw mode."""
    store, drawing = _drawing()
    drawing.toggle_mode(DrawMode.PARCEL)
    drawing.start()
    drawing.add_point(0.0, 0.0)
    drawing.add_point(0.0, 1.0)
    assert drawing.finish() is None
    assert store.state.parcels == ()
    assert drawing.mode == DrawMode.NONE

    drawing.toggle_mode(DrawMode.ROW)
    drawing.start()
    drawing.add_point(0.0, 0.0)
    assert drawing.finish() is None
    assert store.state.rows == ()
    assert drawing.mode == DrawMode.NONE


def test_finish_row_selects_new_row() -> None:
    store, drawing = _drawing()
    drawing.toggle_mode(DrawMode.ROW)
    drawing.start()
    drawing.add_point(0.0, 0.0)
    drawing.add_point(1.0, 1.0)
    row_id = drawing.finish()
    assert row_id is not None
    assert store.selected_row_id == row_id


def test_clear_keeps_mode_and_drawing_state() -> None:
    _, drawing = _drawing()
    drawing.toggle_mode(DrawMode.ROW)
    drawing.start()
    drawing.add_point(0.0, 0.0)
    drawing.clear()
    assert drawing.preview_points() == []
    assert drawing.mode == DrawMode.ROW
    assert drawing.is_drawing is True
    assert drawing.add_point(2.0, 2.0) is True


def test_cancel_leaves_draw_mode() -> None:
    store, drawing = _drawing()
    drawing.toggle_mode(DrawMode.PARCEL)
    drawing.start()
    drawing.add_point(0.0, 0.0)
    drawing.cancel()
    assert drawing.mode == DrawMode.NONE
    assert drawing.preview_points() == []
    assert store.state.parcels == ()
