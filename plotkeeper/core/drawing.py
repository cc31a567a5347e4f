"""Click-accumulating drawing controller for parcels and rows."""

from __future__ import annotations

from enum import Enum

from loguru import logger

from plotkeeper.core.models import LatLng
from plotkeeper.core.state import MIN_PARCEL_POINTS, MIN_ROW_POINTS, FarmStore


class DrawMode(str, Enum):
    """Drawing modes."""

    NONE = "none"
    PARCEL = "parcel"
    ROW = "row"


class DrawingController:
    """Accumulate map clicks and commit them as a parcel or a row.

    Clicks are only captured after :meth:`start` while a mode other than
    ``NONE`` is active. :meth:`finish` always leaves drawing mode.

    Examples
    --------
    >>> store = FarmStore()
    >>> drawing = DrawingController(store)
    >>> drawing.toggle_mode(DrawMode.PARCEL)
    >>> drawing.start()
    True
    >>> for lat, lng in [(0, 0), (0, 1), (1, 1)]:
    ...     _ = drawing.add_point(lat, lng)
    >>> drawing.finish() is not None
    True
    >>> len(store.state.parcels)
    1
    """

    def __init__(self, store: FarmStore) -> None:
        self._store = store
        self._mode: DrawMode = DrawMode.NONE
        self._is_drawing: bool = False
        self._points: list[LatLng] = []

    @property
    def mode(self) -> DrawMode:
        return self._mode

    @property
    def is_drawing(self) -> bool:
        return self._is_drawing

    def preview_points(self) -> list[LatLng]:
        """Return a copy of the in-progress points."""
        return list(self._points)

    def toggle_mode(self, mode: DrawMode) -> None:
        """Toggle a draw mode on, or off when it is already active.

        In-progress points are discarded either way.
        """
        if mode == self._mode:
            self._mode = DrawMode.NONE
        else:
            self._mode = mode
        self._reset_progress()
        logger.debug(f"Draw mode: {self._mode.value}")

    def start(self) -> bool:
        """Begin capturing clicks for the active mode."""
        if self._mode == DrawMode.NONE:
            return False
        self._is_drawing = True
        return True

    def add_point(self, lat: float, lng: float) -> bool:
        """Append a clicked coordinate.

        Returns
        -------
        bool
            True when the click was consumed by drawing.
        """
        if not self._is_drawing or self._mode == DrawMode.NONE:
            return False
        self._points.append((float(lat), float(lng)))
        return True

    def clear(self) -> None:
        """Discard accumulated points without leaving draw mode."""
        self._points = []

    def finish(self) -> str | None:
        """Commit the accumulated points and leave draw mode.

        Returns
        -------
        str | None
            Id of the created parcel or row, or ``None`` when too few
            points were captured.
        """
        created_id = None
        if self._mode == DrawMode.PARCEL and len(self._points) >= MIN_PARCEL_POINTS:
            created_id = self._store.add_parcel(self._points)
        elif self._mode == DrawMode.ROW and len(self._points) >= MIN_ROW_POINTS:
            created_id = self._store.add_row(self._points)
        else:
            logger.debug(
                f"Discarding {len(self._points)} point(s) in mode {self._mode.value}"
            )
        self._mode = DrawMode.NONE
        self._reset_progress()
        return created_id

    def cancel(self) -> None:
        """Leave draw mode, discarding in-progress points."""
        self._mode = DrawMode.NONE
        self._reset_progress()

    def _reset_progress(self) -> None:
        self._points = []
        self._is_drawing = False
