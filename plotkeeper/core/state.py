"""Reducer-style state container for parcels and rows."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Sequence

from loguru import logger

from plotkeeper.core.geometry import find_enclosing_parcel
from plotkeeper.core.models import (
    DEFAULT_PARCEL_NAME,
    LatLng,
    Parcel,
    ParcelMeta,
    Row,
    RowMeta,
    uid,
)

MIN_PARCEL_POINTS = 3
MIN_ROW_POINTS = 2


class StateAction(str, Enum):
    """Accepted state transitions."""

    ADD_PARCEL = "add_parcel"
    ADD_ROW = "add_row"
    PATCH_ROW_META = "patch_row_meta"
    DELETE_ROW = "delete_row"


@dataclass(frozen=True)
class FarmState:
    """Persisted drawing state.

    Parameters
    ----------
    parcels : tuple[Parcel, ...]
        Parcels in creation order.
    rows : tuple[Row, ...]
        Rows in creation order.
    """

    parcels: tuple[Parcel, ...] = ()
    rows: tuple[Row, ...] = ()

    def get_row(self, row_id: str) -> Row | None:
        """Return the row with ``row_id`` or ``None``."""
        for row in self.rows:
            if row.id == row_id:
                return row
        return None

    def get_parcel(self, parcel_id: str) -> Parcel | None:
        """Return the parcel with ``parcel_id`` or ``None``."""
        for parcel in self.parcels:
            if parcel.id == parcel_id:
                return parcel
        return None

    def to_dict(self) -> dict:
        """Serialize to the persisted ``{parcels, lines}`` structure."""
        return {
            "parcels": [parcel.to_dict() for parcel in self.parcels],
            "lines": [row.to_dict() for row in self.rows],
        }

    @classmethod
    def from_dict(cls, data: object) -> FarmState:
        """Parse the persisted ``{parcels, lines}`` structure.

        Raises
        ------
        TypeError, ValueError, KeyError
            When the payload does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise TypeError("state payload must be an object")
        raw_parcels = data.get("parcels", [])
        raw_rows = data.get("lines", [])
        if not isinstance(raw_parcels, list) or not isinstance(raw_rows, list):
            raise TypeError("'parcels' and 'lines' must be lists")
        return cls(
            parcels=tuple(Parcel.from_dict(item) for item in raw_parcels),
            rows=tuple(Row.from_dict(item) for item in raw_rows),
        )


# ---- Reducers ----
# Each reducer returns a new state and never mutates its input.


def add_parcel(
    state: FarmState,
    coords: Sequence[LatLng],
    parcel_id: str | None = None,
    name: str = DEFAULT_PARCEL_NAME,
) -> FarmState:
    """Append a new parcel with the given ring."""
    parcel = Parcel(
        id=parcel_id or uid("parcel"),
        coords=tuple((float(lat), float(lng)) for lat, lng in coords),
        meta=ParcelMeta(name=name),
    )
    return replace(state, parcels=state.parcels + (parcel,))


def add_row(
    state: FarmState,
    coords: Sequence[LatLng],
    row_id: str | None = None,
) -> FarmState:
    """Append a new row, associating it with its enclosing parcel once."""
    row_coords = tuple((float(lat), float(lng)) for lat, lng in coords)
    parcel_id = find_enclosing_parcel(row_coords, state.parcels)
    row = Row(
        id=row_id or uid("line"),
        coords=row_coords,
        meta=RowMeta.blank(parcel_id=parcel_id),
    )
    return replace(state, rows=state.rows + (row,))


def patch_row_meta(
    state: FarmState, row_id: str, patch: dict[str, str | None]
) -> FarmState:
    """Replace the given metadata fields on one row."""
    rows = tuple(
        replace(row, meta=row.meta.patched(patch)) if row.id == row_id else row
        for row in state.rows
    )
    return replace(state, rows=rows)


def delete_row(state: FarmState, row_id: str) -> FarmState:
    """Remove one row by id."""
    return replace(state, rows=tuple(row for row in state.rows if row.id != row_id))


StateListener = Callable[[FarmState, StateAction], None]


class FarmStore:
    """Owner of the current state, the row selection, and change listeners.

    Listeners are called after every accepted update, which is where the
    persistence binding hooks in.

    Examples
    --------
    >>> store = FarmStore()
    >>> pid = store.add_parcel([(0, 0), (0, 1), (1, 1)])
    >>> rid = store.add_row([(0.3, 0.3), (0.6, 0.6)])
    >>> store.state.get_row(rid).meta.parcel_id == pid
    True
    >>> store.selected_row_id == rid
    True
    """

    def __init__(self, state: FarmState | None = None) -> None:
        self._state: FarmState = state or FarmState()
        self._selected_row_id: str | None = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> FarmState:
        return self._state

    @property
    def selected_row_id(self) -> str | None:
        return self._selected_row_id

    @property
    def selected_row(self) -> Row | None:
        if self._selected_row_id is None:
            return None
        return self._state.get_row(self._selected_row_id)

    def subscribe(self, listener: StateListener) -> None:
        """Register a callback invoked after every accepted update."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _commit(self, new_state: FarmState, action: StateAction) -> None:
        self._state = new_state
        logger.debug(
            f"State {action.value}: {len(new_state.parcels)} parcels, "
            f"{len(new_state.rows)} rows"
        )
        for listener in list(self._listeners):
            listener(new_state, action)

    def add_parcel(self, coords: Sequence[LatLng]) -> str | None:
        """Add a parcel.

        Returns
        -------
        str | None
            New parcel id, or ``None`` when fewer than 3 points are given.
        """
        if len(coords) < MIN_PARCEL_POINTS:
            return None
        parcel_id = uid("parcel")
        self._commit(add_parcel(self._state, coords, parcel_id), StateAction.ADD_PARCEL)
        return parcel_id

    def add_row(self, coords: Sequence[LatLng]) -> str | None:
        """Add a row and select it.

        Returns
        -------
        str | None
            New row id, or ``None`` when fewer than 2 points are given.
        """
        if len(coords) < MIN_ROW_POINTS:
            return None
        row_id = uid("line")
        new_state = add_row(self._state, coords, row_id)
        self._selected_row_id = row_id
        self._commit(new_state, StateAction.ADD_ROW)
        return row_id

    def patch_row_meta(self, row_id: str, **patch: str | None) -> bool:
        """Patch metadata fields of one row.

        Returns
        -------
        bool
            False when the row does not exist.
        """
        if self._state.get_row(row_id) is None:
            return False
        self._commit(
            patch_row_meta(self._state, row_id, patch), StateAction.PATCH_ROW_META
        )
        return True

    def delete_row(self, row_id: str) -> bool:
        """Delete one row, clearing the selection if it was selected."""
        if self._state.get_row(row_id) is None:
            return False
        if self._selected_row_id == row_id:
            self._selected_row_id = None
        self._commit(delete_row(self._state, row_id), StateAction.DELETE_ROW)
        return True

    def select_row(self, row_id: str | None) -> bool:
        """Select a row by id, or clear the selection with ``None``."""
        if row_id is not None and self._state.get_row(row_id) is None:
            return False
        self._selected_row_id = row_id
        return True
