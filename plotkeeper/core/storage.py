"""Local key-value persistence for the drawing state."""

from __future__ import annotations

import json
import re
from pathlib import Path

from loguru import logger

from plotkeeper.core.state import FarmState, FarmStore, StateAction

STORAGE_KEY = "maraichage_data_ts_v3"

_SAFE_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalStorage:
    """Key-value store keeping one UTF-8 text file per key.

    Parameters
    ----------
    root_dir : str | Path
        Directory holding the ``<key>.json`` files.

    Examples
    --------
    >>> storage = LocalStorage("/tmp/plotkeeper")
    >>> storage.set_item("demo", "{}")
    >>> storage.get_item("demo")
    '{}'
    """

    def __init__(self, root_dir: str | Path) -> None:
        self.root_dir = Path(root_dir)

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY_PATTERN.match(key):
            raise ValueError(f"invalid storage key: {key!r}")
        return self.root_dir / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        """Return the stored text, or ``None`` when the key is missing."""
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        """Store text under ``key``, replacing any previous value."""
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        if path.exists():
            path.unlink()


def dumps_state(state: FarmState) -> str:
    """Encode the state as a JSON blob."""
    return json.dumps(state.to_dict(), ensure_ascii=False)


def loads_state(raw: str | None) -> FarmState:
    """Decode a JSON blob, falling back to an empty state.

    Parameters
    ----------
    raw : str | None
        Stored text, ``None`` when nothing is stored.

    Returns
    -------
    FarmState
        Decoded state, or an empty state when ``raw`` is missing or
        malformed.
    """
    if not raw:
        return FarmState()
    try:
        return FarmState.from_dict(json.loads(raw))
    except (ValueError, TypeError, KeyError, ArithmeticError, RecursionError) as exc:
        logger.warning(f"Stored state is malformed, starting empty: {exc}")
        return FarmState()


def load_state(storage: LocalStorage, key: str = STORAGE_KEY) -> FarmState:
    """Load the state stored under ``key``."""
    try:
        raw = storage.get_item(key)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning(f"Failed to read stored state '{key}': {exc}")
        return FarmState()
    if raw is None:
        logger.debug(f"No stored state under '{key}'")
    state = loads_state(raw)
    logger.info(
        f"Loaded state '{key}': {len(state.parcels)} parcels, {len(state.rows)} rows"
    )
    return state


def save_state(storage: LocalStorage, state: FarmState, key: str = STORAGE_KEY) -> None:
    """Write the whole state under ``key``."""
    storage.set_item(key, dumps_state(state))


class PersistenceBinding:
    """Write the store's state to storage after every accepted update."""

    def __init__(
        self, store: FarmStore, storage: LocalStorage, key: str = STORAGE_KEY
    ) -> None:
        self._store = store
        self._storage = storage
        self._key = key
        store.subscribe(self._on_state_changed)

    def _on_state_changed(self, state: FarmState, action: StateAction) -> None:
        try:
            save_state(self._storage, state, self._key)
        except OSError as exc:
            logger.error(f"Failed to persist state after {action.value}: {exc}")
            return
        logger.debug(f"Persisted state after {action.value}")

    def detach(self) -> None:
        self._store.unsubscribe(self._on_state_changed)


def open_store(storage: LocalStorage, key: str = STORAGE_KEY) -> FarmStore:
    """Load a store from storage and keep it persisted."""
    store = FarmStore(load_state(storage, key))
    PersistenceBinding(store, storage, key)
    return store
