"""Parcel and row entities with their JSON wire format."""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field, fields, replace
from typing import Any

LatLng = tuple[float, float]

DEFAULT_PARCEL_NAME = "Parcelle"

_BASE36_ALPHABET = string.digits + string.ascii_lowercase

# Python attribute name -> persisted JSON key
_ROW_META_KEYS: dict[str, str] = {
    "species": "species",
    "sowing_date": "sowingDate",
    "planting_date": "plantingDate",
    "notes": "notes",
    "photo": "photo",
    "parcel_id": "parcelId",
}


def _to_base36(value: int) -> str:
    """Encode a non-negative integer in base 36."""
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def uid(prefix: str = "id") -> str:
    """Generate a unique entity id.

    Parameters
    ----------
    prefix : str
        Id prefix, e.g. ``parcel`` or ``line``.

    Returns
    -------
    str
        ``<prefix>_<base36 ms timestamp>_<6 random base36 chars>``.

    Examples
    --------
    >>> uid("parcel").startswith("parcel_")
    True
    """
    stamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(random.choices(_BASE36_ALPHABET, k=6))
    return f"{prefix}_{stamp}_{suffix}"


def coords_from_json(raw: Any) -> tuple[LatLng, ...]:
    """Parse a ``[[lat, lng], ...]`` list into coordinate tuples."""
    if not isinstance(raw, list):
        raise TypeError("coords must be a list of [lat, lng] pairs")
    coords = []
    for pair in raw:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise ValueError(f"invalid coordinate pair: {pair!r}")
        coords.append((float(pair[0]), float(pair[1])))
    return tuple(coords)


def coords_to_json(coords: tuple[LatLng, ...]) -> list[list[float]]:
    """Serialize coordinate tuples to ``[[lat, lng], ...]``."""
    return [[lat, lng] for lat, lng in coords]


def _optional_str(value: Any, key: str) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise TypeError(f"meta field '{key}' must be a string or null")


@dataclass(frozen=True)
class ParcelMeta:
    """Parcel metadata."""

    name: str | None = None


@dataclass(frozen=True)
class Parcel:
    """Polygon parcel drawn on the map.

    Parameters
    ----------
    id : str
        Unique parcel id.
    coords : tuple of (lat, lng)
        Polygon ring in draw order, closed implicitly.
    meta : ParcelMeta
        Display metadata.
    """

    id: str
    coords: tuple[LatLng, ...]
    meta: ParcelMeta = field(default_factory=ParcelMeta)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "coords": coords_to_json(self.coords),
            "meta": {"name": self.meta.name},
        }

    @classmethod
    def from_dict(cls, data: Any) -> Parcel:
        if not isinstance(data, dict):
            raise TypeError("parcel entry must be an object")
        parcel_id = data["id"]
        if not isinstance(parcel_id, str):
            raise TypeError("parcel id must be a string")
        raw_meta = data.get("meta") or {}
        if not isinstance(raw_meta, dict):
            raise TypeError("parcel meta must be an object")
        meta = ParcelMeta(name=_optional_str(raw_meta.get("name"), "name"))
        return cls(id=parcel_id, coords=coords_from_json(data["coords"]), meta=meta)


@dataclass(frozen=True)
class RowMeta:
    """Crop metadata attached to a row.

    All text fields are free-form; dates are kept as entered.
    """

    species: str | None = None
    sowing_date: str | None = None
    planting_date: str | None = None
    notes: str | None = None
    photo: str | None = None
    parcel_id: str | None = None

    @classmethod
    def blank(cls, parcel_id: str | None = None) -> RowMeta:
        """Metadata of a freshly drawn row."""
        return cls(
            species="",
            sowing_date="",
            planting_date="",
            notes="",
            photo="",
            parcel_id=parcel_id,
        )

    def patched(self, patch: dict[str, str | None]) -> RowMeta:
        """Return a copy with only the given fields replaced.

        Raises
        ------
        ValueError
            If ``patch`` names a field that does not exist.
        """
        unknown = set(patch) - set(_ROW_META_KEYS)
        if unknown:
            raise ValueError(f"unknown row meta fields: {sorted(unknown)}")
        return replace(self, **patch)

    def to_dict(self) -> dict[str, str | None]:
        return {
            json_key: getattr(self, attr) for attr, json_key in _ROW_META_KEYS.items()
        }

    @classmethod
    def from_dict(cls, data: Any) -> RowMeta:
        if not isinstance(data, dict):
            raise TypeError("row meta must be an object")
        values = {
            attr: _optional_str(data.get(json_key), json_key)
            for attr, json_key in _ROW_META_KEYS.items()
        }
        return cls(**values)


@dataclass(frozen=True)
class Row:
    """Crop row drawn as a polyline.

    Parameters
    ----------
    id : str
        Unique row id.
    coords : tuple of (lat, lng)
        Polyline vertices in draw order.
    meta : RowMeta
        Crop metadata and parcel back-reference.
    """

    id: str
    coords: tuple[LatLng, ...]
    meta: RowMeta = field(default_factory=RowMeta)

    @property
    def label(self) -> str:
        """Species name, or empty string when unset."""
        return self.meta.species or ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "coords": coords_to_json(self.coords),
            "meta": self.meta.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Row:
        if not isinstance(data, dict):
            raise TypeError("line entry must be an object")
        row_id = data["id"]
        if not isinstance(row_id, str):
            raise TypeError("line id must be a string")
        return cls(
            id=row_id,
            coords=coords_from_json(data["coords"]),
            meta=RowMeta.from_dict(data.get("meta") or {}),
        )


def row_meta_field_names() -> tuple[str, ...]:
    """Return editable row metadata attribute names in display order."""
    return tuple(f.name for f in fields(RowMeta))
