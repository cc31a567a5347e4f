"""Geometry helpers for associating rows with parcels.

Coordinates are ``(lat, lng)`` pairs. Shapely geometries are built with
``x = lng`` and ``y = lat``.

Notes
-----
Association uses the parcel's bounding box, not its polygon. A row whose
representative point lies inside the bounding rectangle but outside the
actual polygon ring is still associated with that parcel. This matches the
behaviour of the data already recorded by users and is kept as-is.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from shapely.geometry import LineString, MultiPoint, Polygon

from plotkeeper.core.models import LatLng, Parcel


def representative_point(coords: Sequence[LatLng]) -> LatLng | None:
    """Return the vertex at index ``floor(n / 2)``.

    Parameters
    ----------
    coords : Sequence[LatLng]
        Row vertices in draw order.

    Returns
    -------
    LatLng | None
        Middle vertex, or ``None`` for an empty sequence.

    Examples
    --------
    >>> representative_point([(0.0, 0.0), (1.0, 1.0), (2.0, 2.0)])
    (1.0, 1.0)
    >>> representative_point([(0.3, 0.3), (0.6, 0.6)])
    (0.6, 0.6)
    """
    if not coords:
        return None
    return tuple(coords[len(coords) // 2])


def latlng_bounds(coords: Sequence[LatLng]) -> tuple[float, float, float, float] | None:
    """Return ``(min_lng, min_lat, max_lng, max_lat)`` of a coordinate list."""
    if not coords:
        return None
    return MultiPoint([(lng, lat) for lat, lng in coords]).bounds


def bounds_contains(
    bounds: tuple[float, float, float, float], point: LatLng
) -> bool:
    """Inclusive bounding-box containment test."""
    min_lng, min_lat, max_lng, max_lat = bounds
    lat, lng = point
    return min_lat <= lat <= max_lat and min_lng <= lng <= max_lng


def find_enclosing_parcel(
    coords: Sequence[LatLng], parcels: Iterable[Parcel]
) -> str | None:
    """Find the first parcel whose bounding box covers the row midpoint.

    Parameters
    ----------
    coords : Sequence[LatLng]
        Candidate row vertices.
    parcels : Iterable[Parcel]
        Parcels in collection order.

    Returns
    -------
    str | None
        Id of the first matching parcel, or ``None``.

    Examples
    --------
    >>> p = Parcel(id="p1", coords=((0, 0), (0, 1), (1, 1)))
    >>> find_enclosing_parcel([(0.3, 0.3), (0.6, 0.6)], [p])
    'p1'
    """
    point = representative_point(coords)
    if point is None:
        return None
    for parcel in parcels:
        bounds = latlng_bounds(parcel.coords)
        if bounds is None:
            continue
        if bounds_contains(bounds, point):
            return parcel.id
    return None


def parcel_polygon(parcel: Parcel) -> Polygon:
    """Build a shapely polygon (x=lng, y=lat) for a parcel."""
    return Polygon([(lng, lat) for lat, lng in parcel.coords])


def row_linestring(coords: Sequence[LatLng]) -> LineString:
    """Build a shapely line string (x=lng, y=lat) for a row."""
    return LineString([(lng, lat) for lat, lng in coords])

