"""GeoJSON export helpers for parcels and rows."""

from __future__ import annotations

from pathlib import Path

import geopandas as gpd

from plotkeeper.core.geometry import parcel_polygon, row_linestring
from plotkeeper.core.state import FarmState

EXPORT_COLUMNS = [
    "id",
    "kind",
    "name",
    "species",
    "sowing_date",
    "planting_date",
    "notes",
    "photo",
    "parcel_id",
]


def state_to_geodataframe(state: FarmState) -> gpd.GeoDataFrame:
    """Build one GeoDataFrame holding parcels then rows.

    Parameters
    ----------
    state : FarmState
        Drawing state to export.

    Returns
    -------
    geopandas.GeoDataFrame
        Table with ``EXPORT_COLUMNS`` and EPSG:4326 geometry
        (``x = lng``, ``y = lat``).

    Examples
    --------
    >>> gdf = state_to_geodataframe(FarmState())
    >>> list(gdf.columns) == EXPORT_COLUMNS + ["geometry"]
    True
    """
    records = []
    geometries = []
    for parcel in state.parcels:
        records.append(
            {
                "id": parcel.id,
                "kind": "parcel",
                "name": parcel.meta.name,
                "species": None,
                "sowing_date": None,
                "planting_date": None,
                "notes": None,
                "photo": None,
                "parcel_id": None,
            }
        )
        geometries.append(parcel_polygon(parcel))
    for row in state.rows:
        records.append(
            {
                "id": row.id,
                "kind": "row",
                "name": None,
                "species": row.meta.species,
                "sowing_date": row.meta.sowing_date,
                "planting_date": row.meta.planting_date,
                "notes": row.meta.notes,
                "photo": row.meta.photo,
                "parcel_id": row.meta.parcel_id,
            }
        )
        geometries.append(row_linestring(row.coords))

    if not records:
        return gpd.GeoDataFrame(
            {column: [] for column in EXPORT_COLUMNS},
            geometry=[],
            crs="EPSG:4326",
        )
    return gpd.GeoDataFrame(
        records, columns=EXPORT_COLUMNS, geometry=geometries, crs="EPSG:4326"
    )


def export_geojson(state: FarmState, out_path: str | Path) -> Path:
    """Write parcels and rows to a GeoJSON file.

    Parameters
    ----------
    state : FarmState
        Drawing state to export.
    out_path : str | Path
        Target path; ``.geojson`` is appended when no suffix is given.

    Returns
    -------
    pathlib.Path
        Written file path.
    """
    path_obj = Path(out_path)
    if not path_obj.suffix:
        path_obj = path_obj.with_suffix(".geojson")
    path_obj.parent.mkdir(parents=True, exist_ok=True)
    state_to_geodataframe(state).to_file(path_obj, driver="GeoJSON")
    return path_obj
