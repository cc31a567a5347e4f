"""Utility package exports for PlotKeeper."""

from plotkeeper.utils.export import export_geojson, state_to_geodataframe

__all__ = [
    "export_geojson",
    "state_to_geodataframe",
]
