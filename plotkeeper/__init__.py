# PlotKeeper - Source Package
"""
PlotKeeper: market-garden plot tracking on a map.

This package provides a PySide6-based GUI for:
- Drawing parcels (polygons) and crop rows (polylines)
- Editing crop metadata attached to rows
- Persisting the drawing state to local storage
- Overlaying a remote GeoTIFF orthophoto
"""

__version__ = "0.1.0"
