"""
Reusable GUI components for the plot tracker.

Components:
- MapCanvas: Lat/lng map view with PyQtGraph
- LayerPanel: Layer list with drag-drop ordering
- RowPanel: Row list and metadata editor
- StatusBar: Coordinates, draw mode and overlay state
"""
