# PlotKeeper Core Module
"""
Core business logic module for PlotKeeper.

Contains:
- Parcel / row data model and JSON wire format
- Row-to-parcel association rule
- Reducer-style state store
- Drawing controller
- Local key-value persistence
- Remote GeoTIFF fetch and decode
"""
