"""
Tab modules for the plot tracker interface.

Tabs:
- PlotTrackerTab: Draw parcels and rows, edit row metadata, show the overlay
- SettingsTab: Application settings
"""
