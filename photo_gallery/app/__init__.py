"""Application layer: component wiring and UI-facing state.

Keep this package free of widget code; the grid view lives with the presentation layer.
"""
