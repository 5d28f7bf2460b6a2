"""Spreadsheet engine: formula parsing, dependency-tracked recalculation, undo/redo, saving and CSV export."""

__version__ = "0.1.0"