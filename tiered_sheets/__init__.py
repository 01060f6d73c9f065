"""
Tiered Sheets - progressive, cached spreadsheet retrieval

Five increasingly complete views of a Google Sheets document:
metadata, structure, sample, full values and a cell-level snapshot.
Each view is cached on its own with a shorter TTL than the one below it.
"""

__version__ = "0.1.0"
