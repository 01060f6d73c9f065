"""
Utility functions for tiered sheets retrieval
"""

from .column_letters import (
    a1_range,
    cell_reference,
    grid_range_to_a1,
    index_to_letter,
    letter_to_index,
    quote_sheet_title,
)

__all__ = [
    "a1_range",
    "cell_reference",
    "grid_range_to_a1",
    "index_to_letter",
    "letter_to_index",
    "quote_sheet_title",
]
