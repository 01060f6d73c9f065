"""
Domain exceptions for tiered retrieval
"""

from .base import DomainException
from .retrieval import (
    NotFoundError,
    RemoteFetchError,
    SheetNotFoundError,
    SpreadsheetNotFoundError,
)

__all__ = [
    "DomainException",
    "NotFoundError",
    "RemoteFetchError",
    "SheetNotFoundError",
    "SpreadsheetNotFoundError",
]
