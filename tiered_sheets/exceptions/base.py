"""
Base domain exception
"""

from typing import Optional


class DomainException(Exception):
    """Base for all errors raised by this package"""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR",
                 details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
