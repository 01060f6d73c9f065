"""
Services

Import from the concrete modules:
- tiered_sheets.services.tiered_retrieval
- tiered_sheets.services.tier_derivation
- tiered_sheets.services.sheets_client
- tiered_sheets.services.tier_cache
- tiered_sheets.services.service_factory
"""

__all__ = []
