"""
Tier record models
"""

from .tiers import (
    ConditionalFormatSummary,
    DataValidationSummary,
    FullData,
    NamedRangeSummary,
    SampleData,
    SamplingMethod,
    SheetFull,
    SheetInfo,
    SheetMetadata,
    SheetSample,
    SheetSnapshot,
    SheetSnapshotStats,
    SheetStructure,
    SnapshotData,
    StructureSummary,
    TierData,
)

__all__ = [
    "ConditionalFormatSummary",
    "DataValidationSummary",
    "FullData",
    "NamedRangeSummary",
    "SampleData",
    "SamplingMethod",
    "SheetFull",
    "SheetInfo",
    "SheetMetadata",
    "SheetSample",
    "SheetSnapshot",
    "SheetSnapshotStats",
    "SheetStructure",
    "SnapshotData",
    "StructureSummary",
    "TierData",
]
