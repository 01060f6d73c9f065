"""
Tier record models.

Five record shapes, one per retrieval tier, discriminated by `tier`.
Each record repeats the common prefix (spreadsheet id, title, sheets,
retrieved_at) and carries every section of the tiers below it, so the
serialized field set of tier N is a superset of tier N-1.

All records are frozen: a retrieval always yields a new record.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SamplingMethod(str, Enum):
    """Tier 3 row sampling strategies. Only TOP is produced."""

    TOP = "top"
    RANDOM = "random"
    STRATIFIED = "stratified"


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class SheetInfo(_FrozenModel):
    """Per-sheet grid properties from tier 1"""

    sheet_id: int = Field(..., description="Sheets API sheetId")
    title: str = Field(..., description="Sheet title")
    index: int = Field(0, description="Position of the sheet in the workbook")
    row_count: int = Field(1000, description="Declared grid rows")
    column_count: int = Field(26, description="Declared grid columns")


class NamedRangeSummary(_FrozenModel):
    name: str
    range: str


class DataValidationSummary(_FrozenModel):
    """Data validation rule summary"""

    range: str = Field(..., description="A1 reference the rule applies to")
    type: str = Field(..., description="Condition type, e.g. ONE_OF_LIST")
    condition: str = Field(..., description="Type plus condition values")
    strict: bool = False


class ConditionalFormatSummary(_FrozenModel):
    """Conditional format rule summary"""

    range: str = Field(..., description="Comma separated A1 ranges")
    type: str = Field(..., description="Boolean condition type or GRADIENT")
    description: str = ""


class StructureSummary(_FrozenModel):
    """Structural elements aggregated across all sheets (tier 2)"""

    merges: int = 0
    conditional_formats: int = 0
    protected_ranges: int = 0
    charts: int = 0
    pivots: int = Field(0, description="Always 0: the tier 2 projection cannot see pivot tables")
    filters: int = Field(0, description="Sheets with a basic filter")
    named_ranges: List[NamedRangeSummary] = Field(default_factory=list)
    frozen_rows: int = Field(0, description="Maximum frozen rows over all sheets")
    frozen_columns: int = Field(0, description="Maximum frozen columns over all sheets")
    data_validations: Optional[List[DataValidationSummary]] = None
    conditional_format_details: Optional[List[ConditionalFormatSummary]] = None
    has_basic_filter: bool = False
    filter_views: Optional[int] = None
    developer_metadata: Optional[int] = None


class SampleData(_FrozenModel):
    """Top rows of one sheet (tier 3)"""

    headers: List[Any] = Field(default_factory=list)
    rows: List[List[Any]] = Field(default_factory=list)
    sample_size: int = Field(0, description="Rows actually returned, header excluded")
    total_rows: int = Field(0, description="Declared rows, header excluded")
    sampling_method: SamplingMethod = SamplingMethod.TOP


class FullData(_FrozenModel):
    """Complete value grid of one sheet (tier 4)"""

    values: List[List[Any]] = Field(default_factory=list)
    row_count: int = 0
    column_count: int = 0


class SheetSnapshotStats(_FrozenModel):
    """Cell-level statistics for one sheet (tier 5)"""

    sheet_id: int
    title: str
    formula_count: int = 0
    data_validation_count: int = 0
    data_validations: List[DataValidationSummary] = Field(default_factory=list)
    conditional_formats: List[ConditionalFormatSummary] = Field(default_factory=list)
    hyperlink_count: int = 0
    note_count: int = 0
    populated_cell_count: int = 0
    format_diversity: int = Field(0, description="Distinct format signatures among cells")


class SnapshotData(_FrozenModel):
    sheets: List[SheetSnapshotStats] = Field(default_factory=list)
    truncated: bool = False
    truncation_reason: Optional[str] = None


class SheetMetadata(_FrozenModel):
    """Tier 1: spreadsheet title and sheet dimensions"""

    tier: Literal[1] = 1
    spreadsheet_id: str
    title: str
    sheets: List[SheetInfo]
    retrieved_at: int = Field(..., description="Epoch milliseconds")


class SheetStructure(_FrozenModel):
    """Tier 2: metadata plus structural element counts"""

    tier: Literal[2] = 2
    spreadsheet_id: str
    title: str
    sheets: List[SheetInfo]
    retrieved_at: int
    structure: StructureSummary


class SheetSample(_FrozenModel):
    """Tier 3: structure plus a top-N sample of one sheet"""

    tier: Literal[3] = 3
    spreadsheet_id: str
    title: str
    sheets: List[SheetInfo]
    retrieved_at: int
    structure: StructureSummary
    sample_data: SampleData


class SheetFull(_FrozenModel):
    """Tier 4: sample plus the full value grid of the same sheet"""

    tier: Literal[4] = 4
    spreadsheet_id: str
    title: str
    sheets: List[SheetInfo]
    retrieved_at: int
    structure: StructureSummary
    sample_data: SampleData
    full_data: FullData


class SheetSnapshot(_FrozenModel):
    """Tier 5: full data plus per-cell statistics from grid data"""

    tier: Literal[5] = 5
    spreadsheet_id: str
    title: str
    sheets: List[SheetInfo]
    retrieved_at: int
    structure: StructureSummary
    sample_data: SampleData
    full_data: FullData
    snapshot: SnapshotData


TierData = Annotated[
    Union[SheetMetadata, SheetStructure, SheetSample, SheetFull, SheetSnapshot],
    Field(discriminator="tier"),
]
