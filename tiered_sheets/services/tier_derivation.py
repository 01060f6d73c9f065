"""
Tier derivation functions.

Each tier is a pure function of the tier below it and one raw Sheets API
response:

    derive_tier1(spreadsheet_id, raw_metadata, retrieved_at) -> SheetMetadata
    derive_tier2(SheetMetadata, raw_structure)               -> SheetStructure
    derive_tier3(SheetStructure, sheet, values)              -> SheetSample
    derive_tier4(SheetSample, values)                        -> SheetFull
    derive_tier5(SheetFull, raw_grid, window)                -> SheetSnapshot

No I/O and no caching here; TieredRetrieval does both around these calls.
The field projections each tier requests are defined next to the code that
reads their output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from tiered_sheets.exceptions import SheetNotFoundError, SpreadsheetNotFoundError
from tiered_sheets.models.tiers import (
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
)
from tiered_sheets.utils.column_letters import (
    a1_range,
    cell_reference,
    grid_range_to_a1,
    quote_sheet_title,
)

DEFAULT_ROW_COUNT = 1000
DEFAULT_COLUMN_COUNT = 26
DEFAULT_CONDITIONAL_FORMAT_LIMIT = 20
DEFAULT_DATA_VALIDATION_LIMIT = 50

METADATA_FIELDS = (
    "spreadsheetId,properties.title,"
    "sheets(properties(sheetId,title,index,gridProperties(rowCount,columnCount)))"
)

_STRUCTURE_SHEET_FIELDS = (
    "properties,merges,conditionalFormats(ranges,booleanRule,gradientRule),"
    "protectedRanges,basicFilter,charts,filterViews,developerMetadata"
)

# Large workbooks skip data(rowMetadata,columnMetadata); frozen rows/columns
# come from gridProperties either way.
STRUCTURE_FIELDS_REDUCED = (
    f"spreadsheetId,properties.title,sheets({_STRUCTURE_SHEET_FIELDS}),"
    "namedRanges,developerMetadata"
)
STRUCTURE_FIELDS_FULL = (
    f"spreadsheetId,properties.title,sheets({_STRUCTURE_SHEET_FIELDS},"
    "data(rowMetadata,columnMetadata)),namedRanges,developerMetadata"
)

SNAPSHOT_FIELDS = ",".join([
    "sheets(properties(sheetId,title)",
    "data(startRow,startColumn,rowData(values(userEnteredValue,effectiveValue,formattedValue,"
    "userEnteredFormat(numberFormat,textFormat,backgroundColor),dataValidation,hyperlink,note)))",
    "conditionalFormats(ranges,booleanRule(condition,format),gradientRule)",
    "filterViews(filterViewId,title,range)",
    "charts(chartId,position,spec(title))",
    "merges",
    "protectedRanges(range,description,warningOnly))",
])


# ---------------------------------------------------------------------------
# Projections and bounds
# ---------------------------------------------------------------------------


def is_large_workbook(sheet_count: int, threshold: int = 10) -> bool:
    return sheet_count > threshold


def structure_fields(sheet_count: int, threshold: int = 10) -> str:
    """Tier 2 field mask: reduced when the workbook has more than `threshold` sheets."""
    if is_large_workbook(sheet_count, threshold):
        return STRUCTURE_FIELDS_REDUCED
    return STRUCTURE_FIELDS_FULL


def effective_sample_size(requested: Optional[int], default: int, maximum: int, row_count: int) -> int:
    """min(requested, maximum, row_count); `default` replaces a missing request only."""
    size = default if requested is None else requested
    return max(0, min(size, maximum, row_count))


@dataclass(frozen=True)
class SnapshotWindow:
    """Bounded tier 5 fetch window for one sheet."""

    rows: int
    columns: int
    truncated: bool
    reason: Optional[str] = None

    def range_for(self, sheet_title: str) -> str:
        return a1_range(sheet_title, max(self.columns, 1) - 1, max(self.rows, 1))


def snapshot_window(row_count: int, column_count: int, max_rows: int = 5000, max_columns: int = 100) -> SnapshotWindow:
    rows = min(row_count, max_rows)
    columns = min(column_count, max_columns)
    truncated = row_count > max_rows or column_count > max_columns
    reason = None
    if truncated:
        reason = (
            f"Data limited to {rows} rows x {columns} cols "
            f"(original: {row_count} x {column_count})"
        )
    return SnapshotWindow(rows=rows, columns=columns, truncated=truncated, reason=reason)


def select_sheet(sheets: Sequence[SheetInfo], spreadsheet_id: str, sheet_id: Optional[int] = None) -> SheetInfo:
    """Sheet with `sheet_id`, or the first sheet when no id is given."""
    if sheet_id is None:
        if sheets:
            return sheets[0]
        raise SheetNotFoundError(spreadsheet_id, sheet_id)
    for sheet in sheets:
        if sheet.sheet_id == sheet_id:
            return sheet
    raise SheetNotFoundError(spreadsheet_id, sheet_id)


# ---------------------------------------------------------------------------
# Shared extraction helpers
# ---------------------------------------------------------------------------


def _sheets_or_raise(spreadsheet_id: str, response: Mapping[str, Any]) -> List[Dict[str, Any]]:
    sheets = response.get("sheets")
    if sheets is None:
        raise SpreadsheetNotFoundError(spreadsheet_id)
    return sheets


def _prefix(record: Any) -> Dict[str, Any]:
    return {
        "spreadsheet_id": record.spreadsheet_id,
        "title": record.title,
        "sheets": record.sheets,
        "retrieved_at": record.retrieved_at,
    }


def _len(value: Optional[Iterable[Any]]) -> int:
    return len(value) if value else 0


def _or_default(value: Optional[int], default: int) -> int:
    return default if value is None else value


def describe_conditional_formats(
    rules: Optional[Sequence[Mapping[str, Any]]],
    *,
    limit: int = DEFAULT_CONDITIONAL_FORMAT_LIMIT,
    include_values: bool = True,
) -> List[ConditionalFormatSummary]:
    """
    Summaries for the first `limit` conditional format rules of a sheet.

    Boolean rules report their condition type (CUSTOM_FORMULA when absent);
    with `include_values` the description also lists condition values.
    Gradient rules report GRADIENT.
    """
    details: List[ConditionalFormatSummary] = []
    for rule in list(rules or [])[:limit]:
        ranges = ", ".join(grid_range_to_a1(r) for r in rule.get("ranges") or [])
        rule_type = "unknown"
        description = ""

        boolean_rule = rule.get("booleanRule")
        if boolean_rule:
            condition = boolean_rule.get("condition") or {}
            rule_type = condition.get("type") or "CUSTOM_FORMULA"
            description = rule_type
            if include_values:
                values = ", ".join(
                    str(v.get("userEnteredValue") or v.get("relativeDate") or "")
                    for v in condition.get("values") or []
                )
                if values:
                    description = f"{rule_type}: {values}"
        elif rule.get("gradientRule"):
            rule_type = "GRADIENT"
            description = "Color scale gradient"

        details.append(ConditionalFormatSummary(range=ranges, type=rule_type, description=description))
    return details


def _named_range(named_range: Mapping[str, Any], titles: Mapping[int, str]) -> NamedRangeSummary:
    name = named_range.get("name") or "Unnamed"
    grid_range = named_range.get("range")
    if not grid_range:
        return NamedRangeSummary(name=name, range="Unknown")
    rendered = grid_range_to_a1(grid_range)
    title = titles.get(grid_range.get("sheetId", 0))
    if title is not None:
        rendered = f"{quote_sheet_title(title)}!{rendered}"
    return NamedRangeSummary(name=name, range=rendered)


@dataclass(frozen=True)
class FormatSignature:
    """Visual identity of a cell format used to measure format diversity."""

    number_format_type: Optional[str] = None
    bold: bool = False
    italic: bool = False
    background_color: Optional[Tuple[Tuple[str, Any], ...]] = None

    @classmethod
    def from_cell_format(cls, cell_format: Optional[Mapping[str, Any]]) -> Optional["FormatSignature"]:
        """Signature of a userEnteredFormat, or None when it sets none of the tracked fields."""
        if not cell_format:
            return None
        text_format = cell_format.get("textFormat") or {}
        background = cell_format.get("backgroundColor")
        signature = cls(
            number_format_type=(cell_format.get("numberFormat") or {}).get("type") or None,
            bold=bool(text_format.get("bold")),
            italic=bool(text_format.get("italic")),
            background_color=tuple(sorted(background.items())) if background is not None else None,
        )
        if signature == cls():
            return None
        return signature


def _validation_summary(rule: Mapping[str, Any], reference: str) -> DataValidationSummary:
    condition = rule.get("condition") or {}
    rule_type = condition.get("type") or "CUSTOM"
    values = ", ".join(str(v.get("userEnteredValue") or "") for v in condition.get("values") or [])
    return DataValidationSummary(
        range=reference,
        type=rule_type,
        condition=f"{rule_type}: {values}" if values else rule_type,
        strict=bool(rule.get("strict", False)),
    )


def sheet_snapshot_stats(
    sheet_data: Mapping[str, Any],
    *,
    validation_limit: int = DEFAULT_DATA_VALIDATION_LIMIT,
    conditional_format_limit: int = DEFAULT_CONDITIONAL_FORMAT_LIMIT,
) -> SheetSnapshotStats:
    """Walk every returned cell of one sheet once and accumulate statistics."""
    properties = sheet_data.get("properties") or {}
    formula_count = 0
    validation_count = 0
    hyperlink_count = 0
    note_count = 0
    populated = 0
    signatures = set()
    validations: List[DataValidationSummary] = []

    for grid in sheet_data.get("data") or []:
        start_row = grid.get("startRow") or 0
        start_col = grid.get("startColumn") or 0
        for row_idx, row in enumerate(grid.get("rowData") or []):
            for col_idx, cell in enumerate((row or {}).get("values") or []):
                if not cell:
                    continue

                if (cell.get("userEnteredValue") or {}).get("formulaValue"):
                    formula_count += 1
                if cell.get("effectiveValue") or cell.get("formattedValue"):
                    populated += 1
                if cell.get("hyperlink"):
                    hyperlink_count += 1
                if cell.get("note"):
                    note_count += 1

                rule = cell.get("dataValidation")
                if rule:
                    validation_count += 1
                    if len(validations) < validation_limit:
                        reference = cell_reference(start_col + col_idx, start_row + row_idx)
                        validations.append(_validation_summary(rule, reference))

                signature = FormatSignature.from_cell_format(cell.get("userEnteredFormat"))
                if signature is not None:
                    signatures.add(signature)

    return SheetSnapshotStats(
        sheet_id=properties.get("sheetId") or 0,
        title=properties.get("title") or "Sheet",
        formula_count=formula_count,
        data_validation_count=validation_count,
        data_validations=validations,
        conditional_formats=describe_conditional_formats(
            sheet_data.get("conditionalFormats"),
            limit=conditional_format_limit,
            include_values=False,
        ),
        hyperlink_count=hyperlink_count,
        note_count=note_count,
        populated_cell_count=populated,
        format_diversity=len(signatures),
    )


# ---------------------------------------------------------------------------
# Tier derivations
# ---------------------------------------------------------------------------


def derive_tier1(spreadsheet_id: str, response: Mapping[str, Any], retrieved_at: int) -> SheetMetadata:
    """Tier 1 from a METADATA_FIELDS response."""
    sheets = _sheets_or_raise(spreadsheet_id, response)
    infos = []
    for sheet in sheets:
        properties = sheet.get("properties") or {}
        grid = properties.get("gridProperties") or {}
        infos.append(
            SheetInfo(
                sheet_id=properties.get("sheetId") or 0,
                title=properties.get("title") or "Sheet1",
                index=properties.get("index") or 0,
                row_count=_or_default(grid.get("rowCount"), DEFAULT_ROW_COUNT),
                column_count=_or_default(grid.get("columnCount"), DEFAULT_COLUMN_COUNT),
            )
        )
    return SheetMetadata(
        spreadsheet_id=spreadsheet_id,
        title=(response.get("properties") or {}).get("title") or "Untitled",
        sheets=infos,
        retrieved_at=retrieved_at,
    )


def derive_tier2(
    metadata: SheetMetadata,
    response: Mapping[str, Any],
    *,
    conditional_format_limit: int = DEFAULT_CONDITIONAL_FORMAT_LIMIT,
) -> SheetStructure:
    """Tier 2 from tier 1 and a structure projection response."""
    sheets = _sheets_or_raise(metadata.spreadsheet_id, response)

    merges = conditional_formats = protected_ranges = charts = 0
    filters = filter_views = developer_metadata = 0
    frozen_rows = frozen_columns = 0
    details: List[ConditionalFormatSummary] = []
    titles: Dict[int, str] = {}

    for sheet in sheets:
        properties = sheet.get("properties") or {}
        grid = properties.get("gridProperties") or {}
        titles[properties.get("sheetId") or 0] = properties.get("title") or "Sheet1"

        merges += _len(sheet.get("merges"))
        conditional_formats += _len(sheet.get("conditionalFormats"))
        protected_ranges += _len(sheet.get("protectedRanges"))
        charts += _len(sheet.get("charts"))
        if sheet.get("basicFilter"):
            filters += 1
        filter_views += _len(sheet.get("filterViews"))
        developer_metadata += _len(sheet.get("developerMetadata"))
        frozen_rows = max(frozen_rows, grid.get("frozenRowCount") or 0)
        frozen_columns = max(frozen_columns, grid.get("frozenColumnCount") or 0)

        details.extend(
            describe_conditional_formats(sheet.get("conditionalFormats"), limit=conditional_format_limit)
        )

    developer_metadata += _len(response.get("developerMetadata"))
    named_ranges = [_named_range(nr, titles) for nr in response.get("namedRanges") or []]

    structure = StructureSummary(
        merges=merges,
        conditional_formats=conditional_formats,
        protected_ranges=protected_ranges,
        charts=charts,
        pivots=0,
        filters=filters,
        named_ranges=named_ranges,
        frozen_rows=frozen_rows,
        frozen_columns=frozen_columns,
        conditional_format_details=details or None,
        has_basic_filter=filters > 0,
        filter_views=filter_views or None,
        developer_metadata=developer_metadata or None,
    )
    return SheetStructure(**_prefix(metadata), structure=structure)


def derive_tier3(structure: SheetStructure, sheet: SheetInfo, values: Sequence[Sequence[Any]]) -> SheetSample:
    """Tier 3 from tier 2 and the top rows (header first) of `sheet`."""
    rows = [list(row) for row in values[1:]]
    sample = SampleData(
        headers=list(values[0]) if values else [],
        rows=rows,
        sample_size=len(rows),
        total_rows=sheet.row_count - 1,
        sampling_method=SamplingMethod.TOP,
    )
    return SheetSample(**_prefix(structure), structure=structure.structure, sample_data=sample)


def derive_tier4(sample: SheetSample, values: Sequence[Sequence[Any]]) -> SheetFull:
    """Tier 4 from tier 3 and the full value grid of the same sheet."""
    grid = [list(row) for row in values]
    full = FullData(
        values=grid,
        row_count=len(grid),
        column_count=len(grid[0]) if grid else 0,
    )
    return SheetFull(
        **_prefix(sample),
        structure=sample.structure,
        sample_data=sample.sample_data,
        full_data=full,
    )


def derive_tier5(
    full: SheetFull,
    response: Mapping[str, Any],
    window: SnapshotWindow,
    *,
    validation_limit: int = DEFAULT_DATA_VALIDATION_LIMIT,
    conditional_format_limit: int = DEFAULT_CONDITIONAL_FORMAT_LIMIT,
) -> SheetSnapshot:
    """Tier 5 from tier 4 and a grid-data response bounded by `window`."""
    stats = [
        sheet_snapshot_stats(
            sheet_data,
            validation_limit=validation_limit,
            conditional_format_limit=conditional_format_limit,
        )
        for sheet_data in response.get("sheets") or []
    ]
    snapshot = SnapshotData(
        sheets=stats,
        truncated=window.truncated,
        truncation_reason=window.reason,
    )
    return SheetSnapshot(
        **_prefix(full),
        structure=full.structure,
        sample_data=full.sample_data,
        full_data=full.full_data,
        snapshot=snapshot,
    )
