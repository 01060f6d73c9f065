"""
Tiered Retrieval

Progressive spreadsheet fetching in five levels, each cached on its own:

    Level 1: Metadata  - title and sheet dimensions          (TTL 5 min)
    Level 2: Structure - merges, rules, filters, named ranges (TTL 3 min)
    Level 3: Sample    - top-N rows of one sheet              (TTL 1 min)
    Level 4: Full      - every value of one sheet             (TTL 30 s)
    Level 5: Snapshot  - per-cell statistics, bounded window  (TTL 15 s)

Every level is cache-first. On a miss it obtains the level below through
its public accessor, issues one remote fetch for its own fields, derives a
new record and caches it only once it is complete.

Errors from the client or cache propagate unchanged. Concurrent calls for
the same key are not coalesced.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel

from tiered_sheets.models.tiers import (
    SheetFull,
    SheetMetadata,
    SheetSample,
    SheetSnapshot,
    SheetStructure,
)
from tiered_sheets.services.sheets_client import SheetsClient
from tiered_sheets.services.tier_cache import TierCache
from tiered_sheets.services.tier_derivation import (
    DEFAULT_CONDITIONAL_FORMAT_LIMIT,
    DEFAULT_DATA_VALIDATION_LIMIT,
    METADATA_FIELDS,
    SNAPSHOT_FIELDS,
    derive_tier1,
    derive_tier2,
    derive_tier3,
    derive_tier4,
    derive_tier5,
    effective_sample_size,
    is_large_workbook,
    select_sheet,
    snapshot_window,
    structure_fields,
)
from tiered_sheets.utils.column_letters import a1_range

logger = logging.getLogger(__name__)

TIER_TTL_MS: Dict[int, int] = {
    1: 5 * 60 * 1000,
    2: 3 * 60 * 1000,
    3: 1 * 60 * 1000,
    4: 30 * 1000,
    5: 15 * 1000,
}

FULL_TIER_SAMPLE_SIZE = 100
VALUE_RENDER_OPTION = "UNFORMATTED_VALUE"

_T = TypeVar("_T", bound=BaseModel)


def cache_key(tier: int, spreadsheet_id: str, sheet_id: Optional[int] = None) -> str:
    """`tier:{n}:{id}` for tiers 1-2, `tier:{n}:{id}:{sheet_id|all}` for tiers 3-5."""
    if tier <= 2:
        return f"tier:{tier}:{spreadsheet_id}"
    return f"tier:{tier}:{spreadsheet_id}:{'all' if sheet_id is None else sheet_id}"


def _response_size(response: Any) -> int:
    return len(json.dumps(response, default=str))


class TieredRetrieval:
    """
    Tiered spreadsheet retrieval with per-tier caching.

    Both collaborators are injected; nothing is shared at module level.
    """

    def __init__(
        self,
        cache: TierCache,
        client: SheetsClient,
        *,
        default_sample_size: int = 100,
        max_sample_size: int = 500,
        snapshot_max_rows: int = 5000,
        snapshot_max_columns: int = 100,
        large_workbook_sheet_threshold: int = 10,
        conditional_format_limit: int = DEFAULT_CONDITIONAL_FORMAT_LIMIT,
        data_validation_limit: int = DEFAULT_DATA_VALIDATION_LIMIT,
    ):
        self.cache = cache
        self.client = client
        self.default_sample_size = default_sample_size
        self.max_sample_size = max_sample_size
        self.snapshot_max_rows = snapshot_max_rows
        self.snapshot_max_columns = snapshot_max_columns
        self.large_workbook_sheet_threshold = large_workbook_sheet_threshold
        self.conditional_format_limit = conditional_format_limit
        self.data_validation_limit = data_validation_limit

    async def _cached(self, key: str, model: Type[_T]) -> Optional[_T]:
        cached = await self.cache.get(key)
        if cached is None:
            return None
        if isinstance(cached, model):
            return cached
        return model.model_validate(cached)

    async def get_metadata(self, spreadsheet_id: str) -> SheetMetadata:
        """
        Level 1: title and sheet dimensions only.

        Raises:
            SpreadsheetNotFoundError: response has no sheets collection
        """
        key = cache_key(1, spreadsheet_id)
        cached = await self._cached(key, SheetMetadata)
        if cached is not None:
            logger.debug(f"Tier 1 cache hit for {spreadsheet_id}")
            return cached

        logger.debug(f"Tier 1 fetching metadata for {spreadsheet_id}")
        response = await self.client.get_spreadsheet(spreadsheet_id, fields=METADATA_FIELDS)

        metadata = derive_tier1(spreadsheet_id, response, retrieved_at=int(time.time() * 1000))

        await self.cache.set(key, metadata, TIER_TTL_MS[1])
        logger.info(
            f"Tier 1 metadata retrieved for {spreadsheet_id}: "
            f"{len(metadata.sheets)} sheets, {_response_size(response)} bytes"
        )
        return metadata

    async def get_structure(self, spreadsheet_id: str) -> SheetStructure:
        """
        Level 2: structural elements without cell data.

        Workbooks with more sheets than the large-workbook threshold are
        fetched without row/column metadata. Pivot tables are not visible in
        either projection and are always reported as 0.
        """
        key = cache_key(2, spreadsheet_id)
        cached = await self._cached(key, SheetStructure)
        if cached is not None:
            logger.debug(f"Tier 2 cache hit for {spreadsheet_id}")
            return cached

        metadata = await self.get_metadata(spreadsheet_id)

        sheet_count = len(metadata.sheets)
        fields = structure_fields(sheet_count, self.large_workbook_sheet_threshold)
        logger.debug(
            f"Tier 2 fetching structure for {spreadsheet_id} "
            f"(sheets={sheet_count}, large_workbook={is_large_workbook(sheet_count, self.large_workbook_sheet_threshold)})"
        )
        response = await self.client.get_spreadsheet(
            spreadsheet_id,
            fields=fields,
            include_grid_data=False,
        )

        structure = derive_tier2(
            metadata,
            response,
            conditional_format_limit=self.conditional_format_limit,
        )

        await self.cache.set(key, structure, TIER_TTL_MS[2])
        summary = structure.structure
        logger.info(
            f"Tier 2 structure retrieved for {spreadsheet_id}: "
            f"merges={summary.merges} conditional_formats={summary.conditional_formats} "
            f"charts={summary.charts} filters={summary.filters} "
            f"named_ranges={len(summary.named_ranges)}, {_response_size(response)} bytes"
        )
        return structure

    async def get_sample(
        self,
        spreadsheet_id: str,
        sheet_id: Optional[int] = None,
        sample_size: Optional[int] = None,
    ) -> SheetSample:
        """
        Level 3: header row plus the top N rows of one sheet.

        Args:
            spreadsheet_id: Spreadsheet ID
            sheet_id: Target sheet; the first sheet when omitted
            sample_size: Requested rows, bounded by the configured maximum
                and the sheet's row count

        Raises:
            SheetNotFoundError: `sheet_id` is not in the spreadsheet
        """
        key = cache_key(3, spreadsheet_id, sheet_id)
        cached = await self._cached(key, SheetSample)
        if cached is not None:
            logger.debug(f"Tier 3 cache hit for {spreadsheet_id} sheet={sheet_id}")
            return cached

        structure = await self.get_structure(spreadsheet_id)
        target = select_sheet(structure.sheets, spreadsheet_id, sheet_id)

        size = effective_sample_size(
            sample_size,
            self.default_sample_size,
            self.max_sample_size,
            target.row_count,
        )
        range_name = a1_range(target.title, target.column_count - 1, size + 1)
        logger.debug(f"Tier 3 fetching sample {range_name} for {spreadsheet_id}")
        values = await self.client.get_values(
            spreadsheet_id,
            range_name,
            value_render_option=VALUE_RENDER_OPTION,
        )

        sample = derive_tier3(structure, target, values)

        await self.cache.set(key, sample, TIER_TTL_MS[3])
        logger.info(
            f"Tier 3 sample retrieved for {spreadsheet_id} sheet={target.sheet_id}: "
            f"{sample.sample_data.sample_size} of {target.row_count} rows"
        )
        return sample

    async def get_full(self, spreadsheet_id: str, sheet_id: Optional[int] = None) -> SheetFull:
        """
        Level 4: every value of one sheet.

        The fetch is not bounded; get_full_snapshot reads a capped window.
        """
        key = cache_key(4, spreadsheet_id, sheet_id)
        cached = await self._cached(key, SheetFull)
        if cached is not None:
            logger.debug(f"Tier 4 cache hit for {spreadsheet_id} sheet={sheet_id}")
            return cached

        logger.warning(f"Fetching full sheet data for {spreadsheet_id} - this may be slow for large sheets")

        sample = await self.get_sample(spreadsheet_id, sheet_id, FULL_TIER_SAMPLE_SIZE)
        target = select_sheet(sample.sheets, spreadsheet_id, sheet_id)

        range_name = a1_range(target.title, target.column_count - 1, target.row_count)
        values = await self.client.get_values(
            spreadsheet_id,
            range_name,
            value_render_option=VALUE_RENDER_OPTION,
        )

        full = derive_tier4(sample, values)

        await self.cache.set(key, full, TIER_TTL_MS[4])
        logger.info(
            f"Tier 4 full data retrieved for {spreadsheet_id} sheet={target.sheet_id}: "
            f"{full.full_data.row_count} x {full.full_data.column_count}"
        )
        return full

    async def get_full_snapshot(
        self,
        spreadsheet_id: str,
        sheet_id: Optional[int] = None,
        max_rows: Optional[int] = None,
    ) -> SheetSnapshot:
        """
        Level 5: cell-level statistics from grid data.

        Fetches values, formulas, formats, validation rules, hyperlinks and
        notes for a window of at most `max_rows` rows and the column cap.
        The record is flagged as truncated when the sheet exceeds either.
        `max_rows` defaults to the configured snapshot row cap (5000).
        """
        if max_rows is None:
            max_rows = self.snapshot_max_rows
        key = cache_key(5, spreadsheet_id, sheet_id)
        cached = await self._cached(key, SheetSnapshot)
        if cached is not None:
            logger.debug(f"Tier 5 cache hit for {spreadsheet_id} sheet={sheet_id}")
            return cached

        logger.info(f"Tier 5 fetching full snapshot for {spreadsheet_id} sheet={sheet_id} max_rows={max_rows}")

        full = await self.get_full(spreadsheet_id, sheet_id)
        target = select_sheet(full.sheets, spreadsheet_id, sheet_id)

        window = snapshot_window(
            target.row_count,
            target.column_count,
            max_rows=max_rows,
            max_columns=self.snapshot_max_columns,
        )
        response = await self.client.get_spreadsheet(
            spreadsheet_id,
            fields=SNAPSHOT_FIELDS,
            include_grid_data=True,
            ranges=[window.range_for(target.title)],
        )

        snapshot = derive_tier5(
            full,
            response,
            window,
            validation_limit=self.data_validation_limit,
            conditional_format_limit=self.conditional_format_limit,
        )

        await self.cache.set(key, snapshot, TIER_TTL_MS[5])
        stats = snapshot.snapshot.sheets
        logger.info(
            f"Tier 5 full snapshot retrieved for {spreadsheet_id}: "
            f"sheets={len(stats)} truncated={window.truncated} "
            f"formulas={sum(s.formula_count for s in stats)} "
            f"validations={sum(s.data_validation_count for s in stats)} "
            f"hyperlinks={sum(s.hyperlink_count for s in stats)} "
            f"notes={sum(s.note_count for s in stats)}"
        )
        return snapshot
