"""
Tiered retrieval orchestration tests

Covers cache-first behaviour, tier composition, TTLs, projection choice and
error propagation with a fake Sheets client and an in-memory cache.
"""

import pytest
from pydantic import ValidationError

from tests.fakes import FakeSheetsClient, RecordingCache, sheet_properties, workbook
from tiered_sheets.exceptions import RemoteFetchError, SheetNotFoundError, SpreadsheetNotFoundError
from tiered_sheets.models.tiers import SheetMetadata, SheetSample
from tiered_sheets.services.tier_derivation import (
    METADATA_FIELDS,
    SNAPSHOT_FIELDS,
    STRUCTURE_FIELDS_FULL,
    STRUCTURE_FIELDS_REDUCED,
)
from tiered_sheets.services.tiered_retrieval import TIER_TTL_MS, TieredRetrieval, cache_key


@pytest.mark.unit
class TestCacheKeysAndTtl:
    def test_ttl_strictly_decreases(self):
        ttls = [TIER_TTL_MS[tier] for tier in range(1, 6)]
        assert ttls == [300000, 180000, 60000, 30000, 15000]
        assert all(a > b for a, b in zip(ttls, ttls[1:]))

    def test_cache_key_format(self):
        assert cache_key(1, "abc") == "tier:1:abc"
        assert cache_key(2, "abc") == "tier:2:abc"
        assert cache_key(3, "abc") == "tier:3:abc:all"
        assert cache_key(4, "abc", 7) == "tier:4:abc:7"
        assert cache_key(5, "abc", 0) == "tier:5:abc:0"

    @pytest.mark.asyncio
    async def test_each_tier_written_with_its_ttl(self, retrieval, cache):
        await retrieval.get_full_snapshot("ss-1")

        written = {w["key"]: w["ttl_ms"] for w in cache.writes}
        assert written == {
            "tier:1:ss-1": 300000,
            "tier:2:ss-1": 180000,
            "tier:3:ss-1:all": 60000,
            "tier:4:ss-1:all": 30000,
            "tier:5:ss-1:all": 15000,
        }


@pytest.mark.unit
class TestMetadata:
    @pytest.mark.asyncio
    async def test_second_call_within_ttl_hits_cache(self, retrieval, client):
        first = await retrieval.get_metadata("ss-1")
        second = await retrieval.get_metadata("ss-1")

        assert len(client.spreadsheet_calls) == 1
        assert client.spreadsheet_calls[0]["fields"] == METADATA_FIELDS
        assert client.spreadsheet_calls[0]["include_grid_data"] is False
        assert second == first

    @pytest.mark.asyncio
    async def test_refetched_after_ttl_expiry(self, retrieval, client, clock):
        await retrieval.get_metadata("ss-1")
        clock.advance(301)
        await retrieval.get_metadata("ss-1")

        assert len(client.spreadsheet_calls) == 2

    @pytest.mark.asyncio
    async def test_missing_sheets_raises_and_caches_nothing(self, cache):
        client = FakeSheetsClient(metadata={"properties": {"title": "Broken"}})
        retrieval = TieredRetrieval(cache, client)

        with pytest.raises(SpreadsheetNotFoundError):
            await retrieval.get_metadata("ss-1")

        assert cache.writes == []

    @pytest.mark.asyncio
    async def test_json_cache_hit_is_revalidated(self, cache, client):
        retrieval = TieredRetrieval(cache, client)
        record = await retrieval.get_metadata("ss-1")
        await cache.set("tier:1:ss-1", record.model_dump(mode="json"), TIER_TTL_MS[1])

        cached = await retrieval.get_metadata("ss-1")

        assert isinstance(cached, SheetMetadata)
        assert cached == record
        assert len(client.spreadsheet_calls) == 1


@pytest.mark.unit
class TestStructure:
    @pytest.mark.asyncio
    async def test_eleven_sheets_request_reduced_projection(self, cache):
        sheets = [sheet_properties(i, f"S{i}", index=i) for i in range(11)]
        client = FakeSheetsClient(metadata=workbook(*sheets))

        await TieredRetrieval(cache, client).get_structure("ss-1")

        assert client.fields_requested() == [METADATA_FIELDS, STRUCTURE_FIELDS_REDUCED]

    @pytest.mark.asyncio
    async def test_ten_sheets_request_full_projection(self, cache):
        sheets = [sheet_properties(i, f"S{i}", index=i) for i in range(10)]
        client = FakeSheetsClient(metadata=workbook(*sheets))

        await TieredRetrieval(cache, client).get_structure("ss-1")

        assert client.fields_requested() == [METADATA_FIELDS, STRUCTURE_FIELDS_FULL]
        assert client.spreadsheet_calls[1]["include_grid_data"] is False

    @pytest.mark.asyncio
    async def test_reuses_cached_metadata(self, retrieval, client):
        await retrieval.get_metadata("ss-1")
        await retrieval.get_structure("ss-1")

        assert client.fields_requested() == [METADATA_FIELDS, STRUCTURE_FIELDS_FULL]


@pytest.mark.unit
class TestSample:
    @pytest.mark.asyncio
    async def test_end_to_end_sample(self, retrieval, client):
        sample = await retrieval.get_sample("ss-1", 0, 10)

        assert sample.sample_data.headers == ["A", "B", "C"]
        assert sample.sample_data.rows == [[1, 2, 3], [4, 5, 6]]
        assert sample.sample_data.sample_size == 2
        assert sample.sample_data.total_rows == 4
        # min(10, 500, 5) rows plus the header row
        assert client.values_calls == [
            {"spreadsheet_id": "ss-1", "range": "Sheet1!A1:C6", "value_render_option": "UNFORMATTED_VALUE"}
        ]

    @pytest.mark.asyncio
    async def test_sample_bounded_by_configured_maximum(self, cache):
        client = FakeSheetsClient(metadata=workbook(sheet_properties(0, "Big Sheet", rows=10000, cols=28)))
        retrieval = TieredRetrieval(cache, client, max_sample_size=500)

        await retrieval.get_sample("ss-1", sample_size=1000)

        assert client.values_calls[0]["range"] == "'Big Sheet'!A1:AB501"

    @pytest.mark.asyncio
    async def test_default_sample_size(self, cache):
        client = FakeSheetsClient(metadata=workbook(sheet_properties(0, "S", rows=10000, cols=1)))

        await TieredRetrieval(cache, client).get_sample("ss-1")

        assert client.values_calls[0]["range"] == "S!A1:A101"

    @pytest.mark.asyncio
    async def test_explicit_zero_sample_fetches_header_only(self, cache):
        client = FakeSheetsClient(
            metadata=workbook(sheet_properties(0, "S", rows=1000, cols=1)),
            default_values=[["header"]],
        )

        sample = await TieredRetrieval(cache, client).get_sample("ss-1", sample_size=0)

        assert client.values_calls[0]["range"] == "S!A1:A1"
        assert sample.sample_data.headers == ["header"]
        assert sample.sample_data.sample_size == 0

    @pytest.mark.asyncio
    async def test_sheet_without_columns_still_fetches(self, cache):
        client = FakeSheetsClient(metadata=workbook(sheet_properties(0, "Empty", rows=0, cols=0)))

        snapshot = await TieredRetrieval(cache, client).get_full_snapshot("ss-1")

        assert [call["range"] for call in client.values_calls] == ["Empty!A1:A1", "Empty!A1:A1"]
        assert client.spreadsheet_calls[-1]["ranges"] == ["Empty!A1:A1"]
        assert snapshot.snapshot.truncated is False

    @pytest.mark.asyncio
    async def test_targets_requested_sheet(self, cache):
        client = FakeSheetsClient(
            metadata=workbook(sheet_properties(0, "First", rows=3, cols=1), sheet_properties(42, "Second", rows=3, cols=2))
        )

        sample = await TieredRetrieval(cache, client).get_sample("ss-1", 42)

        assert client.values_calls[0]["range"] == "Second!A1:B4"
        assert await cache.get("tier:3:ss-1:42") == sample

    @pytest.mark.asyncio
    async def test_unknown_sheet_raises_not_found(self, retrieval, client, cache):
        with pytest.raises(SheetNotFoundError) as exc:
            await retrieval.get_sample("ss-1", 99)

        assert exc.value.sheet_id == 99
        assert client.values_calls == []
        assert "tier:3:ss-1:99" not in [w["key"] for w in cache.writes]


@pytest.mark.unit
class TestFull:
    @pytest.mark.asyncio
    async def test_fetches_declared_dimensions(self, retrieval, client):
        full = await retrieval.get_full("ss-1")

        assert [call["range"] for call in client.values_calls] == ["Sheet1!A1:C6", "Sheet1!A1:C5"]
        assert full.full_data.values == [["A", "B", "C"], [1, 2, 3], [4, 5, 6]]
        assert full.full_data.row_count == 3
        assert full.full_data.column_count == 3

    @pytest.mark.asyncio
    async def test_logs_slow_fetch_warning(self, retrieval, caplog):
        with caplog.at_level("WARNING", logger="tiered_sheets.services.tiered_retrieval"):
            await retrieval.get_full("ss-1")

        assert any("may be slow" in record.getMessage() for record in caplog.records)


@pytest.mark.unit
class TestSnapshot:
    @pytest.mark.asyncio
    async def test_large_sheet_truncated_and_window_requested(self, cache):
        grid = {
            "sheets": [
                {
                    "properties": {"sheetId": 0, "title": "Log"},
                    "data": [{"rowData": [{"values": [{"userEnteredValue": {"formulaValue": "=1+1"}}]}]}],
                }
            ]
        }
        client = FakeSheetsClient(metadata=workbook(sheet_properties(0, "Log", rows=20000, cols=120)), grid=grid)

        snapshot = await TieredRetrieval(cache, client).get_full_snapshot("ss-1", max_rows=5000)

        grid_call = client.spreadsheet_calls[-1]
        assert grid_call["fields"] == SNAPSHOT_FIELDS
        assert grid_call["include_grid_data"] is True
        assert grid_call["ranges"] == ["Log!A1:CV5000"]
        assert snapshot.snapshot.truncated is True
        assert "5000" in snapshot.snapshot.truncation_reason
        assert "20000" in snapshot.snapshot.truncation_reason
        assert snapshot.snapshot.sheets[0].formula_count == 1

    @pytest.mark.asyncio
    async def test_small_sheet_not_truncated(self, cache):
        client = FakeSheetsClient(metadata=workbook(sheet_properties(0, "S", rows=100, cols=10)))

        snapshot = await TieredRetrieval(cache, client).get_full_snapshot("ss-1")

        assert snapshot.snapshot.truncated is False
        assert snapshot.snapshot.truncation_reason is None
        assert client.spreadsheet_calls[-1]["ranges"] == ["S!A1:J100"]

    @pytest.mark.asyncio
    async def test_configured_row_cap_is_default(self, cache):
        client = FakeSheetsClient(metadata=workbook(sheet_properties(0, "S", rows=300, cols=2)))

        snapshot = await TieredRetrieval(cache, client, snapshot_max_rows=200).get_full_snapshot("ss-1")

        assert snapshot.snapshot.truncated is True
        assert client.spreadsheet_calls[-1]["ranges"] == ["S!A1:B200"]

    @pytest.mark.asyncio
    async def test_cached_snapshot_skips_all_fetches(self, retrieval, client):
        await retrieval.get_full_snapshot("ss-1")
        spreadsheet_calls = len(client.spreadsheet_calls)
        values_calls = len(client.values_calls)

        await retrieval.get_full_snapshot("ss-1")

        assert len(client.spreadsheet_calls) == spreadsheet_calls
        assert len(client.values_calls) == values_calls


@pytest.mark.unit
class TestStructuralSuperset:
    @pytest.mark.asyncio
    async def test_each_tier_serializes_a_superset_of_the_previous(self, retrieval):
        records = [
            await retrieval.get_metadata("ss-1"),
            await retrieval.get_structure("ss-1"),
            await retrieval.get_sample("ss-1"),
            await retrieval.get_full("ss-1"),
            await retrieval.get_full_snapshot("ss-1"),
        ]

        field_sets = [set(record.model_dump().keys()) for record in records]
        for lower, higher in zip(field_sets, field_sets[1:]):
            assert lower < higher
        assert [record.tier for record in records] == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_records_are_immutable(self, retrieval):
        sample = await retrieval.get_sample("ss-1")

        with pytest.raises(ValidationError):
            sample.title = "changed"
        assert isinstance(sample, SheetSample)


@pytest.mark.unit
class TestErrorPropagation:
    @pytest.mark.asyncio
    async def test_remote_failure_passes_through_unmodified(self, cache, client):
        error = RemoteFetchError("boom", status_code=503)
        client.error = error

        with pytest.raises(RemoteFetchError) as exc:
            await TieredRetrieval(cache, client).get_full_snapshot("ss-1")

        assert exc.value is error
        assert cache.writes == []

    @pytest.mark.asyncio
    async def test_lower_tier_failure_leaves_no_higher_tier_entry(self, cache, client):
        retrieval = TieredRetrieval(cache, client)
        await retrieval.get_structure("ss-1")
        client.error = RemoteFetchError("values down", status_code=500)

        with pytest.raises(RemoteFetchError):
            await retrieval.get_full("ss-1")

        assert [w["key"] for w in cache.writes] == ["tier:1:ss-1", "tier:2:ss-1"]
