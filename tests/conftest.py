from __future__ import annotations

from typing import Any, Dict

import pytest

from tests.fakes import FakeClock, FakeSheetsClient, RecordingCache, sheet_properties, workbook
from tiered_sheets.services.tiered_retrieval import TieredRetrieval


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> RecordingCache:
    return RecordingCache(clock=clock)


@pytest.fixture
def small_workbook() -> Dict[str, Any]:
    return workbook(sheet_properties(0, "Sheet1", rows=5, cols=3))


@pytest.fixture
def client(small_workbook: Dict[str, Any]) -> FakeSheetsClient:
    return FakeSheetsClient(
        metadata=small_workbook,
        default_values=[["A", "B", "C"], [1, 2, 3], [4, 5, 6]],
    )


@pytest.fixture
def retrieval(cache: RecordingCache, client: FakeSheetsClient) -> TieredRetrieval:
    return TieredRetrieval(cache, client)
