"""
Google Sheets remote document client.

Only I/O lives here: one call per Sheets API read (spreadsheets.get and
spreadsheets.values.get), with field projections passed through unchanged.
Retries are not attempted; failures surface as typed exceptions.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence
from urllib.parse import quote

import httpx

from tiered_sheets.exceptions import RemoteFetchError, SpreadsheetNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"


class SheetsClient(Protocol):
    """Remote document API used by TieredRetrieval."""

    async def get_spreadsheet(
        self,
        spreadsheet_id: str,
        *,
        fields: str,
        include_grid_data: bool = False,
        ranges: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        ...

    async def get_values(
        self,
        spreadsheet_id: str,
        range_name: str,
        *,
        value_render_option: str = "UNFORMATTED_VALUE",
    ) -> List[List[Any]]:
        ...


class GoogleSheetsClient:
    """Google Sheets API v4 client (read-only)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        access_token: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.access_token = (access_token or "").strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        if not self.api_key and not self.access_token:
            logger.warning("Google API credentials not configured. Only public sheets will be accessible.")
        self._client: Optional[httpx.AsyncClient] = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Accept": "application/json", "User-Agent": "tiered-sheets/0.1"},
            )
        return self._client

    def _auth(self, params: Dict[str, Any]) -> Optional[Dict[str, str]]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        if self.api_key:
            params["key"] = self.api_key
        return None

    async def get_spreadsheet(
        self,
        spreadsheet_id: str,
        *,
        fields: str,
        include_grid_data: bool = False,
        ranges: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """
        spreadsheets.get with a field projection.

        Args:
            spreadsheet_id: Spreadsheet ID
            fields: Dot-path field mask
            include_grid_data: Ask for cell grid data
            ranges: Optional A1 ranges restricting grid data

        Returns:
            Decoded Spreadsheet resource
        """
        params: Dict[str, Any] = {
            "fields": fields,
            "includeGridData": "true" if include_grid_data else "false",
        }
        if ranges:
            params["ranges"] = list(ranges)
        url = f"{self.base_url}/{quote(spreadsheet_id, safe='')}"
        return await self._get_json(spreadsheet_id, url, params)

    async def get_values(
        self,
        spreadsheet_id: str,
        range_name: str,
        *,
        value_render_option: str = "UNFORMATTED_VALUE",
    ) -> List[List[Any]]:
        """
        spreadsheets.values.get for one A1 range.

        Returns:
            Row-major values; an empty list when the range has no data
        """
        params: Dict[str, Any] = {
            "majorDimension": "ROWS",
            "valueRenderOption": value_render_option,
        }
        url = f"{self.base_url}/{quote(spreadsheet_id, safe='')}/values/{quote(range_name, safe='')}"
        data = await self._get_json(spreadsheet_id, url, params)
        return data.get("values") or []

    async def _get_json(self, spreadsheet_id: str, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        client = await self._get_client()
        headers = self._auth(params)

        try:
            response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise SpreadsheetNotFoundError(spreadsheet_id, reason="Spreadsheet not found") from e
            logger.error(f"Sheets API returned {status} for {spreadsheet_id}")
            if status == 403:
                raise RemoteFetchError(
                    "Cannot access the Google Sheet. "
                    "Please ensure it's shared or the credentials have access.",
                    status_code=status,
                    details={"spreadsheet_id": spreadsheet_id},
                ) from e
            raise RemoteFetchError(
                f"Sheets API error {status}",
                status_code=status,
                details={"spreadsheet_id": spreadsheet_id},
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Sheets API request failed for {spreadsheet_id}: {e}")
            raise RemoteFetchError(str(e) or type(e).__name__, details={"spreadsheet_id": spreadsheet_id}) from e

        return response.json() or {}

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
