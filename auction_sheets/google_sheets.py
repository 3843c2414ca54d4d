# auction_sheets/google_sheets.py
"""Spreadsheet primitives over the Google Sheets v4 REST API.

Expects an already-issued OAuth access token; every non-2xx response is
raised as SheetStoreError.
"""
from typing import Any, List, Sequence, Tuple
from urllib.parse import quote
import requests
from .sheets import SheetBackend, SheetStoreError, TabInfo
from .utils import logger

SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"
LAST_COLUMN = "Z"


def a1_range(title: str, start_row: int, open_ended: bool = True) -> str:
    """'My Tab', 2 -> "'My Tab'!A2:Z" (or A2 for a top-left anchor)."""
    sheet = "'" + title.replace("'", "''") + "'"
    if open_ended:
        return f"{sheet}!A{start_row}:{LAST_COLUMN}"
    return f"{sheet}!A{start_row}"


class GoogleSheetsBackend(SheetBackend):
    def __init__(self, spreadsheet_id: str, access_token: str, session: requests.Session | None = None,
                 timeout: float = 60):
        if not spreadsheet_id:
            raise SheetStoreError("GOOGLE_SHEET_ID not set")
        self.spreadsheet_id = spreadsheet_id
        self.timeout = timeout
        self.http = session or requests.Session()
        self.http.headers.update({
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        })

    def _call(self, method: str, path: str, **kwargs) -> dict:
        url = f"{SHEETS_API}/{self.spreadsheet_id}{path}"
        try:
            resp = self.http.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error("Sheets %s %s failed: %s", method, path, e)
            raise SheetStoreError(f"Sheets request failed: {e}") from e
        return resp.json() if resp.content else {}

    def _batch_update(self, requests_: List[dict]) -> dict:
        return self._call("POST", ":batchUpdate", json={"requests": requests_})

    def list_tabs(self) -> List[TabInfo]:
        data = self._call("GET", "", params={"fields": "sheets.properties(sheetId,title)"})
        return [
            TabInfo(s["properties"]["sheetId"], s["properties"]["title"])
            for s in data.get("sheets", [])
        ]

    def add_tab(self, title: str) -> int:
        data = self._batch_update([{"addSheet": {"properties": {"title": title}}}])
        replies = data.get("replies") or [{}]
        return replies[0].get("addSheet", {}).get("properties", {}).get("sheetId", 0)

    def get_rows(self, title: str, start_row: int) -> List[List[Any]]:
        data = self._call("GET", "/values/" + quote(a1_range(title, start_row), safe=""))
        return data.get("values", [])

    def put_rows(self, title: str, start_row: int, rows: Sequence[Sequence[Any]]) -> None:
        self._call(
            "PUT",
            "/values/" + quote(a1_range(title, start_row, open_ended=False), safe=""),
            params={"valueInputOption": "USER_ENTERED"},
            json={"values": [list(r) for r in rows]},
        )

    def delete_row_ranges(self, tab_id: int, ranges: Sequence[Tuple[int, int]]) -> None:
        self._batch_update([
            {"deleteDimension": {"range": {
                "sheetId": tab_id,
                "dimension": "ROWS",
                "startIndex": start - 1,
                "endIndex": end,
            }}}
            for start, end in ranges
        ])

    def set_basic_filter(self, tab_id: int, descriptor: dict) -> None:
        self._batch_update([{"setBasicFilter": {"filter": descriptor}}])

    def clear_basic_filters(self, tab_ids: Sequence[int]) -> None:
        self._batch_update([{"clearBasicFilter": {"sheetId": i}} for i in tab_ids])

    def close(self) -> None:
        self.http.close()
