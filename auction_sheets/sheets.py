# auction_sheets/sheets.py
"""Tab-level synchronisation on top of a spreadsheet backend.

Rows are addressed 1-based with the header on row 1, the way the
spreadsheet shows them. A backend only has to provide the raw primitives
declared on `SheetBackend`; everything that reasons about headers, row
ranges and filter scope lives in `SheetStore`.
"""
from typing import Any, Callable, Iterable, List, NamedTuple, Optional, Sequence, Tuple, TypeVar

from .schemas import ColumnFilter, ColumnSort, SortFilterCriteria
from .utils import logger

T = TypeVar("T")

HEADER_ROW = 1
FIRST_DATA_ROW = 2


class SheetStoreError(Exception):
    """A store operation was rejected or could not be carried out."""


class TabNotFoundError(SheetStoreError):
    pass


class TabInfo(NamedTuple):
    tab_id: int
    title: str


class SheetBackend:
    """Raw spreadsheet primitives.

    Row ranges handed to `delete_row_ranges` are 1-based and inclusive and
    are applied in the order given, each against the sheet as left by the
    previous one.
    """

    def list_tabs(self) -> List[TabInfo]:
        raise NotImplementedError

    def add_tab(self, title: str) -> int:
        raise NotImplementedError

    def get_rows(self, title: str, start_row: int) -> List[List[Any]]:
        raise NotImplementedError

    def put_rows(self, title: str, start_row: int, rows: Sequence[Sequence[Any]]) -> None:
        raise NotImplementedError

    def delete_row_ranges(self, tab_id: int, ranges: Sequence[Tuple[int, int]]) -> None:
        raise NotImplementedError

    def set_basic_filter(self, tab_id: int, descriptor: dict) -> None:
        raise NotImplementedError

    def clear_basic_filters(self, tab_ids: Sequence[int]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


def compress_row_ranges(row_numbers: Iterable[int]) -> List[Tuple[int, int]]:
    """Coalesce row numbers into inclusive runs, e.g. {2,3,4,7} -> [(2, 4), (7, 7)]."""
    ordered = sorted({n for n in row_numbers if n >= 1})
    ranges: List[Tuple[int, int]] = []
    for n in ordered:
        if ranges and n == ranges[-1][1] + 1:
            ranges[-1] = (ranges[-1][0], n)
        else:
            ranges.append((n, n))
    return ranges


class SheetStore:
    def __init__(self, backend: SheetBackend):
        self.backend = backend

    def close(self) -> None:
        self.backend.close()

    def _find_tab(self, name: str) -> Optional[TabInfo]:
        wanted = name.lower()
        for tab in self.backend.list_tabs():
            if tab.title.lower() == wanted:
                return tab
        return None

    def _require_tab(self, name: str) -> TabInfo:
        tab = self._find_tab(name)
        if tab is None:
            raise TabNotFoundError(f"Sheet '{name}' not found.")
        return tab

    def ensure_tab(self, name: str, header: Optional[Sequence[str]] = None) -> bool:
        if not name or not name.strip():
            raise ValueError("Sheet name is required")
        if self._find_tab(name) is not None:
            return False
        self.backend.add_tab(name)
        if header:
            self.backend.put_rows(name, HEADER_ROW, [list(header)])
        logger.info("Created tab %s", name)
        return True

    def read_all_rows(self, name: str, row_factory: Callable[[List[Any]], T]) -> List[T]:
        if not name or not name.strip():
            raise ValueError("Sheet name is required")
        tab = self._find_tab(name)
        if tab is None:
            return []
        result = []
        for offset, row in enumerate(self.backend.get_rows(tab.title, FIRST_DATA_ROW)):
            try:
                record = row_factory(row)
            except (ValueError, TypeError) as e:
                logger.warning("Skipping row %d of %s: %s", FIRST_DATA_ROW + offset, name, e)
                continue
            if record is not None:
                result.append(record)
        return result

    def overwrite_all(self, name: str, header: Sequence[str], records: Iterable[T],
                      row_selector: Callable[[T], Sequence[Any]]) -> int:
        tab = self._require_tab(name)
        values = [list(header)]
        values.extend(list(row_selector(r)) for r in records)
        self.backend.put_rows(tab.title, HEADER_ROW, values)
        logger.info("Wrote %d rows to %s", len(values) - 1, name)
        return len(values) - 1

    def delete_rows(self, name: str, row_numbers: Iterable[int]) -> int:
        tab = self._require_tab(name)
        ranges = compress_row_ranges(row_numbers)
        if not ranges:
            return 0
        # bottom-up keeps every range pointing at its pre-deletion rows
        self.backend.delete_row_ranges(tab.tab_id, list(reversed(ranges)))
        return sum(end - start + 1 for start, end in ranges)

    def delete_rows_except_header(self, name: str) -> int:
        """Delete data rows, keeping the header and the last data row.

        The spreadsheet refuses to delete every non-frozen row, so one row is
        left for the following overwrite_all to replace.
        """
        tab = self._find_tab(name)
        if tab is None:
            return 0
        data_rows = len(self.backend.get_rows(tab.title, FIRST_DATA_ROW))
        if data_rows <= 1:
            return 0
        return self.delete_rows(name, range(FIRST_DATA_ROW, data_rows + 1))

    def clear_filter(self, name: str) -> None:
        tab = self._require_tab(name)
        self.backend.clear_basic_filters([tab.tab_id])

    def clear_all_filters(self) -> int:
        ids = [tab.tab_id for tab in self.backend.list_tabs()]
        if ids:
            self.backend.clear_basic_filters(ids)
        return len(ids)

    def set_sort_or_filter(self, name: str, criteria: SortFilterCriteria) -> dict:
        """Install the tab's single basic filter over header..last row, all columns."""
        tab = self._require_tab(name)
        header_rows = self.backend.get_rows(tab.title, HEADER_ROW)
        headers = [str(h or "") for h in header_rows[0]] if header_rows else []
        if not headers:
            raise SheetStoreError(f"No header row found in '{name}'.")
        index = {h.lower(): i for i, h in reversed(list(enumerate(headers)))}

        filter_specs = []
        for f in criteria.filters:
            col = index.get(f.column.lower())
            if col is None:
                logger.warning("Filter column %s not in %s, skipped", f.column, name)
                continue
            filter_specs.append({
                "columnIndex": col,
                "filterCriteria": {"condition": {
                    "type": f.condition,
                    "values": [{"userEnteredValue": f.value}],
                }},
            })
        sort_specs = []
        for s in criteria.sort:
            col = index.get(s.column.lower())
            if col is None:
                logger.warning("Sort column %s not in %s, skipped", s.column, name)
                continue
            sort_specs.append({"dimensionIndex": col, "sortOrder": s.order})

        descriptor = {
            "range": {
                "sheetId": tab.tab_id,
                "startRowIndex": 0,
                "endRowIndex": len(header_rows),
                "startColumnIndex": 0,
                "endColumnIndex": len(headers),
            },
        }
        if filter_specs:
            descriptor["filterSpecs"] = filter_specs
        if sort_specs:
            descriptor["sortSpecs"] = sort_specs
        self.backend.set_basic_filter(tab.tab_id, descriptor)
        return descriptor


def auction_criteria(today: str) -> SortFilterCriteria:
    """Un-bid auctions ending on `today` (yyyy-mm-dd), lowest print run first."""
    return SortFilterCriteria(
        filters=[
            ColumnFilter(column="BidCount", condition="NUMBER_EQ", value="0"),
            ColumnFilter(column="EndDate", condition="DATE_EQ", value=today),
        ],
        sort=[ColumnSort(column="OutOf", order="ASCENDING")],
    )


def orders_criteria() -> SortFilterCriteria:
    return SortFilterCriteria(sort=[ColumnSort(column="Created", order="DESCENDING")])
