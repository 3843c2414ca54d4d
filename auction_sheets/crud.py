# auction_sheets/crud.py
"""Spreadsheet primitives stored in SQL.

Module-level helpers work on an open `Session`; `SqlSheetBackend` wraps them
in one committed session per primitive so `SheetStore` can drive it like
any other backend.
"""
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Any, List, Optional, Sequence, Tuple
from .models import SheetTab, SheetRow, TabFilter
from .sheets import SheetBackend, SheetStoreError, TabInfo, TabNotFoundError

# columns A..Z, matching the A2:Z ranges used against Google Sheets
MAX_COLUMNS = 26

def _blank(cells) -> bool:
    return all(c is None or c == "" for c in cells)

def get_tab(db: Session, title: str) -> Optional[SheetTab]:
    return db.query(SheetTab).filter(func.lower(SheetTab.title) == title.lower()).first()

def list_tabs(db: Session) -> List[SheetTab]:
    return db.query(SheetTab).order_by(SheetTab.id).all()

def create_tab(db: Session, title: str) -> SheetTab:
    tab = SheetTab(title=title)
    db.add(tab)
    db.flush()
    return tab

def get_rows(db: Session, tab_id: int, start_row: int) -> List[List[Any]]:
    stored = (db.query(SheetRow)
              .filter(SheetRow.tab_id == tab_id, SheetRow.row_number >= start_row)
              .order_by(SheetRow.row_number)
              .all())
    rows: List[List[Any]] = []
    for r in stored:
        # gaps read back as empty rows
        while start_row + len(rows) < r.row_number:
            rows.append([])
        rows.append(list(r.cells or [])[:MAX_COLUMNS])
    while rows and _blank(rows[-1]):
        rows.pop()
    return rows

def put_rows(db: Session, tab_id: int, start_row: int, rows: Sequence[Sequence[Any]]):
    existing = {
        r.row_number: r for r in db.query(SheetRow)
        .filter(SheetRow.tab_id == tab_id,
                SheetRow.row_number >= start_row,
                SheetRow.row_number < start_row + len(rows))
    }
    for offset, values in enumerate(rows):
        number = start_row + offset
        values = list(values)
        row = existing.get(number)
        if row is None:
            db.add(SheetRow(tab_id=tab_id, row_number=number, cells=values))
        else:
            # cells past the written width are left as they were
            old = list(row.cells or [])
            row.cells = values + old[len(values):]

def delete_row_range(db: Session, tab_id: int, start: int, end: int) -> int:
    deleted = (db.query(SheetRow)
               .filter(SheetRow.tab_id == tab_id,
                       SheetRow.row_number >= start,
                       SheetRow.row_number <= end)
               .delete(synchronize_session=False))
    shift = end - start + 1
    (db.query(SheetRow)
     .filter(SheetRow.tab_id == tab_id, SheetRow.row_number > end)
     .update({SheetRow.row_number: SheetRow.row_number - shift}, synchronize_session=False))
    return deleted

def get_filter(db: Session, tab_id: int) -> Optional[dict]:
    obj = db.get(TabFilter, tab_id)
    return obj.descriptor if obj else None

def set_filter(db: Session, tab_id: int, descriptor: dict):
    obj = db.get(TabFilter, tab_id)
    if obj is None:
        db.add(TabFilter(tab_id=tab_id, descriptor=descriptor))
    else:
        obj.descriptor = descriptor

def clear_filters(db: Session, tab_ids: Sequence[int]) -> int:
    return (db.query(TabFilter)
            .filter(TabFilter.tab_id.in_(list(tab_ids)))
            .delete(synchronize_session=False))


class SqlSheetBackend(SheetBackend):
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def _tab_id(self, db: Session, title: str) -> int:
        tab = get_tab(db, title)
        if tab is None:
            raise TabNotFoundError(f"Sheet '{title}' not found.")
        return tab.id

    def list_tabs(self) -> List[TabInfo]:
        db = self.session_factory()
        try:
            return [TabInfo(t.id, t.title) for t in list_tabs(db)]
        finally:
            db.close()

    def add_tab(self, title: str) -> int:
        db = self.session_factory()
        try:
            if get_tab(db, title) is not None:
                raise SheetStoreError(f"A sheet with the name '{title}' already exists.")
            tab_id = create_tab(db, title).id
            db.commit()
            return tab_id
        finally:
            db.close()

    def get_rows(self, title: str, start_row: int) -> List[List[Any]]:
        db = self.session_factory()
        try:
            return get_rows(db, self._tab_id(db, title), start_row)
        finally:
            db.close()

    def put_rows(self, title: str, start_row: int, rows: Sequence[Sequence[Any]]) -> None:
        db = self.session_factory()
        try:
            put_rows(db, self._tab_id(db, title), start_row, rows)
            db.commit()
        finally:
            db.close()

    def delete_row_ranges(self, tab_id: int, ranges: Sequence[Tuple[int, int]]) -> None:
        db = self.session_factory()
        try:
            for start, end in ranges:
                delete_row_range(db, tab_id, start, end)
            db.commit()
        finally:
            db.close()

    def set_basic_filter(self, tab_id: int, descriptor: dict) -> None:
        db = self.session_factory()
        try:
            set_filter(db, tab_id, descriptor)
            db.commit()
        finally:
            db.close()

    def clear_basic_filters(self, tab_ids: Sequence[int]) -> None:
        db = self.session_factory()
        try:
            clear_filters(db, tab_ids)
            db.commit()
        finally:
            db.close()

    def get_basic_filter(self, tab_id: int) -> Optional[dict]:
        db = self.session_factory()
        try:
            return get_filter(db, tab_id)
        finally:
            db.close()
