# auction_sheets/models.py
"""SQLAlchemy tables backing the SQL spreadsheet.

A `SheetTab` owns numbered `SheetRow`s (1-based, header on row 1) and at
most one `TabFilter`.
"""
from sqlalchemy import Column, Integer, Text, JSON, TIMESTAMP, ForeignKey, func, Index
from .db import Base

class SheetTab(Base):
    __tablename__ = "sheet_tabs"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(Text, nullable=False, unique=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

class SheetRow(Base):
    __tablename__ = "sheet_rows"
    id = Column(Integer, primary_key=True, index=True)
    tab_id = Column(Integer, ForeignKey("sheet_tabs.id", ondelete="CASCADE"), nullable=False)
    row_number = Column(Integer, nullable=False)
    cells = Column(JSON, nullable=False, default=list)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

class TabFilter(Base):
    __tablename__ = "tab_filters"
    tab_id = Column(Integer, ForeignKey("sheet_tabs.id", ondelete="CASCADE"), primary_key=True)
    descriptor = Column(JSON, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

Index("idx_sheet_rows_tab_row", SheetRow.tab_id, SheetRow.row_number)
