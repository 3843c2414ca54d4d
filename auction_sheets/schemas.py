# auction_sheets/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

class ListingRecord(BaseModel):
    """One active listing as returned by a marketplace search."""
    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    current_bid_price: Optional[str] = None
    bid_count: Optional[int] = None
    end_date: Optional[datetime] = None  # UTC
    item_web_url: Optional[str] = None
    item_id: Optional[str] = None

class LineItem(BaseModel):
    """One purchased line item from the buyer's order history."""
    model_config = ConfigDict(frozen=True)

    item_id: str
    title: str = ""
    price: Optional[float] = None
    created: Optional[datetime] = None
    tax_amount: Optional[float] = None
    shipping_amount: Optional[float] = None

class RunDefinition(BaseModel):
    sheet: str
    queries: List[str] = Field(default_factory=list)

class RunConfig(BaseModel):
    sellers: List[str] = Field(default_factory=list)
    runs: List[RunDefinition] = Field(default_factory=list)
    filterwords: List[str] = Field(default_factory=list)

class RunResult(BaseModel):
    tab: str
    count: int

class OrderSyncResult(BaseModel):
    tab: str
    fetched: int
    written: int

class ColumnFilter(BaseModel):
    column: str
    condition: str = "NUMBER_EQ"
    value: str

class ColumnSort(BaseModel):
    column: str
    order: str = "ASCENDING"

class SortFilterCriteria(BaseModel):
    """Header-named filter/sort rules for one tab's basic filter."""
    filters: List[ColumnFilter] = Field(default_factory=list)
    sort: List[ColumnSort] = Field(default_factory=list)
