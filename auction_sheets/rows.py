# auction_sheets/rows.py
"""Record types persisted as spreadsheet rows.

Each record declares its column layout once in `columns`; the header, the
outgoing row and the positional read-back all derive from that table, so
they cannot drift apart. Columns marked `persisted=False` never reach the
sheet. `derived=True` columns are written but recomputed on read.
"""
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, ClassVar, Dict, Iterable, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel

from . import titles
from .schemas import LineItem, ListingRecord

ITEM_LINK_BASE = "https://www.ebay.com/itm/"


class Column(NamedTuple):
    header: str
    attr: str
    persisted: bool = True
    derived: bool = False


class RowParseError(ValueError):
    """A stored row could not be turned back into a record."""


def _cell(row, index):
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index])


class TableRow(BaseModel):
    columns: ClassVar[Tuple[Column, ...]] = ()

    @classmethod
    def persisted_columns(cls) -> List[Column]:
        return [c for c in cls.columns if c.persisted]

    @classmethod
    def header_row(cls) -> List[str]:
        return [c.header for c in cls.persisted_columns()]

    def to_row(self) -> List[Any]:
        return [getattr(self, c.attr) for c in self.persisted_columns()]

    @classmethod
    def from_row(cls, row):
        if not row or all(_cell(row, i).strip() == "" for i in range(len(row))):
            raise RowParseError("empty row")
        cells = {}
        for index, col in enumerate(cls.persisted_columns()):
            if not col.derived:
                cells[col.attr] = _cell(row, index)
        return cls._from_cells(cells)

    @classmethod
    def _from_cells(cls, cells: Dict[str, str]):
        return cls(**cells)


def _strict_int(cells, attr):
    try:
        cells[attr] = int(cells[attr])
    except ValueError as e:
        raise RowParseError(f"{attr} is not an integer: {cells[attr]!r}") from e


def _lenient_int(cells, attr):
    try:
        cells[attr] = int(cells[attr])
    except ValueError:
        cells[attr] = 0


class AuctionItem(TableRow):
    title: str = ""
    year: str = ""
    rookie: str = "No"
    out_of: str = str(titles.NOT_NUMBERED)
    psa: str = "0"
    case_hit: str = "No"
    patch: str = "No"
    auto: str = "No"
    price: str = ""
    bid_count: str = "0"
    end_date: str = ""
    end_time: str = ""
    item_web_url: str = ""
    item_id: str = ""

    columns: ClassVar[Tuple[Column, ...]] = (
        Column("Title", "title"),
        Column("Year", "year"),
        Column("Rookie", "rookie"),
        Column("OutOf", "out_of"),
        Column("PSA", "psa"),
        Column("CaseHit", "case_hit"),
        Column("Patch", "patch"),
        Column("Auto", "auto"),
        Column("Price", "price"),
        Column("BidCount", "bid_count"),
        Column("EndDate", "end_date"),
        Column("EndTime", "end_time"),
        Column("ItemWebUrl", "item_web_url"),
        Column("ItemId", "item_id", persisted=False),
    )

    @classmethod
    def from_listing(cls, listing: ListingRecord, tz: tzinfo, case_hit_names: Iterable[str] = ()):
        raw_title = listing.title
        end_date = end_time = ""
        if listing.end_date is not None:
            ends = listing.end_date
            if ends.tzinfo is None:
                ends = ends.replace(tzinfo=timezone.utc)
            local = ends.astimezone(tz)
            end_date = local.strftime("%Y-%m-%d")
            end_time = local.strftime("%H:%M:%S")
        return cls(
            title=titles.parse_title(raw_title),
            year=titles.parse_year(raw_title),
            rookie=titles.parse_rookie(raw_title),
            out_of=str(titles.parse_out_of(raw_title)),
            psa=titles.parse_psa(raw_title),
            case_hit=titles.parse_case_hit(raw_title, case_hit_names),
            patch=titles.parse_patch(raw_title),
            auto=titles.parse_auto(raw_title),
            price=listing.current_bid_price or "",
            bid_count=str(listing.bid_count) if listing.bid_count is not None else "0",
            end_date=end_date,
            end_time=end_time,
            item_web_url=titles.format_url(listing.item_web_url),
            item_id=listing.item_id or "",
        )

    @classmethod
    def _from_cells(cls, cells):
        if not cells["bid_count"].strip():
            cells["bid_count"] = "0"
        if not cells["out_of"].strip().isdigit():
            cells["out_of"] = str(titles.parse_out_of(cells["title"]))
        return cls(**cells)


def parse_dollar_amount(value) -> Decimal:
    if value is None or not str(value).strip():
        return Decimal("0")
    cleaned = str(value).replace("$", "").replace(",", "").strip()
    try:
        return Decimal(cleaned)
    except (InvalidOperation, ValueError):
        return Decimal("0")


def _money(value: Optional[float]) -> str:
    if value is None:
        return ""
    return str(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class OrderItem(TableRow):
    created: str = ""
    title: str = ""
    price: str = ""
    tax_amount: str = ""
    shipping_amount: str = ""
    item_id: str = ""

    columns: ClassVar[Tuple[Column, ...]] = (
        Column("Created", "created"),
        Column("Title", "title"),
        Column("Rookie", "rookie", derived=True),
        Column("OutOf", "out_of", derived=True),
        Column("PSA", "psa", derived=True),
        Column("Price", "price"),
        Column("TaxAmount", "tax_amount"),
        Column("ShippingAmount", "shipping_amount"),
        Column("TotalAmount", "total_amount", derived=True),
        Column("ItemId", "item_id"),
        Column("ItemLink", "item_link", derived=True),
    )

    @property
    def rookie(self):
        return titles.parse_rookie(self.title)

    @property
    def out_of(self):
        return str(titles.parse_out_of(self.title))

    @property
    def psa(self):
        return titles.parse_psa(self.title)

    @property
    def total_amount(self):
        total = (parse_dollar_amount(self.price)
                 + parse_dollar_amount(self.tax_amount)
                 + parse_dollar_amount(self.shipping_amount))
        return f"${total.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}"

    @property
    def item_link(self):
        return f"{ITEM_LINK_BASE}{self.item_id}" if self.item_id.strip() else ""

    @classmethod
    def from_line_item(cls, item: LineItem):
        created = ""
        if item.created is not None:
            ts = item.created
            if ts.tzinfo is not None:
                ts = ts.astimezone(timezone.utc)
            created = ts.strftime("%Y-%m-%d %H:%M:%S")
        return cls(
            created=created,
            title=item.title or "",
            price=_money(item.price),
            tax_amount=_money(item.tax_amount),
            shipping_amount=_money(item.shipping_amount),
            item_id=item.item_id or "",
        )

    def created_at(self) -> datetime:
        """Created as a datetime; unparsable values sort as the oldest."""
        for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d", "%m/%d/%Y %H:%M:%S"):
            try:
                return datetime.strptime(self.created.strip(), fmt)
            except ValueError:
                continue
        return datetime.min


class Brand(TableRow):
    name: str = ""
    manufacturer: str = ""
    years: str = ""
    value: int = 0

    columns: ClassVar[Tuple[Column, ...]] = (
        Column("Name", "name"),
        Column("Manufacturer", "manufacturer"),
        Column("Years", "years"),
        Column("Value", "value"),
    )

    @classmethod
    def _from_cells(cls, cells):
        _strict_int(cells, "value")
        return cls(**cells)


class CaseHit(TableRow):
    name: str = ""
    set_name: str = ""
    image: str = ""
    hit_type: str = ""
    value: int = 0
    sport: str = ""

    columns: ClassVar[Tuple[Column, ...]] = (
        Column("Name", "name"),
        Column("Set", "set_name"),
        Column("Image", "image"),
        Column("Type", "hit_type"),
        Column("Value", "value"),
        Column("Sport", "sport"),
    )

    @classmethod
    def _from_cells(cls, cells):
        _strict_int(cells, "value")
        return cls(**cells)


class Player(TableRow):
    name: str = ""
    position: str = ""
    collection_rc_year: int = 0
    start_year: int = 0
    end_year: int = 0
    status: str = ""
    mvp: int = 0
    hof: str = ""
    pc: str = ""
    goat: str = ""
    collect: str = ""
    collection_area: str = ""

    columns: ClassVar[Tuple[Column, ...]] = (
        Column("Name", "name"),
        Column("Position", "position"),
        Column("CollectionRCYear", "collection_rc_year"),
        Column("StartYear", "start_year"),
        Column("EndYear", "end_year"),
        Column("Status", "status"),
        Column("MVP", "mvp"),
        Column("HOF", "hof"),
        Column("PC", "pc"),
        Column("GOAT", "goat"),
        Column("Collect", "collect"),
        Column("CollectionArea", "collection_area"),
    )

    @classmethod
    def _from_cells(cls, cells):
        for attr in ("collection_rc_year", "start_year", "end_year", "mvp"):
            _lenient_int(cells, attr)
        return cls(**cells)
