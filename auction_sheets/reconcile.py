# auction_sheets/reconcile.py
"""Merge freshly fetched listings with stored rows and filter the result.

Pure functions: no I/O, and a malformed item is dropped by the stage whose
predicate it fails rather than aborting the batch.
"""
from datetime import datetime, timezone, tzinfo
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .rows import AuctionItem, OrderItem
from .schemas import ListingRecord

END_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
)

TOPPS_ERA = (2016, 2026)
BOWMAN_CUTOFF = 2020


def _int_or_none(value) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def bid_count_of(item: AuctionItem) -> int:
    count = _int_or_none(item.bid_count)
    return count if count is not None else 0


def end_utc(item: AuctionItem, tz: tzinfo) -> datetime:
    """EndDate + EndTime read in `tz`, as UTC; datetime.min (UTC) if unparsable."""
    if item.end_date.strip() and item.end_time.strip():
        text = f"{item.end_date.strip()} {item.end_time.strip()}"
        for fmt in END_FORMATS:
            try:
                local = datetime.strptime(text, fmt)
            except ValueError:
                continue
            try:
                return local.replace(tzinfo=tz).astimezone(timezone.utc)
            except OverflowError:
                break
    return datetime.min.replace(tzinfo=timezone.utc)


def drop_blocked_words(items, blocked_words: Iterable[str]):
    words = [w.lower() for w in blocked_words if w]
    kept = []
    for item in items:
        if not item.title.strip():
            continue
        lower = item.title.lower()
        if any(w in lower for w in words):
            continue
        kept.append(item)
    return kept


def drop_modern_topps(items):
    kept = []
    for item in items:
        lower = item.title.lower()
        year = _int_or_none(item.year)
        if ("topps" in lower or "finest" in lower) and year is not None \
                and TOPPS_ERA[0] <= year <= TOPPS_ERA[1]:
            continue
        kept.append(item)
    return kept


def drop_early_bowman(items):
    kept = []
    for item in items:
        year = _int_or_none(item.year)
        if "bowman" in item.title.lower() and year is not None and year < BOWMAN_CUTOFF:
            continue
        kept.append(item)
    return kept


def dedupe(items, key: Callable[[AuctionItem], str]):
    """Keep the highest bid count per key; ties go to the first seen."""
    groups: Dict[str, List[AuctionItem]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    # max() returns the first maximal element
    return [max(group, key=bid_count_of) for group in groups.values()]


def drop_expired(items, tz: tzinfo, now: datetime):
    return [item for item in items if end_utc(item, tz) > now]


def drop_bid_on(items):
    # Unparsable bid counts are kept while unparsable end times are dropped
    # in drop_expired. Confirm with the sheet owner before unifying these.
    kept = []
    for item in items:
        count = _int_or_none(item.bid_count)
        if count is None or count == 0:
            kept.append(item)
    return kept


def reconcile(fresh_listings: Iterable[ListingRecord],
              existing_records: Sequence[AuctionItem],
              blocked_words: Iterable[str],
              tz: tzinfo,
              now: Optional[datetime] = None,
              case_hit_names: Iterable[str] = ()) -> List[AuctionItem]:
    """Return the still-open, un-bid, deduplicated auction items to persist."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    case_hit_names = list(case_hit_names)

    items = list(existing_records) + [
        AuctionItem.from_listing(listing, tz, case_hit_names) for listing in fresh_listings
    ]
    items = drop_blocked_words(items, blocked_words)
    items = drop_modern_topps(items)
    items = drop_early_bowman(items)
    items = dedupe(items, key=lambda i: i.item_web_url.lower())
    items = dedupe(items, key=lambda i: i.title.strip().lower())
    items = drop_expired(items, tz, now)
    items = drop_bid_on(items)
    return items


def _has_shipping(order: OrderItem) -> bool:
    return order.shipping_amount.strip() not in ("", "0", "0.00")


def reconcile_orders(existing: Sequence[OrderItem], fresh: Sequence[OrderItem]) -> List[OrderItem]:
    """One row per ItemId: prefer a row with shipping, then the newest Created."""
    groups: Dict[str, List[OrderItem]] = {}
    for order in list(existing) + list(fresh):
        groups.setdefault(order.item_id, []).append(order)
    merged = []
    for group in groups.values():
        candidates = [o for o in group if _has_shipping(o)] or group
        merged.append(max(candidates, key=lambda o: o.created_at()))
    return merged
