# auction_sheets/services.py
"""Sync passes: fetch, reconcile, and rewrite one tab per run."""
import threading
from contextlib import contextmanager
from datetime import datetime, timezone, tzinfo
from typing import Iterable, Iterator, List, Optional, Sequence
from . import config
from .db import SessionLocal
from .crud import SqlSheetBackend
from .ebay import EbayClient
from .google_sheets import GoogleSheetsBackend
from .reconcile import reconcile, reconcile_orders
from .rows import AuctionItem, CaseHit, OrderItem
from .runs import CASE_HITS_TAB, Run, plan_case_hit_runs, plan_runs
from .schemas import ListingRecord, OrderSyncResult, RunConfig, RunResult
from .sheets import SheetStore, SheetStoreError, auction_criteria, orders_criteria
from .utils import logger

ORDERS_TAB = "ORDERS"

# one sync at a time per process: the scheduler thread and API workers
# rewrite the same tabs
_sync_lock = threading.Lock()


class SyncInProgressError(RuntimeError):
    """Another sync pass holds the tabs."""


@contextmanager
def exclusive_sync() -> Iterator[None]:
    if not _sync_lock.acquire(blocking=False):
        raise SyncInProgressError("A sync is already running")
    try:
        yield
    finally:
        _sync_lock.release()


def open_store() -> SheetStore:
    if config.SHEET_BACKEND == "google":
        return SheetStore(GoogleSheetsBackend(config.GOOGLE_SHEET_ID, config.GOOGLE_SHEETS_TOKEN))
    if config.SHEET_BACKEND == "sql":
        return SheetStore(SqlSheetBackend(SessionLocal))
    raise ValueError(f"Unknown SHEET_BACKEND {config.SHEET_BACKEND!r}")


def get_store() -> Iterator[SheetStore]:
    store = open_store()
    try:
        yield store
    finally:
        store.close()


def get_source() -> Iterator[EbayClient]:
    source = EbayClient()
    try:
        yield source
    finally:
        source.close()


def fetch_all(source, queries: Iterable[str]) -> List[ListingRecord]:
    listings = []
    for q in queries:
        listings.extend(source.search(q))
    return listings


def rewrite_tab(store: SheetStore, tab: str, header: Sequence[str], records: Sequence) -> int:
    """Replace a tab's data rows with `records` (ensure, unfilter, trim, write)."""
    store.ensure_tab(tab, header)
    # only this tab: other tabs keep their installed sort/filter
    store.clear_filter(tab)
    store.delete_rows_except_header(tab)
    rows = [r.to_row() for r in records]
    if not rows:
        # blank out the row delete_rows_except_header leaves behind
        rows = [[""] * len(header)]
    store.overwrite_all(tab, header, rows, list)
    return len(records)


def read_case_hits(store: SheetStore) -> List[CaseHit]:
    return store.read_all_rows(CASE_HITS_TAB, CaseHit.from_row)


def sync_case_hit_run(run: Run, source, store: SheetStore, tz: tzinfo,
                      case_hit_names: Sequence[str] = ()) -> RunResult:
    logger.info("Processing CASE HIT run %s", run.tab)
    fresh = fetch_all(source, run.queries)
    if fresh:
        items = [AuctionItem.from_listing(f, tz, case_hit_names) for f in fresh]
        try:
            rewrite_tab(store, run.tab, AuctionItem.header_row(), items)
        except SheetStoreError:
            logger.exception("Failed to persist CASE HIT items for seller %s", run.seller)
            raise
    return RunResult(tab=run.tab, count=len(fresh))


def sync_auction_run(run: Run, source, store: SheetStore, blocked_words: Sequence[str], tz: tzinfo,
                     case_hit_names: Sequence[str] = (), now: Optional[datetime] = None,
                     apply_filter: bool = False) -> RunResult:
    logger.info("Processing run %s for seller %s", run.tab, run.seller)
    fresh = fetch_all(source, run.queries)
    existing = store.read_all_rows(run.tab, AuctionItem.from_row)
    survivors = reconcile(fresh, existing, blocked_words, tz, now=now, case_hit_names=case_hit_names)
    logger.info("%s: %d fetched, %d stored, %d kept", run.tab, len(fresh), len(existing), len(survivors))
    try:
        rewrite_tab(store, run.tab, AuctionItem.header_row(), survivors)
        if apply_filter:
            today = (now or datetime.now(timezone.utc)).astimezone(tz).strftime("%Y-%m-%d")
            store.set_sort_or_filter(run.tab, auction_criteria(today))
    except SheetStoreError:
        logger.exception("Failed to persist items for run %s and seller %s", run.tab, run.seller)
        raise
    return RunResult(tab=run.tab, count=len(survivors))


def sync_auctions(source, store: SheetStore, run_config: RunConfig, tz: tzinfo,
                  now: Optional[datetime] = None, apply_filter: bool = False) -> List[RunResult]:
    """Case-hit runs for every seller, then every configured run for every seller."""
    with exclusive_sync():
        results = []
        case_hits = read_case_hits(store)
        names = [h.name for h in case_hits]
        if case_hits:
            for run in plan_case_hit_runs(case_hits, run_config.sellers):
                results.append(sync_case_hit_run(run, source, store, tz, names))
        for run in plan_runs(run_config.runs, run_config.sellers):
            results.append(sync_auction_run(run, source, store, run_config.filterwords, tz,
                                            case_hit_names=names, now=now, apply_filter=apply_filter))
        return results


def sync_orders(source, store: SheetStore, days: int, tab: str = ORDERS_TAB) -> OrderSyncResult:
    with exclusive_sync():
        fresh = [OrderItem.from_line_item(li) for li in source.get_buyer_line_items(days)]
        header = OrderItem.header_row()
        store.ensure_tab(tab, header)
        existing = store.read_all_rows(tab, OrderItem.from_row)
        merged = reconcile_orders(existing, fresh)
        rewrite_tab(store, tab, header, merged)
        store.set_sort_or_filter(tab, orders_criteria())
    logger.info("%s: %d fetched, %d stored, %d written", tab, len(fresh), len(existing), len(merged))
    return OrderSyncResult(tab=tab, fetched=len(fresh), written=len(merged))


def run_auction_sync() -> List[RunResult]:
    """Scheduler/CLI entry point wired from configuration."""
    source, store = EbayClient(), open_store()
    try:
        return sync_auctions(source, store, config.load_run_config(), config.LOCAL_TZ,
                             apply_filter=config.APPLY_AUCTION_FILTER)
    finally:
        store.close()
        source.close()


def run_order_sync() -> OrderSyncResult:
    source, store = EbayClient(), open_store()
    try:
        return sync_orders(source, store, config.ORDER_LOOKBACK_DAYS)
    finally:
        store.close()
        source.close()
