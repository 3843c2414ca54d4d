# tests/test_services.py
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo
import pytest
from auction_sheets import services
from auction_sheets.ebay import MarketplaceError
from auction_sheets.rows import AuctionItem, CaseHit, OrderItem
from auction_sheets.schemas import (ColumnSort, LineItem, ListingRecord, RunConfig, RunDefinition,
                                    SortFilterCriteria)
from auction_sheets.services import (SyncInProgressError, exclusive_sync, rewrite_tab, sync_auctions,
                                     sync_orders)
from auction_sheets.sheets import SheetBackend, SheetStore

CENTRAL = ZoneInfo("America/Chicago")
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeSource:
    def __init__(self, by_query=None, line_items=()):
        self.by_query = by_query or {}
        self.line_items = list(line_items)
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        return iter(self.by_query.get(query, []))

    def get_buyer_line_items(self, days):
        return self.line_items


def listing(title, url, bids=0, hours=24):
    return ListingRecord(title=title, current_bid_price="1.00", bid_count=bids,
                         end_date=NOW + timedelta(hours=hours), item_web_url=url)


def test_rewrite_tab_with_no_records_blanks_leftover_row(store, backend):
    header = ["A", "B"]
    store.ensure_tab("T", header)
    store.overwrite_all("T", header, [["x", "1"], ["y", "2"], ["z", "3"]], list)
    assert rewrite_tab(store, "T", header, []) == 0
    assert backend.get_rows("T", 1) == [header]


def test_sync_auctions_merges_with_stored_rows(store, backend):
    config = RunConfig(sellers=["shop"], filterwords=["lot"],
                       runs=[RunDefinition(sheet="RC", queries=["rookie&filter=price:[..5]"])])
    query = "rookie&filter=price:[..5],sellers:{shop}"
    source = FakeSource({query: [
        listing("2023 Star RC #10/50", "u1"),
        listing("2023 Star RC #10/50", "u2"),
        listing("2023 Star RC lot of 5", "u3"),
        listing("2023 Other RC", "u4", bids=2),
    ]})
    tab = "RC - shop"
    store.ensure_tab(tab, AuctionItem.header_row())
    old = AuctionItem(title="2022 Kept RC", bid_count="0", end_date="2024-06-02", end_time="10:00:00",
                      item_web_url="old1")
    expired = AuctionItem(title="2022 Gone RC", bid_count="0", end_date="2024-05-01", end_time="10:00:00",
                          item_web_url="old2")
    store.overwrite_all(tab, AuctionItem.header_row(), [old, expired], AuctionItem.to_row)

    results = sync_auctions(source, store, config, CENTRAL, now=NOW)

    assert source.queries == [query]
    assert [(r.tab, r.count) for r in results] == [(tab, 2)]
    items = store.read_all_rows(tab, AuctionItem.from_row)
    assert [i.item_web_url for i in items] == ["old1", "u1"]
    assert items[1].out_of == "50"
    assert backend.get_rows(tab, 1)[0] == AuctionItem.header_row()


def test_sync_auctions_runs_case_hits_first(store, backend):
    store.ensure_tab("CASE HITS", CaseHit.header_row())
    hit = CaseHit(name="Kaboom", set_name="Crown Royale", image="", hit_type="SSP", value=5, sport="Football")
    store.overwrite_all("CASE HITS", CaseHit.header_row(), [hit], CaseHit.to_row)
    config = RunConfig(sellers=["shop"], runs=[])
    query = ("Football Kaboom Crown Royale&limit=200&filter=price:[..10],sellers:{shop},"
             "priceCurrency:USD,buyingOptions:{AUCTION}")
    source = FakeSource({query: [listing("2023 Kaboom Star", "k1", bids=3)]})

    results = sync_auctions(source, store, config, CENTRAL, now=NOW)

    assert [(r.tab, r.count) for r in results] == [("CASE HITS - shop", 1)]
    items = store.read_all_rows("CASE HITS - shop", AuctionItem.from_row)
    # case-hit tabs are written as fetched, bids included
    assert [(i.item_web_url, i.case_hit, i.bid_count) for i in items] == [("k1", "Yes", "3")]


def test_sync_auctions_applies_auction_filter(store, backend):
    config = RunConfig(sellers=["s"], runs=[RunDefinition(sheet="X", queries=["q"])])
    source = FakeSource({"q&filter=sellers:{s}": [listing("2023 Card", "u1")]})
    sync_auctions(source, store, config, CENTRAL, now=NOW, apply_filter=True)
    tab_id = backend.list_tabs()[0].tab_id
    descriptor = backend.get_basic_filter(tab_id)
    assert descriptor["filterSpecs"][1]["filterCriteria"]["condition"]["values"] == [
        {"userEnteredValue": "2024-06-01"}
    ]


def test_sync_orders_merges_and_sorts(store, backend):
    store.ensure_tab("ORDERS", OrderItem.header_row())
    stored = OrderItem(created="2024-01-01 10:00:00", title="Card", price="2.00", shipping_amount="1.00",
                       item_id="1")
    store.overwrite_all("ORDERS", OrderItem.header_row(), [stored], OrderItem.to_row)
    source = FakeSource(line_items=[
        LineItem(item_id="1", title="Card", price=2.0, created=datetime(2024, 2, 1, tzinfo=timezone.utc),
                 shipping_amount=0.0),
        LineItem(item_id="2", title="Other", price=3.0, created=datetime(2024, 2, 2, tzinfo=timezone.utc)),
    ])

    result = sync_orders(source, store, days=30)

    assert (result.fetched, result.written) == (2, 2)
    orders = store.read_all_rows("ORDERS", OrderItem.from_row)
    assert [(o.item_id, o.shipping_amount) for o in orders] == [("1", "1.00"), ("2", "")]
    assert orders[0].total_amount == "$3.00"
    descriptor = backend.get_basic_filter(backend.list_tabs()[0].tab_id)
    assert descriptor["sortSpecs"] == [{"dimensionIndex": 0, "sortOrder": "DESCENDING"}]


def test_auction_sync_leaves_other_tab_filters_in_place(store, backend):
    sync_orders(FakeSource(), store, days=30)
    config = RunConfig(sellers=["s"], runs=[RunDefinition(sheet="A", queries=["qa"]),
                                            RunDefinition(sheet="B", queries=["qb"])])
    source = FakeSource({
        "qa&filter=sellers:{s}": [listing("2023 Card A", "a1")],
        "qb&filter=sellers:{s}": [listing("2023 Card B", "b1")],
    })

    sync_auctions(source, store, config, CENTRAL, now=NOW, apply_filter=True)

    filters = {t.title: backend.get_basic_filter(t.tab_id) for t in backend.list_tabs()}
    assert filters["ORDERS"]["sortSpecs"] == [{"dimensionIndex": 0, "sortOrder": "DESCENDING"}]
    assert filters["A - s"] is not None
    assert filters["B - s"] is not None


def test_rewrite_tab_clears_only_its_own_filter(store, backend):
    header = ["A", "B"]
    for tab in ("T1", "T2"):
        store.ensure_tab(tab, header)
        store.set_sort_or_filter(tab, SortFilterCriteria(sort=[ColumnSort(column="A", order="DESCENDING")]))
    rewrite_tab(store, "T1", header, [])
    filters = {t.title: backend.get_basic_filter(t.tab_id) for t in backend.list_tabs()}
    assert filters["T1"] is None
    assert filters["T2"] is not None


def test_sync_is_refused_while_another_sync_runs(store):
    with exclusive_sync():
        with pytest.raises(SyncInProgressError):
            sync_orders(FakeSource(), store, days=30)
        with pytest.raises(SyncInProgressError):
            sync_auctions(FakeSource(), store, RunConfig(), CENTRAL, now=NOW)
    assert sync_orders(FakeSource(), store, days=30).written == 0


def test_failed_sync_releases_the_lock(store):
    class FailingSource(FakeSource):
        def get_buyer_line_items(self, days):
            raise MarketplaceError("down")

    with pytest.raises(MarketplaceError):
        sync_orders(FailingSource(), store, days=30)
    assert sync_orders(FakeSource(), store, days=30).fetched == 0


class ClosingBackend(SheetBackend):
    closed = False

    def close(self):
        self.closed = True


def test_get_store_closes_backend_after_use(monkeypatch):
    backend = ClosingBackend()
    monkeypatch.setattr(services, "open_store", lambda: SheetStore(backend))
    dependency = services.get_store()
    store = next(dependency)
    assert store.backend is backend
    assert not backend.closed
    dependency.close()
    assert backend.closed
