# auction_sheets/api/routes.py
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List
from .. import config
from ..ebay import MarketplaceError
from ..rows import AuctionItem
from ..schemas import OrderSyncResult, RunConfig, RunResult, SortFilterCriteria
from ..services import SyncInProgressError, get_source, get_store, sync_auctions, sync_orders
from ..sheets import SheetStore, SheetStoreError, TabNotFoundError
from ..utils import logger

router = APIRouter()


def get_run_config() -> RunConfig:
    return config.load_run_config()


def get_timezone():
    return config.LOCAL_TZ


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/auctions/sync", response_model=List[RunResult])
def sync_auction_tabs(
    source=Depends(get_source),
    store: SheetStore = Depends(get_store),
    run_config: RunConfig = Depends(get_run_config),
    tz=Depends(get_timezone),
):
    try:
        return sync_auctions(source, store, run_config, tz, apply_filter=config.APPLY_AUCTION_FILTER)
    except SyncInProgressError:
        raise HTTPException(status_code=409, detail="A sync is already running")
    except (MarketplaceError, SheetStoreError) as e:
        logger.exception("Auction sync failed: %s", e)
        raise HTTPException(status_code=500, detail="Auction sync failed")


@router.post("/orders/sync", response_model=OrderSyncResult)
def sync_order_tab(
    days: int = Query(config.ORDER_LOOKBACK_DAYS, ge=1),
    source=Depends(get_source),
    store: SheetStore = Depends(get_store),
):
    try:
        return sync_orders(source, store, days)
    except SyncInProgressError:
        raise HTTPException(status_code=409, detail="A sync is already running")
    except (MarketplaceError, SheetStoreError) as e:
        logger.exception("Order sync failed: %s", e)
        raise HTTPException(status_code=500, detail="Order sync failed")


@router.get("/tabs/{tab_name}/auctions", response_model=List[AuctionItem])
def list_tab_auctions(tab_name: str, store: SheetStore = Depends(get_store)):
    return store.read_all_rows(tab_name, AuctionItem.from_row)


@router.put("/tabs/{tab_name}/filter")
def set_tab_filter(tab_name: str, criteria: SortFilterCriteria, store: SheetStore = Depends(get_store)):
    try:
        descriptor = store.set_sort_or_filter(tab_name, criteria)
    except TabNotFoundError:
        raise HTTPException(status_code=404, detail="Tab not found")
    except SheetStoreError as e:
        logger.exception("Setting filter on %s failed: %s", tab_name, e)
        raise HTTPException(status_code=500, detail="Setting filter failed")
    return {"status": "ok", "filter": descriptor}


@router.delete("/tabs/{tab_name}/filter")
def clear_tab_filter(tab_name: str, store: SheetStore = Depends(get_store)):
    try:
        store.clear_filter(tab_name)
    except TabNotFoundError:
        raise HTTPException(status_code=404, detail="Tab not found")
    return {"status": "cleared"}


@router.delete("/filters")
def clear_all_tab_filters(store: SheetStore = Depends(get_store)):
    return {"cleared": store.clear_all_filters()}
