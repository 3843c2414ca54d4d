# auction_sheets/ebay.py
"""Marketplace client: Browse API search and Trading API order history."""
from datetime import datetime
from typing import Iterator, List, Optional
import xml.etree.ElementTree as ET
import requests
from .config import (EBAY_ACCESS_TOKEN, EBAY_APP_ID, EBAY_CERT_ID, EBAY_DEV_ID, EBAY_ENVIRONMENT,
                     EBAY_MARKETPLACE_ID)
from .schemas import LineItem, ListingRecord
from .utils import logger

TRADING_NS = {"e": "urn:ebay:apis:eBLBaseComponents"}
TRADING_COMPAT_LEVEL = "1207"
SITE_IDS = {
    "EBAY_US": "0", "EBAY_GB": "3", "EBAY_AU": "15", "EBAY_DE": "77", "EBAY_CA": "2",
    "EBAY_FR": "71", "EBAY_IT": "101", "EBAY_ES": "186", "EBAY_NL": "146",
}

GET_ORDERS_XML = """<?xml version="1.0" encoding="utf-8"?>
<GetOrdersRequest xmlns="urn:ebay:apis:eBLBaseComponents">
  <OrderRole>Buyer</OrderRole>
  <OrderStatus>All</OrderStatus>
  <NumberOfDays>{days}</NumberOfDays>
  <Pagination><EntriesPerPage>100</EntriesPerPage><PageNumber>{page}</PageNumber></Pagination>
</GetOrdersRequest>"""


class MarketplaceError(Exception):
    pass


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_float(value) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except ValueError:
        return None


def listing_from_summary(summary: dict) -> ListingRecord:
    bid = summary.get("currentBidPrice") or {}
    return ListingRecord(
        title=summary.get("title"),
        current_bid_price=bid.get("value"),
        bid_count=summary.get("bidCount"),
        end_date=_parse_timestamp(summary.get("itemEndDate")),
        item_web_url=summary.get("itemWebUrl"),
        item_id=summary.get("itemId"),
    )


def line_items_from_orders_xml(xml: str) -> tuple[List[LineItem], bool]:
    """Parse one GetOrders page into line items plus the HasMoreOrders flag."""
    root = ET.fromstring(xml)
    errors = root.find(".//e:Errors", TRADING_NS)
    if errors is not None and root.findtext("e:Ack", default="", namespaces=TRADING_NS) == "Failure":
        raise MarketplaceError("Trading API error: " + "".join(errors.itertext()).strip())
    items = []
    for txn in root.iter("{urn:ebay:apis:eBLBaseComponents}Transaction"):
        item_id = txn.findtext("e:Item/e:ItemID", default="", namespaces=TRADING_NS)
        if not item_id:
            continue
        items.append(LineItem(
            item_id=item_id,
            title=txn.findtext("e:Item/e:Title", default="", namespaces=TRADING_NS),
            price=_parse_float(txn.findtext("e:TransactionPrice", namespaces=TRADING_NS)),
            created=_parse_timestamp(txn.findtext("e:CreatedDate", namespaces=TRADING_NS)),
            tax_amount=_parse_float(txn.findtext("e:Taxes/e:TotalTaxAmount", namespaces=TRADING_NS)),
            shipping_amount=_parse_float(txn.findtext("e:ActualShippingCost", namespaces=TRADING_NS)),
        ))
    has_more = root.findtext("e:HasMoreOrders", default="false", namespaces=TRADING_NS).lower() == "true"
    return items, has_more


class EbayClient:
    def __init__(self, access_token: str = EBAY_ACCESS_TOKEN, environment: str = EBAY_ENVIRONMENT,
                 marketplace_id: str = EBAY_MARKETPLACE_ID, session: requests.Session | None = None,
                 timeout: float = 60):
        if not access_token:
            raise MarketplaceError("EBAY_ACCESS_TOKEN not set")
        self.access_token = access_token
        self.marketplace_id = marketplace_id
        self.timeout = timeout
        sandbox = environment.upper() == "SANDBOX"
        self.api_base = "https://api.sandbox.ebay.com" if sandbox else "https://api.ebay.com"
        self.http = session or requests.Session()

    def close(self) -> None:
        self.http.close()

    def _get(self, url: str) -> dict:
        try:
            resp = self.http.get(url, timeout=self.timeout, headers={
                "Authorization": f"Bearer {self.access_token}",
                "X-EBAY-C-MARKETPLACE-ID": self.marketplace_id,
            })
            resp.raise_for_status()
        except requests.RequestException as e:
            raise MarketplaceError(f"Browse request failed: {e}") from e
        return resp.json()

    def search(self, query: str) -> Iterator[ListingRecord]:
        """Yield every listing for a Browse query, following `next` pages."""
        base_url = f"{self.api_base}/buy/browse/v1/item_summary/search?q={query}"
        next_url, page, seen = base_url, 1, 0
        while next_url:
            data = self._get(next_url)
            summaries = data.get("itemSummaries") or []
            for summary in summaries:
                yield listing_from_summary(summary)
            seen += len(summaries)
            logger.info("Fetched page %d for %s (items so far: %d)", page, base_url, seen)
            next_url = data.get("next")
            page += 1

    def get_buyer_line_items(self, days: int, limit: int | None = None) -> List[LineItem]:
        endpoint = f"{self.api_base}/ws/api.dll"
        headers = {
            "Content-Type": "text/xml",
            "X-EBAY-API-COMPATIBILITY-LEVEL": TRADING_COMPAT_LEVEL,
            "X-EBAY-API-APP-NAME": EBAY_APP_ID,
            "X-EBAY-API-DEV-NAME": EBAY_DEV_ID,
            "X-EBAY-API-CERT-NAME": EBAY_CERT_ID,
            "X-EBAY-API-CALL-NAME": "GetOrders",
            "X-EBAY-API-SITEID": SITE_IDS.get(self.marketplace_id, "0"),
            "X-EBAY-API-IAF-TOKEN": self.access_token,
        }
        results: List[LineItem] = []
        page, has_more = 1, True
        while has_more:
            body = GET_ORDERS_XML.format(days=days, page=page)
            try:
                resp = self.http.post(endpoint, data=body.encode("utf-8"), headers=headers, timeout=self.timeout)
                resp.raise_for_status()
            except requests.RequestException as e:
                raise MarketplaceError(f"GetOrders failed: {e}") from e
            items, has_more = line_items_from_orders_xml(resp.text)
            results.extend(items)
            logger.info("GetOrders page %d: %d line items so far", page, len(results))
            if limit is not None and len(results) >= limit:
                return results[:limit]
            page += 1
        return results
