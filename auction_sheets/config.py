# auction_sheets/config.py
"""Process configuration.

Environment values are read once at import (after loading `.env`); the
sellers/runs/filter words live in a JSON file pointed to by RUNS_CONFIG.
"""
import os
import json
from datetime import timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from dotenv import load_dotenv
from .schemas import RunConfig
from .utils import logger

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL") or os.getenv("POSTGRES_URL") or "sqlite:///./auction_sheets.db"
# SQLAlchemy 2.x doesn't accept 'postgres://'
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg2://", 1)

SHEET_BACKEND = os.getenv("SHEET_BACKEND", "sql").lower()
GOOGLE_SHEET_ID = os.getenv("GOOGLE_SHEET_ID", "")
GOOGLE_SHEETS_TOKEN = os.getenv("GOOGLE_SHEETS_TOKEN", "")

EBAY_ACCESS_TOKEN = os.getenv("EBAY_ACCESS_TOKEN", "")
EBAY_ENVIRONMENT = os.getenv("EBAY_ENVIRONMENT", "PRODUCTION")
EBAY_MARKETPLACE_ID = os.getenv("EBAY_MARKETPLACE_ID", "EBAY_US")
EBAY_APP_ID = os.getenv("EBAY_APP_ID", "")
EBAY_DEV_ID = os.getenv("EBAY_DEV_ID", "")
EBAY_CERT_ID = os.getenv("EBAY_CERT_ID", "")

RUNS_CONFIG = os.getenv("RUNS_CONFIG", "config.json")
TIMEZONE = os.getenv("TIMEZONE", "America/Chicago")
ORDER_LOOKBACK_DAYS = int(os.getenv("ORDER_LOOKBACK_DAYS", "30"))
SYNC_INTERVAL_HOURS = float(os.getenv("SYNC_INTERVAL_HOURS", "1"))
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "0") == "1"
APPLY_AUCTION_FILTER = os.getenv("APPLY_AUCTION_FILTER", "0") == "1"

# tried in order after the configured zone
FALLBACK_TIMEZONES = ("America/Chicago", "US/Central")


def resolve_timezone(name: str | None = None) -> tzinfo:
    """Resolve the local zone used for EndDate/EndTime columns.

    Order: `name` (or TIMEZONE), America/Chicago, US/Central, then UTC.
    """
    candidates = [name or TIMEZONE, *FALLBACK_TIMEZONES]
    for candidate in candidates:
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Timezone %s not available, trying next", candidate)
    logger.warning("No configured timezone available, falling back to UTC")
    return timezone.utc


def load_run_config(path: str | None = None) -> RunConfig:
    path = path or RUNS_CONFIG
    if not os.path.exists(path):
        logger.warning("Run config %s not found; no sellers or runs configured", path)
        return RunConfig()
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    # accept the nested {"config": {...}} layout as well as a flat one
    if isinstance(data, dict) and isinstance(data.get("config"), dict):
        data = data["config"]
    return RunConfig.model_validate(data)


# resolved once for the process
LOCAL_TZ = resolve_timezone()
