"""Run one sync pass from the command line.

    python run_sync.py            # auction runs
    python run_sync.py orders     # order history
"""
import sys
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()


def main(argv):
    from auction_sheets.db import Base, engine
    import auction_sheets.models  # noqa: F401
    from auction_sheets.config import SHEET_BACKEND
    from auction_sheets.services import run_auction_sync, run_order_sync

    if SHEET_BACKEND == "sql":
        Base.metadata.create_all(bind=engine)

    mode = argv[1] if len(argv) > 1 else "auctions"
    if mode == "auctions":
        results = run_auction_sync()
        for r in results:
            print(f"{r.tab}: {r.count} item(s)")
        print(f"Finished {len(results)} run(s).")
    elif mode == "orders":
        result = run_order_sync()
        print(f"{result.tab}: fetched {result.fetched}, wrote {result.written}")
    else:
        raise SystemExit(f"Unknown mode '{mode}' (expected 'auctions' or 'orders')")


if __name__ == "__main__":
    main(sys.argv)
