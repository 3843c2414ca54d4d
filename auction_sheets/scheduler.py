# auction_sheets/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from .config import SYNC_INTERVAL_HOURS
from .services import SyncInProgressError, run_auction_sync
from .utils import logger

scheduler = BackgroundScheduler()

def scheduled_auction_sync():
    try:
        run_auction_sync()
    except SyncInProgressError:
        logger.info("Skipping scheduled auction sync: another sync is running")

def start_scheduler():
    # max_instances=1 covers overlapping ticks; the services lock covers API-triggered syncs
    scheduler.add_job(scheduled_auction_sync, 'interval', hours=SYNC_INTERVAL_HOURS,
                      id="auction-sync", max_instances=1, replace_existing=True)
    scheduler.start()
    logger.info("Scheduler started (every %s h)", SYNC_INTERVAL_HOURS)

def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
