from fastapi import FastAPI
from auction_sheets.api.routes import router as api_router
from auction_sheets.config import ENABLE_SCHEDULER, SHEET_BACKEND
from auction_sheets.db import Base, engine
from auction_sheets.utils import logger
import auction_sheets.models  # noqa: F401 ensure models are imported so tables are known

# create FastAPI instance
app = FastAPI(title="auction-sheets")
app.include_router(api_router)


@app.on_event("startup")
def on_startup():
    if SHEET_BACKEND == "sql":
        Base.metadata.create_all(bind=engine)
    if ENABLE_SCHEDULER:
        from auction_sheets.scheduler import start_scheduler
        start_scheduler()
    logger.info("auction-sheets started with %s backend", SHEET_BACKEND)


@app.on_event("shutdown")
def on_shutdown():
    if ENABLE_SCHEDULER:
        from auction_sheets.scheduler import stop_scheduler
        stop_scheduler()
