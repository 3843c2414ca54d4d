# tests/conftest.py
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from auction_sheets import models  # noqa: F401 registers tables on Base
from auction_sheets.crud import SqlSheetBackend
from auction_sheets.db import Base
from auction_sheets.sheets import SheetStore

@pytest.fixture
def session_factory():
    # one shared in-memory database per test
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()

@pytest.fixture
def backend(session_factory):
    return SqlSheetBackend(session_factory)

@pytest.fixture
def store(backend):
    return SheetStore(backend)
