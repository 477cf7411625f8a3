# tests/conftest.py
# ---------------------------------------------------------------------
# Every test gets its own SQLite file under tmp_path:
# - BRICKBOOK_DB_URL points at it, cached engines are dropped
# - schema is created fresh
# - `engine` for ledger-level tests, `client` for HTTP tests
# ---------------------------------------------------------------------

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import insert

from brickbook.db.engine import dispose_engines, get_engine
from brickbook.db.schema import customers, metadata
from brickbook.ledger import engine as ledger
from brickbook.main import app


@pytest.fixture
def engine(tmp_path, monkeypatch):
    monkeypatch.setenv("BRICKBOOK_DB_URL", f"sqlite:///{tmp_path / 'brickbook_test.db'}")
    dispose_engines()
    eng = get_engine()
    metadata.create_all(eng)
    yield eng
    dispose_engines()


@pytest.fixture
def client(engine):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_customer(engine):
    """Insert a customer; a non-zero wallet is funded through the ledger."""

    def _make(name="Ravi Traders", wallet="0", customer_type="Regular"):
        with engine.begin() as conn:
            customer_id = conn.execute(
                insert(customers).values(name=name, phone="9800000000", type=customer_type)
            ).inserted_primary_key[0]
        if Decimal(wallet) > 0:
            ledger.credit_wallet(engine, customer_id, wallet, description="Opening deposit")
        return customer_id

    return _make

