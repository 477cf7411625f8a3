# brickbook/db/engine.py

from typing import Dict, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from brickbook.config import DB_ECHO, get_db_url

_engines: Dict[str, Engine] = {}


def _enable_sqlite_foreign_keys(dbapi_conn, _record) -> None:
    # sale_items only cascade on sale delete when SQLite enforces FKs
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(url: Optional[str] = None) -> Engine:
    """
    Return the shared engine for `url` (defaults to BRICKBOOK_DB_URL).
    """
    url = url or get_db_url()

    engine = _engines.get(url)
    if engine is None:
        # echo=True (BRICKBOOK_DB_ECHO=1) prints SQL in the terminal
        engine = create_engine(url, echo=DB_ECHO, future=True)
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        _engines[url] = engine

    return engine


def dispose_engines() -> None:
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
