# brickbook/ledger/reader.py
"""
Balance Reader: read-only queries over customers, sales and ledger entries.

Nothing here writes; balance mutations live in brickbook.ledger.engine.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.engine import Connection, Engine, RowMapping

from brickbook.db.schema import customers, ledger_entries, sale_items, sales
from brickbook.errors import NotFound

ZERO = Decimal("0")


def _items_by_sale(conn: Connection, sale_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
    grouped: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
    if not sale_ids:
        return grouped

    stmt = (
        select(sale_items)
        .where(sale_items.c.sale_id.in_(sale_ids))
        .order_by(sale_items.c.sale_id, sale_items.c.id)
    )
    for row in conn.execute(stmt).mappings():
        grouped[row["sale_id"]].append(dict(row))
    return grouped


def fetch_sale(conn: Connection, sale_id: int) -> Dict[str, Any]:
    """
    Load one sale with its line items on an open connection.
    """
    row = conn.execute(select(sales).where(sales.c.id == sale_id)).mappings().first()
    if row is None:
        raise NotFound(f"Sale {sale_id} not found", sale_id=sale_id)

    sale = dict(row)
    sale["items"] = _items_by_sale(conn, [sale_id])[sale_id]
    return sale


def get_sale(engine: Engine, sale_id: int) -> Dict[str, Any]:
    with engine.connect() as conn:
        return fetch_sale(conn, sale_id)


def list_sales(engine: Engine, customer_id: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Sales newest first, each with its items. Cancelled sales are included.
    """
    stmt = select(sales).order_by(sales.c.sale_date.desc(), sales.c.id.desc())
    if customer_id is not None:
        stmt = stmt.where(sales.c.customer_id == customer_id)

    with engine.connect() as conn:
        rows = conn.execute(stmt).mappings().all()
        items = _items_by_sale(conn, [row["id"] for row in rows])

    result = []
    for row in rows:
        sale = dict(row)
        sale["items"] = items.get(row["id"], [])
        result.append(sale)
    return result


def sales_stats(engine: Engine, today: Optional[date] = None) -> Dict[str, Dict[str, Any]]:
    today = today or date.today()
    active = sales.c.status != "cancelled"

    with engine.connect() as conn:
        overall = conn.execute(
            select(
                func.count().label("total_sales"),
                func.coalesce(func.sum(sales.c.total_amount), 0).label("total_revenue"),
                func.coalesce(func.sum(sales.c.paid_amount), 0).label("total_collected"),
                func.coalesce(func.sum(sales.c.balance_due), 0).label("total_outstanding"),
                func.coalesce(func.avg(sales.c.total_amount), 0).label("avg_sale_amount"),
                func.min(sales.c.sale_date).label("first_sale_date"),
                func.max(sales.c.sale_date).label("last_sale_date"),
            ).where(active)
        ).mappings().one()

        todays = conn.execute(
            select(
                func.count().label("today_sales"),
                func.coalesce(func.sum(sales.c.total_amount), 0).label("today_revenue"),
            ).where(and_(active, sales.c.sale_date == today))
        ).mappings().one()

    return {"overall": dict(overall), "today": dict(todays)}


# ---- Customers ----

def fetch_customer(conn: Connection, customer_id: int) -> RowMapping:
    row = conn.execute(
        select(customers).where(customers.c.id == customer_id)
    ).mappings().first()
    if row is None:
        raise NotFound(f"Customer {customer_id} not found", customer_id=customer_id)
    return row


def get_customer(engine: Engine, customer_id: int) -> RowMapping:
    with engine.connect() as conn:
        return fetch_customer(conn, customer_id)


def list_customers(
    engine: Engine,
    with_dues: bool = False,
    with_wallet: bool = False,
    q: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[RowMapping]:
    """
    Customers by name. With `q`, only those whose name or phone contains
    it (case-insensitive), name matches ranked before phone matches.
    """
    stmt = select(customers)
    q = (q or "").strip()
    if q:
        pattern = f"%{q}%"
        stmt = stmt.where(
            or_(customers.c.name.ilike(pattern), customers.c.phone.ilike(pattern))
        ).order_by(case((customers.c.name.ilike(pattern), 0), else_=1))
    stmt = stmt.order_by(customers.c.name)
    if with_dues:
        stmt = stmt.where(customers.c.outstanding_balance > 0)
    if with_wallet:
        stmt = stmt.where(customers.c.wallet_balance > 0)
    if limit is not None:
        stmt = stmt.limit(limit)

    with engine.connect() as conn:
        return conn.execute(stmt).mappings().all()


def customer_ledger(engine: Engine, customer_id: int, limit: int = 100) -> List[RowMapping]:
    """
    Ledger entries for one customer, newest first.
    """
    with engine.connect() as conn:
        fetch_customer(conn, customer_id)
        stmt = (
            select(ledger_entries)
            .where(ledger_entries.c.customer_id == customer_id)
            .order_by(ledger_entries.c.id.desc())
            .limit(limit)
        )
        return conn.execute(stmt).mappings().all()


def customer_stats(engine: Engine) -> Dict[str, Any]:
    with engine.connect() as conn:
        row = conn.execute(
            select(
                func.count().label("total_customers"),
                func.coalesce(func.sum(customers.c.outstanding_balance), 0).label("total_dues"),
                func.coalesce(func.sum(customers.c.wallet_balance), 0).label("total_wallet"),
                func.coalesce(func.sum(customers.c.total_purchases), 0).label("total_purchases"),
            )
        ).mappings().one()

        with_dues = conn.execute(
            select(func.count()).where(customers.c.outstanding_balance > 0)
        ).scalar_one()

    stats = dict(row)
    stats["customers_with_dues"] = with_dues
    return stats
