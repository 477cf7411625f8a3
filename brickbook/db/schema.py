# brickbook/db/schema.py

from sqlalchemy import (
    MetaData, Table, Column, Integer, String,
    Numeric, Date, DateTime, ForeignKey, CheckConstraint, Text, Index, func
)

metadata = MetaData()

customers = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("phone", String, nullable=True),
    Column("address", String, nullable=True),
    Column("type", String, nullable=False, server_default="Regular"),
    # Balance columns: written only by brickbook.ledger.engine
    Column("wallet_balance", Numeric(18, 2), nullable=False, server_default="0"),
    Column("outstanding_balance", Numeric(18, 2), nullable=False, server_default="0"),
    Column("total_purchases", Numeric(18, 2), nullable=False, server_default="0"),
    Column("last_active", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    CheckConstraint("type IN ('Regular', 'VIP')", name="ck_customers_type"),
)

sales = Table(
    "sales",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=True),
    Column("customer_name", String, nullable=False),
    Column("product_name", String, nullable=True),
    Column("sale_date", Date, nullable=False),
    Column("total_amount", Numeric(18, 2), nullable=False),
    Column("paid_amount", Numeric(18, 2), nullable=False),
    Column("due_amount", Numeric(18, 2), nullable=False),
    Column("balance_due", Numeric(18, 2), nullable=False),
    Column("advance_paid", Numeric(18, 2), nullable=False, server_default="0"),
    Column("payment_type", String, nullable=False),
    Column("payment_mode", String, nullable=False, server_default="Cash"),
    Column("payment_status", String, nullable=False, server_default="Pending"),
    Column("delivery_status", String, nullable=False, server_default="Pending"),
    Column("status", String, nullable=False, server_default="active"),
    Column("discount_type", String, nullable=False, server_default="Fixed"),
    Column("discount_value", Numeric(18, 2), nullable=False, server_default="0"),
    Column("due_date", Date, nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now()),
    CheckConstraint("total_amount >= 0", name="ck_sales_total_nonneg"),
    CheckConstraint("paid_amount >= 0", name="ck_sales_paid_nonneg"),
    CheckConstraint("advance_paid >= 0", name="ck_sales_advance_nonneg"),
    CheckConstraint(
        "payment_status IN ('Paid', 'Partial', 'Pending')",
        name="ck_sales_payment_status",
    ),
    CheckConstraint(
        "delivery_status IN ('Pending', 'Scheduled', 'Delivered')",
        name="ck_sales_delivery_status",
    ),
    CheckConstraint("status IN ('active', 'cancelled')", name="ck_sales_status"),
    CheckConstraint(
        "payment_type IN ('Cash', 'Credit', 'Dues + Cash', 'Advance + Cash', 'Full Advance')",
        name="ck_sales_payment_type",
    ),
)

sale_items = Table(
    "sale_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "sale_id",
        Integer,
        ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("item_name", Text, nullable=False),
    Column("quantity", Numeric(18, 3), nullable=False),
    Column("unit_price", Numeric(18, 2), nullable=False),
    Column("amount", Numeric(18, 2), nullable=False),
    CheckConstraint("quantity > 0", name="ck_sale_items_quantity_pos"),
    CheckConstraint("unit_price > 0", name="ck_sale_items_unit_price_pos"),
)

# sale_id is not a foreign key so entries survive sale deletion
ledger_entries = Table(
    "ledger_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
    Column("sale_id", Integer, nullable=True),
    Column("kind", String, nullable=False),
    Column("amount", Numeric(18, 2), nullable=False),
    Column("wallet_delta", Numeric(18, 2), nullable=False, server_default="0"),
    Column("outstanding_delta", Numeric(18, 2), nullable=False, server_default="0"),
    Column("purchases_delta", Numeric(18, 2), nullable=False, server_default="0"),
    Column("description", Text, nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)

Index("idx_sales_customer_id", sales.c.customer_id)
Index("idx_sales_sale_date", sales.c.sale_date)
Index("idx_sale_items_sale_id", sale_items.c.sale_id)
Index("idx_ledger_entries_customer_id", ledger_entries.c.customer_id)
Index("idx_ledger_entries_sale_id", ledger_entries.c.sale_id)
