# brickbook/ledger/engine.py
"""
Ledger Engine.

This module is the only writer of the customer balance columns
(wallet_balance, outstanding_balance, total_purchases). Every public
operation validates its input first, then runs inside one
`ledger_transaction`: the sale rows, the balance update and the ledger
entry are committed together or not at all.

Operations:
    create_sale            apply a new sale (rule table in payment_types)
    delete_sale            reverse a sale's balance effects and remove it
    cancel_sale            reverse a sale's balance effects, keep the row
    adjust_payment         change a sale's paid amount after creation
    record_payment         take a payment against one sale's balance
    credit_wallet / debit_wallet / apply_wallet_to_dues / collect_payment
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine, RowMapping
from sqlalchemy.exc import SQLAlchemyError

from brickbook.db.schema import customers, ledger_entries, sale_items, sales
from brickbook.errors import (
    AlreadyCancelled,
    InsufficientBalance,
    LedgerError,
    NotFound,
    StorageError,
    ValidationError,
)
from brickbook.ledger.payment_types import (
    ZERO,
    BalanceDelta,
    DeltaRule,
    PaymentStatus,
    PaymentType,
    SaleAmounts,
    Settlement,
    derive_payment_status,
    rule_for,
)
from brickbook.ledger.reader import fetch_customer, fetch_sale

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
WALK_IN = "Walk-in"
CANCELLED = "cancelled"

DELIVERY_STATUSES = ("Pending", "Scheduled", "Delivered")
DISCOUNT_TYPES = ("Fixed", "Percentage")


class EntryKind(str, Enum):
    SALE_APPLIED = "sale_applied"
    SALE_REVERSED = "sale_reversed"
    PAYMENT_ADJUSTED = "payment_adjusted"
    WALLET_CREDIT = "wallet_credit"
    WALLET_DEBIT = "wallet_debit"
    DUES_APPLIED = "dues_applied"
    PAYMENT_COLLECTED = "payment_collected"
    WALLET_CLAMPED = "wallet_clamped"


class Funding(str, Enum):
    """Where a payment-update difference is settled."""

    WALLET = "wallet"
    CASH = "cash"


@dataclass
class LineItemDraft:
    name: str
    quantity: Any
    unit_price: Any
    amount: Any = None


@dataclass
class SaleDraft:
    customer_id: Optional[int]
    items: Sequence[LineItemDraft]
    payment_type: Any = PaymentType.CASH
    total_amount: Any = None
    paid_amount: Any = None
    advance_paid: Any = ZERO
    due_amount: Any = None
    customer_name: Optional[str] = None
    sale_date: Optional[date] = None
    payment_mode: str = "Cash"
    delivery_status: str = "Pending"
    discount_type: str = "Fixed"
    discount_value: Any = ZERO
    due_date: Optional[date] = None
    notes: str = ""


@dataclass
class _ValidSale:
    payment_type: PaymentType
    rule: DeltaRule
    amounts: SaleAmounts
    row: Dict[str, Any]
    items: List[Dict[str, Any]] = field(default_factory=list)


# ---- Transactions ----

@contextmanager
def ledger_transaction(engine: Engine) -> Iterator[Connection]:
    """
    Scoped transaction: commit on normal exit, roll back on any exception.

    Database failures surface as StorageError; domain errors pass through.
    """
    try:
        with engine.begin() as conn:
            yield conn
    except LedgerError as exc:
        logger.warning("Ledger transaction rolled back: %s", exc.message)
        raise
    except SQLAlchemyError as exc:
        logger.exception("Ledger transaction rolled back on storage failure")
        raise StorageError(str(exc)) from exc


# ---- Validation helpers ----

def _money(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number", {name: value})
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{name} must be a number", {name: value}) from exc
    if not amount.is_finite():
        raise ValidationError(f"{name} must be a finite number", {name: value})
    return amount.quantize(CENT)


def _positive(value: Any, name: str) -> Decimal:
    amount = _money(value, name)
    if amount <= ZERO:
        raise ValidationError(f"{name} must be greater than 0", {name: value})
    return amount


def _non_negative(value: Any, name: str) -> Decimal:
    amount = _money(value, name)
    if amount < ZERO:
        raise ValidationError(f"{name} cannot be negative", {name: value})
    return amount


def _payment_type(value: Any) -> PaymentType:
    try:
        return PaymentType(value)
    except ValueError as exc:
        raise ValidationError(
            f"Unknown payment type: {value!r}",
            {"paymentType": value, "allowed": [p.value for p in PaymentType]},
        ) from exc


def _validate_items(items: Sequence[LineItemDraft]) -> List[Dict[str, Any]]:
    if not items:
        raise ValidationError("Sale must have at least one item", {"items": []})

    rows = []
    for index, item in enumerate(items):
        name = (item.name or "").strip()
        if not name:
            raise ValidationError(
                "Each item must have a name field", {"itemIndex": index}
            )

        try:
            quantity = Decimal(str(item.quantity))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(
                "Item quantity must be a number", {"itemIndex": index}
            ) from exc
        if not quantity.is_finite() or quantity <= ZERO:
            raise ValidationError(
                "Item quantity must be greater than 0",
                {"itemIndex": index, "quantity": str(item.quantity)},
            )

        try:
            unit_price = _positive(item.unit_price, "price")
        except ValidationError as exc:
            raise ValidationError(
                "Item price must be greater than 0",
                {"itemIndex": index, "price": str(item.unit_price)},
            ) from exc

        if item.amount is None:
            amount = (quantity * unit_price).quantize(CENT)
        else:
            amount = _positive(item.amount, "amount")

        rows.append(
            {
                "item_name": name,
                "quantity": quantity,
                "unit_price": unit_price,
                "amount": amount,
            }
        )
    return rows


def _product_summary(items: List[Dict[str, Any]]) -> str:
    first = items[0]["item_name"]
    if len(items) == 1:
        return first
    return f"{first} +{len(items) - 1} more"


def _default_paid(rule: DeltaRule, total: Decimal, advance: Decimal) -> Decimal:
    if rule.settlement is Settlement.FULL:
        return total
    if rule.settlement is Settlement.NONE:
        return ZERO
    return advance if rule.draws_wallet else ZERO


def _validate_sale(draft: SaleDraft) -> _ValidSale:
    payment_type = _payment_type(draft.payment_type)
    rule = rule_for(payment_type)
    items = _validate_items(draft.items)

    if draft.total_amount is None:
        total = sum((item["amount"] for item in items), ZERO)
    else:
        total = _non_negative(draft.total_amount, "totalAmount")

    advance = _non_negative(draft.advance_paid or ZERO, "advancePaid")
    if payment_type is PaymentType.FULL_ADVANCE:
        advance = total

    if draft.paid_amount is None:
        paid = _default_paid(rule, total, advance)
    else:
        paid = _non_negative(draft.paid_amount, "paidAmount")

    if paid > total:
        raise ValidationError(
            "Paid amount cannot exceed total amount",
            {"paidAmount": str(paid), "totalAmount": str(total)},
        )
    if rule.settlement is Settlement.FULL and paid != total:
        raise ValidationError(
            f"{payment_type.value} sales must be paid in full",
            {"paidAmount": str(paid), "totalAmount": str(total)},
        )
    if rule.settlement is Settlement.NONE and paid != ZERO:
        raise ValidationError(
            f"{payment_type.value} sales cannot carry a paid amount",
            {"paidAmount": str(paid)},
        )
    if rule.draws_wallet and advance > paid:
        raise ValidationError(
            "Advance paid cannot exceed paid amount",
            {"advancePaid": str(advance), "paidAmount": str(paid)},
        )

    due = total - paid
    if draft.due_amount is not None and _money(draft.due_amount, "dueAmount") != due:
        raise ValidationError(
            "Due amount must equal total amount minus paid amount",
            {"dueAmount": str(draft.due_amount), "expected": str(due)},
        )

    if draft.customer_id is None and rule.draws_wallet:
        raise ValidationError(
            f"{payment_type.value} requires a customer with a wallet",
            {"customerId": None},
        )

    if draft.delivery_status not in DELIVERY_STATUSES:
        raise ValidationError(
            "Unknown delivery status",
            {"deliveryStatus": draft.delivery_status, "allowed": list(DELIVERY_STATUSES)},
        )
    if draft.discount_type not in DISCOUNT_TYPES:
        raise ValidationError(
            "Unknown discount type",
            {"discountType": draft.discount_type, "allowed": list(DISCOUNT_TYPES)},
        )

    row = {
        "customer_id": draft.customer_id,
        "customer_name": draft.customer_name,
        "product_name": _product_summary(items),
        "sale_date": draft.sale_date or date.today(),
        "total_amount": total,
        "paid_amount": paid,
        "due_amount": due,
        "balance_due": due,
        "advance_paid": advance,
        "payment_type": payment_type.value,
        "payment_mode": draft.payment_mode or "Cash",
        "payment_status": derive_payment_status(total, paid).value,
        "delivery_status": draft.delivery_status,
        "status": "active",
        "discount_type": draft.discount_type,
        "discount_value": _non_negative(draft.discount_value or ZERO, "discount.value"),
        "due_date": draft.due_date,
        "notes": draft.notes or "",
    }

    return _ValidSale(
        payment_type=payment_type,
        rule=rule,
        amounts=SaleAmounts(total=total, paid=paid, due=due, advance=advance),
        row=row,
        items=items,
    )


# ---- Balance mutation (single write path) ----

def _lock_customer(conn: Connection, customer_id: int) -> RowMapping:
    # FOR UPDATE is a no-op on SQLite, a row lock on Postgres
    row = conn.execute(
        select(customers).where(customers.c.id == customer_id).with_for_update()
    ).mappings().first()
    if row is None:
        raise NotFound(f"Customer {customer_id} not found", customer_id=customer_id)
    return row


def _write_entry(
    conn: Connection,
    customer_id: int,
    kind: EntryKind,
    amount: Decimal,
    delta: BalanceDelta,
    sale_id: Optional[int] = None,
    description: Optional[str] = None,
    notes: Optional[str] = None,
) -> None:
    conn.execute(
        insert(ledger_entries).values(
            customer_id=customer_id,
            sale_id=sale_id,
            kind=kind.value,
            amount=amount,
            wallet_delta=delta.wallet,
            outstanding_delta=delta.outstanding,
            purchases_delta=delta.purchases,
            description=description,
            notes=notes,
        )
    )


def _apply_delta(
    conn: Connection,
    customer_id: int,
    delta: BalanceDelta,
    kind: EntryKind,
    amount: Decimal,
    sale_id: Optional[int] = None,
    description: Optional[str] = None,
    notes: Optional[str] = None,
) -> BalanceDelta:
    stmt = (
        update(customers)
        .where(customers.c.id == customer_id)
        .values(
            wallet_balance=customers.c.wallet_balance + delta.wallet,
            outstanding_balance=customers.c.outstanding_balance + delta.outstanding,
            total_purchases=customers.c.total_purchases + delta.purchases,
            last_active=func.now(),
        )
    )
    draw = -delta.wallet
    if draw > ZERO:
        # Balance check and draw in one statement
        stmt = stmt.where(func.round(customers.c.wallet_balance, 2) >= draw)

    if conn.execute(stmt).rowcount == 0:
        available = conn.execute(
            select(customers.c.wallet_balance).where(customers.c.id == customer_id)
        ).scalar_one_or_none()
        if available is None:
            raise NotFound(f"Customer {customer_id} not found", customer_id=customer_id)
        raise InsufficientBalance(required=draw, available=available)

    _write_entry(conn, customer_id, kind, amount, delta, sale_id, description, notes)

    wallet = conn.execute(
        select(customers.c.wallet_balance).where(customers.c.id == customer_id)
    ).scalar_one()
    if wallet < ZERO:
        # Only a wallet that was already negative gets here; the clamp
        # belongs to no sale, so no reversal ever refunds it
        logger.error(
            "Wallet balance anomaly: customer %s went to %s after %s; clamping to 0",
            customer_id, wallet, kind.value,
        )
        clamp = BalanceDelta(wallet=-wallet)
        conn.execute(
            update(customers)
            .where(customers.c.id == customer_id)
            .values(wallet_balance=ZERO)
        )
        _write_entry(
            conn, customer_id, EntryKind.WALLET_CLAMPED, -wallet, clamp,
            description="Negative wallet balance reset to 0",
        )

    return delta


def _require_wallet(customer: RowMapping, required: Decimal) -> None:
    available = customer["wallet_balance"]
    if required > available:
        raise InsufficientBalance(required=required, available=available)


# ---- Sales ----

def create_sale(engine: Engine, draft: SaleDraft) -> Dict[str, Any]:
    """
    Persist a sale with its items and apply its balance delta.

    Raises ValidationError, NotFound (unknown customer) or
    InsufficientBalance (wallet-drawing types); nothing is written then.
    """
    sale = _validate_sale(draft)
    row = dict(sale.row)

    with ledger_transaction(engine) as conn:
        customer = None
        if row["customer_id"] is not None:
            customer = _lock_customer(conn, row["customer_id"])
            _require_wallet(customer, sale.rule.wallet_draw_amount(sale.amounts))

        if not row["customer_name"]:
            row["customer_name"] = customer["name"] if customer is not None else WALK_IN

        sale_id = conn.execute(insert(sales).values(**row)).inserted_primary_key[0]
        conn.execute(
            insert(sale_items),
            [dict(item, sale_id=sale_id) for item in sale.items],
        )

        if customer is not None:
            _apply_delta(
                conn,
                customer["id"],
                sale.rule.delta(sale.amounts),
                EntryKind.SALE_APPLIED,
                sale.amounts.total,
                sale_id=sale_id,
                description=f"Sale #{sale_id} ({sale.payment_type.value})",
            )

        created = fetch_sale(conn, sale_id)

    logger.info(
        "Sale %s created: customer=%s type=%s total=%s paid=%s due=%s advance=%s",
        sale_id, row["customer_id"], sale.payment_type.value,
        sale.amounts.total, sale.amounts.paid, sale.amounts.due, sale.amounts.advance,
    )
    return created


def _load_sale(conn: Connection, sale_id: int) -> RowMapping:
    row = conn.execute(
        select(sales).where(sales.c.id == sale_id).with_for_update()
    ).mappings().first()
    if row is None:
        raise NotFound(f"Sale {sale_id} not found", sale_id=sale_id)
    return row


def _stored_amounts(sale: RowMapping) -> SaleAmounts:
    return SaleAmounts(
        total=sale["total_amount"],
        paid=sale["paid_amount"],
        due=sale["due_amount"],
        advance=sale["advance_paid"],
    )


def _payment_adjustments(conn: Connection, sale_id: int) -> BalanceDelta:
    # Clamp entries tagged with a sale offset part of its wallet draw
    row = conn.execute(
        select(
            func.coalesce(func.sum(ledger_entries.c.wallet_delta), 0),
            func.coalesce(func.sum(ledger_entries.c.outstanding_delta), 0),
            func.coalesce(func.sum(ledger_entries.c.purchases_delta), 0),
        ).where(
            ledger_entries.c.sale_id == sale_id,
            ledger_entries.c.kind.in_(
                [EntryKind.PAYMENT_ADJUSTED.value, EntryKind.WALLET_CLAMPED.value]
            ),
        )
    ).one()
    return BalanceDelta(*(_money(value, "adjustment") for value in row))


def _reverse_balances(conn: Connection, sale: RowMapping, description: str) -> BalanceDelta:
    """
    Undo everything the sale did to its customer: the creation delta from
    the stored amounts plus any later payment adjustments.

    Taking back a wallet refund the customer has since spent raises
    InsufficientBalance; the wallet is never pushed below zero.
    """
    if sale["customer_id"] is None:
        return BalanceDelta()

    _lock_customer(conn, sale["customer_id"])
    applied = rule_for(sale["payment_type"]).delta(_stored_amounts(sale))
    applied = applied + _payment_adjustments(conn, sale["id"])

    return _apply_delta(
        conn,
        sale["customer_id"],
        -applied,
        EntryKind.SALE_REVERSED,
        sale["total_amount"],
        sale_id=sale["id"],
        description=description,
    )


def delete_sale(engine: Engine, sale_id: int) -> Dict[str, Any]:
    """
    Reverse the sale's balance effects, then delete its items and row.
    """
    with ledger_transaction(engine) as conn:
        sale = _load_sale(conn, sale_id)
        if sale["status"] == CANCELLED:
            raise AlreadyCancelled(sale_id)

        reversed_delta = _reverse_balances(conn, sale, f"Sale #{sale_id} deleted")
        conn.execute(delete(sale_items).where(sale_items.c.sale_id == sale_id))
        conn.execute(delete(sales).where(sales.c.id == sale_id))

    logger.info(
        "Sale %s deleted; customer %s reversed by %s",
        sale_id, sale["customer_id"], reversed_delta.as_dict(),
    )
    return {
        "success": True,
        "message": "Sale deleted successfully. Customer balances have been adjusted.",
        "sale_id": sale_id,
        "status": "deleted",
        "reversed_customer_id": sale["customer_id"],
        "reversed": reversed_delta.as_dict(),
    }


def cancel_sale(engine: Engine, sale_id: int, reason: Optional[str] = None) -> Dict[str, Any]:
    """
    Mark the sale cancelled and apply the same reversal as delete_sale.

    The row and its items stay for history. Cancelling twice raises
    AlreadyCancelled.
    """
    reason = reason or "No reason provided"

    with ledger_transaction(engine) as conn:
        sale = _load_sale(conn, sale_id)
        if sale["status"] == CANCELLED:
            raise AlreadyCancelled(sale_id)

        reversed_delta = _reverse_balances(conn, sale, f"Sale #{sale_id} cancelled: {reason}")
        notes = sale["notes"] or ""
        conn.execute(
            update(sales)
            .where(sales.c.id == sale_id)
            .values(
                status=CANCELLED,
                notes=f"{notes} | Cancelled: {reason}" if notes else f"Cancelled: {reason}",
                updated_at=func.now(),
            )
        )

    logger.info("Sale %s cancelled (%s)", sale_id, reason)
    return {
        "success": True,
        "message": "Sale cancelled successfully. Customer balances have been adjusted.",
        "sale_id": sale_id,
        "status": CANCELLED,
        "reversed_customer_id": sale["customer_id"],
        "reversed": reversed_delta.as_dict(),
    }


def adjust_payment(
    engine: Engine,
    sale_id: int,
    paid_amount: Any,
    payment_status: Optional[str] = None,
    notes: Optional[str] = None,
    funding: Any = Funding.WALLET,
) -> Dict[str, Any]:
    """
    Record a new paid amount for an existing sale.

    With funding=wallet the customer's wallet moves by -(new - old) paid,
    which is how payment updates have always been settled. With
    funding=cash the wallet is untouched and, for sales whose due was
    booked to outstanding dues, the dues move by the same difference.
    """
    new_paid = _non_negative(paid_amount, "paidAmount")

    status_override = None
    if payment_status is not None:
        try:
            status_override = PaymentStatus(payment_status)
        except ValueError as exc:
            raise ValidationError(
                "Unknown payment status",
                {"paymentStatus": payment_status, "allowed": [s.value for s in PaymentStatus]},
            ) from exc

    try:
        funding = Funding(funding)
    except ValueError as exc:
        raise ValidationError(
            "Unknown funding source",
            {"funding": funding, "allowed": [f.value for f in Funding]},
        ) from exc

    with ledger_transaction(engine) as conn:
        sale = _load_sale(conn, sale_id)
        if sale["status"] == CANCELLED:
            raise AlreadyCancelled(sale_id)

        total = sale["total_amount"]
        if new_paid > total:
            raise ValidationError(
                f"Paid amount cannot exceed total amount: {total}",
                {"paidAmount": str(new_paid), "totalAmount": str(total)},
            )

        payment_diff = new_paid - sale["paid_amount"]
        balance_due = total - new_paid
        status = status_override or derive_payment_status(total, new_paid)

        values = {
            "paid_amount": new_paid,
            "balance_due": balance_due,
            "payment_status": status.value,
            "updated_at": func.now(),
        }
        if notes:
            values["notes"] = f"{sale['notes']} | {notes}" if sale["notes"] else notes
        conn.execute(update(sales).where(sales.c.id == sale_id).values(**values))

        applied = BalanceDelta()
        if sale["customer_id"] is not None and payment_diff != ZERO:
            customer = _lock_customer(conn, sale["customer_id"])

            if funding is Funding.WALLET:
                if payment_diff > ZERO:
                    _require_wallet(customer, payment_diff)
                delta = BalanceDelta(wallet=-payment_diff)
            elif rule_for(sale["payment_type"]).books_dues:
                delta = BalanceDelta(outstanding=-payment_diff)
            else:
                delta = BalanceDelta()

            if not delta.is_zero:
                applied = _apply_delta(
                    conn,
                    customer["id"],
                    delta,
                    EntryKind.PAYMENT_ADJUSTED,
                    payment_diff,
                    sale_id=sale_id,
                    description=f"Payment update on sale #{sale_id} ({funding.value})",
                    notes=notes,
                )

    logger.info(
        "Sale %s payment updated: paid %s -> %s (%s), funding=%s",
        sale_id, sale["paid_amount"], new_paid, status.value, funding.value,
    )
    return {
        "success": True,
        "message": "Payment updated successfully",
        "id": sale_id,
        "paid_amount": new_paid,
        "balance_due": balance_due,
        "payment_status": status.value,
        "payment_diff": payment_diff,
        "funding": funding.value,
        "applied": applied.as_dict(),
    }


def record_payment(
    engine: Engine,
    sale_id: int,
    amount: Any,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Take a payment against one sale.

    The part that settles the sale's remaining balance raises its paid
    amount and, for sales that booked dues, lowers the customer's
    outstanding dues. Anything beyond the remaining balance is credited
    to the customer's wallet and is not undone if the sale is reversed.
    """
    amount = _positive(amount, "amount")

    with ledger_transaction(engine) as conn:
        sale = _load_sale(conn, sale_id)
        if sale["status"] == CANCELLED:
            raise AlreadyCancelled(sale_id)

        customer_id = sale["customer_id"]
        total = sale["total_amount"]
        previous_paid = sale["paid_amount"]
        to_sale = min(amount, max(total - previous_paid, ZERO))
        to_wallet = amount - to_sale

        if customer_id is None and to_wallet > ZERO:
            raise ValidationError(
                "Payment exceeds the remaining balance of a walk-in sale",
                {"amount": str(amount), "remainingDue": str(to_sale)},
            )

        new_paid = previous_paid + to_sale
        remaining = total - new_paid
        status = derive_payment_status(total, new_paid)
        stamp = f"Payment received: {amount} on {date.today().isoformat()} - {notes or 'No notes'}"
        conn.execute(
            update(sales)
            .where(sales.c.id == sale_id)
            .values(
                paid_amount=new_paid,
                balance_due=remaining,
                payment_status=status.value,
                notes=f"{sale['notes']} | {stamp}" if sale["notes"] else stamp,
                updated_at=func.now(),
            )
        )

        to_dues = ZERO
        if customer_id is not None:
            _lock_customer(conn, customer_id)
            if to_sale > ZERO:
                if rule_for(sale["payment_type"]).books_dues:
                    to_dues = to_sale
                # Reversal nets this entry out
                _apply_delta(
                    conn,
                    customer_id,
                    BalanceDelta(outstanding=-to_dues),
                    EntryKind.PAYMENT_ADJUSTED,
                    to_sale,
                    sale_id=sale_id,
                    description=f"Payment for sale #{sale_id}",
                    notes=notes,
                )
            if to_wallet > ZERO:
                _apply_delta(
                    conn,
                    customer_id,
                    BalanceDelta(wallet=to_wallet),
                    EntryKind.WALLET_CREDIT,
                    to_wallet,
                    description=f"Excess payment on sale #{sale_id}",
                    notes=notes,
                )

        updated = fetch_sale(conn, sale_id)

    logger.info(
        "Payment recorded on sale %s: amount=%s paid %s -> %s dues=%s wallet=%s",
        sale_id, amount, previous_paid, new_paid, to_dues, to_wallet,
    )
    return {
        "success": True,
        "message": "Payment recorded successfully",
        "sale_id": sale_id,
        "amount": amount,
        "previous_paid": previous_paid,
        "new_paid": new_paid,
        "remaining_due": remaining,
        "payment_status": status.value,
        "applied_to_dues": to_dues,
        "added_to_wallet": to_wallet,
        "sale": updated,
    }


# ---- Customer wallet and dues ----

def credit_wallet(
    engine: Engine,
    customer_id: int,
    amount: Any,
    description: Optional[str] = None,
    notes: Optional[str] = None,
) -> RowMapping:
    amount = _positive(amount, "amount")

    with ledger_transaction(engine) as conn:
        _lock_customer(conn, customer_id)
        _apply_delta(
            conn, customer_id, BalanceDelta(wallet=amount), EntryKind.WALLET_CREDIT,
            amount, description=description or "Wallet credit", notes=notes,
        )
        customer = fetch_customer(conn, customer_id)

    logger.info("Wallet credited: customer=%s amount=%s", customer_id, amount)
    return customer


def debit_wallet(
    engine: Engine,
    customer_id: int,
    amount: Any,
    description: Optional[str] = None,
    notes: Optional[str] = None,
) -> RowMapping:
    amount = _positive(amount, "amount")

    with ledger_transaction(engine) as conn:
        customer = _lock_customer(conn, customer_id)
        _require_wallet(customer, amount)
        _apply_delta(
            conn, customer_id, BalanceDelta(wallet=-amount), EntryKind.WALLET_DEBIT,
            amount, description=description or "Wallet debit", notes=notes,
        )
        customer = fetch_customer(conn, customer_id)

    logger.info("Wallet debited: customer=%s amount=%s", customer_id, amount)
    return customer


def apply_wallet_to_dues(
    engine: Engine,
    customer_id: int,
    amount: Any,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Move up to `amount` from the wallet onto outstanding dues.
    """
    amount = _positive(amount, "amount")

    with ledger_transaction(engine) as conn:
        customer = _lock_customer(conn, customer_id)
        _require_wallet(customer, amount)

        dues = customer["outstanding_balance"]
        if dues <= ZERO:
            raise ValidationError(
                "Customer has no outstanding dues to apply wallet to",
                {"currentDues": str(dues)},
            )

        applied_amount = min(amount, dues)
        _apply_delta(
            conn,
            customer_id,
            BalanceDelta(wallet=-applied_amount, outstanding=-applied_amount),
            EntryKind.DUES_APPLIED,
            applied_amount,
            description="Applied to outstanding dues",
            notes=notes or f"Dues reduced from {dues} to {dues - applied_amount}",
        )
        customer = fetch_customer(conn, customer_id)

    logger.info("Wallet applied to dues: customer=%s amount=%s", customer_id, applied_amount)
    return {"customer": customer, "applied_amount": applied_amount}


def collect_payment(
    engine: Engine,
    customer_id: int,
    amount: Any,
    payment_mode: str = "Cash",
    description: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Take a payment from the customer: dues first, any excess into the wallet.
    """
    amount = _positive(amount, "amount")

    with ledger_transaction(engine) as conn:
        customer = _lock_customer(conn, customer_id)
        dues = max(customer["outstanding_balance"], ZERO)

        to_dues = min(amount, dues)
        to_wallet = amount - to_dues
        _apply_delta(
            conn,
            customer_id,
            BalanceDelta(wallet=to_wallet, outstanding=-to_dues),
            EntryKind.PAYMENT_COLLECTED,
            amount,
            description=description or f"Payment collected ({payment_mode})",
            notes=notes,
        )
        customer = fetch_customer(conn, customer_id)

    logger.info(
        "Payment collected: customer=%s amount=%s dues=%s wallet=%s",
        customer_id, amount, to_dues, to_wallet,
    )
    return {
        "customer": customer,
        "payment_received": amount,
        "applied_to_dues": to_dues,
        "added_to_wallet": to_wallet,
    }
