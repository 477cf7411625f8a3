# brickbook/api/sales.py

from typing import List, Optional

from fastapi import APIRouter, Query

from brickbook.db.engine import get_engine
from brickbook.errors import ValidationError
from brickbook.ledger import engine as ledger
from brickbook.ledger import reader
from brickbook.models.sales import (
    CancelRequest,
    PaymentRecord,
    PaymentRecordedOut,
    PaymentUpdate,
    PaymentUpdateOut,
    ReversalOut,
    SaleCreate,
    SaleOut,
    SalesStatsOut,
)

router = APIRouter(prefix="/sales", tags=["sales"])


def _to_draft(body: SaleCreate) -> ledger.SaleDraft:
    if body.customer_id is None or body.items is None:
        raise ValidationError(
            "Missing required fields: customerId and items array are required",
            {
                "hasCustomerId": body.customer_id is not None,
                "hasItems": body.items is not None,
                "itemsLength": len(body.items or []),
            },
        )

    discount = body.discount
    return ledger.SaleDraft(
        customer_id=body.customer_id,
        customer_name=body.customer_name,
        items=[
            ledger.LineItemDraft(
                name=item.name,
                quantity=item.quantity,
                unit_price=item.price,
                amount=item.amount,
            )
            for item in body.items
        ],
        payment_type=body.payment_type,
        total_amount=body.total_amount,
        paid_amount=body.paid_amount,
        advance_paid=body.advance_paid,
        due_amount=body.due_amount,
        sale_date=body.sale_date,
        payment_mode=body.payment_mode,
        delivery_status=body.delivery_status,
        discount_type=discount.type if discount else "Fixed",
        discount_value=discount.value if discount else 0,
        due_date=body.due_date,
        notes=body.notes or "",
    )


@router.get("/", response_model=List[SaleOut])
def list_sales(
    customer_id: Optional[int] = Query(default=None, description="Only this customer's sales"),
) -> List[SaleOut]:
    """
    Return all sales, newest first, with their line items.
    """
    rows = reader.list_sales(get_engine(), customer_id=customer_id)
    return [SaleOut(**row) for row in rows]


@router.get("/stats", response_model=SalesStatsOut)
def sales_stats() -> SalesStatsOut:
    """
    Totals over active (non-cancelled) sales, overall and for today.
    """
    return SalesStatsOut(**reader.sales_stats(get_engine()))


@router.get("/{sale_id}", response_model=SaleOut)
def get_sale(sale_id: int) -> SaleOut:
    return SaleOut(**reader.get_sale(get_engine(), sale_id))


@router.post("/", response_model=SaleOut, status_code=201)
def create_sale(body: SaleCreate) -> SaleOut:
    """
    Persist a sale and apply its balance effects to the customer.
    """
    sale = ledger.create_sale(get_engine(), _to_draft(body))
    return SaleOut(**sale)


@router.put("/{sale_id}/payment", response_model=PaymentUpdateOut)
def update_payment(sale_id: int, body: PaymentUpdate) -> PaymentUpdateOut:
    if body.paid_amount is None:
        raise ValidationError("Valid paid amount is required", {"paidAmount": None})

    result = ledger.adjust_payment(
        get_engine(),
        sale_id,
        body.paid_amount,
        payment_status=body.payment_status,
        notes=body.notes,
        funding=body.funding,
    )
    return PaymentUpdateOut(**result)


@router.post("/{sale_id}/payment", response_model=PaymentRecordedOut)
def record_payment(sale_id: int, body: PaymentRecord) -> PaymentRecordedOut:
    """
    Take a payment against this sale; any excess goes to the customer's wallet.
    """
    if body.amount is None:
        raise ValidationError("Valid payment amount is required", {"amount": None})

    result = ledger.record_payment(get_engine(), sale_id, body.amount, notes=body.notes)
    result["sale"] = SaleOut(**result["sale"])
    return PaymentRecordedOut(**result)


@router.delete("/delete/{sale_id}", response_model=ReversalOut)
def delete_sale(sale_id: int) -> ReversalOut:
    """
    Reverse the sale's balance effects and remove it with its items.
    """
    return ReversalOut(**ledger.delete_sale(get_engine(), sale_id))


@router.delete("/{sale_id}", response_model=ReversalOut)
def cancel_sale(sale_id: int, body: Optional[CancelRequest] = None) -> ReversalOut:
    """
    Cancel the sale: same balance reversal as delete, but the row is kept.
    """
    reason = body.reason if body else None
    return ReversalOut(**ledger.cancel_sale(get_engine(), sale_id, reason=reason))
