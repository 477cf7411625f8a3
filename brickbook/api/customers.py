# brickbook/api/customers.py

from typing import List, Literal, Optional

from fastapi import APIRouter, Query
from sqlalchemy import delete, func, insert, select, update

from brickbook.db.engine import get_engine
from brickbook.db.schema import customers, ledger_entries, sales
from brickbook.errors import ValidationError
from brickbook.ledger import engine as ledger
from brickbook.ledger import reader
from brickbook.models.customers import (
    CustomerCreate,
    CustomerOut,
    CustomerStatsOut,
    CustomerUpdate,
    LedgerEntryOut,
    PaymentCollectedOut,
    PaymentCollectRequest,
    WalletApplyOut,
    WalletApplyRequest,
    WalletOut,
    WalletRequest,
)

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("/", response_model=List[CustomerOut])
def list_customers(
    with_: Optional[Literal["dues", "wallet"]] = Query(
        default=None,
        alias="with",
        description="dues | wallet: only customers with outstanding dues / wallet balance",
    ),
    q: Optional[str] = Query(default=None, description="Search by name or phone"),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
) -> List[CustomerOut]:
    """
    Return customers with their current balances.
    """
    rows = reader.list_customers(
        get_engine(),
        with_dues=with_ == "dues",
        with_wallet=with_ == "wallet",
        q=q,
        limit=limit,
    )
    return [CustomerOut(**row) for row in rows]


@router.get("/stats", response_model=CustomerStatsOut)
def customer_stats() -> CustomerStatsOut:
    return CustomerStatsOut(**reader.customer_stats(get_engine()))


@router.post("/", response_model=CustomerOut, status_code=201)
def create_customer(body: CustomerCreate) -> CustomerOut:
    """
    Create a customer profile. Balances start at zero; use the wallet
    endpoint for an opening deposit.
    """
    engine = get_engine()
    name = body.name.strip()
    if not name:
        raise ValidationError("Customer name cannot be blank", {"name": body.name})

    with engine.begin() as conn:
        customer_id = conn.execute(
            insert(customers).values(
                name=name,
                phone=body.phone,
                address=body.address,
                type=body.type,
            )
        ).inserted_primary_key[0]
        row = reader.fetch_customer(conn, customer_id)

    return CustomerOut(**row)


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: int) -> CustomerOut:
    return CustomerOut(**reader.get_customer(get_engine(), customer_id))


@router.put("/{customer_id}", response_model=CustomerOut)
def update_customer(customer_id: int, body: CustomerUpdate) -> CustomerOut:
    engine = get_engine()
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
        if not changes["name"]:
            raise ValidationError("Customer name cannot be blank", {"name": body.name})

    with engine.begin() as conn:
        reader.fetch_customer(conn, customer_id)
        if changes:
            conn.execute(
                update(customers)
                .where(customers.c.id == customer_id)
                .values(**changes)
            )
        row = reader.fetch_customer(conn, customer_id)

    return CustomerOut(**row)


@router.delete("/{customer_id}")
def delete_customer(customer_id: int):
    """
    Delete a customer who has no sales and no open balances.
    """
    engine = get_engine()

    with engine.begin() as conn:
        customer = reader.fetch_customer(conn, customer_id)

        sale_count = conn.execute(
            select(func.count()).where(sales.c.customer_id == customer_id)
        ).scalar_one()
        if sale_count:
            raise ValidationError(
                "Customer has sales and cannot be deleted",
                {"salesCount": sale_count},
            )
        if customer["wallet_balance"] != 0 or customer["outstanding_balance"] != 0:
            raise ValidationError(
                "Customer has an open wallet or dues balance",
                {
                    "walletBalance": str(customer["wallet_balance"]),
                    "outstandingBalance": str(customer["outstanding_balance"]),
                },
            )

        conn.execute(delete(ledger_entries).where(ledger_entries.c.customer_id == customer_id))
        conn.execute(delete(customers).where(customers.c.id == customer_id))

    return {"success": True, "id": customer_id, "message": "Customer deleted successfully"}


@router.get("/{customer_id}/ledger", response_model=List[LedgerEntryOut])
def customer_ledger(
    customer_id: int,
    limit: int = Query(100, ge=1, le=500),
) -> List[LedgerEntryOut]:
    """
    Balance history for a customer, newest first.
    """
    rows = reader.customer_ledger(get_engine(), customer_id, limit=limit)
    return [LedgerEntryOut(**row) for row in rows]


@router.post("/{customer_id}/wallet", response_model=WalletOut)
def update_wallet(customer_id: int, body: WalletRequest) -> WalletOut:
    engine = get_engine()

    if body.type == "credit":
        row = ledger.credit_wallet(
            engine, customer_id, body.amount, description=body.description, notes=body.notes
        )
        message = "Wallet credited successfully"
    else:
        row = ledger.debit_wallet(
            engine, customer_id, body.amount, description=body.description, notes=body.notes
        )
        message = "Wallet debited successfully"

    return WalletOut(success=True, message=message, customer=CustomerOut(**row))


@router.post("/{customer_id}/wallet/apply", response_model=WalletApplyOut)
def apply_wallet_to_dues(customer_id: int, body: WalletApplyRequest) -> WalletApplyOut:
    result = ledger.apply_wallet_to_dues(get_engine(), customer_id, body.amount, notes=body.notes)

    return WalletApplyOut(
        success=True,
        message=f"Applied {result['applied_amount']} from wallet to outstanding dues",
        customer=CustomerOut(**result["customer"]),
        applied_amount=result["applied_amount"],
    )


@router.post("/{customer_id}/payments", response_model=PaymentCollectedOut)
def collect_payment(customer_id: int, body: PaymentCollectRequest) -> PaymentCollectedOut:
    result = ledger.collect_payment(
        get_engine(),
        customer_id,
        body.amount,
        payment_mode=body.payment_mode,
        description=body.description,
        notes=body.notes,
    )

    return PaymentCollectedOut(
        success=True,
        message=f"Payment of {result['payment_received']} collected successfully.",
        customer=CustomerOut(**result["customer"]),
        payment_received=result["payment_received"],
        applied_to_dues=result["applied_to_dues"],
        added_to_wallet=result["added_to_wallet"],
    )
