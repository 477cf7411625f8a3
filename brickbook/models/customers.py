# brickbook/models/customers.py

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None
    type: Literal["Regular", "VIP"] = "Regular"


class CustomerUpdate(BaseModel):
    """
    Profile fields only; balances move through the wallet/payment endpoints.
    """

    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None
    type: Optional[Literal["Regular", "VIP"]] = None


class CustomerOut(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    type: str
    wallet_balance: Decimal
    outstanding_balance: Decimal
    total_purchases: Decimal
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerStatsOut(BaseModel):
    total_customers: int
    customers_with_dues: int
    total_dues: Decimal
    total_wallet: Decimal
    total_purchases: Decimal


class WalletRequest(BaseModel):
    amount: Decimal
    type: Literal["credit", "debit"] = "credit"
    description: Optional[str] = None
    notes: Optional[str] = None


class WalletApplyRequest(BaseModel):
    amount: Decimal
    notes: Optional[str] = None


class PaymentCollectRequest(BaseModel):
    amount: Decimal
    payment_mode: str = Field(default="Cash", alias="paymentMode")
    description: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        populate_by_name = True


class WalletOut(BaseModel):
    success: bool
    message: str
    customer: CustomerOut


class WalletApplyOut(BaseModel):
    success: bool
    message: str
    customer: CustomerOut
    applied_amount: Decimal


class PaymentCollectedOut(BaseModel):
    success: bool
    message: str
    customer: CustomerOut
    payment_received: Decimal
    applied_to_dues: Decimal
    added_to_wallet: Decimal


class LedgerEntryOut(BaseModel):
    id: int
    customer_id: int
    sale_id: Optional[int] = None
    kind: str
    amount: Decimal
    wallet_delta: Decimal
    outstanding_delta: Decimal
    purchases_delta: Decimal
    description: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
