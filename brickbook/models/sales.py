# brickbook/models/sales.py

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class SaleItemIn(BaseModel):
    name: Optional[str] = None
    quantity: Optional[Decimal] = None
    price: Optional[Decimal] = None
    amount: Optional[Decimal] = None


class DiscountIn(BaseModel):
    type: str = "Fixed"
    value: Decimal = Decimal("0")


class SaleCreate(BaseModel):
    """
    Body of POST /sales. Keys follow the front end's camelCase names.
    """

    customer_id: Optional[int] = Field(default=None, alias="customerId")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    sale_date: Optional[date] = Field(default=None, alias="date")
    items: Optional[List[SaleItemIn]] = None
    total_amount: Optional[Decimal] = Field(default=None, alias="totalAmount")
    paid_amount: Optional[Decimal] = Field(default=None, alias="paidAmount")
    payment_type: str = Field(default="Cash", alias="paymentType")
    payment_mode: str = Field(default="Cash", alias="paymentMode")
    delivery_status: str = Field(default="Pending", alias="deliveryStatus")
    advance_paid: Decimal = Field(default=Decimal("0"), alias="advancePaid")
    due_amount: Optional[Decimal] = Field(default=None, alias="dueAmount")
    discount: Optional[DiscountIn] = None
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    notes: Optional[str] = None

    class Config:
        populate_by_name = True


class PaymentUpdate(BaseModel):
    paid_amount: Optional[Decimal] = Field(default=None, alias="paidAmount")
    payment_status: Optional[str] = Field(default=None, alias="paymentStatus")
    notes: Optional[str] = None
    funding: Literal["wallet", "cash"] = "wallet"

    class Config:
        populate_by_name = True


class PaymentRecord(BaseModel):
    amount: Optional[Decimal] = None
    notes: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class SaleItemOut(BaseModel):
    id: int
    sale_id: int
    item_name: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    id: int
    customer_id: Optional[int] = None
    customer_name: str
    product_name: Optional[str] = None
    sale_date: date
    total_amount: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    balance_due: Decimal
    advance_paid: Decimal
    payment_type: str
    payment_mode: str
    payment_status: str
    delivery_status: str
    status: str
    discount_type: str
    discount_value: Decimal
    due_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[SaleItemOut] = []

    class Config:
        from_attributes = True


class ReversalOut(BaseModel):
    success: bool
    message: str
    sale_id: int = Field(alias="saleId")
    status: str
    reversed_customer_id: Optional[int] = Field(default=None, alias="reversedCustomerId")
    reversed: Dict[str, Decimal]

    class Config:
        populate_by_name = True


class PaymentUpdateOut(BaseModel):
    success: bool
    message: str
    id: int
    paid_amount: Decimal
    balance_due: Decimal
    payment_status: str
    payment_diff: Decimal
    funding: str
    applied: Dict[str, Decimal]


class PaymentRecordedOut(BaseModel):
    success: bool
    message: str
    sale_id: int
    amount: Decimal
    previous_paid: Decimal
    new_paid: Decimal
    remaining_due: Decimal
    payment_status: str
    applied_to_dues: Decimal
    added_to_wallet: Decimal
    sale: SaleOut


class OverallSalesStats(BaseModel):
    total_sales: int
    total_revenue: Decimal
    total_collected: Decimal
    total_outstanding: Decimal
    avg_sale_amount: Decimal
    first_sale_date: Optional[date] = None
    last_sale_date: Optional[date] = None


class TodaySalesStats(BaseModel):
    today_sales: int
    today_revenue: Decimal


class SalesStatsOut(BaseModel):
    overall: OverallSalesStats
    today: TodaySalesStats
