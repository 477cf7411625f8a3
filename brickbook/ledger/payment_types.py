# brickbook/ledger/payment_types.py
"""
Payment types and the balance-delta rule table.

Each payment type maps to one DeltaRule. A rule names which sale amount
(total, due or advance) is drawn from the customer's wallet and which is
booked to their outstanding dues; total purchases always grow by the sale
total. Reversing a sale applies the negated delta.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

ZERO = Decimal("0")


class PaymentType(str, Enum):
    CASH = "Cash"
    CREDIT = "Credit"
    DUES_CASH = "Dues + Cash"
    ADVANCE_CASH = "Advance + Cash"
    FULL_ADVANCE = "Full Advance"


class PaymentStatus(str, Enum):
    PAID = "Paid"
    PARTIAL = "Partial"
    PENDING = "Pending"


class Source(str, Enum):
    """Which stored sale amount drives a balance column."""

    TOTAL = "total"
    DUE = "due"
    ADVANCE = "advance"


class Settlement(str, Enum):
    """How much of the sale must be paid at the till."""

    FULL = "full"
    NONE = "none"
    ANY = "any"


@dataclass(frozen=True)
class SaleAmounts:
    total: Decimal
    paid: Decimal
    due: Decimal
    advance: Decimal

    def of(self, source: Optional[Source]) -> Decimal:
        if source is None:
            return ZERO
        return {
            Source.TOTAL: self.total,
            Source.DUE: self.due,
            Source.ADVANCE: self.advance,
        }[source]


@dataclass(frozen=True)
class BalanceDelta:
    wallet: Decimal = ZERO
    outstanding: Decimal = ZERO
    purchases: Decimal = ZERO

    def __neg__(self) -> "BalanceDelta":
        return BalanceDelta(-self.wallet, -self.outstanding, -self.purchases)

    def __add__(self, other: "BalanceDelta") -> "BalanceDelta":
        return BalanceDelta(
            self.wallet + other.wallet,
            self.outstanding + other.outstanding,
            self.purchases + other.purchases,
        )

    @property
    def is_zero(self) -> bool:
        return self.wallet == ZERO and self.outstanding == ZERO and self.purchases == ZERO

    def as_dict(self) -> Dict[str, Decimal]:
        return {
            "wallet": self.wallet,
            "outstanding": self.outstanding,
            "purchases": self.purchases,
        }


@dataclass(frozen=True)
class DeltaRule:
    wallet_draw: Optional[Source]
    dues: Optional[Source]
    settlement: Settlement

    @property
    def draws_wallet(self) -> bool:
        return self.wallet_draw is not None

    @property
    def books_dues(self) -> bool:
        return self.dues is not None

    def wallet_draw_amount(self, amounts: SaleAmounts) -> Decimal:
        return amounts.of(self.wallet_draw)

    def delta(self, amounts: SaleAmounts) -> BalanceDelta:
        return BalanceDelta(
            wallet=-amounts.of(self.wallet_draw),
            outstanding=amounts.of(self.dues),
            purchases=amounts.total,
        )


DELTA_RULES: Dict[PaymentType, DeltaRule] = {
    PaymentType.CASH: DeltaRule(
        wallet_draw=None, dues=None, settlement=Settlement.FULL
    ),
    PaymentType.CREDIT: DeltaRule(
        wallet_draw=None, dues=Source.TOTAL, settlement=Settlement.NONE
    ),
    PaymentType.DUES_CASH: DeltaRule(
        wallet_draw=None, dues=Source.DUE, settlement=Settlement.ANY
    ),
    PaymentType.ADVANCE_CASH: DeltaRule(
        wallet_draw=Source.ADVANCE, dues=Source.DUE, settlement=Settlement.ANY
    ),
    PaymentType.FULL_ADVANCE: DeltaRule(
        wallet_draw=Source.TOTAL, dues=None, settlement=Settlement.FULL
    ),
}


def rule_for(payment_type: PaymentType) -> DeltaRule:
    return DELTA_RULES[PaymentType(payment_type)]


def derive_payment_status(total: Decimal, paid: Decimal) -> PaymentStatus:
    if paid == total:
        return PaymentStatus.PAID
    if paid == ZERO:
        return PaymentStatus.PENDING
    return PaymentStatus.PARTIAL
