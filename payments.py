"""
payments.py
Total / paid / balance bookkeeping for a membership period.

Staff may enter a payment either as (total, paid) or as (paid, balance);
the missing figure is always derived so the three stay consistent.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any

from models import MembershipRecord

ZERO = Decimal(0)


def parse_amount(value: Any) -> Decimal:
    """Blank input counts as 0. Raises ValueError for anything non-numeric."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    text = str(value).strip().replace(",", "")
    if not text:
        return ZERO
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not an amount: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Not an amount: {value!r}")
    return amount


@dataclass(frozen=True)
class PaymentTriple:
    total: Decimal
    paid: Decimal
    balance: Decimal


def reconcile(total: Any = None, paid: Any = None, balance: Any = None) -> PaymentTriple:
    """
    Complete the triple from two of its parts. With a total, the balance is
    derived (total - paid); without one, the total is paid + balance.
    """
    paid_amt = parse_amount(paid)
    if total is not None and str(total).strip() != "":
        total_amt = parse_amount(total)
        return PaymentTriple(total_amt, paid_amt, total_amt - paid_amt)
    balance_amt = parse_amount(balance)
    return PaymentTriple(paid_amt + balance_amt, paid_amt, balance_amt)


def validate_amounts(triple: PaymentTriple) -> list[str]:
    errors: list[str] = []
    if triple.total < 0:
        errors.append("Total amount cannot be negative.")
    if triple.paid < 0:
        errors.append("Amount paid cannot be negative.")
    if triple.balance < 0:
        errors.append("Amount paid cannot exceed the total amount.")
    return errors


@dataclass(frozen=True)
class PaymentDraft:
    """
    Form state for the payment fields. The total is the anchor: changing it
    or the paid amount re-derives the balance, changing the balance
    re-derives the paid amount.
    """

    total: Decimal = ZERO
    paid: Decimal = ZERO
    balance: Decimal = ZERO

    @classmethod
    def from_record(cls, record: MembershipRecord) -> "PaymentDraft":
        return cls(record.total_amount, record.amount_paid, record.balance)

    @classmethod
    def from_triple(cls, triple: PaymentTriple) -> "PaymentDraft":
        return cls(triple.total, triple.paid, triple.balance)

    def set_total(self, value: Any) -> "PaymentDraft":
        total = parse_amount(value)
        return replace(self, total=total, balance=total - self.paid)

    def set_paid(self, value: Any) -> "PaymentDraft":
        paid = parse_amount(value)
        return replace(self, paid=paid, balance=self.total - paid)

    def set_balance(self, value: Any) -> "PaymentDraft":
        balance = parse_amount(value)
        return replace(self, balance=balance, paid=self.total - balance)

    def triple(self) -> PaymentTriple:
        return PaymentTriple(self.total, self.paid, self.balance)
