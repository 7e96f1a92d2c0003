"""
models.py
Lightweight domain records (members, membership periods) and constants.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Any, Mapping

# Package label -> default duration in months (used to pre-fill the renew form)
PACKAGES = {
    "Monthly": 1,
    "Quarterly": 3,
    "Half-yearly": 6,
    "Yearly": 12,
}

PAYMENT_METHODS = ["Cash", "UPI", "Card", "Bank transfer"]

BLOOD_GROUPS = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]

ACTIVE = "active"
EXPIRING = "expiring"
EXPIRED = "expired"
INACTIVE = "inactive"
STATUSES = (ACTIVE, EXPIRING, EXPIRED, INACTIVE)

# Member attributes that staff may change through "edit profile"
PROFILE_FIELDS = (
    "name",
    "contact_number",
    "address",
    "occupation",
    "age",
    "height",
    "weight",
    "blood_group",
    "alcoholic",
    "smoking_habit",
    "teetotaler",
)


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    # str() first so 400.1 stays 400.1 rather than its binary expansion
    return Decimal(str(value))


@dataclass(frozen=True)
class Member:
    id: int | None
    member_no: int | None
    name: str
    contact_number: str = ""
    address: str = ""
    occupation: str = ""
    age: int | None = None
    height: float | None = None
    weight: float | None = None
    blood_group: str = ""
    alcoholic: bool = False
    smoking_habit: bool = False
    teetotaler: bool = False
    photo: str | None = None
    is_inactive: bool = False
    created_at: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Member":
        data = {f.name: row[f.name] for f in fields(cls) if f.name in row.keys()}
        for flag in ("alcoholic", "smoking_habit", "teetotaler", "is_inactive"):
            if flag in data:
                data[flag] = bool(data[flag])
        return cls(**data)


@dataclass(frozen=True)
class MembershipRecord:
    """One paid subscription period of a member."""

    id: int | None
    member_id: int
    package: str
    no_of_months: int
    start_date: str
    end_date: str
    total_amount: Decimal = field(default_factory=Decimal)
    amount_paid: Decimal = field(default_factory=Decimal)
    payment_method: str = "Cash"
    created_at: str = ""

    def __post_init__(self):
        object.__setattr__(self, "total_amount", _to_decimal(self.total_amount))
        object.__setattr__(self, "amount_paid", _to_decimal(self.amount_paid))

    @property
    def balance(self) -> Decimal:
        return self.total_amount - self.amount_paid

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MembershipRecord":
        return cls(**{f.name: row[f.name] for f in fields(cls) if f.name in row.keys()})
