"""
reports.py
Monthly payment summary, member roster/status counts, payment reminders.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable
from urllib.parse import quote

import pandas as pd

import config
import db
from errors import Outcome, StoreError
from history import earliest_starts, latest, member_status
from models import ACTIVE, EXPIRED, EXPIRING, INACTIVE, Member, MembershipRecord
from utils import days_remaining, month_bounds, parse_iso

logger = logging.getLogger(__name__)


@dataclass
class MonthlyReport:
    new_members: int = 0
    renewals: int = 0
    earned_amount: Decimal = Decimal(0)
    balance_amount: Decimal = Decimal(0)
    all_time_earnings: Decimal = Decimal(0)
    total_gym_members: int = 0
    paid: list[MembershipRecord] = field(default_factory=list)
    pending: list[MembershipRecord] = field(default_factory=list)


def aggregate(
    month_records: Iterable[MembershipRecord],
    all_records: Iterable[MembershipRecord],
    active_member_count: int,
    window: tuple[date, date] | None = None,
) -> MonthlyReport:
    """
    Summarize the records that start inside `window` (inclusive).

    A record is a renewal when its member has an earlier-starting record
    anywhere in `all_records`, or already appeared earlier in this month.
    """
    all_records = list(all_records)
    first_starts = earliest_starts(all_records)

    in_month = list(month_records)
    if window is not None:
        lo, hi = window
        in_month = [r for r in in_month if lo <= parse_iso(r.start_date) <= hi]
    in_month.sort(key=lambda r: (parse_iso(r.start_date), r.created_at or "", r.id or 0))

    report = MonthlyReport(
        all_time_earnings=sum((r.amount_paid for r in all_records), Decimal(0)),
        total_gym_members=active_member_count,
    )
    seen: set[int] = set()
    for r in in_month:
        report.earned_amount += r.amount_paid
        report.balance_amount += r.balance
        if r.balance <= 0:
            report.paid.append(r)
        else:
            report.pending.append(r)

        first = first_starts.get(r.member_id)
        if (first is not None and first < parse_iso(r.start_date)) or r.member_id in seen:
            report.renewals += 1
        else:
            report.new_members += 1
        seen.add(r.member_id)
    return report


@dataclass(frozen=True)
class PaymentLine:
    record: MembershipRecord
    member_name: str
    contact_number: str


def _store_failure(action: str, exc: Exception) -> Outcome:
    logger.error("Store error while trying to %s: %s", action, exc)
    return Outcome.failure(StoreError(f"Could not {action}: {exc}"))


def monthly_report(year: int, month: int) -> Outcome:
    """
    Build the report for one calendar month from two bulk reads: the month's
    records (with member contact details) and the full membership table.
    On success the value is (report, lines), lines mapping membership id ->
    PaymentLine for display.
    """
    first, last = month_bounds(year, month)
    try:
        rows = db.memberships_between(first.isoformat(), last.isoformat())
        all_rows = db.all_memberships()
        active_count = db.count_active_members()
    except sqlite3.Error as e:
        return _store_failure("load monthly report", e)

    lines = {
        row["id"]: PaymentLine(MembershipRecord.from_row(row), row["member_name"], row["member_contact"])
        for row in rows
    }
    report = aggregate(
        [line.record for line in lines.values()],
        [MembershipRecord.from_row(r) for r in all_rows],
        active_count,
        window=(first, last),
    )
    return Outcome.success((report, lines))


@dataclass(frozen=True)
class RosterEntry:
    member: Member
    latest: MembershipRecord | None
    status: str
    days_left: int | None


def roster(today: date) -> Outcome:
    """Every member with their current period and status, newest members first."""
    try:
        membership_rows = db.all_memberships()
        member_rows = db.list_members()
    except sqlite3.Error as e:
        return _store_failure("load members", e)

    by_member: dict[int, list[MembershipRecord]] = {}
    for row in membership_rows:
        record = MembershipRecord.from_row(row)
        by_member.setdefault(record.member_id, []).append(record)

    entries = []
    for row in member_rows:
        member = Member.from_row(row)
        records = by_member.get(member.id, [])
        current = latest(records)
        entries.append(
            RosterEntry(
                member=member,
                latest=current,
                status=member_status(member, records, today),
                days_left=days_remaining(current.end_date, today) if current else None,
            )
        )
    return Outcome.success(entries)


def status_counts(entries: Iterable[RosterEntry]) -> dict[str, int]:
    counts = {"all": 0, ACTIVE: 0, EXPIRING: 0, EXPIRED: 0, INACTIVE: 0}
    for e in entries:
        counts["all"] += 1
        counts[e.status] += 1
    return counts


def filter_roster(entries: Iterable[RosterEntry], query: str = "", status: str = "all") -> list[RosterEntry]:
    q = query.strip().lower()
    result = []
    for e in entries:
        if q and q not in e.member.name.lower() and q not in str(e.member.member_no):
            continue
        if status != "all" and e.status != status:
            continue
        result.append(e)
    return result


def format_amount(amount: Decimal) -> str:
    if amount == amount.to_integral_value():
        return f"{amount.to_integral_value():,}"
    return f"{amount:,}"


def reminder_message(name: str, balance: Decimal, gym_name: str | None = None, currency: str | None = None) -> str:
    gym_name = gym_name or config.GYM_NAME
    currency = currency if currency is not None else config.CURRENCY
    return (
        f"Hi {name}, Friendly reminder regarding your pending balance of "
        f"{currency}{format_amount(balance)}.\nThank you!\n{gym_name}."
    )


def renewal_message(name: str, end_date: str, gym_name: str | None = None) -> str:
    gym_name = gym_name or config.GYM_NAME
    when = parse_iso(end_date).strftime("%d %b %Y")
    return f"Hi {name}, your {gym_name} membership ends on {when}. Please renew to keep training with us!"


def whatsapp_link(phone: str, message: str | None = None, country_code: str | None = None) -> str:
    """
    wa.me deep link. Local 10-digit numbers get the country code prefixed.
    """
    country_code = country_code if country_code is not None else config.COUNTRY_CODE
    digits = "".join(ch for ch in phone if ch.isdigit())
    if len(digits) == 10 and country_code:
        digits = f"{country_code}{digits}"
    url = f"https://wa.me/{digits}"
    if message:
        url += f"?text={quote(message)}"
    return url


def revenue_by_month(records: Iterable[MembershipRecord]) -> pd.DataFrame:
    """Earned / pending per start month, newest month first."""
    df = pd.DataFrame(
        [
            {
                "month": parse_iso(r.start_date).strftime("%Y-%m"),
                "earned": float(r.amount_paid),
                "pending": float(r.balance),
                "memberships": 1,
            }
            for r in records
        ]
    )
    if df.empty:
        return pd.DataFrame(columns=["month", "earned", "pending", "memberships"])
    return df.groupby("month", as_index=False).sum().sort_values("month", ascending=False).reset_index(drop=True)
