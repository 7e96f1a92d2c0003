"""
history.py
Selection logic over a member's membership records.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

from models import EXPIRED, INACTIVE, Member, MembershipRecord
from utils import classify, days_remaining, parse_iso


def _order_key(record: MembershipRecord):
    # created_at is an ISO timestamp, so string order is time order;
    # id breaks ties between rows written in the same second
    return (parse_iso(record.start_date), record.created_at or "", record.id or 0)


def latest(records: Iterable[MembershipRecord]) -> MembershipRecord | None:
    """The record with the latest start date; ties go to the newest row."""
    return max(records, key=_order_key, default=None)


def sort_history(records: Iterable[MembershipRecord]) -> list[MembershipRecord]:
    """Newest first, as shown on the member page."""
    return sorted(records, key=_order_key, reverse=True)


def is_renewal(record: MembershipRecord, records: Iterable[MembershipRecord]) -> bool:
    start = parse_iso(record.start_date)
    return any(
        other.member_id == record.member_id
        and other.id != record.id
        and parse_iso(other.start_date) < start
        for other in records
    )


def earliest_starts(records: Iterable[MembershipRecord]) -> dict[int, date]:
    """member_id -> first start date over the given records."""
    firsts: dict[int, date] = {}
    for r in records:
        start = parse_iso(r.start_date)
        if r.member_id not in firsts or start < firsts[r.member_id]:
            firsts[r.member_id] = start
    return firsts


def member_status(member: Member, records: Iterable[MembershipRecord], today: date) -> str:
    if member.is_inactive:
        return INACTIVE
    current = latest(records)
    if current is None:
        return EXPIRED
    return classify(days_remaining(current.end_date, today))
