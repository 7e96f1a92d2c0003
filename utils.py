"""
utils.py
Dates, membership status calculation, validation, exports.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable

import pandas as pd

from models import ACTIVE, EXPIRED, EXPIRING, BLOOD_GROUPS

# Members whose period ends within this many days are "expiring"
EXPIRING_WINDOW_DAYS = 7

DateLike = date | datetime | str


def parse_iso(d: DateLike) -> date:
    """
    Normalize to a calendar date. Datetimes (and timestamp strings such as
    '2025-03-01T10:15:00+00:00') are truncated to their date part.
    """
    if isinstance(d, datetime):
        return d.date()
    if isinstance(d, date):
        return d
    return date.fromisoformat(str(d).strip()[:10])


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    # last day of target month
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    day = min(start.day, last_day.day)
    return date(y, m, day)


def calc_end_date(start_date: DateLike, months: int) -> str:
    return add_months(parse_iso(start_date), int(months)).isoformat()


def days_remaining(end_date: DateLike, today: DateLike | None = None) -> int:
    """
    Whole calendar days from `today` to `end_date`, both taken at midnight.
    0 means the period ends today; negative means it has already ended.
    """
    ref = parse_iso(today) if today is not None else date.today()
    return (parse_iso(end_date) - ref).days


def classify(days: int) -> str:
    if days >= EXPIRING_WINDOW_DAYS:
        return ACTIVE
    if days >= 0:
        return EXPIRING
    return EXPIRED


def month_bounds(year: int, month: int) -> tuple[date, date]:
    first = date(year, month, 1)
    last = add_months(first, 1) - timedelta(days=1)
    return first, last


def validate_profile(profile: dict) -> list[str]:
    errors: list[str] = []
    if "name" in profile and not str(profile.get("name") or "").strip():
        errors.append("Name is required.")
    if "contact_number" in profile:
        phone = str(profile.get("contact_number") or "").strip()
        if not phone:
            errors.append("Contact number is required.")
        elif not phone.lstrip("+").isdigit():
            errors.append("Contact number must contain digits only.")
    for key in ("age", "height", "weight"):
        value = profile.get(key)
        if value in (None, ""):
            continue
        try:
            if float(value) < 0:
                errors.append(f"{key.capitalize()} cannot be negative.")
        except (TypeError, ValueError):
            errors.append(f"{key.capitalize()} must be numeric.")
    blood = profile.get("blood_group")
    if blood and blood not in BLOOD_GROUPS:
        errors.append(f"Unknown blood group: {blood}.")
    return errors


def validate_period(package: str, months, start_date, end_date=None) -> list[str]:
    errors: list[str] = []
    if not str(package or "").strip():
        errors.append("Package is required.")
    try:
        if int(months) < 1:
            errors.append("Number of months must be at least 1.")
    except (TypeError, ValueError):
        errors.append("Number of months must be a whole number.")
    try:
        sd = parse_iso(start_date)
        if end_date is not None and parse_iso(end_date) <= sd:
            errors.append("End date must be after start date.")
    except (TypeError, ValueError):
        errors.append("Start/end dates must be valid ISO dates (YYYY-MM-DD).")
    return errors


def rows_to_csv_bytes(rows: Iterable) -> bytes:
    df = pd.DataFrame([dict(r) for r in rows])
    return df.to_csv(index=False).encode("utf-8")
