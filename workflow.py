"""
workflow.py
Front-desk operations that change member / membership data.

Each operation validates first, writes through db.get_conn() and returns an
Outcome. Store exceptions never escape to the UI.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, timedelta
from typing import Any

import db
from errors import NotFoundError, Outcome, PartialFailureError, StoreError, ValidationError
from history import latest
from models import PROFILE_FIELDS, Member, MembershipRecord
from payments import PaymentDraft, PaymentTriple, reconcile, validate_amounts
from storage import PhotoStore, photo_filename
from utils import calc_end_date, days_remaining, parse_iso, validate_period, validate_profile

logger = logging.getLogger(__name__)

_FLAGS = ("alcoholic", "smoking_habit", "teetotaler")


def _store_failure(action: str, exc: Exception) -> Outcome:
    logger.error("Store error while trying to %s: %s", action, exc)
    return Outcome.failure(StoreError(f"Could not {action}: {exc}"))


def _blank_to_none(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return value


def _clean_profile(profile: dict) -> dict:
    cleaned: dict[str, Any] = {}
    for key, value in profile.items():
        if key in _FLAGS:
            cleaned[key] = int(bool(value))
        elif key == "age":
            value = _blank_to_none(value)
            cleaned[key] = int(float(value)) if value is not None else None
        elif key in ("height", "weight"):
            value = _blank_to_none(value)
            cleaned[key] = float(value) if value is not None else None
        elif isinstance(value, str):
            cleaned[key] = value.strip()
        else:
            cleaned[key] = "" if value is None else value
    return cleaned


def _payment_triple(total, paid, balance) -> tuple[PaymentTriple | None, list[str]]:
    try:
        triple = reconcile(total=total, paid=paid, balance=balance)
    except ValueError:
        return None, ["Amounts must be numeric."]
    return triple, validate_amounts(triple)


def _amended_payment(current: MembershipRecord, changes: dict) -> tuple[PaymentTriple | None, list[str]]:
    # paid + balance without a total is the edit form's submit: total follows.
    # Any other combination keeps the stored total as the anchor.
    if "amount_paid" in changes and "balance" in changes and "total_amount" not in changes:
        return _payment_triple(None, changes["amount_paid"], changes["balance"])

    draft = PaymentDraft.from_record(current)
    try:
        if "total_amount" in changes:
            draft = draft.set_total(changes["total_amount"])
        if "amount_paid" in changes:
            draft = draft.set_paid(changes["amount_paid"])
        elif "balance" in changes:
            draft = draft.set_balance(changes["balance"])
    except ValueError:
        return None, ["Amounts must be numeric."]
    triple = draft.triple()
    return triple, validate_amounts(triple)


def _period(package, months, start_date, triple: PaymentTriple, payment_method: str, end_date=None) -> dict:
    start_iso = parse_iso(start_date).isoformat()
    return {
        "package": package.strip(),
        "no_of_months": int(months),
        "start_date": start_iso,
        "end_date": parse_iso(end_date).isoformat() if end_date else calc_end_date(start_iso, int(months)),
        "total_amount": triple.total,
        "amount_paid": triple.paid,
        "payment_method": payment_method,
    }


def _load(member_id: int) -> tuple[Member, list[MembershipRecord]]:
    row = db.get_member(member_id)
    if row is None:
        raise NotFoundError(f"Member {member_id} not found.")
    records = [MembershipRecord.from_row(r) for r in db.list_memberships(member_id)]
    return Member.from_row(row), records


def get_member(member_id: int) -> Outcome:
    """(member, records) for the member page."""
    try:
        return Outcome.success(_load(member_id))
    except NotFoundError as e:
        return Outcome.failure(e)
    except sqlite3.Error as e:
        return _store_failure("load member", e)


def next_renewal_start(records: list[MembershipRecord], today: date) -> date:
    """Day after the current period ends if it is still running, otherwise today."""
    current = latest(records)
    if current is not None and days_remaining(current.end_date, today) >= 0:
        return parse_iso(current.end_date) + timedelta(days=1)
    return today


def register_member(
    profile: dict,
    package: str,
    months: int,
    start_date,
    paid=0,
    total=None,
    balance=None,
    payment_method: str = "Cash",
    photo: tuple[str, bytes] | None = None,
    now: str | None = None,
    photo_store: PhotoStore | None = None,
) -> Outcome:
    """
    Create the member and their first membership period together.
    `photo` is an optional (original_filename, bytes) pair uploaded afterwards;
    if only that step fails the result is a PartialFailureError.
    """
    errors = validate_profile({"name": "", "contact_number": "", **profile})
    unknown = set(profile) - set(PROFILE_FIELDS)
    if unknown:
        errors.append(f"Unknown profile fields: {', '.join(sorted(unknown))}.")
    errors += validate_period(package, months, start_date)
    triple, amount_errors = _payment_triple(total, paid, balance)
    errors += amount_errors
    if errors:
        return Outcome.failure(ValidationError(errors))

    created_at = now or db.now_iso()
    try:
        with db.get_conn() as conn:
            member_id = db.insert_member(conn, _clean_profile(profile), created_at)
            membership_id = db.insert_membership(
                conn, member_id, _period(package, months, start_date, triple, payment_method), created_at
            )
    except sqlite3.Error as e:
        return _store_failure("register member", e)

    logger.info("Registered member %s with membership %s", member_id, membership_id)

    if photo is not None:
        result = set_member_photo(member_id, photo[0], photo[1], store=photo_store)
        if not result.ok:
            return Outcome.failure(
                PartialFailureError(
                    f"Member saved, but the photo could not be stored: {result.error.message}",
                    committed={"member_id": member_id, "membership_id": membership_id},
                )
            )

    return Outcome.success({"member_id": member_id, "membership_id": membership_id})


def renew_membership(
    member_id: int,
    package: str,
    months: int,
    start_date,
    paid=0,
    total=None,
    balance=None,
    payment_method: str = "Cash",
    now: str | None = None,
) -> Outcome:
    """
    Append a new period. Renewing an inactive member makes them active again.
    """
    errors = validate_period(package, months, start_date)
    triple, amount_errors = _payment_triple(total, paid, balance)
    errors += amount_errors
    if errors:
        return Outcome.failure(ValidationError(errors))

    try:
        member, _ = _load(member_id)
        with db.get_conn() as conn:
            if member.is_inactive:
                db.set_inactive(conn, member_id, False)
            membership_id = db.insert_membership(
                conn, member_id, _period(package, months, start_date, triple, payment_method), now or db.now_iso()
            )
    except NotFoundError as e:
        return Outcome.failure(e)
    except sqlite3.Error as e:
        return _store_failure("renew membership", e)

    if member.is_inactive:
        logger.info("Member %s reactivated by renewal", member_id)
    logger.info("Renewed member %s: membership %s", member_id, membership_id)
    return Outcome.success(membership_id)


def amend_latest(member_id: int, changes: dict) -> Outcome:
    """
    Correct the member's latest period in place.

    `changes` may hold package, no_of_months, start_date, end_date,
    total_amount, amount_paid, balance, payment_method. The end date follows
    start + months unless an explicit end_date is given.
    """
    allowed = {"package", "no_of_months", "start_date", "end_date", "total_amount", "amount_paid", "balance", "payment_method"}
    unknown = set(changes) - allowed
    if unknown:
        return Outcome.failure(ValidationError(f"Cannot amend: {', '.join(sorted(unknown))}."))

    try:
        _, records = _load(member_id)
    except NotFoundError as e:
        return Outcome.failure(e)
    except sqlite3.Error as e:
        return _store_failure("load member", e)

    current = latest(records)
    if current is None:
        return Outcome.failure(NotFoundError(f"Member {member_id} has no membership to amend."))

    package = changes.get("package", current.package)
    months = changes.get("no_of_months", current.no_of_months)
    start_date = changes.get("start_date", current.start_date)
    if "end_date" in changes:
        end_date = changes["end_date"]
    elif "start_date" in changes or "no_of_months" in changes:
        end_date = None
    else:
        end_date = current.end_date

    triple, amount_errors = _amended_payment(current, changes)
    errors = validate_period(package, months, start_date, end_date) + amount_errors
    previous = latest([r for r in records if r.id != current.id])
    if not errors and previous is not None and parse_iso(start_date) < parse_iso(previous.start_date):
        # the amended period must stay the latest one
        errors.append(f"Start date cannot be before the previous membership's start ({previous.start_date}).")
    if errors:
        return Outcome.failure(ValidationError(errors))

    period = _period(package, months, start_date, triple, changes.get("payment_method", current.payment_method), end_date)
    try:
        with db.get_conn() as conn:
            db.update_membership(conn, current.id, period)
    except sqlite3.Error as e:
        return _store_failure("update membership", e)

    logger.info("Amended membership %s of member %s", current.id, member_id)
    return Outcome.success(current.id)


def toggle_inactive(member_id: int) -> Outcome:
    """Flip the inactive flag. Membership records are left alone."""
    try:
        member, _ = _load(member_id)
        with db.get_conn() as conn:
            db.set_inactive(conn, member_id, not member.is_inactive)
    except NotFoundError as e:
        return Outcome.failure(e)
    except sqlite3.Error as e:
        return _store_failure("change member status", e)

    logger.info("Member %s marked %s", member_id, "active" if member.is_inactive else "inactive")
    return Outcome.success(not member.is_inactive)


def edit_profile(member_id: int, changes: dict) -> Outcome:
    unknown = set(changes) - set(PROFILE_FIELDS)
    if unknown:
        return Outcome.failure(ValidationError(f"Not editable here: {', '.join(sorted(unknown))}."))
    errors = validate_profile(changes)
    if errors:
        return Outcome.failure(ValidationError(errors))

    try:
        _load(member_id)
        with db.get_conn() as conn:
            db.update_member(conn, member_id, _clean_profile(changes))
    except NotFoundError as e:
        return Outcome.failure(e)
    except sqlite3.Error as e:
        return _store_failure("update member", e)

    logger.info("Updated profile of member %s (%s)", member_id, ", ".join(sorted(changes)))
    return Outcome.success(member_id)


def set_member_photo(member_id: int, original_name: str, data: bytes, store: PhotoStore | None = None) -> Outcome:
    store = store or PhotoStore()
    try:
        filename = photo_filename(member_id, original_name)
    except ValueError as e:
        return Outcome.failure(ValidationError(str(e)))

    try:
        if db.get_member(member_id) is None:
            return Outcome.failure(NotFoundError(f"Member {member_id} not found."))
    except sqlite3.Error as e:
        return _store_failure("load member", e)

    try:
        reference = store.upload(filename, data)
    except OSError as e:
        logger.error("Photo upload failed for member %s: %s", member_id, e)
        return Outcome.failure(StoreError(f"Could not store photo: {e}"))

    try:
        with db.get_conn() as conn:
            db.update_member(conn, member_id, {"photo": reference})
    except sqlite3.Error as e:
        return _store_failure("save photo reference", e)
    return Outcome.success(reference)


def insert_sample_data(today: date | None = None) -> Outcome:
    """
    Register a few members covering each status, plus one renewal.
    Adds new rows every time it runs. Stops at the first failed write and
    returns that failure; rows written before it stay.
    """
    today = today or date.today()
    samples = [
        ({"name": "Arjun Kumar", "contact_number": "9800000001", "blood_group": "O+", "age": 28},
         "Monthly", 1, today - timedelta(days=26), 1000, 1000),
        ({"name": "Priya Raman", "contact_number": "9800000002", "blood_group": "B+", "age": 34},
         "Quarterly", 3, today - timedelta(days=10), 2700, 1500),
        ({"name": "Karthik Selvam", "contact_number": "9800000003", "blood_group": "A-", "age": 41},
         "Monthly", 1, today - timedelta(days=45), 1000, 1000),
    ]

    ids = []
    for profile, package, months, start, total, paid in samples:
        outcome = register_member(profile, package, months, start, paid=paid, total=total)
        if not outcome.ok:
            return outcome
        ids.append(outcome.value["member_id"])

    outcome = renew_membership(ids[0], "Monthly", 1, today + timedelta(days=5), paid=500, total=1000)
    if not outcome.ok:
        return outcome
    logger.info("Inserted sample members %s", ids)
    return Outcome.success(ids)
