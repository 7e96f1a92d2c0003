import sqlite3
from datetime import date, timedelta
from decimal import Decimal

import db
import reports
import workflow
from conftest import make_member, make_record
from errors import StoreError
from models import ACTIVE, EXPIRED, EXPIRING, INACTIVE

MARCH = (date(2025, 3, 1), date(2025, 3, 31))


def test_aggregate_sums_and_partitions():
    records = [
        make_record(1, 1, "2025-03-02", total=1000, paid=1000),
        make_record(2, 2, "2025-03-10", total=1000, paid=400),
    ]
    report = reports.aggregate(records, records, active_member_count=5, window=MARCH)

    assert report.earned_amount == Decimal(1400)
    assert report.balance_amount == Decimal(600)
    assert [r.id for r in report.paid] == [1]
    assert [r.id for r in report.pending] == [2]
    assert report.total_gym_members == 5


def test_aggregate_window_is_inclusive():
    records = [
        make_record(1, 1, "2025-02-28"),
        make_record(2, 2, "2025-03-01"),
        make_record(3, 3, "2025-03-31"),
        make_record(4, 4, "2025-04-01"),
    ]
    report = reports.aggregate(records, records, 0, window=MARCH)
    assert report.new_members == 2
    assert sorted(r.id for r in report.paid) == [2, 3]


def test_renewal_detection_spans_full_history():
    january = make_record(1, 7, "2025-01-05", total=900, paid=900)
    march = make_record(2, 7, "2025-03-05", total=900, paid=900)
    report = reports.aggregate([march], [january, march], 1, window=MARCH)

    assert report.renewals == 1
    assert report.new_members == 0
    assert report.earned_amount == Decimal(900)
    assert report.all_time_earnings == Decimal(1800)


def test_two_records_for_new_member_in_same_month():
    later = make_record(2, 3, "2025-03-20", created_at="2025-03-20T08:00:00")
    earlier = make_record(1, 3, "2025-03-03", created_at="2025-03-03T08:00:00")
    report = reports.aggregate([later, earlier], [later, earlier], 1, window=MARCH)
    assert (report.new_members, report.renewals) == (1, 1)


def test_same_start_day_duplicates_count_once_as_new():
    a = make_record(1, 3, "2025-03-03", created_at="2025-03-03T08:00:00")
    b = make_record(2, 3, "2025-03-03", created_at="2025-03-03T09:00:00")
    report = reports.aggregate([a, b], [a, b], 1)
    assert (report.new_members, report.renewals) == (1, 1)


def test_fully_paid_includes_overpaid_zero_balance():
    record = make_record(1, 1, "2025-03-03", total=500, paid=500)
    assert reports.aggregate([record], [record], 1).paid == [record]


def test_monthly_report_from_store(store):
    first = workflow.register_member(
        {"name": "Old Timer", "contact_number": "9000000001"}, "Monthly", 1, "2025-01-10", paid=1000, total=1000
    ).value["member_id"]
    workflow.renew_membership(first, "Monthly", 1, "2025-03-10", paid=600, total=1000)
    fresh = workflow.register_member(
        {"name": "New Face", "contact_number": "9000000002"}, "Monthly", 1, "2025-03-15", paid=1000, total=1000
    ).value["member_id"]
    workflow.toggle_inactive(fresh)

    outcome = reports.monthly_report(2025, 3)
    assert outcome.ok
    report, lines = outcome.value

    assert (report.new_members, report.renewals) == (1, 1)
    assert report.earned_amount == Decimal(1600)
    assert report.balance_amount == Decimal(400)
    assert report.all_time_earnings == Decimal(2600)
    assert report.total_gym_members == 1
    (pending,) = report.pending
    assert lines[pending.id].member_name == "Old Timer"
    assert lines[pending.id].contact_number == "9000000001"


def test_roster_and_counts(store, today):
    def add(name, end_offset, months=1):
        start = today + timedelta(days=end_offset) - timedelta(days=31 * months)
        outcome = workflow.register_member({"name": name, "contact_number": "9000000000"}, "Monthly", months, start)
        member_id = outcome.value["member_id"]
        workflow.amend_latest(member_id, {"end_date": today + timedelta(days=end_offset)})
        return member_id

    add("Active", 20)
    add("Expiring", 3)
    add("Expired", -2)
    gone = add("Gone", 20)
    workflow.toggle_inactive(gone)
    with db.get_conn() as conn:
        db.insert_member(conn, {"name": "No Plan", "contact_number": "9000000009"}, db.now_iso())

    entries = reports.roster(today).value
    by_name = {e.member.name: e for e in entries}
    assert by_name["Active"].status == ACTIVE
    assert by_name["Expiring"].status == EXPIRING
    assert by_name["Expiring"].days_left == 3
    assert by_name["Expired"].status == EXPIRED
    assert by_name["Gone"].status == INACTIVE
    assert by_name["No Plan"].status == EXPIRED
    assert by_name["No Plan"].latest is None

    assert reports.status_counts(entries) == {"all": 5, ACTIVE: 1, EXPIRING: 1, EXPIRED: 2, INACTIVE: 1}


def test_store_errors_become_outcomes(store, today, monkeypatch):
    def locked(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(db, "memberships_between", locked)
    outcome = reports.monthly_report(2025, 3)
    assert isinstance(outcome.error, StoreError)
    assert "database is locked" in outcome.error.message

    monkeypatch.setattr(db, "all_memberships", locked)
    assert isinstance(reports.roster(today).error, StoreError)


def test_filter_roster_by_name_number_and_status(today):
    entries = [
        reports.RosterEntry(make_member(1, name="Asha"), None, EXPIRED, None),
        reports.RosterEntry(make_member(12, name="Bala"), None, ACTIVE, 30),
    ]
    assert [e.member.name for e in reports.filter_roster(entries, "ash")] == ["Asha"]
    assert [e.member.name for e in reports.filter_roster(entries, "12")] == ["Bala"]
    assert [e.member.name for e in reports.filter_roster(entries, "", ACTIVE)] == ["Bala"]
    assert len(reports.filter_roster(entries)) == 2


def test_reminder_message_and_whatsapp_link():
    msg = reports.reminder_message("Asha", Decimal("600.00"), gym_name="Kavifit Gym", currency="₹")
    assert msg == "Hi Asha, Friendly reminder regarding your pending balance of ₹600.\nThank you!\nKavifit Gym."

    link = reports.whatsapp_link("98765 43210", "Hi there", country_code="91")
    assert link == "https://wa.me/919876543210?text=Hi%20there"
    assert reports.whatsapp_link("+44 7700 900123", country_code="91") == "https://wa.me/447700900123"


def test_format_amount():
    assert reports.format_amount(Decimal("12500")) == "12,500"
    assert reports.format_amount(Decimal("99.5")) == "99.5"


def test_revenue_by_month():
    records = [
        make_record(1, 1, "2025-02-03", total=1000, paid=1000),
        make_record(2, 2, "2025-03-03", total=1000, paid=400),
        make_record(3, 3, "2025-03-20", total=500, paid=500),
    ]
    df = reports.revenue_by_month(records)
    assert list(df["month"]) == ["2025-03", "2025-02"]
    assert list(df["earned"]) == [900.0, 1000.0]
    assert list(df["pending"]) == [600.0, 0.0]
    assert list(df["memberships"]) == [2, 1]


def test_revenue_by_month_empty():
    df = reports.revenue_by_month([])
    assert df.empty
    assert list(df.columns) == ["month", "earned", "pending", "memberships"]
