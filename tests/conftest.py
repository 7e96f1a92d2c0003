from datetime import date

import pytest

import config
import db
from models import Member, MembershipRecord


@pytest.fixture
def store(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DB_FILE", tmp_path / "gym.db")
    monkeypatch.setattr(config, "PHOTOS_DIR", tmp_path / "photos")
    db.init_db()
    yield tmp_path


@pytest.fixture
def today():
    return date(2025, 3, 15)


def make_record(id, member_id, start, end="2099-01-01", total=0, paid=0, created_at="2025-01-01T00:00:00", months=1):
    return MembershipRecord(
        id=id,
        member_id=member_id,
        package="Monthly",
        no_of_months=months,
        start_date=start,
        end_date=end,
        total_amount=total,
        amount_paid=paid,
        created_at=created_at,
    )


def make_member(id=1, is_inactive=False, name="Test Member"):
    return Member(id=id, member_no=id, name=name, contact_number="9800000000", is_inactive=is_inactive)
