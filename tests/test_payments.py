from decimal import Decimal

import pytest

from conftest import make_record
from payments import PaymentDraft, PaymentTriple, parse_amount, reconcile, validate_amounts


def test_parse_amount_blank_is_zero():
    assert parse_amount(None) == 0
    assert parse_amount("") == 0
    assert parse_amount("  ") == 0


def test_parse_amount_accepts_numbers_and_text():
    assert parse_amount("1,500") == Decimal("1500")
    assert parse_amount(400.5) == Decimal("400.5")
    assert parse_amount(7) == Decimal(7)


@pytest.mark.parametrize("bad", ["abc", "12a", "NaN", True])
def test_parse_amount_rejects_garbage(bad):
    with pytest.raises(ValueError):
        parse_amount(bad)


def test_reconcile_from_total_and_paid():
    assert reconcile(total=1000, paid=400) == PaymentTriple(Decimal(1000), Decimal(400), Decimal(600))


def test_reconcile_from_paid_and_balance():
    assert reconcile(paid=400, balance=600) == PaymentTriple(Decimal(1000), Decimal(400), Decimal(600))


def test_reconcile_blank_total_falls_back_to_balance():
    assert reconcile(total="", paid="250", balance="50").total == Decimal(300)


def test_reconcile_round_trip_restores_total():
    for total, paid in [(1000, 400), (1000, 1000), (2700, 0), ("999.50", "0.25")]:
        forward = reconcile(total=total, paid=paid)
        back = reconcile(paid=forward.paid, balance=forward.balance)
        assert back.total == parse_amount(total)


def test_draft_balance_edit_recomputes_paid():
    draft = PaymentDraft().set_total(1000).set_paid(400)
    assert draft.balance == Decimal(600)

    draft = draft.set_balance(0)
    assert draft.paid == Decimal(1000)
    assert draft.total == Decimal(1000)


def test_draft_total_edit_keeps_paid():
    draft = PaymentDraft().set_total(1000).set_paid(400).set_total(1500)
    assert (draft.total, draft.paid, draft.balance) == (Decimal(1500), Decimal(400), Decimal(1100))


def test_draft_blank_field_counts_as_zero():
    draft = PaymentDraft().set_total(800).set_paid("")
    assert draft.balance == Decimal(800)


def test_draft_from_record():
    draft = PaymentDraft.from_record(make_record(1, 1, "2025-03-01", total=1200, paid=200))
    assert draft.triple() == PaymentTriple(Decimal(1200), Decimal(200), Decimal(1000))


def test_validate_amounts_rejects_negatives():
    assert validate_amounts(reconcile(total=1000, paid=400)) == []
    assert validate_amounts(reconcile(total=-5, paid=0)) == [
        "Total amount cannot be negative.",
        "Amount paid cannot exceed the total amount.",
    ]
    assert validate_amounts(reconcile(total=100, paid=150)) == ["Amount paid cannot exceed the total amount."]
    assert "Amount paid cannot be negative." in validate_amounts(reconcile(paid=-1, balance=10))
