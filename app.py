"""
app.py
Streamlit front desk for the gym: members, membership periods, payments.
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
from datetime import date

import pandas as pd
import streamlit as st

import config
import db
import reports
import utils
import workflow
from errors import Outcome, PartialFailureError, ValidationError
from history import latest, member_status, sort_history
from models import ACTIVE, BLOOD_GROUPS, EXPIRED, EXPIRING, INACTIVE, PACKAGES, PAYMENT_METHODS, STATUSES, MembershipRecord
from payments import PaymentDraft
from storage import PhotoStore

st.set_page_config(page_title=f"{config.GYM_NAME} Front Desk", layout="wide")

STATUS_BADGES = {
    ACTIVE: "🟢 ACTIVE",
    EXPIRING: "🟠 EXPIRING",
    EXPIRED: "🔴 EXPIRED",
    INACTIVE: "⛔ INACTIVE",
}


def init_once():
    if st.session_state.get("db_ready"):
        return
    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    db.init_db()
    st.session_state.db_ready = True


def show_failure(outcome: Outcome):
    err = outcome.error
    if isinstance(err, ValidationError):
        for msg in err.messages:
            st.error(msg)
    elif isinstance(err, PartialFailureError):
        st.warning(err.message)
        st.session_state.selected_member_id = err.committed.get("member_id")
    else:
        st.error(err.message)


def money(amount) -> str:
    return f"{config.CURRENCY}{reports.format_amount(amount)}"


# ---------- Payment fields (total / paid / balance kept in sync) ----------

def _store_draft(prefix: str, draft: PaymentDraft) -> None:
    st.session_state[f"{prefix}_draft"] = draft
    st.session_state[f"{prefix}_total"] = str(draft.total)
    st.session_state[f"{prefix}_paid"] = str(draft.paid)
    st.session_state[f"{prefix}_balance"] = str(draft.balance)


def _on_amount_change(prefix: str, field: str) -> None:
    draft = st.session_state[f"{prefix}_draft"]
    try:
        draft = getattr(draft, f"set_{field}")(st.session_state[f"{prefix}_{field}"])
    except ValueError:
        st.session_state[f"{prefix}_amount_error"] = "Amounts must be numeric."
        return
    st.session_state.pop(f"{prefix}_amount_error", None)
    _store_draft(prefix, draft)


def payment_inputs(prefix: str, initial: PaymentDraft | None = None) -> PaymentDraft:
    if f"{prefix}_draft" not in st.session_state:
        _store_draft(prefix, initial or PaymentDraft())

    c1, c2, c3 = st.columns(3)
    for col, field, label in ((c1, "total", "Total amount"), (c2, "paid", "Amount paid"), (c3, "balance", "Balance")):
        col.text_input(label, key=f"{prefix}_{field}", on_change=_on_amount_change, args=(prefix, field))

    if st.session_state.get(f"{prefix}_amount_error"):
        st.error(st.session_state[f"{prefix}_amount_error"])
    return st.session_state[f"{prefix}_draft"]


def reset_payment_inputs(prefix: str) -> None:
    for suffix in ("draft", "total", "paid", "balance", "amount_error"):
        st.session_state.pop(f"{prefix}_{suffix}", None)


def period_inputs(prefix: str, package: str, months: int, start: date):
    c1, c2, c3 = st.columns(3)
    with c1:
        packages = list(PACKAGES.keys())
        package = st.selectbox(
            "Package", packages, index=packages.index(package) if package in packages else 0, key=f"{prefix}_package"
        )
    with c2:
        months = st.number_input("No. of months", min_value=1, max_value=36, value=int(months), key=f"{prefix}_months")
    with c3:
        start = st.date_input("Start date", value=start, key=f"{prefix}_start")
    st.caption(f"End date (auto-calculated): **{utils.calc_end_date(start, months)}**")
    return package, int(months), start


# ---------- Pages ----------

def dashboard_page():
    st.header("📊 Dashboard")

    today = date.today()
    outcome = reports.roster(today)
    if not outcome.ok:
        show_failure(outcome)
        return
    entries = outcome.value
    counts = reports.status_counts(entries)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Active", counts[ACTIVE])
    c2.metric("Expiring (< 7 days)", counts[EXPIRING])
    c3.metric("Expired", counts[EXPIRED])
    c4.metric("Inactive", counts[INACTIVE])

    st.divider()

    st.subheader("Expiring soon")
    expiring = sorted((e for e in entries if e.status == EXPIRING), key=lambda e: e.days_left)
    if not expiring:
        st.caption("No members expiring in the next 7 days.")
        return
    for e in expiring:
        c1, c2, c3 = st.columns([3, 2, 1])
        c1.write(f"**{e.member.name}** (#{e.member.member_no}) · {e.member.contact_number}")
        c2.write(f"Ends {e.latest.end_date} · {e.days_left} days left")
        c3.link_button(
            "WhatsApp",
            reports.whatsapp_link(e.member.contact_number, reports.renewal_message(e.member.name, e.latest.end_date)),
        )


def members_page():
    st.header("👥 Members")

    today = date.today()
    outcome = reports.roster(today)
    if not outcome.ok:
        show_failure(outcome)
        return
    entries = outcome.value
    counts = reports.status_counts(entries)

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name / member no.)")
        status_filter = st.selectbox(
            "Status", ["all", *STATUSES], format_func=lambda s: f"{s} ({counts.get(s, 0)})"
        )

    shown = reports.filter_roster(entries, search, status_filter)
    df = pd.DataFrame(
        [
            {
                "member_no": e.member.member_no,
                "name": e.member.name,
                "contact_number": e.member.contact_number,
                "package": e.latest.package if e.latest else "",
                "end_date": e.latest.end_date if e.latest else "",
                "days_left": e.days_left,
                "status": e.status,
            }
            for e in shown
        ],
        columns=["member_no", "name", "contact_number", "package", "end_date", "days_left", "status"],
    )
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    options = {f"#{e.member.member_no} {e.member.name} ({e.member.contact_number})": e.member.id for e in shown}
    chosen = st.selectbox("Open member", ["(none)", *options.keys()])
    if chosen != "(none)" and st.button("Open", type="primary"):
        st.session_state.selected_member_id = options[chosen]
        st.session_state.page = "Member"
        st.rerun()


def profile_inputs(prefix: str, existing=None) -> dict:
    get = (lambda k, d: getattr(existing, k)) if existing else (lambda k, d: d)
    c1, c2, c3 = st.columns(3)
    with c1:
        name = st.text_input("Name", value=get("name", ""), key=f"{prefix}_name", disabled=existing is not None)
        contact = st.text_input("Contact number", value=get("contact_number", ""), key=f"{prefix}_contact")
        occupation = st.text_input("Occupation", value=get("occupation", ""), key=f"{prefix}_occupation")
        address = st.text_area("Address", value=get("address", ""), key=f"{prefix}_address")
    with c2:
        age = st.number_input("Age", min_value=0, max_value=120, value=int(get("age", 0) or 0), key=f"{prefix}_age")
        height = st.number_input("Height (cm)", min_value=0.0, value=float(get("height", 0) or 0), key=f"{prefix}_height")
        weight = st.number_input("Weight (kg)", min_value=0.0, value=float(get("weight", 0) or 0), key=f"{prefix}_weight")
        groups = ["", *BLOOD_GROUPS]
        current = get("blood_group", "")
        blood = st.selectbox(
            "Blood group", groups, index=groups.index(current) if current in groups else 0, key=f"{prefix}_blood"
        )
    with c3:
        alcoholic = st.checkbox("Alcoholic", value=get("alcoholic", False), key=f"{prefix}_alcoholic")
        smoking = st.checkbox("Smoking habit", value=get("smoking_habit", False), key=f"{prefix}_smoking")
        teetotaler = st.checkbox("Teetotaler", value=get("teetotaler", False), key=f"{prefix}_teetotaler")

    profile = {
        "contact_number": contact,
        "occupation": occupation,
        "address": address,
        "age": age or None,
        "height": height or None,
        "weight": weight or None,
        "blood_group": blood,
        "alcoholic": alcoholic,
        "smoking_habit": smoking,
        "teetotaler": teetotaler,
    }
    if existing is None:
        profile["name"] = name
    return profile


def add_member_page():
    st.header("➕ Add Member")

    profile = profile_inputs("add")
    photo = st.file_uploader("Photo (optional)", type=["jpg", "jpeg", "png", "webp"])

    st.subheader("First membership")
    package, months, start = period_inputs("add", "Monthly", 1, date.today())
    draft = payment_inputs("add")
    method = st.selectbox("Payment method", PAYMENT_METHODS, key="add_method")

    if st.button("Register member", type="primary"):
        outcome = workflow.register_member(
            profile,
            package,
            months,
            start,
            paid=draft.paid,
            total=draft.total,
            payment_method=method,
            photo=(photo.name, photo.getvalue()) if photo else None,
        )
        if outcome.ok:
            st.success("Member added successfully.")
            reset_payment_inputs("add")
            st.session_state.selected_member_id = outcome.value["member_id"]
            st.session_state.page = "Member"
            st.rerun()
        else:
            show_failure(outcome)


def member_page():
    member_id = st.session_state.get("selected_member_id")
    if not member_id:
        st.info("Pick a member on the Members page first.")
        return

    outcome = workflow.get_member(member_id)
    if not outcome.ok:
        show_failure(outcome)
        return
    member, records = outcome.value
    today = date.today()
    current = latest(records)
    status = member_status(member, records, today)

    col_photo, col_info = st.columns([1, 3])
    with col_photo:
        if member.photo:
            st.image(PhotoStore().resolve(member.photo), width=160)
        upload = st.file_uploader("Change photo", type=["jpg", "jpeg", "png", "webp"], key=f"photo_{member.id}")
        if upload and st.button("Save photo"):
            result = workflow.set_member_photo(member.id, upload.name, upload.getvalue())
            if result.ok:
                st.rerun()
            show_failure(result)
    with col_info:
        st.header(f"{member.name}")
        st.write(f"Member no. **{member.member_no}** · {STATUS_BADGES[status]}")
        st.write(f"📞 {member.contact_number} · {member.occupation or 'N/A'}")
        st.write(f"Age {member.age or '-'} · Height {member.height or '-'} cm · Weight {member.weight or '-'} kg · Blood {member.blood_group or '-'}")
        st.write(
            f"Alcoholic: {'Yes' if member.alcoholic else 'No'} · "
            f"Smoking: {'Yes' if member.smoking_habit else 'No'} · "
            f"Teetotaler: {'Yes' if member.teetotaler else 'No'}"
        )
        label = "Mark as active" if member.is_inactive else "Mark as inactive"
        if st.button(label):
            result = workflow.toggle_inactive(member.id)
            if result.ok:
                st.rerun()
            show_failure(result)

    st.divider()

    st.subheader("Membership status")
    if current:
        c1, c2, c3 = st.columns(3)
        c1.metric("Start", current.start_date)
        c2.metric("End", current.end_date)
        c3.metric("Days left", utils.days_remaining(current.end_date, today))
    else:
        st.caption("No membership recorded.")

    st.subheader("Membership history")
    if records:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "package": r.package,
                        "months": r.no_of_months,
                        "start_date": r.start_date,
                        "end_date": r.end_date,
                        "total": float(r.total_amount),
                        "paid": float(r.amount_paid),
                        "balance": float(r.balance),
                        "method": r.payment_method,
                    }
                    for r in sort_history(records)
                ]
            ),
            use_container_width=True,
            hide_index=True,
        )

    tab_renew, tab_amend, tab_profile = st.tabs(["🔁 Renew", "✏️ Edit latest", "👤 Edit profile"])

    with tab_renew:
        prefix = f"renew_{member.id}"
        default_package = current.package if current else "Monthly"
        package, months, start = period_inputs(
            prefix, default_package, PACKAGES.get(default_package, 1), workflow.next_renewal_start(records, today)
        )
        draft = payment_inputs(prefix)
        method = st.selectbox("Payment method", PAYMENT_METHODS, key=f"{prefix}_method")
        if member.is_inactive:
            st.caption("Renewing will mark this member active again.")
        if st.button("Renew membership", type="primary"):
            result = workflow.renew_membership(
                member.id, package, months, start, paid=draft.paid, total=draft.total, payment_method=method
            )
            if result.ok:
                reset_payment_inputs(prefix)
                st.success("Membership renewed.")
                st.rerun()
            show_failure(result)

    with tab_amend:
        if current is None:
            st.caption("Nothing to edit yet.")
        else:
            prefix = f"amend_{member.id}_{current.id}"
            package, months, start = period_inputs(
                prefix, current.package, current.no_of_months, utils.parse_iso(current.start_date)
            )
            draft = payment_inputs(prefix, PaymentDraft.from_record(current))
            methods = PAYMENT_METHODS if current.payment_method in PAYMENT_METHODS else [current.payment_method, *PAYMENT_METHODS]
            method = st.selectbox(
                "Payment method", methods, index=methods.index(current.payment_method), key=f"{prefix}_method"
            )
            if st.button("Update membership history"):
                result = workflow.amend_latest(
                    member.id,
                    {
                        "package": package,
                        "no_of_months": months,
                        "start_date": start,
                        "total_amount": draft.total,
                        "amount_paid": draft.paid,
                        "payment_method": method,
                    },
                )
                if result.ok:
                    reset_payment_inputs(prefix)
                    st.success("Membership updated.")
                    st.rerun()
                show_failure(result)

    with tab_profile:
        changes = profile_inputs(f"profile_{member.id}", existing=member)
        if st.button("Save profile"):
            result = workflow.edit_profile(member.id, changes)
            if result.ok:
                st.success("Profile updated.")
                st.rerun()
            show_failure(result)


def payments_page():
    st.header("💳 Payments")

    today = date.today()
    c1, c2 = st.columns(2)
    with c1:
        year = st.selectbox("Year", list(range(today.year - 5, today.year + 5)), index=5)
    with c2:
        month = st.selectbox(
            "Month", list(range(1, 13)), index=today.month - 1, format_func=lambda m: date(2000, m, 1).strftime("%B")
        )

    outcome = reports.monthly_report(year, month)
    if not outcome.ok:
        show_failure(outcome)
        return
    report, lines = outcome.value

    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Active members", report.total_gym_members)
    c2.metric("New members", report.new_members)
    c3.metric("Renewals", report.renewals)
    c4.metric("Earned", money(report.earned_amount))
    c5.metric("Balance", money(report.balance_amount))

    if st.toggle("Show all-time earnings", value=False):
        st.metric("Total earnings", money(report.all_time_earnings))

    st.divider()

    tab_pending, tab_paid = st.tabs([f"Pending ({len(report.pending)})", f"Paid ({len(report.paid)})"])
    with tab_pending:
        if not report.pending:
            st.caption("No pending balances this month.")
        for r in report.pending:
            line = lines[r.id]
            c1, c2, c3 = st.columns([3, 2, 1])
            c1.write(f"**{line.member_name}** · {line.contact_number} · {r.package}")
            c2.write(f"Paid {money(r.amount_paid)} of {money(r.total_amount)} · due {money(r.balance)}")
            c3.link_button(
                "Remind", reports.whatsapp_link(line.contact_number, reports.reminder_message(line.member_name, r.balance))
            )
    with tab_paid:
        if not report.paid:
            st.caption("No fully paid memberships this month.")
        else:
            st.dataframe(
                pd.DataFrame(
                    [
                        {
                            "name": lines[r.id].member_name,
                            "package": r.package,
                            "start_date": r.start_date,
                            "paid": float(r.amount_paid),
                            "method": r.payment_method,
                        }
                        for r in report.paid
                    ]
                ),
                use_container_width=True,
                hide_index=True,
            )


def reports_page():
    st.header("🧾 Reports")

    st.subheader("Export members to CSV")
    members = db.list_members()
    if members:
        st.download_button(
            "Download members.csv",
            data=utils.rows_to_csv_bytes(members),
            file_name="members.csv",
            mime="text/csv",
        )
    else:
        st.caption("No members to export.")

    st.divider()

    st.subheader("Export memberships to CSV")
    memberships = db.all_memberships()
    if memberships:
        st.download_button(
            "Download memberships.csv",
            data=utils.rows_to_csv_bytes(memberships),
            file_name="memberships.csv",
            mime="text/csv",
        )
    else:
        st.caption("No memberships to export.")

    st.divider()

    st.subheader("Revenue summary by month")
    df = reports.revenue_by_month(MembershipRecord.from_row(r) for r in memberships)
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert 3 sample members and a renewal for testing (adds new rows each run).")
    if st.button("Insert sample data"):
        outcome = workflow.insert_sample_data()
        if not outcome.ok:
            show_failure(outcome)
        else:
            st.success("Sample data inserted.")
            st.rerun()


def main_app():
    st.sidebar.title(f"🏋️ {config.GYM_NAME}")

    pages = ["Dashboard", "Members", "Member", "Add Member", "Payments", "Reports"]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Members":
        members_page()
    elif st.session_state.page == "Member":
        member_page()
    elif st.session_state.page == "Add Member":
        add_member_page()
    elif st.session_state.page == "Payments":
        payments_page()
    elif st.session_state.page == "Reports":
        reports_page()


# --------- App entry ---------

def run():
    init_once()
    main_app()


if __name__ == "__main__":
    run()
