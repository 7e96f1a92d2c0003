"""
db.py
SQLite record store: members + memberships tables, query helpers.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone

import config

MEMBER_COLUMNS = (
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
    "photo",
)

MEMBERSHIP_COLUMNS = (
    "package",
    "no_of_months",
    "start_date",
    "end_date",
    "total_amount",
    "amount_paid",
    "payment_method",
)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


@contextmanager
def get_conn():
    """
    One connection per unit of work. Everything executed inside the block is
    committed together, or rolled back if the block raises.
    """
    conn = sqlite3.connect(config.DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_no INTEGER NOT NULL UNIQUE,
            name TEXT NOT NULL,
            contact_number TEXT NOT NULL DEFAULT '',
            address TEXT NOT NULL DEFAULT '',
            occupation TEXT NOT NULL DEFAULT '',
            age INTEGER,
            height REAL,
            weight REAL,
            blood_group TEXT NOT NULL DEFAULT '',
            alcoholic INTEGER NOT NULL DEFAULT 0,
            smoking_habit INTEGER NOT NULL DEFAULT 0,
            teetotaler INTEGER NOT NULL DEFAULT 0,
            photo TEXT,
            is_inactive INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        )
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS memberships (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_id INTEGER NOT NULL,
            package TEXT NOT NULL,
            no_of_months INTEGER NOT NULL CHECK(no_of_months > 0),
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            total_amount TEXT NOT NULL DEFAULT '0',
            amount_paid TEXT NOT NULL DEFAULT '0',
            payment_method TEXT NOT NULL DEFAULT 'Cash',
            created_at TEXT NOT NULL,
            FOREIGN KEY(member_id) REFERENCES members(id)
        )
        """
    )

    conn.execute("CREATE INDEX IF NOT EXISTS idx_memberships_member ON memberships(member_id, start_date)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_memberships_start ON memberships(start_date)")


def init_db() -> None:
    config.DB_FILE.parent.mkdir(parents=True, exist_ok=True)
    with get_conn() as conn:
        _create_tables(conn)


# ---------- members ----------

def insert_member(conn: sqlite3.Connection, data: dict, created_at: str) -> int:
    """Insert a member with the next sequential member number. Returns the new id."""
    row = conn.execute("SELECT COALESCE(MAX(member_no), 0) + 1 AS n FROM members").fetchone()
    cols = [c for c in MEMBER_COLUMNS if c in data]
    values = [data[c] for c in cols]
    sql = (
        f"INSERT INTO members(member_no, {', '.join(cols)}, created_at) "
        f"VALUES(?, {', '.join('?' for _ in cols)}, ?)"
    )
    cur = conn.execute(sql, (row["n"], *values, created_at))
    return cur.lastrowid


def update_member(conn: sqlite3.Connection, member_id: int, changes: dict) -> None:
    if not changes:
        return
    assignments = ", ".join(f"{c}=?" for c in changes)
    conn.execute(f"UPDATE members SET {assignments} WHERE id=?", (*changes.values(), member_id))


def set_inactive(conn: sqlite3.Connection, member_id: int, inactive: bool) -> None:
    conn.execute("UPDATE members SET is_inactive=? WHERE id=?", (int(inactive), member_id))


def get_member(member_id: int):
    return fetch_one("SELECT * FROM members WHERE id = ?", (member_id,))


def list_members():
    return fetch_all("SELECT * FROM members ORDER BY created_at DESC, id DESC")


def count_active_members() -> int:
    return fetch_one("SELECT COUNT(*) AS c FROM members WHERE is_inactive = 0")["c"]


# ---------- memberships ----------

def insert_membership(conn: sqlite3.Connection, member_id: int, data: dict, created_at: str) -> int:
    cur = conn.execute(
        """
        INSERT INTO memberships(member_id, package, no_of_months, start_date, end_date,
            total_amount, amount_paid, payment_method, created_at)
        VALUES(?,?,?,?,?,?,?,?,?)
        """,
        (
            member_id,
            data["package"],
            int(data["no_of_months"]),
            data["start_date"],
            data["end_date"],
            str(data["total_amount"]),
            str(data["amount_paid"]),
            data["payment_method"],
            created_at,
        ),
    )
    return cur.lastrowid


def update_membership(conn: sqlite3.Connection, membership_id: int, changes: dict) -> None:
    changes = {
        c: (str(v) if c in ("total_amount", "amount_paid") else v)
        for c, v in changes.items()
        if c in MEMBERSHIP_COLUMNS
    }
    if not changes:
        return
    assignments = ", ".join(f"{c}=?" for c in changes)
    conn.execute(f"UPDATE memberships SET {assignments} WHERE id=?", (*changes.values(), membership_id))


def list_memberships(member_id: int):
    return fetch_all(
        "SELECT * FROM memberships WHERE member_id = ? ORDER BY start_date ASC, created_at ASC, id ASC",
        (member_id,),
    )


def all_memberships():
    return fetch_all("SELECT * FROM memberships ORDER BY start_date ASC, created_at ASC, id ASC")


def memberships_between(start_iso: str, end_iso: str):
    """Records starting in [start_iso, end_iso], both bounds inclusive, with member contact details."""
    return fetch_all(
        """
        SELECT ms.*, m.name AS member_name, m.contact_number AS member_contact
        FROM memberships ms
        JOIN members m ON m.id = ms.member_id
        WHERE ms.start_date >= ? AND ms.start_date <= ?
        ORDER BY ms.start_date ASC, ms.created_at ASC, ms.id ASC
        """,
        (start_iso, end_iso),
    )
