"""Eligibility pools for daily selection.

Each pool excludes problems already selected for the given date and is
returned in id order; randomization happens in the sampler.

- NEW: state gray, always eligible
- REVIEW: orange not reviewed for 3+ days, yellow not reviewed for 7+ days
- MASTERED: green not reviewed for 14+ days

A problem that was never reviewed is always eligible.
"""
import sqlite3
from datetime import date, timedelta
from typing import NamedTuple

from leet_daily.models import Mastery, Problem

LOW_INTERVAL_DAYS = 3
MID_INTERVAL_DAYS = 7
HIGH_INTERVAL_DAYS = 14

_NOT_SELECTED = """p.id NOT IN (
    SELECT problem_id FROM daily_selections WHERE selected_date = ?
)"""


class Pools(NamedTuple):
    new: list[Problem]
    review: list[Problem]
    mastered: list[Problem]


def cutoff(today: date, days: int) -> str:
    """Latest last_reviewed date that is at least `days` whole days before today."""
    return (today - timedelta(days=days)).isoformat()


def eligible_new(conn: sqlite3.Connection, today: date) -> list[Problem]:
    rows = conn.execute(
        f"""SELECT p.* FROM problems p
        WHERE p.state = ? AND {_NOT_SELECTED}
        ORDER BY p.id""",
        (Mastery.NEW.value, today.isoformat()),
    ).fetchall()
    return [Problem.from_row(r) for r in rows]


def eligible_review(conn: sqlite3.Connection, today: date) -> list[Problem]:
    rows = conn.execute(
        f"""SELECT p.* FROM problems p
        WHERE (
            (p.state = ? AND (p.last_reviewed IS NULL OR p.last_reviewed <= ?))
            OR (p.state = ? AND (p.last_reviewed IS NULL OR p.last_reviewed <= ?))
        ) AND {_NOT_SELECTED}
        ORDER BY p.id""",
        (
            Mastery.LOW.value, cutoff(today, LOW_INTERVAL_DAYS),
            Mastery.MID.value, cutoff(today, MID_INTERVAL_DAYS),
            today.isoformat(),
        ),
    ).fetchall()
    return [Problem.from_row(r) for r in rows]


def eligible_mastered(conn: sqlite3.Connection, today: date) -> list[Problem]:
    rows = conn.execute(
        f"""SELECT p.* FROM problems p
        WHERE p.state = ? AND (p.last_reviewed IS NULL OR p.last_reviewed <= ?)
        AND {_NOT_SELECTED}
        ORDER BY p.id""",
        (Mastery.HIGH.value, cutoff(today, HIGH_INTERVAL_DAYS), today.isoformat()),
    ).fetchall()
    return [Problem.from_row(r) for r in rows]


def eligible_pools(conn: sqlite3.Connection, today: date) -> Pools:
    return Pools(
        new=eligible_new(conn, today),
        review=eligible_review(conn, today),
        mastered=eligible_mastered(conn, today),
    )
