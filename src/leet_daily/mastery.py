"""Mastery state progression.

A problem moves NEW -> LOW -> MID -> HIGH as outcomes are recorded.
HIGH is absorbing. From MID, only a repeated MID outcome holds the state;
a LOW outcome advances to HIGH just like a HIGH outcome does.
"""
import sqlite3
from datetime import date, datetime

from leet_daily.db import transaction
from leet_daily.errors import NotFoundError, ValidationError
from leet_daily.models import Mastery, Problem

OUTCOMES = (Mastery.LOW, Mastery.MID, Mastery.HIGH)


def next_state(current: Mastery, outcome: Mastery) -> Mastery:
    """Return the state a problem moves to after an outcome is recorded.

    Args:
        current: The problem's current mastery state.
        outcome: Self-reported result, one of LOW, MID or HIGH.

    Returns:
        The new mastery state.
    """
    if outcome not in OUTCOMES:
        raise ValidationError(f"Outcome must be one of LOW, MID, HIGH, got {outcome!r}")
    if current == Mastery.NEW:
        return outcome
    if current == Mastery.HIGH:
        return Mastery.HIGH
    if current == Mastery.LOW:
        return outcome
    # MID: a repeated MID holds, LOW and HIGH both advance
    if outcome == Mastery.MID:
        return Mastery.MID
    return Mastery.HIGH


def parse_outcome(value) -> Mastery:
    """Coerce an outcome given as a Mastery, color ('orange') or name ('low')."""
    if isinstance(value, Mastery):
        outcome = value
    elif isinstance(value, str):
        text = value.strip().lower()
        outcome = next(
            (m for m in Mastery if text in (m.value, m.name.lower())), None
        )
    else:
        outcome = None
    if outcome not in OUTCOMES:
        raise ValidationError(
            f"Outcome must be one of: orange (LOW), yellow (MID), green (HIGH); got {value!r}"
        )
    return outcome


def apply_outcome(
    conn: sqlite3.Connection,
    problem_id: int,
    outcome: Mastery,
    today: date,
    now: datetime | None = None,
) -> Problem:
    """Advance a problem's state and append an attempt, as one unit.

    Sets last_reviewed to today, increments review_count once and records
    the attempt with the current timestamp.
    """
    now = now or datetime.now()
    with transaction(conn):
        row = conn.execute("SELECT * FROM problems WHERE id = ?", (problem_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Problem {problem_id} not found")
        current = Problem.from_row(row)
        new_state = next_state(current.state, outcome)
        conn.execute(
            """UPDATE problems SET state = ?, last_reviewed = ?, review_count = review_count + 1
            WHERE id = ?""",
            (new_state.value, today.isoformat(), problem_id),
        )
        conn.execute(
            "INSERT INTO attempts (problem_id, outcome, attempted_at) VALUES (?, ?, ?)",
            (problem_id, outcome.value, now.isoformat(timespec="seconds")),
        )
        row = conn.execute("SELECT * FROM problems WHERE id = ?", (problem_id,)).fetchone()
    return Problem.from_row(row)
