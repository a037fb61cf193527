"""Streak and review-readiness statistics."""
import sqlite3
from datetime import date, timedelta

from leet_daily.eligibility import HIGH_INTERVAL_DAYS, LOW_INTERVAL_DAYS, MID_INTERVAL_DAYS, cutoff
from leet_daily.models import Mastery
from leet_daily.problems import count_problems


def current_streak(conn: sqlite3.Connection, today: date) -> int:
    """Count consecutive fully completed days ending at today.

    Walks back one calendar day at a time. A day with no selection, or
    with any selection left uncompleted, ends the streak and does not count.
    """
    rows = conn.execute(
        """SELECT selected_date,
            COUNT(*) AS total,
            SUM(CASE WHEN completed = 1 THEN 1 ELSE 0 END) AS done
        FROM daily_selections
        WHERE selected_date <= ?
        GROUP BY selected_date
        ORDER BY selected_date DESC""",
        (today.isoformat(),),
    ).fetchall()

    streak = 0
    expected = today
    for row in rows:
        if date.fromisoformat(row["selected_date"]) != expected:
            break
        if row["done"] != row["total"]:
            break
        streak += 1
        expected -= timedelta(days=1)
    return streak


def ready_for_review_count(conn: sqlite3.Connection, today: date) -> int:
    """Problems due for review today, regardless of today's selection.

    Same thresholds as the REVIEW and MASTERED pools; NEW problems are not counted.
    """
    return conn.execute(
        """SELECT COUNT(*) FROM problems
        WHERE (state = ? AND (last_reviewed IS NULL OR last_reviewed <= ?))
           OR (state = ? AND (last_reviewed IS NULL OR last_reviewed <= ?))
           OR (state = ? AND (last_reviewed IS NULL OR last_reviewed <= ?))""",
        (
            Mastery.LOW.value, cutoff(today, LOW_INTERVAL_DAYS),
            Mastery.MID.value, cutoff(today, MID_INTERVAL_DAYS),
            Mastery.HIGH.value, cutoff(today, HIGH_INTERVAL_DAYS),
        ),
    ).fetchone()[0]


def get_stats(conn: sqlite3.Connection, today: date) -> dict:
    return {
        "total_problems": count_problems(conn),
        "mastered_problems": count_problems(conn, Mastery.HIGH),
        "current_streak": current_streak(conn, today),
        "ready_for_review": ready_for_review_count(conn, today),
    }
