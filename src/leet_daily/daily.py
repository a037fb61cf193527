"""Daily selection: generation, completion, replacement and manual review."""
import logging
import random
import sqlite3
from collections import Counter
from datetime import date, datetime

from leet_daily.allocator import Quota, allocate
from leet_daily.db import get_daily_count, transaction
from leet_daily.eligibility import eligible_pools
from leet_daily.errors import ExhaustionError, NotFoundError, ValidationError
from leet_daily.mastery import apply_outcome, parse_outcome
from leet_daily.models import Problem, SelectionEntry
from leet_daily.problems import MAX_INSIGHT_LENGTH, get_problem, validate_problem_id
from leet_daily.sampler import DEFAULT_MAX_PER_TOPIC, sample
from leet_daily.topics import topics_for_problems

logger = logging.getLogger(__name__)


def get_selection(conn: sqlite3.Connection, day: date) -> list[SelectionEntry]:
    """Return the stored selection for a date in insertion order."""
    rows = conn.execute(
        """SELECT p.*, ds.id AS selection_id, ds.completed
        FROM daily_selections ds JOIN problems p ON ds.problem_id = p.id
        WHERE ds.selected_date = ?
        ORDER BY ds.id""",
        (day.isoformat(),),
    ).fetchall()
    topic_map = topics_for_problems(conn, [r["id"] for r in rows])
    entries = []
    for r in rows:
        problem = Problem.from_row(r)
        problem.topics = topic_map.get(problem.id, [])
        entries.append(SelectionEntry(problem, r["selection_id"], bool(r["completed"])))
    return entries


def select_daily_problems(
    conn: sqlite3.Connection,
    today: date,
    count: int | None = None,
    rng: random.Random | None = None,
    max_per_topic: int = DEFAULT_MAX_PER_TOPIC,
) -> list[Problem]:
    """Choose a day's problems without persisting them.

    Uses the configured daily count unless `count` is given.
    """
    if count is None:
        count = get_daily_count(conn)
    rng = rng or random.Random()
    pools = eligible_pools(conn, today)
    quota = allocate(count, Quota(*(len(p) for p in pools)))
    logger.debug(
        "Pools new=%d review=%d mastered=%d, quota %s",
        len(pools.new), len(pools.review), len(pools.mastered), quota,
    )

    topic_map = topics_for_problems(conn, [p.id for pool in pools for p in pool])
    topic_counts = Counter()
    selected = []
    for pool, n in zip(pools, quota):
        selected.extend(sample(pool, n, topic_map, max_per_topic, rng, topic_counts))
    for problem in selected:
        problem.topics = topic_map.get(problem.id, [])
    return selected


def select_single_problem(
    conn: sqlite3.Connection, today: date, rng: random.Random | None = None
) -> Problem | None:
    """Pick one problem from the first non-empty pool, NEW then REVIEW then MASTERED."""
    rng = rng or random.Random()
    for pool in eligible_pools(conn, today):
        if pool:
            return rng.choice(pool)
    return None


def _generate(conn: sqlite3.Connection, today: date, rng: random.Random | None) -> list[SelectionEntry]:
    problems = select_daily_problems(conn, today, rng=rng)
    conn.executemany(
        "INSERT INTO daily_selections (problem_id, selected_date, completed) VALUES (?, ?, 0)",
        [(p.id, today.isoformat()) for p in problems],
    )
    logger.info("Generated %d problems for %s", len(problems), today.isoformat())
    return get_selection(conn, today)


def get_or_create_today_selection(
    conn: sqlite3.Connection, today: date, rng: random.Random | None = None
) -> list[SelectionEntry]:
    """Return today's selection, generating and storing it on first call."""
    with transaction(conn):
        existing = get_selection(conn, today)
        if existing:
            return existing
        return _generate(conn, today, rng)


def refresh(
    conn: sqlite3.Connection, today: date, rng: random.Random | None = None
) -> list[SelectionEntry]:
    """Discard today's selection and generate a fresh one."""
    with transaction(conn):
        conn.execute("DELETE FROM daily_selections WHERE selected_date = ?", (today.isoformat(),))
        return _generate(conn, today, rng)


def _selection_row(conn: sqlite3.Connection, problem_id: int, today: date) -> sqlite3.Row:
    get_problem(conn, problem_id)
    row = conn.execute(
        "SELECT * FROM daily_selections WHERE problem_id = ? AND selected_date = ?",
        (problem_id, today.isoformat()),
    ).fetchone()
    if row is None:
        raise NotFoundError(f"Problem {problem_id} is not in the selection for {today.isoformat()}")
    return row


def record_completion(
    conn: sqlite3.Connection,
    problem_id,
    outcome,
    today: date,
    now: datetime | None = None,
) -> SelectionEntry:
    """Record the outcome for a problem in today's selection and mark it done."""
    outcome = parse_outcome(outcome)
    problem_id = validate_problem_id(problem_id)
    with transaction(conn):
        selection = _selection_row(conn, problem_id, today)
        problem = apply_outcome(conn, problem_id, outcome, today, now)
        conn.execute("UPDATE daily_selections SET completed = 1 WHERE id = ?", (selection["id"],))
    logger.info("Completed problem %d as %s, now %s", problem_id, outcome.name, problem.state.name)
    problem.topics = topics_for_problems(conn, [problem_id]).get(problem_id, [])
    return SelectionEntry(problem, selection["id"], True)


def replace(
    conn: sqlite3.Connection,
    problem_id,
    today: date,
    rng: random.Random | None = None,
) -> SelectionEntry:
    """Swap an uncompleted problem in today's selection for a fresh pick."""
    problem_id = validate_problem_id(problem_id)
    with transaction(conn):
        selection = _selection_row(conn, problem_id, today)
        if selection["completed"]:
            raise ValidationError(f"Problem {problem_id} is already completed and cannot be replaced")
        replacement = select_single_problem(conn, today, rng)
        if replacement is None:
            raise ExhaustionError("No eligible problems available for replacement")
        conn.execute("DELETE FROM daily_selections WHERE id = ?", (selection["id"],))
        cur = conn.execute(
            "INSERT INTO daily_selections (problem_id, selected_date, completed) VALUES (?, ?, 0)",
            (replacement.id, today.isoformat()),
        )
    logger.info("Replaced problem %d with %d", problem_id, replacement.id)
    replacement.topics = topics_for_problems(conn, [replacement.id]).get(replacement.id, [])
    return SelectionEntry(replacement, cur.lastrowid, False)


def manual_review(
    conn: sqlite3.Connection,
    problem_id,
    outcome,
    today: date,
    insight: str | None = None,
    now: datetime | None = None,
) -> Problem:
    """Record an outcome for any problem, outside the daily selection.

    `insight` replaces the stored insight when given; an empty string clears it.
    """
    outcome = parse_outcome(outcome)
    problem_id = validate_problem_id(problem_id)
    if insight is not None and len(insight) > MAX_INSIGHT_LENGTH:
        raise ValidationError(f"Insight exceeds maximum length of {MAX_INSIGHT_LENGTH} characters")
    with transaction(conn):
        get_problem(conn, problem_id)
        apply_outcome(conn, problem_id, outcome, today, now)
        if insight is not None:
            conn.execute(
                "UPDATE problems SET insight = ? WHERE id = ?",
                (insight.strip() or None, problem_id),
            )
    logger.info("Reviewed problem %d as %s", problem_id, outcome.name)
    return get_problem(conn, problem_id)
