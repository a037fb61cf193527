"""Problem records: create, look up, filter, edit and delete."""
import re
import sqlite3
from datetime import date
from urllib.parse import urlparse

from leet_daily.db import transaction
from leet_daily.errors import ConflictError, NotFoundError, ValidationError
from leet_daily.models import Attempt, Mastery, Problem
from leet_daily.topics import set_problem_topics, topics_for_problems

MAX_NAME_LENGTH = 500
MAX_URL_LENGTH = 2048
MAX_INSIGHT_LENGTH = 5000

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_problem_id(problem_id) -> int:
    """Accept a positive int or a string of digits."""
    if isinstance(problem_id, str):
        text = problem_id.strip()
        # ASCII digits only
        if text.isascii() and text.isdecimal():
            problem_id = int(text)
    if isinstance(problem_id, bool) or not isinstance(problem_id, int) or problem_id < 1:
        raise ValidationError(f"Problem id must be a positive integer, got {problem_id!r}")
    return problem_id


def _validate_name(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Name must be a non-empty string")
    if len(value.strip()) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name exceeds maximum length of {MAX_NAME_LENGTH} characters")
    return value.strip()


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _validate_link(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Link must be a non-empty string")
    value = value.strip()
    if len(value) > MAX_URL_LENGTH:
        raise ValidationError(f"URL exceeds maximum length of {MAX_URL_LENGTH} characters")
    if not is_valid_url(value):
        raise ValidationError("Link must be a valid HTTP or HTTPS URL")
    return value


def _validate_state(value) -> str:
    try:
        return Mastery(value).value
    except ValueError:
        names = {m.name: m for m in Mastery}
        if isinstance(value, str) and value.upper() in names:
            return names[value.upper()].value
        raise ValidationError("State must be one of: gray, orange, yellow, green") from None


def _validate_insight(value) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Insight must be a string")
    if len(value) > MAX_INSIGHT_LENGTH:
        raise ValidationError(f"Insight exceeds maximum length of {MAX_INSIGHT_LENGTH} characters")
    return value.strip() or None


def _validate_last_reviewed(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not ISO_DATE_RE.match(value):
        raise ValidationError("last_reviewed must be in ISO format (YYYY-MM-DD)")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"last_reviewed is not a real date: {value}") from None
    return value


# field -> (column, validator); the only columns an update may touch
EDITABLE_FIELDS = {
    "name": ("name", _validate_name),
    "link": ("link", _validate_link),
    "state": ("state", _validate_state),
    "insight": ("insight", _validate_insight),
    "last_reviewed": ("last_reviewed", _validate_last_reviewed),
}


def normalize_link(link: str) -> str:
    """Key used to detect duplicate links: lowercase, no trailing slash."""
    return link.strip().lower().rstrip("/")


def _check_link_unique(conn: sqlite3.Connection, link: str, exclude_id: int | None = None) -> None:
    key = normalize_link(link)
    for row in conn.execute("SELECT id, link FROM problems").fetchall():
        if row["id"] != exclude_id and normalize_link(row["link"]) == key:
            raise ConflictError("A problem with this link already exists")


def _attach_topics(conn: sqlite3.Connection, problems: list[Problem]) -> list[Problem]:
    topic_map = topics_for_problems(conn, [p.id for p in problems])
    for p in problems:
        p.topics = topic_map.get(p.id, [])
    return problems


_ATTEMPT_COUNT = "(SELECT COUNT(*) FROM attempts a WHERE a.problem_id = p.id) AS attempt_count"


def get_problem(conn: sqlite3.Connection, problem_id: int) -> Problem:
    """Return a problem with its topics and attempt history, newest first."""
    row = conn.execute(
        f"SELECT p.*, {_ATTEMPT_COUNT} FROM problems p WHERE p.id = ?", (problem_id,)
    ).fetchone()
    if row is None:
        raise NotFoundError(f"Problem {problem_id} not found")
    problem = _attach_topics(conn, [Problem.from_row(row)])[0]
    problem.attempts = _fetch_attempts(conn, problem_id)
    return problem


def get_attempts(conn: sqlite3.Connection, problem_id: int) -> list[Attempt]:
    """Attempt history for a problem, newest first."""
    return get_problem(conn, problem_id).attempts


def _fetch_attempts(conn: sqlite3.Connection, problem_id: int) -> list[Attempt]:
    rows = conn.execute(
        "SELECT * FROM attempts WHERE problem_id = ? ORDER BY attempted_at DESC, id DESC",
        (problem_id,),
    ).fetchall()
    return [Attempt.from_row(r) for r in rows]


def create_problem(
    conn: sqlite3.Connection,
    name: str,
    link: str,
    state=Mastery.NEW,
    insight: str | None = None,
    topic_ids=(),
) -> Problem:
    name = _validate_name(name)
    link = _validate_link(link)
    state = _validate_state(state)
    insight = _validate_insight(insight)
    with transaction(conn):
        _check_link_unique(conn, link)
        cur = conn.execute(
            "INSERT INTO problems (name, link, state, insight) VALUES (?, ?, ?, ?)",
            (name, link, state, insight),
        )
        if topic_ids:
            set_problem_topics(conn, cur.lastrowid, topic_ids)
    return get_problem(conn, cur.lastrowid)


def list_problems(
    conn: sqlite3.Connection, state=None, search: str | None = None
) -> list[Problem]:
    """All problems, newest first, optionally filtered by state and name."""
    query = f"SELECT p.*, {_ATTEMPT_COUNT} FROM problems p WHERE 1=1"
    params: list = []
    if state is not None:
        query += " AND p.state = ?"
        params.append(_validate_state(state))
    if search:
        escaped = re.sub(r"([%_\\])", r"\\\1", search)
        query += " AND p.name LIKE ? ESCAPE '\\'"
        params.append(f"%{escaped}%")
    query += " ORDER BY p.created_at DESC, p.id DESC"
    rows = conn.execute(query, params).fetchall()
    return _attach_topics(conn, [Problem.from_row(r) for r in rows])


def update_problem(conn: sqlite3.Connection, problem_id: int, **changes) -> Problem:
    """Edit problem fields directly. Only names in EDITABLE_FIELDS are accepted."""
    if not changes:
        raise ValidationError("At least one field must be provided for update")
    assignments: list[tuple[str, object]] = []
    for field, value in changes.items():
        if field not in EDITABLE_FIELDS:
            raise ValidationError(f"Field {field!r} cannot be updated")
        column, validator = EDITABLE_FIELDS[field]
        assignments.append((column, validator(value)))

    with transaction(conn):
        get_problem(conn, problem_id)
        for column, value in assignments:
            if column == "link":
                _check_link_unique(conn, value, exclude_id=problem_id)
        sets = ", ".join(f"{column} = ?" for column, _ in assignments)
        conn.execute(
            f"UPDATE problems SET {sets} WHERE id = ?",
            [value for _, value in assignments] + [problem_id],
        )
    return get_problem(conn, problem_id)


def delete_problem(conn: sqlite3.Connection, problem_id: int) -> None:
    """Delete a problem with its attempts, selections and topic links."""
    with transaction(conn):
        get_problem(conn, problem_id)
        conn.execute("DELETE FROM attempts WHERE problem_id = ?", (problem_id,))
        conn.execute("DELETE FROM daily_selections WHERE problem_id = ?", (problem_id,))
        conn.execute("DELETE FROM problem_topics WHERE problem_id = ?", (problem_id,))
        conn.execute("DELETE FROM problems WHERE id = ?", (problem_id,))


def count_problems(conn: sqlite3.Connection, state=None) -> int:
    if state is None:
        return conn.execute("SELECT COUNT(*) FROM problems").fetchone()[0]
    return conn.execute(
        "SELECT COUNT(*) FROM problems WHERE state = ?", (_validate_state(state),)
    ).fetchone()[0]
