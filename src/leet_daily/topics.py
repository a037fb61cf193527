"""Topic tags and their association with problems."""
import sqlite3
from typing import Iterable

from leet_daily.db import transaction
from leet_daily.errors import ConflictError, NotFoundError, ValidationError
from leet_daily.models import Topic

MAX_TOPIC_NAME_LENGTH = 100


def list_topics(conn: sqlite3.Connection) -> list[Topic]:
    rows = conn.execute("SELECT * FROM topics ORDER BY name ASC").fetchall()
    return [Topic.from_row(r) for r in rows]


def get_topic_by_name(conn: sqlite3.Connection, name: str) -> Topic | None:
    row = conn.execute(
        "SELECT * FROM topics WHERE LOWER(name) = LOWER(?)", (name.strip(),)
    ).fetchone()
    return Topic.from_row(row) if row else None


def create_topic(conn: sqlite3.Connection, name: str) -> Topic:
    """Create a topic. Names are trimmed and unique ignoring case."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Topic name cannot be empty")
    name = name.strip()
    if len(name) > MAX_TOPIC_NAME_LENGTH:
        raise ValidationError(f"Topic name must be {MAX_TOPIC_NAME_LENGTH} characters or less")
    if get_topic_by_name(conn, name):
        raise ConflictError(f"A topic named {name!r} already exists")
    with transaction(conn):
        cur = conn.execute("INSERT INTO topics (name) VALUES (?)", (name,))
        row = conn.execute("SELECT * FROM topics WHERE id = ?", (cur.lastrowid,)).fetchone()
    return Topic.from_row(row)


def get_or_create_topic(conn: sqlite3.Connection, name: str) -> Topic:
    return get_topic_by_name(conn, name) or create_topic(conn, name)


def delete_topic(conn: sqlite3.Connection, topic_id: int) -> None:
    """Delete a topic and its problem links; problems themselves are kept."""
    with transaction(conn):
        cur = conn.execute("DELETE FROM topics WHERE id = ?", (topic_id,))
        if cur.rowcount == 0:
            raise NotFoundError(f"Topic {topic_id} not found")


def set_problem_topics(conn: sqlite3.Connection, problem_id: int, topic_ids: Iterable[int]) -> None:
    """Replace a problem's topic set."""
    topic_ids = list(dict.fromkeys(topic_ids))
    with transaction(conn):
        if conn.execute("SELECT 1 FROM problems WHERE id = ?", (problem_id,)).fetchone() is None:
            raise NotFoundError(f"Problem {problem_id} not found")
        for topic_id in topic_ids:
            if conn.execute("SELECT 1 FROM topics WHERE id = ?", (topic_id,)).fetchone() is None:
                raise NotFoundError(f"Topic {topic_id} not found")
        conn.execute("DELETE FROM problem_topics WHERE problem_id = ?", (problem_id,))
        conn.executemany(
            "INSERT INTO problem_topics (problem_id, topic_id) VALUES (?, ?)",
            [(problem_id, t) for t in topic_ids],
        )


def topics_for_problems(conn: sqlite3.Connection, problem_ids: Iterable[int]) -> dict[int, list[str]]:
    """Map each problem id to its topic names. Problems without topics are omitted."""
    ids = list(problem_ids)
    if not ids:
        return {}
    placeholders = ",".join("?" * len(ids))
    rows = conn.execute(
        f"""SELECT pt.problem_id, t.name
        FROM problem_topics pt JOIN topics t ON pt.topic_id = t.id
        WHERE pt.problem_id IN ({placeholders})
        ORDER BY t.name""",
        ids,
    ).fetchall()
    result: dict[int, list[str]] = {}
    for r in rows:
        result.setdefault(r["problem_id"], []).append(r["name"])
    return result
