import random
from datetime import date, timedelta

import pytest

from leet_daily.db import init_db, get_connection

TODAY = date(2024, 6, 15)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_leet_daily.db")
    return db_path


@pytest.fixture
def conn(tmp_db):
    """An initialized connection to a fresh database."""
    init_db(tmp_db)
    connection = get_connection(tmp_db)
    yield connection
    connection.close()


@pytest.fixture
def rng():
    return random.Random(1234)


def add_problem(conn, name, state="gray", last_reviewed=None, topics=()):
    """Insert a problem directly, bypassing validation. Returns its id."""
    if isinstance(last_reviewed, int):
        last_reviewed = (TODAY - timedelta(days=last_reviewed)).isoformat()
    cur = conn.execute(
        "INSERT INTO problems (name, link, state, last_reviewed) VALUES (?, ?, ?, ?)",
        (name, f"https://leetcode.com/problems/{name.lower().replace(' ', '-')}/", state, last_reviewed),
    )
    problem_id = cur.lastrowid
    for topic in topics:
        conn.execute("INSERT OR IGNORE INTO topics (name) VALUES (?)", (topic,))
        topic_id = conn.execute("SELECT id FROM topics WHERE name = ?", (topic,)).fetchone()[0]
        conn.execute(
            "INSERT INTO problem_topics (problem_id, topic_id) VALUES (?, ?)", (problem_id, topic_id)
        )
    conn.commit()
    return problem_id


def select_on(conn, problem_id, day, completed=False):
    conn.execute(
        "INSERT INTO daily_selections (problem_id, selected_date, completed) VALUES (?, ?, ?)",
        (problem_id, day.isoformat(), int(completed)),
    )
    conn.commit()
