"""Database initialization, connection management and settings."""
import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from leet_daily.errors import InvariantError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.environ.get(
    "LEET_DAILY_DB", str(Path.home() / ".leet_daily" / "leet_daily.db")
)

MIN_DAILY_COUNT = 3
MAX_DAILY_COUNT = 10
DEFAULT_DAILY_COUNT = 5

SCHEMA = """
CREATE TABLE IF NOT EXISTS problems (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    link TEXT NOT NULL UNIQUE,
    state TEXT NOT NULL DEFAULT 'gray' CHECK(state IN ('gray', 'orange', 'yellow', 'green')),
    insight TEXT,
    last_reviewed TEXT,
    review_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    problem_id INTEGER NOT NULL REFERENCES problems(id),
    outcome TEXT NOT NULL CHECK(outcome IN ('orange', 'yellow', 'green')),
    attempted_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS daily_selections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    problem_id INTEGER NOT NULL REFERENCES problems(id),
    selected_date TEXT NOT NULL,
    completed INTEGER NOT NULL DEFAULT 0,
    UNIQUE(problem_id, selected_date)
);

CREATE TABLE IF NOT EXISTS topics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS problem_topics (
    problem_id INTEGER NOT NULL REFERENCES problems(id) ON DELETE CASCADE,
    topic_id INTEGER NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
    PRIMARY KEY (problem_id, topic_id)
);

CREATE INDEX IF NOT EXISTS idx_selections_date ON daily_selections(selected_date);
CREATE INDEX IF NOT EXISTS idx_problem_topics_topic ON problem_topics(topic_id);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.execute(
        "INSERT OR IGNORE INTO user_settings (key, value) VALUES ('daily_problem_count', ?)",
        (str(DEFAULT_DAILY_COUNT),),
    )
    conn.commit()
    conn.close()
    logger.debug("Initialized database at %s", db_path)


@contextmanager
def transaction(conn: sqlite3.Connection):
    """Run the enclosed block as one atomic unit.

    Commits on normal exit and rolls back every write on any exception.
    A block entered while a transaction is already open joins it, so the
    outermost scope decides the outcome.
    """
    if conn.in_transaction:
        yield conn
        return
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


def get_setting(conn: sqlite3.Connection, key: str, default: str = None) -> str | None:
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    return row["value"] if row else default


def set_setting(conn: sqlite3.Connection, key: str, value: str) -> None:
    with transaction(conn):
        conn.execute(
            "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
            (key, value, value),
        )


def validate_daily_count(count) -> int:
    if isinstance(count, bool) or not isinstance(count, int):
        raise ValidationError(f"Daily problem count must be an integer, got {count!r}")
    if count < MIN_DAILY_COUNT or count > MAX_DAILY_COUNT:
        raise ValidationError(
            f"Daily problem count must be between {MIN_DAILY_COUNT} and {MAX_DAILY_COUNT}"
        )
    return count


def get_daily_count(conn: sqlite3.Connection) -> int:
    """Read the configured number of problems per day."""
    raw = get_setting(conn, "daily_problem_count")
    if raw is None:
        raise InvariantError("Setting 'daily_problem_count' is missing")
    try:
        count = int(raw)
    except ValueError:
        raise InvariantError(f"Setting 'daily_problem_count' is not an integer: {raw!r}") from None
    if count < MIN_DAILY_COUNT or count > MAX_DAILY_COUNT:
        raise InvariantError(f"Setting 'daily_problem_count' out of range: {count}")
    return count


def set_daily_count(conn: sqlite3.Connection, count: int) -> None:
    set_setting(conn, "daily_problem_count", str(validate_daily_count(count)))
