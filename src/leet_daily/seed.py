"""Seed the database with the default topic list."""
import logging
import sqlite3

from leet_daily.db import transaction

logger = logging.getLogger(__name__)

DEFAULT_TOPICS = [
    "Arrays", "Hash Table", "Two Pointers", "Sliding Window", "Binary Search",
    "Sorting", "Greedy", "Backtracking", "Dynamic Programming", "Graph",
    "Tree", "DFS", "BFS", "Stack", "Queue", "Heap", "Linked List", "String",
    "Bit Manipulation", "Math", "Design", "Trie", "Union Find",
]


def is_seeded(conn: sqlite3.Connection) -> bool:
    """Check whether any topics exist yet."""
    return conn.execute("SELECT COUNT(*) FROM topics").fetchone()[0] > 0


def seed_topics(conn: sqlite3.Connection) -> None:
    with transaction(conn):
        conn.executemany(
            "INSERT OR IGNORE INTO topics (name) VALUES (?)",
            [(name,) for name in DEFAULT_TOPICS],
        )
    logger.info("Seeded %d default topics", len(DEFAULT_TOPICS))


def seed_all(conn: sqlite3.Connection) -> None:
    """Run all seed functions once; later calls leave user edits alone."""
    if is_seeded(conn):
        return
    seed_topics(conn)
