"""Data classes for the practice scheduler domain model."""
import sqlite3
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from leet_daily.errors import InvariantError


class Mastery(str, Enum):
    """Mastery states, ordered NEW < LOW < MID < HIGH.

    Values are the colors persisted in the store.
    """
    NEW = "gray"
    LOW = "orange"
    MID = "yellow"
    HIGH = "green"


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


@dataclass
class Topic:
    id: int
    name: str
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Topic":
        return cls(id=row["id"], name=row["name"], created_at=row["created_at"])


@dataclass
class Attempt:
    id: int
    problem_id: int
    outcome: Mastery
    attempted_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Attempt":
        return cls(
            id=row["id"],
            problem_id=row["problem_id"],
            outcome=Mastery(row["outcome"]),
            attempted_at=row["attempted_at"],
        )


@dataclass
class Problem:
    id: int
    name: str
    link: str
    state: Mastery = Mastery.NEW
    insight: Optional[str] = None
    last_reviewed: Optional[date] = None
    review_count: int = 0
    created_at: Optional[str] = None
    topics: list[str] = field(default_factory=list)
    attempt_count: int = 0
    attempts: list[Attempt] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Problem":
        try:
            state = Mastery(row["state"])
        except ValueError:
            raise InvariantError(
                f"Problem {row['id']} has unknown state {row['state']!r}"
            ) from None
        return cls(
            id=row["id"],
            name=row["name"],
            link=row["link"],
            state=state,
            insight=row["insight"],
            last_reviewed=_parse_date(row["last_reviewed"]),
            review_count=row["review_count"],
            created_at=row["created_at"],
            attempt_count=row["attempt_count"] if "attempt_count" in row.keys() else 0,
        )


@dataclass
class SelectionEntry:
    """A problem as it appears in a day's selection."""
    problem: Problem
    selection_id: int
    completed: bool = False
