# tests/test_problems.py
from datetime import date

import pytest

from leet_daily.daily import manual_review, record_completion
from leet_daily.errors import ConflictError, NotFoundError, ValidationError
from leet_daily.models import Mastery
from leet_daily.problems import (
    create_problem, get_problem, get_attempts, list_problems, update_problem,
    delete_problem, count_problems, validate_problem_id,
)
from leet_daily.topics import create_topic

from conftest import TODAY, add_problem, select_on


def test_create_problem_defaults(conn):
    p = create_problem(conn, "  Two Sum ", "https://leetcode.com/problems/two-sum/")
    assert p.name == "Two Sum"
    assert p.state == Mastery.NEW
    assert p.review_count == 0
    assert p.last_reviewed is None
    assert p.topics == []


def test_create_problem_with_topics(conn):
    arrays = create_topic(conn, "Arrays")
    hashing = create_topic(conn, "Hash Table")
    p = create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/",
                       topic_ids=[hashing.id, arrays.id])
    assert p.topics == ["Arrays", "Hash Table"]


@pytest.mark.parametrize("name,link", [
    ("", "https://leetcode.com/problems/x/"),
    ("X", ""),
    ("X", "ftp://leetcode.com/problems/x/"),
    ("X", "not a url"),
    ("x" * 501, "https://leetcode.com/problems/x/"),
])
def test_create_problem_validation(conn, name, link):
    with pytest.raises(ValidationError):
        create_problem(conn, name, link)
    assert count_problems(conn) == 0


def test_duplicate_link_ignores_case_and_trailing_slash(conn):
    create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/")
    with pytest.raises(ConflictError):
        create_problem(conn, "Two Sum again", "HTTPS://leetcode.com/problems/Two-Sum")


def test_get_problem_not_found(conn):
    with pytest.raises(NotFoundError):
        get_problem(conn, 1)


def test_attempts_newest_first(conn):
    p = create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/")
    manual_review(conn, p.id, "orange", TODAY)
    manual_review(conn, p.id, "green", TODAY)
    attempts = get_attempts(conn, p.id)
    assert [a.outcome for a in attempts] == [Mastery.HIGH, Mastery.LOW]


def test_get_problem_includes_attempts(conn):
    p = create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/")
    manual_review(conn, p.id, "yellow", TODAY)
    problem = get_problem(conn, p.id)
    assert problem.attempt_count == 1
    assert [a.outcome for a in problem.attempts] == [Mastery.MID]


def test_list_reports_attempt_counts(conn):
    reviewed = add_problem(conn, "Two Sum")
    untouched = add_problem(conn, "Three Sum")
    select_on(conn, reviewed, TODAY)
    record_completion(conn, reviewed, "orange", TODAY)
    manual_review(conn, reviewed, "green", TODAY)
    counts = {p.id: p.attempt_count for p in list_problems(conn)}
    assert counts == {reviewed: 2, untouched: 0}
    assert [p.attempt_count for p in list_problems(conn, state="green")] == [2]


def test_list_filters_by_state_and_search(conn):
    a = create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/")
    create_problem(conn, "Three Sum", "https://leetcode.com/problems/3sum/", state="yellow")
    create_problem(conn, "100%_done", "https://leetcode.com/problems/odd/")
    assert [p.name for p in list_problems(conn, state="gray", search="sum")] == ["Two Sum"]
    assert {p.name for p in list_problems(conn, search="Sum")} == {"Two Sum", "Three Sum"}
    assert [p.name for p in list_problems(conn, search="%_")] == ["100%_done"]
    assert [p.name for p in list_problems(conn, state=Mastery.MID)] == ["Three Sum"]
    assert a.id in {p.id for p in list_problems(conn)}


def test_list_rejects_unknown_state(conn):
    with pytest.raises(ValidationError):
        list_problems(conn, state="purple")


def test_update_problem_fields(conn):
    p = create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/")
    updated = update_problem(conn, p.id, name="2Sum", state="HIGH", insight="hash map",
                             last_reviewed="2024-01-02")
    assert updated.name == "2Sum"
    assert updated.state == Mastery.HIGH
    assert updated.insight == "hash map"
    assert updated.last_reviewed == date(2024, 1, 2)
    assert update_problem(conn, p.id, last_reviewed=None).last_reviewed is None


@pytest.mark.parametrize("changes", [
    {},
    {"review_count": 5},
    {"id": 9},
    {"last_reviewed": "01/02/2024"},
    {"last_reviewed": "2024-02-30"},
    {"state": "blue"},
    {"name": "  "},
])
def test_update_problem_rejects_bad_fields(conn, changes):
    p = create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/")
    with pytest.raises(ValidationError):
        update_problem(conn, p.id, **changes)
    assert get_problem(conn, p.id).name == "Two Sum"


def test_update_link_conflict_excludes_self(conn):
    p = create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/")
    q = create_problem(conn, "3Sum", "https://leetcode.com/problems/3sum/")
    assert update_problem(conn, p.id, link="https://leetcode.com/problems/two-sum").link.endswith("two-sum")
    with pytest.raises(ConflictError):
        update_problem(conn, q.id, link="https://leetcode.com/problems/two-sum/")


def test_update_unknown_problem(conn):
    with pytest.raises(NotFoundError):
        update_problem(conn, 99, name="x")


def test_delete_cascades(conn):
    topic = create_topic(conn, "Arrays")
    p = create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/", topic_ids=[topic.id])
    manual_review(conn, p.id, "green", TODAY)
    select_on(conn, p.id, TODAY)
    delete_problem(conn, p.id)
    for table in ("problems", "attempts", "daily_selections", "problem_topics"):
        assert conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] == 0
    assert conn.execute("SELECT COUNT(*) FROM topics").fetchone()[0] == 1


def test_delete_unknown_problem(conn):
    with pytest.raises(NotFoundError):
        delete_problem(conn, 5)


def test_validate_problem_id():
    assert validate_problem_id(3) == 3
    assert validate_problem_id(" 12 ") == 12
    for bad in (0, -1, "x", None, True, 1.5, "\u00b2", "\u0663", "1\u00b2"):
        with pytest.raises(ValidationError):
            validate_problem_id(bad)
