# tests/test_importer.py
import csv
import io
import sqlite3

import pytest

from leet_daily.importer import parse_csv, import_csv, import_file, export_csv, sanitize_field
from leet_daily.models import Mastery
from leet_daily.problems import create_problem, list_problems
from leet_daily.topics import create_topic, list_topics

HEADER = "Problem,Link,Color,LastReviewed,KeyInsight,Topics\n"


def test_parse_valid_rows():
    content = HEADER + (
        "Two Sum,https://leetcode.com/problems/two-sum/,green,2024-05-01,hash map,\"Arrays, Hash Table\"\n"
        "3Sum,https://leetcode.com/problems/3sum/,,,,\n"
    )
    result = parse_csv(content)
    assert result.errors == []
    first, second = result.success
    assert first.state == Mastery.HIGH
    assert first.last_reviewed == "2024-05-01"
    assert first.insight == "hash map"
    assert first.topic_names == ["Arrays", "Hash Table"]
    assert second.state == Mastery.NEW
    assert second.last_reviewed is None and second.insight is None


def test_headers_are_case_insensitive():
    content = "problem,LINK,color,lastreviewed,keyinsight,topics\nA,https://x.com/a,orange,,,\n"
    assert parse_csv(content).success[0].state == Mastery.LOW


def test_row_errors_carry_spreadsheet_row_numbers():
    content = HEADER + (
        "Good,https://leetcode.com/problems/good/,gray,,,\n"
        ",https://leetcode.com/problems/nameless/,,,,\n"
        "No Link,,,,,\n"
        "Bad Url,leetcode.com/problems/bad,,,,\n"
        "Bad Color,https://leetcode.com/problems/color/,purple,,,\n"
        "Bad Date,https://leetcode.com/problems/date/,,05/01/2024,,\n"
        "Dup,https://leetcode.com/problems/good,,,,\n"
    )
    result = parse_csv(content)
    assert [p.name for p in result.success] == ["Good"]
    assert [e.row for e in result.errors] == [3, 4, 5, 6, 7, 8]
    assert "name is required" in result.errors[0].error
    assert "Link is required" in result.errors[1].error
    assert "Invalid URL" in result.errors[2].error
    assert "Invalid color" in result.errors[3].error
    assert "Invalid date" in result.errors[4].error
    assert "Duplicate link" in result.errors[5].error


def test_length_limits():
    content = HEADER + (
        f"{'n' * 501},https://leetcode.com/problems/a/,,,,\n"
        f"B,https://leetcode.com/problems/b/,,,{'i' * 5001},\n"
        f"C,https://leetcode.com/problems/c/,,,,{'t' * 101}\n"
    )
    result = parse_csv(content)
    assert result.success == []
    assert len(result.errors) == 3


def test_empty_content():
    result = parse_csv("   \n")
    assert result.success == [] and result.errors == []


def test_formula_prefixes_are_neutralized():
    assert sanitize_field("=SUM(A1:A2)") == "'=SUM(A1:A2)"
    assert sanitize_field("@cmd") == "'@cmd"
    assert sanitize_field("Two Sum") == "Two Sum"
    assert sanitize_field(None) == ""
    content = HEADER + "=HYPERLINK(\"x\"),https://leetcode.com/problems/f/,,,+1 trick,\n"
    parsed = parse_csv(content).success[0]
    assert parsed.name == "'=HYPERLINK(\"x\")"
    assert parsed.insight == "'+1 trick"


def test_import_counts_duplicates_and_creates_topics(conn):
    create_topic(conn, "arrays")
    create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/")
    content = HEADER + (
        "Two Sum,https://leetcode.com/problems/Two-Sum,,,,\n"
        "Merge Intervals,https://leetcode.com/problems/merge-intervals/,yellow,2024-06-01,,\"Arrays, Sorting\"\n"
        "Broken,nope,,,,\n"
    )
    result = import_csv(conn, content)
    assert result["imported"] == 1
    assert result["duplicates"] == 1
    assert [e.row for e in result["errors"]] == [4]
    merged = [p for p in list_problems(conn) if p.name == "Merge Intervals"][0]
    assert merged.state == Mastery.MID
    assert merged.topics == ["Sorting", "arrays"]
    assert sorted(t.name for t in list_topics(conn)) == ["Sorting", "arrays"]


def test_import_file_reports_filename(conn, tmp_path):
    f = tmp_path / "problems.csv"
    f.write_text(HEADER + "Two Sum,https://leetcode.com/problems/two-sum/,,,,\n", encoding="utf-8")
    result = import_file(conn, str(f))
    assert result["filename"] == "problems.csv"
    assert result["imported"] == 1


def test_export_writes_all_columns(conn):
    topic = create_topic(conn, "Stack")
    create_problem(conn, "=Evil", "https://leetcode.com/problems/evil/", state="orange",
                   insight="push, then pop", topic_ids=[topic.id])
    rows = list(csv.reader(io.StringIO(export_csv(conn))))
    assert rows[0] == ["Problem", "Link", "Color", "LastReviewed", "KeyInsight", "Topics"]
    assert rows[1] == ["'=Evil", "https://leetcode.com/problems/evil/", "orange", "", "push, then pop", "Stack"]


def test_exported_file_imports_cleanly(conn):
    create_problem(conn, "Two Sum", "https://leetcode.com/problems/two-sum/", state="green")
    result = parse_csv(export_csv(conn))
    assert result.errors == []
    assert result.success[0].state == Mastery.HIGH


def test_import_is_all_or_nothing(conn):
    conn.execute(
        "CREATE TRIGGER fail_links BEFORE INSERT ON problem_topics "
        "BEGIN SELECT RAISE(ABORT, 'write blocked'); END"
    )
    conn.commit()
    content = HEADER + (
        "Two Sum,https://leetcode.com/problems/two-sum/,,,,\n"
        "Merge Intervals,https://leetcode.com/problems/merge-intervals/,,,,Sorting\n"
    )
    with pytest.raises(sqlite3.IntegrityError):
        import_csv(conn, content)
    assert list_problems(conn) == []
    assert list_topics(conn) == []
