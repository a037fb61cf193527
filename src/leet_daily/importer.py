"""CSV import and export of the problem list."""
import csv
import io
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from leet_daily.db import transaction
from leet_daily.models import Mastery
from leet_daily.problems import (
    ISO_DATE_RE, MAX_INSIGHT_LENGTH, MAX_NAME_LENGTH, MAX_URL_LENGTH,
    is_valid_url, list_problems, normalize_link,
)
from leet_daily.topics import MAX_TOPIC_NAME_LENGTH, get_or_create_topic

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Problem", "Link", "Color", "LastReviewed", "KeyInsight", "Topics"]

# Leading characters a spreadsheet would treat as a formula
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


@dataclass
class ParsedProblem:
    name: str
    link: str
    state: Mastery = Mastery.NEW
    last_reviewed: str | None = None
    insight: str | None = None
    topic_names: list[str] = field(default_factory=list)


@dataclass
class RowError:
    row: int
    error: str


@dataclass
class ParseResult:
    success: list[ParsedProblem] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)


def sanitize_field(value: str | None) -> str:
    if value is None:
        return ""
    text = str(value)
    if text.startswith(FORMULA_PREFIXES):
        return f"'{text}"
    return text


def _is_valid_date(text: str) -> bool:
    if not ISO_DATE_RE.match(text):
        return False
    try:
        date.fromisoformat(text)
    except ValueError:
        return False
    return True


def _parse_row(record: dict, seen_links: set[str]) -> ParsedProblem | str:
    """Return a ParsedProblem, or an error message for the row."""
    def get(key):
        return (record.get(key) or "").strip()

    name = sanitize_field(get("problem"))
    link = get("link")
    color = get("color").lower()
    last_reviewed = get("lastreviewed")
    insight = sanitize_field(get("keyinsight"))
    topics = get("topics")

    if not name:
        return "Problem name is required"
    if not link:
        return "Link is required"
    if len(name) > MAX_NAME_LENGTH:
        return f"Problem name exceeds maximum length of {MAX_NAME_LENGTH} characters"
    if len(link) > MAX_URL_LENGTH:
        return f"URL exceeds maximum length of {MAX_URL_LENGTH} characters"
    if len(insight) > MAX_INSIGHT_LENGTH:
        return f"Key insight exceeds maximum length of {MAX_INSIGHT_LENGTH} characters"
    if not is_valid_url(link):
        return "Invalid URL format. Must be http:// or https://"
    key = normalize_link(link)
    if key in seen_links:
        return f"Duplicate link: {link}"

    state = Mastery.NEW
    if color:
        try:
            state = Mastery(color)
        except ValueError:
            return f"Invalid color: {color}. Must be one of: gray, orange, yellow, green"
    if last_reviewed and not _is_valid_date(last_reviewed):
        return f"Invalid date format: {last_reviewed}. Expected YYYY-MM-DD"

    topic_names = [t.strip() for t in topics.split(",") if t.strip()]
    if any(len(t) > MAX_TOPIC_NAME_LENGTH for t in topic_names):
        return f"Topic names must be {MAX_TOPIC_NAME_LENGTH} characters or less"

    seen_links.add(key)
    return ParsedProblem(
        name=name,
        link=link,
        state=state,
        last_reviewed=last_reviewed or None,
        insight=insight or None,
        topic_names=topic_names,
    )


def parse_csv(content: str) -> ParseResult:
    """Parse CSV text. Row numbers in errors count the header as row 1."""
    result = ParseResult()
    content = content.strip()
    if not content:
        return result
    reader = csv.DictReader(io.StringIO(content))
    reader.fieldnames = [h.strip().lower() for h in reader.fieldnames or []]
    seen_links: set[str] = set()
    try:
        for row_number, record in enumerate(reader, start=2):
            if not any((v or "").strip() for k, v in record.items() if k is not None):
                continue
            parsed = _parse_row(record, seen_links)
            if isinstance(parsed, str):
                result.errors.append(RowError(row_number, parsed))
            else:
                result.success.append(parsed)
    except csv.Error as e:
        return ParseResult(errors=[RowError(0, f"Failed to parse CSV: {e}")])
    return result


def import_csv(conn: sqlite3.Connection, content: str) -> dict:
    """Insert every valid row, skipping links already in the store."""
    parsed = parse_csv(content)
    imported = 0
    duplicates = 0
    with transaction(conn):
        existing = {normalize_link(r["link"]) for r in conn.execute("SELECT link FROM problems")}
        for p in parsed.success:
            key = normalize_link(p.link)
            if key in existing:
                duplicates += 1
                continue
            cur = conn.execute(
                """INSERT INTO problems (name, link, state, insight, last_reviewed)
                VALUES (?, ?, ?, ?, ?)""",
                (p.name, p.link, p.state.value, p.insight, p.last_reviewed),
            )
            for topic_name in p.topic_names:
                topic = get_or_create_topic(conn, topic_name)
                conn.execute(
                    "INSERT OR IGNORE INTO problem_topics (problem_id, topic_id) VALUES (?, ?)",
                    (cur.lastrowid, topic.id),
                )
            existing.add(key)
            imported += 1
    logger.info(
        "Imported %d problems (%d duplicates, %d row errors)",
        imported, duplicates, len(parsed.errors),
    )
    return {"imported": imported, "duplicates": duplicates, "errors": parsed.errors}


def import_file(conn: sqlite3.Connection, file_path: str) -> dict:
    result = import_csv(conn, Path(file_path).read_text(encoding="utf-8"))
    result["filename"] = Path(file_path).name
    return result


def export_csv(conn: sqlite3.Connection) -> str:
    """Render all problems as CSV, newest first."""
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for p in list_problems(conn):
        writer.writerow([
            sanitize_field(p.name),
            sanitize_field(p.link),
            p.state.value,
            p.last_reviewed.isoformat() if p.last_reviewed else "",
            sanitize_field(p.insight),
            ", ".join(p.topics),
        ])
    return out.getvalue()
