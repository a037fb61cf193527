"""Interactive CLI application."""
import logging
import os
import sqlite3
from contextlib import closing
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt, IntPrompt
from rich.table import Table

from leet_daily.db import (
    init_db, get_connection, get_daily_count, set_daily_count, transaction, DEFAULT_DB_PATH,
    MIN_DAILY_COUNT, MAX_DAILY_COUNT,
)
from leet_daily.daily import (
    get_or_create_today_selection, refresh, record_completion, replace, manual_review,
)
from leet_daily.errors import InvariantError, LeetDailyError, NotFoundError
from leet_daily.importer import import_file, export_csv
from leet_daily.models import Mastery, SelectionEntry
from leet_daily.problems import (
    create_problem, delete_problem, get_problem, list_problems, update_problem,
)
from leet_daily.seed import seed_all
from leet_daily.stats import get_stats
from leet_daily.topics import (
    create_topic, delete_topic, get_topic_by_name, list_topics, set_problem_topics,
)

console = Console()
logger = logging.getLogger(__name__)

STATE_STYLES = {
    Mastery.NEW: "grey58",
    Mastery.LOW: "dark_orange",
    Mastery.MID: "yellow",
    Mastery.HIGH: "green",
}
OUTCOME_CHOICES = ["orange", "yellow", "green"]


def configure_logging() -> None:
    level = os.environ.get("LEET_DAILY_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def state_label(state: Mastery) -> str:
    return f"[{STATE_STYLES[state]}]{state.name}[/{STATE_STYLES[state]}]"


def show_welcome():
    console.print(Panel(
        "[bold]Daily Practice[/bold]\n[dim]Spaced repetition for coding problems[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("today", "Today's problems"),
        ("done", "Record a result for one of today's problems"),
        ("replace", "Swap one of today's problems"),
        ("refresh", "Re-roll today's problems"),
        ("review", "Review any problem"),
        ("add", "Add a problem"),
        ("edit", "Edit a problem"),
        ("delete", "Delete a problem"),
        ("history", "Attempt history for a problem"),
        ("problems", "List problems"),
        ("topics", "List, add or delete topics"),
        ("stats", "Streak and review stats"),
        ("import", "Import problems from CSV"),
        ("export", "Export problems to CSV"),
        ("settings", "Problems per day"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def render_selection(entries: list[SelectionEntry], today: date) -> None:
    if not entries:
        console.print("[yellow]No eligible problems. Add some with 'add' or 'import'.[/yellow]")
        return
    table = Table(title=f"Problems for {today.isoformat()}")
    table.add_column("ID", justify="right")
    table.add_column("Problem", style="cyan")
    table.add_column("State")
    table.add_column("Topics", style="dim")
    table.add_column("Done")
    for e in entries:
        table.add_row(
            str(e.problem.id),
            e.problem.name,
            state_label(e.problem.state),
            ", ".join(e.problem.topics),
            "[green]✓[/green]" if e.completed else "",
        )
    console.print(table)
    done = sum(1 for e in entries if e.completed)
    console.print(f"[dim]{done}/{len(entries)} completed[/dim]")


def cmd_today(conn: sqlite3.Connection, today: date):
    render_selection(get_or_create_today_selection(conn, today), today)


def cmd_done(conn: sqlite3.Connection, today: date):
    problem_id = IntPrompt.ask("Problem ID")
    outcome = Prompt.ask("How did it go? (orange=struggled, yellow=okay, green=easy)", choices=OUTCOME_CHOICES)
    entry = record_completion(conn, problem_id, outcome, today)
    console.print(f"[green]Recorded.[/green] {entry.problem.name} is now {state_label(entry.problem.state)}")


def cmd_replace(conn: sqlite3.Connection, today: date):
    problem_id = IntPrompt.ask("Problem ID to replace")
    entry = replace(conn, problem_id, today)
    console.print(f"[green]Replaced with[/green] {entry.problem.name} ({state_label(entry.problem.state)})")


def cmd_refresh(conn: sqlite3.Connection, today: date):
    render_selection(refresh(conn, today), today)


def cmd_review(conn: sqlite3.Connection, today: date):
    problem_id = IntPrompt.ask("Problem ID")
    outcome = Prompt.ask("Result", choices=OUTCOME_CHOICES)
    insight = Prompt.ask("Key insight [dim](Enter to keep)[/dim]", default="")
    problem = manual_review(conn, problem_id, outcome, today, insight=insight or None)
    console.print(f"[green]Reviewed.[/green] {problem.name} is now {state_label(problem.state)}")


def resolve_topics(conn: sqlite3.Connection, topic_names: str) -> list[int]:
    """Map comma separated topic names to ids, skipping unknown ones."""
    topic_ids = []
    for topic_name in (t.strip() for t in topic_names.split(",")):
        if not topic_name:
            continue
        topic = get_topic_by_name(conn, topic_name)
        if topic is None:
            console.print(f"[yellow]Unknown topic skipped: {topic_name}[/yellow]")
            continue
        topic_ids.append(topic.id)
    return topic_ids


def cmd_add(conn: sqlite3.Connection):
    name = Prompt.ask("Name")
    link = Prompt.ask("Link")
    topic_names = Prompt.ask("Topics [dim](comma separated)[/dim]", default="")
    topic_ids = resolve_topics(conn, topic_names)
    problem = create_problem(conn, name, link, topic_ids=topic_ids)
    console.print(f"[green]Added #{problem.id}[/green] {problem.name}")


def cmd_edit(conn: sqlite3.Connection):
    problem = get_problem(conn, IntPrompt.ask("Problem ID"))
    name = Prompt.ask("Name", default=problem.name)
    link = Prompt.ask("Link", default=problem.link)
    state = Prompt.ask("State", choices=[m.value for m in Mastery], default=problem.state.value)
    insight = Prompt.ask("Key insight [dim](- to clear)[/dim]", default=problem.insight or "")
    topic_names = Prompt.ask("Topics [dim](comma separated)[/dim]", default=", ".join(problem.topics))

    changes = {}
    if name != problem.name:
        changes["name"] = name
    if link != problem.link:
        changes["link"] = link
    if state != problem.state.value:
        changes["state"] = state
    if insight == "-":
        insight = ""
    if insight != (problem.insight or ""):
        changes["insight"] = insight
    topic_ids = resolve_topics(conn, topic_names)
    with transaction(conn):
        if changes:
            update_problem(conn, problem.id, **changes)
        set_problem_topics(conn, problem.id, topic_ids)
    console.print(f"[green]Saved #{problem.id}[/green] {name}")


def cmd_delete(conn: sqlite3.Connection):
    problem = get_problem(conn, IntPrompt.ask("Problem ID"))
    if not Confirm.ask(f"Delete '{problem.name}' and its {problem.attempt_count} attempts?", default=False):
        console.print("[dim]Kept.[/dim]")
        return
    delete_problem(conn, problem.id)
    console.print(f"[green]Deleted[/green] {problem.name}")


def cmd_history(conn: sqlite3.Connection):
    problem = get_problem(conn, IntPrompt.ask("Problem ID"))
    console.print(f"[bold]{problem.name}[/bold] {state_label(problem.state)}")
    if problem.insight:
        console.print(f"[dim]Insight:[/dim] {problem.insight}")
    if not problem.attempts:
        console.print("[dim]No attempts yet.[/dim]")
        return
    table = Table(title=f"Attempts ({problem.attempt_count})")
    table.add_column("When")
    table.add_column("Outcome")
    for a in problem.attempts:
        table.add_row(a.attempted_at, state_label(a.outcome))
    console.print(table)


def cmd_problems(conn: sqlite3.Connection):
    state = Prompt.ask("State filter", choices=["all"] + [m.value for m in Mastery], default="all")
    search = Prompt.ask("Name contains", default="")
    problems = list_problems(conn, state=None if state == "all" else state, search=search or None)
    table = Table(title=f"Problems ({len(problems)})")
    table.add_column("ID", justify="right")
    table.add_column("Problem", style="cyan")
    table.add_column("State")
    table.add_column("Last reviewed")
    table.add_column("Reviews", justify="right")
    table.add_column("Attempts", justify="right")
    for p in problems:
        table.add_row(
            str(p.id), p.name, state_label(p.state),
            p.last_reviewed.isoformat() if p.last_reviewed else "-",
            str(p.review_count), str(p.attempt_count),
        )
    console.print(table)


def cmd_topics(conn: sqlite3.Connection):
    console.print(", ".join(t.name for t in list_topics(conn)) or "[dim]No topics[/dim]")
    action = Prompt.ask("Action", choices=["done", "add", "delete"], default="done")
    if action == "add":
        topic = create_topic(conn, Prompt.ask("Topic name"))
        console.print(f"[green]Added topic[/green] {topic.name}")
    elif action == "delete":
        name = Prompt.ask("Topic name")
        topic = get_topic_by_name(conn, name)
        if topic is None:
            raise NotFoundError(f"Topic {name!r} not found")
        delete_topic(conn, topic.id)
        console.print(f"[green]Deleted topic[/green] {topic.name}")


def cmd_stats(conn: sqlite3.Connection, today: date):
    stats = get_stats(conn, today)
    console.print(Panel(
        f"Problems: [bold]{stats['total_problems']}[/bold]  |  "
        f"Mastered: [bold green]{stats['mastered_problems']}[/bold green]  |  "
        f"Streak: [bold]{stats['current_streak']}[/bold] days  |  "
        f"Ready for review: [bold]{stats['ready_for_review']}[/bold]",
        title="Stats", border_style="blue",
    ))


def cmd_import(conn: sqlite3.Connection):
    file_path = Prompt.ask("CSV file path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_file(conn, file_path)
    console.print(
        f"[green]Imported {result['imported']} from {result['filename']}[/green]"
        f" ({result['duplicates']} duplicates skipped)"
    )
    for err in result["errors"]:
        console.print(f"  [red]Row {err.row}:[/red] {err.error}")


def cmd_export(conn: sqlite3.Connection, today: date):
    default = f"leetcode-problems-{today.isoformat()}.csv"
    file_path = Prompt.ask("Write to", default=default)
    Path(file_path).write_text(export_csv(conn), encoding="utf-8")
    console.print(f"[green]Exported to {file_path}[/green]")


def cmd_settings(conn: sqlite3.Connection):
    current = get_daily_count(conn)
    count = IntPrompt.ask(
        f"Problems per day ({MIN_DAILY_COUNT}-{MAX_DAILY_COUNT})",
        choices=[str(n) for n in range(MIN_DAILY_COUNT, MAX_DAILY_COUNT + 1)],
        default=current,
    )
    set_daily_count(conn, count)
    console.print(f"[green]Daily count set to {count}. Takes effect on the next new day or refresh.[/green]")


def dispatch(conn: sqlite3.Connection, choice: str, today: date) -> bool:
    """Run one command. Returns False when the user asked to quit."""
    if choice == "today":
        cmd_today(conn, today)
    elif choice == "done":
        cmd_done(conn, today)
    elif choice == "replace":
        cmd_replace(conn, today)
    elif choice == "refresh":
        cmd_refresh(conn, today)
    elif choice == "review":
        cmd_review(conn, today)
    elif choice == "add":
        cmd_add(conn)
    elif choice == "edit":
        cmd_edit(conn)
    elif choice == "delete":
        cmd_delete(conn)
    elif choice == "history":
        cmd_history(conn)
    elif choice == "problems":
        cmd_problems(conn)
    elif choice == "topics":
        cmd_topics(conn)
    elif choice == "stats":
        cmd_stats(conn, today)
    elif choice == "import":
        cmd_import(conn)
    elif choice == "export":
        cmd_export(conn, today)
    elif choice == "settings":
        cmd_settings(conn)
    elif choice in ("quit", "exit", "q"):
        console.print("[dim]Keep the streak going![/dim]")
        return False
    else:
        console.print("[red]Unknown command. Try again.[/red]")
    return True


def main():
    configure_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    with closing(get_connection(db_path)) as conn:
        seed_all(conn)
        show_welcome()

        while True:
            show_menu()
            choice = Prompt.ask("\n[bold]>[/bold]", default="today").strip().lower()
            try:
                if not dispatch(conn, choice, date.today()):
                    break
            except KeyboardInterrupt:
                console.print("\n[dim]Use 'quit' to exit.[/dim]")
            except InvariantError:
                logger.exception("Stored data is inconsistent")
                console.print("[red]Internal error, see log above.[/red]")
            except LeetDailyError as e:
                console.print(f"[red]{e}[/red]")
            except Exception as e:
                logger.exception("Command %r failed", choice)
                console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
