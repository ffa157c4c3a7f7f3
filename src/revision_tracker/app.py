"""Interactive CLI application."""
import calendar
import getpass
import logging
import os
from datetime import date, datetime, time

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from revision_tracker.dashboard import get_progress_color, get_progress_label, get_progress_stats
from revision_tracker.db import DEFAULT_DB_PATH, init_db
from revision_tracker.errors import RevisionTrackerError
from revision_tracker.intervals import get_effective_settings, set_user_settings
from revision_tracker.models import DIFFICULTIES, STUDY
from revision_tracker.progress import (
    get_subtopic_schedule, mark_specific_revision, reschedule_revision_to_next_day,
    unmark_specific_revision,
)
from revision_tracker.queries import (
    calendar_month, due_on, get_planned_revision_dates, missed_date_keys, overdue_as_of,
)
from revision_tracker.timeutil import date_key, format_day, to_ns
from revision_tracker.topics import (
    create_main_topic, create_subtopic, delete_main_topic, delete_subtopic, get_main_topics,
    get_subtopic, get_subtopics, mark_subtopic_completed, mark_subtopic_pending, update_subtopic,
)

console = Console()
DIFFICULTY_COLORS = {"easy": "green", "medium": "yellow", "hard": "red"}
WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class SessionExitRequested(Exception):
    """User typed q/menu at a prompt to get back to the main menu."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in ("q", "menu"):
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, **kwargs) -> int:
    return int(session_prompt(prompt, **kwargs))


def parse_date(text: str) -> date:
    text = text.strip().lower()
    return date.today() if text in ("", "today") else date.fromisoformat(text)


def parse_day(text: str) -> int:
    """'YYYY-MM-DD' (or 'today') to a timestamp at local midnight."""
    return to_ns(datetime.combine(parse_date(text), time()))


def configure_logging() -> None:
    level = os.environ.get("REVISION_TRACKER_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level, format="%(message)s", datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome(owner: str):
    console.print(Panel(
        f"[bold]Revision Tracker[/bold]\n[dim]Spaced revision planner for {owner}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("today", "Due and overdue revisions"),
        ("calendar", "Month view"),
        ("topics", "List topics and subtopics"),
        ("add", "Add a topic or subtopic"),
        ("edit", "Edit a subtopic"),
        ("delete", "Delete a topic or subtopic"),
        ("review", "Mark or unmark a revision"),
        ("reschedule", "Move missed revisions to tomorrow"),
        ("complete", "Toggle a subtopic's completed flag"),
        ("settings", "Revision intervals"),
        ("stats", "Progress dashboard"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _difficulty(d: str) -> str:
    color = DIFFICULTY_COLORS[d]
    return f"[{color}]{d}[/{color}]"


def subtopic_table(title: str, subtopics: list) -> Table:
    table = Table(title=title)
    table.add_column("ID", justify="right")
    table.add_column("Subtopic", style="cyan")
    table.add_column("Topic")
    table.add_column("Difficulty")
    for st in subtopics:
        table.add_row(str(st.id), st.title, st.main_topic_title, _difficulty(st.difficulty))
    return table


def cmd_today(db_path: str, owner: str):
    day = parse_date(session_prompt("Date", default="today"))
    due = due_on(db_path, owner, day)
    overdue = overdue_as_of(db_path, owner, day)
    if overdue:
        console.print(subtopic_table(f"Overdue / Missed ({len(overdue)})", overdue))
    if due:
        console.print(subtopic_table(f"Due {day.isoformat()} ({len(due)})", due))
    if not due and not overdue:
        console.print("[green]Nothing due. Enjoy the break![/green]")


def cmd_calendar(db_path: str, owner: str):
    today = date.today()
    year = IntPrompt.ask("Year", default=today.year)
    month = IntPrompt.ask("Month", default=today.month)
    buckets = calendar_month(db_path, owner, year, month)
    missed = missed_date_keys(db_path, owner)
    table = Table(title=f"{calendar.month_name[month]} {year}", show_lines=True)
    for name in WEEKDAYS:
        table.add_column(name, justify="center")
    for week in calendar.Calendar(firstweekday=6).monthdayscalendar(year, month):
        cells = []
        for d in week:
            if not d:
                cells.append("")
                continue
            key = date(year, month, d)
            items = buckets.get(key, [])
            studies = sum(1 for i in items if i.kind == STUDY)
            revisions = len(items) - studies
            style = "bold red" if key in missed else ("bold blue" if key == today else "")
            label = f"[{style}]{d}[/{style}]" if style else str(d)
            if studies:
                label += f"\n[magenta]S{studies}[/magenta]"
            if revisions:
                label += f"\n[cyan]R{revisions}[/cyan]"
            cells.append(label)
        table.add_row(*cells)
    console.print(table)
    console.print("[dim]S = study, R = revision, red = missed revision[/dim]")


def cmd_topics(db_path: str, owner: str):
    main_topics = get_main_topics(db_path, owner)
    if not main_topics:
        console.print("[yellow]No topics yet. Use 'add' to create one.[/yellow]")
        return
    subtopics = get_subtopics(db_path, owner)
    table = Table(title="Topics")
    table.add_column("ID", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Difficulty")
    table.add_column("Study date")
    table.add_column("Status")
    for mt in main_topics:
        table.add_row(str(mt.id), f"[bold]{mt.title}[/bold]", "", "", "")
        for st in (s for s in subtopics if s.main_topic_id == mt.id):
            schedule = get_subtopic_schedule(db_path, owner, st.id)
            status = "[green]Completed[/green]" if st.completed else (
                f"{schedule.review_count}/{len(schedule.review_statuses)} revisions"
            )
            table.add_row(
                str(st.id), f"  {st.title}", _difficulty(st.difficulty),
                format_day(st.study_date), status,
            )
    console.print(table)


def cmd_add(db_path: str, owner: str):
    kind = Prompt.ask("Add", choices=["topic", "subtopic"], default="subtopic")
    if kind == "topic":
        title = session_prompt("Title")
        description = session_prompt("Description", default="")
        topic_id = create_main_topic(db_path, owner, title, description)
        console.print(f"[green]Created topic {topic_id}.[/green]")
        return
    main_topics = get_main_topics(db_path, owner)
    if not main_topics:
        console.print("[yellow]Create a topic first.[/yellow]")
        return
    for mt in main_topics:
        console.print(f"  [cyan]{mt.id}[/cyan]) {mt.title}")
    main_topic_id = session_int_prompt("Topic", choices=[str(mt.id) for mt in main_topics])
    title = session_prompt("Subtopic title")
    description = session_prompt("Description", default="")
    difficulty = session_prompt("Difficulty", choices=list(DIFFICULTIES), default="medium")
    study_date = parse_day(session_prompt("Study date (YYYY-MM-DD)", default="today"))
    subtopic_id = create_subtopic(db_path, owner, main_topic_id, title, description, difficulty, study_date)
    dates = get_planned_revision_dates(db_path, owner, subtopic_id)
    console.print(f"[green]Created subtopic {subtopic_id}.[/green] Revisions: "
                  + ", ".join(format_day(d) for d in dates))


def cmd_edit(db_path: str, owner: str):
    st = get_subtopic(db_path, owner, session_int_prompt("Subtopic ID"))
    title = session_prompt("Title", default=st.title)
    description = session_prompt("Description", default=st.description)
    difficulty = session_prompt("Difficulty", choices=list(DIFFICULTIES), default=st.difficulty)
    current = date_key(st.study_date).isoformat()
    study_date = parse_day(session_prompt("Study date (YYYY-MM-DD)", default=current))
    if date_key(study_date) == date_key(st.study_date):
        study_date = st.study_date
    update_subtopic(db_path, owner, st.id, title, description, difficulty, study_date)
    console.print("[green]Subtopic updated.[/green]")


def cmd_delete(db_path: str, owner: str):
    kind = Prompt.ask("Delete", choices=["topic", "subtopic"], default="subtopic")
    entity_id = session_int_prompt(f"{kind.capitalize()} ID")
    if not Confirm.ask(f"Delete {kind} {entity_id}? Its revision history goes too"):
        return
    if kind == "topic":
        delete_main_topic(db_path, owner, entity_id)
    else:
        delete_subtopic(db_path, owner, entity_id)
    console.print(f"[green]Deleted {kind} {entity_id}.[/green]")


def show_schedule(db_path: str, owner: str, subtopic_id: int):
    st = get_subtopic(db_path, owner, subtopic_id)
    schedule = get_subtopic_schedule(db_path, owner, subtopic_id)
    dates = get_planned_revision_dates(db_path, owner, subtopic_id)
    today = date.today()
    table = Table(title=f"{st.title} ({st.difficulty})")
    table.add_column("#", justify="right")
    table.add_column("Date")
    table.add_column("Status")
    table.add_row("", format_day(st.study_date), "Study date")
    for n, (ts, done) in enumerate(zip(dates, schedule.review_statuses), 1):
        if done:
            status = "[green]Done[/green]"
        elif date_key(ts) < today:
            status = "[red]Missed[/red]"
        elif date_key(ts) == today:
            status = "[blue]Today[/blue]"
        else:
            status = "Upcoming"
        table.add_row(str(n), format_day(ts), status)
    console.print(table)
    return schedule


def cmd_review(db_path: str, owner: str):
    subtopic_id = session_int_prompt("Subtopic ID")
    schedule = show_schedule(db_path, owner, subtopic_id)
    if not schedule.review_statuses:
        console.print("[yellow]This subtopic has no revisions.[/yellow]")
        return
    choices = [str(n) for n in range(1, len(schedule.review_statuses) + 1)]
    number = session_int_prompt("Revision", choices=choices)
    if schedule.review_statuses[number - 1]:
        schedule = unmark_specific_revision(db_path, owner, subtopic_id, number)
        console.print(f"[yellow]Revision {number} reopened.[/yellow]")
    else:
        schedule = mark_specific_revision(db_path, owner, subtopic_id, number)
        console.print(f"[green]Revision {number} done![/green]")
    if schedule.next_review is None:
        console.print("[green]All revisions complete.[/green]")
    else:
        console.print(f"Next review: [cyan]{format_day(schedule.next_review)}[/cyan]")


def cmd_reschedule(db_path: str, owner: str):
    subtopic_id = session_int_prompt("Subtopic ID")
    moved = reschedule_revision_to_next_day(db_path, owner, subtopic_id)
    if not moved:
        console.print("[green]No missed revisions to move.[/green]")
        return
    console.print(f"[green]Pending revisions moved {moved} day(s) later.[/green]")
    show_schedule(db_path, owner, subtopic_id)


def cmd_complete(db_path: str, owner: str):
    st = get_subtopic(db_path, owner, session_int_prompt("Subtopic ID"))
    if st.completed:
        mark_subtopic_pending(db_path, owner, st.id)
        console.print(f"[yellow]{st.title} is active again.[/yellow]")
    else:
        mark_subtopic_completed(db_path, owner, st.id)
        console.print(f"[green]{st.title} marked completed.[/green]")


def _parse_list(text: str) -> list[int]:
    return [int(part) for part in text.replace(",", " ").split()]


def cmd_settings(db_path: str, owner: str):
    current = get_effective_settings(db_path, owner)
    console.print("[dim]Days after the study date, comma separated.[/dim]")
    easy = _parse_list(session_prompt("Easy", default=",".join(map(str, current.easy_intervals))))
    medium = _parse_list(session_prompt("Medium", default=",".join(map(str, current.medium_intervals))))
    hard = _parse_list(session_prompt("Hard", default=",".join(map(str, current.hard_intervals))))
    days_default = ",".join(str(d) for d in sorted(current.preferred_review_days))
    days = _parse_list(session_prompt("Preferred review days (0=Sun..6=Sat)", default=days_default))
    set_user_settings(db_path, owner, easy, medium, hard, days)
    console.print("[green]Settings saved. Schedules updated.[/green]")


def cmd_stats(db_path: str, owner: str):
    stats = get_progress_stats(db_path, owner)
    pct = stats["completion_pct"]
    color = get_progress_color(pct)
    bar_filled = int(pct / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(Panel(
        f"Revisions: [bold]{stats['revisions_done']}/{stats['revisions_total']}[/bold] "
        f"{bar} [{color}]{get_progress_label(pct)}[/{color}]",
        title="Progress", border_style="blue",
    ))
    console.print(f"  Topics: [bold]{stats['main_topics']}[/bold]  |  "
                  f"Subtopics: [bold]{stats['subtopics']}[/bold] "
                  f"({stats['completed_subtopics']} completed)  |  "
                  f"Due today: [bold]{stats['due_today']}[/bold]  |  "
                  f"Overdue: [bold red]{stats['overdue']}[/bold red]")


COMMANDS = {
    "today": cmd_today,
    "calendar": cmd_calendar,
    "topics": cmd_topics,
    "add": cmd_add,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "review": cmd_review,
    "reschedule": cmd_reschedule,
    "complete": cmd_complete,
    "settings": cmd_settings,
    "stats": cmd_stats,
}


def main():
    configure_logging()
    db_path = DEFAULT_DB_PATH
    owner = os.environ.get("REVISION_TRACKER_OWNER") or getpass.getuser()
    init_db(db_path)
    show_welcome(owner)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="today").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print("[dim]Happy revising![/dim]")
            break
        command = COMMANDS.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(db_path, owner)
        except SessionExitRequested:
            console.print("[dim]Back to menu.[/dim]")
        except RevisionTrackerError as e:
            console.print(f"[red]{e}[/red]")
        except ValueError as e:
            console.print(f"[red]Invalid input: {e}[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")


if __name__ == "__main__":
    main()
