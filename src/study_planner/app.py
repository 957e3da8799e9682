"""Interactive CLI application."""
import os
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from study_planner import sync
from study_planner.cache import DEFAULT_CACHE_PATH
from study_planner.calendar_view import (
    bucket_topics, format_relative_date, group_by_week, month_dates, week_dates, weekday_label,
)
from study_planner.colors import get_subject_color
from study_planner.db import DEFAULT_DB_PATH, init_db
from study_planner.errors import StudyPlannerError
from study_planner.log import configure_logging
from study_planner.models import Source, Subject, Topic
from study_planner.schedule import REVIEW_INTERVALS, is_due, is_overdue, next_review_date, next_review_index
from study_planner.sync import CommitStrategy

console = Console()


@dataclass
class Session:
    db_path: str = DEFAULT_DB_PATH
    cache_path: str = DEFAULT_CACHE_PATH
    strategy: CommitStrategy = CommitStrategy.REMOTE
    locale: str = "en"
    topics: list[Topic] = field(default_factory=list)
    subjects: list[Subject] = field(default_factory=list)

    def sync_kwargs(self) -> dict:
        return {"db_path": self.db_path, "cache_path": self.cache_path, "strategy": self.strategy}


def show_welcome():
    console.print(Panel(
        "[bold]Study Planner[/bold]\n[dim]Spaced repetition: reviews after "
        + ", ".join(str(d) for d in REVIEW_INTERVALS) + " days[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("add", "Log a new study topic"),
        ("due", "Reviews due today"),
        ("complete", "Mark a review as done"),
        ("week", "This week's calendar"),
        ("month", "Next four weeks"),
        ("delete", "Delete a topic"),
        ("subjects", "List subjects"),
        ("rename", "Rename or recolor a subject"),
        ("remove-subject", "Delete a subject and its topics"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<16}[/cyan] {desc}")


def topic_label(topic: Topic, today: Optional[date] = None) -> Text:
    """One-line rendering: color dot, subject, review number, title, first tag."""
    index = next_review_index(topic)
    overdue = is_overdue(topic, today)
    label = Text()
    label.append("● ", style=topic.color)
    label.append(topic.subject, style="bold red" if overdue else "bold")
    if index is not None:
        label.append(f" #{index + 1}", style="dim")
    if overdue:
        label.append(" ⚠", style="red")
    label.append(f" {topic.title}")
    if topic.tags:
        label.append(f" #{topic.tags[0]}", style="dim")
    return label


def render_calendar(session: Session, dates: list[date], today: Optional[date] = None) -> Table:
    today = today or date.today()
    buckets = bucket_topics(session.topics, dates, today)
    table = Table(show_lines=True)
    for day in dates[:7]:
        table.add_column(weekday_label(day, session.locale), ratio=1)
    for week in group_by_week(dates):
        cells = []
        for day in week:
            cell = Text()
            header_style = "bold blue" if day == today else "bold"
            cell.append(format_relative_date(day, today, session.locale), style=header_style)
            for topic in buckets[day]:
                cell.append("\n")
                cell.append_text(topic_label(topic, today))
            cells.append(cell)
        table.add_row(*cells)
    return table


def cmd_week(session: Session, reference: Optional[date] = None):
    dates = week_dates(reference)
    console.print(render_calendar(session, dates))


def cmd_month(session: Session, reference: Optional[date] = None):
    dates = month_dates(reference)
    console.print(render_calendar(session, dates))


def get_due_topics(session: Session, today: Optional[date] = None) -> list[Topic]:
    due = [t for t in session.topics if is_due(t, today)]
    return sorted(due, key=lambda t: (next_review_date(t), t.subject.lower(), t.title.lower()))


def cmd_due(session: Session, today: Optional[date] = None) -> list[Topic]:
    due = get_due_topics(session, today)
    if not due:
        console.print("[green]Nothing to review today![/green]")
        return due
    table = Table(title="Due Reviews")
    table.add_column("#", justify="right")
    table.add_column("Topic")
    table.add_column("Scheduled")
    for i, topic in enumerate(due, 1):
        table.add_row(
            str(i),
            topic_label(topic, today),
            format_relative_date(next_review_date(topic), today, session.locale),
        )
    console.print(table)
    return due


def _pick(prompt: str, count: int) -> int:
    choice = Prompt.ask(prompt, choices=[str(i) for i in range(1, count + 1)])
    return int(choice) - 1


def cmd_complete(session: Session, today: Optional[date] = None):
    due = cmd_due(session, today)
    if not due:
        return
    topic = due[_pick("Which review did you finish?", len(due))]
    index = next_review_index(topic)
    session.topics = sync.complete_topic_review(session.topics, topic.id, index, **session.sync_kwargs())
    remaining = len(topic.scheduled_reviews) - index - 1
    if remaining:
        console.print(f"[green]Review {index + 1} done![/green] {remaining} to go for {topic.title}.")
    else:
        console.print(f"[green]All reviews done for {topic.title}![/green]")


def cmd_add(session: Session):
    settings = sync.load_settings(session.db_path, session.cache_path, session.strategy)
    if settings.last_used_subject:
        subject = Prompt.ask("Subject", default=settings.last_used_subject)
    else:
        subject = Prompt.ask("Subject")
    title = Prompt.ask("Topic")
    console.print(f"[dim]Suggested tags: {', '.join(settings.common_tags)}[/dim]")
    tags = [t.strip() for t in Prompt.ask("Tags (comma separated)", default="").split(",") if t.strip()]
    source = Prompt.ask("Source", choices=[s.value for s in Source], default=Source.CLASS.value)
    session.topics, session.subjects = sync.add_topic(
        session.topics, session.subjects, subject, title, tags=tags, source=source,
        **session.sync_kwargs(),
    )
    topic = session.topics[-1]
    dates = ", ".join(format_relative_date(d, locale=session.locale) for d in topic.scheduled_reviews)
    console.print(f"[green]Added[/green] {topic.title} [dim]({dates})[/dim]")


def cmd_delete(session: Session):
    if not session.topics:
        console.print("[yellow]No topics yet.[/yellow]")
        return
    for i, topic in enumerate(session.topics, 1):
        console.print(Text(f"  {i}) ").append_text(topic_label(topic)))
    topic = session.topics[_pick("Delete which topic?", len(session.topics))]
    if Prompt.ask(f"Delete \"{topic.title}\"?", choices=["y", "n"], default="n") != "y":
        return
    session.topics = sync.remove_topic(session.topics, topic.id, **session.sync_kwargs())
    console.print(f"[green]Deleted {topic.title}.[/green]")


def cmd_subjects(session: Session):
    if not session.subjects:
        console.print("[yellow]No subjects yet.[/yellow]")
        return
    table = Table(title="Subjects")
    table.add_column("Subject")
    table.add_column("Color")
    table.add_column("Topics", justify="right")
    for subject in session.subjects:
        count = sum(1 for t in session.topics if t.subject.lower() == subject.name.lower())
        table.add_row(subject.name, Text(f"● {subject.color}", style=subject.color), str(count))
    console.print(table)


def _pick_subject(session: Session, prompt: str) -> Optional[Subject]:
    if not session.subjects:
        console.print("[yellow]No subjects yet.[/yellow]")
        return None
    for i, subject in enumerate(session.subjects, 1):
        console.print(f"  [cyan]{i}[/cyan]) [{subject.color}]●[/{subject.color}] {subject.name}")
    return session.subjects[_pick(prompt, len(session.subjects))]


def cmd_rename(session: Session):
    subject = _pick_subject(session, "Rename which subject?")
    if subject is None:
        return
    new_name = Prompt.ask("New name", default=subject.name)
    others = [s for s in session.subjects if s != subject]
    suggested = get_subject_color(new_name, others) if new_name.lower() != subject.name.lower() else subject.color
    color = Prompt.ask("Color", default=suggested)
    session.topics, session.subjects = sync.rename_subject(
        session.topics, session.subjects, subject.name, new_name, color, **session.sync_kwargs(),
    )
    console.print(f"[green]Subject is now {new_name}.[/green]")


def cmd_remove_subject(session: Session):
    subject = _pick_subject(session, "Delete which subject?")
    if subject is None:
        return
    count = sum(1 for t in session.topics if t.subject.lower() == subject.name.lower())
    if Prompt.ask(
        f"Delete {subject.name} and its {count} topic(s)?", choices=["y", "n"], default="n",
    ) != "y":
        return
    session.topics, session.subjects = sync.remove_subject(
        session.topics, session.subjects, subject.name, **session.sync_kwargs(),
    )
    console.print(f"[green]Deleted {subject.name}.[/green]")


COMMANDS = {
    "add": cmd_add,
    "due": cmd_due,
    "complete": cmd_complete,
    "week": cmd_week,
    "month": cmd_month,
    "delete": cmd_delete,
    "subjects": cmd_subjects,
    "rename": cmd_rename,
    "remove-subject": cmd_remove_subject,
}


def run_command(session: Session, choice: str) -> bool:
    """Run one menu command. Returns False when the user asked to quit."""
    if choice in ("quit", "exit", "q"):
        console.print("[dim]Keep reviewing![/dim]")
        return False
    command = COMMANDS.get(choice)
    if command is None:
        console.print("[red]Unknown command. Try again.[/red]")
        return True
    try:
        command(session)
    except StudyPlannerError as e:
        console.print(f"[red]{e.message}[/red]")
    return True


def main():
    configure_logging(console=console)
    session = Session(
        strategy=CommitStrategy(os.environ.get("STUDY_PLANNER_COMMIT", CommitStrategy.REMOTE.value)),
        locale=os.environ.get("STUDY_PLANNER_LOCALE", "en"),
    )
    if session.strategy is not CommitStrategy.LOCAL:
        init_db(session.db_path)
    session.topics = sync.load_topics(session.db_path, session.cache_path, session.strategy)
    session.subjects = sync.load_subjects(session.db_path, session.cache_path, session.strategy)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="due").strip().lower()
        try:
            if not run_command(session, choice):
                break
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
