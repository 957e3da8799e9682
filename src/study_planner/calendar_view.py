"""Week/month calendar windows and placement of due topics on them."""
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from study_planner.errors import ValidationError
from study_planner.models import Topic
from study_planner.schedule import as_date, is_due, next_review_date

WEEK_LENGTH = 7
MONTH_WEEKS = 4

RELATIVE_LABELS = {
    "en": ("Today", "Tomorrow", "Yesterday"),
    "pt-BR": ("Hoje", "Amanhã", "Ontem"),
}

MONTH_NAMES = {
    "en": ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
    "pt-BR": ("jan.", "fev.", "mar.", "abr.", "mai.", "jun.", "jul.", "ago.", "set.", "out.", "nov.", "dez."),
}

WEEKDAY_NAMES = {
    "en": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
    "pt-BR": ("seg.", "ter.", "qua.", "qui.", "sex.", "sáb.", "dom."),
}


def week_start(reference: date | datetime) -> date:
    """Monday of the week containing ``reference`` (Sunday ends its week)."""
    day = as_date(reference)
    return day - timedelta(days=day.weekday())


def week_dates(reference: Optional[date | datetime] = None) -> list[date]:
    monday = week_start(reference or date.today())
    return [monday + timedelta(days=i) for i in range(WEEK_LENGTH)]


def month_dates(reference: Optional[date | datetime] = None) -> list[date]:
    """Four consecutive weeks starting on the Monday of ``reference``'s week.

    This is a rolling window, not a calendar month.
    """
    monday = week_start(reference or date.today())
    return [monday + timedelta(days=i) for i in range(WEEK_LENGTH * MONTH_WEEKS)]


def group_by_week(dates: list[date]) -> list[list[date]]:
    return [dates[i:i + WEEK_LENGTH] for i in range(0, len(dates), WEEK_LENGTH)]


def topics_for_date(topics: Iterable[Topic], day: date | datetime) -> list[Topic]:
    """Topics whose next review falls on ``day`` or earlier."""
    return [t for t in topics if is_due(t, day)]


def bucket_topics(
    topics: Iterable[Topic],
    dates: list[date],
    today: Optional[date | datetime] = None,
) -> dict[date, list[Topic]]:
    """Place every pending topic on at most one date of the window.

    Reviews scheduled before the anchor date (today when it lies inside the
    window, otherwise the first date of the window) are collapsed onto the
    anchor. Reviews inside the window are shown on their own date, and
    reviews after the window are left out.
    """
    buckets: dict[date, list[Topic]] = {d: [] for d in dates}
    if not dates:
        return buckets
    first, last = dates[0], dates[-1]
    today = as_date(today or date.today())
    anchor = today if first <= today <= last else first
    for topic in topics:
        due = next_review_date(topic)
        if due is None or due > last:
            continue
        target = anchor if due < anchor else due
        if target in buckets:
            buckets[target].append(topic)
    return buckets


def _check_locale(locale: str) -> None:
    if locale not in RELATIVE_LABELS:
        raise ValidationError(f"Unsupported locale: {locale}")


def format_relative_date(
    day: date | datetime,
    reference: Optional[date | datetime] = None,
    locale: str = "en",
) -> str:
    """Label ``day`` relative to ``reference`` ("Today", "Tomorrow", ...)."""
    _check_locale(locale)
    day = as_date(day)
    reference = as_date(reference or date.today())
    today_label, tomorrow_label, yesterday_label = RELATIVE_LABELS[locale]
    delta = (day - reference).days
    if delta == 0:
        return today_label
    if delta == 1:
        return tomorrow_label
    if delta == -1:
        return yesterday_label
    month = MONTH_NAMES[locale][day.month - 1]
    if locale == "pt-BR":
        return f"{day.day} de {month}"
    return f"{day.day} {month}"


def weekday_label(day: date | datetime, locale: str = "en") -> str:
    _check_locale(locale)
    return WEEKDAY_NAMES[locale][as_date(day).weekday()]
