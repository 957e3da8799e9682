"""Fixed-interval spaced repetition schedule."""
import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from study_planner.colors import get_subject_color
from study_planner.errors import InvalidReviewError, ValidationError
from study_planner.models import Review, Source, Topic

logger = logging.getLogger(__name__)

# Days after creation. Stored schedules were computed from this table, so it must never change.
REVIEW_INTERVALS = (1, 3, 7, 14, 30, 60, 120)


def as_date(value: date | datetime) -> date:
    """Truncate a timestamp to its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def calculate_schedule(created_at: datetime) -> list[datetime]:
    """Return the review timestamps for a topic created at ``created_at``.

    Only the date advances; the time of day (and tzinfo) of ``created_at``
    is kept on every entry.
    """
    return [created_at + timedelta(days=days) for days in REVIEW_INTERVALS]


def create_topic(
    subject: str,
    title: str,
    tags: Iterable[str] = (),
    source: Source | str = Source.CLASS,
    existing_subjects: Iterable = (),
    now: Optional[datetime] = None,
    topic_id: Optional[str] = None,
    color: Optional[str] = None,
) -> Topic:
    """Build a new topic with its full review schedule."""
    subject = subject.strip()
    title = title.strip()
    if not subject:
        raise ValidationError("Subject must not be empty")
    if not title:
        raise ValidationError("Title must not be empty")
    created_at = now or datetime.now()
    scheduled = calculate_schedule(created_at)
    topic = Topic(
        id=topic_id or uuid.uuid4().hex,
        created_at=created_at,
        subject=subject,
        title=title,
        color=color or get_subject_color(subject, existing_subjects),
        scheduled_reviews=tuple(scheduled),
        tags=tuple(t.strip() for t in tags if t.strip()),
        source=Source(source),
    )
    logger.debug(
        "Topic created: %r, reviews on %s",
        title, ", ".join(d.date().isoformat() for d in scheduled),
    )
    return topic


def next_review_index(topic: Topic) -> Optional[int]:
    """0-based index of the first review not yet completed, or None."""
    if topic.completed:
        return None
    index = len(topic.reviews)
    if index >= len(topic.scheduled_reviews):
        return None
    return index


def next_review_date(topic: Topic) -> Optional[date]:
    index = next_review_index(topic)
    if index is None:
        return None
    return as_date(topic.scheduled_reviews[index])


def is_due(topic: Topic, today: Optional[date | datetime] = None) -> bool:
    """True if the next review is scheduled for today or earlier."""
    due = next_review_date(topic)
    if due is None:
        return False
    return due <= as_date(today or date.today())


def is_overdue(topic: Topic, today: Optional[date | datetime] = None) -> bool:
    """True if the next review was scheduled strictly before today."""
    due = next_review_date(topic)
    if due is None:
        return False
    return due < as_date(today or date.today())


def complete_review(topic: Topic, review_index: int, now: Optional[datetime] = None) -> Topic:
    """Return a copy of ``topic`` with review ``review_index`` recorded as done.

    Reviews are completed strictly in order, so ``review_index`` must equal
    the number of reviews already recorded.
    """
    if topic.completed:
        raise InvalidReviewError(topic.id, review_index, "all reviews are already completed")
    if not 0 <= review_index < len(topic.scheduled_reviews):
        raise InvalidReviewError(
            topic.id, review_index, f"index must be between 0 and {len(topic.scheduled_reviews) - 1}",
        )
    expected = len(topic.reviews)
    if review_index != expected:
        raise InvalidReviewError(topic.id, review_index, f"next review is {expected + 1}")
    review = Review(date=now or datetime.now(), review_number=review_index + 1)
    return replace(topic, reviews=topic.reviews + (review,))
