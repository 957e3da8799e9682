"""Data classes for the study planner domain model."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Source(str, Enum):
    CLASS = "class"
    BOOK = "book"
    VIDEO = "video"
    OTHER = "other"


@dataclass(frozen=True)
class Review:
    date: datetime
    review_number: int
    completed: bool = True


@dataclass(frozen=True)
class Topic:
    id: str
    created_at: datetime
    subject: str
    title: str
    color: str
    scheduled_reviews: tuple[datetime, ...]
    tags: tuple[str, ...] = ()
    source: Source = Source.CLASS
    reviews: tuple[Review, ...] = ()

    @property
    def completed(self) -> bool:
        return len(self.reviews) >= len(self.scheduled_reviews)


@dataclass(frozen=True)
class Subject:
    name: str
    color: str


DEFAULT_COMMON_TAGS = ("important", "exam", "hard", "revisit")
MAX_RECENT_SUBJECTS = 10


@dataclass(frozen=True)
class Settings:
    last_used_subject: Optional[str] = None
    recent_subjects: tuple[str, ...] = ()
    common_tags: tuple[str, ...] = field(default=DEFAULT_COMMON_TAGS)
