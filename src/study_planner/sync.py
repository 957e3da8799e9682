"""Apply planner changes to the database, the local cache, or both.

Every change is computed once by a pure function over the in-memory
collections. A ``CommitStrategy`` then decides where it is written:

* ``LOCAL``: only the local cache.
* ``REMOTE``: the database first; if that fails nothing changes and the
  error propagates.
* ``FALLBACK``: the database first; if that fails the change is still kept
  in the local cache. The cache and the database can then disagree until
  the change is replayed.
"""
import logging
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Optional, TypeVar

from study_planner import cache, preferences, schedule, store
from study_planner.cache import DEFAULT_CACHE_PATH
from study_planner.db import DEFAULT_DB_PATH, DEFAULT_USER
from study_planner.errors import (
    NotFoundError, PersistenceError, SubjectNotFoundError, TopicNotFoundError, ValidationError,
)
from study_planner.models import Settings, Source, Subject, Topic

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CommitStrategy(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    FALLBACK = "fallback"


# --- Pure collection updates ---


def _same_subject(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def find_topic(topics: Iterable[Topic], topic_id: str) -> Topic:
    for topic in topics:
        if topic.id == topic_id:
            return topic
    raise TopicNotFoundError(topic_id)


def with_topic(topics: list[Topic], topic: Topic) -> list[Topic]:
    return [*topics, topic]


def with_subject(subjects: list[Subject], name: str, color: str) -> list[Subject]:
    if any(_same_subject(s.name, name) for s in subjects):
        return list(subjects)
    return [*subjects, Subject(name=name, color=color)]


def with_review(
    topics: list[Topic], topic_id: str, review_index: int, now: Optional[datetime] = None,
) -> list[Topic]:
    updated = schedule.complete_review(find_topic(topics, topic_id), review_index, now=now)
    return [updated if t.id == topic_id else t for t in topics]


def without_topic(topics: list[Topic], topic_id: str) -> list[Topic]:
    find_topic(topics, topic_id)
    return [t for t in topics if t.id != topic_id]


def with_subject_renamed(
    topics: list[Topic], subjects: list[Subject], old: str, new: str, color: str,
) -> tuple[list[Topic], list[Subject]]:
    """Rename subject ``old`` to ``new``; names compare case-insensitively."""
    new = new.strip()
    if not new:
        raise ValidationError("Subject must not be empty")
    if not any(_same_subject(s.name, old) for s in subjects):
        raise SubjectNotFoundError(old)
    if any(_same_subject(s.name, new) and not _same_subject(s.name, old) for s in subjects):
        raise ValidationError(f"Subject '{new}' already exists")
    new_topics = [
        replace(t, subject=new, color=color) if _same_subject(t.subject, old) else t
        for t in topics
    ]
    new_subjects = [
        Subject(name=new, color=color) if _same_subject(s.name, old) else s
        for s in subjects
    ]
    return new_topics, new_subjects


def without_subject(
    topics: list[Topic], subjects: list[Subject], name: str,
) -> tuple[list[Topic], list[Subject]]:
    return (
        [t for t in topics if not _same_subject(t.subject, name)],
        [s for s in subjects if not _same_subject(s.name, name)],
    )


# --- Commit ---


def _commit(strategy: CommitStrategy, persist: Callable[[], object], description: str) -> None:
    if strategy is CommitStrategy.LOCAL:
        return
    try:
        persist()
    except (PersistenceError, NotFoundError, ValidationError) as e:
        # Already validated in memory, so a rejection means the database is behind the cache.
        if strategy is CommitStrategy.REMOTE:
            raise
        logger.warning("Failed to %s in the database, keeping the change locally: %s", description, e)


def _load(
    strategy: CommitStrategy,
    remote: Callable[[], T],
    local: Callable[[], T],
    save_local: Callable[[T], None],
    description: str,
) -> T:
    if strategy is CommitStrategy.LOCAL:
        return local()
    try:
        items = remote()
    except PersistenceError as e:
        if strategy is CommitStrategy.REMOTE:
            raise
        logger.warning("Failed to load %s from the database, using the local cache: %s", description, e)
        return local()
    save_local(items)
    return items


def load_topics(
    db_path: str = DEFAULT_DB_PATH,
    cache_path: str = DEFAULT_CACHE_PATH,
    strategy: CommitStrategy = CommitStrategy.REMOTE,
    user_id: str = DEFAULT_USER,
) -> list[Topic]:
    return _load(
        strategy,
        lambda: store.list_topics(db_path, user_id),
        lambda: cache.load_topics(cache_path),
        lambda topics: cache.save_topics(cache_path, topics),
        "topics",
    )


def load_subjects(
    db_path: str = DEFAULT_DB_PATH,
    cache_path: str = DEFAULT_CACHE_PATH,
    strategy: CommitStrategy = CommitStrategy.REMOTE,
    user_id: str = DEFAULT_USER,
) -> list[Subject]:
    return _load(
        strategy,
        lambda: store.list_subjects(db_path, user_id),
        lambda: cache.load_subjects(cache_path),
        lambda subjects: cache.save_subjects(cache_path, subjects),
        "subjects",
    )


def load_settings(
    db_path: str = DEFAULT_DB_PATH,
    cache_path: str = DEFAULT_CACHE_PATH,
    strategy: CommitStrategy = CommitStrategy.REMOTE,
    user_id: str = DEFAULT_USER,
) -> Settings:
    return _load(
        strategy,
        lambda: store.get_settings(db_path, user_id),
        lambda: cache.load_settings(cache_path),
        lambda settings: cache.save_settings(cache_path, settings),
        "settings",
    )


def add_topic(
    topics: list[Topic],
    subjects: list[Subject],
    subject: str,
    title: str,
    tags: Iterable[str] = (),
    source: Source | str = Source.CLASS,
    db_path: str = DEFAULT_DB_PATH,
    cache_path: str = DEFAULT_CACHE_PATH,
    strategy: CommitStrategy = CommitStrategy.REMOTE,
    user_id: str = DEFAULT_USER,
    now: Optional[datetime] = None,
) -> tuple[list[Topic], list[Subject]]:
    topic = schedule.create_topic(subject, title, tags=tags, source=source, existing_subjects=subjects, now=now)
    new_topics = with_topic(topics, topic)
    new_subjects = with_subject(subjects, topic.subject, topic.color)
    _commit(strategy, lambda: store.save_topic(db_path, topic, user_id), "add topic")
    cache.save_topics(cache_path, new_topics)
    cache.save_subjects(cache_path, new_subjects)
    cache.save_settings(cache_path, preferences.remember_subject(cache.load_settings(cache_path), topic.subject))
    return new_topics, new_subjects


def complete_topic_review(
    topics: list[Topic],
    topic_id: str,
    review_index: int,
    db_path: str = DEFAULT_DB_PATH,
    cache_path: str = DEFAULT_CACHE_PATH,
    strategy: CommitStrategy = CommitStrategy.REMOTE,
    user_id: str = DEFAULT_USER,
    now: Optional[datetime] = None,
) -> list[Topic]:
    now = now or datetime.now()
    new_topics = with_review(topics, topic_id, review_index, now=now)
    _commit(
        strategy,
        lambda: store.append_review(db_path, topic_id, review_index + 1, user_id, now=now),
        "complete review",
    )
    cache.save_topics(cache_path, new_topics)
    return new_topics


def remove_topic(
    topics: list[Topic],
    topic_id: str,
    db_path: str = DEFAULT_DB_PATH,
    cache_path: str = DEFAULT_CACHE_PATH,
    strategy: CommitStrategy = CommitStrategy.REMOTE,
    user_id: str = DEFAULT_USER,
) -> list[Topic]:
    new_topics = without_topic(topics, topic_id)
    _commit(strategy, lambda: store.delete_topic(db_path, topic_id, user_id), "delete topic")
    cache.save_topics(cache_path, new_topics)
    return new_topics


def rename_subject(
    topics: list[Topic],
    subjects: list[Subject],
    old: str,
    new: str,
    color: str,
    db_path: str = DEFAULT_DB_PATH,
    cache_path: str = DEFAULT_CACHE_PATH,
    strategy: CommitStrategy = CommitStrategy.REMOTE,
    user_id: str = DEFAULT_USER,
) -> tuple[list[Topic], list[Subject]]:
    new = new.strip()
    new_topics, new_subjects = with_subject_renamed(topics, subjects, old, new, color)
    _commit(strategy, lambda: store.rename_subject(db_path, old, new, color, user_id), "rename subject")
    cache.save_topics(cache_path, new_topics)
    cache.save_subjects(cache_path, new_subjects)
    cache.save_settings(cache_path, preferences.rename_subject(cache.load_settings(cache_path), old, new))
    return new_topics, new_subjects


def remove_subject(
    topics: list[Topic],
    subjects: list[Subject],
    name: str,
    db_path: str = DEFAULT_DB_PATH,
    cache_path: str = DEFAULT_CACHE_PATH,
    strategy: CommitStrategy = CommitStrategy.REMOTE,
    user_id: str = DEFAULT_USER,
) -> tuple[list[Topic], list[Subject]]:
    new_topics, new_subjects = without_subject(topics, subjects, name)
    _commit(strategy, lambda: store.delete_subject(db_path, name, user_id), "delete subject")
    cache.save_topics(cache_path, new_topics)
    cache.save_subjects(cache_path, new_subjects)
    cache.save_settings(cache_path, preferences.forget_subject(cache.load_settings(cache_path), name))
    return new_topics, new_subjects
