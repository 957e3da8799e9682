"""SQLite persistence for topics, reviews, subjects and settings."""
import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Iterator, Optional

from study_planner import preferences, schedule
from study_planner.db import DEFAULT_USER, get_connection
from study_planner.errors import (
    PersistenceError, SubjectNotFoundError, TopicNotFoundError, ValidationError,
)
from study_planner.models import Review, Settings, Source, Subject, Topic

logger = logging.getLogger(__name__)


@contextmanager
def _transaction(db_path: str) -> Iterator[sqlite3.Connection]:
    try:
        conn = get_connection(db_path)
    except sqlite3.Error as e:
        raise PersistenceError(f"Cannot open database {db_path}: {e}") from e
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise PersistenceError(f"Database error: {e}") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _review_from_row(row: sqlite3.Row) -> Review:
    return Review(
        date=datetime.fromisoformat(row["date"]),
        review_number=row["review_number"],
        completed=bool(row["completed"]),
    )


def _topic_from_row(row: sqlite3.Row, reviews: Iterable[Review]) -> Topic:
    return Topic(
        id=row["id"],
        created_at=datetime.fromisoformat(row["created_at"]),
        subject=row["subject"],
        title=row["title"],
        color=row["color"],
        scheduled_reviews=tuple(datetime.fromisoformat(d) for d in json.loads(row["scheduled_reviews"])),
        tags=tuple(json.loads(row["tags"] or "[]")),
        source=Source(row["source"]),
        reviews=tuple(reviews),
    )


def _load_reviews(conn: sqlite3.Connection, topic_id: str) -> list[Review]:
    rows = conn.execute(
        "SELECT * FROM reviews WHERE topic_id = ? ORDER BY review_number", (topic_id,),
    ).fetchall()
    return [_review_from_row(r) for r in rows]


def _fetch_topic(conn: sqlite3.Connection, topic_id: str, user_id: str) -> Topic:
    row = conn.execute(
        "SELECT * FROM topics WHERE id = ? AND user_id = ?", (topic_id, user_id),
    ).fetchone()
    if row is None:
        raise TopicNotFoundError(topic_id)
    return _topic_from_row(row, _load_reviews(conn, topic_id))


# --- Topics ---


def list_topics(db_path: str, user_id: str = DEFAULT_USER) -> list[Topic]:
    """All topics of ``user_id`` with their reviews, newest first."""
    with _transaction(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM topics WHERE user_id = ? ORDER BY created_at DESC", (user_id,),
        ).fetchall()
        review_rows = conn.execute(
            "SELECT * FROM reviews WHERE user_id = ? ORDER BY topic_id, review_number", (user_id,),
        ).fetchall()
    by_topic: dict[str, list[Review]] = {}
    for r in review_rows:
        by_topic.setdefault(r["topic_id"], []).append(_review_from_row(r))
    return [_topic_from_row(row, by_topic.get(row["id"], [])) for row in rows]


def get_topic(db_path: str, topic_id: str, user_id: str = DEFAULT_USER) -> Topic:
    with _transaction(db_path) as conn:
        return _fetch_topic(conn, topic_id, user_id)


def _insert_topic(conn: sqlite3.Connection, topic: Topic, user_id: str) -> None:
    conn.execute(
        """INSERT INTO topics (id, user_id, created_at, subject, title, tags, source, color,
            scheduled_reviews, completed, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            topic.id, user_id, topic.created_at.isoformat(), topic.subject, topic.title,
            json.dumps(list(topic.tags)), topic.source.value, topic.color,
            json.dumps([d.isoformat() for d in topic.scheduled_reviews]),
            int(topic.completed), datetime.now().isoformat(),
        ),
    )
    for review in topic.reviews:
        conn.execute(
            "INSERT INTO reviews (topic_id, user_id, review_number, date, completed) VALUES (?, ?, ?, ?, ?)",
            (topic.id, user_id, review.review_number, review.date.isoformat(), int(review.completed)),
        )


def _ensure_subject(conn: sqlite3.Connection, name: str, color: str, user_id: str) -> None:
    conn.execute(
        "INSERT OR IGNORE INTO subjects (user_id, name, color, updated_at) VALUES (?, ?, ?, ?)",
        (user_id, name, color, datetime.now().isoformat()),
    )


def create_topic(
    db_path: str,
    subject: str,
    title: str,
    tags: Iterable[str] = (),
    source: Source | str = Source.CLASS,
    color: Optional[str] = None,
    user_id: str = DEFAULT_USER,
    now: Optional[datetime] = None,
) -> Topic:
    """Create and store a topic; the id, creation time and schedule are assigned here."""
    subjects = list_subjects(db_path, user_id)
    topic = schedule.create_topic(
        subject, title, tags=tags, source=source, existing_subjects=subjects, now=now, color=color,
    )
    save_topic(db_path, topic, user_id)
    return topic


def save_topic(db_path: str, topic: Topic, user_id: str = DEFAULT_USER) -> None:
    """Store a topic built elsewhere, registering its subject if it is new."""
    with _transaction(db_path) as conn:
        _insert_topic(conn, topic, user_id)
        _ensure_subject(conn, topic.subject, topic.color, user_id)
        settings = preferences.remember_subject(_read_settings(conn, user_id), topic.subject)
        _write_settings(conn, settings, user_id)
    logger.info("Stored topic %s (%s / %s)", topic.id, topic.subject, topic.title)


def append_review(
    db_path: str,
    topic_id: str,
    review_number: int,
    user_id: str = DEFAULT_USER,
    now: Optional[datetime] = None,
) -> Review:
    """Record review ``review_number`` (1-based) of a topic as completed."""
    with _transaction(db_path) as conn:
        topic = _fetch_topic(conn, topic_id, user_id)
        updated = schedule.complete_review(topic, review_number - 1, now=now)
        review = updated.reviews[-1]
        conn.execute(
            "INSERT INTO reviews (topic_id, user_id, review_number, date, completed) VALUES (?, ?, ?, ?, ?)",
            (topic_id, user_id, review.review_number, review.date.isoformat(), int(review.completed)),
        )
        if updated.completed:
            conn.execute(
                "UPDATE topics SET completed = 1, updated_at = ? WHERE id = ? AND user_id = ?",
                (datetime.now().isoformat(), topic_id, user_id),
            )
    return review


def delete_topic(db_path: str, topic_id: str, user_id: str = DEFAULT_USER) -> None:
    """Delete a topic; its reviews go with it."""
    with _transaction(db_path) as conn:
        cur = conn.execute("DELETE FROM topics WHERE id = ? AND user_id = ?", (topic_id, user_id))
        if cur.rowcount == 0:
            raise TopicNotFoundError(topic_id)


# --- Subjects ---


def list_subjects(db_path: str, user_id: str = DEFAULT_USER) -> list[Subject]:
    with _transaction(db_path) as conn:
        rows = conn.execute(
            "SELECT name, color FROM subjects WHERE user_id = ? ORDER BY name", (user_id,),
        ).fetchall()
    return [Subject(name=r["name"], color=r["color"]) for r in rows]


def upsert_subject(db_path: str, name: str, color: str, user_id: str = DEFAULT_USER) -> Subject:
    """Create a subject or update its color. Names match case-insensitively."""
    name = name.strip()
    if not name:
        raise ValidationError("Subject must not be empty")
    with _transaction(db_path) as conn:
        conn.execute(
            """INSERT INTO subjects (user_id, name, color, updated_at) VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id, name) DO UPDATE SET color = excluded.color, updated_at = excluded.updated_at""",
            (user_id, name, color, datetime.now().isoformat()),
        )
        row = conn.execute(
            "SELECT name, color FROM subjects WHERE user_id = ? AND name = ?", (user_id, name),
        ).fetchone()
    return Subject(name=row["name"], color=row["color"])


def rename_subject(
    db_path: str, old: str, new: str, color: str, user_id: str = DEFAULT_USER,
) -> Subject:
    """Rename a subject and recolor it, carrying the change to its topics."""
    new = new.strip()
    if not new:
        raise ValidationError("Subject must not be empty")
    stamp = datetime.now().isoformat()
    with _transaction(db_path) as conn:
        existing = conn.execute(
            "SELECT id FROM subjects WHERE user_id = ? AND name = ?", (user_id, old),
        ).fetchone()
        if existing is None:
            raise SubjectNotFoundError(old)
        clash = conn.execute(
            "SELECT id FROM subjects WHERE user_id = ? AND name = ? AND id != ?",
            (user_id, new, existing["id"]),
        ).fetchone()
        if clash is not None:
            raise ValidationError(f"Subject '{new}' already exists")
        conn.execute(
            "UPDATE subjects SET name = ?, color = ?, updated_at = ? WHERE id = ?",
            (new, color, stamp, existing["id"]),
        )
        conn.execute(
            """UPDATE topics SET subject = ?, color = ?, updated_at = ?
            WHERE user_id = ? AND subject = ? COLLATE NOCASE""",
            (new, color, stamp, user_id, old),
        )
        _write_settings(conn, preferences.rename_subject(_read_settings(conn, user_id), old, new), user_id)
    return Subject(name=new, color=color)


def delete_subject(db_path: str, name: str, user_id: str = DEFAULT_USER) -> int:
    """Delete a subject with all of its topics. Returns the number of topics removed."""
    with _transaction(db_path) as conn:
        cur = conn.execute("DELETE FROM subjects WHERE user_id = ? AND name = ?", (user_id, name))
        if cur.rowcount == 0:
            raise SubjectNotFoundError(name)
        removed = conn.execute(
            "DELETE FROM topics WHERE user_id = ? AND subject = ? COLLATE NOCASE", (user_id, name),
        ).rowcount
        _write_settings(conn, preferences.forget_subject(_read_settings(conn, user_id), name), user_id)
    logger.info("Deleted subject %r and %d topic(s)", name, removed)
    return removed


# --- Settings ---


def _read_settings(conn: sqlite3.Connection, user_id: str) -> Settings:
    rows = conn.execute(
        "SELECT key, value FROM user_settings WHERE user_id = ?", (user_id,),
    ).fetchall()
    values = {r["key"]: r["value"] for r in rows}
    settings = Settings(last_used_subject=values.get("last_used_subject") or None)
    if "recent_subjects" in values:
        settings = replace(settings, recent_subjects=tuple(json.loads(values["recent_subjects"])))
    if "common_tags" in values:
        settings = replace(settings, common_tags=tuple(json.loads(values["common_tags"])))
    return settings


def _write_settings(conn: sqlite3.Connection, settings: Settings, user_id: str) -> None:
    values = {
        "last_used_subject": settings.last_used_subject or "",
        "recent_subjects": json.dumps(list(settings.recent_subjects)),
        "common_tags": json.dumps(list(settings.common_tags)),
    }
    for key, value in values.items():
        conn.execute(
            "INSERT INTO user_settings (user_id, key, value) VALUES (?, ?, ?) "
            "ON CONFLICT(user_id, key) DO UPDATE SET value = excluded.value",
            (user_id, key, value),
        )


def get_settings(db_path: str, user_id: str = DEFAULT_USER) -> Settings:
    with _transaction(db_path) as conn:
        return _read_settings(conn, user_id)

