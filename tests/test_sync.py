# tests/test_sync.py
import logging
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from study_planner import cache, store, sync
from study_planner.db import init_db
from study_planner.errors import (
    InvalidReviewError, PersistenceError, SubjectNotFoundError, TopicNotFoundError, ValidationError,
)
from study_planner.models import Subject
from study_planner.schedule import create_topic
from study_planner.sync import CommitStrategy

NOW = datetime(2024, 1, 1, 9, 0)


def _add(tmp_db, tmp_cache, strategy=CommitStrategy.REMOTE, topics=None, subjects=None,
         subject="Math", title="Limits", **kwargs):
    return sync.add_topic(
        topics or [], subjects or [], subject, title,
        db_path=tmp_db, cache_path=tmp_cache, strategy=strategy, now=NOW, **kwargs,
    )


# --- Pure collection updates ---


def test_with_review_leaves_input_untouched():
    topic = create_topic("Math", "Limits", now=NOW)
    topics = [topic]
    updated = sync.with_review(topics, topic.id, 0, now=NOW)
    assert topics == [topic]
    assert len(updated[0].reviews) == 1


def test_with_review_unknown_topic():
    with pytest.raises(TopicNotFoundError):
        sync.with_review([], "nope", 0)


def test_with_subject_ignores_known_names():
    subjects = [Subject("Math", "#111")]
    assert sync.with_subject(subjects, "MATH", "#222") == subjects
    assert sync.with_subject(subjects, "Bio", "#222") == [Subject("Math", "#111"), Subject("Bio", "#222")]


def test_with_subject_renamed():
    a = create_topic("Math", "Limits", now=NOW)
    b = create_topic("Bio", "Cells", now=NOW)
    topics, subjects = sync.with_subject_renamed(
        [a, b], [Subject("math", a.color), Subject("Bio", b.color)], "Math", "Calculus", "#123",
    )
    assert [(t.subject, t.color) for t in topics] == [("Calculus", "#123"), ("Bio", b.color)]
    assert subjects == [Subject("Calculus", "#123"), Subject("Bio", b.color)]
    assert a.subject == "Math"


def test_with_subject_renamed_rejects_case_insensitive_clash():
    subjects = [Subject("Math", "#1"), Subject("Bio", "#2")]
    with pytest.raises(ValidationError):
        sync.with_subject_renamed([], subjects, "Math", "bio", "#3")


def test_with_subject_renamed_unknown_subject():
    with pytest.raises(SubjectNotFoundError):
        sync.with_subject_renamed([], [Subject("Math", "#1")], "Nope", "X", "#3")


def test_with_subject_renamed_rejects_blank_name():
    with pytest.raises(ValidationError):
        sync.with_subject_renamed([], [Subject("Math", "#1")], "Math", "  ", "#3")


def test_with_subject_renamed_allows_case_change():
    topic = create_topic("Math", "Limits", now=NOW)
    topics, subjects = sync.with_subject_renamed([topic], [Subject("Math", "#1")], "Math", " MATH ", "#1")
    assert subjects == [Subject("MATH", "#1")]
    assert topics[0].subject == "MATH"


def test_without_subject():
    a = create_topic("Math", "Limits", now=NOW)
    b = create_topic("Bio", "Cells", now=NOW)
    topics, subjects = sync.without_subject([a, b], [Subject("Math", "#1"), Subject("Bio", "#2")], "math")
    assert topics == [b]
    assert subjects == [Subject("Bio", "#2")]


# --- Strategies ---


def test_add_topic_remote(tmp_db, tmp_cache):
    init_db(tmp_db)
    topics, subjects = _add(tmp_db, tmp_cache, tags=["exam"])
    assert len(topics) == 1
    assert subjects == [Subject("Math", topics[0].color)]
    assert store.list_topics(tmp_db) == topics
    assert cache.load_topics(tmp_cache) == topics
    assert cache.load_settings(tmp_cache).last_used_subject == "Math"


def test_add_topic_remote_failure_changes_nothing(missing_db, tmp_cache):
    with pytest.raises(PersistenceError):
        _add(missing_db, tmp_cache)
    assert not Path(tmp_cache).exists()


def test_add_topic_fallback_keeps_change_locally(missing_db, tmp_cache, caplog):
    with caplog.at_level(logging.WARNING, logger="study_planner"):
        topics, _ = _add(missing_db, tmp_cache, strategy=CommitStrategy.FALLBACK)
    assert len(topics) == 1
    assert cache.load_topics(tmp_cache) == topics
    assert "keeping the change locally" in caplog.text


def test_add_topic_local_skips_database(missing_db, tmp_cache):
    topics, _ = _add(missing_db, tmp_cache, strategy=CommitStrategy.LOCAL)
    assert cache.load_topics(tmp_cache) == topics


def test_complete_topic_review_remote(tmp_db, tmp_cache):
    init_db(tmp_db)
    topics, _ = _add(tmp_db, tmp_cache)
    when = NOW + timedelta(days=1)
    updated = sync.complete_topic_review(
        topics, topics[0].id, 0, db_path=tmp_db, cache_path=tmp_cache, now=when,
    )
    assert updated[0].reviews[0].date == when
    assert store.get_topic(tmp_db, topics[0].id) == updated[0]
    assert cache.load_topics(tmp_cache) == updated
    assert topics[0].reviews == ()


def test_complete_topic_review_rejects_wrong_index(tmp_db, tmp_cache):
    init_db(tmp_db)
    topics, _ = _add(tmp_db, tmp_cache)
    with pytest.raises(InvalidReviewError):
        sync.complete_topic_review(topics, topics[0].id, 3, db_path=tmp_db, cache_path=tmp_cache)
    assert store.get_topic(tmp_db, topics[0].id).reviews == ()
    assert cache.load_topics(tmp_cache)[0].reviews == ()


def test_complete_topic_review_fallback_when_topic_only_local(tmp_db, tmp_cache):
    init_db(tmp_db)
    topics, _ = _add(tmp_db, tmp_cache, strategy=CommitStrategy.LOCAL)
    updated = sync.complete_topic_review(
        topics, topics[0].id, 0, db_path=tmp_db, cache_path=tmp_cache, strategy=CommitStrategy.FALLBACK,
    )
    assert len(updated[0].reviews) == 1
    assert cache.load_topics(tmp_cache) == updated
    assert store.list_topics(tmp_db) == []


def test_remove_topic(tmp_db, tmp_cache):
    init_db(tmp_db)
    topics, _ = _add(tmp_db, tmp_cache)
    remaining = sync.remove_topic(topics, topics[0].id, db_path=tmp_db, cache_path=tmp_cache)
    assert remaining == []
    assert store.list_topics(tmp_db) == []
    assert cache.load_topics(tmp_cache) == []


def test_rename_subject(tmp_db, tmp_cache):
    init_db(tmp_db)
    topics, subjects = _add(tmp_db, tmp_cache)
    topics, subjects = sync.rename_subject(
        topics, subjects, "Math", "Calculus", "#123456", db_path=tmp_db, cache_path=tmp_cache,
    )
    assert topics[0].subject == "Calculus"
    assert subjects == [Subject("Calculus", "#123456")]
    assert store.list_subjects(tmp_db) == subjects
    assert store.list_topics(tmp_db) == topics
    assert cache.load_settings(tmp_cache).last_used_subject == "Calculus"


def test_remove_subject(tmp_db, tmp_cache):
    init_db(tmp_db)
    topics, subjects = _add(tmp_db, tmp_cache)
    topics, subjects = _add(tmp_db, tmp_cache, topics=topics, subjects=subjects, subject="Bio", title="Cells")
    topics, subjects = sync.remove_subject(topics, subjects, "Math", db_path=tmp_db, cache_path=tmp_cache)
    assert [t.subject for t in topics] == ["Bio"]
    assert [s.name for s in subjects] == ["Bio"]
    assert store.list_topics(tmp_db) == topics
    assert cache.load_subjects(tmp_cache) == subjects


def test_load_topics_refreshes_cache(tmp_db, tmp_cache):
    init_db(tmp_db)
    topic = store.create_topic(tmp_db, "Math", "Limits", now=NOW)
    assert sync.load_topics(tmp_db, tmp_cache) == [topic]
    assert cache.load_topics(tmp_cache) == [topic]


def test_load_topics_fallback_reads_cache(missing_db, tmp_cache):
    topic = create_topic("Math", "Limits", now=NOW)
    cache.save_topics(tmp_cache, [topic])
    assert sync.load_topics(missing_db, tmp_cache, CommitStrategy.FALLBACK) == [topic]
    with pytest.raises(PersistenceError):
        sync.load_topics(missing_db, tmp_cache, CommitStrategy.REMOTE)


def test_load_subjects_local(missing_db, tmp_cache):
    cache.save_subjects(tmp_cache, [Subject("Bio", "#1")])
    assert sync.load_subjects(missing_db, tmp_cache, CommitStrategy.LOCAL) == [Subject("Bio", "#1")]


def test_complete_topic_review_fallback_after_local_only_review(tmp_db, missing_db, tmp_cache, caplog):
    init_db(tmp_db)
    topics, _ = _add(tmp_db, tmp_cache)
    topic_id = topics[0].id
    topics = sync.complete_topic_review(
        topics, topic_id, 0, db_path=missing_db, cache_path=tmp_cache, strategy=CommitStrategy.FALLBACK,
    )
    with pytest.raises(InvalidReviewError):
        sync.complete_topic_review(topics, topic_id, 1, db_path=tmp_db, cache_path=tmp_cache)
    with caplog.at_level(logging.WARNING, logger="study_planner"):
        updated = sync.complete_topic_review(
            topics, topic_id, 1, db_path=tmp_db, cache_path=tmp_cache, strategy=CommitStrategy.FALLBACK,
        )
    assert len(updated[0].reviews) == 2
    assert cache.load_topics(tmp_cache) == updated
    assert store.get_topic(tmp_db, topic_id).reviews == ()
    assert "keeping the change locally" in caplog.text


def test_rename_subject_local_clash_leaves_cache_alone(missing_db, tmp_cache):
    topics, subjects = _add(missing_db, tmp_cache, strategy=CommitStrategy.LOCAL)
    topics, subjects = _add(
        missing_db, tmp_cache, strategy=CommitStrategy.LOCAL, topics=topics, subjects=subjects,
        subject="Bio", title="Cells",
    )
    with pytest.raises(ValidationError):
        sync.rename_subject(
            topics, subjects, "Math", "bio", "#123456",
            db_path=missing_db, cache_path=tmp_cache, strategy=CommitStrategy.LOCAL,
        )
    assert cache.load_subjects(tmp_cache) == subjects
    assert cache.load_topics(tmp_cache) == topics


def test_rename_subject_unknown_subject(missing_db, tmp_cache):
    with pytest.raises(SubjectNotFoundError):
        sync.rename_subject(
            [], [], "Nope", "X", "#123456",
            db_path=missing_db, cache_path=tmp_cache, strategy=CommitStrategy.LOCAL,
        )


def test_load_settings_reads_database(tmp_db, tmp_cache):
    init_db(tmp_db)
    store.create_topic(tmp_db, "Math", "Limits", now=NOW)
    settings = sync.load_settings(tmp_db, tmp_cache)
    assert settings.last_used_subject == "Math"
    assert cache.load_settings(tmp_cache) == settings


def test_load_settings_fallback_reads_cache(missing_db, tmp_cache):
    _add(missing_db, tmp_cache, strategy=CommitStrategy.LOCAL, subject="Bio")
    assert sync.load_settings(missing_db, tmp_cache, CommitStrategy.FALLBACK).last_used_subject == "Bio"
    with pytest.raises(PersistenceError):
        sync.load_settings(missing_db, tmp_cache, CommitStrategy.REMOTE)
