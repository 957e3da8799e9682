# tests/test_integration.py
"""End-to-end test of the core workflow."""
from datetime import date, datetime, timedelta

from study_planner import cache, store, sync
from study_planner.calendar_view import bucket_topics, week_dates
from study_planner.db import init_db
from study_planner.schedule import is_due, is_overdue, next_review_index


def test_full_review_cycle(tmp_db, tmp_cache):
    """Create topics, work through every review, and check the calendar along the way."""
    init_db(tmp_db)
    created = datetime(2024, 1, 1, 20, 15)
    topics, subjects = sync.add_topic([], [], "Anatomy", "Heart", db_path=tmp_db, cache_path=tmp_cache, now=created)
    topics, subjects = sync.add_topic(
        topics, subjects, "anatomy", "Lungs", db_path=tmp_db, cache_path=tmp_cache, now=created + timedelta(days=5),
    )
    assert len(subjects) == 1
    assert topics[0].color == topics[1].color

    heart = topics[0]
    # Both first reviews (Jan 2 and Jan 7) are overdue by Wednesday Jan 10.
    today = date(2024, 1, 10)
    assert is_overdue(heart, today)
    buckets = bucket_topics(topics, week_dates(today), today)
    assert buckets[today] == topics
    assert buckets[date(2024, 1, 8)] == []

    # Seen from Jan 5, "Heart" collapses onto that day and "Lungs" keeps its own date.
    early = date(2024, 1, 5)
    buckets = bucket_topics(topics, week_dates(early), early)
    assert buckets[early] == [heart]
    assert buckets[date(2024, 1, 7)] == [topics[1]]

    for i, days in enumerate((1, 3, 7, 14, 30, 60, 120)):
        assert next_review_index(topics[0]) == i
        topics = sync.complete_topic_review(
            topics, heart.id, i, db_path=tmp_db, cache_path=tmp_cache, now=created + timedelta(days=days),
        )

    assert topics[0].completed
    assert not is_due(topics[0], date(2030, 1, 1))
    stored = {t.id: t for t in store.list_topics(tmp_db)}
    assert stored[heart.id] == topics[0]
    assert cache.load_topics(tmp_cache) == topics

    topics, subjects = sync.rename_subject(
        topics, subjects, "Anatomy", "Physiology", "#8b5cf6", db_path=tmp_db, cache_path=tmp_cache,
    )
    assert {t.subject for t in store.list_topics(tmp_db)} == {"Physiology"}

    topics, subjects = sync.remove_subject(topics, subjects, "Physiology", db_path=tmp_db, cache_path=tmp_cache)
    assert topics == []
    assert store.list_topics(tmp_db) == []
    assert store.list_subjects(tmp_db) == []
