"""Conversion of planner records to and from plain JSON-ready dicts."""
from datetime import datetime

from study_planner.models import DEFAULT_COMMON_TAGS, Review, Settings, Source, Subject, Topic


def review_to_dict(review: Review) -> dict:
    return {
        "date": review.date.isoformat(),
        "completed": review.completed,
        "review_number": review.review_number,
    }


def review_from_dict(data: dict) -> Review:
    return Review(
        date=datetime.fromisoformat(data["date"]),
        review_number=int(data["review_number"]),
        completed=bool(data.get("completed", True)),
    )


def topic_to_dict(topic: Topic) -> dict:
    return {
        "id": topic.id,
        "created_at": topic.created_at.isoformat(),
        "subject": topic.subject,
        "title": topic.title,
        "tags": list(topic.tags),
        "source": topic.source.value,
        "color": topic.color,
        "scheduled_reviews": [d.isoformat() for d in topic.scheduled_reviews],
        "reviews": [review_to_dict(r) for r in topic.reviews],
        "completed": topic.completed,
    }


def topic_from_dict(data: dict) -> Topic:
    """Rebuild a Topic; ``completed`` is derived, so a stored value is ignored."""
    reviews = sorted(
        (review_from_dict(r) for r in data.get("reviews", [])),
        key=lambda r: r.review_number,
    )
    return Topic(
        id=data["id"],
        created_at=datetime.fromisoformat(data["created_at"]),
        subject=data["subject"],
        title=data["title"],
        color=data["color"],
        scheduled_reviews=tuple(datetime.fromisoformat(d) for d in data["scheduled_reviews"]),
        tags=tuple(data.get("tags", [])),
        source=Source(data.get("source", Source.CLASS.value)),
        reviews=tuple(reviews),
    )


def subject_to_dict(subject: Subject) -> dict:
    return {"subject": subject.name, "color": subject.color}


def subject_from_dict(data: dict) -> Subject:
    return Subject(name=data["subject"], color=data["color"])


def settings_to_dict(settings: Settings) -> dict:
    return {
        "last_used_subject": settings.last_used_subject,
        "recent_subjects": list(settings.recent_subjects),
        "common_tags": list(settings.common_tags),
    }


def settings_from_dict(data: dict) -> Settings:
    return Settings(
        last_used_subject=data.get("last_used_subject"),
        recent_subjects=tuple(data.get("recent_subjects", [])),
        common_tags=tuple(data.get("common_tags", DEFAULT_COMMON_TAGS)),
    )
