"""Recently used subjects and tag suggestions."""
from dataclasses import replace

from study_planner.models import MAX_RECENT_SUBJECTS, Settings


def _same(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def remember_subject(settings: Settings, subject: str) -> Settings:
    """Move ``subject`` to the front of the recent list and mark it last used."""
    recent = (subject,) + tuple(s for s in settings.recent_subjects if not _same(s, subject))
    return replace(settings, last_used_subject=subject, recent_subjects=recent[:MAX_RECENT_SUBJECTS])


def rename_subject(settings: Settings, old: str, new: str) -> Settings:
    last = settings.last_used_subject
    if last is not None and _same(last, old):
        last = new
    recent = tuple(new if _same(s, old) else s for s in settings.recent_subjects)
    return replace(settings, last_used_subject=last, recent_subjects=recent)


def forget_subject(settings: Settings, subject: str) -> Settings:
    last = settings.last_used_subject
    if last is not None and _same(last, subject):
        last = None
    recent = tuple(s for s in settings.recent_subjects if not _same(s, subject))
    return replace(settings, last_used_subject=last, recent_subjects=recent)
