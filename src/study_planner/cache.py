"""Local JSON snapshot of topics, subjects and settings for offline use."""
import json
import logging
import os
from pathlib import Path

from study_planner.codec import (
    settings_from_dict, settings_to_dict, subject_from_dict, subject_to_dict,
    topic_from_dict, topic_to_dict,
)
from study_planner.models import Settings, Subject, Topic

logger = logging.getLogger(__name__)

DEFAULT_CACHE_PATH = os.environ.get(
    "STUDY_PLANNER_CACHE", str(Path.home() / ".study_planner" / "cache.json"),
)


def _read(cache_path: str) -> dict:
    path = Path(cache_path)
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable cache %s: %s", cache_path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring malformed cache %s", cache_path)
        return {}
    return data


def _write(cache_path: str, key: str, value) -> None:
    data = _read(cache_path)
    data[key] = value
    path = Path(cache_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False))
    tmp.replace(path)


def save_topics(cache_path: str, topics: list[Topic]) -> None:
    _write(cache_path, "topics", [topic_to_dict(t) for t in topics])


def load_topics(cache_path: str) -> list[Topic]:
    try:
        return [topic_from_dict(t) for t in _read(cache_path).get("topics", [])]
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Cached topics in %s are corrupt: %s", cache_path, e)
        return []


def save_subjects(cache_path: str, subjects: list[Subject]) -> None:
    _write(cache_path, "subjects", [subject_to_dict(s) for s in subjects])


def load_subjects(cache_path: str) -> list[Subject]:
    try:
        return [subject_from_dict(s) for s in _read(cache_path).get("subjects", [])]
    except (KeyError, TypeError) as e:
        logger.warning("Cached subjects in %s are corrupt: %s", cache_path, e)
        return []


def save_settings(cache_path: str, settings: Settings) -> None:
    _write(cache_path, "settings", settings_to_dict(settings))


def load_settings(cache_path: str) -> Settings:
    data = _read(cache_path).get("settings")
    if not isinstance(data, dict):
        return Settings()
    return settings_from_dict(data)
