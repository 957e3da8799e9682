"""Subject color assignment."""
from typing import Iterable, Sequence

SUBJECT_COLORS = (
    "#ef4444",  # red
    "#f97316",  # orange
    "#f59e0b",  # amber
    "#84cc16",  # lime
    "#10b981",  # emerald
    "#06b6d4",  # cyan
    "#3b82f6",  # blue
    "#6366f1",  # indigo
    "#8b5cf6",  # violet
    "#ec4899",  # pink
    "#6b7280",  # gray
    "#374151",  # dark gray
)


def _pairs(existing: Iterable) -> list[tuple[str, str]]:
    pairs = []
    for item in existing:
        if isinstance(item, tuple):
            pairs.append(item)
        else:
            pairs.append((item.name, item.color))
    return pairs


def get_subject_color(
    subject: str,
    existing: Iterable = (),
    palette: Sequence[str] = SUBJECT_COLORS,
) -> str:
    """Pick the display color for ``subject``.

    ``existing`` holds Subject objects or (name, color) pairs. A subject that
    is already known (ignoring case) keeps its color. A new one gets the first
    palette color no subject uses yet; once the palette is exhausted colors
    repeat, starting from the first.
    """
    pairs = _pairs(existing)
    wanted = subject.strip().lower()
    for name, color in pairs:
        if name.strip().lower() == wanted:
            return color
    used = {color for _, color in pairs}
    for color in palette:
        if color not in used:
            return color
    return palette[0]
