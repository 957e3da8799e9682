"""Logging setup shared by the CLI."""
import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "STUDY_PLANNER_LOG_LEVEL"


def configure_logging(level: Optional[str] = None, console: Optional[Console] = None) -> None:
    """Route package logging through rich. ``level`` defaults to $STUDY_PLANNER_LOG_LEVEL or WARNING."""
    level = (level or os.environ.get(LOG_LEVEL_ENV, "WARNING")).upper()
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root = logging.getLogger("study_planner")
    root.handlers = [handler]
    root.setLevel(level)
    root.propagate = False
