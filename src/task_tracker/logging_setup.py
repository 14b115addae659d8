# src/task_tracker/logging_setup.py

from __future__ import annotations

import logging
import sys
from typing import Union

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep task_tracker logs at the configured level, but only let
    third-party loggers (httpx, httpcore, asyncio) through at WARNING+.
    Uvicorn's own loggers are left alone.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("task_tracker") or name.startswith("uvicorn"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure a single console handler on the root logger.

    Safe to call more than once: an existing handler installed by this
    function is replaced rather than duplicated.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, "_task_tracker", False):
            root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_FORMAT))
    console.addFilter(_ConsoleNoiseFilter())
    console._task_tracker = True  # type: ignore[attr-defined]
    root.addHandler(console)
