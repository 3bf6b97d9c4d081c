# src/astroconv/timing.py
"""Report how long each processing step took."""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator

__all__ = ["report_timing"]


@contextmanager
def report_timing(logger: logging.Logger, message: str, level: int = logging.INFO) -> Iterator[None]:
    """
    Log `message` with the seconds spent inside the ``with`` block.

    Nothing is measured when the logger would drop the record anyway.
    """
    if not logger.isEnabledFor(level):
        yield
        return
    t1 = time.perf_counter()
    yield
    logger.log(level, "%-45s %.6f seconds", message, time.perf_counter() - t1)
