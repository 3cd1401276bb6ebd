"""The fixed pause taken before a creator lookup.

Hooks can fire before the write they describe is visible to a fresh
read.  The resolver waits once, for a fixed interval, before its single
lookup attempt.  This is not a retry loop and the interval never adapts.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class VisibilityDelay:
    """One fixed, non-cancellable wait before a lookup.

    Parameters
    ----------
    seconds:
        Length of the pause.  ``0`` disables it; negative values are
        treated as ``0``.
    sleep:
        The blocking sleep function.  Tests inject a recorder.
    """

    def __init__(
        self,
        seconds: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._seconds = max(0.0, float(seconds))
        self._sleep = sleep

    @property
    def seconds(self) -> float:
        return self._seconds

    def wait(self) -> None:
        """Block for the configured interval (no-op when it is zero)."""
        if self._seconds <= 0:
            return
        logger.debug("Waiting %.3fs for record visibility", self._seconds)
        self._sleep(self._seconds)

    def __repr__(self) -> str:
        return f"VisibilityDelay(seconds={self._seconds!r})"
