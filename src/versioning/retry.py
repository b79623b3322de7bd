"""Retry/backoff policy for failed artifact fetches."""

from __future__ import annotations

import time
from typing import Callable, Optional

from constants import Constants

from .models import Failure


class RetryPolicy:
    """Decide whether a recorded failure should be fetched again.

    A failure is retried right away while fewer than ``max_tries_in_a_row``
    attempts have been made. After that, a new attempt is only made once
    ``cooldown_sec`` has passed since the last one.
    """

    def __init__(
        self,
        max_tries_in_a_row: Optional[int] = None,
        cooldown_sec: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.max_tries_in_a_row = (
            Constants.MAX_TRIES_IN_A_ROW if max_tries_in_a_row is None else max_tries_in_a_row
        )
        self.cooldown_sec = Constants.RETRY_COOLDOWN_SEC if cooldown_sec is None else cooldown_sec
        self._clock = clock

    def now_millis(self) -> int:
        return int(self._clock() * 1000)

    def cooldown_elapsed(self, failure: Failure) -> bool:
        return (self.now_millis() - failure.last_try_millis) > self.cooldown_sec * 1000

    def should_resolve_again(self, failure: Failure) -> bool:
        return failure.tries < self.max_tries_in_a_row or self.cooldown_elapsed(failure)
