"""Fixed inter-call delay between billable geocoding requests."""

from __future__ import annotations

import time
from typing import Callable


class Pacer:
    def __init__(self, sleep: Callable[[float], None] = time.sleep) -> None:
        self._sleep = sleep
        self.waits = 0

    def wait_if_needed(self, last_outcome_was_success: bool, is_final_record_of_run: bool, delay_ms: int) -> bool:
        """Sleep ``delay_ms`` after a successful call unless the run is ending.

        Returns whether a delay was applied.
        """
        if delay_ms <= 0 or not last_outcome_was_success or is_final_record_of_run:
            return False
        self._sleep(delay_ms / 1000.0)
        self.waits += 1
        return True
