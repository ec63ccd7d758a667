# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import time
from typing import Callable
from typing import Optional

_logger = logging.getLogger(__name__)


class WaitTimeout(Exception):

    def __init__(self, timeout_sec, message):
        super().__init__(message)
        self.timeout_sec = timeout_sec


class Wait:
    """Bounded polling with the delay doubling up to a limit."""

    def __init__(self, until: str, timeout_sec: float = 30, max_delay_sec: float = 5):
        self._until = until
        self._timeout_sec = timeout_sec
        self._max_delay_sec = max_delay_sec
        self._started_at = time.monotonic()
        self._attempts_made = 0
        self.delay_sec = max_delay_sec / 16.
        _logger.debug("Waiting until %s: %.1f sec.", self._until, self._timeout_sec)

    def again(self) -> bool:
        since_start_sec = time.monotonic() - self._started_at
        self._attempts_made += 1
        if since_start_sec > self._timeout_sec:
            _logger.warning(
                "Timed out waiting until %s: %g/%g sec, %d attempts.",
                self._until, since_start_sec, self._timeout_sec, self._attempts_made)
            return False
        self.delay_sec = min(self._max_delay_sec, self.delay_sec * 2)
        _logger.debug(
            "Continue waiting until %s: %.1f/%.1f sec, %d attempts, delay %.1f sec.",
            self._until, since_start_sec, self._timeout_sec, self._attempts_made, self.delay_sec)
        return True

    def sleep(self):
        time.sleep(self.delay_sec)


def wait_for_truthy(
        get_value: Callable,
        description: Optional[str] = None,
        timeout_sec: float = 30,
        max_delay_sec: float = 5,
        ):
    if description is None:
        description = getattr(get_value, '__qualname__', repr(get_value))
    wait = Wait(description, timeout_sec, max_delay_sec)
    while True:
        result = get_value()
        if result:
            _logger.debug("Waiting until %s: succeeded (got %r)", description, result)
            return result
        if not wait.again():
            raise WaitTimeout(
                timeout_sec,
                f"Timed out ({timeout_sec} seconds) waiting for: {description}")
        wait.sleep()
