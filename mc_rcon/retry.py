# mc_rcon/retry.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .errors import AuthenticationFailed, InvalidConfig, RconError
from .session import RconConfig, Session

log = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAY = 1.0

# retrying these cannot change the outcome
FATAL = (AuthenticationFailed, InvalidConfig)


def connect_with_retry(
    config: RconConfig,
    attempts: int = MAX_ATTEMPTS,
    delay: float = RETRY_DELAY,
    on_retry: Optional[Callable[[int, RconError], None]] = None,
    connect: Callable[[RconConfig], Session] = Session.connect,
    sleep: Callable[[float], None] = time.sleep,
) -> Session:
    """Bounded connect loop with a fixed pause between attempts."""
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    for attempt in range(1, attempts + 1):
        try:
            return connect(config)
        except FATAL:
            raise
        except RconError as e:
            if attempt == attempts:
                raise
            log.info("connect attempt %d/%d failed: %s", attempt, attempts, e)
            if on_retry is not None:
                on_retry(attempt, e)
            sleep(delay)
    raise AssertionError("unreachable")
