from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable

from .clock import Clock

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_S = 0.1


class TimerDriver:
    """Turns wall-clock time into a one-shot expiry callback.

    Remaining time is always recomputed from the anchor passed to ``arm``;
    nothing is decremented. Each ``arm`` issues a new token and ``disarm``
    revokes it, so a tick scheduled for an earlier arming never fires.

    With a running asyncio loop, ``arm`` starts a background task that ticks
    every ``interval_s``. Without one, the host calls ``tick()`` itself.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        on_expire: Callable[[], None],
        interval_s: float = DEFAULT_TICK_INTERVAL_S,
    ) -> None:
        if interval_s <= 0.0:
            raise ValueError("interval_s must be > 0")
        self._clock = clock
        self._on_expire = on_expire
        self._interval_s = float(interval_s)

        self._token = 0
        self._armed = False
        self._started_at_s = 0.0
        self._limit_s = 0.0
        self._displayed_s = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def armed(self) -> bool:
        return self._armed

    def arm(self, *, started_at_s: float, limit_s: float) -> None:
        if limit_s < 0.0:
            raise ValueError("limit_s must be >= 0")
        self.disarm()
        self._token += 1
        self._armed = True
        self._started_at_s = float(started_at_s)
        self._limit_s = float(limit_s)
        self._displayed_s = int(math.ceil(self._limit_s))
        self._spawn(self._token)

    def disarm(self) -> None:
        self._token += 1
        self._armed = False
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    def remaining_s(self) -> float | None:
        if not self._armed:
            return None
        elapsed = self._clock.now() - self._started_at_s
        return max(0.0, self._limit_s - elapsed)

    def displayed_remaining_s(self) -> int:
        return self._displayed_s

    def tick(self) -> int | None:
        remaining = self.remaining_s()
        if remaining is None:
            return None
        self._displayed_s = int(math.ceil(remaining))
        if remaining <= 0.0:
            # Revoke before calling out so a re-entrant tick cannot fire twice.
            self._armed = False
            self._token += 1
            self._on_expire()
        return self._displayed_s

    async def _run(self, token: int) -> None:
        while self._token == token:
            await asyncio.sleep(self._interval_s)
            if self._token != token:
                return
            self.tick()

    def _spawn(self, token: int) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; timer waits for manual ticks")
            return
        self._task = loop.create_task(self._run(token))
