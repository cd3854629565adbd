"""
Dual countdown clock.

ClockState is a frozen value with a pure tick(); DualClock owns the current
state plus an asyncio ticker task that calls back into the orchestrator once
per interval. The ticker is restarted on every turn switch, so a partial
second never carries over to the other side.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from chessduel.events import Side

logger = logging.getLogger(__name__)

DEFAULT_STARTING_SECONDS = 600


@dataclass(frozen=True)
class ClockState:
    player_remaining: int = DEFAULT_STARTING_SECONDS
    opponent_remaining: int = DEFAULT_STARTING_SECONDS

    def remaining(self, side: Side) -> int:
        return self.player_remaining if side == "player" else self.opponent_remaining

    def tick(self, side: Side) -> ClockState:
        """One elapsed second against `side`. Never goes below zero."""
        if side == "player":
            return replace(self, player_remaining=max(0, self.player_remaining - 1))
        return replace(self, opponent_remaining=max(0, self.opponent_remaining - 1))

    def expired(self, side: Side) -> bool:
        return self.remaining(side) <= 0


class DualClock:
    """
    Owns the ClockState and the background ticker.

    Args:
        starting_seconds: Budget per side on reset.
        on_tick: Called once per interval while running (the orchestrator's tick()).
        tick_interval: Seconds between ticks; tests shrink this or drive tick() by hand.
    """

    def __init__(
        self,
        starting_seconds: int = DEFAULT_STARTING_SECONDS,
        on_tick: Callable[[], None] | None = None,
        tick_interval: float = 1.0,
    ) -> None:
        self._starting_seconds = starting_seconds
        self._on_tick = on_tick
        self._tick_interval = tick_interval
        self._state = ClockState(starting_seconds, starting_seconds)
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> ClockState:
        return self._state

    @property
    def starting_seconds(self) -> int:
        return self._starting_seconds

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def bind(self, on_tick: Callable[[], None]) -> None:
        self._on_tick = on_tick

    def reset(self) -> None:
        self.stop()
        self._state = ClockState(self._starting_seconds, self._starting_seconds)

    def tick(self, side: Side) -> ClockState:
        self._state = self._state.tick(side)
        return self._state

    # ------------------------------------------------------------------ #
    # Background ticker                                                    #
    # ------------------------------------------------------------------ #

    def restart(self) -> None:
        """(Re)start the ticker from a fresh interval boundary."""
        self.stop()
        if self._on_tick is None or self._tick_interval <= 0:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            # Never cancel ourselves from inside the tick callback
            if self._task is not asyncio.current_task():
                self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        assert self._on_tick is not None
        while True:
            await asyncio.sleep(self._tick_interval)
            try:
                self._on_tick()
            except Exception:
                logger.exception("Clock tick callback failed")
                return
            # stop() or restart() was called from within the callback
            if self._task is not asyncio.current_task():
                return
