"""
Promotion banner carousel: a two-state machine (idle / transitioning) over the Events sheet.

The transition lock is time based: advancing locks the carousel until settle_delay has
elapsed on the injected clock, so hosts without an event loop (Flask, Streamlit) only need
to read the state. Autoplay fires advance("next") every autoplay_interval; asyncio hosts
run it with start()/close(), others call poll().
"""

import time
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

IDLE = "idle"
TRANSITIONING = "transitioning"
NEXT = "next"
PREV = "prev"

# (enter, exit) animation for the incoming and outgoing slide
TRANSITION_STYLES: Dict[str, Tuple[str, str]] = {
    NEXT: ("slide-in-right", "slide-out-left"),
    PREV: ("slide-in-left", "slide-out-right"),
}


class PromotionCarousel:

    def __init__(
        self,
        entries: Optional[Sequence[Any]] = None,
        settle_delay: Optional[float] = None,
        autoplay_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if settle_delay is None or autoplay_interval is None:
            from config.settings import CAROUSEL_AUTOPLAY_INTERVAL, CAROUSEL_SETTLE_DELAY
            settle_delay = CAROUSEL_SETTLE_DELAY if settle_delay is None else settle_delay
            autoplay_interval = CAROUSEL_AUTOPLAY_INTERVAL if autoplay_interval is None else autoplay_interval
        self.settle_delay = settle_delay
        self.autoplay_interval = autoplay_interval
        self._clock = clock
        self.entries: List[Any] = list(entries or [])
        self.current_index = 0
        self.direction = NEXT
        self._settle_at: Optional[float] = None
        self._next_tick_at: Optional[float] = None
        self._task: Optional["asyncio.Task"] = None
        self._restart_autoplay()

    # ----- state -----

    @property
    def is_transitioning(self) -> bool:
        if self._settle_at is None:
            return False
        if self._clock() >= self._settle_at:
            self._settle_at = None
            return False
        return True

    @property
    def state(self) -> str:
        return TRANSITIONING if self.is_transitioning else IDLE

    @property
    def current(self) -> Optional[Any]:
        return self.entries[self.current_index] if self.entries else None

    def settle(self) -> None:
        """Release the transition lock now (end of the slide animation)."""
        self._settle_at = None

    # ----- transitions -----

    def advance(self, direction: str = NEXT) -> bool:
        """
        Move one slide, wrapping around. Ignored while transitioning, when there are
        no entries, or for an unknown direction.
        """
        if direction not in (NEXT, PREV):
            logger.warning("Ignoring carousel advance with unknown direction %r", direction)
            return False
        n = len(self.entries)
        if n == 0 or self.is_transitioning:
            return False
        self._settle_at = self._clock() + self.settle_delay
        self.direction = direction
        if direction == NEXT:
            self.current_index = (self.current_index + 1) % n
        else:
            self.current_index = (self.current_index - 1 + n) % n
        return True

    def goto_index(self, index: int) -> bool:
        """Jump to index; direction follows whether it is ahead of or behind the current slide."""
        try:
            index = int(index)
        except (TypeError, ValueError):
            return False
        n = len(self.entries)
        if not 0 <= index < n or index == self.current_index or self.is_transitioning:
            return False
        self._settle_at = self._clock() + self.settle_delay
        self.direction = NEXT if index > self.current_index else PREV
        self.current_index = index
        return True

    def transition_style(self) -> Dict[str, Any]:
        enter, exit_ = TRANSITION_STYLES[self.direction]
        return {"direction": self.direction, "enter": enter, "exit": exit_, "animating": self.is_transitioning}

    # ----- entries / autoplay -----

    def set_entries(self, entries: Sequence[Any]) -> None:
        """Replace banner entries; autoplay restarts when the count changes."""
        old_count = len(self.entries)
        self.entries = list(entries)
        if self.current_index >= len(self.entries):
            self.current_index = 0
        if len(self.entries) != old_count:
            self._restart_autoplay()

    @property
    def autoplay_active(self) -> bool:
        return self._next_tick_at is not None

    def _restart_autoplay(self) -> None:
        if len(self.entries) <= 1:
            self._next_tick_at = None
        else:
            self._next_tick_at = self._clock() + self.autoplay_interval

    def poll(self) -> bool:
        """Fire a due autoplay tick. Ticks that land mid-transition are dropped, not queued."""
        if self._next_tick_at is None or self._clock() < self._next_tick_at:
            return False
        self._next_tick_at = self._clock() + self.autoplay_interval
        return self.advance(NEXT)

    async def run(self) -> None:
        """Cooperative autoplay loop; cancel the task (or call close()) to stop."""
        while True:
            if self._next_tick_at is None:
                await asyncio.sleep(self.autoplay_interval)
                continue
            await asyncio.sleep(max(0.0, self._next_tick_at - self._clock()))
            self.poll()

    def start(self) -> "asyncio.Task":
        """Schedule run() on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._next_tick_at = None
        self._settle_at = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [e.to_dict() if hasattr(e, "to_dict") else e for e in self.entries],
            "current_index": self.current_index,
            "state": self.state,
            "transition": self.transition_style(),
            "autoplay": self.autoplay_active,
        }
