"""
Timer-driven autoplay.

`AutoplayController` replays a walkthrough from an empty canvas: it advances
to step 1 immediately, then to each following step after a fixed dwell of
``auto_step_delay`` seconds measured from the moment the previous advance was
scheduled. Past the last step it returns to IDLE and leaves the diagram fully
drawn.
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import NavigatorConfig
from .enums import AutoplayState
from .events import AutoplayStarted, AutoplayStopped
from .navigator import Navigator
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class AutoplayController:
    """IDLE/RUNNING state machine that calls `navigate_to(n + 1)` on a timer."""

    def __init__(self, navigator: Navigator, scheduler: Scheduler, config: NavigatorConfig | None = None):
        self.navigator = navigator
        self.scheduler = scheduler
        self.config = config or navigator.config
        self.state = AutoplayState.IDLE
        self.current_auto_step = 0
        self.pending_timer: Optional[TimerHandle] = None
        self.last_error: Optional[BaseException] = None

    @property
    def auto_mode_active(self) -> bool:
        return self.state == AutoplayState.RUNNING

    def start(self) -> bool:
        """Clear the canvas and play from step 1. Ignored unless IDLE."""
        if self.state != AutoplayState.IDLE:
            return False
        self.navigator.clear()
        self.state = AutoplayState.RUNNING
        self.current_auto_step = 1
        self.last_error = None
        self.navigator.emit(AutoplayStarted, total=self.navigator.total)
        logger.info("Autoplay started (%d steps, %.2fs per step)", self.navigator.total, self.config.auto_step_delay)
        self._advance()
        return True

    def stop(self, reason: str = "stopped") -> bool:
        """Cancel the pending advance and leave the diagram as it is. Ignored unless RUNNING."""
        if self.state != AutoplayState.RUNNING:
            return False
        if self.pending_timer is not None:
            self.pending_timer.cancel()
            self.pending_timer = None
        self.state = AutoplayState.IDLE
        self.navigator.emit(AutoplayStopped, reason=reason, step=self.navigator.current_step)
        logger.info("Autoplay stopped at step %d (%s)", self.navigator.current_step, reason)
        return True

    def toggle(self) -> bool:
        """Start when idle, stop when running. Returns the new `auto_mode_active`."""
        if self.auto_mode_active:
            self.stop()
        else:
            self.start()
        return self.auto_mode_active

    def _tick(self) -> None:
        self.pending_timer = None
        if self.state != AutoplayState.RUNNING:
            return
        self.current_auto_step += 1
        self._advance()

    def _advance(self) -> None:
        if self.current_auto_step > self.navigator.total:
            self.stop("finished")
            return
        try:
            self.navigator.navigate_to(self.current_auto_step)
        except Exception as exc:
            self.last_error = exc
            logger.exception("Autoplay failed at step %d", self.current_auto_step)
            self.stop("error")
            raise
        self.pending_timer = self.scheduler.call_later(self.config.auto_step_delay, self._tick)
