"""
Cancellable animation chains.

A chain is an ordered list of stages. A stage is either a group of tweens
that run together or a plain callback. The next stage starts when every tween
of the current stage has completed. Before issuing anything, each stage
checks that the chain is still running; a cancelled chain therefore never
touches a handle again, even if a late renderer callback fires.

Transient elements (construction guides) are owned by the chain and are
disposed when the chain completes or is cancelled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from .enums import ChainStatus
from .renderer import CancelToken, Handle, Renderer

logger = logging.getLogger(__name__)


@dataclass
class Tween:
    handle: Handle
    to_state: Dict[str, float]
    duration: float
    from_state: Optional[Dict[str, float]] = None


Stage = Union[List[Tween], Callable[[], None]]


class AnimationChain:
    """Sequence of tween stages owned by one step."""

    def __init__(self, renderer: Renderer, owner: int):
        self.renderer = renderer
        self.owner = owner
        self.status = ChainStatus.PENDING
        self._stages: List[Stage] = []
        self._tokens: List[CancelToken] = []
        self._transients: List[Handle] = []
        self._callbacks: List[Callable[[], None]] = []
        self._index = 0

    def __len__(self) -> int:
        return len(self._stages)

    # ----- building -----
    def tween(
        self,
        handle: Handle,
        to_state: Dict[str, float],
        duration: float,
        from_state: Optional[Dict[str, float]] = None,
        join: bool = False,
    ) -> "AnimationChain":
        """Append a tween. With `join=True` it runs together with the previous tween stage."""
        tw = Tween(handle, dict(to_state), float(duration), from_state)
        if join and self._stages and isinstance(self._stages[-1], list):
            self._stages[-1].append(tw)
        else:
            self._stages.append([tw])
        return self

    def call(self, fn: Callable[[], None]) -> "AnimationChain":
        self._stages.append(fn)
        return self

    def adopt(self, handle: Handle) -> None:
        """Take ownership of a transient handle."""
        self._transients.append(handle)

    def release(self, handle: Handle) -> "AnimationChain":
        """Append a stage that disposes an adopted transient handle."""
        return self.call(lambda: self._dispose_transient(handle))

    def on_complete(self, fn: Callable[[], None]) -> None:
        self._callbacks.append(fn)

    # ----- lifecycle -----
    @property
    def active(self) -> bool:
        return self.status in (ChainStatus.PENDING, ChainStatus.RUNNING)

    def start(self) -> None:
        if self.status != ChainStatus.PENDING:
            return
        self.status = ChainStatus.RUNNING
        self._run_stage(0)

    def cancel(self) -> bool:
        """Stop issuing mutations and dispose transients. Returns False if already settled."""
        if not self.active:
            return False
        self.status = ChainStatus.CANCELLED
        for token in self._tokens:
            token.cancel()
        self._tokens.clear()
        self._dispose_transients()
        logger.debug("Cancelled chain for step %d at stage %d/%d", self.owner, self._index, len(self._stages))
        return True

    def discard(self) -> None:
        """Drop a chain that never started, disposing its transients."""
        if self.status == ChainStatus.PENDING:
            self.status = ChainStatus.CANCELLED
            self._dispose_transients()

    # ----- internals -----
    def _run_stage(self, index: int) -> None:
        if self.status != ChainStatus.RUNNING:
            return
        self._index = index
        self._tokens.clear()
        if index >= len(self._stages):
            self._finish()
            return

        stage = self._stages[index]
        if callable(stage):
            stage()
            self._run_stage(index + 1)
            return
        if not stage:
            self._run_stage(index + 1)
            return

        remaining = [len(stage)]

        def _tween_done() -> None:
            if self.status != ChainStatus.RUNNING or self._index != index:
                return
            remaining[0] -= 1
            if remaining[0] == 0:
                self._run_stage(index + 1)

        for tw in stage:
            if self.status != ChainStatus.RUNNING or self._index != index:
                break
            token = self.renderer.animate(tw.handle, tw.from_state, tw.to_state, tw.duration, _tween_done)
            self._tokens.append(token)

    def _finish(self) -> None:
        self._dispose_transients()
        self.status = ChainStatus.COMPLETED
        for fn in self._callbacks:
            fn()

    def _dispose_transient(self, handle: Handle) -> None:
        if handle in self._transients:
            self._transients.remove(handle)
        self.renderer.dispose_element(handle)

    def _dispose_transients(self) -> None:
        while self._transients:
            self.renderer.dispose_element(self._transients.pop())
