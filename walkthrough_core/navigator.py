"""
Incremental Construction Navigator.

The navigator owns the session state of one walkthrough (``current_step``,
the element store, the in-flight animation chains and the explanation
side-channel) and moves the diagram between steps:

1. Navigating to the step already shown is a no-op.
2. Chains of steps that are about to be torn down are cancelled before any
   store mutation.
3. Steps above the target are torn down strictly from the top downwards.
4. Steps ``current_step + 1 .. target`` are drawn in ascending order; only the
   target step is animated, catch-up steps are drawn instantly.
5. ``current_step`` becomes the target only after the whole range succeeded.

If a step raises while the forward range is drawn, the steps drawn by that
call are torn down again (when ``rollback_on_error`` is set), a
`NavigationFailed` event is published and the error propagates with
``current_step`` unchanged.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .animation import AnimationChain
from .config import NavigatorConfig
from .drawing import DrawContext
from .errors import InvalidInputError, MissingPrerequisiteError, StepOutOfRangeError
from .events import (
    AnimationCancelled,
    CanvasCleared,
    CanvasResized,
    ElementCreated,
    ElementDisposed,
    ElementSkipped,
    ExplanationShown,
    InputsChanged,
    NavigationCompleted,
    NavigationFailed,
    NavigationStarted,
    StepCompleted,
    StepDrawn,
    StepTornDown,
)
from .geometry import Canvas
from .renderer import Renderer
from .steps import StepDefinition, StepRegistry
from .store import ElementStore

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], None]


class Navigator:
    """
    Moves a walkthrough diagram between construction steps.

    Attributes:
        registry: Ordered step table
        renderer: Target of every create/dispose/animate command
        store: Live element key -> handle mapping
        current_step: Last step reached by a completed `navigate_to` (0 = empty)
        values: Named constructions shared between the steps' draw procedures
        inputs: Positions of base points moved away from their defaults
        explanation: Text currently shown on the explanation side-channel
    """

    def __init__(
        self,
        registry: StepRegistry,
        renderer: Renderer,
        store: ElementStore | None = None,
        config: NavigatorConfig | None = None,
        canvas: Canvas | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.registry = registry
        self.renderer = renderer
        self.store = store or ElementStore(renderer)
        self.config = config or NavigatorConfig()
        self.canvas = canvas or Canvas(self.config.canvas_width, self.config.canvas_height)
        self.clock = clock
        self.current_step = 0
        self.values: Dict[str, Any] = {}
        self.inputs: Dict[str, Tuple[float, float]] = {}
        self.explanation: Optional[str] = None
        self.explanation_step: Optional[int] = None

        # ordinal of the last step known to be in place while a range is drawn
        self._cursor = 0
        self._chains: Dict[int, List[AnimationChain]] = {}
        self._step_text: Dict[int, str] = {}
        self._newly_drawn: Optional[List[int]] = None
        self._subscribers: List[Subscriber] = []
        self.stats = {
            "navigations": 0,
            "failed_navigations": 0,
            "steps_drawn": 0,
            "idempotent_draws": 0,
            "steps_torn_down": 0,
            "chains_cancelled": 0,
            "elements_skipped": 0,
        }

    @property
    def total(self) -> int:
        return self.registry.total

    # ----- events -----
    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register an event callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, event: Any) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed on %s", type(event).__name__)

    def emit(self, cls, **fields) -> None:
        """Publish an event of type `cls`, stamped with the session clock."""
        self.publish(cls(**fields, t=self.clock() if self.clock else None))

    # ----- explanation side-channel -----
    def _explanation_for(self, ordinal: int) -> Optional[str]:
        return self._step_text.get(ordinal, self.registry[ordinal].explanation)

    def _show_explanation(self, ordinal: int) -> None:
        text = self._explanation_for(ordinal)
        if text is None:
            return
        self.explanation = text
        self.explanation_step = ordinal
        self.emit(ExplanationShown, text=text, step=ordinal)

    def _hide_explanation(self) -> None:
        if self.explanation_step is None:
            return
        step = self.explanation_step
        self.explanation = None
        self.explanation_step = None
        self.emit(ExplanationShown, text=None, step=step)

    # ----- navigation -----
    def _check_target(self, target: Any) -> None:
        if isinstance(target, bool) or not isinstance(target, int) or not 0 <= target <= self.total:
            raise StepOutOfRangeError(target, self.total)

    def _highest_settled(self) -> int:
        for step in reversed(list(self.registry)):
            if any(self.store.is_settled(k) for k in step.element_keys):
                return step.ordinal
        return 0

    def navigate_to(self, target: int, animate: bool = True) -> bool:
        """Move the diagram to `target` (0..N). Returns False when already there.

        With `animate` False the target step is drawn instantly as well.

        Raises:
            StepOutOfRangeError: target outside 0..N
            DuplicateKeyError, MissingPrerequisiteError, ElementContractError:
                fatal construction errors; `current_step` is left unchanged
        """
        self._check_target(target)
        if target == self.current_step and target != 0:
            return False

        start = self.current_step
        self.stats["navigations"] += 1
        self.emit(NavigationStarted, from_step=start, to_step=target)
        logger.debug("Navigating %d -> %d", start, target)

        top = max(start, self._highest_settled())
        doomed = list(range(top, target, -1))
        self.cancel_chains(doomed)
        for ordinal in doomed:
            self.teardown_step(ordinal)
        if target == 0:
            self.values.clear()

        self._cursor = min(start, target)
        self._newly_drawn = []
        try:
            for ordinal in range(self._cursor + 1, target + 1):
                reveal = animate and self.config.animate_final_step and ordinal == target
                self.draw_step(ordinal, animate=reveal)
                self._cursor = ordinal
        except Exception as exc:
            drawn = self._newly_drawn
            self._newly_drawn = None
            if self.config.rollback_on_error and drawn:
                self.cancel_chains(drawn)
                for ordinal in sorted(drawn, reverse=True):
                    self.teardown_step(ordinal)
            self._cursor = self.current_step
            self.stats["failed_navigations"] += 1
            self.emit(NavigationFailed, from_step=start, to_step=target, error=str(exc))
            logger.error("Navigation %d -> %d failed: %s", start, target, exc)
            raise
        self._newly_drawn = None

        self.current_step = target
        self._cursor = target
        if target > 0 and self.explanation_step != target:
            self._show_explanation(target)
        elif target == 0:
            self._hide_explanation()
        self.emit(NavigationCompleted, step=target)
        logger.info("Showing step %d/%d", target, self.total)
        return True

    def draw_step(self, ordinal: int, animate: bool = True) -> bool:
        """Run the draw procedure of step `ordinal` under the draw contract.

        Returns True if the step was drawn, False if it was already in place.
        """
        self._check_target(ordinal)
        if ordinal == 0:
            raise StepOutOfRangeError(ordinal, self.total)
        step = self.registry[ordinal]

        if all(self.store.is_settled(k) for k in step.element_keys):
            self.stats["idempotent_draws"] += 1
            if animate:
                self._show_explanation(ordinal)
            return False

        if self._cursor < ordinal - 1:
            self._ensure_prerequisite(step)

        ctx = DrawContext(self, step, animate)
        try:
            step.draw(ctx)
            ctx.verify()
        except Exception:
            ctx.discard()
            raise

        self._commit(ctx)
        return True

    def _ensure_prerequisite(self, step: StepDefinition) -> None:
        # A skipped first key settles the step but does not satisfy the
        # prerequisite. Steps drawn here are torn down again on failure.
        prerequisite = self.registry[step.ordinal - 1]
        outer, self._newly_drawn = self._newly_drawn, []
        try:
            self.draw_step(prerequisite.ordinal, animate=False)
            if prerequisite.first_key not in self.store:
                raise MissingPrerequisiteError(step.ordinal, prerequisite.ordinal, prerequisite.first_key)
        except Exception:
            for ordinal in sorted(self._newly_drawn, reverse=True):
                self.teardown_step(ordinal)
            self._newly_drawn = []
            raise
        finally:
            drawn, self._newly_drawn = self._newly_drawn, outer
            if outer is not None:
                outer.extend(drawn)

    def _commit(self, ctx: DrawContext) -> None:
        ordinal = ctx.ordinal
        for key, entry in ctx.entries():
            self.store.put(key, entry, owner=ordinal)
            handles = entry if isinstance(entry, list) else [entry]
            kind = handles[0].kind.name if handles else "GROUP"
            self.emit(ElementCreated, key=key, step=ordinal, kind=kind)
        for key, reason in ctx.skipped.items():
            self.store.mark_skipped(key, owner=ordinal)
            self.stats["elements_skipped"] += 1
            self.emit(ElementSkipped, key=key, step=ordinal, reason=reason)
        if ctx.explanations:
            self._step_text[ordinal] = ctx.explanations[-1]
        if self._newly_drawn is not None:
            self._newly_drawn.append(ordinal)
        self.stats["steps_drawn"] += 1
        self.emit(StepDrawn, step=ordinal, animate=ctx.animate)

        if ctx.animate:
            self._show_explanation(ordinal)
            chain = ctx.chain
            self._chains.setdefault(ordinal, []).append(chain)
            chain.on_complete(lambda: self._chain_done(ordinal, chain))
            chain.start()
        else:
            ctx.chain.discard()
            self.emit(StepCompleted, step=ordinal)

    def _chain_done(self, ordinal: int, chain: AnimationChain) -> None:
        chains = self._chains.get(ordinal, [])
        if chain in chains:
            chains.remove(chain)
        if not chains:
            self._chains.pop(ordinal, None)
        self.emit(StepCompleted, step=ordinal)

    # ----- teardown / cancellation -----
    def cancel_chains(self, ordinals: Iterable[int] | None = None) -> int:
        """Cancel in-flight chains of the given steps (all steps when None)."""
        targets = sorted(self._chains, reverse=True) if ordinals is None else list(ordinals)
        cancelled = 0
        for ordinal in targets:
            chains = self._chains.pop(ordinal, [])
            count = sum(1 for c in chains if c.cancel())
            if count:
                cancelled += count
                self.emit(AnimationCancelled, step=ordinal, chains=count)
        self.stats["chains_cancelled"] += cancelled
        return cancelled

    def teardown_step(self, ordinal: int) -> bool:
        """Cancel the step's chains and dispose its elements in reverse key order."""
        step = self.registry[ordinal]
        self.cancel_chains([ordinal])
        removed = 0
        for key in reversed(step.element_keys):
            if not self.store.is_settled(key):
                continue
            self.store.remove(key)
            removed += 1
            self.emit(ElementDisposed, key=key, step=ordinal)
        self._step_text.pop(ordinal, None)
        if self.explanation_step == ordinal:
            self._hide_explanation()
        if not removed:
            return False
        self.stats["steps_torn_down"] += 1
        self.emit(StepTornDown, step=ordinal)
        logger.debug("Tore down step %d (%d elements)", ordinal, removed)
        return True

    def clear(self) -> None:
        """Cancel every chain, dispose every element and reset to step 0."""
        self.cancel_chains()
        removed = self.store.clear()
        self.current_step = 0
        self._cursor = 0
        self.values.clear()
        self._step_text.clear()
        self._hide_explanation()
        self.emit(CanvasCleared)
        logger.debug("Cleared canvas (%d keys)", removed)

    def redraw(self, animate: bool = True) -> None:
        """Full clear, then navigate back to the step that was shown."""
        previous = self.current_step
        self.clear()
        if previous:
            self.navigate_to(previous, animate=animate)

    # ----- base point inputs -----
    def input_points(self) -> Dict[str, Tuple[float, float]]:
        """Current position of every movable base point."""
        return {**self.registry.inputs, **self.inputs}

    def move_points(self, points: Mapping[str, Sequence[float]]) -> None:
        """Move base points and rebuild the shown step from the new positions.

        The whole request is validated before anything changes. The redraw is
        instant; constructions that lose their solution are skipped.

        Raises:
            InvalidInputError: unknown point name or malformed coordinates
        """
        moved: Dict[str, Tuple[float, float]] = {}
        for name, p in points.items():
            if name not in self.registry.inputs:
                raise InvalidInputError(f"{name!r} is not a movable point of {self.registry.name!r}")
            try:
                x, y = (float(c) for c in p)
            except (TypeError, ValueError) as exc:
                raise InvalidInputError(f"point {name!r} must be [x, y], got {p!r}") from exc
            if not (math.isfinite(x) and math.isfinite(y)):
                raise InvalidInputError(f"point {name!r} must be finite, got {p!r}")
            moved[name] = (x, y)
        if not moved:
            return
        for name, p in moved.items():
            if p == self.registry.inputs[name]:
                self.inputs.pop(name, None)
            else:
                self.inputs[name] = p
        self.emit(InputsChanged, points={n: list(p) for n, p in moved.items()})
        logger.debug("Moved %s", ", ".join(sorted(moved)))
        self.redraw(animate=False)

    def resize(self, width: float, height: float) -> None:
        self.canvas = Canvas(float(width), float(height))
        self.emit(CanvasResized, width=self.canvas.width, height=self.canvas.height)
        self.redraw()

    # ----- inspection -----
    def active_chains(self) -> Dict[int, int]:
        return {o: sum(1 for c in cs if c.active) for o, cs in self._chains.items() if any(c.active for c in cs)}

    def is_quiescent(self) -> bool:
        return not self.active_chains()

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly view of the session state."""
        return {
            "name": self.registry.name,
            "title": self.registry.title,
            "current_step": self.current_step,
            "total": self.total,
            "explanation": self.explanation,
            "explanation_step": self.explanation_step,
            "canvas": {"width": self.canvas.width, "height": self.canvas.height},
            "inputs": {n: list(p) for n, p in self.input_points().items()},
            "keys": sorted(self.store.keys()),
            "skipped": sorted(self.store.skipped()),
            "active_chains": self.active_chains(),
            "quiescent": self.is_quiescent(),
            "stats": dict(self.stats),
            "elements": self.store.summary(),
        }
