"""
Draw procedure contract.

`DrawContext` is the only thing a step's draw procedure sees. It stages every
element the procedure creates; the navigator commits the staged elements to
the store only after the procedure returns normally, so a failing step never
leaves part of itself behind.

Execution modes:

- instant (``ctx.animate`` is False): elements are created in their final
  visible state, no timers are involved and transient guides are not created
- animated: elements are created hidden and a chain of tweens reveals them;
  the chain's completion marks the step complete

Unsatisfiable geometry is handled with `construct` / `skip`: the condition is
logged, dependent keys are recorded as skipped and the rest of the step is
kept.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Set, Tuple, Union

from .animation import AnimationChain
from .errors import DuplicateKeyError, ElementContractError, UnsatisfiableGeometryError
from .renderer import HIDDEN_STATE, VISIBLE_STATE, ElementSpec, Handle

if TYPE_CHECKING:
    from .navigator import Navigator
    from .steps import StepDefinition

logger = logging.getLogger(__name__)


class DrawContext:
    """Staging area and helper API handed to a step's draw procedure."""

    def __init__(self, navigator: "Navigator", step: "StepDefinition", animate: bool):
        self.navigator = navigator
        self.step = step
        self.animate = animate
        self.config = navigator.config
        self.chain = AnimationChain(navigator.renderer, step.ordinal)
        self.staged: Dict[str, Union[Handle, List[Handle]]] = {}
        self.skipped: Dict[str, str] = {}
        self.explanations: List[str] = []
        self._declared: Set[str] = set(step.element_keys)

    # ----- shared state -----
    @property
    def ordinal(self) -> int:
        return self.step.ordinal

    @property
    def canvas(self):
        return self.navigator.canvas

    @property
    def values(self) -> Dict[str, Any]:
        """Named constructions shared across the steps of this session."""
        return self.navigator.values

    @property
    def inputs(self) -> Dict[str, Tuple[float, float]]:
        """Base point positions, with any user moves applied."""
        return self.navigator.input_points()

    @property
    def reveal_duration(self) -> float:
        return self.config.anim_duration * 0.5

    # ----- element creation -----
    def _claim(self, key: str) -> None:
        if key not in self._declared:
            raise ElementContractError(f"step {self.ordinal} created undeclared element {key!r}")
        store = self.navigator.store
        if key in self.staged or key in self.skipped or store.is_settled(key):
            raise DuplicateKeyError(key, store.owner(key) or self.ordinal)

    def _create(self, spec: ElementSpec) -> Handle:
        if self.animate:
            return self.navigator.renderer.create_element(spec.with_state(HIDDEN_STATE))
        return self.navigator.renderer.create_element(spec.with_state(VISIBLE_STATE))

    def element(
        self,
        key: str,
        spec: ElementSpec,
        duration: Optional[float] = None,
        join: bool = False,
    ) -> Handle:
        """Create the element owned by `key`.

        In animated mode a reveal tween is appended to the step's chain; with
        `join=True` it runs together with the previous reveal.
        """
        self._claim(key)
        handle = self._create(spec)
        self.staged[key] = handle
        if self.animate:
            self.chain.tween(
                handle,
                VISIBLE_STATE,
                self.reveal_duration if duration is None else duration,
                from_state=HIDDEN_STATE,
                join=join,
            )
        return handle

    def elements(self, key: str, specs: Sequence[ElementSpec], duration: Optional[float] = None) -> List[Handle]:
        """Create several handles stored together under one key; revealed together."""
        self._claim(key)
        handles = [self._create(s) for s in specs]
        self.staged[key] = handles
        if self.animate:
            for i, h in enumerate(handles):
                self.chain.tween(
                    h,
                    VISIBLE_STATE,
                    self.reveal_duration if duration is None else duration,
                    from_state=HIDDEN_STATE,
                    join=i > 0,
                )
        return handles

    def transient(self, spec: ElementSpec, hold: Optional[float] = None) -> Optional[Handle]:
        """Construction guide that appears, holds, and is disposed by the chain.

        Not tracked in the store. Returns None in instant mode.
        """
        if not self.animate:
            return None
        handle = self.navigator.renderer.create_element(spec.with_state(HIDDEN_STATE))
        self.chain.adopt(handle)
        self.chain.tween(handle, VISIBLE_STATE, self.reveal_duration, from_state=HIDDEN_STATE)
        self.chain.tween(handle, {"opacity": 0.0}, self.config.anim_duration if hold is None else hold)
        self.chain.release(handle)
        return handle

    # ----- geometric failure tolerance -----
    def construct(self, name: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a geometric construction, recording the result in `values`.

        Returns None (and logs) when the construction has no solution.
        """
        try:
            result = fn(*args)
        except UnsatisfiableGeometryError as exc:
            logger.warning("Step %d: cannot construct %s (%s)", self.ordinal, name, exc.reason)
            self.values.pop(name, None)
            return None
        if result is None:
            logger.warning("Step %d: cannot construct %s (no solution)", self.ordinal, name)
            self.values.pop(name, None)
            return None
        self.values[name] = result
        return result

    def skip(self, *keys: str, reason: str = "unsatisfiable geometry") -> None:
        """Record declared keys that will not be created."""
        for key in keys:
            self._claim(key)
            self.skipped[key] = reason
            logger.warning("Step %d: skipping element %r (%s)", self.ordinal, key, reason)

    # ----- explanation side-channel -----
    def explain(self, text: str) -> None:
        self.explanations.append(text)

    # ----- commit / discard (navigator side) -----
    def unresolved(self) -> List[str]:
        return [k for k in self.step.element_keys if k not in self.staged and k not in self.skipped]

    def verify(self) -> None:
        missing = self.unresolved()
        if missing:
            raise ElementContractError(
                f"step {self.ordinal} finished without creating or skipping {missing}"
            )

    def discard(self) -> None:
        """Dispose everything staged; used when the draw procedure failed."""
        renderer = self.navigator.renderer
        for entry in self.staged.values():
            for h in entry if isinstance(entry, list) else [entry]:
                renderer.dispose_element(h)
        self.staged.clear()
        self.skipped.clear()
        self.chain.discard()

    def entries(self) -> List[Tuple[str, Union[Handle, List[Handle]]]]:
        """Staged entries in declared key order."""
        return [(k, self.staged[k]) for k in self.step.element_keys if k in self.staged]
