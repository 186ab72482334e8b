"""
Renderer protocol and the in-memory scene renderer.

The navigator never draws anything itself. It issues three commands to a
`Renderer`:

- `create_element(spec) -> Handle`
- `dispose_element(handle)`
- `animate(handle, from_state, to_state, duration, on_complete) -> CancelToken`

`SceneRenderer` is a renderer-agnostic scene graph kept in memory. It is used
by the live service (which streams the scene to a browser), by the CLI, and by
the tests. It rejects any mutation of a disposed handle with
`StaleHandleError`, which turns late animation callbacks into loud failures.
"""

from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from .enums import ElementKind
from .errors import StaleHandleError
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

HIDDEN_STATE: Dict[str, float] = {"opacity": 0.0, "scale": 0.0}
VISIBLE_STATE: Dict[str, float] = {"opacity": 1.0, "scale": 1.0}


@dataclass(frozen=True)
class ElementSpec:
    """Renderer-neutral description of one visual element.

    Attributes:
        kind: What to draw
        geometry: Canvas coordinates, e.g. {"at": (x, y)} or {"points": [...]}
        style: Presentation hints (color, width, dash, text, font_size)
        state: Animatable properties applied at creation (opacity, scale)
        children: Nested specs realised as child handles of a composite
    """

    kind: ElementKind
    geometry: Dict[str, Any] = field(default_factory=dict)
    style: Dict[str, Any] = field(default_factory=dict)
    state: Dict[str, float] = field(default_factory=dict)
    children: Tuple["ElementSpec", ...] = ()

    def with_state(self, state: Dict[str, float]) -> "ElementSpec":
        """Return a copy whose state (and children's state) is `state`."""
        return replace(
            self,
            state=dict(state),
            children=tuple(c.with_state(state) for c in self.children),
        )


@dataclass(eq=False)
class Handle:
    """Opaque reference to a renderer-owned resource.

    Handles compare by identity. `native` holds whatever object the concrete
    renderer uses (a dict in `SceneRenderer`, a Mobject in `ManimRenderer`).
    """

    id: int
    kind: ElementKind
    spec: ElementSpec
    state: Dict[str, float] = field(default_factory=dict)
    children: List["Handle"] = field(default_factory=list)
    native: Any = None
    disposed: bool = False

    def iter_tree(self):
        yield self
        for child in self.children:
            yield from child.iter_tree()


class CancelToken:
    """Cancellation token returned by `Renderer.animate`.

    Cancelling is idempotent and immediate: the renderer stops issuing
    mutations for the tween; state already applied is left as is.
    """

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None):
        self._cancelled = False
        self._on_cancel = on_cancel

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()
            self._on_cancel = None


class Renderer(ABC):
    @abstractmethod
    def create_element(self, spec: ElementSpec) -> Handle:
        ...

    @abstractmethod
    def dispose_element(self, handle: Handle) -> None:
        ...

    @abstractmethod
    def animate(
        self,
        handle: Handle,
        from_state: Optional[Dict[str, float]],
        to_state: Dict[str, float],
        duration: float,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> CancelToken:
        ...


class SceneRenderer(Renderer):
    """In-memory scene graph renderer.

    Tweens are instantaneous state jumps scheduled `duration` seconds after
    they start: `from_state` is applied immediately, `to_state` when the timer
    fires, followed by `on_complete`.
    """

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self.live: Dict[int, Handle] = {}
        self._ids = itertools.count(1)
        self.stats = {
            "created": 0,
            "disposed": 0,
            "tweens_started": 0,
            "tweens_completed": 0,
            "tweens_cancelled": 0,
        }

    # ----- creation / disposal -----
    def create_element(self, spec: ElementSpec) -> Handle:
        return self._build(spec)

    def _build(self, spec: ElementSpec) -> Handle:
        handle = Handle(
            id=next(self._ids),
            kind=spec.kind,
            spec=spec,
            state={**VISIBLE_STATE, **spec.state},
        )
        handle.children = [self._build(c) for c in spec.children]
        handle.native = {"geometry": dict(spec.geometry), "style": dict(spec.style)}
        self.live[handle.id] = handle
        self.stats["created"] += 1
        return handle

    def dispose_element(self, handle: Handle) -> None:
        if handle.disposed:
            return
        for child in handle.children:
            self.dispose_element(child)
        handle.disposed = True
        self.live.pop(handle.id, None)
        logger.debug("Disposed %s handle %d", handle.kind.name, handle.id)
        self.stats["disposed"] += 1

    # ----- animation -----
    def _apply(self, handle: Handle, state: Dict[str, float]) -> None:
        if handle.disposed:
            raise StaleHandleError(f"handle {handle.id} ({handle.kind.name}) was disposed")
        for node in handle.iter_tree():
            node.state.update(state)

    def animate(
        self,
        handle: Handle,
        from_state: Optional[Dict[str, float]],
        to_state: Dict[str, float],
        duration: float,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> CancelToken:
        # also rejects stale handles up front
        self._apply(handle, from_state or {})

        timer: List[TimerHandle] = []

        def _cancelled() -> None:
            if timer:
                timer[0].cancel()
            self.stats["tweens_cancelled"] += 1

        token = CancelToken(_cancelled)

        def _finish() -> None:
            if token.cancelled:
                return
            self._apply(handle, to_state)
            self.stats["tweens_completed"] += 1
            if on_complete is not None:
                on_complete()

        self.stats["tweens_started"] += 1
        timer.append(self.scheduler.call_later(duration, _finish))
        return token

    # ----- inspection -----
    def scene(self) -> List[Dict[str, Any]]:
        """Top-level live elements as plain dicts, in creation order."""
        child_ids = {c.id for h in self.live.values() for c in h.children}
        out = []
        for hid in sorted(self.live):
            if hid in child_ids:
                continue
            out.append(describe_handle(self.live[hid]))
        return out


def describe_handle(handle: Handle) -> Dict[str, Any]:
    """JSON-friendly description of a handle tree."""
    return {
        "id": handle.id,
        "kind": handle.kind.name,
        "geometry": _plain(handle.spec.geometry),
        "style": _plain(handle.spec.style),
        "state": dict(handle.state),
        "children": [describe_handle(c) for c in handle.children],
    }


def _plain(value: Any) -> Any:
    # numpy arrays and tuples of coordinates become lists
    if hasattr(value, "tolist"):
        return value.tolist()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
