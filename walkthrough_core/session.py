"""
One interactive walkthrough session.

`WalkthroughSession` bundles the registry, element store, navigator, autoplay
controller, renderer and scheduler of a single visualization instance. It is
the entry point for UI events: every manual request (navigation, clear,
autoplay toggle, moving a base point) stops autoplay and drops a pending
delayed initial step. Resize notifications are debounced before the diagram
is redrawn.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence

from .autoplay import AutoplayController
from .config import NavigatorConfig
from .geometry import Canvas
from .navigator import Navigator
from .renderer import Renderer, SceneRenderer
from .scheduler import Scheduler, TimerHandle, VirtualScheduler
from .steps import StepRegistry
from .store import ElementStore

logger = logging.getLogger(__name__)


class WalkthroughSession:
    """UI-facing facade over a navigator and its autoplay controller."""

    def __init__(
        self,
        registry: StepRegistry,
        renderer: Renderer | None = None,
        scheduler: Scheduler | None = None,
        config: NavigatorConfig | None = None,
    ):
        self.config = config or NavigatorConfig()
        self.scheduler = scheduler or VirtualScheduler()
        self.renderer = renderer or SceneRenderer(self.scheduler)
        self.registry = registry
        self.store = ElementStore(self.renderer)
        self.navigator = Navigator(
            registry,
            self.renderer,
            store=self.store,
            config=self.config,
            canvas=Canvas(self.config.canvas_width, self.config.canvas_height),
            clock=self.scheduler.now,
        )
        self.autoplay = AutoplayController(self.navigator, self.scheduler, self.config)
        self._resize_timer: Optional[TimerHandle] = None
        self._initial_timer: Optional[TimerHandle] = None
        if self.config.initial_step:
            self._initial_timer = self.scheduler.call_later(self.config.initial_step_delay, self._show_initial)

    @classmethod
    def from_yaml(cls, text: str, **kwargs) -> "WalkthroughSession":
        from .compiler import compile_from_yaml

        registry, config = compile_from_yaml(text)
        return cls(registry, config=kwargs.pop("config", None) or config, **kwargs)

    @classmethod
    def from_file(cls, path: str | Path, **kwargs) -> "WalkthroughSession":
        return cls.from_yaml(Path(path).read_text(encoding="utf-8"), **kwargs)

    @property
    def name(self) -> str:
        return self.registry.name

    @property
    def current_step(self) -> int:
        return self.navigator.current_step

    @property
    def auto_mode_active(self) -> bool:
        return self.autoplay.auto_mode_active

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        return self.navigator.subscribe(callback)

    # ----- UI requests -----
    def _cancel_initial(self) -> None:
        if self._initial_timer is not None:
            self._initial_timer.cancel()
            self._initial_timer = None

    def request_step(self, target: int) -> bool:
        self._cancel_initial()
        self.autoplay.stop("manual")
        return self.navigator.navigate_to(target)

    def request_next(self) -> bool:
        return self.request_step(min(self.current_step + 1, self.navigator.total))

    def request_previous(self) -> bool:
        return self.request_step(max(self.current_step - 1, 0))

    def request_clear(self) -> None:
        self._cancel_initial()
        self.autoplay.stop("manual")
        self.navigator.clear()

    def toggle_autoplay(self) -> bool:
        self._cancel_initial()
        return self.autoplay.toggle()

    def set_points(self, points: Dict[str, Sequence[float]]) -> None:
        """Move base points (e.g. a dragged vertex) and redraw the shown step.

        Counts as manual input: autoplay stops and the delayed initial step is
        dropped. Raises `InvalidInputError` for unknown names or bad coordinates.
        """
        self._cancel_initial()
        self.autoplay.stop("manual")
        self.navigator.move_points(points)

    def notify_resize(self, width: float, height: float) -> None:
        """Debounced resize: stop autoplay now, redraw once the size settles."""
        self.autoplay.stop("resize")
        if self._resize_timer is not None:
            self._resize_timer.cancel()
        self._resize_timer = self.scheduler.call_later(self.config.resize_debounce, self._apply_resize, width, height)

    def _apply_resize(self, width: float, height: float) -> None:
        self._resize_timer = None
        logger.debug("Applying resize to %sx%s", width, height)
        self.navigator.resize(width, height)

    def _show_initial(self) -> None:
        self._initial_timer = None
        if self.autoplay.auto_mode_active or self.navigator.current_step != 0:
            return
        self.navigator.navigate_to(self.config.initial_step)

    # ----- lifecycle / inspection -----
    def close(self) -> None:
        self.autoplay.stop("closed")
        for timer in (self._resize_timer, self._initial_timer):
            if timer is not None:
                timer.cancel()
        self._resize_timer = None
        self._initial_timer = None
        self.navigator.clear()

    def snapshot(self) -> Dict[str, Any]:
        snap = self.navigator.snapshot()
        snap["auto_mode_active"] = self.autoplay.auto_mode_active
        snap["auto_step"] = self.autoplay.current_auto_step
        snap["steps"] = self.registry.describe()
        if isinstance(self.renderer, SceneRenderer):
            snap["scene"] = self.renderer.scene()
        return snap
