from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from manim import BLACK, DOWN, Animation, Text

from walkthrough_core.events import ExplanationShown
from walkthrough_core.geometry import Canvas
from walkthrough_core.renderer import CancelToken, ElementSpec, Handle, SceneRenderer
from walkthrough_core.scheduler import VirtualScheduler
from walkthrough_core.session import WalkthroughSession

from walkthrough_anim.utils.mobjects import spec_to_mobject
from walkthrough_anim.utils.normalization import clamp_opacity

logger = logging.getLogger(__name__)


class ManimRenderer(SceneRenderer):
    """Renderer that mirrors the scene graph into mobjects of a manim scene.

    Only opacity is rendered; scale is tracked in handle state but a mobject
    scaled to zero cannot be scaled back. Started tweens are queued and turned
    into manim animations by `drain()`.
    """

    def __init__(self, scene, scheduler: VirtualScheduler, canvas: Canvas):
        super().__init__(scheduler)
        self.scene = scene
        self.canvas = canvas
        self._queued: List[Tuple[Handle, Dict[str, float], CancelToken]] = []

    def create_element(self, spec: ElementSpec) -> Handle:
        handle = self._build(spec)
        self._realise(handle)
        self._set_opacity(handle, handle.state.get("opacity", 1.0))
        self.scene.add(handle.native["mobject"])
        return handle

    def _realise(self, handle: Handle) -> None:
        for child in handle.children:
            self._realise(child)
        mob = spec_to_mobject(handle.spec, self.canvas)
        if handle.children:
            mob.add(*[c.native["mobject"] for c in handle.children])
        handle.native["mobject"] = mob

    def dispose_element(self, handle: Handle) -> None:
        if not handle.disposed and "mobject" in handle.native:
            self.scene.remove(handle.native["mobject"])
        super().dispose_element(handle)

    def _apply(self, handle: Handle, state: Dict[str, float]) -> None:
        super()._apply(handle, state)
        if "opacity" in state:
            self._set_opacity(handle, state["opacity"])

    def _set_opacity(self, handle: Handle, opacity: float) -> None:
        handle.native["mobject"].set_opacity(clamp_opacity(opacity))

    def animate(self, handle, from_state, to_state, duration, on_complete=None) -> CancelToken:
        token = super().animate(handle, from_state, to_state, duration, on_complete)
        self._queued.append((handle, dict(to_state), token))
        return token

    def drain(self) -> List[Animation]:
        """Animations for tweens started since the last drain and still live."""
        anims: List[Animation] = []
        for handle, to_state, token in self._queued:
            if token.cancelled or handle.disposed or "opacity" not in to_state:
                continue
            anims.append(handle.native["mobject"].animate.set_opacity(clamp_opacity(to_state["opacity"])))
        self._queued.clear()
        return anims


class WalkthroughSceneMixin:
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)  # type: ignore[misc]
        self._caption: Optional[Text] = None

    @property
    def time_scale(self) -> float:
        # set by the runner after construction
        return float(getattr(self, "_time_scale", 1.0))

    def attach_session(self, session: WalkthroughSession) -> None:
        session.subscribe(self._on_event)

    def _on_event(self, event: Any) -> None:
        if isinstance(event, ExplanationShown):
            self.show_caption(event.text)

    def show_caption(self, text: Optional[str]) -> None:
        if self._caption is not None:
            self.remove(self._caption)  # type: ignore[attr-defined]
            self._caption = None
        if text:
            self._caption = Text(text, font_size=22, color=BLACK).to_edge(DOWN)
            self.add(self._caption)  # type: ignore[attr-defined]

    def play_until_idle(self, scheduler: VirtualScheduler, renderer: ManimRenderer, limit: int = 10_000) -> int:
        """Advance the virtual clock timer by timer, playing queued tweens in between."""
        played = 0
        while played < limit:
            due = scheduler.next_due()
            if due is None:
                break
            dt = max(0.0, due - scheduler.now())
            anims = renderer.drain()
            run_time = max(dt, 1.0 / 30.0) * self.time_scale
            if anims:
                self.play(*anims, run_time=run_time)  # type: ignore[attr-defined]
            elif dt > 0:
                self.wait(run_time)  # type: ignore[attr-defined]
            scheduler.advance(dt)
            played += 1
        return played

    def run_plan(self, session: WalkthroughSession, renderer: ManimRenderer, plan: Any, hold: float = 1.0) -> None:
        """Run 'autoplay' or a list of step targets against the session."""
        scheduler = session.scheduler
        if plan == "autoplay":
            session.toggle_autoplay()
            self.play_until_idle(scheduler, renderer)
        else:
            for target in plan:
                session.request_step(int(target))
                self.play_until_idle(scheduler, renderer)
                self.wait(hold * self.time_scale)  # type: ignore[attr-defined]
        logger.info("Rendered plan %r ending at step %d", plan, session.current_step)
