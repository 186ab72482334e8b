from __future__ import annotations

from manim import Scene, WHITE

from walkthrough_core.compiler import compile_from_file
from walkthrough_core.geometry import Canvas
from walkthrough_core.scheduler import VirtualScheduler
from walkthrough_core.session import WalkthroughSession

from walkthrough_anim.scenes.base_scene import ManimRenderer, WalkthroughSceneMixin


class WalkthroughScene(WalkthroughSceneMixin, Scene):
    """Renders one walkthrough: autoplay by default, or a list of step targets.

    Attributes set by the runner before `render()`:
        _walkthrough_path: YAML walkthrough definition
        _plan: "autoplay" or a list of step ordinals
    """

    def construct(self):
        self.camera.background_color = WHITE
        registry, config = compile_from_file(getattr(self, "_walkthrough_path"))
        scheduler = VirtualScheduler()
        renderer = ManimRenderer(self, scheduler, Canvas(config.canvas_width, config.canvas_height))
        session = WalkthroughSession(registry, renderer=renderer, scheduler=scheduler, config=config)
        self.attach_session(session)
        self.run_plan(session, renderer, getattr(self, "_plan", "autoplay"))
