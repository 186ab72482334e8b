from __future__ import annotations

from typing import Iterator, List

from walkthrough_core.config import NavigatorConfig
from walkthrough_core.events import Event
from walkthrough_core.renderer import Renderer
from walkthrough_core.scheduler import VirtualScheduler
from walkthrough_core.session import WalkthroughSession
from walkthrough_core.steps import StepRegistry

from walkthrough_anim.adapters.base import WalkthroughStepper


class SessionStepper(WalkthroughStepper):
    """Drives a session on a virtual clock and records the events it publishes.

    Every request is followed by running the clock until the session is idle,
    so recorded events carry the times at which a live session would emit them.
    """

    def __init__(self, registry: StepRegistry, config: NavigatorConfig | None = None, renderer: Renderer | None = None):
        self.registry = registry
        self.config = config or NavigatorConfig()
        self.scheduler = VirtualScheduler()
        self.session = WalkthroughSession(registry, renderer=renderer, scheduler=self.scheduler, config=self.config)
        self.events: List[Event] = []
        self.session.subscribe(self.events.append)

    def reset(self) -> None:
        self.session.request_clear()
        self.scheduler.run_until_idle()

    def goto(self, target: int) -> None:
        self.session.request_step(target)
        self.scheduler.run_until_idle()

    def autoplay(self) -> None:
        """Play the whole walkthrough from an empty canvas."""
        self.session.toggle_autoplay()
        self.scheduler.run_until_idle()

    def stream_events(self) -> Iterator[Event]:
        # Default script: autoplay through every step unless something was already driven
        if not self.events:
            self.autoplay()
        yield from list(self.events)
