from __future__ import annotations

from typing import Iterable, List, Optional

from walkthrough_core.events import Event, NavigationStarted

from walkthrough_anim.models.scene_step import SceneStep


def _close(steps: List[SceneStep], target: Optional[int], events: List[Event], start_t, end_t, default: float) -> None:
    if start_t is not None and end_t is not None and end_t > start_t:
        duration = end_t - start_t
    else:
        duration = default
    steps.append(SceneStep(idx=len(steps), target=target, duration=float(max(0.0, duration)), events=events))


def compile_events_to_steps(events: Iterable[Event], default_step_duration: float = 0.5) -> List[SceneStep]:
    """Group events into one scene step per navigation.

    A step starts at each `NavigationStarted` and lasts until the next one
    starts, so the autoplay dwell and trailing animations belong to the step
    that caused them. Events without timestamps fall back to
    `default_step_duration`.
    """
    steps: List[SceneStep] = []
    current: List[Event] = []
    target: Optional[int] = None
    start_t = None
    last_t = None

    for ev in events:
        t = getattr(ev, "t", None)
        if isinstance(ev, NavigationStarted):
            if current:
                _close(steps, target, current, start_t, t if t is not None else last_t, default_step_duration)
            current = []
            target = ev.to_step
            start_t = t
        elif not current and start_t is None:
            start_t = t
        current.append(ev)
        if t is not None:
            last_t = t

    if current:
        _close(steps, target, current, start_t, last_t, default_step_duration)
    return steps
