from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from walkthrough_core.events import Event


@dataclass(frozen=True)
class SceneStep:
    """Events of one navigation and the scene time they span.

    `target` is the step navigated to, or None for events recorded before the
    first navigation (autoplay start, canvas clear).
    """

    idx: int
    target: Optional[int]
    duration: float
    events: List[Event]
