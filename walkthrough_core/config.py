"""
Configuration objects for the walkthrough navigator.

Exposes timing and canvas parameters so that visualizations can tune pacing
and layout without editing navigator logic.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Any, Dict


@dataclass
class NavigatorConfig:
    """
    Configuration for `Navigator`, `AutoplayController` and `WalkthroughSession`.

    Timing values are in seconds.
    """

    # Animation pacing
    anim_duration: float = 0.8
    # Fixed wall-clock dwell between autoplay advances
    auto_step_delay: float = 2.5

    # Resize handling
    resize_debounce: float = 0.25

    # Optionally display a step automatically shortly after the session starts
    initial_step: int | None = None
    initial_step_delay: float = 0.5

    # Forward navigation animates only the target step; catch-up steps are instant
    animate_final_step: bool = True

    # Tear down steps drawn by a failed navigate_to before re-raising
    rollback_on_error: bool = True

    # Canvas and construction frame
    canvas_width: float = 800.0
    canvas_height: float = 600.0
    frame_scale: float = 0.6

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "NavigatorConfig":
        """Build a config from a mapping, ignoring unknown keys."""
        cfg = cls()
        if not data:
            return cfg
        return cfg.updated(data)

    def updated(self, overrides: Dict[str, Any]) -> "NavigatorConfig":
        """Return a copy with the known keys of `overrides` applied."""
        known = {f.name for f in fields(self)}
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        for key, value in overrides.items():
            if key in known:
                values[key] = value
        return NavigatorConfig(**values)
