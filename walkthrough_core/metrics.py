"""
Metrics and consistency helpers for walkthrough sessions.

The navigator records the following statistics in `navigator.stats`:
- navigations: navigate_to calls that changed (or attempted to change) the step
- failed_navigations: navigations aborted by a fatal construction error
- steps_drawn: draw procedures committed to the store
- idempotent_draws: draw requests that found the step already in place
- steps_torn_down: steps whose elements were disposed
- chains_cancelled: in-flight animation chains cancelled
- elements_skipped: declared keys skipped because their geometry failed
"""

from __future__ import annotations
from typing import Any, Dict, Set


def expected_keys(registry, step: int) -> Set[str]:
    """Union of the declared element keys of steps 1..step."""
    return registry.keys_through(step)


def settled_keys(navigator) -> Set[str]:
    """Keys currently present or recorded as skipped in the store."""
    return navigator.store.keys() | navigator.store.skipped()


def store_matches_step(navigator) -> bool:
    """True when the store holds exactly the keys of steps 1..current_step."""
    return settled_keys(navigator) == expected_keys(navigator.registry, navigator.current_step)


def key_diff(navigator) -> Dict[str, Set[str]]:
    """Keys missing from / unexpected in the store for the current step."""
    expected = expected_keys(navigator.registry, navigator.current_step)
    actual = settled_keys(navigator)
    return {"missing": expected - actual, "unexpected": actual - expected}


def draw_efficiency(navigator) -> float:
    """Share of draw requests that actually drew something (1.0 when none were made)."""
    drawn = navigator.stats.get("steps_drawn", 0)
    idle = navigator.stats.get("idempotent_draws", 0)
    total = drawn + idle
    return float(drawn) / total if total else 1.0


def summarize(navigator) -> Dict[str, Any]:
    """Stats plus the consistency check, suitable for CLI output."""
    out: Dict[str, Any] = dict(navigator.stats)
    out["current_step"] = navigator.current_step
    out["elements"] = len(navigator.store)
    out["skipped"] = len(navigator.store.skipped())
    out["consistent"] = store_matches_step(navigator)
    out["draw_efficiency"] = draw_efficiency(navigator)
    return out
