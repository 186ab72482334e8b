"""
Walkthrough + Manim integration package.

This package provides:
- Event adapters: JSONL recording/replay and a live session stepper
- Scene script compiler that groups navigation events into timed steps
- A manim-backed renderer and the walkthrough scene
- Utilities for coordinate normalization and mobject construction
"""

__all__ = [
    # Subpackages will be imported lazily by users
]
