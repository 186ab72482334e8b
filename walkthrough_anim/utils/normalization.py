from __future__ import annotations

from typing import Tuple

from walkthrough_core.geometry import Canvas

# manim's default frame height in scene units
FRAME_HEIGHT = 8.0


def canvas_scale(canvas: Canvas, frame_height: float = FRAME_HEIGHT) -> float:
    """Scene units per canvas pixel."""
    if canvas.height <= 0:
        return 0.0
    return frame_height / canvas.height


def canvas_to_scene(point, canvas: Canvas, frame_height: float = FRAME_HEIGHT) -> Tuple[float, float, float]:
    """Map a canvas pixel position (y down, origin top-left) to scene coordinates (y up, origin centre)."""
    k = canvas_scale(canvas, frame_height)
    x, y = float(point[0]), float(point[1])
    return ((x - canvas.width / 2.0) * k, (canvas.height / 2.0 - y) * k, 0.0)


def pixels_to_units(length: float, canvas: Canvas, frame_height: float = FRAME_HEIGHT) -> float:
    return float(length) * canvas_scale(canvas, frame_height)


def clamp_opacity(value: float) -> float:
    return max(0.0, min(1.0, float(value)))
