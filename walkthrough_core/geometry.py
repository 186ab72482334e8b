"""
Planar geometry helpers used by walkthrough step definitions.

All functions are pure. Points are numpy arrays of shape (2,). Constructions
that can fail (parallel lines, degenerate segments) return ``None`` instead of
raising; the draw layer turns ``None`` into a logged, skipped element.

The module also holds the canvas/frame mapping: constructions are computed in
frame units and mapped to canvas pixels only when element specs are built, so
a resize only needs a redraw, not new geometry.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import numpy.typing as npt

Point = npt.NDArray[np.float64]

EPS = 1e-9


def _cross(u: Point, v: Point) -> float:
    return float(u[0] * v[1] - u[1] * v[0])


def as_point(p: Sequence[float] | Point) -> Point:
    arr = np.asarray(p, dtype=float).reshape(-1)
    if arr.shape != (2,):
        raise ValueError(f"expected a 2D point, got shape {arr.shape}")
    return arr


def midpoint(p1, p2) -> Point:
    return (as_point(p1) + as_point(p2)) / 2.0


def distance(p1, p2) -> float:
    return float(np.linalg.norm(as_point(p2) - as_point(p1)))


def perpendicular_foot(point, line_start, line_end) -> Point:
    """Orthogonal projection of `point` onto the line through `line_start`, `line_end`.

    A degenerate line (both ends equal) projects onto `line_start`.
    """
    p, a, b = as_point(point), as_point(line_start), as_point(line_end)
    d = b - a
    length_sq = float(d @ d)
    if length_sq < EPS:
        return a.copy()
    return a + ((p - a) @ d) / length_sq * d


def line_intersection(a1, a2, b1, b2, eps: float = EPS) -> Optional[Point]:
    """Intersection of the infinite lines a1a2 and b1b2, or None if parallel/coincident."""
    p, r = as_point(a1), as_point(a2) - as_point(a1)
    q, s = as_point(b1), as_point(b2) - as_point(b1)
    den = _cross(r, s)
    if abs(den) < eps:
        return None
    t = _cross(q - p, s) / den
    return p + t * r


def segment_ray_intersection(seg_start, seg_end, ray_origin, ray_through, eps: float = 1e-6) -> Optional[Point]:
    """Intersection of segment [seg_start, seg_end] with the ray from `ray_origin` through `ray_through`."""
    p, r = as_point(seg_start), as_point(seg_end) - as_point(seg_start)
    q, s = as_point(ray_origin), as_point(ray_through) - as_point(ray_origin)
    den = _cross(r, s)
    if abs(den) < eps:
        return None
    t = _cross(q - p, s) / den  # along the segment
    u = _cross(q - p, r) / den  # along the ray
    if -eps <= t <= 1 + eps and u >= -eps:
        return p + t * r
    return None


def reflect_point(point, line_start, line_end) -> Point:
    """Mirror image of `point` across the line through `line_start`, `line_end`."""
    p = as_point(point)
    a, b = as_point(line_start), as_point(line_end)
    if float((b - a) @ (b - a)) < EPS:
        return p.copy()
    foot = perpendicular_foot(p, a, b)
    return 2.0 * foot - p


def extend_line(line_start, line_end, factor: float = 2.0) -> Point:
    """Point at `factor` times the vector start->end, measured from `line_start`."""
    a, b = as_point(line_start), as_point(line_end)
    return a + factor * (b - a)


def angle_between(p1, vertex, p3) -> float:
    """Angle at `vertex` in radians; 0 for degenerate configurations."""
    u = as_point(p1) - as_point(vertex)
    v = as_point(p3) - as_point(vertex)
    nu, nv = float(np.linalg.norm(u)), float(np.linalg.norm(v))
    if nu < EPS or nv < EPS:
        return 0.0
    cos = float(np.clip((u @ v) / (nu * nv), -1.0, 1.0))
    return math.acos(cos)


def length_ratio(p1, p2, p3) -> Optional[float]:
    """|p1p2| / |p2p3|, or None when p2 and p3 coincide."""
    den = distance(p2, p3)
    if den < EPS:
        return None
    return distance(p1, p2) / den


def ellipse_point(center, a: float, b: float, theta: float) -> Point:
    c = as_point(center)
    return c + np.array([a * math.cos(theta), b * math.sin(theta)])


def ellipse_ray_intersection(center, a: float, b: float, through) -> Optional[Point]:
    """Where the ray from the ellipse centre through `through` meets the ellipse."""
    c = as_point(center)
    d = as_point(through) - c
    if a <= 0 or b <= 0:
        return None
    k = (d[0] / a) ** 2 + (d[1] / b) ** 2
    if k < EPS:
        return None
    return c + d / math.sqrt(k)


@dataclass(frozen=True)
class Canvas:
    width: float
    height: float


@dataclass(frozen=True)
class Frame:
    """Maps frame units (y up) to canvas pixels (y down)."""

    origin: tuple
    unit: float

    @classmethod
    def fit(cls, canvas: Canvas, scale: float = 0.6, anchor: str = "corner") -> "Frame":
        """Fit a square of side min(width, height) * scale into the canvas.

        - corner: frame (0, 0) is the bottom-left corner of the square, (1, 1) its top-right
        - center: frame (0, 0) is the canvas centre and the square spans -1..1
        """
        size = min(canvas.width, canvas.height) * scale
        if anchor == "center":
            return cls(origin=(canvas.width / 2.0, canvas.height / 2.0), unit=size / 2.0)
        if anchor == "corner":
            return cls(origin=((canvas.width - size) / 2.0, (canvas.height + size) / 2.0), unit=size)
        raise ValueError(f"unknown frame anchor: {anchor!r}")

    def to_canvas(self, p) -> tuple:
        u = as_point(p)
        return (float(self.origin[0] + u[0] * self.unit), float(self.origin[1] - u[1] * self.unit))

    def length(self, units: float) -> float:
        return float(units * self.unit)
