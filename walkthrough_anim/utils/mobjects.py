from __future__ import annotations

from manim import BLACK, DashedLine, Dot, Ellipse, Line, Mobject, Polygon, Text, VGroup, VMobject

from walkthrough_core.enums import ElementKind
from walkthrough_core.geometry import Canvas
from walkthrough_core.renderer import ElementSpec

from walkthrough_anim.utils.normalization import canvas_to_scene, pixels_to_units


def _color(style, default=BLACK):
    return style.get("color") or default


def spec_to_mobject(spec: ElementSpec, canvas: Canvas) -> Mobject:
    """Build the mobject for one element spec, children excluded."""
    g, style = spec.geometry, spec.style
    width = float(style.get("width", 2)) * 1.5

    if spec.kind == ElementKind.POINT:
        radius = pixels_to_units(style.get("radius", 4), canvas)
        return Dot(canvas_to_scene(g["at"], canvas), radius=radius, color=_color(style))

    if spec.kind in (ElementKind.SEGMENT, ElementKind.LINE):
        a, b = (canvas_to_scene(p, canvas) for p in g["points"][:2])
        line_cls = DashedLine if style.get("dash") else Line
        return line_cls(a, b, color=_color(style), stroke_width=width)

    if spec.kind == ElementKind.POLYGON:
        pts = [canvas_to_scene(p, canvas) for p in g["points"]]
        poly = Polygon(*pts, color=_color(style), stroke_width=width)
        if style.get("fill"):
            poly.set_fill(style["fill"], opacity=0.3)
        return poly

    if spec.kind == ElementKind.RIGHT_ANGLE:
        marker = VMobject(color=_color(style), stroke_width=width)
        marker.set_points_as_corners([canvas_to_scene(p, canvas) for p in g["points"]])
        return marker

    if spec.kind == ElementKind.ELLIPSE:
        ellipse = Ellipse(
            width=2 * pixels_to_units(g["rx"], canvas),
            height=2 * pixels_to_units(g["ry"], canvas),
            color=_color(style),
            stroke_width=width,
        )
        ellipse.move_to(canvas_to_scene(g["center"], canvas))
        return ellipse

    if spec.kind in (ElementKind.LABEL, ElementKind.TEXT):
        text = Text(str(style.get("text", "")), font_size=int(style.get("font_size", 16)) * 1.5, color=_color(style))
        text.move_to(canvas_to_scene(g["at"], canvas))
        return text

    return VGroup()
