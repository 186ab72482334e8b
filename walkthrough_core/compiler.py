"""
YAML walkthrough compiler.

Compiles a declarative walkthrough description into a `StepRegistry` whose
draw procedures build element specs from named geometric constructions.

YAML schema:

name: square_perpendicular
title: Perpendiculars in a square
frame:
  anchor: corner        # corner | center
  scale: 0.6
  points:               # base points in frame units (y up)
    A: [0, 1]
    B: [0, 0]
config:                 # optional NavigatorConfig overrides
  auto_step_delay: 2.5
steps:
  - title: Midpoint
    explanation: "E is the midpoint of BC"
    define:             # evaluated in order before the elements
      E: {midpoint: [B, C]}
    elements:
      - {key: pointE, kind: point, at: E}
      - {key: segAE, kind: segment, from: A, to: E}
      - {kind: line, from: B, to: E, transient: true}

Define operations: midpoint, foot, intersect, ray_intersect, reflect, extend,
point, ellipse_point, ellipse_ray, length_ratio, distance, angle (degrees).

Element kinds: point, segment, line, polygon, label, text, right_angle,
ellipse. Every element except a transient guide needs a unique `key`; the
step's declared keys are the element keys in listed order. An element whose
references could not be constructed is skipped, not failed. Text and
explanations may reference scalar values (length_ratio, distance, angle) with
str.format fields, e.g. "OQ/OP = {ratio:.2f}"; a field naming a point is a
compile error.

Frame points are the walkthrough's movable inputs. A session can move them
(`WalkthroughSession.set_points`) and every construction is rebuilt from the
new positions.
"""

from __future__ import annotations

import logging
import string
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

import numpy as np
import yaml

from . import geometry
from .config import NavigatorConfig
from .enums import ElementKind
from .errors import UnsatisfiableGeometryError, WalkthroughCompileError, WalkthroughError
from .renderer import ElementSpec
from .steps import StepDefinition, StepRegistry

logger = logging.getLogger(__name__)


def _point(x, y):
    return np.array([float(x), float(y)])


def _angle_deg(p1, vertex, p3):
    return float(np.degrees(geometry.angle_between(p1, vertex, p3)))


# op name -> (function, argument types, required argument count); p = point, s = scalar
OPERATIONS: Dict[str, Tuple[Callable[..., Any], str, int]] = {
    "midpoint": (geometry.midpoint, "pp", 2),
    "foot": (geometry.perpendicular_foot, "ppp", 3),
    "intersect": (geometry.line_intersection, "pppp", 4),
    "ray_intersect": (geometry.segment_ray_intersection, "pppp", 4),
    "reflect": (geometry.reflect_point, "ppp", 3),
    "extend": (geometry.extend_line, "pps", 2),
    "point": (_point, "ss", 2),
    "ellipse_point": (geometry.ellipse_point, "psss", 4),
    "ellipse_ray": (geometry.ellipse_ray_intersection, "pssp", 4),
    "length_ratio": (geometry.length_ratio, "ppp", 3),
    "distance": (geometry.distance, "pp", 2),
    "angle": (_angle_deg, "ppp", 3),
}

# ops whose result is a number rather than a point
SCALAR_OPS = frozenset({"length_ratio", "distance", "angle"})

# kind -> (ElementKind, point fields, scalar fields)
ELEMENT_KINDS: Dict[str, Tuple[ElementKind, Tuple[str, ...], Tuple[str, ...]]] = {
    "point": (ElementKind.POINT, ("at",), ()),
    "segment": (ElementKind.SEGMENT, ("from", "to"), ()),
    "line": (ElementKind.LINE, ("from", "to"), ("extend",)),
    "polygon": (ElementKind.POLYGON, (), ()),
    "label": (ElementKind.LABEL, ("at",), ()),
    "text": (ElementKind.TEXT, ("at",), ()),
    "right_angle": (ElementKind.RIGHT_ANGLE, ("at", "from", "to"), ("size",)),
    "ellipse": (ElementKind.ELLIPSE, ("center",), ("a", "b")),
}

DEFAULT_STYLES: Dict[str, Dict[str, Any]] = {
    "point": {"color": "#222222", "radius": 4},
    "segment": {"color": "#222222", "width": 2},
    "line": {"color": "#888888", "width": 1, "dash": True},
    "polygon": {"color": "#222222", "width": 2, "fill": None},
    "label": {"color": "#222222", "font_size": 16},
    "text": {"color": "#444444", "font_size": 16},
    "right_angle": {"color": "#c0392b", "width": 1},
    "ellipse": {"color": "#2c3e50", "width": 2},
}


def _format_fields(text: Optional[str]) -> List[str]:
    if not text:
        return []
    names = []
    for _, name, _, _ in string.Formatter().parse(text):
        if name:
            names.append(name)
    return names


@dataclass
class DefineOp:
    name: str
    op: str
    args: List[Any]

    def refs(self) -> List[str]:
        return [a for a in self.args if isinstance(a, str)]


@dataclass
class ElementDef:
    key: Optional[str]
    kind: str
    fields: Dict[str, Any]
    style: Dict[str, Any] = field(default_factory=dict)
    transient: bool = False
    join: bool = False

    def refs(self) -> List[str]:
        out: List[str] = []
        _, point_fields, scalar_fields = ELEMENT_KINDS[self.kind]
        for f in point_fields + scalar_fields:
            v = self.fields.get(f)
            if isinstance(v, str):
                out.append(v)
        if self.kind == "polygon":
            out.extend(p for p in self.fields.get("points", []) if isinstance(p, str))
        if self.kind == "text":
            out.extend(_format_fields(self.fields.get("text")))
        return out


@dataclass(frozen=True)
class FrameDef:
    anchor: str = "corner"
    scale: Optional[float] = None
    points: Tuple[Tuple[str, Tuple[float, float]], ...] = ()


class CompiledStep:
    """Draw procedure of one compiled step."""

    def __init__(self, frame: FrameDef, defines: List[DefineOp], elements: List[ElementDef], explanation: Optional[str]):
        self.frame_def = frame
        self.defines = defines
        self.elements = elements
        self.explanation = explanation

    @property
    def element_keys(self) -> Tuple[str, ...]:
        return tuple(e.key for e in self.elements if not e.transient)

    def __call__(self, ctx) -> None:
        inputs = ctx.inputs
        for name, p in self.frame_def.points:
            ctx.values[name] = np.array(inputs.get(name, p), dtype=float)
        scale = self.frame_def.scale if self.frame_def.scale is not None else ctx.config.frame_scale
        frame = geometry.Frame.fit(ctx.canvas, scale, self.frame_def.anchor)

        for d in self.defines:
            self._define(ctx, d)

        for el in self.elements:
            missing = [r for r in el.refs() if r not in ctx.values]
            if missing:
                reason = f"depends on {', '.join(missing)}"
                if el.transient:
                    logger.warning("Step %d: dropping %s guide (%s)", ctx.ordinal, el.kind, reason)
                else:
                    ctx.skip(el.key, reason=reason)
                continue
            try:
                spec = build_spec(el, ctx.values, frame)
            except UnsatisfiableGeometryError as exc:
                if el.transient:
                    logger.warning("Step %d: dropping %s guide (%s)", ctx.ordinal, el.kind, exc.reason)
                else:
                    ctx.skip(el.key, reason=exc.reason)
                continue
            if el.transient:
                ctx.transient(spec)
            else:
                ctx.element(el.key, spec, join=el.join)

        if self.explanation and _format_fields(self.explanation):
            scalars = {k: v for k, v in ctx.values.items() if np.isscalar(v)}
            if all(n in scalars for n in _format_fields(self.explanation)):
                ctx.explain(self.explanation.format(**scalars))

    def _define(self, ctx, d: DefineOp) -> None:
        fn, types, _ = OPERATIONS[d.op]
        missing = [r for r in d.refs() if r not in ctx.values]
        if missing:
            logger.warning("Step %d: cannot construct %s (depends on %s)", ctx.ordinal, d.name, ", ".join(missing))
            ctx.values.pop(d.name, None)
            return
        args = [_resolve(a, t, ctx.values) for a, t in zip(d.args, types)]
        ctx.construct(d.name, fn, *args)


def _resolve(value: Any, kind: str, values: Dict[str, Any]) -> Any:
    if isinstance(value, str):
        value = values[value]
    if kind == "p":
        return geometry.as_point(value)
    return float(value)


def build_spec(el: ElementDef, values: Dict[str, Any], frame: geometry.Frame) -> ElementSpec:
    """Turn an element definition into a canvas-space `ElementSpec`."""
    kind, _, _ = ELEMENT_KINDS[el.kind]
    style = {**DEFAULT_STYLES[el.kind], **el.style}
    f = el.fields

    def pt(name: str):
        return _resolve(f[name], "p", values)

    if el.kind == "point":
        at = frame.to_canvas(pt("at"))
        label = f.get("label", f["at"] if isinstance(f["at"], str) else None)
        children: Tuple[ElementSpec, ...] = ()
        if label:
            dx, dy = f.get("offset", (10, -10))
            children = (
                ElementSpec(
                    ElementKind.LABEL,
                    geometry={"at": (at[0] + dx, at[1] + dy)},
                    style={"text": str(label), "color": style["color"], "font_size": style.get("font_size", 16)},
                ),
            )
        return ElementSpec(kind, geometry={"at": at}, style=style, children=children)

    if el.kind == "segment":
        return ElementSpec(kind, geometry={"points": [frame.to_canvas(pt("from")), frame.to_canvas(pt("to"))]}, style=style)

    if el.kind == "line":
        a, b = pt("from"), pt("to")
        if geometry.distance(a, b) < geometry.EPS:
            raise UnsatisfiableGeometryError(el.key or "line", "line through coincident points")
        k = _resolve(f.get("extend", 2.0), "s", values)
        ends = [geometry.extend_line(b, a, k), geometry.extend_line(a, b, k)]
        return ElementSpec(kind, geometry={"points": [frame.to_canvas(p) for p in ends]}, style=style)

    if el.kind == "polygon":
        pts = [frame.to_canvas(_resolve(p, "p", values)) for p in f["points"]]
        return ElementSpec(kind, geometry={"points": pts, "closed": True}, style=style)

    if el.kind in ("label", "text"):
        text = str(f["text"])
        if el.kind == "text":
            scalars = {k: v for k, v in values.items() if np.isscalar(v)}
            text = text.format(**scalars)
        at = frame.to_canvas(pt("at"))
        dx, dy = f.get("offset", (0, 0))
        return ElementSpec(kind, geometry={"at": (at[0] + dx, at[1] + dy)}, style={**style, "text": text})

    if el.kind == "right_angle":
        v, p, q = pt("at"), pt("from"), pt("to")
        u, w = p - v, q - v
        nu, nw = float(np.linalg.norm(u)), float(np.linalg.norm(w))
        if nu < geometry.EPS or nw < geometry.EPS:
            raise UnsatisfiableGeometryError(el.key or "right_angle", "degenerate right angle")
        s = _resolve(f.get("size", 0.06), "s", values)
        u, w = u / nu * s, w / nw * s
        corners = [v + u, v + u + w, v + w]
        return ElementSpec(kind, geometry={"points": [frame.to_canvas(c) for c in corners]}, style=style)

    # ellipse
    c = frame.to_canvas(pt("center"))
    a = _resolve(f["a"], "s", values)
    b = _resolve(f.get("b", f["a"]), "s", values)
    return ElementSpec(
        kind,
        geometry={"center": c, "rx": frame.length(a), "ry": frame.length(b), "arc": f.get("arc")},
        style=style,
    )


# ----- parsing -----
def _parse_frame(data: Any) -> FrameDef:
    if data is None:
        return FrameDef()
    if not isinstance(data, dict):
        raise WalkthroughCompileError("'frame' must be a mapping")
    anchor = data.get("anchor", "corner")
    if anchor not in ("corner", "center"):
        raise WalkthroughCompileError(f"unknown frame anchor {anchor!r}")
    points = []
    for name, p in (data.get("points") or {}).items():
        if not isinstance(p, (list, tuple)) or len(p) != 2:
            raise WalkthroughCompileError(f"frame point {name!r} must be [x, y]")
        points.append((str(name), (float(p[0]), float(p[1]))))
    scale = data.get("scale")
    return FrameDef(anchor=anchor, scale=float(scale) if scale is not None else None, points=tuple(points))


def _parse_define(ordinal: int, name: str, body: Any) -> DefineOp:
    if not isinstance(body, dict) or len(body) != 1:
        raise WalkthroughCompileError(f"step {ordinal}: define {name!r} must be a single {{op: args}} mapping")
    op, args = next(iter(body.items()))
    if op not in OPERATIONS:
        raise WalkthroughCompileError(f"step {ordinal}: unknown operation {op!r} for {name!r}")
    if not isinstance(args, list):
        raise WalkthroughCompileError(f"step {ordinal}: arguments of {name!r} must be a list")
    _, types, required = OPERATIONS[op]
    if not required <= len(args) <= len(types):
        raise WalkthroughCompileError(f"step {ordinal}: {op} takes {required}..{len(types)} arguments, got {len(args)}")
    return DefineOp(name=str(name), op=op, args=args)


def _parse_element(ordinal: int, data: Any) -> ElementDef:
    if not isinstance(data, dict):
        raise WalkthroughCompileError(f"step {ordinal}: each element must be a mapping")
    kind = data.get("kind")
    if kind not in ELEMENT_KINDS:
        raise WalkthroughCompileError(f"step {ordinal}: unknown element kind {kind!r}")
    transient = bool(data.get("transient", False))
    key = data.get("key")
    if not transient and not key:
        raise WalkthroughCompileError(f"step {ordinal}: {kind} element needs a 'key'")
    fields = {k: v for k, v in data.items() if k not in ("key", "kind", "style", "transient", "join")}
    _, point_fields, _ = ELEMENT_KINDS[kind]
    for f in point_fields:
        if f not in fields:
            raise WalkthroughCompileError(f"step {ordinal}: {kind} {key!r} is missing {f!r}")
    if kind == "polygon" and len(fields.get("points") or []) < 3:
        raise WalkthroughCompileError(f"step {ordinal}: polygon {key!r} needs at least 3 points")
    if kind in ("label", "text") and "text" not in fields:
        raise WalkthroughCompileError(f"step {ordinal}: {kind} {key!r} needs 'text'")
    if kind == "text":
        fields["text"] = str(fields["text"])
        try:
            _format_fields(fields["text"])
        except ValueError as exc:
            raise WalkthroughCompileError(f"step {ordinal}: text {key!r} has a malformed format string: {exc}") from exc
    if kind == "ellipse" and "a" not in fields:
        raise WalkthroughCompileError(f"step {ordinal}: ellipse {key!r} needs 'a'")
    return ElementDef(
        key=str(key) if key else None,
        kind=kind,
        fields=fields,
        style=dict(data.get("style") or {}),
        transient=transient,
        join=bool(data.get("join", False)),
    )


def _check_refs(ordinal: int, what: str, refs: Sequence[str], known: Set[str]) -> None:
    unknown = [r for r in refs if r not in known]
    if unknown:
        raise WalkthroughCompileError(f"step {ordinal}: {what} references undefined {unknown}")


def _check_format_fields(ordinal: int, what: str, text: Optional[str], scalars: Set[str]) -> None:
    # only numbers are passed to str.format
    try:
        names = _format_fields(text)
    except ValueError as exc:
        raise WalkthroughCompileError(f"step {ordinal}: {what} has a malformed format string: {exc}") from exc
    bad = [n for n in names if n not in scalars]
    if bad:
        raise WalkthroughCompileError(f"step {ordinal}: {what} formats non-numeric values {bad}")


def compile_from_dict(spec: Dict[str, Any]) -> Tuple[StepRegistry, NavigatorConfig]:
    """
    Compile a YAML-parsed dictionary into a step registry.

    Args:
        spec: Parsed YAML dictionary

    Returns:
        (registry, config): the step table and the walkthrough's NavigatorConfig

    Raises:
        WalkthroughCompileError: the definition does not match the schema
    """
    if not isinstance(spec, dict):
        raise WalkthroughCompileError("walkthrough definition must be a mapping")
    name = str(spec.get("name") or "walkthrough")
    frame = _parse_frame(spec.get("frame"))
    config_data = spec.get("config") or {}
    if not isinstance(config_data, dict):
        raise WalkthroughCompileError("'config' must be a mapping")
    config = NavigatorConfig.from_dict(config_data)

    steps_data = spec.get("steps")
    if not isinstance(steps_data, list) or not steps_data:
        raise WalkthroughCompileError("'steps' must be a non-empty list")

    known: Set[str] = {n for n, _ in frame.points}
    scalars: Set[str] = set()
    steps: List[StepDefinition] = []
    for ordinal, raw in enumerate(steps_data, start=1):
        if not isinstance(raw, dict):
            raise WalkthroughCompileError(f"step {ordinal} must be a mapping")
        defines = [_parse_define(ordinal, n, b) for n, b in (raw.get("define") or {}).items()]
        for d in defines:
            _check_refs(ordinal, d.name, d.refs(), known)
            known.add(d.name)
            if d.op in SCALAR_OPS:
                scalars.add(d.name)
            else:
                scalars.discard(d.name)
        elements = [_parse_element(ordinal, e) for e in (raw.get("elements") or [])]
        for el in elements:
            _check_refs(ordinal, el.key or el.kind, el.refs(), known)
            if el.kind == "text":
                _check_format_fields(ordinal, el.key or el.kind, el.fields.get("text"), scalars)
        explanation = raw.get("explanation")
        if explanation is not None:
            explanation = str(explanation)
        _check_format_fields(ordinal, "explanation", explanation, scalars)
        draw = CompiledStep(frame, defines, elements, explanation)
        try:
            steps.append(
                StepDefinition(
                    ordinal=ordinal,
                    element_keys=draw.element_keys,
                    draw=draw,
                    title=str(raw.get("title") or f"Step {ordinal}"),
                    explanation=explanation,
                )
            )
        except WalkthroughError as exc:
            raise WalkthroughCompileError(f"step {ordinal}: {exc}") from exc

    try:
        registry = StepRegistry(steps, name=name, title=str(spec.get("title") or name), inputs=dict(frame.points))
    except WalkthroughError as exc:
        raise WalkthroughCompileError(str(exc)) from exc
    return registry, config


def compile_from_yaml(yaml_text: str) -> Tuple[StepRegistry, NavigatorConfig]:
    """Compile from YAML text."""
    try:
        data = yaml.safe_load(yaml_text) or {}
    except yaml.YAMLError as exc:
        raise WalkthroughCompileError(f"invalid YAML: {exc}") from exc
    return compile_from_dict(data)


def compile_from_file(path: str) -> Tuple[StepRegistry, NavigatorConfig]:
    """Compile from a YAML file path."""
    with open(path, "r", encoding="utf-8") as f:
        txt = f.read()
    return compile_from_yaml(txt)
