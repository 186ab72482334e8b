"""
Unit tests for the YAML walkthrough compiler.

These tests validate step tables compiled from dictionaries, YAML text and
files, the bundled walkthroughs end to end, skipping of elements whose
geometry has no solution, and schema errors.
"""

import os

import numpy as np
import pytest

from walkthrough_core.compiler import compile_from_dict, compile_from_file, compile_from_yaml
from walkthrough_core.enums import ElementKind
from walkthrough_core.errors import WalkthroughCompileError
from walkthrough_core.metrics import store_matches_step
from walkthrough_core.session import WalkthroughSession

WALKTHROUGH_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "walkthroughs")
BUNDLED = sorted(f for f in os.listdir(WALKTHROUGH_DIR) if f.endswith(".yaml"))


def _triangle_spec(**overrides):
    spec = {
        "name": "triangle",
        "frame": {"points": {"A": [0, 0], "B": [1, 0], "C": [0, 1]}},
        "steps": [
            {
                "title": "Triangle",
                "explanation": "the triangle ABC",
                "elements": [
                    {"key": "tri", "kind": "polygon", "points": ["A", "B", "C"]},
                    {"key": "pA", "kind": "point", "at": "A"},
                ],
            },
            {
                "define": {"M": {"midpoint": ["B", "C"]}},
                "elements": [
                    {"kind": "line", "from": "A", "to": "M", "transient": True},
                    {"key": "median", "kind": "segment", "from": "A", "to": "M"},
                ],
            },
        ],
    }
    spec.update(overrides)
    return spec


class TestCompileFromDict:
    def test_steps_and_keys(self):
        registry, config = compile_from_dict(_triangle_spec())
        assert registry.name == "triangle"
        assert registry.total == 2
        assert registry[1].element_keys == ("tri", "pA")
        # transient guides own no key
        assert registry[2].element_keys == ("median",)
        assert registry[2].title == "Step 2"
        assert config.auto_step_delay == 2.5

    def test_config_overrides(self):
        _, config = compile_from_dict(_triangle_spec(config={"auto_step_delay": 1.0, "unknown": 3}))
        assert config.auto_step_delay == 1.0

    def test_navigating_builds_specs_in_canvas_space(self):
        registry, config = compile_from_dict(_triangle_spec())
        session = WalkthroughSession(registry, config=config)
        session.request_step(2)
        session.scheduler.run_until_idle()

        point = session.store.get("pA")
        assert point.kind == ElementKind.POINT
        # default frame: corner anchor, scale 0.6 on 800x600 -> side 360
        assert point.spec.geometry["at"] == (220.0, 480.0)
        assert point.children[0].spec.style["text"] == "A"
        assert session.navigator.values["M"] == pytest.approx(np.array([0.5, 0.5]))
        # the transient guide is gone once the chain has finished
        assert len(session.renderer.live) == 4

    def test_explanation_formats_scalars(self):
        spec = _triangle_spec()
        spec["steps"][1]["define"]["r"] = {"length_ratio": ["A", "M", "B"]}
        spec["steps"][1]["explanation"] = "ratio {r:.1f}"
        registry, config = compile_from_dict(spec)
        session = WalkthroughSession(registry, config=config)
        session.request_step(2)
        assert session.navigator.explanation == "ratio 1.0"

    def test_frame_points_are_registry_inputs(self):
        registry, _ = compile_from_dict(_triangle_spec())
        assert registry.inputs == {"A": (0.0, 0.0), "B": (1.0, 0.0), "C": (0.0, 1.0)}

    def test_moved_input_feeds_every_step(self):
        registry, config = compile_from_dict(_triangle_spec())
        session = WalkthroughSession(registry, config=config)
        session.request_step(2)
        session.set_points({"B": [3, 0]})
        assert session.navigator.values["M"] == pytest.approx(np.array([1.5, 0.5]))
        assert session.navigator.values["B"] == pytest.approx(np.array([3.0, 0.0]))


class TestSkipping:
    def test_parallel_intersection_is_skipped_and_logged(self, caplog):
        spec = {
            "frame": {"points": {"A": [0, 0], "B": [1, 0], "C": [0, 1], "D": [1, 1]}},
            "steps": [
                {
                    "define": {"X": {"intersect": ["A", "B", "C", "D"]}},
                    "elements": [
                        {"key": "ab", "kind": "segment", "from": "A", "to": "B"},
                        {"key": "pX", "kind": "point", "at": "X"},
                        {"key": "tX", "kind": "label", "at": "X", "text": "X"},
                    ],
                },
                {"elements": [{"key": "cd", "kind": "segment", "from": "C", "to": "D"}]},
            ],
        }
        registry, config = compile_from_dict(spec)
        session = WalkthroughSession(registry, config=config)
        session.request_step(2)
        assert session.current_step == 2
        assert session.store.skipped() == {"pX", "tX"}
        assert "cannot construct X" in caplog.text
        assert store_matches_step(session.navigator)

    def test_line_through_coincident_points_is_skipped(self):
        spec = {
            "frame": {"points": {"A": [0, 0]}},
            "steps": [{"elements": [{"key": "l", "kind": "line", "from": "A", "to": "A"}, {"key": "p", "kind": "point", "at": "A"}]}],
        }
        registry, config = compile_from_dict(spec)
        session = WalkthroughSession(registry, config=config)
        session.request_step(1)
        assert session.store.is_skipped("l")
        assert "p" in session.store


class TestSchemaErrors:
    @pytest.mark.parametrize(
        "mutate, message",
        [
            (lambda s: s.update(steps=[]), "non-empty"),
            (lambda s: s["steps"][0]["elements"].append({"kind": "circle", "key": "c"}), "unknown element kind"),
            (lambda s: s["steps"][0]["elements"].append({"kind": "segment", "from": "A", "to": "B"}), "needs a 'key'"),
            (lambda s: s["steps"][0]["elements"].append({"kind": "segment", "key": "s", "from": "A"}), "missing 'to'"),
            (lambda s: s["steps"][0]["elements"].append({"kind": "polygon", "key": "q", "points": ["A", "B"]}), "at least 3"),
            (lambda s: s["steps"][0]["elements"].append({"kind": "label", "key": "l", "at": "A"}), "needs 'text'"),
            (lambda s: s["steps"][0]["elements"].append({"kind": "point", "key": "z", "at": "Z"}), "undefined"),
            (lambda s: s["steps"][1].update(define={"M": {"bisect": ["A", "B"]}}), "unknown operation"),
            (lambda s: s["steps"][1].update(define={"M": {"midpoint": ["A"]}}), "takes 2..2"),
            (lambda s: s["steps"][1]["elements"].append({"kind": "point", "key": "pA", "at": "A"}), "already present"),
            (lambda s: s.update(frame={"anchor": "middle"}), "anchor"),
        ],
    )
    def test_invalid_definitions(self, mutate, message):
        spec = _triangle_spec()
        mutate(spec)
        with pytest.raises(WalkthroughCompileError, match=message):
            compile_from_dict(spec)

    def test_forward_reference_rejected(self):
        spec = _triangle_spec()
        spec["steps"][0]["elements"].append({"key": "pM", "kind": "point", "at": "M"})
        with pytest.raises(WalkthroughCompileError, match="undefined"):
            compile_from_dict(spec)

    def test_text_formatting_a_point_is_rejected(self):
        spec = _triangle_spec()
        spec["steps"][0]["elements"].append({"key": "t", "kind": "text", "at": [0, 0], "text": "A is {A}"})
        with pytest.raises(WalkthroughCompileError, match="non-numeric values \\['A'\\]"):
            compile_from_dict(spec)

    def test_explanation_formatting_a_point_is_rejected(self):
        spec = _triangle_spec()
        spec["steps"][1]["explanation"] = "M = {M}"
        with pytest.raises(WalkthroughCompileError, match="explanation formats non-numeric"):
            compile_from_dict(spec)

    def test_malformed_format_string(self):
        spec = _triangle_spec()
        spec["steps"][1]["define"]["r"] = {"length_ratio": ["A", "M", "B"]}
        spec["steps"][1]["elements"].append({"key": "t", "kind": "text", "at": "A", "text": "r = {r"})
        with pytest.raises(WalkthroughCompileError, match="malformed"):
            compile_from_dict(spec)

    def test_invalid_yaml(self):
        with pytest.raises(WalkthroughCompileError, match="invalid YAML"):
            compile_from_yaml("steps: [unclosed")


class TestCompileFromText:
    def test_compile_from_yaml_and_file(self, tmp_path):
        yaml_text = (
            "name: tiny\n"
            "frame: {points: {A: [0, 0], B: [1, 1]}}\n"
            "steps:\n"
            "  - elements:\n"
            "      - {key: ab, kind: segment, from: A, to: B}\n"
        )
        registry, _ = compile_from_yaml(yaml_text)
        assert registry.name == "tiny" and registry.total == 1

        path = tmp_path / "tiny.yaml"
        path.write_text(yaml_text, encoding="utf-8")
        registry, _ = compile_from_file(str(path))
        assert registry[1].element_keys == ("ab",)


@pytest.mark.parametrize("filename", BUNDLED)
def test_bundled_walkthrough_runs_to_the_end(filename):
    registry, config = compile_from_file(os.path.join(WALKTHROUGH_DIR, filename))
    session = WalkthroughSession(registry, config=config)
    session.request_step(registry.total)
    session.scheduler.run_until_idle()
    assert session.current_step == registry.total
    assert session.store.skipped() == set()
    assert store_matches_step(session.navigator)
    session.request_step(0)
    assert session.renderer.live == {}


def test_square_walkthrough_proof_values():
    registry, config = compile_from_file(os.path.join(WALKTHROUGH_DIR, "square_perpendicular.yaml"))
    session = WalkthroughSession(registry, config=config)
    session.request_step(5)
    values = session.navigator.values
    assert values["G"] == pytest.approx(np.array([0.4, 0.2]))
    assert values["I"] == pytest.approx(np.array([1.0, 2.0 / 3.0]))
    assert values["ratioCI"] == pytest.approx(2.0)
    text = session.store.get("proofText2").spec.style["text"]
    assert text == "CI : ID = 2.00"


def test_set_intersection_walkthrough_interval_follows_its_ends():
    registry, config = compile_from_file(os.path.join(WALKTHROUGH_DIR, "set_intersection_constraint.yaml"))
    session = WalkthroughSession(registry, config=config)
    session.request_step(3)
    assert session.store.get("setDefinition").spec.style["text"] == "S_ω = {θ : 2^2025 + ω·θ ≡ 0 (mod 7)}"
    assert session.navigator.values["width"] == pytest.approx(5 * np.exp(-2.5), abs=1e-5)
    assert session.store.get("intervalLabel").spec.style["text"] == "length n·e^(-n/2) = 0.410"

    session.set_points({"Ib": [1.5, 0]})
    assert session.current_step == 3
    assert session.store.get("intervalLabel").spec.style["text"] == "length n·e^(-n/2) = 1.500"
