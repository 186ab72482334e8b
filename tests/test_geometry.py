"""Planar construction helpers and the frame/canvas mapping."""

import math

import numpy as np
import pytest

from walkthrough_core import geometry as g


def test_midpoint_and_distance():
    assert np.allclose(g.midpoint((0, 0), (2, 4)), (1, 2))
    assert g.distance((0, 0), (3, 4)) == pytest.approx(5.0)


def test_perpendicular_foot():
    foot = g.perpendicular_foot((0, 0), (0, 1), (0.5, 0))
    # BG in the unit square: G = (0.4, 0.2)
    assert np.allclose(foot, (0.4, 0.2))


def test_perpendicular_foot_degenerate_line():
    assert np.allclose(g.perpendicular_foot((3, 3), (1, 1), (1, 1)), (1, 1))


def test_line_intersection():
    p = g.line_intersection((0, 0), (1, 1), (0, 1), (1, 0))
    assert np.allclose(p, (0.5, 0.5))


def test_parallel_lines_have_no_intersection():
    assert g.line_intersection((0, 0), (1, 0), (0, 1), (1, 1)) is None


def test_segment_ray_intersection():
    hit = g.segment_ray_intersection((1, 0), (1, 1), (0, 0), (2, 1))
    assert np.allclose(hit, (1, 0.5))
    # ray points away from the segment
    assert g.segment_ray_intersection((1, 0), (1, 1), (0, 0), (-2, -1)) is None


def test_reflect_point():
    assert np.allclose(g.reflect_point((1, 1), (0, 0), (1, 0)), (1, -1))


def test_extend_line():
    assert np.allclose(g.extend_line((0, 0), (1, 2), 2.0), (2, 4))


def test_angle_between():
    assert g.angle_between((1, 0), (0, 0), (0, 1)) == pytest.approx(math.pi / 2)
    assert g.angle_between((0, 0), (0, 0), (0, 1)) == 0.0


def test_length_ratio():
    assert g.length_ratio((0, 0), (2, 0), (3, 0)) == pytest.approx(2.0)
    assert g.length_ratio((0, 0), (1, 0), (1, 0)) is None


def test_ellipse_helpers():
    p = g.ellipse_point((0, 0), 2, 1, math.pi / 2)
    assert np.allclose(p, (0, 1))
    q = g.ellipse_ray_intersection((0, 0), 2, 1, (1, 0))
    assert np.allclose(q, (2, 0))
    assert g.ellipse_ray_intersection((0, 0), 2, 1, (0, 0)) is None


def test_as_point_rejects_wrong_shape():
    with pytest.raises(ValueError):
        g.as_point((1, 2, 3))


class TestFrame:
    def test_corner_anchor_maps_unit_square(self):
        frame = g.Frame.fit(g.Canvas(800, 600), scale=0.5)
        # square side 300 centred in the canvas, y flipped
        assert frame.to_canvas((0, 0)) == (250.0, 450.0)
        assert frame.to_canvas((1, 1)) == (550.0, 150.0)

    def test_center_anchor(self):
        frame = g.Frame.fit(g.Canvas(800, 600), scale=0.5, anchor="center")
        assert frame.to_canvas((0, 0)) == (400.0, 300.0)
        assert frame.length(1.0) == 150.0

    def test_unknown_anchor(self):
        with pytest.raises(ValueError):
            g.Frame.fit(g.Canvas(100, 100), anchor="top")
