"""Session facade: initial step, request handling, moving base points and debounced resize."""

import numpy as np
import pytest

from walkthrough_core.config import NavigatorConfig
from walkthrough_core.errors import InvalidInputError
from walkthrough_core.events import AutoplayStopped, CanvasResized, InputsChanged, NavigationStarted
from walkthrough_core.metrics import store_matches_step
from walkthrough_core.session import WalkthroughSession

from tests.helpers import make_registry


@pytest.fixture
def session():
    return WalkthroughSession(make_registry([["p1"], ["p2"], ["p3"]]), config=NavigatorConfig(initial_step=1))


@pytest.fixture
def recorded(session):
    seen = []
    session.subscribe(seen.append)
    return seen


def test_initial_step_shown_after_delay(session):
    session.scheduler.advance(0.4)
    assert session.current_step == 0
    session.scheduler.advance(0.1)
    assert session.current_step == 1


def test_autoplay_suppresses_initial_step(session, recorded):
    session.toggle_autoplay()
    session.scheduler.advance(1.0)
    starts = [e for e in recorded if isinstance(e, NavigationStarted)]
    assert [(e.from_step, e.to_step) for e in starts] == [(0, 1)]


def test_manual_request_stops_autoplay(session, recorded):
    session.toggle_autoplay()
    assert session.request_step(3) is True
    assert not session.auto_mode_active
    session.scheduler.run_until_idle()
    assert session.current_step == 3
    stopped = [e for e in recorded if isinstance(e, AutoplayStopped)]
    assert [e.reason for e in stopped] == ["manual"]


def test_next_and_previous_are_clamped(session):
    session.request_previous()
    assert session.current_step == 0
    for _ in range(5):
        session.request_next()
    assert session.current_step == 3
    session.request_previous()
    assert session.current_step == 2


def test_request_clear(session):
    session.request_step(2)
    session.request_clear()
    assert session.current_step == 0
    assert len(session.store) == 0


def test_resize_is_debounced(session, recorded):
    session.request_step(2)
    session.notify_resize(1000, 800)
    session.scheduler.advance(0.1)
    session.notify_resize(1200, 900)
    session.scheduler.advance(0.3)
    resized = [e for e in recorded if isinstance(e, CanvasResized)]
    assert [(e.width, e.height) for e in resized] == [(1200.0, 900.0)]
    assert session.current_step == 2
    assert session.navigator.canvas.width == 1200.0


def test_resize_stops_autoplay(session, recorded):
    session.toggle_autoplay()
    session.notify_resize(640, 480)
    assert [e.reason for e in recorded if isinstance(e, AutoplayStopped)] == ["resize"]


def test_close_clears_everything(session):
    session.request_step(3)
    session.close()
    assert session.current_step == 0
    assert session.scheduler.pending() == 0
    assert session.renderer.live == {}


def test_snapshot_includes_scene_and_steps(session):
    session.request_step(1)
    snap = session.snapshot()
    assert snap["auto_mode_active"] is False
    assert [s["step"] for s in snap["steps"]] == [1, 2, 3]
    assert len(snap["scene"]) == 1


def test_clear_drops_pending_initial_step(session):
    session.request_clear()
    session.scheduler.run_until_idle()
    assert session.current_step == 0


def test_navigating_to_zero_drops_pending_initial_step(session):
    assert session.request_step(0) is True
    session.scheduler.run_until_idle()
    assert session.current_step == 0
    assert len(session.store) == 0


def test_manual_step_is_not_overridden_by_initial_step(session):
    session.request_step(3)
    session.request_step(0)
    session.scheduler.run_until_idle()
    assert session.current_step == 0


CROSSING = """
name: crossing
frame: {points: {A: [0, 0], B: [1, 0], C: [0, 1], D: [1, 2]}}
steps:
  - elements:
      - {key: ab, kind: segment, from: A, to: B}
      - {key: cd, kind: segment, from: C, to: D}
  - define:
      X: {intersect: [A, B, C, D]}
    elements:
      - {key: pX, kind: point, at: X}
"""


class TestMovingPoints:
    @pytest.fixture
    def crossing(self):
        return WalkthroughSession.from_yaml(CROSSING)

    def test_move_rebuilds_shown_step(self, crossing):
        crossing.request_step(2)
        crossing.scheduler.run_until_idle()
        assert crossing.navigator.values["X"] == pytest.approx(np.array([-1.0, 0.0]))
        before = crossing.store.get("pX").spec.geometry["at"]

        crossing.set_points({"D": [2, 2]})
        assert crossing.current_step == 2
        assert crossing.navigator.values["X"] == pytest.approx(np.array([-2.0, 0.0]))
        assert crossing.store.get("pX").spec.geometry["at"] != before
        # the redraw after a move is instant
        assert crossing.scheduler.pending() == 0

    def test_degenerate_move_skips_then_restores(self, crossing, caplog):
        crossing.request_step(2)
        crossing.set_points({"D": [1, 1]})
        assert crossing.current_step == 2
        assert crossing.store.is_skipped("pX")
        assert "cannot construct X" in caplog.text
        assert store_matches_step(crossing.navigator)

        crossing.set_points({"D": [1, 2]})
        assert "pX" in crossing.store
        assert crossing.navigator.inputs == {}

    def test_move_emits_inputs_changed(self, crossing):
        seen = []
        crossing.subscribe(seen.append)
        crossing.set_points({"C": (0, 0.5)})
        moved = [e for e in seen if isinstance(e, InputsChanged)]
        assert [e.points for e in moved] == [{"C": [0.0, 0.5]}]

    def test_move_before_navigation_applies_to_later_draws(self, crossing):
        crossing.set_points({"D": [2, 2]})
        assert crossing.current_step == 0
        crossing.request_step(2)
        assert crossing.navigator.values["X"] == pytest.approx(np.array([-2.0, 0.0]))
        assert crossing.snapshot()["inputs"]["D"] == [2.0, 2.0]

    def test_move_stops_autoplay(self, crossing):
        seen = []
        crossing.subscribe(seen.append)
        crossing.toggle_autoplay()
        crossing.set_points({"B": [2, 0]})
        assert not crossing.auto_mode_active
        assert [e.reason for e in seen if isinstance(e, AutoplayStopped)] == ["manual"]

    @pytest.mark.parametrize("points", [{"Z": [0, 0]}, {"D": [1, 1], "Z": [0, 0]}, {"D": [1]}, {"D": [1, float("nan")]}])
    def test_invalid_move_changes_nothing(self, crossing, points):
        crossing.request_step(2)
        with pytest.raises(InvalidInputError):
            crossing.set_points(points)
        assert crossing.navigator.inputs == {}
        assert "pX" in crossing.store
