"""
Unit tests for metrics utilities and navigator instrumentation.
"""

import pytest

from walkthrough_core.metrics import draw_efficiency, expected_keys, key_diff, settled_keys, store_matches_step, summarize

from tests.helpers import point_spec


class TestConsistency:
    def test_expected_keys(self, registry):
        assert expected_keys(registry, 0) == set()
        assert expected_keys(registry, 2) == {"p1", "p2"}

    def test_store_matches_after_navigation(self, navigator):
        navigator.navigate_to(2)
        assert settled_keys(navigator) == {"p1", "p2"}
        assert store_matches_step(navigator)

    def test_key_diff_reports_foreign_keys(self, navigator, renderer):
        navigator.navigate_to(1)
        navigator.store.put("stray", renderer.create_element(point_spec()))
        assert key_diff(navigator) == {"missing": set(), "unexpected": {"stray"}}
        assert not store_matches_step(navigator)


class TestInstrumentation:
    def test_draw_efficiency_defaults_to_one(self, navigator):
        assert draw_efficiency(navigator) == 1.0

    def test_draw_efficiency_counts_idempotent_draws(self, navigator):
        navigator.navigate_to(2)
        navigator.draw_step(1)
        navigator.draw_step(2)
        assert draw_efficiency(navigator) == pytest.approx(2 / 4)

    def test_summarize(self, navigator, scheduler):
        navigator.navigate_to(3)
        navigator.navigate_to(1)
        scheduler.run_until_idle()
        m = summarize(navigator)
        assert m["navigations"] == 2
        assert m["steps_drawn"] == 3
        assert m["steps_torn_down"] == 2
        assert m["chains_cancelled"] == 1
        assert m["current_step"] == 1
        assert m["elements"] == 1
        assert m["consistent"] is True
