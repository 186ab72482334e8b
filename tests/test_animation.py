"""
Tests for cancellable animation chains and the scene renderer's tweens.

Timing runs on the virtual scheduler so every assertion is deterministic.
"""

import pytest

from walkthrough_core.animation import AnimationChain
from walkthrough_core.enums import ChainStatus
from walkthrough_core.errors import StaleHandleError
from walkthrough_core.renderer import HIDDEN_STATE, VISIBLE_STATE

from tests.helpers import labelled_point_spec, point_spec


def _hidden(renderer, spec=None):
    return renderer.create_element((spec or point_spec()).with_state(HIDDEN_STATE))


class TestChainSequencing:
    def test_stages_run_in_order(self, renderer, scheduler):
        a, b = _hidden(renderer), _hidden(renderer)
        chain = AnimationChain(renderer, owner=1)
        chain.tween(a, VISIBLE_STATE, 0.4).tween(b, VISIBLE_STATE, 0.4)
        chain.start()
        assert chain.status == ChainStatus.RUNNING

        scheduler.advance(0.4)
        assert a.state["opacity"] == 1.0
        assert b.state["opacity"] == 0.0

        scheduler.advance(0.4)
        assert b.state["opacity"] == 1.0
        assert chain.status == ChainStatus.COMPLETED

    def test_joined_tweens_run_together(self, renderer, scheduler):
        a, b = _hidden(renderer), _hidden(renderer)
        chain = AnimationChain(renderer, owner=1)
        chain.tween(a, VISIBLE_STATE, 0.4).tween(b, VISIBLE_STATE, 0.4, join=True)
        assert len(chain) == 1
        chain.start()
        scheduler.advance(0.4)
        assert a.state["opacity"] == b.state["opacity"] == 1.0
        assert chain.status == ChainStatus.COMPLETED

    def test_on_complete_and_call_stage(self, renderer, scheduler):
        seen = []
        a = _hidden(renderer)
        chain = AnimationChain(renderer, owner=2)
        chain.tween(a, VISIBLE_STATE, 0.3).call(lambda: seen.append("call"))
        chain.on_complete(lambda: seen.append("done"))
        chain.start()
        assert seen == []
        scheduler.run_until_idle()
        assert seen == ["call", "done"]

    def test_empty_chain_completes_on_start(self, renderer):
        seen = []
        chain = AnimationChain(renderer, owner=1)
        chain.on_complete(lambda: seen.append(True))
        chain.start()
        assert chain.status == ChainStatus.COMPLETED
        assert seen == [True]


class TestCancellation:
    def test_cancel_stops_further_mutations(self, renderer, scheduler):
        a, b = _hidden(renderer), _hidden(renderer)
        chain = AnimationChain(renderer, owner=3)
        chain.tween(a, VISIBLE_STATE, 0.4).tween(b, VISIBLE_STATE, 0.4)
        chain.start()
        scheduler.advance(0.2)

        assert chain.cancel() is True
        scheduler.run_until_idle()
        assert a.state["opacity"] == 0.0
        assert b.state["opacity"] == 0.0
        assert chain.status == ChainStatus.CANCELLED
        assert renderer.stats["tweens_cancelled"] == 1
        assert renderer.stats["tweens_completed"] == 0

    def test_cancel_is_idempotent_and_ignores_settled_chains(self, renderer, scheduler):
        chain = AnimationChain(renderer, owner=1)
        chain.tween(_hidden(renderer), VISIBLE_STATE, 0.1)
        chain.start()
        scheduler.run_until_idle()
        assert chain.cancel() is False

    def test_cancelled_chain_does_not_call_on_complete(self, renderer, scheduler):
        seen = []
        chain = AnimationChain(renderer, owner=1)
        chain.tween(_hidden(renderer), VISIBLE_STATE, 0.5)
        chain.on_complete(lambda: seen.append(True))
        chain.start()
        chain.cancel()
        scheduler.run_until_idle()
        assert seen == []


class TestTransients:
    def test_transient_disposed_when_chain_finishes(self, renderer, scheduler):
        guide = _hidden(renderer, labelled_point_spec(0, 0, "g"))
        chain = AnimationChain(renderer, owner=1)
        chain.adopt(guide)
        chain.tween(guide, VISIBLE_STATE, 0.4).tween(guide, {"opacity": 0.0}, 0.8).release(guide)
        chain.start()
        scheduler.advance(0.4)
        assert not guide.disposed
        scheduler.run_until_idle()
        assert guide.disposed
        assert guide.id not in renderer.live

    def test_transient_disposed_on_cancel(self, renderer, scheduler):
        guide = _hidden(renderer)
        chain = AnimationChain(renderer, owner=1)
        chain.adopt(guide)
        chain.tween(guide, VISIBLE_STATE, 0.4).release(guide)
        chain.start()
        chain.cancel()
        assert guide.disposed

    def test_discard_disposes_transients_of_unstarted_chain(self, renderer):
        guide = _hidden(renderer)
        chain = AnimationChain(renderer, owner=1)
        chain.adopt(guide)
        chain.discard()
        assert guide.disposed
        assert chain.status == ChainStatus.CANCELLED


class TestStaleHandles:
    def test_animate_disposed_handle_raises(self, renderer):
        h = renderer.create_element(point_spec())
        renderer.dispose_element(h)
        with pytest.raises(StaleHandleError):
            renderer.animate(h, None, VISIBLE_STATE, 0.1)

    def test_late_completion_on_disposed_handle_is_loud(self, renderer, scheduler):
        h = _hidden(renderer)
        renderer.animate(h, HIDDEN_STATE, VISIBLE_STATE, 0.4)
        renderer.dispose_element(h)
        with pytest.raises(StaleHandleError):
            scheduler.advance(0.4)

    def test_cancelled_tween_never_touches_disposed_handle(self, renderer, scheduler):
        h = _hidden(renderer)
        token = renderer.animate(h, HIDDEN_STATE, VISIBLE_STATE, 0.4)
        token.cancel()
        renderer.dispose_element(h)
        assert scheduler.advance(1.0) == 0
