"""
Unit tests for step definitions and the step registry.

These tests validate ordinal contiguity, key uniqueness inside a step and
across steps, ordinal lookup, and the helper views used by the navigator.
"""

import pytest

from walkthrough_core.errors import DuplicateKeyError, InvalidRegistryError
from walkthrough_core.steps import StepDefinition, StepRegistry

from tests.helpers import make_registry, simple_draw


def _step(ordinal, keys):
    return StepDefinition(ordinal=ordinal, element_keys=keys, draw=simple_draw(keys))


class TestStepDefinition:
    def test_keys_are_coerced_to_tuple(self):
        step = _step(1, ["a", "b"])
        assert step.element_keys == ("a", "b")
        assert step.first_key == "a"

    def test_empty_keys_rejected(self):
        with pytest.raises(InvalidRegistryError):
            _step(1, [])

    def test_non_positive_ordinal_rejected(self):
        with pytest.raises(InvalidRegistryError):
            _step(0, ["a"])

    def test_duplicate_key_within_step_rejected(self):
        with pytest.raises(DuplicateKeyError):
            _step(1, ["a", "a"])


class TestStepRegistry:
    def test_steps_are_sorted_and_indexed_by_ordinal(self):
        reg = StepRegistry([_step(2, ["b"]), _step(1, ["a"])])
        assert reg.total == 2
        assert [s.ordinal for s in reg] == [1, 2]
        assert reg[2].element_keys == ("b",)

    def test_gap_in_ordinals_rejected(self):
        with pytest.raises(InvalidRegistryError):
            StepRegistry([_step(1, ["a"]), _step(3, ["c"])])

    def test_empty_registry_rejected(self):
        with pytest.raises(InvalidRegistryError):
            StepRegistry([])

    def test_key_shared_between_steps_rejected(self):
        with pytest.raises(DuplicateKeyError) as excinfo:
            make_registry([["a", "shared"], ["shared"]])
        assert excinfo.value.key == "shared"
        assert excinfo.value.owner == 1

    def test_out_of_range_lookup_raises_key_error(self):
        reg = make_registry([["a"]])
        with pytest.raises(KeyError):
            reg[0]
        with pytest.raises(KeyError):
            reg[2]

    def test_owner_and_keys_through(self):
        reg = make_registry([["a", "b"], ["c"], ["d"]])
        assert reg.owner_of("c") == 2
        assert reg.owner_of("zz") is None
        assert reg.keys_through(0) == set()
        assert reg.keys_through(2) == {"a", "b", "c"}

    def test_describe_lists_steps(self):
        reg = make_registry([["a"], ["b"]], name="demo")
        desc = reg.describe()
        assert reg.name == "demo" and reg.title == "demo"
        assert desc[1] == {"step": 2, "title": "", "explanation": None, "keys": ["b"]}
