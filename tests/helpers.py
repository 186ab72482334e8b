"""Shared builders for walkthrough tests."""

from walkthrough_core.enums import ElementKind
from walkthrough_core.renderer import ElementSpec
from walkthrough_core.steps import StepRegistry


def point_spec(x: float = 0.0, y: float = 0.0) -> ElementSpec:
    return ElementSpec(ElementKind.POINT, geometry={"at": (x, y)})


def labelled_point_spec(x: float, y: float, text: str) -> ElementSpec:
    label = ElementSpec(ElementKind.LABEL, geometry={"at": (x + 10, y - 10)}, style={"text": text})
    return ElementSpec(ElementKind.POINT, geometry={"at": (x, y)}, children=(label,))


def simple_draw(keys):
    """Draw procedure creating one point per declared key."""

    def draw(ctx):
        for i, key in enumerate(keys):
            ctx.element(key, point_spec(10.0 * i, 10.0 * ctx.ordinal))

    return draw


def make_registry(key_lists, name: str = "test") -> StepRegistry:
    return StepRegistry.from_draws([(keys, simple_draw(keys)) for keys in key_lists], name=name)


def failing_draw(exc: Exception, create_first=None):
    """Draw procedure that optionally stages one element and then raises."""

    def draw(ctx):
        if create_first:
            ctx.element(create_first, point_spec())
        raise exc

    return draw


def event_names(events):
    return [type(e).__name__ for e in events]
