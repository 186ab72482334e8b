import pytest

from walkthrough_core.config import NavigatorConfig
from walkthrough_core.navigator import Navigator
from walkthrough_core.renderer import SceneRenderer
from walkthrough_core.scheduler import VirtualScheduler

from tests.helpers import make_registry


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def renderer(scheduler):
    return SceneRenderer(scheduler)


@pytest.fixture
def registry():
    """Three steps declaring p1, p2 and p3."""
    return make_registry([["p1"], ["p2"], ["p3"]])


@pytest.fixture
def config():
    return NavigatorConfig()


@pytest.fixture
def navigator(registry, renderer, scheduler, config):
    return Navigator(registry, renderer, config=config, clock=scheduler.now)


@pytest.fixture
def events(navigator):
    recorded = []
    navigator.subscribe(recorded.append)
    return recorded
