"""
Walkthrough Core Package.

This package contains the Incremental Construction Navigator (ICN): the
engine that builds a geometric diagram step by step, including:

- Step definitions and the ordered step registry
- The element store and the draw procedure contract
- The navigator (forward drawing, backward teardown, cancellation)
- Timer-driven autoplay and the UI-facing session facade
- Renderer protocol, in-memory scene renderer and schedulers
- YAML walkthrough compiler and planar geometry helpers
"""

__version__ = "0.1.0"

from .enums import AutoplayState, ChainStatus, ElementKind
from .config import NavigatorConfig
from .errors import (
    DuplicateKeyError,
    ElementContractError,
    InvalidInputError,
    InvalidRegistryError,
    MissingPrerequisiteError,
    StaleHandleError,
    StepOutOfRangeError,
    UnsatisfiableGeometryError,
    WalkthroughCompileError,
    WalkthroughError,
)
from .renderer import CancelToken, ElementSpec, Handle, Renderer, SceneRenderer
from .scheduler import AsyncioScheduler, Scheduler, VirtualScheduler
from .store import ElementStore
from .steps import StepDefinition, StepRegistry
from .drawing import DrawContext
from .navigator import Navigator
from .autoplay import AutoplayController
from .session import WalkthroughSession
from .compiler import compile_from_dict, compile_from_file, compile_from_yaml
from .metrics import store_matches_step, summarize
