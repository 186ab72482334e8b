"""
Core enumerations for the Incremental Construction Navigator.

This module defines the element kinds a walkthrough can draw, the autoplay
controller states, and the lifecycle status of animation chains.
"""

from enum import Enum, auto


class ElementKind(Enum):
    """
    Kinds of visual entities a step can create.

    The renderer decides how each kind is realised; the navigator only uses
    the kind for bookkeeping and snapshots.
    """

    POINT = auto()
    """A filled dot, usually paired with a label in a composite handle."""

    SEGMENT = auto()
    """A finite straight segment between two points."""

    LINE = auto()
    """An extended (often dashed) line through two points."""

    POLYGON = auto()
    """A closed polygon, optionally filled."""

    LABEL = auto()
    """Text anchored next to a point."""

    TEXT = auto()
    """Free-standing annotation text at a fixed canvas position."""

    RIGHT_ANGLE = auto()
    """Right-angle marker drawn at a foot point."""

    ELLIPSE = auto()
    """An axis-aligned ellipse (or circle) around a centre point."""

    GROUP = auto()
    """Composite container whose children are disposed together."""


class AutoplayState(Enum):
    """
    States of the autoplay controller.

    - IDLE: no timer pending, manual navigation only
    - RUNNING: a timer drives the navigator forward one step at a time
    """

    IDLE = auto()
    """No autoplay in progress."""

    RUNNING = auto()
    """Autoplay is advancing through the steps."""


class ChainStatus(Enum):
    """
    Lifecycle of an animation chain.
    """

    PENDING = auto()
    """Built but not yet started (still staged inside a draw procedure)."""

    RUNNING = auto()
    """Links are being issued to the renderer."""

    COMPLETED = auto()
    """The last link finished; the owning step is complete for sequencing."""

    CANCELLED = auto()
    """Cancelled before completion; no further mutations are issued."""
