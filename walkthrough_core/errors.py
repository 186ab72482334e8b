"""
Exception hierarchy for walkthrough construction and navigation.

Fatal errors (`DuplicateKeyError`, `MissingPrerequisiteError`,
`ElementContractError`) propagate to the caller of `Navigator.navigate_to`.
`UnsatisfiableGeometryError` is recoverable and is absorbed by the draw layer.
"""

from __future__ import annotations


class WalkthroughError(Exception):
    """Base class for every error raised by the walkthrough engine."""


class DuplicateKeyError(WalkthroughError):
    """Two steps, or one step drawn twice without teardown, claim the same element key."""

    def __init__(self, key: str, owner: int | None = None):
        self.key = key
        self.owner = owner
        msg = f"element key {key!r} is already present"
        if owner is not None:
            msg += f" (owned by step {owner})"
        super().__init__(msg)


class MissingPrerequisiteError(WalkthroughError):
    """A prerequisite step was drawn but its elements still do not exist."""

    def __init__(self, ordinal: int, prerequisite: int, key: str | None):
        self.ordinal = ordinal
        self.prerequisite = prerequisite
        self.key = key
        super().__init__(
            f"step {ordinal}: prerequisite step {prerequisite} is missing element {key!r} after drawing"
        )


class UnsatisfiableGeometryError(WalkthroughError):
    """A geometric construction has no solution for the current inputs."""

    def __init__(self, name: str, reason: str = "no solution"):
        self.name = name
        self.reason = reason
        super().__init__(f"{name}: {reason}")


class ElementContractError(WalkthroughError):
    """A draw procedure created an undeclared key or left a declared key unresolved."""


class InvalidRegistryError(WalkthroughError):
    """Step definitions are not contiguous, not 1-based, or declare no keys."""


class StepOutOfRangeError(WalkthroughError, ValueError):
    """A navigation target outside 0..N was requested."""

    def __init__(self, target, total: int):
        self.target = target
        self.total = total
        super().__init__(f"step {target!r} is outside 0..{total}")


class StaleHandleError(WalkthroughError):
    """A renderer call targeted a handle that has already been disposed."""


class WalkthroughCompileError(WalkthroughError):
    """A YAML walkthrough definition does not match the expected schema."""


class InvalidInputError(WalkthroughError, ValueError):
    """A point move named an unknown base point or gave malformed coordinates."""
