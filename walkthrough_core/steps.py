"""
Step definitions and the ordered step registry.

A walkthrough is an explicit, ordered table of `StepDefinition` objects passed
to the navigator at construction time. Each step declares the element keys it
owns and a draw procedure `draw(ctx)` that receives a `DrawContext`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from .errors import DuplicateKeyError, InvalidRegistryError

if TYPE_CHECKING:
    from .drawing import DrawContext

DrawFn = Callable[["DrawContext"], None]


@dataclass(frozen=True)
class StepDefinition:
    """
    One ordinal stage of a construction.

    Attributes:
        ordinal: 1-based position in the walkthrough
        element_keys: Keys this step creates and owns, in creation order
        draw: Draw procedure, called with a `DrawContext`
        title: Short name shown in step lists
        explanation: Text pushed to the explanation side-channel when the step is shown
    """

    ordinal: int
    element_keys: Tuple[str, ...]
    draw: DrawFn
    title: str = ""
    explanation: Optional[str] = None

    def __post_init__(self):
        keys = tuple(self.element_keys)
        object.__setattr__(self, "element_keys", keys)
        if not isinstance(self.ordinal, int) or self.ordinal < 1:
            raise InvalidRegistryError(f"step ordinal must be a positive integer, got {self.ordinal!r}")
        if not keys:
            raise InvalidRegistryError(f"step {self.ordinal} declares no element keys")
        seen: Set[str] = set()
        for k in keys:
            if k in seen:
                raise DuplicateKeyError(k, self.ordinal)
            seen.add(k)

    @property
    def first_key(self) -> str:
        return self.element_keys[0]


class StepRegistry:
    """Ordered, contiguous table of steps 1..N with disjoint element keys.

    `inputs` maps the names of movable base points to their default
    positions. Hand-written registries usually have none.
    """

    def __init__(
        self,
        steps: Iterable[StepDefinition],
        name: str = "walkthrough",
        title: str = "",
        inputs: Optional[Mapping[str, Tuple[float, float]]] = None,
    ):
        self.name = name
        self.title = title or name
        self.inputs: Dict[str, Tuple[float, float]] = {k: (float(x), float(y)) for k, (x, y) in (inputs or {}).items()}
        ordered = sorted(steps, key=lambda s: s.ordinal)
        if not ordered:
            raise InvalidRegistryError("a walkthrough needs at least one step")
        expected = list(range(1, len(ordered) + 1))
        actual = [s.ordinal for s in ordered]
        if actual != expected:
            raise InvalidRegistryError(f"step ordinals must be contiguous from 1, got {actual}")

        self._steps: List[StepDefinition] = ordered
        self._owners: Dict[str, int] = {}
        for step in ordered:
            for key in step.element_keys:
                if key in self._owners:
                    raise DuplicateKeyError(key, self._owners[key])
                self._owners[key] = step.ordinal

    @classmethod
    def from_draws(
        cls,
        draws: Sequence[Tuple[Sequence[str], DrawFn]],
        name: str = "walkthrough",
    ) -> "StepRegistry":
        """Build a registry from (element_keys, draw) pairs numbered in order."""
        return cls(
            [StepDefinition(ordinal=i, element_keys=tuple(keys), draw=fn) for i, (keys, fn) in enumerate(draws, start=1)],
            name=name,
        )

    @property
    def total(self) -> int:
        return len(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(self._steps)

    def __getitem__(self, ordinal: int) -> StepDefinition:
        if not isinstance(ordinal, int) or not 1 <= ordinal <= len(self._steps):
            raise KeyError(ordinal)
        return self._steps[ordinal - 1]

    def owner_of(self, key: str) -> Optional[int]:
        return self._owners.get(key)

    def keys_through(self, ordinal: int) -> Set[str]:
        """Union of element keys for steps 1..ordinal."""
        out: Set[str] = set()
        for step in self._steps[: max(0, ordinal)]:
            out.update(step.element_keys)
        return out

    def describe(self) -> List[dict]:
        return [
            {
                "step": s.ordinal,
                "title": s.title,
                "explanation": s.explanation,
                "keys": list(s.element_keys),
            }
            for s in self._steps
        ]
