from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Union


@dataclass(frozen=True)
class NavigationStarted:
    from_step: int
    to_step: int
    t: Optional[float] = None


@dataclass(frozen=True)
class NavigationCompleted:
    step: int
    t: Optional[float] = None


@dataclass(frozen=True)
class NavigationFailed:
    from_step: int
    to_step: int
    error: str
    t: Optional[float] = None


@dataclass(frozen=True)
class StepDrawn:
    step: int
    animate: bool
    t: Optional[float] = None


@dataclass(frozen=True)
class StepCompleted:
    step: int
    t: Optional[float] = None


@dataclass(frozen=True)
class StepTornDown:
    step: int
    t: Optional[float] = None


@dataclass(frozen=True)
class ElementCreated:
    key: str
    step: int
    kind: str
    t: Optional[float] = None


@dataclass(frozen=True)
class ElementDisposed:
    key: str
    step: int
    t: Optional[float] = None


@dataclass(frozen=True)
class ElementSkipped:
    key: str
    step: int
    reason: str
    t: Optional[float] = None


@dataclass(frozen=True)
class AnimationCancelled:
    step: int
    chains: int
    t: Optional[float] = None


@dataclass(frozen=True)
class ExplanationShown:
    text: Optional[str]
    step: int
    t: Optional[float] = None


@dataclass(frozen=True)
class CanvasCleared:
    t: Optional[float] = None


@dataclass(frozen=True)
class CanvasResized:
    width: float
    height: float
    t: Optional[float] = None


@dataclass(frozen=True)
class AutoplayStarted:
    total: int
    t: Optional[float] = None


@dataclass(frozen=True)
class AutoplayStopped:
    reason: str
    step: int
    t: Optional[float] = None


@dataclass(frozen=True)
class InputsChanged:
    points: Dict[str, List[float]]
    t: Optional[float] = None


Event = Union[
    NavigationStarted,
    NavigationCompleted,
    NavigationFailed,
    StepDrawn,
    StepCompleted,
    StepTornDown,
    ElementCreated,
    ElementDisposed,
    ElementSkipped,
    AnimationCancelled,
    ExplanationShown,
    CanvasCleared,
    CanvasResized,
    InputsChanged,
    AutoplayStarted,
    AutoplayStopped,
]

EVENT_TYPES = {
    cls.__name__: cls
    for cls in (
        NavigationStarted,
        NavigationCompleted,
        NavigationFailed,
        StepDrawn,
        StepCompleted,
        StepTornDown,
        ElementCreated,
        ElementDisposed,
        ElementSkipped,
        AnimationCancelled,
        ExplanationShown,
        CanvasCleared,
        CanvasResized,
        InputsChanged,
        AutoplayStarted,
        AutoplayStopped,
    )
}


def event_to_dict(event: Event) -> dict:
    """Plain mapping with the event class name under "type"."""
    return {"type": type(event).__name__, **asdict(event)}


def event_from_dict(obj: dict) -> Optional[Event]:
    """Inverse of `event_to_dict`; returns None for unknown types."""
    obj = dict(obj)
    cls = EVENT_TYPES.get(obj.pop("type", None))
    if cls is None:
        return None
    return cls(**obj)
