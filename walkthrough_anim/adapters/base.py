from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator

from walkthrough_core.events import Event


class WalkthroughEventSource(ABC):
    @abstractmethod
    def stream_events(self) -> Iterator[Event]:
        ...


class WalkthroughStepper(ABC):
    @abstractmethod
    def reset(self) -> None:
        ...

    @abstractmethod
    def goto(self, target: int) -> None:
        ...

    @abstractmethod
    def stream_events(self) -> Iterator[Event]:
        ...
