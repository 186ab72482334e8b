from __future__ import annotations

import json
import logging
from typing import IO, Iterator, Optional

from walkthrough_core.events import Event, event_from_dict, event_to_dict

from walkthrough_anim.adapters.base import WalkthroughEventSource

logger = logging.getLogger(__name__)


class JsonlEventSource(WalkthroughEventSource):
    """Replays events recorded one JSON object per line; unknown types are skipped."""

    def __init__(self, path: str):
        self.path = path

    def stream_events(self) -> Iterator[Event]:
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                ev = event_from_dict(json.loads(line))
                if ev is None:
                    logger.debug("Skipping unknown event line: %s", line[:80])
                    continue
                yield ev


class JsonlEventSink:
    """Navigator subscriber that appends every event to a JSONL file."""

    def __init__(self, path: str):
        self.path = path
        self.count = 0
        self._fh: Optional[IO[str]] = open(path, "w", encoding="utf-8")

    def __call__(self, event: Event) -> None:
        if self._fh is None:
            raise ValueError(f"event sink {self.path} is closed")
        self._fh.write(json.dumps(event_to_dict(event)) + "\n")
        self.count += 1

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> "JsonlEventSink":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
