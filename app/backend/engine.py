from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from walkthrough_core.compiler import compile_from_file
from walkthrough_core.config import NavigatorConfig
from walkthrough_core.events import Event, event_to_dict
from walkthrough_core.renderer import SceneRenderer
from walkthrough_core.scheduler import AsyncioScheduler
from walkthrough_core.session import WalkthroughSession
from walkthrough_core.steps import StepRegistry

logger = logging.getLogger(__name__)

DEFAULT_DIR = Path(__file__).resolve().parents[2] / "walkthroughs"


@dataclass
class WalkthroughEntry:
    name: str
    title: str
    path: Path
    registry: StepRegistry
    config: NavigatorConfig


class WalkthroughService:
    """
    One live session per bundled walkthrough, driven by the asyncio loop.

    - available(): walkthroughs found in the definitions directory
    - session(name): the live session, created on first use
    - subscribe(name): asyncio.Queue receiving every published event
    - reset(): drop every session (used between tests)
    """

    def __init__(self, directory: str | Path | None = None) -> None:
        self.directory = Path(directory or os.environ.get("WALKTHROUGH_DIR") or DEFAULT_DIR)
        self._entries: Optional[Dict[str, WalkthroughEntry]] = None
        self._sessions: Dict[str, WalkthroughSession] = {}
        self._subscribers: Dict[str, Set[asyncio.Queue]] = {}

    # --- catalogue ---------------------------------------------------------
    def _load(self) -> Dict[str, WalkthroughEntry]:
        if self._entries is None:
            entries: Dict[str, WalkthroughEntry] = {}
            for path in sorted(self.directory.glob("*.yaml")):
                registry, config = compile_from_file(str(path))
                entries[registry.name] = WalkthroughEntry(registry.name, registry.title, path, registry, config)
            logger.info("Loaded %d walkthroughs from %s", len(entries), self.directory)
            self._entries = entries
        return self._entries

    def available(self) -> List[Dict[str, Any]]:
        return [
            {"name": e.name, "title": e.title, "steps": e.registry.total}
            for e in self._load().values()
        ]

    def session(self, name: str) -> WalkthroughSession:
        """Raises KeyError for an unknown walkthrough."""
        if name not in self._sessions:
            entry = self._load()[name]
            scheduler = AsyncioScheduler()
            session = WalkthroughSession(
                entry.registry,
                renderer=SceneRenderer(scheduler),
                scheduler=scheduler,
                config=entry.config,
            )
            session.subscribe(lambda ev, n=name: self._broadcast(n, ev))
            self._sessions[name] = session
        return self._sessions[name]

    # --- pubsub ------------------------------------------------------------
    def subscribe(self, name: str) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=1000)
        self._subscribers.setdefault(name, set()).add(q)
        return q

    def unsubscribe(self, name: str, q: asyncio.Queue) -> None:
        self._subscribers.get(name, set()).discard(q)

    def _broadcast(self, name: str, event: Event) -> None:
        # Non-blocking fan-out; a full queue drops the event for that client
        payload = event_to_dict(event)
        for q in list(self._subscribers.get(name, ())):
            try:
                q.put_nowait(payload)
            except asyncio.QueueFull:
                logger.warning("Dropping %s for a slow %s subscriber", payload["type"], name)

    # --- lifecycle ---------------------------------------------------------
    def reset(self) -> None:
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()
