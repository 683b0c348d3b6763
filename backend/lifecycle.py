"""
Per-instance load guard: idle → initializing → ready.

Editors call `begin()` before loading; a second call while the first load is
still running returns False instead of starting another one.
"""
from __future__ import annotations

import logging
from enum import Enum

log = logging.getLogger("agent_console.lifecycle")


class LoadState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"


class LoadGuard:
    def __init__(self, name: str = "loader"):
        self.name = name
        self.state = LoadState.IDLE

    def begin(self) -> bool:
        if self.state is not LoadState.IDLE:
            log.debug("%s: load skipped, state=%s", self.name, self.state.value)
            return False
        self.state = LoadState.INITIALIZING
        return True

    def finish(self) -> None:
        self.state = LoadState.READY

    def fail(self) -> None:
        self.state = LoadState.IDLE

    def reset(self) -> None:
        self.state = LoadState.IDLE

    @property
    def ready(self) -> bool:
        return self.state is LoadState.READY
