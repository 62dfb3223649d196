"""Plain value types passed between the orchestrator and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Optional


@dataclass(frozen=True)
class ConnectionEvent:
    """A change of the primary network connection.

    ``connection_id`` is the stable id of the connection profile; an empty
    string means there is no active connection. ``connection_settings`` is an
    opaque handle that is only ever handed back to the zone lookup.
    """

    connection_id: str
    connection_settings: Any = None


@dataclass(frozen=True)
class ZoneSnapshot:
    """Zones available when a prompt is opened.

    ``current_zone`` is ``None`` when the connection uses the default zone.
    """

    zones: FrozenSet[str]
    default_zone: str
    current_zone: Optional[str] = None

    def sorted_zones(self):
        return sorted(self.zones)


@dataclass(frozen=True)
class ErrorEvent:
    """An error reported to the user as a notification keyed by ``id``."""

    fatal: bool
    id: str
    title: str
    message: str


@dataclass
class PromptState:
    """The single prompt owned by the orchestrator."""

    connection_id: str
    connection_settings: Any = None
    snapshot: Optional[ZoneSnapshot] = field(default=None, compare=False)


class LifecycleState(Enum):
    RUNNING = "running"
    SHUTTING_DOWN = "shutting-down"
    STOPPED = "stopped"
