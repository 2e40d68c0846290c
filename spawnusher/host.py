"""spawnusher/host.py — What spawnusher needs from the host runtime.

The host is single-threaded and cooperative: handlers and timer callbacks
are invoked strictly one at a time.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from spawnusher.entity import Coordinate, Entity

EntityHandler = Callable[[Entity], object]
TimerCallback = Callable[[], object]


@runtime_checkable
class Host(Protocol):
    """Volume, timer and event substrate.

    activate() tracks hosts by identity and weak reference, so a host must
    support weakref but need not be hashable.
    """

    def material_at(self, pos: Coordinate) -> str:
        """Material name at *pos*; may raise VolumeAccessError."""
        ...

    def schedule_once(self, delay: float, callback: TimerCallback) -> None:
        """Run *callback* once, *delay* seconds from now."""
        ...

    def on_entity_created(self, handler: EntityHandler) -> None:
        ...

    def on_entity_respawned(self, handler: EntityHandler) -> None:
        ...
