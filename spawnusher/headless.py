"""spawnusher/headless.py — In-process host with a numpy voxel grid and a manual clock.

Lets tests, scenarios and integrators drive the scheduler without a game
engine. Time only moves when advance() is called; timers fire in due-time
order, ties in scheduling order.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from spawnusher.constants import AIR, IGNORE
from spawnusher.entity import MOTION_LOCKED, MOTION_RELEASED, Coordinate, MotionOverride
from spawnusher.host import EntityHandler, TimerCallback

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# VoxelGrid
# ---------------------------------------------------------------------------

class VoxelGrid:
    """Box of cells holding palette codes, plus a per-cell loaded mask.

    Cells outside the box, or not loaded, read as the unloaded material.
    """

    def __init__(
        self,
        size: tuple[int, int, int],
        origin: tuple[int, int, int] = (0, 0, 0),
        fill: str = AIR,
        unloaded_material: str = IGNORE,
    ) -> None:
        if fill == unloaded_material:
            raise ValueError("fill material cannot be the unloaded material")
        self.origin = np.array(origin, dtype=np.int64)
        self.size = tuple(int(s) for s in size)
        self.unloaded_material = unloaded_material
        self.palette: list[str] = [fill]
        self._codes: dict[str, int] = {fill: 0}
        self.cells = np.zeros(self.size, dtype=np.uint16)
        self.loaded = np.ones(self.size, dtype=bool)

    # -- addressing ----------------------------------------------------------

    def _code(self, material: str) -> int:
        code = self._codes.get(material)
        if code is None:
            code = len(self.palette)
            self.palette.append(material)
            self._codes[material] = code
        return code

    def _index(self, pos: Coordinate) -> tuple[int, int, int] | None:
        idx = np.array(pos.as_tuple(), dtype=np.int64) - self.origin
        if np.any(idx < 0) or np.any(idx >= self.size):
            return None
        return (int(idx[0]), int(idx[1]), int(idx[2]))

    def _box(self, lo: Coordinate, hi: Coordinate) -> tuple[slice, slice, slice]:
        """Inclusive box clipped to the grid."""
        start = np.maximum(np.array(lo.as_tuple()) - self.origin, 0)
        stop = np.minimum(np.array(hi.as_tuple()) - self.origin + 1, self.size)
        return tuple(slice(int(a), int(max(a, b))) for a, b in zip(start, stop))

    def in_bounds(self, pos: Coordinate) -> bool:
        return self._index(pos) is not None

    # -- queries -------------------------------------------------------------

    def material_at(self, pos: Coordinate) -> str:
        idx = self._index(pos)
        if idx is None or not self.loaded[idx]:
            return self.unloaded_material
        return self.palette[self.cells[idx]]

    # -- edits ---------------------------------------------------------------

    def set_cell(self, pos: Coordinate, material: str) -> None:
        """Write one cell. Writing the unloaded material unloads the cell."""
        idx = self._index(pos)
        if idx is None:
            raise IndexError(f"{pos.as_tuple()} is outside the grid")
        if material == self.unloaded_material:
            self.loaded[idx] = False
            return
        self.cells[idx] = self._code(material)
        self.loaded[idx] = True

    def set_column(self, x: int, z: int, materials: Sequence[str], base_y: int = 0) -> None:
        """Write *materials* bottom-up starting at (x, base_y, z)."""
        for dy, material in enumerate(materials):
            self.set_cell(Coordinate(x, base_y + dy, z), material)

    def fill(self, lo: Coordinate, hi: Coordinate, material: str) -> None:
        box = self._box(lo, hi)
        if material == self.unloaded_material:
            self.loaded[box] = False
            return
        self.cells[box] = self._code(material)
        self.loaded[box] = True

    def load(self, lo: Coordinate | None = None, hi: Coordinate | None = None) -> None:
        """Mark a box (default: everything) as loaded, keeping its contents."""
        if lo is None or hi is None:
            self.loaded[...] = True
        else:
            self.loaded[self._box(lo, hi)] = True

    def unload(self, lo: Coordinate | None = None, hi: Coordinate | None = None) -> None:
        if lo is None or hi is None:
            self.loaded[...] = False
        else:
            self.loaded[self._box(lo, hi)] = False


# ---------------------------------------------------------------------------
# Entity
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class HeadlessEntity:
    """Entity that records every move it is given."""

    name: str
    position: Coordinate
    override: MotionOverride = MOTION_RELEASED
    history: list[Coordinate] = field(default_factory=list)

    def get_position(self) -> Coordinate:
        return self.position

    def set_position(self, pos: Coordinate) -> None:
        self.position = pos
        self.history.append(pos)

    def set_motion_override(self, override: MotionOverride) -> None:
        self.override = override

    @property
    def locked(self) -> bool:
        return self.override == MOTION_LOCKED


# ---------------------------------------------------------------------------
# Host
# ---------------------------------------------------------------------------

class HeadlessHost:
    """Host implementation backed by a VoxelGrid and a manual clock."""

    def __init__(self, grid: VoxelGrid) -> None:
        self.grid = grid
        self.time = 0.0
        self._timers: list[tuple[float, int, TimerCallback]] = []
        self._seq = itertools.count()
        self.created_handlers: list[EntityHandler] = []
        self.respawned_handlers: list[EntityHandler] = []

    # -- Host protocol -------------------------------------------------------

    def material_at(self, pos: Coordinate) -> str:
        return self.grid.material_at(pos)

    def schedule_once(self, delay: float, callback: TimerCallback) -> None:
        heapq.heappush(self._timers, (self.time + delay, next(self._seq), callback))

    def on_entity_created(self, handler: EntityHandler) -> None:
        self.created_handlers.append(handler)

    def on_entity_respawned(self, handler: EntityHandler) -> None:
        self.respawned_handlers.append(handler)

    # -- driving -------------------------------------------------------------

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    @property
    def next_timer_at(self) -> float | None:
        return self._timers[0][0] if self._timers else None

    def spawn(self, entity: HeadlessEntity) -> None:
        for handler in list(self.created_handlers):
            handler(entity)

    def respawn(self, entity: HeadlessEntity) -> None:
        for handler in list(self.respawned_handlers):
            handler(entity)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due timers. Returns how many fired."""
        return self.advance_to(self.time + seconds)

    def advance_to(self, when: float) -> int:
        fired = 0
        while self._timers and self._timers[0][0] <= when:
            due, _, callback = heapq.heappop(self._timers)
            self.time = due
            callback()
            fired += 1
        self.time = max(self.time, when)
        return fired

    def run_until_idle(self, limit: float) -> float:
        """Fire timers until none remain or *limit* seconds pass. Returns elapsed."""
        start = self.time
        while self._timers and self._timers[0][0] - start <= limit:
            self.advance_to(self._timers[0][0])
        if self._timers:
            logger.debug("Timers still pending after %.3fs", limit)
        return self.time - start
