"""spawnusher/volume.py — Volume prober: three-state cell queries.

Pure read-only questions against the host's voxel volume. Nothing is cached;
the volume may change between two calls and is always re-queried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from spawnusher.constants import AIR, IGNORE
from spawnusher.entity import Coordinate
from spawnusher.errors import VolumeAccessError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

MaterialLookup = Callable[[Coordinate], str]
"""Callable that returns the material name of the cell at a coordinate."""


class CellState(Enum):
    EMPTY = "empty"
    SOLID = "solid"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Prober
# ---------------------------------------------------------------------------

@dataclass
class VolumeProber:
    """Maps raw materials from *lookup* onto EMPTY / SOLID / UNKNOWN."""

    lookup: MaterialLookup
    empty_material: str = AIR
    unloaded_material: str = IGNORE

    def classify(self, material: str) -> CellState:
        if material == self.unloaded_material:
            return CellState.UNKNOWN
        if material == self.empty_material:
            return CellState.EMPTY
        return CellState.SOLID

    def cell_state(self, pos: Coordinate) -> CellState:
        """Return the state of the cell at *pos*.

        A VolumeAccessError from the host is reported as UNKNOWN so that the
        caller defers instead of failing.
        """
        try:
            material = self.lookup(pos)
        except VolumeAccessError as exc:
            logger.warning("Volume read failed at %s: %s", pos.as_tuple(), exc)
            return CellState.UNKNOWN
        return self.classify(material)

    def has_bubble(self, pos: Coordinate, height: int) -> bool:
        """True iff the *height* cells strictly above *pos* are all EMPTY.

        SOLID and UNKNOWN both answer False; telling them apart is left to
        the scheduler's own cell checks.
        """
        for dy in range(1, height + 1):
            if self.cell_state(pos.offset(dy)) is not CellState.EMPTY:
                return False
        return True
