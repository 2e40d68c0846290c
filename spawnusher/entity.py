"""spawnusher/entity.py — Coordinates, motion overrides and the Entity protocol.

The host owns entities; spawnusher only reads their position, moves them,
and freezes or releases their locomotion while a placement is pending.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coordinate:
    """Integer cell coordinate. y is the vertical axis."""

    x: int
    y: int
    z: int

    @classmethod
    def from_floats(cls, x: float, y: float, z: float) -> Coordinate:
        """Round a host position to the cell containing it (half rounds up)."""
        return cls(math.floor(x + 0.5), math.floor(y + 0.5), math.floor(z + 0.5))

    def offset(self, dy: int) -> Coordinate:
        return Coordinate(self.x, self.y + dy, self.z)

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.x, self.y, self.z)


# ---------------------------------------------------------------------------
# Motion override
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MotionOverride:
    """Locomotion multipliers and flags applied to an entity."""

    speed: float
    jump: float
    gravity: float
    sneak: bool
    sneak_glitch: bool


MOTION_LOCKED = MotionOverride(speed=0, jump=0, gravity=0, sneak=False, sneak_glitch=False)
"""Holds an entity in place while the volume around it is still loading."""

MOTION_RELEASED = MotionOverride(speed=1, jump=1, gravity=1, sneak=True, sneak_glitch=True)
"""Normal locomotion, falling and sneaking."""


# ---------------------------------------------------------------------------
# Entity protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class Entity(Protocol):
    """Host-side handle for anything that can be placed.

    Implementations may raise EntityAccessError from any method.
    """

    def get_position(self) -> Coordinate:
        ...

    def set_position(self, pos: Coordinate) -> None:
        ...

    def set_motion_override(self, override: MotionOverride) -> None:
        ...
