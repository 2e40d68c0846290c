"""spawnusher — Safe spawn placement in voxel volumes, with deferred retries."""

from spawnusher.config import UsherConfig, load_config
from spawnusher.entity import MOTION_LOCKED, MOTION_RELEASED, Coordinate, Entity, MotionOverride
from spawnusher.errors import (
    ConfigError,
    EntityAccessError,
    HostInterfaceError,
    UsherError,
    VolumeAccessError,
)
from spawnusher.host import Host
from spawnusher.scheduler import (
    PlacementScheduler,
    SchedulerStats,
    SearchResult,
    SearchState,
    activate,
)
from spawnusher.volume import CellState, VolumeProber

__all__ = [
    "activate",
    "PlacementScheduler",
    "SchedulerStats",
    "SearchResult",
    "SearchState",
    "CellState",
    "VolumeProber",
    "Coordinate",
    "Entity",
    "MotionOverride",
    "MOTION_LOCKED",
    "MOTION_RELEASED",
    "Host",
    "UsherConfig",
    "load_config",
    "UsherError",
    "HostInterfaceError",
    "VolumeAccessError",
    "EntityAccessError",
    "ConfigError",
]
