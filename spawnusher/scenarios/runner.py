"""spawnusher/scenarios/runner — Scenario execution engine.

Builds a headless host from a ScenarioDef, activates placement on it,
triggers every entity, then lets the clock run until the queue drains or
the scenario's duration is used up.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from spawnusher.entity import Coordinate
from spawnusher.headless import HeadlessEntity, HeadlessHost, VoxelGrid
from spawnusher.scenarios.loader import ColumnDef, ScenarioDef
from spawnusher.scheduler import PlacementScheduler, activate


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass
class EntityOutcome:
    name: str
    start: Coordinate
    final: Coordinate
    placed: bool
    success: bool
    reason: str
    moves: int


@dataclass
class ScenarioOutcome:
    """Result of executing a scenario to completion."""

    name: str
    success: bool
    entities: list[EntityOutcome]
    retry_passes: int
    searches: int
    abandoned: int
    still_pending: int
    sim_time: float
    wall_time_ms: float


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_grid(defn: ScenarioDef) -> VoxelGrid:
    grid = VoxelGrid(
        size=defn.grid.size,
        origin=defn.grid.origin,
        fill=defn.grid.fill,
        unloaded_material=defn.config.unloaded_material,
    )
    for column in defn.columns:
        grid.set_column(column.x, column.z, column.materials, base_y=column.base_y)
    return grid


def _column_writer(grid: VoxelGrid, column: ColumnDef):
    def write() -> None:
        grid.set_column(column.x, column.z, column.materials, base_y=column.base_y)
    return write


def _judge(
    entity: HeadlessEntity, scheduler: PlacementScheduler, expect: Coordinate | None,
    expect_pending: bool,
) -> tuple[bool, bool, str]:
    """Return (placed, success, reason) for one entity."""
    placed = not scheduler.is_pending(entity) and not entity.locked
    if expect_pending:
        if placed:
            return placed, False, f"placed at {entity.position.as_tuple()}, expected pending"
        return placed, True, "pending as expected"
    if not placed:
        return placed, False, f"still pending at {entity.position.as_tuple()}"
    if expect is not None and entity.position != expect:
        return placed, False, (
            f"placed at {entity.position.as_tuple()}, expected {expect.as_tuple()}"
        )
    return placed, True, f"placed at {entity.position.as_tuple()}"


# ---------------------------------------------------------------------------
# Main runner
# ---------------------------------------------------------------------------


def run_scenario(defn: ScenarioDef) -> ScenarioOutcome:
    """Execute a scenario and return its outcome."""
    t_start = time.perf_counter()

    grid = build_grid(defn)
    host = HeadlessHost(grid)
    scheduler = activate(host, config=defn.config)

    # Column reloads go on the host clock so they interleave with retries
    for event in defn.events:
        host.schedule_once(event.at, _column_writer(grid, event.column))

    entities: list[HeadlessEntity] = []
    for edef in defn.entities:
        entity = HeadlessEntity(name=edef.name, position=edef.start)
        entities.append(entity)
        if edef.trigger == "respawned":
            host.respawn(entity)
        else:
            host.spawn(entity)

    host.run_until_idle(defn.duration)

    outcomes = []
    for edef, entity in zip(defn.entities, entities):
        placed, success, reason = _judge(entity, scheduler, edef.expect, edef.expect_pending)
        outcomes.append(EntityOutcome(
            name=edef.name,
            start=edef.start,
            final=entity.position,
            placed=placed,
            success=success,
            reason=reason,
            moves=len(entity.history),
        ))

    wall_ms = (time.perf_counter() - t_start) * 1000
    return ScenarioOutcome(
        name=defn.name,
        success=all(o.success for o in outcomes),
        entities=outcomes,
        retry_passes=scheduler.stats.retry_passes,
        searches=scheduler.stats.searches,
        abandoned=scheduler.stats.abandoned,
        still_pending=len(scheduler.pending),
        sim_time=host.time,
        wall_time_ms=wall_ms,
    )
