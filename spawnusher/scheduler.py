"""spawnusher/scheduler.py — Placement search and deferred retry scheduling.

Finds an air bubble an entity fits into, either upwards out of solid ground
or downwards through open air, without knowing anything about how the volume
was generated. When the search reaches a cell that is not loaded yet, the
entity is frozen where the scan stopped and retried on a shared timer.

activate() is the only call an integrator needs.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, replace
from enum import Enum

from spawnusher.config import UsherConfig
from spawnusher.constants import STEP_DOWN_AIR, STEP_UP_CRAMPED, STEP_UP_SOLID
from spawnusher.entity import MOTION_LOCKED, MOTION_RELEASED, Coordinate, Entity
from spawnusher.errors import EntityAccessError
from spawnusher.host import Host
from spawnusher.volume import CellState, VolumeProber

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Search result
# ---------------------------------------------------------------------------


class SearchState(Enum):
    SCANNING = "scanning"
    FOUND = "found"
    DEFERRED = "deferred"
    ABANDONED = "abandoned"


@dataclass
class SearchResult:
    """Outcome of one synchronous search attempt."""

    state: SearchState
    position: Coordinate  # probe position where the scan stopped
    steps: int  # probe moves taken


@dataclass
class SchedulerStats:
    searches: int = 0
    placed: int = 0
    deferred: int = 0
    abandoned: int = 0
    retry_passes: int = 0
    timers_scheduled: int = 0


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class PlacementScheduler:
    """Owns the pending queue, the armed flag and the search configuration.

    Entities are queued by identity, so they need not be hashable.
    """

    def __init__(self, host: Host, config: UsherConfig | None = None) -> None:
        self.host = host
        self.config = config if config is not None else UsherConfig()
        self.stats = SchedulerStats()
        self._pending: dict[int, Entity] = {}
        self._armed = False

    # -- state ---------------------------------------------------------------

    @property
    def config(self) -> UsherConfig:
        return self._config

    @config.setter
    def config(self, config: UsherConfig) -> None:
        self._config = config
        self.prober = VolumeProber(
            lookup=self.host.material_at,
            empty_material=config.empty_material,
            unloaded_material=config.unloaded_material,
        )

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def pending(self) -> list[Entity]:
        return list(self._pending.values())

    def is_pending(self, entity: Entity) -> bool:
        return id(entity) in self._pending

    # -- search --------------------------------------------------------------

    def search(self, start: Coordinate) -> SearchResult:
        """Run the scan from *start* without touching any entity."""
        cfg = self.config
        prober = self.prober
        pos = start
        steps = 0
        state = SearchState.SCANNING

        while state is SearchState.SCANNING:
            if not cfg.min_y <= pos.y <= cfg.max_y:
                logger.warning(
                    "Placement search left the sane range at %s (started %s)",
                    pos.as_tuple(), start.as_tuple(),
                )
                state = SearchState.ABANDONED
            elif steps >= cfg.max_steps:
                logger.warning(
                    "Placement search gave up after %d steps at %s (started %s)",
                    steps, pos.as_tuple(), start.as_tuple(),
                )
                state = SearchState.ABANDONED
            else:
                current = prober.cell_state(pos)
                if current is CellState.UNKNOWN:
                    state = SearchState.DEFERRED
                elif current is CellState.SOLID:
                    pos = pos.offset(STEP_UP_SOLID)
                    steps += 1
                else:
                    below = prober.cell_state(pos.offset(-1))
                    if below is CellState.EMPTY:
                        pos = pos.offset(-STEP_DOWN_AIR)
                        steps += 1
                    elif below is CellState.UNKNOWN:
                        state = SearchState.DEFERRED
                    elif prober.has_bubble(pos, cfg.bubble_height):
                        state = SearchState.FOUND
                    else:
                        pos = pos.offset(STEP_UP_CRAMPED)
                        steps += 1

        return SearchResult(state, pos, steps)

    # -- entry points --------------------------------------------------------

    def place(self, entity: Entity) -> SearchResult | None:
        """Move *entity* to a safe spot, or park it until the volume loads.

        Returns None when the entity could not even be read; it is queued
        for the next retry pass in that case.
        """
        self.stats.searches += 1
        try:
            start = entity.get_position()
        except EntityAccessError as exc:
            logger.warning("Could not read entity position, retrying later: %s", exc)
            self._enqueue(entity)
            return None

        result = self.search(start)
        logger.debug(
            "Search from %s ended %s at %s after %d steps",
            start.as_tuple(), result.state.value, result.position.as_tuple(), result.steps,
        )

        if result.state is SearchState.FOUND:
            self._finalize(entity, result)
        elif result.state is SearchState.DEFERRED:
            self._defer(entity, result.position)
        else:
            self._abandon(entity)
        return result

    def retry_pending(self) -> None:
        """Timer callback: retry every queued entity once."""
        # Swap before iterating; entities that defer again land in the new
        # queue and are not visited twice in this pass.
        batch = list(self._pending.values())
        self._pending = {}
        self.stats.retry_passes += 1

        done = 0
        try:
            for entity in batch:
                self.place(entity)
                done += 1
        finally:
            # An unexpected error must not drop the rest of the batch or
            # leave the flag armed with no timer behind it.
            for entity in batch[done:]:
                self._pending.setdefault(id(entity), entity)
            if batch:
                logger.info(
                    "Retry pass %d: %d retried, %d still pending",
                    self.stats.retry_passes, done, len(self._pending),
                )
            if self._pending:
                self._schedule()
            else:
                self._armed = False

    # -- effects -------------------------------------------------------------

    def _finalize(self, entity: Entity, result: SearchResult) -> None:
        try:
            entity.set_position(result.position)
            entity.set_motion_override(MOTION_RELEASED)
        except EntityAccessError as exc:
            logger.warning(
                "Could not move entity to %s, retrying later: %s",
                result.position.as_tuple(), exc,
            )
            self._enqueue(entity)
            return
        self._pending.pop(id(entity), None)
        self.stats.placed += 1

    def _defer(self, entity: Entity, pos: Coordinate) -> None:
        self.stats.deferred += 1
        try:
            entity.set_position(pos)
            entity.set_motion_override(MOTION_LOCKED)
        except EntityAccessError as exc:
            logger.warning("Could not freeze entity at %s: %s", pos.as_tuple(), exc)
        self._enqueue(entity)

    def _abandon(self, entity: Entity) -> None:
        self.stats.abandoned += 1
        self._pending.pop(id(entity), None)
        try:
            entity.set_motion_override(MOTION_RELEASED)
        except EntityAccessError as exc:
            logger.warning("Could not release abandoned entity: %s", exc)

    def _enqueue(self, entity: Entity) -> None:
        self._pending[id(entity)] = entity
        if not self._armed:
            self._armed = True
            self._schedule()

    def _schedule(self) -> None:
        self.stats.timers_scheduled += 1
        self.host.schedule_once(self.config.retry_interval, self.retry_pending)


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------

# Keyed by id(host) so hosts that define __eq__ without __hash__ still work.
# The host's own handler list keeps its scheduler alive.
_activations: dict[int, weakref.ref] = {}


def _bound_scheduler(host: Host) -> PlacementScheduler | None:
    ref = _activations.get(id(host))
    scheduler = ref() if ref is not None else None
    if scheduler is None or scheduler.host is not host:
        return None
    return scheduler


def activate(
    host: Host,
    bubble_height: int | None = None,
    retry_interval: float | None = None,
    *,
    config: UsherConfig | None = None,
) -> PlacementScheduler:
    """Hook placement into *host*'s entity-created and entity-respawned events.

    Args:
        host: The host runtime.
        bubble_height: Height of the empty span an entity needs. Defaults to 2.
        retry_interval: Seconds between retry passes. Defaults to 0.5.
        config: Full configuration; the two arguments above override it.

    Returns:
        The scheduler bound to *host*. Activating the same host again
        reconfigures that scheduler instead of registering more handlers.
    """
    base = config if config is not None else UsherConfig()
    overrides = {}
    if bubble_height is not None:
        overrides["bubble_height"] = bubble_height
    if retry_interval is not None:
        overrides["retry_interval"] = retry_interval
    if overrides:
        base = replace(base, **overrides)

    scheduler = _bound_scheduler(host)
    if scheduler is not None:
        scheduler.config = base
        logger.info(
            "Reconfigured placement: bubble_height=%d retry_interval=%.3fs",
            base.bubble_height, base.retry_interval,
        )
        return scheduler

    scheduler = PlacementScheduler(host, base)
    host.on_entity_created(scheduler.place)
    host.on_entity_respawned(scheduler.place)
    _activations[id(host)] = weakref.ref(scheduler)
    weakref.finalize(host, _activations.pop, id(host), None)
    logger.info(
        "Activated placement: bubble_height=%d retry_interval=%.3fs",
        base.bubble_height, base.retry_interval,
    )
    return scheduler
