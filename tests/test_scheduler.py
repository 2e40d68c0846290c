"""Tests for spawnusher/scheduler.py — placement search, deferral, retry passes."""

from __future__ import annotations

import logging

import pytest

from spawnusher.config import UsherConfig
from spawnusher.entity import MOTION_LOCKED, MOTION_RELEASED, Coordinate, MotionOverride
from spawnusher.errors import EntityAccessError, VolumeAccessError
from spawnusher.headless import HeadlessEntity, HeadlessHost
from spawnusher.scheduler import PlacementScheduler, SearchState
from tests.grids import build_columns, column_host, entity_at, materials


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def at(y: int, x: int = 0) -> Coordinate:
    return Coordinate(x, y, 0)


def scheduler_for(cells: str, **config) -> tuple[HeadlessHost, PlacementScheduler]:
    host = column_host(cells)
    return host, PlacementScheduler(host, UsherConfig(**config))


class CountingEntity(HeadlessEntity):
    """Counts how often a search starts from this entity."""

    reads = 0

    def get_position(self) -> Coordinate:
        self.reads += 1
        return super().get_position()


class FlakyEntity(HeadlessEntity):
    fail_reads = False
    fail_moves = False
    fail_overrides = False

    def get_position(self) -> Coordinate:
        if self.fail_reads:
            raise EntityAccessError("entity unloaded")
        return super().get_position()

    def set_position(self, pos: Coordinate) -> None:
        if self.fail_moves:
            raise EntityAccessError("teleport refused")
        super().set_position(pos)

    def set_motion_override(self, override: MotionOverride) -> None:
        if self.fail_overrides:
            raise EntityAccessError("physics override refused")
        super().set_motion_override(override)


class CrashingEntity(HeadlessEntity):
    """Raises an error the scheduler does not handle."""

    crash = False

    def get_position(self) -> Coordinate:
        if self.crash:
            raise RuntimeError("host bug")
        return super().get_position()


class FlakyHost(HeadlessHost):
    broken = False

    def material_at(self, pos: Coordinate) -> str:
        if self.broken:
            raise VolumeAccessError("map database locked")
        return super().material_at(pos)


# ---------------------------------------------------------------------------
# Search (no side effects)
# ---------------------------------------------------------------------------

class TestSearch:
    def test_descends_through_air_onto_floor(self):
        _, s = scheduler_for("SSSAAAAAAA")
        result = s.search(at(9))
        assert result.state is SearchState.FOUND
        assert result.position == at(3)
        assert result.steps == 3

    def test_already_standing_on_floor(self):
        _, s = scheduler_for("SAAA")
        result = s.search(at(1))
        assert result.state is SearchState.FOUND
        assert result.position == at(1)
        assert result.steps == 0

    def test_climbs_out_of_solid_past_cramped_pocket(self):
        # y0 floor, y1-2 air, y3 ceiling: the pocket at y1 lacks headroom
        # (needs y2 and y3 empty), so the probe moves up 2 into the ceiling,
        # climbs out, and settles at y4 with y5-6 clear.
        _, s = scheduler_for("SAASAAA")
        result = s.search(at(0))
        assert result.state is SearchState.FOUND
        assert result.position == at(4)
        assert result.steps == 3

    def test_first_qualifying_span_wins(self):
        _, s = scheduler_for("SSAAASAAA")
        assert s.search(at(0)).position == at(2)

    def test_unknown_below_defers_at_probe(self):
        _, s = scheduler_for("SSSS?AAA")
        result = s.search(at(5))
        assert result.state is SearchState.DEFERRED
        assert result.position == at(5)

    def test_defers_where_unknown_was_reached(self):
        _, s = scheduler_for("??AAAAAA")
        result = s.search(at(7))
        assert result.state is SearchState.DEFERRED
        assert result.position == at(1)
        assert result.steps == 3

    def test_start_in_unknown(self):
        _, s = scheduler_for("????")
        result = s.search(at(2))
        assert result.state is SearchState.DEFERRED
        assert result.position == at(2)

    def test_climbing_into_unknown(self):
        _, s = scheduler_for("SSS?")
        result = s.search(at(0))
        assert result.state is SearchState.DEFERRED
        assert result.position == at(3)

    def test_unknown_headroom_moves_up_then_defers(self):
        # The bubble check only says "no"; the scan itself meets the unknown cell
        _, s = scheduler_for("SAA?AA")
        result = s.search(at(1))
        assert result.state is SearchState.DEFERRED
        assert result.position == at(3)

    def test_bubble_height_three(self):
        _, s = scheduler_for("SAAAAS", bubble_height=3)
        assert s.search(at(0)).position == at(1)

    def test_leaving_sane_range_abandons(self, caplog):
        _, s = scheduler_for("S" * 12, min_y=-3, max_y=8)
        with caplog.at_level(logging.WARNING, logger="spawnusher.scheduler"):
            result = s.search(at(0))
        assert result.state is SearchState.ABANDONED
        assert result.position == at(9)
        assert "sane range" in caplog.text

    def test_start_outside_range_abandons_immediately(self):
        _, s = scheduler_for("SAAA", min_y=5, max_y=100)
        result = s.search(at(1))
        assert result.state is SearchState.ABANDONED
        assert result.steps == 0

    def test_oscillation_is_bounded(self, caplog):
        # With bubble height 3 the pocket at y1 is one cell short: the probe
        # bounces between y1 (up 2) and y3 (air below, down 2) forever.
        _, s = scheduler_for("SAAASAAAAA", bubble_height=3, min_y=-5, max_y=20)
        with caplog.at_level(logging.WARNING, logger="spawnusher.scheduler"):
            result = s.search(at(1))
        assert result.state is SearchState.ABANDONED
        assert result.steps == s.config.max_steps
        assert "gave up" in caplog.text

    def test_volume_is_requeried_every_search(self):
        host, s = scheduler_for("SSAAAA")
        assert s.search(at(5)).position == at(2)
        host.grid.set_cell(at(2), "stone")
        assert s.search(at(5)).position == at(3)


# ---------------------------------------------------------------------------
# place() — effects on the entity and the queue
# ---------------------------------------------------------------------------

class TestPlace:
    def test_found_moves_and_releases(self):
        host, s = scheduler_for("SSSAAAAAAA")
        e = entity_at(9)
        e.set_motion_override(MOTION_LOCKED)
        result = s.place(e)
        assert result.state is SearchState.FOUND
        assert e.position == at(3)
        assert e.override == MOTION_RELEASED
        assert s.pending == []
        assert not s.armed
        assert host.pending_timers == 0
        assert s.stats.placed == 1

    def test_chunk_boundary_defers_with_lock(self):
        host, s = scheduler_for("SSSS?AAA")
        e = entity_at(5)
        result = s.place(e)
        assert result.state is SearchState.DEFERRED
        assert e.position == at(5)
        assert e.override == MOTION_LOCKED
        assert s.pending == [e]
        assert s.is_pending(e)
        assert s.armed
        assert host.pending_timers == 1
        assert host.next_timer_at == 0.5

    def test_deferral_keeps_scan_progress(self):
        _, s = scheduler_for("??AAAAAA")
        e = entity_at(7)
        s.place(e)
        assert e.position == at(1)
        assert e.history == [at(1)]

    def test_abandoned_releases_and_stays_put(self):
        _, s = scheduler_for("S" * 12, min_y=-3, max_y=8)
        e = entity_at(0)
        e.set_motion_override(MOTION_LOCKED)
        result = s.place(e)
        assert result.state is SearchState.ABANDONED
        assert e.position == at(0)
        assert e.history == []
        assert e.override == MOTION_RELEASED
        assert not s.is_pending(e)
        assert s.stats.abandoned == 1

    def test_same_entity_queued_once(self):
        host, s = scheduler_for("SSSS?AAA")
        e = entity_at(5)
        s.place(e)
        s.place(e)
        assert s.pending == [e]
        assert host.pending_timers == 1


# ---------------------------------------------------------------------------
# Retry passes
# ---------------------------------------------------------------------------

def unknown_floor_host(n: int) -> HeadlessHost:
    """n columns with two unloaded cells under two air cells."""
    return HeadlessHost(build_columns({(x, 0): "??AA" for x in range(n)}))


class TestRetry:
    def test_empty_queue_clears_flag_without_timer(self):
        host, s = scheduler_for("SAAA")
        s.retry_pending()
        assert not s.armed
        assert host.pending_timers == 0
        assert s.stats.retry_passes == 1

    def test_unresolved_entities_stay_queued(self):
        host = unknown_floor_host(3)
        s = PlacementScheduler(host)
        entities = [entity_at(3, x=x, name=f"e{x}") for x in range(3)]
        for e in entities:
            s.place(e)
        assert [e.position.y for e in entities] == [1, 1, 1]

        host.advance(0.5)
        assert s.pending == entities
        assert s.armed
        assert host.pending_timers == 1
        assert s.stats.timers_scheduled == 2

    def test_requeued_entity_not_revisited_in_same_pass(self):
        host = unknown_floor_host(1)
        s = PlacementScheduler(host)
        e = CountingEntity(name="c", position=at(3))
        s.place(e)
        host.advance(0.5)
        assert e.reads == 2
        host.advance(0.5)
        assert e.reads == 3

    def test_queue_drains_once_loaded(self):
        host = unknown_floor_host(2)
        s = PlacementScheduler(host)
        entities = [entity_at(3, x=x) for x in range(2)]
        for e in entities:
            s.place(e)

        for x in range(2):
            host.grid.set_column(x, 0, materials("SAAA"))
        host.advance(0.5)

        assert s.pending == []
        assert not s.armed
        assert host.pending_timers == 0
        for x, e in enumerate(entities):
            assert e.position == at(1, x=x)
            assert e.override == MOTION_RELEASED

    def test_partial_resolution_rearms(self):
        host = unknown_floor_host(2)
        s = PlacementScheduler(host)
        a, b = entity_at(3, x=0), entity_at(3, x=1)
        s.place(a)
        s.place(b)

        host.grid.set_column(0, 0, materials("SAAA"))
        host.advance(0.5)
        assert s.pending == [b]
        assert s.armed
        assert host.pending_timers == 1
        assert not a.locked
        assert b.locked

    def test_one_timer_for_many_deferrals(self):
        host = unknown_floor_host(5)
        s = PlacementScheduler(host)
        for x in range(5):
            s.place(entity_at(3, x=x))
        assert len(s.pending) == 5
        assert host.pending_timers == 1
        assert s.stats.timers_scheduled == 1

    def test_deferral_between_passes_reuses_timer(self):
        host = unknown_floor_host(2)
        s = PlacementScheduler(host)
        s.place(entity_at(3, x=0))
        host.advance(0.25)
        s.place(entity_at(3, x=1))
        assert host.pending_timers == 1
        host.advance(0.25)
        assert len(s.pending) == 2
        assert host.pending_timers == 1

    def test_retry_continues_from_deferred_probe(self):
        host = unknown_floor_host(1)
        s = PlacementScheduler(host)
        e = entity_at(3)
        s.place(e)
        # The entity now waits at y1; loading a floor under y1 places it there
        host.grid.set_column(0, 0, ["stone", "air"])
        host.advance(0.5)
        assert e.position == at(1)
        assert not s.armed


# ---------------------------------------------------------------------------
# Host interface failures degrade to deferral
# ---------------------------------------------------------------------------

class TestInterfaceErrors:
    def test_volume_error_defers(self):
        host = FlakyHost(build_columns({(0, 0): "SAAA"}))
        s = PlacementScheduler(host)
        e = entity_at(1)
        host.broken = True
        assert s.place(e).state is SearchState.DEFERRED
        assert s.is_pending(e)

        host.broken = False
        host.advance(0.5)
        assert e.position == at(1)
        assert not s.is_pending(e)

    def test_unreadable_entity_is_queued(self, caplog):
        host, s = scheduler_for("SAAA")
        e = FlakyEntity(name="f", position=at(1))
        e.fail_reads = True
        with caplog.at_level(logging.WARNING, logger="spawnusher.scheduler"):
            assert s.place(e) is None
        assert s.is_pending(e)
        assert s.armed
        assert "entity unloaded" in caplog.text

        e.fail_reads = False
        host.advance(0.5)
        assert not s.is_pending(e)
        assert e.override == MOTION_RELEASED

    def test_failed_teleport_is_retried(self):
        host, s = scheduler_for("SSAAAA")
        e = FlakyEntity(name="f", position=at(5))
        e.fail_moves = True
        s.place(e)
        assert s.is_pending(e)
        assert s.stats.placed == 0

        e.fail_moves = False
        host.advance(0.5)
        assert e.position == at(2)
        assert s.stats.placed == 1

    def test_failed_lock_still_queues(self):
        _, s = scheduler_for("??AA")
        e = FlakyEntity(name="f", position=at(3))
        e.fail_overrides = True
        s.place(e)
        assert s.is_pending(e)
        assert e.position == at(1)


# ---------------------------------------------------------------------------
# Queue consistency
# ---------------------------------------------------------------------------

class TestQueueConsistency:
    def test_retrigger_that_places_leaves_queue(self):
        host = unknown_floor_host(1)
        s = PlacementScheduler(host)
        e = entity_at(3)
        s.place(e)
        assert s.is_pending(e)

        host.grid.set_column(0, 0, materials("SAAA"))
        s.place(e)
        assert e.position == at(1)
        assert not s.is_pending(e)

        # The entity walks off; the already armed pass must not pull it back
        e.set_position(at(3))
        host.advance(0.5)
        assert e.position == at(3)
        assert not s.armed
        assert host.pending_timers == 0

    def test_retrigger_that_abandons_leaves_queue(self):
        host = HeadlessHost(build_columns({(0, 0): "??AA" + "S" * 8}))
        s = PlacementScheduler(host, UsherConfig(min_y=-3, max_y=8))
        e = entity_at(3)
        s.place(e)
        assert s.is_pending(e)

        host.grid.set_column(0, 0, materials("S" * 12))
        assert s.place(e).state is SearchState.ABANDONED
        assert not s.is_pending(e)
        host.advance(0.5)
        assert not s.armed

    def test_unexpected_error_keeps_batch_and_timer(self):
        host = unknown_floor_host(2)
        s = PlacementScheduler(host)
        a = CrashingEntity(name="a", position=at(3, x=0))
        b = entity_at(3, x=1, name="b")
        s.place(a)
        s.place(b)

        a.crash = True
        with pytest.raises(RuntimeError):
            host.advance(0.5)
        assert s.is_pending(a)
        assert s.is_pending(b)
        assert s.armed
        assert host.pending_timers == 1

        a.crash = False
        for x in range(2):
            host.grid.set_column(x, 0, materials("SAAA"))
        host.advance(0.5)
        assert a.position == at(1, x=0)
        assert b.position == at(1, x=1)
        assert s.pending == []
        assert not s.armed
