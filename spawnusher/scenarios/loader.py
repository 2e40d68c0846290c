"""spawnusher/scenarios/loader — ScenarioDef and YAML loading functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from spawnusher.config import UsherConfig, config_from_dict
from spawnusher.constants import AIR, IGNORE
from spawnusher.entity import Coordinate
from spawnusher.errors import ConfigError

DEFAULT_LEGEND: dict[str, str] = {
    "A": AIR,
    "S": "stone",
    "D": "dirt",
    "?": IGNORE,
}

VALID_TRIGGERS: frozenset[str] = frozenset({"created", "respawned"})

EXPECT_PENDING = "pending"


@dataclass
class GridDef:
    size: tuple[int, int, int]
    origin: tuple[int, int, int] = (0, 0, 0)
    fill: str = AIR


@dataclass
class ColumnDef:
    """Materials of one (x, z) column, bottom-up from base_y."""

    x: int
    z: int
    materials: list[str]
    base_y: int = 0


@dataclass
class LoadEvent:
    """Column rewrite applied *at* seconds into the run."""

    at: float
    column: ColumnDef


@dataclass
class EntityDef:
    name: str
    start: Coordinate
    trigger: str = "created"
    expect: Coordinate | None = None
    expect_pending: bool = False


@dataclass
class ScenarioDef:
    name: str
    description: str
    grid: GridDef
    columns: list[ColumnDef]
    entities: list[EntityDef]
    events: list[LoadEvent] = field(default_factory=list)
    config: UsherConfig = field(default_factory=UsherConfig)
    duration: float = 10.0


def _require(data: dict, key: str, where: str):
    if key not in data:
        raise ConfigError(f"{where}: missing required key {key!r}")
    return data[key]


def _parse_coord(value, where: str) -> Coordinate:
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise ConfigError(f"{where}: expected [x, y, z], got {value!r}")
    return Coordinate(int(value[0]), int(value[1]), int(value[2]))


def _parse_grid(data: dict) -> GridDef:
    size = _parse_coord(_require(data, "size", "grid"), "grid.size").as_tuple()
    origin = _parse_coord(data.get("origin", [0, 0, 0]), "grid.origin").as_tuple()
    return GridDef(size=size, origin=origin, fill=data.get("fill", AIR))


def _parse_column(data: dict, legend: dict[str, str], where: str) -> ColumnDef:
    cells = str(_require(data, "cells", where))
    materials = []
    for ch in cells:
        if ch not in legend:
            raise ConfigError(f"{where}: unknown legend symbol {ch!r}")
        materials.append(legend[ch])
    return ColumnDef(
        x=int(_require(data, "x", where)),
        z=int(_require(data, "z", where)),
        materials=materials,
        base_y=int(data.get("base_y", 0)),
    )


def _parse_entity(data: dict, index: int) -> EntityDef:
    where = f"entities[{index}]"
    trigger = data.get("trigger", "created")
    if trigger not in VALID_TRIGGERS:
        raise ConfigError(f"{where}: unknown trigger {trigger!r}")
    expect = data.get("expect")
    expect_pending = expect == EXPECT_PENDING
    return EntityDef(
        name=data.get("name", f"entity{index}"),
        start=_parse_coord(_require(data, "start", where), f"{where}.start"),
        trigger=trigger,
        expect=None if expect is None or expect_pending else _parse_coord(expect, f"{where}.expect"),
        expect_pending=expect_pending,
    )


def _parse_scenario(data: dict) -> ScenarioDef:
    """Parse a raw YAML dict into a ScenarioDef."""
    if not isinstance(data, dict):
        raise ConfigError("Scenario file must contain a mapping")
    legend = {**DEFAULT_LEGEND, **data.get("legend", {})}
    columns = [
        _parse_column(c, legend, f"columns[{i}]")
        for i, c in enumerate(data.get("columns", []))
    ]
    events = [
        LoadEvent(
            at=float(_require(e, "at", f"events[{i}]")),
            column=_parse_column(e, legend, f"events[{i}]"),
        )
        for i, e in enumerate(data.get("events", []))
    ]
    entities = [_parse_entity(e, i) for i, e in enumerate(_require(data, "entities", "scenario"))]
    return ScenarioDef(
        name=_require(data, "name", "scenario"),
        description=data.get("description", ""),
        grid=_parse_grid(_require(data, "grid", "scenario")),
        columns=columns,
        entities=entities,
        events=events,
        config=config_from_dict(data.get("config")),
        duration=float(data.get("duration", 10.0)),
    )


def load_scenario(path: Path) -> ScenarioDef:
    """Load a single scenario from a YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return _parse_scenario(data)


def load_scenarios(
    paths: list[Path] | None = None,
    run_all: bool = False,
    base: Path = Path("scenarios"),
) -> list[ScenarioDef]:
    """Load multiple scenarios.

    Args:
        paths: Explicit list of YAML file paths to load.
        run_all: If True, glob all ``*.yaml`` files under *base*.
        base: Directory to search when *run_all* is True.

    Returns:
        List of parsed ScenarioDef objects.
    """
    if paths is None:
        paths = []
    if run_all:
        paths = sorted(base.glob("*.yaml"))
    return [load_scenario(p) for p in paths]
