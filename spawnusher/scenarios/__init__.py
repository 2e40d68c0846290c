"""spawnusher/scenarios — YAML placement scenarios, runner and output."""

from spawnusher.scenarios.loader import (
    DEFAULT_LEGEND,
    VALID_TRIGGERS,
    ColumnDef,
    EntityDef,
    GridDef,
    LoadEvent,
    ScenarioDef,
    load_scenario,
    load_scenarios,
)
from spawnusher.scenarios.output import print_outcome, print_summary, save_results
from spawnusher.scenarios.runner import EntityOutcome, ScenarioOutcome, run_scenario

__all__ = [
    "DEFAULT_LEGEND",
    "VALID_TRIGGERS",
    "GridDef",
    "ColumnDef",
    "LoadEvent",
    "EntityDef",
    "ScenarioDef",
    "load_scenario",
    "load_scenarios",
    "EntityOutcome",
    "ScenarioOutcome",
    "run_scenario",
    "print_outcome",
    "print_summary",
    "save_results",
]
