"""spawnusher/scenarios/output — Console output and JSON serialization."""

from __future__ import annotations

import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from spawnusher.scenarios.runner import ScenarioOutcome


# ---------------------------------------------------------------------------
# Color
# ---------------------------------------------------------------------------

_ANSI = {"green": "\033[32m", "red": "\033[31m"}


def _paint(text: str, color: str) -> str:
    """Wrap *text* in an ANSI color when stdout is a terminal."""
    if not getattr(sys.stdout, "isatty", lambda: False)():
        return text
    return f"{_ANSI[color]}{text}\033[0m"


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------


def print_outcome(outcome: ScenarioOutcome) -> None:
    """Print a pass/fail line for a scenario, then one line per failed entity."""
    status = _paint("PASS", "green") if outcome.success else _paint("FAIL", "red")

    parts = [
        f"{status}  {outcome.name:<25s}",
        f"{len(outcome.entities):>3d} entities",
        f"{outcome.retry_passes:>3d} passes",
        f"t={outcome.sim_time:>5.1f}s",
        f"{outcome.wall_time_ms:>7.1f}ms",
    ]
    if outcome.still_pending:
        parts.append(f"pending={outcome.still_pending}")
    if outcome.abandoned:
        parts.append(f"abandoned={outcome.abandoned}")
    print("  ".join(parts))

    for entity in outcome.entities:
        if not entity.success:
            print(f"      {entity.name}: {entity.reason}")


def print_summary(results: list[ScenarioOutcome]) -> None:
    """Print scenario pass/fail counts and how many entities were left unplaced."""
    passed = sum(1 for r in results if r.success)
    failed = len(results) - passed
    unplaced = sum(1 for r in results for e in r.entities if not e.placed)

    line = (
        f"{len(results)} scenarios: "
        f"{_paint(f'{passed} passed', 'green') if passed else '0 passed'}, "
        f"{_paint(f'{failed} failed', 'red') if failed else '0 failed'}"
    )
    if unplaced:
        line += f" ({unplaced} entities unplaced)"
    print(f"\n{line}")


# ---------------------------------------------------------------------------
# JSON serialization
# ---------------------------------------------------------------------------


def outcome_to_dict(outcome: ScenarioOutcome) -> dict:
    """Convert a ScenarioOutcome to a JSON-serializable dict."""
    d = asdict(outcome)
    for entity in d["entities"]:
        entity["start"] = [entity["start"]["x"], entity["start"]["y"], entity["start"]["z"]]
        entity["final"] = [entity["final"]["x"], entity["final"]["y"], entity["final"]["z"]]
    return d


def save_results(results: list[ScenarioOutcome], path: Path | str) -> None:
    """Save scenario outcomes as a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = [outcome_to_dict(r) for r in results]
    path.write_text(json.dumps(data, indent=2) + "\n")
