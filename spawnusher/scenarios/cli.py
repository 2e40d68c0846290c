"""spawnusher/scenarios/cli — CLI entry point for running placement scenarios.

Usage::

    python -m spawnusher.scenarios.cli scenarios/floor_below.yaml
    python -m spawnusher.scenarios.cli --all
    python -m spawnusher.scenarios.cli --all -o results/run_001.json -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from spawnusher.logging_config import setup_logging
from spawnusher.scenarios.loader import load_scenarios
from spawnusher.scenarios.output import print_outcome, print_summary, save_results
from spawnusher.scenarios.runner import run_scenario


def main(argv: list[str] | None = None) -> None:
    """Run scenarios from the command line."""
    parser = argparse.ArgumentParser(description="Run spawnusher placement scenarios")
    parser.add_argument(
        "scenarios", nargs="*", help="Scenario YAML files",
    )
    parser.add_argument(
        "--all", action="store_true", help="Run all scenarios in scenarios/",
    )
    parser.add_argument(
        "--output", "-o", help="Output file path for results JSON",
    )
    parser.add_argument(
        "--verbose", "-v", action="count", default=0,
        help="Log scheduler activity (-v info, -vv debug)",
    )
    args = parser.parse_args(argv)

    # Must specify scenarios or --all
    if not args.scenarios and not args.all:
        parser.print_usage()
        sys.exit(2)

    if args.verbose:
        setup_logging(logging.DEBUG if args.verbose > 1 else logging.INFO)

    paths = [Path(s) for s in args.scenarios] if args.scenarios else None
    scenario_defs = load_scenarios(paths=paths, run_all=args.all)

    results = []
    for scenario_def in scenario_defs:
        outcome = run_scenario(scenario_def)
        results.append(outcome)
        print_outcome(outcome)

    print_summary(results)

    if args.output:
        save_results(results, args.output)

    if all(r.success for r in results):
        sys.exit(0)
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
