"""Command-line entry point: run, check and stress reward scenarios."""

import argparse
import sys
from typing import List, Optional

from .config.loader import load_config
from .logging_setup import configure_logging
from .reporting.export import export_csv, export_json
from .simulation.monte_carlo import MonteCarloRunner, check_invariants
from .simulation.runner import SimulationRunner
from .validation.sanity_checks import SanityChecker, validate_simulation_results


def _cmd_run(args, config) -> int:
    result = SimulationRunner(config).run()
    metrics = result.final_metrics

    print(f"config {config.compute_hash()}")
    print(f"budget      {metrics['total_budget']:>16,}")
    print(f"claimed     {metrics['total_claimed']:>16,}")
    print(f"accrued     {metrics['total_accrued']:>16,}")
    print(f"undistributed {metrics['undistributed']:>14,}")
    for rejected in result.rejected_actions:
        print(f"rejected: {rejected}")

    for warning in validate_simulation_results(result):
        if warning.severity == "error":
            print(f"[{warning.severity}] {warning.message} ({warning.details})", file=sys.stderr)

    if args.csv:
        export_csv(result, args.csv)
    if args.json:
        export_json(result, args.json)
    return 0


def _cmd_check(args, config) -> int:
    warnings = SanityChecker(config).check_config_inputs()
    for warning in warnings:
        line = f"[{warning.severity}] {warning.category}: {warning.message}"
        if warning.details:
            line += f" ({warning.details})"
        print(line)
    return 1 if any(w.severity == "error" for w in warnings) else 0


def _cmd_montecarlo(args, config) -> int:
    results = MonteCarloRunner(config).run(num_runs=args.runs, random_seed=args.seed)
    failures = 0
    for i, result in enumerate(results):
        violations = check_invariants(result)
        if violations:
            failures += 1
            for violation in violations:
                print(f"run {i}: {violation}")
    print(f"{len(results)} runs, {failures} with invariant violations")
    return 1 if failures else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rewardstream", description=__doc__)
    parser.add_argument("--config", help="Scenario YAML (defaults to the packaged defaults)")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Replay the scenario script")
    run.add_argument("--csv", help="Write snapshots to this CSV file")
    run.add_argument("--json", help="Write the full result to this JSON file")
    run.set_defaults(func=_cmd_run)

    check = sub.add_parser("check", help="Sanity-check the configuration")
    check.set_defaults(func=_cmd_check)

    mc = sub.add_parser("montecarlo", help="Run random scenarios and check invariants")
    mc.add_argument("--runs", type=int, default=None)
    mc.add_argument("--seed", type=int, default=None)
    mc.set_defaults(func=_cmd_montecarlo)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    configure_logging(args.log_level or config.logging.level)
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
