"""Command line entry point: plan the flows of a scenario file."""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .errors import RoutePlanningError
from .loader import ScenarioParseError, ScenarioValidationError, load_scenario
from .models import Route
from .planner import PlannerParams, plan_flows
from .utils.experiments import DEFAULT_ALGORITHM, result_rows, print_results_summary, save_results_csv
from .utils.plotting import plot_convergence

logger = logging.getLogger(__name__)


def _format_route(route: Route) -> str:
    return " -> ".join(f"({p.row},{p.col})" for p in route)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rgv-plan", description="Plan RGV routes on a grid floor")
    parser.add_argument("scenario", type=str, help="Path to a JSON scenario file")
    parser.add_argument("--algorithm", type=str, default=None,
                        help="dfs | geneticalgorithm (default: the scenario's, else dfs)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--out-dir", type=str, default=None, help="Write results CSV and convergence plots here")
    parser.add_argument("--generations", type=int, default=None, help="Genetic solver generations")
    parser.add_argument("--population", type=int, default=None, help="Genetic solver population size")
    parser.add_argument("--log-level", type=str, default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    params = PlannerParams()
    if args.generations is not None:
        params.genetic = replace(params.genetic, generations=args.generations)
    if args.population is not None:
        params.genetic = replace(params.genetic, population_size=args.population)

    try:
        scenario = load_scenario(args.scenario)
        algorithm = args.algorithm or scenario.algorithm or DEFAULT_ALGORITHM
        result = plan_flows(
            scenario.row_dim,
            scenario.col_dim,
            scenario.width_length,
            scenario.height_length,
            scenario.points,
            scenario.flows,
            algorithm,
            seed=args.seed,
            params=params,
        )
    except (ScenarioParseError, ScenarioValidationError, RoutePlanningError) as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"Scenario: {scenario.name} | Algorithm: {result.algorithm.value}")
    print("=" * 50)
    for flow in result.flows:
        print(f"Flow {flow.index + 1}: stations {[p.coords for p in flow.stations_order]}")
        if not flow.found:
            print("  No route found")
            continue
        print(f"  Raw ({len(flow.raw)} cells): {_format_route(flow.raw)}")
        print(f"  Smoothed ({len(flow.smoothed)} cells): {_format_route(flow.smoothed)}")
        print(f"  Throughput: {flow.score.throughput:.2f}/h | Track length: {flow.score.track_length:.2f} "
              f"| RGVs: {flow.score.num_of_rgvs}")
    print(f"Intersections (raw): {sorted(p.coords for p in result.raw_intersections)}")
    print(f"Intersections (smoothed): {sorted(p.coords for p in result.smoothed_intersections)}")

    if args.out_dir:
        out_dir = Path(args.out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        rows = result_rows(scenario.name, result)
        save_results_csv(rows, out_dir / f"{scenario.name}_results.csv")
        for flow in result.flows:
            if flow.history:
                plot_convergence(
                    flow.history, scenario.name,
                    out_dir / f"{scenario.name}_flow{flow.index + 1}_convergence.png",
                    flow_index=flow.index,
                )
        print_results_summary(rows)

    return 0 if result.all_found else 1


if __name__ == "__main__":
    sys.exit(main())
