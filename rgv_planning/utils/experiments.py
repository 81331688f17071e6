"""Experiment utilities for running scenarios and collecting planning results."""

import csv
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import List, Optional

from ..loader import load_scenario
from ..models import Algorithm
from ..planner import PlannerParams, PlanningResult, plan_flows
from .plotting import plot_convergence


DEFAULT_ALGORITHM = Algorithm.DFS.value


@dataclass
class ExperimentResult:
    scenario_name: str
    flow_index: int
    algorithm: str
    n_stations: int
    found: bool
    raw_cells: int
    smoothed_cells: int
    throughput: float
    track_length: float
    num_of_rgvs: int
    cpu_time: float
    n_intersections: int


def result_rows(scenario_name: str, result: PlanningResult) -> List[ExperimentResult]:
    rows = []
    for flow in result.flows:
        score = flow.score
        rows.append(
            ExperimentResult(
                scenario_name=scenario_name,
                flow_index=flow.index + 1,
                algorithm=result.algorithm.value,
                n_stations=len(flow.stations_order),
                found=flow.found,
                raw_cells=len(flow.raw),
                smoothed_cells=len(flow.smoothed),
                throughput=score.throughput if score else 0.0,
                track_length=score.track_length if score else 0.0,
                num_of_rgvs=score.num_of_rgvs if score else 0,
                cpu_time=flow.cpu_time,
                n_intersections=len(result.raw_intersections),
            )
        )
    return rows


def run_experiment(
    scenario_path: Path,
    algorithm: Optional[str] = None,
    params: Optional[PlannerParams] = None,
    seed: Optional[int] = None,
    output_dir: Optional[Path] = None,
    save_plots: bool = True,
    verbose: bool = True,
) -> List[ExperimentResult]:
    """Plan every flow of one scenario file; one result row per flow."""
    scenario_path = Path(scenario_path)

    if verbose:
        print(f"\nProcessing {scenario_path.name}...")

    scenario = load_scenario(scenario_path)
    algorithm = algorithm or scenario.algorithm or DEFAULT_ALGORITHM

    if verbose:
        print(f"  Grid: {scenario.row_dim} x {scenario.col_dim} "
              f"({scenario.width_length} x {scenario.height_length})")
        print(f"  Points: {len(scenario.points)}")
        print(f"  Flows: {len(scenario.flows)}")
        print(f"  Running {algorithm}...")

    result = plan_flows(
        scenario.row_dim,
        scenario.col_dim,
        scenario.width_length,
        scenario.height_length,
        scenario.points,
        scenario.flows,
        algorithm,
        seed=seed,
        params=params,
    )
    rows = result_rows(scenario.name, result)

    if verbose:
        for r in rows:
            if r.found:
                print(f"  Flow {r.flow_index}: {r.raw_cells} cells ({r.smoothed_cells} smoothed), "
                      f"throughput {r.throughput:.1f}/h, {r.num_of_rgvs} RGV(s), CPU {r.cpu_time:.3f}s")
            else:
                print(f"  Flow {r.flow_index}: no route found")
        print(f"  Intersections: {len(result.raw_intersections)} raw, "
              f"{len(result.smoothed_intersections)} smoothed")

    if save_plots and output_dir:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        for flow in result.flows:
            if not flow.history:
                continue
            conv_plot_file = output_dir / f"{scenario.name}_flow{flow.index + 1}_convergence.png"
            plot_convergence(flow.history, scenario.name, conv_plot_file, flow_index=flow.index)
            if verbose:
                print(f"  Saved: {conv_plot_file.name}")

    return rows


def run_all_experiments(
    scenarios_dir: Path,
    algorithm: Optional[str] = None,
    params: Optional[PlannerParams] = None,
    seed: Optional[int] = None,
    output_dir: Optional[Path] = None,
    save_plots: bool = True,
    verbose: bool = True,
) -> List[ExperimentResult]:
    """Run every *.json scenario in a directory.

    Args:
        scenarios_dir: Directory containing scenario files.
        algorithm: Algorithm name; each scenario's own choice when None.
        params: Solver parameters. If None, uses the defaults.
        seed: Seed shared by all scenarios.
        output_dir: Directory to save output files.
        save_plots: Whether to save convergence plots.
        verbose: Whether to print progress.

    Returns:
        ExperimentResult rows for all flows of all scenarios.
    """
    scenario_files = sorted(Path(scenarios_dir).glob("*.json"))

    if verbose:
        print(f"Found {len(scenario_files)} scenarios: {[f.stem for f in scenario_files]}")

    results: List[ExperimentResult] = []
    for scenario_file in scenario_files:
        results.extend(
            run_experiment(scenario_file, algorithm, params, seed, output_dir, save_plots, verbose)
        )

    if verbose:
        print(f"\n{'='*60}")
        print(f"Completed {len(scenario_files)} scenarios, {len(results)} flows.")
        missing = [r for r in results if not r.found]
        if missing:
            print(f"NO ROUTE for {len(missing)} flow(s): "
                  f"{[(r.scenario_name, r.flow_index) for r in missing]}")

    return results


def save_results_csv(
    results: List[ExperimentResult],
    output_path: Path,
) -> None:
    """Save experiment results to CSV file."""
    if not results:
        return

    fieldnames = [
        "scenario_name", "flow_index", "algorithm", "n_stations", "found",
        "raw_cells", "smoothed_cells", "throughput", "track_length",
        "num_of_rgvs", "cpu_time", "n_intersections",
    ]

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for r in results:
            writer.writerow(asdict(r))


def print_results_summary(results: List[ExperimentResult]) -> None:
    """Print formatted summary table of results."""
    print("\n" + "=" * 100)
    print("ROUTE PLANNING RESULTS SUMMARY")
    print("=" * 100)
    print()

    header = (f"{'Scenario':<18} {'Flow':>4} {'Algorithm':<17} {'Cells':>6} {'Smooth':>6} "
              f"{'Thru/h':>9} {'Track':>8} {'RGVs':>4} {'CPU(s)':>7} {'X':>3}")
    print(header)
    print("-" * len(header))

    for r in results:
        print(f"{r.scenario_name:<18} {r.flow_index:>4} {r.algorithm:<17} {r.raw_cells:>6} "
              f"{r.smoothed_cells:>6} {r.throughput:>9.1f} {r.track_length:>8.2f} "
              f"{r.num_of_rgvs:>4} {r.cpu_time:>7.3f} {r.n_intersections:>3}")

    print("-" * len(header))
    print(f"\nTotal flows: {len(results)}")
    print(f"Found: {sum(1 for r in results if r.found)}/{len(results)}")
    if results:
        print(f"Avg CPU time: {sum(r.cpu_time for r in results)/len(results):.3f}s")
