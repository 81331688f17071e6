import csv
import json
from pathlib import Path

from rgv_planning.algorithms.astar import HeuristicParams
from rgv_planning.algorithms.genetic import GeneticParams
from rgv_planning.algorithms.rrt import TreeParams
from rgv_planning.main import main
from rgv_planning.planner import PlannerParams
from rgv_planning.utils.experiments import (
    print_results_summary,
    run_all_experiments,
    run_experiment,
    save_results_csv,
)
from rgv_planning.utils.plotting import plot_convergence


def _write_scenario(directory: Path, name: str, algorithm: str) -> Path:
    data = {
        "name": name,
        "row_dim": 5,
        "col_dim": 5,
        "width_length": 10,
        "height_length": 10,
        "algorithm": algorithm,
        "points": [
            {"name": "A", "category": "st", "row": 0, "col": 0, "time": 10},
            {"name": "B", "category": "st", "row": 4, "col": 4, "time": 20},
        ],
        "flows": [{"stations_order": [[0, 0], [4, 4]]}],
    }
    path = directory / f"{name}.json"
    path.write_text(json.dumps(data))
    return path


def _small_params() -> PlannerParams:
    return PlannerParams(
        genetic=GeneticParams(
            population_size=12,
            generations=4,
            chromosome_length=60,
            heuristic=HeuristicParams(target_count=2, max_routes=6),
            tree=TreeParams(variations_per_segment=1, max_iters=150, max_routes=6),
        )
    )


def test_run_experiment_dfs(tmp_path):
    path = _write_scenario(tmp_path, "small", "dfs")
    rows = run_experiment(path, verbose=False)
    assert len(rows) == 1
    row = rows[0]
    assert row.found
    assert row.algorithm == "dfs"
    assert row.flow_index == 1
    assert row.n_stations == 2
    assert row.throughput > 0


def test_run_experiment_genetic_saves_convergence_plot(tmp_path):
    path = _write_scenario(tmp_path, "ga", "geneticalgorithm")
    out_dir = tmp_path / "out"
    rows = run_experiment(path, params=_small_params(), seed=1, output_dir=out_dir, verbose=False)
    assert rows[0].found
    assert (out_dir / "ga_flow1_convergence.png").exists()


def test_run_all_experiments_and_csv(tmp_path, capsys):
    _write_scenario(tmp_path, "one", "dfs")
    _write_scenario(tmp_path, "two", "dfs")
    results = run_all_experiments(tmp_path, save_plots=False, verbose=True)
    assert [r.scenario_name for r in results] == ["one", "two"]
    assert "Completed 2 scenarios" in capsys.readouterr().out

    csv_path = tmp_path / "results.csv"
    save_results_csv(results, csv_path)
    with open(csv_path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 2
    assert rows[0]["scenario_name"] == "one"

    print_results_summary(results)
    assert "ROUTE PLANNING RESULTS SUMMARY" in capsys.readouterr().out


def test_plot_convergence_handles_infeasible_generations(tmp_path):
    target = tmp_path / "conv.png"
    plot_convergence([float("nan"), float("nan"), 10.0, 12.5, 12.5], "demo", target)
    assert target.exists()


def test_cli_prints_routes(tmp_path, capsys):
    path = _write_scenario(tmp_path, "cli", "dfs")
    code = main([str(path), "--seed", "1", "--out-dir", str(tmp_path / "out")])
    out = capsys.readouterr().out
    assert code == 0
    assert "Flow 1" in out
    assert "Throughput" in out
    assert (tmp_path / "out" / "cli_results.csv").exists()


def test_cli_genetic_overrides(tmp_path, capsys):
    path = _write_scenario(tmp_path, "cli_ga", "dfs")
    code = main([str(path), "--algorithm", "geneticalgorithm", "--seed", "2",
                 "--generations", "3", "--population", "10"])
    assert code == 0
    assert "geneticalgorithm" in capsys.readouterr().out


def test_cli_reports_errors(tmp_path, capsys):
    path = _write_scenario(tmp_path, "bad", "quantum")
    assert main([str(path)]) == 2
    assert "Error" in capsys.readouterr().err
    assert main([str(tmp_path / "missing.json")]) == 2
