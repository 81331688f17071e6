"""Utility functions for experiments and plotting."""

from .experiments import (
    ExperimentResult,
    result_rows,
    run_experiment,
    run_all_experiments,
    save_results_csv,
    print_results_summary,
)
from .plotting import plot_convergence

__all__ = [
    "ExperimentResult",
    "result_rows",
    "run_experiment",
    "run_all_experiments",
    "save_results_csv",
    "print_results_summary",
    "plot_convergence",
]
