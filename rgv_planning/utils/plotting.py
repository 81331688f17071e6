"""Plotting utilities for experiments."""

import math
from pathlib import Path
from typing import List

import matplotlib.pyplot as plt
from matplotlib.lines import Line2D
from matplotlib.patches import Patch


def plot_convergence(
    history: List[float],
    scenario_id: str,
    save_to: Path,
    fontsize: int = 16,
    flow_index: int = 0,
) -> None:
    """Best fitness per generation; generations without a feasible route are shaded."""
    fig, ax = plt.subplots(figsize=(10, 6))
    n = len(history)
    x = list(range(n))
    feasible = [not math.isnan(v) for v in history]

    color_feasible = "green"
    color_infeasible = "coral"

    # Contiguous runs: line for feasible generations, band for infeasible ones
    i = 0
    while i < n:
        feas = feasible[i]
        j = i + 1
        while j < n and feasible[j] == feas:
            j += 1
        if feas:
            ax.plot(x[i:j], history[i:j], linewidth=2, color=color_feasible)
        else:
            ax.axvspan(i - 0.5, j - 0.5, color=color_infeasible, alpha=0.3, linewidth=0)
        i = j

    valid = [v for v in history if not math.isnan(v)]
    if valid:
        lo, hi = min(valid), max(valid)
        margin = (hi - lo) * 0.05 or 1.0
        ax.set_ylim(lo - margin, hi + margin)

    handles = [
        Line2D([0], [0], color=color_feasible, linewidth=2),
        Patch(color=color_infeasible, alpha=0.3),
    ]
    ax.legend(handles, ["Best feasible", "No feasible route"], loc="lower right", fontsize=fontsize - 2)

    ax.set_xlabel("Generation", fontsize=fontsize)
    ax.set_ylabel("Best Fitness", fontsize=fontsize)
    ax.set_title(f"GA Convergence - Scenario {scenario_id}, Flow {flow_index + 1}", fontsize=fontsize + 2)
    ax.tick_params(axis="both", labelsize=fontsize - 2)
    ax.grid(True, alpha=0.3)

    fig.tight_layout()
    fig.savefig(save_to, dpi=150, bbox_inches="tight")
    plt.close(fig)
