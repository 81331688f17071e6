"""Route search algorithms."""

from .base import (
    SolverKind,
    SolverResult,
    RouteSolver,
    cross_join,
    dedupe_routes,
)
from .dfs import ExhaustiveParams, ExhaustiveSolver
from .astar import HeuristicParams, HeuristicSolver
from .rrt import Node, RRTResult, RRTStar, TreeParams, TreeSolver
from .genetic import (
    Fitness,
    GeneticParams,
    GeneticSolver,
    Infeasible,
    Scored,
    evaluate_fitness,
    fitness_key,
)

__all__ = [
    "SolverKind",
    "SolverResult",
    "RouteSolver",
    "cross_join",
    "dedupe_routes",
    "ExhaustiveParams",
    "ExhaustiveSolver",
    "HeuristicParams",
    "HeuristicSolver",
    "Node",
    "RRTResult",
    "RRTStar",
    "TreeParams",
    "TreeSolver",
    "Fitness",
    "GeneticParams",
    "GeneticSolver",
    "Infeasible",
    "Scored",
    "evaluate_fitness",
    "fitness_key",
]
