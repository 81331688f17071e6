"""rgv_planning - Route planning for rail-guided vehicles on a grid floor."""

from .errors import (
    RoutePlanningError,
    ValidationError,
    InvalidDimensionError,
    InvalidActualDimensionError,
    InvalidStationCountError,
    OutOfBoundsError,
    InvalidAlgorithmError,
    AlgorithmNotImplementedError,
)
from .models import Algorithm, PathPoint, PointCategory, Route, RouteScore, Scenario
from .grid import GridMap
from .loader import load_scenario, ScenarioValidationError, ScenarioParseError
from .evaluator import score_route, estimate_throughput, get_best_route
from .postprocess import smooth_and_rasterize
from .intersections import find_intersections
from .planner import FlowResult, PlannerParams, PlanningResult, plan_flows, run_solver, solve

# Algorithms
from .algorithms import (
    SolverKind,
    SolverResult,
    RouteSolver,
    ExhaustiveParams,
    ExhaustiveSolver,
    HeuristicParams,
    HeuristicSolver,
    TreeParams,
    TreeSolver,
    RRTStar,
    GeneticParams,
    GeneticSolver,
    Infeasible,
    Scored,
)
