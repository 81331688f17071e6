"""Planning entry points: one flow (`solve`) or an ordered list of flows (`plan_flows`)."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set, Tuple, Union

import numpy as np

from .algorithms.astar import HeuristicParams
from .algorithms.base import SolverResult
from .algorithms.dfs import ExhaustiveParams, ExhaustiveSolver
from .algorithms.genetic import GeneticParams, GeneticSolver
from .algorithms.rrt import TreeParams
from .errors import AlgorithmNotImplementedError
from .evaluator import score_route
from .grid import GridMap
from .intersections import find_intersections
from .models import Algorithm, PathPoint, Route, RouteScore
from .postprocess import smooth_and_rasterize

logger = logging.getLogger(__name__)


@dataclass
class PlannerParams:
    exhaustive: ExhaustiveParams = field(default_factory=ExhaustiveParams)
    genetic: GeneticParams = field(default_factory=GeneticParams)

    @classmethod
    def fast(cls) -> "PlannerParams":
        """Small budgets for quick runs on small grids."""
        return cls(
            exhaustive=ExhaustiveParams(max_routes_per_segment=16, max_candidates=256, max_expansions=50_000),
            genetic=GeneticParams(
                population_size=40,
                generations=30,
                heuristic=HeuristicParams(target_count=4, max_routes=20),
                tree=TreeParams(variations_per_segment=3, max_iters=300, max_routes=20),
            ),
        )


@dataclass
class FlowResult:
    index: int
    stations_order: Tuple[PathPoint, ...]
    raw: Route
    smoothed: Route
    score: Optional[RouteScore]
    history: List[float] = field(default_factory=list)
    cpu_time: float = 0.0

    @property
    def found(self) -> bool:
        return bool(self.raw)


@dataclass
class PlanningResult:
    algorithm: Algorithm
    flows: List[FlowResult]
    raw_intersections: Set[PathPoint]
    smoothed_intersections: Set[PathPoint]

    @property
    def all_found(self) -> bool:
        return all(f.found for f in self.flows)


def resolve_algorithm(algorithm: Union[Algorithm, str]) -> Algorithm:
    if isinstance(algorithm, Algorithm):
        return algorithm
    return Algorithm.from_string(algorithm)


def run_solver(
    grid: GridMap,
    algorithm: Union[Algorithm, str],
    committed_routes: Sequence[Sequence[PathPoint]] = (),
    *,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    params: Optional[PlannerParams] = None,
) -> SolverResult:
    """Run the solver behind an external algorithm name.

    Raises:
        InvalidAlgorithmError: unknown algorithm name.
        AlgorithmNotImplementedError: declared but unimplemented algorithm.
    """
    algorithm = resolve_algorithm(algorithm)
    params = params or PlannerParams()
    if rng is None:
        rng = np.random.default_rng(seed)

    if algorithm is Algorithm.DFS:
        solver = ExhaustiveSolver(params.exhaustive, rng=rng)
    elif algorithm is Algorithm.GENETIC_ALGORITHM:
        solver = GeneticSolver(committed_routes, params.genetic, rng=rng)
    else:
        raise AlgorithmNotImplementedError(algorithm.value)

    return solver.solve(grid)


def solve(
    grid: GridMap,
    algorithm: Union[Algorithm, str],
    committed_routes: Sequence[Sequence[PathPoint]] = (),
    *,
    seed: Optional[int] = None,
    params: Optional[PlannerParams] = None,
) -> Tuple[Route, Route]:
    """Solve one flow and post-process the result.

    The grid's `solution` slot holds the raw route, then the smoothed one.
    An empty raw route means no route exists; it is not an error.

    Returns:
        (raw_route, smoothed_route)
    """
    result = run_solver(grid, algorithm, committed_routes, seed=seed, params=params)
    return _finish(grid, result)


def _finish(grid: GridMap, result: SolverResult) -> Tuple[Route, Route]:
    raw = result.route
    grid.with_solution(raw)
    if not raw:
        logger.info("No route found with %s solver", result.kind.value)
        return [], []
    smoothed = smooth_and_rasterize(raw, grid)
    grid.with_solution(smoothed)
    logger.info(
        "Route found with %s solver: %d cells (%d after smoothing) in %.3fs",
        result.kind.value, len(raw), len(smoothed), result.cpu_time,
    )
    return raw, smoothed


def plan_flows(
    row_dim: int,
    col_dim: int,
    width_length: float,
    height_length: float,
    points: Iterable[PathPoint],
    flows: Sequence[Sequence[Tuple[int, int]]],
    algorithm: Union[Algorithm, str],
    *,
    seed: Optional[int] = None,
    params: Optional[PlannerParams] = None,
) -> PlanningResult:
    """Plan every flow in order on the same floor.

    All grids and the algorithm are validated before any solver runs. Each
    flow sees the raw routes of the flows before it as committed routes.
    """
    points = list(points)
    grids = [
        GridMap.create(row_dim, col_dim, width_length, height_length, points, stations)
        for stations in flows
    ]
    algorithm = resolve_algorithm(algorithm)
    logger.debug("Planning %d flow(s) on a %dx%d grid with %s", len(grids), row_dim, col_dim, algorithm.value)

    rng = np.random.default_rng(seed)
    flow_rngs = rng.spawn(len(grids))

    committed: List[Route] = []
    results: List[FlowResult] = []
    for i, (grid, flow_rng) in enumerate(zip(grids, flow_rngs)):
        solver_result = run_solver(grid, algorithm, committed, rng=flow_rng, params=params)
        raw, smoothed = _finish(grid, solver_result)
        score = score_route(raw, grid) if raw else None
        if raw:
            logger.info("Flow %d: %d cells, throughput %.1f/h, %d RGV(s)", i + 1, len(raw), score.throughput, score.num_of_rgvs)
        else:
            logger.info("Flow %d: no route found", i + 1)
        committed.append(raw)
        results.append(
            FlowResult(
                index=i,
                stations_order=grid.stations_order,
                raw=raw,
                smoothed=smoothed,
                score=score,
                history=solver_result.history,
                cpu_time=solver_result.cpu_time,
            )
        )

    return PlanningResult(
        algorithm=algorithm,
        flows=results,
        raw_intersections=find_intersections([f.raw for f in results]),
        smoothed_intersections=find_intersections([f.smoothed for f in results]),
    )
