import heapq
import itertools
import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Collection, List, Optional, Tuple

import numpy as np

from ..geometry import manhattan
from ..grid import FOUR_DIRECTIONS, GridMap
from ..models import PathPoint, Route
from .base import RouteSolver, SolverKind, cross_join, dedupe_routes, join, subsample

logger = logging.getLogger(__name__)


@dataclass
class HeuristicParams:
    weights: Tuple[float, ...] = (1.0, 1.35, 1.8, 2.5, 3.5)
    perturbation_scale: float = 0.3  # perturbation upper bound = scale * weight
    max_solutions_per_config: int = 3
    prune_factor: float = 2.5  # drop partials costlier than factor * best accepted cost
    target_count: int = 8
    max_routes: int = 200
    step_cost: float = 1.0
    max_expansions: int = 20_000


class HeuristicSolver(RouteSolver):
    """Weighted best-first search run under several weight configurations.

    Each station pair is searched once per weight. The priority is
    g + weight * manhattan + U[0, perturbation), so heavier weights give
    greedier, more varied paths. The pooled segment solutions are stitched
    into full routes two ways (independent cross join and occupancy-aware
    sequential extension) to seed the genetic solver.
    """

    kind = SolverKind.HEURISTIC

    def __init__(
        self,
        params: Optional[HeuristicParams] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(rng=rng, seed=seed)
        self.params = params or HeuristicParams()

    def candidates(self, grid: GridMap) -> List[Route]:
        pairwise = self.pairwise_routes(grid)
        sequential = self.sequential_routes(grid)
        routes = dedupe_routes(pairwise + sequential)
        logger.debug(
            "Heuristic seeds: %d pairwise, %d sequential, %d unique",
            len(pairwise), len(sequential), len(routes),
        )
        return routes

    def pairwise_routes(self, grid: GridMap) -> List[Route]:
        """Cross join of independently solved segments."""
        pools = [self.segment_solutions(grid, s, g) for s, g in grid.segments()]
        return cross_join(pools, cap=self.params.max_routes, rng=self.rng)

    def sequential_routes(self, grid: GridMap) -> List[Route]:
        """Extend each prefix with segments that avoid the prefix's interior cells."""
        segments = grid.segments()
        start, goal = segments[0]
        all_paths = self.segment_solutions(grid, start, goal)
        for start, goal in segments[1:]:
            extended: List[Route] = []
            for prefix in all_paths:
                occupied = set(prefix[1:-1])
                for nxt in self.segment_solutions(grid, start, goal, occupied):
                    extended.append(join(prefix, nxt))
            all_paths = subsample(extended, self.params.max_routes, self.rng)
            if not all_paths:
                break
        return all_paths

    def segment_solutions(
        self,
        grid: GridMap,
        start: PathPoint,
        goal: PathPoint,
        occupied: Collection[PathPoint] = frozenset(),
    ) -> List[Route]:
        pool: List[Route] = []
        for weight in self.params.weights:
            pool.extend(
                self._search(
                    grid, start, goal, occupied,
                    weight=weight,
                    perturbation=self.params.perturbation_scale * weight,
                    max_solutions=self.params.max_solutions_per_config,
                )
            )
        pool = dedupe_routes(pool)
        logger.debug("Heuristic segment %s -> %s: %d solutions", start, goal, len(pool))
        return subsample(pool, self.params.target_count, self.rng)

    def shortest_path(
        self,
        grid: GridMap,
        start: PathPoint,
        goal: PathPoint,
        occupied: Collection[PathPoint] = frozenset(),
    ) -> Route:
        """Single point-to-point search (weight 1, no perturbation)."""
        found = self._search(grid, start, goal, occupied, weight=1.0, perturbation=0.0, max_solutions=1)
        return found[0] if found else []

    def _search(
        self,
        grid: GridMap,
        start: PathPoint,
        goal: PathPoint,
        occupied: Collection[PathPoint],
        weight: float,
        perturbation: float,
        max_solutions: int,
    ) -> List[Route]:
        tie = itertools.count()
        open_list: List[Tuple[float, int, float, Tuple[PathPoint, ...]]] = [
            (weight * manhattan(start, goal), next(tie), 0.0, (start,))
        ]
        expanded: Counter = Counter()
        solutions: List[Route] = []
        accepted = set()
        best_cost = math.inf
        expansions = 0

        while open_list and len(solutions) < max_solutions:
            _, _, g, path = heapq.heappop(open_list)
            current = path[-1]

            if g > self.params.prune_factor * best_cost:
                continue

            if current == goal:
                if path not in accepted:
                    accepted.add(path)
                    solutions.append(list(path))
                    best_cost = min(best_cost, g)
                continue

            # each cell expands at most once per wanted solution
            if expanded[current] >= max_solutions:
                continue
            expanded[current] += 1
            expansions += 1
            if expansions > self.params.max_expansions:
                break

            on_path = set(path)
            for n in grid.neighbors(current, FOUR_DIRECTIONS):
                if n in on_path or (n in occupied and n != goal):
                    continue
                g_new = g + self.params.step_cost
                f_new = g_new + weight * manhattan(n, goal)
                if perturbation > 0:
                    f_new += self.rng.random() * perturbation
                heapq.heappush(open_list, (f_new, next(tie), g_new, path + (n,)))

        return solutions
