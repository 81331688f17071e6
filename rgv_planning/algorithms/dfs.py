import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

import numpy as np

from ..geometry import chebyshev
from ..grid import EIGHT_DIRECTIONS, GridMap
from ..models import PathPoint, Route
from .base import RouteSolver, SolverKind, cross_join

logger = logging.getLogger(__name__)


@dataclass
class ExhaustiveParams:
    max_routes_per_segment: Optional[int] = 64  # None = enumerate every simple path
    max_candidates: Optional[int] = 4096
    max_expansions: int = 500_000


class ExhaustiveSolver(RouteSolver):
    """Backtracking enumeration of simple 8-connected paths between stations.

    Each segment search treats every station other than its own endpoints as
    visited, so a segment can never pass through an unrelated station. The
    per-segment sets are cross-joined into full routes and ranked by the
    evaluator. Exponential: meant for small grids and short station lists.
    """

    kind = SolverKind.EXHAUSTIVE

    def __init__(
        self,
        params: Optional[ExhaustiveParams] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(rng=rng, seed=seed)
        self.params = params or ExhaustiveParams()

    def candidates(self, grid: GridMap) -> List[Route]:
        pools: List[List[Route]] = []
        for start, goal in grid.segments():
            routes = self.segment_routes(grid, start, goal)
            logger.debug("DFS segment %s -> %s: %d routes", start, goal, len(routes))
            if not routes:
                logger.info("DFS found no route between %s and %s", start, goal)
                return []
            pools.append(routes)
        return cross_join(pools, cap=self.params.max_candidates)

    def segment_routes(self, grid: GridMap, start: PathPoint, goal: PathPoint) -> List[Route]:
        """Enumerate simple paths start -> goal with an explicit stack.

        Moves are tried closest to the goal first, so the first routes found
        under the route limit are the shortest ones.
        """
        if grid.is_obstacle(start) or grid.is_obstacle(goal):
            return []

        limit = self.params.max_routes_per_segment
        visited = np.zeros((grid.row_dim, grid.col_dim), dtype=bool)
        for s in grid.stations_order:
            visited[s.row, s.col] = True
        visited[goal.row, goal.col] = False

        routes: List[Route] = []
        path: List[PathPoint] = [start]
        moves: List[Iterator[PathPoint]] = [self._moves_toward(grid, start, goal)]
        visited[start.row, start.col] = True
        expansions = 0

        while path:
            if limit is not None and len(routes) >= limit:
                break

            top = path[-1]
            if top == goal:
                routes.append(list(path))
                self._backtrack(path, moves, visited)
                continue

            n = next(moves[-1], None)
            if n is None:
                self._backtrack(path, moves, visited)
                continue
            if visited[n.row, n.col]:
                continue

            expansions += 1
            if expansions > self.params.max_expansions:
                logger.debug("DFS expansion budget exhausted for %s -> %s", start, goal)
                break

            visited[n.row, n.col] = True
            path.append(n)
            moves.append(self._moves_toward(grid, n, goal))

        return routes

    @staticmethod
    def _moves_toward(grid: GridMap, cell: PathPoint, goal: PathPoint) -> Iterator[PathPoint]:
        """Non-obstacle 8-neighbours of `cell`, nearest to `goal` first."""
        neighbours = sorted(grid.neighbors(cell, EIGHT_DIRECTIONS), key=lambda n: chebyshev(n, goal))
        return iter(neighbours)

    @staticmethod
    def _backtrack(path: List[PathPoint], moves: List[Iterator[PathPoint]], visited: np.ndarray) -> None:
        p = path.pop()
        moves.pop()
        visited[p.row, p.col] = False
