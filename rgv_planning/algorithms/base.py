"""Common solver interface shared by the four search strategies."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from itertools import product
from typing import List, Optional, Sequence

import numpy as np

from ..evaluator import get_best_route
from ..grid import GridMap
from ..models import PathPoint, Route

logger = logging.getLogger(__name__)


class SolverKind(Enum):
    EXHAUSTIVE = "exhaustive"
    HEURISTIC = "heuristic"
    TREE = "tree"
    GENETIC = "genetic"


@dataclass
class SolverResult:
    """Outcome of one solver run.

    Attributes:
        kind: Strategy that produced the result.
        route: Best route, empty when no route was found.
        candidates: Full-route candidates considered.
        cpu_time: Wall time spent in the solver, seconds.
        history: Per-iteration best score, when the strategy tracks one.
    """

    kind: SolverKind
    route: Route
    candidates: List[Route] = field(default_factory=list)
    cpu_time: float = 0.0
    history: List[float] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.route)


class RouteSolver(ABC):
    """A route search strategy.

    Subclasses produce full-route candidates; `solve` picks the best one with
    the evaluator's throughput ranking unless the strategy has its own
    selection (the genetic solver).
    """

    kind: SolverKind

    def __init__(self, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    @abstractmethod
    def candidates(self, grid: GridMap) -> List[Route]:
        """All full-route candidates found on the grid."""

    def solve(self, grid: GridMap) -> SolverResult:
        start_time = time.perf_counter()
        routes = self.candidates(grid)
        return SolverResult(
            kind=self.kind,
            route=get_best_route(routes, grid),
            candidates=routes,
            cpu_time=time.perf_counter() - start_time,
        )


def dedupe_routes(routes: Sequence[Sequence[PathPoint]]) -> List[Route]:
    seen = set()
    unique: List[Route] = []
    for r in routes:
        key = tuple(r)
        if key in seen:
            continue
        seen.add(key)
        unique.append(list(r))
    return unique


def subsample(routes: List[Route], k: int, rng: np.random.Generator) -> List[Route]:
    """Uniform sample of k routes without replacement (all routes if k >= len)."""
    if len(routes) <= k:
        return routes
    idx = rng.choice(len(routes), size=k, replace=False)
    return [routes[i] for i in sorted(idx)]


def join(prefix: Sequence[PathPoint], suffix: Sequence[PathPoint]) -> Route:
    """Concatenate two segments sharing their boundary station."""
    return list(prefix) + list(suffix[1:])


def cross_join(
    segment_pools: Sequence[List[Route]],
    cap: Optional[int],
    rng: Optional[np.random.Generator] = None,
) -> List[Route]:
    """Cartesian product of per-segment pools, stitched into full routes.

    After each join the running pool is reduced to `cap` routes: by uniform
    subsampling when a generator is given, otherwise by keeping the first ones.
    """
    if not segment_pools or any(not pool for pool in segment_pools):
        return []
    all_paths: List[Route] = [list(p) for p in segment_pools[0]]
    for pool in segment_pools[1:]:
        all_paths = [join(a, b) for a, b in product(all_paths, pool)]
        if cap is not None and len(all_paths) > cap:
            all_paths = subsample(all_paths, cap, rng) if rng is not None else all_paths[:cap]
    if cap is not None and len(all_paths) > cap:
        all_paths = subsample(all_paths, cap, rng) if rng is not None else all_paths[:cap]
    return all_paths
