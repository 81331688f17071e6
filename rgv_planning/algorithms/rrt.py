import logging
import math
import time
from dataclasses import dataclass, field
from typing import Collection, Dict, List, Optional

import numpy as np

from ..geometry import dist, line_cells, line_is_free
from ..grid import GridMap
from ..models import PathPoint, Route
from .base import RouteSolver, SolverKind, cross_join, dedupe_routes

logger = logging.getLogger(__name__)


@dataclass
class Node:
    """Represents a node in the RRT tree."""
    pos: PathPoint
    parent: Optional[int] = None  # Index of parent node in the tree list
    cost: float = 0.0  # Cost from start to this node
    children: List[int] = field(default_factory=list)  # Indices of children


@dataclass
class TreeParams:
    variations_per_segment: int = 6
    max_iters: int = 1500
    step_size: float = 3.0
    rewire_radius: float = 5.0
    goal_sample_rate: float = 0.15
    goal_connect_factor: float = 1.5  # connect when within factor * step_size
    max_reconstruction_steps: int = 10_000
    max_routes: int = 100


@dataclass
class RRTResult:
    path: Optional[Route]  # unit-step cells, None when the goal was not reached
    waypoints: Optional[Route]  # tree nodes along the path
    cost: float
    iters: int
    cpu_time: float
    tree_nodes: List[Node]
    first_success_iter: Optional[int] = None


class RRTStar:
    """RRT* between two cells of a grid.

    Tree nodes are grid cells; edges are straight lines checked cell by cell.
    The search stops at the first connection to the goal.
    """

    def __init__(
        self,
        grid: GridMap,
        start: PathPoint,
        goal: PathPoint,
        params: TreeParams,
        rng: np.random.Generator,
        occupied: Collection[PathPoint] = frozenset(),
    ):
        self.grid = grid
        self.start = start
        self.goal = goal
        self.params = params
        self.rng = rng
        self.occupied = occupied
        self.free_points = grid.free_points()

        self.nodes: List[Node] = []
        self.index: Dict[PathPoint, int] = {}
        self.goal_idx: Optional[int] = None

        # node coordinates for vectorized distance queries
        capacity = params.max_iters + 2
        self._rows = np.empty(capacity, dtype=float)
        self._cols = np.empty(capacity, dtype=float)

        self._add_node(start, None, 0.0)

    def _sample(self) -> PathPoint:
        if self.rng.random() < self.params.goal_sample_rate:
            return self.goal
        return self.free_points[int(self.rng.integers(len(self.free_points)))]

    def _distances(self, p: PathPoint) -> np.ndarray:
        n = len(self.nodes)
        return np.hypot(self._rows[:n] - p.row, self._cols[:n] - p.col)

    def _nearest_node_idx(self, p: PathPoint) -> int:
        return int(np.argmin(self._distances(p)))

    def _get_neighbors_indices(self, p: PathPoint) -> List[int]:
        return [int(i) for i in np.flatnonzero(self._distances(p) <= self.params.rewire_radius)]

    def _steer(self, from_pos: PathPoint, to_point: PathPoint) -> PathPoint:
        d = dist(from_pos, to_point)
        if d <= self.params.step_size:
            return to_point
        ratio = self.params.step_size / d
        row = from_pos.row + int(round((to_point.row - from_pos.row) * ratio))
        col = from_pos.col + int(round((to_point.col - from_pos.col) * ratio))
        return self.grid.get_point_at(row, col) or from_pos

    def _check_collision(self, a: PathPoint, b: PathPoint) -> bool:
        """True if the a->b line is obstacle-free and unoccupied."""
        return line_is_free(self.grid, a, b, self.occupied, allowed=self.goal)

    def _add_node(self, pos: PathPoint, parent_idx: Optional[int], cost: float) -> int:
        new_idx = len(self.nodes)
        self.nodes.append(Node(pos=pos, parent=parent_idx, cost=cost))
        self.index[pos] = new_idx
        self._rows[new_idx] = pos.row
        self._cols[new_idx] = pos.col
        if parent_idx is not None:
            self.nodes[parent_idx].children.append(new_idx)
        return new_idx

    def _set_parent(self, child_idx: int, new_parent_idx: int, new_cost: float) -> None:
        child = self.nodes[child_idx]
        old_parent_idx = child.parent
        if old_parent_idx is not None and child_idx in self.nodes[old_parent_idx].children:
            self.nodes[old_parent_idx].children.remove(child_idx)
        child.parent = new_parent_idx
        child.cost = new_cost
        self.nodes[new_parent_idx].children.append(child_idx)
        self._propagate_cost_to_children(child_idx)

    def _propagate_cost_to_children(self, node_idx: int) -> None:
        stack = [node_idx]
        while stack:
            node = self.nodes[stack.pop()]
            for child_idx in node.children:
                child = self.nodes[child_idx]
                child.cost = node.cost + dist(node.pos, child.pos)
                stack.append(child_idx)

    def _reconstruct(self, end_idx: int) -> Optional[Route]:
        """Follow parent links back to the root; None on a self-loop or runaway chain."""
        path: Route = []
        curr_idx: Optional[int] = end_idx
        steps = 0
        while curr_idx is not None:
            if steps >= self.params.max_reconstruction_steps:
                logger.warning("RRT* reconstruction exceeded %d steps, possible cycle", steps)
                return None
            node = self.nodes[curr_idx]
            path.append(node.pos)
            if node.parent == curr_idx:
                logger.warning("RRT* reconstruction hit a self-loop at %s", node.pos)
                return None
            curr_idx = node.parent
            steps += 1
        path.reverse()
        return path

    def _densify(self, waypoints: Route) -> Route:
        dense: Route = [waypoints[0]]
        for a, b in zip(waypoints[:-1], waypoints[1:]):
            dense.extend(line_cells(self.grid, a, b)[1:])
        return dense

    def plan(self) -> RRTResult:
        start_time = time.perf_counter()
        first_success_iter: Optional[int] = None
        connect_radius = self.params.goal_connect_factor * self.params.step_size

        if self.start == self.goal:
            self.goal_idx = 0
            first_success_iter = 0

        i_iter = 0
        for i_iter in range(self.params.max_iters):
            if self.goal_idx is not None:
                break

            # 1. Sample and extend
            rnd_point = self._sample()
            nearest_idx = self._nearest_node_idx(rnd_point)
            nearest_node = self.nodes[nearest_idx]
            new_pos = self._steer(nearest_node.pos, rnd_point)

            if new_pos in self.index:
                continue
            if new_pos in self.occupied and new_pos != self.goal:
                continue
            if not self._check_collision(nearest_node.pos, new_pos):
                continue

            # 2. Choose the cheapest parent in the rewiring radius
            parent_idx = nearest_idx
            min_cost = nearest_node.cost + dist(nearest_node.pos, new_pos)
            neighbor_indices = self._get_neighbors_indices(new_pos)
            for i in neighbor_indices:
                if i == nearest_idx:
                    continue
                neighbor = self.nodes[i]
                cost = neighbor.cost + dist(neighbor.pos, new_pos)
                if cost < min_cost and self._check_collision(neighbor.pos, new_pos):
                    min_cost = cost
                    parent_idx = i

            new_node_idx = self._add_node(new_pos, parent_idx, min_cost)
            if new_pos == self.goal:
                self.goal_idx = new_node_idx
                first_success_iter = i_iter
                break

            # 3. Rewire
            for i in neighbor_indices:
                if i == parent_idx:
                    continue
                neighbor = self.nodes[i]
                new_neighbor_cost = min_cost + dist(new_pos, neighbor.pos)
                if new_neighbor_cost < neighbor.cost and self._check_collision(new_pos, neighbor.pos):
                    self._set_parent(i, new_node_idx, new_neighbor_cost)

            # 4. Goal connection
            d_goal = dist(new_pos, self.goal)
            if d_goal <= connect_radius and self._check_collision(new_pos, self.goal):
                self.goal_idx = self._add_node(self.goal, new_node_idx, min_cost + d_goal)
                first_success_iter = i_iter
                break

        cpu_time = time.perf_counter() - start_time

        path = None
        waypoints = None
        final_cost = math.inf
        if self.goal_idx is not None:
            waypoints = self._reconstruct(self.goal_idx)
            if waypoints is not None:
                path = self._densify(waypoints)
                final_cost = self.nodes[self.goal_idx].cost

        return RRTResult(
            path=path,
            waypoints=waypoints,
            cost=final_cost,
            iters=i_iter + 1,
            cpu_time=cpu_time,
            tree_nodes=self.nodes,
            first_success_iter=first_success_iter,
        )


class TreeSolver(RouteSolver):
    """Sampling-based seeds: several independent RRT* trees per station pair."""

    kind = SolverKind.TREE

    def __init__(
        self,
        params: Optional[TreeParams] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(rng=rng, seed=seed)
        self.params = params or TreeParams()

    def candidates(self, grid: GridMap) -> List[Route]:
        pools: List[List[Route]] = []
        for start, goal in grid.segments():
            paths = self.segment_solutions(grid, start, goal)
            if not paths:
                logger.info("RRT* found no path between %s and %s", start, goal)
                return []
            pools.append(paths)
        return cross_join(pools, cap=self.params.max_routes, rng=self.rng)

    def segment_solutions(
        self,
        grid: GridMap,
        start: PathPoint,
        goal: PathPoint,
        occupied: Collection[PathPoint] = frozenset(),
    ) -> List[Route]:
        paths: List[Route] = []
        for i, child_rng in enumerate(self.rng.spawn(self.params.variations_per_segment)):
            result = RRTStar(grid, start, goal, self.params, child_rng, occupied).plan()
            if result.path is None:
                logger.debug("RRT* variation %d found no path for %s -> %s", i + 1, start, goal)
                continue
            paths.append(result.path)
        return dedupe_routes(paths)
