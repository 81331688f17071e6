import numpy as np
import pytest

from rgv_planning.algorithms.astar import HeuristicParams, HeuristicSolver
from rgv_planning.algorithms.base import SolverKind, cross_join, dedupe_routes
from rgv_planning.algorithms.dfs import ExhaustiveParams, ExhaustiveSolver
from rgv_planning.algorithms.rrt import RRTStar, TreeParams, TreeSolver
from rgv_planning.geometry import route_is_connected, route_touches_obstacle, visits_in_order
from rgv_planning.grid import GridMap
from rgv_planning.models import PathPoint

# walls in (2, 2) on a 5x5 grid
RING = [(1, 1), (1, 2), (1, 3), (2, 1), (2, 3), (3, 1), (3, 2), (3, 3)]


def _grid(row_dim, col_dim, stations, obstacles=()):
    points = [PathPoint.create(f"S{i}", "st", r, c, 10.0) for i, (r, c) in enumerate(stations)]
    points += [PathPoint.create("", "obs", r, c) for r, c in obstacles]
    return GridMap.create(row_dim, col_dim, col_dim, row_dim, points, stations)


def _assert_valid(route, grid, diagonal=False):
    assert route
    assert route_is_connected(route, diagonal=diagonal)
    assert not route_touches_obstacle(route, grid)
    assert visits_in_order(route, grid.stations_order)
    assert route[0] == grid.start
    assert route[-1] == grid.goal


# =============================================================================
# Exhaustive
# =============================================================================


def test_exhaustive_is_complete_on_small_grid():
    grid = _grid(3, 3, [(0, 0), (2, 2)])
    result = ExhaustiveSolver().solve(grid)
    assert result.kind is SolverKind.EXHAUSTIVE
    assert result.found
    _assert_valid(result.route, grid, diagonal=True)
    for route in result.candidates:
        _assert_valid(route, grid, diagonal=True)
        assert len(set(route)) == len(route)


def test_exhaustive_segments_avoid_other_stations():
    grid = _grid(3, 3, [(0, 0), (2, 2), (0, 2)])
    solver = ExhaustiveSolver()
    for route in solver.segment_routes(grid, grid.stations_order[0], grid.stations_order[1]):
        assert PathPoint.path(0, 2) not in route


def test_exhaustive_respects_route_limit():
    grid = _grid(5, 5, [(0, 0), (4, 4)])
    solver = ExhaustiveSolver(ExhaustiveParams(max_routes_per_segment=5))
    assert len(solver.segment_routes(grid, grid.start, grid.goal)) == 5


def test_exhaustive_finds_shortest_route_on_open_grid():
    grid = GridMap.create(6, 6, 6, 6, [], [(5, 0), (0, 5)])
    result = ExhaustiveSolver().solve(grid)
    assert result.route == [PathPoint.path(5 - i, i) for i in range(6)]


def test_exhaustive_tries_moves_toward_the_goal_first():
    grid = _grid(6, 6, [(0, 0), (5, 2)])
    routes = ExhaustiveSolver(ExhaustiveParams(max_routes_per_segment=3)).segment_routes(
        grid, grid.start, grid.goal
    )
    assert len(routes[0]) == 6
    assert all(len(r) >= len(routes[0]) for r in routes)


def test_exhaustive_returns_empty_when_goal_is_walled_in():
    grid = _grid(5, 5, [(0, 0), (2, 2)], obstacles=RING)
    result = ExhaustiveSolver().solve(grid)
    assert not result.found
    assert result.route == []


# =============================================================================
# Heuristic
# =============================================================================


def test_heuristic_shortest_path_is_optimal():
    grid = _grid(5, 5, [(0, 0), (4, 4)])
    path = HeuristicSolver(seed=1).shortest_path(grid, grid.start, grid.goal)
    assert len(path) == 9
    _assert_valid(path, grid)


def test_heuristic_shortest_path_avoids_occupied_cells():
    grid = _grid(3, 5, [(0, 0), (0, 4)])
    occupied = {PathPoint.path(0, 2)}
    path = HeuristicSolver(seed=1).shortest_path(grid, grid.start, grid.goal, occupied)
    assert path
    assert PathPoint.path(0, 2) not in path
    assert len(path) == 7


def test_heuristic_candidates_are_valid_routes():
    grid = _grid(6, 6, [(0, 0), (5, 5), (0, 5)], obstacles=[(2, 2), (3, 3)])
    routes = HeuristicSolver(HeuristicParams(target_count=4, max_routes=20), seed=7).candidates(grid)
    assert routes
    assert len(routes) <= 40
    for route in routes:
        _assert_valid(route, grid)


def test_heuristic_sequential_routes_do_not_reuse_prefix_cells():
    grid = _grid(6, 6, [(0, 0), (5, 5), (0, 5)])
    solver = HeuristicSolver(HeuristicParams(target_count=3, max_routes=10), seed=3)
    for route in solver.sequential_routes(grid):
        split = route.index(PathPoint.path(5, 5))
        assert not set(route[1:split]) & set(route[split + 1:-1])


def test_heuristic_finds_nothing_inside_ring():
    grid = _grid(5, 5, [(0, 0), (2, 2)], obstacles=RING)
    solver = HeuristicSolver(seed=1)
    assert solver.candidates(grid) == []
    assert not solver.solve(grid).found


# =============================================================================
# RRT*
# =============================================================================


def test_rrt_star_reaches_goal_with_unit_steps():
    grid = _grid(8, 8, [(0, 0), (7, 7)], obstacles=[(3, 3), (3, 4), (4, 3)])
    params = TreeParams(max_iters=500)
    result = RRTStar(grid, grid.start, grid.goal, params, np.random.default_rng(0)).plan()
    assert result.path is not None
    assert result.first_success_iter is not None
    assert result.cost >= 7 * 2 ** 0.5 - 1e-9
    _assert_valid(result.path, grid)


def test_rrt_star_reconstruction_aborts_on_self_loop():
    grid = _grid(8, 8, [(0, 0), (7, 7)])
    planner = RRTStar(grid, grid.start, grid.goal, TreeParams(max_iters=500), np.random.default_rng(0))
    planner.nodes[0].parent = 0
    assert planner._reconstruct(0) is None

    result = planner.plan()
    assert planner.goal_idx is not None
    assert result.path is None
    assert result.waypoints is None


def test_rrt_star_reconstruction_aborts_after_step_limit():
    grid = _grid(8, 8, [(0, 0), (7, 7)])
    params = TreeParams(max_iters=500, max_reconstruction_steps=2)
    planner = RRTStar(grid, grid.start, grid.goal, params, np.random.default_rng(0))

    result = planner.plan()
    assert planner.goal_idx is not None
    assert planner._reconstruct(planner.goal_idx) is None
    assert result.path is None


def test_tree_solver_candidates_are_valid_routes():
    grid = _grid(8, 8, [(0, 0), (7, 7), (0, 7)], obstacles=[(4, 4)])
    solver = TreeSolver(TreeParams(variations_per_segment=2, max_iters=400, max_routes=4), seed=11)
    routes = solver.candidates(grid)
    assert 0 < len(routes) <= 4
    for route in routes:
        _assert_valid(route, grid)


def test_tree_solver_is_reproducible_with_seed():
    grid = _grid(8, 8, [(0, 0), (7, 7)])
    params = TreeParams(variations_per_segment=2, max_iters=300)
    first = TreeSolver(params, seed=5).candidates(grid)
    second = TreeSolver(params, seed=5).candidates(grid)
    assert first == second


def test_tree_solver_gives_up_inside_ring():
    grid = _grid(5, 5, [(0, 0), (2, 2)], obstacles=RING)
    solver = TreeSolver(TreeParams(variations_per_segment=2, max_iters=200), seed=2)
    assert solver.candidates(grid) == []


# =============================================================================
# Stitching helpers
# =============================================================================


def test_cross_join_stitches_shared_boundary():
    a, b, c = PathPoint.path(0, 0), PathPoint.path(0, 1), PathPoint.path(0, 2)
    pools = [[[a, b]], [[b, c], [b, PathPoint.path(1, 1), c]]]
    joined = cross_join(pools, cap=None)
    assert joined == [[a, b, c], [a, b, PathPoint.path(1, 1), c]]
    assert cross_join(pools, cap=1) == [[a, b, c]]
    assert cross_join([[[a, b]], []], cap=None) == []


def test_dedupe_routes_keeps_first_occurrence():
    a, b = PathPoint.path(0, 0), PathPoint.path(0, 1)
    assert dedupe_routes([[a, b], [a], [a, b]]) == [[a, b], [a]]


@pytest.mark.parametrize("solver_cls", [ExhaustiveSolver, HeuristicSolver, TreeSolver])
def test_solvers_share_interface(solver_cls):
    grid = _grid(4, 4, [(0, 0), (3, 3)])
    result = solver_cls(seed=0).solve(grid)
    assert result.found
    assert result.cpu_time >= 0
    assert result.route in result.candidates
