import math

import pytest

from rgv_planning.algorithms.astar import HeuristicParams
from rgv_planning.algorithms.base import SolverKind
from rgv_planning.algorithms.genetic import (
    GeneticParams,
    GeneticSolver,
    Infeasible,
    Scored,
    evaluate_fitness,
    fitness_key,
)
from rgv_planning.algorithms.rrt import TreeParams
from rgv_planning.geometry import route_is_connected, route_touches_obstacle, visits_in_order
from rgv_planning.grid import GridMap
from rgv_planning.models import PathPoint


def _grid(row_dim, col_dim, stations, obstacles=()):
    points = [PathPoint.create(f"S{i}", "st", r, c, 20.0) for i, (r, c) in enumerate(stations)]
    points += [PathPoint.create("", "obs", r, c) for r, c in obstacles]
    return GridMap.create(row_dim, col_dim, col_dim, row_dim, points, stations)


def _route(*coords):
    return [PathPoint.path(r, c) for r, c in coords]


def _small_params(**overrides) -> GeneticParams:
    params = dict(
        population_size=20,
        generations=6,
        chromosome_length=80,
        heuristic=HeuristicParams(target_count=3, max_routes=10),
        tree=TreeParams(variations_per_segment=2, max_iters=200, max_routes=10),
    )
    params.update(overrides)
    return GeneticParams(**params)


# =============================================================================
# Fitness
# =============================================================================


def test_fitness_rejects_infeasible_routes():
    grid = _grid(3, 3, [(0, 0), (0, 2)], obstacles=[(1, 1)])
    assert isinstance(evaluate_fitness([], grid), Infeasible)
    assert evaluate_fitness(_route((0, 0), (1, 0), (1, 1), (1, 2), (0, 2)), grid).reason == "touches an obstacle"
    assert evaluate_fitness(_route((0, 0), (0, 2)), grid).reason == "not connected"
    assert evaluate_fitness(_route((0, 2), (0, 1), (0, 0)), grid).reason == "stations not visited in order"
    assert (
        evaluate_fitness(_route((0, 0), (0, 1), (0, 2), (0, 1)), grid).reason
        == "does not end on the last station"
    )


def test_fitness_scores_feasible_route():
    grid = _grid(3, 3, [(0, 0), (0, 2)])
    fitness = evaluate_fitness(_route((0, 0), (0, 1), (0, 2)), grid)
    assert isinstance(fitness, Scored)
    assert math.isfinite(fitness.value)


def test_fitness_penalizes_turns_and_overlap():
    grid = _grid(3, 3, [(0, 0), (0, 2)])
    straight = _route((0, 0), (0, 1), (0, 2))
    detour = _route((0, 0), (1, 0), (1, 1), (1, 2), (0, 2))
    assert evaluate_fitness(straight, grid).value > evaluate_fitness(detour, grid).value

    alone = evaluate_fitness(straight, grid)
    shared = evaluate_fitness(straight, grid, committed_routes=[straight])
    assert alone.value - shared.value == pytest.approx(100.0 * 3)


def test_fitness_key_ranks_any_score_above_infeasible():
    assert fitness_key(Scored(-1e12)) > fitness_key(Infeasible("x"))
    assert fitness_key(Scored(2.0)) > fitness_key(Scored(1.0))


# =============================================================================
# Operators
# =============================================================================


def test_random_walk_starts_at_first_station_and_respects_cap():
    grid = _grid(6, 6, [(0, 0), (5, 5)])
    solver = GeneticSolver(params=_small_params(chromosome_length=30), seed=4)
    for _ in range(10):
        walk = solver.random_walk(grid)
        assert walk[0] == grid.start
        assert len(walk) <= 30
        assert route_is_connected(walk)


def test_tournament_draws_distinct_contestants():
    population = [_route((0, i)) for i in range(5)]
    fitnesses = [Infeasible("x"), Scored(1.0), Scored(3.0), Scored(2.0), Infeasible("y")]
    solver = GeneticSolver(params=GeneticParams(tournament_size=5), seed=0)
    # the whole population enters, so the best always wins
    for _ in range(20):
        assert solver.tournament(population, fitnesses) == population[2]


def test_tournament_size_is_capped_by_population():
    population = [_route((0, 0)), _route((0, 1))]
    solver = GeneticSolver(params=GeneticParams(tournament_size=5), seed=0)
    assert solver.tournament(population, [Scored(1.0), Scored(0.5)]) == population[0]


def test_crossover_splices_at_shared_cell():
    solver = GeneticSolver(seed=1)
    p1 = _route((0, 0), (0, 1), (0, 2), (1, 2))
    p2 = _route((0, 0), (1, 0), (1, 1), (1, 2))
    child = solver.crossover(p1, p2)
    assert child[0] == PathPoint.path(0, 0)
    assert child[-1] == PathPoint.path(1, 2)
    assert route_is_connected(child)


def test_mutation_keeps_endpoints_and_connectivity():
    grid = _grid(5, 5, [(0, 0), (4, 4)])
    solver = GeneticSolver(params=_small_params(), seed=9)
    solver.evolve(grid)
    route = _route((0, 0), (0, 1), (0, 2), (0, 3), (0, 4), (1, 4), (2, 4), (3, 4), (4, 4))
    for _ in range(20):
        mutated = solver.mutate(route)
        assert mutated[0] == route[0]
        assert mutated[-1] == route[-1]
        assert route_is_connected(mutated)


# =============================================================================
# Evolution
# =============================================================================


def test_genetic_solver_finds_valid_route():
    grid = _grid(6, 6, [(0, 0), (5, 5), (0, 5)], obstacles=[(2, 2), (2, 3)])
    result = GeneticSolver(params=_small_params(), seed=42).solve(grid)
    assert result.kind is SolverKind.GENETIC
    assert result.found
    route = result.route
    assert route_is_connected(route)
    assert not route_touches_obstacle(route, grid)
    assert visits_in_order(route, grid.stations_order)
    assert route[-1] == grid.goal
    assert len(result.history) == 7


def test_genetic_history_never_gets_worse():
    grid = _grid(6, 6, [(0, 0), (5, 5)])
    result = GeneticSolver(params=_small_params(generations=10), seed=3).solve(grid)
    values = [v for v in result.history if not math.isnan(v)]
    assert values == sorted(values)


def test_genetic_solver_without_seeds_still_runs():
    grid = _grid(4, 4, [(0, 0), (3, 3)])
    params = _small_params(seed_from_heuristic=False, seed_from_tree=False, walk_greedy_bias=1.0)
    result = GeneticSolver(params=params, seed=0).solve(grid)
    assert result.found
    assert result.route[0] == grid.start
    assert result.route[-1] == grid.goal


def test_genetic_solver_returns_empty_route_when_walled_in():
    ring = [(1, 1), (1, 2), (1, 3), (2, 1), (2, 3), (3, 1), (3, 2), (3, 3)]
    grid = _grid(5, 5, [(0, 0), (2, 2)], obstacles=ring)
    result = GeneticSolver(params=_small_params(), seed=1).solve(grid)
    assert not result.found
    assert result.route == []
    assert result.candidates == []
