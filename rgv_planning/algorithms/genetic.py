import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..evaluator import score_route
from ..geometry import (
    direction_turns,
    duplicate_count,
    lcs_length,
    manhattan,
    route_is_connected,
    route_touches_obstacle,
    visits_in_order,
)
from ..grid import FOUR_DIRECTIONS, GridMap
from ..models import PathPoint, Route
from .astar import HeuristicParams, HeuristicSolver
from .base import RouteSolver, SolverKind, SolverResult, dedupe_routes, subsample
from .rrt import TreeParams, TreeSolver

logger = logging.getLogger(__name__)


@dataclass
class GeneticParams:
    population_size: int = 400
    generations: int = 400
    elite_fraction: float = 0.1
    tournament_size: int = 5
    crossover_rate: float = 0.7
    mutation_rate: float = 0.05
    chromosome_length: int = 1000
    max_mutation_span: int = 12  # max cells between the two mutation cut points
    walk_greedy_bias: float = 0.7  # probability a random walk steps toward its target

    # Fitness weights
    throughput_weight: float = 0.8
    length_weight: float = 0.1
    fleet_weight: float = 0.1
    duplicate_penalty: float = 20.0
    turn_penalty: float = 20.0
    overlap_penalty: float = 100.0

    # Seeding
    seed_from_heuristic: bool = True
    seed_from_tree: bool = True
    heuristic: HeuristicParams = field(default_factory=HeuristicParams)
    tree: TreeParams = field(default_factory=TreeParams)


@dataclass(frozen=True)
class Infeasible:
    reason: str


@dataclass(frozen=True)
class Scored:
    value: float


Fitness = Union[Infeasible, Scored]


def fitness_key(fitness: Fitness) -> Tuple[int, float]:
    """Sort key: every scored route ranks above every infeasible one."""
    if isinstance(fitness, Scored):
        return (1, fitness.value)
    return (0, 0.0)


def evaluate_fitness(
    route: Sequence[PathPoint],
    grid: GridMap,
    committed_routes: Sequence[Sequence[PathPoint]] = (),
    params: Optional[GeneticParams] = None,
) -> Fitness:
    """Feasibility check, then the weighted fitness of a route.

    value = w_t*throughput + w_l/track_length + w_f/num_of_rgvs
            - p_d*duplicates - p_t*turns - p_o*sum(LCS with committed routes)
    """
    params = params or GeneticParams()
    stations = grid.stations_order
    if not route:
        return Infeasible("empty route")
    if route_touches_obstacle(route, grid):
        return Infeasible("touches an obstacle")
    if not route_is_connected(route):
        return Infeasible("not connected")
    if not visits_in_order(route, stations):
        return Infeasible("stations not visited in order")
    if route[-1] != stations[-1]:
        return Infeasible("does not end on the last station")

    score = score_route(route, grid)
    overlap = sum(lcs_length(route, other) for other in committed_routes)
    value = (
        params.throughput_weight * score.throughput
        + params.length_weight / score.track_length
        + params.fleet_weight / score.num_of_rgvs
        - params.duplicate_penalty * duplicate_count(route)
        - params.turn_penalty * direction_turns(route)
        - params.overlap_penalty * overlap
    )
    return Scored(value)


class GeneticSolver(RouteSolver):
    """Evolutionary refinement over whole routes.

    The initial population is the heuristic and RRT* seed routes, topped up
    with random greedy walks. Each generation keeps the elite, then breeds the
    rest by tournament selection, single-point crossover at a shared cell and
    an occasional sub-path mutation. Routes that other flows already committed
    are penalized through their longest common subsequence with the candidate.
    """

    kind = SolverKind.GENETIC

    def __init__(
        self,
        committed_routes: Sequence[Sequence[PathPoint]] = (),
        params: Optional[GeneticParams] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(rng=rng, seed=seed)
        self.committed_routes = [list(r) for r in committed_routes if r]
        self.params = params or GeneticParams()
        self._cache: Dict[Tuple[PathPoint, ...], Fitness] = {}
        self._grid: Optional[GridMap] = None
        self._mutator: Optional[HeuristicSolver] = None

    # =========================================================================
    # Fitness
    # =========================================================================

    def fitness(self, route: Sequence[PathPoint]) -> Fitness:
        key = tuple(route)
        cached = self._cache.get(key)
        if cached is None:
            cached = evaluate_fitness(route, self._grid, self.committed_routes, self.params)
            self._cache[key] = cached
        return cached

    # =========================================================================
    # Population
    # =========================================================================

    def seed_routes(self, grid: GridMap) -> List[Route]:
        heuristic_rng, tree_rng = self.rng.spawn(2)
        seeds: List[Route] = []
        if self.params.seed_from_heuristic:
            seeds.extend(HeuristicSolver(self.params.heuristic, rng=heuristic_rng).candidates(grid))
        if self.params.seed_from_tree:
            seeds.extend(TreeSolver(self.params.tree, rng=tree_rng).candidates(grid))
        seeds = [s[: self.params.chromosome_length] for s in dedupe_routes(seeds)]
        logger.debug("Genetic solver seeded with %d routes", len(seeds))
        return seeds

    def random_walk(self, grid: GridMap) -> Route:
        """Greedy-biased random walk through the stations, capped at chromosome length."""
        stations = grid.stations_order
        current = stations[0]
        walk: Route = [current]
        for target in stations[1:]:
            while current != target and len(walk) < self.params.chromosome_length:
                options = list(grid.neighbors(current, FOUR_DIRECTIONS))
                if not options:
                    return walk
                if self.rng.random() < self.params.walk_greedy_bias:
                    best = min(manhattan(n, target) for n in options)
                    options = [n for n in options if manhattan(n, target) == best]
                current = options[int(self.rng.integers(len(options)))]
                walk.append(current)
        return walk

    def initial_population(self, grid: GridMap) -> List[Route]:
        population = subsample(self.seed_routes(grid), self.params.population_size, self.rng)
        while len(population) < self.params.population_size:
            population.append(self.random_walk(grid))
        return population

    # =========================================================================
    # Operators
    # =========================================================================

    def tournament(self, population: List[Route], fitnesses: List[Fitness]) -> Route:
        k = min(self.params.tournament_size, len(population))
        idx = self.rng.choice(len(population), size=k, replace=False)
        winner = max(idx, key=lambda i: fitness_key(fitnesses[i]))
        return population[int(winner)]

    def crossover(self, parent1: Route, parent2: Route) -> Route:
        """parent1 prefix + parent2 suffix, spliced at a random shared cell."""
        common = sorted(set(parent1) & set(parent2), key=lambda p: p.coords)
        if not common:
            return list(parent1)
        cell = common[int(self.rng.integers(len(common)))]
        child = parent1[: parent1.index(cell)] + parent2[parent2.index(cell):]
        return child[: self.params.chromosome_length]

    def mutate(self, route: Route) -> Route:
        """Replace the sub-path between two cut points with a fresh shortest path."""
        if len(route) < 3:
            return route
        i = int(self.rng.integers(len(route) - 2))
        j_max = min(len(route) - 1, i + self.params.max_mutation_span)
        j = int(self.rng.integers(i + 2, j_max + 1))
        occupied = set(route[:i]) | set(route[j + 1:])
        sub = self._mutator.shortest_path(self._grid, route[i], route[j], occupied)
        if not sub:
            return route
        return (route[:i] + sub + route[j + 1:])[: self.params.chromosome_length]

    # =========================================================================
    # Evolution
    # =========================================================================

    def evolve(self, grid: GridMap) -> Tuple[List[Route], List[Fitness], List[float]]:
        """Run all generations; returns the final population (best first), its fitnesses and the history."""
        self._grid = grid
        self._cache = {}
        self._mutator = HeuristicSolver(self.params.heuristic, rng=self.rng)

        p = self.params
        population = self.initial_population(grid)
        n_elite = max(1, int(p.elite_fraction * p.population_size))
        history: List[float] = []

        for gen in range(p.generations + 1):
            fitnesses = [self.fitness(r) for r in population]
            order = sorted(range(len(population)), key=lambda i: fitness_key(fitnesses[i]), reverse=True)
            population = [population[i] for i in order]
            fitnesses = [fitnesses[i] for i in order]

            best = fitnesses[0]
            history.append(best.value if isinstance(best, Scored) else math.nan)
            logger.debug("Generation %d: best fitness %s", gen, best)

            # drop cached scores of routes that did not survive
            alive = {tuple(r) for r in population}
            self._cache = {k: v for k, v in self._cache.items() if k in alive}

            if gen == p.generations:
                break

            next_gen = [list(r) for r in population[:n_elite]]
            while len(next_gen) < p.population_size:
                parent1 = self.tournament(population, fitnesses)
                parent2 = self.tournament(population, fitnesses)
                if self.rng.random() < p.crossover_rate:
                    child = self.crossover(parent1, parent2)
                else:
                    child = list(parent1)
                if self.rng.random() < p.mutation_rate:
                    child = self.mutate(child)
                next_gen.append(child)
            population = next_gen

        return population, fitnesses, history

    def candidates(self, grid: GridMap) -> List[Route]:
        population, fitnesses, _ = self.evolve(grid)
        return [r for r, f in zip(population, fitnesses) if isinstance(f, Scored)]

    def solve(self, grid: GridMap) -> SolverResult:
        start_time = time.perf_counter()
        population, fitnesses, history = self.evolve(grid)
        best, best_fitness = population[0], fitnesses[0]
        if isinstance(best_fitness, Infeasible):
            logger.info("Genetic solver found no feasible route (%s)", best_fitness.reason)
            route: Route = []
        else:
            route = list(best)
        return SolverResult(
            kind=self.kind,
            route=route,
            candidates=[r for r, f in zip(population, fitnesses) if isinstance(f, Scored)],
            cpu_time=time.perf_counter() - start_time,
            history=history,
        )
