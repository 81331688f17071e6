"""Throughput, track length and fleet size of a route.

The model assumes a single dominant bottleneck station: the slowest station
(plus the fixed load/unload time) sets the headway between vehicles. It is
a production-line estimate, not a queueing solver.
"""

import math
from typing import List, Sequence, Tuple

from .grid import GridMap
from .models import PathPoint, RouteScore


RGV_SPEED = 1.0  # units per second
LOAD_UNLOAD_SECONDS = 15.0
DERATING_FACTOR = 0.90
HOUR_IN_SECONDS = 3600.0


def track_length(route: Sequence[PathPoint], grid: GridMap) -> float:
    return len(route) * grid.square_length()


def min_headway(grid: GridMap) -> float:
    return max(s.time for s in grid.stations_order) + LOAD_UNLOAD_SECONDS


def score_route(route: Sequence[PathPoint], grid: GridMap) -> RouteScore:
    """Score a route on its grid.

    track_length = cells * square_length
    cycle_time = track_length / speed + load/unload
    num_of_rgvs = floor(cycle_time / min_headway) + 1
    throughput = num_of_rgvs * 3600 / min_headway * derating
    """
    length = track_length(route, grid)
    travel_time = length / RGV_SPEED
    headway = min_headway(grid)
    cycle_time = travel_time + LOAD_UNLOAD_SECONDS
    num_of_rgvs = int(math.floor(cycle_time / headway)) + 1
    throughput_per_rgv = HOUR_IN_SECONDS / headway
    total_throughput = num_of_rgvs * throughput_per_rgv * DERATING_FACTOR
    return RouteScore(throughput=total_throughput, track_length=length, num_of_rgvs=num_of_rgvs)


def estimate_throughput(route: Sequence[PathPoint], grid: GridMap) -> Tuple[float, int, float]:
    """Ranking estimate from track length and cumulative station service time.

    Returns:
        (throughput, vehicles, track_length)
    """
    length = track_length(route, grid)
    total_station_time = sum(s.time for s in grid.stations_order)
    time_per_loop = length / RGV_SPEED + total_station_time
    if time_per_loop <= 0:
        return 0.0, 0, length
    if total_station_time > 0:
        vehicles = max(1, int(math.floor(time_per_loop / total_station_time)))
    else:
        vehicles = 1
    return vehicles * HOUR_IN_SECONDS / time_per_loop, vehicles, length


def get_best_route(routes: Sequence[List[PathPoint]], grid: GridMap) -> List[PathPoint]:
    """Highest estimated throughput, then fewer vehicles, then shorter track."""
    if not routes:
        return []

    def rank(idx: int) -> Tuple[float, int, float]:
        throughput, vehicles, length = estimate_throughput(routes[idx], grid)
        return (-throughput, vehicles, length)

    best_idx = min(range(len(routes)), key=rank)
    return list(routes[best_idx])
