import pytest

from rgv_planning.evaluator import estimate_throughput, get_best_route, score_route
from rgv_planning.grid import GridMap
from rgv_planning.models import PathPoint


def _grid(times=(10.0, 30.0)):
    points = [
        PathPoint.create("A", "st", 0, 0, times[0]),
        PathPoint.create("B", "st", 3, 3, times[1]),
    ]
    return GridMap.create(4, 4, 8, 8, points, [(0, 0), (3, 3)])


def _cells(n):
    return [PathPoint.path(0, i) for i in range(n)]


def test_score_short_route_needs_one_vehicle():
    # 5 cells * 2 = 10 units; headway = 30 + 15; cycle = 10 + 15
    score = score_route(_cells(5), _grid())
    assert score.track_length == pytest.approx(10.0)
    assert score.num_of_rgvs == 1
    assert score.throughput == pytest.approx(3600 / 45 * 0.9)


def test_score_long_route_adds_vehicles():
    # 30 cells * 2 = 60 units; cycle = 75 -> floor(75 / 45) + 1
    score = score_route(_cells(30), _grid())
    assert score.num_of_rgvs == 2
    assert score.throughput == pytest.approx(2 * 3600 / 45 * 0.9)


def test_estimate_throughput_without_station_time():
    throughput, vehicles, length = estimate_throughput(_cells(10), _grid(times=(0.0, 0.0)))
    assert vehicles == 1
    assert length == pytest.approx(20.0)
    assert throughput == pytest.approx(3600 / 20.0)


def test_estimate_throughput_with_station_time():
    # loop = 20 + 40 = 60; vehicles = floor(60 / 40)
    throughput, vehicles, _ = estimate_throughput(_cells(10), _grid())
    assert vehicles == 1
    assert throughput == pytest.approx(3600 / 60.0)


def test_get_best_route_prefers_higher_throughput():
    grid = _grid(times=(0.0, 0.0))
    short, long = _cells(4), _cells(7)
    assert get_best_route([long, short], grid) == short
    assert get_best_route([], grid) == []
