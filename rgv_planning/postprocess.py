"""Route smoothing: sparse straight-run waypoints re-expanded on the grid axes."""

from typing import List, Sequence

from .geometry import axis_line_is_clear
from .grid import GridMap
from .models import PathPoint, Route


def smooth_and_rasterize(route: Sequence[PathPoint], grid: GridMap) -> Route:
    """Reduce a route to straight-run corners, then redraw it axis by axis.

    Each pair of consecutive corners is joined by a full column move followed
    by a full row move, so diagonal steps in the input become L-shaped
    corners. Cells are looked up on the grid only; occupancy is not checked.
    Routes under 3 points are returned unchanged.
    """
    if len(route) < 3:
        return list(route)

    sparse = sparse_waypoints(route, grid)
    dense: Route = [sparse[0]]
    for start, end in zip(sparse[:-1], sparse[1:]):
        dense.extend(axis_aligned_cells(start, end, grid))
    return dense


def sparse_waypoints(route: Sequence[PathPoint], grid: GridMap) -> List[PathPoint]:
    """Greedy straight runs: a run ends on the cell before alignment or a clear line breaks.

    Station cells always end a run, so an out-and-back visit along one line
    keeps its turning station.
    """
    stations = set(grid.stations_order)
    waypoints: List[PathPoint] = [route[0]]
    last_keep = 0

    for i in range(1, len(route)):
        anchor = route[last_keep]
        aligned = anchor.row == route[i].row or anchor.col == route[i].col
        pinned = i - 1 > last_keep and route[i - 1] in stations
        if not pinned and aligned and axis_line_is_clear(grid, anchor, route[i]):
            continue
        if route[i - 1] != waypoints[-1]:
            waypoints.append(route[i - 1])
        last_keep = i - 1

    if waypoints[-1] != route[-1]:
        waypoints.append(route[-1])
    return waypoints


def axis_aligned_cells(start: PathPoint, end: PathPoint, grid: GridMap) -> List[PathPoint]:
    """Cells after `start` up to `end`: columns first, then rows."""
    cells: List[PathPoint] = []
    row, col = start.row, start.col

    step = 1 if end.col > col else -1
    while col != end.col:
        col += step
        p = grid.get_point_at(row, col)
        if p is not None:
            cells.append(p)

    step = 1 if end.row > row else -1
    while row != end.row:
        row += step
        p = grid.get_point_at(row, col)
        if p is not None:
            cells.append(p)

    return cells
