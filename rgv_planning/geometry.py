import math
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Tuple

from .grid import GridMap
from .models import PathPoint, PointCategory


def dist(a: PathPoint, b: PathPoint) -> float:
    return math.sqrt((b.row - a.row) ** 2 + (b.col - a.col) ** 2)


def manhattan(a: PathPoint, b: PathPoint) -> int:
    return abs(a.row - b.row) + abs(a.col - b.col)


def chebyshev(a: PathPoint, b: PathPoint) -> int:
    """Move count between two cells with diagonal steps allowed."""
    return max(abs(a.row - b.row), abs(a.col - b.col))


def is_unit_step(a: PathPoint, b: PathPoint, diagonal: bool = False) -> bool:
    """True if b is one move away from a (4-connected, or 8-connected with diagonal)."""
    d_row = abs(a.row - b.row)
    d_col = abs(a.col - b.col)
    if diagonal:
        return max(d_row, d_col) == 1
    return d_row + d_col == 1


# =============================================================================
# Route utilities
# =============================================================================


def route_is_connected(route: Sequence[PathPoint], diagonal: bool = False) -> bool:
    for i in range(1, len(route)):
        if not is_unit_step(route[i - 1], route[i], diagonal):
            return False
    return True


def route_touches_obstacle(route: Iterable[PathPoint], grid: Optional[GridMap] = None) -> bool:
    """Check the route's own categories, or the grid's cells when a grid is given."""
    for p in route:
        if grid is not None:
            if grid.is_obstacle(p):
                return True
        elif p.category is PointCategory.OBSTACLE:
            return True
    return False


def visits_in_order(route: Sequence[PathPoint], stations: Sequence[PathPoint]) -> bool:
    """True if stations appear in route as a subsequence (repeats counted)."""
    if not stations:
        return True
    idx = 0
    for p in route:
        if p == stations[idx]:
            idx += 1
            if idx == len(stations):
                return True
    return False


def duplicate_count(route: Sequence[PathPoint]) -> int:
    return len(route) - len(set(route))


def direction_turns(route: Sequence[PathPoint]) -> int:
    """Number of heading changes along the route."""
    turns = 0
    prev: Optional[Tuple[int, int]] = None
    for i in range(1, len(route)):
        heading = (route[i].row - route[i - 1].row, route[i].col - route[i - 1].col)
        if prev is not None and heading != prev:
            turns += 1
        prev = heading
    return turns


def lcs_length(a: Sequence[PathPoint], b: Sequence[PathPoint]) -> int:
    """Longest common subsequence length (bit-parallel over b)."""
    if not a or not b:
        return 0
    masks: Dict[PathPoint, int] = {}
    for i, p in enumerate(b):
        masks[p] = masks.get(p, 0) | (1 << i)
    full = (1 << len(b)) - 1
    v = full
    for p in a:
        m = masks.get(p)
        if m is None:
            continue
        u = v & m
        v = ((v + u) | (v - u)) & full
    return len(b) - bin(v).count("1")


# =============================================================================
# Grid lines
# =============================================================================


def line_cells(grid: GridMap, a: PathPoint, b: PathPoint) -> List[PathPoint]:
    """4-connected Bresenham walk from a to b, both ends included.

    Each diagonal Bresenham move is split into a column step followed by a row
    step so that consecutive cells are always unit-adjacent.
    """
    d_col = abs(b.col - a.col)
    d_row = abs(b.row - a.row)
    s_col = 1 if a.col < b.col else -1
    s_row = 1 if a.row < b.row else -1
    err = d_col - d_row

    row, col = a.row, a.col
    cells = [grid.get_point_at(row, col) or a]
    while (row, col) != (b.row, b.col):
        e2 = 2 * err
        if e2 > -d_row:
            err -= d_row
            col += s_col
            cells.append(grid.get_point_at(row, col))
        if e2 < d_col:
            err += d_col
            row += s_row
            cells.append(grid.get_point_at(row, col))
    return cells


def line_is_free(
    grid: GridMap,
    a: PathPoint,
    b: PathPoint,
    occupied: Collection[PathPoint] = (),
    allowed: Optional[PathPoint] = None,
) -> bool:
    """True if no cell of the a->b line is an obstacle or occupied (except `allowed`)."""
    for cell in line_cells(grid, a, b):
        if cell is None or cell.category is PointCategory.OBSTACLE:
            return False
        if cell in occupied and cell != allowed:
            return False
    return True


def axis_line_is_clear(grid: GridMap, a: PathPoint, b: PathPoint) -> bool:
    """True if a and b share a row or column and every cell between them is free."""
    if a.row == b.row:
        lo, hi = sorted((a.col, b.col))
        cells = (grid.get_point_at(a.row, c) for c in range(lo, hi + 1))
    elif a.col == b.col:
        lo, hi = sorted((a.row, b.row))
        cells = (grid.get_point_at(r, a.col) for r in range(lo, hi + 1))
    else:
        return False
    for p in cells:
        if p is None or p.category is PointCategory.OBSTACLE:
            return False
    return True


# =============================================================================
# Segment intersection
# =============================================================================


def segment_intersection(
    p1: PathPoint, p2: PathPoint, p3: PathPoint, p4: PathPoint
) -> Optional[Tuple[int, int]]:
    """Integer cell where segment p1p2 crosses segment p3p4, if any.

    Exact integer arithmetic: t = t_num/denom and u = u_num/denom must both
    lie in [0, 1], and the crossing must land on integer coordinates.
    Parallel and collinear segments never intersect here.
    """
    denom = (p1.row - p2.row) * (p3.col - p4.col) - (p1.col - p2.col) * (p3.row - p4.row)
    if denom == 0:
        return None

    t_num = (p1.row - p3.row) * (p3.col - p4.col) - (p1.col - p3.col) * (p3.row - p4.row)
    u_num = -(p1.row - p2.row) * (p1.col - p3.col) + (p1.col - p2.col) * (p1.row - p3.row)

    if denom > 0:
        inside = 0 <= t_num <= denom and 0 <= u_num <= denom
    else:
        inside = denom <= t_num <= 0 and denom <= u_num <= 0
    if not inside:
        return None

    num_row = p1.row * denom + t_num * (p2.row - p1.row)
    num_col = p1.col * denom + t_num * (p2.col - p1.col)
    if num_row % denom != 0 or num_col % denom != 0:
        return None
    return (num_row // denom, num_col // denom)
