import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .errors import (
    InvalidActualDimensionError,
    InvalidDimensionError,
    InvalidStationCountError,
    OutOfBoundsError,
)
from .models import PathPoint, PointCategory, Route


MIN_ROW_DIM = 3
MIN_COL_DIM = 3
MIN_WIDTH_LENGTH = 1
MIN_HEIGHT_LENGTH = 1
MIN_STATIONS = 2

# (d_row, d_col) unit moves
UP = (1, 0)
DOWN = (-1, 0)
LEFT = (0, -1)
RIGHT = (0, 1)
UP_LEFT = (1, -1)
UP_RIGHT = (1, 1)
DOWN_LEFT = (-1, -1)
DOWN_RIGHT = (-1, 1)

FOUR_DIRECTIONS: Tuple[Tuple[int, int], ...] = (UP, DOWN, LEFT, RIGHT)
EIGHT_DIRECTIONS: Tuple[Tuple[int, int], ...] = FOUR_DIRECTIONS + (
    UP_LEFT, UP_RIGHT, DOWN_LEFT, DOWN_RIGHT,
)


@dataclass
class GridMap:
    """Floor plan of one planning request.

    The matrix and the stations order never change after `create`; only the
    `solution` slot is overwritten as the pipeline moves from raw to smoothed
    route.

    Attributes:
        row_dim: Number of rows.
        col_dim: Number of columns.
        width_length: Physical width of the floor.
        height_length: Physical height of the floor.
        stations_order: Stations to visit, in order.
        solution: Scratch slot holding the latest route for this map.
    """

    row_dim: int
    col_dim: int
    width_length: float
    height_length: float
    stations_order: Tuple[PathPoint, ...]
    _matrix: Tuple[Tuple[PathPoint, ...], ...] = field(repr=False)
    solution: Route = field(default_factory=list)

    @classmethod
    def create(
        cls,
        row_dim: int,
        col_dim: int,
        width_length: float,
        height_length: float,
        points: Iterable[PathPoint],
        stations_order: Sequence[Tuple[int, int]],
    ) -> "GridMap":
        """Validate the inputs and build the matrix.

        Raises:
            InvalidDimensionError: row_dim or col_dim below 3.
            InvalidActualDimensionError: width or height below 1.
            InvalidStationCountError: fewer than 2 stations.
            OutOfBoundsError: a point or station lies outside the matrix.
        """
        if row_dim < MIN_ROW_DIM or col_dim < MIN_COL_DIM:
            raise InvalidDimensionError(row_dim, col_dim, MIN_ROW_DIM)
        if width_length < MIN_WIDTH_LENGTH or height_length < MIN_HEIGHT_LENGTH:
            raise InvalidActualDimensionError(width_length, height_length, MIN_WIDTH_LENGTH)
        if len(stations_order) < MIN_STATIONS:
            raise InvalidStationCountError(len(stations_order), MIN_STATIONS)

        rows: List[List[PathPoint]] = [
            [PathPoint.path(r, c) for c in range(col_dim)] for r in range(row_dim)
        ]
        for p in points:
            if not (0 <= p.row < row_dim and 0 <= p.col < col_dim):
                raise OutOfBoundsError(p.row, p.col, row_dim, col_dim)
            rows[p.row][p.col] = p

        order: List[PathPoint] = []
        for row, col in stations_order:
            if not (0 <= row < row_dim and 0 <= col < col_dim):
                raise OutOfBoundsError(row, col, row_dim, col_dim)
            order.append(rows[row][col])

        return cls(
            row_dim=row_dim,
            col_dim=col_dim,
            width_length=width_length,
            height_length=height_length,
            stations_order=tuple(order),
            _matrix=tuple(tuple(r) for r in rows),
        )

    def get_point_at(self, row: int, col: int) -> Optional[PathPoint]:
        if row < 0 or row > self.row_dim - 1 or col < 0 or col > self.col_dim - 1:
            return None
        return self._matrix[row][col]

    def square_length(self) -> float:
        """Physical edge length of one cell."""
        per_square_area = (self.width_length * self.height_length) / (self.row_dim * self.col_dim)
        return math.sqrt(per_square_area)

    def is_obstacle(self, point: PathPoint) -> bool:
        cell = self.get_point_at(point.row, point.col)
        return cell is None or cell.category is PointCategory.OBSTACLE

    def neighbors(
        self,
        point: PathPoint,
        directions: Sequence[Tuple[int, int]] = FOUR_DIRECTIONS,
    ) -> Iterator[PathPoint]:
        """Yield the in-bounds, non-obstacle neighbours of a cell."""
        for d_row, d_col in directions:
            n = self.get_point_at(point.row + d_row, point.col + d_col)
            if n is not None and n.category is not PointCategory.OBSTACLE:
                yield n

    def points(self) -> Iterator[PathPoint]:
        for row in self._matrix:
            yield from row

    def free_points(self) -> List[PathPoint]:
        return [p for p in self.points() if p.category is not PointCategory.OBSTACLE]

    @property
    def start(self) -> PathPoint:
        return self.stations_order[0]

    @property
    def goal(self) -> PathPoint:
        return self.stations_order[-1]

    def segments(self) -> List[Tuple[PathPoint, PathPoint]]:
        """Consecutive (start, goal) station pairs."""
        order = self.stations_order
        return [(order[i], order[i + 1]) for i in range(len(order) - 1)]

    def with_solution(self, route: Route) -> "GridMap":
        self.solution = list(route)
        return self
