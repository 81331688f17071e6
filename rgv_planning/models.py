from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class PointCategory(Enum):
    """Category of a grid cell."""

    OBSTACLE = "obstacle"
    PATH = "path"
    STATION = "station"

    @classmethod
    def from_string(cls, value: str) -> "PointCategory":
        key = (value or "").strip().lower()
        if key in ("obs", "obstacle"):
            return cls.OBSTACLE
        if key in ("st", "station"):
            return cls.STATION
        return cls.PATH


@dataclass(frozen=True)
class PathPoint:
    """A grid cell identified by (row, col).

    Attributes:
        row: Row index in the grid matrix.
        col: Column index in the grid matrix.
        name: Display name (stations are usually named).
        category: Obstacle, path or station.
        time: Service time in seconds spent at the cell (stations only).
    """

    row: int
    col: int
    name: str = field(default="", compare=False)
    category: PointCategory = field(default=PointCategory.PATH, compare=False)
    time: float = field(default=0.0, compare=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathPoint):
            return NotImplemented
        return self.row == other.row and self.col == other.col

    def __hash__(self) -> int:
        return hash((self.row, self.col))

    def __repr__(self) -> str:
        return f"PathPoint({self.row}, {self.col}, {self.category.value})"

    @property
    def coords(self) -> tuple[int, int]:
        return (self.row, self.col)

    @property
    def is_obstacle(self) -> bool:
        return self.category is PointCategory.OBSTACLE

    @classmethod
    def path(cls, row: int, col: int) -> "PathPoint":
        return cls(row, col, "Path", PointCategory.PATH, 0.0)

    @classmethod
    def create(cls, name: str, category: str, row: int, col: int, time: float = 0.0) -> "PathPoint":
        return cls(row, col, name, PointCategory.from_string(category), float(time))


Route = List[PathPoint]


class Algorithm(Enum):
    """Externally selectable planning algorithms."""

    DFS = "dfs"
    GENETIC_ALGORITHM = "geneticalgorithm"
    REINFORCEMENT_LEARNING = "reinforcementlearning"

    @classmethod
    def from_string(cls, value: str) -> "Algorithm":
        from .errors import InvalidAlgorithmError

        if not value:
            raise InvalidAlgorithmError(value)
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidAlgorithmError(value) from None


@dataclass(frozen=True)
class RouteScore:
    """Throughput/quality metrics of a route.

    Attributes:
        throughput: Items per hour across the whole fleet.
        track_length: Physical length of the track.
        num_of_rgvs: Number of vehicles the track supports.
    """

    throughput: float
    track_length: float
    num_of_rgvs: int


@dataclass
class Scenario:
    """A floor plan with its flows, as read from a scenario file.

    Attributes:
        name: Scenario name (file stem when not given).
        row_dim: Number of grid rows.
        col_dim: Number of grid columns.
        width_length: Physical floor width.
        height_length: Physical floor height.
        points: Typed cells; unlisted cells are plain path.
        flows: Station order of each flow as (row, col) pairs.
        algorithm: Algorithm name to use unless overridden.
    """

    name: str
    row_dim: int
    col_dim: int
    width_length: float
    height_length: float
    points: List[PathPoint] = field(default_factory=list)
    flows: List[List[Tuple[int, int]]] = field(default_factory=list)
    algorithm: Optional[str] = None
