"""Errors raised by the route planning core."""


class RoutePlanningError(Exception):
    """Base class for route planning failures."""


class ValidationError(RoutePlanningError):
    """Raised when a planning request is rejected before computation."""


class InvalidDimensionError(ValidationError):
    def __init__(self, row_dim: int, col_dim: int, minimum: int = 3):
        super().__init__(
            f"Invalid grid dimension {row_dim}x{col_dim}: rows and columns must each be at least {minimum}"
        )
        self.row_dim = row_dim
        self.col_dim = col_dim


class InvalidActualDimensionError(ValidationError):
    def __init__(self, width_length: float, height_length: float, minimum: int = 1):
        super().__init__(
            f"Invalid actual dimension {width_length}x{height_length}: width and height must each be at least {minimum}"
        )
        self.width_length = width_length
        self.height_length = height_length


class InvalidStationCountError(ValidationError):
    def __init__(self, count: int, minimum: int = 2):
        super().__init__(
            f"Stations order must contain at least {minimum} stations (start -> goal), got {count}"
        )
        self.count = count


class OutOfBoundsError(ValidationError):
    def __init__(self, row: int, col: int, row_dim: int, col_dim: int):
        super().__init__(
            f"Point ({row}, {col}) is outside the grid [0, {row_dim - 1}] x [0, {col_dim - 1}]"
        )
        self.row = row
        self.col = col


class InvalidAlgorithmError(ValidationError):
    def __init__(self, algorithm: str):
        super().__init__(f"Unsupported route planning algorithm: {algorithm!r}")
        self.algorithm = algorithm


class AlgorithmNotImplementedError(RoutePlanningError, NotImplementedError):
    def __init__(self, algorithm: str):
        super().__init__(f"Route planning algorithm {algorithm!r} is declared but not implemented")
        self.algorithm = algorithm
