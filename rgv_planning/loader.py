import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .models import PathPoint, Scenario


class ScenarioValidationError(Exception):
    """Raised when scenario validation fails."""
    pass


class ScenarioParseError(Exception):
    """Raised when scenario file cannot be parsed."""
    pass


def _read_json(filepath: Path) -> Dict[str, Any]:
    """Read file content as a JSON object."""
    try:
        content = filepath.read_text()
    except FileNotFoundError:
        raise ScenarioParseError(f"File not found: {filepath}")
    except PermissionError:
        raise ScenarioParseError(f"Permission denied: {filepath}")

    if not content.strip():
        raise ScenarioParseError(f"File is empty: {filepath}")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ScenarioParseError(f"Invalid JSON in {filepath}: {e}")

    if not isinstance(data, dict):
        raise ScenarioParseError(f"Top-level value in {filepath} must be an object")
    return data


def _require(data: Dict[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise ScenarioValidationError(f"{where}: missing field '{key}'")
    return data[key]


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScenarioValidationError(f"{name} must be an integer, got {value!r}")
    return value


def _as_number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ScenarioValidationError(f"{name} must be a number, got {value!r}")
    return float(value)


def _parse_point(raw: Any, index: int) -> PathPoint:
    """Parse one typed cell."""
    where = f"points[{index}]"
    if not isinstance(raw, dict):
        raise ScenarioValidationError(f"{where} must be an object")

    category = _require(raw, "category", where)
    if not isinstance(category, str):
        raise ScenarioValidationError(f"{where}.category must be a string, got {category!r}")
    name = raw.get("name", "")
    if not isinstance(name, str):
        raise ScenarioValidationError(f"{where}.name must be a string, got {name!r}")

    row = _as_int(_require(raw, "row", where), f"{where}.row")
    col = _as_int(_require(raw, "col", where), f"{where}.col")
    time = _as_number(raw.get("time", 0.0), f"{where}.time")
    if time < 0:
        raise ScenarioValidationError(f"{where}.time must be non-negative, got {time}")
    return PathPoint.create(name, category, row, col, time)


def _parse_flow(raw: Any, index: int) -> List[Tuple[int, int]]:
    """Parse one flow's station order."""
    where = f"flows[{index}]"
    if not isinstance(raw, dict):
        raise ScenarioValidationError(f"{where} must be an object")
    order = _require(raw, "stations_order", where)
    if not isinstance(order, list):
        raise ScenarioValidationError(f"{where}.stations_order must be a list")

    stations: List[Tuple[int, int]] = []
    for j, cell in enumerate(order):
        if not isinstance(cell, (list, tuple)) or len(cell) != 2:
            raise ScenarioValidationError(
                f"{where}.stations_order[{j}] must be a [row, col] pair, got {cell!r}"
            )
        stations.append(
            (
                _as_int(cell[0], f"{where}.stations_order[{j}][0]"),
                _as_int(cell[1], f"{where}.stations_order[{j}][1]"),
            )
        )
    return stations


def load_scenario(filepath: str | Path) -> Scenario:
    """Load a scenario from a JSON file.

    Only the file structure is checked here. Grid rules (minimum dimensions,
    station count, bounds) are enforced when the grid is built.

    Args:
        filepath: Path to the scenario file.

    Returns:
        Scenario object with all data.

    Raises:
        ScenarioParseError: If file cannot be read or is not JSON.
        ScenarioValidationError: If a field is missing or has the wrong type.

    File format:
        {
          "name": "optional",
          "row_dim": 6, "col_dim": 6,
          "width_length": 12, "height_length": 12,
          "algorithm": "dfs",
          "points": [{"name": "S1", "category": "st", "row": 5, "col": 0, "time": 10}],
          "flows": [{"stations_order": [[5, 0], [0, 5]]}]
        }
    """
    filepath = Path(filepath)
    data = _read_json(filepath)
    where = str(filepath)

    name = data.get("name") or filepath.stem
    row_dim = _as_int(_require(data, "row_dim", where), "row_dim")
    col_dim = _as_int(_require(data, "col_dim", where), "col_dim")
    width_length = _as_number(_require(data, "width_length", where), "width_length")
    height_length = _as_number(_require(data, "height_length", where), "height_length")

    raw_points = data.get("points", [])
    if not isinstance(raw_points, list):
        raise ScenarioValidationError("points must be a list")
    points = [_parse_point(p, i) for i, p in enumerate(raw_points)]

    raw_flows = _require(data, "flows", where)
    if not isinstance(raw_flows, list) or not raw_flows:
        raise ScenarioValidationError("flows must be a non-empty list")
    flows = [_parse_flow(f, i) for i, f in enumerate(raw_flows)]

    algorithm = data.get("algorithm")
    if algorithm is not None and not isinstance(algorithm, str):
        raise ScenarioValidationError(f"algorithm must be a string, got {algorithm!r}")

    return Scenario(
        name=str(name),
        row_dim=row_dim,
        col_dim=col_dim,
        width_length=width_length,
        height_length=height_length,
        points=points,
        flows=flows,
        algorithm=algorithm,
    )
