from typing import List, Sequence, Set, Tuple

from .geometry import segment_intersection
from .models import PathPoint

Segment = Tuple[PathPoint, PathPoint]


def to_segments(route: Sequence[PathPoint]) -> List[Segment]:
    return [(route[i], route[i + 1]) for i in range(len(route) - 1)]


def find_intersections(
    routes: Sequence[Sequence[PathPoint]],
    include_self_intersections: bool = True,
) -> Set[PathPoint]:
    """Cells where routes cross each other (and themselves, if enabled).

    Every unordered pair of routes is tested segment by segment. Within a
    single route, adjacent segments share an endpoint and are skipped.
    """
    intersections: Set[PathPoint] = set()
    segments_list = [to_segments(r) for r in routes]

    for i in range(len(segments_list)):
        for j in range(i + 1, len(segments_list)):
            for seg1 in segments_list[i]:
                for seg2 in segments_list[j]:
                    _add_crossing(seg1, seg2, intersections)

    if include_self_intersections:
        for segs in segments_list:
            for i in range(len(segs)):
                for j in range(i + 2, len(segs)):
                    _add_crossing(segs[i], segs[j], intersections)

    return intersections


def _add_crossing(seg1: Segment, seg2: Segment, intersections: Set[PathPoint]) -> None:
    hit = segment_intersection(seg1[0], seg1[1], seg2[0], seg2[1])
    if hit is not None:
        intersections.add(PathPoint.path(*hit))
