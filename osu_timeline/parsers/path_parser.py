"""Turn a slider's ``type|x:y|x:y...`` field into a :class:`Path`.

The hit object's own position is the first control point of the path; the
field lists the following ones.

Curve types:
  - ``L``: polyline, one linear segment per pair of consecutive points.
  - ``P``: circle arc through exactly 3 points. Aligned points make a line.
  - ``B``: Bézier. A point equal to the one before it ends a segment and
    starts the next one, so ``A|B|B|C`` is the two segments AB and BC.
  - ``C``: Catmull, parsed but not evaluable.
"""

import logging

from osu_timeline.parsers.errors import FieldError
from osu_timeline.parsers.state import to_float
from osu_timeline.schemas.geometry import (
    MAX_BEZIER_DEGREE,
    BezierSegment,
    CatmullSegment,
    LinearSegment,
    Path,
    Point,
    build_arc,
)

logger = logging.getLogger(__name__)

LINEAR_PATH = "L"
PERFECT_PATH = "P"
BEZIER_PATH = "B"
CATMULL_PATH = "C"


def parse_point(text: str) -> Point:
    """Parse ``168:88``."""
    x, sep, y = text.partition(":")
    if not sep:
        raise FieldError(f"expected x:y, got {text!r}")
    return Point(to_float(x, "x coordinate"), to_float(y, "y coordinate"))


def split_bezier(points: list[Point]) -> list[list[Point]]:
    """Cut a control point list at every repeated point.

    ``ABBBC`` gives AB, B and BC: the format is ambiguous there, and a lone
    point makes a zero-length segment.
    """
    groups = [[points[0]]]
    for prev, p in zip(points, points[1:]):
        if p == prev:
            groups.append([p])
        else:
            groups[-1].append(p)
    return groups


def build_linear(points: list[Point]) -> Path:
    if len(points) < 2:
        raise FieldError("linear slider needs at least 2 points")
    return Path(tuple(LinearSegment(a, b) for a, b in zip(points, points[1:])))


def build_bezier(points: list[Point]) -> Path:
    segments = []
    for group in split_bezier(points):
        if len(group) - 1 > MAX_BEZIER_DEGREE:
            raise FieldError(
                f"Bézier segment of degree {len(group) - 1} exceeds {MAX_BEZIER_DEGREE}"
            )
        segments.append(BezierSegment(tuple(group)))
    return Path(tuple(segments))


def build_perfect(points: list[Point]) -> Path:
    """Build an arc, or a line from the first to the last point if the arc is degenerate."""
    if len(points) != 3:
        # The game itself draws these as Bézier curves.
        logger.debug("perfect slider with %d points, using a Bézier curve", len(points))
        return build_bezier(points)
    a, b, c = points
    arc = build_arc(a, b, c)
    if arc is None:
        logger.debug("degenerate perfect arc slider, turning it into a line")
        return Path((LinearSegment(a, c),))
    return Path((arc,))


def build_catmull(points: list[Point]) -> Path:
    return Path((CatmullSegment(tuple(points)),))


_BUILDERS = {
    LINEAR_PATH: build_linear,
    PERFECT_PATH: build_perfect,
    BEZIER_PATH: build_bezier,
    CATMULL_PATH: build_catmull,
}


def parse_path(head: Point, text: str) -> Path:
    """Parse ``B|460:188|408:240|408:240|416:280`` for a slider starting at *head*."""
    curve_type, sep, rest = text.strip().partition("|")
    if not sep or not rest:
        raise FieldError(f"slider path without points: {text!r}")
    builder = _BUILDERS.get(curve_type)
    if builder is None:
        raise FieldError(f"unknown slider type {curve_type!r}")
    points = [head] + [parse_point(p) for p in rest.split("|")]
    return builder(points)
