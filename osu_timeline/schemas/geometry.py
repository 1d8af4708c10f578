"""Slider path geometry.

A slider path is an ordered list of segments. Each segment is evaluated in its
own *t*-coordinates (0 at its first control point, 1 at its last), and carries
a length weight. The path maps its global [0, 1] range onto the segments in
proportion to these weights, so that ``position(0)`` is the first control point
and ``position(1)`` the last one. :meth:`Path.normalized` derives the path a
slider actually follows, cut or extended to its declared pixel length.

Segment kinds:
  - LinearSegment: two points.
  - ArcSegment: circle arc through three points (osu! "perfect" curve).
  - BezierSegment: Bézier curve of degree up to 7.
  - CatmullSegment: legacy curve type, kept only as a placeholder.
"""

from __future__ import annotations

import bisect
import logging
import math
from dataclasses import dataclass, field

import numpy as np

logger = logging.getLogger(__name__)

# Values under this are treated as zero for arc reconstruction.
EPSILON = 0.001

MAX_BEZIER_DEGREE = 7

# Points sampled along a Bézier curve to measure its length.
BEZIER_STEPS = 64

# BINOMIALS[n][k] == C(n, k) for n <= MAX_BEZIER_DEGREE.
BINOMIALS = [
    [math.comb(n, k) for k in range(n + 1)]
    for n in range(MAX_BEZIER_DEGREE + 1)
]


class UnsupportedCurveError(Exception):
    """Raised when evaluating a curve type that has no evaluator."""


@dataclass(frozen=True, slots=True)
class Point:
    """A point or vector in osu!pixels, (0, 0) top-left to (512, 384)."""

    x: float
    y: float

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def __mul__(self, k: float) -> Point:
        return Point(self.x * k, self.y * k)

    __rmul__ = __mul__

    def __truediv__(self, k: float) -> Point:
        return Point(self.x / k, self.y / k)

    def __neg__(self) -> Point:
        return Point(-self.x, -self.y)

    def __abs__(self) -> float:
        return math.hypot(self.x, self.y)

    def dot(self, other: Point) -> float:
        return self.x * other.x + self.y * other.y

    def cross(self, other: Point) -> float:
        return self.x * other.y - self.y * other.x

    def normalized(self) -> Point:
        """Unit vector in the same direction, or the zero vector."""
        norm = abs(self)
        if norm == 0.0:
            return Point(0.0, 0.0)
        return self / norm


ORIGIN = Point(0.0, 0.0)


def polygon_length(points: tuple[Point, ...]) -> float:
    """Sum of the distances between consecutive points."""
    return sum(abs(b - a) for a, b in zip(points, points[1:]))


def _extend_box(p: Point, box: tuple[Point, Point]) -> tuple[Point, Point]:
    top_left, bottom_right = box
    return (
        Point(min(top_left.x, p.x), min(top_left.y, p.y)),
        Point(max(bottom_right.x, p.x), max(bottom_right.y, p.y)),
    )


# --- Segments ----------------------------------------------------------------


@dataclass(frozen=True)
class LinearSegment:
    start: Point
    end: Point
    length: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "length", abs(self.end - self.start))

    @property
    def first(self) -> Point:
        return self.start

    @property
    def last(self) -> Point:
        return self.end

    def position(self, t: float) -> Point:
        if t <= 0.0:
            return self.start
        if t >= 1.0:
            return self.end
        return self.start * (1.0 - t) + self.end * t

    def derivative(self, t: float) -> Point:
        return (self.end - self.start).normalized()

    def cut(self, distance: float) -> LinearSegment:
        """Same direction, *distance* pixels long. Longer than the segment extends it."""
        return LinearSegment(self.start, self.start + (self.end - self.start).normalized() * distance)

    def bounding_box(self) -> tuple[Point, Point]:
        return _extend_box(self.end, (self.start, self.start))


@dataclass(frozen=True)
class ArcSegment:
    """Arc of the circle circumscribed to *start*, *middle* and *end*.

    The angles are chosen so that interpolating linearly from
    ``start_angle`` to ``end_angle`` sweeps through *middle*.
    Build it with :func:`build_arc`.
    """

    start: Point
    middle: Point
    end: Point
    center: Point
    radius: float
    start_angle: float
    end_angle: float
    length: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "length", self.radius * abs(self.end_angle - self.start_angle)
        )

    @property
    def first(self) -> Point:
        return self.start

    @property
    def last(self) -> Point:
        return self.end

    def _angle(self, t: float) -> float:
        return (1.0 - t) * self.start_angle + t * self.end_angle

    def position(self, t: float) -> Point:
        # The endpoints are the declared control points, not their
        # reconstruction from the circle.
        if t <= 0.0:
            return self.start
        if t >= 1.0:
            return self.end
        angle = self._angle(t)
        return self.center + Point(math.cos(angle), math.sin(angle)) * self.radius

    def derivative(self, t: float) -> Point:
        angle = self._angle(t)
        sweep = self.end_angle - self.start_angle
        # d/dt of center + r * e^(i*angle) is r * sweep * i * e^(i*angle)
        tangent = Point(-math.sin(angle), math.cos(angle)) * (self.radius * sweep)
        return tangent.normalized()

    def cut(self, distance: float) -> ArcSegment:
        """Arc of the same circle from *start*, sweeping *distance* pixels.

        The sweep keeps its direction and may go past the original end.
        """
        sweep = math.copysign(distance / self.radius, self.end_angle - self.start_angle)

        def polar(angle: float) -> Point:
            return self.center + Point(math.cos(angle), math.sin(angle)) * self.radius

        return ArcSegment(
            start=self.start,
            middle=polar(self.start_angle + sweep / 2.0),
            end=polar(self.start_angle + sweep),
            center=self.center,
            radius=self.radius,
            start_angle=self.start_angle,
            end_angle=self.start_angle + sweep,
        )

    def bounding_box(self) -> tuple[Point, Point]:
        """Box around the endpoints and every extreme side of the circle the arc reaches."""
        low = min(self.start_angle, self.end_angle)
        high = max(self.start_angle, self.end_angle)
        shift = math.floor(low / (2.0 * math.pi)) * 2.0 * math.pi
        low -= shift
        high -= shift

        box = _extend_box(self.end, (self.start, self.start))
        for quarter in range(1, 8):
            angle = quarter * math.pi / 2.0
            if low < angle < high:
                side = self.center + Point(math.cos(angle), math.sin(angle)) * self.radius
                box = _extend_box(side, box)
        return box


@dataclass(frozen=True)
class BezierSegment:
    """Bézier curve evaluated with the explicit Bernstein sum."""

    control_points: tuple[Point, ...]
    length: float = field(init=False)

    def __post_init__(self) -> None:
        if not self.control_points:
            raise ValueError("a Bézier segment needs at least one control point")
        if self.degree > MAX_BEZIER_DEGREE:
            raise ValueError(
                f"Bézier degree {self.degree} exceeds {MAX_BEZIER_DEGREE}"
            )
        object.__setattr__(self, "length", polygon_length(self.control_points))

    @property
    def degree(self) -> int:
        return len(self.control_points) - 1

    @property
    def first(self) -> Point:
        return self.control_points[0]

    @property
    def last(self) -> Point:
        return self.control_points[-1]

    def position(self, t: float) -> Point:
        if t <= 0.0:
            return self.first
        if t >= 1.0:
            return self.last
        n = self.degree
        x = y = 0.0
        for i, p in enumerate(self.control_points):
            factor = BINOMIALS[n][i] * t ** i * (1.0 - t) ** (n - i)
            x += factor * p.x
            y += factor * p.y
        return Point(x, y)

    def derivative(self, t: float) -> Point:
        n = self.degree
        if n == 0:
            return ORIGIN
        t = min(max(t, 0.0), 1.0)
        x = y = 0.0
        points = self.control_points
        for i in range(n):
            factor = BINOMIALS[n - 1][i] * t ** i * (1.0 - t) ** (n - 1 - i)
            delta = points[i + 1] - points[i]
            x += factor * delta.x
            y += factor * delta.y
        return (Point(x, y) * n).normalized()

    def arc_lengths(self, steps: int = BEZIER_STEPS) -> list[float]:
        """Distance travelled along the curve at ``t = i / steps``, for each i."""
        lengths = [0.0]
        previous = self.first
        for i in range(1, steps + 1):
            current = self.position(i / steps)
            lengths.append(lengths[-1] + abs(current - previous))
            previous = current
        return lengths

    def cut(self, distance: float) -> BezierSegment:
        """Head of the curve covering *distance* pixels, as a new Bézier curve.

        The split parameter is interpolated from the sampled arc lengths, and
        the head's control points come from de Casteljau's construction.
        """
        lengths = self.arc_lengths()
        if distance >= lengths[-1]:
            return self
        if distance <= 0.0:
            return BezierSegment((self.first,))
        i = bisect.bisect_right(lengths, distance) - 1
        span = lengths[i + 1] - lengths[i]
        k = (distance - lengths[i]) / span if span > 0.0 else 0.0
        t = (i + k) / (len(lengths) - 1)

        head = [self.first]
        points = list(self.control_points)
        while len(points) > 1:
            points = [a * (1.0 - t) + b * t for a, b in zip(points, points[1:])]
            head.append(points[0])
        return BezierSegment(tuple(head))

    def bounding_box(self) -> tuple[Point, Point]:
        # Every point of a Bézier curve lies in the hull of its control points.
        box = (self.first, self.first)
        for p in self.control_points[1:]:
            box = _extend_box(p, box)
        return box


@dataclass(frozen=True)
class CatmullSegment:
    """Catmull-Rom curve.

    The curve type is deprecated in the format and no evaluator is provided:
    querying a position or a derivative raises :class:`UnsupportedCurveError`.
    """

    control_points: tuple[Point, ...]
    length: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "length", polygon_length(self.control_points))

    @property
    def first(self) -> Point:
        return self.control_points[0]

    @property
    def last(self) -> Point:
        return self.control_points[-1]

    def position(self, t: float) -> Point:
        raise UnsupportedCurveError("Catmull curves are not supported")

    def derivative(self, t: float) -> Point:
        raise UnsupportedCurveError("Catmull curves are not supported")

    def cut(self, distance: float) -> CatmullSegment:
        raise UnsupportedCurveError("Catmull curves are not supported")

    def bounding_box(self) -> tuple[Point, Point]:
        raise UnsupportedCurveError("Catmull curves are not supported")


Segment = LinearSegment | ArcSegment | BezierSegment | CatmullSegment


def arc_center(a: Point, b: Point, c: Point) -> Point | None:
    """Center of the circle through *a*, *b* and *c*, or None if they are aligned.

    Barycentric form of the circumcenter: each point is weighted by the
    squared length of the opposite side times its excess.
    """
    a2 = (b - c).dot(b - c)
    b2 = (a - c).dot(a - c)
    c2 = (a - b).dot(a - b)
    if a2 < EPSILON or b2 < EPSILON or c2 < EPSILON:
        return None

    s = a2 * (b2 + c2 - a2)
    t = b2 * (a2 + c2 - b2)
    u = c2 * (a2 + b2 - c2)
    total = s + t + u
    if abs(total) < EPSILON:
        return None
    return (a * s + b * t + c * u) / total


def build_arc(a: Point, b: Point, c: Point) -> ArcSegment | None:
    """Build the arc starting at *a*, passing through *b*, ending at *c*.

    Returns None for degenerate (collinear or coincident) points.
    """
    center = arc_center(a, b, c)
    if center is None:
        return None

    radius = abs(a - center)
    start_angle = math.atan2(a.y - center.y, a.x - center.x)
    end_angle = math.atan2(c.y - center.y, c.x - center.x)
    cross = (c - a).cross(b - a)
    if cross < 0 and start_angle > end_angle:
        end_angle += 2.0 * math.pi
    elif cross > 0 and start_angle < end_angle:
        end_angle -= 2.0 * math.pi
    return ArcSegment(
        start=a,
        middle=b,
        end=c,
        center=center,
        radius=radius,
        start_angle=start_angle,
        end_angle=end_angle,
    )


def _curve_length(segment: Segment) -> float:
    """Length of the drawn curve, which for Bézier curves is shorter than its weight."""
    if isinstance(segment, BezierSegment):
        return segment.arc_lengths()[-1]
    return segment.length


# --- Path --------------------------------------------------------------------


@dataclass(frozen=True)
class Path:
    """Sequence of segments forming one slider curve."""

    segments: tuple[Segment, ...]
    length: float = field(init=False)

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError("a path needs at least one segment")
        object.__setattr__(self, "length", sum(s.length for s in self.segments))

    @property
    def first(self) -> Point:
        return self.segments[0].first

    @property
    def last(self) -> Point:
        return self.segments[-1].last

    def _locate(self, t: float) -> tuple[Segment, float]:
        """Find the segment covering path coordinate *t* and the local coordinate in it."""
        if t <= 0.0 or self.length <= 0.0:
            return self.segments[0], 0.0
        if t >= 1.0:
            return self.segments[-1], 1.0

        offset = t * self.length
        start = 0.0
        last_index = len(self.segments) - 1
        for i, segment in enumerate(self.segments):
            end = start + segment.length
            if offset < end or i == last_index:
                if segment.length <= 0.0:
                    return segment, 0.0
                local = (offset - start) / segment.length
                return segment, min(max(local, 0.0), 1.0)
            start = end
        raise AssertionError("unreachable")

    def position(self, t: float) -> Point:
        """Point at arc-length fraction *t* in [0, 1]."""
        segment, local = self._locate(t)
        return segment.position(local)

    def derivative(self, t: float) -> Point:
        """Unit tangent at arc-length fraction *t* in [0, 1]."""
        segment, local = self._locate(t)
        return segment.derivative(local)

    def at(self, progress: float) -> Point:
        """Point for a slider progress over any number of passes.

        Progress 0 is the head, 1 the tail, 2 back at the head, and so on.
        """
        return self.position(abs(math.remainder(progress, 2.0)))

    def tangent_at(self, progress: float) -> Point:
        """Direction of motion for a slider progress; reversed on return passes."""
        folded = math.remainder(progress, 2.0)
        tangent = self.derivative(abs(folded))
        return -tangent if folded < 0 else tangent

    def normalized(self, target_length: float) -> Path:
        """Path starting like this one and exactly *target_length* pixels long.

        Sliders declare their length in pixels, and the curve drawn from the
        control points is usually a bit longer or shorter. Segments past the
        target are dropped and the last one kept is cut where the target is
        reached. A short path is extended: lines and arcs are prolonged, and
        any other curve gets a straight tail along its end tangent.
        """
        if target_length <= 0.0 or self.length <= 0.0:
            return self

        kept: list[Segment] = []
        travelled = 0.0
        for segment in self.segments:
            length = _curve_length(segment)
            if travelled + length >= target_length:
                kept.append(segment.cut(target_length - travelled))
                return Path(tuple(kept))
            kept.append(segment)
            travelled += length

        missing = target_length - travelled
        tail = self.segments[-1]
        if isinstance(tail, (LinearSegment, ArcSegment)) and tail.length > 0.0:
            return Path(self.segments[:-1] + (tail.cut(tail.length + missing),))
        direction = tail.derivative(1.0)
        if direction == ORIGIN:
            logger.warning("cannot extend a path whose end is stationary")
            return self
        logger.debug("extending the path by %f pixels", missing)
        return Path(self.segments + (LinearSegment(tail.last, tail.last + direction * missing),))

    def bounding_box(self) -> tuple[Point, Point]:
        """Top-left and bottom-right corners of a box containing the whole path."""
        box = self.segments[0].bounding_box()
        for segment in self.segments[1:]:
            top_left, bottom_right = segment.bounding_box()
            box = _extend_box(bottom_right, _extend_box(top_left, box))
        return box

    def sample(self, count: int = 32) -> np.ndarray:
        """Evenly spaced points along the path as a ``(count, 2)`` array."""
        if count < 2:
            raise ValueError("need at least 2 samples")
        out = np.empty((count, 2), dtype=np.float64)
        for i, t in enumerate(np.linspace(0.0, 1.0, count)):
            p = self.position(float(t))
            out[i] = (p.x, p.y)
        return out
