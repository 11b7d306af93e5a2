"""Planar geometry primitives and the Blob object built on them."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from blobtrack.draw import draw_circle, draw_hull, draw_rotated_rect

Point = tuple[float, float]

_EPS = 1e-9
_HULL_COLOR = (0, 0, 255)  # red, BGR order
_CENTER_COLOR = (255, 0, 0)  # blue, BGR order
_DEFAULT_BLOB_COLOR = (0, 255, 0)


@dataclass(frozen=True)
class Rect:
    """An upright integer rectangle; the right and bottom edges are exclusive."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    def contains(self, point: Sequence[float]) -> bool:
        px, py = point
        return (
            self.x <= px < self.x + self.width
            and self.y <= py < self.y + self.height
        )


@dataclass(frozen=True)
class RotatedRect:
    """A rectangle of ``size`` (width, height) turned by ``angle`` degrees about ``center``."""

    center: Point = (0.0, 0.0)
    size: tuple[float, float] = (0.0, 0.0)
    angle: float = 0.0

    def box_points(self) -> list[Point]:
        """Return the four corners in drawing order."""
        theta = math.radians(self.angle)
        b = math.cos(theta) * 0.5
        a = math.sin(theta) * 0.5
        cx, cy = self.center
        width, height = self.size
        p0 = (cx - a * height - b * width, cy + b * height - a * width)
        p1 = (cx + a * height - b * width, cy - b * height - a * width)
        p2 = (2 * cx - p0[0], 2 * cy - p0[1])
        p3 = (2 * cx - p1[0], 2 * cy - p1[1])
        return [p0, p1, p2, p3]

    def bounding_rect(self) -> Rect:
        """Return the smallest upright integer rectangle holding every corner."""
        corners = self.box_points()
        xs = [x for x, _ in corners]
        ys = [y for _, y in corners]
        left = math.floor(min(xs) + _EPS)
        top = math.floor(min(ys) + _EPS)
        right = math.ceil(max(xs) - _EPS)
        bottom = math.ceil(max(ys) - _EPS)
        return Rect(left, top, right - left + 1, bottom - top + 1)

    @property
    def area(self) -> float:
        return self.size[0] * self.size[1]


@dataclass(frozen=True)
class KeyPoint:
    """A point feature with a scale, an orientation and a response strength."""

    pt: Point
    size: float
    angle: float = -1.0
    response: float = 0.0


def _as_points(points: Iterable[Sequence[float]]) -> list[Point]:
    return [(float(x), float(y)) for x, y in points]


def _cross(o: Point, a: Point, b: Point) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(points: Iterable[Sequence[float]]) -> list[Point]:
    """Return the convex hull of the points, without collinear vertices."""
    pts = sorted(set(_as_points(points)))
    if len(pts) <= 2:
        return pts

    lower: list[Point] = []
    for p in pts:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)

    upper: list[Point] = []
    for p in reversed(pts):
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)

    return lower[:-1] + upper[:-1]


def min_area_rect(points: Iterable[Sequence[float]]) -> RotatedRect:
    """Return the rotated rectangle of least area that encloses the points.

    The angle lies in [-90, 0) degrees.
    """
    hull = convex_hull(points)
    if not hull:
        return RotatedRect()
    if len(hull) == 1:
        return RotatedRect(center=hull[0])

    best = None
    for (x0, y0), (x1, y1) in zip(hull, hull[1:] + hull[:1]):
        length = math.hypot(x1 - x0, y1 - y0)
        if length == 0:
            continue
        ux, uy = (x1 - x0) / length, (y1 - y0) / length
        along = [px * ux + py * uy for px, py in hull]
        across = [py * ux - px * uy for px, py in hull]
        width = max(along) - min(along)
        height = max(across) - min(across)
        area = width * height
        if best is None or area < best[0]:
            mid_a = (max(along) + min(along)) / 2
            mid_c = (max(across) + min(across)) / 2
            center = (mid_a * ux - mid_c * uy, mid_a * uy + mid_c * ux)
            best = (area, center, width, height, math.degrees(math.atan2(uy, ux)))

    _, center, width, height, angle = best
    angle = (angle + 90.0) % 180.0 - 90.0
    if angle >= 0:
        angle -= 90.0
        width, height = height, width
    return RotatedRect(center=center, size=(width, height), angle=angle)


def contour_area(points: Iterable[Sequence[float]]) -> float:
    """Return the unsigned area enclosed by the polygon."""
    pts = _as_points(points)
    if len(pts) < 3:
        return 0.0
    twice_area = sum(
        x0 * y1 - x1 * y0 for (x0, y0), (x1, y1) in zip(pts, pts[1:] + pts[:1])
    )
    return abs(twice_area) / 2.0


class Blob:
    """An image region described by its contour."""

    def __init__(self, contour_points: Iterable[Sequence[float]] | None = None):
        self._points = _as_points(() if contour_points is None else contour_points)
        if self._points:
            self._rect = min_area_rect(convex_hull(self._points))
            self._area = contour_area(self._points)
        else:
            self._rect = RotatedRect()
            self._area = 0.0

    @property
    def points(self) -> tuple[Point, ...]:
        return tuple(self._points)

    def area(self) -> float:
        return self._area

    def bounding_rectangle(self) -> RotatedRect:
        return self._rect

    def bounding_upright_rectangle(self) -> Rect:
        return self._rect.bounding_rect()

    def to_keypoint(self) -> KeyPoint:
        """Describe the blob as a keypoint: size is the longer side, response the box area."""
        width, height = self._rect.size
        return KeyPoint(
            pt=self._rect.center,
            size=max(width, height),
            angle=self._rect.angle,
            response=width * height,
        )

    def draw_to(self, image, color=_DEFAULT_BLOB_COLOR) -> None:
        """Draw the contour, the bounding box in ``color`` and the center onto ``image``."""
        if self._points:
            draw_hull(image, self._points, _HULL_COLOR)
        draw_rotated_rect(image, self._rect, color)
        draw_circle(image, self._rect.center, 1, _CENTER_COLOR)

    def __repr__(self) -> str:
        return f"Blob(points={self._points!r})"