"""Raster drawing helpers working in place on numpy images."""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence

import numpy as np


def _bgr(r: int, g: int, b: int) -> tuple[int, int, int]:
    return (b, g, r)


_PALETTE_SIZE = 20
_PALETTE = (
    _bgr(244, 238, 203),
    _bgr(247, 198, 234),
    _bgr(247, 189, 65),
    _bgr(247, 70, 195),
    _bgr(110, 59, 103),
    _bgr(157, 33, 33),
    _bgr(44, 24, 25),
    _bgr(237, 195, 147),
    _bgr(205, 141, 113),
    _bgr(236, 217, 187),
    _bgr(160, 173, 147),
    _bgr(5, 5, 5),
    _bgr(34, 33, 41),
    _bgr(238, 237, 247),
    _bgr(78, 78, 87),
    _bgr(136, 184, 240),
    _bgr(72, 120, 248),
    _bgr(8, 72, 192),
    _bgr(72, 72, 80),
    _bgr(232, 112, 40),
    _bgr(234, 230, 203),
    _bgr(252, 77, 108),
    _bgr(255, 184, 178),
    _bgr(107, 150, 96),
    _bgr(53, 109, 72),
)


def palette_color(index: int) -> tuple[int, int, int]:
    """Return a BGR color from the fixed palette, cycling over its first twenty entries."""
    return _PALETTE[index % _PALETTE_SIZE]


def _to_pixel(point: Sequence[float]) -> tuple[int, int]:
    x, y = point
    return round(float(x)), round(float(y))


def _set_pixel(image: np.ndarray, x: int, y: int, color) -> None:
    height, width = image.shape[:2]
    if 0 <= x < width and 0 <= y < height:
        if image.ndim == 2:
            image[y, x] = np.ravel(color)[0]
        else:
            image[y, x] = color


def _line_pixels(x0: int, y0: int, x1: int, y1: int) -> Iterator[tuple[int, int]]:
    dx = abs(x1 - x0)
    dy = -abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx + dy
    while True:
        yield x0, y0
        if x0 == x1 and y0 == y1:
            return
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x0 += sx
        if e2 <= dx:
            err += dx
            y0 += sy


def draw_line(image: np.ndarray, start: Sequence[float], end: Sequence[float], color) -> None:
    """Draw a one-pixel line; parts outside the image are clipped."""
    x0, y0 = _to_pixel(start)
    x1, y1 = _to_pixel(end)
    for x, y in _line_pixels(x0, y0, x1, y1):
        _set_pixel(image, x, y, color)


def draw_hull(image: np.ndarray, hull_points: Sequence[Sequence[float]], color) -> None:
    """Connect consecutive points and close the loop back to the first one."""
    points = [_to_pixel(p) for p in hull_points]
    if not points:
        raise ValueError("cannot draw a hull without points")
    for start, end in zip(points, points[1:] + points[:1]):
        draw_line(image, start, end, color)


def draw_rotated_rect(image: np.ndarray, rect, color) -> None:
    """Draw the outline of a rotated rectangle."""
    corners = [_to_pixel(p) for p in rect.box_points()]
    previous = corners[-1]
    for corner in corners:
        draw_line(image, previous, corner, color)
        previous = corner


def polylines(
    image: np.ndarray,
    contours: Iterable[Sequence[Sequence[float]]],
    closed: bool,
    color,
) -> None:
    """Draw each contour as a chain of lines, closing it when ``closed`` is true."""
    for contour in contours:
        points = [_to_pixel(p) for p in contour]
        if not points:
            continue
        if len(points) == 1:
            _set_pixel(image, *points[0], color)
            continue
        for start, end in zip(points, points[1:]):
            draw_line(image, start, end, color)
        if closed:
            draw_line(image, points[-1], points[0], color)


def draw_circle(image: np.ndarray, center: Sequence[float], radius: int, color) -> None:
    """Draw a circle outline of the given radius."""
    if radius < 0:
        raise ValueError("radius must not be negative")
    cx, cy = _to_pixel(center)
    x, y = int(radius), 0
    err = 1 - x
    while x >= y:
        for px, py in {
            (x, y), (y, x), (-y, x), (-x, y),
            (-x, -y), (-y, -x), (y, -x), (x, -y),
        }:
            _set_pixel(image, cx + px, cy + py, color)
        y += 1
        if err < 0:
            err += 2 * y + 1
        else:
            x -= 1
            err += 2 * (y - x) + 1