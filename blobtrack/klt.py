"""Point tracking between two frames with pyramidal Lucas-Kanade optical flow."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np
from scipy import ndimage

from blobtrack.geometry import KeyPoint

Point = tuple[float, float]

_DEFAULT_WINDOW = 15
_DEFAULT_MAX_LEVEL = 3
_MAX_ITERATIONS = 30
_EPSILON = 0.01
_MIN_EIGEN = 1e-4
_PYRAMID_KERNEL = np.array([1.0, 4.0, 6.0, 4.0, 1.0]) / 16.0
_BGR_WEIGHTS = np.array([0.114, 0.587, 0.299])


class UnsupportedOperationError(NotImplementedError):
    """Raised when a matcher is asked for an operation it does not offer."""

    def __init__(self, operation: str, alternative: str):
        self.operation = operation
        self.alternative = alternative
        super().__init__(
            f"This matcher doesn't support {operation}. Use {alternative} instead."
        )


def _gray(image) -> np.ndarray:
    array = np.asarray(image, dtype=np.float64)
    if array.ndim == 3:
        if array.shape[2] == 1:
            array = array[..., 0]
        elif array.shape[2] >= 3:
            array = array[..., :3] @ _BGR_WEIGHTS
        else:
            raise ValueError("image must have one or three channels")
    if array.ndim != 2:
        raise ValueError("image must be two-dimensional")
    return array


def _pyr_down(image: np.ndarray) -> np.ndarray:
    blurred = ndimage.convolve1d(image, _PYRAMID_KERNEL, axis=0, mode="reflect")
    blurred = ndimage.convolve1d(blurred, _PYRAMID_KERNEL, axis=1, mode="reflect")
    return blurred[::2, ::2]


def _pyramid(image: np.ndarray, levels: int) -> list[np.ndarray]:
    pyramid = [image]
    for _ in range(levels - 1):
        pyramid.append(_pyr_down(pyramid[-1]))
    return pyramid


def _level_count(shape: tuple[int, int], window_size: int, max_level: int) -> int:
    levels = 1
    height, width = shape
    while levels <= max_level:
        height, width = (height + 1) // 2, (width + 1) // 2
        if min(height, width) < window_size:
            break
        levels += 1
    return levels


def _sample(image: np.ndarray, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    return ndimage.map_coordinates(image, [ys, xs], order=1, mode="nearest")


def _as_point(point) -> Point:
    if isinstance(point, KeyPoint):
        point = point.pt
    x, y = point
    return float(x), float(y)


def calc_optical_flow_pyr_lk(
    prev_image,
    next_image,
    points: Iterable,
    window_size: int = _DEFAULT_WINDOW,
    max_level: int = _DEFAULT_MAX_LEVEL,
) -> tuple[list[Point], list[bool], list[float]]:
    """Find where each point of ``prev_image`` moved to in ``next_image``.

    Returns the new positions, a found flag per point and the mean absolute
    intensity difference over the window at the found position.  Points that
    are lost keep their old position and get an error of NaN.
    """
    if window_size < 3:
        raise ValueError("window size must be at least 3")
    if max_level < 0:
        raise ValueError("max level must not be negative")
    prev = _gray(prev_image)
    nxt = _gray(next_image)
    if prev.shape != nxt.shape:
        raise ValueError("images must have the same size")

    levels = _level_count(prev.shape, window_size, max_level)
    prev_pyr = _pyramid(prev, levels)
    next_pyr = _pyramid(nxt, levels)
    gradients = [
        (ndimage.sobel(level, axis=1) / 8.0, ndimage.sobel(level, axis=0) / 8.0)
        for level in prev_pyr
    ]

    half = window_size // 2
    offsets = np.arange(-half, half + 1, dtype=np.float64)
    oy, ox = np.meshgrid(offsets, offsets, indexing="ij")
    ox, oy = ox.ravel(), oy.ravel()
    area = ox.size
    height, width = prev.shape

    found_points: list[Point] = []
    statuses: list[bool] = []
    errors: list[float] = []

    for point in points:
        start = np.array(_as_point(point))
        result = _track_point(
            start, prev_pyr, next_pyr, gradients, ox, oy, area, (height, width)
        )
        if result is None:
            found_points.append((float(start[0]), float(start[1])))
            statuses.append(False)
            errors.append(math.nan)
        else:
            position, error = result
            found_points.append(position)
            statuses.append(True)
            errors.append(error)

    return found_points, statuses, errors


def _track_point(start, prev_pyr, next_pyr, gradients, ox, oy, area, shape):
    height, width = shape
    if not (0 <= start[0] <= width - 1 and 0 <= start[1] <= height - 1):
        return None

    guess = np.zeros(2)
    for level in reversed(range(len(prev_pyr))):
        prev, nxt = prev_pyr[level], next_pyr[level]
        grad_x, grad_y = gradients[level]
        p = start / (2 ** level)
        xs, ys = p[0] + ox, p[1] + oy

        template = _sample(prev, xs, ys)
        gx = _sample(grad_x, xs, ys)
        gy = _sample(grad_y, xs, ys)

        gxx, gxy, gyy = gx @ gx, gx @ gy, gy @ gy
        min_eigen = (gxx + gyy - math.sqrt((gxx - gyy) ** 2 + 4 * gxy * gxy)) / 2
        determinant = gxx * gyy - gxy * gxy
        if min_eigen / area < _MIN_EIGEN or determinant <= 0:
            return None

        flow = np.zeros(2)
        for _ in range(_MAX_ITERATIONS):
            moved = _sample(nxt, xs + guess[0] + flow[0], ys + guess[1] + flow[1])
            diff = template - moved
            bx, by = diff @ gx, diff @ gy
            eta = np.array(
                [gyy * bx - gxy * by, gxx * by - gxy * bx]
            ) / determinant
            flow += eta
            if math.hypot(*eta) < _EPSILON:
                break

        if level > 0:
            guess = 2 * (guess + flow)
        else:
            final = p + guess + flow

    fx, fy = float(final[0]), float(final[1])
    if not (0 <= fx <= width - 1 and 0 <= fy <= height - 1):
        return None
    diff = _sample(prev_pyr[0], start[0] + ox, start[1] + oy) - _sample(
        next_pyr[0], fx + ox, fy + oy
    )
    return (fx, fy), float(np.mean(np.abs(diff)))


class KLTTracker:
    """Remember points in one image and search for them in the next one."""

    def __init__(
        self, window_size: int = _DEFAULT_WINDOW, max_level: int = _DEFAULT_MAX_LEVEL
    ):
        self.window_size = window_size
        self.max_level = max_level
        self._source_image: np.ndarray | None = None
        self._source_points: list[Point] = []

    @property
    def source_points(self) -> list[Point]:
        return list(self._source_points)

    def add(self, image, points: Iterable) -> None:
        """Keep the image and the points (keypoints or (x, y) pairs) for the next search."""
        self._source_image = np.asarray(image)
        self._source_points = [_as_point(p) for p in points]

    def classify(self, image, points: Sequence) -> None:
        """Refuse: this tracker only supports searching."""
        raise UnsupportedOperationError("classifying", "searching")

    def match(self, image, points: Sequence) -> list[int]:
        """Refuse: this tracker only supports searching."""
        raise UnsupportedOperationError("matching", "searching")

    def search(self, test_image) -> tuple[list[Point], list[int]]:
        """Return where the stored points were found and the index of each found point.

        Nothing is returned before an image has been added.
        """
        if self._source_image is None or self._source_image.size == 0:
            return [], []

        positions, statuses, _ = calc_optical_flow_pyr_lk(
            self._source_image,
            test_image,
            self._source_points,
            self.window_size,
            self.max_level,
        )
        found = [pos for pos, ok in zip(positions, statuses) if ok]
        indices = [index for index, ok in enumerate(statuses) if ok]
        return found, indices