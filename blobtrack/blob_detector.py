"""Foreground-mask blob detection."""

from __future__ import annotations

import numpy as np
from scipy import ndimage

from blobtrack.geometry import Blob

_FOREGROUND_THRESHOLD = 128
_SQUARE_3X3 = np.ones((3, 3), dtype=bool)

# Neighbour offsets (dx, dy) in clockwise order on screen, starting east.
_DIRECTIONS = (
    (1, 0), (1, 1), (0, 1), (-1, 1),
    (-1, 0), (-1, -1), (0, -1), (1, -1),
)
_WEST = 4


def _single_channel(image) -> np.ndarray:
    array = np.asarray(image)
    if array.ndim == 3 and array.shape[2] == 1:
        array = array[..., 0]
    if array.ndim != 2:
        raise ValueError("foreground mask must be a single-channel image")
    return array


def _trace_boundary(component: np.ndarray, start: tuple[int, int]) -> list[tuple[int, int]]:
    """Follow the outer boundary of one 8-connected component, clockwise on screen."""
    grid = np.pad(component, 1)
    sx, sy = start[0] + 1, start[1] + 1

    def next_direction(x: int, y: int, search: int) -> int | None:
        for step in range(8):
            direction = (search + step) % 8
            dx, dy = _DIRECTIONS[direction]
            if grid[y + dy, x + dx]:
                return direction
        return None

    first = next_direction(sx, sy, _WEST)
    if first is None:
        return [start]

    path = [(sx, sy)]
    x, y, direction = sx, sy, first
    while True:
        dx, dy = _DIRECTIONS[direction]
        x, y = x + dx, y + dy
        direction = next_direction(x, y, (direction + 6) % 8)
        if (x, y) == (sx, sy) and direction == first:
            break
        path.append((x, y))
    return [(px - 1, py - 1) for px, py in path]


def _compress(path: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Keep only the points where the boundary changes direction."""
    if len(path) < 3:
        return path
    previous = path[-1:] + path[:-1]
    following = path[1:] + path[:1]
    return [
        point
        for before, point, after in zip(previous, path, following)
        if (point[0] - before[0], point[1] - before[1])
        != (after[0] - point[0], after[1] - point[1])
    ]


def find_external_contours(mask) -> list[list[tuple[int, int]]]:
    """Return the outer contours of the nonzero regions of ``mask``.

    Regions that sit inside holes of other regions are not reported.  Each
    contour is a list of (x, y) corner points; straight runs are reduced to
    their end points.  Contours come in raster order of their first pixel.
    """
    foreground = _single_channel(mask) != 0
    filled = ndimage.binary_fill_holes(foreground)
    labels, _ = ndimage.label(filled, structure=_SQUARE_3X3)

    contours = []
    for label, region in enumerate(ndimage.find_objects(labels), start=1):
        if region is None:
            continue
        component = labels[region] == label
        row, col = np.unravel_index(int(np.argmax(component)), component.shape)
        top, left = region[0].start, region[1].start
        path = _trace_boundary(component, (int(col), int(row)))
        contours.append([(x + left, y + top) for x, y in _compress(path)])
    return contours


class BlobDetector:
    """Turn a foreground mask into blobs."""

    def __call__(self, foreground_mask, close_holes: int = 1) -> list[Blob]:
        """Detect blobs where the mask is above 128.

        ``close_holes`` is the number of erosion/dilation passes used to
        remove small spurious regions; 0 disables the cleanup.
        """
        mask = _single_channel(foreground_mask) > _FOREGROUND_THRESHOLD

        if close_holes > 0:
            eroded = ndimage.binary_erosion(
                mask, structure=_SQUARE_3X3, iterations=close_holes, border_value=1
            )
            mask = ndimage.binary_dilation(
                eroded, structure=_SQUARE_3X3, iterations=close_holes
            )

        return [Blob(contour) for contour in find_external_contours(mask)]