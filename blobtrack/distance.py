"""Histogram distances and ways of combining them over several descriptors.

A descriptor is a numpy array.  Arrays of one or two dimensions are rows of
a single channel.  A descriptor with several channels is given as a list or
tuple holding one such array per channel.  Arrays of three or more dimensions
are N-dimensional histograms and are compared as a whole.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Sequence

import numpy as np

logger = logging.getLogger(__name__)

Distance = Callable[[np.ndarray, np.ndarray], float]


def _row(descriptor) -> np.ndarray:
    return np.atleast_2d(np.asarray(descriptor, dtype=np.float64))[0]


def bhattacharyya_distance(descriptor1, descriptor2) -> float:
    """Return the Bhattacharyya distance between two histograms of equal mass.

    Each histogram is the first row of its descriptor.  The histograms must
    have the same number of bins and totals that round to the same integer.
    """
    hist1 = _row(descriptor1)
    hist2 = _row(descriptor2)
    if hist1.size != hist2.size:
        raise ValueError(
            f"histograms have different numbers of bins: {hist1.size} and {hist2.size}"
        )

    coefficient = float(np.sqrt(hist1 * hist2).sum())
    total = math.floor(float(hist1.sum()) + 0.5)
    if total != math.floor(float(hist2.sum()) + 0.5):
        raise ValueError("histograms must have the same total mass")

    # Rounding can push the coefficient slightly past the total mass.
    coefficient = min(coefficient, total)
    return math.sqrt(total - coefficient)


def _channel_planes(descriptor) -> list[np.ndarray] | None:
    """Split a descriptor into its channels, or return None for an N-d histogram."""
    if isinstance(descriptor, (list, tuple)):
        return [np.asarray(plane, dtype=np.float64) for plane in descriptor]
    array = np.asarray(descriptor, dtype=np.float64)
    if array.ndim >= 3:
        return None
    return [array]


def _paired(descriptors1: Sequence, descriptors2: Sequence) -> tuple[list, list]:
    parts1 = list(descriptors1)
    parts2 = list(descriptors2)
    if len(parts1) != len(parts2):
        raise ValueError(
            f"descriptor lists differ in length: {len(parts1)} and {len(parts2)}"
        )
    if not parts1:
        raise ValueError("at least one descriptor is required")
    return parts1, parts2


def _planes_of(parts: list, channels: int) -> list[list[np.ndarray]]:
    planes = [_channel_planes(part) for part in parts]
    if any(p is None or len(p) != channels for p in planes):
        raise ValueError("all descriptors must have the same number of channels")
    return planes


def _channel_count(first) -> int:
    planes = _channel_planes(first)
    if planes is None:
        raise ValueError("cannot mix N-dimensional and channel descriptors")
    if not planes:
        raise ValueError("a descriptor needs at least one channel")
    return len(planes)


class RegionDistance:
    """Average a distance over the parts of a region and over their channels."""

    def __init__(self, distance: Distance):
        self.distance = distance

    def __call__(self, descriptors1: Sequence, descriptors2: Sequence) -> float:
        parts1, parts2 = _paired(descriptors1, descriptors2)

        if _channel_planes(parts1[0]) is None:
            part_distances = [
                float(self.distance(np.asarray(a), np.asarray(b)))
                for a, b in zip(parts1, parts2)
            ]
            for number, value in enumerate(part_distances, start=1):
                logger.debug("part %d: %.3f", number, value)
            return sum(part_distances) / len(part_distances)

        channels = _channel_count(parts1[0])
        planes1 = _planes_of(parts1, channels)
        planes2 = _planes_of(parts2, channels)

        per_channel = [
            sum(float(self.distance(a, b)) for a, b in zip(side1, side2)) / len(parts1)
            for side1, side2 in zip(zip(*planes1), zip(*planes2))
        ]
        logger.debug("per-channel distances: %s", per_channel)
        return sum(per_channel) / channels


class GlobalDistance:
    """Join the parts of a region side by side and measure one distance over the whole."""

    def __init__(self, distance: Distance):
        self.distance = distance

    def __call__(self, descriptors1: Sequence, descriptors2: Sequence) -> float:
        parts1, parts2 = _paired(descriptors1, descriptors2)

        if _channel_planes(parts1[0]) is None:
            return self._histograms(parts1, parts2)

        channels = _channel_count(parts1[0])
        planes1 = _planes_of(parts1, channels)
        planes2 = _planes_of(parts2, channels)

        columns = np.atleast_2d(planes1[0][0]).shape[-1]
        if any(
            np.atleast_2d(plane).shape[-1] != columns
            for planes in planes1 + planes2
            for plane in planes
        ):
            raise ValueError("all descriptors must have the same number of columns")

        joined1 = [
            np.concatenate([np.atleast_2d(p) for p in channel], axis=1)
            for channel in zip(*planes1)
        ]
        joined2 = [
            np.concatenate([np.atleast_2d(p) for p in channel], axis=1)
            for channel in zip(*planes2)
        ]
        total = sum(float(self.distance(a, b)) for a, b in zip(joined1, joined2))
        return total / channels

    def _histograms(self, parts1: list, parts2: list) -> float:
        arrays1 = [np.asarray(a, dtype=np.float64) for a in parts1]
        arrays2 = [np.asarray(b, dtype=np.float64) for b in parts2]
        shape = arrays1[0].shape
        if len(shape) != 3:
            raise ValueError("N-dimensional descriptors must have exactly three dimensions")
        if any(array.shape != shape for array in arrays1 + arrays2):
            raise ValueError("all N-dimensional descriptors must have the same shape")
        joined1 = np.concatenate(arrays1, axis=2)
        joined2 = np.concatenate(arrays2, axis=2)
        return float(self.distance(joined1, joined2))