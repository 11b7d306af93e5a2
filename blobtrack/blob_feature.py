"""Descriptors for blobs seen as keypoints, and the distance between them."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np

from blobtrack.geometry import KeyPoint, RotatedRect

DESCRIPTOR_SIZE = 6
_COLOR_SCALE = 1.0 / 255


def _color_image(image) -> np.ndarray:
    pixels = np.asarray(image)
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError("image must have exactly three channels")
    return pixels


class BlobDescriptorExtractor:
    """Describe blobs by mean color, location and share of the total blob size.

    Each descriptor row holds: three color channels, x, y and the keypoint's
    response divided by the sum of all keypoint sizes.
    """

    def blob_mean_color(self, image, keypoint: KeyPoint) -> np.ndarray:
        """Return the mean color (3 float32 values) of the pixels covered by the keypoint.

        If no pixel falls inside the keypoint square the result is all NaN.
        """
        pixels = _color_image(image)
        box = RotatedRect(
            center=keypoint.pt,
            size=(keypoint.size, keypoint.size),
            angle=keypoint.angle,
        ).bounding_rect()

        half = int(keypoint.size / 2)
        left = int(keypoint.pt[0] - half)
        top = int(keypoint.pt[1] - half)
        side = int(keypoint.size)

        theta = math.radians(keypoint.angle)
        alpha = np.float32(math.cos(theta))
        beta = np.float32(math.sin(theta))

        rows, cols = np.meshgrid(
            np.arange(box.height, dtype=np.float32),
            np.arange(box.width, dtype=np.float32),
            indexing="ij",
        )
        rotated_x = np.trunc(alpha * cols + beta * rows)
        rotated_y = np.trunc(-beta * cols + alpha * rows)
        inside = (
            (left <= rotated_x)
            & (rotated_x < left + side)
            & (top <= rotated_y)
            & (rotated_y < top + side)
        )

        count = int(inside.sum())
        if count == 0:
            return np.full(3, np.nan, dtype=np.float32)

        # The scan row picks the image column and the scan column the image row.
        sample_rows = cols[inside].astype(np.intp)
        sample_cols = rows[inside].astype(np.intp)
        height, width = pixels.shape[:2]
        if sample_rows.max() >= height or sample_cols.max() >= width:
            raise ValueError("blob region reaches outside the image")

        total = pixels[sample_rows, sample_cols].astype(np.float64).sum(axis=0)
        return (total * (1.0 / count)).astype(np.float32)

    def compute(self, image, keypoints: Iterable[KeyPoint]) -> np.ndarray:
        """Return an (N, 6) float32 array with one descriptor row per keypoint."""
        pixels = _color_image(image)
        keypoints = list(keypoints)
        size_sum = np.float32(sum(kp.size for kp in keypoints))

        descriptors = np.empty((len(keypoints), DESCRIPTOR_SIZE), dtype=np.float32)
        with np.errstate(divide="ignore", invalid="ignore"):
            for row, keypoint in zip(descriptors, keypoints):
                row[0:3] = self.blob_mean_color(pixels, keypoint)
                row[3], row[4] = keypoint.pt
                row[5] = np.float32(keypoint.response) / size_sum
        return descriptors


def blob_distance(feature1: Sequence[float], feature2: Sequence[float]) -> float:
    """Return the signed, roughly normalised difference between two blob descriptors."""
    f1 = np.ravel(np.asarray(feature1, dtype=np.float64))
    f2 = np.ravel(np.asarray(feature2, dtype=np.float64))
    if f1.size < DESCRIPTOR_SIZE or f2.size < DESCRIPTOR_SIZE:
        raise ValueError(f"blob descriptors need {DESCRIPTOR_SIZE} values")
    diff = f1[:DESCRIPTOR_SIZE] - f2[:DESCRIPTOR_SIZE]
    return float(
        _COLOR_SCALE * (diff[0] + diff[1] + diff[2])
        + diff[3]
        + diff[4]
        + 0.5 * diff[5]
    )