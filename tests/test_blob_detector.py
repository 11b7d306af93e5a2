import numpy as np
import pytest

from blobtrack.blob_detector import BlobDetector, find_external_contours


def _mask(height, width):
    return np.zeros((height, width), dtype=np.uint8)


def _square(mask, x, y, side, value=255):
    mask[y:y + side, x:x + side] = value


@pytest.fixture
def detector():
    return BlobDetector()


@pytest.fixture
def simple_blob_image():
    mask = _mask(40, 90)
    for row in range(3):
        for col in range(7):
            _square(mask, 2 + col * 12, 2 + row * 12, 7)
    return mask


@pytest.fixture
def advanced_blob_image():
    mask = _mask(40, 80)
    _square(mask, 2, 2, 7)
    _square(mask, 15, 20, 9)
    # A ring with another region sitting inside its hole.
    mask[5:27, 40:62] = 255
    mask[8:24, 43:59] = 0
    _square(mask, 48, 13, 6)
    return mask


def test_simple_blob_detector(detector, simple_blob_image):
    assert len(detector(simple_blob_image)) == 21


def test_advanced_blob_detector(detector, advanced_blob_image):
    assert len(detector(advanced_blob_image)) == 3


def test_rectangle_contour_is_its_corners():
    mask = _mask(12, 14)
    mask[2:9, 3:10] = 1
    assert find_external_contours(mask) == [[(3, 2), (9, 2), (9, 8), (3, 8)]]


def test_nested_region_is_not_external():
    mask = _mask(30, 30)
    mask[2:24, 2:24] = 1
    mask[5:21, 5:21] = 0
    mask[10:14, 10:14] = 1
    contours = find_external_contours(mask)
    assert contours == [[(2, 2), (23, 2), (23, 23), (2, 23)]]


def test_single_pixel_contour():
    mask = _mask(5, 5)
    mask[2, 3] = 1
    assert find_external_contours(mask) == [[(3, 2)]]


def test_horizontal_line_contour():
    mask = _mask(5, 8)
    mask[1, 2:6] = 1
    assert find_external_contours(mask) == [[(2, 1), (5, 1)]]


def test_contours_come_in_raster_order():
    mask = _mask(20, 20)
    _square(mask, 12, 2, 3, 1)
    _square(mask, 2, 10, 3, 1)
    contours = find_external_contours(mask)
    assert [c[0] for c in contours] == [(12, 2), (2, 10)]


def test_threshold_is_strictly_above_128(detector):
    mask = _mask(20, 20)
    _square(mask, 5, 5, 7, 128)
    assert detector(mask) == []
    _square(mask, 5, 5, 7, 129)
    assert len(detector(mask)) == 1


def test_blob_area_from_detected_square(detector):
    mask = _mask(20, 20)
    _square(mask, 5, 5, 7)
    blobs = detector(mask)
    assert len(blobs) == 1
    assert blobs[0].area() == pytest.approx(36.0)


def test_noise_removed_only_with_cleanup(detector):
    mask = _mask(20, 20)
    _square(mask, 2, 2, 7)
    mask[15, 15] = 255
    assert len(detector(mask)) == 1
    assert len(detector(mask, close_holes=0)) == 2


def test_blob_touching_border_survives_cleanup(detector):
    mask = _mask(20, 20)
    _square(mask, 0, 0, 4)
    assert len(detector(mask)) == 1


def test_rejects_multichannel_mask(detector):
    with pytest.raises(ValueError):
        detector(np.zeros((10, 10, 3), dtype=np.uint8))