import math

import numpy as np
import pytest
from scipy import ndimage

from blobtrack.geometry import KeyPoint
from blobtrack.klt import KLTTracker, calc_optical_flow_pyr_lk


def _texture(size=128, seed=7):
    rng = np.random.default_rng(seed)
    noise = rng.random((size, size)) * 255.0
    smooth = ndimage.gaussian_filter(noise, sigma=3)
    smooth -= smooth.min()
    return smooth / smooth.max() * 255.0


def _shifted(image, dx, dy):
    return np.roll(image, shift=(dy, dx), axis=(0, 1))


def test_flow_follows_integer_shift():
    prev = _texture()
    nxt = _shifted(prev, 3, -2)
    points = [(50.0, 60.0), (64.0, 64.0), (70.0, 45.0)]
    found, status, errors = calc_optical_flow_pyr_lk(prev, nxt, points)
    assert status == [True, True, True]
    for (x, y), (fx, fy) in zip(points, found):
        assert fx == pytest.approx(x + 3, abs=0.1)
        assert fy == pytest.approx(y - 2, abs=0.1)
    assert all(err < 5.0 for err in errors)


def test_flow_without_motion_stays_put():
    prev = _texture()
    found, status, errors = calc_optical_flow_pyr_lk(prev, prev.copy(), [(40.0, 80.0)])
    assert status == [True]
    assert found[0] == pytest.approx((40.0, 80.0), abs=1e-3)
    assert errors[0] == pytest.approx(0.0, abs=1e-6)


def test_flow_loses_points_on_uniform_image():
    flat = np.full((64, 64), 100.0)
    found, status, errors = calc_optical_flow_pyr_lk(flat, flat, [(30.0, 30.0)])
    assert status == [False]
    assert found == [(30.0, 30.0)]
    assert math.isnan(errors[0])


def test_flow_rejects_point_outside_image():
    prev = _texture()
    _, status, _ = calc_optical_flow_pyr_lk(prev, prev, [(500.0, 10.0)])
    assert status == [False]


def test_flow_rejects_mismatched_images():
    with pytest.raises(ValueError):
        calc_optical_flow_pyr_lk(np.zeros((10, 10)), np.zeros((12, 10)), [(1.0, 1.0)])


def test_search_before_add_returns_nothing():
    tracker = KLTTracker()
    assert tracker.search(_texture()) == ([], [])


def test_track_simple():
    prev = _texture()
    nxt = _shifted(prev, 2, 1)
    tracker = KLTTracker()
    keypoints = [KeyPoint(pt=(60.0, 60.0), size=1.0), KeyPoint(pt=(45.0, 70.0), size=1.0)]
    tracker.add(prev, keypoints)
    assert tracker.source_points == [(60.0, 60.0), (45.0, 70.0)]
    found, indices = tracker.search(nxt)
    assert indices == [0, 1]
    assert found[0] == pytest.approx((62.0, 61.0), abs=0.1)
    assert found[1] == pytest.approx((47.0, 71.0), abs=0.1)


def test_search_skips_lost_points():
    prev = _texture()
    prev[:, :40] = 0.0
    tracker = KLTTracker()
    tracker.add(prev, [(15.0, 60.0), (80.0, 60.0)])
    found, indices = tracker.search(prev.copy())
    assert indices == [1]
    assert found[0] == pytest.approx((80.0, 60.0), abs=1e-3)


def test_classify_and_match_are_not_supported():
    tracker = KLTTracker()
    with pytest.raises(NotImplementedError):
        tracker.classify(_texture(), [])
    with pytest.raises(NotImplementedError):
        tracker.match(_texture(), [])