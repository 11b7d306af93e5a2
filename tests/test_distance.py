import numpy as np
import pytest

from blobtrack.distance import GlobalDistance, RegionDistance, bhattacharyya_distance


def _absolute(a, b):
    return float(np.abs(np.asarray(a) - np.asarray(b)).sum())


def test_bhattacharyya_identical_histograms_is_zero():
    hist = np.array([[0.25, 0.25, 0.25, 0.25]], dtype=np.float32)
    assert bhattacharyya_distance(hist, hist) == pytest.approx(0.0, abs=1e-6)


def test_bhattacharyya_disjoint_histograms_is_one():
    assert bhattacharyya_distance([[1.0, 0.0]], [[0.0, 1.0]]) == pytest.approx(1.0)


def test_bhattacharyya_is_symmetric_and_bounded():
    a = np.array([[0.1, 0.2, 0.3, 0.4]])
    b = np.array([[0.4, 0.3, 0.2, 0.1]])
    forward = bhattacharyya_distance(a, b)
    assert forward == pytest.approx(bhattacharyya_distance(b, a))
    assert 0.0 < forward < 1.0


def test_bhattacharyya_never_negative_with_rounding_noise():
    a = np.array([[0.5 + 1e-7, 0.5]])
    assert bhattacharyya_distance(a, a) >= 0.0


def test_bhattacharyya_rejects_different_bin_counts():
    with pytest.raises(ValueError):
        bhattacharyya_distance([[0.5, 0.5]], [[0.2, 0.3, 0.5]])


def test_bhattacharyya_rejects_different_masses():
    with pytest.raises(ValueError):
        bhattacharyya_distance([[0.5, 0.5]], [[1.0, 1.0]])


def test_region_distance_averages_parts():
    a, b = np.array([[0.1, 0.9]]), np.array([[0.6, 0.4]])
    c, d = np.array([[0.5, 0.5]]), np.array([[0.2, 0.8]])
    region = RegionDistance(bhattacharyya_distance)
    expected = (bhattacharyya_distance(a, b) + bhattacharyya_distance(c, d)) / 2
    assert region([a, c], [b, d]) == pytest.approx(expected)


def test_region_distance_identical_parts_is_zero():
    parts = [np.array([[0.3, 0.7]]), np.array([[0.5, 0.5]])]
    assert RegionDistance(bhattacharyya_distance)(parts, parts) == pytest.approx(0.0, abs=1e-6)


def test_region_distance_averages_channels():
    red1, red2 = np.array([[1.0, 3.0]]), np.array([[2.0, 5.0]])
    flat = np.array([[0.0, 0.0]])
    region = RegionDistance(_absolute)
    single = region([red1], [red2])
    assert region([(red1, flat)], [(red2, flat)]) == pytest.approx(single / 2)


def test_region_distance_histograms_compared_as_whole():
    h1 = np.zeros((2, 2, 2))
    h2 = np.ones((2, 2, 2))
    region = RegionDistance(_absolute)
    assert region([h1, h1], [h2, h1]) == pytest.approx(_absolute(h1, h2) / 2)


def test_region_distance_rejects_length_mismatch():
    with pytest.raises(ValueError):
        RegionDistance(_absolute)([np.zeros((1, 2))], [])


def test_region_distance_rejects_empty_input():
    with pytest.raises(ValueError):
        RegionDistance(_absolute)([], [])


def test_region_distance_rejects_channel_mismatch():
    row = np.zeros((1, 2))
    with pytest.raises(ValueError):
        RegionDistance(_absolute)([(row, row)], [(row, row, row)])


def test_global_distance_joins_rows_side_by_side():
    seen = []

    def recorder(a, b):
        seen.append((a, b))
        return 0.0

    result = GlobalDistance(recorder)(
        [np.array([[1.0, 2.0]]), np.array([[3.0, 4.0]])],
        [np.array([[5.0, 6.0]]), np.array([[7.0, 8.0]])],
    )
    assert result == 0.0
    assert len(seen) == 1
    assert np.array_equal(seen[0][0], [[1.0, 2.0, 3.0, 4.0]])
    assert np.array_equal(seen[0][1], [[5.0, 6.0, 7.0, 8.0]])


def test_global_distance_with_bhattacharyya_identical_is_zero():
    parts = [np.array([[0.25, 0.25]]), np.array([[0.1, 0.4]])]
    assert GlobalDistance(bhattacharyya_distance)(parts, parts) == pytest.approx(0.0, abs=1e-6)


def test_global_distance_averages_channels():
    red1, red2 = np.array([[1.0, 2.0]]), np.array([[1.0, 4.0]])
    flat = np.array([[0.0, 0.0]])
    glob = GlobalDistance(_absolute)
    single = glob([red1], [red2])
    assert glob([(red1, flat)], [(red2, flat)]) == pytest.approx(single / 2)


def test_global_distance_joins_histograms_on_last_axis():
    seen = []

    def recorder(a, b):
        seen.append(a.shape)
        return float(a.sum() - b.sum())

    h = np.ones((2, 3, 2))
    result = GlobalDistance(recorder)([h, h], [h, np.zeros((2, 3, 2))])
    assert seen == [(2, 3, 4)]
    assert result == pytest.approx(h.sum())


def test_global_distance_rejects_column_mismatch():
    with pytest.raises(ValueError):
        GlobalDistance(_absolute)([np.zeros((1, 2))], [np.zeros((1, 3))])


def test_global_distance_rejects_histogram_shape_mismatch():
    with pytest.raises(ValueError):
        GlobalDistance(_absolute)([np.zeros((2, 2, 2))], [np.zeros((2, 3, 2))])


def test_global_distance_rejects_four_dimensional_histograms():
    h = np.zeros((2, 2, 2, 2))
    with pytest.raises(ValueError):
        GlobalDistance(_absolute)([h], [h])