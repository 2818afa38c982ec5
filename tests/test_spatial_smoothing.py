"""
Tests for the validity-weighted focal mean.
"""

import numpy as np
import pytest

from burned_area_mapping.core.spatial_smoothing import SpatialSmoother
from shared_utils import ConfigurationError


def test_kernel_size_to_radius():
    assert SpatialSmoother.from_kernel_size(19).radius == 9
    assert SpatialSmoother.from_kernel_size(1).window == 1


def test_invalid_kernel_size():
    with pytest.raises(ConfigurationError):
        SpatialSmoother.from_kernel_size(0)
    with pytest.raises(ConfigurationError):
        SpatialSmoother(1.5)


def test_constant_field_unchanged():
    smoothed = SpatialSmoother(2).smooth_array(np.full((6, 6), -7.0))
    np.testing.assert_allclose(smoothed, -7.0)


def test_border_uses_valid_part_of_window():
    values = np.arange(9, dtype=float).reshape(3, 3)
    smoothed = SpatialSmoother(1).smooth_array(values)
    
    assert smoothed[1, 1] == pytest.approx(4.0)
    assert smoothed[0, 0] == pytest.approx(np.mean([0, 1, 3, 4]))


def test_nodata_neither_leaks_nor_is_filled():
    values = np.arange(9, dtype=float).reshape(3, 3)
    values[1, 1] = np.nan
    smoothed = SpatialSmoother(1).smooth_array(values)
    
    assert np.isnan(smoothed[1, 1])
    assert np.isfinite(np.delete(smoothed.ravel(), 4)).all()
    assert smoothed[0, 0] == pytest.approx(np.mean([0, 1, 3]))


def test_zero_radius_is_identity():
    values = np.array([[1.0, np.nan], [3.0, 4.0]])
    smoothed = SpatialSmoother(0).smooth_array(values)
    np.testing.assert_array_equal(np.isnan(smoothed), np.isnan(values))
    assert smoothed[1, 0] == 3.0


def test_smooth_only_requested_bands(generator):
    image = generator.burned_scene()
    smoothed = SpatialSmoother(1).smooth(image, bands=['VH'])
    
    np.testing.assert_array_equal(smoothed.band('VV'), image.band('VV'))
    assert smoothed.band('VH')[2, 2] == pytest.approx(np.mean([-15.0, -15.0, -15.0, -22.0]))
    assert smoothed.timestamp == image.timestamp
