"""
Tests for small patch removal and the majority filter.
"""

import numpy as np
import pytest

from burned_area_mapping.core.morphological_cleaning import MorphologicalCleaner
from shared_utils import ConfigurationError


def test_focal_size_from_radius():
    assert MorphologicalCleaner.from_radius(50, 100, 20).focal_size == 11
    assert MorphologicalCleaner.from_radius(50, 40, 20).focal_size == 5
    assert MorphologicalCleaner.from_radius(50, 30, 20).focal_size == 5


def test_patch_sizes_connectivity():
    values = np.array([
        [1, 0, 0],
        [0, 1, 0],
        [0, 0, 0],
    ], dtype=float)
    
    queen = MorphologicalCleaner(2, 3, connectivity=8).patch_sizes(values)
    rook = MorphologicalCleaner(2, 3, connectivity=4).patch_sizes(values)
    
    assert queen[0, 0] == 2 and queen[1, 1] == 2
    assert rook[0, 0] == 1 and rook[1, 1] == 1
    assert queen[2, 2] == 0


def test_isolated_pixel_removed():
    values = np.zeros((7, 7))
    values[3, 3] = 1
    cleaned = MorphologicalCleaner(min_patch=2, focal_size=3).clean_array(values)
    
    np.testing.assert_array_equal(cleaned, np.zeros((7, 7)))


def test_hole_in_large_patch_filled():
    values = np.ones((5, 5))
    values[2, 2] = 0
    cleaned = MorphologicalCleaner(min_patch=5, focal_size=3).clean_array(values)
    
    np.testing.assert_array_equal(cleaned, np.ones((5, 5)))


def test_large_patch_kept_under_majority_of_unburned():
    values = np.zeros((9, 9))
    values[0:2, 0:2] = 1
    cleaned = MorphologicalCleaner(min_patch=4, focal_size=9).clean_array(values)
    
    np.testing.assert_array_equal(cleaned, values)


def test_majority_ties_go_to_unburned():
    values = np.array([[1.0, 0.0]])
    filtered = MorphologicalCleaner(min_patch=1, focal_size=3).majority_filter(values)
    np.testing.assert_array_equal(filtered, [[0.0, 0.0]])


def test_nodata_preserved_and_ignored():
    values = np.array([
        [np.nan, 1, 1],
        [1, 1, 1],
        [0, 0, 0],
    ])
    cleaned = MorphologicalCleaner(min_patch=1, focal_size=3).clean_array(values)
    
    assert np.isnan(cleaned[0, 0])
    np.testing.assert_array_equal(cleaned[1:], values[1:])


def test_clean_keeps_mask_identity(generator):
    mask = generator.mask(generator.corner_block().astype(float), 'S1A_20230825', '2023-08-25')
    
    kept = MorphologicalCleaner.from_radius(3, 40, 20).clean(mask)
    removed = MorphologicalCleaner.from_radius(5, 40, 20).clean(mask)
    
    assert kept.name == 'S1A_20230825'
    assert kept.timestamp == mask.timestamp
    np.testing.assert_array_equal(kept.values, mask.values)
    np.testing.assert_array_equal(removed.values, np.zeros((3, 3)))


def test_invalid_parameters():
    with pytest.raises(ConfigurationError):
        MorphologicalCleaner(0, 3)
    with pytest.raises(ConfigurationError):
        MorphologicalCleaner(1, 3, connectivity=6)


def test_second_pass_keeps_large_patches():
    values = np.zeros((12, 12))
    values[1:5, 1:5] = 1
    values[8, 2:4] = 1
    values[9, 9] = 1
    values[6:11, 6] = 1
    cleaner = MorphologicalCleaner(min_patch=5, focal_size=3)
    
    once = cleaner.clean_array(values)
    twice = cleaner.clean_array(once)
    large = cleaner.patch_sizes(once) >= cleaner.min_patch
    
    assert large[1:5, 1:5].all()
    np.testing.assert_array_equal(twice[large], once[large])
