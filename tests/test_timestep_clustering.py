"""
Tests for per-timestep clustering and burned cluster resolution.
"""

import numpy as np
import pytest
from shapely.geometry import box

from burned_area_mapping.core.raster_data import BinaryMask
from burned_area_mapping.core.timestep_clustering import CLUSTER_BAND, PerTimestepClusterer, inset_region
from shared_utils import ClusterResolutionError, ConfigurationError


@pytest.fixture
def change_image(generator):
    block = generator.corner_block()
    return generator.burned_scene().derive({
        'logRatio_VH': np.where(block, -7.0, 0.0),
        'logRatio_VV': np.where(block, 1.0, 0.0),
    })


@pytest.fixture
def clusterer(backend):
    return PerTimestepClusterer(backend, sample_fraction=1.0, seed=42)


def test_classify_recovers_burned_block(clusterer, change_image, generator):
    mask = clusterer.classify(change_image, generator.extent, generator.reference_region)
    
    assert isinstance(mask, BinaryMask)
    assert mask.name == change_image.identifier
    np.testing.assert_array_equal(mask.values, generator.corner_block().astype(float))


def test_burned_label_follows_reference_region(clusterer, change_image, generator):
    unburned_corner = box(40, 0, 60, 20)
    mask = clusterer.classify(change_image, generator.extent, unburned_corner)
    
    np.testing.assert_array_equal(mask.values, (~generator.corner_block()).astype(float))


def test_nan_features_stay_nan(clusterer, change_image, generator):
    values = change_image.band('logRatio_VV').copy()
    values[2, 2] = np.nan
    image = change_image.derive({'logRatio_VH': change_image.band('logRatio_VH'), 'logRatio_VV': values})
    
    mask = clusterer.classify(image, generator.extent, generator.reference_region)
    assert np.isnan(mask.values[2, 2])
    assert np.isfinite(mask.values).sum() == 8


def test_training_is_reproducible(backend, change_image, generator):
    first = PerTimestepClusterer(backend, sample_fraction=0.9, seed=3)
    second = PerTimestepClusterer(backend, sample_fraction=0.9, seed=3)
    
    np.testing.assert_array_equal(
        first.cluster(change_image, first.train(change_image, generator.extent)).band(CLUSTER_BAND),
        second.cluster(change_image, second.train(change_image, generator.extent)).band(CLUSTER_BAND)
    )


def test_fully_masked_image_cannot_be_trained(clusterer, change_image, generator):
    empty = change_image.derive({'logRatio_VH': np.full((3, 3), np.nan)})
    with pytest.raises(ClusterResolutionError):
        clusterer.classify(empty, generator.extent, generator.reference_region)


def test_reference_region_without_pixels(clusterer, change_image, generator):
    outside = box(1000, 1000, 1100, 1100)
    with pytest.raises(ClusterResolutionError):
        clusterer.classify(change_image, generator.extent, outside)


def test_mode_ties_resolve_to_smaller_label(clusterer, generator):
    labels = generator.burned_scene().derive({CLUSTER_BAND: np.array([[1, 0, 0], [0, 1, 1], [1, 0, 1]], dtype=float)})
    # two pixels of each label inside the upper-left block
    assert clusterer.resolve_burned_cluster(labels, generator.reference_region) == 0


def test_invalid_sample_fraction(backend):
    with pytest.raises(ConfigurationError):
        PerTimestepClusterer(backend, sample_fraction=0.0)


def test_inset_region(generator):
    assert inset_region(None, 2000) is None
    assert inset_region(generator.extent, 0) is generator.extent
    assert inset_region(generator.extent, 10).bounds == (10.0, 10.0, 50.0, 50.0)
    with pytest.raises(ConfigurationError):
        inset_region(generator.extent, 30)
