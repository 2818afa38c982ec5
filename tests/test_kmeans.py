"""
Tests for the Manhattan distance k-means estimator.
"""

import numpy as np
import pytest
from sklearn.exceptions import NotFittedError

from burned_area_mapping.core.kmeans import ManhattanKMeans


@pytest.fixture
def two_blobs():
    rng = np.random.RandomState(0)
    first = rng.normal(loc=(-7.0, 1.0), scale=0.2, size=(40, 2))
    second = rng.normal(loc=(0.0, 0.0), scale=0.2, size=(60, 2))
    return np.vstack([first, second])


def test_separates_blobs(two_blobs):
    model = ManhattanKMeans(n_clusters=2, random_state=42).fit(two_blobs)
    
    assert len(set(model.labels_[:40])) == 1
    assert len(set(model.labels_[40:])) == 1
    assert model.labels_[0] != model.labels_[-1]


def test_centres_are_medians(two_blobs):
    model = ManhattanKMeans(n_clusters=2, random_state=42).fit(two_blobs)
    first_label = model.labels_[0]
    
    np.testing.assert_allclose(
        model.cluster_centers_[first_label], np.median(two_blobs[:40], axis=0)
    )


def test_same_seed_same_result(two_blobs):
    first = ManhattanKMeans(random_state=7).fit(two_blobs)
    second = ManhattanKMeans(random_state=7).fit(two_blobs)
    
    np.testing.assert_array_equal(first.labels_, second.labels_)
    np.testing.assert_array_equal(first.cluster_centers_, second.cluster_centers_)


def test_predict_matches_training_labels(two_blobs):
    model = ManhattanKMeans(random_state=1).fit(two_blobs)
    np.testing.assert_array_equal(model.predict(two_blobs), model.labels_)
    assert model.fit_predict(two_blobs).shape == (100,)


def test_inertia_is_summed_l1_distance():
    X = np.array([[0.0, 0.0], [1.0, 1.0], [10.0, 10.0], [11.0, 12.0]])
    model = ManhattanKMeans(n_clusters=2, random_state=0).fit(X)
    
    assert model.inertia_ == pytest.approx(np.abs(X - model.cluster_centers_[model.labels_]).sum())


def test_too_few_samples():
    with pytest.raises(ValueError):
        ManhattanKMeans(n_clusters=2).fit(np.array([[1.0, 2.0]]))


def test_predict_before_fit():
    with pytest.raises(NotFittedError):
        ManhattanKMeans().predict(np.zeros((2, 2)))
