"""
K-means clustering with Manhattan (L1) distance.

scikit-learn's KMeans is Euclidean only. This estimator keeps its interface
but assigns samples by L1 distance and updates each centre with the
per-feature median of its members, which minimises the summed L1 distance.
Seeding is k-means++ style (centres drawn with probability proportional to
the squared L1 distance to the closest chosen centre), repeated `n_init`
times, keeping the run with the lowest inertia.

Author: Diego Bengochea
"""

import numpy as np
from sklearn.base import BaseEstimator, ClusterMixin
from sklearn.metrics.pairwise import manhattan_distances
from sklearn.utils import check_array, check_random_state
from sklearn.utils.validation import check_is_fitted


class ManhattanKMeans(ClusterMixin, BaseEstimator):
    """
    Parameters:
        n_clusters: Number of clusters
        n_init: Number of seeded restarts, best inertia wins
        max_iter: Maximum assignment/update iterations per restart
        random_state: Seed or RandomState for the seeding draws
    
    Attributes:
        cluster_centers_, labels_, inertia_, n_iter_
    """
    
    def __init__(self, n_clusters=2, n_init=3, max_iter=500, random_state=None):
        self.n_clusters = n_clusters
        self.n_init = n_init
        self.max_iter = max_iter
        self.random_state = random_state
    
    def _init_centers(self, X, random_state):
        n_samples = X.shape[0]
        centers = [X[random_state.randint(n_samples)]]
        
        for _ in range(1, self.n_clusters):
            closest = manhattan_distances(X, np.asarray(centers)).min(axis=1)
            weights = closest ** 2
            total = weights.sum()
            if total > 0:
                index = random_state.choice(n_samples, p=weights / total)
            else:
                index = random_state.randint(n_samples)
            centers.append(X[index])
        
        return np.array(centers, dtype='float64')
    
    def _run_lloyd(self, X, centers):
        labels = None
        n_iter = 0
        
        for n_iter in range(1, self.max_iter + 1):
            new_labels = manhattan_distances(X, centers).argmin(axis=1)
            if labels is not None and np.array_equal(new_labels, labels):
                break
            labels = new_labels
            
            for k in range(self.n_clusters):
                members = X[labels == k]
                # an empty cluster keeps its previous centre
                if members.shape[0]:
                    centers[k] = np.median(members, axis=0)
        
        distances = manhattan_distances(X, centers)
        labels = distances.argmin(axis=1)
        inertia = distances[np.arange(X.shape[0]), labels].sum()
        return labels, centers, inertia, n_iter
    
    def fit(self, X, y=None):
        X = check_array(X, dtype=np.float64)
        if X.shape[0] < self.n_clusters:
            raise ValueError(
                f"n_samples={X.shape[0]} should be >= n_clusters={self.n_clusters}"
            )
        if self.n_init < 1 or self.max_iter < 1:
            raise ValueError("n_init and max_iter must be positive")
        
        random_state = check_random_state(self.random_state)
        best = None
        
        for _ in range(self.n_init):
            centers = self._init_centers(X, random_state)
            run = self._run_lloyd(X, centers)
            if best is None or run[2] < best[2]:
                best = run
        
        self.labels_, self.cluster_centers_, self.inertia_, self.n_iter_ = best
        return self
    
    def predict(self, X):
        check_is_fitted(self, 'cluster_centers_')
        X = check_array(X, dtype=np.float64)
        return manhattan_distances(X, self.cluster_centers_).argmin(axis=1)
