"""
Per-Timestep Clustering

Unsupervised two-class burned/unburned classification of a single
acquisition. A k-means model with Manhattan distance is trained on a
reproducible pixel sample of the region of interest and applied to every
pixel. Cluster indices carry no meaning across independent runs, so the
burned cluster is identified as the modal cluster label inside a reference
polygon known to be predominantly burned.

Author: Diego Bengochea
"""

from typing import Optional

import numpy as np
from shapely.geometry.base import BaseGeometry
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler

from shared_utils import get_logger, ClusterResolutionError, ConfigurationError

from .kmeans import ManhattanKMeans
from .raster_data import BinaryMask, RasterImage

CLUSTER_BAND = 'cluster'


def inset_region(region: Optional[BaseGeometry], inset_m: float) -> Optional[BaseGeometry]:
    """
    Region shrunk by inset_m metres, keeping samples away from scene borders.

    Raises:
        ConfigurationError: If nothing of the region survives the inset
    """
    if region is None or inset_m == 0:
        return region
    inset = region.buffer(-inset_m)
    if inset.is_empty:
        raise ConfigurationError(f"Region of interest is empty after an inset of {inset_m} m")
    return inset


class PerTimestepClusterer:
    """
    Trains, applies and resolves a clustering for one acquisition at a time.
    
    Holds configuration only; every call builds its own model, so instances
    can be shared by concurrent per-date tasks.
    """
    
    def __init__(
        self,
        backend,
        sample_fraction: float = 0.2,
        seed: int = 42,
        n_clusters: int = 2,
        n_init: int = 3,
        max_iter: int = 500,
        normalize: bool = False
    ):
        if not 0 < sample_fraction <= 1:
            raise ConfigurationError(f"Sample fraction must be in (0, 1], got {sample_fraction}")
        if n_clusters < 2:
            raise ConfigurationError(f"At least two clusters are needed, got {n_clusters}")
        
        self.backend = backend
        self.sample_fraction = sample_fraction
        self.seed = seed
        self.n_clusters = n_clusters
        self.n_init = n_init
        self.max_iter = max_iter
        self.normalize = normalize
        self.logger = get_logger('burned_area_mapping.clustering')
    
    def _new_model(self):
        model = ManhattanKMeans(
            n_clusters=self.n_clusters,
            n_init=self.n_init,
            max_iter=self.max_iter,
            random_state=self.seed
        )
        if self.normalize:
            return make_pipeline(StandardScaler(), model)
        return model
    
    def train(self, image: RasterImage, region: Optional[BaseGeometry]):
        """Fit a fresh model on a seeded sample of valid pixels inside the region."""
        samples = self.backend.sample(image, region, self.sample_fraction, self.seed)
        if samples.shape[0] < self.n_clusters:
            raise ClusterResolutionError(
                f"Only {samples.shape[0]} valid training samples for {image.identifier}",
                identifier=image.identifier
            )
        
        self.logger.debug(f"Training on {samples.shape[0]} samples for {image.identifier}")
        return self._new_model().fit(samples)
    
    def cluster(self, image: RasterImage, model) -> RasterImage:
        """Cluster label of every pixel, NaN where any feature is missing."""
        features = image.stacked()
        valid = np.isfinite(features).all(axis=1)
        
        labels = np.full(features.shape[0], np.nan)
        if valid.any():
            labels[valid] = model.predict(features[valid])
        
        return image.derive({CLUSTER_BAND: labels.reshape(image.shape)}, RasterImage)
    
    def resolve_burned_cluster(self, labels: RasterImage, reference_region: Optional[BaseGeometry]) -> int:
        """
        Modal cluster label inside the reference polygon, ties to the smaller label.
        
        Raises:
            ClusterResolutionError: If the polygon holds no labelled pixel
        """
        mode = self.backend.reduce_over_region(labels, reference_region, 'mode', bands=[CLUSTER_BAND])[CLUSTER_BAND]
        if mode is None:
            raise ClusterResolutionError(
                f"Reference region has no valid cluster labels for {labels.identifier}",
                identifier=labels.identifier
            )
        return int(mode)
    
    def classify(
        self,
        image: RasterImage,
        region: Optional[BaseGeometry],
        reference_region: Optional[BaseGeometry]
    ) -> BinaryMask:
        """
        Binary burned mask of one acquisition.
        
        Args:
            image: Smoothed, feature-selected change image
            region: Region of interest the training sample is drawn from
            reference_region: Polygon covering confirmed burned area
            
        Returns:
            BinaryMask: 1 burned, 0 unburned, NaN no data; band named by the
            acquisition identifier
        """
        model = self.train(image, region)
        labels = self.cluster(image, model)
        burned_cluster = self.resolve_burned_cluster(labels, reference_region)
        
        values = labels.band(CLUSTER_BAND)
        binary = np.where(np.isfinite(values), (values == burned_cluster).astype('float64'), np.nan)
        
        self.logger.debug(f"{image.identifier}: burned cluster {burned_cluster}")
        return image.derive({image.identifier: binary}, BinaryMask)
