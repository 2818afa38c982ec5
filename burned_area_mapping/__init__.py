"""
Burned Area Mapping Component

Unsupervised mapping of wildfire burned area progression from Sentinel-1
SAR backscatter time series, including:

- Pre-fire baseline statistics per acquisition geometry
- SAR change metrics (log-ratio, k-map, RFDI and RVI differences)
- Speckle smoothing and polarization-based feature selection
- Per-date two-class k-means clustering with reference-region label resolution
- Morphological cleaning and temporal stacking of the per-date masks

Components:
    core/: Core processing modules
    scripts/: Executable entry points
    config.yaml: Component configuration

Author: Diego Bengochea
"""

from .core.mapping_pipeline import BurnedAreaMappingPipeline, map_single_date
from .core.baseline_statistics import BaselineStatsBuilder
from .core.change_metrics import ChangeMetricComputer, MetricKind
from .core.spatial_smoothing import SpatialSmoother
from .core.feature_selection import FeatureSelector, PolarizationScope
from .core.timestep_clustering import PerTimestepClusterer
from .core.morphological_cleaning import MorphologicalCleaner
from .core.temporal_stack import TemporalStackBuilder, LabeledStack
from .core.raster_backend import LocalRasterBackend

__version__ = "1.0.0"
__component__ = "burned_area_mapping"

__all__ = [
    "BurnedAreaMappingPipeline",
    "map_single_date",
    "BaselineStatsBuilder",
    "ChangeMetricComputer",
    "MetricKind",
    "SpatialSmoother",
    "FeatureSelector",
    "PolarizationScope",
    "PerTimestepClusterer",
    "MorphologicalCleaner",
    "TemporalStackBuilder",
    "LabeledStack",
    "LocalRasterBackend"
]
