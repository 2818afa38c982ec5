"""
Baseline Statistics

Pre-fire baseline per acquisition geometry: a reference composite (median
of the month before the fire) and per-channel median, mean and standard
deviation over the full baseline window (12 months by default).

Author: Diego Bengochea
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import pandas as pd

from shared_utils import get_logger, ConfigurationError, EmptyBaselineError

from .change_metrics import CHANNELS
from .raster_data import GeometryGroup, ImageSeries, RasterImage, StatisticsImage


@dataclass(frozen=True, eq=False)
class Baseline:
    """Baseline outputs shared by all post-fire images of one geometry group."""
    group: GeometryGroup
    reference: RasterImage
    statistics: StatisticsImage
    n_images: int


class BaselineStatsBuilder:
    """
    Builds the pre-fire baseline of a geometry group.
    
    Both windows end at the fire start (exclusive). The reference window
    covers `reference_months` and the statistics window `baseline_months`.
    """
    
    def __init__(
        self,
        backend,
        fire_start,
        baseline_months: int = 12,
        reference_months: int = 1,
        channels: Sequence[str] = CHANNELS
    ):
        if baseline_months <= 0 or reference_months <= 0:
            raise ConfigurationError("Baseline and reference windows must span at least one month")
        if reference_months > baseline_months:
            raise ConfigurationError("The reference window cannot be longer than the baseline window")
        
        self.backend = backend
        self.fire_start = pd.Timestamp(fire_start)
        self.baseline_months = baseline_months
        self.reference_months = reference_months
        self.channels = tuple(channels)
        self.logger = get_logger('burned_area_mapping.baseline')
    
    @property
    def baseline_window(self) -> Tuple[pd.Timestamp, pd.Timestamp]:
        return (self.fire_start - pd.DateOffset(months=self.baseline_months), self.fire_start)
    
    @property
    def reference_window(self) -> Tuple[pd.Timestamp, pd.Timestamp]:
        return (self.fire_start - pd.DateOffset(months=self.reference_months), self.fire_start)
    
    def build(self, series: ImageSeries, group: Optional[GeometryGroup] = None) -> Baseline:
        """
        Compute the baseline from acquisitions matching the group geometry.
        
        Args:
            series: Full acquisition series (with RFDI and RVI bands)
            group: Geometry group to match; None uses the whole series
            
        Returns:
            Baseline: Reference composite and temporal statistics
            
        Raises:
            EmptyBaselineError: If either window holds no matching acquisition
        """
        group = group or GeometryGroup()
        matching = self.backend.query(series, **group.predicates())
        
        baseline_series = self.backend.query(matching, *self.baseline_window)
        if baseline_series.is_empty:
            raise EmptyBaselineError(
                f"No pre-fire acquisitions for geometry {group.label} between "
                f"{self.baseline_window[0].date()} and {self.baseline_window[1].date()}",
                group=group
            )
        
        reference_series = self.backend.query(matching, *self.reference_window)
        if reference_series.is_empty:
            raise EmptyBaselineError(
                f"No reference acquisitions for geometry {group.label} between "
                f"{self.reference_window[0].date()} and {self.reference_window[1].date()}",
                group=group
            )
        
        reference = self.backend.reduce_over_time(reference_series, 'median', rename=False)
        
        statistics_bands = {}
        for reducer in ('median', 'mean', 'stdDev'):
            reduced = self.backend.reduce_over_time(baseline_series, reducer, bands=self.channels)
            statistics_bands.update({name: reduced.band(name) for name in reduced.band_names})
        statistics = reference.derive(statistics_bands, StatisticsImage)
        
        self.logger.info(
            f"Baseline for geometry {group.label}: {len(baseline_series)} acquisitions, "
            f"{len(reference_series)} in the reference composite"
        )
        return Baseline(group=group, reference=reference, statistics=statistics, n_images=len(baseline_series))
