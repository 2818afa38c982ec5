"""
Change Metric Computation

SAR change indices of a post-fire acquisition relative to its pre-fire
reference composite and baseline statistics:

    logRatio_c = post[c] - ref[c]                 (backscatter in dB)
    kmap_c     = |logRatio_c| / stats[c_stdDev]
    diffRFDI   = RFDI(post) - RFDI(ref),  RFDI = (VV - VH) / (VV + VH)
    diffRVI    = RVI(post) - RVI(ref),    RVI  = 4 VH / (VV + VH)

Divisions by zero or undefined denominators yield NaN (masked pixels)
instead of infinities.

Author: Diego Bengochea
"""

from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from shared_utils import ConfigurationError

from .raster_data import BinaryMask, ChangeIndexImage, GeometryGroup, RasterImage

CHANNELS = ('VH', 'VV')
RATIO_INDICES = ('RFDI', 'RVI')


def masked_divide(numerator: np.ndarray, denominator: np.ndarray, strictly_positive: bool = False) -> np.ndarray:
    """Element-wise division, NaN where either operand is not finite or the denominator is zero."""
    numerator = np.asarray(numerator, dtype='float64')
    denominator = np.asarray(denominator, dtype='float64')
    
    valid = np.isfinite(numerator) & np.isfinite(denominator)
    valid &= (denominator > 0) if strictly_positive else (denominator != 0)
    
    result = np.full(np.broadcast(numerator, denominator).shape, np.nan)
    result[valid] = numerator[valid] / denominator[valid]
    return result


class MetricKind(Enum):
    """Change metrics available as clustering features."""
    LOG_RATIO_VH = 'logRatio_VH'
    LOG_RATIO_VV = 'logRatio_VV'
    KMAP_VH = 'kmap_VH'
    KMAP_VV = 'kmap_VV'
    DIFF_RFDI = 'diffRFDI'
    DIFF_RVI = 'diffRVI'
    
    @classmethod
    def parse(cls, name: str) -> 'MetricKind':
        for kind in cls:
            if name in (kind.value, kind.name):
                return kind
        raise ConfigurationError(
            f"Unknown change metric '{name}', expected one of {[kind.value for kind in cls]}"
        )
    
    @property
    def polarization(self) -> Optional[str]:
        """Backscatter channel the metric derives from, None for ratio indices."""
        if self in (MetricKind.LOG_RATIO_VH, MetricKind.KMAP_VH):
            return 'VH'
        if self in (MetricKind.LOG_RATIO_VV, MetricKind.KMAP_VV):
            return 'VV'
        return None
    
    @property
    def ratio_index(self) -> Optional[str]:
        if self is MetricKind.DIFF_RFDI:
            return 'RFDI'
        if self is MetricKind.DIFF_RVI:
            return 'RVI'
        return None
    
    def compute(self, post: RasterImage, reference: RasterImage, statistics: RasterImage) -> np.ndarray:
        if self.ratio_index:
            return post.band(self.ratio_index) - reference.band(self.ratio_index)
        
        channel = self.polarization
        log_ratio = post.band(channel) - reference.band(channel)
        if self in (MetricKind.LOG_RATIO_VH, MetricKind.LOG_RATIO_VV):
            return log_ratio
        
        return masked_divide(np.abs(log_ratio), statistics.band(f"{channel}_stdDev"), strictly_positive=True)


DEFAULT_METRICS = (
    MetricKind.DIFF_RFDI,
    MetricKind.KMAP_VH,
    MetricKind.KMAP_VV,
    MetricKind.LOG_RATIO_VH,
    MetricKind.LOG_RATIO_VV,
)


def add_polarimetric_indices(image: RasterImage) -> RasterImage:
    """Return the image with RFDI and RVI bands appended."""
    vh = image.band('VH')
    vv = image.band('VV')
    total = vv + vh
    
    bands = {name: image.band(name) for name in image.band_names}
    bands['RFDI'] = masked_divide(vv - vh, total)
    bands['RVI'] = masked_divide(4.0 * vh, total)
    return image.derive(bands)


def build_water_mask(occurrence: RasterImage, threshold: float = 10.0) -> BinaryMask:
    """
    Land mask from a water occurrence raster (percent of time under water).
    
    Pixels with occurrence above the threshold are water (0); everything
    else, including pixels without occurrence data, is land (1).
    """
    values = occurrence.band(occurrence.band_names[0])
    is_water = np.nan_to_num(values, nan=0.0) > threshold
    return occurrence.derive({'land': np.where(is_water, 0.0, 1.0)}, BinaryMask)


class ChangeMetricComputer:
    """
    Computes the requested change metrics for post-fire images.
    
    Water pixels of the optional land mask (value 0) are set to NaN in
    every output band.
    """
    
    def __init__(self, kinds: Sequence[MetricKind] = DEFAULT_METRICS, water_mask: Optional[BinaryMask] = None):
        if not kinds:
            raise ConfigurationError("At least one change metric must be requested")
        self.kinds: Tuple[MetricKind, ...] = tuple(dict.fromkeys(kinds))
        self.water_mask = water_mask
    
    def _apply_water_mask(self, values: np.ndarray) -> np.ndarray:
        if self.water_mask is None:
            return values
        return np.where(self.water_mask.values == 1, values, np.nan)
    
    def compute(self, post: RasterImage, baseline) -> ChangeIndexImage:
        """
        Args:
            post: Post-fire image with VH, VV, RFDI and RVI bands
            baseline: Baseline of the image's geometry group
            
        Returns:
            ChangeIndexImage: One band per requested metric, named by its value
        """
        bands = {
            kind.value: self._apply_water_mask(kind.compute(post, baseline.reference, baseline.statistics))
            for kind in self.kinds
        }
        return post.derive(bands, ChangeIndexImage, group=baseline.group)
    
    def masked(self, post: RasterImage, group: Optional[GeometryGroup] = None) -> ChangeIndexImage:
        """Fully masked metrics for an image whose baseline is unavailable."""
        empty = np.full(post.shape, np.nan)
        bands = {kind.value: empty.copy() for kind in self.kinds}
        return post.derive(bands, ChangeIndexImage, group=group)
