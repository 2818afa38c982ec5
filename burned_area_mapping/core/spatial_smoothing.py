"""
Spatial Smoothing

Square, equal-weight mean filter for speckle suppression. Only valid
(finite) neighbours contribute to each window, so pixels near masked areas
or the image border get the mean of the valid part of their window and
no-data never leaks into valid pixels.

Author: Diego Bengochea
"""

from typing import Optional, Sequence

import numpy as np
from scipy import ndimage

from shared_utils import ConfigurationError

from .raster_data import RasterImage


class SpatialSmoother:
    """Validity-weighted focal mean with window width 2 * radius + 1."""
    
    def __init__(self, radius: int):
        if int(radius) != radius or radius < 0:
            raise ConfigurationError(f"Smoothing radius must be a non-negative integer, got {radius}")
        self.radius = int(radius)
    
    @classmethod
    def from_kernel_size(cls, kernel_size: int) -> 'SpatialSmoother':
        """Build from a window width, e.g. 19 pixels -> radius 9."""
        if int(kernel_size) != kernel_size or kernel_size <= 0:
            raise ConfigurationError(f"Kernel size must be a positive integer, got {kernel_size}")
        return cls(int(kernel_size) // 2)
    
    @property
    def window(self) -> int:
        return 2 * self.radius + 1
    
    def smooth_array(self, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values, dtype='float64')
        valid = np.isfinite(values)
        if self.radius == 0:
            return np.where(valid, values, np.nan)
        
        size = self.window
        sums = ndimage.uniform_filter(np.where(valid, values, 0.0), size=size, mode='constant', cval=0.0)
        counts = ndimage.uniform_filter(valid.astype('float64'), size=size, mode='constant', cval=0.0)
        
        # both filters share the 1 / size**2 factor, a valid pixel counts itself
        result = np.full(values.shape, np.nan)
        smoothed = valid & (counts > 0.5 / size ** 2)
        result[smoothed] = sums[smoothed] / counts[smoothed]
        return result
    
    def smooth(self, image: RasterImage, bands: Optional[Sequence[str]] = None) -> RasterImage:
        """Smooth the given bands (default: all) independently, others are copied."""
        targets = set(bands or image.band_names)
        smoothed = {
            name: self.smooth_array(image.band(name)) if name in targets else image.band(name)
            for name in image.band_names
        }
        return image.derive(smoothed)
