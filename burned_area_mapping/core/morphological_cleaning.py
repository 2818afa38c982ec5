"""
Morphological Cleaning

Removes small spurious burned patches from a binary mask. Pixels belonging
to a burned patch smaller than `min_patch` pixels (and every unburned
pixel, whose patch size counts as 0) take the value of a square majority
filter; pixels of large enough patches keep their value. The patch sizes
are computed once on the input mask (single pass).

Author: Diego Bengochea
"""

import math

import numpy as np
from scipy import ndimage

from shared_utils import ConfigurationError

from .raster_data import BinaryMask


class MorphologicalCleaner:
    """
    Args:
        min_patch: Minimum connected burned pixel count kept as is
        focal_size: Width in pixels of the square majority filter window
        connectivity: 8 (queen) or 4 (rook) pixel connectivity
    """
    
    def __init__(self, min_patch: int, focal_size: int, connectivity: int = 8):
        if min_patch <= 0:
            raise ConfigurationError(f"Minimum patch size must be positive, got {min_patch}")
        if focal_size <= 0:
            raise ConfigurationError(f"Majority filter size must be positive, got {focal_size}")
        if connectivity not in (4, 8):
            raise ConfigurationError(f"Connectivity must be 4 or 8, got {connectivity}")
        
        self.min_patch = int(min_patch)
        self.focal_size = int(focal_size)
        self.connectivity = connectivity
    
    @classmethod
    def from_radius(cls, min_patch: int, focal_radius_m: float, pixel_size: float, connectivity: int = 8):
        """Window covering `focal_radius_m` on each side of the centre pixel."""
        if focal_radius_m <= 0 or pixel_size <= 0:
            raise ConfigurationError("Focal radius and pixel size must be positive")
        radius_pixels = math.ceil(focal_radius_m / pixel_size - 1e-9)
        return cls(min_patch, 2 * radius_pixels + 1, connectivity)
    
    def patch_sizes(self, values: np.ndarray) -> np.ndarray:
        """Size of the connected burned patch each pixel belongs to, 0 elsewhere."""
        structure = ndimage.generate_binary_structure(2, 2 if self.connectivity == 8 else 1)
        labels, _ = ndimage.label(values == 1, structure=structure)
        
        sizes = np.bincount(labels.ravel())[labels]
        sizes[labels == 0] = 0
        return sizes
    
    def majority_filter(self, values: np.ndarray) -> np.ndarray:
        """
        Most frequent valid value in the window around each pixel.
        
        Ties resolve to 0; windows without valid pixels give NaN.
        """
        size = self.focal_size
        window_pixels = size * size
        
        ones = ndimage.uniform_filter((values == 1).astype('float64'), size=size, mode='constant', cval=0.0)
        zeros = ndimage.uniform_filter((values == 0).astype('float64'), size=size, mode='constant', cval=0.0)
        ones = np.rint(ones * window_pixels)
        zeros = np.rint(zeros * window_pixels)
        
        filtered = np.where(ones > zeros, 1.0, 0.0)
        filtered[(ones + zeros) == 0] = np.nan
        return filtered
    
    def clean_array(self, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values, dtype='float64')
        keep = self.patch_sizes(values) >= self.min_patch
        
        cleaned = np.where(keep, values, self.majority_filter(values))
        cleaned[np.isnan(values)] = np.nan
        return cleaned
    
    def clean(self, mask: BinaryMask) -> BinaryMask:
        return mask.derive({mask.name: self.clean_array(mask.values)})
