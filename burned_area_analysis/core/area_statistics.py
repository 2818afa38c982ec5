"""
Burned Area Statistics

Region-bounded reductions over a burned area progression stack:

- Burned area over time: burned pixel count times pixel area per date, in
  whole hectares, keyed by a readable acquisition time label.
- Land-cover breakdown: for one date, hectares and percentage share of
  each land-cover class under the burned pixels, counted on the land-cover
  raster's native grid.

Author: Diego Bengochea
"""

import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd
from rasterio.warp import Resampling
from shapely.geometry.base import BaseGeometry

# Shared utilities
from shared_utils import get_logger, ConfigurationError

from burned_area_mapping.core.raster_data import RasterImage
from burned_area_mapping.core.temporal_stack import LabeledStack

TIME_LABEL_PATTERN = re.compile(r'\d{8}T\d{6}')
SQUARE_METERS_PER_HECTARE = 10000.0


def parse_time_label(identifier: str) -> str:
    """Acquisition time token of a band identifier, the identifier itself if none."""
    match = TIME_LABEL_PATTERN.search(identifier)
    return match.group(0) if match else identifier


def load_class_names(path: Union[str, Path]) -> Dict[int, str]:
    """Read a `code,name` CSV into a code -> class name mapping."""
    table = pd.read_csv(path)
    if not {'code', 'name'}.issubset(table.columns):
        raise ConfigurationError(f"Land-cover class table {path} needs 'code' and 'name' columns")
    return {int(code): str(name) for code, name in zip(table['code'], table['name'])}


class BurnedAreaStatistics:
    """
    Read-only statistics over a finalized LabeledStack.
    
    Args:
        backend: Raster backend used for region reductions
        burned_value: Mask value that denotes burned pixels
    """
    
    def __init__(self, backend, burned_value: int = 1):
        if burned_value not in (0, 1):
            raise ConfigurationError(f"burned_value must be 0 or 1, got {burned_value}")
        self.backend = backend
        self.burned_value = burned_value
        self.logger = get_logger('burned_area_analysis.statistics')
    
    def burned_pixels(self, values: np.ndarray) -> np.ndarray:
        return np.isfinite(values) & (values == self.burned_value)
    
    def area_over_time(
        self,
        stack: LabeledStack,
        region: Optional[BaseGeometry],
        limit: Optional[int] = None
    ) -> Dict[str, int]:
        """
        Burned hectares per date inside the region.
        
        Args:
            stack: Burned area progression stack
            region: Aggregation region (None for the whole grid)
            limit: Only the first `limit` dates (None for all)
            
        Returns:
            Dict[str, int]: Time label -> burned area rounded to whole hectares
        """
        if limit is not None and limit <= 0:
            raise ConfigurationError(f"limit must be positive, got {limit}")
        
        areas = {}
        for mask in stack.split()[:limit]:
            burned_area = np.where(self.burned_pixels(mask.values), mask.pixel_area, 0.0)
            area_image = mask.derive({'area': burned_area}, RasterImage)
            total = self.backend.reduce_over_region(area_image, region, 'sum')['area']
            
            label = parse_time_label(mask.name)
            if label in areas:
                label = mask.name
            areas[label] = int(round(total / SQUARE_METERS_PER_HECTARE))
        
        return areas
    
    def _burned_on_grid(self, stack: LabeledStack, date_index: int, landcover: RasterImage) -> np.ndarray:
        mask = stack.mask(date_index)
        if mask.same_grid(landcover):
            return self.burned_pixels(mask.values)
        
        values = mask.data[mask.name].rio.write_nodata(np.nan)
        aligned = values.rio.reproject_match(landcover.data, resampling=Resampling.nearest)
        return self.burned_pixels(np.asarray(aligned.values, dtype='float64'))
    
    def landcover_breakdown(
        self,
        stack: LabeledStack,
        landcover: RasterImage,
        region: Optional[BaseGeometry],
        date_index: int = -1,
        class_names: Optional[Mapping[int, str]] = None
    ) -> Dict[str, Tuple[float, float]]:
        """
        Burned area per land-cover class for one date.
        
        The mask is resampled (nearest) onto the land-cover grid and pixel
        counts are converted with the land-cover pixel area.
        
        Args:
            stack: Burned area progression stack
            landcover: Categorical land-cover raster (first band used)
            region: Aggregation region
            date_index: Position of the date in the stack, -1 for the last
            class_names: Class code -> name; unknown codes keep their code
            
        Returns:
            Dict[str, Tuple[float, float]]: Class name -> (hectares, percent
            of the burned total); empty when nothing is burned
        """
        if not -stack.number_of_images <= date_index < stack.number_of_images:
            raise ConfigurationError(
                f"Date index {date_index} out of range for a stack of {stack.number_of_images} dates"
            )
        
        class_names = class_names or {}
        band = landcover.band_names[0]
        burned = self._burned_on_grid(stack, date_index, landcover)
        
        classes = np.where(burned, landcover.band(band), np.nan)
        histogram = self.backend.reduce_over_region(
            landcover.derive({band: classes}), region, 'frequency_histogram'
        )[band]
        
        pixel_hectares = landcover.pixel_area / SQUARE_METERS_PER_HECTARE
        hectares = {code: count * pixel_hectares for code, count in histogram.items()}
        total = sum(hectares.values())
        if total <= 0:
            self.logger.warning(f"No burned pixels on the land-cover grid for date index {date_index}")
            return {}
        
        named = {}
        for code, area in hectares.items():
            name = class_names.get(int(code), str(code)) if float(code).is_integer() else str(code)
            named[name] = named.get(name, 0.0) + area
        
        return {name: (area, 100.0 * area / total) for name, area in named.items()}
