"""
Local Raster Backend

File-based implementation of the raster processing backend used by the
burned area pipeline: GeoTIFF loading through rioxarray and rasterio,
date/metadata filtering, pixel-wise temporal reductions, region based
reductions, reproducible pixel sampling and GeoTIFF export.

Scene GeoTIFFs carry one band per polarization (band descriptions 'VH',
'VV', backscatter in dB) and acquisition metadata as tags:
ACQUISITION_TIME, PLATFORM_NUMBER, RELATIVE_ORBIT, ORBIT_PASS. When the
ACQUISITION_TIME tag is absent the timestamp is parsed from a
YYYYMMDDTHHMMSS token in the file name.

Author: Diego Bengochea
"""

import re
import warnings
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
import xarray as xr
import rasterio
import rasterio.errors
from rasterio.crs import CRS
from rasterio.features import geometry_mask
from rasterio.warp import Resampling
import rioxarray as rxr
import geopandas as gpd
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

# Shared utilities
from shared_utils import get_logger, find_files, UpstreamIOError

from .raster_data import ImageSeries, RasterImage, StatisticsImage

TIMESTAMP_PATTERN = re.compile(r'(\d{8}T\d{6})')

TIME_REDUCERS = ('median', 'mean', 'stdDev')


def _mode(values: np.ndarray):
    if values.size == 0:
        return None
    unique, counts = np.unique(values, return_counts=True)
    # np.unique is sorted, so ties resolve to the smallest value
    return _as_number(unique[np.argmax(counts)])


def _frequency_histogram(values: np.ndarray) -> Dict[Any, int]:
    unique, counts = np.unique(values, return_counts=True)
    return {_as_number(value): int(count) for value, count in zip(unique, counts)}


def _as_number(value):
    value = float(value)
    return int(value) if value.is_integer() else value


REGION_REDUCERS = {
    'sum': lambda values: float(values.sum()),
    'count': lambda values: int(values.size),
    'mean': lambda values: float(values.mean()) if values.size else None,
    'median': lambda values: float(np.median(values)) if values.size else None,
    'stdDev': lambda values: float(values.std(ddof=1)) if values.size > 1 else None,
    'mode': _mode,
    'frequency_histogram': _frequency_histogram,
}


def parse_timestamp(text: str) -> Optional[pd.Timestamp]:
    """Extract a YYYYMMDDTHHMMSS timestamp from an identifier, None if absent."""
    match = TIMESTAMP_PATTERN.search(text)
    if not match:
        return None
    return pd.Timestamp(pd.to_datetime(match.group(1), format='%Y%m%dT%H%M%S'))


class LocalRasterBackend:
    """
    Raster backend over local GeoTIFF files.
    
    All operations are read-only on their inputs and return new values.
    Read and write failures are raised as UpstreamIOError and never retried.
    """
    
    def __init__(self):
        self.logger = get_logger('burned_area_mapping.backend')
    
    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    
    def read_tags(self, path: Union[str, Path]) -> Dict[str, str]:
        try:
            with rasterio.open(path) as src:
                return dict(src.tags())
        except (rasterio.errors.RasterioIOError, OSError) as e:
            raise UpstreamIOError(f"Could not read tags from {path}: {e}", path=path)
    
    def load_image(self, path: Union[str, Path], image_type: type = RasterImage) -> RasterImage:
        """
        Load a GeoTIFF as an image, band names from the band descriptions.
        
        Args:
            path: GeoTIFF path
            image_type: RasterImage subclass to build
            
        Returns:
            RasterImage: Image with NaN where the file holds nodata
        """
        path = Path(path)
        
        try:
            with rasterio.open(path) as src:
                tags = dict(src.tags())
                descriptions = src.descriptions
                transform = src.transform
                crs = src.crs
            
            with rxr.open_rasterio(path, masked=True) as data:
                values = np.asarray(data.values, dtype='float64')
                
        except (rasterio.errors.RasterioIOError, OSError) as e:
            raise UpstreamIOError(f"Could not read raster {path}: {e}", path=path)
        
        names = [description or f"band_{i + 1}" for i, description in enumerate(descriptions)]
        bands = {name: values[i] for i, name in enumerate(names)}
        
        timestamp = None
        if tags.get('ACQUISITION_TIME'):
            timestamp = pd.Timestamp(tags['ACQUISITION_TIME'])
        else:
            timestamp = parse_timestamp(path.stem)
        
        properties = {
            'index': tags.get('INDEX', path.stem),
            'platform_number': tags.get('PLATFORM_NUMBER'),
            'relative_orbit': int(tags['RELATIVE_ORBIT']) if tags.get('RELATIVE_ORBIT') else None,
            'orbit_pass': tags.get('ORBIT_PASS'),
        }
        
        return image_type.from_arrays(
            bands, transform, crs, timestamp=timestamp, properties=properties
        )
    
    def load_series(self, directory: Union[str, Path], pattern: str = "*.tif") -> ImageSeries:
        """Load every matching GeoTIFF in a directory as a time-ordered series."""
        files = find_files(directory, pattern, recursive=False)
        if not files:
            raise UpstreamIOError(f"No rasters matching {pattern} found in {directory}", path=directory)
        
        images = []
        for file in files:
            image = self.load_image(file)
            if image.timestamp is None:
                raise UpstreamIOError(f"Cannot determine acquisition time of {file}", path=file)
            images.append(image)
        
        series = ImageSeries(tuple(images))
        self.logger.info(f"Loaded {len(series)} acquisitions from {directory}")
        return series
    
    def load_aligned(
        self,
        path: Union[str, Path],
        template: RasterImage,
        band_name: str,
        image_type: type = RasterImage
    ) -> RasterImage:
        """
        Load a single band raster resampled onto the template's pixel grid.
        
        Nearest neighbour resampling keeps categorical values intact.
        """
        try:
            with rxr.open_rasterio(path, masked=True) as source:
                aligned = source.rio.reproject_match(template.data, resampling=Resampling.nearest)
                values = np.asarray(aligned.values[0], dtype='float64')
        except (rasterio.errors.RasterioIOError, OSError) as e:
            raise UpstreamIOError(f"Could not read raster {path}: {e}", path=path)
        
        return template.derive({band_name: values}, image_type, timestamp=None, properties={})
    
    def load_region(self, path: Union[str, Path], crs: Any) -> BaseGeometry:
        """Read a vector file and dissolve its features into one polygon in `crs`."""
        path = Path(path)
        if not path.exists():
            raise UpstreamIOError(f"Region file not found: {path}", path=path)
        
        frame = gpd.read_file(path)
        if frame.empty:
            raise UpstreamIOError(f"Region file has no features: {path}", path=path)
        if frame.crs is None:
            frame = frame.set_crs(crs)
        
        return frame.to_crs(crs).geometry.union_all()
    
    # ------------------------------------------------------------------
    # Collection operations
    # ------------------------------------------------------------------
    
    def query(self, series: ImageSeries, start=None, end=None, **predicates) -> ImageSeries:
        """Filter a series by [start, end) and metadata equality."""
        return series.filter_date(start, end).filter_eq(**predicates)
    
    def reduce_over_time(
        self,
        series: ImageSeries,
        reducer: str,
        bands: Optional[Sequence[str]] = None,
        rename: bool = True
    ) -> StatisticsImage:
        """
        Pixel-wise temporal reduction ignoring NaN.
        
        Args:
            series: Non-empty co-registered series
            reducer: 'median', 'mean' or 'stdDev' (sample deviation, ddof=1)
            bands: Bands to reduce (default: all)
            rename: Suffix band names with the reducer, e.g. 'VH_stdDev'
            
        Returns:
            StatisticsImage: NaN where a pixel has no valid observation, and
            for stdDev where it has fewer than two
        """
        if reducer not in TIME_REDUCERS:
            raise ValueError(f"Unknown temporal reducer '{reducer}', expected one of {TIME_REDUCERS}")
        if series.is_empty:
            raise ValueError("Cannot reduce an empty series")
        
        bands = list(bands or series[0].band_names)
        reduced = {}
        
        with warnings.catch_warnings():
            # all-NaN slices and zero degrees of freedom yield NaN
            warnings.simplefilter('ignore', RuntimeWarning)
            for band in bands:
                stack = np.stack([image.band(band) for image in series])
                if reducer == 'median':
                    values = np.nanmedian(stack, axis=0)
                elif reducer == 'mean':
                    values = np.nanmean(stack, axis=0)
                else:
                    values = np.nanstd(stack, axis=0, ddof=1)
                reduced[f"{band}_{reducer}" if rename else band] = values
        
        properties = {key: value for key, value in series[0].geometry_group.predicates().items()}
        return series[0].derive(reduced, StatisticsImage, timestamp=None, properties=properties)
    
    # ------------------------------------------------------------------
    # Region operations
    # ------------------------------------------------------------------
    
    def region_mask(self, image: RasterImage, region: Optional[BaseGeometry]) -> np.ndarray:
        """Boolean mask of pixels whose centre lies inside the region (all True for None)."""
        if region is None:
            return np.ones(image.shape, dtype=bool)
        if region.is_empty:
            return np.zeros(image.shape, dtype=bool)
        
        return geometry_mask(
            [mapping(region)],
            out_shape=image.shape,
            transform=image.transform,
            invert=True
        )
    
    def sample(
        self,
        image: RasterImage,
        region: Optional[BaseGeometry],
        fraction: float,
        seed: int
    ) -> np.ndarray:
        """
        Draw a reproducible random sample of feature vectors.
        
        Candidates are the pixels inside the region where every band is
        valid, in row-major order; each is kept when its uniform draw from
        a RandomState seeded with `seed` falls below `fraction`.
        
        Returns:
            np.ndarray: (n_samples, n_bands) feature matrix
        """
        features = image.stacked()
        candidates = self.region_mask(image, region).ravel() & np.isfinite(features).all(axis=1)
        
        candidate_features = features[candidates]
        random_state = np.random.RandomState(seed)
        keep = random_state.random_sample(candidate_features.shape[0]) < fraction
        
        return candidate_features[keep]
    
    def reduce_over_region(
        self,
        image: RasterImage,
        region: Optional[BaseGeometry],
        reducer: str,
        bands: Optional[Sequence[str]] = None
    ) -> Dict[str, Any]:
        """
        Reduce valid pixels inside a region, one value per band.
        
        Reducers: sum, count, mean, median, stdDev, mode (ties to the smallest
        value) and frequency_histogram ({value: pixel count}). Scalar reducers
        other than sum and count return None when the region holds no valid
        pixel.
        """
        if reducer not in REGION_REDUCERS:
            raise ValueError(f"Unknown region reducer '{reducer}', expected one of {sorted(REGION_REDUCERS)}")
        
        inside = self.region_mask(image, region)
        result = {}
        for name in bands or image.band_names:
            values = image.band(name)[inside]
            result[name] = REGION_REDUCERS[reducer](values[np.isfinite(values)])
        
        return result
    
    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    
    def persist(
        self,
        image: RasterImage,
        path: Union[str, Path],
        region: Optional[BaseGeometry] = None,
        resolution: Optional[float] = None,
        crs: Any = None,
        tags: Optional[Mapping[str, Any]] = None
    ) -> Path:
        """
        Export an image as a float32 GeoTIFF with NaN nodata.
        
        Pixels outside `region` are written as nodata. The image is
        reprojected with nearest neighbour resampling when `crs` or
        `resolution` differ from its own grid.
        
        Returns:
            Path: Written file
        """
        path = Path(path)
        names = list(image.band_names)
        values = np.stack([image.band(name) for name in names]).astype('float32')
        
        if region is not None:
            values[:, ~self.region_mask(image, region)] = np.nan
        
        transform = image.transform
        out_crs = image.crs
        
        target_crs = CRS.from_user_input(crs) if crs is not None else image.crs
        needs_reprojection = (
            target_crs != image.crs
            or (resolution is not None and not np.isclose(resolution, image.pixel_size))
        )
        
        if needs_reprojection:
            array = xr.DataArray(
                values,
                dims=('band', 'y', 'x'),
                coords={'band': np.arange(1, len(names) + 1), 'y': image.data['y'], 'x': image.data['x']}
            )
            array = array.rio.write_crs(image.crs).rio.write_transform(image.transform)
            array = array.rio.write_nodata(np.nan)
            array = array.rio.reproject(
                target_crs,
                resolution=resolution,
                resampling=Resampling.nearest
            )
            values = np.asarray(array.values, dtype='float32')
            transform = array.rio.transform()
            out_crs = target_crs
            self.logger.info(f"Reprojected export to {target_crs} at {resolution} m")
        
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with rasterio.open(
                path,
                mode="w",
                driver="GTiff",
                height=values.shape[-2],
                width=values.shape[-1],
                count=values.shape[0],
                dtype='float32',
                crs=out_crs,
                transform=transform,
                nodata=np.nan,
                compress='lzw'
            ) as dst:
                dst.write(values)
                for i, name in enumerate(names, start=1):
                    dst.set_band_description(i, name)
                if tags:
                    dst.update_tags(**{key: str(value) for key, value in tags.items()})
                    
        except (rasterio.errors.RasterioIOError, OSError) as e:
            raise UpstreamIOError(f"Could not write raster {path}: {e}", path=path)
        
        self.logger.info(f"Exported {len(names)} band(s) to {path}")
        return path
