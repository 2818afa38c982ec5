"""
Raster Data Model

Immutable geo-registered raster values used throughout the burned area
mapping pipeline. Every image wraps an xarray Dataset whose data variables
are the bands, laid out on (y, x) dimensions with the CRS and affine
transform written through rioxarray. Transformations never modify an image
in place; they build a new one on the same pixel grid with `derive`.

Author: Diego Bengochea
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import xarray as xr
import rioxarray  # noqa: F401  registers the .rio accessor
from rasterio.transform import Affine


def build_dataset(bands: Mapping[str, np.ndarray], transform: Affine, crs: Any) -> xr.Dataset:
    """
    Build a (y, x) band Dataset with pixel-centre coordinates from an affine transform.
    
    Args:
        bands: Mapping of band name to 2D array, all with the same shape
        transform: Affine transform of the upper-left pixel corner
        crs: Anything rioxarray accepts as a CRS
        
    Returns:
        xr.Dataset: Dataset with CRS and transform written
    """
    if not bands:
        raise ValueError("At least one band is required")
    
    arrays = {name: np.asarray(values, dtype='float64') for name, values in bands.items()}
    shapes = {values.shape for values in arrays.values()}
    if len(shapes) != 1:
        raise ValueError(f"All bands must share one pixel grid, got shapes {sorted(shapes)}")
    
    shape = shapes.pop()
    if len(shape) != 2:
        raise ValueError(f"Bands must be 2D arrays, got shape {shape}")
    
    height, width = shape
    xs = transform.c + (np.arange(width) + 0.5) * transform.a
    ys = transform.f + (np.arange(height) + 0.5) * transform.e
    
    dataset = xr.Dataset(
        {name: (('y', 'x'), values) for name, values in arrays.items()},
        coords={'y': ys, 'x': xs}
    )
    dataset = dataset.rio.write_crs(crs)
    dataset = dataset.rio.write_transform(transform)
    return dataset


@dataclass(frozen=True)
class GeometryGroup:
    """Acquisition geometry shared by images that may be compared pixel by pixel."""
    platform_number: Optional[str] = None
    relative_orbit: Optional[int] = None
    orbit_pass: Optional[str] = None
    
    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> 'GeometryGroup':
        orbit = properties.get('relative_orbit')
        return cls(
            platform_number=properties.get('platform_number'),
            relative_orbit=int(orbit) if orbit is not None else None,
            orbit_pass=properties.get('orbit_pass')
        )
    
    def predicates(self) -> Dict[str, Any]:
        return {
            'platform_number': self.platform_number,
            'relative_orbit': self.relative_orbit,
            'orbit_pass': self.orbit_pass
        }
    
    @property
    def label(self) -> str:
        parts = [self.platform_number, self.relative_orbit, self.orbit_pass]
        return '_'.join('any' if part is None else str(part) for part in parts)


@dataclass(frozen=True, eq=False)
class RasterImage:
    """
    Immutable multi-band raster on a fixed pixel grid.
    
    Attributes:
        data: Band Dataset with (y, x) dimensions and rioxarray georeferencing
        timestamp: Acquisition time, None for derived composites
        properties: Acquisition metadata (platform_number, relative_orbit,
            orbit_pass, index)
    """
    data: xr.Dataset
    timestamp: Optional[pd.Timestamp] = None
    properties: Mapping[str, Any] = field(default_factory=dict)
    
    def __post_init__(self):
        if not self.data.data_vars:
            raise ValueError("A raster image needs at least one band")
        if self.timestamp is not None:
            object.__setattr__(self, 'timestamp', pd.Timestamp(self.timestamp))
        object.__setattr__(self, 'properties', dict(self.properties or {}))
    
    @classmethod
    def from_arrays(
        cls,
        bands: Mapping[str, np.ndarray],
        transform: Affine,
        crs: Any,
        timestamp: Optional[pd.Timestamp] = None,
        properties: Optional[Mapping[str, Any]] = None,
        **fields
    ):
        return cls(
            data=build_dataset(bands, transform, crs),
            timestamp=timestamp,
            properties=properties or {},
            **fields
        )
    
    @property
    def band_names(self) -> Tuple[str, ...]:
        return tuple(str(name) for name in self.data.data_vars)
    
    @property
    def shape(self) -> Tuple[int, int]:
        return (self.data.sizes['y'], self.data.sizes['x'])
    
    @property
    def transform(self) -> Affine:
        return self.data.rio.transform()
    
    @property
    def crs(self):
        return self.data.rio.crs
    
    @property
    def pixel_size(self) -> float:
        """Linear pixel size in CRS units (mean of x and y resolution)."""
        transform = self.transform
        return (abs(transform.a) + abs(transform.e)) / 2.0
    
    @property
    def pixel_area(self) -> float:
        transform = self.transform
        return abs(transform.a * transform.e)
    
    @property
    def identifier(self) -> str:
        """Band identifier for this acquisition: the source index, else its timestamp."""
        index = self.properties.get('index')
        if index:
            return str(index)
        if self.timestamp is not None:
            return self.timestamp.strftime('%Y%m%dT%H%M%S')
        return 'composite'
    
    @property
    def geometry_group(self) -> GeometryGroup:
        return GeometryGroup.from_properties(self.properties)
    
    def band(self, name: str) -> np.ndarray:
        if name not in self.data.data_vars:
            raise KeyError(f"Band '{name}' not found, available bands: {list(self.band_names)}")
        return self.data[name].values
    
    def stacked(self, names: Optional[Sequence[str]] = None) -> np.ndarray:
        """Bands as a (pixels, bands) feature matrix in row-major pixel order."""
        names = list(names or self.band_names)
        return np.stack([self.band(name).ravel() for name in names], axis=1)
    
    def select(self, names: Sequence[str]):
        missing = [name for name in names if name not in self.data.data_vars]
        if missing:
            raise KeyError(f"Bands not found: {missing}")
        return self.derive({name: self.band(name) for name in names})
    
    def derive(self, bands: Mapping[str, np.ndarray], image_type: Optional[type] = None, **fields):
        """
        Build a new image on this image's pixel grid.
        
        Metadata is carried over unless overridden in `fields`. When
        `image_type` differs from this image's type only the base fields are
        carried over.
        """
        data = build_dataset(bands, self.transform, self.crs)
        if image_type is None or image_type is type(self):
            return replace(self, data=data, **fields)
        
        fields.setdefault('timestamp', self.timestamp)
        fields.setdefault('properties', self.properties)
        return image_type(data=data, **fields)
    
    def same_grid(self, other: 'RasterImage') -> bool:
        return (
            self.shape == other.shape
            and self.transform.almost_equals(other.transform)
            and self.crs == other.crs
        )


@dataclass(frozen=True, eq=False)
class StatisticsImage(RasterImage):
    """Per-pixel temporal statistics, bands named `<band>_median`, `<band>_mean`, `<band>_stdDev`."""


@dataclass(frozen=True, eq=False)
class ChangeIndexImage(RasterImage):
    """Change metrics of one post-fire image, tied to the geometry group of its baseline."""
    group: Optional[GeometryGroup] = None


@dataclass(frozen=True, eq=False)
class BinaryMask(RasterImage):
    """
    Single band classification outcome valued 0 or 1, NaN where no data.
    """
    
    def __post_init__(self):
        super().__post_init__()
        if len(self.data.data_vars) != 1:
            raise ValueError(f"A binary mask has exactly one band, got {len(self.data.data_vars)}")
        values = self.values
        finite = values[np.isfinite(values)]
        if not np.isin(finite, (0.0, 1.0)).all():
            raise ValueError("Binary mask values must be 0, 1 or NaN")
    
    @property
    def name(self) -> str:
        return self.band_names[0]
    
    @property
    def values(self) -> np.ndarray:
        return self.data[self.band_names[0]].values


@dataclass(frozen=True)
class ImageSeries:
    """
    Timestamp-ordered, co-registered sequence of raster images.
    """
    images: Tuple[RasterImage, ...] = ()
    
    def __post_init__(self):
        images = tuple(self.images)
        if any(image.timestamp is None for image in images):
            raise ValueError("Every image in a series needs an acquisition timestamp")
        
        ordered = tuple(sorted(images, key=lambda image: image.timestamp))
        for image in ordered[1:]:
            if not image.same_grid(ordered[0]):
                raise ValueError(
                    f"Image {image.identifier} is not co-registered with {ordered[0].identifier}"
                )
        object.__setattr__(self, 'images', ordered)
    
    def __len__(self) -> int:
        return len(self.images)
    
    def __iter__(self) -> Iterator[RasterImage]:
        return iter(self.images)
    
    def __getitem__(self, index):
        return self.images[index]
    
    @property
    def is_empty(self) -> bool:
        return len(self.images) == 0
    
    @property
    def timestamps(self) -> Tuple[pd.Timestamp, ...]:
        return tuple(image.timestamp for image in self.images)
    
    def filter_date(self, start=None, end=None) -> 'ImageSeries':
        """Keep images with start <= timestamp < end; a None bound is open."""
        start = pd.Timestamp(start) if start is not None else None
        end = pd.Timestamp(end) if end is not None else None
        
        kept = [
            image for image in self.images
            if (start is None or image.timestamp >= start)
            and (end is None or image.timestamp < end)
        ]
        return ImageSeries(tuple(kept))
    
    def filter_eq(self, **predicates) -> 'ImageSeries':
        """Keep images whose metadata equals every non-None predicate."""
        active = {key: value for key, value in predicates.items() if value is not None}
        kept = [
            image for image in self.images
            if all(_metadata_equal(image.properties.get(key), value) for key, value in active.items())
        ]
        return ImageSeries(tuple(kept))
    
    def map(self, function) -> 'ImageSeries':
        return ImageSeries(tuple(function(image) for image in self.images))
    
    def groups(self) -> Dict[GeometryGroup, 'ImageSeries']:
        """Split the series by acquisition geometry, groups in order of first appearance."""
        grouped: Dict[GeometryGroup, list] = {}
        for image in self.images:
            grouped.setdefault(image.geometry_group, []).append(image)
        return {group: ImageSeries(tuple(images)) for group, images in grouped.items()}


def _metadata_equal(actual, expected) -> bool:
    if actual is None:
        return False
    if isinstance(expected, (int, np.integer)) and not isinstance(expected, bool):
        try:
            return int(actual) == int(expected)
        except (TypeError, ValueError):
            return False
    return str(actual) == str(expected)
