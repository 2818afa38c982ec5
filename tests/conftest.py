"""
Shared fixtures for the burned area pipeline tests.

Synthetic Sentinel-1 scenes on small UTM grids: a 12-month constant
baseline (VH -15 dB, VV -10 dB) and post-fire scenes where a 2x2 block in
the upper-left corner shifts to VH -22 dB, VV -9 dB.
"""

import functools
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd
import pytest
from rasterio.transform import Affine
from shapely.geometry import box

from burned_area_mapping.core.raster_data import BinaryMask, ImageSeries, RasterImage

CRS = 'EPSG:32634'
FIRE_START = pd.Timestamp('2023-08-22')
FIRE_END = pd.Timestamp('2023-08-30')


def grid_transform(resolution: float = 20.0, size: int = 3) -> Affine:
    return Affine(resolution, 0.0, 0.0, 0.0, -resolution, resolution * size)


class SyntheticSceneGenerator:
    """Generate co-registered synthetic VH/VV scenes."""
    
    def __init__(self, size: int = 3, resolution: float = 20.0):
        self.size = size
        self.resolution = resolution
        self.transform = grid_transform(resolution, size)
    
    @property
    def shape(self) -> Tuple[int, int]:
        return (self.size, self.size)
    
    @functools.cached_property
    def extent(self):
        return box(0, 0, self.size * self.resolution, self.size * self.resolution)
    
    @property
    def reference_region(self):
        """Polygon covering the centres of the upper-left 2x2 block."""
        return box(0, self.resolution * (self.size - 2), 2 * self.resolution, self.resolution * self.size)
    
    def scene(
        self,
        vh: np.ndarray,
        vv: np.ndarray,
        timestamp,
        platform: str = 'A',
        orbit: int = 36,
        orbit_pass: str = 'DESCENDING'
    ) -> RasterImage:
        timestamp = pd.Timestamp(timestamp)
        return RasterImage.from_arrays(
            {'VH': vh, 'VV': vv},
            self.transform,
            CRS,
            timestamp=timestamp,
            properties={
                'index': f"S1{platform}_IW_GRDH_{timestamp:%Y%m%dT%H%M%S}",
                'platform_number': platform,
                'relative_orbit': orbit,
                'orbit_pass': orbit_pass,
            }
        )
    
    def constant_scene(self, timestamp, vh: float = -15.0, vv: float = -10.0, **metadata) -> RasterImage:
        return self.scene(np.full(self.shape, vh), np.full(self.shape, vv), timestamp, **metadata)
    
    def baseline_scenes(self, noise: float = 0.0, seed: int = 42, **metadata):
        """Twelve monthly pre-fire scenes, the last one inside the month before the fire."""
        rng = np.random.RandomState(seed)
        scenes = []
        for months_before in range(12, 0, -1):
            timestamp = pd.Timestamp('2023-08-10T04:30:12') - pd.DateOffset(months=months_before - 1)
            vh = -15.0 + noise * rng.standard_normal(self.shape)
            vv = -10.0 + noise * rng.standard_normal(self.shape)
            scenes.append(self.scene(vh, vv, timestamp, **metadata))
        return scenes
    
    def burned_scene(self, timestamp='2023-08-25T04:30:12', block: Optional[np.ndarray] = None, **metadata) -> RasterImage:
        if block is None:
            block = self.corner_block()
        vh = np.where(block, -22.0, -15.0)
        vv = np.where(block, -9.0, -10.0)
        return self.scene(vh, vv, timestamp, **metadata)
    
    def corner_block(self, rows: int = 2, cols: int = 2) -> np.ndarray:
        block = np.zeros(self.shape, dtype=bool)
        block[:rows, :cols] = True
        return block
    
    def mask(self, values: np.ndarray, name: str, timestamp) -> BinaryMask:
        return BinaryMask.from_arrays(
            {name: np.asarray(values, dtype='float64')},
            self.transform,
            CRS,
            timestamp=pd.Timestamp(timestamp),
            properties={'index': name}
        )


@pytest.fixture
def generator() -> SyntheticSceneGenerator:
    return SyntheticSceneGenerator()


@pytest.fixture
def hectare_generator() -> SyntheticSceneGenerator:
    """100 m pixels, one hectare each."""
    return SyntheticSceneGenerator(size=3, resolution=100.0)


@pytest.fixture
def event_series(generator) -> ImageSeries:
    return ImageSeries(tuple(generator.baseline_scenes() + [generator.burned_scene()]))


@pytest.fixture
def backend():
    from burned_area_mapping.core.raster_backend import LocalRasterBackend
    return LocalRasterBackend()


@pytest.fixture
def mapping_config(tmp_path):
    """Writes a mapping configuration for the synthetic event and returns its path."""
    def _write(**overrides: Dict) -> str:
        import yaml
        config = {
            'fire_event': {'start_date': '2023-08-22', 'end_date': '2023-08-30'},
            'data': {'water_occurrence_file': ''},
            'preprocessing': {
                'kernel_size': 1,
                'selected_indices': ['logRatio_VH', 'logRatio_VV', 'diffRFDI'],
                'polarization_filter': 'ALL',
            },
            'clustering': {'sample_fraction': 1.0, 'seed': 42, 'region_inset_m': 0},
            'cleaning': {'min_patch_pixels': 3, 'focal_radius_m': 40, 'connectivity': 8},
            'export': {'scale': 20, 'crs': CRS, 'region_buffer_m': 0},
            'output': {'stack_file': str(tmp_path / 'stack.tif')},
            'compute': {'scheduler': 'synchronous'},
            'logging': {'level': 'WARNING'},
        }
        for section, values in overrides.items():
            config.setdefault(section, {}).update(values)
        path = tmp_path / 'mapping_config.yaml'
        path.write_text(yaml.safe_dump(config))
        return str(path)
    return _write
