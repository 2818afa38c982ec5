"""
Tests for the local GeoTIFF raster backend.
"""

import json

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

from burned_area_mapping.core.mapping_pipeline import BurnedAreaMappingPipeline
from burned_area_mapping.core.raster_data import RasterImage
from shared_utils import UpstreamIOError

from conftest import CRS


def write_scene(backend, scene, directory, with_time_tag=True):
    tags = {
        'PLATFORM_NUMBER': scene.properties['platform_number'],
        'RELATIVE_ORBIT': scene.properties['relative_orbit'],
        'ORBIT_PASS': scene.properties['orbit_pass'],
    }
    if with_time_tag:
        tags['ACQUISITION_TIME'] = scene.timestamp.isoformat()
    return backend.persist(scene, directory / f"{scene.identifier}.tif", tags=tags)


def write_region(geometry, path):
    gpd.GeoDataFrame(geometry=[geometry], crs=CRS).to_file(path, driver='GPKG')
    return path


class TestLoading:
    
    def test_scene_round_trip(self, backend, generator, tmp_path):
        scene = generator.burned_scene()
        loaded = backend.load_image(write_scene(backend, scene, tmp_path))
        
        assert loaded.band_names == ('VH', 'VV')
        assert loaded.timestamp == scene.timestamp
        assert loaded.geometry_group == scene.geometry_group
        assert loaded.identifier == scene.identifier
        assert loaded.same_grid(scene)
        np.testing.assert_allclose(loaded.band('VH'), scene.band('VH'))
    
    def test_timestamp_from_file_name(self, backend, generator, tmp_path):
        scene = generator.burned_scene()
        loaded = backend.load_image(write_scene(backend, scene, tmp_path, with_time_tag=False))
        assert loaded.timestamp == pd.Timestamp('2023-08-25T04:30:12')
    
    def test_load_series_ordered(self, backend, generator, tmp_path):
        for scene in reversed(generator.baseline_scenes()[:3]):
            write_scene(backend, scene, tmp_path)
        series = backend.load_series(tmp_path)
        
        assert len(series) == 3
        assert list(series.timestamps) == sorted(series.timestamps)
    
    def test_missing_file(self, backend, tmp_path):
        with pytest.raises(UpstreamIOError):
            backend.load_image(tmp_path / 'absent.tif')
    
    def test_empty_directory(self, backend, tmp_path):
        with pytest.raises(UpstreamIOError):
            backend.load_series(tmp_path)
    
    def test_load_region_dissolves_features(self, backend, tmp_path):
        path = tmp_path / 'regions.gpkg'
        gpd.GeoDataFrame(geometry=[box(0, 0, 10, 10), box(10, 0, 20, 10)], crs=CRS).to_file(path, driver='GPKG')
        
        region = backend.load_region(path, CRS)
        assert region.area == pytest.approx(200.0)
    
    def test_load_aligned_nearest(self, backend, generator, tmp_path):
        coarse = RasterImage.from_arrays(
            {'occurrence': np.array([[80.0]])}, generator.transform * generator.transform.scale(3), CRS
        )
        path = backend.persist(coarse, tmp_path / 'water.tif')
        aligned = backend.load_aligned(path, generator.burned_scene(), 'occurrence')
        
        assert aligned.shape == (3, 3)
        np.testing.assert_allclose(aligned.band('occurrence'), 80.0)


class TestReductions:
    
    def test_reduce_over_time_std_is_sample_deviation(self, backend, generator):
        from burned_area_mapping.core.raster_data import ImageSeries
        series = ImageSeries(tuple(
            generator.constant_scene(f'2023-0{month}-01', vh=value) for month, value in ((1, -14.0), (2, -16.0))
        ))
        reduced = backend.reduce_over_time(series, 'stdDev', bands=['VH'])
        
        assert reduced.band_names == ('VH_stdDev',)
        np.testing.assert_allclose(reduced.band('VH_stdDev'), np.std([-14.0, -16.0], ddof=1))
    
    def test_reduce_over_time_unknown_reducer(self, backend, event_series):
        with pytest.raises(ValueError):
            backend.reduce_over_time(event_series, 'max')
    
    def test_region_reducers(self, backend, generator):
        image = generator.burned_scene()
        region = generator.reference_region
        
        assert backend.reduce_over_region(image, region, 'count')['VH'] == 4
        assert backend.reduce_over_region(image, region, 'mean')['VH'] == pytest.approx(-22.0)
        assert backend.reduce_over_region(image, None, 'frequency_histogram')['VV'] == {-10: 5, -9: 4}
    
    def test_sample_is_reproducible_and_in_region(self, backend, generator):
        image = generator.burned_scene()
        first = backend.sample(image, generator.reference_region, 0.5, seed=11)
        second = backend.sample(image, generator.reference_region, 0.5, seed=11)
        
        np.testing.assert_array_equal(first, second)
        assert (first[:, 0] == -22.0).all()
    
    def test_persist_masks_outside_region(self, backend, generator, tmp_path):
        path = backend.persist(generator.burned_scene(), tmp_path / 'clipped.tif', region=generator.reference_region)
        loaded = backend.load_image(path)
        
        np.testing.assert_array_equal(np.isfinite(loaded.band('VH')), generator.corner_block())
    
    def test_persist_reprojects_to_scale(self, backend, generator, tmp_path):
        path = backend.persist(generator.burned_scene(), tmp_path / 'coarse.tif', resolution=30.0, crs=CRS)
        assert backend.load_image(path).pixel_size == pytest.approx(30.0)


def test_full_pipeline_from_files(backend, generator, mapping_config, tmp_path):
    scenes_dir = tmp_path / 'scenes'
    scenes_dir.mkdir()
    for scene in generator.baseline_scenes() + [generator.burned_scene()]:
        write_scene(backend, scene, scenes_dir)
    
    config_path = mapping_config(data={
        'scenes_dir': str(scenes_dir),
        'roi_file': str(write_region(generator.extent, tmp_path / 'roi.gpkg')),
        'reference_region_file': str(write_region(generator.reference_region, tmp_path / 'reference.gpkg')),
        'water_occurrence_file': '',
    })
    
    assert BurnedAreaMappingPipeline(config_path).run_full_pipeline()
    
    stack = BurnedAreaMappingPipeline(config_path).stack_builder.load(tmp_path / 'stack.tif')
    assert stack.band_names == ('S1A_IW_GRDH_20230825T043012',)
    np.testing.assert_array_equal(stack.mask(0).values, generator.corner_block().astype(float))


def test_full_pipeline_records_missing_dates_without_stack(backend, generator, mapping_config, tmp_path):
    scenes_dir = tmp_path / 'scenes'
    scenes_dir.mkdir()
    other_orbit = generator.burned_scene('2023-08-27T16:45:00', orbit=109, orbit_pass='ASCENDING')
    for scene in generator.baseline_scenes() + [other_orbit]:
        write_scene(backend, scene, scenes_dir)
    
    config_path = mapping_config(data={
        'scenes_dir': str(scenes_dir),
        'roi_file': str(write_region(generator.extent, tmp_path / 'roi.gpkg')),
        'reference_region_file': str(write_region(generator.reference_region, tmp_path / 'reference.gpkg')),
        'water_occurrence_file': '',
    })
    
    assert not BurnedAreaMappingPipeline(config_path).run_full_pipeline()
    
    assert not (tmp_path / 'stack.tif').exists()
    record = json.loads((tmp_path / 'stack_missing_dates.json').read_text())
    assert list(record) == ['S1A_IW_GRDH_20230827T164500']
    assert record['S1A_IW_GRDH_20230827T164500'].startswith('No pre-fire acquisitions')
