"""
Burned Area Mapping Pipeline

Orchestrates the progression mapping of one fire event:

1. Load the Sentinel-1 series, regions and water mask
2. Build one pre-fire baseline per acquisition geometry
3. For every post-fire acquisition, independently: change metrics,
   speckle smoothing, feature selection, clustering and cleaning
4. Stack the per-date masks in date order and export the stack

Author: Diego Bengochea
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd
from shapely.geometry.base import BaseGeometry

# Shared utilities
from shared_utils import (
    setup_logging, get_logger, load_config, validate_config, log_pipeline_start, log_pipeline_end, log_section,
    EmptyBaselineError, ClusterResolutionError, EmptyStackError, BurnedAreaError
)
from shared_utils.config_utils import save_config

from .baseline_statistics import Baseline, BaselineStatsBuilder
from .change_metrics import ChangeMetricComputer, add_polarimetric_indices, build_water_mask
from .dask_utils import DaskClusterManager
from .feature_selection import FeatureSelector
from .morphological_cleaning import MorphologicalCleaner
from .raster_backend import LocalRasterBackend
from .raster_data import BinaryMask, GeometryGroup, ImageSeries, RasterImage
from .settings import MappingSettings
from .spatial_smoothing import SpatialSmoother
from .temporal_stack import DateOutcome, LabeledStack, TemporalStackBuilder
from .timestep_clustering import PerTimestepClusterer, inset_region


@dataclass(frozen=True, eq=False)
class DateContext:
    """Read-only inputs shared by every per-date task."""
    computer: ChangeMetricComputer
    smoother: SpatialSmoother
    selector: FeatureSelector
    clusterer: PerTimestepClusterer
    cleaner: MorphologicalCleaner
    region: Optional[BaseGeometry]
    reference_region: Optional[BaseGeometry]
    baselines: Dict[GeometryGroup, Baseline] = field(default_factory=dict)
    baseline_errors: Dict[GeometryGroup, str] = field(default_factory=dict)
    
    def baseline_for(self, group: GeometryGroup) -> Baseline:
        if group in self.baselines:
            return self.baselines[group]
        reason = self.baseline_errors.get(group, f"no baseline for geometry {group.label}")
        raise EmptyBaselineError(reason, group=group)


def map_single_date(post: RasterImage, context: DateContext) -> DateOutcome:
    """
    Burned area mask of one post-fire acquisition.
    
    Pure function of its inputs. An empty baseline degrades the change
    metrics to fully masked; a failed cluster resolution is reported as a
    missing date. Any other error propagates.
    """
    logger = get_logger('burned_area_mapping.dates')
    group = post.geometry_group
    baseline_issue = None
    
    try:
        change = context.computer.compute(post, context.baseline_for(group))
    except EmptyBaselineError as e:
        logger.warning(f"{post.identifier}: {e}, change metrics fully masked")
        baseline_issue = str(e)
        change = context.computer.masked(post, group)
    
    smoothed = context.smoother.smooth(change)
    features = context.selector.select_image(smoothed)
    
    try:
        mask = context.clusterer.classify(features, context.region, context.reference_region)
    except ClusterResolutionError as e:
        reason = f"{baseline_issue} ({e})" if baseline_issue else str(e)
        logger.warning(f"{post.identifier}: clustering failed, {reason}")
        return DateOutcome(post.identifier, post.timestamp, None, reason)
    
    cleaned = context.cleaner.clean(mask)
    return DateOutcome(post.identifier, post.timestamp, cleaned, None)


class BurnedAreaMappingPipeline:
    """
    Burned area progression mapping from Sentinel-1 backscatter.
    
    Configuration is read once and frozen into MappingSettings; every
    stage receives its parameters explicitly.
    """
    
    def __init__(self, config: Optional[Union[str, Path]] = None):
        """
        Initialize the mapping pipeline.
        
        Args:
            config: Path to config file
        """
        self.config = load_config(config, component_name="burned_area_mapping")
        
        logging_config = self.config.get('logging', {})
        self.logger = setup_logging(
            level=logging_config.get('level', 'INFO'),
            component_name='burned_area_mapping',
            log_file=logging_config.get('log_file')
        )
        
        validate_config(self.config, required_sections=["fire_event"])
        self.settings = MappingSettings.from_config(self.config)
        self.backend = LocalRasterBackend()
        self.stack_builder = TemporalStackBuilder(self.backend)
        self.dask_manager = DaskClusterManager(self.settings.compute)
    
    def load_inputs(self) -> Tuple[ImageSeries, BaseGeometry, Optional[BaseGeometry], Optional[BinaryMask]]:
        """Load the acquisition series, ROI, reference region (None without a file) and water mask."""
        paths = self.settings.paths
        
        series = self.backend.load_series(paths.scenes_dir, paths.scene_pattern)
        series = self.backend.query(series, **self.settings.acquisition.predicates())
        if series.is_empty:
            raise BurnedAreaError("No acquisitions match the configured platform, orbit and pass filters")
        
        crs = series[0].crs
        region = self.backend.load_region(paths.roi_file, crs)
        
        if paths.reference_region_file and Path(paths.reference_region_file).exists():
            reference_region = self.backend.load_region(paths.reference_region_file, crs)
        else:
            self.logger.info("No reference burned region file, using the inset region of interest")
            reference_region = None
        
        water_mask = None
        if paths.water_occurrence_file and Path(paths.water_occurrence_file).exists():
            occurrence = self.backend.load_aligned(paths.water_occurrence_file, series[0], 'occurrence')
            water_mask = build_water_mask(occurrence, self.settings.preprocessing.water_occurrence_threshold)
            self.logger.info(f"Water mask: {int((water_mask.values == 0).sum())} water pixels excluded")
        else:
            self.logger.warning("No water occurrence raster found, water pixels are not masked")
        
        return series, region, reference_region, water_mask
    
    def split_series(self, series: ImageSeries) -> ImageSeries:
        """Post-fire acquisitions: start_date <= time < end_date + 1 day."""
        fire_event = self.settings.fire_event
        return self.backend.query(
            series,
            fire_event.start_date,
            fire_event.end_date.normalize() + pd.Timedelta(days=1)
        )
    
    def build_baselines(self, series: ImageSeries, groups) -> Tuple[Dict[GeometryGroup, Baseline], Dict[GeometryGroup, str]]:
        """One baseline per geometry group; empty groups are recorded, not raised."""
        fire_event = self.settings.fire_event
        builder = BaselineStatsBuilder(
            self.backend,
            fire_event.start_date,
            baseline_months=fire_event.baseline_months,
            reference_months=fire_event.reference_months
        )
        
        baselines, errors = {}, {}
        for group in groups:
            try:
                baselines[group] = builder.build(series, group)
            except EmptyBaselineError as e:
                self.logger.warning(str(e))
                errors[group] = str(e)
        
        return baselines, errors

    def training_regions(
        self,
        region: Optional[BaseGeometry],
        reference_region: Optional[BaseGeometry]
    ) -> Tuple[Optional[BaseGeometry], Optional[BaseGeometry]]:
        """Inset ROI for sampling, and the reference polygon (the inset ROI when none is given)."""
        training_region = inset_region(region, self.settings.clustering.region_inset_m)
        if reference_region is None:
            reference_region = training_region
        return training_region, reference_region

    def build_context(
        self,
        series: ImageSeries,
        post_series: ImageSeries,
        region: Optional[BaseGeometry],
        reference_region: Optional[BaseGeometry],
        water_mask: Optional[BinaryMask] = None
    ) -> DateContext:
        settings = self.settings
        region, reference_region = self.training_regions(region, reference_region)
        baselines, errors = self.build_baselines(series, post_series.groups().keys())
        
        selector = FeatureSelector(settings.preprocessing.polarization_filter)
        kinds = selector.select(settings.preprocessing.selected_indices)
        self.logger.info(f"Clustering features: {[kind.value for kind in kinds]}")
        
        clustering = settings.clustering
        return DateContext(
            computer=ChangeMetricComputer(settings.preprocessing.selected_indices, water_mask),
            smoother=SpatialSmoother.from_kernel_size(settings.preprocessing.kernel_size),
            selector=selector,
            clusterer=PerTimestepClusterer(
                self.backend,
                sample_fraction=clustering.sample_fraction,
                seed=clustering.seed,
                n_clusters=clustering.n_clusters,
                n_init=clustering.n_init,
                max_iter=clustering.max_iter,
                normalize=clustering.normalize_features
            ),
            cleaner=MorphologicalCleaner.from_radius(
                settings.cleaning.min_patch_pixels,
                settings.cleaning.focal_radius_m,
                series[0].pixel_size,
                settings.cleaning.connectivity
            ),
            region=region,
            reference_region=reference_region,
            baselines=baselines,
            baseline_errors=errors
        )
    
    def map_dates(self, post_series: ImageSeries, context: DateContext) -> List[DateOutcome]:
        """Dispatch one task per post-fire date; outcomes follow the series order."""
        return self.dask_manager.map_ordered(map_single_date, list(post_series), context)
    
    def run(
        self,
        series: ImageSeries,
        region: Optional[BaseGeometry],
        reference_region: Optional[BaseGeometry],
        water_mask: Optional[BinaryMask] = None
    ) -> LabeledStack:
        """
        Map the fire progression of an in-memory series.
        
        Args:
            series: Full VH/VV acquisition series (baseline and post-fire)
            region: Region of interest, inset before training samples are drawn
            reference_region: Polygon covering confirmed burned area, None for the inset ROI
            water_mask: Optional land mask (1 land, 0 water)
            
        Returns:
            LabeledStack: Per-date masks with the missing dates recorded
            
        Raises:
            EmptyStackError: If no post-fire date produced a mask
        """
        series = series.map(add_polarimetric_indices)
        post_series = self.split_series(series)
        if post_series.is_empty:
            raise BurnedAreaError(
                f"No acquisitions between {self.settings.fire_event.start_date.date()} "
                f"and {self.settings.fire_event.end_date.date()}"
            )
        self.logger.info(f"{len(post_series)} post-fire acquisitions in {len(post_series.groups())} geometry groups")
        
        context = self.build_context(series, post_series, region, reference_region, water_mask)
        outcomes = self.map_dates(post_series, context)
        return self.stack_builder.build(outcomes)
    
    def save_stack(self, stack: LabeledStack, region: Optional[BaseGeometry]) -> Path:
        """Export the stack over the inset ROI grown by the export buffer, with its missing-date record."""
        export = self.settings.export
        export_region = inset_region(region, self.settings.clustering.region_inset_m)
        if export_region is not None:
            export_region = export_region.buffer(export.region_buffer_m)
        
        output_file = self.stack_builder.save(
            stack,
            self.settings.paths.stack_file,
            region=export_region,
            resolution=export.scale,
            crs=export.crs
        )
        self.stack_builder.save_missing(stack.missing, output_file)
        save_config(self.config, output_file.with_name(f"{output_file.stem}_config.yaml"))
        return output_file
    
    def run_full_pipeline(self) -> bool:
        """
        Run the complete mapping pipeline from files to the exported stack.
        
        When no date produces a mask, the missing-date record is still
        written next to the configured stack file.
        
        Returns:
            bool: True if the stack was produced and exported
        """
        start_time = time.time()
        log_pipeline_start(self.logger, "burned area mapping", self.config)
        
        try:
            log_section(self.logger, "Loading inputs")
            series, region, reference_region, water_mask = self.load_inputs()
            
            log_section(self.logger, "Mapping acquisition dates")
            stack = self.run(series, region, reference_region, water_mask)
            
            log_section(self.logger, "Exporting stack")
            output_file = self.save_stack(stack, region)
            
            self.logger.info(f"✅ Burned area stack with {stack.number_of_images} dates saved to: {output_file}")
            if stack.missing:
                self.logger.warning(f"⚠️ {len(stack.missing)} dates missing: {sorted(stack.missing)}")
            
            log_pipeline_end(self.logger, "burned area mapping", True, time.time() - start_time)
            return True
            
        except EmptyStackError as e:
            record = self.stack_builder.save_missing(e.missing, self.settings.paths.stack_file)
            self.logger.error(f"Burned area mapping failed: {str(e)}")
            self.logger.error(f"Missing date record saved to: {record}")
            log_pipeline_end(self.logger, "burned area mapping", False, time.time() - start_time)
            return False
            
        except (BurnedAreaError, ValueError, FileNotFoundError) as e:
            self.logger.error(f"Burned area mapping failed: {str(e)}")
            log_pipeline_end(self.logger, "burned area mapping", False, time.time() - start_time)
            return False
