"""
Burned Area Analysis Pipeline

Reads the exported burned area progression stack and produces the burned
area time series, the land-cover breakdown of one selected date and the
report of dates missing from the stack, as CSV tables and charts.

Author: Diego Bengochea
"""

import time
from pathlib import Path
from typing import Optional, Union

import pandas as pd

# Shared utilities
from shared_utils import (
    setup_logging, load_config, get_config_value, ensure_directory,
    log_pipeline_start, log_pipeline_end, log_section, BurnedAreaError
)
from shared_utils.central_data_paths_constants import *

from burned_area_mapping.core.raster_backend import LocalRasterBackend
from burned_area_mapping.core.temporal_stack import TemporalStackBuilder

from .area_statistics import BurnedAreaStatistics, load_class_names, parse_time_label
from .plotting import plot_area_over_time, plot_landcover_breakdown

DEFAULT_CLASS_NAMES_FILE = Path(__file__).resolve().parent.parent / 'corine_land_cover_classes.csv'


class BurnedAreaAnalysisPipeline:
    """
    Burned area statistics over the mapped fire progression.
    """
    
    def __init__(self, config: Optional[Union[str, Path]] = None):
        """
        Initialize the analysis pipeline.
        
        Args:
            config: Path to config file
        """
        self.config = load_config(config, component_name="burned_area_analysis")
        
        self.logger = setup_logging(
            level=get_config_value(self.config, 'logging.level', 'INFO'),
            component_name='burned_area_analysis',
            log_file=get_config_value(self.config, 'logging.log_file')
        )
        
        self.backend = LocalRasterBackend()
        self.statistics = BurnedAreaStatistics(
            self.backend,
            burned_value=int(get_config_value(self.config, 'statistics.burned_value', 1))
        )
        self.limit = get_config_value(self.config, 'statistics.limit')
        self.selected_for_land_cover = int(get_config_value(self.config, 'statistics.selected_for_land_cover', -1))
        
        self.stack_file = Path(get_config_value(self.config, 'data.stack_file', BURNED_AREA_STACK_FILE))
        self.roi_file = Path(get_config_value(self.config, 'data.roi_file', ROI_FILE))
        self.landcover_file = Path(get_config_value(self.config, 'data.land_cover_file', CORINE_LAND_COVER_FILE))
        self.class_names_file = Path(get_config_value(self.config, 'data.class_names_file', DEFAULT_CLASS_NAMES_FILE))
        self.output_dir = Path(get_config_value(self.config, 'output.results_dir', BURNED_AREA_STATS_DIR))
        self.figure_dir = Path(get_config_value(self.config, 'output.figure_dir', FIGURE_DIR))
        self.save_figures = bool(get_config_value(self.config, 'output.save_figures', True))
    
    def run_area_over_time(self, stack, region) -> pd.DataFrame:
        areas = self.statistics.area_over_time(stack, region, self.limit)
        
        for label, hectares in areas.items():
            self.logger.info(f"  {label}: {hectares} ha")
        
        if self.save_figures and areas:
            figure = plot_area_over_time(areas, self.figure_dir / 'burned_area_over_time.png')
            self.logger.info(f"Area evolution chart saved to: {figure}")
        
        return pd.DataFrame({'time': list(areas.keys()), 'area_ha': list(areas.values())})
    
    def run_landcover_breakdown(self, stack, region) -> pd.DataFrame:
        landcover = self.backend.load_image(self.landcover_file)
        class_names = load_class_names(self.class_names_file) if self.class_names_file.exists() else {}
        
        breakdown = self.statistics.landcover_breakdown(
            stack, landcover, region, self.selected_for_land_cover, class_names
        )
        date_label = parse_time_label(stack.band_names[self.selected_for_land_cover])
        self.logger.info(f"Land-cover breakdown for {date_label}: {len(breakdown)} classes")
        
        if self.save_figures and breakdown:
            figure = plot_landcover_breakdown(breakdown, self.figure_dir / 'burned_area_per_land_cover.png')
            self.logger.info(f"Land-cover chart saved to: {figure}")
        
        return pd.DataFrame([
            {'time': date_label, 'land_cover': name, 'area_ha': hectares, 'percentage': share}
            for name, (hectares, share) in breakdown.items()
        ], columns=['time', 'land_cover', 'area_ha', 'percentage'])
    
    def save_results(self, table: pd.DataFrame, filename: str) -> Path:
        ensure_directory(self.output_dir)
        output_file = self.output_dir / filename
        table.to_csv(output_file, index=False)
        return output_file
    
    def save_missing_dates(self, missing) -> Path:
        table = pd.DataFrame(
            [{'date': identifier, 'reason': reason} for identifier, reason in missing.items()],
            columns=['date', 'reason']
        )
        output_file = self.save_results(table, MISSING_DATES_FILE.name)
        if missing:
            self.logger.warning(f"⚠️ {len(missing)} dates missing from the stack, see {output_file}")
        return output_file

    def report_missing_without_stack(self, builder: TemporalStackBuilder) -> Optional[Path]:
        """Missing dates table from the record the mapping stage leaves when no mask was produced."""
        try:
            missing = builder.load_missing(self.stack_file)
        except BurnedAreaError as e:
            self.logger.error(f"No missing date record either: {str(e)}")
            return None
        return self.save_missing_dates(missing)

    def run_full_pipeline(self) -> bool:
        """
        Run the complete burned area analysis.
        
        Returns:
            bool: True if all analyses completed successfully
        """
        start_time = time.time()
        log_pipeline_start(self.logger, "burned area analysis", self.config)
        success_flags = []
        
        builder = TemporalStackBuilder(self.backend)
        if not self.stack_file.exists():
            self.logger.error(f"No burned area stack at {self.stack_file}")
            self.report_missing_without_stack(builder)
            log_pipeline_end(self.logger, "burned area analysis", False, time.time() - start_time)
            return False

        try:
            stack = builder.load(self.stack_file)
            region = self.backend.load_region(self.roi_file, stack.image.crs)
            self.logger.info(f"Loaded stack with {stack.number_of_images} dates from {self.stack_file}")
        except BurnedAreaError as e:
            self.logger.error(f"Could not load analysis inputs: {str(e)}")
            log_pipeline_end(self.logger, "burned area analysis", False, time.time() - start_time)
            return False

        self.save_missing_dates(stack.missing)
        
        log_section(self.logger, "Burned area over time")
        try:
            output_file = self.save_results(self.run_area_over_time(stack, region), AREA_OVER_TIME_FILE.name)
            self.logger.info(f"Area over time saved to: {output_file}")
            success_flags.append(True)
        except (BurnedAreaError, ValueError) as e:
            self.logger.error(f"Area over time analysis failed: {str(e)}")
            success_flags.append(False)
        
        log_section(self.logger, "Land-cover breakdown")
        try:
            output_file = self.save_results(self.run_landcover_breakdown(stack, region), LAND_COVER_BREAKDOWN_FILE.name)
            self.logger.info(f"Land-cover breakdown saved to: {output_file}")
            success_flags.append(True)
        except (BurnedAreaError, ValueError) as e:
            self.logger.error(f"Land-cover analysis failed: {str(e)}")
            success_flags.append(False)
        
        overall_success = all(success_flags)
        if overall_success:
            self.logger.info("✅ Burned area analysis completed successfully")
        else:
            self.logger.warning(f"⚠️ Analysis completed with partial success: {sum(success_flags)}/{len(success_flags)} analyses succeeded")
        
        log_pipeline_end(self.logger, "burned area analysis", overall_success, time.time() - start_time)
        return overall_success
