#!/usr/bin/env python3
"""
Recipe: Burned Area Progression

Reproduces the burned area progression results of one fire event:
1. Burned area mapping (per-date unsupervised classification, stacked)
2. Burned area analysis (area over time, land-cover breakdown)

Usage:
    python 1_burned_area_progression_recipe.py [OPTIONS]

Examples:
    # Run the complete recipe with the component configurations
    python 1_burned_area_progression_recipe.py
    
    # Event specific mapping configuration
    python 1_burned_area_progression_recipe.py --mapping-config megara_2023.yaml
    
    # Only recompute statistics on an existing stack
    python 1_burned_area_progression_recipe.py --skip-mapping

Author: Diego Bengochea
"""

import argparse
import sys
import time
from pathlib import Path

# Add repo root to path for absolute imports
sys.path.insert(0, str(Path(__file__).parent))

from shared_utils.logging_utils import setup_logging
from shared_utils.central_data_paths_constants import *

from burned_area_mapping.core.mapping_pipeline import BurnedAreaMappingPipeline
from burned_area_analysis.core.analysis_pipeline import BurnedAreaAnalysisPipeline


class BurnedAreaProgressionRecipe:
    """
    Recipe for burned area progression reproduction.
    
    Runs the mapping and analysis stages in order and tracks stage results.
    """
    
    def __init__(self, mapping_config=None, analysis_config=None, log_level: str = "INFO"):
        self.mapping_config = mapping_config
        self.analysis_config = analysis_config
        self.log_level = log_level
        
        self.logger = setup_logging(level=log_level, component_name='progression_recipe')
        self.stage_results = {}
        
        self.logger.info("Initialized Burned Area Progression Recipe")
        create_all_directories()
        self.logger.info(f"Data root: {DATA_ROOT}")
    
    def validate_prerequisites(self, skip_mapping: bool) -> bool:
        """
        Validate that required input data exists.
        
        Returns:
            bool: True if prerequisites are met
        """
        self.logger.info("Validating prerequisites...")
        
        if skip_mapping:
            if not BURNED_AREA_STACK_FILE.exists():
                self.logger.error(f"Burned area stack not found: {BURNED_AREA_STACK_FILE}")
                self.logger.error("Run the recipe without --skip-mapping first")
                return False
            return True
        
        scenes = list(SENTINEL1_SCENES_DIR.glob("*.tif")) if SENTINEL1_SCENES_DIR.exists() else []
        if not scenes:
            self.logger.error(f"No Sentinel-1 scenes found in {SENTINEL1_SCENES_DIR}")
            return False
        self.logger.info(f"✅ Found {len(scenes)} Sentinel-1 scenes")
        
        if not ROI_FILE.exists():
            self.logger.error(f"Region of interest not found: {ROI_FILE}")
            return False
        
        if not WATER_OCCURRENCE_FILE.exists():
            self.logger.warning(f"Water occurrence raster not found: {WATER_OCCURRENCE_FILE}")
        if not CORINE_LAND_COVER_FILE.exists():
            self.logger.warning(f"Land cover raster not found: {CORINE_LAND_COVER_FILE}")
        
        return True
    
    def run_stage(self, stage_name: str, pipeline_factory) -> bool:
        """Run one pipeline stage and record its outcome."""
        self.logger.info(f"\n{'='*60}")
        self.logger.info(f"Starting {stage_name}")
        self.logger.info(f"{'='*60}")
        
        stage_start = time.time()
        try:
            success = pipeline_factory().run_full_pipeline()
        except (ValueError, FileNotFoundError) as e:
            self.logger.error(f"{stage_name} failed with error: {str(e)}")
            success = False
        
        # pipelines reset logging on construction
        self.logger = setup_logging(level=self.log_level, component_name='progression_recipe')
        
        stage_time = time.time() - stage_start
        self.stage_results[stage_name] = {'success': success, 'duration_minutes': stage_time / 60}
        
        if success:
            self.logger.info(f"{stage_name} completed successfully in {stage_time/60:.2f} minutes")
        else:
            self.logger.error(f"{stage_name} failed after {stage_time/60:.2f} minutes")
        
        return success
    
    def run_mapping(self) -> bool:
        return self.run_stage("Burned Area Mapping", lambda: BurnedAreaMappingPipeline(self.mapping_config))
    
    def run_analysis(self) -> bool:
        return self.run_stage("Burned Area Analysis", lambda: BurnedAreaAnalysisPipeline(self.analysis_config))


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Burned area progression recipe: mapping and statistics",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument('--mapping-config', type=str, help='Mapping configuration file')
    parser.add_argument('--analysis-config', type=str, help='Analysis configuration file')
    parser.add_argument('--skip-mapping', action='store_true', help='Reuse the existing stack')
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser.parse_args()


def main():
    """Main entry point for the burned area progression recipe."""
    args = parse_arguments()
    start_time = time.time()
    
    recipe = BurnedAreaProgressionRecipe(args.mapping_config, args.analysis_config, args.log_level)
    
    if not recipe.validate_prerequisites(args.skip_mapping):
        recipe.logger.error("Prerequisites validation failed")
        sys.exit(1)
    
    overall_success = True
    if not args.skip_mapping:
        overall_success = recipe.run_mapping()
    
    if overall_success:
        overall_success = recipe.run_analysis()
    
    if overall_success:
        elapsed_time = time.time() - start_time
        recipe.logger.info(f"Burned area progression recipe completed successfully in {elapsed_time/60:.2f} minutes!")
    else:
        recipe.logger.error("Burned area progression recipe failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
