"""
Central Data Paths - Constants

Centralized path management for the SAR Burned Area Progression repository.
All components should import paths from this module instead of defining their own.

Usage:
    from shared_utils.central_data_paths_constants import SENTINEL1_SCENES_DIR

    scenes = list(SENTINEL1_SCENES_DIR.glob("*.tif"))

Author: Diego Bengochea
"""

from pathlib import Path

# Root directories
DATA_ROOT = Path("data")

RAW_DIR = DATA_ROOT / "raw"
PROCESSED_DIR = DATA_ROOT / "processed"
RESULTS_DIR = DATA_ROOT / "results"

# Sentinel-1 backscatter scenes (dB, VH/VV bands, one GeoTIFF per acquisition)
SENTINEL1_SCENES_DIR = RAW_DIR / "sentinel1"

# Regions of interest
REGIONS_DIR = RAW_DIR / "regions"
ROI_FILE = REGIONS_DIR / "roi.geojson"
REFERENCE_BURNED_FILE = REGIONS_DIR / "reference_burned.geojson"

# Water occurrence (percent of observations classified as water)
WATER_DIR = RAW_DIR / "water"
WATER_OCCURRENCE_FILE = WATER_DIR / "water_occurrence.tif"

# Land cover
LAND_COVER_DIR = RAW_DIR / "land_cover"
CORINE_LAND_COVER_FILE = LAND_COVER_DIR / "corine_land_cover.tif"

# Burned area progression stack
BURNED_AREA_DIR = PROCESSED_DIR / "burned_area"
BURNED_AREA_STACK_FILE = BURNED_AREA_DIR / "burned_area_progression.tif"

# Statistics results
BURNED_AREA_STATS_DIR = RESULTS_DIR / "burned_area_statistics"
AREA_OVER_TIME_FILE = BURNED_AREA_STATS_DIR / "burned_area_over_time.csv"
LAND_COVER_BREAKDOWN_FILE = BURNED_AREA_STATS_DIR / "burned_area_per_land_cover.csv"
MISSING_DATES_FILE = BURNED_AREA_STATS_DIR / "missing_dates.csv"

# Figures
FIGURE_DIR = DATA_ROOT / "figures"


def create_all_directories():
    """Create all necessary directories in the data structure."""
    directories = [
        SENTINEL1_SCENES_DIR,
        REGIONS_DIR,
        WATER_DIR,
        LAND_COVER_DIR,
        BURNED_AREA_DIR,
        BURNED_AREA_STATS_DIR,
        FIGURE_DIR,
    ]
    
    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)
