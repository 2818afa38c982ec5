"""
Burned Area Analysis Component

Statistics over the burned area progression stack produced by the
burned_area_mapping component:

- Burned area per acquisition date (hectares)
- Burned area per land-cover class for a selected date (hectares and share)
- Report of dates missing from the stack

Components:
    core/: Core processing modules
    scripts/: Executable entry points
    config.yaml: Component configuration

Author: Diego Bengochea
"""

from .core.area_statistics import BurnedAreaStatistics, load_class_names, parse_time_label
from .core.analysis_pipeline import BurnedAreaAnalysisPipeline

__version__ = "1.0.0"
__component__ = "burned_area_analysis"

__all__ = [
    "BurnedAreaStatistics",
    "BurnedAreaAnalysisPipeline",
    "load_class_names",
    "parse_time_label"
]
