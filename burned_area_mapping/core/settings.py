"""
Burned Area Mapping Settings

Immutable configuration values built once from the component YAML and
passed explicitly to each pipeline stage. All validation happens here so
that configuration errors surface before any raster is read.

Author: Diego Bengochea
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from shared_utils import ConfigurationError, get_config_value
from shared_utils.central_data_paths_constants import (
    SENTINEL1_SCENES_DIR,
    ROI_FILE,
    REFERENCE_BURNED_FILE,
    WATER_OCCURRENCE_FILE,
    BURNED_AREA_STACK_FILE,
)

from .change_metrics import DEFAULT_METRICS, MetricKind
from .feature_selection import PolarizationScope

SCHEDULERS = ('threads', 'processes', 'synchronous', 'distributed')


def _positive(value, name: str):
    if value is None or value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class FireEventSettings:
    start_date: pd.Timestamp
    end_date: pd.Timestamp
    baseline_months: int = 12
    reference_months: int = 1


@dataclass(frozen=True)
class AcquisitionSettings:
    """Optional global acquisition filters, None keeps every value."""
    platform_number: Optional[str] = None
    relative_orbit: Optional[int] = None
    orbit_pass: Optional[str] = None
    
    def predicates(self) -> Dict[str, Any]:
        return {
            'platform_number': self.platform_number,
            'relative_orbit': self.relative_orbit,
            'orbit_pass': self.orbit_pass
        }


@dataclass(frozen=True)
class PreprocessingSettings:
    kernel_size: int = 19
    selected_indices: Tuple[MetricKind, ...] = DEFAULT_METRICS
    polarization_filter: PolarizationScope = PolarizationScope.ALL
    water_occurrence_threshold: float = 10.0


@dataclass(frozen=True)
class ClusteringSettings:
    sample_fraction: float = 0.2
    seed: int = 42
    n_clusters: int = 2
    n_init: int = 3
    max_iter: int = 500
    normalize_features: bool = False
    region_inset_m: float = 2000.0


@dataclass(frozen=True)
class CleaningSettings:
    min_patch_pixels: int = 50
    focal_radius_m: float = 100.0
    connectivity: int = 8


@dataclass(frozen=True)
class ExportSettings:
    scale: float = 20.0
    crs: str = 'EPSG:32634'
    region_buffer_m: float = 2000.0


@dataclass(frozen=True)
class ComputeSettings:
    scheduler: str = 'threads'
    num_workers: Optional[int] = None
    threads_per_worker: int = 1
    memory_limit: str = '4GB'


@dataclass(frozen=True)
class PathSettings:
    scenes_dir: Path = SENTINEL1_SCENES_DIR
    scene_pattern: str = '*.tif'
    roi_file: Path = ROI_FILE
    reference_region_file: Path = REFERENCE_BURNED_FILE
    water_occurrence_file: Optional[Path] = WATER_OCCURRENCE_FILE
    stack_file: Path = BURNED_AREA_STACK_FILE


@dataclass(frozen=True)
class MappingSettings:
    fire_event: FireEventSettings
    acquisition: AcquisitionSettings = field(default_factory=AcquisitionSettings)
    preprocessing: PreprocessingSettings = field(default_factory=PreprocessingSettings)
    clustering: ClusteringSettings = field(default_factory=ClusteringSettings)
    cleaning: CleaningSettings = field(default_factory=CleaningSettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    compute: ComputeSettings = field(default_factory=ComputeSettings)
    paths: PathSettings = field(default_factory=PathSettings)
    
    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'MappingSettings':
        """
        Build validated settings from a loaded configuration dictionary.
        
        Raises:
            ConfigurationError: On missing fire dates or invalid values
        """
        get = lambda key, default=None: get_config_value(config, key, default)
        
        start, end = get('fire_event.start_date'), get('fire_event.end_date')
        if start is None or end is None:
            raise ConfigurationError("fire_event.start_date and fire_event.end_date are required")
        try:
            start, end = pd.Timestamp(start), pd.Timestamp(end)
        except ValueError as e:
            raise ConfigurationError(f"Invalid fire event date: {e}")
        if end < start:
            raise ConfigurationError(f"Fire end date {end.date()} precedes start date {start.date()}")
        
        baseline_months = int(_positive(get('fire_event.baseline_months', 12), 'fire_event.baseline_months'))
        reference_months = int(_positive(get('fire_event.reference_months', 1), 'fire_event.reference_months'))
        if reference_months > baseline_months:
            raise ConfigurationError("fire_event.reference_months cannot exceed fire_event.baseline_months")
        
        orbit = get('acquisition.relative_orbit')
        acquisition = AcquisitionSettings(
            platform_number=get('acquisition.platform_number'),
            relative_orbit=int(orbit) if orbit is not None else None,
            orbit_pass=get('acquisition.orbit_pass')
        )
        
        kernel_size = get('preprocessing.kernel_size', 19)
        if int(kernel_size) != kernel_size:
            raise ConfigurationError(f"preprocessing.kernel_size must be an integer, got {kernel_size}")
        indices = get('preprocessing.selected_indices', [kind.value for kind in DEFAULT_METRICS])
        preprocessing = PreprocessingSettings(
            kernel_size=int(_positive(kernel_size, 'preprocessing.kernel_size')),
            selected_indices=tuple(MetricKind.parse(name) for name in indices),
            polarization_filter=PolarizationScope.parse(get('preprocessing.polarization_filter', 'ALL')),
            water_occurrence_threshold=float(get('preprocessing.water_occurrence_threshold', 10.0))
        )
        if not preprocessing.selected_indices:
            raise ConfigurationError("preprocessing.selected_indices cannot be empty")
        
        sample_fraction = float(get('clustering.sample_fraction', 0.2))
        if not 0 < sample_fraction <= 1:
            raise ConfigurationError(f"clustering.sample_fraction must be in (0, 1], got {sample_fraction}")
        clustering = ClusteringSettings(
            sample_fraction=sample_fraction,
            seed=int(get('clustering.seed', 42)),
            n_clusters=int(get('clustering.n_clusters', 2)),
            n_init=int(_positive(get('clustering.n_init', 3), 'clustering.n_init')),
            max_iter=int(_positive(get('clustering.max_iter', 500), 'clustering.max_iter')),
            normalize_features=bool(get('clustering.normalize_features', False)),
            region_inset_m=float(get('clustering.region_inset_m', 2000.0))
        )
        if clustering.n_clusters < 2:
            raise ConfigurationError("clustering.n_clusters must be at least 2")
        if clustering.region_inset_m < 0:
            raise ConfigurationError(f"clustering.region_inset_m cannot be negative, got {clustering.region_inset_m}")
        
        connectivity = int(get('cleaning.connectivity', 8))
        if connectivity not in (4, 8):
            raise ConfigurationError(f"cleaning.connectivity must be 4 or 8, got {connectivity}")
        cleaning = CleaningSettings(
            min_patch_pixels=int(_positive(get('cleaning.min_patch_pixels', 50), 'cleaning.min_patch_pixels')),
            focal_radius_m=float(_positive(get('cleaning.focal_radius_m', 100.0), 'cleaning.focal_radius_m')),
            connectivity=connectivity
        )
        
        export = ExportSettings(
            scale=float(_positive(get('export.scale', 20.0), 'export.scale')),
            crs=str(get('export.crs', 'EPSG:32634')),
            region_buffer_m=float(get('export.region_buffer_m', 2000.0))
        )
        
        scheduler = get('compute.scheduler', 'threads')
        if scheduler not in SCHEDULERS:
            raise ConfigurationError(f"compute.scheduler must be one of {SCHEDULERS}, got {scheduler}")
        num_workers = get('compute.num_workers')
        compute = ComputeSettings(
            scheduler=scheduler,
            num_workers=int(_positive(num_workers, 'compute.num_workers')) if num_workers is not None else None,
            threads_per_worker=int(_positive(get('compute.threads_per_worker', 1), 'compute.threads_per_worker')),
            memory_limit=str(get('compute.memory_limit', '4GB'))
        )
        
        water_file = get('data.water_occurrence_file', WATER_OCCURRENCE_FILE)
        paths = PathSettings(
            scenes_dir=Path(get('data.scenes_dir', SENTINEL1_SCENES_DIR)),
            scene_pattern=str(get('data.scene_pattern', '*.tif')),
            roi_file=Path(get('data.roi_file', ROI_FILE)),
            reference_region_file=Path(get('data.reference_region_file', REFERENCE_BURNED_FILE)),
            water_occurrence_file=Path(water_file) if water_file else None,
            stack_file=Path(get('output.stack_file', BURNED_AREA_STACK_FILE))
        )
        
        return cls(
            fire_event=FireEventSettings(start, end, baseline_months, reference_months),
            acquisition=acquisition,
            preprocessing=preprocessing,
            clustering=clustering,
            cleaning=cleaning,
            export=export,
            compute=compute,
            paths=paths
        )
