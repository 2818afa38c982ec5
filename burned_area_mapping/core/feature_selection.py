"""
Feature Selection

Narrows the change metrics to a polarization scope. Ratio indices (RFDI,
RVI differences) carry no single polarization and pass every scope.

Author: Diego Bengochea
"""

from enum import Enum
from typing import Iterable, Tuple

from shared_utils import ConfigurationError

from .change_metrics import MetricKind
from .raster_data import RasterImage


class PolarizationScope(Enum):
    ALL = 'ALL'
    VH = 'VH'
    VV = 'VV'
    
    @classmethod
    def parse(cls, value) -> 'PolarizationScope':
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().upper().replace('_ONLY', '').replace('-ONLY', '')
        try:
            return cls(normalized)
        except ValueError:
            raise ConfigurationError(
                f"Unknown polarization scope '{value}', expected one of {[scope.value for scope in cls]}"
            )
    
    def admits(self, kind: MetricKind) -> bool:
        return self is PolarizationScope.ALL or kind.polarization in (None, self.value)


class FeatureSelector:
    """Projects metric kinds and change images onto a polarization scope."""
    
    def __init__(self, scope=PolarizationScope.ALL):
        self.scope = PolarizationScope.parse(scope)
    
    def select(self, kinds: Iterable[MetricKind]) -> Tuple[MetricKind, ...]:
        """Kinds admitted by the scope, in request order without duplicates."""
        return tuple(kind for kind in dict.fromkeys(kinds) if self.scope.admits(kind))
    
    def select_image(self, image: RasterImage) -> RasterImage:
        """Keep the image bands whose metric is admitted by the scope."""
        kinds = [MetricKind.parse(name) for name in image.band_names]
        selected = self.select(kinds)
        if not selected:
            raise ConfigurationError(f"No change metric of {list(image.band_names)} matches scope {self.scope.value}")
        return image.select([kind.value for kind in selected])
