"""
Temporal Stack

Assembles per-date binary masks into one ordered multi-band product
(LabeledStack) and records what is needed to split it back: the number of
stacked dates, the band identifier and timestamp of each band, and the
dates that are missing with the reason. The record travels with the
exported GeoTIFF as tags, and the missing dates are also written to a JSON
file next to it so that a run without any mask still reports them.

Author: Diego Bengochea
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

import pandas as pd

from shared_utils import get_logger, EmptyStackError, UpstreamIOError

from .raster_data import BinaryMask, RasterImage

NUMBER_OF_IMAGES_TAG = 'NUMBER_OF_IMAGES'
BAND_DATES_TAG = 'BAND_DATES'
MISSING_DATES_TAG = 'MISSING_DATES'
MISSING_RECORD_SUFFIX = "_missing_dates.json"


@dataclass(frozen=True)
class DateOutcome:
    """Result of processing one acquisition date; mask is None when the date failed."""
    identifier: str
    timestamp: pd.Timestamp
    mask: Optional[BinaryMask] = None
    reason: Optional[str] = None
    
    @property
    def succeeded(self) -> bool:
        return self.mask is not None


@dataclass(frozen=True, eq=False)
class LabeledStack:
    """
    Ordered multi-band mask product, one band per acquisition date.
    
    Attributes:
        image: Multi-band image, bands in ascending date order
        band_dates: Timestamp of each band, aligned with the band order
        missing: Identifier -> reason for dates without a mask
    """
    image: RasterImage
    band_dates: Tuple[pd.Timestamp, ...]
    missing: Mapping[str, str] = field(default_factory=dict)
    
    def __post_init__(self):
        if len(self.band_dates) != len(self.image.band_names):
            raise ValueError("Every stacked band needs exactly one date")
        object.__setattr__(self, 'band_dates', tuple(pd.Timestamp(date) for date in self.band_dates))
        object.__setattr__(self, 'missing', dict(self.missing))
    
    @property
    def band_names(self) -> Tuple[str, ...]:
        return self.image.band_names
    
    @property
    def number_of_images(self) -> int:
        return len(self.band_dates)
    
    def mask(self, index: int) -> BinaryMask:
        name = self.band_names[index]
        return self.image.derive(
            {name: self.image.band(name)},
            BinaryMask,
            timestamp=self.band_dates[index],
            properties={'index': name}
        )
    
    def split(self) -> Tuple[BinaryMask, ...]:
        """Per-date masks in stacked (date ascending) order."""
        return tuple(self.mask(i) for i in range(self.number_of_images))
    
    def tags(self) -> Dict[str, str]:
        return {
            NUMBER_OF_IMAGES_TAG: str(self.number_of_images),
            BAND_DATES_TAG: json.dumps({
                name: date.isoformat() for name, date in zip(self.band_names, self.band_dates)
            }),
            MISSING_DATES_TAG: json.dumps(self.missing),
        }


class TemporalStackBuilder:
    """Ordered merge of per-date outcomes into a LabeledStack."""
    
    def __init__(self, backend=None):
        self.backend = backend
        self.logger = get_logger('burned_area_mapping.stack')
    
    def build(self, outcomes: Iterable[DateOutcome]) -> LabeledStack:
        """
        Stack successful masks by ascending timestamp, independent of input order.
        
        Raises:
            EmptyStackError: If no date produced a mask, carrying the missing dates
        """
        ordered = sorted(outcomes, key=lambda outcome: (outcome.timestamp, outcome.identifier))
        succeeded = [outcome for outcome in ordered if outcome.succeeded]
        missing = {outcome.identifier: outcome.reason or 'unknown' for outcome in ordered if not outcome.succeeded}
        
        if not succeeded:
            raise EmptyStackError(f"No date produced a burned area mask, missing: {missing}", missing=missing)
        
        for identifier, reason in missing.items():
            self.logger.warning(f"Date {identifier} missing from the stack: {reason}")
        
        first = succeeded[0].mask
        bands = {}
        for outcome in succeeded:
            if not outcome.mask.same_grid(first):
                raise ValueError(f"Mask {outcome.identifier} is not on the stack pixel grid")
            if outcome.mask.name in bands:
                raise ValueError(f"Duplicate band identifier {outcome.mask.name}")
            bands[outcome.mask.name] = outcome.mask.values
        
        image = first.derive(bands, RasterImage, timestamp=None, properties={})
        stack = LabeledStack(
            image=image,
            band_dates=tuple(outcome.timestamp for outcome in succeeded),
            missing=missing
        )
        
        self.logger.info(f"Stacked {stack.number_of_images} dates, {len(missing)} missing")
        return stack
    
    def save(self, stack: LabeledStack, path: Union[str, Path], **export_options) -> Path:
        return self.backend.persist(stack.image, path, tags=stack.tags(), **export_options)

    @staticmethod
    def missing_record_path(stack_path: Union[str, Path]) -> Path:
        stack_path = Path(stack_path)
        return stack_path.with_name(f"{stack_path.stem}{MISSING_RECORD_SUFFIX}")

    def save_missing(self, missing: Mapping[str, str], stack_path: Union[str, Path]) -> Path:
        """Write the identifier -> reason record of missing dates next to the stack file."""
        output_file = self.missing_record_path(stack_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(json.dumps(dict(missing), indent=2))
        return output_file

    def load_missing(self, stack_path: Union[str, Path]) -> Dict[str, str]:
        record = self.missing_record_path(stack_path)
        if not record.exists():
            raise UpstreamIOError(f"No missing date record at {record}", path=record)
        try:
            return dict(json.loads(record.read_text()))
        except ValueError as e:
            raise UpstreamIOError(f"Unreadable missing date record {record}: {e}", path=record)

    def load(self, path: Union[str, Path]) -> LabeledStack:
        """Read an exported stack and its date record."""
        tags = self.backend.read_tags(path)
        if BAND_DATES_TAG not in tags:
            raise UpstreamIOError(f"{path} carries no band date record", path=path)
        
        image = self.backend.load_image(path)
        band_dates = json.loads(tags[BAND_DATES_TAG])
        missing = json.loads(tags.get(MISSING_DATES_TAG, '{}'))
        
        dates = []
        for name in image.band_names:
            if name not in band_dates:
                raise UpstreamIOError(f"Band {name} of {path} has no recorded date", path=path)
            dates.append(pd.Timestamp(band_dates[name]))
        
        expected = int(tags.get(NUMBER_OF_IMAGES_TAG, len(dates)))
        if expected != len(dates):
            raise UpstreamIOError(f"{path} records {expected} dates but holds {len(dates)} bands", path=path)
        
        return LabeledStack(image=image, band_dates=tuple(dates), missing=missing)
