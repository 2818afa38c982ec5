"""
Tests for the ordered temporal stack and its GeoTIFF record.
"""

import json

import numpy as np
import pandas as pd
import pytest

from burned_area_mapping.core.temporal_stack import (
    BAND_DATES_TAG, MISSING_DATES_TAG, NUMBER_OF_IMAGES_TAG, DateOutcome, TemporalStackBuilder
)
from shared_utils import EmptyStackError, UpstreamIOError

from conftest import SyntheticSceneGenerator


@pytest.fixture
def outcomes(generator):
    block = generator.corner_block().astype(float)
    first = generator.mask(block * 0, 'S1A_20230823T043012', '2023-08-23T04:30:12')
    second = generator.mask(block, 'S1A_20230825T043012', '2023-08-25T04:30:12')
    third = generator.mask(np.ones((3, 3)), 'S1A_20230829T043012', '2023-08-29T04:30:12')
    return [
        DateOutcome(third.name, third.timestamp, third),
        DateOutcome('S1B_20230827T043012', pd.Timestamp('2023-08-27T04:30:12'), None, 'no baseline'),
        DateOutcome(first.name, first.timestamp, first),
        DateOutcome(second.name, second.timestamp, second),
    ]


def test_bands_in_date_order(outcomes):
    stack = TemporalStackBuilder().build(outcomes)
    
    assert stack.band_names == ('S1A_20230823T043012', 'S1A_20230825T043012', 'S1A_20230829T043012')
    assert list(stack.band_dates) == sorted(stack.band_dates)
    assert stack.number_of_images == 3


def test_order_independent_of_completion_order(outcomes):
    forward = TemporalStackBuilder().build(outcomes)
    backward = TemporalStackBuilder().build(list(reversed(outcomes)))
    
    assert forward.band_names == backward.band_names
    for name in forward.band_names:
        np.testing.assert_array_equal(forward.image.band(name), backward.image.band(name))


def test_missing_dates_recorded(outcomes):
    stack = TemporalStackBuilder().build(outcomes)
    assert stack.missing == {'S1B_20230827T043012': 'no baseline'}


def test_split_returns_masks(outcomes, generator):
    masks = TemporalStackBuilder().build(outcomes).split()
    
    assert [mask.timestamp for mask in masks] == [
        pd.Timestamp('2023-08-23T04:30:12'), pd.Timestamp('2023-08-25T04:30:12'), pd.Timestamp('2023-08-29T04:30:12')
    ]
    np.testing.assert_array_equal(masks[1].values, generator.corner_block().astype(float))


def test_tags(outcomes):
    tags = TemporalStackBuilder().build(outcomes).tags()
    
    assert tags[NUMBER_OF_IMAGES_TAG] == '3'
    assert json.loads(tags[BAND_DATES_TAG])['S1A_20230825T043012'] == '2023-08-25T04:30:12'
    assert json.loads(tags[MISSING_DATES_TAG]) == {'S1B_20230827T043012': 'no baseline'}


def test_no_successful_date_raises():
    failed = [DateOutcome('S1A_20230825T043012', pd.Timestamp('2023-08-25'), None, 'failed')]
    with pytest.raises(ValueError):
        TemporalStackBuilder().build(failed)


def test_duplicate_identifiers_rejected(generator):
    mask = generator.mask(np.zeros((3, 3)), 'same', '2023-08-25')
    duplicate = generator.mask(np.ones((3, 3)), 'same', '2023-08-26')
    with pytest.raises(ValueError):
        TemporalStackBuilder().build([
            DateOutcome('a', mask.timestamp, mask), DateOutcome('b', duplicate.timestamp, duplicate)
        ])


def test_masks_on_other_grid_rejected(generator):
    other = SyntheticSceneGenerator(size=3, resolution=10.0)
    with pytest.raises(ValueError):
        TemporalStackBuilder().build([
            DateOutcome('a', pd.Timestamp('2023-08-25'), generator.mask(np.zeros((3, 3)), 'a', '2023-08-25')),
            DateOutcome('b', pd.Timestamp('2023-08-26'), other.mask(np.zeros((3, 3)), 'b', '2023-08-26')),
        ])


def test_geotiff_round_trip(outcomes, backend, tmp_path):
    builder = TemporalStackBuilder(backend)
    stack = builder.build(outcomes)
    
    path = builder.save(stack, tmp_path / 'stack.tif')
    loaded = builder.load(path)
    
    assert loaded.band_names == stack.band_names
    assert loaded.band_dates == stack.band_dates
    assert loaded.missing == stack.missing
    assert loaded.image.same_grid(stack.image)
    np.testing.assert_array_equal(loaded.mask(1).values, stack.mask(1).values)


def test_load_without_record(backend, generator, tmp_path):
    path = backend.persist(generator.burned_scene(), tmp_path / 'scene.tif')
    with pytest.raises(UpstreamIOError):
        TemporalStackBuilder(backend).load(path)


def test_no_successful_date_carries_missing_record():
    failed = [DateOutcome('S1A_20230825T043012', pd.Timestamp('2023-08-25'), None, 'no baseline')]
    with pytest.raises(EmptyStackError) as error:
        TemporalStackBuilder().build(failed)
    assert error.value.missing == {'S1A_20230825T043012': 'no baseline'}


def test_missing_record_next_to_stack(tmp_path):
    builder = TemporalStackBuilder()
    record = builder.save_missing({'S1A_20230825T043012': 'no baseline'}, tmp_path / 'out' / 'stack.tif')
    
    assert record == tmp_path / 'out' / 'stack_missing_dates.json'
    assert builder.load_missing(tmp_path / 'out' / 'stack.tif') == {'S1A_20230825T043012': 'no baseline'}
    with pytest.raises(UpstreamIOError):
        builder.load_missing(tmp_path / 'other.tif')
