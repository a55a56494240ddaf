"""
Unit tests for nyc_taxi_fare.cleaning
"""

import numpy as np
import pandas as pd
import pytest

from nyc_taxi_fare.cleaning import (clean_distances, clean_fares, clean_passengers,
                                    clean_scoring_frame, clean_training_frame, drop_missing,
                                    flag_invalid_coordinates, impute_coordinates)
from nyc_taxi_fare.config import COORDINATES
from nyc_taxi_fare.errors import EmptyDatasetError


class TestCleanFares:
    """Tests for clean_fares."""

    def test_rules(self):
        df = pd.DataFrame({'fare_amount': [-5.0, 1.0, -1.0, 2.5, 400.0, 12.0]})
        cleaned = clean_fares(df)
        assert list(cleaned['fare_amount']) == [5.0, 2.5, 12.0]

    def test_input_untouched(self):
        df = pd.DataFrame({'fare_amount': [-5.0]})
        clean_fares(df)
        assert df['fare_amount'].iloc[0] == -5.0


class TestDropMissing:
    """Tests for drop_missing."""

    def test_missing_passenger_count_dropped(self, parsed_trips):
        parsed_trips.loc[0, 'passenger_count'] = np.nan
        assert len(drop_missing(parsed_trips)) == len(parsed_trips) - 1

    def test_missing_coordinates_left_for_imputation(self, parsed_trips):
        parsed_trips.loc[0, 'pickup_latitude'] = np.nan
        kept = drop_missing(parsed_trips)
        assert len(kept) == len(parsed_trips)
        assert np.isnan(kept.loc[0, 'pickup_latitude'])


class TestCleanPassengers:
    """Tests for clean_passengers."""

    def test_range(self):
        df = pd.DataFrame({'passenger_count': [0, 1, 6, 7, 8, 208]})
        assert list(clean_passengers(df)['passenger_count']) == [1, 6, 7]


class TestFlagInvalidCoordinates:
    """Tests for flag_invalid_coordinates."""

    def test_valid_rows_untouched(self, parsed_trips):
        flagged, invalidated = flag_invalid_coordinates(parsed_trips)
        assert invalidated == 0
        pd.testing.assert_frame_equal(flagged, parsed_trips)

    def test_zero_and_out_of_box_become_nan(self, parsed_trips):
        parsed_trips.loc[0, ['pickup_latitude', 'pickup_longitude']] = 0.0
        parsed_trips.loc[1, 'dropoff_latitude'] = 3000.0
        flagged, invalidated = flag_invalid_coordinates(parsed_trips)
        assert invalidated == 2
        assert flagged.loc[0, ['pickup_latitude', 'pickup_longitude']].isna().all()
        assert flagged.loc[1, ['dropoff_latitude', 'dropoff_longitude']].isna().all()
        assert flagged.loc[0, ['dropoff_latitude', 'dropoff_longitude']].notna().all()

    def test_swapped_pair_is_repaired(self, parsed_trips):
        parsed_trips.loc[2, ['pickup_latitude', 'pickup_longitude']] = [-73.98, 40.75]
        flagged, invalidated = flag_invalid_coordinates(parsed_trips)
        assert invalidated == 0
        assert flagged.loc[2, 'pickup_latitude'] == 40.75
        assert flagged.loc[2, 'pickup_longitude'] == -73.98


class TestImputeCoordinates:
    """Tests for impute_coordinates."""

    def test_median_fills_nan(self, parsed_trips):
        parsed_trips.loc[0, ['pickup_latitude', 'pickup_longitude']] = np.nan
        expected = parsed_trips['pickup_latitude'].median()
        imputed, imputer = impute_coordinates(parsed_trips, 'median')
        assert imputer is not None
        assert imputed[COORDINATES].notna().all().all()
        assert imputed.loc[0, 'pickup_latitude'] == pytest.approx(expected)

    def test_most_frequent_fills_nan(self, parsed_trips):
        parsed_trips.loc[[1, 2, 3], 'pickup_latitude'] = 40.75
        parsed_trips.loc[0, 'pickup_latitude'] = np.nan
        imputed, imputer = impute_coordinates(parsed_trips, 'most_frequent')
        assert imputer.strategy == 'most_frequent'
        assert imputed.loc[0, 'pickup_latitude'] == pytest.approx(40.75)
        assert imputed[COORDINATES].notna().all().all()

    def test_drop_strategy(self, parsed_trips):
        parsed_trips.loc[[0, 1], 'dropoff_longitude'] = np.nan
        imputed, imputer = impute_coordinates(parsed_trips, 'drop')
        assert imputer is None
        assert len(imputed) == len(parsed_trips) - 2

    def test_reuses_fitted_imputer(self, parsed_trips):
        _, imputer = impute_coordinates(parsed_trips, 'median')
        other = parsed_trips.head(3).copy()
        other[COORDINATES] = np.nan
        imputed, same = impute_coordinates(other, imputer=imputer)
        assert same is imputer
        assert imputed['pickup_latitude'].iloc[0] == pytest.approx(parsed_trips['pickup_latitude'].median())


class TestCleanDistances:
    """Tests for clean_distances."""

    def test_zero_distance_dropped(self, parsed_trips):
        parsed_trips.loc[0, ['dropoff_latitude', 'dropoff_longitude']] = \
            parsed_trips.loc[0, ['pickup_latitude', 'pickup_longitude']].to_numpy()
        assert 0 not in clean_distances(parsed_trips).index

    def test_uses_existing_haversine_column(self):
        df = pd.DataFrame({'haversine': [0.0, 1.0, 151.0, 150.0]})
        assert list(clean_distances(df).index) == [1, 3]


class TestCleanTrainingFrame:
    """Tests for clean_training_frame."""

    def test_report(self, parsed_trips):
        parsed_trips.loc[0, 'fare_amount'] = 1.0
        parsed_trips.loc[1, 'passenger_count'] = 9
        parsed_trips.loc[2, ['pickup_latitude', 'pickup_longitude']] = 0.0
        cleaned, imputer, report = clean_training_frame(parsed_trips)
        assert report['raw_rows'] == 240
        assert report['fares'] == 1
        assert report['passenger_count'] == 1
        assert report['invalid_endpoints'] == 1
        assert report['coordinates'] == 0
        assert report['clean_rows'] == len(cleaned) == 238
        assert imputer is not None

    def test_drop_strategy_removes_invalid_rows(self, parsed_trips):
        parsed_trips.loc[2, ['pickup_latitude', 'pickup_longitude']] = 0.0
        cleaned, imputer, report = clean_training_frame(parsed_trips, 'drop')
        assert imputer is None
        assert report['coordinates'] == 1
        assert 2 not in cleaned.index

    def test_empty_result_raises(self, parsed_trips):
        parsed_trips['fare_amount'] = 0.0
        with pytest.raises(EmptyDatasetError) as exc_info:
            clean_training_frame(parsed_trips)
        assert exc_info.value.stage == 'fares'


class TestCleanScoringFrame:
    """Tests for clean_scoring_frame."""

    def test_keeps_every_row(self, parsed_trips):
        _, imputer = impute_coordinates(parsed_trips, 'median')
        scoring = parsed_trips.drop(columns=['fare_amount']).head(10).copy()
        scoring.loc[0, ['pickup_latitude', 'pickup_longitude']] = 0.0
        scoring.loc[1, 'passenger_count'] = np.nan
        cleaned = clean_scoring_frame(scoring, imputer)
        assert len(cleaned) == 10
        assert cleaned[COORDINATES].notna().all().all()
        assert cleaned.loc[1, 'passenger_count'] == 1

    def test_without_training_imputer_uses_own_medians(self, parsed_trips):
        scoring = parsed_trips.drop(columns=['fare_amount']).head(10).copy()
        scoring.loc[0, ['pickup_latitude', 'pickup_longitude']] = 0.0
        expected = scoring.loc[1:, 'pickup_latitude'].median()
        cleaned = clean_scoring_frame(scoring, None)
        assert len(cleaned) == 10
        assert cleaned[COORDINATES].notna().all().all()
        assert cleaned.loc[0, 'pickup_latitude'] == pytest.approx(expected)
