"""Data cleaning for trip records.

Training data cleaning:

- ``fare_amount`` contains negative fares. Some of them still have sensible
  values in every other column, so fares below the minimum fare in magnitude
  (-2.50 < x < 2.50) are dropped and the remaining negative fares are made
  positive. Fares above $350 are noise.
- Rows without a key, a pickup time or a passenger count are dropped.
- GPS coordinates outside the New York bounding box, or at (0, 0), are
  invalid. Pairs where latitude and longitude were recorded the wrong way
  round are swapped back; the rest are set to NaN and then imputed (or
  dropped, which is what the first version of the analysis did).
- passenger_count must be between 1 and 7.
- Trips with zero distance (getting in and straight out again) or more than
  150 miles are removed.

Scoring rows (test.csv) are never dropped: every row needs a prediction, so
their invalid coordinates are imputed with the imputer fitted on the
training rows.
"""
import logging
from collections import OrderedDict

import numpy as np
from sklearn.impute import SimpleImputer

from .config import (KEY, MAX_DISTANCE_MILES, MAX_FARE, MAX_PASSENGERS, MIN_FARE, NYC_BOX,
                     PICKUP_DATETIME, TARGET, COORDINATES)
from .errors import EmptyDatasetError
from .features import ENGINEERED, haversine_miles, in_box
from .loading import anonymous_feature_columns

log = logging.getLogger(__name__)

ENDPOINTS = [('pickup_latitude', 'pickup_longitude'), ('dropoff_latitude', 'dropoff_longitude')]


def _record(report, stage, before, after):
    removed = before - len(after)
    report[stage] = removed
    log.info("%-22s removed %d rows, %d left", stage, removed, len(after))
    if len(after) == 0:
        raise EmptyDatasetError(stage)
    return after


def clean_fares(df):
    fares = df[TARGET]
    df = df[(fares >= MIN_FARE) | (fares <= -MIN_FARE)].copy()
    df[TARGET] = df[TARGET].abs()
    return df[df[TARGET] <= MAX_FARE]


def drop_missing(df):
    subset = [c for c in (KEY, PICKUP_DATETIME, 'passenger_count', TARGET) if c in df.columns]
    return df.dropna(subset=subset)


def clean_passengers(df):
    return df[(df['passenger_count'] > 0) & (df['passenger_count'] < MAX_PASSENGERS)]


def flag_invalid_coordinates(df, box=NYC_BOX):
    """Set endpoints outside ``box`` (or at 0) to NaN; swapped pairs are repaired.

    Returns a copy and the number of endpoints that were invalidated.
    """
    df = df.copy()
    invalidated = 0
    for lat_col, lon_col in ENDPOINTS:
        lat, lon = df[lat_col], df[lon_col]
        valid = in_box(lat, lon, box) & (lat != 0) & (lon != 0)
        swapped = ~valid & in_box(lon, lat, box)
        if swapped.any():
            log.info("Swapping %d %s/%s pairs recorded the wrong way round",
                     swapped.sum(), lat_col, lon_col)
            df.loc[swapped, [lat_col, lon_col]] = df.loc[swapped, [lon_col, lat_col]].to_numpy()
        bad = ~(valid | swapped)
        invalidated += int(bad.sum())
        df.loc[bad, [lat_col, lon_col]] = np.nan
    return df, invalidated


def imputed_columns(df):
    return COORDINATES + anonymous_feature_columns(df, known=ENGINEERED)


def fit_imputer(df, strategy='median'):
    imputer = SimpleImputer(strategy=strategy, keep_empty_features=True)
    imputer.fit(df[imputed_columns(df)])
    return imputer


def impute_coordinates(df, strategy='median', imputer=None):
    """Fill NaN coordinates (and anonymous features).

    ``strategy='drop'`` removes incomplete rows instead. When ``imputer`` is
    given it is used as is; otherwise one is fitted on ``df``.
    """
    cols = imputed_columns(df)
    if strategy == 'drop' and imputer is None:
        return df.dropna(subset=cols), None
    if imputer is None:
        imputer = fit_imputer(df, strategy)
    df = df.copy()
    df[cols] = imputer.transform(df[cols])
    return df, imputer


def clean_distances(df):
    distance = df['haversine'] if 'haversine' in df.columns else haversine_miles(df)
    return df[(distance > 0) & (distance <= MAX_DISTANCE_MILES)]


def clean_training_frame(df, strategy='median'):
    """Full training cleaning sequence.

    Returns the cleaned frame, the fitted imputer (None for 'drop') and a
    report of rows removed per step.
    """
    report = OrderedDict(raw_rows=len(df))
    df = _record(report, 'fares', len(df), clean_fares(df))
    df = _record(report, 'missing_values', len(df), drop_missing(df))
    df = _record(report, 'passenger_count', len(df), clean_passengers(df))

    df, invalidated = flag_invalid_coordinates(df)
    report['invalid_endpoints'] = invalidated
    before = len(df)
    df, imputer = impute_coordinates(df, strategy)
    df = _record(report, 'coordinates', before, df)

    df = _record(report, 'distance', len(df), clean_distances(df))
    report['clean_rows'] = len(df)
    log.info("Cleaning kept %d of %d rows (%.1f%%)", len(df), report['raw_rows'],
             100.0 * len(df) / report['raw_rows'])
    return df, imputer, report


def clean_scoring_frame(df, imputer):
    df, invalidated = flag_invalid_coordinates(df)
    if invalidated:
        log.info("Imputing %d invalid endpoints in scoring data", invalidated)
    df, _ = impute_coordinates(df, imputer=imputer)
    if df[PICKUP_DATETIME].isna().any():
        df[PICKUP_DATETIME] = df[PICKUP_DATETIME].fillna(df[PICKUP_DATETIME].median())
    df['passenger_count'] = df['passenger_count'].fillna(1)
    return df
