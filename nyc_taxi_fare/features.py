"""Feature engineering for taxi trips.

Features added to each trip:

- ``euclidean``, ``grid_dist``, ``haversine``: three distance measures in miles.
  Haversine ("as the crow flies") takes the curvature of the Earth into
  account; grid distance follows Manhattan's street grid.
- ``year``, ``month``, ``day``, ``day_of_week``, ``hour_of_day``, ``time``:
  pickup time in New York local time, ``time`` being seconds since midnight.
- ``is_rush_hour``: 4pm to 8pm on weekdays, $1 surcharge.
- ``is_night``: 8pm to 6am, $0.50 surcharge.
- ``is_jfk``, ``is_newark``: either endpoint inside the airport box.
- ``est_fare``: fare from the published rules, assuming no waiting time.
- ``pickup_cluster``, ``dropoff_cluster``: nearest pickup-location centroid.
"""
import logging

import numpy as np
from haversine import Unit, haversine_vector
from sklearn.cluster import MiniBatchKMeans

from .config import (BASE_FARE, COORDINATES, EARTH_RADIUS_KM, FARE_PER_FIFTH_MILE, JFK_BOX,
                     JFK_FARE_CHANGE_YEAR, JFK_FLAT_FARE, JFK_FLAT_FARE_PRE_2012,
                     JFK_RUSH_HOUR_SURCHARGE, KM_TO_MILES, LOG_TARGET, N_PICKUP_CLUSTERS,
                     NEWARK_BOX, NEWARK_SURCHARGE, NIGHT_SURCHARGE, PICKUP_DATETIME,
                     RANDOM_STATE, RUSH_HOUR_SURCHARGE, TARGET)
from .loading import anonymous_feature_columns, to_local_time

log = logging.getLogger(__name__)

DISTANCE_FEATURES = ['euclidean', 'grid_dist', 'haversine']
DATE_FEATURES = ['year', 'month', 'day', 'day_of_week', 'hour_of_day', 'time']
FLAG_FEATURES = ['is_rush_hour', 'is_night', 'is_jfk', 'is_newark']
CLUSTER_FEATURES = ['pickup_cluster', 'dropoff_cluster']
ENGINEERED = DISTANCE_FEATURES + DATE_FEATURES + FLAG_FEATURES + ['est_fare'] + CLUSTER_FEATURES


def _cartesian(lat, lon):
    lat, lon = np.radians(lat), np.radians(lon)
    x = EARTH_RADIUS_KM * np.cos(lat) * np.cos(lon)
    y = EARTH_RADIUS_KM * np.cos(lat) * np.sin(lon)
    return x, y


def euclidean_miles(p_lat, p_long, d_lat, d_long):
    x1, y1 = _cartesian(p_lat, p_long)
    x2, y2 = _cartesian(d_lat, d_long)
    return np.sqrt((x2 - x1) ** 2 + (y2 - y1) ** 2) * KM_TO_MILES


def grid_miles(p_lat, p_long, d_lat, d_long):
    x1, y1 = _cartesian(p_lat, p_long)
    x2, y2 = _cartesian(d_lat, d_long)
    return (np.abs(x1 - x2) + np.abs(y1 - y2)) * KM_TO_MILES


def haversine_miles(df):
    pickups = df[['pickup_latitude', 'pickup_longitude']].to_numpy(dtype=float)
    dropoffs = df[['dropoff_latitude', 'dropoff_longitude']].to_numpy(dtype=float)
    return haversine_vector(pickups, dropoffs, Unit.MILES)


def add_distances(df):
    args = (df['pickup_latitude'], df['pickup_longitude'], df['dropoff_latitude'], df['dropoff_longitude'])
    df['euclidean'] = euclidean_miles(*args)
    df['grid_dist'] = grid_miles(*args)
    df['haversine'] = haversine_miles(df)
    return df


def add_date_parts(df):
    local = to_local_time(df[PICKUP_DATETIME])
    df['year'] = local.dt.year
    df['month'] = local.dt.month
    df['day'] = local.dt.day
    df['day_of_week'] = local.dt.weekday
    df['hour_of_day'] = local.dt.hour
    df['time'] = local.dt.hour * 60 * 60 + local.dt.minute * 60 + local.dt.second
    return df


def is_rush_hour(hr, wkd):
    return np.where((hr >= 16) & (hr < 20) & (wkd < 5), 1, 0)


def is_night(hr):
    return np.where((hr >= 20) | (hr < 6), 1, 0)


def in_box(lat, lon, box):
    lat_min, lat_max, lon_min, lon_max = box
    return (lat >= lat_min) & (lat <= lat_max) & (lon >= lon_min) & (lon <= lon_max)


def touches_box(df, box):
    pickup = in_box(df['pickup_latitude'], df['pickup_longitude'], box)
    dropoff = in_box(df['dropoff_latitude'], df['dropoff_longitude'], box)
    return np.where(pickup | dropoff, 1, 0)


def add_flags(df):
    df['is_rush_hour'] = is_rush_hour(df['hour_of_day'], df['day_of_week'])
    df['is_night'] = is_night(df['hour_of_day'])
    df['is_jfk'] = touches_box(df, JFK_BOX)
    df['is_newark'] = touches_box(df, NEWARK_BOX)
    return df


def estimate_fare(hav, rush, night, jfk, nwrk, year):
    """Fare from the published rate card.

    JFK trips are flat rate ($52, $45 before 2012) plus $4.50 in rush hour.
    Everything else is metered: $2.50 base, $0.50 per fifth of a mile and the
    rush hour, night and Newark surcharges.
    """
    rush, night, jfk, nwrk = (np.asarray(v).astype(bool) for v in (rush, night, jfk, nwrk))
    flat = np.where(np.asarray(year) >= JFK_FARE_CHANGE_YEAR, JFK_FLAT_FARE, JFK_FLAT_FARE_PRE_2012)
    flat = flat + np.where(rush, JFK_RUSH_HOUR_SURCHARGE, 0.0)

    metered = BASE_FARE + FARE_PER_FIFTH_MILE * (np.asarray(hav) / 0.2)
    metered = metered + np.where(rush, RUSH_HOUR_SURCHARGE, 0.0)
    metered = metered + np.where(night, NIGHT_SURCHARGE, 0.0)
    metered = metered + np.where(nwrk, NEWARK_SURCHARGE, 0.0)
    return np.where(jfk, flat, metered)


class PickupClusterer:
    """Groups trips by pickup location with mini-batch k-means.

    Centroids are learnt from pickup coordinates only; dropoffs are assigned
    to the same centroids so both columns share one vocabulary of areas.
    """

    def __init__(self, n_clusters=N_PICKUP_CLUSTERS, random_state=RANDOM_STATE, batch_size=10000):
        self.n_clusters = n_clusters
        self.random_state = random_state
        self.batch_size = batch_size
        self.kmeans = None

    def fit(self, df):
        coords = df[['pickup_latitude', 'pickup_longitude']].to_numpy(dtype=float)
        n_clusters = min(self.n_clusters, len(coords))
        self.kmeans = MiniBatchKMeans(n_clusters=n_clusters, batch_size=self.batch_size,
                                      random_state=self.random_state, n_init=3)
        self.kmeans.fit(coords)
        log.info("Fitted %d pickup clusters on %d trips", n_clusters, len(coords))
        return self

    @property
    def centers(self):
        return self.kmeans.cluster_centers_

    def transform(self, df):
        if self.kmeans is None:
            raise RuntimeError("PickupClusterer must be fitted before transform")
        df['pickup_cluster'] = self.kmeans.predict(df[['pickup_latitude', 'pickup_longitude']].to_numpy(dtype=float))
        df['dropoff_cluster'] = self.kmeans.predict(df[['dropoff_latitude', 'dropoff_longitude']].to_numpy(dtype=float))
        return df

    def fit_transform(self, df):
        return self.fit(df).transform(df)


def add_log_target(df):
    df[LOG_TARGET] = np.log1p(df[TARGET])
    return df


def fare_from_log(log_fare):
    return np.expm1(log_fare)


def build_features(df, clusterer=None, n_clusters=N_PICKUP_CLUSTERS, random_state=RANDOM_STATE):
    """Add every engineered feature; fits a new clusterer when none is given."""
    out = df.copy()
    add_distances(out)
    add_date_parts(out)
    add_flags(out)
    out['est_fare'] = estimate_fare(out['haversine'], out['is_rush_hour'], out['is_night'],
                                    out['is_jfk'], out['is_newark'], out['year'])
    if clusterer is None:
        clusterer = PickupClusterer(n_clusters=n_clusters, random_state=random_state).fit(out)
    clusterer.transform(out)
    if TARGET in out.columns:
        add_log_target(out)
    return out, clusterer


def feature_columns(df):
    anonymous = anonymous_feature_columns(df, known=ENGINEERED + [LOG_TARGET])
    return ENGINEERED + ['passenger_count'] + COORDINATES + anonymous
