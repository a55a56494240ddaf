"""
Shared fixtures: small synthetic trip files shaped like train.csv / test.csv.
"""

import numpy as np
import pandas as pd
import pytest

ANONYMOUS = ['feat_%d' % i for i in range(10)]


def make_trips(n=240, seed=0, with_target=True):
    rng = np.random.RandomState(seed)
    p_lat = rng.uniform(40.70, 40.80, n)
    p_lon = rng.uniform(-74.02, -73.93, n)
    d_lat = rng.uniform(40.70, 40.80, n)
    d_lon = rng.uniform(-74.02, -73.93, n)
    start = pd.Timestamp("2010-01-01").value // 10 ** 9
    end = pd.Timestamp("2014-12-31").value // 10 ** 9
    stamps = pd.to_datetime(rng.randint(start, end, n), unit='s')
    trips = pd.DataFrame({
        'key': ['%s.%07d' % (s.strftime('%Y-%m-%d %H:%M:%S'), i) for i, s in enumerate(stamps)],
        'pickup_datetime': stamps.strftime('%Y-%m-%d %H:%M:%S') + ' UTC',
        'pickup_longitude': p_lon,
        'pickup_latitude': p_lat,
        'dropoff_longitude': d_lon,
        'dropoff_latitude': d_lat,
        'passenger_count': rng.randint(1, 5, n),
    })
    for i, name in enumerate(ANONYMOUS):
        trips[name] = rng.normal(i, 1.0, n)
    if with_target:
        miles = np.hypot((d_lat - p_lat) * 69.0, (d_lon - p_lon) * 52.4)
        fare = 2.5 + 2.5 * miles + rng.normal(0, 0.5, n)
        trips.insert(1, 'fare_amount', np.round(np.clip(fare, 3.0, None), 2))
    return trips


@pytest.fixture
def raw_trips():
    return make_trips()


@pytest.fixture
def parsed_trips(raw_trips):
    from nyc_taxi_fare.loading import parse_pickup_datetime
    trips = raw_trips.copy()
    trips['pickup_datetime'] = parse_pickup_datetime(trips['pickup_datetime'])
    return trips


@pytest.fixture
def train_csv(tmp_path):
    path = tmp_path / "train.csv"
    make_trips(n=240, seed=1).to_csv(path, index=False)
    return path


@pytest.fixture
def test_csv(tmp_path):
    path = tmp_path / "test.csv"
    trips = make_trips(n=30, seed=2, with_target=False)
    # one row with a lost GPS fix, it must still get a prediction
    trips.loc[0, ['pickup_longitude', 'pickup_latitude']] = 0.0
    trips.to_csv(path, index=False)
    return path
