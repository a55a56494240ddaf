"""Reading the trip CSVs.

The training file is far too large for one machine (~55M rows), so it is
sampled while reading: only every n-th data row is kept, the rest is passed
to ``pandas.read_csv`` as ``skiprows``.
"""
import logging

import pandas as pd
from dateutil import tz

from .config import (COORDINATES, DATETIME_FORMAT, KEY, LOCAL_TIMEZONE, PICKUP_DATETIME,
                     REQUIRED_COLUMNS, TARGET)
from .errors import MissingColumnsError

log = logging.getLogger(__name__)

RAW_COLUMNS = set(REQUIRED_COLUMNS) | {TARGET}


def sampled_skiprows(every):
    """Row filter for ``read_csv(skiprows=...)`` keeping every ``every``-th data row.

    Row 0 is the header and is always kept.
    """
    if every is None or every <= 1:
        return None
    return lambda x: x > 0 and x % every != 0


def check_columns(df, required, source=None):
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise MissingColumnsError(missing, source)


def parse_pickup_datetime(series):
    # "2009-06-15 17:26:21 UTC"
    stripped = series.astype(str).str.replace(r"\s*UTC$", "", regex=True)
    return pd.to_datetime(stripped, format=DATETIME_FORMAT, utc=True, errors='coerce')


def to_local_time(series):
    return series.dt.tz_convert(tz.gettz(LOCAL_TIMEZONE))


def load_trips(path, every=1, nrows=None, require_target=False):
    trips = pd.read_csv(path, skiprows=sampled_skiprows(every), nrows=nrows)

    required = REQUIRED_COLUMNS + ([TARGET] if require_target else [])
    check_columns(trips, required, source=path)

    trips[KEY] = trips[KEY].astype(str)
    trips[PICKUP_DATETIME] = parse_pickup_datetime(trips[PICKUP_DATETIME])
    for col in COORDINATES:
        trips[col] = pd.to_numeric(trips[col], errors='coerce')

    log.info("Loaded %d rows from %s (every %s-th row), %d anonymous features",
             len(trips), path, every or 1, len(anonymous_feature_columns(trips)))
    return trips


def anonymous_feature_columns(df, known=()):
    """Numeric columns that are neither raw trip columns nor in ``known``."""
    skip = RAW_COLUMNS | set(known)
    return [c for c in df.columns
            if c not in skip and pd.api.types.is_numeric_dtype(df[c])]
