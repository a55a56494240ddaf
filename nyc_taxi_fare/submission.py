import logging
import os

import pandas as pd

from .cleaning import clean_scoring_frame
from .config import KEY, TARGET
from .features import ENGINEERED, build_features, fare_from_log
from .loading import check_columns

log = logging.getLogger(__name__)


def predict_fares(bundle, df):
    """Predict dollar fares for raw scoring rows with a trained bundle."""
    # raw model inputs must be present before the imputer sees the frame
    check_columns(df, [c for c in bundle['features'] if c not in ENGINEERED],
                  source="scoring data")
    scoring = clean_scoring_frame(df, bundle.get('imputer'))
    scoring, _ = build_features(scoring, clusterer=bundle['clusterer'])
    predictions = fare_from_log(bundle['model'].predict(scoring[bundle['features']]))
    return pd.Series(predictions, index=scoring.index, name=TARGET)


def write_submission(keys, fares, path):
    predic = pd.DataFrame({KEY: list(keys), TARGET: list(fares)})
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    predic.to_csv(path, index=False)
    log.info("Wrote %d predictions to %s", len(predic), path)
    return predic
