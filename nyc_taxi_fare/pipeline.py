"""NYC taxi fare prediction, start to finish.

Phases run in order, each timed:

1. load a sample of train.csv
2. clean it (fares, missing values, passengers, GPS coordinates, distances)
3. engineer features and the log-fare target
4. exploratory analysis (plots and correlations into the output directory)
5. cross-validate, tune and compare the model families, keep the best one
6. predict test.csv and write submission.csv
"""
import argparse
import json
import logging
import os
import sys

from .cleaning import clean_training_frame
from .config import (CV_FOLDS, DEFAULT_SAMPLE_EVERY, IMPUTATION_STRATEGIES, N_PICKUP_CLUSTERS,
                     RANDOM_STATE, AnalysisConfig)
from .eda import run_eda
from .errors import TaxiFareError
from .features import build_features
from .loading import load_trips
from .log import Timer, setup_logging
from .modeling import run_modeling
from .submission import predict_fares, write_submission

log = logging.getLogger(__name__)


def run_pipeline(config):
    os.makedirs(config.output_dir, exist_ok=True)
    summary = {}

    with Timer("Loading %s" % config.train_path, log):
        trips = load_trips(config.train_path, every=config.sample_every, nrows=config.nrows,
                           require_target=True)

    with Timer("Cleaning", log):
        trips, imputer, report = clean_training_frame(trips, config.imputation)
    summary['cleaning'] = dict(report)
    with open(os.path.join(config.output_dir, 'cleaning_summary.json'), 'w') as f:
        json.dump(summary['cleaning'], f, indent=2)

    with Timer("Feature engineering", log):
        trips, clusterer = build_features(trips, n_clusters=config.n_clusters,
                                          random_state=config.random_state)

    if config.run_eda:
        with Timer("Exploratory analysis", log):
            summary['eda'] = run_eda(trips, config.output_dir)

    with Timer("Modeling", log):
        bundle, summary['models'] = run_modeling(trips, config, imputer=imputer, clusterer=clusterer)

    if config.test_path and os.path.exists(config.test_path):
        with Timer("Scoring %s" % config.test_path, log):
            scoring = load_trips(config.test_path)
            fares = predict_fares(bundle, scoring)
            write_submission(scoring['key'], fares, config.submission_path)
        summary['submission'] = config.submission_path
    else:
        log.warning("No scoring file at %s, skipping submission", config.test_path)
    return summary


def build_parser():
    parser = argparse.ArgumentParser(description="NYC taxi fare prediction")
    parser.add_argument("--train", default="train.csv", help="training CSV")
    parser.add_argument("--test", default="test.csv", help="CSV to predict for the submission")
    parser.add_argument("--output-dir", default="outputs", help="where plots, results and the model go")
    parser.add_argument("--sample-every", type=int, default=DEFAULT_SAMPLE_EVERY,
                        help="keep every n-th training row (1 keeps all)")
    parser.add_argument("--nrows", type=int, default=None, help="read at most this many rows")
    parser.add_argument("--clusters", type=int, default=N_PICKUP_CLUSTERS, help="number of pickup clusters")
    parser.add_argument("--folds", type=int, default=CV_FOLDS, help="cross-validation folds")
    parser.add_argument("--imputation", choices=IMPUTATION_STRATEGIES, default='median',
                        help="how invalid GPS coordinates are handled")
    parser.add_argument("--seed", type=int, default=RANDOM_STATE)
    parser.add_argument("--skip-eda", action="store_true", help="no plots or correlations")
    parser.add_argument("--skip-tuning", action="store_true", help="compare default models only")
    return parser


def main(argv=None):
    setup_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = AnalysisConfig.from_args(args)
    except ValueError as e:
        parser.error(str(e))
    try:
        with Timer("NYC taxi fare pipeline", log):
            run_pipeline(config)
    except TaxiFareError as e:
        log.error("%s", e)
        return 1
    except FileNotFoundError as e:
        log.error("Input file not found: %s", e.filename)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
