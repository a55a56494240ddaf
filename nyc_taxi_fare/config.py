import os
from dataclasses import dataclass, field


# Columns every trip file must carry. 'fare_amount' only exists in train.csv.
KEY = 'key'
TARGET = 'fare_amount'
LOG_TARGET = 'log_fare'
PICKUP_DATETIME = 'pickup_datetime'
COORDINATES = ['pickup_longitude', 'pickup_latitude', 'dropoff_longitude', 'dropoff_latitude']
REQUIRED_COLUMNS = [KEY, PICKUP_DATETIME] + COORDINATES + ['passenger_count']

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
LOCAL_TIMEZONE = "America/New_York"

# Bounding boxes as (lat_min, lat_max, lon_min, lon_max), taken from Google Maps.
# NYC box covers most of New York state, Connecticut, New Jersey, Pennsylvania
# and upper Maryland; the eastern edge is the Atlantic.
NYC_BOX = (39.05, 43.05, -75.01, -71.50)
JFK_BOX = (40.626, 40.664, -73.82, -73.77)
NEWARK_BOX = (40.665, 40.717, -74.192, -74.163)

MIN_FARE = 2.50
MAX_FARE = 350.0
MAX_DISTANCE_MILES = 150.0
MAX_PASSENGERS = 8

EARTH_RADIUS_KM = 6371
KM_TO_MILES = 0.621371

# Fare rules used for the rule-based estimate
BASE_FARE = 2.50
FARE_PER_FIFTH_MILE = 0.50
RUSH_HOUR_SURCHARGE = 1.00
NIGHT_SURCHARGE = 0.50
NEWARK_SURCHARGE = 17.50
JFK_FLAT_FARE = 52.0
JFK_FLAT_FARE_PRE_2012 = 45.0
JFK_RUSH_HOUR_SURCHARGE = 4.50
JFK_FARE_CHANGE_YEAR = 2012

# The full training file has ~55M rows, keep every 11th by default.
DEFAULT_SAMPLE_EVERY = 11
RANDOM_STATE = 42
TEST_SIZE = 0.33
CV_FOLDS = 5
N_PICKUP_CLUSTERS = 20
IMPUTATION_STRATEGIES = ('median', 'most_frequent', 'drop')


@dataclass
class AnalysisConfig:
    train_path: str = "train.csv"
    test_path: str = "test.csv"
    output_dir: str = "outputs"
    sample_every: int = DEFAULT_SAMPLE_EVERY
    nrows: int = None
    random_state: int = RANDOM_STATE
    test_size: float = TEST_SIZE
    cv_folds: int = CV_FOLDS
    n_clusters: int = N_PICKUP_CLUSTERS
    imputation: str = 'median'
    run_eda: bool = True
    run_tuning: bool = True
    families: list = field(default_factory=lambda: ['decision_tree', 'random_forest', 'gradient_boosting'])

    def __post_init__(self):
        if self.imputation not in IMPUTATION_STRATEGIES:
            raise ValueError("imputation must be one of %s, got %r" % (IMPUTATION_STRATEGIES, self.imputation))
        if self.cv_folds < 2:
            raise ValueError("cv_folds must be at least 2")

    @property
    def model_path(self):
        return os.path.join(self.output_dir, 'fare_model.joblib')

    @property
    def submission_path(self):
        return os.path.join(self.output_dir, 'submission.csv')

    @classmethod
    def from_args(cls, args):
        return cls(
            train_path=args.train,
            test_path=args.test,
            output_dir=args.output_dir,
            sample_every=args.sample_every,
            nrows=args.nrows,
            random_state=args.seed,
            cv_folds=args.folds,
            n_clusters=args.clusters,
            imputation=args.imputation,
            run_eda=not args.skip_eda,
            run_tuning=not args.skip_tuning,
        )
