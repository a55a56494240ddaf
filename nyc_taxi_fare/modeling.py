"""Model training, tuning and comparison.

Three tree-based families are compared on log(1 + fare): a single decision
tree, a random forest and gradient boosting. Each family is first scored
with its default parameters by k-fold cross-validation, then tuned with a
successive-halving race (``HalvingRandomSearchCV``): every round scores the
surviving candidates on a larger slice of the training rows and keeps the
best third. A plain linear regression is cross-validated as a reference.
"""
import json
import logging
import os

import joblib
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy.stats import loguniform, randint, uniform
from sklearn import linear_model
from sklearn.ensemble import GradientBoostingRegressor, RandomForestRegressor
from sklearn.experimental import enable_halving_search_cv  # noqa: F401
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import HalvingRandomSearchCV, KFold, cross_validate, train_test_split
from sklearn.tree import DecisionTreeRegressor

from .config import LOG_TARGET, RANDOM_STATE, TEST_SIZE
from .features import fare_from_log, feature_columns

log = logging.getLogger(__name__)

SCORING = {
    'rmse': 'neg_root_mean_squared_error',
    'mae': 'neg_mean_absolute_error',
    'r2': 'r2',
}
N_CANDIDATES = 24
HALVING_FACTOR = 3


def _decision_tree(seed):
    return DecisionTreeRegressor(random_state=seed)


def _random_forest(seed):
    return RandomForestRegressor(n_estimators=100, n_jobs=-1, random_state=seed)


def _gradient_boosting(seed):
    return GradientBoostingRegressor(random_state=seed)


MODEL_FAMILIES = {
    'decision_tree': (_decision_tree, {
        'max_depth': randint(4, 25),
        'min_samples_leaf': randint(1, 60),
        'min_samples_split': randint(2, 40),
    }),
    'random_forest': (_random_forest, {
        'max_depth': randint(6, 30),
        'min_samples_leaf': randint(1, 30),
        'max_features': ['sqrt', 0.5, 1.0],
    }),
    'gradient_boosting': (_gradient_boosting, {
        'learning_rate': loguniform(0.02, 0.3),
        'n_estimators': randint(100, 400),
        'max_depth': randint(3, 9),
        'subsample': uniform(0.6, 0.4),
        'min_samples_leaf': randint(1, 50),
    }),
}

BASELINE = 'linear_regression'


def make_model(name, seed=RANDOM_STATE):
    if name == BASELINE:
        return linear_model.LinearRegression()
    if name not in MODEL_FAMILIES:
        raise KeyError("unknown model family %r, expected one of %s" % (name, sorted(MODEL_FAMILIES)))
    factory, _ = MODEL_FAMILIES[name]
    return factory(seed)


def split_holdout(X, y, test_size=TEST_SIZE, seed=RANDOM_STATE):
    return train_test_split(X, y, test_size=test_size, random_state=seed)


def cross_validate_model(estimator, X, y, folds=5, seed=RANDOM_STATE):
    cv = KFold(n_splits=folds, shuffle=True, random_state=seed)
    scores = cross_validate(estimator, X, y, cv=cv, scoring=SCORING, n_jobs=1)
    metrics = {}
    for name in SCORING:
        values = scores['test_%s' % name]
        if name != 'r2':
            values = -values
        metrics['%s_mean' % name] = float(np.mean(values))
        metrics['%s_std' % name] = float(np.std(values))
    metrics['fit_time'] = float(np.sum(scores['fit_time']))
    return metrics


def tune_model(name, X, y, folds=5, seed=RANDOM_STATE, n_candidates=N_CANDIDATES):
    """Race ``n_candidates`` random configurations of one family.

    Returns a dict with the refitted best estimator, its parameters and the
    cross-validated RMSE of the winner on the last round.
    """
    _, space = MODEL_FAMILIES[name]
    search = HalvingRandomSearchCV(
        make_model(name, seed),
        space,
        n_candidates=n_candidates,
        factor=HALVING_FACTOR,
        resource='n_samples',
        cv=KFold(n_splits=folds, shuffle=True, random_state=seed),
        scoring=SCORING['rmse'],
        refit=True,
        random_state=seed,
        n_jobs=-1,
    )
    search.fit(X, y)
    log.info("%s race: %d rounds, best RMSE %.4f with %s",
             name, search.n_iterations_, -search.best_score_, search.best_params_)
    return {
        'estimator': search.best_estimator_,
        'params': search.best_params_,
        'rmse_mean': float(-search.best_score_),
        'rounds': int(search.n_iterations_),
        'candidates': int(search.n_candidates_[0]),
    }


def compare_models(results):
    table = pd.DataFrame.from_dict(results, orient='index')
    table.index.name = 'model'
    return table.sort_values('rmse_mean')


def evaluate_holdout(estimator, X_test, y_test):
    pred = estimator.predict(X_test)
    return {
        'rmse': float(np.sqrt(mean_squared_error(y_test, pred))),
        'mae': float(mean_absolute_error(y_test, pred)),
        'r2': float(r2_score(y_test, pred)),
        'rmse_dollars': float(np.sqrt(mean_squared_error(fare_from_log(y_test), fare_from_log(pred)))),
    }


def feature_importances(estimator, columns):
    return pd.Series(estimator.feature_importances_, index=columns).sort_values(ascending=False)


def plot_feature_importances(importances, output_dir, top=25):
    fig, ax = plt.subplots(figsize=(9, 8))
    importances.head(top).iloc[::-1].plot(kind='barh', ax=ax)
    ax.set_xlabel('Importance')
    ax.set_title('Feature importance')
    fig.tight_layout()
    path = os.path.join(output_dir, 'feature_importance.png')
    fig.savefig(path)
    plt.close(fig)
    return path


def save_model(bundle, path):
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    joblib.dump(bundle, path)
    log.info("Saved %s model to %s", bundle.get('family'), path)
    return path


def load_model(path):
    return joblib.load(path)


def run_modeling(df, config, imputer=None, clusterer=None, n_candidates=N_CANDIDATES):
    os.makedirs(config.output_dir, exist_ok=True)
    columns = feature_columns(df)
    X, y = df[columns], df[LOG_TARGET]
    X_train, X_test, y_train, y_test = split_holdout(X, y, config.test_size, config.random_state)
    log.info("Training on %d rows, holding out %d, %d features", len(X_train), len(X_test), len(columns))

    cv_results = {}
    for name in [BASELINE] + list(config.families):
        cv_results[name] = cross_validate_model(make_model(name, config.random_state), X_train, y_train,
                                                config.cv_folds, config.random_state)
        log.info("%s default CV RMSE %.4f", name, cv_results[name]['rmse_mean'])

    candidates = {name: {'estimator': make_model(name, config.random_state), 'params': {},
                         'rmse_mean': cv_results[name]['rmse_mean']}
                  for name in config.families}
    if config.run_tuning:
        for name in config.families:
            tuned = tune_model(name, X_train, y_train, config.cv_folds, config.random_state, n_candidates)
            if tuned['rmse_mean'] < candidates[name]['rmse_mean']:
                candidates[name] = tuned

    comparison = compare_models({name: {'rmse_mean': c['rmse_mean'], 'tuned': bool(c['params'])}
                                 for name, c in candidates.items()})
    print(compare_models(cv_results).round(4).to_string())
    print(comparison.to_string())

    winner = comparison.index[0]
    model = candidates[winner]['estimator']
    model.fit(X_train, y_train)
    holdout = evaluate_holdout(model, X_test, y_test)
    log.info("Best model %s: hold-out RMSE %.4f (log), $%.2f", winner, holdout['rmse'], holdout['rmse_dollars'])

    importances = feature_importances(model, columns)
    plot_feature_importances(importances, config.output_dir)

    bundle = {
        'family': winner,
        'model': model,
        'features': columns,
        'params': candidates[winner]['params'],
        'clusterer': clusterer,
        'imputer': imputer,
        'holdout': holdout,
    }
    save_model(bundle, config.model_path)

    results = {
        'cross_validation': cv_results,
        'tuned': {name: {'rmse_mean': c['rmse_mean'], 'params': c['params']} for name, c in candidates.items()},
        'best_model': winner,
        'holdout': holdout,
        'feature_importances': importances.round(5).to_dict(),
    }
    with open(os.path.join(config.output_dir, 'model_results.json'), 'w') as f:
        json.dump(results, f, indent=2, default=_json_default)
    return bundle, results


def _json_default(value):
    if isinstance(value, np.generic):
        return value.item()
    return str(value)
