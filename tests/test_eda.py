"""
Tests for nyc_taxi_fare.eda
"""

import json
import os

import numpy as np
import pandas as pd
import pytest

from nyc_taxi_fare.eda import pearson_table, run_eda, summarize
from nyc_taxi_fare.features import build_features


class TestPearsonTable:
    """Tests for pearson_table."""

    def test_perfect_correlation(self):
        df = pd.DataFrame({'a': [1.0, 2.0, 3.0, 4.0], 'b': [2.0, 4.0, 6.0, 8.0], 'c': [4.0, 3.0, 2.0, 1.0]})
        table = pearson_table(df, [('a', 'b'), ('a', 'c')])
        assert list(table['r']) == pytest.approx([1.0, -1.0])

    def test_missing_and_constant_columns_skipped(self):
        df = pd.DataFrame({'a': [1.0, 2.0, 3.0], 'k': [5.0, 5.0, 5.0]})
        table = pearson_table(df, [('a', 'zzz'), ('a', 'k')])
        assert table.empty
        assert list(table.columns) == ['x', 'y', 'r', 'p_value']


class TestRunEda:
    """Tests for summarize and run_eda."""

    def test_summary(self, parsed_trips):
        summary = summarize(parsed_trips)
        assert summary['rows'] == 240
        assert 'fare_amount' in summary['describe'].columns
        assert summary['first_pickup'] <= summary['last_pickup']

    def test_writes_results_and_plots(self, parsed_trips, tmp_path):
        trips, _ = build_features(parsed_trips, n_clusters=4)
        results = run_eda(trips, str(tmp_path))

        with open(tmp_path / 'eda_results.json') as f:
            saved = json.load(f)
        assert saved['rows'] == 240
        assert {'x': 'euclidean', 'y': 'fare_amount'}.items() <= saved['correlations'][0].items()
        assert saved['correlations'][0]['r'] > 0.5
        for name in results['plots']:
            assert os.path.exists(tmp_path / name)
        assert 'pickup_clusters.png' in results['plots']
        assert 'correlation_heatmap.png' in results['plots']
        assert np.isfinite(results['log_fare_skewness'])
