"""Tests for memoria.analysis.metrics and memoria.analysis.results."""

import numpy as np
import pandas as pd
import pytest

from memoria.analysis.metrics import autocorrelation, compute_vif
from memoria.analysis.results import features_to_frame, memory_table_wide, summarize_r2
from memoria.exceptions import ValidationError
from memoria.types import MemoryFeatures, MemorySummary


# ---------------------------------------------------------------------------
# Autocorrelation
# ---------------------------------------------------------------------------

class TestAutocorrelation:

    def test_columns_and_lag_zero(self):
        rng = np.random.RandomState(42)
        acf = autocorrelation(rng.randn(100), max_lag=5)
        assert list(acf.columns) == ["lag", "acf", "ci_min", "ci_max"]
        assert list(acf["lag"]) == [0, 1, 2, 3, 4, 5]
        assert acf["acf"].iloc[0] == 1.0

    def test_confidence_band(self):
        acf = autocorrelation(np.sin(np.arange(400) / 5.0), max_lag=3)
        assert acf["ci_max"].iloc[0] == pytest.approx(1.96 / np.sqrt(400))
        assert acf["ci_min"].iloc[0] == pytest.approx(-1.96 / np.sqrt(400))

    def test_smooth_series_is_autocorrelated(self):
        acf = autocorrelation(np.sin(np.arange(400) / 5.0), max_lag=3)
        assert acf["acf"].iloc[1] > 0.9

    def test_default_max_lag(self):
        acf = autocorrelation(np.arange(40, dtype=float))
        assert acf["lag"].max() == 10

    def test_constant_series(self):
        acf = autocorrelation(np.ones(20), max_lag=3)
        assert list(acf["acf"]) == [1.0, 0.0, 0.0, 0.0]

    def test_too_short(self):
        with pytest.raises(ValidationError):
            autocorrelation([1.0])


# ---------------------------------------------------------------------------
# Variance inflation factor
# ---------------------------------------------------------------------------

class TestComputeVif:

    def test_independent_predictors_near_one(self, lagged_random):
        vif = compute_vif(lagged_random)
        assert list(vif.columns) == ["variable", "vif"]
        assert "response__0" not in set(vif["variable"])
        assert "time" not in set(vif["variable"])
        assert len(vif) == len(lagged_random.columns) - 1
        assert (vif["vif"] < 2).all()

    def test_collinear_columns(self):
        rng = np.random.RandomState(0)
        a = rng.randn(100)
        frame = pd.DataFrame({"a": a, "b": 2 * a, "c": rng.randn(100)})
        vif = compute_vif(frame).set_index("variable")["vif"]
        assert np.isinf(vif["a"]) or vif["a"] > 1e6
        assert vif["c"] < 2

    def test_smooth_series_inflates(self, palaeo_series):
        from memoria.core.lags import lag_time_series
        lagged = lag_time_series(
            palaeo_series, "response", "driver", "time", [0, 20, 40, 60], oldest_sample="last"
        )
        vif = compute_vif(lagged)
        assert vif["vif"].max() > 1.5

    def test_needs_two_predictors(self):
        with pytest.raises(ValidationError):
            compute_vif(pd.DataFrame({"a": [1.0, 2.0, 3.0]}))


# ---------------------------------------------------------------------------
# Tabular views
# ---------------------------------------------------------------------------

class TestResultViews:

    def test_memory_table_wide(self, memory_table):
        wide = memory_table_wide(memory_table)
        assert list(wide.index) == [0.0, 1.0, 2.0, 3.0]
        assert set(wide.columns) == {"response", "driver", "random"}
        assert wide.loc[2.0, "driver"] == 6.0

    def test_memory_table_wide_other_statistic(self, memory_table):
        wide = memory_table_wide(memory_table, value="p95")
        assert wide.loc[1.0, "response"] == pytest.approx(5.2)

    def test_memory_table_wide_unknown_statistic(self, memory_table):
        with pytest.raises(ValueError):
            memory_table_wide(memory_table, value="mean")

    def test_features_to_frame(self):
        features = [
            MemoryFeatures("a", 1.0, 2.0, 0.5, 0.2, 0.4, 0.1, 0.6),
            MemoryFeatures("b", 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0),
        ]
        frame = features_to_frame(features)
        assert list(frame["label"]) == ["a", "b"]
        assert frame.loc[0, "strength.exogenous"] == 2.0
        assert frame.shape == (2, 8)

    def test_features_to_frame_empty(self):
        frame = features_to_frame([])
        assert frame.empty
        assert "dominance.exogenous" in frame.columns

    def test_summarize_r2(self, memory_table):
        summary = MemorySummary(
            response="response",
            drivers=["driver"],
            memory=memory_table,
            r2=np.array([0.5, 0.7, np.nan]),
            prediction=pd.DataFrame(columns=["median", "sd", "p05", "p95"]),
        )
        stats = summarize_r2(summary)
        assert stats["mean"] == pytest.approx(0.6)
        assert stats["min"] == 0.5
        assert stats["max"] == 0.7
        assert stats["sd"] == pytest.approx(np.std([0.5, 0.7], ddof=1))
