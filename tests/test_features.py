"""Tests for memoria.analysis.features: strength, length and dominance."""

import numpy as np
import pandas as pd
import pytest

from memoria.analysis.features import extract_memory_features
from memoria.core.memory import compute_memory
from memoria.exceptions import DataError, ValidationError
from memoria.types import MemoryFeatures, MemorySummary


def _summary(memory):
    return MemorySummary(
        response="response",
        drivers=["driver"],
        memory=memory,
        r2=np.array([0.9]),
        prediction=pd.DataFrame(columns=["median", "sd", "p05", "p95"]),
    )


# ---------------------------------------------------------------------------
# Hand-built memory tables
# ---------------------------------------------------------------------------

class TestExtractMemoryFeatures:

    def test_values(self, memory_table):
        features = extract_memory_features(memory_table, "response", "driver")
        assert features.strength_concurrent == pytest.approx(2.0)
        assert features.strength_endogenous == pytest.approx(4.0)
        assert features.strength_exogenous == pytest.approx(5.0)
        assert features.length_endogenous == pytest.approx(2 / 3)
        assert features.length_exogenous == pytest.approx(2 / 3)
        assert features.dominance_endogenous == pytest.approx(1 / 3)
        assert features.dominance_exogenous == pytest.approx(1 / 3)

    def test_defaults_from_summary(self, memory_table):
        features = extract_memory_features(_summary(memory_table))
        assert features.label == "response"
        assert features.strength_exogenous == pytest.approx(5.0)

    def test_label(self, memory_table):
        features = extract_memory_features(_summary(memory_table), label="Pinus")
        assert features.label == "Pinus"

    def test_without_benchmark_baseline_is_zero(self, memory_table):
        table = memory_table[memory_table["variable"] != "random"]
        features = extract_memory_features(table, "response", "driver")
        assert features.strength_endogenous == pytest.approx(5.0)
        assert features.strength_concurrent == pytest.approx(3.0)
        assert features.length_endogenous == pytest.approx(1.0)
        assert features.length_exogenous == pytest.approx(1.0)

    def test_values_equal_to_baseline_do_not_count(self, memory_table):
        table = memory_table.copy()
        table.loc[(table["variable"] == "response") & (table["lag"] == 1), "median"] = 1.0
        features = extract_memory_features(table, "response", "driver")
        assert features.length_endogenous == pytest.approx(1 / 3)

    def test_ties_count_for_neither(self, memory_table):
        table = memory_table.copy()
        table.loc[table["lag"] > 0, "median"] = np.where(
            table.loc[table["lag"] > 0, "variable"] == "random", 1.0, 3.0
        )
        features = extract_memory_features(table, "response", "driver")
        assert features.dominance_endogenous == 0.0
        assert features.dominance_exogenous == 0.0

    def test_several_exogenous_take_the_maximum(self, memory_table):
        extra = pd.DataFrame({
            "variable": "temperature",
            "lag": [0.0, 1.0, 2.0, 3.0],
            "median": [0.0, 9.0, 0.0, 0.0],
            "sd": 0.0, "p05": 0.0, "p95": 0.0,
        })
        table = pd.concat([memory_table, extra], ignore_index=True)
        features = extract_memory_features(table, "response", ["driver", "temperature"])
        assert features.strength_exogenous == pytest.approx(8.0)
        # Concurrent effect comes from the first driver only
        assert features.strength_concurrent == pytest.approx(2.0)
        assert features.dominance_exogenous == pytest.approx(2 / 3)

    def test_categorical_variable_column(self, memory_table):
        table = memory_table.copy()
        table["variable"] = pd.Categorical(
            table["variable"], categories=["response", "driver", "random"], ordered=True
        )
        features = extract_memory_features(table, "response", "driver")
        assert features.strength_exogenous == pytest.approx(5.0)

    def test_to_dict_keys(self, memory_table):
        record = extract_memory_features(memory_table, "response", "driver").to_dict()
        assert list(record) == [
            "label",
            "strength.endogenous", "strength.exogenous", "strength.concurrent",
            "length.endogenous", "length.exogenous",
            "dominance.endogenous", "dominance.exogenous",
        ]


class TestExtractMemoryFeaturesErrors:

    def test_only_lag_zero(self, memory_table):
        table = memory_table[memory_table["lag"] == 0]
        with pytest.raises(ValidationError, match="lag other than 0"):
            extract_memory_features(table, "response", "driver")

    def test_unknown_exogenous(self, memory_table):
        with pytest.raises(DataError, match="rainfall"):
            extract_memory_features(memory_table, "response", "rainfall")

    def test_unknown_endogenous(self, memory_table):
        with pytest.raises(DataError, match="Quercus"):
            extract_memory_features(memory_table, "Quercus", "driver")

    def test_dataframe_needs_names(self, memory_table):
        with pytest.raises(ValidationError, match="cannot be None"):
            extract_memory_features(memory_table)

    def test_missing_columns(self):
        with pytest.raises(ValidationError, match="median"):
            extract_memory_features(pd.DataFrame({"variable": ["a"], "lag": [1.0]}), "a", "b")

    def test_wrong_type(self):
        with pytest.raises(ValidationError):
            extract_memory_features([1, 2, 3], "a", "b")


# ---------------------------------------------------------------------------
# Bounds over random memory tables
# ---------------------------------------------------------------------------

class TestFeatureBounds:

    @pytest.mark.parametrize("seed", range(25))
    def test_lengths_and_dominance_bounds(self, seed):
        rng = np.random.RandomState(seed)
        lags = np.arange(0, rng.randint(2, 8), dtype=float)
        rows = []
        for variable in ["response", "driver", "random"]:
            values = rng.normal(0, 2, len(lags))
            if variable == "random":
                values[:] = values[0]
            for lag, value in zip(lags, values):
                rows.append((variable, lag, value))
        table = pd.DataFrame(rows, columns=["variable", "lag", "median"])

        features = extract_memory_features(table, "response", "driver")
        assert 0.0 <= features.length_endogenous <= 1.0
        assert 0.0 <= features.length_exogenous <= 1.0
        assert features.dominance_endogenous + features.dominance_exogenous <= 1.0 + 1e-12


# ---------------------------------------------------------------------------
# Known-memory scenario
# ---------------------------------------------------------------------------

class TestLag2Scenario:

    @pytest.mark.integration
    def test_exogenous_memory_peaks_at_lag_two(self, lagged_lag2):
        summary = compute_memory(lagged_lag2, repetitions=3, n_estimators=50, n_repeats=5)
        features = extract_memory_features(summary)

        assert isinstance(features, MemoryFeatures)
        assert features.strength_exogenous > features.strength_endogenous

        driver_rows = summary.memory[(summary.memory["variable"] == "driver") & (summary.memory["lag"] > 0)]
        peak = driver_rows.loc[driver_rows["median"].idxmax()]
        assert peak["lag"] == 2.0
        assert features.length_exogenous > 0
