"""Type definitions and data schemas for Memoria."""

from typing import Dict, List, Tuple, Optional, Union, Any, Protocol, Sequence
from dataclasses import dataclass
from enum import Enum
import numpy as np
import pandas as pd
from pydantic import BaseModel, Field, field_validator

from .exceptions import ValidationError

# Lagged column names are "<variable>__<lag>"
SEPARATOR = "__"

# Name of the synthetic benchmark predictor
RANDOM_NAME = "random"

# Type aliases
ArrayLike = Union[np.ndarray, Sequence[float]]
TimeWindow = Tuple[float, float]


# Enums
class OldestSample(str, Enum):
    """Position of the oldest sample in a time series table."""
    FIRST = "first"
    LAST = "last"

    @classmethod
    def parse(cls, value: Union[str, "OldestSample"]) -> "OldestSample":
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.lower() in ("first", "last"):
            return cls(value.lower())
        raise ValidationError(
            f"Argument oldest_sample must be 'first' or 'last', got {value!r}"
        )


class RandomMode(str, Enum):
    """Kind of random benchmark added to the model."""
    NONE = "none"
    WHITE_NOISE = "white_noise"
    AUTOCORRELATED = "autocorrelated"

    @classmethod
    def parse(cls, value: Union[str, "RandomMode", None]) -> "RandomMode":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        if isinstance(value, str):
            normalized = value.lower().replace(".", "_")
            for mode in cls:
                if mode.value == normalized:
                    return mode
        raise ValidationError(
            f"Argument random_mode must be one of 'none', 'white_noise', 'autocorrelated', got {value!r}"
        )


class SubsetResponse(str, Enum):
    """Trend direction used to subset modeling rows."""
    NONE = "none"
    UP = "up"
    DOWN = "down"

    @classmethod
    def parse(cls, value: Union[str, "SubsetResponse", None]) -> "SubsetResponse":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        if isinstance(value, str) and value.lower() in ("none", "up", "down"):
            return cls(value.lower())
        raise ValidationError(
            f"Argument subset_response must be 'up', 'down' or 'none', got {value!r}"
        )


# Data classes
@dataclass(frozen=True)
class LaggedColumn:
    """A lagged column and the (variable, lag) pair it was built from."""
    name: str
    variable: str
    lag: float


@dataclass(frozen=True)
class LaggedTable:
    """Lagged design matrix produced by the lag transformer.

    ``data`` holds one column per entry of ``columns`` plus, when ``time`` is
    set, the unshifted time column.
    """
    data: pd.DataFrame
    response: str
    drivers: List[str]
    columns: List[LaggedColumn]
    lags: np.ndarray
    time: Optional[str] = None

    @property
    def target(self) -> str:
        """Name of the lag-0 response column."""
        return self.column_for(self.response, 0.0).name

    @property
    def n_rows(self) -> int:
        return len(self.data)

    def column_for(self, variable: str, lag: float) -> LaggedColumn:
        for column in self.columns:
            if column.variable == variable and np.isclose(column.lag, lag):
                return column
        raise KeyError(f"No lagged column for variable {variable!r} at lag {lag}")

    def columns_of(self, variables: Sequence[str]) -> List[LaggedColumn]:
        """Lagged columns belonging to any of ``variables``, in table order."""
        wanted = set(variables)
        return [c for c in self.columns if c.variable in wanted]

    def variables(self) -> List[str]:
        seen: List[str] = []
        for column in self.columns:
            if column.variable not in seen:
                seen.append(column.variable)
        return seen

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        response: str,
        drivers: Sequence[str],
        time: Optional[str] = None,
    ) -> "LaggedTable":
        """Wrap an externally built lagged frame.

        Column names are split on the separator here, once. Columns that do
        not follow the ``<variable>__<lag>`` pattern (other than ``time``) are
        dropped.
        """
        columns: List[LaggedColumn] = []
        keep: List[str] = []
        for name in frame.columns:
            name = str(name)
            if name == time:
                continue
            variable, sep, lag_label = name.rpartition(SEPARATOR)
            if not sep:
                continue
            try:
                lag = float(lag_label)
            except ValueError:
                continue
            columns.append(LaggedColumn(name=name, variable=variable, lag=lag))
            keep.append(name)

        if time is not None and time in frame.columns:
            keep.append(time)
        else:
            time = None

        lags = np.unique([c.lag for c in columns]) if columns else np.array([0.0])
        return cls(
            data=frame.loc[:, keep].copy(),
            response=response,
            drivers=list(drivers),
            columns=columns,
            lags=lags,
            time=time,
        )


@dataclass
class MemorySample:
    """Result of one model fit."""
    seed: int
    importance: Dict[str, float]
    r2: float
    predictions: np.ndarray


@dataclass
class MemorySummary:
    """Aggregated outcome of all repetitions of the memory estimator.

    ``memory`` is a long table with columns variable, lag, median, sd, p05
    and p95. ``prediction`` has columns median, sd, p05, p95 and is indexed
    by the modeling rows.
    """
    response: str
    drivers: List[str]
    memory: pd.DataFrame
    r2: np.ndarray
    prediction: pd.DataFrame
    random_mode: RandomMode = RandomMode.AUTOCORRELATED
    subset_response: SubsetResponse = SubsetResponse.NONE
    lags: Optional[np.ndarray] = None

    @property
    def repetitions(self) -> int:
        return int(len(self.r2))

    @property
    def has_benchmark(self) -> bool:
        return bool((self.memory["variable"] == RANDOM_NAME).any())


@dataclass
class MemoryFeatures:
    """Ecological memory features of one analyzed unit."""
    label: str
    strength_endogenous: float
    strength_exogenous: float
    strength_concurrent: float
    length_endogenous: float
    length_exogenous: float
    dominance_endogenous: float
    dominance_exogenous: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "strength.endogenous": self.strength_endogenous,
            "strength.exogenous": self.strength_exogenous,
            "strength.concurrent": self.strength_concurrent,
            "length.endogenous": self.length_endogenous,
            "length.exogenous": self.length_exogenous,
            "dominance.endogenous": self.dominance_endogenous,
            "dominance.exogenous": self.dominance_exogenous,
        }


# Pydantic models for validation
class LagConfig(BaseModel):
    """Lag transformer configuration."""
    response: Optional[str] = None
    drivers: List[str] = []
    time: str = "time"
    lags: List[float] = [0.0, 1.0]
    oldest_sample: str = "first"
    time_window: Optional[TimeWindow] = None
    scale: bool = False

    @field_validator("oldest_sample")
    @classmethod
    def validate_oldest_sample(cls, v):
        return OldestSample.parse(v).value

    @field_validator("lags")
    @classmethod
    def validate_lags(cls, v):
        if any(lag < 0 for lag in v):
            raise ValueError("Lags must be non-negative")
        return v


class EstimatorConfig(BaseModel):
    """Memory estimator configuration."""
    random_mode: str = "autocorrelated"
    repetitions: int = Field(default=10, ge=1)
    subset_response: str = "none"
    n_estimators: int = Field(default=500, ge=1)
    min_samples_leaf: int = Field(default=5, ge=1)
    n_jobs: Optional[int] = 1
    n_workers: int = Field(default=1, ge=1)
    n_repeats: int = Field(default=5, ge=1)

    @field_validator("random_mode")
    @classmethod
    def validate_random_mode(cls, v):
        return RandomMode.parse(v).value

    @field_validator("subset_response")
    @classmethod
    def validate_subset_response(cls, v):
        return SubsetResponse.parse(v).value


class FeatureConfig(BaseModel):
    """Feature extractor configuration."""
    enabled: bool = True
    endogenous: Optional[str] = None
    exogenous: Optional[List[str]] = None
    label: Optional[str] = None


class DiagnosticsConfig(BaseModel):
    """Optional diagnostics run alongside the estimator."""
    vif: bool = False


class AnalysisConfig(BaseModel):
    """Complete analysis configuration."""
    name: str = "memoria"
    lags: LagConfig = Field(default_factory=LagConfig)
    memory: EstimatorConfig = Field(default_factory=EstimatorConfig)
    features: FeatureConfig = Field(default_factory=FeatureConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)

    model_config = {"extra": "allow"}


# Protocol classes for type checking
class ImportanceOracle(Protocol):
    """Regression backend returning per-feature permutation importance."""

    def fit_importance(
        self, features: pd.DataFrame, target: np.ndarray, seed: int
    ) -> Tuple[Dict[str, float], np.ndarray]:
        """Fit on ``features`` and return (importance per column, predictions)."""
        ...
