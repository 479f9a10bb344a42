"""Ecological memory estimation on lagged data.

The estimator fits ``repetitions`` regression models predicting the lag-0
response from every other lagged column (plus a random benchmark), collects
permutation importance and predictions of each fit, and summarizes them per
(variable, lag) pair.
"""

import logging
import multiprocessing as mp
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy.stats import pearsonr

from ..exceptions import ComputationError, DataError, ValidationError
from ..types import (
    RANDOM_NAME,
    SEPARATOR,
    ImportanceOracle,
    LaggedColumn,
    LaggedTable,
    MemorySample,
    MemorySummary,
    RandomMode,
    SubsetResponse,
)
from ..data.validation import validate_distinct_names, validate_variable_names
from .benchmark import generate_random_benchmark
from .oracle import RandomForestImportanceOracle

logger = logging.getLogger(__name__)


def pseudo_r2(observed: np.ndarray, predicted: np.ndarray) -> float:
    """
    Squared Pearson correlation between observed and predicted values.

    Parameters
    ----------
    observed : np.ndarray
        Observed response
    predicted : np.ndarray
        Model predictions

    Returns
    -------
    r2 : float
        Pseudo R-squared, NaN when either vector is constant
    """
    observed = np.asarray(observed, dtype=float)
    predicted = np.asarray(predicted, dtype=float)

    if observed.shape != predicted.shape:
        raise ValueError("Observed and predicted values must have same shape")

    if len(observed) < 2 or np.var(observed) == 0 or np.var(predicted) == 0:
        return float('nan')

    correlation, _ = pearsonr(observed, predicted)
    return float(correlation ** 2)


def label_trend(values: Union[np.ndarray, pd.Series]) -> np.ndarray:
    """
    Label the transition leaving every row of a response series.

    Row ``i`` is 'up' when ``values[i + 1] > values[i]``, 'down' when it is
    lower and 'stable' when equal. The last row has no outgoing transition
    and is labeled None.
    """
    values = np.asarray(values, dtype=float)
    labels = np.full(values.shape[0], None, dtype=object)
    if values.shape[0] < 2:
        return labels
    change = np.diff(values)
    labels[:-1] = np.where(change > 0, "up", np.where(change < 0, "down", "stable"))
    return labels


def _strip_response(response: str) -> str:
    # Accept "pollen" as well as "pollen__0"
    variable, sep, lag_label = response.rpartition(SEPARATOR)
    if sep:
        try:
            if float(lag_label) == 0:
                return variable
        except ValueError:
            pass
    return response


def _resolve_inputs(
    lagged: Union[LaggedTable, pd.DataFrame],
    response: Optional[str],
    drivers: Union[None, str, Sequence[str]],
) -> Tuple[LaggedTable, str, List[str]]:
    if isinstance(lagged, LaggedTable):
        response = lagged.response if response is None else response
        drivers = lagged.drivers if drivers is None else drivers
    elif isinstance(lagged, pd.DataFrame):
        if response is None or drivers is None:
            raise ValidationError(
                "Arguments response and drivers cannot be None when lagged is a DataFrame."
            )
    else:
        raise ValidationError("Argument lagged must be a LaggedTable or a pandas DataFrame.")

    if not isinstance(response, str):
        raise ValidationError("Argument response must be a character string.")
    if isinstance(drivers, str):
        drivers = [drivers]
    drivers = list(drivers)
    if not drivers or not all(isinstance(d, str) for d in drivers):
        raise ValidationError("Argument drivers must be a string or a sequence of strings.")

    response = _strip_response(response)
    validate_variable_names([response], argument="response")
    validate_variable_names(drivers, argument="drivers")
    validate_distinct_names(response, drivers)

    if isinstance(lagged, pd.DataFrame):
        lagged = LaggedTable.from_frame(lagged, response=response, drivers=drivers)

    return lagged, response, drivers


class _RepetitionRunner:
    """One model fit as a function of its seed."""

    def __init__(
        self,
        features: pd.DataFrame,
        target: np.ndarray,
        random_mode: RandomMode,
        oracle: ImportanceOracle,
    ):
        self.features = features
        self.target = target
        self.random_mode = random_mode
        self.oracle = oracle

    def __call__(self, seed: int) -> MemorySample:
        features = self.features
        benchmark = generate_random_benchmark(len(features), self.random_mode, random_state=seed)
        if benchmark is not None:
            features = features.assign(**{RANDOM_NAME: benchmark})

        importance, predictions = self.oracle.fit_importance(features, self.target, seed)
        predictions = np.asarray(predictions, dtype=float)

        return MemorySample(
            seed=seed,
            importance=importance,
            r2=pseudo_r2(self.target, predictions),
            predictions=predictions,
        )


def _summary_stats(matrix: pd.DataFrame) -> pd.DataFrame:
    """Median, sd, 5th and 95th percentiles of every column across rows."""
    if len(matrix) > 1:
        sd = matrix.std(axis=0, ddof=1)
    else:
        sd = pd.Series(0.0, index=matrix.columns)
    return pd.DataFrame({
        'median': matrix.median(axis=0),
        'sd': sd,
        'p05': matrix.quantile(0.05, axis=0),
        'p95': matrix.quantile(0.95, axis=0),
    })


class MemoryEstimator:
    """Repeated-fit estimator of ecological memory."""

    def __init__(
        self,
        random_mode: Union[str, RandomMode] = RandomMode.AUTOCORRELATED,
        repetitions: int = 10,
        subset_response: Union[str, SubsetResponse] = SubsetResponse.NONE,
        n_estimators: int = 500,
        min_samples_leaf: int = 5,
        n_jobs: Optional[int] = 1,
        n_workers: int = 1,
        n_repeats: int = 5,
        oracle: Optional[ImportanceOracle] = None,
    ):
        """
        Initialize the estimator.

        Parameters
        ----------
        random_mode : str or RandomMode
            Benchmark added to every fit: 'autocorrelated', 'white_noise'
            or 'none'
        repetitions : int
            Number of models to fit (seeds 0 .. repetitions - 1)
        subset_response : str or SubsetResponse
            'up' or 'down' restrict the model to rows where the response
            rises or falls next; 'none' uses every row
        n_estimators : int
            Trees per forest of the default oracle
        min_samples_leaf : int
            Minimum leaf size of the default oracle
        n_jobs : int, optional
            Threads used inside each fit by the default oracle
        n_workers : int
            Processes running repetitions in parallel
        n_repeats : int
            Shuffles per predictor in permutation importance
        oracle : ImportanceOracle, optional
            Regression backend; a RandomForestImportanceOracle by default
        """
        if not isinstance(repetitions, (int, np.integer)) or repetitions < 1:
            raise ValidationError(f"Argument repetitions must be a positive integer, got {repetitions!r}")

        self.random_mode = RandomMode.parse(random_mode)
        self.repetitions = int(repetitions)
        self.subset_response = SubsetResponse.parse(subset_response)
        self.n_workers = max(1, int(n_workers))

        if oracle is None:
            oracle = RandomForestImportanceOracle(
                n_estimators=n_estimators,
                min_samples_leaf=min_samples_leaf,
                n_jobs=n_jobs,
                n_repeats=n_repeats,
            )
        self.oracle = oracle

    def estimate(
        self,
        lagged: Union[LaggedTable, pd.DataFrame],
        response: Optional[str] = None,
        drivers: Union[None, str, Sequence[str]] = None,
    ) -> MemorySummary:
        """
        Quantify ecological memory on a lagged table.

        Parameters
        ----------
        lagged : LaggedTable or pd.DataFrame
            Output of ``lag_time_series``, or a frame with columns named
            ``<variable>__<lag>``
        response : str, optional
            Response variable, with or without the ``__0`` suffix. Taken
            from ``lagged`` when it is a LaggedTable.
        drivers : str or sequence of str, optional
            Driver variables. Taken from ``lagged`` when it is a LaggedTable.

        Returns
        -------
        summary : MemorySummary
            Importance and prediction summaries across repetitions

        Notes
        -----
        The benchmark's ``p05`` is floored at 0 in every mode while its
        ``median`` is floored only in white-noise mode, so an autocorrelated
        benchmark can report ``p05`` above a negative ``median``.
        """
        table, response, drivers = _resolve_inputs(lagged, response, drivers)

        benchmark_active = self.random_mode != RandomMode.NONE
        if benchmark_active and RANDOM_NAME in [response, *drivers]:
            raise ValidationError(
                f"Variable name '{RANDOM_NAME}' is reserved for the random benchmark."
            )

        try:
            target_column = table.column_for(response, 0.0)
        except KeyError:
            raise DataError(f"Response variable '{response}' not found in the lagged data.") from None
        for driver in drivers:
            if not table.columns_of([driver]):
                raise DataError(f"Driver '{driver}' not found in the lagged data.")

        # Only the response and the listed drivers take part; time is dropped
        kept: List[LaggedColumn] = table.columns_of([response, *drivers])
        frame = table.data.loc[:, [c.name for c in kept]]

        labels = label_trend(frame[target_column.name].to_numpy())
        if self.subset_response != SubsetResponse.NONE:
            frame = frame.loc[labels == self.subset_response.value]
        frame = frame.dropna()

        if frame.empty:
            raise ComputationError(
                f"No rows left to model with subset_response='{self.subset_response.value}'."
            )

        target = frame[target_column.name].to_numpy(dtype=float)
        features = frame.drop(columns=[target_column.name])

        runner = _RepetitionRunner(features, target, self.random_mode, self.oracle)
        samples = self._run(runner)

        memory = self._aggregate_importance(samples, kept, response, drivers)
        prediction = _summary_stats(
            pd.DataFrame(np.vstack([s.predictions for s in samples]), columns=frame.index)
        )
        r2 = np.array([s.r2 for s in samples], dtype=float)

        mean_r2 = float(np.nanmean(r2)) if np.isfinite(r2).any() else float('nan')
        logger.info(
            f"Memory of '{response}' estimated on {len(frame)} rows over "
            f"{self.repetitions} repetitions (mean pseudo R2 {mean_r2:.3f})"
        )

        return MemorySummary(
            response=response,
            drivers=list(drivers),
            memory=memory,
            r2=r2,
            prediction=prediction,
            random_mode=self.random_mode,
            subset_response=self.subset_response,
            lags=np.unique([c.lag for c in kept]),
        )

    def _run(self, runner: _RepetitionRunner) -> List[MemorySample]:
        seeds = list(range(self.repetitions))

        if self.n_workers == 1 or len(seeds) == 1:
            samples = []
            for seed in seeds:
                logger.debug(f"Repetition {seed + 1}/{len(seeds)}")
                samples.append(runner(seed))
            return samples

        with mp.Pool(processes=min(self.n_workers, len(seeds))) as pool:
            return pool.map(runner, seeds)

    def _aggregate_importance(
        self,
        samples: List[MemorySample],
        kept: List[LaggedColumn],
        response: str,
        drivers: List[str],
    ) -> pd.DataFrame:
        matrix = pd.DataFrame([s.importance for s in samples])
        stats = _summary_stats(matrix)

        tags: Dict[str, Tuple[str, float]] = {c.name: (c.variable, c.lag) for c in kept}
        tags[RANDOM_NAME] = (RANDOM_NAME, 0.0)

        memory = pd.DataFrame({
            'variable': [tags[name][0] for name in stats.index],
            'lag': [float(tags[name][1]) for name in stats.index],
            'median': stats['median'].to_numpy(),
            'sd': stats['sd'].to_numpy(),
            'p05': stats['p05'].to_numpy(),
            'p95': stats['p95'].to_numpy(),
        })

        levels = [response, *drivers]
        is_random = memory['variable'] == RANDOM_NAME
        if is_random.any():
            levels.append(RANDOM_NAME)

            # One benchmark comparison point per lag
            other_lags = np.unique(memory.loc[~is_random, 'lag'])
            random_row = memory.loc[is_random]
            copies = [random_row.assign(lag=float(lag)) for lag in other_lags if lag != 0]
            memory = pd.concat([memory, *copies], ignore_index=True)
            is_random = memory['variable'] == RANDOM_NAME

            memory.loc[is_random, 'p05'] = memory.loc[is_random, 'p05'].clip(lower=0.0)
            if self.random_mode == RandomMode.WHITE_NOISE:
                memory.loc[is_random, 'median'] = memory.loc[is_random, 'median'].clip(lower=0.0)

        memory['variable'] = pd.Categorical(memory['variable'], categories=levels, ordered=True)
        memory = memory.sort_values(['variable', 'lag'], kind='mergesort').reset_index(drop=True)

        return memory[['variable', 'lag', 'median', 'sd', 'p05', 'p95']]


def compute_memory(
    lagged: Union[LaggedTable, pd.DataFrame],
    response: Optional[str] = None,
    drivers: Union[None, str, Sequence[str]] = None,
    random_mode: Union[str, RandomMode] = RandomMode.AUTOCORRELATED,
    repetitions: int = 10,
    subset_response: Union[str, SubsetResponse] = SubsetResponse.NONE,
    n_estimators: int = 500,
    min_samples_leaf: int = 5,
    n_jobs: Optional[int] = 1,
    n_workers: int = 1,
    n_repeats: int = 5,
    oracle: Optional[ImportanceOracle] = None,
) -> MemorySummary:
    """
    Quantify ecological memory with repeated Random Forest fits.

    Convenience wrapper around ``MemoryEstimator``; see its documentation
    for the meaning of the arguments.

    Returns
    -------
    summary : MemorySummary
        response, drivers, memory table (variable, lag, median, sd, p05,
        p95), pseudo R-squared per repetition and prediction summary
    """
    estimator = MemoryEstimator(
        random_mode=random_mode,
        repetitions=repetitions,
        subset_response=subset_response,
        n_estimators=n_estimators,
        min_samples_leaf=min_samples_leaf,
        n_jobs=n_jobs,
        n_workers=n_workers,
        n_repeats=n_repeats,
        oracle=oracle,
    )
    return estimator.estimate(lagged, response=response, drivers=drivers)
