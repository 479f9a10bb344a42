"""Analysis pipeline for ecological memory quantification."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd
import pydantic

from ..core.lags import lag_time_series
from ..core.memory import MemoryEstimator
from ..exceptions import ValidationError
from ..types import AnalysisConfig, ImportanceOracle, LaggedTable, MemoryFeatures, MemorySummary
from ..utils.config import Config, load_default_config, merge_configs
from ..utils.logging import log_execution_time
from ..utils.monitoring import PipelineMonitor
from .features import extract_memory_features
from .metrics import compute_vif
from .results import summarize_r2


@dataclass
class PipelineResult:
    """Result from pipeline execution."""
    success: bool
    execution_time: float
    stage_results: Dict[str, Any]
    lagged: Optional[LaggedTable] = None
    summary: Optional[MemorySummary] = None
    features: Optional[MemoryFeatures] = None
    vif: Optional[pd.DataFrame] = None
    errors: Optional[List[str]] = None
    metrics: Optional[Dict[str, Any]] = None


def _as_analysis_config(config: Union[None, Dict[str, Any], Config, AnalysisConfig]) -> AnalysisConfig:
    if config is None:
        return AnalysisConfig()
    if isinstance(config, AnalysisConfig):
        return config
    config_dict = config.to_dict() if isinstance(config, Config) else dict(config)
    try:
        return AnalysisConfig(**config_dict)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid analysis configuration: {e}") from e


class MemoryPipeline:
    """Lag, estimate and summarize ecological memory from one configuration.

    Stages run in order: ``lag`` builds the lagged table, ``diagnostics``
    (optional) computes variance inflation factors, ``memory`` runs the
    repeated-fit estimator and ``features`` (optional) extracts strength,
    length and dominance.
    """

    def __init__(
        self,
        config: Union[None, Dict[str, Any], Config, AnalysisConfig] = None,
        oracle: Optional[ImportanceOracle] = None,
    ):
        """
        Initialize pipeline with configuration.

        Parameters
        ----------
        config : dict, Config or AnalysisConfig, optional
            Sections ``lags``, ``memory``, ``features`` and ``diagnostics``
        oracle : ImportanceOracle, optional
            Regression backend handed to the estimator
        """
        self.config = _as_analysis_config(config)
        self.oracle = oracle
        self.logger = logging.getLogger(__name__)

        self._initialize_components()

    def _initialize_components(self):
        """Initialize pipeline components."""
        memory_config = self.config.memory
        self.estimator = MemoryEstimator(
            random_mode=memory_config.random_mode,
            repetitions=memory_config.repetitions,
            subset_response=memory_config.subset_response,
            n_estimators=memory_config.n_estimators,
            min_samples_leaf=memory_config.min_samples_leaf,
            n_jobs=memory_config.n_jobs,
            n_workers=memory_config.n_workers,
            n_repeats=memory_config.n_repeats,
            oracle=self.oracle,
        )

    @property
    def stages(self) -> List[str]:
        stages = ['lag']
        if self.config.diagnostics.vif:
            stages.append('diagnostics')
        stages.append('memory')
        if self.config.features.enabled:
            stages.append('features')
        return stages

    @log_execution_time
    def run(
        self,
        data: pd.DataFrame,
        response: Optional[str] = None,
        drivers: Union[None, str, Sequence[str]] = None,
    ) -> PipelineResult:
        """
        Execute full pipeline on a time series table.

        Parameters
        ----------
        data : pd.DataFrame
            Regular time series with a time column, the response and the
            drivers
        response : str, optional
            Overrides ``lags.response`` of the configuration
        drivers : str or sequence of str, optional
            Overrides ``lags.drivers`` of the configuration

        Returns
        -------
        result : PipelineResult
            Pipeline execution result. Failures are reported through
            ``success`` and ``errors``, not raised.
        """
        start_time = time.time()
        monitor = PipelineMonitor()
        monitor.start()
        stage_results: Dict[str, Any] = {}
        partial: Dict[str, Any] = {}

        lag_config = self.config.lags
        response = response if response is not None else lag_config.response
        drivers = drivers if drivers is not None else lag_config.drivers

        try:
            if not response:
                raise ValidationError("No response variable given (argument or lags.response).")
            if not drivers:
                raise ValidationError("No driver variables given (argument or lags.drivers).")

            with monitor.track_stage('lag'):
                lagged = lag_time_series(
                    data,
                    response=response,
                    drivers=drivers,
                    time=lag_config.time,
                    lags=lag_config.lags,
                    oldest_sample=lag_config.oldest_sample,
                    time_window=lag_config.time_window,
                    scale=lag_config.scale,
                )
            partial['lagged'] = lagged
            stage_results['lag'] = {
                'rows_in': int(len(data)),
                'rows_out': lagged.n_rows,
                'columns': len(lagged.columns),
                'lags': lagged.lags.tolist(),
            }
            monitor.record('lag', rows=lagged.n_rows)

            if self.config.diagnostics.vif:
                with monitor.track_stage('diagnostics'):
                    vif = compute_vif(lagged)
                partial['vif'] = vif
                stage_results['diagnostics'] = {
                    'max_vif': float(vif['vif'].max()),
                    'n_above_5': int((vif['vif'] > 5).sum()),
                }
                if stage_results['diagnostics']['n_above_5']:
                    self.logger.warning(
                        f"{stage_results['diagnostics']['n_above_5']} lagged predictors have VIF above 5"
                    )

            with monitor.track_stage('memory'):
                summary = self.estimator.estimate(lagged)
            partial['summary'] = summary
            stage_results['memory'] = {
                'repetitions': summary.repetitions,
                'rows': int(len(summary.prediction)),
                'r2': summarize_r2(summary),
            }
            monitor.record('memory', repetitions=summary.repetitions)

            if self.config.features.enabled:
                feature_config = self.config.features
                with monitor.track_stage('features'):
                    features = extract_memory_features(
                        summary,
                        endogenous=feature_config.endogenous,
                        exogenous=feature_config.exogenous,
                        label=feature_config.label,
                    )
                partial['features'] = features
                stage_results['features'] = features.to_dict()

            monitor.log_summary(self.logger)

            return PipelineResult(
                success=True,
                execution_time=time.time() - start_time,
                stage_results=stage_results,
                errors=[],
                metrics=monitor.get_metrics(),
                **partial,
            )

        except Exception as e:
            self.logger.error(f"Pipeline execution failed: {e}")

            return PipelineResult(
                success=False,
                execution_time=time.time() - start_time,
                stage_results=stage_results,
                errors=[f"{type(e).__name__}: {e}"],
                metrics=monitor.get_metrics(),
                **partial,
            )


def create_standard_pipeline(
    config: Union[None, Dict[str, Any], Config] = None,
    oracle: Optional[ImportanceOracle] = None,
) -> MemoryPipeline:
    """Create a pipeline from the packaged defaults overridden by ``config``."""
    merged = merge_configs(load_default_config(), config)
    return MemoryPipeline(merged, oracle=oracle)
