"""Regression-importance oracles used by the memory estimator."""

import logging
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestRegressor
from sklearn.inspection import permutation_importance

logger = logging.getLogger(__name__)


class RandomForestImportanceOracle:
    """Random Forest regressor with permutation importance.

    Importance of a predictor is the drop in R^2 when its values are
    shuffled, averaged over ``n_repeats`` shuffles. With ``scale=True`` the
    mean drop is divided by its standard deviation across shuffles.
    """

    def __init__(
        self,
        n_estimators: int = 500,
        min_samples_leaf: int = 5,
        n_jobs: Optional[int] = 1,
        n_repeats: int = 5,
        scale: bool = True,
    ):
        """
        Initialize the oracle.

        Parameters
        ----------
        n_estimators : int
            Number of trees in the forest
        min_samples_leaf : int
            Minimum number of samples in a leaf
        n_jobs : int, optional
            Worker threads for fitting and permutation (None lets
            scikit-learn decide, -1 uses every core)
        n_repeats : int
            Shuffles per predictor in permutation importance
        scale : bool
            Normalize importance by its standard deviation across shuffles
        """
        self.n_estimators = n_estimators
        self.min_samples_leaf = min_samples_leaf
        self.n_jobs = n_jobs
        self.n_repeats = n_repeats
        self.scale = scale

    def fit_importance(
        self, features: pd.DataFrame, target: np.ndarray, seed: int
    ) -> Tuple[Dict[str, float], np.ndarray]:
        """
        Fit a forest and compute permutation importance.

        Parameters
        ----------
        features : pd.DataFrame
            Predictor table
        target : np.ndarray
            Response values
        seed : int
            Random seed for the forest and the shuffles

        Returns
        -------
        importance : Dict[str, float]
            Importance per predictor column
        predictions : np.ndarray
            In-sample predictions of the fitted forest
        """
        model = RandomForestRegressor(
            n_estimators=self.n_estimators,
            min_samples_leaf=self.min_samples_leaf,
            n_jobs=self.n_jobs,
            random_state=seed,
        )
        model.fit(features, target)

        result = permutation_importance(
            model,
            features,
            target,
            n_repeats=self.n_repeats,
            random_state=seed,
            n_jobs=self.n_jobs,
        )

        means = result.importances_mean
        if self.scale:
            stds = result.importances_std
            scaled = np.zeros_like(means)
            np.divide(means, stds, out=scaled, where=stds > 0)
            means = scaled

        importance = {str(name): float(value) for name, value in zip(features.columns, means)}
        predictions = model.predict(features)
        logger.debug(f"Seed {seed}: fitted {self.n_estimators} trees on {features.shape[0]} rows")

        return importance, predictions

    def __repr__(self) -> str:
        return (
            f"RandomForestImportanceOracle(n_estimators={self.n_estimators}, "
            f"min_samples_leaf={self.min_samples_leaf}, n_jobs={self.n_jobs}, "
            f"n_repeats={self.n_repeats}, scale={self.scale})"
        )
