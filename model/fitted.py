from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.base import BaseEstimator

from .errors import FitError, PredictionError, SchemaError
from .specs import ModelSpec


@dataclass(frozen=True)
class FittedModel:
    """Estimator fit on a preprocessed training table, plus the schema it was fit on."""

    spec: ModelSpec
    estimator: BaseEstimator
    columns: tuple[str, ...]
    outcome: str
    n_train: int

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        missing = [c for c in self.columns if c not in df.columns]
        if missing:
            raise PredictionError(f"Column(s) {missing} missing from prediction data")
        X = df[list(self.columns)]
        non_numeric = [c for c in self.columns if not pd.api.types.is_numeric_dtype(X[c])]
        if non_numeric:
            raise PredictionError(f"Non-numeric column(s) {non_numeric} in prediction data")
        try:
            return np.asarray(self.estimator.predict(X.to_numpy(dtype=float)), dtype=float)
        except ValueError as e:
            raise PredictionError(str(e)) from e

    def coefficients(self) -> pd.Series:
        """Intercept and slopes of a linear model."""
        if not hasattr(self.estimator, "coef_") or not hasattr(self.estimator, "intercept_"):
            raise AttributeError(f"{self.spec.algorithm} has no linear coefficients")
        coef = np.ravel(self.estimator.coef_)
        return pd.Series([float(np.ravel(self.estimator.intercept_)[0]), *coef], index=["(Intercept)", *self.columns])


def _design_matrix(df: pd.DataFrame, columns: Sequence[str]) -> np.ndarray:
    non_numeric = [c for c in columns if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise FitError(f"Non-numeric predictor(s) {non_numeric}")
    X = df[list(columns)].to_numpy(dtype=float)
    if not np.isfinite(X).all():
        raise FitError("Predictors contain missing or non-finite values")
    return X


def fit_model(spec: ModelSpec, train: pd.DataFrame, columns: Sequence[str], outcome: str) -> FittedModel:
    """
    Fit ``spec`` on the preprocessed training rows.

    Raises SchemaError when a column is absent and FitError when the data
    cannot support the model (no rows, non-finite values, collinear predictors
    for a linear model, or the estimator itself refusing the data).
    """
    columns = tuple(columns)
    missing = [c for c in (*columns, outcome) if c not in train.columns]
    if missing:
        raise SchemaError(f"Column(s) {missing} absent from training data")
    if not columns:
        raise FitError("No predictor columns to fit on")
    if len(train) == 0:
        raise FitError("Training data is empty")

    X = _design_matrix(train, columns)
    y = train[outcome].to_numpy(dtype=float)
    if not np.isfinite(y).all():
        raise FitError(f"Outcome {outcome!r} contains missing or non-finite values")

    if spec.requires_full_rank:
        design = np.column_stack([np.ones(len(X)), X])
        rank = np.linalg.matrix_rank(design)
        if rank < design.shape[1]:
            raise FitError(
                f"Design matrix is rank deficient (rank {rank} < {design.shape[1]} columns incl. intercept); "
                "predictors are collinear or outnumber rows"
            )

    estimator = spec.build()
    try:
        estimator.fit(X, y)
    except ValueError as e:
        raise FitError(f"{spec.algorithm} failed to fit: {e}") from e

    logger.debug(f"Fitted {spec} on {len(X)} rows x {len(columns)} predictors")
    return FittedModel(spec=spec, estimator=estimator, columns=columns, outcome=outcome, n_train=len(X))
