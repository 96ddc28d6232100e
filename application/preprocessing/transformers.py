"""
DataFrame-in / DataFrame-out transformers used by recipe steps.

Every transformer learns its statistics in ``fit`` and only replays them in
``transform``, so a transformer fit on training rows never looks at test rows.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.preprocessing import MinMaxScaler, OneHotEncoder, StandardScaler
from sklearn.utils.validation import check_is_fitted

from model.errors import SchemaError


def select_columns(X: pd.DataFrame, columns: Sequence[str] | None, exclude: Sequence[str] = ()) -> list[str]:
    """Explicit columns must exist; no columns means every numeric, non-excluded column."""
    if columns:
        missing = [c for c in columns if c not in X.columns]
        if missing:
            raise SchemaError(f"Column(s) {missing} not found")
        return list(columns)
    return [c for c in X.columns if c not in exclude and pd.api.types.is_numeric_dtype(X[c])]


def _level(value) -> str:
    if isinstance(value, float | np.floating) and float(value).is_integer():
        return str(int(value))
    return str(value)


def _dummy_name(feature: str, category) -> str:
    return f"{feature}_{_level(category)}"


class DummyEncoder(BaseEstimator, TransformerMixin):
    """
    Treat nominal columns as categorical and expand them into indicator columns.

    Levels are learned on the training rows; the first level is the reference
    (dropped) and levels unseen during fit encode as all zeros.
    """

    def __init__(self, columns: Sequence[str] = ()):
        self.columns = columns

    def fit(self, X: pd.DataFrame, y=None):
        if not self.columns:
            raise ValueError("DummyEncoder needs at least one column")
        self.columns_ = select_columns(X, self.columns)
        self.encoder_ = OneHotEncoder(
            drop="first",
            handle_unknown="ignore",
            sparse_output=False,
            dtype=float,
            feature_name_combiner=_dummy_name,
        )
        self.encoder_.fit(X[self.columns_])
        self.feature_names_out_ = list(self.encoder_.get_feature_names_out(self.columns_))
        self.origins_ = {}
        names = iter(self.feature_names_out_)
        for col, cats, drop_idx in zip(self.columns_, self.encoder_.categories_, self.encoder_.drop_idx_, strict=True):
            n_out = len(cats) - (0 if drop_idx is None else 1)
            for _ in range(n_out):
                self.origins_[next(names)] = col
        logger.debug(
            "Categorical levels: {}",
            {c: [_level(v) for v in cats] for c, cats in zip(self.columns_, self.encoder_.categories_, strict=True)},
        )
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, "encoder_")
        select_columns(X, self.columns_)
        dummies = pd.DataFrame(
            self.encoder_.transform(X[self.columns_]),
            columns=self.feature_names_out_,
            index=X.index,
        )
        out = X.drop(columns=self.columns_)
        return pd.concat([out, dummies], axis=1)


class RangeScaler(BaseEstimator, TransformerMixin):
    """Rescale numeric columns to ``feature_range`` using training min/max."""

    def __init__(self, columns: Sequence[str] = (), exclude: Sequence[str] = (), feature_range=(0.0, 1.0)):
        self.columns = columns
        self.exclude = exclude
        self.feature_range = feature_range

    def fit(self, X: pd.DataFrame, y=None):
        self.columns_ = select_columns(X, self.columns, self.exclude)
        self.scaler_ = MinMaxScaler(feature_range=tuple(self.feature_range))
        if self.columns_:
            self.scaler_.fit(X[self.columns_])
            logger.debug("Range stats: min={}, max={}", self.scaler_.data_min_.tolist(), self.scaler_.data_max_.tolist())
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, "scaler_")
        out = X.copy()
        if self.columns_:
            select_columns(X, self.columns_)
            out[self.columns_] = self.scaler_.transform(X[self.columns_])
        return out


class Normalizer(BaseEstimator, TransformerMixin):
    """Centre and scale numeric columns with the training mean and standard deviation."""

    def __init__(self, columns: Sequence[str] = (), exclude: Sequence[str] = ()):
        self.columns = columns
        self.exclude = exclude

    def fit(self, X: pd.DataFrame, y=None):
        self.columns_ = select_columns(X, self.columns, self.exclude)
        self.scaler_ = StandardScaler()
        if self.columns_:
            self.scaler_.fit(X[self.columns_])
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, "scaler_")
        out = X.copy()
        if self.columns_:
            select_columns(X, self.columns_)
            out[self.columns_] = self.scaler_.transform(X[self.columns_])
        return out


class CorrelationFilter(BaseEstimator, TransformerMixin):
    """
    Drop numeric predictors that are highly correlated with another predictor.

    The absolute Pearson correlation matrix is computed on the training rows.
    While some pair exceeds ``threshold``, the pair with the largest correlation
    is taken and the member with the larger mean absolute correlation against
    the remaining columns is removed (on a tie, the later column goes).
    """

    def __init__(self, threshold: float = 0.9, columns: Sequence[str] = (), exclude: Sequence[str] = ()):
        self.threshold = threshold
        self.columns = columns
        self.exclude = exclude

    def fit(self, X: pd.DataFrame, y=None):
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"threshold must be in [0, 1], got {self.threshold}")
        candidates = select_columns(X, self.columns, self.exclude)
        self.correlation_ = X[candidates].corr().abs() if candidates else pd.DataFrame()
        self.dropped_ = self._find_correlated(self.correlation_, self.threshold)
        if self.dropped_:
            logger.debug("Correlation filter (>{}) drops {}", self.threshold, self.dropped_)
        return self

    @staticmethod
    def _find_correlated(corr: pd.DataFrame, threshold: float) -> list[str]:
        remaining = list(corr.columns)
        dropped: list[str] = []
        while len(remaining) > 1:
            sub = corr.loc[remaining, remaining].to_numpy(copy=True)
            np.fill_diagonal(sub, 0.0)
            sub = np.nan_to_num(sub, nan=0.0)  # constant columns have no correlation
            i, j = np.unravel_index(np.argmax(sub), sub.shape)
            if sub[i, j] <= threshold:
                break
            i, j = sorted((i, j))
            mean_corr = sub.sum(axis=0) / (len(remaining) - 1)
            victim = remaining[i] if mean_corr[i] > mean_corr[j] else remaining[j]
            remaining.remove(victim)
            dropped.append(victim)
        return dropped

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, "dropped_")
        return X.drop(columns=[c for c in self.dropped_ if c in X.columns])


class ColumnDropper(BaseEstimator, TransformerMixin):
    def __init__(self, columns: Sequence[str] = ()):
        self.columns = columns

    def fit(self, X: pd.DataFrame, y=None):
        if not self.columns:
            raise ValueError("ColumnDropper needs at least one column")
        self.columns_ = select_columns(X, self.columns)
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, "columns_")
        return X.drop(columns=self.columns_)
