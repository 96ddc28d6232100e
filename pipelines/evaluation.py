from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from loguru import logger

from application.dataset import DataSplit
from application.preprocessing import FittedRecipe, Recipe
from model import ModelSpec, compute_metrics, fit_model, metric_set
from model.errors import EvaluationError, FitError, PredictionError, SchemaError
from model.evaluation import MAXIMIZE

METRIC_COLUMNS = ["id", "label", "metric", "estimator", "estimate"]
FAILURE_COLUMNS = ["id", "label", "kind", "message"]
PREDICTION_COLUMNS = ["id", "label", "row", "truth", "estimate"]


@dataclass(frozen=True)
class EvaluationUnit:
    """One (split, recipe, model, label) combination to fit and score."""

    split: DataSplit
    recipe: Recipe
    model: ModelSpec
    label: str


@dataclass(frozen=True)
class EvaluationResult:
    """Aggregate output of a batch: metric rows, failed units and (optionally) predictions."""

    metrics: pd.DataFrame
    failures: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=FAILURE_COLUMNS))
    predictions: pd.DataFrame | None = None

    @property
    def ok(self) -> bool:
        return self.failures.empty


def bake_unit(unit: EvaluationUnit) -> tuple[FittedRecipe, pd.DataFrame, pd.DataFrame]:
    """
    Fit the unit's recipe on its training rows and apply it to both partitions.

    Failures on the training side surface as ``FitError``; a test partition
    the fitted recipe cannot process surfaces as ``PredictionError``.
    """
    # (1) statistics from train only
    try:
        prep = unit.recipe.fit(unit.split.train)
    except (ValueError, TypeError) as e:
        raise FitError(f"Recipe could not be fit: {e}") from e

    # (2) same frozen transform for both partitions
    try:
        baked_train = prep.transform(unit.split.train)
    except (ValueError, TypeError) as e:
        raise FitError(f"Recipe could not be applied to training rows: {e}") from e
    if unit.split.test.empty:
        raise PredictionError(f"Split {unit.split.id!r} has no test rows to score")
    try:
        baked_test = prep.transform(unit.split.test)
    except (SchemaError, ValueError, TypeError) as e:
        raise PredictionError(f"Test rows of split {unit.split.id!r} do not match the fitted recipe: {e}") from e
    return prep, baked_train, baked_test


def _fit_and_predict(unit: EvaluationUnit) -> tuple[pd.Series, np.ndarray]:
    prep, baked_train, baked_test = bake_unit(unit)

    # (3) fit on the resolved formula, (4) predict the held-out rows
    fitted = fit_model(unit.model, baked_train, prep.columns, prep.outcome)
    estimate = fitted.predict(baked_test)
    return baked_test[prep.outcome], estimate


def evaluate_unit(unit: EvaluationUnit, metrics: Sequence[str] = ()) -> pd.DataFrame:
    """
    Fit and score a single unit.

    Returns rows of ``id, label, metric, estimator, estimate``. Raises an
    ``EvaluationError`` subclass when the unit cannot be evaluated.
    """
    truth, estimate = _fit_and_predict(unit)
    scores = compute_metrics(truth, estimate, metric_set(*metrics))
    scores.insert(0, "label", unit.label)
    scores.insert(0, "id", unit.split.id)
    return scores[METRIC_COLUMNS]


def _evaluate_safely(unit: EvaluationUnit, metrics: Sequence[str], keep_predictions: bool):
    """Worker body: never raises for data-dependent failures, reports them instead."""
    try:
        truth, estimate = _fit_and_predict(unit)
        scores = compute_metrics(truth, estimate, metrics)
    except EvaluationError as e:
        failure = {"id": unit.split.id, "label": unit.label, "kind": e.kind, "message": str(e)}
        return None, None, failure

    scores.insert(0, "label", unit.label)
    scores.insert(0, "id", unit.split.id)
    preds = None
    if keep_predictions:
        preds = pd.DataFrame(
            {
                "id": unit.split.id,
                "label": unit.label,
                "row": truth.index,
                "truth": truth.to_numpy(dtype=float),
                "estimate": estimate,
            }
        )
    return scores[METRIC_COLUMNS], preds, None


def run_evaluation(
    units: Iterable[EvaluationUnit],
    metrics: Sequence[str] = (),
    n_jobs: int | None = 1,
    keep_predictions: bool = False,
) -> EvaluationResult:
    """
    Evaluate every unit and concatenate the results.

    A failing unit is reported in ``failures`` (id, label, kind, message) and
    does not stop the others. Units share no state, so ``n_jobs`` only changes
    where they run: rows are always concatenated in unit order.
    """
    units = list(units)
    names = metric_set(*metrics)
    logger.info(f"Evaluating {len(units)} units (metrics={list(names)}, n_jobs={n_jobs})")

    outputs = Parallel(n_jobs=n_jobs)(delayed(_evaluate_safely)(u, names, keep_predictions) for u in units)

    metric_frames, pred_frames, failures = [], [], []
    for scores, preds, failure in outputs:
        if failure is not None:
            logger.warning("Unit {id}/{label} failed ({kind}): {message}", **failure)
            failures.append(failure)
            continue
        metric_frames.append(scores)
        if preds is not None:
            pred_frames.append(preds)

    metrics_df = (
        pd.concat(metric_frames, ignore_index=True) if metric_frames else pd.DataFrame(columns=METRIC_COLUMNS)
    )
    failures_df = pd.DataFrame(failures, columns=FAILURE_COLUMNS)
    predictions_df = None
    if keep_predictions:
        predictions_df = (
            pd.concat(pred_frames, ignore_index=True) if pred_frames else pd.DataFrame(columns=PREDICTION_COLUMNS)
        )

    logger.info(f"Evaluation done: {len(units) - len(failures)} succeeded, {len(failures)} failed")
    return EvaluationResult(metrics=metrics_df, failures=failures_df, predictions=predictions_df)


def summarize(metrics: pd.DataFrame) -> pd.DataFrame:
    """Mean, count and standard error of every metric per label."""
    if metrics.empty:
        return pd.DataFrame(columns=["label", "metric", "mean", "n", "std_err"])
    grouped = metrics.groupby(["label", "metric"], sort=True)["estimate"]
    summary = grouped.agg(mean="mean", n="count", std="std").reset_index()
    summary["std_err"] = summary["std"] / np.sqrt(summary["n"])
    return summary.drop(columns="std")


def leaderboard(summary: pd.DataFrame, metric: str = "rmse") -> pd.DataFrame:
    """One row per label with the mean of every metric, best ``metric`` first."""
    board = summary.pivot(index="label", columns="metric", values="mean")
    if metric not in board.columns:
        raise ValueError(f"Metric {metric!r} not in summary; available: {sorted(board.columns)}")
    board = board.sort_values(metric, ascending=metric not in MAXIMIZE, kind="mergesort")
    board.columns.name = None
    return board.reset_index()
