from __future__ import annotations

import math
import time
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import mlflow
import pandas as pd
from loguru import logger

from application.dataset import DataSplit, kfold_splits, load_housing_data, split_data
from application.preprocessing import Formula, Recipe, build_preprocessor
from core.settings import settings
from model import REGISTRY, ModelSpec, get_model_spec, metric_set

from .evaluation import EvaluationResult, EvaluationUnit, leaderboard, run_evaluation, summarize


def build_units(splits: Sequence[DataSplit], recipe: Recipe, specs: Mapping[str, ModelSpec]) -> list[EvaluationUnit]:
    """Every split paired with every labelled model spec, split-major."""
    return [EvaluationUnit(split, recipe, spec, label) for split in splits for label, spec in specs.items()]


def last_fit(
    split: DataSplit,
    recipe: Recipe,
    specs: Mapping[str, ModelSpec],
    metrics: Sequence[str] = (),
) -> EvaluationResult:
    """Fit each model on the whole training partition and score it once on the held-out test set."""
    return run_evaluation(build_units([split], recipe, specs), metrics)


def _finite(metrics: Mapping[str, float]) -> dict[str, float]:
    return {k: float(v) for k, v in metrics.items() if v is not None and math.isfinite(v)}


def _log_to_mlflow(
    run_name: str,
    params: dict[str, Any],
    specs: Mapping[str, ModelSpec],
    summary: pd.DataFrame,
    test_metrics: pd.DataFrame,
    board: pd.DataFrame,
    artifacts: Sequence[Path],
) -> None:
    """One parent run with the comparison context, one nested run per model."""
    with mlflow.start_run(run_name=run_name):
        mlflow.set_tags({"run_type": "cross-validation"})
        mlflow.log_params(params)
        mlflow.log_dict({label: dict(spec.resolved_params()) for label, spec in specs.items()}, "models_params.json")

        for label, spec in specs.items():
            with mlflow.start_run(run_name=label, nested=True):
                mlflow.log_params({"algorithm": spec.algorithm, **spec.resolved_params()})
                cv = summary[summary["label"] == label]
                test = test_metrics[test_metrics["label"] == label]
                mlflow.log_metrics(
                    _finite(
                        {
                            **{f"cv_{m}_mean": v for m, v in zip(cv["metric"], cv["mean"], strict=True)},
                            **{f"cv_{m}_std_err": v for m, v in zip(cv["metric"], cv["std_err"], strict=True)},
                            **{f"test_{m}": v for m, v in zip(test["metric"], test["estimate"], strict=True)},
                        }
                    )
                )

        for path in artifacts:
            mlflow.log_artifact(str(path), artifact_path="tables")

        if not board.empty:
            mlflow.set_tags({"best_model": str(board.iloc[0]["label"])})


def cross_validation_pipeline(
    model_names: Sequence[str] | None = None,
    data_path: str | None = None,
    v_folds: int | None = None,
    repeats: int | None = None,
    test_size: float | None = None,
    corr_threshold: float | None = None,
    metrics: Sequence[str] | None = None,
    n_jobs: int | None = None,
    formula: Formula | None = None,
    data: pd.DataFrame | None = None,
    artifact_dir: str | None = None,
    track: bool = False,
    run_name: str = "model-comparison",
) -> dict[str, Any]:
    """
    load -> holdout split -> v folds of the training part -> evaluate -> summarize -> last fit.

    Arguments left as ``None`` fall back to settings. Writes the leaderboard
    and raw fold metrics to ``artifact_dir`` and, with ``track``, logs the
    comparison to MLflow.
    """
    model_names = list(model_names or REGISTRY)
    v_folds = v_folds or settings.CV_FOLDS
    repeats = repeats or settings.CV_REPEATS
    test_size = test_size or settings.TEST_SIZE
    corr_threshold = settings.CORR_THRESHOLD if corr_threshold is None else corr_threshold
    metric_names = metric_set(*(metrics or [m.strip() for m in settings.METRICS.split(",") if m.strip()]))
    n_jobs = n_jobs or settings.N_JOBS
    out_dir = Path(artifact_dir or settings.ARTIFACT_DIR)

    specs = {name: get_model_spec(name) for name in model_names}
    recipe = build_preprocessor(formula, corr_threshold=corr_threshold)
    logger.info(f"Recipe: {recipe}")

    t0 = time.perf_counter()
    df = data if data is not None else load_housing_data(data_path or settings.DATASET_PATH)
    holdout = split_data(df, test_size=test_size, seed=settings.SEED)
    folds = kfold_splits(holdout.train, v=v_folds, seed=settings.SEED, repeats=repeats)
    logger.info(f"{len(holdout.train)} train / {len(holdout.test)} test rows, {len(folds)} resamples")

    cv = run_evaluation(build_units(folds, recipe, specs), metric_names, n_jobs=n_jobs)
    summary = summarize(cv.metrics)
    board = leaderboard(summary, metric_names[0]) if not summary.empty else pd.DataFrame(columns=["label"])

    final = last_fit(holdout, recipe, specs, metric_names)
    failures = pd.concat([cv.failures, final.failures], ignore_index=True)
    logger.info(f"Cross-validation finished in {time.perf_counter() - t0:.2f}s")

    out_dir.mkdir(parents=True, exist_ok=True)
    lb_csv = out_dir / "leaderboard.csv"
    lb_json = out_dir / "leaderboard.json"
    cv_csv = out_dir / "cv_metrics.csv"
    test_csv = out_dir / "test_metrics.csv"
    board.to_csv(lb_csv, index=False)
    board.to_json(lb_json, orient="records", indent=2)
    cv.metrics.to_csv(cv_csv, index=False)
    final.metrics.to_csv(test_csv, index=False)
    artifacts = [lb_csv, lb_json, cv_csv, test_csv]
    if not failures.empty:
        failures_csv = out_dir / "failures.csv"
        failures.to_csv(failures_csv, index=False)
        artifacts.append(failures_csv)
    logger.success("Wrote {} artifacts -> {}", len(artifacts), out_dir)

    best_model_name = str(board.iloc[0]["label"]) if not board.empty else None
    if track:
        params = {
            "n_models": len(specs),
            "cv_folds": v_folds,
            "cv_repeats": repeats,
            "test_size": test_size,
            "corr_threshold": corr_threshold,
            "seed": settings.SEED,
            "recipe": str(recipe),
            "train_rows": len(holdout.train),
            "test_rows": len(holdout.test),
        }
        _log_to_mlflow(run_name, params, specs, summary, final.metrics, board, artifacts)

    return {
        "cv_metrics": cv.metrics,
        "summary": summary,
        "leaderboard": board,
        "test_metrics": final.metrics,
        "failures": failures,
        "best_model_name": best_model_name,
    }
