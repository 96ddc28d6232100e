from __future__ import annotations

import click
import mlflow
from loguru import logger

from application.config import apply_global_settings
from application.preprocessing import Formula
from core import __version__, settings
from model import METRICS, REGISTRY
from pipelines import cross_validation_pipeline

HELP_TEXT = f"""
    Housing Model Evaluation CLI v{__version__}.

    Cross-validate regression models on the housing table and compare them.

    \b
    load -> split -> preprocess -> fit -> predict -> score -> aggregate.
    """


def _validate_model_names(_: click.Context, __: click.Option, value: str | None) -> list[str]:
    """
    click callback to validate the `--models` input.
    `value` is a comma-separated string (or None).
    Returns a list of model names.
    """
    if not value:
        # No models passed, default to all
        return list(REGISTRY.keys())

    parts = [m.strip() for m in value.split(",") if m.strip()]
    invalid = [m for m in parts if m not in REGISTRY]
    if invalid:
        valid = ", ".join(sorted(REGISTRY.keys()))
        raise click.BadParameter(f"Invalid model name(s): {invalid}. Valid models are: {valid}")
    return parts


def _validate_metrics(_: click.Context, __: click.Option, value: str | None) -> list[str] | None:
    if not value:
        return None
    parts = [m.strip() for m in value.split(",") if m.strip()]
    invalid = [m for m in parts if m not in METRICS]
    if invalid:
        raise click.BadParameter(f"Invalid metric(s): {invalid}. Valid metrics are: {', '.join(sorted(METRICS))}")
    return parts


def _validate_formula(_: click.Context, __: click.Option, value: str | None) -> Formula | None:
    if not value:
        return None
    try:
        return Formula.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def _print_plan(models, data_path, cv_folds, test_size, corr_threshold, metrics, formula, track):
    click.echo(
        "Plan:\n"
        f"  Models: {models}\n"
        f"  Data path: {data_path or '<settings default>'}\n"
        f"  CV folds: {cv_folds}, test size: {test_size}\n"
        f"  Correlation threshold: {corr_threshold}\n"
        f"  Metrics: {metrics}\n"
        f"  Formula: {formula or '<outcome ~ .>'}\n"
        f"  MLflow tracking: {track}\n"
    )


@click.command(
    help=HELP_TEXT,
    context_settings={"help_option_names": ["-h", "--help"]},
    no_args_is_help=False,
    epilog=(
        "EXAMPLES:\n\n"
        "python -m tools.run  # evaluates all models by default\n\n"
        "python -m tools.run --list-models  # list available models\n\n"
        "python -m tools.run --dry-run  # show the plan without running\n\n"
        "python -m tools.run --models lm,svm_rbf --cv-folds 5 --corr-threshold 0.4\n\n"
    ),
)
@click.version_option(version=__version__, message="Housing Model Evaluation CLI v%(version)s", prog_name="Housing CLI")
@click.option(
    "--models",
    callback=_validate_model_names,
    default=None,
    help=(
        "Comma-separated model names to evaluate (e.g. 'lm,svm_rbf'). "
        "If omitted, all models in REGISTRY are evaluated. "
        "\n\nValid values: " + ", ".join(sorted(REGISTRY.keys()))
    ),
)
@click.option("--list-models", is_flag=True, help="List available model names and exit.")
@click.option(
    "--data-path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, path_type=str),
    default=None,
    envvar="DATASET_PATH",
    help="Path to the housing CSV (can also be set via DATASET_PATH). Falls back to the Kaggle dataset.",
)
@click.option("--cv-folds", type=click.IntRange(min=2), envvar="CV_FOLDS", help="Number of cross-validation folds.")
@click.option(
    "--test-size",
    type=click.FloatRange(min=0.0, max=1.0, min_open=True, max_open=True),
    envvar="TEST_SIZE",
    help="Share of rows held out for the final test.",
)
@click.option(
    "--corr-threshold",
    type=click.FloatRange(min=0.0, max=1.0),
    envvar="CORR_THRESHOLD",
    help="Drop predictors correlated above this value (1.0 keeps all).",
)
@click.option(
    "--metrics",
    callback=_validate_metrics,
    default=None,
    help="Comma-separated metrics; the first one ranks the leaderboard. Valid: " + ", ".join(sorted(METRICS)),
)
@click.option("--formula", callback=_validate_formula, default=None, help="Model formula, e.g. 'medv ~ rm + lstat'.")
@click.option("--n-jobs", type=int, envvar="N_JOBS", help="Worker processes for evaluation units (-1 = all cores).")
@click.option("--track/--no-track", default=False, show_default=True, help="Log the comparison to MLflow.")
@click.option("--dry-run", is_flag=True, help="Print the resolved plan (models/options) and exit without running.")
def main(
    models: list[str],
    list_models: bool,
    data_path: str | None,
    cv_folds: int | None,
    test_size: float | None,
    corr_threshold: float | None,
    metrics: list[str] | None,
    formula: Formula | None,
    n_jobs: int | None,
    track: bool,
    dry_run: bool,
) -> None:
    # quick list-and-exit
    if list_models:
        click.echo("Available models:\n  " + "\n  ".join(f"{k}: {REGISTRY[k]}" for k in sorted(REGISTRY)))
        raise SystemExit(0)

    data_path = data_path or settings.DATASET_PATH
    cv_folds = cv_folds or settings.CV_FOLDS
    test_size = test_size or settings.TEST_SIZE
    corr_threshold = settings.CORR_THRESHOLD if corr_threshold is None else corr_threshold
    metrics = metrics or [m.strip() for m in settings.METRICS.split(",") if m.strip()]

    # dry-run: just show the plan and exit
    if dry_run:
        _print_plan(models, data_path, cv_folds, test_size, corr_threshold, metrics, formula, track)
        raise SystemExit(0)

    # apply global settings (seed, warnings, artifact dir)
    apply_global_settings()

    if track:
        mlflow.set_tracking_uri(settings.MLFLOW_TRACKING_URI)
        mlflow.set_experiment(settings.MLFLOW_EXPERIMENT_NAME)

    logger.info(f"Running evaluation for models: {models}")

    try:
        _print_plan(models, data_path, cv_folds, test_size, corr_threshold, metrics, formula, track)
        result = cross_validation_pipeline(
            model_names=models,
            data_path=data_path,
            v_folds=cv_folds,
            test_size=test_size,
            corr_threshold=corr_threshold,
            metrics=metrics,
            n_jobs=n_jobs,
            formula=formula,
            track=track,
        )
    except Exception as e:
        # error and non-zero exit
        raise click.ClickException(str(e)) from e

    click.echo(result["leaderboard"].to_string(index=False))
    if not result["failures"].empty:
        click.secho(f"\n{len(result['failures'])} evaluation unit(s) failed:", fg="yellow")
        click.echo(result["failures"].to_string(index=False))
    logger.info(f"Best model: {result['best_model_name']}")


if __name__ == "__main__":
    main()
