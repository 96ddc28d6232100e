import pandas as pd
import pytest
from click.testing import CliRunner

pytestmark = [pytest.mark.unit, pytest.mark.cli]


def _import_cli():
    import tools.run as run_mod

    return run_mod


@pytest.fixture
def pipeline_calls(monkeypatch):
    run_mod = _import_cli()
    calls = []

    def fake_pipeline(**kwargs):
        calls.append(kwargs)
        return {
            "leaderboard": pd.DataFrame({"label": ["lm"], "rmse": [4.2]}),
            "failures": pd.DataFrame(columns=["id", "label", "kind", "message"]),
            "best_model_name": "lm",
        }

    monkeypatch.setattr(run_mod, "cross_validation_pipeline", fake_pipeline, raising=True)
    monkeypatch.setattr(run_mod, "apply_global_settings", lambda: None, raising=True)
    return calls


def test_cli_help():
    run_mod = _import_cli()
    res = CliRunner().invoke(run_mod.main, ["--help"])
    assert res.exit_code == 0
    assert "Housing Model Evaluation CLI" in res.output


def test_cli_list_models():
    run_mod = _import_cli()
    res = CliRunner().invoke(run_mod.main, ["--list-models"])
    assert res.exit_code == 0
    assert "lm" in res.output and "svm_rbf" in res.output


def test_cli_models_validation_invalid_name():
    run_mod = _import_cli()
    res = CliRunner().invoke(run_mod.main, ["--models", "invalid,lm"])
    assert res.exit_code == 2
    assert "invalid model name" in res.output.lower()


def test_cli_metrics_validation():
    run_mod = _import_cli()
    res = CliRunner().invoke(run_mod.main, ["--metrics", "rmse,auc"])
    assert res.exit_code == 2
    assert "invalid metric" in res.output.lower()


def test_cli_formula_validation():
    run_mod = _import_cli()
    res = CliRunner().invoke(run_mod.main, ["--formula", "medv rm"])
    assert res.exit_code == 2


def test_cli_dry_run_prints_plan(pipeline_calls):
    run_mod = _import_cli()
    res = CliRunner().invoke(run_mod.main, ["--models", "lm,svm_rbf", "--cv-folds", "5", "--dry-run"])
    assert res.exit_code == 0
    assert "Plan:" in res.output
    assert "Models: ['lm', 'svm_rbf']" in res.output
    assert "CV folds: 5" in res.output
    assert pipeline_calls == []


def test_cli_runs_pipeline_with_options(pipeline_calls):
    run_mod = _import_cli()
    res = CliRunner().invoke(
        run_mod.main,
        ["--models", "lm", "--cv-folds", "4", "--corr-threshold", "0.4", "--formula", "medv ~ rm + lstat"],
    )
    assert res.exit_code == 0, res.output
    assert len(pipeline_calls) == 1
    call = pipeline_calls[0]
    assert call["model_names"] == ["lm"]
    assert call["v_folds"] == 4
    assert call["corr_threshold"] == 0.4
    assert call["formula"].predictors == ("rm", "lstat")
    assert call["track"] is False
    assert "4.2" in res.output


def test_cli_defaults_to_all_models(pipeline_calls):
    run_mod = _import_cli()
    res = CliRunner().invoke(run_mod.main, [])
    assert res.exit_code == 0, res.output
    assert pipeline_calls[0]["model_names"] == list(run_mod.REGISTRY)


def test_cli_wrapped_exception(monkeypatch, pipeline_calls):
    run_mod = _import_cli()

    # force failure to exercise ClickException branch
    def boom(**kwargs):
        raise RuntimeError("evaluation failed")

    monkeypatch.setattr(run_mod, "cross_validation_pipeline", boom, raising=True)
    res = CliRunner().invoke(run_mod.main, [])
    assert res.exit_code != 0
    assert "evaluation failed" in res.output.lower()
