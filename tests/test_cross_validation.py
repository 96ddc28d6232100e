import json

import pandas as pd
import pytest

from application.dataset.io.splitter import kfold_splits
from application.preprocessing import build_preprocessor
from model import get_model_spec
from pipelines import build_units, cross_validation_pipeline
from pipelines import cross_validation as cv_mod

pytestmark = pytest.mark.unit


def test_build_units_is_split_major(housing_df):
    folds = kfold_splits(housing_df, v=3)
    specs = {"lm": get_model_spec("lm"), "knn": get_model_spec("knn")}
    units = build_units(folds, build_preprocessor(), specs)
    assert [(u.split.id, u.label) for u in units] == [
        ("Fold1", "lm"),
        ("Fold1", "knn"),
        ("Fold2", "lm"),
        ("Fold2", "knn"),
        ("Fold3", "lm"),
        ("Fold3", "knn"),
    ]


def test_cross_validation_pipeline_end_to_end(housing_df, tmp_path):
    result = cross_validation_pipeline(
        model_names=["lm", "knn"],
        data=housing_df,
        v_folds=5,
        test_size=0.25,
        corr_threshold=0.9,
        metrics=["rmse", "rsq"],
        artifact_dir=str(tmp_path),
    )

    cv = result["cv_metrics"]
    assert len(cv) == 5 * 2 * 2
    assert set(result["test_metrics"]["id"]) == {"Split"}
    assert len(result["test_metrics"]) == 2 * 2
    assert result["failures"].empty

    board = result["leaderboard"]
    assert board["label"].tolist()[0] == result["best_model_name"]
    # the data is linear, so the linear model wins on rmse
    assert result["best_model_name"] == "lm"

    for name in ("leaderboard.csv", "leaderboard.json", "cv_metrics.csv", "test_metrics.csv"):
        assert (tmp_path / name).exists()
    assert not (tmp_path / "failures.csv").exists()
    records = json.loads((tmp_path / "leaderboard.json").read_text())
    assert [r["label"] for r in records] == board["label"].tolist()
    pd.testing.assert_frame_equal(pd.read_csv(tmp_path / "cv_metrics.csv"), cv)


def test_cross_validation_pipeline_is_reproducible(housing_df, tmp_path):
    kwargs = dict(model_names=["lm", "svm_rbf"], data=housing_df, v_folds=3, artifact_dir=str(tmp_path))
    first = cross_validation_pipeline(**kwargs)["cv_metrics"].to_csv(index=False)
    second = cross_validation_pipeline(**kwargs)["cv_metrics"].to_csv(index=False)
    assert first == second


def test_cross_validation_pipeline_logs_to_mlflow_when_tracking(housing_df, tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(cv_mod, "_log_to_mlflow", lambda *args: calls.append(args), raising=True)

    cross_validation_pipeline(model_names=["lm"], data=housing_df, v_folds=3, artifact_dir=str(tmp_path))
    assert calls == []

    cross_validation_pipeline(model_names=["lm"], data=housing_df, v_folds=3, artifact_dir=str(tmp_path), track=True)
    assert len(calls) == 1
    run_name, params, specs, *_ = calls[0]
    assert run_name == "model-comparison"
    assert params["cv_folds"] == 3
    assert list(specs) == ["lm"]


def test_cross_validation_pipeline_rejects_unknown_model(housing_df, tmp_path):
    with pytest.raises(ValueError, match="Invalid model name"):
        cross_validation_pipeline(model_names=["nope"], data=housing_df, artifact_dir=str(tmp_path))
