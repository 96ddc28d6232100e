import numpy as np
import pandas as pd
import pytest
from sklearn.svm import SVR

from model import REGISTRY, ModelSpec, fit_model, get_model_spec
from model.errors import FitError, PredictionError, SchemaError

pytestmark = pytest.mark.unit


def test_registry_specs_build_fresh_estimators():
    spec = get_model_spec("svm_rbf")
    a, b = spec.build(), spec.build()
    assert a is not b
    assert isinstance(a, SVR)
    assert a.get_params()["kernel"] == "rbf"
    assert a.get_params()["C"] == 1.0
    assert a.get_params()["gamma"] == 0.1
    assert a.get_params()["epsilon"] == 0.1


def test_get_model_spec_overrides_params():
    spec = get_model_spec("svm_rbf", cost=4.0)
    assert spec.build().get_params()["C"] == 4.0
    # registry entry is untouched
    assert REGISTRY["svm_rbf"].params["cost"] == 1.0


def test_get_model_spec_unknown_name():
    with pytest.raises(ValueError, match="Invalid model name"):
        get_model_spec("xgboost")


@pytest.mark.parametrize(
    "algorithm, params",
    [("random_forest", {}), ("linear_reg", {"cost": 1.0}), ("svm_linear", {"rbf_sigma": 0.1})],
)
def test_model_spec_validation(algorithm, params):
    with pytest.raises(ValueError):
        ModelSpec(algorithm, params)


def test_fit_linear_model_recovers_coefficients():
    x = np.linspace(0, 1, 20)
    df = pd.DataFrame({"x": x, "y": 3.0 + 2.0 * x})
    fitted = fit_model(ModelSpec("linear_reg"), df, ["x"], "y")

    coef = fitted.coefficients()
    assert coef["(Intercept)"] == pytest.approx(3.0)
    assert coef["x"] == pytest.approx(2.0)
    assert np.allclose(fitted.predict(pd.DataFrame({"x": [0.5]})), [4.0])


def test_collinear_predictors_fail_linear_fit():
    x = np.arange(10, dtype=float)
    df = pd.DataFrame({"x1": x, "x2": 2 * x, "y": x + 1})
    with pytest.raises(FitError, match="rank deficient"):
        fit_model(ModelSpec("linear_reg"), df, ["x1", "x2"], "y")


def test_more_predictors_than_rows_fail_linear_fit():
    df = pd.DataFrame([[1.0, 0.0, 1.0], [0.0, 1.0, 2.0]], columns=["a", "b", "y"])
    with pytest.raises(FitError):
        fit_model(ModelSpec("linear_reg"), df, ["a", "b"], "y")


def test_fit_rejects_missing_values_and_empty_data():
    df = pd.DataFrame({"x": [1.0, np.nan, 3.0], "y": [1.0, 2.0, 3.0]})
    with pytest.raises(FitError, match="non-finite"):
        fit_model(ModelSpec("linear_reg"), df, ["x"], "y")
    with pytest.raises(FitError, match="empty"):
        fit_model(ModelSpec("linear_reg"), df.iloc[:0], ["x"], "y")


def test_fit_missing_column_is_schema_error():
    df = pd.DataFrame({"x": [1.0, 2.0, 3.0], "y": [1.0, 2.0, 3.0]})
    with pytest.raises(SchemaError):
        fit_model(ModelSpec("linear_reg"), df, ["x", "z"], "y")


def test_predict_with_mismatched_schema():
    df = pd.DataFrame({"x": [1.0, 2.0, 3.0, 4.0], "y": [2.0, 4.0, 6.0, 8.1]})
    fitted = fit_model(ModelSpec("svm_linear"), df, ["x"], "y")

    with pytest.raises(PredictionError, match="missing"):
        fitted.predict(pd.DataFrame({"z": [1.0]}))
    with pytest.raises(PredictionError, match="Non-numeric"):
        fitted.predict(pd.DataFrame({"x": ["a"]}))


def test_knn_with_too_few_rows_fails_at_predict():
    df = pd.DataFrame({"x": [1.0, 2.0, 3.0], "y": [1.0, 2.0, 3.0]})
    fitted = fit_model(get_model_spec("knn"), df, ["x"], "y")
    with pytest.raises(PredictionError):
        fitted.predict(df)


def test_coefficients_only_for_linear_models():
    df = pd.DataFrame({"x": [1.0, 2.0, 3.0, 4.0], "y": [1.0, 2.0, 3.0, 4.5]})
    fitted = fit_model(get_model_spec("svm_rbf"), df, ["x"], "y")
    with pytest.raises(AttributeError):
        fitted.coefficients()
